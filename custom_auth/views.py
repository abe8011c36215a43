import logging
from datetime import timedelta

from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.tokens import RefreshToken

from referrals.services import ReferralError, validate_and_link
from utils.dates import end_of_day, parse_date_param, start_of_day
from utils.error_reporting import report_error
from utils.exceptions import DomainError, validation_error_response
from utils.pagination import paginate_queryset, parse_page_params
from . import services
from .models import CustomUser
from .permissions import IsAdminRole
from .serializers import (
    AddressSerializer,
    AdminUserSerializer,
    BanUserSerializer,
    CustomUserSerializer,
    PreferencesSerializer,
    ProfileSerializer,
    RegisterSerializer,
)
from .throttles import AuthenticatedBurstThrottle

logger = logging.getLogger(__name__)


@api_view(['POST'])
@permission_classes([AllowAny])
def register_api_view(request):
    """
    Create an account and return a JWT pair.

    An optional ``referral_code`` links the new user to the referrer; a bad code
    fails the whole registration so the user can correct it.
    """
    serializer = RegisterSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(
            {'error': 'Validation failed', 'details': serializer.errors},
            status=status.HTTP_422_UNPROCESSABLE_ENTITY
        )

    referral_code = (serializer.validated_data.get('referral_code') or '').strip()
    try:
        with transaction.atomic():
            user = serializer.save()
            if referral_code:
                validate_and_link(user, referral_code)
    except ReferralError as e:
        return Response({'error': e.message}, status=e.status_code)
    except Exception as e:
        report_error(e, 'register_api_view', {'username': request.data.get('username')})
        return Response({'error': 'Registration failed'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    logger.info(f"Registered user {user.id} with role {user.role}")
    refresh = RefreshToken.for_user(user)
    return Response({
        'user': CustomUserSerializer(user).data,
        'access': str(refresh.access_token),
        'refresh': str(refresh),
    }, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
@throttle_classes([AuthenticatedBurstThrottle])
def user_details_view(request):
    if request.method == 'GET':
        return Response(CustomUserSerializer(request.user).data)

    serializer = CustomUserSerializer(request.user, data=request.data, partial=True)
    if not serializer.is_valid():
        return Response(
            {'error': 'Validation failed', 'details': serializer.errors},
            status=status.HTTP_422_UNPROCESSABLE_ENTITY
        )
    serializer.save()
    return Response(serializer.data)


# --------------------------------------------------------------------------- profile

@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
@throttle_classes([AuthenticatedBurstThrottle])
def profile_view(request):
    """The signed-in user with their food preferences and address book."""
    if request.method == 'PATCH':
        data = request.data.copy()
        preferences = data.pop('preferences', None)
        user_serializer = CustomUserSerializer(request.user, data=data, partial=True)
        if not user_serializer.is_valid():
            return validation_error_response(user_serializer)
        prefs_serializer = None
        if preferences is not None:
            prefs_serializer = PreferencesSerializer(data=preferences, partial=True)
            if not prefs_serializer.is_valid():
                return validation_error_response(prefs_serializer)
        with transaction.atomic():
            user_serializer.save()
            if prefs_serializer is not None:
                services.update_preferences(request.user, prefs_serializer.validated_data)
    return Response(ProfileSerializer(request.user).data)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def preferences_view(request):
    serializer = PreferencesSerializer(data=request.data, partial=True)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    profile = services.update_preferences(request.user, serializer.validated_data)
    return Response({
        'message': 'Preferences updated successfully',
        'preferences': PreferencesSerializer(profile).data,
    })


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([AuthenticatedBurstThrottle])
def addresses_view(request):
    if request.method == 'GET':
        addresses = request.user.addresses.all()
        return Response({
            'addresses': AddressSerializer(addresses, many=True).data,
            'total_addresses': len(addresses),
        })

    serializer = AddressSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    address = services.add_address(request.user, dict(serializer.validated_data))
    return Response({
        'message': 'Address added successfully',
        'address': AddressSerializer(address).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def address_detail_view(request, address_id):
    try:
        if request.method == 'DELETE':
            services.delete_address(request.user, address_id)
            return Response({'message': 'Address deleted successfully'})

        serializer = AddressSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            return validation_error_response(serializer)
        address = services.update_address(request.user, address_id, dict(serializer.validated_data))
    except DomainError as e:
        return e.to_response()
    return Response({
        'message': 'Address updated successfully',
        'address': AddressSerializer(address).data,
    })


# --------------------------------------------------------------------------- admin users

@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_users(request):
    params = request.query_params
    users = CustomUser.objects.annotate(subscription_count=Count('subscriptions')).order_by('-date_joined', '-id')
    if params.get('role'):
        users = users.filter(role=params['role'])
    status_filter = params.get('status')
    if status_filter == 'banned':
        users = users.filter(is_banned=True)
    elif status_filter == 'active':
        users = users.filter(is_active=True)
    elif status_filter == 'inactive':
        users = users.filter(is_active=False, is_banned=False)
    if params.get('search'):
        term = params['search']
        users = users.filter(
            Q(username__icontains=term) | Q(email__icontains=term)
            | Q(phone_number__icontains=term) | Q(first_name__icontains=term)
        )
    page, limit = parse_page_params(params)
    items, pagination = paginate_queryset(users, page, limit, total_key='total_users')
    return Response({
        'users': AdminUserSerializer(items, many=True).data,
        'pagination': pagination,
    })


@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_user_overview(request):
    return Response({'overview': services.user_overview(), 'generated_at': timezone.now()})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_user_activity(request):
    params = request.query_params
    try:
        start = parse_date_param(params.get('start_date'), 'start_date')
        end = parse_date_param(params.get('end_date'), 'end_date')
    except DomainError as e:
        return e.to_response()
    end = end or timezone.localdate()
    start = start or end - timedelta(days=30)
    return Response({
        **services.user_activity_stats(start_of_day(start), end_of_day(end)),
        'date_range': {'start_date': start, 'end_date': end},
    })


@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_user_detail(request, user_id):
    try:
        user = services.get_user(user_id)
    except DomainError as e:
        return e.to_response()
    return Response({
        'user': AdminUserSerializer(user).data,
        'subscriptions': list(
            user.subscriptions.values('id', 'subscription__plan_name', 'status', 'start_date', 'end_date')
        ),
    })


@api_view(['POST'])
@permission_classes([IsAdminRole])
def ban_user(request, user_id):
    serializer = BanUserSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    try:
        user = services.ban_user(user_id, request.user, serializer.validated_data['reason'])
    except DomainError as e:
        return e.to_response()
    return Response({'message': 'User banned successfully', 'user': AdminUserSerializer(user).data})


@api_view(['POST'])
@permission_classes([IsAdminRole])
def unban_user(request, user_id):
    try:
        user = services.unban_user(user_id, request.user)
    except DomainError as e:
        return e.to_response()
    return Response({'message': 'User unbanned successfully', 'user': AdminUserSerializer(user).data})


@api_view(['POST'])
@permission_classes([IsAdminRole])
def toggle_user_status(request, user_id):
    try:
        user = services.toggle_user_status(user_id)
    except DomainError as e:
        return e.to_response()
    state = 'activated' if user.is_active else 'deactivated'
    return Response({'message': f"User {state} successfully", 'user': AdminUserSerializer(user).data})
