import logging

from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from custom_auth.permissions import IsAdminRole
from custom_auth.throttles import AuthenticatedBurstThrottle
from subscriptions.models import Subscription
from utils.exceptions import validation_error_response
from utils.pagination import paginate_queryset, parse_page_params
from . import services
from .models import PromoCode
from .serializers import BulkPromoCodeSerializer, PromoCodeSerializer, PromoCodeValidateSerializer

logger = logging.getLogger(__name__)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([AuthenticatedBurstThrottle])
def validate_promo_code(request):
    """Preview the discount a code gives on a plan before purchase."""
    serializer = PromoCodeValidateSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    data = serializer.validated_data

    plan = Subscription.objects.active().filter(pk=data['subscription_id']).first()
    if plan is None:
        return Response({'valid': False, 'error': 'Invalid subscription'}, status=status.HTTP_404_NOT_FOUND)
    amount = data.get('amount', plan.discounted_price)

    try:
        result = services.validate_promo_code(data['code'], request.user, plan, amount)
    except services.PromoCodeError as e:
        return Response({'valid': False, 'error': e.message, 'discount': '0.00'}, status=e.status_code)

    return Response({
        'valid': True,
        'code': result['promo_code'].code,
        'discount': str(result['discount']),
        'discount_type': result['discount_type'],
        'discount_value': str(result['discount_value']),
        'max_discount': str(result['max_discount']) if result['max_discount'] is not None else None,
        'final_amount': str(amount - result['discount']),
    })


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def promo_code_list_create(request):
    if request.method == 'POST':
        serializer = PromoCodeSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer)
        promo_code = serializer.save(created_by=request.user)
        logger.info(f"Promo code {promo_code.code} created by admin {request.user.id}")
        return Response(PromoCodeSerializer(promo_code).data, status=status.HTTP_201_CREATED)

    params = request.query_params
    promo_codes = PromoCode.objects.select_related('created_by').prefetch_related('applicable_plans')
    if params.get('is_active') in ('true', 'false'):
        promo_codes = promo_codes.filter(is_active=params['is_active'] == 'true')
    if params.get('discount_type'):
        promo_codes = promo_codes.filter(discount_type=params['discount_type'])
    if params.get('search'):
        term = params['search']
        promo_codes = promo_codes.filter(Q(code__icontains=term) | Q(description__icontains=term))

    page, limit = parse_page_params(params)
    items, pagination = paginate_queryset(promo_codes, page, limit, total_key='total_promo_codes')
    return Response({
        'promo_codes': PromoCodeSerializer(items, many=True).data,
        'pagination': pagination,
    })


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def promo_code_detail(request, promo_id):
    promo_code = get_object_or_404(PromoCode, id=promo_id)
    if request.method == 'GET':
        return Response(PromoCodeSerializer(promo_code).data)
    if request.method == 'DELETE':
        if promo_code.used_count:
            return Response(
                {'error': 'Promo code has been used; deactivate it instead'},
                status=status.HTTP_400_BAD_REQUEST
            )
        promo_code.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = PromoCodeSerializer(promo_code, data=request.data, partial=True)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    serializer.save()
    return Response(serializer.data)


@api_view(['POST'])
@permission_classes([IsAdminRole])
def toggle_promo_code(request, promo_id):
    promo_code = get_object_or_404(PromoCode, id=promo_id)
    promo_code.toggle_active()
    logger.info(f"Promo code {promo_code.code} is_active={promo_code.is_active} (admin {request.user.id})")
    return Response({'id': promo_code.id, 'is_active': promo_code.is_active})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def promo_code_stats(request, promo_id):
    promo_code = get_object_or_404(PromoCode, id=promo_id)
    return Response({
        'promo_code': PromoCodeSerializer(promo_code).data,
        'stats': services.promo_stats(promo_code),
    })


@api_view(['GET'])
@permission_classes([IsAdminRole])
def expiring_promo_codes(request):
    try:
        days = max(1, int(request.query_params.get('days', 3)))
    except ValueError:
        days = 3
    promo_codes = services.expiring_promo_codes(days)
    return Response({
        'promo_codes': PromoCodeSerializer(promo_codes, many=True).data,
        'days': days,
    })


@api_view(['POST'])
@permission_classes([IsAdminRole])
def bulk_create_promo_codes(request):
    serializer = BulkPromoCodeSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    data = dict(serializer.validated_data)
    count = data.pop('count')
    prefix = data.pop('prefix', '')
    try:
        created = services.bulk_create(data, count, created_by=request.user, prefix=prefix)
    except services.PromoCodeError as e:
        return e.to_response()
    return Response({
        'count': len(created),
        'codes': [p.code for p in created],
    }, status=status.HTTP_201_CREATED)
