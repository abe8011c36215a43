import logging

from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from rest_framework import serializers
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from custom_auth.permissions import IsAdminRole
from custom_auth.throttles import AuthenticatedBurstThrottle
from utils.exceptions import validation_error_response
from utils.pagination import paginate_queryset, parse_page_params
from . import services
from .models import ReferralReward

logger = logging.getLogger(__name__)


class UseCreditsSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=1)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def referral_stats(request):
    return Response(services.referral_stats(request.user))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def referral_link(request):
    return Response(services.referral_link(request.user))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def referral_leaderboard(request):
    try:
        limit = min(max(int(request.query_params.get('limit', 10)), 1), 50)
    except ValueError:
        limit = 10
    return Response({'leaderboard': services.leaderboard(limit)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([AuthenticatedBurstThrottle])
def use_referral_credits(request):
    serializer = UseCreditsSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    try:
        result = services.use_referral_credits(request.user, serializer.validated_data['amount'])
    except services.ReferralError as e:
        return e.to_response()
    return Response({'message': 'Referral credits applied successfully', **result})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def referral_used_users(request):
    """Admin: users who signed up with a referral code."""
    users = (
        get_user_model().objects.filter(referred_by__isnull=False)
        .select_related('referred_by')
        .order_by('-date_joined')
    )
    if request.query_params.get('rewarded') in ('true', 'false'):
        users = users.filter(is_referral_used=request.query_params['rewarded'] == 'true')
    page, limit = parse_page_params(request.query_params)
    items, pagination = paginate_queryset(users, page, limit, total_key='total_users')
    return Response({
        'users': [
            {
                'id': u.id,
                'username': u.username,
                'email': u.email,
                'used_referral_code': u.used_referral_code,
                'referred_by': u.referred_by.username,
                'reward_paid': u.is_referral_used,
                'joined_at': u.date_joined,
            }
            for u in items
        ],
        'pagination': pagination,
    })


@api_view(['GET'])
@permission_classes([IsAdminRole])
def user_referral_details(request, user_id):
    user = get_object_or_404(get_user_model(), id=user_id)
    rewards = ReferralReward.objects.filter(referrer=user).select_related('referred_user')
    return Response({
        'user_id': user.id,
        'username': user.username,
        'stats': services.referral_stats(user),
        'rewards': [
            {
                'referred_user': r.referred_user.username,
                'purchase_amount': r.purchase_amount,
                'credits_awarded': r.credits_awarded,
                'created_at': r.created_at,
            }
            for r in rewards
        ],
    })
