"""
Referral program.

A new user may register with someone's referral code. The first time the
referred user pays for a subscription, the referrer earns credits worth a
percentage of the purchase, clamped between a floor and a ceiling. Referrers
later move those credits into their wallet.
"""
import logging
from decimal import Decimal, ROUND_FLOOR

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, Q

from utils.exceptions import DomainError
from .models import ReferralReward

logger = logging.getLogger(__name__)


class ReferralError(DomainError):
    pass


def calculate_referral_reward(amount):
    reward = (Decimal(str(amount)) * Decimal(settings.REFERRAL_REWARD_PERCENT) / 100).quantize(
        Decimal('1'), rounding=ROUND_FLOOR
    )
    reward = max(Decimal(settings.REFERRAL_REWARD_MIN), min(reward, Decimal(settings.REFERRAL_REWARD_MAX)))
    return reward.quantize(Decimal('0.01'))


def validate_and_link(user, code):
    """Link ``user`` to the owner of ``code``."""
    code = (code or '').strip().upper()
    User = get_user_model()
    referrer = User.objects.filter(referral_code=code).first()
    if referrer is None:
        raise ReferralError('Invalid referral code')
    if referrer.pk == user.pk:
        raise ReferralError('Cannot use your own referral code')
    if user.referred_by_id:
        raise ReferralError('Referral code already used')

    user.referred_by = referrer
    user.used_referral_code = code
    user.save(update_fields=['referred_by', 'used_referral_code'])
    logger.info(f"User {user.id} linked to referrer {referrer.id} via {code}")
    return referrer


def process_referral_reward(user, amount, user_subscription=None):
    """
    Pay the referrer of ``user`` for this purchase, once.

    Returns the ``ReferralReward`` or None when there is nothing to pay.
    """
    User = get_user_model()
    with transaction.atomic():
        user = User.objects.select_for_update().get(pk=user.pk)
        if not user.referred_by_id or user.is_referral_used:
            return None
        referrer = User.objects.select_for_update().get(pk=user.referred_by_id)

        credits = calculate_referral_reward(amount)
        referrer.total_referral_credits += credits
        referrer.save(update_fields=['total_referral_credits'])
        user.is_referral_used = True
        user.save(update_fields=['is_referral_used'])
        reward = ReferralReward.objects.create(
            referrer=referrer,
            referred_user=user,
            user_subscription=user_subscription,
            purchase_amount=amount,
            credits_awarded=credits,
        )
    logger.info(f"Referral reward of {credits} credited to user {referrer.id} for referred user {user.id}")
    return reward


def referral_stats(user):
    referred = list(
        user.referrals.order_by('-date_joined').values(
            'id', 'username', 'email', 'date_joined', 'is_referral_used'
        )
    )
    successful = sum(1 for r in referred if r['is_referral_used'])
    return {
        'referral_code': user.referral_code,
        'total_referrals': len(referred),
        'successful_referrals': successful,
        'pending_referrals': len(referred) - successful,
        'total_credits_earned': user.total_referral_credits,
        'credits_used': user.referral_credits_used,
        'available_credits': user.available_referral_credits,
        'referred_users': [
            {
                'username': r['username'],
                'email': r['email'],
                'joined_at': r['date_joined'],
                'has_used_referral': r['is_referral_used'],
            }
            for r in referred
        ],
    }


def leaderboard(limit=10):
    User = get_user_model()
    top = (
        User.objects.filter(total_referral_credits__gt=0)
        .annotate(
            referral_count=Count('referrals', distinct=True),
            successful_count=Count('referrals', filter=Q(referrals__is_referral_used=True), distinct=True),
        )
        .order_by('-total_referral_credits', 'id')[:limit]
    )
    return [
        {
            'username': u.username,
            'referral_code': u.referral_code,
            'total_referrals': u.referral_count,
            'successful_referrals': u.successful_count,
            'total_credits_earned': u.total_referral_credits,
        }
        for u in top
    ]


def use_referral_credits(user, amount):
    """Move ``amount`` of earned referral credits into the user's wallet."""
    amount = Decimal(str(amount))
    if amount <= 0:
        raise ReferralError('Amount must be positive')
    User = get_user_model()
    with transaction.atomic():
        user = User.objects.select_for_update().get(pk=user.pk)
        available = user.available_referral_credits
        if amount > available:
            raise ReferralError('Insufficient referral credits', details={'available_credits': str(available)})
        user.referral_credits_used += amount
        user.wallet_credits += amount
        user.save(update_fields=['referral_credits_used', 'wallet_credits'])
    logger.info(f"User {user.id} moved {amount} referral credits to wallet")
    return {
        'credits_used': amount,
        'remaining_referral_credits': user.available_referral_credits,
        'wallet_credits': user.wallet_credits,
    }


def referral_link(user):
    code = user.referral_code
    link = f"{settings.REFERRAL_BASE_URL}?ref={code}"
    return {
        'referral_code': code,
        'referral_link': link,
        'share_message': (
            f"Join Tiffin Hub with my referral code {code} for fresh home-style meals: {link}"
        ),
    }
