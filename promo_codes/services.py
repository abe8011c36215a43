import logging
import secrets
import string

from django.db import transaction
from django.db.models import Count, Sum

from utils.error_reporting import report_warning
from utils.exceptions import DomainError
from .models import PromoCode

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 8
MAX_BULK_CODES = 100

# Subscriptions in these states never consumed the code
UNCOUNTED_STATUSES = ('cancelled', 'failed')


class PromoCodeError(DomainError):
    pass


def user_usage_count(user, promo_code):
    return promo_code.subscriptions.filter(user=user).exclude(status__in=UNCOUNTED_STATUSES).count()


def validate_promo_code(code, user, plan, amount):
    """
    Check ``code`` for ``user`` buying ``plan`` at ``amount``.

    Returns a dict with the ``PromoCode`` and the discount; raises
    ``PromoCodeError`` with a customer-facing message otherwise.
    """
    code = (code or '').strip().upper()
    promo_code = PromoCode.objects.valid().filter(code=code).first()
    if promo_code is None:
        raise PromoCodeError('Invalid or expired promo code')
    if not promo_code.is_applicable(plan):
        raise PromoCodeError('Promo code not applicable to this subscription')
    if user_usage_count(user, promo_code) >= promo_code.user_usage_limit:
        raise PromoCodeError('Promo code usage limit exceeded for this user')

    discount, error = promo_code.calculate_discount(amount)
    if error:
        raise PromoCodeError(error)
    return {
        'promo_code': promo_code,
        'discount': discount,
        'discount_type': promo_code.discount_type,
        'discount_value': promo_code.discount_value,
        'max_discount': promo_code.max_discount,
    }


def increment_usage(promo_code):
    """Count one more redemption. Called once the payment has gone through."""
    promo_code.increment_usage()
    if promo_code.used_count > promo_code.usage_limit:
        report_warning(
            f"Promo code {promo_code.code} redeemed past its limit",
            'increment_usage',
            {'used_count': promo_code.used_count, 'usage_limit': promo_code.usage_limit},
        )
    logger.info(f"Promo code {promo_code.code} used ({promo_code.used_count}/{promo_code.usage_limit})")


def promo_stats(promo_code):
    usage = promo_code.subscriptions.exclude(status__in=UNCOUNTED_STATUSES).aggregate(
        total_usage=Count('id'),
        total_revenue=Sum('final_price'),
        total_discount=Sum('discount_applied'),
    )
    return {
        'total_usage': usage['total_usage'],
        'total_revenue': usage['total_revenue'] or 0,
        'total_discount': usage['total_discount'] or 0,
        'usage_percentage': round(promo_code.used_count / promo_code.usage_limit * 100, 2),
        'remaining_uses': promo_code.remaining_uses,
        'is_expiring': promo_code.is_expiring(),
    }


def expiring_promo_codes(days=3):
    return list(PromoCode.objects.expiring(days))


def deactivate_expired():
    count = PromoCode.objects.expired_active().update(is_active=False)
    logger.info(f"Deactivated {count} expired promo codes")
    return count


def generate_code(length=CODE_LENGTH):
    return ''.join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def _unique_code(prefix, taken):
    while True:
        code = f"{prefix}{generate_code()}"[:20]
        if code not in taken and not PromoCode.objects.filter(code=code).exists():
            taken.add(code)
            return code


def bulk_create(data, count, created_by=None, prefix=''):
    """Create ``count`` codes sharing ``data`` (everything except the code itself)."""
    if not 1 <= count <= MAX_BULK_CODES:
        raise PromoCodeError(f"Count must be between 1 and {MAX_BULK_CODES}")
    plans = data.pop('applicable_plans', [])
    prefix = (prefix or '').strip().upper()
    taken = set()
    created = []
    with transaction.atomic():
        for _ in range(count):
            promo_code = PromoCode(code=_unique_code(prefix, taken), created_by=created_by, **data)
            promo_code.full_clean(exclude=['applicable_plans'])
            promo_code.save()
            if plans:
                promo_code.applicable_plans.set(plans)
            created.append(promo_code)
    logger.info(f"Bulk created {len(created)} promo codes")
    return created
