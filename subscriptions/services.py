"""
Subscription purchase flow.

``initiate_purchase`` prices the plan, opens a Stripe PaymentIntent and leaves
a pending ``Transaction`` plus a pending ``UserSubscription`` behind.
``verify_payment`` reads the intent back from Stripe; on success it activates
the subscription and queues the initial vendor assignment request.
Cancelling inside the purchase window refunds the charge through Stripe.
"""
import logging
from datetime import timedelta
from decimal import Decimal

from django.db import transaction as db_transaction
from django.db.models import Avg, Count, Sum
from django.db.models.functions import TruncDate
from django.utils import timezone

from location_zones.models import LocationZone
from promo_codes.services import PromoCodeError, increment_usage, validate_promo_code
from referrals.services import process_referral_reward
from utils.error_reporting import report_error, report_warning
from utils.exceptions import NotFoundError
from vendor_assignment.services import create_initial_assignment_request, create_vendor_switch_request
from . import payments
from .exceptions import SubscriptionError
from .models import Subscription, Transaction, UserSubscription

logger = logging.getLogger(__name__)


def _check_meal_timings(plan, meal_timings):
    lunch = meal_timings.get('lunch') or {}
    dinner = meal_timings.get('dinner') or {}
    if lunch.get('enabled') and not plan.lunch_available:
        raise SubscriptionError('Lunch is not available for this subscription plan')
    if dinner.get('enabled') and not plan.dinner_available:
        raise SubscriptionError('Dinner is not available for this subscription plan')
    if lunch.get('enabled') and not plan.is_time_in_window('lunch', lunch['time']):
        raise SubscriptionError(
            f"Lunch time must be between {plan.lunch_start:%H:%M} and {plan.lunch_end:%H:%M}"
        )
    if dinner.get('enabled') and not plan.is_time_in_window('dinner', dinner['time']):
        raise SubscriptionError(
            f"Dinner time must be between {plan.dinner_start:%H:%M} and {plan.dinner_end:%H:%M}"
        )
    if not lunch.get('enabled') and not dinner.get('enabled'):
        raise SubscriptionError('At least one meal timing must be selected')
    return lunch, dinner


def initiate_purchase(user, data):
    """
    Start buying a plan.

    ``data`` is the validated purchase payload: ``subscription_id``,
    ``delivery_address``, ``meal_timings`` and optional ``promo_code`` and
    ``start_date``. Returns ``(user_subscription, transaction, client_secret)``;
    ``client_secret`` is None for free purchases, which are activated at once.
    """
    plan = Subscription.objects.active().filter(pk=data['subscription_id']).first()
    if plan is None:
        raise NotFoundError('Subscription plan not found or inactive')

    address = data['delivery_address']
    zone = LocationZone.find_by_pincode(address['pincode']).first()
    if zone is None:
        raise SubscriptionError(
            'Delivery not available to this address',
            details=['Delivery not available to this pincode']
        )
    validation = zone.validate_delivery_for_subscription(address, plan.category)
    if not validation['is_valid']:
        raise SubscriptionError('Delivery not available to this address', details=validation['errors'])

    if UserSubscription.objects.for_user(user).active().exists():
        raise SubscriptionError('You already have an active subscription')

    lunch, dinner = _check_meal_timings(plan, data['meal_timings'])

    price = plan.discounted_price
    discount = Decimal('0.00')
    promo_code = None
    if data.get('promo_code'):
        try:
            promo = validate_promo_code(data['promo_code'], user, plan, price)
        except PromoCodeError as e:
            raise SubscriptionError(e.message)
        promo_code = promo['promo_code']
        discount = promo['discount']
    final_price = price - discount

    start_date = data.get('start_date') or timezone.localdate()
    if start_date < timezone.localdate():
        raise SubscriptionError('Subscription start date cannot be in the past')
    end_date = start_date + timedelta(days=plan.duration_days)

    with db_transaction.atomic():
        transaction = Transaction.objects.create(
            user=user,
            subscription=plan,
            original_amount=price,
            discount_applied=discount,
            amount=final_price,
            promo_code=promo_code,
        )
        user_subscription = UserSubscription.objects.create(
            user=user,
            subscription=plan,
            transaction=transaction,
            credits_granted=plan.calculate_credits(),
            skip_credits_granted=plan.skip_meals_per_plan,
            start_date=start_date,
            end_date=end_date,
            original_price=price,
            discount_applied=discount,
            final_price=final_price,
            promo_code=promo_code,
            delivery_street=address['street'],
            delivery_city=address['city'],
            delivery_state=address.get('state', ''),
            delivery_pincode=address['pincode'],
            delivery_landmark=address.get('landmark', ''),
            delivery_latitude=address.get('latitude'),
            delivery_longitude=address.get('longitude'),
            delivery_zone=zone,
            lunch_enabled=bool(lunch.get('enabled')),
            lunch_time=lunch.get('time') if lunch.get('enabled') else None,
            dinner_enabled=bool(dinner.get('enabled')),
            dinner_time=dinner.get('time') if dinner.get('enabled') else None,
        )

        client_secret = None
        if final_price > 0:
            intent_id, client_secret = payments.create_payment_intent(
                final_price,
                metadata={
                    'user_id': user.id,
                    'subscription_id': plan.id,
                    'user_subscription_id': user_subscription.id,
                    'type': 'subscription_purchase',
                },
                idempotency_key=f"subscription-purchase-{transaction.id}",
            )
            transaction.payment_intent_id = intent_id
            transaction.save(update_fields=['payment_intent_id', 'updated_at'])

    logger.info(
        f"Purchase initiated: user {user.id}, plan {plan.id}, user_subscription {user_subscription.id}, "
        f"amount {final_price}"
    )
    if final_price == 0:
        _complete_purchase(user_subscription, transaction)
    return user_subscription, transaction, client_secret


def _complete_purchase(user_subscription, transaction, payment_method=''):
    """Activate a paid purchase once; returns the queued assignment request or None if already done."""
    with db_transaction.atomic():
        locked = UserSubscription.objects.select_for_update().get(pk=user_subscription.pk)
        if locked.status != UserSubscription.Status.PENDING:
            logger.info(f"User subscription {locked.id} already {locked.status}; skipping activation")
            user_subscription.refresh_from_db()
            return None
        transaction.mark_completed(payment_method)
        locked.activate()
        locked.subscription.increment_purchases()
        if locked.promo_code_id:
            increment_usage(locked.promo_code)
        try:
            with db_transaction.atomic():
                process_referral_reward(locked.user, locked.final_price, locked)
        except Exception as e:
            # A broken reward must not block the customer's activation
            report_error(e, 'process_referral_reward', {'user_subscription_id': locked.id})
        request = create_initial_assignment_request(locked)
    user_subscription.refresh_from_db()
    logger.info(f"User subscription {user_subscription.id} activated; assignment request {request.id} queued")
    return request


def verify_payment(user, user_subscription_id, payment_intent_id):
    """
    Confirm a purchase after the client has completed payment.

    Returns ``(user_subscription, assignment_request)``. Verifying an already
    active subscription is a no-op and returns no new request.
    """
    user_subscription = (
        UserSubscription.objects.for_user(user)
        .select_related('subscription', 'transaction', 'promo_code')
        .filter(pk=user_subscription_id)
        .first()
    )
    if user_subscription is None:
        raise NotFoundError('Subscription not found')
    transaction = user_subscription.transaction
    if transaction is None:
        raise NotFoundError('Transaction not found')
    if transaction.payment_intent_id != payment_intent_id:
        raise SubscriptionError('Payment does not belong to this subscription')

    if user_subscription.status == UserSubscription.Status.ACTIVE:
        return user_subscription, None
    if user_subscription.status != UserSubscription.Status.PENDING:
        raise SubscriptionError(f"Subscription is {user_subscription.status}")

    intent = payments.retrieve_payment_intent(payment_intent_id)
    payment_status = intent.status
    if payment_status in payments.FAILED_STATUSES:
        with db_transaction.atomic():
            transaction.mark_failed(f"Payment {payment_status}")
            user_subscription.mark_failed()
        report_warning(
            'Payment verification failed',
            'verify_payment',
            {'user_subscription_id': user_subscription.id, 'status': payment_status},
        )
        raise SubscriptionError('Payment verification failed')
    if payment_status != payments.SUCCEEDED:
        raise SubscriptionError(f"Payment is still {payment_status}", status_code=409)

    payment_method = (getattr(intent, 'payment_method_types', None) or [''])[0]
    request = _complete_purchase(user_subscription, transaction, payment_method)
    return user_subscription, request


def get_user_subscription(user, user_subscription_id):
    user_subscription = (
        UserSubscription.objects.for_user(user)
        .select_related('subscription', 'vendor', 'promo_code', 'transaction')
        .filter(pk=user_subscription_id)
        .first()
    )
    if user_subscription is None:
        raise NotFoundError('Subscription not found')
    return user_subscription


def cancel_subscription(user, user_subscription_id, reason=''):
    """Cancel within the purchase window and refund the payment; a failed refund keeps the subscription."""
    user_subscription = get_user_subscription(user, user_subscription_id)
    with db_transaction.atomic():
        user_subscription.cancel(reason)
        transaction = user_subscription.transaction
        if transaction is not None and transaction.can_be_refunded():
            _refund(transaction, transaction.amount, reason or 'Subscription cancelled', refunded_by=user)
    logger.info(f"User subscription {user_subscription.id} cancelled by user {user.id}")
    return user_subscription


def request_vendor_switch(user, user_subscription_id, reason=None, description='', preferred_vendors=None):
    user_subscription = get_user_subscription(user, user_subscription_id)
    return create_vendor_switch_request(
        user_subscription,
        reason=reason,
        description=description,
        preferred_vendors=preferred_vendors,
    )


def expire_subscriptions():
    """Mark subscriptions past their end date as expired. Returns the count."""
    count = UserSubscription.objects.expired_pending().update(
        status=UserSubscription.Status.EXPIRED, updated_at=timezone.now()
    )
    if count:
        logger.info(f"Expired {count} subscriptions")
    return count


# --------------------------------------------------------------------------- transactions

def _refund(transaction, amount, reason, refunded_by=None):
    with db_transaction.atomic():
        locked = Transaction.objects.select_for_update().get(pk=transaction.pk)
        if not locked.can_be_refunded():
            raise SubscriptionError('Transaction cannot be refunded')
        if amount <= 0 or amount > locked.amount:
            raise SubscriptionError(f"Refund amount must be more than 0 and at most {locked.amount}", status_code=422)
        refund_id = payments.create_refund(
            locked.payment_intent_id, amount, reason, idempotency_key=f"transaction-refund-{locked.id}"
        )
        locked.mark_refunded(refund_id, amount, reason, refunded_by)
    logger.info(f"Refunded {amount} on transaction {locked.id} ({refund_id})")
    return locked


def get_transaction(transaction_id):
    transaction = (
        Transaction.objects.select_related('user', 'subscription', 'promo_code', 'refunded_by')
        .filter(pk=transaction_id)
        .first()
    )
    if transaction is None:
        raise NotFoundError('Transaction not found')
    return transaction


def refund_transaction(transaction_id, admin, amount=None, reason=''):
    """Admin refund; ``amount`` defaults to the full charge."""
    transaction = get_transaction(transaction_id)
    amount = transaction.amount if amount is None else amount
    return _refund(transaction, amount, reason, refunded_by=admin)


def transaction_stats(start, end):
    """Dashboard numbers for transactions created between ``start`` and ``end`` (aware datetimes)."""
    in_range = Transaction.objects.created_between(start, end)
    overview = in_range.status_summary()

    daily_revenue = [
        {
            'date': row['day'],
            'total_revenue': row['total_revenue'],
            'total_transactions': row['total_transactions'],
            'average_amount': round(float(row['average_amount'] or 0), 2),
            'total_discount': row['total_discount'],
        }
        for row in in_range.completed()
        .annotate(day=TruncDate('created_at'))
        .values('day')
        .annotate(
            total_revenue=Sum('amount'),
            total_transactions=Count('id'),
            average_amount=Avg('amount'),
            total_discount=Sum('discount_applied'),
        )
        .order_by('day')
    ]
    plan_breakdown = list(
        in_range.completed()
        .values('subscription__category', 'subscription__duration')
        .annotate(count=Count('id'), total_revenue=Sum('amount'))
        .order_by('-total_revenue')
    )

    previous = Transaction.objects.created_between(start - (end - start), start).completed()
    previous_revenue = previous.aggregate(total=Sum('amount'))['total'] or Decimal('0.00')
    current_revenue = overview[Transaction.Status.COMPLETED]['amount']
    growth = float((current_revenue - previous_revenue) / previous_revenue * 100) if previous_revenue else 0.0

    return {
        'overview': overview,
        'daily_revenue': daily_revenue,
        'payment_method_stats': in_range.payment_method_stats(),
        'plan_breakdown': plan_breakdown,
        'failure_analysis': in_range.failure_breakdown(),
        'growth_percentage': round(growth, 2),
    }
