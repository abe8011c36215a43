"""
Order creation.

Orders are cut per subscription, delivery date and meal type from the plan's
daily meal. Every attempt leaves an ``OrderCreationLog`` row so admins can see
why a customer got no meal and retry the ones that can be retried.
"""
import logging

from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from menus.models import DailyMeal
from subscriptions.models import UserSubscription
from utils.error_reporting import report_error, report_warning
from utils.exceptions import DomainError, ForbiddenError, NotFoundError
from vendors.models import VendorProfile
from .exceptions import OrderError
from .models import Order, OrderCreationLog

logger = logging.getLogger(__name__)

Reason = OrderCreationLog.Reason


class OrderCreationFailure(Exception):
    def __init__(self, reason, message, can_retry=False):
        super().__init__(message)
        self.reason = reason
        self.message = message
        self.can_retry = can_retry


def _ensure_no_live_order(user_sub, delivery_date, meal_type):
    existing = (
        Order.objects.live()
        .filter(user_subscription=user_sub, delivery_date=delivery_date, meal_type=meal_type)
        .first()
    )
    if existing is not None:
        raise OrderCreationFailure(Reason.ORDER_ALREADY_EXISTS, f"Order {existing.order_number} already exists")


def _check_subscription(user_sub, delivery_date, meal_type):
    """Raise ``OrderCreationFailure`` when no order can be cut; returns the daily meal otherwise."""
    if user_sub.status != UserSubscription.Status.ACTIVE:
        raise OrderCreationFailure(Reason.SUBSCRIPTION_INACTIVE, 'Subscription is not active')
    if user_sub.end_date < delivery_date:
        raise OrderCreationFailure(Reason.SUBSCRIPTION_EXPIRED, 'Subscription has expired')
    if user_sub.start_date > delivery_date:
        raise OrderCreationFailure(
            Reason.SUBSCRIPTION_INACTIVE, f"Subscription starts on {user_sub.start_date:%Y-%m-%d}"
        )
    if meal_type not in user_sub.meal_types:
        raise OrderCreationFailure(Reason.VALIDATION_ERROR, f"{meal_type.title()} is not enabled for this subscription")
    if not user_sub.vendor_id:
        raise OrderCreationFailure(Reason.VALIDATION_ERROR, 'No vendor assigned to this subscription', can_retry=True)

    _ensure_no_live_order(user_sub, delivery_date, meal_type)

    daily_meal = DailyMeal.objects.for_date(delivery_date).filter(subscription=user_sub.subscription_id).first()
    if daily_meal is None or not daily_meal.has_menus(meal_type):
        raise OrderCreationFailure(
            Reason.NO_MENU_AVAILABLE, f"No {meal_type} menu set for this date", can_retry=True
        )

    if user_sub.remaining_credits < 1:
        raise OrderCreationFailure(
            Reason.INSUFFICIENT_CREDITS,
            f"Credits available: {user_sub.remaining_credits}, Required: 1",
        )
    return daily_meal


def _cut_order(user_sub, daily_meal, delivery_date, meal_type):
    with transaction.atomic():
        user_sub = UserSubscription.objects.select_for_update().get(pk=user_sub.pk)
        # the subscription row lock serialises creators for the same slot
        _ensure_no_live_order(user_sub, delivery_date, meal_type)
        vendor = VendorProfile.objects.select_for_update().get(pk=user_sub.vendor_id)
        if user_sub.remaining_credits < 1:
            raise OrderCreationFailure(Reason.INSUFFICIENT_CREDITS, 'No credits left')

        user_sub.use_credits(1)
        order = Order.objects.create(
            user_id=user_sub.user_id,
            user_subscription=user_sub,
            daily_meal=daily_meal,
            delivery_date=delivery_date,
            meal_type=meal_type,
            delivery_time=user_sub.meal_time(meal_type),
            delivery_street=user_sub.delivery_street,
            delivery_city=user_sub.delivery_city,
            delivery_state=user_sub.delivery_state,
            delivery_pincode=user_sub.delivery_pincode,
            delivery_landmark=user_sub.delivery_landmark,
            delivery_latitude=user_sub.delivery_latitude,
            delivery_longitude=user_sub.delivery_longitude,
            vendor=vendor,
            vendor_type=vendor.vendor_type,
            credits_used=1,
            is_credits_deducted=True,
        )
        order.menus.set(daily_meal.menus_for(meal_type))
        order._record(Order.Status.UPCOMING, notes='Order created')

        if not vendor.has_capacity(1):
            report_warning(
                f"Vendor {vendor.id} is over capacity",
                'create_order_for_subscription',
                {'order': order.order_number, 'current_load': vendor.current_load},
            )
        vendor.update_capacity(1)
    return order


def create_order_for_subscription(user_sub, delivery_date, meal_type, triggered_by=None, log=None):
    """
    Try to create the ``meal_type`` order for ``user_sub`` on ``delivery_date``.

    Returns ``(order, log)``; ``order`` is None when the attempt failed and
    ``log`` records why. Passing an existing ``log`` re-runs that attempt.
    """
    if log is None:
        log = OrderCreationLog(
            user_id=user_sub.user_id,
            user_subscription=user_sub,
            delivery_date=delivery_date,
            meal_type=meal_type,
            triggered_by=triggered_by,
        )

    order = None
    try:
        daily_meal = _check_subscription(user_sub, delivery_date, meal_type)
        order = _cut_order(user_sub, daily_meal, delivery_date, meal_type)
    except OrderCreationFailure as e:
        log.mark_failed(e.reason, e.message, e.can_retry)
    except DomainError as e:
        log.mark_failed(Reason.VALIDATION_ERROR, e.message, can_retry=True)
    except Exception as e:
        report_error(e, 'create_order_for_subscription', {
            'user_subscription_id': user_sub.id, 'delivery_date': str(delivery_date), 'meal_type': meal_type,
        })
        log.mark_failed(Reason.ORDER_CREATION_FAILED, str(e), can_retry=True)
    else:
        log.mark_success(order)
        logger.info(f"Created {meal_type} order {order.order_number} for subscription {user_sub.id}")
    log.save()

    if order is None:
        logger.info(
            f"No {meal_type} order for subscription {user_sub.id} on {delivery_date}: {log.reason} {log.message}"
        )
    return order, log


def _subscriptions_due(delivery_date, plan=None):
    user_subs = UserSubscription.objects.filter(
        status=UserSubscription.Status.ACTIVE,
        start_date__lte=delivery_date,
        end_date__gte=delivery_date,
        vendor__isnull=False,
    ).select_related('subscription')
    if plan is not None:
        user_subs = user_subs.filter(subscription=plan)
    return user_subs.order_by('id')


def create_daily_orders(delivery_date=None, plan=None, triggered_by=None):
    """Create the orders for every vendor-assigned active subscription on ``delivery_date``."""
    delivery_date = delivery_date or timezone.localdate()
    summary = {
        'date': delivery_date.isoformat(),
        'subscriptions_found': 0,
        'orders_created': 0,
        'orders_failed': 0,
        'failures': [],
    }
    for user_sub in _subscriptions_due(delivery_date, plan):
        summary['subscriptions_found'] += 1
        for meal_type in user_sub.meal_types:
            order, log = create_order_for_subscription(user_sub, delivery_date, meal_type, triggered_by)
            if order is not None:
                summary['orders_created'] += 1
            else:
                summary['orders_failed'] += 1
                summary['failures'].append({
                    'log_id': log.id,
                    'user_subscription_id': user_sub.id,
                    'meal_type': meal_type,
                    'reason': log.reason,
                })
    logger.info(
        f"Order run for {delivery_date}: {summary['orders_created']} created, "
        f"{summary['orders_failed']} failed across {summary['subscriptions_found']} subscriptions"
    )
    return summary


def create_orders_for_daily_meal(daily_meal, triggered_by=None):
    return create_daily_orders(daily_meal.meal_date, plan=daily_meal.subscription, triggered_by=triggered_by)


def retry_failed_order(log_id, triggered_by=None):
    """Re-run a failed attempt that was marked retryable."""
    log = OrderCreationLog.objects.select_related('user_subscription').filter(id=log_id).first()
    if log is None:
        raise NotFoundError('Order creation log not found')
    if log.status != OrderCreationLog.Status.FAILED:
        raise OrderError('Only failed attempts can be retried')
    if not log.can_retry:
        raise OrderError('This order cannot be retried')

    log.retry_count += 1
    log.triggered_by = triggered_by
    order, log = create_order_for_subscription(
        log.user_subscription, log.delivery_date, log.meal_type, triggered_by, log=log
    )
    if order is None:
        raise OrderError(f"Retry failed: {log.message}", details={'reason': log.reason, 'log_id': log.id})
    return order, log


# --------------------------------------------------------------------------- customer and vendor actions

def get_order_for(user, order_id):
    """The order if ``user`` may see it: its customer, its vendor, or an admin."""
    order = (
        Order.objects.select_related('user_subscription__subscription', 'vendor', 'daily_meal', 'user')
        .filter(id=order_id)
        .first()
    )
    if order is None:
        raise NotFoundError('Order not found')
    if user.is_admin_role or order.user_id == user.id:
        return order
    if user.is_vendor_role and order.vendor.user_id == user.id:
        return order
    raise ForbiddenError('You do not have access to this order')


def _own_order_locked(user, order_id):
    order = Order.objects.select_for_update().filter(id=order_id).first()
    if order is None:
        raise NotFoundError('Order not found')
    if order.user_id != user.id:
        raise ForbiddenError('You do not have access to this order')
    return order


def skip_order(user, order_id, reason=''):
    with transaction.atomic():
        order = _own_order_locked(user, order_id)
        order.user_subscription = UserSubscription.objects.select_for_update().get(pk=order.user_subscription_id)
        order.skip(reason, skipped_by=user)
    logger.info(f"Order {order.order_number} skipped by user {user.id}")
    return order


def cancel_order(user, order_id, reason=''):
    with transaction.atomic():
        order = _own_order_locked(user, order_id)
        order.cancel(reason, cancelled_by=user)
    logger.info(f"Order {order.order_number} cancelled by user {user.id}")
    return order


VENDOR_SETTABLE_STATUSES = (Order.Status.PREPARING, Order.Status.OUT_FOR_DELIVERY)


def update_order_status(user, order_id, new_status, notes=''):
    with transaction.atomic():
        order = Order.objects.select_for_update().select_related('vendor').filter(id=order_id).first()
        if order is None:
            raise NotFoundError('Order not found')
        if not user.is_admin_role:
            if order.vendor.user_id != user.id:
                raise ForbiddenError('You do not have access to this order')
            if new_status == Order.Status.DELIVERED:
                raise ForbiddenError(
                    'Vendors cannot mark orders as delivered; an admin confirms delivery'
                )
            if new_status not in VENDOR_SETTABLE_STATUSES:
                raise ForbiddenError(
                    f"Vendors can only set status to: {', '.join(VENDOR_SETTABLE_STATUSES)}"
                )
        order.update_status(new_status, changed_by=user, notes=notes)
    logger.info(f"Order {order.order_number} moved to {new_status} by user {user.id}")
    return order


def confirm_delivery(admin, order_id, notes=''):
    with transaction.atomic():
        order = Order.objects.select_for_update().filter(id=order_id).first()
        if order is None:
            raise NotFoundError('Order not found')
        order.confirm_delivery(admin, notes)
    logger.info(f"Order {order.order_number} delivery confirmed by admin {admin.id}")
    return order


def order_stats(start, end):
    orders = Order.objects.filter(delivery_date__gte=start, delivery_date__lte=end)
    by_status = list(
        orders.values('status').annotate(count=Count('id')).order_by('status')
    )
    totals = orders.aggregate(
        total=Count('id'),
        credits_charged=Count('id', filter=Q(is_credits_deducted=True)),
    )
    logs = OrderCreationLog.objects.filter(delivery_date__gte=start, delivery_date__lte=end)
    failures = list(
        logs.filter(status=OrderCreationLog.Status.FAILED)
        .values('reason').annotate(count=Count('id')).order_by('-count')
    )
    return {
        'total_orders': totals['total'],
        'credits_charged': totals['credits_charged'],
        'by_status': by_status,
        'creation_failures': failures,
        'date_range': {'start_date': start, 'end_date': end},
    }
