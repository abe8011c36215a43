from datetime import time, timedelta

from django.utils import timezone

from menus.tests.factories import make_daily_meal, make_menu
from orders.services import create_order_for_subscription
from subscriptions.tests.factories import make_plan, make_user, make_user_subscription
from vendors.tests import make_vendor


def tomorrow():
    return timezone.localdate() + timedelta(days=1)


def make_assigned_subscription(user=None, plan=None, vendor=None, **kwargs):
    """An active subscription with a kitchen already assigned."""
    vendor = vendor or make_vendor()
    return make_user_subscription(
        user or make_user(), plan or make_plan(),
        vendor=vendor, vendor_type=vendor.vendor_type, vendor_assigned_at=timezone.now(),
        **kwargs
    )


def make_order(user_sub, delivery_date=None, meal_type='lunch'):
    """Publish a menu for the day if needed and cut the order through the normal path."""
    delivery_date = delivery_date or tomorrow()
    plan = user_sub.subscription
    if not plan.daily_meals.filter(meal_date=delivery_date).exists():
        menu = make_menu()
        make_daily_meal(plan, delivery_date, lunch=[menu], dinner=[menu])
    order, log = create_order_for_subscription(user_sub, delivery_date, meal_type)
    assert order is not None, log.message
    return order


def with_dinner(**kwargs):
    return dict(dinner_enabled=True, dinner_time=time(20, 0), **kwargs)
