"""Object builders shared by the subscription, assignment and order tests."""
from datetime import time, timedelta
from decimal import Decimal

from django.utils import timezone

from custom_auth.models import CustomUser
from subscriptions.models import Subscription, Transaction, UserSubscription


def make_user(username='customer', role=CustomUser.Role.USER, **kwargs):
    return CustomUser.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password='testpass123',
        role=role,
        **kwargs
    )


def make_admin(username='admin'):
    return make_user(username, role=CustomUser.Role.ADMIN)


def make_plan(**kwargs):
    defaults = dict(
        plan_name='Weekly Lunch',
        duration=Subscription.Duration.WEEKLY,
        meals_per_plan=14,
        original_price=Decimal('1400.00'),
        discounted_price=Decimal('1200.00'),
        category=Subscription.Category.UNIVERSAL,
        skip_meals_per_plan=2,
    )
    defaults.update(kwargs)
    return Subscription.objects.create(**defaults)


def make_user_subscription(user, plan=None, **kwargs):
    plan = plan or make_plan()
    start = kwargs.pop('start_date', timezone.localdate())
    defaults = dict(
        status=UserSubscription.Status.ACTIVE,
        credits_granted=plan.calculate_credits(),
        skip_credits_granted=plan.skip_meals_per_plan,
        start_date=start,
        end_date=start + timedelta(days=plan.duration_days),
        original_price=plan.discounted_price,
        final_price=plan.discounted_price,
        delivery_street='12 MG Road',
        delivery_city='Bengaluru',
        delivery_state='Karnataka',
        delivery_pincode='560001',
        lunch_enabled=True,
        lunch_time=time(12, 30),
    )
    defaults.update(kwargs)
    return UserSubscription.objects.create(user=user, subscription=plan, **defaults)


def make_transaction(user, plan=None, **kwargs):
    plan = plan or make_plan()
    defaults = dict(
        original_amount=plan.discounted_price,
        amount=plan.discounted_price,
        status=Transaction.Status.COMPLETED,
        payment_method='card',
        completed_at=timezone.now(),
    )
    defaults.update(kwargs)
    return Transaction.objects.create(user=user, subscription=plan, **defaults)
