from datetime import time, timedelta
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings
from django.utils import timezone

from subscriptions.exceptions import SubscriptionError
from subscriptions.models import Subscription, UserSubscription
from vendors.tests import make_vendor
from .factories import make_admin, make_plan, make_user, make_user_subscription


class SubscriptionPlanTests(TestCase):

    def test_duration_days_resolved_on_save(self):
        self.assertEqual(make_plan(duration=Subscription.Duration.MONTHLY).duration_days, 30)
        custom = make_plan(duration=Subscription.Duration.CUSTOM, custom_duration_days=10)
        self.assertEqual(custom.duration_days, 10)

    def test_clean_rules(self):
        plan = Subscription(
            plan_name='Broken',
            duration=Subscription.Duration.CUSTOM,
            meals_per_plan=5,
            original_price=Decimal('100'),
            discounted_price=Decimal('150'),
            lunch_available=False,
            dinner_available=False,
        )
        with self.assertRaises(ValidationError) as ctx:
            plan.clean()
        self.assertIn('custom_duration_days', ctx.exception.message_dict)
        self.assertIn('discounted_price', ctx.exception.message_dict)
        self.assertIn('lunch_available', ctx.exception.message_dict)

    def test_discount(self):
        plan = make_plan(original_price=Decimal('1000.00'), discounted_price=Decimal('750.00'))
        self.assertEqual(plan.discount_amount, Decimal('250.00'))
        self.assertEqual(plan.discount_percentage, 25)

    def test_for_vendor_type(self):
        universal = make_plan()
        chef_only = make_plan(plan_name='Chef', category=Subscription.Category.HOME_CHEF_SPECIFIC)
        stall_only = make_plan(plan_name='Stall', category=Subscription.Category.FOOD_VENDOR_SPECIFIC)
        make_plan(plan_name='Old', is_active=False)
        self.assertCountEqual(Subscription.objects.for_vendor_type('home_chef'), [universal, chef_only])
        self.assertCountEqual(Subscription.objects.for_vendor_type('food_vendor'), [universal, stall_only])

    def test_increment_purchases(self):
        plan = make_plan()
        plan.increment_purchases()
        plan.increment_purchases()
        self.assertEqual(plan.current_purchases, 2)

    def test_meal_window(self):
        plan = make_plan()
        self.assertTrue(plan.is_time_in_window('lunch', time(12, 0)))
        self.assertFalse(plan.is_time_in_window('lunch', time(15, 0)))
        self.assertFalse(plan.is_time_in_window('breakfast', time(8, 0)))


class UserSubscriptionTests(TestCase):

    def setUp(self):
        self.user = make_user()
        self.plan = make_plan(meals_per_plan=4, skip_meals_per_plan=1)
        self.user_sub = make_user_subscription(self.user, self.plan)

    def test_validation_on_save(self):
        self.user_sub.end_date = self.user_sub.start_date
        with self.assertRaises(ValidationError):
            self.user_sub.save()

    def test_credits(self):
        self.assertEqual(self.user_sub.remaining_credits, 4)
        self.user_sub.use_credits(3)
        self.assertTrue(self.user_sub.can_use_credits(1))
        self.assertFalse(self.user_sub.can_use_credits(2))
        with self.assertRaises(SubscriptionError):
            self.user_sub.use_credits(2)
        self.user_sub.refund_credits(1)
        self.assertEqual(self.user_sub.remaining_credits, 2)

    def test_skip_meal_refunds_credit(self):
        self.user_sub.use_credits(1)
        self.user_sub.skip_meal()
        self.assertEqual(self.user_sub.credits_used, 0)
        self.assertEqual(self.user_sub.skip_credits_available, 0)
        self.assertFalse(self.user_sub.can_skip_meal())
        with self.assertRaises(SubscriptionError):
            self.user_sub.skip_meal()

    def test_active_and_days_remaining(self):
        today = timezone.localdate()
        self.assertTrue(self.user_sub.is_active)
        self.assertEqual(self.user_sub.days_remaining, 8)

        past = make_user_subscription(
            make_user('old'), self.plan, start_date=today - timedelta(days=10)
        )
        self.assertFalse(past.is_active)
        self.assertTrue(past.is_expired)
        self.assertEqual(past.days_remaining, 0)
        self.assertIn(past, UserSubscription.objects.expired_pending())

    def test_cancel_within_window(self):
        self.user_sub.cancel('Moving city')
        self.assertEqual(self.user_sub.status, UserSubscription.Status.CANCELLED)
        self.assertEqual(self.user_sub.cancellation_reason, 'Moving city')
        with self.assertRaisesMessage(SubscriptionError, 'Only active'):
            self.user_sub.cancel()

    @override_settings(SUBSCRIPTION_CANCEL_WINDOW_HOURS=24)
    def test_cancel_after_window(self):
        UserSubscription.objects.filter(pk=self.user_sub.pk).update(
            created_at=timezone.now() - timedelta(hours=25)
        )
        self.user_sub.refresh_from_db()
        self.assertFalse(self.user_sub.can_cancel())
        with self.assertRaisesMessage(SubscriptionError, 'within 24 hours'):
            self.user_sub.cancel()

    def test_renew(self):
        old_end = self.user_sub.end_date
        self.user_sub.renew()
        self.assertEqual(self.user_sub.end_date, old_end + timedelta(days=7))
        self.assertEqual(self.user_sub.credits_granted, 8)
        self.assertEqual(len(self.user_sub.renewal_history), 1)

    def test_meal_counts(self):
        self.user_sub.dinner_enabled = True
        self.user_sub.dinner_time = time(20, 0)
        self.assertEqual(self.user_sub.meal_types, ['lunch', 'dinner'])
        self.assertEqual(self.user_sub.daily_meal_count, 2)
        self.assertEqual(self.user_sub.expected_days, 2)

    def test_vendor_switch_allowance(self):
        self.assertFalse(self.user_sub.can_switch_vendor())
        vendor = make_vendor()
        self.user_sub.assign_vendor(vendor, assigned_by=make_admin())
        self.assertTrue(self.user_sub.can_switch_vendor())
        self.user_sub.use_vendor_switch()
        self.assertFalse(self.user_sub.can_switch_vendor())
        with self.assertRaises(SubscriptionError):
            self.user_sub.use_vendor_switch()

    def test_revenue_stats_count_paid_subscriptions_only(self):
        make_user_subscription(make_user('failed'), self.plan, status=UserSubscription.Status.FAILED)
        start = timezone.now() - timedelta(days=1)
        end = timezone.now() + timedelta(days=1)
        stats = UserSubscription.objects.revenue_stats(start, end)
        self.assertEqual(stats['total_subscriptions'], 1)
        self.assertEqual(stats['total_revenue'], Decimal('1200.00'))
