from datetime import timedelta
from unittest.mock import patch

from django.test import TestCase

from menus.tests.factories import make_daily_meal, make_menu
from orders import services, tasks
from orders.exceptions import OrderError
from orders.models import Order, OrderCreationLog
from subscriptions.tests.factories import make_admin, make_user, make_user_subscription
from utils.exceptions import ForbiddenError
from vendors.tests import make_vendor
from .factories import make_assigned_subscription, make_order, tomorrow, with_dinner

Reason = OrderCreationLog.Reason


class CreateOrderTests(TestCase):

    def setUp(self):
        self.vendor = make_vendor()
        self.user_sub = make_assigned_subscription(vendor=self.vendor)
        self.plan = self.user_sub.subscription
        self.menu = make_menu()
        self.day = tomorrow()

    def _publish(self, day=None):
        return make_daily_meal(self.plan, day or self.day, lunch=[self.menu])

    def test_order_takes_credit_and_vendor_load(self):
        daily_meal = self._publish()
        order, log = services.create_order_for_subscription(self.user_sub, self.day, 'lunch')

        self.assertEqual(order.daily_meal, daily_meal)
        self.assertEqual(list(order.menus.all()), [self.menu])
        self.assertEqual(order.delivery_time, self.user_sub.lunch_time)
        self.assertEqual(order.delivery_pincode, '560001')
        self.assertTrue(order.is_credits_deducted)
        self.assertEqual(log.status, OrderCreationLog.Status.SUCCESS)
        self.assertEqual(log.order, order)

        self.user_sub.refresh_from_db()
        self.vendor.refresh_from_db()
        self.assertEqual(self.user_sub.credits_used, 1)
        self.assertEqual(self.vendor.current_load, 1)

    def test_one_live_order_per_meal(self):
        self._publish()
        services.create_order_for_subscription(self.user_sub, self.day, 'lunch')
        order, log = services.create_order_for_subscription(self.user_sub, self.day, 'lunch')
        self.assertIsNone(order)
        self.assertEqual(log.reason, Reason.ORDER_ALREADY_EXISTS)
        self.assertFalse(log.can_retry)

    def test_overlapping_creations_charge_once(self):
        self._publish()
        cut_order = services._cut_order
        inner = []

        def overlapping_cut(*args):
            # the morning run and "set today's meal" both passed the unlocked check
            if not inner:
                inner.append(None)
                inner[0] = services.create_order_for_subscription(self.user_sub, self.day, 'lunch')
            return cut_order(*args)

        with patch('orders.services._cut_order', side_effect=overlapping_cut):
            order, log = services.create_order_for_subscription(self.user_sub, self.day, 'lunch')

        self.assertIsNotNone(inner[0][0])
        self.assertIsNone(order)
        self.assertEqual(log.reason, Reason.ORDER_ALREADY_EXISTS)
        self.assertEqual(
            Order.objects.live().filter(user_subscription=self.user_sub, delivery_date=self.day).count(), 1
        )
        self.user_sub.refresh_from_db()
        self.vendor.refresh_from_db()
        self.assertEqual(self.user_sub.credits_used, 1)
        self.assertEqual(self.vendor.current_load, 1)

    def test_failure_reasons(self):
        self._publish()
        self._publish(self.user_sub.end_date + timedelta(days=1))

        _, log = services.create_order_for_subscription(self.user_sub, self.day, 'dinner')
        self.assertEqual(log.reason, Reason.VALIDATION_ERROR)

        _, log = services.create_order_for_subscription(
            self.user_sub, self.user_sub.end_date + timedelta(days=1), 'lunch'
        )
        self.assertEqual(log.reason, Reason.SUBSCRIPTION_EXPIRED)

        unassigned = make_user_subscription(make_user('unassigned'), self.plan)
        _, log = services.create_order_for_subscription(unassigned, self.day, 'lunch')
        self.assertEqual(log.reason, Reason.VALIDATION_ERROR)
        self.assertTrue(log.can_retry)

        self.user_sub.credits_used = self.user_sub.credits_granted
        self.user_sub.save()
        _, log = services.create_order_for_subscription(self.user_sub, self.day, 'lunch')
        self.assertEqual(log.reason, Reason.INSUFFICIENT_CREDITS)
        self.assertEqual(OrderCreationLog.objects.filter(status='failed').count(), 4)

    def test_inactive_subscription(self):
        self._publish()
        self.user_sub.mark_expired()
        order, log = services.create_order_for_subscription(self.user_sub, self.day, 'lunch')
        self.assertIsNone(order)
        self.assertEqual(log.reason, Reason.SUBSCRIPTION_INACTIVE)

    def test_missing_menu_can_be_retried(self):
        admin = make_admin()
        order, log = services.create_order_for_subscription(self.user_sub, self.day, 'lunch')
        self.assertIsNone(order)
        self.assertEqual(log.reason, Reason.NO_MENU_AVAILABLE)
        self.assertTrue(log.can_retry)

        with self.assertRaisesMessage(OrderError, 'Retry failed'):
            services.retry_failed_order(log.id, triggered_by=admin)

        self._publish()
        order, log = services.retry_failed_order(log.id, triggered_by=admin)
        self.assertEqual(log.status, OrderCreationLog.Status.SUCCESS)
        self.assertEqual(log.retry_count, 2)
        self.assertEqual(log.triggered_by, admin)
        self.assertEqual(OrderCreationLog.objects.count(), 1)

        with self.assertRaisesMessage(OrderError, 'Only failed attempts can be retried'):
            services.retry_failed_order(log.id)

    def test_non_retryable_failure(self):
        self._publish()
        self.user_sub.credits_used = self.user_sub.credits_granted
        self.user_sub.save()
        _, log = services.create_order_for_subscription(self.user_sub, self.day, 'lunch')
        with self.assertRaisesMessage(OrderError, 'This order cannot be retried'):
            services.retry_failed_order(log.id)


class DailyOrderRunTests(TestCase):

    def test_run_covers_each_enabled_meal(self):
        vendor = make_vendor()
        both = make_assigned_subscription(vendor=vendor, **with_dinner())
        lunch_only = make_assigned_subscription(user=make_user('lunchonly'), plan=both.subscription, vendor=vendor)
        make_user_subscription(make_user('waiting'), both.subscription)
        menu = make_menu()
        make_daily_meal(both.subscription, tomorrow(), lunch=[menu])

        summary = services.create_daily_orders(tomorrow())

        self.assertEqual(summary['subscriptions_found'], 2)
        self.assertEqual(summary['orders_created'], 2)
        self.assertEqual(summary['orders_failed'], 1)
        [failure] = summary['failures']
        self.assertEqual(failure['user_subscription_id'], both.id)
        self.assertEqual(failure['reason'], Reason.NO_MENU_AVAILABLE)
        self.assertTrue(Order.objects.filter(user_subscription=lunch_only).exists())

        vendor.refresh_from_db()
        self.assertEqual(vendor.current_load, 2)

    def test_task_runs_for_today(self):
        user_sub = make_assigned_subscription()
        make_daily_meal(user_sub.subscription, lunch=[make_menu()])
        result = tasks.create_daily_orders()
        self.assertEqual(result['orders_created'], 1)
        self.assertNotIn('failures', result)


class OrderActionTests(TestCase):

    def setUp(self):
        self.vendor = make_vendor()
        self.user_sub = make_assigned_subscription(vendor=self.vendor)
        self.customer = self.user_sub.user
        self.order = make_order(self.user_sub)

    def test_order_visibility(self):
        self.assertEqual(services.get_order_for(self.customer, self.order.id), self.order)
        self.assertEqual(services.get_order_for(self.vendor.user, self.order.id), self.order)
        self.assertEqual(services.get_order_for(make_admin(), self.order.id), self.order)
        with self.assertRaises(ForbiddenError):
            services.get_order_for(make_user('stranger'), self.order.id)
        with self.assertRaises(ForbiddenError):
            services.get_order_for(make_vendor('rival').user, self.order.id)

    def test_customer_can_only_skip_own_order(self):
        with self.assertRaises(ForbiddenError):
            services.skip_order(make_user('stranger'), self.order.id)
        order = services.skip_order(self.customer, self.order.id, 'Out of town')
        self.assertEqual(order.status, Order.Status.SKIPPED)
        self.assertEqual(order.skip_reason, 'Out of town')

    def test_vendor_status_limits(self):
        vendor_user = self.vendor.user
        order = services.update_order_status(vendor_user, self.order.id, Order.Status.PREPARING)
        self.assertEqual(order.status, Order.Status.PREPARING)

        with self.assertRaises(ForbiddenError):
            services.update_order_status(make_vendor('rival').user, self.order.id, Order.Status.OUT_FOR_DELIVERY)

        services.update_order_status(vendor_user, self.order.id, Order.Status.OUT_FOR_DELIVERY)
        with self.assertRaisesMessage(ForbiddenError, 'an admin confirms delivery'):
            services.update_order_status(vendor_user, self.order.id, Order.Status.DELIVERED)

        order = services.confirm_delivery(make_admin(), self.order.id)
        self.assertEqual(order.status, Order.Status.DELIVERED)

    def test_order_stats(self):
        services.cancel_order(self.customer, self.order.id)
        stats = services.order_stats(tomorrow() - timedelta(days=1), tomorrow())
        self.assertEqual(stats['total_orders'], 1)
        self.assertEqual(stats['credits_charged'], 1)
        self.assertEqual(stats['by_status'], [{'status': 'cancelled', 'count': 1}])
