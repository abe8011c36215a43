"""
Tests for payment transactions: refunds, the cancellation refund and the admin reporting endpoints.
"""
from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock, patch

import stripe
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from subscriptions import services
from subscriptions.exceptions import PaymentError, SubscriptionError
from subscriptions.models import Transaction, UserSubscription
from utils.dates import end_of_day, start_of_day
from utils.exceptions import NotFoundError
from .factories import make_admin, make_plan, make_transaction, make_user, make_user_subscription

CREATE_REFUND = 'subscriptions.payments.stripe.Refund.create'


class TransactionModelTests(TestCase):

    def setUp(self):
        self.user = make_user()
        self.plan = make_plan()

    def test_only_paid_unrefunded_charges_can_be_refunded(self):
        paid = make_transaction(self.user, self.plan, payment_intent_id='pi_paid')
        pending = make_transaction(self.user, self.plan, status=Transaction.Status.PENDING, payment_intent_id='pi_wait')
        free = make_transaction(self.user, self.plan, amount=Decimal('0.00'))
        self.assertTrue(paid.can_be_refunded())
        self.assertFalse(pending.can_be_refunded())
        self.assertFalse(free.can_be_refunded())

        paid.mark_refunded('re_1', Decimal('100.00'), 'Duplicate charge')
        paid.refresh_from_db()
        self.assertEqual(paid.status, Transaction.Status.REFUNDED)
        self.assertIsNotNone(paid.refunded_at)
        self.assertFalse(paid.can_be_refunded())

    def test_status_summary_and_failures(self):
        make_transaction(self.user, self.plan, amount=Decimal('1000.00'))
        make_transaction(self.user, self.plan, amount=Decimal('200.00'))
        make_transaction(self.user, self.plan, status=Transaction.Status.FAILED, failure_reason='Payment canceled')
        make_transaction(self.user, self.plan, status=Transaction.Status.FAILED, failure_reason='Payment canceled')

        summary = Transaction.objects.status_summary()
        self.assertEqual(summary['completed'], {'count': 2, 'amount': Decimal('1200.00')})
        self.assertEqual(summary['refunded']['count'], 0)
        self.assertEqual(summary['total']['count'], 4)

        [failure] = Transaction.objects.failure_breakdown()
        self.assertEqual(failure['failure_reason'], 'Payment canceled')
        self.assertEqual(failure['count'], 2)


@patch(CREATE_REFUND, return_value=MagicMock(id='re_test_1'))
class RefundServiceTests(TestCase):

    def setUp(self):
        self.admin = make_admin()
        self.user = make_user()
        self.transaction = make_transaction(self.user, payment_intent_id='pi_test_123')

    def test_full_refund_by_default(self, create_refund):
        transaction = services.refund_transaction(self.transaction.id, self.admin, reason='Food quality')
        self.assertEqual(transaction.status, Transaction.Status.REFUNDED)
        self.assertEqual(transaction.refund_amount, Decimal('1200.00'))
        self.assertEqual(transaction.refund_id, 're_test_1')
        self.assertEqual(transaction.refunded_by, self.admin)
        kwargs = create_refund.call_args.kwargs
        self.assertEqual(kwargs['payment_intent'], 'pi_test_123')
        self.assertEqual(kwargs['amount'], 120000)

        with self.assertRaisesMessage(SubscriptionError, 'cannot be refunded'):
            services.refund_transaction(self.transaction.id, self.admin, reason='Again')
        self.assertEqual(create_refund.call_count, 1)

    def test_partial_refund_within_charge(self, create_refund):
        with self.assertRaises(SubscriptionError) as ctx:
            services.refund_transaction(self.transaction.id, self.admin, amount=Decimal('5000.00'))
        self.assertEqual(ctx.exception.status_code, 422)

        transaction = services.refund_transaction(self.transaction.id, self.admin, amount=Decimal('300.00'))
        self.assertEqual(transaction.refund_amount, Decimal('300.00'))
        self.assertEqual(create_refund.call_args.kwargs['amount'], 30000)

    def test_gateway_failure_leaves_transaction_paid(self, create_refund):
        create_refund.side_effect = stripe.StripeError('card network down')
        with self.assertRaises(PaymentError):
            services.refund_transaction(self.transaction.id, self.admin)
        self.transaction.refresh_from_db()
        self.assertEqual(self.transaction.status, Transaction.Status.COMPLETED)

    def test_unknown_transaction(self, create_refund):
        with self.assertRaises(NotFoundError):
            services.refund_transaction(999999, self.admin)


@patch(CREATE_REFUND, return_value=MagicMock(id='re_cancel'))
class CancellationRefundTests(TestCase):

    def setUp(self):
        self.user = make_user()
        plan = make_plan()
        self.transaction = make_transaction(self.user, plan, payment_intent_id='pi_test_123')
        self.user_sub = make_user_subscription(self.user, plan, transaction=self.transaction)

    def test_cancel_refunds_the_charge(self, create_refund):
        services.cancel_subscription(self.user, self.user_sub.id, 'Moving city')
        self.transaction.refresh_from_db()
        self.user_sub.refresh_from_db()
        self.assertEqual(self.user_sub.status, UserSubscription.Status.CANCELLED)
        self.assertEqual(self.transaction.status, Transaction.Status.REFUNDED)
        self.assertEqual(self.transaction.refund_amount, Decimal('1200.00'))
        self.assertEqual(self.transaction.refund_reason, 'Moving city')

    def test_failed_refund_keeps_subscription_active(self, create_refund):
        create_refund.side_effect = stripe.StripeError('timeout')
        with self.assertRaises(PaymentError):
            services.cancel_subscription(self.user, self.user_sub.id, 'Moving city')
        self.user_sub.refresh_from_db()
        self.assertEqual(self.user_sub.status, UserSubscription.Status.ACTIVE)


class TransactionStatsTests(TestCase):

    def test_growth_against_previous_period(self):
        user = make_user()
        plan = make_plan()
        today = timezone.localdate()
        old = make_transaction(user, plan, amount=Decimal('500.00'))
        Transaction.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(days=40))
        make_transaction(user, plan, amount=Decimal('1000.00'))

        stats = services.transaction_stats(start_of_day(today - timedelta(days=30)), end_of_day(today))
        self.assertEqual(stats['overview']['completed']['amount'], Decimal('1000.00'))
        self.assertEqual(stats['growth_percentage'], 100.0)
        self.assertEqual(len(stats['daily_revenue']), 1)
        self.assertEqual(stats['plan_breakdown'][0]['subscription__category'], plan.category)


class TransactionApiTests(TestCase):

    def setUp(self):
        self.admin = make_admin()
        self.customer = make_user()
        self.plan = make_plan()
        self.paid = make_transaction(self.customer, self.plan, payment_intent_id='pi_paid_1')
        self.failed = make_transaction(
            self.customer, self.plan, status=Transaction.Status.FAILED,
            payment_intent_id='pi_failed_1', failure_reason='Payment canceled',
        )
        make_transaction(make_user('other'), self.plan, payment_intent_id='pi_other_1')
        self.client = APIClient()
        self.client.force_authenticate(self.admin)

    def test_admin_list_filters_and_search(self):
        url = reverse('subscriptions:admin_transactions')
        response = self.client.get(url)
        self.assertEqual(response.data['pagination']['total_transactions'], 3)

        response = self.client.get(url, {'status': 'failed'})
        self.assertEqual([t['id'] for t in response.data['transactions']], [self.failed.id])

        response = self.client.get(url, {'search': 'pi_paid'})
        self.assertEqual(response.data['transactions'][0]['user']['username'], 'customer')

        response = self.client.get(url, {'sort_by': 'amount', 'sort_order': 'asc', 'start_date': 'soon'})
        self.assertEqual(response.status_code, 400)

    def test_stats_failed_and_detail(self):
        response = self.client.get(reverse('subscriptions:transaction_stats'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['overview']['total']['count'], 3)
        self.assertEqual(len(response.data['recent_transactions']), 3)

        response = self.client.get(reverse('subscriptions:failed_transactions'))
        self.assertEqual(response.data['pagination']['total_transactions'], 1)
        self.assertEqual(response.data['failure_reasons'][0]['count'], 1)

        response = self.client.get(reverse('subscriptions:transaction_detail', args=[self.paid.id]))
        self.assertEqual(response.data['transaction']['payment_intent_id'], 'pi_paid_1')
        response = self.client.get(reverse('subscriptions:transaction_detail', args=[999999]))
        self.assertEqual(response.status_code, 404)

    @patch(CREATE_REFUND, return_value=MagicMock(id='re_api'))
    def test_refund_endpoint(self, create_refund):
        url = reverse('subscriptions:refund_transaction', args=[self.paid.id])
        self.assertEqual(self.client.post(url, {}, format='json').status_code, 422)

        response = self.client.post(url, {'reason': 'Missed deliveries', 'amount': '200.00'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['transaction']['status'], 'refunded')

        url = reverse('subscriptions:refund_transaction', args=[self.failed.id])
        response = self.client.post(url, {'reason': 'Oops'}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_customer_sees_only_own_transactions(self):
        self.client.force_authenticate(self.customer)
        self.assertEqual(self.client.get(reverse('subscriptions:admin_transactions')).status_code, 403)

        response = self.client.get(reverse('subscriptions:my_transactions'))
        self.assertEqual(response.data['pagination']['total_transactions'], 2)
        self.assertEqual(response.data['user_stats']['failed']['count'], 1)
