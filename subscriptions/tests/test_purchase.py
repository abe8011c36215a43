"""
Tests for the purchase flow: initiate, Stripe verification, activation side effects and expiry.
"""
from datetime import time, timedelta
from decimal import Decimal
from unittest.mock import MagicMock, patch

from django.test import TestCase
from django.utils import timezone

from location_zones.tests import make_zone
from promo_codes.models import PromoCode
from referrals.models import ReferralReward
from referrals.services import validate_and_link
from subscriptions import services
from subscriptions.exceptions import SubscriptionError
from subscriptions.models import Transaction, UserSubscription
from subscriptions.tasks import expire_subscriptions
from utils.exceptions import NotFoundError
from vendor_assignment.models import VendorAssignmentRequest
from .factories import make_plan, make_user, make_user_subscription

CREATE_INTENT = 'subscriptions.payments.stripe.PaymentIntent.create'
RETRIEVE_INTENT = 'subscriptions.payments.stripe.PaymentIntent.retrieve'


def make_promo(code='SAVE10', **kwargs):
    now = timezone.now()
    defaults = dict(
        description='Ten percent off',
        discount_type=PromoCode.DiscountType.PERCENTAGE,
        discount_value=Decimal('10'),
        usage_limit=100,
        valid_from=now - timedelta(days=1),
        valid_until=now + timedelta(days=30),
    )
    defaults.update(kwargs)
    return PromoCode.objects.create(code=code, **defaults)


def purchase_data(plan, **overrides):
    data = {
        'subscription_id': plan.id,
        'delivery_address': {
            'street': '12 MG Road',
            'city': 'Bengaluru',
            'state': 'Karnataka',
            'pincode': '560001',
            'landmark': '',
        },
        'meal_timings': {
            'lunch': {'enabled': True, 'time': time(12, 30)},
            'dinner': {'enabled': False},
        },
    }
    data.update(overrides)
    return data


def fake_intent(intent_id='pi_test_123', client_secret='pi_test_123_secret'):
    return MagicMock(id=intent_id, client_secret=client_secret)


class InitiatePurchaseTests(TestCase):

    def setUp(self):
        self.zone = make_zone(pincodes=('560001',))
        self.user = make_user()
        self.plan = make_plan()

    @patch(CREATE_INTENT, return_value=fake_intent())
    def test_creates_pending_records(self, create_intent):
        user_sub, transaction, client_secret = services.initiate_purchase(self.user, purchase_data(self.plan))

        self.assertEqual(client_secret, 'pi_test_123_secret')
        self.assertEqual(user_sub.status, UserSubscription.Status.PENDING)
        self.assertEqual(user_sub.credits_granted, 14)
        self.assertEqual(user_sub.skip_credits_granted, 2)
        self.assertEqual(user_sub.end_date, timezone.localdate() + timedelta(days=7))
        self.assertEqual(user_sub.delivery_zone, self.zone)
        self.assertEqual(user_sub.final_price, Decimal('1200.00'))
        self.assertEqual(transaction.status, Transaction.Status.PENDING)
        self.assertEqual(transaction.payment_intent_id, 'pi_test_123')
        kwargs = create_intent.call_args.kwargs
        self.assertEqual(kwargs['amount'], 120000)
        self.assertEqual(kwargs['currency'], 'inr')
        self.assertEqual(kwargs['metadata']['user_subscription_id'], str(user_sub.id))

    @patch(CREATE_INTENT, return_value=fake_intent())
    def test_promo_code_discount(self, create_intent):
        make_promo()
        user_sub, transaction, _ = services.initiate_purchase(
            self.user, purchase_data(self.plan, promo_code='save10')
        )
        self.assertEqual(user_sub.discount_applied, Decimal('120.00'))
        self.assertEqual(user_sub.final_price, Decimal('1080.00'))
        self.assertEqual(transaction.amount, Decimal('1080.00'))
        self.assertEqual(create_intent.call_args.kwargs['amount'], 108000)

    @patch(CREATE_INTENT)
    def test_rejections(self, create_intent):
        cases = [
            (purchase_data(self.plan, promo_code='NOPE'), 'Invalid or expired promo code'),
            (purchase_data(self.plan, start_date=timezone.localdate() - timedelta(days=1)), 'in the past'),
            (
                purchase_data(self.plan, meal_timings={'lunch': {'enabled': True, 'time': time(16, 0)}}),
                'Lunch time must be between 11:00 and 14:00',
            ),
            (purchase_data(self.plan, meal_timings={'lunch': {'enabled': False}}), 'At least one meal'),
        ]
        for data, message in cases:
            with self.subTest(message=message):
                with self.assertRaisesMessage(SubscriptionError, message):
                    services.initiate_purchase(self.user, data)
        create_intent.assert_not_called()
        self.assertFalse(UserSubscription.objects.exists())

    def test_inactive_plan(self):
        self.plan.toggle_active()
        with self.assertRaises(NotFoundError):
            services.initiate_purchase(self.user, purchase_data(self.plan))

    def test_unserved_pincode(self):
        data = purchase_data(self.plan)
        data['delivery_address']['pincode'] = '110001'
        with self.assertRaisesMessage(SubscriptionError, 'Delivery not available to this address') as ctx:
            services.initiate_purchase(self.user, data)
        self.assertTrue(ctx.exception.details)

    def test_existing_active_subscription(self):
        make_user_subscription(self.user, self.plan)
        with self.assertRaisesMessage(SubscriptionError, 'already have an active subscription'):
            services.initiate_purchase(self.user, purchase_data(self.plan))

    @patch(CREATE_INTENT)
    def test_free_purchase_skips_payment(self, create_intent):
        make_promo('FREEWEEK', discount_value=Decimal('100'))
        user_sub, transaction, client_secret = services.initiate_purchase(
            self.user, purchase_data(self.plan, promo_code='FREEWEEK')
        )
        create_intent.assert_not_called()
        self.assertIsNone(client_secret)
        user_sub.refresh_from_db()
        self.assertEqual(user_sub.status, UserSubscription.Status.ACTIVE)
        self.assertTrue(user_sub.assignment_requests.exists())


class VerifyPaymentTests(TestCase):

    def setUp(self):
        make_zone(pincodes=('560001',))
        self.referrer = make_user('referrer')
        self.user = make_user()
        validate_and_link(self.user, self.referrer.referral_code)
        self.plan = make_plan()
        self.promo = make_promo()
        with patch(CREATE_INTENT, return_value=fake_intent()):
            self.user_sub, self.transaction, _ = services.initiate_purchase(
                self.user, purchase_data(self.plan, promo_code='SAVE10')
            )

    @patch(RETRIEVE_INTENT, return_value=MagicMock(status='succeeded', payment_method_types=['card']))
    def test_success_activates_and_queues_assignment(self, retrieve):
        user_sub, request = services.verify_payment(self.user, self.user_sub.id, 'pi_test_123')

        self.assertEqual(user_sub.status, UserSubscription.Status.ACTIVE)
        self.assertIsNotNone(user_sub.payment_completed_at)
        self.transaction.refresh_from_db()
        self.assertEqual(self.transaction.status, Transaction.Status.COMPLETED)
        self.assertEqual(self.transaction.payment_method, 'card')
        self.plan.refresh_from_db()
        self.assertEqual(self.plan.current_purchases, 1)
        self.promo.refresh_from_db()
        self.assertEqual(self.promo.used_count, 1)

        self.assertEqual(request.request_type, VendorAssignmentRequest.RequestType.INITIAL_ASSIGNMENT)
        self.assertEqual(request.priority, VendorAssignmentRequest.Priority.HIGH)

        # 10% of 1080 = 108
        reward = ReferralReward.objects.get(referred_user=self.user)
        self.assertEqual(reward.credits_awarded, Decimal('108.00'))
        self.referrer.refresh_from_db()
        self.assertEqual(self.referrer.total_referral_credits, Decimal('108.00'))

        # verifying twice does nothing more
        again, request = services.verify_payment(self.user, self.user_sub.id, 'pi_test_123')
        self.assertIsNone(request)
        self.assertEqual(VendorAssignmentRequest.objects.count(), 1)
        self.assertEqual(retrieve.call_count, 1)

    @patch(RETRIEVE_INTENT, return_value=MagicMock(status='requires_payment_method'))
    def test_failed_payment(self, retrieve):
        with self.assertRaisesMessage(SubscriptionError, 'Payment verification failed'):
            services.verify_payment(self.user, self.user_sub.id, 'pi_test_123')
        self.user_sub.refresh_from_db()
        self.transaction.refresh_from_db()
        self.assertEqual(self.user_sub.status, UserSubscription.Status.FAILED)
        self.assertEqual(self.transaction.status, Transaction.Status.FAILED)
        self.assertFalse(VendorAssignmentRequest.objects.exists())

    @patch(RETRIEVE_INTENT, return_value=MagicMock(status='processing'))
    def test_processing_payment_is_a_conflict(self, retrieve):
        with self.assertRaises(SubscriptionError) as ctx:
            services.verify_payment(self.user, self.user_sub.id, 'pi_test_123')
        self.assertEqual(ctx.exception.status_code, 409)
        self.user_sub.refresh_from_db()
        self.assertEqual(self.user_sub.status, UserSubscription.Status.PENDING)

    def test_wrong_intent_or_owner(self):
        with self.assertRaisesMessage(SubscriptionError, 'does not belong'):
            services.verify_payment(self.user, self.user_sub.id, 'pi_other')
        with self.assertRaises(NotFoundError):
            services.verify_payment(self.referrer, self.user_sub.id, 'pi_test_123')

    @patch('subscriptions.services.process_referral_reward', side_effect=RuntimeError('boom'))
    @patch(RETRIEVE_INTENT, return_value=MagicMock(status='succeeded', payment_method_types=['card']))
    def test_referral_failure_does_not_block_activation(self, retrieve, reward):
        user_sub, request = services.verify_payment(self.user, self.user_sub.id, 'pi_test_123')
        self.assertEqual(user_sub.status, UserSubscription.Status.ACTIVE)
        self.assertIsNotNone(request)

    @patch(RETRIEVE_INTENT)
    def test_overlapping_verifications_activate_once(self, retrieve):
        succeeded = MagicMock(status='succeeded', payment_method_types=['card'])
        inner = []

        def retry_while_waiting(intent_id):
            # a client retry lands while the first call is still waiting on Stripe
            if not inner:
                inner.append(None)
                inner[0] = services.verify_payment(self.user, self.user_sub.id, intent_id)
            return succeeded

        retrieve.side_effect = retry_while_waiting
        user_sub, request = services.verify_payment(self.user, self.user_sub.id, 'pi_test_123')

        self.assertIsNotNone(inner[0][1])
        self.assertIsNone(request)
        self.assertEqual(user_sub.status, UserSubscription.Status.ACTIVE)
        self.assertEqual(VendorAssignmentRequest.objects.filter(user_subscription=user_sub).count(), 1)
        self.plan.refresh_from_db()
        self.assertEqual(self.plan.current_purchases, 1)
        self.promo.refresh_from_db()
        self.assertEqual(self.promo.used_count, 1)
        self.assertEqual(ReferralReward.objects.filter(referred_user=self.user).count(), 1)


class ExpireSubscriptionsTests(TestCase):

    def test_expires_past_end_date_only(self):
        plan = make_plan()
        today = timezone.localdate()
        old = make_user_subscription(make_user('old'), plan, start_date=today - timedelta(days=8))
        ends_today = make_user_subscription(make_user('edge'), plan, start_date=today - timedelta(days=7))
        current = make_user_subscription(make_user('current'), plan)

        self.assertEqual(expire_subscriptions(), 1)
        old.refresh_from_db()
        ends_today.refresh_from_db()
        current.refresh_from_db()
        self.assertEqual(old.status, UserSubscription.Status.EXPIRED)
        self.assertEqual(ends_today.status, UserSubscription.Status.ACTIVE)
        self.assertEqual(current.status, UserSubscription.Status.ACTIVE)
