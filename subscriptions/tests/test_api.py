from unittest.mock import MagicMock, patch

import stripe
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from custom_auth.models import CustomUser
from location_zones.tests import make_zone
from subscriptions.models import Subscription, UserSubscription
from vendor_assignment.models import VendorAssignmentRequest
from vendors.tests import make_vendor
from .factories import make_admin, make_plan, make_user, make_user_subscription


class PlanApiTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.admin = make_admin()

    def test_public_plan_list_filters(self):
        make_plan()
        make_plan(plan_name='Chef Special', category=Subscription.Category.HOME_CHEF_SPECIFIC)
        make_plan(plan_name='Hidden', is_active=False)
        response = self.client.get(reverse('subscriptions:active_plans'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data['plans']), 2)

        response = self.client.get(reverse('subscriptions:active_plans'), {'vendor_type': 'food_vendor'})
        self.assertEqual([p['plan_name'] for p in response.data['plans']], ['Weekly Lunch'])

    def test_admin_creates_plan(self):
        self.client.force_authenticate(self.admin)
        payload = {
            'plan_name': 'Monthly Combo',
            'duration': 'monthly',
            'meals_per_plan': 60,
            'original_price': '6000.00',
            'discounted_price': '5400.00',
            'category': 'both_options',
        }
        response = self.client.post(reverse('subscriptions:plan_list_create'), payload, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['duration_days'], 30)
        self.assertEqual(response.data['discount_percentage'], 10)

    def test_plan_validation(self):
        self.client.force_authenticate(self.admin)
        payload = {
            'plan_name': 'Bad',
            'duration': 'custom',
            'meals_per_plan': 5,
            'original_price': '100.00',
            'discounted_price': '200.00',
        }
        response = self.client.post(reverse('subscriptions:plan_list_create'), payload, format='json')
        self.assertEqual(response.status_code, 422)
        self.assertIn('custom_duration_days', response.data['details'])

    def test_toggle_requires_admin(self):
        plan = make_plan()
        self.client.force_authenticate(make_user())
        response = self.client.post(reverse('subscriptions:toggle_plan', args=[plan.id]))
        self.assertEqual(response.status_code, 403)


@patch('subscriptions.payments.stripe.PaymentIntent.create',
       return_value=MagicMock(id='pi_api_1', client_secret='pi_api_1_secret'))
@patch('subscriptions.payments.stripe.PaymentIntent.retrieve',
       return_value=MagicMock(status='succeeded', payment_method_types=['card']))
class PurchaseApiTests(TestCase):

    def setUp(self):
        make_zone(pincodes=('560001',))
        self.plan = make_plan()
        self.customer = make_user()
        self.client = APIClient()
        self.client.force_authenticate(self.customer)
        self.payload = {
            'subscription_id': self.plan.id,
            'delivery_address': {'street': '12 MG Road', 'city': 'Bengaluru', 'pincode': '560001'},
            'meal_timings': {'lunch': {'enabled': True, 'time': '12:30'}},
        }

    def test_purchase_then_verify(self, retrieve, create):
        response = self.client.post(reverse('subscriptions:initiate_purchase'), self.payload, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['client_secret'], 'pi_api_1_secret')
        self.assertEqual(response.data['amount'], '1200.00')

        response = self.client.post(reverse('subscriptions:verify_payment'), {
            'user_subscription_id': response.data['user_subscription_id'],
            'payment_intent_id': 'pi_api_1',
        }, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['subscription']['status'], 'active')
        self.assertEqual(response.data['assignment_request']['request_type'], 'initial_assignment')

    def test_invalid_payload(self, retrieve, create):
        response = self.client.post(reverse('subscriptions:initiate_purchase'), {
            'subscription_id': self.plan.id,
            'delivery_address': {'pincode': '12'},
            'meal_timings': {'lunch': {'enabled': True}},
        }, format='json')
        self.assertEqual(response.status_code, 422)
        self.assertIn('delivery_address', response.data['details'])

    def test_vendor_cannot_purchase(self, retrieve, create):
        vendor_user = make_user('seller', role=CustomUser.Role.VENDOR)
        self.client.force_authenticate(vendor_user)
        response = self.client.post(reverse('subscriptions:initiate_purchase'), self.payload, format='json')
        self.assertEqual(response.status_code, 403)

    def test_stripe_outage(self, retrieve, create):
        create.side_effect = stripe.APIConnectionError('down')
        response = self.client.post(reverse('subscriptions:initiate_purchase'), self.payload, format='json')
        self.assertEqual(response.status_code, 502)
        self.assertFalse(UserSubscription.objects.exists())


class MySubscriptionApiTests(TestCase):

    def setUp(self):
        make_zone(pincodes=('560001',))
        self.customer = make_user()
        self.user_sub = make_user_subscription(self.customer, vendor=make_vendor())
        self.client = APIClient()
        self.client.force_authenticate(self.customer)

    def test_list_and_detail(self):
        response = self.client.get(reverse('subscriptions:my_subscriptions'))
        self.assertEqual(response.data['pagination']['total_subscriptions'], 1)

        response = self.client.get(reverse('subscriptions:subscription_detail', args=[self.user_sub.id]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['analytics']['daily_meal_count'], 1)
        self.assertTrue(response.data['subscription']['can_switch_vendor'])

    def test_other_users_subscription_is_404(self):
        other = make_user_subscription(make_user('other'))
        response = self.client.get(reverse('subscriptions:subscription_detail', args=[other.id]))
        self.assertEqual(response.status_code, 404)

    def test_vendor_switch_request(self):
        url = reverse('subscriptions:request_vendor_switch', args=[self.user_sub.id])
        response = self.client.post(url, {'reason': 'late_delivery', 'description': 'Always 40 min late'}, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['request']['request_type'], VendorAssignmentRequest.RequestType.VENDOR_SWITCH)

        response = self.client.post(url, {}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_switch_reason_cannot_be_initial_purchase(self):
        url = reverse('subscriptions:request_vendor_switch', args=[self.user_sub.id])
        response = self.client.post(url, {'reason': 'initial_purchase'}, format='json')
        self.assertEqual(response.status_code, 422)

    def test_cancel(self):
        url = reverse('subscriptions:cancel_subscription', args=[self.user_sub.id])
        response = self.client.post(url, {'reason': 'Relocating'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['subscription']['status'], 'cancelled')
        self.assertEqual(self.client.post(url, {}, format='json').status_code, 400)


class AdminAndVendorListingTests(TestCase):

    def setUp(self):
        self.vendor = make_vendor()
        self.user_sub = make_user_subscription(make_user(), vendor=self.vendor)
        make_user_subscription(make_user('unassigned'))
        self.client = APIClient()

    def test_admin_purchases(self):
        self.client.force_authenticate(make_admin())
        response = self.client.get(reverse('subscriptions:admin_purchases'), {'vendor_assigned': 'false'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['pagination']['total_purchases'], 1)
        self.assertEqual(response.data['stats']['by_status']['active'], 2)
        self.assertEqual(response.data['stats']['revenue']['total_subscriptions'], 2)

    def test_vendor_customers(self):
        self.client.force_authenticate(self.vendor.user)
        response = self.client.get(reverse('subscriptions:vendor_customers'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([c['user_subscription_id'] for c in response.data['customers']], [self.user_sub.id])
