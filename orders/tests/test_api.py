from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from menus.tests.factories import make_daily_meal, make_menu
from orders.models import Order, OrderCreationLog
from subscriptions.tests.factories import make_admin, make_user
from vendors.tests import make_vendor
from .factories import make_assigned_subscription, make_order, tomorrow


class CustomerOrderApiTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.user_sub = make_assigned_subscription()
        self.customer = self.user_sub.user
        self.order = make_order(self.user_sub)
        self.client.force_authenticate(self.customer)

    def test_my_orders(self):
        response = self.client.get(reverse('orders:my_orders'), {'status': 'upcoming'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['pagination']['total_orders'], 1)
        order = response.data['orders'][0]
        self.assertEqual(order['order_number'], self.order.order_number)
        self.assertEqual(order['delivery_time'], '12:30')
        self.assertEqual(order['delivery_address']['city'], 'Bengaluru')

        response = self.client.get(reverse('orders:my_orders'), {'start_date': 'tomorrow'})
        self.assertEqual(response.status_code, 400)

    def test_detail_shows_actions_to_owner(self):
        response = self.client.get(reverse('orders:order_detail', args=[self.order.id]))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['can_skip'])
        self.assertTrue(response.data['is_future'])
        self.assertEqual(response.data['skip_info']['skip_credits_available'], 2)
        self.assertEqual(response.data['status_history'][0]['status'], 'upcoming')

        self.client.force_authenticate(make_user('stranger'))
        response = self.client.get(reverse('orders:order_detail', args=[self.order.id]))
        self.assertEqual(response.status_code, 403)

    def test_skip_order(self):
        response = self.client.post(
            reverse('orders:skip_order', args=[self.order.id]), {'skip_reason': 'Fasting'}, format='json'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['order']['status'], 'skipped')
        self.assertEqual(response.data['skip_info']['skip_credits_used'], 1)

        response = self.client.post(reverse('orders:skip_order', args=[self.order.id]), {}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_cancel_order(self):
        response = self.client.post(reverse('orders:cancel_order', args=[self.order.id]), {}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertIn('no refund', response.data['message'])

    def test_vendor_cannot_skip(self):
        self.client.force_authenticate(self.order.vendor.user)
        response = self.client.post(reverse('orders:skip_order', args=[self.order.id]), {}, format='json')
        self.assertEqual(response.status_code, 403)

    def test_customer_cannot_reach_admin_lists(self):
        self.assertEqual(self.client.get(reverse('orders:admin_orders')).status_code, 403)
        self.assertEqual(self.client.get(reverse('orders:order_creation_logs')).status_code, 403)


class VendorOrderApiTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.vendor = make_vendor()
        self.order = make_order(make_assigned_subscription(vendor=self.vendor))
        self.client.force_authenticate(self.vendor.user)

    def test_vendor_sees_own_orders(self):
        make_order(make_assigned_subscription(user=make_user('other'), vendor=make_vendor('rival')))
        response = self.client.get(reverse('orders:vendor_orders'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([o['id'] for o in response.data['orders']], [self.order.id])

    def test_vendor_moves_order_along(self):
        url = reverse('orders:update_order_status', args=[self.order.id])
        response = self.client.post(url, {'status': 'preparing'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['order']['status'], 'preparing')

        response = self.client.post(url, {'status': 'delivered'}, format='json')
        self.assertEqual(response.status_code, 403)

        response = self.client.post(url, {'status': 'upcoming'}, format='json')
        self.assertEqual(response.status_code, 403)

        response = self.client.post(url, {'status': 'teleported'}, format='json')
        self.assertEqual(response.status_code, 422)


class AdminOrderApiTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.admin = make_admin()
        self.client.force_authenticate(self.admin)
        self.user_sub = make_assigned_subscription()

    def test_confirm_delivery(self):
        order = make_order(self.user_sub)
        url = reverse('orders:confirm_delivery', args=[order.id])
        response = self.client.post(url, {}, format='json')
        self.assertEqual(response.status_code, 400)

        order.update_status(Order.Status.PREPARING)
        order.update_status(Order.Status.OUT_FOR_DELIVERY)
        response = self.client.post(url, {'notes': 'Handed over'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['order']['status'], 'delivered')

    def test_create_orders_and_retry_from_logs(self):
        response = self.client.post(
            reverse('orders:create_orders'), {'date': tomorrow().isoformat()}, format='json'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['orders_created'], 0)
        self.assertEqual(response.data['failures'][0]['reason'], 'NO_MENU_AVAILABLE')

        response = self.client.get(reverse('orders:order_creation_logs'), {'status': 'failed', 'can_retry': 'true'})
        self.assertEqual(response.data['pagination']['total_logs'], 1)
        log_id = response.data['logs'][0]['id']

        make_daily_meal(self.user_sub.subscription, tomorrow(), lunch=[make_menu()])
        response = self.client.post(reverse('orders:retry_order_creation', args=[log_id]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['log']['retry_count'], 1)
        self.assertEqual(response.data['log']['triggered_by'], 'admin')

        response = self.client.post(reverse('orders:retry_order_creation', args=[log_id]))
        self.assertEqual(response.status_code, 400)

    def test_create_orders_for_unknown_plan(self):
        response = self.client.post(reverse('orders:create_orders'), {'subscription_id': 999}, format='json')
        self.assertEqual(response.status_code, 404)

    def test_admin_list_and_stats(self):
        make_order(self.user_sub)
        response = self.client.get(reverse('orders:admin_orders'), {'vendor_id': self.user_sub.vendor_id})
        self.assertEqual(response.data['pagination']['total_orders'], 1)

        response = self.client.get(reverse('orders:order_stats'), {
            'start_date': tomorrow().isoformat(), 'end_date': tomorrow().isoformat(),
        })
        self.assertEqual(response.data['total_orders'], 1)

        response = self.client.get(reverse('orders:order_stats'), {
            'start_date': tomorrow().isoformat(), 'end_date': '2020-01-01',
        })
        self.assertEqual(response.status_code, 400)

    def test_retry_unknown_log(self):
        response = self.client.post(reverse('orders:retry_order_creation', args=[12345]))
        self.assertEqual(response.status_code, 404)
        self.assertFalse(OrderCreationLog.objects.exists())
