from datetime import timedelta

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from custom_auth import services
from custom_auth.models import CustomUser
from subscriptions.models import UserSubscription
from subscriptions.tests.factories import make_admin, make_user, make_user_subscription
from utils.exceptions import DomainError, ForbiddenError
from vendors.tests import make_vendor


class UserModerationTests(TestCase):

    def setUp(self):
        self.admin = make_admin()
        self.customer = make_user()

    def test_ban_deactivates_account(self):
        user = services.ban_user(self.customer.id, self.admin, 'Abusive to delivery staff')
        self.assertTrue(user.is_banned)
        self.assertFalse(user.is_active)
        self.assertEqual(user.banned_by, self.admin)
        self.assertIsNotNone(user.banned_at)

        with self.assertRaisesMessage(DomainError, 'already banned'):
            services.ban_user(self.customer.id, self.admin, 'Again')
        with self.assertRaisesMessage(DomainError, 'Unban the user'):
            services.toggle_user_status(self.customer.id)

        user = services.unban_user(self.customer.id, self.admin)
        self.assertFalse(user.is_banned)
        self.assertTrue(user.is_active)
        self.assertEqual(user.ban_reason, '')
        with self.assertRaisesMessage(DomainError, 'not banned'):
            services.unban_user(self.customer.id, self.admin)

    def test_admins_are_protected(self):
        other_admin = make_admin('second_admin')
        with self.assertRaises(ForbiddenError):
            services.ban_user(other_admin.id, self.admin, 'No reason')
        with self.assertRaises(ForbiddenError):
            services.toggle_user_status(other_admin.id)

    def test_toggle_flips_active(self):
        self.assertFalse(services.toggle_user_status(self.customer.id).is_active)
        self.assertTrue(services.toggle_user_status(self.customer.id).is_active)

    def test_overview_counts(self):
        make_vendor()
        make_user_subscription(self.customer)
        lapsed = make_user('lapsed')
        make_user_subscription(lapsed, status=UserSubscription.Status.EXPIRED)
        waiting = make_user('waiting')
        make_user_subscription(waiting, status=UserSubscription.Status.PENDING)
        services.ban_user(waiting.id, self.admin, 'Chargeback')

        overview = services.user_overview()
        self.assertEqual(overview['total_users'], 5)
        self.assertEqual(overview['total_active_users'], 4)
        self.assertEqual(overview['total_banned_users'], 1)
        self.assertEqual(overview['total_vendors'], 1)
        self.assertEqual(overview['total_admins'], 1)
        self.assertEqual(overview['total_premium_users'], 2)

    def test_activity_stats(self):
        make_vendor()
        CustomUser.objects.filter(pk=self.admin.pk).update(date_joined=timezone.now() - timedelta(days=60))
        now = timezone.now()
        stats = services.user_activity_stats(now - timedelta(days=1), now + timedelta(minutes=1))

        [today] = stats['daily']
        self.assertEqual(today['new_users'], 2)
        self.assertEqual(today['new_vendors'], 1)
        self.assertEqual(stats['role_distribution'], {'user': 1, 'vendor': 1})


class AdminUserApiTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.admin = make_admin()
        self.customer = make_user()
        self.client.force_authenticate(self.admin)

    def test_list_filters(self):
        make_vendor()
        make_user_subscription(self.customer)
        response = self.client.get(reverse('custom_auth:admin_users'), {'role': 'user'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['pagination']['total_users'], 1)
        self.assertEqual(response.data['users'][0]['subscription_count'], 1)

        response = self.client.get(reverse('custom_auth:admin_users'), {'search': 'kitchen'})
        self.assertEqual(response.data['pagination']['total_users'], 1)

        services.ban_user(self.customer.id, self.admin, 'Fraud')
        response = self.client.get(reverse('custom_auth:admin_users'), {'status': 'banned'})
        self.assertEqual([u['username'] for u in response.data['users']], ['customer'])
        response = self.client.get(reverse('custom_auth:admin_users'), {'status': 'inactive'})
        self.assertEqual(response.data['pagination']['total_users'], 0)

    def test_ban_endpoints(self):
        url = reverse('custom_auth:ban_user', args=[self.customer.id])
        response = self.client.post(url, {}, format='json')
        self.assertEqual(response.status_code, 422)

        response = self.client.post(url, {'reason': 'Fake payments'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['user']['is_banned'])
        self.assertEqual(response.data['user']['banned_by'], self.admin.id)

        response = self.client.post(url, {'reason': 'Again'}, format='json')
        self.assertEqual(response.status_code, 400)

        response = self.client.post(reverse('custom_auth:ban_user', args=[self.admin.id]), {'reason': 'x'})
        self.assertEqual(response.status_code, 403)

        response = self.client.post(reverse('custom_auth:unban_user', args=[self.customer.id]))
        self.assertEqual(response.status_code, 200)
        response = self.client.post(reverse('custom_auth:toggle_user_status', args=[self.customer.id]))
        self.assertEqual(response.data['message'], 'User deactivated successfully')

    def test_detail_and_stats(self):
        make_user_subscription(self.customer)
        response = self.client.get(reverse('custom_auth:admin_user_detail', args=[self.customer.id]))
        self.assertEqual(response.data['user']['username'], 'customer')
        self.assertEqual(response.data['subscriptions'][0]['subscription__plan_name'], 'Weekly Lunch')

        response = self.client.get(reverse('custom_auth:admin_user_detail', args=[9999]))
        self.assertEqual(response.status_code, 404)

        response = self.client.get(reverse('custom_auth:admin_user_overview'))
        self.assertEqual(response.data['overview']['total_premium_users'], 1)

        response = self.client.get(reverse('custom_auth:admin_user_activity'), {'start_date': 'yesterday'})
        self.assertEqual(response.status_code, 400)
        response = self.client.get(reverse('custom_auth:admin_user_activity'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['role_distribution'], {'admin': 1, 'user': 1})

    def test_customers_are_forbidden(self):
        self.client.force_authenticate(self.customer)
        for name in ('admin_users', 'admin_user_overview', 'admin_user_activity'):
            response = self.client.get(reverse(f'custom_auth:{name}'))
            self.assertEqual(response.status_code, 403)
