from decimal import Decimal

from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework.test import APIClient

from subscriptions.tests.factories import make_admin, make_user
from . import services
from .models import ReferralReward


class RewardCalculationTests(TestCase):

    def test_ten_percent_floored(self):
        self.assertEqual(services.calculate_referral_reward(Decimal('1089.90')), Decimal('108.00'))

    def test_clamped_to_floor_and_ceiling(self):
        self.assertEqual(services.calculate_referral_reward(Decimal('200')), Decimal('50.00'))
        self.assertEqual(services.calculate_referral_reward(Decimal('9000')), Decimal('500.00'))

    @override_settings(REFERRAL_REWARD_PERCENT=5, REFERRAL_REWARD_MIN=10, REFERRAL_REWARD_MAX=100)
    def test_settings_drive_the_rule(self):
        self.assertEqual(services.calculate_referral_reward(Decimal('1000')), Decimal('50.00'))


class ReferralLinkingTests(TestCase):

    def setUp(self):
        self.referrer = make_user('referrer')
        self.friend = make_user('friend')

    def test_link_by_code(self):
        services.validate_and_link(self.friend, self.referrer.referral_code.lower())
        self.friend.refresh_from_db()
        self.assertEqual(self.friend.referred_by, self.referrer)
        self.assertEqual(self.friend.used_referral_code, self.referrer.referral_code)

    def test_rejections(self):
        with self.assertRaisesMessage(services.ReferralError, 'Invalid referral code'):
            services.validate_and_link(self.friend, 'NOSUCHCODE')
        with self.assertRaisesMessage(services.ReferralError, 'own referral code'):
            services.validate_and_link(self.friend, self.friend.referral_code)
        services.validate_and_link(self.friend, self.referrer.referral_code)
        other = make_user('other')
        with self.assertRaisesMessage(services.ReferralError, 'already used'):
            services.validate_and_link(self.friend, other.referral_code)


class ReferralRewardTests(TestCase):

    def setUp(self):
        self.referrer = make_user('referrer')
        self.friend = make_user('friend')
        services.validate_and_link(self.friend, self.referrer.referral_code)

    def test_paid_once(self):
        reward = services.process_referral_reward(self.friend, Decimal('1200.00'))
        self.assertEqual(reward.credits_awarded, Decimal('120.00'))
        self.assertIsNone(services.process_referral_reward(self.friend, Decimal('1200.00')))

        self.referrer.refresh_from_db()
        self.friend.refresh_from_db()
        self.assertEqual(self.referrer.total_referral_credits, Decimal('120.00'))
        self.assertTrue(self.friend.is_referral_used)
        self.assertEqual(ReferralReward.objects.count(), 1)

    def test_nothing_for_unreferred_user(self):
        self.assertIsNone(services.process_referral_reward(self.referrer, Decimal('1200.00')))

    def test_use_credits(self):
        services.process_referral_reward(self.friend, Decimal('1200.00'))
        self.referrer.refresh_from_db()
        result = services.use_referral_credits(self.referrer, Decimal('100'))
        self.assertEqual(result['remaining_referral_credits'], Decimal('20.00'))
        self.assertEqual(result['wallet_credits'], Decimal('100.00'))

        with self.assertRaisesMessage(services.ReferralError, 'Insufficient referral credits'):
            services.use_referral_credits(self.referrer, Decimal('50'))

    def test_stats_and_leaderboard(self):
        make_user('pending', referred_by=self.referrer)
        services.process_referral_reward(self.friend, Decimal('600.00'))
        self.referrer.refresh_from_db()

        stats = services.referral_stats(self.referrer)
        self.assertEqual(stats['total_referrals'], 2)
        self.assertEqual(stats['successful_referrals'], 1)
        self.assertEqual(stats['pending_referrals'], 1)
        self.assertEqual(stats['available_credits'], Decimal('60.00'))

        board = services.leaderboard()
        self.assertEqual(len(board), 1)
        self.assertEqual(board[0]['username'], 'referrer')
        self.assertEqual(board[0]['successful_referrals'], 1)


class ReferralApiTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.referrer = make_user('referrer', total_referral_credits=Decimal('80.00'))

    def test_link(self):
        self.client.force_authenticate(self.referrer)
        response = self.client.get(reverse('referrals:referral_link'))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['referral_link'].endswith(f"?ref={self.referrer.referral_code}"))

    def test_use_credits(self):
        self.client.force_authenticate(self.referrer)
        url = reverse('referrals:use_referral_credits')
        response = self.client.post(url, {'amount': '50'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['remaining_referral_credits'], Decimal('30.00'))

        response = self.client.post(url, {'amount': '50'}, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['details']['available_credits'], '30.00')

    def test_admin_views(self):
        make_user('friend', referred_by=self.referrer, used_referral_code=self.referrer.referral_code)
        self.client.force_authenticate(self.referrer)
        self.assertEqual(self.client.get(reverse('referrals:referral_used_users')).status_code, 403)

        self.client.force_authenticate(make_admin())
        response = self.client.get(reverse('referrals:referral_used_users'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['pagination']['total_users'], 1)
        self.assertEqual(response.data['users'][0]['referred_by'], 'referrer')

        response = self.client.get(reverse('referrals:user_referral_details', args=[self.referrer.id]))
        self.assertEqual(response.data['stats']['total_referrals'], 1)
