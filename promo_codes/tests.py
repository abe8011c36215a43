"""
Tests for promo codes: discount maths, applicability, per-user limits and the admin API.
"""
from datetime import timedelta
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from subscriptions.models import Subscription, UserSubscription
from subscriptions.tests.factories import make_admin, make_plan, make_user, make_user_subscription
from . import services
from .models import PromoCode
from .tasks import deactivate_expired_promo_codes


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


class PromoCodeModelTests(TestCase):

    def test_code_is_uppercased(self):
        self.assertEqual(make_promo('welcome').code, 'WELCOME')

    def test_clean_rules(self):
        now = timezone.now()
        promo = PromoCode(
            code='BAD',
            discount_type=PromoCode.DiscountType.PERCENTAGE,
            discount_value=Decimal('120'),
            usage_limit=1,
            valid_from=now,
            valid_until=now - timedelta(hours=1),
        )
        with self.assertRaises(ValidationError) as ctx:
            promo.clean()
        self.assertIn('valid_until', ctx.exception.message_dict)
        self.assertIn('discount_value', ctx.exception.message_dict)

    def test_percentage_discount_capped(self):
        promo = make_promo(discount_value=Decimal('25'), max_discount=Decimal('200'))
        self.assertEqual(promo.calculate_discount(Decimal('400')), (Decimal('100.00'), None))
        self.assertEqual(promo.calculate_discount(Decimal('2000')), (Decimal('200.00'), None))

    def test_flat_discount_never_exceeds_amount(self):
        promo = make_promo('FLAT300', discount_type=PromoCode.DiscountType.FLAT, discount_value=Decimal('300'))
        self.assertEqual(promo.calculate_discount(Decimal('250')), (Decimal('250.00'), None))

    def test_minimum_order_value(self):
        promo = make_promo(min_order_value=Decimal('500'))
        discount, error = promo.calculate_discount(Decimal('499'))
        self.assertEqual(discount, Decimal('0.00'))
        self.assertIn('Minimum order value', error)

    def test_validity(self):
        now = timezone.now()
        self.assertTrue(make_promo().is_valid())
        self.assertFalse(make_promo('USEDUP', usage_limit=1, used_count=1).is_valid())
        self.assertFalse(make_promo('LATER', valid_from=now + timedelta(days=1)).is_valid())
        self.assertFalse(make_promo('OFF', is_active=False).is_valid())
        self.assertEqual(list(PromoCode.objects.valid()), [PromoCode.objects.get(code='SAVE10')])

    def test_applicability(self):
        plan = make_plan()
        other = make_plan(plan_name='Chef', category=Subscription.Category.HOME_CHEF_SPECIFIC)
        anywhere = make_promo('ANY')
        by_plan = make_promo('PLAN')
        by_plan.applicable_plans.add(plan)
        by_category = make_promo('CHEF', applicable_categories=['home_chef_specific'])

        self.assertTrue(anywhere.is_applicable(other))
        self.assertTrue(by_plan.is_applicable(plan))
        self.assertFalse(by_plan.is_applicable(other))
        self.assertTrue(by_category.is_applicable(other))
        self.assertFalse(by_category.is_applicable(plan))


class PromoCodeServiceTests(TestCase):

    def setUp(self):
        self.user = make_user()
        self.plan = make_plan()

    def test_validate_returns_discount(self):
        make_promo()
        result = services.validate_promo_code(' save10 ', self.user, self.plan, Decimal('1200'))
        self.assertEqual(result['discount'], Decimal('120.00'))
        self.assertEqual(result['promo_code'].code, 'SAVE10')

    def test_per_user_limit_ignores_cancelled_and_failed(self):
        promo = make_promo()
        make_user_subscription(self.user, self.plan, promo_code=promo, status=UserSubscription.Status.CANCELLED)
        make_user_subscription(self.user, self.plan, promo_code=promo, status=UserSubscription.Status.FAILED)
        services.validate_promo_code('SAVE10', self.user, self.plan, Decimal('1200'))

        make_user_subscription(self.user, self.plan, promo_code=promo, status=UserSubscription.Status.EXPIRED)
        with self.assertRaisesMessage(services.PromoCodeError, 'usage limit exceeded'):
            services.validate_promo_code('SAVE10', self.user, self.plan, Decimal('1200'))

    def test_unknown_or_inapplicable(self):
        with self.assertRaisesMessage(services.PromoCodeError, 'Invalid or expired'):
            services.validate_promo_code('NOPE', self.user, self.plan, Decimal('1200'))
        make_promo('CHEF', applicable_categories=['home_chef_specific'])
        with self.assertRaisesMessage(services.PromoCodeError, 'not applicable'):
            services.validate_promo_code('CHEF', self.user, self.plan, Decimal('1200'))

    def test_increment_usage(self):
        promo = make_promo(usage_limit=1)
        services.increment_usage(promo)
        self.assertEqual(promo.used_count, 1)
        self.assertFalse(promo.is_valid())

    def test_deactivate_expired(self):
        now = timezone.now()
        expired = make_promo(
            'GONE', valid_from=now - timedelta(days=10), valid_until=now - timedelta(days=1)
        )
        live = make_promo()
        self.assertEqual(deactivate_expired_promo_codes(), 1)
        expired.refresh_from_db()
        live.refresh_from_db()
        self.assertFalse(expired.is_active)
        self.assertTrue(live.is_active)

    def test_expiring(self):
        now = timezone.now()
        soon = make_promo('SOON', valid_until=now + timedelta(days=2))
        make_promo()
        self.assertEqual(services.expiring_promo_codes(3), [soon])
        self.assertTrue(soon.is_expiring())

    def test_bulk_create(self):
        now = timezone.now()
        codes = services.bulk_create(
            {
                'description': 'Festival batch',
                'discount_type': PromoCode.DiscountType.FLAT,
                'discount_value': Decimal('50'),
                'usage_limit': 1,
                'valid_from': now,
                'valid_until': now + timedelta(days=7),
            },
            count=5,
            prefix='diwali',
        )
        self.assertEqual(len({c.code for c in codes}), 5)
        for promo in codes:
            self.assertTrue(promo.code.startswith('DIWALI'))
            self.assertEqual(len(promo.code), 14)
        with self.assertRaises(services.PromoCodeError):
            services.bulk_create({}, count=0)

    def test_stats(self):
        promo = make_promo(usage_limit=4)
        make_user_subscription(self.user, self.plan, promo_code=promo, discount_applied=Decimal('120.00'),
                               final_price=Decimal('1080.00'))
        promo.increment_usage()
        stats = services.promo_stats(promo)
        self.assertEqual(stats['total_usage'], 1)
        self.assertEqual(stats['total_discount'], Decimal('120.00'))
        self.assertEqual(stats['usage_percentage'], 25.0)
        self.assertEqual(stats['remaining_uses'], 3)


class PromoCodeApiTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.admin = make_admin()
        self.plan = make_plan()

    def test_validate_endpoint(self):
        make_promo()
        self.client.force_authenticate(make_user())
        url = reverse('promo_codes:validate_promo_code')
        response = self.client.post(url, {'code': 'SAVE10', 'subscription_id': self.plan.id}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['valid'])
        self.assertEqual(response.data['discount'], '120.00')
        self.assertEqual(response.data['final_amount'], '1080.00')

        response = self.client.post(url, {'code': 'WRONG', 'subscription_id': self.plan.id}, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.data['valid'])

    def test_admin_create_and_validation(self):
        self.client.force_authenticate(self.admin)
        now = timezone.now()
        payload = {
            'code': 'monsoon25',
            'description': 'Monsoon offer',
            'discount_type': 'percentage',
            'discount_value': '25',
            'usage_limit': 50,
            'valid_from': now.isoformat(),
            'valid_until': (now + timedelta(days=10)).isoformat(),
            'applicable_plans': [self.plan.id],
        }
        response = self.client.post(reverse('promo_codes:promo_code_list_create'), payload, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['code'], 'MONSOON25')
        self.assertEqual(response.data['created_by'], self.admin.username)

        payload.update(code='TOOMUCH', discount_value='150')
        response = self.client.post(reverse('promo_codes:promo_code_list_create'), payload, format='json')
        self.assertEqual(response.status_code, 422)

    def test_used_code_cannot_be_deleted(self):
        self.client.force_authenticate(self.admin)
        promo = make_promo(used_count=1)
        response = self.client.delete(reverse('promo_codes:promo_code_detail', args=[promo.id]))
        self.assertEqual(response.status_code, 400)
        response = self.client.post(reverse('promo_codes:toggle_promo_code', args=[promo.id]))
        self.assertFalse(response.data['is_active'])

    def test_bulk_endpoint(self):
        self.client.force_authenticate(self.admin)
        now = timezone.now()
        response = self.client.post(reverse('promo_codes:bulk_create_promo_codes'), {
            'count': 3,
            'description': 'Batch',
            'discount_type': 'flat',
            'discount_value': '40',
            'usage_limit': 1,
            'valid_from': now.isoformat(),
            'valid_until': (now + timedelta(days=3)).isoformat(),
        }, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['count'], 3)
        self.assertEqual(PromoCode.objects.count(), 3)

    def test_customer_cannot_list(self):
        self.client.force_authenticate(make_user())
        response = self.client.get(reverse('promo_codes:promo_code_list_create'))
        self.assertEqual(response.status_code, 403)
