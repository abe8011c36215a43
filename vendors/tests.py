"""
Tests for vendor profiles: capacity bookkeeping, rating, service area and admin endpoints.
"""

from datetime import datetime
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from custom_auth.models import CustomUser
from .models import VendorProfile
from .tasks import reset_daily_vendor_capacity


def make_vendor(username='kitchen', **kwargs):
    user = CustomUser.objects.create_user(
        username=username, password='testpass123', role=CustomUser.Role.VENDOR
    )
    defaults = dict(
        vendor_type=VendorProfile.VendorType.HOME_CHEF,
        business_name=f"{username.title()} Kitchen",
        is_verified=True,
        daily_capacity=10,
    )
    defaults.update(kwargs)
    return VendorProfile.objects.create(user=user, **defaults)


class VendorProfileModelTests(TestCase):

    def test_load_is_clamped_on_save(self):
        vendor = make_vendor(daily_capacity=5)
        vendor.current_load = 9
        vendor.save()
        vendor.refresh_from_db()
        self.assertEqual(vendor.current_load, 5)

    def test_update_capacity_marks_full_vendor_unavailable(self):
        vendor = make_vendor(daily_capacity=3)
        self.assertTrue(vendor.has_capacity(3))
        self.assertFalse(vendor.has_capacity(4))

        vendor.update_capacity(2)
        self.assertTrue(vendor.is_available)
        vendor.update_capacity(1)
        vendor.refresh_from_db()
        self.assertEqual(vendor.current_load, 3)
        self.assertFalse(vendor.is_available)

        vendor.reset_daily_capacity()
        vendor.refresh_from_db()
        self.assertEqual(vendor.current_load, 0)
        self.assertTrue(vendor.is_available)

    def test_update_rating_running_average(self):
        vendor = make_vendor()
        vendor.update_rating(5)
        vendor.update_rating(4)
        vendor.update_rating(3)
        vendor.refresh_from_db()
        self.assertEqual(vendor.total_reviews, 3)
        self.assertEqual(vendor.rating_average, Decimal('4.00'))

    def test_service_area(self):
        vendor = make_vendor(
            service_latitude=Decimal('12.971600'),
            service_longitude=Decimal('77.594600'),
            service_radius_km=Decimal('5.00'),
        )
        self.assertTrue(vendor.is_in_service_area(12.98, 77.60))
        self.assertFalse(vendor.is_in_service_area(13.2, 77.7))
        self.assertFalse(make_vendor('nocoords').is_in_service_area(12.98, 77.60))

    def test_is_open_now(self):
        vendor = make_vendor(operating_hours=[
            {'day': 'monday', 'is_open': True, 'open_time': '09:00', 'close_time': '21:00'},
            {'day': 'tuesday', 'is_open': False},
        ])
        tz = timezone.get_current_timezone()
        # 2024-01-01 was a Monday
        self.assertTrue(vendor.is_open_now(timezone.make_aware(datetime(2024, 1, 1, 12, 0), tz)))
        self.assertFalse(vendor.is_open_now(timezone.make_aware(datetime(2024, 1, 1, 22, 0), tz)))
        self.assertFalse(vendor.is_open_now(timezone.make_aware(datetime(2024, 1, 2, 12, 0), tz)))

    def test_available_queryset(self):
        ok = make_vendor('ok')
        make_vendor('unverified', is_verified=False)
        make_vendor('off', is_available=False)
        full = make_vendor('full', daily_capacity=2)
        full.current_load = 2
        full.save()
        self.assertEqual(list(VendorProfile.objects.available()), [ok])

    def test_with_cuisine(self):
        north = make_vendor('north', cuisine_types=['North Indian', 'Mughlai'])
        make_vendor('south', cuisine_types=['South Indian'])
        self.assertEqual(list(VendorProfile.objects.with_cuisine('North Indian')), [north])


class VendorCapacityTaskTests(TestCase):

    def test_reset_keeps_admin_disabled_vendors_off(self):
        full = make_vendor('full', daily_capacity=2)
        full.update_capacity(2)
        disabled = make_vendor('disabled', is_available=False)

        reset_daily_vendor_capacity()

        full.refresh_from_db()
        disabled.refresh_from_db()
        self.assertEqual(full.current_load, 0)
        self.assertTrue(full.is_available)
        self.assertFalse(disabled.is_available)


class VendorApiTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.admin = CustomUser.objects.create_user(
            username='admin', password='testpass123', role=CustomUser.Role.ADMIN
        )

    def test_admin_creates_profile_for_vendor_user(self):
        user = CustomUser.objects.create_user(
            username='chefanna', password='testpass123', role=CustomUser.Role.VENDOR
        )
        self.client.force_authenticate(self.admin)
        response = self.client.post(reverse('vendors:vendor_list_create'), {
            'user': user.id,
            'vendor_type': 'home_chef',
            'business_name': "Anna's Kitchen",
            'cuisine_types': ['South Indian'],
            'operating_hours': [
                {'day': 'monday', 'is_open': True, 'open_time': '08:00', 'close_time': '20:00'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertFalse(response.data['is_verified'])

    def test_profile_requires_vendor_role(self):
        customer = CustomUser.objects.create_user(username='cust', password='testpass123')
        self.client.force_authenticate(self.admin)
        response = self.client.post(reverse('vendors:vendor_list_create'), {
            'user': customer.id,
            'vendor_type': 'home_chef',
            'business_name': 'Nope',
        }, format='json')
        self.assertEqual(response.status_code, 422)

    def test_verify_and_stats(self):
        vendor = make_vendor(is_verified=False)
        self.client.force_authenticate(self.admin)
        response = self.client.post(
            reverse('vendors:verify_vendor', args=[vendor.id]), {'is_verified': True}, format='json'
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['is_verified'])

        stats = self.client.get(reverse('vendors:vendor_stats'))
        self.assertEqual(stats.data['verified_vendors'], 1)

    def test_vendor_cannot_verify_self(self):
        vendor = make_vendor(is_verified=False)
        self.client.force_authenticate(vendor.user)
        response = self.client.patch(reverse('vendors:my_vendor_profile'), {'is_verified': True}, format='json')
        self.assertEqual(response.status_code, 200)
        vendor.refresh_from_db()
        self.assertFalse(vendor.is_verified)

    def test_capacity_endpoint_rejects_overload(self):
        vendor = make_vendor(daily_capacity=2)
        self.client.force_authenticate(self.admin)
        response = self.client.post(
            reverse('vendors:update_vendor_capacity', args=[vendor.id]), {'order_count': 3}, format='json'
        )
        self.assertEqual(response.status_code, 400)
