"""
Tests for location zones: pincode serviceability, delivery fees and the admin API.
"""

from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from custom_auth.models import CustomUser
from .geo import ensure_zone_coordinates
from .models import LocationZone, ZonePincode


def make_zone(pincodes=('560001',), **kwargs):
    defaults = dict(
        zone_name='Central',
        city='Bengaluru',
        state='Karnataka',
        latitude=Decimal('12.971600'),
        longitude=Decimal('77.594600'),
        service_radius_km=10,
        base_charge=Decimal('20.00'),
        per_km_charge=Decimal('5.00'),
        free_delivery_above=Decimal('500.00'),
    )
    defaults.update(kwargs)
    zone = LocationZone.objects.create(**defaults)
    for pincode in pincodes:
        ZonePincode.objects.create(zone=zone, pincode=pincode)
    return zone


class LocationZoneModelTests(TestCase):

    def setUp(self):
        self.zone = make_zone(pincodes=('560001', '560002'))

    def test_pincode_supported(self):
        self.assertTrue(self.zone.is_pincode_supported('560001'))
        self.assertTrue(self.zone.is_pincode_supported(' 560002 '))
        self.assertFalse(self.zone.is_pincode_supported('560003'))
        self.assertFalse(self.zone.is_pincode_supported('5600'))

    def test_find_by_pincode_ignores_inactive_zones(self):
        self.assertEqual(list(LocationZone.find_by_pincode('560001')), [self.zone])
        self.zone.toggle_active()
        self.assertEqual(list(LocationZone.find_by_pincode('560001')), [])

    def test_delivery_fee(self):
        self.assertEqual(self.zone.calculate_delivery_fee(3, 200), Decimal('35.00'))
        # Free above the threshold
        self.assertEqual(self.zone.calculate_delivery_fee(3, 500), Decimal('0.00'))

    def test_delivery_fee_without_free_threshold(self):
        self.zone.free_delivery_above = Decimal('0.00')
        self.assertEqual(self.zone.calculate_delivery_fee(Decimal('2.5'), 10000), Decimal('32.50'))

    def test_validate_delivery_address_radius(self):
        near = self.zone.validate_delivery_address(
            {'pincode': '560001', 'latitude': 12.98, 'longitude': 77.60}
        )
        self.assertTrue(near['is_valid'])

        # Mysuru is ~125 km away
        far = self.zone.validate_delivery_address(
            {'pincode': '560001', 'latitude': 12.2958, 'longitude': 76.6394}
        )
        self.assertFalse(far['is_valid'])
        self.assertEqual(len(far['errors']), 1)

    def test_validate_delivery_address_unknown_pincode(self):
        result = self.zone.validate_delivery_address({'pincode': '110001'})
        self.assertFalse(result['is_valid'])
        self.assertIn('Delivery not available to this pincode', result['errors'])

    def test_validate_delivery_for_subscription_category(self):
        self.zone.service_type = LocationZone.ServiceType.HOME_CHEF_ONLY
        self.zone.save()
        ok = self.zone.validate_delivery_for_subscription({'pincode': '560001'}, 'home_chef_specific')
        self.assertTrue(ok['is_valid'])
        bad = self.zone.validate_delivery_for_subscription({'pincode': '560001'}, 'food_vendor_specific')
        self.assertFalse(bad['is_valid'])

    def test_check_service_availability(self):
        result = LocationZone.check_service_availability('560002')
        self.assertTrue(result['available'])
        self.assertEqual(set(result['supported_vendor_types']), {'home_chef', 'food_vendor'})
        self.assertFalse(LocationZone.check_service_availability('999999')['available'])


class ZoneGeocodingTests(TestCase):

    def test_fills_missing_coordinates(self):
        zone = make_zone(latitude=None, longitude=None)
        with patch('location_zones.geo.geocode_pincode', return_value=(Decimal('12.9'), Decimal('77.5'))):
            ensure_zone_coordinates(zone)
        zone.refresh_from_db()
        self.assertEqual(zone.latitude, Decimal('12.900000'))

    def test_no_geocoder_leaves_zone_alone(self):
        zone = make_zone(latitude=None, longitude=None)
        ensure_zone_coordinates(zone)
        zone.refresh_from_db()
        self.assertIsNone(zone.latitude)


class LocationZoneApiTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.admin = CustomUser.objects.create_user(
            username='admin', password='testpass123', role=CustomUser.Role.ADMIN
        )
        self.customer = CustomUser.objects.create_user(username='cust', password='testpass123')

    def test_admin_creates_zone(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post(reverse('location_zones:zone_list_create'), {
            'zone_name': 'Indiranagar',
            'city': 'Bengaluru',
            'state': 'Karnataka',
            'pincodes': ['560038', '560008'],
            'latitude': '12.9784',
            'longitude': '77.6408',
        }, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(sorted(response.data['pincode_list']), ['560008', '560038'])

    def test_duplicate_pincode_rejected(self):
        make_zone(pincodes=('560038',))
        self.client.force_authenticate(self.admin)
        response = self.client.post(reverse('location_zones:zone_list_create'), {
            'zone_name': 'Other',
            'city': 'Bengaluru',
            'state': 'Karnataka',
            'pincodes': ['560038'],
        }, format='json')
        self.assertEqual(response.status_code, 422)
        self.assertIn('pincodes', response.data['details'])

    def test_customer_cannot_manage_zones(self):
        self.client.force_authenticate(self.customer)
        response = self.client.get(reverse('location_zones:zone_list_create'))
        self.assertEqual(response.status_code, 403)

    def test_toggle_zone(self):
        zone = make_zone()
        self.client.force_authenticate(self.admin)
        response = self.client.post(reverse('location_zones:toggle_zone_status', args=[zone.id]))
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.data['is_active'])

    def test_public_availability_check(self):
        make_zone(pincodes=('560001',))
        response = self.client.get(reverse('location_zones:check_service_availability'), {'pincode': '560001'})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['available'])

        response = self.client.get(reverse('location_zones:check_service_availability'), {'pincode': 'abc'})
        self.assertEqual(response.status_code, 400)

    def test_delivery_fee_endpoint(self):
        make_zone(pincodes=('560001',))
        response = self.client.post(reverse('location_zones:calculate_delivery_fee'), {
            'pincode': '560001', 'distance_km': '4', 'order_value': '100',
        }, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['delivery_fee'], '40.00')
