from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from location_zones.models import LocationZone
from location_zones.tests import make_zone
from subscriptions.models import Subscription, UserSubscription
from subscriptions.tests.factories import make_admin, make_plan, make_user, make_user_subscription
from utils.exceptions import NotFoundError
from vendors.models import VendorProfile
from vendors.tests import make_vendor
from vendor_assignment import services
from vendor_assignment.models import VendorAssignmentError, VendorAssignmentRequest


class AssignmentRequestCreationTests(TestCase):

    def setUp(self):
        self.zone = make_zone(pincodes=('560001',))
        self.user = make_user()

    def test_initial_request_for_specific_plan(self):
        plan = make_plan(category=Subscription.Category.HOME_CHEF_SPECIFIC)
        user_sub = make_user_subscription(self.user, plan)

        request = services.create_initial_assignment_request(user_sub)

        self.assertEqual(request.request_type, VendorAssignmentRequest.RequestType.INITIAL_ASSIGNMENT)
        self.assertEqual(request.reason, VendorAssignmentRequest.Reason.INITIAL_PURCHASE)
        self.assertEqual(request.priority, VendorAssignmentRequest.Priority.HIGH)
        self.assertEqual(request.requested_vendor_type, VendorProfile.VendorType.HOME_CHEF)
        self.assertEqual(request.delivery_zone, self.zone)

    def test_universal_plan_accepts_any_vendor_type(self):
        request = services.create_initial_assignment_request(make_user_subscription(self.user))
        self.assertEqual(request.requested_vendor_type, '')

    def test_switch_requires_assigned_vendor(self):
        user_sub = make_user_subscription(self.user)
        with self.assertRaisesMessage(VendorAssignmentError, 'No vendor has been assigned'):
            services.create_vendor_switch_request(user_sub)

    def test_only_one_pending_switch(self):
        user_sub = make_user_subscription(self.user, vendor=make_vendor())
        services.create_vendor_switch_request(user_sub, description='Food arrives cold')
        with self.assertRaisesMessage(VendorAssignmentError, 'already pending'):
            services.create_vendor_switch_request(user_sub)

    def test_switch_request_records_current_vendor_and_preferences(self):
        current = make_vendor()
        preferred = make_vendor('preferred')
        user_sub = make_user_subscription(self.user, vendor=current)

        request = services.create_vendor_switch_request(
            user_sub,
            reason=VendorAssignmentRequest.Reason.POOR_FOOD_QUALITY,
            preferred_vendors=[preferred],
        )
        self.assertEqual(request.current_vendor, current)
        self.assertEqual(request.priority, VendorAssignmentRequest.Priority.MEDIUM)
        self.assertEqual(list(request.preferred_vendors.all()), [preferred])


class AssignVendorTests(TestCase):

    def setUp(self):
        make_zone(pincodes=('560001',))
        self.admin = make_admin()
        self.user = make_user()
        self.user_sub = make_user_subscription(self.user)
        self.request = services.create_initial_assignment_request(self.user_sub)
        self.vendor = make_vendor(daily_capacity=5)

    def test_initial_assignment(self):
        services.assign_vendor(self.request.id, self.vendor.id, self.admin, 'Closest kitchen')

        self.request.refresh_from_db()
        self.user_sub.refresh_from_db()
        self.vendor.refresh_from_db()
        self.assertEqual(self.request.status, VendorAssignmentRequest.Status.APPROVED)
        self.assertEqual(self.request.new_vendor, self.vendor)
        self.assertEqual(self.request.admin_notes, 'Closest kitchen')
        self.assertEqual(self.user_sub.vendor, self.vendor)
        self.assertEqual(self.user_sub.vendor_type, VendorProfile.VendorType.HOME_CHEF)
        self.assertEqual(self.user_sub.vendor_assigned_by, self.admin)
        self.assertFalse(self.user_sub.vendor_switch_used)
        self.assertEqual(self.user_sub.vendor_history.count(), 1)
        # load is counted when orders are created
        self.assertEqual(self.vendor.current_load, 0)

    def test_already_processed(self):
        services.assign_vendor(self.request.id, self.vendor.id, self.admin)
        with self.assertRaisesMessage(VendorAssignmentError, 'Request has already been processed'):
            services.assign_vendor(self.request.id, make_vendor('second').id, self.admin)

    def test_missing_rows(self):
        with self.assertRaisesMessage(NotFoundError, 'Assignment request not found'):
            services.assign_vendor(999999, self.vendor.id, self.admin)
        with self.assertRaisesMessage(NotFoundError, 'Vendor not found'):
            services.assign_vendor(self.request.id, 999999, self.admin)

    def test_unverified_or_switched_off_vendor(self):
        unverified = make_vendor('unverified', is_verified=False)
        off = make_vendor('off', is_available=False)
        for vendor in (unverified, off):
            with self.assertRaisesMessage(VendorAssignmentError, 'not available for assignment'):
                services.assign_vendor(self.request.id, vendor.id, self.admin)
        self.request.refresh_from_db()
        self.assertTrue(self.request.is_pending)

    def test_full_vendor(self):
        full = make_vendor('full', daily_capacity=2, current_load=2)
        with self.assertRaisesMessage(VendorAssignmentError, 'no capacity'):
            services.assign_vendor(self.request.id, full.id, self.admin)

    def test_vendor_type_must_match_plan(self):
        plan = make_plan(category=Subscription.Category.HOME_CHEF_SPECIFIC)
        user_sub = make_user_subscription(make_user('picky'), plan)
        request = services.create_initial_assignment_request(user_sub)
        stall = make_vendor('stall', vendor_type=VendorProfile.VendorType.FOOD_VENDOR)
        with self.assertRaisesMessage(VendorAssignmentError, 'cannot serve'):
            services.assign_vendor(request.id, stall.id, self.admin)

    def test_inactive_subscription(self):
        self.user_sub.status = UserSubscription.Status.CANCELLED
        self.user_sub.save()
        with self.assertRaisesMessage(VendorAssignmentError, 'Subscription is not active'):
            services.assign_vendor(self.request.id, self.vendor.id, self.admin)

    def test_switch_consumes_allowance(self):
        services.assign_vendor(self.request.id, self.vendor.id, self.admin)
        self.user_sub.refresh_from_db()
        switch = services.create_vendor_switch_request(self.user_sub, description='Too oily')
        replacement = make_vendor('replacement')

        services.assign_vendor(switch.id, replacement.id, self.admin)

        self.user_sub.refresh_from_db()
        self.assertEqual(self.user_sub.vendor, replacement)
        self.assertTrue(self.user_sub.vendor_switch_used)
        self.assertFalse(self.user_sub.can_switch_vendor())
        history = list(self.user_sub.vendor_history.order_by('assigned_at', 'id'))
        self.assertEqual([h.vendor for h in history], [self.vendor, replacement])
        self.assertIsNotNone(history[0].ended_at)
        self.assertIsNone(history[1].ended_at)

        with self.assertRaisesMessage(VendorAssignmentError, 'already been used'):
            services.create_vendor_switch_request(self.user_sub)

    def test_switch_to_same_vendor_rejected(self):
        services.assign_vendor(self.request.id, self.vendor.id, self.admin)
        self.user_sub.refresh_from_db()
        switch = services.create_vendor_switch_request(self.user_sub)
        with self.assertRaisesMessage(VendorAssignmentError, 'already assigned to this vendor'):
            services.assign_vendor(switch.id, self.vendor.id, self.admin)
        self.user_sub.refresh_from_db()
        self.assertFalse(self.user_sub.vendor_switch_used)

    def test_reject_request(self):
        services.reject_request(self.request.id, self.admin, 'No kitchens in range', 'retry next week')
        self.request.refresh_from_db()
        self.assertEqual(self.request.status, VendorAssignmentRequest.Status.REJECTED)
        self.assertEqual(self.request.rejection_reason, 'No kitchens in range')
        self.user_sub.refresh_from_db()
        self.assertIsNone(self.user_sub.vendor)


class AvailableVendorsTests(TestCase):

    def setUp(self):
        self.zone = make_zone(pincodes=('560001',))
        self.user_sub = make_user_subscription(
            make_user(),
            delivery_latitude=Decimal('12.971600'),
            delivery_longitude=Decimal('77.594600'),
        )
        self.request = services.create_initial_assignment_request(self.user_sub)

    def test_filters_and_ordering(self):
        near = dict(service_latitude=Decimal('12.975000'), service_longitude=Decimal('77.600000'))
        best = make_vendor('best', rating_average=Decimal('4.80'), daily_capacity=10, **near)
        roomy = make_vendor('roomy', rating_average=Decimal('4.20'), daily_capacity=40, **near)
        tight = make_vendor('tight', rating_average=Decimal('4.20'), daily_capacity=10, current_load=8, **near)
        no_coords = make_vendor('nocoords', rating_average=Decimal('3.00'))
        make_vendor('full', daily_capacity=3, current_load=3, **near)
        make_vendor('unverified', is_verified=False, **near)
        make_vendor(
            'faraway',
            rating_average=Decimal('5.00'),
            service_latitude=Decimal('13.300000'),
            service_longitude=Decimal('77.900000'),
        )

        vendors = services.available_vendors(self.request)
        self.assertEqual(vendors, [best, roomy, tight, no_coords])

    def test_preferred_first_and_current_excluded(self):
        current = make_vendor('current', rating_average=Decimal('4.90'))
        top = make_vendor('top', rating_average=Decimal('4.50'))
        liked = make_vendor('liked', rating_average=Decimal('3.50'))
        self.user_sub.vendor = current
        self.user_sub.save()
        switch = services.create_vendor_switch_request(self.user_sub, preferred_vendors=[liked])

        vendors = services.available_vendors(switch)
        self.assertEqual(vendors, [liked, top])
        self.assertTrue(vendors[0].is_preferred)

    def test_zone_service_type_limits_vendor_types(self):
        self.zone.service_type = LocationZone.ServiceType.HOME_CHEF_ONLY
        self.zone.save()
        chef = make_vendor('chef')
        make_vendor('stall', vendor_type=VendorProfile.VendorType.FOOD_VENDOR)
        self.request.refresh_from_db()
        self.assertEqual(services.available_vendors(self.request), [chef])


class AssignmentQueueTests(TestCase):

    def setUp(self):
        self.zone = make_zone(pincodes=('560001',))
        self.admin = make_admin()

    def _request(self, username, **kwargs):
        user_sub = make_user_subscription(make_user(username))
        request = services.create_initial_assignment_request(user_sub)
        for field, value in kwargs.items():
            setattr(request, field, value)
        request.save()
        return request

    def test_pending_queue_and_stats(self):
        now = timezone.now()
        old_high = self._request('a', requested_at=now - timedelta(hours=3))
        urgent = self._request('b', priority='urgent')
        low = self._request('c', priority='low')
        done = self._request('d')
        done.reject(self.admin, 'duplicate')

        items, pagination, stats = services.pending_requests({})
        self.assertEqual(items, [urgent, old_high, low])
        self.assertEqual(pagination['total_requests'], 3)
        self.assertIn({'request_type': 'initial_assignment', 'priority': 'high', 'count': 1}, stats)

    def test_list_requests_filters_and_pages(self):
        for name in ('a', 'b', 'c'):
            self._request(name)
        rejected = self._request('d')
        rejected.reject(self.admin, 'duplicate')

        items, pagination = services.list_requests({'status': 'pending', 'limit': '2'})
        self.assertEqual(len(items), 2)
        self.assertEqual(pagination['total_requests'], 3)
        self.assertEqual(pagination['total_pages'], 2)
        self.assertTrue(pagination['has_next_page'])
        self.assertFalse(pagination['has_prev_page'])

        items, _ = services.list_requests({'sort_by': 'priority', 'sort_order': 'asc'})
        self.assertEqual(len(items), 4)

    def test_assignment_stats(self):
        vendor = make_vendor()
        request = self._request('a', requested_at=timezone.now() - timedelta(hours=4))
        self._request('b')
        services.assign_vendor(request.id, vendor.id, self.admin)

        stats = services.assignment_stats()
        self.assertIn({'status': 'approved', 'request_type': 'initial_assignment', 'count': 1}, stats['overall_stats'])
        self.assertEqual(stats['processing_time_stats'][0]['request_type'], 'initial_assignment')
        self.assertGreaterEqual(stats['processing_time_stats'][0]['average_processing_hours'], 3.9)
        self.assertEqual(stats['zone_stats'][0]['zone_id'], self.zone.id)
        self.assertEqual(stats['zone_stats'][0]['count'], 1)
        self.assertEqual(stats['date_range']['end_date'], timezone.localdate().isoformat())
