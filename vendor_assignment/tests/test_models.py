from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from subscriptions.tests.factories import make_admin, make_user, make_user_subscription
from vendors.tests import make_vendor
from vendor_assignment.models import VendorAssignmentError, VendorAssignmentRequest


def make_request(user_subscription, **kwargs):
    defaults = dict(
        user_subscription=user_subscription,
        user=user_subscription.user,
        request_type=VendorAssignmentRequest.RequestType.VENDOR_SWITCH,
        reason=VendorAssignmentRequest.Reason.LATE_DELIVERY,
    )
    defaults.update(kwargs)
    return VendorAssignmentRequest.objects.create(**defaults)


class VendorAssignmentRequestModelTests(TestCase):

    def setUp(self):
        self.user = make_user()
        self.admin = make_admin()
        self.user_sub = make_user_subscription(self.user)
        self.vendor = make_vendor()

    def test_default_priority_depends_on_request_type(self):
        initial = make_request(
            self.user_sub,
            request_type=VendorAssignmentRequest.RequestType.INITIAL_ASSIGNMENT,
            reason=VendorAssignmentRequest.Reason.INITIAL_PURCHASE,
        )
        switch = make_request(self.user_sub)
        self.assertEqual(initial.priority, VendorAssignmentRequest.Priority.HIGH)
        self.assertEqual(switch.priority, VendorAssignmentRequest.Priority.MEDIUM)

    def test_by_priority_ranks_urgency_then_age(self):
        now = timezone.now()
        low = make_request(self.user_sub, priority='low', requested_at=now - timedelta(days=3))
        urgent_new = make_request(self.user_sub, priority='urgent', requested_at=now)
        medium = make_request(self.user_sub, priority='medium', requested_at=now - timedelta(days=2))
        urgent_old = make_request(self.user_sub, priority='urgent', requested_at=now - timedelta(hours=5))
        high = make_request(self.user_sub, priority='high', requested_at=now - timedelta(days=1))

        ordered = list(VendorAssignmentRequest.objects.by_priority())
        self.assertEqual(ordered, [urgent_old, urgent_new, high, medium, low])

    def test_approve_then_complete(self):
        request = make_request(self.user_sub)
        request.approve(self.admin, self.vendor, 'good fit')
        request.refresh_from_db()
        self.assertEqual(request.status, VendorAssignmentRequest.Status.APPROVED)
        self.assertEqual(request.new_vendor, self.vendor)
        self.assertEqual(request.processed_by, self.admin)
        self.assertIsNotNone(request.processed_at)
        self.assertTrue(request.is_processed)

        request.complete()
        self.assertEqual(request.status, VendorAssignmentRequest.Status.COMPLETED)

    def test_processed_request_cannot_change(self):
        request = make_request(self.user_sub)
        request.reject(self.admin, 'No vendors nearby')
        with self.assertRaises(VendorAssignmentError):
            request.approve(self.admin, self.vendor)
        with self.assertRaises(VendorAssignmentError):
            request.update_priority('urgent')

    def test_reject_requires_reason(self):
        request = make_request(self.user_sub)
        with self.assertRaises(VendorAssignmentError):
            request.reject(self.admin, '')
        self.assertTrue(request.is_pending)

    def test_complete_requires_approval(self):
        request = make_request(self.user_sub)
        with self.assertRaises(VendorAssignmentError):
            request.complete()

    def test_update_priority_validates_value(self):
        request = make_request(self.user_sub)
        with self.assertRaises(VendorAssignmentError):
            request.update_priority('critical')
        request.update_priority('urgent')
        self.assertIn(request, VendorAssignmentRequest.objects.urgent())

    def test_for_vendor_matches_current_or_new(self):
        other = make_vendor('other')
        from_vendor = make_request(self.user_sub, current_vendor=self.vendor)
        to_vendor = make_request(self.user_sub, new_vendor=self.vendor)
        make_request(self.user_sub, current_vendor=other)
        self.assertCountEqual(
            VendorAssignmentRequest.objects.for_vendor(self.vendor),
            [from_vendor, to_vendor]
        )

    def test_recent_defaults_to_last_week(self):
        now = timezone.now()
        fresh = make_request(self.user_sub, requested_at=now - timedelta(days=2))
        month_old = make_request(self.user_sub, requested_at=now - timedelta(days=20))
        make_request(self.user_sub, requested_at=now - timedelta(days=40))

        self.assertEqual(list(VendorAssignmentRequest.objects.recent()), [fresh])
        self.assertCountEqual(VendorAssignmentRequest.objects.recent(days=30), [fresh, month_old])
