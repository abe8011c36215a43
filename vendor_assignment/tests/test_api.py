from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from location_zones.tests import make_zone
from subscriptions.tests.factories import make_admin, make_user, make_user_subscription
from vendors.tests import make_vendor
from vendor_assignment import services
from vendor_assignment.models import VendorAssignmentRequest


class AssignmentAdminApiTests(TestCase):

    def setUp(self):
        self.zone = make_zone(pincodes=('560001',))
        self.admin = make_admin()
        self.customer = make_user()
        self.user_sub = make_user_subscription(self.customer)
        self.request = services.create_initial_assignment_request(self.user_sub)
        self.vendor = make_vendor()
        self.client = APIClient()
        self.client.force_authenticate(self.admin)

    def test_customer_cannot_use_admin_endpoints(self):
        client = APIClient()
        client.force_authenticate(self.customer)
        for url in (
            reverse('vendor_assignment:pending_requests'),
            reverse('vendor_assignment:assignment_stats'),
            reverse('vendor_assignment:available_vendors', args=[self.request.id]),
        ):
            self.assertEqual(client.get(url).status_code, 403)

        response = client.post(
            reverse('vendor_assignment:assign_vendor', args=[self.request.id]),
            {'vendor_id': self.vendor.id}, format='json'
        )
        self.assertEqual(response.status_code, 403)

    def test_pending_queue(self):
        response = self.client.get(reverse('vendor_assignment:pending_requests'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['pagination']['total_requests'], 1)
        self.assertEqual(response.data['requests'][0]['id'], self.request.id)
        self.assertEqual(response.data['requests'][0]['priority'], 'high')
        self.assertEqual(response.data['stats'][0]['count'], 1)

        response = self.client.get(reverse('vendor_assignment:pending_vendor_switches'))
        self.assertEqual(response.data['pagination']['total_requests'], 0)

    def test_bad_date_filter(self):
        response = self.client.get(reverse('vendor_assignment:all_requests'), {'start_date': '01/02/2026'})
        self.assertEqual(response.status_code, 400)

    def test_available_vendors(self):
        response = self.client.get(reverse('vendor_assignment:available_vendors', args=[self.request.id]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([v['id'] for v in response.data['vendors']], [self.vendor.id])
        self.assertEqual(response.data['vendors'][0]['remaining_capacity'], 10)

    def test_assign_and_reassign(self):
        url = reverse('vendor_assignment:assign_vendor', args=[self.request.id])
        response = self.client.post(url, {'vendor_id': self.vendor.id, 'admin_notes': 'ok'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['request']['status'], 'approved')
        self.assertEqual(response.data['request']['new_vendor']['id'], self.vendor.id)

        response = self.client.post(url, {'vendor_id': self.vendor.id}, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['error'], 'Request has already been processed')

    def test_assign_validation_and_missing_rows(self):
        url = reverse('vendor_assignment:assign_vendor', args=[self.request.id])
        self.assertEqual(self.client.post(url, {}, format='json').status_code, 422)
        self.assertEqual(self.client.post(url, {'vendor_id': 424242}, format='json').status_code, 404)
        missing = reverse('vendor_assignment:assign_vendor', args=[424242])
        self.assertEqual(self.client.post(missing, {'vendor_id': self.vendor.id}, format='json').status_code, 404)

    def test_reject_needs_reason(self):
        url = reverse('vendor_assignment:reject_request', args=[self.request.id])
        self.assertEqual(self.client.post(url, {}, format='json').status_code, 422)
        response = self.client.post(url, {'rejection_reason': 'Outside coverage'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['request']['status'], 'rejected')

    def test_update_priority(self):
        url = reverse('vendor_assignment:update_priority', args=[self.request.id])
        response = self.client.patch(url, {'priority': 'urgent'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['priority'], 'urgent')

        response = self.client.get(reverse('vendor_assignment:urgent_requests'))
        self.assertEqual(response.data['count'], 1)

    def test_request_details_and_zone(self):
        response = self.client.get(reverse('vendor_assignment:request_details', args=[self.request.id]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['subscription']['id'], self.user_sub.id)
        self.assertEqual(response.data['vendor_history'], [])

        response = self.client.get(reverse('vendor_assignment:requests_by_zone', args=[self.zone.id]))
        self.assertEqual(response.data['count'], 1)

    def test_stats(self):
        response = self.client.get(reverse('vendor_assignment:assignment_stats'))
        self.assertEqual(response.status_code, 200)
        self.assertIn('overall_stats', response.data)
        self.assertIn('date_range', response.data)

        response = self.client.get(
            reverse('vendor_assignment:assignment_stats'),
            {'start_date': '2026-05-10', 'end_date': '2026-05-01'}
        )
        self.assertEqual(response.status_code, 400)


class CustomerRequestApiTests(TestCase):

    def setUp(self):
        make_zone(pincodes=('560001',))
        self.customer = make_user()
        self.request = services.create_initial_assignment_request(make_user_subscription(self.customer))
        other = make_user('someone_else')
        self.other_request = services.create_initial_assignment_request(make_user_subscription(other))
        self.client = APIClient()
        self.client.force_authenticate(self.customer)

    def test_my_requests_only_lists_own(self):
        response = self.client.get(reverse('vendor_assignment:my_requests'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([r['id'] for r in response.data['requests']], [self.request.id])
        self.assertNotIn('admin_notes', response.data['requests'][0])

    def test_detail_of_someone_elses_request_is_404(self):
        url = reverse('vendor_assignment:my_request_detail', args=[self.other_request.id])
        self.assertEqual(self.client.get(url).status_code, 404)
        url = reverse('vendor_assignment:my_request_detail', args=[self.request.id])
        response = self.client.get(url)
        self.assertEqual(response.data['request_type'], VendorAssignmentRequest.RequestType.INITIAL_ASSIGNMENT)
