"""
Tests for complaints: public filing and phone lookup, and the admin endpoints.
"""
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from subscriptions.tests.factories import make_admin, make_user
from .models import Complaint


def make_complaint(phone_number='9876543210', **kwargs):
    defaults = dict(
        title='Cold dal',
        reason='Lunch arrived cold two days in a row',
        name='Asha',
    )
    defaults.update(kwargs)
    return Complaint.objects.create(phone_number=phone_number, **defaults)


class PublicComplaintTests(TestCase):

    def setUp(self):
        self.client = APIClient()

    def test_anyone_can_file(self):
        response = self.client.post(reverse('complaints:create_complaint'), {
            'title': ' Late delivery ',
            'reason': 'Dinner came at 10pm',
            'name': 'Ravi',
            'phone_number': '9123456780',
        }, format='json')
        self.assertEqual(response.status_code, 201)
        complaint = Complaint.objects.get()
        self.assertEqual(complaint.title, 'Late delivery')
        self.assertIsNone(complaint.user)

    def test_signed_in_user_is_recorded(self):
        user = make_user()
        self.client.force_authenticate(user)
        response = self.client.post(reverse('complaints:create_complaint'), {
            'title': 'Wrong menu', 'reason': 'Got paneer instead of dal', 'name': 'C', 'phone_number': '9123456780',
        }, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(Complaint.objects.get().user, user)

    def test_validation(self):
        url = reverse('complaints:create_complaint')
        response = self.client.post(url, {
            'title': 'Late', 'reason': 'Late', 'name': 'Ravi', 'phone_number': '+91 98765',
        }, format='json')
        self.assertEqual(response.status_code, 422)
        self.assertIn('phone_number', response.data['details'])

        response = self.client.post(url, {
            'title': '   ', 'reason': 'Late', 'name': 'Ravi', 'phone_number': '9876543210',
        }, format='json')
        self.assertEqual(response.status_code, 422)
        self.assertFalse(Complaint.objects.exists())

    def test_lookup_by_phone(self):
        make_complaint()
        make_complaint(title='Missing roti')
        make_complaint('9000000000')

        response = self.client.get(reverse('complaints:complaints_by_phone'), {'phone_number': '9876543210'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['pagination']['total_complaints'], 2)
        self.assertEqual(response.data['complaints'][0]['title'], 'Missing roti')

        response = self.client.get(reverse('complaints:complaints_by_phone'))
        self.assertEqual(response.status_code, 422)

    def test_detail_needs_matching_phone(self):
        complaint = make_complaint()
        url = reverse('complaints:complaint_detail', args=[complaint.id])
        self.assertEqual(self.client.get(url).status_code, 404)
        self.assertEqual(self.client.get(url, {'phone_number': '9000000000'}).status_code, 404)

        response = self.client.get(url, {'phone_number': '9876543210'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['complaint']['name'], 'Asha')


class AdminComplaintTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(make_admin())
        self.complaint = make_complaint()
        make_complaint('9000000000')

    def test_list_with_filters(self):
        url = reverse('complaints:admin_complaints')
        response = self.client.get(url)
        self.assertEqual(response.data['pagination']['total_complaints'], 2)

        response = self.client.get(url, {'phone_number': '9000000000'})
        self.assertEqual(response.data['pagination']['total_complaints'], 1)

        self.assertEqual(self.client.get(url, {'start_date': 'yesterday'}).status_code, 400)

    def test_update_and_delete(self):
        url = reverse('complaints:admin_complaint_detail', args=[self.complaint.id])
        response = self.client.patch(url, {'title': 'Cold dal and rice'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['complaint']['title'], 'Cold dal and rice')

        response = self.client.patch(url, {'phone_number': '12345'}, format='json')
        self.assertEqual(response.status_code, 422)

        self.assertEqual(self.client.delete(url).status_code, 200)
        self.assertFalse(Complaint.objects.filter(pk=self.complaint.id).exists())
        self.assertEqual(self.client.delete(url).status_code, 404)

    def test_customers_cannot_manage(self):
        self.client.force_authenticate(make_user())
        self.assertEqual(self.client.get(reverse('complaints:admin_complaints')).status_code, 403)
        url = reverse('complaints:admin_complaint_detail', args=[self.complaint.id])
        self.assertEqual(self.client.delete(url).status_code, 403)
