from django.http import QueryDict
from django.test import TestCase

from vendors.models import VendorProfile
from vendors.tests import make_vendor
from .pagination import paginate_queryset, parse_page_params


class PaginationTests(TestCase):

    def setUp(self):
        for name in ('amma', 'bhabhi', 'chachi', 'dadi', 'emma'):
            make_vendor(name)
        self.vendors = VendorProfile.objects.order_by('business_name')

    def test_parse_page_params_clamps(self):
        self.assertEqual(parse_page_params(QueryDict('page=0&limit=500')), (1, 100))
        self.assertEqual(parse_page_params(QueryDict('page=x&limit=y')), (1, 10))
        self.assertEqual(parse_page_params(QueryDict('page=3&limit=2')), (3, 2))

    def test_middle_and_last_page(self):
        items, pagination = paginate_queryset(self.vendors, 2, 2, total_key='total_vendors')
        self.assertEqual([v.business_name for v in items], ['Chachi Kitchen', 'Dadi Kitchen'])
        self.assertEqual(pagination, {
            'current_page': 2,
            'total_pages': 3,
            'total_vendors': 5,
            'has_next_page': True,
            'has_prev_page': True,
        })

        items, pagination = paginate_queryset(self.vendors, 3, 2)
        self.assertEqual(len(items), 1)
        self.assertFalse(pagination['has_next_page'])

    def test_page_past_the_end_is_empty(self):
        items, pagination = paginate_queryset(self.vendors, 9, 2)
        self.assertEqual(items, [])
        self.assertEqual(pagination['total_pages'], 3)

    def test_empty_queryset(self):
        items, pagination = paginate_queryset(VendorProfile.objects.none(), 1, 10)
        self.assertEqual(items, [])
        self.assertEqual(pagination['total_pages'], 0)
        self.assertEqual(pagination['total_items'], 0)
        self.assertFalse(pagination['has_next_page'])
