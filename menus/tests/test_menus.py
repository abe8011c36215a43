from datetime import timedelta

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from menus import services
from menus.models import DailyMeal, Menu
from orders.models import Order
from orders.services import create_order_for_subscription
from subscriptions.models import Subscription
from subscriptions.tests.factories import make_admin, make_plan, make_user, make_user_subscription
from utils.exceptions import ConflictError
from vendors.tests import make_vendor
from .factories import make_daily_meal, make_menu


class MenuQueryTests(TestCase):

    def test_available_and_filters(self):
        rajma = make_menu()
        biryani = make_menu(
            'Chicken Biryani', vendor_category='food_vendor', cuisine='Hyderabadi',
            dietary_options=['non-vegetarian', 'halal'], tags=['spicy'],
        )
        make_menu('Old Thali', is_active=False)
        make_menu('Sold Out Dal', is_available=False)

        self.assertEqual(set(Menu.objects.available()), {rajma, biryani})
        self.assertEqual(list(Menu.objects.with_dietary_option('halal')), [biryani])
        self.assertEqual(list(Menu.objects.with_tag('spicy')), [biryani])
        self.assertEqual(list(Menu.objects.available().search('hyderabadi')), [biryani])
        self.assertEqual(list(Menu.objects.for_vendor_types(['food_vendor'])), [biryani])

    def test_suits_plan(self):
        menu = make_menu(vendor_category='food_vendor')
        self.assertTrue(menu.suits_plan(make_plan()))
        self.assertFalse(menu.suits_plan(make_plan(category=Subscription.Category.HOME_CHEF_SPECIFIC)))


class DailyMealServiceTests(TestCase):

    def setUp(self):
        self.admin = make_admin()
        self.plan = make_plan()
        self.lunch = make_menu()
        self.dinner = make_menu('Paneer Tikka', calories=500)
        self.tomorrow = timezone.localdate() + timedelta(days=1)

    def test_set_daily_meal(self):
        daily_meal = services.set_daily_meal(
            self.plan, self.tomorrow, [self.lunch.id], [self.dinner.id], self.admin, notes='Festive'
        )
        self.assertEqual(list(daily_meal.lunch_menus.all()), [self.lunch])
        self.assertEqual(list(daily_meal.dinner_menus.all()), [self.dinner])
        self.assertEqual(daily_meal.vendor_type, '')
        self.assertTrue(daily_meal.is_for_future_date)

    def test_one_daily_meal_per_plan_and_date(self):
        services.set_daily_meal(self.plan, self.tomorrow, [self.lunch.id], [], self.admin)
        with self.assertRaises(ConflictError):
            services.set_daily_meal(self.plan, self.tomorrow, [self.lunch.id], [], self.admin)

    def test_menus_must_suit_plan(self):
        plan = make_plan(plan_name='Vendor Only', category=Subscription.Category.FOOD_VENDOR_SPECIFIC)
        with self.assertRaisesMessage(services.MenuError, 'invalid or not available'):
            services.set_daily_meal(plan, self.tomorrow, [self.lunch.id], [], self.admin)

        unavailable = make_menu('Off Menu', is_available=False)
        with self.assertRaisesMessage(services.MenuError, 'invalid or not available'):
            services.set_daily_meal(self.plan, self.tomorrow, [unavailable.id], [], self.admin)

    def test_rejects_past_date_and_empty_meal(self):
        yesterday = timezone.localdate() - timedelta(days=1)
        with self.assertRaisesMessage(services.MenuError, 'past date'):
            services.set_daily_meal(self.plan, yesterday, [self.lunch.id], [], self.admin)
        with self.assertRaisesMessage(services.MenuError, 'At least one'):
            services.set_daily_meal(self.plan, self.tomorrow, [], [], self.admin)

    def test_meal_type_must_be_offered(self):
        plan = make_plan(plan_name='Lunch Only', dinner_available=False)
        with self.assertRaisesMessage(services.MenuError, 'does not offer dinner'):
            services.set_daily_meal(plan, self.tomorrow, [], [self.dinner.id], self.admin)

    def test_update_daily_meal(self):
        daily_meal = make_daily_meal(self.plan, self.tomorrow, lunch=[self.lunch])
        services.update_daily_meal(daily_meal, self.admin, dinner_menu_ids=[self.dinner.id], notes='Added dinner')
        daily_meal.refresh_from_db()
        self.assertEqual(list(daily_meal.lunch_menus.all()), [self.lunch])
        self.assertEqual(list(daily_meal.dinner_menus.all()), [self.dinner])
        self.assertEqual(daily_meal.last_modified_by, self.admin)
        self.assertEqual(daily_meal.notes, 'Added dinner')

    def test_today_meals_for_user(self):
        user = make_user()
        make_user_subscription(user, self.plan)
        make_daily_meal(self.plan, lunch=[self.lunch], dinner=[self.dinner])

        [entry] = services.today_meals_for_user(user)
        self.assertEqual(list(entry['meals']), ['lunch'])
        self.assertEqual(entry['meals']['lunch']['menus'], [self.lunch])


class MenuApiTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.admin = make_admin()

    def test_customer_can_browse_but_not_create(self):
        make_menu()
        make_menu('Hidden', is_active=False)
        self.client.force_authenticate(make_user())
        response = self.client.get(reverse('menus:menu_list_create'), {'search': 'rajma'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['pagination']['total_menus'], 1)

        response = self.client.post(reverse('menus:menu_list_create'), {}, format='json')
        self.assertEqual(response.status_code, 403)

    def test_admin_creates_menu(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post(reverse('menus:menu_list_create'), {
            'food_title': 'Masala Dosa',
            'image_url': 'https://cdn.example.com/dosa.jpg',
            'price': '90.00',
            'short_description': 'Crisp dosa with potato masala',
            'items': [{'name': 'Dosa', 'quantity': '2', 'unit': 'pcs'}],
            'vendor_category': 'food_vendor',
            'cuisine': 'South Indian',
            'prep_time_minutes': 20,
            'calories': 420,
            'dietary_options': ['vegetarian'],
        }, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(Menu.objects.get().items, [{'name': 'Dosa', 'quantity': 2.0, 'unit': 'pcs'}])

        response = self.client.post(reverse('menus:menu_list_create'), {
            'food_title': 'x' * 61,
            'dietary_options': ['paleo'],
        }, format='json')
        self.assertEqual(response.status_code, 422)
        self.assertIn('food_title', response.data['details'])
        self.assertIn('dietary_options', response.data['details'])

    def test_delete_menu_in_use_deactivates(self):
        self.client.force_authenticate(self.admin)
        menu = make_menu()
        make_daily_meal(make_plan(), lunch=[menu])
        response = self.client.delete(reverse('menus:menu_detail', args=[menu.id]))
        self.assertEqual(response.status_code, 200)
        menu.refresh_from_db()
        self.assertFalse(menu.is_active)

    def test_bulk_availability(self):
        self.client.force_authenticate(self.admin)
        menus = [make_menu(), make_menu('Chole Bhature')]
        response = self.client.post(reverse('menus:bulk_update_availability'), {
            'menu_ids': [m.id for m in menus], 'is_available': False,
        }, format='json')
        self.assertEqual(response.data['modified_count'], 2)
        self.assertFalse(Menu.objects.available().exists())

    def test_setting_today_meal_creates_orders(self):
        plan = make_plan()
        menu = make_menu()
        make_user_subscription(make_user(), plan, vendor=make_vendor(), vendor_type='home_chef')
        self.client.force_authenticate(self.admin)

        response = self.client.post(reverse('menus:daily_meal_list_create'), {
            'subscription_id': plan.id,
            'lunch_menu_ids': [menu.id],
        }, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['order_creation']['orders_created'], 1)
        self.assertEqual(Order.objects.get().menus.get(), menu)

        response = self.client.post(reverse('menus:daily_meal_list_create'), {
            'subscription_id': plan.id,
            'lunch_menu_ids': [menu.id],
        }, format='json')
        self.assertEqual(response.status_code, 409)

    def test_future_meal_waits_for_order_run(self):
        plan = make_plan()
        menu = make_menu()
        self.client.force_authenticate(self.admin)
        response = self.client.post(reverse('menus:daily_meal_list_create'), {
            'subscription_id': plan.id,
            'meal_date': (timezone.localdate() + timedelta(days=2)).isoformat(),
            'lunch_menu_ids': [menu.id],
        }, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertIsNone(response.data['order_creation'])

        response = self.client.get(reverse('menus:daily_meal_list_create'))
        self.assertEqual(response.data['pagination']['total_meals'], 0)
        self.assertEqual(response.data['query_type'], 'today')

    def test_daily_meal_with_orders_cannot_be_deleted(self):
        plan = make_plan()
        daily_meal = make_daily_meal(plan, lunch=[make_menu()])
        user_sub = make_user_subscription(make_user(), plan, vendor=make_vendor(), vendor_type='home_chef')
        create_order_for_subscription(user_sub, daily_meal.meal_date, 'lunch')

        self.client.force_authenticate(self.admin)
        response = self.client.delete(reverse('menus:daily_meal_detail', args=[daily_meal.id]))
        self.assertEqual(response.status_code, 400)
        self.assertTrue(DailyMeal.objects.filter(id=daily_meal.id).exists())

    def test_my_today_meal(self):
        user = make_user()
        plan = make_plan()
        make_user_subscription(user, plan)
        make_daily_meal(plan, lunch=[make_menu()])
        self.client.force_authenticate(user)

        response = self.client.get(reverse('menus:my_today_meal'))
        self.assertEqual(response.status_code, 200)
        [entry] = response.data['subscriptions']
        self.assertTrue(entry['is_meal_set'])
        self.assertEqual(entry['meals']['lunch']['delivery_time'], '12:30')
        self.assertEqual(entry['meals']['lunch']['menus'][0]['food_title'], 'Rajma Chawal')
