from decimal import Decimal

from django.utils import timezone

from menus.models import DailyMeal, Menu


def make_menu(food_title='Rajma Chawal', **kwargs):
    defaults = dict(
        image_url='https://cdn.example.com/rajma.jpg',
        price=Decimal('120.00'),
        short_description='Kidney beans curry with steamed rice',
        items=[{'name': 'Rajma', 'quantity': 200, 'unit': 'g'}, {'name': 'Rice', 'quantity': 250, 'unit': 'g'}],
        vendor_category='home_chef',
        cuisine='North Indian',
        prep_time_minutes=40,
        calories=650,
        dietary_options=['vegetarian'],
        tags=['comfort', 'punjabi'],
    )
    defaults.update(kwargs)
    return Menu.objects.create(food_title=food_title, **defaults)


def make_daily_meal(plan, meal_date=None, lunch=(), dinner=(), created_by=None):
    daily_meal = DailyMeal.objects.create(
        subscription=plan,
        meal_date=meal_date or timezone.localdate(),
        created_by=created_by,
    )
    daily_meal.lunch_menus.set(lunch)
    daily_meal.dinner_menus.set(dinner)
    return daily_meal
