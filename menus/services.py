import logging

from django.db import transaction
from django.utils import timezone

from subscriptions.models import UserSubscription
from utils.exceptions import ConflictError, DomainError
from .models import DailyMeal, Menu

logger = logging.getLogger(__name__)


class MenuError(DomainError):
    pass


def _vendor_type_for(plan):
    types = plan.vendor_types
    return types[0] if len(types) == 1 else ''


def check_menus_for_plan(plan, menu_ids):
    """Every id must be an active, available menu a kitchen on ``plan`` can cook."""
    unique_ids = set(menu_ids)
    if not unique_ids:
        return []
    menus = list(
        Menu.objects.available()
        .for_vendor_types(plan.vendor_types)
        .filter(id__in=unique_ids)
    )
    if len(menus) != len(unique_ids):
        raise MenuError('Some menus are invalid or not available')
    return menus


def set_daily_meal(plan, meal_date, lunch_menu_ids, dinner_menu_ids, created_by, notes=''):
    """
    Publish the lunch and dinner menus for ``plan`` on ``meal_date``.

    A plan has at most one daily meal per date; changing it afterwards goes
    through ``update_daily_meal``.
    """
    if meal_date < timezone.localdate():
        raise MenuError('Cannot set a meal for a past date')
    if not lunch_menu_ids and not dinner_menu_ids:
        raise MenuError('At least one lunch or dinner menu is required')
    if lunch_menu_ids and not plan.lunch_available:
        raise MenuError('This plan does not offer lunch')
    if dinner_menu_ids and not plan.dinner_available:
        raise MenuError('This plan does not offer dinner')
    lunch = check_menus_for_plan(plan, lunch_menu_ids)
    dinner = check_menus_for_plan(plan, dinner_menu_ids)

    if DailyMeal.objects.filter(subscription=plan, meal_date=meal_date).exists():
        raise ConflictError(f"Daily meal already set for this plan on {meal_date:%Y-%m-%d}")

    with transaction.atomic():
        daily_meal = DailyMeal.objects.create(
            subscription=plan,
            meal_date=meal_date,
            vendor_type=_vendor_type_for(plan),
            created_by=created_by,
            notes=notes,
        )
        daily_meal.lunch_menus.set(lunch)
        daily_meal.dinner_menus.set(dinner)
    logger.info(f"Daily meal {daily_meal.id} set for plan {plan.id} on {meal_date} by user {created_by.id}")
    return daily_meal


def update_daily_meal(daily_meal, modified_by, lunch_menu_ids=None, dinner_menu_ids=None, notes=None):
    if daily_meal.meal_date < timezone.localdate():
        raise MenuError('Cannot change a meal for a past date')
    plan = daily_meal.subscription
    lunch = check_menus_for_plan(plan, lunch_menu_ids) if lunch_menu_ids is not None else None
    dinner = check_menus_for_plan(plan, dinner_menu_ids) if dinner_menu_ids is not None else None
    with transaction.atomic():
        daily_meal.update_menus(lunch, dinner, modified_by)
        if notes is not None:
            daily_meal.notes = notes
            daily_meal.save(update_fields=['notes', 'updated_at'])
    logger.info(f"Daily meal {daily_meal.id} updated by user {modified_by.id}")
    return daily_meal


def today_meals_for_user(user, day=None):
    """
    What each of the user's active subscriptions serves on ``day``.

    Only the meal types the customer chose are included.
    """
    day = day or timezone.localdate()
    user_subs = (
        UserSubscription.objects.for_user(user).active()
        .filter(start_date__lte=day)
        .select_related('subscription', 'vendor')
    )
    results = []
    for user_sub in user_subs:
        daily_meal = DailyMeal.objects.for_date(day).filter(subscription=user_sub.subscription_id).first()
        meals = {}
        if daily_meal is not None:
            for meal_type in user_sub.meal_types:
                meals[meal_type] = {
                    'delivery_time': user_sub.meal_time(meal_type),
                    'menus': list(daily_meal.menus_for(meal_type)),
                }
        results.append({
            'user_subscription': user_sub,
            'daily_meal': daily_meal,
            'meals': meals,
        })
    return results
