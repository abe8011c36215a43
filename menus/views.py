import logging

from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from custom_auth.permissions import IsAdminRole
from orders.services import create_orders_for_daily_meal
from subscriptions.models import Subscription
from utils.dates import parse_date_param
from utils.error_reporting import report_error
from utils.exceptions import DomainError, validation_error_response
from utils.pagination import paginate_queryset, parse_page_params
from . import services
from .models import DailyMeal, Menu
from .serializers import (
    DailyMealSerializer,
    MenuBriefSerializer,
    MenuSerializer,
    SetDailyMealSerializer,
    UpdateDailyMealSerializer,
)

logger = logging.getLogger(__name__)

MENU_SORT_FIELDS = {'created_at', 'price', 'rating_average', 'food_title', 'calories', 'prep_time_minutes'}


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def menu_list_create(request):
    if request.method == 'POST':
        if not request.user.is_admin_role:
            return Response({'error': 'Admin access required'}, status=status.HTTP_403_FORBIDDEN)
        serializer = MenuSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer)
        menu = serializer.save()
        logger.info(f"Menu {menu.id} '{menu.food_title}' created by admin {request.user.id}")
        return Response(MenuSerializer(menu).data, status=status.HTTP_201_CREATED)

    params = request.query_params
    menus = Menu.objects.all()
    if not (request.user.is_admin_role and params.get('include_inactive') == 'true'):
        menus = menus.filter(is_active=True)
    if params.get('vendor_category'):
        menus = menus.filter(vendor_category=params['vendor_category'])
    if params.get('cuisine'):
        menus = menus.filter(cuisine__icontains=params['cuisine'])
    if params.get('is_available') in ('true', 'false'):
        menus = menus.filter(is_available=params['is_available'] == 'true')
    for option in filter(None, (o.strip() for o in params.get('dietary_options', '').split(','))):
        menus = menus.with_dietary_option(option)
    for tag in filter(None, (t.strip() for t in params.get('tags', '').split(','))):
        menus = menus.with_tag(tag)
    if params.get('search'):
        menus = menus.search(params['search'])

    sort_by = params.get('sort_by', 'created_at')
    if sort_by not in MENU_SORT_FIELDS:
        sort_by = 'created_at'
    menus = menus.order_by(sort_by if params.get('sort_order') == 'asc' else f'-{sort_by}', 'id')

    page, limit = parse_page_params(params)
    items, pagination = paginate_queryset(menus, page, limit, total_key='total_menus')
    return Response({
        'menus': MenuSerializer(items, many=True).data,
        'pagination': pagination,
    })


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def menu_detail(request, menu_id):
    menu = get_object_or_404(Menu, id=menu_id)
    if request.method == 'GET':
        if not menu.is_active and not request.user.is_admin_role:
            return Response({'error': 'Menu item not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(MenuSerializer(menu).data)

    if not request.user.is_admin_role:
        return Response({'error': 'Admin access required'}, status=status.HTTP_403_FORBIDDEN)
    if request.method == 'DELETE':
        if menu.lunch_daily_meals.exists() or menu.dinner_daily_meals.exists():
            # Past orders point at it; hide it instead
            menu.is_active = False
            menu.save(update_fields=['is_active', 'updated_at'])
            return Response({'message': 'Menu item is in use and has been deactivated'})
        menu.delete()
        logger.info(f"Menu {menu_id} deleted by admin {request.user.id}")
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = MenuSerializer(menu, data=request.data, partial=True)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    serializer.save()
    return Response(serializer.data)


@api_view(['POST'])
@permission_classes([IsAdminRole])
def toggle_menu_availability(request, menu_id):
    menu = get_object_or_404(Menu, id=menu_id)
    menu.toggle_availability()
    return Response({
        'menu': MenuBriefSerializer(menu).data,
        'is_available': menu.is_available,
        'message': f"Menu item {'enabled' if menu.is_available else 'disabled'} successfully",
    })


@api_view(['POST'])
@permission_classes([IsAdminRole])
def bulk_update_availability(request):
    menu_ids = request.data.get('menu_ids')
    is_available = request.data.get('is_available')
    if not isinstance(menu_ids, list) or not menu_ids:
        return Response({'error': 'menu_ids must be a non-empty list'}, status=status.HTTP_400_BAD_REQUEST)
    if not isinstance(is_available, bool):
        return Response({'error': 'is_available must be a boolean'}, status=status.HTTP_400_BAD_REQUEST)
    updated = Menu.objects.filter(id__in=menu_ids).update(is_available=is_available, updated_at=timezone.now())
    return Response({'message': f"{updated} menus updated successfully", 'modified_count': updated})


# --------------------------------------------------------------------------- daily meals

@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def daily_meal_list_create(request):
    if request.method == 'POST':
        return _set_daily_meal(request)

    params = request.query_params
    try:
        start = parse_date_param(params.get('start_date'), 'start_date')
        end = parse_date_param(params.get('end_date'), 'end_date')
    except DomainError as e:
        return e.to_response()
    meals = DailyMeal.objects.select_related('subscription', 'created_by').prefetch_related(
        'lunch_menus', 'dinner_menus'
    )
    if params.get('is_active') != 'all':
        meals = meals.filter(is_active=params.get('is_active', 'true') == 'true')
    if start or end:
        if start:
            meals = meals.filter(meal_date__gte=start)
        if end:
            meals = meals.filter(meal_date__lte=end)
    else:
        meals = meals.filter(meal_date=timezone.localdate())
    if params.get('subscription_id'):
        meals = meals.filter(subscription_id=params['subscription_id'])
    if params.get('vendor_type'):
        meals = meals.filter(vendor_type=params['vendor_type'])
    meals = meals.order_by('meal_date' if params.get('sort_order') == 'asc' else '-meal_date', 'id')

    page, limit = parse_page_params(params, default_limit=50)
    items, pagination = paginate_queryset(meals, page, limit, total_key='total_meals')
    return Response({
        'meals': DailyMealSerializer(items, many=True).data,
        'pagination': pagination,
        'query_type': 'date_range' if (start or end) else 'today',
    })


def _set_daily_meal(request):
    serializer = SetDailyMealSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    data = serializer.validated_data
    meal_date = data.get('meal_date') or timezone.localdate()
    try:
        daily_meal = services.set_daily_meal(
            data['plan'], meal_date, data['lunch_menu_ids'], data['dinner_menu_ids'],
            created_by=request.user, notes=data['notes'],
        )
    except DomainError as e:
        return e.to_response()

    order_creation = None
    if daily_meal.is_for_today:
        # Orders for today are cut straight away; later dates wait for the morning job
        try:
            order_creation = create_orders_for_daily_meal(daily_meal, triggered_by=request.user)
        except Exception as e:
            report_error(e, 'set_daily_meal', {'daily_meal_id': daily_meal.id})
    return Response({
        'daily_meal': DailyMealSerializer(daily_meal).data,
        'order_creation': order_creation,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def daily_meal_detail(request, meal_id):
    daily_meal = get_object_or_404(DailyMeal.objects.select_related('subscription'), id=meal_id)
    if request.method == 'GET':
        return Response(DailyMealSerializer(daily_meal).data)
    if request.method == 'DELETE':
        if daily_meal.orders.exists():
            return Response(
                {'error': 'Orders have been created from this meal; deactivate it instead'},
                status=status.HTTP_400_BAD_REQUEST
            )
        daily_meal.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = UpdateDailyMealSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    data = serializer.validated_data
    try:
        services.update_daily_meal(
            daily_meal, request.user,
            lunch_menu_ids=data.get('lunch_menu_ids'),
            dinner_menu_ids=data.get('dinner_menu_ids'),
            notes=data.get('notes'),
        )
    except DomainError as e:
        return e.to_response()
    if 'is_active' in data:
        daily_meal.is_active = data['is_active']
        daily_meal.save(update_fields=['is_active', 'updated_at'])
    return Response(DailyMealSerializer(daily_meal).data)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def available_menus_for_plan(request, plan_id):
    plan = get_object_or_404(Subscription, id=plan_id)
    menus = Menu.objects.available().for_vendor_types(plan.vendor_types).order_by('-rating_average', 'food_title')
    return Response({
        'subscription': {'id': plan.id, 'plan_name': plan.plan_name, 'category': plan.category},
        'menus': MenuSerializer(menus, many=True).data,
        'total': len(menus),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_today_meal(request):
    """Today's menus for each of the customer's active subscriptions."""
    day = timezone.localdate()
    results = services.today_meals_for_user(request.user, day)
    return Response({
        'date': day,
        'subscriptions': [
            {
                'user_subscription_id': entry['user_subscription'].id,
                'plan_name': entry['user_subscription'].subscription.plan_name,
                'is_meal_set': entry['daily_meal'] is not None,
                'notes': entry['daily_meal'].notes if entry['daily_meal'] else '',
                'meals': {
                    meal_type: {
                        'delivery_time': meal['delivery_time'].strftime('%H:%M') if meal['delivery_time'] else None,
                        'menus': MenuBriefSerializer(meal['menus'], many=True).data,
                    }
                    for meal_type, meal in entry['meals'].items()
                },
            }
            for entry in results
        ],
    })
