import logging
from datetime import timedelta

from django.db.models import Q
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from custom_auth.permissions import IsAdminRole, IsCustomerRole, IsVendorOrAdminRole, IsVendorRole
from custom_auth.throttles import AuthenticatedBurstThrottle
from subscriptions.models import Subscription
from utils.dates import parse_date_param
from utils.error_reporting import report_error
from utils.exceptions import DomainError, validation_error_response
from utils.pagination import paginate_queryset, parse_page_params
from vendors.models import VendorProfile
from . import services
from .models import Order, OrderCreationLog
from .serializers import (
    CancelOrderSerializer,
    ConfirmDeliverySerializer,
    CreateOrdersSerializer,
    OrderCreationLogSerializer,
    OrderDetailSerializer,
    OrderSerializer,
    SkipOrderSerializer,
    UpdateOrderStatusSerializer,
)

logger = logging.getLogger(__name__)


def _filter_orders(orders, params, search_fields):
    """Status, date window and free-text filters shared by the order lists."""
    if params.get('status'):
        orders = orders.filter(status=params['status'])
    if params.get('meal_type'):
        orders = orders.filter(meal_type=params['meal_type'])

    start = parse_date_param(params.get('start_date'), 'start_date')
    end = parse_date_param(params.get('end_date'), 'end_date')
    if start:
        orders = orders.filter(delivery_date__gte=start)
    if end:
        orders = orders.filter(delivery_date__lte=end)
    if not (start or end) and params.get('days'):
        try:
            days = int(params['days'])
        except ValueError:
            raise DomainError('days must be an integer')
        today = timezone.localdate()
        orders = orders.filter(delivery_date__gte=today, delivery_date__lte=today + timedelta(days=days))

    if params.get('search'):
        term = params['search']
        query = Q()
        for field in search_fields:
            query |= Q(**{f'{field}__icontains': term})
        orders = orders.filter(query).distinct()
    return orders


def _order_list(request, orders, search_fields, ordering):
    params = request.query_params
    try:
        orders = _filter_orders(orders, params, search_fields)
    except DomainError as e:
        return e.to_response()
    orders = orders.select_related('vendor', 'user', 'user_subscription__subscription') \
        .prefetch_related('menus').order_by(*ordering)
    page, limit = parse_page_params(params, default_limit=20)
    items, pagination = paginate_queryset(orders, page, limit, total_key='total_orders')
    return Response({
        'orders': OrderSerializer(items, many=True).data,
        'pagination': pagination,
    })


USER_SEARCH_FIELDS = ('order_number', 'skip_reason', 'cancel_reason', 'menus__food_title', 'vendor__business_name')
VENDOR_SEARCH_FIELDS = ('order_number', 'menus__food_title', 'user__username', 'user__first_name')
ADMIN_SEARCH_FIELDS = VENDOR_SEARCH_FIELDS + ('user__email', 'vendor__business_name')


# --------------------------------------------------------------------------- customer

@api_view(['GET'])
@permission_classes([IsCustomerRole])
def my_orders(request):
    orders = Order.objects.for_user(request.user)
    return _order_list(request, orders, USER_SEARCH_FIELDS, ('-delivery_date', '-delivery_time'))


@api_view(['GET'])
@permission_classes([IsCustomerRole])
def my_today_orders(request):
    orders = Order.objects.for_user(request.user).on(timezone.localdate()).live() \
        .select_related('vendor').prefetch_related('menus').order_by('delivery_time')
    return Response({
        'date': timezone.localdate(),
        'orders': OrderSerializer(orders, many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_detail(request, order_id):
    try:
        order = services.get_order_for(request.user, order_id)
    except DomainError as e:
        return e.to_response()
    data = OrderDetailSerializer(order).data
    if order.user_id == request.user.id:
        data.update({
            'can_skip': order.can_skip(),
            'can_cancel': order.can_cancel(),
            'is_today': order.is_today,
            'is_past': order.is_past,
            'is_future': order.is_future,
            'skip_info': order.user_subscription.skip_info(),
        })
    return Response(data)


@api_view(['POST'])
@permission_classes([IsCustomerRole])
@throttle_classes([AuthenticatedBurstThrottle])
def skip_order(request, order_id):
    serializer = SkipOrderSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    try:
        order = services.skip_order(request.user, order_id, serializer.validated_data['skip_reason'])
    except DomainError as e:
        return e.to_response()
    return Response({
        'order': OrderSerializer(order).data,
        'skip_info': order.user_subscription.skip_info(),
        'message': f"{order.meal_type.title()} order skipped successfully. Credits refunded.",
    })


@api_view(['POST'])
@permission_classes([IsCustomerRole])
@throttle_classes([AuthenticatedBurstThrottle])
def cancel_order(request, order_id):
    serializer = CancelOrderSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    try:
        order = services.cancel_order(request.user, order_id, serializer.validated_data['cancel_reason'])
    except DomainError as e:
        return e.to_response()
    return Response({
        'order': OrderSerializer(order).data,
        'message': f"{order.meal_type.title()} order cancelled. Credits have been deducted (no refund).",
    })


# --------------------------------------------------------------------------- vendor

@api_view(['GET'])
@permission_classes([IsVendorRole])
def vendor_orders(request):
    try:
        vendor = request.user.vendor_profile
    except VendorProfile.DoesNotExist:
        return Response({'error': 'Vendor profile not found'}, status=status.HTTP_404_NOT_FOUND)
    orders = Order.objects.for_vendor(vendor)
    return _order_list(request, orders, VENDOR_SEARCH_FIELDS, ('delivery_date', 'delivery_time'))


@api_view(['POST'])
@permission_classes([IsVendorOrAdminRole])
def update_order_status(request, order_id):
    serializer = UpdateOrderStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    data = serializer.validated_data
    try:
        order = services.update_order_status(request.user, order_id, data['status'], data['notes'])
    except DomainError as e:
        return e.to_response()
    return Response({'order': OrderSerializer(order).data})


# --------------------------------------------------------------------------- admin

@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_orders(request):
    orders = Order.objects.all()
    if request.query_params.get('vendor_id'):
        orders = orders.filter(vendor_id=request.query_params['vendor_id'])
    if request.query_params.get('subscription_id'):
        orders = orders.filter(user_subscription__subscription_id=request.query_params['subscription_id'])
    return _order_list(request, orders, ADMIN_SEARCH_FIELDS, ('-delivery_date', '-created_at'))


@api_view(['POST'])
@permission_classes([IsAdminRole])
def confirm_delivery(request, order_id):
    serializer = ConfirmDeliverySerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    try:
        order = services.confirm_delivery(request.user, order_id, serializer.validated_data['notes'])
    except DomainError as e:
        return e.to_response()
    return Response({'order': OrderSerializer(order).data})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def order_creation_logs(request):
    params = request.query_params
    logs = OrderCreationLog.objects.select_related(
        'user', 'user_subscription__subscription', 'order', 'triggered_by'
    )
    try:
        start = parse_date_param(params.get('start_date'), 'start_date')
        end = parse_date_param(params.get('end_date'), 'end_date')
    except DomainError as e:
        return e.to_response()
    if start:
        logs = logs.filter(delivery_date__gte=start)
    if end:
        logs = logs.filter(delivery_date__lte=end)
    if params.get('status'):
        logs = logs.filter(status=params['status'])
    if params.get('reason'):
        logs = logs.filter(reason=params['reason'])
    if params.get('subscription_id'):
        logs = logs.filter(user_subscription__subscription_id=params['subscription_id'])
    if params.get('can_retry') in ('true', 'false'):
        logs = logs.filter(can_retry=params['can_retry'] == 'true')

    page, limit = parse_page_params(params, default_limit=20)
    items, pagination = paginate_queryset(logs, page, limit, total_key='total_logs')
    return Response({
        'logs': OrderCreationLogSerializer(items, many=True).data,
        'pagination': pagination,
    })


@api_view(['POST'])
@permission_classes([IsAdminRole])
def retry_order_creation(request, log_id):
    try:
        order, log = services.retry_failed_order(log_id, triggered_by=request.user)
    except DomainError as e:
        return e.to_response()
    return Response({
        'message': 'Order retry successful',
        'order': OrderSerializer(order).data,
        'log': OrderCreationLogSerializer(log).data,
    })


@api_view(['POST'])
@permission_classes([IsAdminRole])
def create_orders(request):
    """Run order creation now for a date, optionally for one plan only."""
    serializer = CreateOrdersSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    data = serializer.validated_data
    plan = None
    if data.get('subscription_id'):
        plan = Subscription.objects.filter(id=data['subscription_id']).first()
        if plan is None:
            return Response({'error': 'Subscription not found'}, status=status.HTTP_404_NOT_FOUND)
    try:
        summary = services.create_daily_orders(data.get('date'), plan=plan, triggered_by=request.user)
    except Exception as e:
        report_error(e, 'create_orders', {'admin_id': request.user.id})
        return Response({'error': 'Order creation failed'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response(summary)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def order_stats(request):
    today = timezone.localdate()
    try:
        start = parse_date_param(request.query_params.get('start_date'), 'start_date') or today - timedelta(days=30)
        end = parse_date_param(request.query_params.get('end_date'), 'end_date') or today
    except DomainError as e:
        return e.to_response()
    if start > end:
        return Response({'error': 'start_date must be before end_date'}, status=status.HTTP_400_BAD_REQUEST)
    return Response(services.order_stats(start, end))
