import logging
from datetime import timedelta

from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from custom_auth.permissions import IsAdminRole, IsCustomerRole, IsVendorRole
from custom_auth.throttles import AuthenticatedBurstThrottle, AuthenticatedDailyThrottle
from utils.dates import end_of_day, parse_date_param, start_of_day
from utils.error_reporting import report_error
from utils.exceptions import DomainError, validation_error_response
from utils.pagination import paginate_queryset, parse_page_params
from vendor_assignment.serializers import CustomerAssignmentRequestSerializer, VendorSwitchRequestSerializer
from vendors.models import VendorProfile
from . import services
from .models import Subscription, Transaction, UserSubscription
from .serializers import (
    AdminTransactionSerializer,
    AdminUserSubscriptionSerializer,
    CancelSubscriptionSerializer,
    PublicSubscriptionSerializer,
    PurchaseSerializer,
    RefundSerializer,
    SubscriptionSerializer,
    TransactionSerializer,
    UserSubscriptionSerializer,
    VerifyPaymentSerializer,
)

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------- plans

@api_view(['GET'])
@permission_classes([AllowAny])
def active_plans(request):
    plans = Subscription.objects.active()
    params = request.query_params
    if params.get('vendor_type'):
        plans = plans.for_vendor_type(params['vendor_type'])
    if params.get('category'):
        plans = plans.filter(category=params['category'])
    if params.get('duration'):
        plans = plans.filter(duration=params['duration'])
    return Response({'plans': PublicSubscriptionSerializer(plans, many=True).data})


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def plan_list_create(request):
    if request.method == 'POST':
        serializer = SubscriptionSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer)
        plan = serializer.save()
        logger.info(f"Plan {plan.id} '{plan.plan_name}' created by admin {request.user.id}")
        return Response(SubscriptionSerializer(plan).data, status=status.HTTP_201_CREATED)

    plans = Subscription.objects.all()
    params = request.query_params
    if params.get('is_active') in ('true', 'false'):
        plans = plans.filter(is_active=params['is_active'] == 'true')
    if params.get('category'):
        plans = plans.filter(category=params['category'])
    if params.get('search'):
        plans = plans.filter(
            Q(plan_name__icontains=params['search']) | Q(description__icontains=params['search'])
        )
    page, limit = parse_page_params(params)
    items, pagination = paginate_queryset(plans, page, limit, total_key='total_plans')
    return Response({
        'plans': SubscriptionSerializer(items, many=True).data,
        'pagination': pagination,
    })


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def plan_detail(request, plan_id):
    plan = get_object_or_404(Subscription, id=plan_id)
    if request.method == 'GET':
        return Response(SubscriptionSerializer(plan).data)
    if request.method == 'DELETE':
        if plan.purchases.exists():
            return Response(
                {'error': 'Plan has purchases; deactivate it instead'},
                status=status.HTTP_400_BAD_REQUEST
            )
        plan.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = SubscriptionSerializer(plan, data=request.data, partial=True)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    serializer.save()
    return Response(serializer.data)


@api_view(['POST'])
@permission_classes([IsAdminRole])
def toggle_plan(request, plan_id):
    plan = get_object_or_404(Subscription, id=plan_id)
    plan.toggle_active()
    logger.info(f"Plan {plan.id} is_active={plan.is_active} (admin {request.user.id})")
    return Response({'id': plan.id, 'is_active': plan.is_active})


# --------------------------------------------------------------------------- purchase

@api_view(['POST'])
@permission_classes([IsCustomerRole])
@throttle_classes([AuthenticatedBurstThrottle, AuthenticatedDailyThrottle])
def initiate_purchase(request):
    serializer = PurchaseSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    try:
        user_subscription, transaction, client_secret = services.initiate_purchase(
            request.user, serializer.validated_data
        )
    except DomainError as e:
        return e.to_response()
    except Exception as e:
        report_error(e, 'initiate_purchase', {'user_id': request.user.id})
        return Response({'error': 'Failed to initiate purchase'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    plan = user_subscription.subscription
    return Response({
        'user_subscription_id': user_subscription.id,
        'status': user_subscription.status,
        'payment_intent_id': transaction.payment_intent_id,
        'client_secret': client_secret,
        'amount': str(transaction.amount),
        'currency': transaction.currency,
        'subscription': {
            'plan_name': plan.plan_name,
            'duration': plan.duration,
            'duration_days': plan.duration_days,
            'start_date': user_subscription.start_date,
            'end_date': user_subscription.end_date,
        },
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsCustomerRole])
def verify_payment(request):
    serializer = VerifyPaymentSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    data = serializer.validated_data
    try:
        user_subscription, assignment_request = services.verify_payment(
            request.user, data['user_subscription_id'], data['payment_intent_id']
        )
    except DomainError as e:
        return e.to_response()
    except Exception as e:
        report_error(e, 'verify_payment', {'user_id': request.user.id, **data})
        return Response({'error': 'Failed to verify payment'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return Response({
        'message': (
            'Subscription activated successfully. A vendor will be assigned shortly.'
            if assignment_request else 'Subscription is already active'
        ),
        'subscription': UserSubscriptionSerializer(user_subscription).data,
        'assignment_request': (
            CustomerAssignmentRequestSerializer(assignment_request).data if assignment_request else None
        ),
    })


# --------------------------------------------------------------------------- customer

@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_subscriptions(request):
    params = request.query_params
    subscriptions = UserSubscription.objects.for_user(request.user).select_related(
        'subscription', 'vendor', 'promo_code'
    )
    if params.get('status'):
        subscriptions = subscriptions.filter(status=params['status'])
    if params.get('category'):
        subscriptions = subscriptions.filter(subscription__category=params['category'])
    try:
        start = parse_date_param(params.get('start_date'), 'start_date')
        end = parse_date_param(params.get('end_date'), 'end_date')
    except DomainError as e:
        return e.to_response()
    if start:
        subscriptions = subscriptions.filter(start_date__gte=start)
    if end:
        subscriptions = subscriptions.filter(start_date__lte=end)

    page, limit = parse_page_params(params)
    items, pagination = paginate_queryset(subscriptions, page, limit, total_key='total_subscriptions')
    return Response({
        'subscriptions': UserSubscriptionSerializer(items, many=True).data,
        'pagination': pagination,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def subscription_detail(request, user_subscription_id):
    try:
        user_subscription = services.get_user_subscription(request.user, user_subscription_id)
    except DomainError as e:
        return e.to_response()

    credits_pct = 0
    if user_subscription.credits_granted:
        credits_pct = round(user_subscription.credits_used / user_subscription.credits_granted * 100, 2)
    history = user_subscription.vendor_history.select_related('vendor')
    return Response({
        'subscription': UserSubscriptionSerializer(user_subscription).data,
        'analytics': {
            'remaining_days': user_subscription.days_remaining,
            'daily_meal_count': user_subscription.daily_meal_count,
            'total_meals_expected': user_subscription.days_remaining * user_subscription.daily_meal_count,
            'credits_used_percentage': credits_pct,
            **user_subscription.skip_info(),
        },
        'vendor_history': [
            {
                'vendor_id': h.vendor_id,
                'business_name': h.vendor.business_name,
                'assigned_at': h.assigned_at,
                'ended_at': h.ended_at,
            }
            for h in history
        ],
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cancel_subscription(request, user_subscription_id):
    serializer = CancelSubscriptionSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    try:
        user_subscription = services.cancel_subscription(
            request.user, user_subscription_id, serializer.validated_data['reason']
        )
    except DomainError as e:
        return e.to_response()
    return Response({
        'message': 'Subscription cancelled successfully. Refund will be processed within 5-7 business days.',
        'subscription': UserSubscriptionSerializer(user_subscription).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([AuthenticatedBurstThrottle])
def request_vendor_switch(request, user_subscription_id):
    serializer = VendorSwitchRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    data = serializer.validated_data
    try:
        assignment_request = services.request_vendor_switch(
            request.user,
            user_subscription_id,
            reason=data['reason'],
            description=data['description'],
            preferred_vendors=data['preferred_vendor_ids'],
        )
    except DomainError as e:
        return e.to_response()
    return Response({
        'message': 'Vendor switch request submitted successfully. Admin will review and assign a new vendor.',
        'request': CustomerAssignmentRequestSerializer(assignment_request).data,
    }, status=status.HTTP_201_CREATED)


# --------------------------------------------------------------------------- admin / vendor

@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_purchases(request):
    params = request.query_params
    purchases = UserSubscription.objects.select_related(
        'user', 'subscription', 'vendor', 'promo_code', 'transaction'
    )
    if params.get('status'):
        purchases = purchases.filter(status=params['status'])
    if params.get('category'):
        purchases = purchases.filter(subscription__category=params['category'])
    if params.get('vendor_assigned') in ('true', 'false'):
        purchases = purchases.filter(vendor__isnull=params['vendor_assigned'] == 'false')
    if params.get('search'):
        term = params['search']
        purchases = purchases.filter(
            Q(user__username__icontains=term) | Q(user__email__icontains=term)
            | Q(subscription__plan_name__icontains=term) | Q(delivery_pincode=term)
        )
    try:
        start = parse_date_param(params.get('start_date'), 'start_date')
        end = parse_date_param(params.get('end_date'), 'end_date')
    except DomainError as e:
        return e.to_response()
    today = timezone.localdate()
    stats_start = start or today - timedelta(days=30)
    stats_end = end or today
    if start:
        purchases = purchases.filter(created_at__gte=start_of_day(start))
    if end:
        purchases = purchases.filter(created_at__lte=end_of_day(end))

    page, limit = parse_page_params(params)
    items, pagination = paginate_queryset(purchases, page, limit, total_key='total_purchases')
    status_counts = {
        row['status']: row['count']
        for row in UserSubscription.objects.values('status').annotate(count=Count('id'))
    }
    return Response({
        'purchases': AdminUserSubscriptionSerializer(items, many=True).data,
        'pagination': pagination,
        'stats': {
            'by_status': status_counts,
            'revenue': UserSubscription.objects.revenue_stats(start_of_day(stats_start), end_of_day(stats_end)),
            'expiring_soon': UserSubscription.objects.expiring().count(),
        },
    })


@api_view(['GET'])
@permission_classes([IsVendorRole])
def vendor_customers(request):
    """Subscriptions currently assigned to the requesting vendor."""
    vendor = VendorProfile.objects.filter(user=request.user).first()
    if vendor is None:
        return Response({'error': 'Vendor profile not found'}, status=status.HTTP_404_NOT_FOUND)

    customers = UserSubscription.objects.assigned_to(vendor).select_related('user', 'subscription')
    status_filter = request.query_params.get('status', UserSubscription.Status.ACTIVE)
    if status_filter != 'all':
        customers = customers.filter(status=status_filter)
    page, limit = parse_page_params(request.query_params)
    items, pagination = paginate_queryset(customers, page, limit, total_key='total_customers')
    return Response({
        'customers': [
            {
                'user_subscription_id': s.id,
                'customer': s.user.get_full_name() or s.user.username,
                'phone_number': s.user.phone_number,
                'plan_name': s.subscription.plan_name,
                'status': s.status,
                'start_date': s.start_date,
                'end_date': s.end_date,
                'meal_types': s.meal_types,
                'lunch_time': s.lunch_time,
                'dinner_time': s.dinner_time,
                'delivery_address': s.delivery_address,
                'remaining_credits': s.remaining_credits,
            }
            for s in items
        ],
        'pagination': pagination,
    })


# --------------------------------------------------------------------------- transactions

TRANSACTION_SORT_FIELDS = {'created_at', 'amount', 'status'}


def _date_range(params):
    """``(start, end)`` aware datetimes from ``start_date``/``end_date``; either may be None."""
    start = parse_date_param(params.get('start_date'), 'start_date')
    end = parse_date_param(params.get('end_date'), 'end_date')
    return (start_of_day(start) if start else None), (end_of_day(end) if end else None)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_transactions(request):
    params = request.query_params
    transactions = Transaction.objects.for_user(request.user).select_related('subscription')
    try:
        start, end = _date_range(params)
    except DomainError as e:
        return e.to_response()
    transactions = transactions.created_between(start, end)
    if params.get('status'):
        transactions = transactions.filter(status=params['status'])
    if params.get('type'):
        transactions = transactions.filter(transaction_type=params['type'])

    page, limit = parse_page_params(params)
    items, pagination = paginate_queryset(transactions, page, limit, total_key='total_transactions')
    return Response({
        'transactions': TransactionSerializer(items, many=True).data,
        'user_stats': Transaction.objects.for_user(request.user).status_summary(),
        'pagination': pagination,
    })


@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_transactions(request):
    params = request.query_params
    transactions = Transaction.objects.select_related('user', 'subscription', 'promo_code')
    try:
        start, end = _date_range(params)
    except DomainError as e:
        return e.to_response()
    transactions = transactions.created_between(start, end)
    for param, field in (
        ('status', 'status'),
        ('payment_method', 'payment_method'),
        ('type', 'transaction_type'),
        ('user_id', 'user_id'),
        ('subscription_id', 'subscription_id'),
    ):
        if params.get(param):
            transactions = transactions.filter(**{field: params[param]})
    if params.get('search'):
        term = params['search']
        transactions = transactions.filter(
            Q(payment_intent_id__icontains=term) | Q(refund_id__icontains=term)
            | Q(user__username__icontains=term) | Q(user__email__icontains=term)
        )

    sort_by = params.get('sort_by', 'created_at')
    if sort_by not in TRANSACTION_SORT_FIELDS:
        sort_by = 'created_at'
    prefix = '' if params.get('sort_order') == 'asc' else '-'
    transactions = transactions.order_by(f"{prefix}{sort_by}", f"{prefix}id")

    page, limit = parse_page_params(params)
    items, pagination = paginate_queryset(transactions, page, limit, total_key='total_transactions')
    return Response({
        'transactions': AdminTransactionSerializer(items, many=True).data,
        'pagination': pagination,
    })


@api_view(['GET'])
@permission_classes([IsAdminRole])
def transaction_detail(request, transaction_id):
    try:
        transaction = services.get_transaction(transaction_id)
    except DomainError as e:
        return e.to_response()
    return Response({'transaction': AdminTransactionSerializer(transaction).data})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def transaction_stats(request):
    try:
        start, end = _date_range(request.query_params)
    except DomainError as e:
        return e.to_response()
    end = end or end_of_day(timezone.localdate())
    start = start or start_of_day(timezone.localdate() - timedelta(days=30))
    stats = services.transaction_stats(start, end)
    recent = Transaction.objects.created_between(start, end).select_related('user', 'subscription')[:10]
    return Response({
        **stats,
        'recent_transactions': AdminTransactionSerializer(recent, many=True).data,
        'date_range': {'start': start, 'end': end},
    })


@api_view(['GET'])
@permission_classes([IsAdminRole])
def failed_transactions(request):
    params = request.query_params
    try:
        start, end = _date_range(params)
    except DomainError as e:
        return e.to_response()
    failed = Transaction.objects.failed().created_between(start, end).select_related('user', 'subscription')
    page, limit = parse_page_params(params)
    items, pagination = paginate_queryset(failed, page, limit, total_key='total_transactions')
    return Response({
        'failed_transactions': AdminTransactionSerializer(items, many=True).data,
        'failure_reasons': failed.failure_breakdown(),
        'pagination': pagination,
    })


@api_view(['POST'])
@permission_classes([IsAdminRole])
def refund_transaction(request, transaction_id):
    serializer = RefundSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    data = serializer.validated_data
    try:
        transaction = services.refund_transaction(
            transaction_id, request.user, amount=data.get('amount'), reason=data['reason']
        )
    except DomainError as e:
        return e.to_response()
    return Response({
        'message': 'Refund processed successfully',
        'transaction': AdminTransactionSerializer(transaction).data,
    })
