"""
The vendor assignment workflow.

Requests enter the queue from the purchase flow (initial assignment) or from
a customer asking for a different kitchen (vendor switch). Admins then match
a vendor and approve, or reject. Approval touches three rows (request,
subscription, vendor) and runs in one transaction holding row locks on all of
them, so two admins working the same request cannot both assign it.
"""
import logging
from datetime import timedelta

from django.db import transaction
from django.db.models import Count
from django.utils import timezone

from location_zones.models import LocationZone
from subscriptions.models import Subscription, UserSubscription
from utils.dates import end_of_day, parse_date_param, start_of_day
from utils.exceptions import NotFoundError
from utils.pagination import paginate_queryset, parse_page_params
from vendors.models import VendorProfile
from .models import VendorAssignmentError, VendorAssignmentRequest

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    'requested_at': 'requested_at',
    'processed_at': 'processed_at',
    'status': 'status',
    'request_type': 'request_type',
    'priority': 'priority_rank',
}


def requested_vendor_type_for(plan):
    types = Subscription.vendor_types_for_category(plan.category)
    return types[0] if len(types) == 1 else ''


def _zone_for(user_subscription):
    if user_subscription.delivery_zone_id:
        return user_subscription.delivery_zone
    return LocationZone.find_by_pincode(user_subscription.delivery_pincode).first()


def create_initial_assignment_request(user_subscription):
    request = VendorAssignmentRequest.objects.create(
        user_subscription=user_subscription,
        user=user_subscription.user,
        request_type=VendorAssignmentRequest.RequestType.INITIAL_ASSIGNMENT,
        reason=VendorAssignmentRequest.Reason.INITIAL_PURCHASE,
        description='Initial vendor assignment needed for new subscription purchase',
        requested_vendor_type=requested_vendor_type_for(user_subscription.subscription),
        priority=VendorAssignmentRequest.Priority.HIGH,
        delivery_zone=_zone_for(user_subscription),
    )
    logger.info(f"Initial assignment request {request.id} queued for subscription {user_subscription.id}")
    return request


def create_vendor_switch_request(user_subscription, reason=None, description='', preferred_vendors=None):
    if not user_subscription.is_active:
        raise VendorAssignmentError('Subscription is not active')
    if not user_subscription.is_vendor_assigned:
        raise VendorAssignmentError('No vendor has been assigned to this subscription yet')
    if user_subscription.vendor_switch_used:
        raise VendorAssignmentError('Vendor switch has already been used for this subscription')
    already_pending = VendorAssignmentRequest.objects.for_subscription(user_subscription).pending(
        VendorAssignmentRequest.RequestType.VENDOR_SWITCH
    ).exists()
    if already_pending:
        raise VendorAssignmentError('A vendor switch request is already pending for this subscription')

    request = VendorAssignmentRequest.objects.create(
        user_subscription=user_subscription,
        user=user_subscription.user,
        request_type=VendorAssignmentRequest.RequestType.VENDOR_SWITCH,
        current_vendor=user_subscription.vendor,
        reason=reason or VendorAssignmentRequest.Reason.VENDOR_SWITCH_REQUEST,
        description=description or 'User requested vendor change',
        requested_vendor_type=requested_vendor_type_for(user_subscription.subscription),
        priority=VendorAssignmentRequest.Priority.MEDIUM,
        delivery_zone=_zone_for(user_subscription),
    )
    if preferred_vendors:
        request.preferred_vendors.set(preferred_vendors)
    logger.info(f"Vendor switch request {request.id} filed for subscription {user_subscription.id}")
    return request


def get_request(request_id):
    try:
        return (
            VendorAssignmentRequest.objects
            .select_related(
                'user', 'user_subscription__subscription', 'current_vendor',
                'new_vendor', 'processed_by', 'delivery_zone',
            )
            .get(pk=request_id)
        )
    except VendorAssignmentRequest.DoesNotExist:
        raise NotFoundError('Assignment request not found')


def _filtered(queryset, params):
    for field in ('status', 'request_type', 'priority'):
        if params.get(field):
            queryset = queryset.filter(**{field: params[field]})
    if params.get('delivery_zone'):
        queryset = queryset.filter(delivery_zone_id=params['delivery_zone'])
    start = parse_date_param(params.get('start_date'), 'start_date')
    end = parse_date_param(params.get('end_date'), 'end_date')
    if start:
        queryset = queryset.filter(requested_at__gte=start_of_day(start))
    if end:
        queryset = queryset.filter(requested_at__lte=end_of_day(end))
    return queryset


def _sorted(queryset, params, default):
    sort_by = params.get('sort_by')
    if sort_by not in SORTABLE_FIELDS:
        return default(queryset)
    field = SORTABLE_FIELDS[sort_by]
    prefix = '' if params.get('sort_order') == 'asc' else '-'
    return queryset.order_by(f"{prefix}{field}", 'requested_at', 'id')


def _base_queryset():
    return VendorAssignmentRequest.objects.with_priority_rank().select_related(
        'user', 'user_subscription__subscription', 'current_vendor', 'new_vendor', 'delivery_zone',
    )


def list_requests(params):
    """All requests with filters, sorting and pagination. Newest first by default."""
    queryset = _filtered(_base_queryset(), params)
    queryset = _sorted(queryset, params, lambda qs: qs.order_by('-requested_at', '-id'))
    page, limit = parse_page_params(params, default_limit=20)
    return paginate_queryset(queryset, page, limit, total_key='total_requests')


def pending_requests(params, request_type=None):
    """
    The admin work queue: pending requests, most urgent first.

    Returns ``(items, pagination, stats)`` where stats counts the whole pending
    queue by request type and priority.
    """
    pending = VendorAssignmentRequest.objects.pending(request_type)
    queryset = _filtered(_base_queryset().pending(request_type), {k: v for k, v in params.items() if k != 'status'})
    queryset = _sorted(queryset, params, lambda qs: qs.by_priority())
    page, limit = parse_page_params(params, default_limit=20)
    items, pagination = paginate_queryset(queryset, page, limit, total_key='total_requests')
    stats = list(
        pending.values('request_type', 'priority').annotate(count=Count('id')).order_by('request_type', 'priority')
    )
    return items, pagination, stats


def urgent_requests():
    return list(_base_queryset().urgent().by_priority())


def requests_by_zone(zone_id):
    try:
        zone = LocationZone.objects.get(pk=zone_id)
    except LocationZone.DoesNotExist:
        raise NotFoundError('Zone not found')
    return zone, list(_base_queryset().for_zone(zone).by_priority())


def available_vendors(request):
    """
    Vendors an admin can pick for ``request``.

    Verified, switched on, with capacity left, of a type the plan accepts and
    the zone serves. When both the customer and the vendor have coordinates,
    the vendor's service radius must cover the customer. Preferred vendors come
    first, then rating, then spare capacity.
    """
    user_subscription = request.user_subscription
    plan = user_subscription.subscription
    vendor_types = [request.requested_vendor_type] if request.requested_vendor_type else plan.vendor_types
    zone = request.delivery_zone
    if zone is not None:
        vendor_types = [t for t in vendor_types if zone.supports_vendor_type(t)]

    queryset = VendorProfile.objects.available().filter(vendor_type__in=vendor_types).select_related('user')
    if request.request_type == VendorAssignmentRequest.RequestType.VENDOR_SWITCH and request.current_vendor_id:
        queryset = queryset.exclude(pk=request.current_vendor_id)

    latitude = user_subscription.delivery_latitude
    longitude = user_subscription.delivery_longitude
    preferred_ids = set(request.preferred_vendors.values_list('id', flat=True))

    vendors = []
    for vendor in queryset:
        vendor.distance_km = vendor.distance_to(latitude, longitude)
        if vendor.distance_km is not None and vendor.distance_km > float(vendor.service_radius_km):
            continue
        vendor.is_preferred = vendor.id in preferred_ids
        vendors.append(vendor)

    vendors.sort(key=lambda v: (not v.is_preferred, -v.rating_average, -v.remaining_capacity, v.id))
    return vendors


def assign_vendor(request_id, vendor_id, admin, notes=''):
    with transaction.atomic():
        try:
            request = VendorAssignmentRequest.objects.select_for_update().get(pk=request_id)
        except VendorAssignmentRequest.DoesNotExist:
            raise NotFoundError('Assignment request not found')
        if not request.is_pending:
            raise VendorAssignmentError('Request has already been processed')

        try:
            vendor = VendorProfile.objects.select_for_update().get(pk=vendor_id)
        except VendorProfile.DoesNotExist:
            raise NotFoundError('Vendor not found')
        if not vendor.is_available or not vendor.is_verified:
            raise VendorAssignmentError('Vendor is not available for assignment')
        if not vendor.has_capacity(1):
            raise VendorAssignmentError('Vendor has no capacity left today')

        user_subscription = (
            UserSubscription.objects.select_for_update()
            .select_related('subscription')
            .get(pk=request.user_subscription_id)
        )
        if not user_subscription.is_active:
            raise VendorAssignmentError('Subscription is not active')
        if vendor.vendor_type not in user_subscription.subscription.vendor_types:
            raise VendorAssignmentError(
                f"A {vendor.get_vendor_type_display()} cannot serve a "
                f"{user_subscription.subscription.get_category_display()} plan"
            )

        if request.request_type == VendorAssignmentRequest.RequestType.VENDOR_SWITCH:
            if user_subscription.vendor_id == vendor.id:
                raise VendorAssignmentError('Customer is already assigned to this vendor')
            user_subscription.use_vendor_switch()

        user_subscription.assign_vendor(vendor, assigned_by=admin, reason=request.reason)
        request.approve(admin, vendor, notes)

    logger.info(
        f"Request {request.id} ({request.request_type}) approved by admin {admin.id}: "
        f"subscription {user_subscription.id} -> vendor {vendor.id}"
    )
    return request


def reject_request(request_id, admin, reason, notes=''):
    with transaction.atomic():
        try:
            request = VendorAssignmentRequest.objects.select_for_update().get(pk=request_id)
        except VendorAssignmentRequest.DoesNotExist:
            raise NotFoundError('Assignment request not found')
        request.reject(admin, reason, notes)
    logger.info(f"Request {request.id} rejected by admin {admin.id}: {reason}")
    return request


def update_priority(request_id, priority):
    with transaction.atomic():
        try:
            request = VendorAssignmentRequest.objects.select_for_update().get(pk=request_id)
        except VendorAssignmentRequest.DoesNotExist:
            raise NotFoundError('Assignment request not found')
        request.update_priority(priority)
    return request


def assignment_stats(start_date=None, end_date=None):
    """Dashboard numbers for ``start_date..end_date`` (default: the last 30 days)."""
    today = timezone.localdate()
    start_date = start_date or today - timedelta(days=30)
    end_date = end_date or today
    start, end = start_of_day(start_date), end_of_day(end_date)

    requests = VendorAssignmentRequest.objects
    overall = requests.stats(start, end)
    pending = list(
        requests.pending().values('request_type', 'priority').annotate(count=Count('id'))
        .order_by('request_type', 'priority')
    )

    durations = {}
    processed = requests.filter(
        status__in=[VendorAssignmentRequest.Status.APPROVED, VendorAssignmentRequest.Status.COMPLETED],
        processed_at__gte=start,
        processed_at__lte=end,
    ).values_list('request_type', 'requested_at', 'processed_at')
    for request_type, requested_at, processed_at in processed:
        durations.setdefault(request_type, []).append((processed_at - requested_at).total_seconds() / 3600)
    processing = [
        {
            'request_type': request_type,
            'average_processing_hours': round(sum(hours) / len(hours), 2),
            'count': len(hours),
        }
        for request_type, hours in sorted(durations.items())
    ]

    zones = [
        {
            'zone_id': row['delivery_zone'],
            'zone_name': row['delivery_zone__zone_name'],
            'city': row['delivery_zone__city'],
            'count': row['count'],
        }
        for row in requests.pending()
        .values('delivery_zone', 'delivery_zone__zone_name', 'delivery_zone__city')
        .annotate(count=Count('id'))
        .order_by('-count')
    ]

    return {
        'overall_stats': overall,
        'pending_stats': pending,
        'processing_time_stats': processing,
        'zone_stats': zones,
        'date_range': {'start_date': start_date.isoformat(), 'end_date': end_date.isoformat()},
    }
