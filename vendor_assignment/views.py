import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from custom_auth.permissions import IsAdminRole
from utils.dates import parse_date_param
from utils.error_reporting import report_error
from utils.exceptions import DomainError, validation_error_response
from utils.pagination import paginate_queryset, parse_page_params
from . import services
from .models import VendorAssignmentRequest
from .serializers import (
    AssignVendorSerializer,
    AvailableVendorSerializer,
    CustomerAssignmentRequestSerializer,
    RejectRequestSerializer,
    UpdatePrioritySerializer,
    VendorAssignmentRequestSerializer,
)

logger = logging.getLogger(__name__)


def _list_response(items, pagination, **extra):
    body = {
        'requests': VendorAssignmentRequestSerializer(items, many=True).data,
        'pagination': pagination,
    }
    body.update(extra)
    return Response(body)


# --------------------------------------------------------------------------- admin

@api_view(['GET'])
@permission_classes([IsAdminRole])
def all_requests(request):
    try:
        items, pagination = services.list_requests(request.query_params)
    except DomainError as e:
        return e.to_response()
    return _list_response(items, pagination)


def _pending(request, request_type=None):
    try:
        items, pagination, stats = services.pending_requests(request.query_params, request_type)
    except DomainError as e:
        return e.to_response()
    return _list_response(items, pagination, stats=stats)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def pending_requests(request):
    """The work queue, urgent first and oldest first within a priority."""
    return _pending(request, request.query_params.get('request_type') or None)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def pending_initial_assignments(request):
    return _pending(request, VendorAssignmentRequest.RequestType.INITIAL_ASSIGNMENT)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def pending_vendor_switches(request):
    return _pending(request, VendorAssignmentRequest.RequestType.VENDOR_SWITCH)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def urgent_requests(request):
    items = services.urgent_requests()
    return Response({
        'requests': VendorAssignmentRequestSerializer(items, many=True).data,
        'count': len(items),
    })


@api_view(['GET'])
@permission_classes([IsAdminRole])
def requests_by_zone(request, zone_id):
    try:
        zone, items = services.requests_by_zone(zone_id)
    except DomainError as e:
        return e.to_response()
    return Response({
        'zone': {'id': zone.id, 'zone_name': zone.zone_name, 'city': zone.city},
        'requests': VendorAssignmentRequestSerializer(items, many=True).data,
        'count': len(items),
    })


@api_view(['GET'])
@permission_classes([IsAdminRole])
def request_details(request, request_id):
    try:
        assignment_request = services.get_request(request_id)
    except DomainError as e:
        return e.to_response()
    user_subscription = assignment_request.user_subscription
    history = user_subscription.vendor_history.select_related('vendor')
    return Response({
        'request': VendorAssignmentRequestSerializer(assignment_request).data,
        'subscription': {
            'id': user_subscription.id,
            'status': user_subscription.status,
            'plan_name': user_subscription.subscription.plan_name,
            'category': user_subscription.subscription.category,
            'start_date': user_subscription.start_date,
            'end_date': user_subscription.end_date,
            'remaining_credits': user_subscription.remaining_credits,
            'vendor_switch_used': user_subscription.vendor_switch_used,
            'delivery_address': user_subscription.delivery_address,
            'meal_types': user_subscription.meal_types,
        },
        'vendor_history': [
            {
                'vendor_id': h.vendor_id,
                'business_name': h.vendor.business_name,
                'assigned_at': h.assigned_at,
                'ended_at': h.ended_at,
                'reason': h.reason,
            }
            for h in history
        ],
    })


@api_view(['GET'])
@permission_classes([IsAdminRole])
def available_vendors(request, request_id):
    try:
        assignment_request = services.get_request(request_id)
    except DomainError as e:
        return e.to_response()
    vendors = services.available_vendors(assignment_request)
    return Response({
        'request_id': assignment_request.id,
        'vendor_types': (
            [assignment_request.requested_vendor_type] if assignment_request.requested_vendor_type
            else assignment_request.user_subscription.subscription.vendor_types
        ),
        'vendors': AvailableVendorSerializer(vendors, many=True).data,
        'count': len(vendors),
    })


@api_view(['POST'])
@permission_classes([IsAdminRole])
def assign_vendor(request, request_id):
    serializer = AssignVendorSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    data = serializer.validated_data
    try:
        assignment_request = services.assign_vendor(
            request_id, data['vendor_id'], request.user, data['admin_notes']
        )
    except DomainError as e:
        return e.to_response()
    except Exception as e:
        report_error(e, 'assign_vendor', {'request_id': request_id, 'admin_id': request.user.id})
        return Response({'error': 'Failed to assign vendor'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return Response({
        'message': 'Vendor assigned successfully',
        'request': VendorAssignmentRequestSerializer(assignment_request).data,
    })


@api_view(['POST'])
@permission_classes([IsAdminRole])
def reject_request(request, request_id):
    serializer = RejectRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    data = serializer.validated_data
    try:
        assignment_request = services.reject_request(
            request_id, request.user, data['rejection_reason'], data['admin_notes']
        )
    except DomainError as e:
        return e.to_response()
    return Response({
        'message': 'Request rejected',
        'request': VendorAssignmentRequestSerializer(assignment_request).data,
    })


@api_view(['PATCH'])
@permission_classes([IsAdminRole])
def update_priority(request, request_id):
    serializer = UpdatePrioritySerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    try:
        assignment_request = services.update_priority(request_id, serializer.validated_data['priority'])
    except DomainError as e:
        return e.to_response()
    return Response(VendorAssignmentRequestSerializer(assignment_request).data)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def assignment_stats(request):
    try:
        start = parse_date_param(request.query_params.get('start_date'), 'start_date')
        end = parse_date_param(request.query_params.get('end_date'), 'end_date')
    except DomainError as e:
        return e.to_response()
    if start and end and start > end:
        return Response({'error': 'start_date must be before end_date'}, status=status.HTTP_400_BAD_REQUEST)
    return Response(services.assignment_stats(start, end))


# --------------------------------------------------------------------------- customer

@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_requests(request):
    requests = VendorAssignmentRequest.objects.for_user(request.user).select_related(
        'user_subscription__subscription', 'current_vendor', 'new_vendor', 'delivery_zone'
    )
    if request.query_params.get('status'):
        requests = requests.filter(status=request.query_params['status'])
    page, limit = parse_page_params(request.query_params)
    items, pagination = paginate_queryset(requests, page, limit, total_key='total_requests')
    return Response({
        'requests': CustomerAssignmentRequestSerializer(items, many=True).data,
        'pagination': pagination,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_request_detail(request, request_id):
    try:
        assignment_request = VendorAssignmentRequest.objects.for_user(request.user).get(pk=request_id)
    except VendorAssignmentRequest.DoesNotExist:
        return Response({'error': 'Assignment request not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(CustomerAssignmentRequestSerializer(assignment_request).data)
