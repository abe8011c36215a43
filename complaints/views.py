import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle

from custom_auth.permissions import IsAdminRole
from custom_auth.throttles import AuthenticatedBurstThrottle
from utils.dates import end_of_day, parse_date_param, start_of_day
from utils.exceptions import DomainError, validation_error_response
from utils.pagination import paginate_queryset, parse_page_params
from .models import Complaint
from .serializers import ComplaintSerializer, PhoneLookupSerializer

logger = logging.getLogger(__name__)


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([AnonRateThrottle, AuthenticatedBurstThrottle])
def create_complaint(request):
    serializer = ComplaintSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    user = request.user if request.user.is_authenticated else None
    complaint = serializer.save(user=user)
    logger.info(f"Complaint {complaint.id} filed for {complaint.phone_number}")
    return Response({
        'message': 'Complaint submitted successfully',
        'complaint': ComplaintSerializer(complaint).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([AllowAny])
def complaints_by_phone(request):
    lookup = PhoneLookupSerializer(data=request.query_params)
    if not lookup.is_valid():
        return validation_error_response(lookup)
    complaints = Complaint.objects.for_phone(lookup.validated_data['phone_number'])
    page, limit = parse_page_params(request.query_params, default_limit=20)
    items, pagination = paginate_queryset(complaints, page, limit, total_key='total_complaints')
    return Response({
        'complaints': ComplaintSerializer(items, many=True).data,
        'pagination': pagination,
    })


@api_view(['GET'])
@permission_classes([AllowAny])
def complaint_detail(request, complaint_id):
    """Readable by admins, by the user who filed it, or with the phone number it was filed under."""
    complaint = Complaint.objects.filter(pk=complaint_id).first()
    if complaint is None or not complaint.visible_to(request.user, request.query_params.get('phone_number')):
        return Response({'error': 'Complaint not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response({'complaint': ComplaintSerializer(complaint).data})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_complaints(request):
    params = request.query_params
    complaints = Complaint.objects.select_related('user')
    if params.get('phone_number'):
        complaints = complaints.for_phone(params['phone_number'])
    try:
        start = parse_date_param(params.get('start_date'), 'start_date')
        end = parse_date_param(params.get('end_date'), 'end_date')
    except DomainError as e:
        return e.to_response()
    if start:
        complaints = complaints.filter(created_at__gte=start_of_day(start))
    if end:
        complaints = complaints.filter(created_at__lte=end_of_day(end))

    page, limit = parse_page_params(params, default_limit=20)
    items, pagination = paginate_queryset(complaints, page, limit, total_key='total_complaints')
    return Response({
        'complaints': ComplaintSerializer(items, many=True).data,
        'pagination': pagination,
        'filters': {
            'phone_number': params.get('phone_number'),
            'start_date': start,
            'end_date': end,
        },
    })


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def admin_complaint_detail(request, complaint_id):
    complaint = Complaint.objects.filter(pk=complaint_id).first()
    if complaint is None:
        return Response({'error': 'Complaint not found'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'DELETE':
        complaint.delete()
        logger.info(f"Complaint {complaint_id} deleted by admin {request.user.id}")
        return Response({'message': 'Complaint deleted successfully'})

    serializer = ComplaintSerializer(complaint, data=request.data, partial=True)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    serializer.save()
    return Response({
        'message': 'Complaint updated successfully',
        'complaint': serializer.data,
    })
