import logging

from django.db.models import Avg, Count, Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from custom_auth.permissions import IsAdminRole, IsVendorRole
from utils.exceptions import validation_error_response
from utils.pagination import paginate_queryset, parse_page_params
from .models import VendorProfile
from .serializers import VendorProfileSerializer, VendorSelfProfileSerializer, VendorSummarySerializer

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def vendor_list_create(request):
    if request.method == 'POST':
        serializer = VendorProfileSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer)
        vendor = serializer.save()
        logger.info(f"Vendor profile {vendor.id} created for user {vendor.user_id}")
        return Response(VendorProfileSerializer(vendor).data, status=status.HTTP_201_CREATED)

    vendors = VendorProfile.objects.select_related('user')
    params = request.query_params
    if params.get('vendor_type'):
        vendors = vendors.of_type(params['vendor_type'])
    if params.get('is_verified') in ('true', 'false'):
        vendors = vendors.filter(is_verified=params['is_verified'] == 'true')
    if params.get('is_available') in ('true', 'false'):
        vendors = vendors.filter(is_available=params['is_available'] == 'true')
    if params.get('cuisine'):
        vendors = vendors.with_cuisine(params['cuisine'])
    if params.get('search'):
        term = params['search']
        vendors = vendors.filter(
            Q(business_name__icontains=term) | Q(city__icontains=term) | Q(user__username__icontains=term)
        )

    page, limit = parse_page_params(params)
    items, pagination = paginate_queryset(vendors, page, limit, total_key='total_vendors')
    return Response({
        'vendors': VendorProfileSerializer(items, many=True).data,
        'pagination': pagination,
    })


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def vendor_detail(request, vendor_id):
    vendor = get_object_or_404(VendorProfile, id=vendor_id)
    if request.method == 'GET':
        return Response(VendorProfileSerializer(vendor).data)
    if request.method == 'DELETE':
        vendor.delete()
        logger.info(f"Vendor profile {vendor_id} deleted by admin {request.user.id}")
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = VendorProfileSerializer(vendor, data=request.data, partial=True)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    serializer.save()
    return Response(serializer.data)


@api_view(['GET', 'PATCH'])
@permission_classes([IsVendorRole])
def my_vendor_profile(request):
    try:
        vendor = request.user.vendor_profile
    except VendorProfile.DoesNotExist:
        return Response({'error': 'Vendor profile not found'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        return Response(VendorSelfProfileSerializer(vendor).data)

    serializer = VendorSelfProfileSerializer(vendor, data=request.data, partial=True)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    serializer.save()
    return Response(serializer.data)


@api_view(['POST'])
@permission_classes([IsAdminRole])
def verify_vendor(request, vendor_id):
    vendor = get_object_or_404(VendorProfile, id=vendor_id)
    is_verified = request.data.get('is_verified', True)
    if not isinstance(is_verified, bool):
        return Response({'error': 'is_verified must be a boolean'}, status=status.HTTP_400_BAD_REQUEST)
    vendor.verify(is_verified)
    logger.info(f"Vendor {vendor.id} is_verified={is_verified} (admin {request.user.id})")
    return Response(VendorSummarySerializer(vendor).data)


@api_view(['POST'])
@permission_classes([IsAdminRole])
def toggle_vendor_availability(request, vendor_id):
    vendor = get_object_or_404(VendorProfile, id=vendor_id)
    vendor.toggle_availability()
    return Response(VendorSummarySerializer(vendor).data)


@api_view(['POST'])
@permission_classes([IsAdminRole])
def update_vendor_capacity(request, vendor_id):
    vendor = get_object_or_404(VendorProfile, id=vendor_id)
    try:
        order_count = int(request.data.get('order_count'))
    except (TypeError, ValueError):
        return Response({'error': 'order_count must be an integer'}, status=status.HTTP_400_BAD_REQUEST)
    if order_count > 0 and not vendor.has_capacity(order_count):
        return Response(
            {'error': f"Vendor only has capacity for {vendor.remaining_capacity} more orders"},
            status=status.HTTP_400_BAD_REQUEST
        )
    vendor.update_capacity(order_count)
    return Response(VendorSummarySerializer(vendor).data)


@api_view(['POST'])
@permission_classes([IsAdminRole])
def reset_vendor_capacity(request, vendor_id):
    vendor = get_object_or_404(VendorProfile, id=vendor_id)
    vendor.reset_daily_capacity()
    return Response(VendorSummarySerializer(vendor).data)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def vendor_stats(request):
    vendors = VendorProfile.objects.all()
    totals = vendors.aggregate(
        total=Count('id'),
        verified=Count('id', filter=Q(is_verified=True)),
        available=Count('id', filter=Q(is_available=True)),
        average_rating=Avg('rating_average'),
    )
    type_stats = list(vendors.values('vendor_type').annotate(count=Count('id')).order_by('vendor_type'))
    top_vendors = vendors.verified().top_rated()[:5]
    return Response({
        'total_vendors': totals['total'],
        'verified_vendors': totals['verified'],
        'unverified_vendors': totals['total'] - totals['verified'],
        'available_vendors': totals['available'],
        'average_rating': round(float(totals['average_rating'] or 0), 2),
        'type_stats': type_stats,
        'top_vendors': VendorSummarySerializer(top_vendors, many=True).data,
    })
