import logging

from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from custom_auth.permissions import IsAdminRole
from utils.exceptions import validation_error_response
from utils.pagination import paginate_queryset, parse_page_params
from .geo import ensure_zone_coordinates
from .models import LocationZone
from .serializers import (
    DeliveryFeeSerializer,
    LocationZoneSerializer,
    SubscriptionDeliveryCheckSerializer,
)

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def zone_list_create(request):
    if request.method == 'POST':
        serializer = LocationZoneSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer)
        zone = serializer.save(created_by=request.user)
        ensure_zone_coordinates(zone)
        logger.info(f"Zone {zone.id} created by admin {request.user.id}")
        return Response(LocationZoneSerializer(zone).data, status=status.HTTP_201_CREATED)

    zones = LocationZone.objects.prefetch_related('pincodes')
    params = request.query_params
    if params.get('city'):
        zones = zones.filter(city__iexact=params['city'])
    if params.get('is_active') in ('true', 'false'):
        zones = zones.filter(is_active=params['is_active'] == 'true')
    if params.get('search'):
        term = params['search']
        zones = zones.filter(
            Q(zone_name__icontains=term) | Q(city__icontains=term) | Q(pincodes__pincode=term)
        ).distinct()

    page, limit = parse_page_params(params)
    items, pagination = paginate_queryset(zones, page, limit, total_key='total_zones')
    return Response({
        'zones': LocationZoneSerializer(items, many=True).data,
        'pagination': pagination,
    })


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def zone_detail(request, zone_id):
    zone = get_object_or_404(LocationZone, id=zone_id)
    if request.method == 'GET':
        return Response(LocationZoneSerializer(zone).data)

    if request.method == 'DELETE':
        zone.delete()
        logger.info(f"Zone {zone_id} deleted by admin {request.user.id}")
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = LocationZoneSerializer(zone, data=request.data, partial=True)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    zone = serializer.save()
    ensure_zone_coordinates(zone)
    return Response(LocationZoneSerializer(zone).data)


@api_view(['POST'])
@permission_classes([IsAdminRole])
def toggle_zone_status(request, zone_id):
    zone = get_object_or_404(LocationZone, id=zone_id)
    zone.toggle_active()
    logger.info(f"Zone {zone.id} is_active={zone.is_active} (admin {request.user.id})")
    return Response({'id': zone.id, 'is_active': zone.is_active})


@api_view(['GET'])
@permission_classes([AllowAny])
def check_service_availability(request):
    """GET /zones/availability/?pincode=560001"""
    pincode = request.query_params.get('pincode')
    if not LocationZone.normalize_pincode(pincode):
        return Response({'error': 'A valid 6-digit pincode is required'}, status=status.HTTP_400_BAD_REQUEST)

    result = LocationZone.check_service_availability(pincode)
    return Response({
        'pincode': pincode,
        'available': result['available'],
        'supported_vendor_types': result['supported_vendor_types'],
        'zones': [
            {'id': z.id, 'zone_name': z.zone_name, 'city': z.city, 'service_type': z.service_type}
            for z in result['zones']
        ],
    })


@api_view(['POST'])
@permission_classes([AllowAny])
def validate_delivery_for_subscription(request):
    from subscriptions.models import Subscription

    serializer = SubscriptionDeliveryCheckSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    address = serializer.validated_data['address']
    category = serializer.validated_data['category']
    if category not in Subscription.Category.values:
        return Response({'error': f"Unknown plan category: {category}"}, status=status.HTTP_400_BAD_REQUEST)

    zone = LocationZone.find_by_pincode(address['pincode']).first()
    if zone is None:
        return Response({
            'is_valid': False,
            'errors': ['Delivery not available to this pincode'],
            'zone': None,
        })
    result = zone.validate_delivery_for_subscription(address, category)
    result['zone'] = {'id': zone.id, 'zone_name': zone.zone_name}
    return Response(result)


@api_view(['POST'])
@permission_classes([AllowAny])
def calculate_delivery_fee(request):
    serializer = DeliveryFeeSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    data = serializer.validated_data
    zone = LocationZone.find_by_pincode(data['pincode']).first()
    if zone is None:
        return Response({'error': 'Delivery not available to this pincode'}, status=status.HTTP_404_NOT_FOUND)

    fee = zone.calculate_delivery_fee(data['distance_km'], data['order_value'])
    return Response({
        'zone_id': zone.id,
        'delivery_fee': str(fee),
        'is_free_delivery': fee == 0,
    })
