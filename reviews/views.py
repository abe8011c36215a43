import logging
from datetime import timedelta

from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from custom_auth.permissions import IsAdminRole, IsCustomerRole, IsVendorRole
from custom_auth.throttles import AuthenticatedBurstThrottle
from utils.dates import end_of_day, parse_date_param, start_of_day
from utils.exceptions import DomainError, validation_error_response
from utils.pagination import paginate_queryset, parse_page_params
from vendors.models import VendorProfile
from . import services
from .models import Review
from .serializers import (
    AdminReviewSerializer,
    CreateReviewSerializer,
    ModerateReviewSerializer,
    ReviewSerializer,
    UpdateReviewSerializer,
)

logger = logging.getLogger(__name__)

REVIEW_RELATIONS = ('user', 'subscription', 'vendor', 'order')


def _rating_filters(reviews, params):
    if params.get('min_rating', '').isdigit():
        reviews = reviews.filter(rating__gte=int(params['min_rating']))
    if params.get('max_rating', '').isdigit():
        reviews = reviews.filter(rating__lte=int(params['max_rating']))
    return reviews


def _target_reviews(request, review_type, target_id):
    """Active reviews of one plan or kitchen, with their rating summary."""
    reviews = Review.objects.active().for_target(review_type, target_id)
    summary = reviews.rating_summary()
    reviews = _rating_filters(reviews, request.query_params).select_related(*REVIEW_RELATIONS)
    page, limit = parse_page_params(request.query_params, default_limit=20)
    items, pagination = paginate_queryset(reviews, page, limit, total_key='total_reviews')
    return Response({
        'reviews': ReviewSerializer(items, many=True).data,
        'stats': summary,
        'pagination': pagination,
    })


@api_view(['POST'])
@permission_classes([IsCustomerRole])
@throttle_classes([AuthenticatedBurstThrottle])
def create_review(request):
    serializer = CreateReviewSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    data = serializer.validated_data
    try:
        review = services.create_review(
            request.user, data['review_type'], data['target_id'], data['rating'], data['review_text']
        )
    except DomainError as e:
        return e.to_response()
    return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsCustomerRole])
def my_reviews(request):
    reviews = Review.objects.filter(user=request.user).select_related(*REVIEW_RELATIONS)
    if request.query_params.get('review_type'):
        reviews = reviews.filter(review_type=request.query_params['review_type'])
    page, limit = parse_page_params(request.query_params, default_limit=20)
    items, pagination = paginate_queryset(reviews, page, limit, total_key='total_reviews')
    return Response({
        'reviews': [
            dict(ReviewSerializer(review).data, can_edit=review.can_edit(request.user))
            for review in items
        ],
        'pagination': pagination,
    })


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsCustomerRole])
def review_detail(request, review_id):
    try:
        if request.method == 'DELETE':
            services.delete_review(request.user, review_id)
            return Response({'message': 'Review deleted successfully'})

        serializer = UpdateReviewSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer)
        review = services.update_review(request.user, review_id, **serializer.validated_data)
    except DomainError as e:
        return e.to_response()
    return Response(ReviewSerializer(review).data)


@api_view(['GET'])
@permission_classes([IsVendorRole])
def vendor_reviews(request):
    try:
        vendor = request.user.vendor_profile
    except VendorProfile.DoesNotExist:
        return Response({'error': 'Vendor profile not found'}, status=status.HTTP_404_NOT_FOUND)
    return _target_reviews(request, Review.Type.VENDOR, vendor.id)


@api_view(['GET'])
@permission_classes([AllowAny])
def subscription_reviews(request, subscription_id):
    return _target_reviews(request, Review.Type.SUBSCRIPTION, subscription_id)


@api_view(['GET'])
@permission_classes([AllowAny])
def public_vendor_reviews(request, vendor_id):
    return _target_reviews(request, Review.Type.VENDOR, vendor_id)


@api_view(['GET'])
@permission_classes([AllowAny])
def order_review(request, order_id):
    review = Review.objects.active().for_target(Review.Type.ORDER, order_id).select_related(*REVIEW_RELATIONS).first()
    if review is None:
        return Response({'review': None, 'message': 'No review found for this order'})
    return Response({'review': ReviewSerializer(review).data})


# --------------------------------------------------------------------------- admin

@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_reviews(request):
    params = request.query_params
    reviews = Review.objects.select_related(*REVIEW_RELATIONS, 'moderated_by')
    if params.get('review_type'):
        reviews = reviews.filter(review_type=params['review_type'])
    if params.get('status'):
        reviews = reviews.filter(status=params['status'])
    reviews = _rating_filters(reviews, params)
    try:
        start = parse_date_param(params.get('start_date'), 'start_date')
        end = parse_date_param(params.get('end_date'), 'end_date')
    except DomainError as e:
        return e.to_response()
    if start:
        reviews = reviews.filter(created_at__gte=start_of_day(start))
    if end:
        reviews = reviews.filter(created_at__lte=end_of_day(end))

    page, limit = parse_page_params(params, default_limit=20)
    items, pagination = paginate_queryset(reviews, page, limit, total_key='total_reviews')
    return Response({
        'reviews': AdminReviewSerializer(items, many=True).data,
        'pagination': pagination,
    })


@api_view(['PATCH'])
@permission_classes([IsAdminRole])
def moderate_review(request, review_id):
    serializer = ModerateReviewSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer)
    data = serializer.validated_data
    try:
        review = services.moderate_review(request.user, review_id, data['status'], data['moderation_notes'])
    except DomainError as e:
        return e.to_response()
    return Response(AdminReviewSerializer(review).data)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def review_stats(request):
    today = timezone.localdate()
    try:
        start = parse_date_param(request.query_params.get('start_date'), 'start_date') or today - timedelta(days=30)
        end = parse_date_param(request.query_params.get('end_date'), 'end_date') or today
    except DomainError as e:
        return e.to_response()
    stats = services.review_stats(start_of_day(start), end_of_day(end))
    return Response({'stats': stats, 'date_range': {'start_date': start, 'end_date': end}})
