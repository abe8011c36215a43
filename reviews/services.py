import logging

from django.db import IntegrityError, transaction
from django.db.models import Avg, Count

from orders.models import Order
from subscriptions.models import Subscription, UserSubscription
from utils.exceptions import ConflictError, DomainError, ForbiddenError, NotFoundError
from vendors.models import VendorProfile
from .models import Review

logger = logging.getLogger(__name__)


class ReviewError(DomainError):
    pass


def _subscription_target(user, plan_id):
    plan = Subscription.objects.filter(id=plan_id).first()
    if plan is None:
        raise NotFoundError('Subscription not found')
    purchased = UserSubscription.objects.filter(
        user=user,
        subscription=plan,
        status__in=[UserSubscription.Status.ACTIVE, UserSubscription.Status.EXPIRED],
    ).exists()
    if not purchased:
        raise ForbiddenError('You can only review subscriptions you have purchased')
    return {'subscription': plan}


def _vendor_target(user, vendor_id):
    vendor = VendorProfile.objects.filter(id=vendor_id).first()
    if vendor is None:
        raise NotFoundError('Vendor not found')
    if not UserSubscription.objects.filter(user=user, vendor=vendor).exists():
        raise ForbiddenError('You can only review vendors who have served your subscription')
    return {'vendor': vendor}


def _order_target(user, order_id):
    order = Order.objects.filter(id=order_id).first()
    if order is None:
        raise NotFoundError('Order not found')
    if order.user_id != user.id:
        raise ForbiddenError('You can only review your own orders')
    if order.status != Order.Status.DELIVERED:
        raise ForbiddenError('You can only review delivered orders')
    return {'order': order}


TARGET_CHECKS = {
    Review.Type.SUBSCRIPTION: _subscription_target,
    Review.Type.VENDOR: _vendor_target,
    Review.Type.ORDER: _order_target,
}


def create_review(user, review_type, target_id, rating, review_text):
    """A customer reviews a plan they bought, a kitchen that cooked for them, or a delivered order."""
    target = TARGET_CHECKS[review_type](user, target_id)
    if Review.objects.filter(user=user).for_target(review_type, target_id).exists():
        raise ConflictError(f"You have already reviewed this {review_type}")
    try:
        with transaction.atomic():
            review = Review.objects.create(
                user=user,
                review_type=review_type,
                rating=rating,
                review_text=review_text.strip(),
                **target
            )
    except IntegrityError:
        raise ConflictError(f"You have already reviewed this {review_type}")
    logger.info(f"User {user.id} reviewed {review_type} {target_id} with {rating}/5")
    return review


def _own_review(user, review_id):
    review = Review.objects.filter(id=review_id).first()
    if review is None:
        raise NotFoundError('Review not found')
    if review.user_id != user.id:
        raise ForbiddenError('You can only change your own reviews')
    return review


def update_review(user, review_id, rating=None, review_text=None):
    review = _own_review(user, review_id)
    if not review.can_edit(user):
        raise ReviewError('Reviews can only be edited within 24 hours of creation')
    if rating is not None:
        review.rating = rating
    if review_text:
        review.review_text = review_text.strip()
    review.save()
    return review


def delete_review(user, review_id):
    review = _own_review(user, review_id)
    review.delete()
    logger.info(f"Review {review_id} deleted by user {user.id}")


def moderate_review(admin, review_id, status, notes=''):
    review = Review.objects.filter(id=review_id).first()
    if review is None:
        raise NotFoundError('Review not found')
    review.moderate(status, admin, notes)
    logger.info(f"Review {review_id} set to {status} by admin {admin.id}")
    return review


def refresh_vendor_rating(vendor_id):
    """Recompute a kitchen's rating from its active vendor reviews."""
    vendor = VendorProfile.objects.filter(id=vendor_id).first()
    if vendor is None:
        return
    totals = Review.objects.active().for_target(Review.Type.VENDOR, vendor_id).aggregate(
        average=Avg('rating'), count=Count('id')
    )
    vendor.set_rating(totals['average'], totals['count'])


def review_stats(start, end):
    reviews = Review.objects.filter(created_at__gte=start, created_at__lte=end)
    by_type = {
        row['review_type']: {'count': row['count'], 'average_rating': round(float(row['average']), 2)}
        for row in reviews.values('review_type').annotate(count=Count('id'), average=Avg('rating')).order_by()
    }
    by_status = dict(reviews.values_list('status').annotate(count=Count('id')).order_by())
    return {
        'overall': reviews.active().rating_summary(),
        'by_type': by_type,
        'by_status': by_status,
    }
