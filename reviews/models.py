from datetime import timedelta

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Avg, Count, Q
from django.utils import timezone


class ReviewQuerySet(models.QuerySet):
    def active(self):
        return self.filter(status=Review.Status.ACTIVE)

    def for_target(self, review_type, target_id):
        return self.filter(review_type=review_type, **{Review.TARGET_FIELDS[review_type] + '_id': target_id})

    def rating_summary(self):
        """Average rating, count and a 1..5 distribution for the reviews in this queryset."""
        totals = self.aggregate(average=Avg('rating'), total=Count('id'))
        counts = dict(self.values_list('rating').annotate(n=Count('id')).order_by())
        average = totals['average'] or 0
        return {
            'average_rating': round(float(average), 2),
            'total_reviews': totals['total'],
            'distribution': {str(star): counts.get(star, 0) for star in range(1, 6)},
        }


class Review(models.Model):

    class Type(models.TextChoices):
        SUBSCRIPTION = 'subscription', 'Subscription'
        VENDOR = 'vendor', 'Vendor'
        ORDER = 'order', 'Order'

    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        HIDDEN = 'hidden', 'Hidden'
        REPORTED = 'reported', 'Reported'

    TARGET_FIELDS = {
        Type.SUBSCRIPTION: 'subscription',
        Type.VENDOR: 'vendor',
        Type.ORDER: 'order',
    }

    review_type = models.CharField(max_length=15, choices=Type.choices)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='reviews')
    subscription = models.ForeignKey(
        'subscriptions.Subscription',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='reviews'
    )
    vendor = models.ForeignKey(
        'vendors.VendorProfile',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='reviews'
    )
    order = models.ForeignKey(
        'orders.Order',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='reviews'
    )
    rating = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)])
    review_text = models.TextField(max_length=1000)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.ACTIVE)
    is_verified_purchase = models.BooleanField(default=True)
    moderated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    moderation_notes = models.CharField(max_length=500, blank=True)
    moderated_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ReviewQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['review_type', 'status'], name='review_type_status_idx'),
            models.Index(fields=['vendor', 'status', 'rating'], name='review_vendor_status_idx'),
            models.Index(fields=['subscription', 'status', 'rating'], name='review_plan_status_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'order'], condition=Q(review_type='order'), name='unique_order_review_per_user'
            ),
            models.UniqueConstraint(
                fields=['user', 'vendor'], condition=Q(review_type='vendor'), name='unique_vendor_review_per_user'
            ),
            models.UniqueConstraint(
                fields=['user', 'subscription'], condition=Q(review_type='subscription'),
                name='unique_plan_review_per_user'
            ),
        ]

    def __str__(self):
        return f"{self.review_type} review by {self.user_id}: {self.rating}/5"

    @property
    def target_id(self):
        return getattr(self, self.TARGET_FIELDS[self.review_type] + '_id')

    def can_edit(self, user):
        window = timedelta(hours=settings.REVIEW_EDIT_WINDOW_HOURS)
        return self.user_id == user.id and timezone.now() - self.created_at < window

    def moderate(self, status, admin, notes=''):
        self.status = status
        self.moderated_by = admin
        self.moderation_notes = notes or ''
        self.moderated_at = timezone.now()
        self.save(update_fields=['status', 'moderated_by', 'moderation_notes', 'moderated_at', 'updated_at'])
