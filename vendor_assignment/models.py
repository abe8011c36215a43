"""
Vendor assignment requests.

Every paid subscription produces an ``initial_assignment`` request, and a
customer unhappy with their kitchen may file one ``vendor_switch`` request.
Admins work the pending queue in priority order and either approve a request
with a vendor or reject it with a reason.
"""
from datetime import timedelta

from django.conf import settings
from django.db import models
from django.db.models import Case, Count, IntegerField, Value, When
from django.utils import timezone

from utils.exceptions import DomainError


class VendorAssignmentError(DomainError):
    pass


class VendorAssignmentRequestQuerySet(models.QuerySet):

    def with_priority_rank(self):
        whens = [
            When(priority=priority, then=Value(rank))
            for priority, rank in VendorAssignmentRequest.PRIORITY_RANK.items()
        ]
        return self.annotate(
            priority_rank=Case(*whens, default=Value(0), output_field=IntegerField())
        )

    def by_priority(self):
        """Most urgent first; oldest first within a priority."""
        qs = self if 'priority_rank' in self.query.annotations else self.with_priority_rank()
        return qs.order_by('-priority_rank', 'requested_at', 'id')

    def pending(self, request_type=None):
        qs = self.filter(status=VendorAssignmentRequest.Status.PENDING)
        if request_type:
            qs = qs.filter(request_type=request_type)
        return qs

    def approved(self):
        return self.filter(status=VendorAssignmentRequest.Status.APPROVED)

    def for_user(self, user):
        return self.filter(user=user)

    def for_subscription(self, user_subscription):
        return self.filter(user_subscription=user_subscription)

    def for_vendor(self, vendor):
        return self.filter(models.Q(current_vendor=vendor) | models.Q(new_vendor=vendor))

    def for_zone(self, zone):
        return self.pending().filter(delivery_zone=zone)

    def urgent(self):
        return self.pending().filter(priority__in=[
            VendorAssignmentRequest.Priority.HIGH,
            VendorAssignmentRequest.Priority.URGENT,
        ])

    def recent(self, days=7):
        return self.filter(requested_at__gte=timezone.now() - timedelta(days=days))

    def stats(self, start, end):
        """Counts grouped by status and request type within ``start..end``."""
        return list(
            self.filter(requested_at__gte=start, requested_at__lte=end)
            .values('status', 'request_type')
            .annotate(count=Count('id'))
            .order_by('status', 'request_type')
        )


class VendorAssignmentRequest(models.Model):

    class RequestType(models.TextChoices):
        INITIAL_ASSIGNMENT = 'initial_assignment', 'Initial assignment'
        VENDOR_SWITCH = 'vendor_switch', 'Vendor switch'

    class Reason(models.TextChoices):
        INITIAL_PURCHASE = 'initial_purchase', 'Initial purchase'
        POOR_FOOD_QUALITY = 'poor_food_quality', 'Poor food quality'
        LATE_DELIVERY = 'late_delivery', 'Late delivery'
        VENDOR_UNAVAILABLE = 'vendor_unavailable', 'Vendor unavailable'
        DIETARY_RESTRICTIONS = 'dietary_restrictions', 'Dietary restrictions'
        CUSTOMER_PREFERENCE = 'customer_preference', 'Customer preference'
        VENDOR_SWITCH_REQUEST = 'vendor_switch_request', 'Vendor switch request'
        ADMIN_REASSIGNMENT = 'admin_reassignment', 'Admin reassignment'
        OTHER = 'other', 'Other'

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        APPROVED = 'approved', 'Approved'
        REJECTED = 'rejected', 'Rejected'
        COMPLETED = 'completed', 'Completed'

    class Priority(models.TextChoices):
        LOW = 'low', 'Low'
        MEDIUM = 'medium', 'Medium'
        HIGH = 'high', 'High'
        URGENT = 'urgent', 'Urgent'

    PRIORITY_RANK = {
        Priority.LOW: 1,
        Priority.MEDIUM: 2,
        Priority.HIGH: 3,
        Priority.URGENT: 4,
    }

    user_subscription = models.ForeignKey(
        'subscriptions.UserSubscription',
        on_delete=models.CASCADE,
        related_name='assignment_requests'
    )
    request_type = models.CharField(max_length=20, choices=RequestType.choices)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='vendor_assignment_requests'
    )
    current_vendor = models.ForeignKey(
        'vendors.VendorProfile',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='switch_requests_from'
    )
    reason = models.CharField(max_length=30, choices=Reason.choices)
    description = models.CharField(max_length=500, blank=True)
    requested_vendor_type = models.CharField(
        max_length=20,
        blank=True,
        help_text="home_chef or food_vendor; blank when the plan accepts either"
    )
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    priority = models.CharField(max_length=10, choices=Priority.choices, blank=True)
    delivery_zone = models.ForeignKey(
        'location_zones.LocationZone',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assignment_requests'
    )
    preferred_vendors = models.ManyToManyField(
        'vendors.VendorProfile',
        blank=True,
        related_name='preferred_in_requests'
    )

    requested_at = models.DateTimeField(default=timezone.now)
    processed_at = models.DateTimeField(null=True, blank=True)
    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='processed_assignment_requests'
    )
    new_vendor = models.ForeignKey(
        'vendors.VendorProfile',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assignments_received'
    )
    admin_notes = models.CharField(max_length=500, blank=True)
    rejection_reason = models.CharField(max_length=300, blank=True)

    updated_at = models.DateTimeField(auto_now=True)

    objects = VendorAssignmentRequestQuerySet.as_manager()

    class Meta:
        ordering = ['-requested_at']
        indexes = [
            models.Index(fields=['status', 'request_type'], name='var_status_type_idx'),
            models.Index(fields=['status', 'priority', 'requested_at'], name='var_queue_idx'),
            models.Index(fields=['delivery_zone', 'status'], name='var_zone_status_idx'),
        ]

    def __str__(self):
        return f"{self.get_request_type_display()} #{self.id} ({self.status}, {self.priority})"

    def save(self, *args, **kwargs):
        if not self.priority:
            if self.request_type == self.RequestType.INITIAL_ASSIGNMENT:
                self.priority = self.Priority.HIGH
            else:
                self.priority = self.Priority.MEDIUM
        super().save(*args, **kwargs)

    @property
    def is_pending(self):
        return self.status == self.Status.PENDING

    @property
    def is_processed(self):
        return self.status in (self.Status.APPROVED, self.Status.REJECTED, self.Status.COMPLETED)

    @property
    def processing_hours(self):
        if not self.processed_at:
            return None
        return round((self.processed_at - self.requested_at).total_seconds() / 3600, 2)

    def _require_pending(self, message='Request has already been processed'):
        if not self.is_pending:
            raise VendorAssignmentError(message)

    def approve(self, processed_by, new_vendor, notes=''):
        self._require_pending()
        self.status = self.Status.APPROVED
        self.processed_by = processed_by
        self.processed_at = timezone.now()
        self.new_vendor = new_vendor
        self.admin_notes = notes or ''
        self.save(update_fields=[
            'status', 'processed_by', 'processed_at', 'new_vendor', 'admin_notes', 'updated_at'
        ])

    def reject(self, processed_by, reason, notes=''):
        self._require_pending()
        if not reason:
            raise VendorAssignmentError('Rejection reason is required')
        self.status = self.Status.REJECTED
        self.processed_by = processed_by
        self.processed_at = timezone.now()
        self.rejection_reason = reason
        self.admin_notes = notes or ''
        self.save(update_fields=[
            'status', 'processed_by', 'processed_at', 'rejection_reason', 'admin_notes', 'updated_at'
        ])

    def complete(self):
        if self.status != self.Status.APPROVED:
            raise VendorAssignmentError('Only approved requests can be completed')
        self.status = self.Status.COMPLETED
        self.save(update_fields=['status', 'updated_at'])

    def update_priority(self, priority):
        self._require_pending('Cannot update priority of processed request')
        if priority not in self.Priority.values:
            raise VendorAssignmentError(f"Invalid priority: {priority}")
        self.priority = priority
        self.save(update_fields=['priority', 'updated_at'])
