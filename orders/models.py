"""
Meal orders cut from a plan's daily meal, and the log of every attempt to
create one.
"""
from datetime import timedelta

from django.conf import settings
from django.db import models, transaction
from django.db.models.functions import Length
from django.utils import timezone

from utils.dates import combine_local
from .exceptions import OrderError


class OrderQuerySet(models.QuerySet):
    def for_user(self, user):
        return self.filter(user=user)

    def for_vendor(self, vendor):
        return self.filter(vendor=vendor)

    def on(self, day):
        return self.filter(delivery_date=day)

    def live(self):
        """Orders that will still be cooked or have been delivered."""
        return self.exclude(status__in=[Order.Status.SKIPPED, Order.Status.CANCELLED])

    def upcoming(self, days=7):
        today = timezone.localdate()
        return self.filter(
            status=Order.Status.UPCOMING,
            delivery_date__gte=today,
            delivery_date__lte=today + timedelta(days=days),
        )


class Order(models.Model):

    class Status(models.TextChoices):
        UPCOMING = 'upcoming', 'Upcoming'
        PREPARING = 'preparing', 'Preparing'
        OUT_FOR_DELIVERY = 'out_for_delivery', 'Out for delivery'
        DELIVERED = 'delivered', 'Delivered'
        SKIPPED = 'skipped', 'Skipped'
        CANCELLED = 'cancelled', 'Cancelled'

    class MealType(models.TextChoices):
        LUNCH = 'lunch', 'Lunch'
        DINNER = 'dinner', 'Dinner'

    # Each status may only move to the next one
    NEXT_STATUS = {
        Status.UPCOMING: Status.PREPARING,
        Status.PREPARING: Status.OUT_FOR_DELIVERY,
        Status.OUT_FOR_DELIVERY: Status.DELIVERED,
    }
    FINAL_STATUSES = (Status.DELIVERED, Status.SKIPPED, Status.CANCELLED)

    order_number = models.CharField(max_length=20, unique=True, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='orders')
    user_subscription = models.ForeignKey(
        'subscriptions.UserSubscription',
        on_delete=models.CASCADE,
        related_name='orders'
    )
    daily_meal = models.ForeignKey(
        'menus.DailyMeal',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='orders'
    )
    order_date = models.DateTimeField(default=timezone.now)
    delivery_date = models.DateField()
    meal_type = models.CharField(max_length=10, choices=MealType.choices)
    menus = models.ManyToManyField('menus.Menu', related_name='orders')
    delivery_time = models.TimeField()

    delivery_street = models.CharField(max_length=255)
    delivery_city = models.CharField(max_length=100)
    delivery_state = models.CharField(max_length=100, blank=True)
    delivery_pincode = models.CharField(max_length=6)
    delivery_landmark = models.CharField(max_length=255, blank=True)
    delivery_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    delivery_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    vendor = models.ForeignKey(
        'vendors.VendorProfile',
        on_delete=models.PROTECT,
        related_name='orders'
    )
    vendor_type = models.CharField(max_length=20)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.UPCOMING)

    credits_used = models.PositiveSmallIntegerField(default=1)
    is_credits_deducted = models.BooleanField(default=False)

    skipped_at = models.DateTimeField(null=True, blank=True)
    skip_reason = models.CharField(max_length=500, blank=True)
    credits_refunded = models.BooleanField(default=False)

    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancel_reason = models.CharField(max_length=500, blank=True)
    cancelled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    delivered_at = models.DateTimeField(null=True, blank=True)
    confirmed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    delivery_notes = models.CharField(max_length=500, blank=True)
    special_instructions = models.CharField(max_length=500, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = OrderQuerySet.as_manager()

    class Meta:
        ordering = ['-delivery_date', '-delivery_time']
        indexes = [
            models.Index(fields=['user', 'delivery_date'], name='order_user_date_idx'),
            models.Index(fields=['vendor', 'status'], name='order_vendor_status_idx'),
            models.Index(fields=['delivery_date', 'status'], name='order_date_status_idx'),
            models.Index(fields=['user_subscription', 'delivery_date'], name='order_usersub_date_idx'),
        ]

    def __str__(self):
        return self.order_number

    def save(self, *args, **kwargs):
        if not self.order_number:
            self.order_number = self._next_order_number()
        super().save(*args, **kwargs)

    def _next_order_number(self):
        """``TFX-YYYYMMDD-NNNN``, numbered per local calendar day of ordering."""
        day = timezone.localtime(self.order_date).date()
        prefix = f"TFX-{day:%Y%m%d}-"
        last = (
            Order.objects.filter(order_number__startswith=prefix)
            # longer suffixes are larger numbers once a day passes 9999
            .order_by(Length('order_number').desc(), '-order_number')
            .values_list('order_number', flat=True)
            .first()
        )
        sequence = int(last.rsplit('-', 1)[1]) + 1 if last else 1
        return f"{prefix}{sequence:04d}"

    # ---------------------------------------------------------------- timing

    @property
    def delivery_datetime(self):
        return combine_local(self.delivery_date, self.delivery_time)

    def hours_until_delivery(self):
        return (self.delivery_datetime - timezone.now()).total_seconds() / 3600

    @property
    def is_today(self):
        return self.delivery_date == timezone.localdate()

    @property
    def is_past(self):
        return self.delivery_date < timezone.localdate()

    @property
    def is_future(self):
        return self.delivery_date > timezone.localdate()

    def can_skip(self):
        return (
            self.status == self.Status.UPCOMING
            and self.hours_until_delivery() >= settings.ORDER_SKIP_CUTOFF_HOURS
        )

    def can_cancel(self):
        return (
            self.status == self.Status.UPCOMING
            and self.hours_until_delivery() >= settings.ORDER_CANCEL_CUTOFF_HOURS
        )

    # ---------------------------------------------------------------- status

    def _record(self, status, changed_by=None, notes=''):
        OrderStatusHistory.objects.create(order=self, status=status, changed_by=changed_by, notes=notes)

    def update_status(self, new_status, changed_by=None, notes=''):
        """Move one step along upcoming, preparing, out for delivery, delivered."""
        if self.status in (self.Status.SKIPPED, self.Status.CANCELLED):
            raise OrderError(f"Cannot update order status. Order is already {self.status}.")
        if new_status in (self.Status.SKIPPED, self.Status.CANCELLED):
            raise OrderError(f"Cannot set order status to {new_status}; skip or cancel the order instead.")
        allowed = self.NEXT_STATUS.get(self.status)
        if new_status != allowed:
            raise OrderError(
                f"Invalid status transition from {self.status} to {new_status}. "
                f"Allowed transitions: {allowed or 'none'}."
            )
        self.status = new_status
        fields = ['status', 'updated_at']
        if new_status == self.Status.DELIVERED:
            self.delivered_at = timezone.now()
            self.confirmed_by = changed_by
            fields += ['delivered_at', 'confirmed_by']
        self.save(update_fields=fields)
        self._record(new_status, changed_by, notes)

    def skip(self, reason='', skipped_by=None):
        """
        Skip the meal and give its credit back.

        Spends one of the subscription's skip credits.
        """
        if self.status != self.Status.UPCOMING:
            raise OrderError(f"Cannot skip order with status: {self.status}")
        if not self.can_skip():
            raise OrderError(
                f"Cannot skip {self.meal_type} order. Must skip at least "
                f"{settings.ORDER_SKIP_CUTOFF_HOURS} hours before delivery time ({self.delivery_time:%H:%M})"
            )
        user_sub = self.user_subscription
        if not user_sub.can_skip_meal():
            raise OrderError('No skip credits available')

        with transaction.atomic():
            user_sub.skip_meal(credits=self.credits_used if self.is_credits_deducted else 0)
            self.status = self.Status.SKIPPED
            self.skipped_at = timezone.now()
            self.skip_reason = reason or ''
            self.credits_refunded = self.is_credits_deducted
            self.is_credits_deducted = False
            self.save(update_fields=[
                'status', 'skipped_at', 'skip_reason', 'credits_refunded', 'is_credits_deducted', 'updated_at'
            ])
            self._record(self.Status.SKIPPED, skipped_by, f"Order skipped by user: {reason}".strip())

    def cancel(self, reason='', cancelled_by=None):
        """Cancel the meal. The credit stays spent."""
        if self.status != self.Status.UPCOMING:
            raise OrderError(f"Cannot cancel order with status: {self.status}")
        if not self.can_cancel():
            raise OrderError(
                f"Cannot cancel {self.meal_type} order. Must cancel at least "
                f"{settings.ORDER_CANCEL_CUTOFF_HOURS} hours before delivery time ({self.delivery_time:%H:%M})"
            )
        with transaction.atomic():
            self.status = self.Status.CANCELLED
            self.cancelled_at = timezone.now()
            self.cancel_reason = reason or ''
            self.cancelled_by = cancelled_by
            self.save(update_fields=['status', 'cancelled_at', 'cancel_reason', 'cancelled_by', 'updated_at'])
            self._record(self.Status.CANCELLED, cancelled_by, f"Order cancelled by user: {reason}".strip())

    def confirm_delivery(self, confirmed_by, notes=''):
        if self.status != self.Status.OUT_FOR_DELIVERY:
            raise OrderError('Order must be out for delivery to confirm')
        self.status = self.Status.DELIVERED
        self.delivered_at = timezone.now()
        self.confirmed_by = confirmed_by
        self.delivery_notes = notes or ''
        self.save(update_fields=['status', 'delivered_at', 'confirmed_by', 'delivery_notes', 'updated_at'])
        self._record(self.Status.DELIVERED, confirmed_by, 'Order delivered and confirmed by admin')

    @property
    def delivery_address(self):
        return {
            'street': self.delivery_street,
            'city': self.delivery_city,
            'state': self.delivery_state,
            'pincode': self.delivery_pincode,
            'landmark': self.delivery_landmark,
        }


class OrderStatusHistory(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='status_history')
    status = models.CharField(max_length=20, choices=Order.Status.choices)
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    notes = models.CharField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at', 'id']
        verbose_name_plural = 'Order status history'

    def __str__(self):
        return f"{self.order_id}: {self.status}"


class OrderCreationLog(models.Model):
    """One row per attempt to create an order for a subscription, date and meal."""

    class Status(models.TextChoices):
        SUCCESS = 'success', 'Success'
        FAILED = 'failed', 'Failed'

    class Reason(models.TextChoices):
        SUBSCRIPTION_INACTIVE = 'SUBSCRIPTION_INACTIVE', 'Subscription inactive'
        SUBSCRIPTION_EXPIRED = 'SUBSCRIPTION_EXPIRED', 'Subscription expired'
        INSUFFICIENT_CREDITS = 'INSUFFICIENT_CREDITS', 'Insufficient credits'
        ORDER_ALREADY_EXISTS = 'ORDER_ALREADY_EXISTS', 'Order already exists'
        NO_MENU_AVAILABLE = 'NO_MENU_AVAILABLE', 'No menu available'
        ORDER_CREATION_FAILED = 'ORDER_CREATION_FAILED', 'Order creation failed'
        VALIDATION_ERROR = 'VALIDATION_ERROR', 'Validation error'

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='order_creation_logs')
    user_subscription = models.ForeignKey(
        'subscriptions.UserSubscription',
        on_delete=models.CASCADE,
        related_name='order_creation_logs'
    )
    delivery_date = models.DateField()
    meal_type = models.CharField(max_length=10, choices=Order.MealType.choices)
    status = models.CharField(max_length=10, choices=Status.choices)
    reason = models.CharField(max_length=30, choices=Reason.choices, blank=True)
    message = models.CharField(max_length=500, blank=True)
    can_retry = models.BooleanField(default=False)
    retry_count = models.PositiveSmallIntegerField(default=0)
    order = models.ForeignKey(Order, on_delete=models.SET_NULL, null=True, blank=True, related_name='creation_logs')
    triggered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'delivery_date'], name='ordlog_status_date_idx'),
        ]

    def __str__(self):
        return f"{self.user_subscription_id} {self.delivery_date} {self.meal_type}: {self.status}"

    def mark_success(self, order):
        self.status = self.Status.SUCCESS
        self.reason = ''
        self.message = f"Created order {order.order_number}"
        self.can_retry = False
        self.order = order

    def mark_failed(self, reason, message, can_retry):
        self.status = self.Status.FAILED
        self.reason = reason
        self.message = message[:500]
        self.can_retry = can_retry
