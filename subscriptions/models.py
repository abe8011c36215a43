"""
Subscription plans and the subscriptions customers buy from them.

A ``Subscription`` is the catalogue plan an admin publishes. A
``UserSubscription`` is one customer's purchase of a plan: it carries the meal
credits, delivery details, meal timings and the vendor currently cooking for
the customer.
"""
import math
from datetime import time, timedelta
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Avg, Count, Sum
from django.utils import timezone

from .exceptions import SubscriptionError

VENDOR_TYPE_HOME_CHEF = 'home_chef'
VENDOR_TYPE_FOOD_VENDOR = 'food_vendor'


class SubscriptionQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def for_vendor_type(self, vendor_type):
        """Plans a vendor of ``vendor_type`` can fulfil."""
        categories = [Subscription.Category.UNIVERSAL, Subscription.Category.BOTH_OPTIONS]
        if vendor_type == VENDOR_TYPE_HOME_CHEF:
            categories.append(Subscription.Category.HOME_CHEF_SPECIFIC)
        elif vendor_type == VENDOR_TYPE_FOOD_VENDOR:
            categories.append(Subscription.Category.FOOD_VENDOR_SPECIFIC)
        return self.active().filter(category__in=categories)


class Subscription(models.Model):

    class Duration(models.TextChoices):
        DAILY = 'daily', 'Daily'
        WEEKLY = 'weekly', 'Weekly'
        MONTHLY = 'monthly', 'Monthly'
        CUSTOM = 'custom', 'Custom'

    class Category(models.TextChoices):
        UNIVERSAL = 'universal', 'Universal'
        FOOD_VENDOR_SPECIFIC = 'food_vendor_specific', 'Food vendor specific'
        HOME_CHEF_SPECIFIC = 'home_chef_specific', 'Home chef specific'
        BOTH_OPTIONS = 'both_options', 'Both options'

    DURATION_DAYS = {
        Duration.DAILY: 1,
        Duration.WEEKLY: 7,
        Duration.MONTHLY: 30,
    }

    plan_name = models.CharField(max_length=100)
    duration = models.CharField(max_length=10, choices=Duration.choices)
    custom_duration_days = models.PositiveIntegerField(null=True, blank=True)
    duration_days = models.PositiveIntegerField(
        editable=False,
        default=1,
        help_text="Resolved length of the plan in days"
    )
    meals_per_plan = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    original_price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    discounted_price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    category = models.CharField(max_length=30, choices=Category.choices, default=Category.UNIVERSAL)
    free_delivery = models.BooleanField(default=False)
    description = models.TextField(blank=True, max_length=1000)
    features = models.JSONField(default=list, blank=True)
    terms = models.TextField(blank=True)
    tags = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)
    current_purchases = models.PositiveIntegerField(default=0)

    # Meal timing windows customers pick delivery times from
    lunch_available = models.BooleanField(default=True)
    lunch_start = models.TimeField(default=time(11, 0))
    lunch_end = models.TimeField(default=time(14, 0))
    dinner_available = models.BooleanField(default=True)
    dinner_start = models.TimeField(default=time(19, 0))
    dinner_end = models.TimeField(default=time(22, 0))
    skip_meals_per_plan = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = SubscriptionQuerySet.as_manager()

    class Meta:
        ordering = ['discounted_price', 'plan_name']

    def __str__(self):
        return f"{self.plan_name} ({self.get_duration_display()})"

    @staticmethod
    def vendor_types_for_category(category):
        if category == Subscription.Category.FOOD_VENDOR_SPECIFIC:
            return [VENDOR_TYPE_FOOD_VENDOR]
        if category == Subscription.Category.HOME_CHEF_SPECIFIC:
            return [VENDOR_TYPE_HOME_CHEF]
        return [VENDOR_TYPE_HOME_CHEF, VENDOR_TYPE_FOOD_VENDOR]

    @property
    def vendor_types(self):
        return self.vendor_types_for_category(self.category)

    def resolve_duration_days(self):
        if self.duration == self.Duration.CUSTOM:
            return self.custom_duration_days
        return self.DURATION_DAYS.get(self.duration)

    def clean(self):
        errors = {}
        if self.duration == self.Duration.CUSTOM and not self.custom_duration_days:
            errors['custom_duration_days'] = 'Required for custom duration plans'
        if self.discounted_price is not None and self.original_price is not None \
                and self.discounted_price > self.original_price:
            errors['discounted_price'] = 'Cannot exceed the original price'
        if not self.lunch_available and not self.dinner_available:
            errors['lunch_available'] = 'At least one of lunch or dinner must be offered'
        if self.lunch_start and self.lunch_end and self.lunch_end <= self.lunch_start:
            errors['lunch_end'] = 'Must be after lunch_start'
        if self.dinner_start and self.dinner_end and self.dinner_end <= self.dinner_start:
            errors['dinner_end'] = 'Must be after dinner_start'
        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        self.duration_days = self.resolve_duration_days() or 1
        super().save(*args, **kwargs)

    @property
    def discount_amount(self):
        return self.original_price - self.discounted_price

    @property
    def discount_percentage(self):
        if not self.original_price:
            return 0
        return round(float(self.discount_amount / self.original_price * 100))

    def calculate_credits(self):
        return self.meals_per_plan

    def increment_purchases(self):
        Subscription.objects.filter(pk=self.pk).update(current_purchases=models.F('current_purchases') + 1)
        self.refresh_from_db(fields=['current_purchases'])

    def toggle_active(self):
        self.is_active = not self.is_active
        self.save(update_fields=['is_active', 'updated_at'])

    def is_time_in_window(self, meal_type, value):
        if meal_type == 'lunch':
            return self.lunch_available and self.lunch_start <= value <= self.lunch_end
        if meal_type == 'dinner':
            return self.dinner_available and self.dinner_start <= value <= self.dinner_end
        return False


class TransactionQuerySet(models.QuerySet):
    def for_user(self, user):
        return self.filter(user=user)

    def failed(self):
        return self.filter(status=Transaction.Status.FAILED)

    def completed(self):
        return self.filter(status=Transaction.Status.COMPLETED)

    def created_between(self, start=None, end=None):
        qs = self
        if start is not None:
            qs = qs.filter(created_at__gte=start)
        if end is not None:
            qs = qs.filter(created_at__lte=end)
        return qs

    def status_summary(self):
        """``{status: {'count', 'amount'}}`` for every status plus a ``total`` row."""
        summary = {s: {'count': 0, 'amount': Decimal('0.00')} for s in Transaction.Status.values}
        total = {'count': 0, 'amount': Decimal('0.00')}
        for row in self.values('status').annotate(count=Count('id'), amount=Sum('amount')):
            amount = row['amount'] or Decimal('0.00')
            summary[row['status']] = {'count': row['count'], 'amount': amount}
            total['count'] += row['count']
            total['amount'] += amount
        summary['total'] = total
        return summary

    def payment_method_stats(self):
        return list(
            self.completed()
            .values('payment_method')
            .annotate(count=Count('id'), total_amount=Sum('amount'))
            .order_by('-count', 'payment_method')
        )

    def failure_breakdown(self):
        return list(
            self.failed()
            .values('failure_reason')
            .annotate(count=Count('id'), total_amount=Sum('amount'))
            .order_by('-count', 'failure_reason')
        )


class Transaction(models.Model):

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        COMPLETED = 'completed', 'Completed'
        FAILED = 'failed', 'Failed'
        REFUNDED = 'refunded', 'Refunded'

    class Type(models.TextChoices):
        PURCHASE = 'purchase', 'Purchase'
        RENEWAL = 'renewal', 'Renewal'

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='transactions')
    subscription = models.ForeignKey(Subscription, on_delete=models.PROTECT, related_name='transactions')
    transaction_type = models.CharField(max_length=10, choices=Type.choices, default=Type.PURCHASE)
    original_amount = models.DecimalField(max_digits=10, decimal_places=2)
    discount_applied = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    amount = models.DecimalField(max_digits=10, decimal_places=2, help_text="Amount charged")
    currency = models.CharField(max_length=3, default='inr')
    promo_code = models.ForeignKey(
        'promo_codes.PromoCode',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='transactions'
    )
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    payment_gateway = models.CharField(max_length=20, default='stripe')
    payment_method = models.CharField(max_length=30, blank=True)
    payment_intent_id = models.CharField(max_length=200, blank=True, null=True, unique=True)
    failure_reason = models.CharField(max_length=255, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    refund_id = models.CharField(max_length=100, blank=True)
    refund_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    refund_reason = models.CharField(max_length=255, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    refunded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TransactionQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'created_at'], name='txn_status_created_idx'),
        ]

    def __str__(self):
        return f"Transaction({self.id}, {self.user_id}, {self.amount} {self.currency}, {self.status})"

    def mark_completed(self, payment_method=''):
        self.status = self.Status.COMPLETED
        self.completed_at = timezone.now()
        if payment_method:
            self.payment_method = payment_method
        self.save(update_fields=['status', 'completed_at', 'payment_method', 'updated_at'])

    def mark_failed(self, reason=''):
        self.status = self.Status.FAILED
        self.failure_reason = reason[:255]
        self.save(update_fields=['status', 'failure_reason', 'updated_at'])

    def can_be_refunded(self):
        return self.status == self.Status.COMPLETED and bool(self.payment_intent_id) and not self.refund_id

    def mark_refunded(self, refund_id, amount, reason='', refunded_by=None):
        self.status = self.Status.REFUNDED
        self.refund_id = refund_id
        self.refund_amount = amount
        self.refund_reason = reason[:255]
        self.refunded_at = timezone.now()
        self.refunded_by = refunded_by
        self.save(update_fields=[
            'status', 'refund_id', 'refund_amount', 'refund_reason', 'refunded_at', 'refunded_by', 'updated_at',
        ])


class UserSubscriptionQuerySet(models.QuerySet):
    def for_user(self, user):
        return self.filter(user=user)

    def active(self):
        return self.filter(status=UserSubscription.Status.ACTIVE, end_date__gte=timezone.localdate())

    def expiring(self, days=3):
        today = timezone.localdate()
        return self.filter(
            status=UserSubscription.Status.ACTIVE,
            end_date__gte=today,
            end_date__lte=today + timedelta(days=days),
            auto_renew=False,
        )

    def expired_pending(self):
        """Still flagged active but past their end date."""
        return self.filter(status=UserSubscription.Status.ACTIVE, end_date__lt=timezone.localdate())

    def assigned_to(self, vendor):
        return self.filter(vendor=vendor)

    def revenue_stats(self, start, end):
        paid = [UserSubscription.Status.ACTIVE, UserSubscription.Status.EXPIRED]
        stats = self.filter(created_at__gte=start, created_at__lte=end, status__in=paid).aggregate(
            total_revenue=Sum('final_price'),
            total_subscriptions=Count('id'),
            average_price=Avg('final_price'),
        )
        return {
            'total_revenue': stats['total_revenue'] or Decimal('0.00'),
            'total_subscriptions': stats['total_subscriptions'],
            'average_price': round(float(stats['average_price'] or 0), 2),
        }


class UserSubscription(models.Model):

    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        EXPIRED = 'expired', 'Expired'
        CANCELLED = 'cancelled', 'Cancelled'
        PENDING = 'pending', 'Pending'
        FAILED = 'failed', 'Failed'

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='subscriptions')
    subscription = models.ForeignKey(Subscription, on_delete=models.PROTECT, related_name='purchases')
    transaction = models.OneToOneField(
        Transaction,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='user_subscription'
    )
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)

    # Credits
    credits_granted = models.PositiveIntegerField()
    credits_used = models.PositiveIntegerField(default=0)
    skip_credits_granted = models.PositiveIntegerField(default=0)
    skip_credits_used = models.PositiveIntegerField(default=0)

    start_date = models.DateField()
    end_date = models.DateField()
    auto_renew = models.BooleanField(default=False)

    # Pricing
    original_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Plan price before any promo discount"
    )
    discount_applied = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    final_price = models.DecimalField(max_digits=10, decimal_places=2)
    promo_code = models.ForeignKey(
        'promo_codes.PromoCode',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='subscriptions'
    )

    # Delivery
    delivery_street = models.CharField(max_length=255)
    delivery_city = models.CharField(max_length=100)
    delivery_state = models.CharField(max_length=100, blank=True)
    delivery_pincode = models.CharField(max_length=6)
    delivery_landmark = models.CharField(max_length=255, blank=True)
    delivery_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    delivery_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    delivery_zone = models.ForeignKey(
        'location_zones.LocationZone',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='subscriptions'
    )

    # Meal timing
    lunch_enabled = models.BooleanField(default=False)
    lunch_time = models.TimeField(null=True, blank=True)
    dinner_enabled = models.BooleanField(default=False)
    dinner_time = models.TimeField(null=True, blank=True)

    # Vendor
    vendor = models.ForeignKey(
        'vendors.VendorProfile',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='subscriptions'
    )
    vendor_type = models.CharField(max_length=20, blank=True)
    vendor_assigned_at = models.DateTimeField(null=True, blank=True)
    vendor_assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    vendor_switch_used = models.BooleanField(default=False)

    payment_completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.CharField(max_length=500, blank=True)
    renewal_history = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserSubscriptionQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'status'], name='usersub_user_status_idx'),
            models.Index(fields=['status', 'end_date'], name='usersub_status_end_idx'),
        ]

    def __str__(self):
        return f"UserSubscription({self.user_id}, {self.subscription_id}, {self.status})"

    def clean(self):
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValidationError({'end_date': 'End date must be after start date'})
        if self.credits_granted is not None and self.credits_used > self.credits_granted:
            raise ValidationError({'credits_used': 'Credits used cannot exceed credits granted'})
        if self.original_price is not None and self.discount_applied > self.original_price:
            raise ValidationError({'discount_applied': 'Discount cannot exceed original price'})

    def save(self, *args, **kwargs):
        self.clean()
        super().save(*args, **kwargs)

    # ------------------------------------------------------------------ status

    @property
    def is_active(self):
        return self.status == self.Status.ACTIVE and timezone.localdate() <= self.end_date

    @property
    def is_expired(self):
        return timezone.localdate() > self.end_date

    @property
    def days_remaining(self):
        return max(0, (self.end_date - timezone.localdate()).days + 1)

    def activate(self):
        self.status = self.Status.ACTIVE
        self.payment_completed_at = timezone.now()
        self.save(update_fields=['status', 'payment_completed_at', 'updated_at'])

    def mark_failed(self):
        self.status = self.Status.FAILED
        self.save(update_fields=['status', 'updated_at'])

    def mark_expired(self):
        self.status = self.Status.EXPIRED
        self.save(update_fields=['status', 'updated_at'])

    def can_cancel(self):
        window = timedelta(hours=settings.SUBSCRIPTION_CANCEL_WINDOW_HOURS)
        return self.status == self.Status.ACTIVE and timezone.now() - self.created_at <= window

    def cancel(self, reason=''):
        if self.status != self.Status.ACTIVE:
            raise SubscriptionError('Only active subscriptions can be cancelled')
        if not self.can_cancel():
            raise SubscriptionError(
                f"Subscription can only be cancelled within "
                f"{settings.SUBSCRIPTION_CANCEL_WINDOW_HOURS} hours of purchase"
            )
        self.status = self.Status.CANCELLED
        self.cancelled_at = timezone.now()
        self.cancellation_reason = reason or ''
        self.save(update_fields=['status', 'cancelled_at', 'cancellation_reason', 'updated_at'])

    def renew(self, days=None, transaction=None):
        days = days or self.subscription.duration_days
        self.end_date = self.end_date + timedelta(days=days)
        self.credits_granted += self.subscription.calculate_credits()
        self.renewal_history.append({
            'renewed_at': timezone.now().isoformat(),
            'new_end_date': self.end_date.isoformat(),
            'transaction_id': transaction.id if transaction else None,
        })
        self.save(update_fields=['end_date', 'credits_granted', 'renewal_history', 'updated_at'])

    # ----------------------------------------------------------------- credits

    @property
    def remaining_credits(self):
        return max(0, self.credits_granted - self.credits_used)

    def can_use_credits(self, credits=1):
        return self.is_active and self.remaining_credits >= credits

    def use_credits(self, credits=1):
        if not self.can_use_credits(credits):
            raise SubscriptionError('Insufficient credits or subscription not active')
        self.credits_used += credits
        self.save(update_fields=['credits_used', 'updated_at'])

    def refund_credits(self, credits=1):
        self.credits_used = max(0, self.credits_used - credits)
        self.save(update_fields=['credits_used', 'updated_at'])

    @property
    def skip_credits_available(self):
        return max(0, self.skip_credits_granted - self.skip_credits_used)

    def can_skip_meal(self):
        return self.is_active and self.skip_credits_available > 0

    def skip_meal(self, credits=1):
        """Spend a skip credit and give the meal credit back."""
        if not self.can_skip_meal():
            raise SubscriptionError('No skip credits available')
        self.skip_credits_used += 1
        self.credits_used = max(0, self.credits_used - credits)
        self.save(update_fields=['skip_credits_used', 'credits_used', 'updated_at'])

    def skip_info(self):
        return {
            'skip_credits_granted': self.skip_credits_granted,
            'skip_credits_used': self.skip_credits_used,
            'skip_credits_available': self.skip_credits_available,
        }

    # ----------------------------------------------------------------- meals

    @property
    def meal_types(self):
        types = []
        if self.lunch_enabled:
            types.append('lunch')
        if self.dinner_enabled:
            types.append('dinner')
        return types

    @property
    def daily_meal_count(self):
        return len(self.meal_types)

    def meal_time(self, meal_type):
        return self.lunch_time if meal_type == 'lunch' else self.dinner_time

    @property
    def expected_days(self):
        """Days the credits last at the chosen number of meals per day."""
        if not self.daily_meal_count:
            return 0
        return math.ceil(self.credits_granted / self.daily_meal_count)

    @property
    def delivery_address(self):
        return {
            'street': self.delivery_street,
            'city': self.delivery_city,
            'state': self.delivery_state,
            'pincode': self.delivery_pincode,
            'landmark': self.delivery_landmark,
            'latitude': float(self.delivery_latitude) if self.delivery_latitude is not None else None,
            'longitude': float(self.delivery_longitude) if self.delivery_longitude is not None else None,
        }

    # ----------------------------------------------------------------- vendor

    @property
    def is_vendor_assigned(self):
        return self.vendor_id is not None

    def can_switch_vendor(self):
        return self.is_active and self.is_vendor_assigned and not self.vendor_switch_used

    def assign_vendor(self, vendor, assigned_by=None, reason=''):
        now = timezone.now()
        self.vendor_history.filter(ended_at__isnull=True).update(ended_at=now)
        VendorAssignmentHistory.objects.create(
            user_subscription=self,
            vendor=vendor,
            assigned_by=assigned_by,
            assigned_at=now,
            reason=reason,
        )
        self.vendor = vendor
        self.vendor_type = vendor.vendor_type
        self.vendor_assigned_at = now
        self.vendor_assigned_by = assigned_by
        self.save(update_fields=[
            'vendor', 'vendor_type', 'vendor_assigned_at', 'vendor_assigned_by', 'updated_at'
        ])

    def use_vendor_switch(self):
        if not self.can_switch_vendor():
            raise SubscriptionError('Vendor switch is not available for this subscription')
        self.vendor_switch_used = True
        self.save(update_fields=['vendor_switch_used', 'updated_at'])


class VendorAssignmentHistory(models.Model):
    """One row per vendor that has served a subscription."""

    user_subscription = models.ForeignKey(
        UserSubscription,
        on_delete=models.CASCADE,
        related_name='vendor_history'
    )
    vendor = models.ForeignKey('vendors.VendorProfile', on_delete=models.CASCADE, related_name='assignment_history')
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    assigned_at = models.DateTimeField()
    ended_at = models.DateTimeField(null=True, blank=True)
    reason = models.CharField(max_length=100, blank=True)

    class Meta:
        ordering = ['-assigned_at']
        verbose_name_plural = 'Vendor assignment history'

    def __str__(self):
        return f"{self.user_subscription_id} -> {self.vendor_id} @ {self.assigned_at:%Y-%m-%d}"
