from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinLengthValidator, MinValueValidator
from django.db import models
from django.db.models import F
from django.utils import timezone


class PromoCodeQuerySet(models.QuerySet):
    def valid(self):
        now = timezone.now()
        return self.filter(
            is_active=True,
            valid_from__lte=now,
            valid_until__gte=now,
            used_count__lt=F('usage_limit'),
        )

    def expiring(self, days=3):
        now = timezone.now()
        return self.filter(
            is_active=True,
            valid_until__gte=now,
            valid_until__lte=now + timedelta(days=days),
        ).order_by('valid_until')

    def expired_active(self):
        return self.filter(is_active=True, valid_until__lt=timezone.now())


class PromoCode(models.Model):

    class DiscountType(models.TextChoices):
        PERCENTAGE = 'percentage', 'Percentage'
        FLAT = 'flat', 'Flat'

    code = models.CharField(max_length=20, unique=True, validators=[MinLengthValidator(3)])
    description = models.CharField(max_length=500)
    discount_type = models.CharField(max_length=10, choices=DiscountType.choices)
    discount_value = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    min_order_value = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(0)]
    )
    max_discount = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(0)]
    )
    usage_limit = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    used_count = models.PositiveIntegerField(default=0)
    user_usage_limit = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    valid_from = models.DateTimeField()
    valid_until = models.DateTimeField()
    applicable_plans = models.ManyToManyField(
        'subscriptions.Subscription',
        blank=True,
        related_name='promo_codes'
    )
    applicable_categories = models.JSONField(
        default=list,
        blank=True,
        help_text="Plan categories the code applies to; empty means any"
    )
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_promo_codes'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = PromoCodeQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['is_active', 'valid_from', 'valid_until'], name='promo_validity_idx'),
        ]

    def __str__(self):
        return self.code

    def clean(self):
        errors = {}
        if self.valid_from and self.valid_until and self.valid_until <= self.valid_from:
            errors['valid_until'] = 'Valid until date must be after valid from date'
        if self.discount_type == self.DiscountType.PERCENTAGE and self.discount_value is not None \
                and self.discount_value > 100:
            errors['discount_value'] = 'Percentage discount cannot exceed 100%'
        if self.discount_type == self.DiscountType.FLAT and self.max_discount is not None \
                and self.discount_value is not None and self.max_discount < self.discount_value:
            errors['max_discount'] = 'Max discount cannot be less than discount value for flat discounts'
        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        self.code = (self.code or '').strip().upper()
        super().save(*args, **kwargs)

    @property
    def remaining_uses(self):
        return max(0, self.usage_limit - self.used_count)

    def is_valid(self):
        now = timezone.now()
        return (
            self.is_active
            and self.valid_from <= now <= self.valid_until
            and self.used_count < self.usage_limit
        )

    def is_expiring(self, days=3):
        now = timezone.now()
        return now < self.valid_until <= now + timedelta(days=days)

    def calculate_discount(self, amount):
        """
        Discount for an order of ``amount``.

        Returns ``(discount, error)``; ``error`` is a message when the code
        cannot be used for this amount, in which case the discount is zero.
        """
        amount = Decimal(str(amount))
        if not self.is_valid():
            return Decimal('0.00'), 'Promo code is not valid'
        if amount < self.min_order_value:
            return Decimal('0.00'), f"Minimum order value of ₹{self.min_order_value} required"

        if self.discount_type == self.DiscountType.PERCENTAGE:
            discount = amount * self.discount_value / 100
            if self.max_discount and discount > self.max_discount:
                discount = self.max_discount
        else:
            discount = self.discount_value
        discount = min(discount, amount)
        return discount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP), None

    def is_applicable(self, plan):
        """Explicit plans win over categories; neither set means every plan."""
        plan_ids = set(self.applicable_plans.values_list('id', flat=True))
        if plan_ids:
            return plan.id in plan_ids
        if self.applicable_categories:
            return plan.category in self.applicable_categories
        return True

    def increment_usage(self):
        PromoCode.objects.filter(pk=self.pk).update(used_count=F('used_count') + 1)
        self.refresh_from_db(fields=['used_count'])

    def toggle_active(self):
        self.is_active = not self.is_active
        self.save(update_fields=['is_active', 'updated_at'])
