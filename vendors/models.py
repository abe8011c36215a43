"""
Vendor profiles: the kitchens (home chefs and food vendors) that fulfil
subscription meals.
"""
from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F
from django.utils import timezone

from utils.geo import haversine_km

WEEKDAYS = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']


class VendorProfileQuerySet(models.QuerySet):
    def verified(self):
        return self.filter(is_verified=True)

    def available(self):
        """Verified, switched on, and with capacity left for today."""
        return self.filter(
            is_verified=True,
            is_available=True,
            current_load__lt=F('daily_capacity'),
        )

    def of_type(self, vendor_type):
        return self.filter(vendor_type=vendor_type)

    def with_cuisine(self, cuisine):
        # Matches the quoted element in the serialized JSON list; works on SQLite and PostgreSQL.
        return self.filter(cuisine_types__icontains=f'"{cuisine}"')

    def top_rated(self):
        return self.order_by('-rating_average', '-total_reviews')


class VendorProfile(models.Model):

    class VendorType(models.TextChoices):
        HOME_CHEF = 'home_chef', 'Home Chef'
        FOOD_VENDOR = 'food_vendor', 'Food Vendor'

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='vendor_profile'
    )
    vendor_type = models.CharField(max_length=20, choices=VendorType.choices)

    # Business info
    business_name = models.CharField(max_length=150)
    description = models.TextField(blank=True, max_length=1000)
    cuisine_types = models.JSONField(default=list, blank=True)
    service_radius_km = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('5.00'))
    service_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    service_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    # Address
    street = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    country = models.CharField(max_length=100, blank=True, default='India')
    pincode = models.CharField(max_length=10, blank=True)

    operating_hours = models.JSONField(
        default=list,
        blank=True,
        help_text="List of {day, is_open, open_time, close_time} with HH:MM times"
    )

    rating_average = models.DecimalField(
        max_digits=3,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(0), MaxValueValidator(5)]
    )
    total_reviews = models.PositiveIntegerField(default=0)

    is_verified = models.BooleanField(default=False)
    is_available = models.BooleanField(default=True)

    # Capacity
    daily_capacity = models.PositiveIntegerField(default=50, validators=[MinValueValidator(1)])
    current_load = models.PositiveIntegerField(default=0)

    documents = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = VendorProfileQuerySet.as_manager()

    class Meta:
        ordering = ['-rating_average', 'business_name']
        indexes = [
            models.Index(fields=['vendor_type', 'is_verified', 'is_available'], name='vendor_type_flags_idx'),
        ]

    def __str__(self):
        return f"{self.business_name} ({self.get_vendor_type_display()})"

    def save(self, *args, **kwargs):
        # current_load never leaves 0..daily_capacity
        self.current_load = max(0, min(self.current_load, self.daily_capacity))
        super().save(*args, **kwargs)

    @property
    def remaining_capacity(self):
        return max(0, self.daily_capacity - self.current_load)

    @property
    def has_service_coordinates(self):
        return self.service_latitude is not None and self.service_longitude is not None

    def has_capacity(self, orders_to_add=1):
        return self.current_load + orders_to_add <= self.daily_capacity

    def update_capacity(self, order_count):
        """Add ``order_count`` to today's load; a full kitchen stops taking work."""
        self.current_load += order_count
        if self.current_load >= self.daily_capacity:
            self.is_available = False
        self.save(update_fields=['current_load', 'is_available', 'updated_at'])

    def reset_daily_capacity(self):
        self.current_load = 0
        self.is_available = True
        self.save(update_fields=['current_load', 'is_available', 'updated_at'])

    def update_rating(self, new_rating):
        """Fold one new rating into the running average."""
        total = self.rating_average * self.total_reviews
        self.total_reviews += 1
        average = (total + Decimal(new_rating)) / self.total_reviews
        self.rating_average = average.quantize(Decimal('0.01'))
        self.save(update_fields=['rating_average', 'total_reviews', 'updated_at'])

    def set_rating(self, average, count):
        self.rating_average = Decimal(str(average or 0)).quantize(Decimal('0.01'))
        self.total_reviews = count
        self.save(update_fields=['rating_average', 'total_reviews', 'updated_at'])

    def distance_to(self, latitude, longitude):
        if not self.has_service_coordinates or latitude is None or longitude is None:
            return None
        return haversine_km(self.service_latitude, self.service_longitude, latitude, longitude)

    def is_in_service_area(self, latitude, longitude):
        distance = self.distance_to(latitude, longitude)
        if distance is None:
            return False
        return distance <= float(self.service_radius_km)

    def is_open_now(self, now=None):
        now = timezone.localtime(now or timezone.now())
        day = WEEKDAYS[now.weekday()]
        schedule = next((s for s in self.operating_hours if s.get('day') == day), None)
        if not schedule or not schedule.get('is_open'):
            return False
        current = now.strftime('%H:%M')
        return schedule.get('open_time', '00:00') <= current <= schedule.get('close_time', '23:59')

    def verify(self, is_verified=True):
        self.is_verified = is_verified
        self.save(update_fields=['is_verified', 'updated_at'])

    def toggle_availability(self):
        self.is_available = not self.is_available
        self.save(update_fields=['is_available', 'updated_at'])
