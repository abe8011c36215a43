# Description: Service areas (location zones) and the pincodes they deliver to.
import re
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator, RegexValidator
from django.db import models
from django_countries.fields import CountryField

from utils.geo import haversine_km

PINCODE_RE = re.compile(r'^[0-9]{6}$')

VENDOR_TYPE_HOME_CHEF = 'home_chef'
VENDOR_TYPE_FOOD_VENDOR = 'food_vendor'


class LocationZoneQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def for_pincode(self, pincode):
        normalized = LocationZone.normalize_pincode(pincode)
        if not normalized:
            return self.none()
        return self.active().filter(pincodes__pincode=normalized).distinct()


class LocationZone(models.Model):

    class ServiceType(models.TextChoices):
        VENDOR_ONLY = 'vendor_only', 'Food vendors only'
        HOME_CHEF_ONLY = 'home_chef_only', 'Home chefs only'
        BOTH = 'both_vendor_home_chef', 'Food vendors and home chefs'

    SERVICE_TYPE_VENDOR_TYPES = {
        ServiceType.VENDOR_ONLY: [VENDOR_TYPE_FOOD_VENDOR],
        ServiceType.HOME_CHEF_ONLY: [VENDOR_TYPE_HOME_CHEF],
        ServiceType.BOTH: [VENDOR_TYPE_HOME_CHEF, VENDOR_TYPE_FOOD_VENDOR],
    }

    zone_name = models.CharField(max_length=100)
    city = models.CharField(max_length=100)
    state = models.CharField(max_length=100)
    country = CountryField(default='IN')
    service_radius_km = models.PositiveSmallIntegerField(
        default=10,
        validators=[MinValueValidator(1), MaxValueValidator(50)],
        help_text="Maximum delivery distance from the zone centre"
    )
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    is_active = models.BooleanField(default=True)
    service_type = models.CharField(
        max_length=30,
        choices=ServiceType.choices,
        default=ServiceType.BOTH
    )

    # Delivery fee
    base_charge = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal('0.00'))
    per_km_charge = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal('0.00'))
    free_delivery_above = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="Order value at or above which delivery is free (0 disables)"
    )

    operating_start = models.TimeField(null=True, blank=True)
    operating_end = models.TimeField(null=True, blank=True)
    restrictions = models.JSONField(default=dict, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_zones'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = LocationZoneQuerySet.as_manager()

    class Meta:
        ordering = ['city', 'zone_name']
        indexes = [
            models.Index(fields=['city', 'is_active'], name='zone_city_active_idx'),
        ]

    def __str__(self):
        return f"{self.zone_name} ({self.city})"

    @staticmethod
    def normalize_pincode(pincode):
        """Return the pincode as a 6-digit string, or None if it is not one."""
        if pincode is None:
            return None
        value = str(pincode).strip()
        if not PINCODE_RE.match(value):
            return None
        return value

    @classmethod
    def find_by_pincode(cls, pincode):
        return cls.objects.for_pincode(pincode)

    @classmethod
    def check_service_availability(cls, pincode):
        zones = list(cls.find_by_pincode(pincode))
        vendor_types = []
        for zone in zones:
            for vendor_type in zone.supported_vendor_types:
                if vendor_type not in vendor_types:
                    vendor_types.append(vendor_type)
        return {
            'available': any(zone.is_service_available() for zone in zones),
            'zones': zones,
            'supported_vendor_types': vendor_types,
        }

    @property
    def pincode_list(self):
        return list(self.pincodes.values_list('pincode', flat=True))

    @property
    def supported_vendor_types(self):
        return list(self.SERVICE_TYPE_VENDOR_TYPES.get(self.service_type, []))

    @property
    def has_coordinates(self):
        return self.latitude is not None and self.longitude is not None

    def supports_vendor_type(self, vendor_type):
        return vendor_type in self.supported_vendor_types

    def is_service_available(self):
        return self.is_active

    def is_pincode_supported(self, pincode):
        normalized = self.normalize_pincode(pincode)
        if not normalized:
            return False
        return self.pincodes.filter(pincode=normalized).exists()

    def distance_to(self, latitude, longitude):
        if not self.has_coordinates or latitude is None or longitude is None:
            return None
        return round(haversine_km(self.latitude, self.longitude, latitude, longitude), 2)

    def is_in_service_radius(self, latitude, longitude):
        distance = self.distance_to(latitude, longitude)
        if distance is None:
            return False
        return distance <= self.service_radius_km

    def validate_delivery_address(self, address):
        """
        Check a delivery address dict (``pincode``, optional ``latitude``/``longitude``)
        against this zone. Returns ``{'is_valid': bool, 'errors': [...]}``.
        """
        errors = []
        if not isinstance(address, dict):
            return {'is_valid': False, 'errors': ['Invalid delivery address format']}

        pincode = address.get('pincode')
        if not pincode:
            errors.append('Pincode is required')
        elif not self.is_pincode_supported(pincode):
            errors.append('Delivery not available to this pincode')

        latitude = address.get('latitude')
        longitude = address.get('longitude')
        if latitude is not None and longitude is not None:
            try:
                latitude, longitude = float(latitude), float(longitude)
            except (TypeError, ValueError):
                errors.append('Invalid coordinates format')
            else:
                if self.has_coordinates and not self.is_in_service_radius(latitude, longitude):
                    distance = self.distance_to(latitude, longitude)
                    errors.append(
                        f"Address is {distance} km from the zone centre; "
                        f"the service radius is {self.service_radius_km} km"
                    )

        return {'is_valid': not errors, 'errors': errors}

    def calculate_delivery_fee(self, distance_km, order_value=0):
        order_value = Decimal(str(order_value or 0))
        if self.free_delivery_above > 0 and order_value >= self.free_delivery_above:
            return Decimal('0.00')
        distance = Decimal(str(distance_km or 0))
        fee = self.base_charge + self.per_km_charge * distance
        return fee.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)

    def validate_delivery_for_subscription(self, address, category):
        """Address check plus whether this zone serves the vendors a plan category needs."""
        from subscriptions.models import Subscription

        result = self.validate_delivery_address(address)
        needed = Subscription.vendor_types_for_category(category)
        if not any(self.supports_vendor_type(vendor_type) for vendor_type in needed):
            result['errors'].append(
                f"Zone {self.zone_name} does not serve {category.replace('_', ' ')} plans"
            )
            result['is_valid'] = False
        return result

    def toggle_active(self):
        self.is_active = not self.is_active
        self.save(update_fields=['is_active', 'updated_at'])


class ZonePincode(models.Model):
    zone = models.ForeignKey(LocationZone, on_delete=models.CASCADE, related_name='pincodes')
    pincode = models.CharField(
        max_length=6,
        unique=True,  # a pincode belongs to exactly one zone
        validators=[RegexValidator(r'^[0-9]{6}$', 'Pincode must be 6 digits')]
    )

    class Meta:
        ordering = ['pincode']

    def __str__(self):
        return f"{self.pincode} -> {self.zone.zone_name}"
