import re

from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import VendorProfile, WEEKDAYS

TIME_RE = re.compile(r'^([01][0-9]|2[0-3]):[0-5][0-9]$')


def validate_operating_hours(value):
    if not isinstance(value, list):
        raise serializers.ValidationError('Expected a list of daily schedules')
    seen = set()
    for entry in value:
        if not isinstance(entry, dict):
            raise serializers.ValidationError('Each schedule must be an object')
        day = entry.get('day')
        if day not in WEEKDAYS:
            raise serializers.ValidationError(f"Invalid day: {day}")
        if day in seen:
            raise serializers.ValidationError(f"Duplicate schedule for {day}")
        seen.add(day)
        if entry.get('is_open'):
            open_time, close_time = entry.get('open_time', ''), entry.get('close_time', '')
            if not (TIME_RE.match(open_time) and TIME_RE.match(close_time)):
                raise serializers.ValidationError(f"{day}: times must be HH:MM")
            if close_time <= open_time:
                raise serializers.ValidationError(f"{day}: close_time must be after open_time")
    return value


class VendorProfileSerializer(serializers.ModelSerializer):
    """Full profile, used by the admin panel."""

    user = serializers.PrimaryKeyRelatedField(queryset=get_user_model().objects.all())
    username = serializers.CharField(source='user.username', read_only=True)
    remaining_capacity = serializers.IntegerField(read_only=True)

    class Meta:
        model = VendorProfile
        fields = [
            'id', 'user', 'username', 'vendor_type', 'business_name', 'description',
            'cuisine_types', 'service_radius_km', 'service_latitude', 'service_longitude',
            'street', 'city', 'state', 'country', 'pincode', 'operating_hours',
            'rating_average', 'total_reviews', 'is_verified', 'is_available',
            'daily_capacity', 'current_load', 'remaining_capacity', 'documents',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['rating_average', 'total_reviews', 'current_load', 'created_at', 'updated_at']

    def validate_operating_hours(self, value):
        return validate_operating_hours(value)

    def validate_cuisine_types(self, value):
        if not isinstance(value, list) or not all(isinstance(c, str) for c in value):
            raise serializers.ValidationError('Expected a list of cuisine names')
        return value

    def validate_user(self, user):
        if user.role != user.Role.VENDOR:
            raise serializers.ValidationError('User must have vendor role')
        existing = VendorProfile.objects.filter(user=user)
        if self.instance is not None:
            existing = existing.exclude(pk=self.instance.pk)
        if existing.exists():
            raise serializers.ValidationError('Vendor profile already exists for this user')
        return user


class VendorSelfProfileSerializer(VendorProfileSerializer):
    """What a vendor may edit on their own profile."""

    class Meta(VendorProfileSerializer.Meta):
        read_only_fields = VendorProfileSerializer.Meta.read_only_fields + [
            'user', 'vendor_type', 'is_verified', 'daily_capacity', 'documents',
        ]


class VendorSummarySerializer(serializers.ModelSerializer):
    remaining_capacity = serializers.IntegerField(read_only=True)

    class Meta:
        model = VendorProfile
        fields = [
            'id', 'business_name', 'vendor_type', 'cuisine_types', 'city', 'pincode',
            'rating_average', 'total_reviews', 'daily_capacity', 'current_load',
            'remaining_capacity', 'is_available', 'is_verified',
        ]
