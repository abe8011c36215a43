from django.db import transaction
from django_countries.serializer_fields import CountryField
from rest_framework import serializers

from .models import LocationZone, ZonePincode


class LocationZoneSerializer(serializers.ModelSerializer):
    country = CountryField(required=False)
    pincodes = serializers.ListField(
        child=serializers.RegexField(r'^[0-9]{6}$', error_messages={'invalid': 'Pincode must be 6 digits'}),
        allow_empty=False,
        write_only=True,
    )
    pincode_list = serializers.ListField(child=serializers.CharField(), read_only=True)
    supported_vendor_types = serializers.ListField(child=serializers.CharField(), read_only=True)

    class Meta:
        model = LocationZone
        fields = [
            'id', 'zone_name', 'city', 'state', 'country', 'service_radius_km',
            'latitude', 'longitude', 'is_active', 'service_type',
            'base_charge', 'per_km_charge', 'free_delivery_above',
            'operating_start', 'operating_end', 'restrictions',
            'pincodes', 'pincode_list', 'supported_vendor_types',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['created_at', 'updated_at']

    def validate_pincodes(self, value):
        unique = list(dict.fromkeys(value))
        taken = ZonePincode.objects.filter(pincode__in=unique)
        if self.instance is not None:
            taken = taken.exclude(zone=self.instance)
        taken_codes = sorted(taken.values_list('pincode', flat=True))
        if taken_codes:
            raise serializers.ValidationError(
                f"Pincodes already assigned to another zone: {', '.join(taken_codes)}"
            )
        return unique

    def validate(self, attrs):
        start = attrs.get('operating_start', getattr(self.instance, 'operating_start', None))
        end = attrs.get('operating_end', getattr(self.instance, 'operating_end', None))
        if start and end and end <= start:
            raise serializers.ValidationError({'operating_end': 'Must be after operating_start'})
        return attrs

    @transaction.atomic
    def create(self, validated_data):
        pincodes = validated_data.pop('pincodes')
        zone = LocationZone.objects.create(**validated_data)
        ZonePincode.objects.bulk_create([ZonePincode(zone=zone, pincode=p) for p in pincodes])
        return zone

    @transaction.atomic
    def update(self, instance, validated_data):
        pincodes = validated_data.pop('pincodes', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()
        if pincodes is not None:
            instance.pincodes.exclude(pincode__in=pincodes).delete()
            existing = set(instance.pincodes.values_list('pincode', flat=True))
            ZonePincode.objects.bulk_create(
                [ZonePincode(zone=instance, pincode=p) for p in pincodes if p not in existing]
            )
        return instance


class DeliveryAddressSerializer(serializers.Serializer):
    pincode = serializers.RegexField(r'^[0-9]{6}$')
    latitude = serializers.FloatField(required=False, allow_null=True)
    longitude = serializers.FloatField(required=False, allow_null=True)


class SubscriptionDeliveryCheckSerializer(serializers.Serializer):
    address = DeliveryAddressSerializer()
    category = serializers.CharField()


class DeliveryFeeSerializer(serializers.Serializer):
    pincode = serializers.RegexField(r'^[0-9]{6}$')
    distance_km = serializers.DecimalField(max_digits=6, decimal_places=2, min_value=0)
    order_value = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, default=0)
