from rest_framework import serializers

from vendors.models import VendorProfile
from vendors.serializers import VendorSummarySerializer
from .models import VendorAssignmentRequest


class VendorBriefSerializer(serializers.ModelSerializer):
    class Meta:
        model = VendorProfile
        fields = ['id', 'business_name', 'vendor_type', 'rating_average']


class VendorAssignmentRequestSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True)
    plan_name = serializers.CharField(source='user_subscription.subscription.plan_name', read_only=True)
    plan_category = serializers.CharField(source='user_subscription.subscription.category', read_only=True)
    current_vendor = VendorBriefSerializer(read_only=True)
    new_vendor = VendorBriefSerializer(read_only=True)
    zone_name = serializers.CharField(source='delivery_zone.zone_name', read_only=True, default=None)
    preferred_vendor_ids = serializers.PrimaryKeyRelatedField(source='preferred_vendors', many=True, read_only=True)
    processed_by = serializers.CharField(source='processed_by.username', read_only=True, default=None)
    processing_hours = serializers.FloatField(read_only=True)

    class Meta:
        model = VendorAssignmentRequest
        fields = [
            'id', 'request_type', 'status', 'priority', 'reason', 'description',
            'user', 'username', 'user_subscription', 'plan_name', 'plan_category',
            'requested_vendor_type', 'current_vendor', 'new_vendor',
            'delivery_zone', 'zone_name', 'preferred_vendor_ids',
            'requested_at', 'processed_at', 'processed_by', 'processing_hours',
            'admin_notes', 'rejection_reason', 'updated_at',
        ]
        read_only_fields = fields


class CustomerAssignmentRequestSerializer(VendorAssignmentRequestSerializer):
    """What a customer sees of their own requests; admin notes stay internal."""

    class Meta(VendorAssignmentRequestSerializer.Meta):
        fields = [
            f for f in VendorAssignmentRequestSerializer.Meta.fields
            if f not in ('admin_notes', 'processed_by', 'processing_hours', 'user', 'username')
        ]
        read_only_fields = fields


class AvailableVendorSerializer(VendorSummarySerializer):
    distance_km = serializers.SerializerMethodField()
    is_preferred = serializers.BooleanField(read_only=True)

    class Meta(VendorSummarySerializer.Meta):
        fields = VendorSummarySerializer.Meta.fields + [
            'service_radius_km', 'distance_km', 'is_preferred',
        ]

    def get_distance_km(self, obj):
        distance = getattr(obj, 'distance_km', None)
        return round(distance, 2) if distance is not None else None


class AssignVendorSerializer(serializers.Serializer):
    vendor_id = serializers.IntegerField(min_value=1)
    admin_notes = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class RejectRequestSerializer(serializers.Serializer):
    rejection_reason = serializers.CharField(max_length=300)
    admin_notes = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class UpdatePrioritySerializer(serializers.Serializer):
    priority = serializers.ChoiceField(choices=VendorAssignmentRequest.Priority.choices)


class VendorSwitchRequestSerializer(serializers.Serializer):
    reason = serializers.ChoiceField(
        choices=[
            choice for choice in VendorAssignmentRequest.Reason.choices
            if choice[0] not in (
                VendorAssignmentRequest.Reason.INITIAL_PURCHASE,
                VendorAssignmentRequest.Reason.ADMIN_REASSIGNMENT,
            )
        ],
        required=False,
        default=VendorAssignmentRequest.Reason.VENDOR_SWITCH_REQUEST,
    )
    description = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')
    preferred_vendor_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1), required=False, default=list, max_length=5
    )

    def validate_preferred_vendor_ids(self, value):
        ids = list(dict.fromkeys(value))
        vendors = list(VendorProfile.objects.filter(pk__in=ids, is_verified=True))
        if len(vendors) != len(ids):
            raise serializers.ValidationError('One or more preferred vendors do not exist')
        return vendors
