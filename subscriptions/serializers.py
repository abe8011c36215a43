from decimal import Decimal

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from location_zones.serializers import DeliveryAddressSerializer
from .models import Subscription, Transaction, UserSubscription


class SubscriptionSerializer(serializers.ModelSerializer):
    """Plan as the admin panel edits it."""

    discount_amount = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    discount_percentage = serializers.IntegerField(read_only=True)
    vendor_types = serializers.ListField(child=serializers.CharField(), read_only=True)

    class Meta:
        model = Subscription
        fields = [
            'id', 'plan_name', 'duration', 'custom_duration_days', 'duration_days',
            'meals_per_plan', 'original_price', 'discounted_price', 'discount_amount',
            'discount_percentage', 'category', 'vendor_types', 'free_delivery', 'description',
            'features', 'terms', 'tags', 'is_active', 'current_purchases',
            'lunch_available', 'lunch_start', 'lunch_end',
            'dinner_available', 'dinner_start', 'dinner_end', 'skip_meals_per_plan',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['duration_days', 'current_purchases', 'created_at', 'updated_at']

    def validate(self, attrs):
        merged = {
            field.name: getattr(self.instance, field.name)
            for field in Subscription._meta.concrete_fields
        } if self.instance else {}
        merged.update(attrs)
        plan = Subscription(**{k: v for k, v in merged.items() if k != 'id'})
        try:
            plan.clean()
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.message_dict)
        return attrs


class PublicSubscriptionSerializer(SubscriptionSerializer):
    class Meta(SubscriptionSerializer.Meta):
        fields = [
            f for f in SubscriptionSerializer.Meta.fields
            if f not in ('current_purchases', 'is_active', 'created_at', 'updated_at')
        ]


class PurchaseAddressSerializer(DeliveryAddressSerializer):
    street = serializers.CharField(max_length=255)
    city = serializers.CharField(max_length=100)
    state = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    landmark = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')

    def validate(self, attrs):
        for key in ('latitude', 'longitude'):
            if attrs.get(key) is not None:
                attrs[key] = Decimal(str(round(attrs[key], 6)))
        return attrs


class MealTimingSerializer(serializers.Serializer):
    enabled = serializers.BooleanField(default=False)
    time = serializers.TimeField(required=False, allow_null=True, input_formats=['%H:%M', '%H:%M:%S'])

    def validate(self, attrs):
        if attrs.get('enabled') and not attrs.get('time'):
            raise serializers.ValidationError({'time': 'Required when the meal is enabled'})
        return attrs


class MealTimingsSerializer(serializers.Serializer):
    lunch = MealTimingSerializer(required=False, default=dict)
    dinner = MealTimingSerializer(required=False, default=dict)


class PurchaseSerializer(serializers.Serializer):
    subscription_id = serializers.IntegerField(min_value=1)
    delivery_address = PurchaseAddressSerializer()
    meal_timings = MealTimingsSerializer()
    promo_code = serializers.CharField(max_length=20, required=False, allow_blank=True)
    start_date = serializers.DateField(required=False, allow_null=True)


class VerifyPaymentSerializer(serializers.Serializer):
    user_subscription_id = serializers.IntegerField(min_value=1)
    payment_intent_id = serializers.CharField(max_length=200)


class CancelSubscriptionSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class TransactionSerializer(serializers.ModelSerializer):
    plan_name = serializers.CharField(source='subscription.plan_name', read_only=True)

    class Meta:
        model = Transaction
        fields = [
            'id', 'transaction_type', 'plan_name', 'original_amount', 'discount_applied', 'amount',
            'currency', 'status', 'payment_gateway', 'payment_method', 'payment_intent_id', 'failure_reason',
            'completed_at', 'refund_amount', 'refund_reason', 'refunded_at', 'created_at',
        ]
        read_only_fields = fields


class AdminTransactionSerializer(TransactionSerializer):
    user = serializers.SerializerMethodField()
    promo_code = serializers.CharField(source='promo_code.code', read_only=True, default=None)
    plan_category = serializers.CharField(source='subscription.category', read_only=True)

    class Meta(TransactionSerializer.Meta):
        fields = TransactionSerializer.Meta.fields + [
            'user', 'promo_code', 'plan_category', 'refund_id', 'refunded_by', 'updated_at',
        ]
        read_only_fields = fields

    def get_user(self, obj):
        return {
            'id': obj.user_id,
            'username': obj.user.username,
            'email': obj.user.email,
            'phone_number': obj.user.phone_number,
        }


class RefundSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.01'), required=False)
    reason = serializers.CharField(max_length=255)


class UserSubscriptionSerializer(serializers.ModelSerializer):
    plan = PublicSubscriptionSerializer(source='subscription', read_only=True)
    vendor = serializers.SerializerMethodField()
    promo_code = serializers.CharField(source='promo_code.code', read_only=True, default=None)
    remaining_credits = serializers.IntegerField(read_only=True)
    days_remaining = serializers.IntegerField(read_only=True)
    is_active = serializers.BooleanField(read_only=True)
    meal_types = serializers.ListField(child=serializers.CharField(), read_only=True)
    delivery_address = serializers.DictField(read_only=True)
    can_switch_vendor = serializers.SerializerMethodField()
    can_cancel = serializers.SerializerMethodField()

    class Meta:
        model = UserSubscription
        fields = [
            'id', 'plan', 'status', 'is_active', 'start_date', 'end_date', 'days_remaining',
            'credits_granted', 'credits_used', 'remaining_credits',
            'skip_credits_granted', 'skip_credits_used',
            'original_price', 'discount_applied', 'final_price', 'promo_code',
            'delivery_address', 'delivery_zone',
            'lunch_enabled', 'lunch_time', 'dinner_enabled', 'dinner_time', 'meal_types',
            'vendor', 'vendor_type', 'vendor_assigned_at', 'vendor_switch_used',
            'can_switch_vendor', 'can_cancel', 'auto_renew',
            'payment_completed_at', 'cancelled_at', 'cancellation_reason', 'created_at',
        ]
        read_only_fields = fields

    def get_vendor(self, obj):
        if not obj.vendor_id:
            return None
        return {
            'id': obj.vendor.id,
            'business_name': obj.vendor.business_name,
            'vendor_type': obj.vendor.vendor_type,
            'rating_average': str(obj.vendor.rating_average),
        }

    def get_can_switch_vendor(self, obj):
        return obj.can_switch_vendor()

    def get_can_cancel(self, obj):
        return obj.can_cancel()


class AdminUserSubscriptionSerializer(UserSubscriptionSerializer):
    user = serializers.SerializerMethodField()
    transaction = TransactionSerializer(read_only=True)

    class Meta(UserSubscriptionSerializer.Meta):
        fields = UserSubscriptionSerializer.Meta.fields + ['user', 'transaction']
        read_only_fields = fields

    def get_user(self, obj):
        return {'id': obj.user.id, 'username': obj.user.username, 'email': obj.user.email}
