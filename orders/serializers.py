from rest_framework import serializers

from menus.serializers import MenuBriefSerializer
from .models import Order, OrderCreationLog, OrderStatusHistory


class OrderStatusHistorySerializer(serializers.ModelSerializer):
    changed_by = serializers.CharField(source='changed_by.username', read_only=True, default=None)

    class Meta:
        model = OrderStatusHistory
        fields = ['status', 'changed_by', 'notes', 'created_at']


class OrderSerializer(serializers.ModelSerializer):
    menus = MenuBriefSerializer(many=True, read_only=True)
    vendor_name = serializers.CharField(source='vendor.business_name', read_only=True)
    plan_name = serializers.CharField(source='user_subscription.subscription.plan_name', read_only=True)
    username = serializers.CharField(source='user.username', read_only=True)
    delivery_time = serializers.TimeField(format='%H:%M', read_only=True)
    delivery_address = serializers.DictField(read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'user', 'username', 'user_subscription', 'plan_name',
            'daily_meal', 'order_date', 'delivery_date', 'meal_type', 'menus', 'delivery_time',
            'delivery_address', 'vendor', 'vendor_name', 'vendor_type', 'status',
            'credits_used', 'is_credits_deducted', 'skipped_at', 'skip_reason', 'credits_refunded',
            'cancelled_at', 'cancel_reason', 'delivered_at', 'delivery_notes',
            'special_instructions', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class OrderDetailSerializer(OrderSerializer):
    status_history = OrderStatusHistorySerializer(many=True, read_only=True)

    class Meta(OrderSerializer.Meta):
        fields = OrderSerializer.Meta.fields + ['status_history']
        read_only_fields = fields


class SkipOrderSerializer(serializers.Serializer):
    skip_reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class CancelOrderSerializer(serializers.Serializer):
    cancel_reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class UpdateOrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.Status.choices)
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class ConfirmDeliverySerializer(serializers.Serializer):
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class CreateOrdersSerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
    subscription_id = serializers.IntegerField(min_value=1, required=False)


class OrderCreationLogSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True)
    plan_name = serializers.CharField(source='user_subscription.subscription.plan_name', read_only=True)
    order_number = serializers.CharField(source='order.order_number', read_only=True, default=None)
    triggered_by = serializers.CharField(source='triggered_by.username', read_only=True, default=None)

    class Meta:
        model = OrderCreationLog
        fields = [
            'id', 'user', 'username', 'user_subscription', 'plan_name', 'delivery_date',
            'meal_type', 'status', 'reason', 'message', 'can_retry', 'retry_count',
            'order', 'order_number', 'triggered_by', 'created_at', 'updated_at',
        ]
