from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from subscriptions.models import Subscription
from .models import PromoCode


class PromoCodeSerializer(serializers.ModelSerializer):
    applicable_plans = serializers.PrimaryKeyRelatedField(
        queryset=Subscription.objects.all(), many=True, required=False
    )
    applicable_categories = serializers.ListField(
        child=serializers.ChoiceField(choices=Subscription.Category.choices),
        required=False,
    )
    remaining_uses = serializers.IntegerField(read_only=True)
    created_by = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = PromoCode
        fields = [
            'id', 'code', 'description', 'discount_type', 'discount_value',
            'min_order_value', 'max_discount', 'usage_limit', 'used_count', 'remaining_uses',
            'user_usage_limit', 'valid_from', 'valid_until', 'applicable_plans',
            'applicable_categories', 'is_active', 'created_by', 'created_at', 'updated_at',
        ]
        read_only_fields = ['used_count', 'created_at', 'updated_at']

    def validate_code(self, value):
        value = value.strip().upper()
        if not value.isalnum():
            raise serializers.ValidationError('Code may only contain letters and digits')
        return value

    def validate(self, attrs):
        # Run the model rules against the merged state so partial updates are checked too
        instance = PromoCode(**{
            field: attrs.get(field, getattr(self.instance, field, None))
            for field in ('discount_type', 'discount_value', 'max_discount', 'valid_from', 'valid_until')
        })
        try:
            instance.clean()
        except DjangoValidationError as e:
            raise serializers.ValidationError(e.message_dict)
        return attrs


class PromoCodeValidateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=20)
    subscription_id = serializers.IntegerField(min_value=1)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False)


class BulkPromoCodeSerializer(PromoCodeSerializer):
    count = serializers.IntegerField(min_value=1, max_value=100)
    prefix = serializers.RegexField(r'^[A-Za-z0-9]{0,8}$', required=False, allow_blank=True, default='')

    class Meta(PromoCodeSerializer.Meta):
        fields = [f for f in PromoCodeSerializer.Meta.fields if f != 'code'] + ['count', 'prefix']
