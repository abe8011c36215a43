from rest_framework import serializers

from .models import Review


class ReviewSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True)
    plan_name = serializers.CharField(source='subscription.plan_name', read_only=True, default=None)
    vendor_name = serializers.CharField(source='vendor.business_name', read_only=True, default=None)
    order_number = serializers.CharField(source='order.order_number', read_only=True, default=None)

    class Meta:
        model = Review
        fields = [
            'id', 'review_type', 'user', 'username', 'subscription', 'plan_name', 'vendor',
            'vendor_name', 'order', 'order_number', 'rating', 'review_text', 'status',
            'is_verified_purchase', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class AdminReviewSerializer(ReviewSerializer):
    moderated_by = serializers.CharField(source='moderated_by.username', read_only=True, default=None)

    class Meta(ReviewSerializer.Meta):
        fields = ReviewSerializer.Meta.fields + ['moderated_by', 'moderation_notes', 'moderated_at']
        read_only_fields = fields


class CreateReviewSerializer(serializers.Serializer):
    review_type = serializers.ChoiceField(choices=Review.Type.choices)
    subscription_id = serializers.IntegerField(min_value=1, required=False)
    vendor_id = serializers.IntegerField(min_value=1, required=False)
    order_id = serializers.IntegerField(min_value=1, required=False)
    rating = serializers.IntegerField(min_value=1, max_value=5)
    review_text = serializers.CharField(max_length=1000)

    def validate(self, attrs):
        field = Review.TARGET_FIELDS[attrs['review_type']] + '_id'
        if not attrs.get(field):
            raise serializers.ValidationError({field: f"{field} is required for {attrs['review_type']} reviews"})
        attrs['target_id'] = attrs[field]
        return attrs


class UpdateReviewSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5, required=False)
    review_text = serializers.CharField(max_length=1000, required=False)


class ModerateReviewSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Review.Status.choices)
    moderation_notes = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')
