from rest_framework import serializers

from subscriptions.models import Subscription
from .models import DIETARY_OPTIONS, DailyMeal, Menu


class MenuItemSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    quantity = serializers.DecimalField(max_digits=7, decimal_places=2, min_value=0)
    unit = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')


class MenuSerializer(serializers.ModelSerializer):
    items = serializers.ListField(child=MenuItemSerializer(), required=False)
    dietary_options = serializers.ListField(
        child=serializers.ChoiceField(choices=DIETARY_OPTIONS), required=False
    )
    tags = serializers.ListField(child=serializers.CharField(max_length=30), required=False)
    sub_images = serializers.ListField(child=serializers.URLField(max_length=500), required=False)

    class Meta:
        model = Menu
        fields = [
            'id', 'food_title', 'image_url', 'sub_images', 'price', 'short_description',
            'long_description', 'items', 'vendor_category', 'cuisine', 'prep_time_minutes',
            'calories', 'dietary_options', 'is_available', 'rating_average', 'total_reviews',
            'tags', 'is_active', 'created_at', 'updated_at',
        ]
        read_only_fields = ['rating_average', 'total_reviews', 'created_at', 'updated_at']

    def validate_food_title(self, value):
        return value.strip()

    def validate_items(self, value):
        # Decimal quantities are not JSON serializable
        return [
            {'name': item['name'], 'quantity': float(item['quantity']), 'unit': item.get('unit', '')}
            for item in value
        ]


class MenuBriefSerializer(serializers.ModelSerializer):
    class Meta:
        model = Menu
        fields = ['id', 'food_title', 'image_url', 'price', 'short_description', 'dietary_options']


class DailyMealSerializer(serializers.ModelSerializer):
    plan_name = serializers.CharField(source='subscription.plan_name', read_only=True)
    category = serializers.CharField(source='subscription.category', read_only=True)
    lunch_menus = MenuBriefSerializer(many=True, read_only=True)
    dinner_menus = MenuBriefSerializer(many=True, read_only=True)
    created_by = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = DailyMeal
        fields = [
            'id', 'subscription', 'plan_name', 'category', 'meal_date', 'lunch_menus',
            'dinner_menus', 'vendor_type', 'is_active', 'notes', 'created_by',
            'created_at', 'updated_at',
        ]


class SetDailyMealSerializer(serializers.Serializer):
    subscription_id = serializers.PrimaryKeyRelatedField(
        queryset=Subscription.objects.all(), source='plan'
    )
    meal_date = serializers.DateField(required=False)
    lunch_menu_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False, default=list)
    dinner_menu_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False, default=list)
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class UpdateDailyMealSerializer(serializers.Serializer):
    lunch_menu_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False)
    dinner_menu_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False)
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True)
    is_active = serializers.BooleanField(required=False)
