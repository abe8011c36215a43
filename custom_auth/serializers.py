# custom_auth/serializers.py
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers

from menus.models import DIETARY_OPTIONS
from .models import Address, CustomUser, UserProfile


class CustomUserSerializer(serializers.ModelSerializer):
    available_referral_credits = serializers.DecimalField(
        max_digits=10, decimal_places=2, read_only=True
    )

    class Meta:
        model = get_user_model()
        fields = [
            'id', 'username', 'email', 'first_name', 'last_name', 'phone_number',
            'role', 'referral_code', 'used_referral_code', 'wallet_credits',
            'total_referral_credits', 'referral_credits_used',
            'available_referral_credits', 'date_joined',
        ]
        read_only_fields = [
            'role', 'referral_code', 'used_referral_code', 'wallet_credits',
            'total_referral_credits', 'referral_credits_used', 'date_joined',
        ]


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True)
    role = serializers.ChoiceField(
        choices=[CustomUser.Role.USER, CustomUser.Role.VENDOR],
        default=CustomUser.Role.USER
    )
    referral_code = serializers.CharField(write_only=True, required=False, allow_blank=True)

    class Meta:
        model = get_user_model()
        fields = [
            'username', 'email', 'password', 'first_name', 'last_name',
            'phone_number', 'role', 'referral_code',
        ]

    def validate_password(self, value):
        validate_password(value)
        return value

    def validate_email(self, value):
        if value and get_user_model().objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("A user with this email already exists.")
        return value

    def create(self, validated_data):
        validated_data.pop('referral_code', None)
        password = validated_data.pop('password')
        user = get_user_model()(**validated_data)
        user.set_password(password)
        user.save()
        return user


class AddressSerializer(serializers.ModelSerializer):
    class Meta:
        model = Address
        fields = [
            'id', 'label', 'street', 'city', 'state', 'pincode', 'landmark',
            'latitude', 'longitude', 'is_default', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']


class PreferencesSerializer(serializers.ModelSerializer):
    dietary_preferences = serializers.ListField(
        child=serializers.ChoiceField(choices=DIETARY_OPTIONS), required=False
    )
    cuisine_types = serializers.ListField(
        child=serializers.CharField(max_length=50), required=False
    )

    class Meta:
        model = UserProfile
        fields = ['dietary_preferences', 'cuisine_types', 'spice_level', 'updated_at']
        read_only_fields = ['updated_at']


class ProfileSerializer(CustomUserSerializer):
    preferences = serializers.SerializerMethodField()
    addresses = AddressSerializer(many=True, read_only=True)

    class Meta(CustomUserSerializer.Meta):
        fields = CustomUserSerializer.Meta.fields + ['preferences', 'addresses']

    def get_preferences(self, obj):
        return PreferencesSerializer(UserProfile.for_user(obj)).data


class AdminUserSerializer(CustomUserSerializer):
    subscription_count = serializers.IntegerField(read_only=True, default=0)

    class Meta(CustomUserSerializer.Meta):
        fields = CustomUserSerializer.Meta.fields + [
            'is_active', 'is_banned', 'ban_reason', 'banned_at', 'banned_by', 'last_login', 'subscription_count',
        ]
        read_only_fields = fields


class BanUserSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255)
