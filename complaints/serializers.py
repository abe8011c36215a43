from rest_framework import serializers

from .models import Complaint, phone_number_validator


class ComplaintSerializer(serializers.ModelSerializer):
    class Meta:
        model = Complaint
        fields = ['id', 'title', 'reason', 'name', 'phone_number', 'user', 'created_at', 'updated_at']
        read_only_fields = ['id', 'user', 'created_at', 'updated_at']


class PhoneLookupSerializer(serializers.Serializer):
    phone_number = serializers.CharField(validators=[phone_number_validator])
