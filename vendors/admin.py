from django.contrib import admin

from .models import VendorProfile


@admin.register(VendorProfile)
class VendorProfileAdmin(admin.ModelAdmin):
    list_display = (
        'business_name', 'vendor_type', 'city', 'rating_average',
        'current_load', 'daily_capacity', 'is_verified', 'is_available',
    )
    list_filter = ('vendor_type', 'is_verified', 'is_available')
    search_fields = ('business_name', 'user__username', 'city', 'pincode')
    readonly_fields = ('rating_average', 'total_reviews', 'created_at', 'updated_at')
