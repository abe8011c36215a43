from django.contrib import admin

from .models import PromoCode


@admin.register(PromoCode)
class PromoCodeAdmin(admin.ModelAdmin):
    list_display = (
        'code', 'discount_type', 'discount_value', 'used_count', 'usage_limit',
        'valid_from', 'valid_until', 'is_active',
    )
    list_filter = ('discount_type', 'is_active')
    search_fields = ('code', 'description')
    filter_horizontal = ('applicable_plans',)
    readonly_fields = ('used_count', 'created_at', 'updated_at')
