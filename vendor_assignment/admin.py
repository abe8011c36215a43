from django.contrib import admin

from .models import VendorAssignmentRequest


@admin.register(VendorAssignmentRequest)
class VendorAssignmentRequestAdmin(admin.ModelAdmin):
    list_display = (
        'id', 'request_type', 'user', 'status', 'priority',
        'current_vendor', 'new_vendor', 'delivery_zone', 'requested_at',
    )
    list_filter = ('status', 'request_type', 'priority', 'delivery_zone')
    search_fields = ('user__username', 'user__email', 'description')
    raw_id_fields = ('user_subscription', 'user', 'current_vendor', 'new_vendor', 'processed_by')
    filter_horizontal = ('preferred_vendors',)
    readonly_fields = ('requested_at', 'processed_at', 'updated_at')
