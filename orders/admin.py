from django.contrib import admin

from .models import Order, OrderCreationLog, OrderStatusHistory


class OrderStatusHistoryInline(admin.TabularInline):
    model = OrderStatusHistory
    extra = 0
    readonly_fields = ('status', 'changed_by', 'notes', 'created_at')


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ('order_number', 'user', 'vendor', 'delivery_date', 'meal_type', 'delivery_time', 'status')
    list_filter = ('status', 'meal_type', 'vendor_type', 'delivery_date')
    search_fields = ('order_number', 'user__username', 'vendor__business_name')
    readonly_fields = ('order_number', 'created_at', 'updated_at')
    date_hierarchy = 'delivery_date'
    inlines = [OrderStatusHistoryInline]


@admin.register(OrderCreationLog)
class OrderCreationLogAdmin(admin.ModelAdmin):
    list_display = ('user_subscription', 'delivery_date', 'meal_type', 'status', 'reason', 'can_retry', 'retry_count')
    list_filter = ('status', 'reason', 'can_retry')
    search_fields = ('user__username', 'message')
