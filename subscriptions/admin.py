from django.contrib import admin

from .models import Subscription, Transaction, UserSubscription, VendorAssignmentHistory


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    list_display = (
        'plan_name', 'duration', 'duration_days', 'meals_per_plan', 'discounted_price',
        'category', 'current_purchases', 'is_active',
    )
    list_filter = ('duration', 'category', 'is_active')
    search_fields = ('plan_name',)
    readonly_fields = ('duration_days', 'current_purchases', 'created_at', 'updated_at')


class VendorAssignmentHistoryInline(admin.TabularInline):
    model = VendorAssignmentHistory
    extra = 0
    raw_id_fields = ('vendor', 'assigned_by')


@admin.register(UserSubscription)
class UserSubscriptionAdmin(admin.ModelAdmin):
    list_display = (
        'id', 'user', 'subscription', 'status', 'start_date', 'end_date',
        'credits_used', 'credits_granted', 'vendor', 'vendor_switch_used',
    )
    list_filter = ('status', 'vendor_switch_used', 'subscription__category')
    search_fields = ('user__username', 'user__email', 'delivery_pincode')
    raw_id_fields = ('user', 'transaction', 'vendor', 'vendor_assigned_by', 'promo_code', 'delivery_zone')
    inlines = [VendorAssignmentHistoryInline]


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'subscription', 'amount', 'status', 'payment_intent_id', 'created_at')
    list_filter = ('status', 'transaction_type')
    search_fields = ('payment_intent_id', 'refund_id', 'user__username')
    raw_id_fields = ('user', 'subscription', 'promo_code', 'refunded_by')
    readonly_fields = ('refund_id', 'refund_amount', 'refunded_at', 'created_at', 'updated_at')
