from django.contrib import admin

from .models import ReferralReward


@admin.register(ReferralReward)
class ReferralRewardAdmin(admin.ModelAdmin):
    list_display = ('referrer', 'referred_user', 'purchase_amount', 'credits_awarded', 'created_at')
    search_fields = ('referrer__username', 'referred_user__username')
    raw_id_fields = ('referrer', 'referred_user', 'user_subscription')
