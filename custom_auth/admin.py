from django.contrib import admin
from .models import Address, CustomUser, UserProfile


class CustomUserAdmin(admin.ModelAdmin):
    list_display = ('username', 'email', 'role', 'referral_code', 'wallet_credits', 'is_active', 'is_banned')
    list_filter = ('role', 'is_staff', 'is_active', 'is_banned')
    search_fields = ('username', 'email', 'referral_code', 'phone_number')
    raw_id_fields = ('referred_by', 'banned_by')


class AddressAdmin(admin.ModelAdmin):
    list_display = ('user', 'label', 'city', 'pincode', 'is_default')
    list_filter = ('is_default', 'city')
    search_fields = ('user__username', 'street', 'pincode')
    raw_id_fields = ('user',)


admin.site.register(CustomUser, CustomUserAdmin)
admin.site.register(UserProfile)
admin.site.register(Address, AddressAdmin)
