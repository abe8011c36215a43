from django.contrib import admin

from .models import LocationZone, ZonePincode


class ZonePincodeInline(admin.TabularInline):
    model = ZonePincode
    extra = 1


@admin.register(LocationZone)
class LocationZoneAdmin(admin.ModelAdmin):
    list_display = ('zone_name', 'city', 'state', 'service_type', 'service_radius_km', 'is_active')
    list_filter = ('is_active', 'service_type', 'city')
    search_fields = ('zone_name', 'city', 'pincodes__pincode')
    inlines = [ZonePincodeInline]
