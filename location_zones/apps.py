from django.apps import AppConfig


class LocationZonesConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'location_zones'
    verbose_name = 'Location Zones'
