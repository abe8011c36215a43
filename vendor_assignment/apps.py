from django.apps import AppConfig


class VendorAssignmentConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'vendor_assignment'
    verbose_name = 'Vendor Assignment'
