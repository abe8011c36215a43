from django.apps import AppConfig


class PromoCodesConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'promo_codes'
    verbose_name = 'Promo Codes'
