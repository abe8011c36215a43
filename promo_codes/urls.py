from django.urls import path
from . import views

app_name = 'promo_codes'

urlpatterns = [
    path('validate/', views.validate_promo_code, name='validate_promo_code'),
    path('', views.promo_code_list_create, name='promo_code_list_create'),
    path('expiring/', views.expiring_promo_codes, name='expiring_promo_codes'),
    path('bulk/', views.bulk_create_promo_codes, name='bulk_create_promo_codes'),
    path('<int:promo_id>/', views.promo_code_detail, name='promo_code_detail'),
    path('<int:promo_id>/toggle/', views.toggle_promo_code, name='toggle_promo_code'),
    path('<int:promo_id>/stats/', views.promo_code_stats, name='promo_code_stats'),
]
