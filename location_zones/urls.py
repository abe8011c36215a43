from django.urls import path
from . import views

app_name = 'location_zones'

urlpatterns = [
    path('', views.zone_list_create, name='zone_list_create'),
    path('<int:zone_id>/', views.zone_detail, name='zone_detail'),
    path('<int:zone_id>/toggle/', views.toggle_zone_status, name='toggle_zone_status'),
    path('availability/', views.check_service_availability, name='check_service_availability'),
    path('validate-subscription-delivery/', views.validate_delivery_for_subscription, name='validate_delivery_for_subscription'),
    path('delivery-fee/', views.calculate_delivery_fee, name='calculate_delivery_fee'),
]
