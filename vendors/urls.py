from django.urls import path
from . import views

app_name = 'vendors'

urlpatterns = [
    path('', views.vendor_list_create, name='vendor_list_create'),
    path('me/', views.my_vendor_profile, name='my_vendor_profile'),
    path('stats/', views.vendor_stats, name='vendor_stats'),
    path('<int:vendor_id>/', views.vendor_detail, name='vendor_detail'),
    path('<int:vendor_id>/verify/', views.verify_vendor, name='verify_vendor'),
    path('<int:vendor_id>/toggle-availability/', views.toggle_vendor_availability, name='toggle_vendor_availability'),
    path('<int:vendor_id>/capacity/', views.update_vendor_capacity, name='update_vendor_capacity'),
    path('<int:vendor_id>/reset-capacity/', views.reset_vendor_capacity, name='reset_vendor_capacity'),
]
