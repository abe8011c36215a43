from django.urls import path
from . import views

app_name = 'orders'

urlpatterns = [
    # Customer
    path('my/', views.my_orders, name='my_orders'),
    path('my/today/', views.my_today_orders, name='my_today_orders'),
    path('<int:order_id>/', views.order_detail, name='order_detail'),
    path('<int:order_id>/skip/', views.skip_order, name='skip_order'),
    path('<int:order_id>/cancel/', views.cancel_order, name='cancel_order'),

    # Vendor and admin
    path('vendor/', views.vendor_orders, name='vendor_orders'),
    path('<int:order_id>/status/', views.update_order_status, name='update_order_status'),

    # Admin
    path('admin/', views.admin_orders, name='admin_orders'),
    path('admin/stats/', views.order_stats, name='order_stats'),
    path('admin/create/', views.create_orders, name='create_orders'),
    path('admin/logs/', views.order_creation_logs, name='order_creation_logs'),
    path('admin/logs/<int:log_id>/retry/', views.retry_order_creation, name='retry_order_creation'),
    path('<int:order_id>/confirm-delivery/', views.confirm_delivery, name='confirm_delivery'),
]
