from django.urls import path
from . import views

app_name = 'reviews'

urlpatterns = [
    # Customer
    path('', views.create_review, name='create_review'),
    path('my/', views.my_reviews, name='my_reviews'),
    path('<int:review_id>/', views.review_detail, name='review_detail'),

    # Vendor
    path('vendor/', views.vendor_reviews, name='vendor_reviews'),

    # Public
    path('subscriptions/<int:subscription_id>/', views.subscription_reviews, name='subscription_reviews'),
    path('vendors/<int:vendor_id>/', views.public_vendor_reviews, name='public_vendor_reviews'),
    path('orders/<int:order_id>/', views.order_review, name='order_review'),

    # Admin
    path('admin/', views.admin_reviews, name='admin_reviews'),
    path('admin/stats/', views.review_stats, name='review_stats'),
    path('admin/<int:review_id>/moderate/', views.moderate_review, name='moderate_review'),
]
