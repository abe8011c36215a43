"""
URL configuration for tiffin_hub project.
"""
from django.contrib import admin
from django.urls import path, include
from django.http import HttpResponse


urlpatterns = [
    # Simple health check endpoint for load balancers and CI smoke tests
    path('healthz/', lambda request: HttpResponse('ok'), name='healthz'),
    path('admin/', admin.site.urls),
    path('auth/', include('custom_auth.urls')),
    path('zones/', include('location_zones.urls')),
    path('vendors/', include('vendors.urls')),
    path('subscriptions/', include('subscriptions.urls')),
    path('vendor-assignment/', include('vendor_assignment.urls')),
    path('promo-codes/', include('promo_codes.urls')),
    path('referrals/', include('referrals.urls')),
    path('menus/', include('menus.urls')),
    path('orders/', include('orders.urls')),
    path('reviews/', include('reviews.urls')),
    path('complaints/', include('complaints.urls')),
]
