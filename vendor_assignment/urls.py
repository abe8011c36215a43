from django.urls import path
from . import views

app_name = 'vendor_assignment'

urlpatterns = [
    # Admin
    path('requests/', views.all_requests, name='all_requests'),
    path('requests/pending/', views.pending_requests, name='pending_requests'),
    path('requests/pending/initial/', views.pending_initial_assignments, name='pending_initial_assignments'),
    path('requests/pending/switch/', views.pending_vendor_switches, name='pending_vendor_switches'),
    path('requests/urgent/', views.urgent_requests, name='urgent_requests'),
    path('requests/zone/<int:zone_id>/', views.requests_by_zone, name='requests_by_zone'),
    path('requests/<int:request_id>/', views.request_details, name='request_details'),
    path('requests/<int:request_id>/available-vendors/', views.available_vendors, name='available_vendors'),
    path('requests/<int:request_id>/assign/', views.assign_vendor, name='assign_vendor'),
    path('requests/<int:request_id>/reject/', views.reject_request, name='reject_request'),
    path('requests/<int:request_id>/priority/', views.update_priority, name='update_priority'),
    path('stats/', views.assignment_stats, name='assignment_stats'),
    # Customer
    path('my-requests/', views.my_requests, name='my_requests'),
    path('my-requests/<int:request_id>/', views.my_request_detail, name='my_request_detail'),
]
