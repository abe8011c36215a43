from django.urls import path
from . import views

app_name = 'complaints'

urlpatterns = [
    path('', views.create_complaint, name='create_complaint'),
    path('phone/', views.complaints_by_phone, name='complaints_by_phone'),
    path('<int:complaint_id>/', views.complaint_detail, name='complaint_detail'),
    path('admin/', views.admin_complaints, name='admin_complaints'),
    path('admin/<int:complaint_id>/', views.admin_complaint_detail, name='admin_complaint_detail'),
]
