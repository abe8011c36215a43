from django.urls import path
from . import views
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

app_name = 'custom_auth'

urlpatterns = [
    path('api/register/', views.register_api_view, name='register_api'),
    path('api/token/', TokenObtainPairView.as_view(), name='token_obtain'),
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/user_details/', views.user_details_view, name='user_details'),
    path('api/profile/', views.profile_view, name='profile'),
    path('api/profile/preferences/', views.preferences_view, name='preferences'),
    path('api/profile/addresses/', views.addresses_view, name='addresses'),
    path('api/profile/addresses/<int:address_id>/', views.address_detail_view, name='address_detail'),
    path('api/admin/users/', views.admin_users, name='admin_users'),
    path('api/admin/users/overview/', views.admin_user_overview, name='admin_user_overview'),
    path('api/admin/users/activity/', views.admin_user_activity, name='admin_user_activity'),
    path('api/admin/users/<int:user_id>/', views.admin_user_detail, name='admin_user_detail'),
    path('api/admin/users/<int:user_id>/ban/', views.ban_user, name='ban_user'),
    path('api/admin/users/<int:user_id>/unban/', views.unban_user, name='unban_user'),
    path('api/admin/users/<int:user_id>/toggle-status/', views.toggle_user_status, name='toggle_user_status'),
]
