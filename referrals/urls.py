from django.urls import path
from . import views

app_name = 'referrals'

urlpatterns = [
    path('stats/', views.referral_stats, name='referral_stats'),
    path('link/', views.referral_link, name='referral_link'),
    path('leaderboard/', views.referral_leaderboard, name='referral_leaderboard'),
    path('use-credits/', views.use_referral_credits, name='use_referral_credits'),
    path('admin/used-users/', views.referral_used_users, name='referral_used_users'),
    path('admin/users/<int:user_id>/', views.user_referral_details, name='user_referral_details'),
]
