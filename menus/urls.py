from django.urls import path
from . import views

app_name = 'menus'

urlpatterns = [
    path('', views.menu_list_create, name='menu_list_create'),
    path('bulk-availability/', views.bulk_update_availability, name='bulk_update_availability'),
    path('today/', views.my_today_meal, name='my_today_meal'),
    path('daily/', views.daily_meal_list_create, name='daily_meal_list_create'),
    path('daily/<int:meal_id>/', views.daily_meal_detail, name='daily_meal_detail'),
    path('daily/plans/<int:plan_id>/available-menus/', views.available_menus_for_plan, name='available_menus_for_plan'),
    path('<int:menu_id>/', views.menu_detail, name='menu_detail'),
    path('<int:menu_id>/toggle-availability/', views.toggle_menu_availability, name='toggle_menu_availability'),
]
