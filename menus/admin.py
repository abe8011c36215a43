from django.contrib import admin

from .models import DailyMeal, Menu


@admin.register(Menu)
class MenuAdmin(admin.ModelAdmin):
    list_display = ('food_title', 'vendor_category', 'cuisine', 'price', 'rating_average', 'is_available', 'is_active')
    list_filter = ('vendor_category', 'is_available', 'is_active')
    search_fields = ('food_title', 'cuisine', 'short_description')
    readonly_fields = ('rating_average', 'total_reviews', 'created_at', 'updated_at')


@admin.register(DailyMeal)
class DailyMealAdmin(admin.ModelAdmin):
    list_display = ('subscription', 'meal_date', 'vendor_type', 'is_active', 'created_by')
    list_filter = ('is_active', 'vendor_type', 'meal_date')
    filter_horizontal = ('lunch_menus', 'dinner_menus')
    date_hierarchy = 'meal_date'
