from django.contrib import admin

from .models import Review


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ('id', 'review_type', 'user', 'rating', 'status', 'is_verified_purchase', 'created_at')
    list_filter = ('review_type', 'status', 'rating')
    search_fields = ('user__username', 'review_text')
    readonly_fields = ('created_at', 'updated_at', 'moderated_at')
