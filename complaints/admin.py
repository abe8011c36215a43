from django.contrib import admin

from .models import Complaint


@admin.register(Complaint)
class ComplaintAdmin(admin.ModelAdmin):
    list_display = ('id', 'title', 'name', 'phone_number', 'user', 'created_at')
    search_fields = ('title', 'name', 'phone_number')
    raw_id_fields = ('user',)
