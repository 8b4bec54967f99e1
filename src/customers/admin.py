"""Admin configuration for the customers app."""
from django.contrib import admin

from .models import Customer


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("full_name", "phone", "email", "enterprise", "is_default", "is_active", "created_at")
    list_filter = ("is_active", "is_default", "enterprise")
    search_fields = ("first_name", "last_name", "phone", "email")
    readonly_fields = ("id", "created_at", "updated_at")
    list_select_related = ("enterprise",)
    date_hierarchy = "created_at"
