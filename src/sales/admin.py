"""Admin configuration for the sales app."""
from django.contrib import admin

from sales.models import Sale


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = ("reference", "store", "customer", "status", "total", "order_date")
    list_filter = ("status", "store")
    search_fields = ("reference", "customer__first_name", "customer__last_name", "customer__phone")
    date_hierarchy = "order_date"
    list_select_related = ("store", "customer")
    readonly_fields = ("id", "created_at", "updated_at")
