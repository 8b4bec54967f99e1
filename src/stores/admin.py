"""Django admin configuration for the stores app."""
from django.contrib import admin

from stores.models import AuditLog, Enterprise, Store


@admin.register(Enterprise)
class EnterpriseAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "currency", "is_active", "created_at")
    list_filter = ("is_active", "currency")
    search_fields = ("name", "code", "legal_name")
    readonly_fields = ("id", "created_at", "updated_at")
    list_per_page = 50


@admin.register(Store)
class StoreAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "enterprise", "phone", "email", "is_active", "created_at")
    list_filter = ("is_active", "enterprise")
    search_fields = ("name", "code", "enterprise__name", "email", "phone")
    readonly_fields = ("id", "created_at", "updated_at")
    list_select_related = ("enterprise",)
    list_per_page = 50


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "actor", "store", "action", "entity_type", "entity_id")
    list_filter = ("action", "entity_type", "store")
    search_fields = ("entity_id", "actor__email")
    readonly_fields = ("actor", "store", "action", "entity_type", "entity_id", "before_json", "after_json", "ip_address", "created_at")
    list_select_related = ("actor", "store")

    def has_add_permission(self, request):
        return False
