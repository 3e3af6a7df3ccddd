# tr_core/tenants/admin.py
from django.contrib import admin

from tr_core.tenants.models import Tenant


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ("display_name", "subdomain", "status", "created_at", "updated_at")
    list_filter = ("status", "created_at")
    search_fields = ("display_name", "subdomain")
    ordering = ("-created_at",)
    readonly_fields = ("id", "created_at", "updated_at")
