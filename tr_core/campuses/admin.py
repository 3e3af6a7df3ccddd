# tr_core/campuses/admin.py
from django.contrib import admin

from tr_core.campuses.models import Campus


@admin.register(Campus)
class CampusAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "tenant", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("name", "code", "abbreviation")
    ordering = ("tenant", "name")
    readonly_fields = ("id", "created_at", "updated_at")
