# tr_core/records/admin.py
from django.contrib import admin

from tr_core.records.models import Record


@admin.register(Record)
class RecordAdmin(admin.ModelAdmin):
    list_display = ("last_name", "first_name", "school_id", "campus_id", "status", "is_daep", "deleted_at", "created_at")
    list_filter = ("status", "is_daep", "campus_id")
    search_fields = ("first_name", "last_name", "school_id")
    ordering = ("-created_at",)
    readonly_fields = ("id", "tenant_id", "deleted_at", "created_at", "updated_at")

    def has_delete_permission(self, request, obj=None):
        # Removal goes through the retention-checked purge path only.
        return False
