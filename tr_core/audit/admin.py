# tr_core/audit/admin.py
from django.contrib import admin

from tr_core.audit.models import AuditEvent


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = (
        "event_type",
        "target_id",
        "actor_email",
        "actor_role",
        "tenant_id",
        "campus_id",
        "created_at",
    )
    list_filter = ("event_type", "actor_role")
    search_fields = ("actor_email", "record_subject_name", "target_id")
    ordering = ("-created_at",)

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
