# tr_core/iam/admin.py
from __future__ import annotations

from django.contrib import admin

from tr_core.iam.models import UserProfile


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ("email", "role", "tenant", "campus_id", "deleted_at", "created_at")
    list_filter = ("role", "tenant")
    search_fields = ("email", "display_name", "user__username", "user__email")
    ordering = ("-created_at",)
    readonly_fields = ("id", "created_at", "updated_at")
