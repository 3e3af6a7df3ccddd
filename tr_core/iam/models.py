# tr_core/iam/models.py
import uuid
from django.conf import settings
from django.db import models
from django.db.models import F, Q

from tr_core.tenants.models import Tenant


class Role(models.TextChoices):
    """
    Closed, hierarchical role set (lowest to highest).
    """
    VIEWER = "viewer", "Viewer"
    CAMPUS_ADMIN = "campus_admin", "Campus admin"
    DISTRICT_ADMIN = "district_admin", "District admin"
    MASTER_ADMIN = "master_admin", "Master admin"


class UserProfile(models.Model):
    """
    The Actor: tenant-scoped identity anchored to Django's AUTH_USER_MODEL.

    - tenant: home tenant (only a master_admin may have none)
    - active_tenant: per-actor tenant override, master_admin only
    - campus_id: tenant-local campus code, required for campus_admin
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="tr_profile")

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.PROTECT,
        related_name="user_profiles",
        null=True,
        blank=True,
    )
    active_tenant = models.ForeignKey(
        Tenant,
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True,
    )

    role = models.CharField(max_length=32, choices=Role.choices, default=Role.VIEWER, db_index=True)
    campus_id = models.CharField(max_length=50, null=True, blank=True, db_index=True)

    email = models.EmailField(blank=True, default="")
    display_name = models.CharField(max_length=255, blank=True, default="")

    deleted_at = models.DateTimeField(null=True, blank=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "iam_user_profile"
        constraints = [
            models.CheckConstraint(
                condition=~Q(role=Role.CAMPUS_ADMIN) | (Q(campus_id__isnull=False) & ~Q(campus_id="")),
                name="ck_profile_campus_admin_has_campus",
            ),
            models.CheckConstraint(
                condition=Q(role=Role.MASTER_ADMIN) | Q(active_tenant__isnull=True) | Q(active_tenant=F("tenant")),
                name="ck_profile_active_tenant_master_only",
            ),
            models.CheckConstraint(
                condition=Q(role=Role.MASTER_ADMIN) | Q(tenant__isnull=False),
                name="ck_profile_tenant_required",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant", "role"]),
            models.Index(fields=["tenant", "campus_id"]),
        ]

    def __str__(self) -> str:
        return f"{self.email or self.user_id} ({self.role})"

    @property
    def is_master_admin(self) -> bool:
        return self.role == Role.MASTER_ADMIN
