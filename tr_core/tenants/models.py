# tr_core/tenants/models.py
import uuid
from django.core.validators import RegexValidator
from django.db import models


subdomain_validator = RegexValidator(
    regex=r"^[a-z0-9-]+$",
    message="Subdomain may only contain lowercase letters, digits and hyphens.",
)


class TenantStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class Tenant(models.Model):
    """
    An isolated organization (a school district).
    Root of all scoping in the system.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    subdomain = models.CharField(max_length=63, unique=True, validators=[subdomain_validator])
    display_name = models.CharField(max_length=255)

    status = models.CharField(
        max_length=16,
        choices=TenantStatus.choices,
        default=TenantStatus.ACTIVE,
        db_index=True,
    )

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "tenants_tenant"
        indexes = [
            models.Index(fields=["status"]),
            models.Index(fields=["created_at"]),
        ]

    def __str__(self) -> str:
        return f"{self.display_name} ({self.subdomain})"
