# tr_core/campuses/models.py
from __future__ import annotations

import uuid

from django.core.validators import RegexValidator
from django.db import models
from django.db.models.functions import Lower

from tr_core.tenants.models import Tenant

campus_code_validator = RegexValidator(
    regex=r"^[a-z0-9][a-z0-9\-_]{0,49}$",
    message="Campus ID must start with a letter or digit and contain only letters, digits, hyphens or underscores (max 50).",
)


class CampusStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class Campus(models.Model):
    """
    A school/site under a Tenant.

    `code` is the tenant-local campus identifier that actors, records and
    audit events refer to (e.g. "010").
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    tenant = models.ForeignKey(Tenant, on_delete=models.PROTECT, related_name="campuses")

    code = models.CharField(max_length=50, validators=[campus_code_validator])
    name = models.CharField(max_length=255)
    abbreviation = models.CharField(max_length=32, blank=True, default="")

    status = models.CharField(
        max_length=16,
        choices=CampusStatus.choices,
        default=CampusStatus.ACTIVE,
        db_index=True,
    )

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "campuses_campus"
        constraints = [
            models.UniqueConstraint(fields=["tenant", "code"], name="uq_campus_tenant_code"),
            models.UniqueConstraint(Lower("name"), "tenant", name="uq_campus_tenant_name_ci"),
        ]
        indexes = [
            models.Index(fields=["tenant", "status"]),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"
