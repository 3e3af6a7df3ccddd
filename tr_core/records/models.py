# tr_core/records/models.py
from django.db import models

from tr_core.common.models import TenantScopedModel


class RecordStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class Record(TenantScopedModel):
    """
    A student trespass record.

    Lifecycle state is derived from (status, expiration_date, deleted_at),
    see tr_core/records/lifecycle.py. There is no stored state column.
    """
    campus_id = models.CharField(max_length=50, null=True, blank=True, db_index=True)

    first_name = models.CharField(max_length=128)
    last_name = models.CharField(max_length=128)
    school_id = models.CharField(max_length=64, blank=True, default="", db_index=True)

    incident_date = models.DateField(null=True, blank=True)
    location = models.CharField(max_length=255, blank=True, default="")
    description = models.TextField(blank=True, default="")
    notes = models.TextField(blank=True, default="")

    status = models.CharField(
        max_length=16,
        choices=RecordStatus.choices,
        default=RecordStatus.ACTIVE,
        db_index=True,
    )
    expiration_date = models.DateTimeField(null=True, blank=True)

    is_daep = models.BooleanField(default=False, db_index=True)
    daep_expiration_date = models.DateTimeField(null=True, blank=True)

    deleted_at = models.DateTimeField(null=True, blank=True, db_index=True)

    class Meta:
        db_table = "records_record"
        indexes = [
            models.Index(fields=["tenant_id", "deleted_at", "created_at"]),
            models.Index(fields=["tenant_id", "campus_id"]),
            models.Index(fields=["tenant_id", "is_daep"]),
        ]

    def __str__(self) -> str:
        return f"{self.full_name} ({self.id})"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
