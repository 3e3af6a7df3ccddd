# tr_core/audit/models.py
import uuid
from django.db import models


class EventType(models.TextChoices):
    RECORD_CREATED = "record.created", "Record created"
    RECORD_UPDATED = "record.updated", "Record updated"
    RECORD_DELETED = "record.deleted", "Record deleted"
    RECORD_RESTORED = "record.restored", "Record restored"
    RECORD_PERMANENTLY_DELETED = "record.permanently_deleted", "Record permanently deleted"

    USER_UPDATED = "user.updated", "User updated"
    USER_DELETED = "user.deleted", "User deleted"

    CAMPUS_CREATED = "campus.created", "Campus created"
    CAMPUS_UPDATED = "campus.updated", "Campus updated"
    CAMPUS_DEACTIVATED = "campus.deactivated", "Campus deactivated"
    CAMPUS_ACTIVATED = "campus.activated", "Campus activated"

    TENANT_CREATED = "tenant.created", "Tenant created"
    TENANT_UPDATED = "tenant.updated", "Tenant updated"
    TENANT_DEACTIVATED = "tenant.deactivated", "Tenant deactivated"
    TENANT_REACTIVATED = "tenant.reactivated", "Tenant reactivated"
    TENANT_SWITCHED = "tenant.switched", "Tenant switched"


class AuditLedgerImmutable(Exception):
    pass


class AuditEventQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise AuditLedgerImmutable("Audit events cannot be updated.")

    def delete(self):
        raise AuditLedgerImmutable("Audit events cannot be deleted.")


class AuditEvent(models.Model):
    """
    Immutable audit record: one row per privileged action.
    Actor fields are copied at write time so the row survives later
    role changes or account deletion.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    event_type = models.CharField(max_length=64, choices=EventType.choices, db_index=True)

    actor_id = models.UUIDField(db_index=True)
    actor_email = models.CharField(max_length=254, blank=True, default="")
    actor_role = models.CharField(max_length=32)

    target_id = models.CharField(max_length=64, null=True, blank=True, db_index=True)
    action = models.CharField(max_length=255)
    details = models.JSONField(default=dict, blank=True)

    tenant_id = models.UUIDField(db_index=True)
    campus_id = models.CharField(max_length=50, null=True, blank=True, db_index=True)
    record_subject_name = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    objects = AuditEventQuerySet.as_manager()

    class Meta:
        db_table = "audit_audit_event"
        indexes = [
            models.Index(fields=["tenant_id", "created_at"]),
            models.Index(fields=["tenant_id", "event_type"]),
        ]

    def __str__(self) -> str:
        return f"{self.event_type} {self.target_id or '-'} @ {self.created_at}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise AuditLedgerImmutable("Audit events cannot be updated.")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise AuditLedgerImmutable("Audit events cannot be deleted.")
