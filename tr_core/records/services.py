# tr_core/records/services.py
from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from datetime import date, datetime
from typing import Any, Optional
from uuid import UUID

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from tr_core.audit.models import EventType
from tr_core.audit.services import AuditService
from tr_core.campuses.selectors import campus_exists
from tr_core.common.api.exceptions import ConflictError, NotFound, RetentionPeriodNotMet
from tr_core.common.storage import read_with_retry, write_guard
from tr_core.iam.authz import Action, TargetScope, require
from tr_core.iam.models import Role
from tr_core.iam.privileged import PrivilegeGrant, require_grant, verify_privileged_operation
from tr_core.iam.scope import effective_campus_for_write, ensure_campus_writable
from tr_core.records.lifecycle import days_remaining, purge_cutoff, retention_met
from tr_core.records.models import Record, RecordStatus
from tr_core.records.selectors import get_any_record, get_live_record

logger = logging.getLogger(__name__)

NOT_DELETED_MSG = "Record is not deleted."

_UNSET = object()


@dataclass(frozen=True)
class RecordData:
    """
    Writable record fields. Fields left as _UNSET are not touched on update.
    """
    campus_id: Any = _UNSET
    first_name: Any = _UNSET
    last_name: Any = _UNSET
    school_id: Any = _UNSET
    incident_date: Any = _UNSET
    location: Any = _UNSET
    description: Any = _UNSET
    notes: Any = _UNSET
    status: Any = _UNSET
    expiration_date: Any = _UNSET
    is_daep: Any = _UNSET
    daep_expiration_date: Any = _UNSET

    @classmethod
    def from_mapping(cls, data: dict) -> "RecordData":
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})

    def provided(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not _UNSET}


def _jsonable(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    return value


def _validate_campus(*, tenant_id: UUID, campus_id: Optional[str]) -> Optional[str]:
    if campus_id in (None, ""):
        return None
    code = str(campus_id).strip().lower()
    if not read_with_retry(lambda: campus_exists(tenant_id=tenant_id, code=code), label="campus_exists"):
        raise ValidationError({"campus_id": "Unknown campus for this tenant."})
    return code


def _validate_status(value) -> str:
    if value not in RecordStatus.values:
        raise ValidationError({"status": f"Invalid status. Allowed: {list(RecordStatus.values)}"})
    return value


def _load_any(tenant_id: UUID, record_id: UUID) -> Record:
    r = get_any_record(tenant_id=tenant_id, record_id=record_id)
    if r is None:
        raise NotFound()
    return r


def _audit(*, event_type: str, actor, record: Record, action: str, details: Optional[dict] = None):
    return AuditService.append(
        event_type=event_type,
        actor=actor,
        tenant_id=record.tenant_id,
        target_id=record.id,
        campus_id=record.campus_id,
        record_subject_name=record.full_name,
        action=action,
        details=details,
    )


class RecordService:
    """
    Record writes for the effective tenant.

    create/update are ordinary scoped writes. soft_delete, restore and
    permanently_delete bypass per-row scoping and therefore demand a
    PrivilegeGrant from the service-role verifier.
    """

    # ------------------------------------------------------------------
    # Scoped writes
    # ------------------------------------------------------------------

    @staticmethod
    def create(*, actor, tenant_id: UUID, data: RecordData) -> Record:
        values = data.provided()
        campus_id = effective_campus_for_write(actor, values.pop("campus_id", None))
        require(actor, Action.RECORD_CREATE, TargetScope(tenant_id=tenant_id, campus_id=campus_id))

        for required in ("first_name", "last_name"):
            if not (values.get(required) or "").strip():
                raise ValidationError({required: "This field is required."})
        if "status" in values:
            _validate_status(values["status"])
        campus_id = _validate_campus(tenant_id=tenant_id, campus_id=campus_id)

        with write_guard(label="record.create"):
            with transaction.atomic():
                r = Record.objects.create(tenant_id=tenant_id, campus_id=campus_id, **values)

        logger.info("record_created record_id=%s tenant_id=%s", r.id, tenant_id)
        _audit(
            event_type=EventType.RECORD_CREATED,
            actor=actor,
            record=r,
            action=f"Created record for {r.full_name}",
            details={"campus_id": r.campus_id, "status": r.status, "is_daep": r.is_daep},
        )
        return r

    @staticmethod
    def update(*, actor, tenant_id: UUID, record_id: UUID, data: RecordData) -> Record:
        require(actor, Action.RECORD_UPDATE, TargetScope(tenant_id=tenant_id))
        values = data.provided()

        r = get_live_record(tenant_id=tenant_id, record_id=record_id)
        if r is None:
            raise NotFound()
        ensure_campus_writable(actor, r.campus_id)

        if "campus_id" in values:
            if actor.role == Role.CAMPUS_ADMIN:
                values["campus_id"] = actor.campus_id
            else:
                values["campus_id"] = _validate_campus(tenant_id=tenant_id, campus_id=values["campus_id"])
        if "status" in values:
            _validate_status(values["status"])
        for required in ("first_name", "last_name"):
            if required in values and not (values[required] or "").strip():
                raise ValidationError({required: "This field may not be blank."})

        with write_guard(label="record.update"):
            with transaction.atomic():
                r = Record.objects.select_for_update().filter(
                    id=record_id, tenant_id=tenant_id, deleted_at__isnull=True
                ).first()
                if r is None:
                    raise NotFound()

                diff = {}
                for field, value in values.items():
                    before = getattr(r, field)
                    if before != value:
                        diff[field] = {"before": _jsonable(before), "after": _jsonable(value)}
                        setattr(r, field, value)
                if diff:
                    r.save(update_fields=[*diff.keys(), "updated_at"])

        if diff:
            _audit(
                event_type=EventType.RECORD_UPDATED,
                actor=actor,
                record=r,
                action=f"Updated record for {r.full_name}",
                details={"changes": diff},
            )
        return r

    # ------------------------------------------------------------------
    # Privileged primitives (grant required)
    # ------------------------------------------------------------------

    @staticmethod
    @transaction.atomic
    def _mark_deleted(*, grant: PrivilegeGrant, tenant_id: UUID, record_id: UUID) -> Record:
        require_grant(grant, action=Action.RECORD_DELETE, tenant_id=tenant_id)
        now = timezone.now()
        updated = Record.objects.filter(id=record_id, tenant_id=tenant_id, deleted_at__isnull=True).update(
            deleted_at=now, updated_at=now
        )
        if updated == 0:
            raise ConflictError("Record is already deleted.")
        return Record.objects.get(id=record_id, tenant_id=tenant_id)

    @staticmethod
    @transaction.atomic
    def _clear_deleted(*, grant: PrivilegeGrant, tenant_id: UUID, record_id: UUID) -> Record:
        require_grant(grant, action=Action.RECORD_RESTORE, tenant_id=tenant_id)
        updated = Record.objects.filter(id=record_id, tenant_id=tenant_id, deleted_at__isnull=False).update(
            deleted_at=None, updated_at=timezone.now()
        )
        if updated == 0:
            raise ConflictError(NOT_DELETED_MSG)
        return Record.objects.get(id=record_id, tenant_id=tenant_id)

    @staticmethod
    @transaction.atomic
    def _purge(*, grant: PrivilegeGrant, tenant_id: UUID, record_id: UUID, observed_deleted_at: datetime) -> None:
        require_grant(grant, action=Action.RECORD_PURGE, tenant_id=tenant_id)
        # Keyed on the observed deleted_at: a concurrent restore (or
        # restore + re-delete) makes this match nothing.
        deleted, _ = Record.objects.filter(
            id=record_id,
            tenant_id=tenant_id,
            deleted_at=observed_deleted_at,
            deleted_at__lte=purge_cutoff(),
        ).delete()
        if deleted == 0:
            raise ConflictError("Record changed while it was being permanently deleted. Reload and retry.")

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    @staticmethod
    def soft_delete(*, actor, tenant_id: UUID, record_id: UUID) -> Record:
        require(actor, Action.RECORD_DELETE, TargetScope(tenant_id=tenant_id))
        r = _load_any(tenant_id, record_id)
        if r.deleted_at is not None:
            raise ConflictError("Record is already deleted.")

        grant = verify_privileged_operation(actor_id=actor.id, target_tenant_id=tenant_id, action=Action.RECORD_DELETE)
        with write_guard(label="record.soft_delete"):
            r = RecordService._mark_deleted(grant=grant, tenant_id=tenant_id, record_id=record_id)

        logger.info("record_soft_deleted record_id=%s tenant_id=%s", r.id, tenant_id)
        _audit(
            event_type=EventType.RECORD_DELETED,
            actor=actor,
            record=r,
            action=f"Deleted record for {r.full_name}",
            details={"deleted_at": _jsonable(r.deleted_at)},
        )
        return r

    @staticmethod
    def restore(*, actor, tenant_id: UUID, record_id: UUID) -> Record:
        require(actor, Action.RECORD_RESTORE, TargetScope(tenant_id=tenant_id))
        r = _load_any(tenant_id, record_id)
        if r.deleted_at is None:
            raise ConflictError(NOT_DELETED_MSG)
        previously_deleted_at = r.deleted_at

        grant = verify_privileged_operation(actor_id=actor.id, target_tenant_id=tenant_id, action=Action.RECORD_RESTORE)
        with write_guard(label="record.restore"):
            r = RecordService._clear_deleted(grant=grant, tenant_id=tenant_id, record_id=record_id)

        logger.info("record_restored record_id=%s tenant_id=%s", r.id, tenant_id)
        _audit(
            event_type=EventType.RECORD_RESTORED,
            actor=actor,
            record=r,
            action=f"Restored record for {r.full_name}",
            details={"deleted_at": _jsonable(previously_deleted_at), "status": r.status},
        )
        return r

    @staticmethod
    def permanently_delete(*, actor, tenant_id: UUID, record_id: UUID) -> None:
        require(actor, Action.RECORD_PURGE, TargetScope(tenant_id=tenant_id))
        r = _load_any(tenant_id, record_id)
        if r.deleted_at is None:
            raise ConflictError(NOT_DELETED_MSG)
        if not retention_met(r.deleted_at):
            raise RetentionPeriodNotMet(days_remaining=days_remaining(r.deleted_at))

        grant = verify_privileged_operation(actor_id=actor.id, target_tenant_id=tenant_id, action=Action.RECORD_PURGE)
        with write_guard(label="record.permanently_delete"):
            RecordService._purge(
                grant=grant,
                tenant_id=tenant_id,
                record_id=record_id,
                observed_deleted_at=r.deleted_at,
            )

        logger.info("record_purged record_id=%s tenant_id=%s", record_id, tenant_id)
        _audit(
            event_type=EventType.RECORD_PERMANENTLY_DELETED,
            actor=actor,
            record=r,
            action=f"Permanently deleted record for {r.full_name}",
            details={
                "school_id": r.school_id,
                "deleted_at": _jsonable(r.deleted_at),
                "created_at": _jsonable(r.created_at),
            },
        )
