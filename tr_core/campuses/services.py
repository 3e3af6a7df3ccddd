# tr_core/campuses/services.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from django.db import IntegrityError, transaction
from rest_framework.exceptions import ValidationError

from tr_core.audit.models import EventType
from tr_core.audit.services import AuditService
from tr_core.campuses.models import Campus, CampusStatus, campus_code_validator
from tr_core.campuses.selectors import campus_by_code, can_deactivate_campus
from tr_core.common.api.exceptions import ConflictError, NotFound
from tr_core.common.storage import read_with_retry, write_guard
from tr_core.iam.authz import Action, TargetScope, require
from tr_core.iam.privileged import PrivilegeGrant, require_grant, verify_privileged_operation

logger = logging.getLogger(__name__)

DUPLICATE_CODE_MSG = "A campus with this ID already exists."
DUPLICATE_NAME_MSG = "A campus with this name already exists."


@dataclass(frozen=True)
class CampusUpdate:
    name: Optional[str] = None
    abbreviation: Optional[str] = None


def _clean_code(raw: str) -> str:
    code = (raw or "").strip().lower()
    if not code:
        raise ValidationError({"campus_id": "This field is required."})
    if not campus_code_validator.regex.match(code):
        raise ValidationError({"campus_id": campus_code_validator.message})
    return code


def _clean_name(raw: str) -> str:
    name = (raw or "").strip()
    if not name:
        raise ValidationError({"name": "This field is required."})
    return name


def _name_taken(*, tenant_id: UUID, name: str, exclude_id: Optional[UUID] = None) -> bool:
    qs = Campus.objects.filter(tenant_id=tenant_id, name__iexact=name)
    if exclude_id is not None:
        qs = qs.exclude(id=exclude_id)
    return qs.exists()


def _load(tenant_id: UUID, code: str) -> Campus:
    campus = read_with_retry(lambda: campus_by_code(tenant_id=tenant_id, code=code), label="campus_by_code")
    if campus is None:
        raise NotFound()
    return campus


class CampusService:
    """
    Campus mutations for the effective tenant. Every mutation is re-verified
    by the service-role check and audited.
    """

    @staticmethod
    @transaction.atomic
    def _insert(*, grant: PrivilegeGrant, tenant_id: UUID, code: str, name: str, abbreviation: str) -> Campus:
        require_grant(grant, action=Action.CAMPUS_CREATE, tenant_id=tenant_id)

        if Campus.objects.filter(tenant_id=tenant_id, code=code).exists():
            raise ValidationError({"campus_id": DUPLICATE_CODE_MSG})
        if _name_taken(tenant_id=tenant_id, name=name):
            raise ValidationError({"name": DUPLICATE_NAME_MSG})

        try:
            with transaction.atomic():
                return Campus.objects.create(
                    tenant_id=tenant_id,
                    code=code,
                    name=name,
                    abbreviation=abbreviation,
                    status=CampusStatus.ACTIVE,
                )
        except IntegrityError:
            raise ValidationError({"campus_id": DUPLICATE_CODE_MSG})

    @staticmethod
    @transaction.atomic
    def _apply_update(*, grant: PrivilegeGrant, tenant_id: UUID, campus_id: UUID, patch: CampusUpdate) -> tuple[Campus, dict]:
        require_grant(grant, action=Action.CAMPUS_UPDATE, tenant_id=tenant_id)
        c = Campus.objects.select_for_update().get(id=campus_id, tenant_id=tenant_id)

        diff = {}
        if patch.name is not None and patch.name != c.name:
            if _name_taken(tenant_id=tenant_id, name=patch.name, exclude_id=c.id):
                raise ValidationError({"name": DUPLICATE_NAME_MSG})
            diff["name"] = {"before": c.name, "after": patch.name}
            c.name = patch.name
        if patch.abbreviation is not None and patch.abbreviation != c.abbreviation:
            diff["abbreviation"] = {"before": c.abbreviation, "after": patch.abbreviation}
            c.abbreviation = patch.abbreviation

        if diff:
            c.save(update_fields=[*diff.keys(), "updated_at"])
        return c, diff

    @staticmethod
    @transaction.atomic
    def _set_status(*, grant: PrivilegeGrant, tenant_id: UUID, campus_id: UUID, status: str) -> Campus:
        action = Action.CAMPUS_DEACTIVATE if status == CampusStatus.INACTIVE else Action.CAMPUS_ACTIVATE
        require_grant(grant, action=action, tenant_id=tenant_id)

        c = Campus.objects.select_for_update().get(id=campus_id, tenant_id=tenant_id)
        if c.status == status:
            raise ConflictError(f"Campus is already {status}.")

        if status == CampusStatus.INACTIVE:
            check = can_deactivate_campus(tenant_id=tenant_id, code=c.code)
            if not check.allowed:
                raise ConflictError(f"Campus cannot be deactivated: {', '.join(check.blockers)}.")

        c.status = status
        c.save(update_fields=["status", "updated_at"])
        return c

    # ------------------------------------------------------------------

    @staticmethod
    def create(*, actor, tenant_id: UUID, code: str, name: str, abbreviation: str = "") -> Campus:
        require(actor, Action.CAMPUS_CREATE, TargetScope(tenant_id=tenant_id))
        code = _clean_code(code)
        name = _clean_name(name)

        grant = verify_privileged_operation(actor_id=actor.id, target_tenant_id=tenant_id, action=Action.CAMPUS_CREATE)
        with write_guard(label="campus.create"):
            c = CampusService._insert(
                grant=grant,
                tenant_id=tenant_id,
                code=code,
                name=name,
                abbreviation=(abbreviation or "").strip(),
            )

        AuditService.append(
            event_type=EventType.CAMPUS_CREATED,
            actor=actor,
            tenant_id=tenant_id,
            target_id=c.code,
            campus_id=c.code,
            action=f"Created campus {c.name}",
            details={"campus_id": c.code, "name": c.name, "abbreviation": c.abbreviation},
        )
        return c

    @staticmethod
    def update(*, actor, tenant_id: UUID, code: str, patch: CampusUpdate) -> Campus:
        require(actor, Action.CAMPUS_UPDATE, TargetScope(tenant_id=tenant_id, campus_id=code))
        if patch.name is not None:
            patch = CampusUpdate(name=_clean_name(patch.name), abbreviation=patch.abbreviation)

        campus = _load(tenant_id, code)
        grant = verify_privileged_operation(actor_id=actor.id, target_tenant_id=tenant_id, action=Action.CAMPUS_UPDATE)
        with write_guard(label="campus.update"):
            c, diff = CampusService._apply_update(grant=grant, tenant_id=tenant_id, campus_id=campus.id, patch=patch)

        if diff:
            AuditService.append(
                event_type=EventType.CAMPUS_UPDATED,
                actor=actor,
                tenant_id=tenant_id,
                target_id=c.code,
                campus_id=c.code,
                action=f"Updated campus {c.name}",
                details={"changes": diff},
            )
        return c

    @staticmethod
    def deactivate(*, actor, tenant_id: UUID, code: str) -> Campus:
        return CampusService._change_status(actor=actor, tenant_id=tenant_id, code=code, status=CampusStatus.INACTIVE)

    @staticmethod
    def activate(*, actor, tenant_id: UUID, code: str) -> Campus:
        return CampusService._change_status(actor=actor, tenant_id=tenant_id, code=code, status=CampusStatus.ACTIVE)

    @staticmethod
    def _change_status(*, actor, tenant_id: UUID, code: str, status: str) -> Campus:
        if status == CampusStatus.INACTIVE:
            action, event_type, verb = Action.CAMPUS_DEACTIVATE, EventType.CAMPUS_DEACTIVATED, "Deactivated"
        else:
            action, event_type, verb = Action.CAMPUS_ACTIVATE, EventType.CAMPUS_ACTIVATED, "Activated"

        require(actor, action, TargetScope(tenant_id=tenant_id, campus_id=code))
        campus = _load(tenant_id, code)
        grant = verify_privileged_operation(actor_id=actor.id, target_tenant_id=tenant_id, action=action)
        with write_guard(label=action.value):
            c = CampusService._set_status(grant=grant, tenant_id=tenant_id, campus_id=campus.id, status=status)

        logger.info("campus_status_changed tenant_id=%s campus_id=%s status=%s", tenant_id, c.code, c.status)
        AuditService.append(
            event_type=event_type,
            actor=actor,
            tenant_id=tenant_id,
            target_id=c.code,
            campus_id=c.code,
            action=f"{verb} campus {c.name}",
            details={"status": c.status},
        )
        return c
