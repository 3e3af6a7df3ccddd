# tr_core/tenants/services.py
from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from django.db import IntegrityError, transaction
from rest_framework.exceptions import ValidationError

from tr_core.audit.models import EventType
from tr_core.audit.services import AuditService
from tr_core.common.api.exceptions import ConflictError, NotFound
from tr_core.common.storage import read_with_retry, write_guard
from tr_core.iam.authz import Action, require
from tr_core.iam.privileged import PrivilegeGrant, require_grant, verify_privileged_operation
from tr_core.tenants.models import Tenant, TenantStatus, subdomain_validator

logger = logging.getLogger(__name__)


def _clean_subdomain(raw: str) -> str:
    subdomain = (raw or "").strip().lower()
    if not subdomain:
        raise ValidationError({"subdomain": "This field is required."})
    if not subdomain_validator.regex.match(subdomain):
        raise ValidationError({"subdomain": subdomain_validator.message})
    return subdomain


def _clean_display_name(raw: str) -> str:
    name = (raw or "").strip()
    if not name:
        raise ValidationError({"display_name": "This field is required."})
    return name


def _get_tenant(tenant_id: UUID) -> Tenant:
    t = read_with_retry(lambda: Tenant.objects.filter(id=tenant_id).first(), label="get_tenant")
    if t is None:
        raise NotFound()
    return t


class TenantService:
    """
    All Tenant mutations live here (write-model boundary).
    master_admin only; every mutation is re-verified and audited.
    """

    # ------------------------------------------------------------------
    # Privileged primitives (grant required)
    # ------------------------------------------------------------------

    @staticmethod
    @transaction.atomic
    def _insert(*, grant: PrivilegeGrant, subdomain: str, display_name: str) -> Tenant:
        require_grant(grant, action=Action.TENANT_CREATE, tenant_id=None)
        if Tenant.objects.filter(subdomain=subdomain).exists():
            raise ValidationError({"subdomain": "A tenant with this subdomain already exists."})
        try:
            with transaction.atomic():
                return Tenant.objects.create(subdomain=subdomain, display_name=display_name)
        except IntegrityError:
            raise ValidationError({"subdomain": "A tenant with this subdomain already exists."})

    @staticmethod
    @transaction.atomic
    def _apply_changes(*, grant: PrivilegeGrant, tenant_id: UUID, changes: dict) -> tuple[Tenant, dict]:
        require_grant(grant, action=Action.TENANT_UPDATE, tenant_id=tenant_id)
        t = Tenant.objects.select_for_update().filter(id=tenant_id).first()
        if t is None:
            raise NotFound()

        if "subdomain" in changes and changes["subdomain"] != t.subdomain:
            if Tenant.objects.filter(subdomain=changes["subdomain"]).exclude(id=t.id).exists():
                raise ValidationError({"subdomain": "A tenant with this subdomain already exists."})

        diff = {}
        for field, value in changes.items():
            before = getattr(t, field)
            if before != value:
                diff[field] = {"before": before, "after": value}
                setattr(t, field, value)

        if diff:
            t.save(update_fields=[*diff.keys(), "updated_at"])
        return t, diff

    @staticmethod
    @transaction.atomic
    def _set_status(*, grant: PrivilegeGrant, tenant_id: UUID, status: str) -> Tenant:
        action = Action.TENANT_DEACTIVATE if status == TenantStatus.INACTIVE else Action.TENANT_REACTIVATE
        require_grant(grant, action=action, tenant_id=tenant_id)

        t = Tenant.objects.select_for_update().filter(id=tenant_id).first()
        if t is None:
            raise NotFound()
        if t.status == status:
            raise ConflictError(f"Tenant is already {status}.")

        t.status = status
        t.save(update_fields=["status", "updated_at"])
        return t

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    @staticmethod
    def create(*, actor, subdomain: str, display_name: str) -> Tenant:
        require(actor, Action.TENANT_CREATE)
        subdomain = _clean_subdomain(subdomain)
        display_name = _clean_display_name(display_name)

        grant = verify_privileged_operation(actor_id=actor.id, target_tenant_id=None, action=Action.TENANT_CREATE)
        with write_guard(label="tenant.create"):
            t = TenantService._insert(grant=grant, subdomain=subdomain, display_name=display_name)

        logger.info("tenant_created tenant_id=%s actor_id=%s", t.id, actor.id)
        AuditService.append(
            event_type=EventType.TENANT_CREATED,
            actor=actor,
            tenant_id=t.id,
            target_id=t.id,
            action=f"Created tenant {t.display_name}",
            details={"subdomain": t.subdomain, "display_name": t.display_name},
        )
        return t

    @staticmethod
    def update(
        *,
        actor,
        tenant_id: UUID,
        subdomain: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> Tenant:
        require(actor, Action.TENANT_UPDATE)

        changes = {}
        if subdomain is not None:
            changes["subdomain"] = _clean_subdomain(subdomain)
        if display_name is not None:
            changes["display_name"] = _clean_display_name(display_name)

        _get_tenant(tenant_id)
        grant = verify_privileged_operation(actor_id=actor.id, target_tenant_id=tenant_id, action=Action.TENANT_UPDATE)
        with write_guard(label="tenant.update"):
            t, diff = TenantService._apply_changes(grant=grant, tenant_id=tenant_id, changes=changes)

        if diff:
            AuditService.append(
                event_type=EventType.TENANT_UPDATED,
                actor=actor,
                tenant_id=t.id,
                target_id=t.id,
                action=f"Updated tenant {t.display_name}",
                details={"changes": diff},
            )
        return t

    @staticmethod
    def deactivate(*, actor, tenant_id: UUID) -> Tenant:
        return TenantService._change_status(actor=actor, tenant_id=tenant_id, status=TenantStatus.INACTIVE)

    @staticmethod
    def reactivate(*, actor, tenant_id: UUID) -> Tenant:
        return TenantService._change_status(actor=actor, tenant_id=tenant_id, status=TenantStatus.ACTIVE)

    @staticmethod
    def _change_status(*, actor, tenant_id: UUID, status: str) -> Tenant:
        if status == TenantStatus.INACTIVE:
            action, event_type, verb = Action.TENANT_DEACTIVATE, EventType.TENANT_DEACTIVATED, "Deactivated"
        else:
            action, event_type, verb = Action.TENANT_REACTIVATE, EventType.TENANT_REACTIVATED, "Reactivated"

        require(actor, action)
        _get_tenant(tenant_id)
        grant = verify_privileged_operation(actor_id=actor.id, target_tenant_id=tenant_id, action=action)
        with write_guard(label=action.value):
            t = TenantService._set_status(grant=grant, tenant_id=tenant_id, status=status)

        logger.info("tenant_status_changed tenant_id=%s status=%s actor_id=%s", t.id, t.status, actor.id)
        AuditService.append(
            event_type=event_type,
            actor=actor,
            tenant_id=t.id,
            target_id=t.id,
            action=f"{verb} tenant {t.display_name}",
            details={"status": t.status},
        )
        return t
