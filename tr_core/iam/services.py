# tr_core/iam/services.py
from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from tr_core.audit.models import EventType
from tr_core.audit.services import AuditService
from tr_core.campuses.selectors import campus_exists
from tr_core.common.api.exceptions import ConflictError, NotFound
from tr_core.common.storage import read_with_retry, write_guard
from tr_core.iam.authz import Action, TargetScope, require
from tr_core.iam.models import Role, UserProfile
from tr_core.iam.privileged import PrivilegeGrant, require_grant, verify_privileged_operation
from tr_core.iam.selectors import find_target_user
from tr_core.tenants.selectors import tenant_exists

logger = logging.getLogger(__name__)


def _load_target(*, tenant_id: UUID, target_actor_id: UUID) -> UserProfile:
    target = find_target_user(tenant_id=tenant_id, user_id=target_actor_id)
    if target is None:
        raise NotFound()
    return target


class ActorService:
    """
    Actor (UserProfile) mutations: role changes, account deletion and the
    master_admin active-tenant switch.
    """

    # ------------------------------------------------------------------
    # Privileged primitives (grant required)
    # ------------------------------------------------------------------

    @staticmethod
    @transaction.atomic
    def _apply_role(
        *,
        grant: PrivilegeGrant,
        tenant_id: UUID,
        target_actor_id: UUID,
        new_role: str,
        campus_id: Optional[str],
    ) -> tuple[UserProfile, dict]:
        require_grant(grant, action=Action.USER_ROLE_UPDATE, tenant_id=tenant_id)
        p = UserProfile.objects.select_for_update().get(id=target_actor_id, deleted_at__isnull=True)

        before = {"role": p.role, "campus_id": p.campus_id}
        update_fields = ["role", "campus_id", "updated_at"]

        p.role = new_role
        p.campus_id = campus_id

        if new_role != Role.MASTER_ADMIN:
            # Non-master accounts live in exactly one tenant: the one the
            # change was made from.
            if p.tenant_id != tenant_id:
                p.tenant_id = tenant_id
                update_fields.append("tenant")
            if p.active_tenant_id is not None and p.active_tenant_id != p.tenant_id:
                p.active_tenant = None
                update_fields.append("active_tenant")

        p.save(update_fields=update_fields)
        after = {"role": p.role, "campus_id": p.campus_id}
        diff = {k: {"before": before[k], "after": after[k]} for k in before if before[k] != after[k]}
        return p, diff

    @staticmethod
    @transaction.atomic
    def _mark_deleted(*, grant: PrivilegeGrant, tenant_id: UUID, target_actor_id: UUID) -> UserProfile:
        require_grant(grant, action=Action.USER_DELETE, tenant_id=tenant_id)
        now = timezone.now()
        updated = UserProfile.objects.filter(id=target_actor_id, deleted_at__isnull=True).update(
            deleted_at=now, updated_at=now
        )
        if updated == 0:
            raise ConflictError("User is already deleted.")

        p = UserProfile.objects.select_related("user").get(id=target_actor_id)
        # Blocks new logins; existing tokens already fail identity resolution.
        p.user.is_active = False
        p.user.save(update_fields=["is_active"])
        return p

    @staticmethod
    @transaction.atomic
    def _set_active_tenant(*, grant: PrivilegeGrant, actor_id: UUID, tenant_id: Optional[UUID]) -> UserProfile:
        require_grant(grant, action=Action.TENANT_SWITCH, tenant_id=tenant_id)
        p = UserProfile.objects.select_for_update().get(id=actor_id, deleted_at__isnull=True)
        p.active_tenant_id = tenant_id
        p.save(update_fields=["active_tenant", "updated_at"])
        return p

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    @staticmethod
    def update_actor_role(
        *,
        actor,
        tenant_id: UUID,
        target_actor_id: UUID,
        new_role: str,
        campus_id: Optional[str] = None,
    ) -> UserProfile:
        if new_role not in Role.values:
            raise ValidationError({"role": f"Invalid role. Allowed: {list(Role.values)}"})
        campus_id = (campus_id or "").strip().lower() or None

        # Promotion to master_admin is decided before the target is read.
        require(
            actor,
            Action.USER_ROLE_UPDATE,
            TargetScope(tenant_id=tenant_id, new_role=new_role, new_campus_id=campus_id),
        )
        target = _load_target(tenant_id=tenant_id, target_actor_id=target_actor_id)
        require(
            actor,
            Action.USER_ROLE_UPDATE,
            TargetScope(
                tenant_id=tenant_id,
                target_actor_id=target.id,
                target_role=target.role,
                new_role=new_role,
                new_campus_id=campus_id,
            ),
        )

        if campus_id is not None and not read_with_retry(
            lambda: campus_exists(tenant_id=tenant_id, code=campus_id), label="campus_exists"
        ):
            raise ValidationError({"campus_id": "Unknown campus for this tenant."})

        grant = verify_privileged_operation(actor_id=actor.id, target_tenant_id=tenant_id, action=Action.USER_ROLE_UPDATE)
        with write_guard(label="user.role.update"):
            p, diff = ActorService._apply_role(
                grant=grant,
                tenant_id=tenant_id,
                target_actor_id=target.id,
                new_role=new_role,
                campus_id=campus_id,
            )

        logger.info("actor_role_updated target_id=%s role=%s tenant_id=%s", p.id, p.role, tenant_id)
        AuditService.append(
            event_type=EventType.USER_UPDATED,
            actor=actor,
            tenant_id=tenant_id,
            target_id=p.id,
            campus_id=p.campus_id,
            action=f"Changed role of {p.email or p.id} to {p.role}",
            details={"changes": diff, "email": p.email},
        )
        return p

    @staticmethod
    def delete_actor(*, actor, tenant_id: UUID, target_actor_id: UUID) -> UserProfile:
        require(actor, Action.USER_DELETE, TargetScope(tenant_id=tenant_id, target_actor_id=target_actor_id))
        target = _load_target(tenant_id=tenant_id, target_actor_id=target_actor_id)
        require(
            actor,
            Action.USER_DELETE,
            TargetScope(tenant_id=tenant_id, target_actor_id=target.id, target_role=target.role),
        )

        grant = verify_privileged_operation(actor_id=actor.id, target_tenant_id=tenant_id, action=Action.USER_DELETE)
        with write_guard(label="user.delete"):
            p = ActorService._mark_deleted(grant=grant, tenant_id=tenant_id, target_actor_id=target.id)

        logger.info("actor_deleted target_id=%s tenant_id=%s", p.id, tenant_id)
        AuditService.append(
            event_type=EventType.USER_DELETED,
            actor=actor,
            tenant_id=tenant_id,
            target_id=p.id,
            campus_id=p.campus_id,
            action=f"Deleted user {p.email or p.id}",
            details={"email": p.email, "role": p.role},
        )
        return p

    @staticmethod
    def switch_active_tenant(*, actor, tenant_id: Optional[UUID]) -> UserProfile:
        """
        master_admin only. None clears the override (back to the home tenant).
        """
        require(actor, Action.TENANT_SWITCH, TargetScope(tenant_id=tenant_id))
        if tenant_id is not None and not read_with_retry(
            lambda: tenant_exists(tenant_id=tenant_id), label="tenant_exists"
        ):
            raise NotFound()

        previous = actor.active_tenant_id
        grant = verify_privileged_operation(actor_id=actor.id, target_tenant_id=tenant_id, action=Action.TENANT_SWITCH)
        with write_guard(label="tenant.switch"):
            p = ActorService._set_active_tenant(grant=grant, actor_id=actor.id, tenant_id=tenant_id)

        audit_tenant = tenant_id or previous or actor.tenant_id
        if audit_tenant is None:
            logger.info("tenant_switch_noop actor_id=%s", actor.id)
            return p

        AuditService.append(
            event_type=EventType.TENANT_SWITCHED,
            actor=actor,
            tenant_id=audit_tenant,
            target_id=tenant_id,
            action="Switched active tenant" if tenant_id else "Cleared active tenant",
            details={
                "from": str(previous) if previous else None,
                "to": str(tenant_id) if tenant_id else None,
            },
        )
        return p
