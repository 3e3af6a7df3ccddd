# tr_core/iam/privileged.py
"""
Service-role verification.

Privileged write primitives (soft delete, restore, purge, role change,
user deletion, campus and tenant mutations) never run on the caller's
word. Each one demands a PrivilegeGrant, and a grant can only be minted by
`verify_privileged_operation()` after a fresh read of the actor.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional
from uuid import UUID

from tr_core.common.api.exceptions import Unauthorized
from tr_core.common.storage import read_with_retry
from tr_core.iam.authz import ACTION_ROLES, Action
from tr_core.iam.models import Role, UserProfile

logger = logging.getLogger(__name__)

_MINT = object()


@dataclass(frozen=True)
class PrivilegeGrant:
    actor_id: UUID
    actor_role: str
    tenant_id: Optional[UUID]
    action: Action
    _mint: object = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if self._mint is not _MINT:
            raise TypeError("PrivilegeGrant is issued only by verify_privileged_operation().")


def verify_privileged_operation(*, actor_id: UUID, target_tenant_id: Optional[UUID], action: Action) -> PrivilegeGrant:
    row = read_with_retry(
        lambda: (
            UserProfile.objects.filter(id=actor_id, deleted_at__isnull=True)
            .values("id", "role", "tenant_id")
            .first()
        ),
        label="verify_privileged_operation",
    )
    if row is None:
        logger.warning("privilege_denied reason=unknown_actor actor_id=%s action=%s", actor_id, action.value)
        raise Unauthorized()

    role = row["role"]
    if role not in ACTION_ROLES[action]:
        logger.warning(
            "privilege_denied reason=role actor_id=%s role=%s action=%s",
            actor_id,
            role,
            action.value,
        )
        raise Unauthorized()

    if role != Role.MASTER_ADMIN and (target_tenant_id is None or row["tenant_id"] != target_tenant_id):
        logger.warning(
            "privilege_denied reason=tenant_mismatch actor_id=%s actor_tenant_id=%s target_tenant_id=%s action=%s",
            actor_id,
            row["tenant_id"],
            target_tenant_id,
            action.value,
        )
        raise Unauthorized()

    return PrivilegeGrant(
        actor_id=row["id"],
        actor_role=role,
        tenant_id=target_tenant_id,
        action=action,
        _mint=_MINT,
    )


def require_grant(grant, *, action: Action, tenant_id: Optional[UUID]) -> None:
    """
    Called first thing inside every privileged write primitive.
    """
    if not isinstance(grant, PrivilegeGrant):
        raise Unauthorized()
    if grant.action is not action or grant.tenant_id != tenant_id:
        logger.error(
            "privilege_grant_mismatch actor_id=%s granted=%s/%s requested=%s/%s",
            grant.actor_id,
            grant.action.value,
            grant.tenant_id,
            action.value,
            tenant_id,
        )
        raise Unauthorized()
