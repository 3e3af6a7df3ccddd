# tr_core/iam/scope.py
from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from tr_core.common.api.exceptions import NoTenantSelected, NotFound, Unauthorized
from tr_core.common.storage import read_with_retry
from tr_core.iam.models import Role
from tr_core.tenants.selectors import tenant_exists

logger = logging.getLogger(__name__)


def _as_uuid(value) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))


def resolve_scope(actor, requested_tenant_id: Optional[UUID] = None) -> UUID:
    """
    Effective tenant for a request.

    Precedence:
      1) explicit requested tenant (non-master: must equal home tenant)
      2) active tenant (honored for master_admin; for others only when it
         equals the home tenant)
      3) home tenant
    Nothing resolvable -> NoTenantSelected.
    """
    is_master = actor.role == Role.MASTER_ADMIN
    home = actor.tenant_id

    if requested_tenant_id is not None:
        requested = _as_uuid(requested_tenant_id)
        if not is_master and requested != home:
            logger.warning(
                "scope_denied actor_id=%s requested_tenant_id=%s",
                actor.id,
                requested,
            )
            raise Unauthorized()
        if not read_with_retry(lambda: tenant_exists(tenant_id=requested), label="resolve_scope"):
            raise NotFound()
        return requested

    active = actor.active_tenant_id
    if active is not None and (is_master or active == home):
        return active

    if home is not None:
        return home

    raise NoTenantSelected()


def resolve_request_scope(request, actor) -> UUID:
    return resolve_scope(actor, getattr(request, "requested_tenant_id", None))


def effective_campus_for_write(actor, requested_campus_id: Optional[str]) -> Optional[str]:
    """
    campus_admin always writes into its own campus, whatever the payload says.
    """
    if actor.role == Role.CAMPUS_ADMIN:
        return actor.campus_id
    return requested_campus_id


def ensure_campus_writable(actor, campus_id: Optional[str]) -> None:
    """
    campus_admin may only touch rows that belong to its own campus.
    Mismatch is reported as NotFound so other campuses' rows stay invisible
    to the write path.
    """
    if actor.role == Role.CAMPUS_ADMIN and campus_id != actor.campus_id:
        raise NotFound()
