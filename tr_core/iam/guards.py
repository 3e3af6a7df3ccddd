# tr_core/iam/guards.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from tr_core.iam.authz import Action, TargetScope, require
from tr_core.iam.identity import actor_from_request
from tr_core.iam.models import UserProfile
from tr_core.iam.scope import resolve_request_scope


def guard_request(request, action: Action, target: Optional[TargetScope] = None) -> tuple[UserProfile, UUID]:
    """
    Read-path sequence for API views: identity -> gate -> tenant scope.
    """
    actor = actor_from_request(request)
    require(actor, action, target)
    tenant_id = resolve_request_scope(request, actor)
    return actor, tenant_id
