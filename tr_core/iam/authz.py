# tr_core/iam/authz.py
"""
Authorization gate.

Every privileged operation is named by an Action and checked against a
single role table. `authorize()` is pure: it looks only at the actor, the
action and the target it is handed, so it can be tested without a request
or a database.

Rule order (first match wins):
  1. no actor, or actor soft-deleted        -> UNAUTHENTICATED
  2. actor role not allowed for the action  -> UNAUTHORIZED
  3. target user (current or new role) is a master_admin and the actor
     is not                                 -> UNAUTHORIZED
  4. user.delete aimed at the actor itself  -> FORBIDDEN_SELF_ACTION
  5. role change to campus_admin without a campus
                                            -> VALIDATION_ERROR
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from uuid import UUID

from django.core.exceptions import ImproperlyConfigured
from rest_framework.exceptions import ValidationError

from tr_core.common.api.exceptions import ForbiddenSelfAction, Unauthenticated, Unauthorized
from tr_core.iam.models import Role

logger = logging.getLogger(__name__)


class Action(str, Enum):
    RECORD_VIEW = "record.view"
    RECORD_CREATE = "record.create"
    RECORD_UPDATE = "record.update"
    RECORD_DELETE = "record.delete"
    RECORD_RESTORE = "record.restore"
    RECORD_PURGE = "record.purge"
    RECORD_LIST_DELETED = "record.list_deleted"
    DAEP_VIEW = "daep.view"

    USER_VIEW = "user.view"
    USER_ROLE_UPDATE = "user.role.update"
    USER_DELETE = "user.delete"

    CAMPUS_VIEW = "campus.view"
    CAMPUS_CREATE = "campus.create"
    CAMPUS_UPDATE = "campus.update"
    CAMPUS_DEACTIVATE = "campus.deactivate"
    CAMPUS_ACTIVATE = "campus.activate"
    CAMPUS_COUNTS = "campus.counts"

    TENANT_VIEW = "tenant.view"
    TENANT_CREATE = "tenant.create"
    TENANT_UPDATE = "tenant.update"
    TENANT_DEACTIVATE = "tenant.deactivate"
    TENANT_REACTIVATE = "tenant.reactivate"
    TENANT_SWITCH = "tenant.switch"

    AUDIT_VIEW = "audit.view"
    AUDIT_EXPORT = "audit.export"


_ALL = frozenset(Role.values)
_WRITERS = frozenset({Role.CAMPUS_ADMIN, Role.DISTRICT_ADMIN, Role.MASTER_ADMIN})
_ADMINS = frozenset({Role.DISTRICT_ADMIN, Role.MASTER_ADMIN})
_MASTER = frozenset({Role.MASTER_ADMIN})

ACTION_ROLES: dict[Action, frozenset] = {
    Action.RECORD_VIEW: _ALL,
    Action.RECORD_CREATE: _WRITERS,
    Action.RECORD_UPDATE: _WRITERS,
    Action.RECORD_DELETE: _ADMINS,
    Action.RECORD_RESTORE: _ADMINS,
    Action.RECORD_PURGE: _ADMINS,
    Action.RECORD_LIST_DELETED: _ADMINS,
    Action.DAEP_VIEW: _ADMINS,

    Action.USER_VIEW: _ADMINS,
    Action.USER_ROLE_UPDATE: _ADMINS,
    Action.USER_DELETE: _ADMINS,

    Action.CAMPUS_VIEW: _ALL,
    Action.CAMPUS_CREATE: _ADMINS,
    Action.CAMPUS_UPDATE: _ADMINS,
    Action.CAMPUS_DEACTIVATE: _ADMINS,
    Action.CAMPUS_ACTIVATE: _ADMINS,
    Action.CAMPUS_COUNTS: _ADMINS,

    Action.TENANT_VIEW: _MASTER,
    Action.TENANT_CREATE: _MASTER,
    Action.TENANT_UPDATE: _MASTER,
    Action.TENANT_DEACTIVATE: _MASTER,
    Action.TENANT_REACTIVATE: _MASTER,
    Action.TENANT_SWITCH: _MASTER,

    Action.AUDIT_VIEW: _ADMINS,
    Action.AUDIT_EXPORT: _ADMINS,
}

_missing = [a.value for a in Action if a not in ACTION_ROLES]
if _missing:
    raise ImproperlyConfigured(f"ACTION_ROLES has no entry for: {', '.join(_missing)}")


class DenyReason(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN_SELF_ACTION = "forbidden_self_action"
    VALIDATION_ERROR = "validation_error"


@dataclass(frozen=True)
class TargetScope:
    """
    What the action touches. Only the fields relevant to the action are set.
    """
    tenant_id: Optional[UUID] = None
    campus_id: Optional[str] = None
    target_actor_id: Optional[UUID] = None
    target_role: Optional[str] = None
    new_role: Optional[str] = None
    new_campus_id: Optional[str] = None


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[DenyReason] = None
    message: str = ""


ALLOW = Decision(allowed=True)


def _deny(reason: DenyReason, message: str) -> Decision:
    return Decision(allowed=False, reason=reason, message=message)


def authorize(actor, action: Action, target: Optional[TargetScope] = None) -> Decision:
    if actor is None or getattr(actor, "deleted_at", None) is not None:
        return _deny(DenyReason.UNAUTHENTICATED, "Authentication required.")

    if actor.role not in ACTION_ROLES[action]:
        return _deny(DenyReason.UNAUTHORIZED, "You do not have permission to perform this action.")

    target = target or TargetScope()
    is_master = actor.role == Role.MASTER_ADMIN

    if not is_master and Role.MASTER_ADMIN in (target.target_role, target.new_role):
        return _deny(DenyReason.UNAUTHORIZED, "Only a master admin may manage master admin accounts.")

    if action is Action.USER_DELETE and target.target_actor_id is not None and target.target_actor_id == actor.id:
        return _deny(DenyReason.FORBIDDEN_SELF_ACTION, "You cannot delete your own account.")

    if action is Action.USER_ROLE_UPDATE and target.new_role == Role.CAMPUS_ADMIN and not target.new_campus_id:
        return _deny(DenyReason.VALIDATION_ERROR, "campus_id is required for campus_admin.")

    return ALLOW


def _raise_for(decision: Decision) -> None:
    if decision.reason is DenyReason.UNAUTHENTICATED:
        raise Unauthenticated(decision.message)
    if decision.reason is DenyReason.FORBIDDEN_SELF_ACTION:
        raise ForbiddenSelfAction(decision.message)
    if decision.reason is DenyReason.VALIDATION_ERROR:
        raise ValidationError({"campus_id": decision.message})
    raise Unauthorized(decision.message)


def require(actor, action: Action, target: Optional[TargetScope] = None) -> None:
    """
    Raise the mapped API error when the gate denies the action.
    """
    decision = authorize(actor, action, target)
    if decision.allowed:
        return

    logger.warning(
        "authz_denied action=%s reason=%s actor_id=%s",
        action.value,
        decision.reason.value,
        getattr(actor, "id", None),
    )
    _raise_for(decision)
