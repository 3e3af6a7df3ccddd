# tr_core/iam/selectors.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from django.db.models import Q, QuerySet

from tr_core.common.storage import read_with_retry
from tr_core.iam.models import Role, UserProfile


def visible_users_qs(*, tenant_id: UUID, viewer_is_master: bool) -> QuerySet[UserProfile]:
    """
    Users an admin can list: everyone in the tenant except master_admins,
    plus every master_admin when the viewer is one.
    """
    qs = UserProfile.objects.filter(deleted_at__isnull=True)
    if viewer_is_master:
        return qs.filter(Q(tenant_id=tenant_id) | Q(role=Role.MASTER_ADMIN))
    return qs.filter(tenant_id=tenant_id).exclude(role=Role.MASTER_ADMIN)


def list_users(*, tenant_id: UUID, viewer_is_master: bool) -> list[UserProfile]:
    return read_with_retry(
        lambda: list(visible_users_qs(tenant_id=tenant_id, viewer_is_master=viewer_is_master).order_by("email", "id")),
        label="list_users",
    )


def find_target_user(*, tenant_id: UUID, user_id: UUID) -> Optional[UserProfile]:
    """
    Lookup for single-user operations. master_admin accounts are found
    whatever their home tenant (or none), so the gate answers unauthorized
    for them instead of the query answering not_found. Any other account
    outside the tenant stays not_found.
    """
    def _read():
        return (
            UserProfile.objects.filter(id=user_id, deleted_at__isnull=True)
            .filter(Q(tenant_id=tenant_id) | Q(role=Role.MASTER_ADMIN))
            .first()
        )

    return read_with_retry(_read, label="find_target_user")
