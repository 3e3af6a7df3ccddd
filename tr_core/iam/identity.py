# tr_core/iam/identity.py
from __future__ import annotations

from tr_core.common.api.exceptions import Unauthenticated
from tr_core.common.storage import read_with_retry
from tr_core.iam.models import UserProfile


def resolve_actor(user) -> UserProfile:
    """
    Fresh read of the caller's profile on every call; role, tenant and
    campus are never taken from token claims.
    Missing or soft-deleted profile -> Unauthenticated.
    """
    if user is None or not getattr(user, "is_authenticated", False):
        raise Unauthenticated()

    profile = read_with_retry(
        lambda: (
            UserProfile.objects.select_related("tenant", "active_tenant")
            .filter(user_id=user.pk, deleted_at__isnull=True)
            .first()
        ),
        label="resolve_actor",
    )
    if profile is None:
        raise Unauthenticated()
    return profile


def actor_from_request(request) -> UserProfile:
    return resolve_actor(getattr(request, "user", None))
