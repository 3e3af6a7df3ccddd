# tr_core/campuses/selectors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional
from uuid import UUID

from django.conf import settings
from django.db.models import Count, IntegerField, OuterRef, QuerySet, Subquery, Value
from django.db.models.functions import Coalesce

from tr_core.campuses.models import Campus, CampusStatus
from tr_core.common.storage import read_with_retry
from tr_core.iam.models import Role, UserProfile
from tr_core.records.models import Record


def campuses_for_tenant(*, tenant_id: UUID, active_only: bool = False) -> QuerySet[Campus]:
    qs = Campus.objects.filter(tenant_id=tenant_id)
    if active_only:
        qs = qs.filter(status=CampusStatus.ACTIVE)
    return qs.order_by("name")


def _count_by_campus(qs: QuerySet) -> Coalesce:
    counted = (
        qs.filter(campus_id=OuterRef("code"))
        .order_by()
        .values("campus_id")
        .annotate(n=Count("id"))
        .values("n")
    )
    return Coalesce(Subquery(counted, output_field=IntegerField()), Value(0))


def campuses_with_counts(*, tenant_id: UUID) -> QuerySet[Campus]:
    """
    Campus list annotated with user_count and record_count, counted the
    same way as can_deactivate_campus.
    """
    users = UserProfile.objects.filter(tenant_id=tenant_id, deleted_at__isnull=True)
    records = Record.objects.filter(tenant_id=tenant_id)
    return campuses_for_tenant(tenant_id=tenant_id).annotate(
        user_count=_count_by_campus(users),
        record_count=_count_by_campus(records),
    )


def campus_by_code(*, tenant_id: UUID, code: str) -> Optional[Campus]:
    return Campus.objects.filter(tenant_id=tenant_id, code=(code or "").strip().lower()).first()


def campus_exists(*, tenant_id: UUID, code: str) -> bool:
    return Campus.objects.filter(tenant_id=tenant_id, code=(code or "").strip().lower()).exists()


@dataclass(frozen=True)
class DeactivationCheck:
    allowed: bool
    user_count: int
    record_count: int
    blockers: list[str] = field(default_factory=list)


def can_deactivate_campus(*, tenant_id: UUID, code: str) -> DeactivationCheck:
    """
    A campus may be deactivated only when nothing references it: no live
    actors and no records (soft-deleted records still count).
    """
    def _read():
        users = UserProfile.objects.filter(tenant_id=tenant_id, campus_id=code, deleted_at__isnull=True).count()
        records = Record.objects.filter(tenant_id=tenant_id, campus_id=code).count()
        return users, records

    user_count, record_count = read_with_retry(_read, label="can_deactivate_campus")

    blockers = []
    if user_count:
        blockers.append(f"{user_count} users assigned")
    if record_count:
        blockers.append(f"{record_count} records assigned")

    return DeactivationCheck(
        allowed=not blockers,
        user_count=user_count,
        record_count=record_count,
        blockers=blockers,
    )


def records_for_campus(*, tenant_id: UUID, code: str) -> QuerySet[Record]:
    """
    Live records of one campus. The DAEP campus is a named exception: it
    aggregates every is_daep record of the tenant instead of matching
    campus_id.
    """
    qs = Record.objects.filter(tenant_id=tenant_id, deleted_at__isnull=True)
    if code == settings.DAEP_CAMPUS_ID:
        qs = qs.filter(is_daep=True)
    else:
        qs = qs.filter(campus_id=code)
    return qs.order_by("-created_at", "-id")


def users_for_campus(*, tenant_id: UUID, code: str, include_master: bool) -> QuerySet[UserProfile]:
    qs = UserProfile.objects.filter(tenant_id=tenant_id, campus_id=code, deleted_at__isnull=True)
    if not include_master:
        qs = qs.exclude(role=Role.MASTER_ADMIN)
    return qs.order_by("email")
