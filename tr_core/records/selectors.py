# tr_core/records/selectors.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional
from uuid import UUID

from django.db.models import F, QuerySet
from django_filters.utils import translate_validation

from tr_core.common.api.pagination import Page, PageParams
from tr_core.common.storage import read_with_retry
from tr_core.records.filters import RecordFilter
from tr_core.records.lifecycle import purge_cutoff
from tr_core.records.models import Record


def live_records_qs(*, tenant_id: UUID) -> QuerySet[Record]:
    # Every default listing goes through here: soft-deleted rows never leak.
    return Record.objects.filter(tenant_id=tenant_id, deleted_at__isnull=True)


def deleted_records_qs(*, tenant_id: UUID) -> QuerySet[Record]:
    return Record.objects.filter(tenant_id=tenant_id, deleted_at__isnull=False)


def get_live_record(*, tenant_id: UUID, record_id: UUID) -> Optional[Record]:
    return read_with_retry(
        lambda: live_records_qs(tenant_id=tenant_id).filter(id=record_id).first(),
        label="get_live_record",
    )


def get_any_record(*, tenant_id: UUID, record_id: UUID) -> Optional[Record]:
    return read_with_retry(
        lambda: Record.objects.filter(tenant_id=tenant_id, id=record_id).first(),
        label="get_any_record",
    )


def list_records(*, tenant_id: UUID, filters: Optional[Mapping], params: PageParams) -> Page:
    qs = live_records_qs(tenant_id=tenant_id)
    if filters:
        fs = RecordFilter(data=filters, queryset=qs)
        if not fs.is_valid():
            raise translate_validation(fs.errors)
        qs = fs.qs
    qs = qs.order_by("-created_at", "-id")

    def _read():
        return qs.count(), list(qs[params.offset: params.offset + params.limit])

    total, items = read_with_retry(_read, label="list_records")
    return Page(items=items, total=total, page=params.page, limit=params.limit)


def list_deleted_records(*, tenant_id: UUID) -> list[Record]:
    """
    Oldest deletion first: the head of the list is closest to purge
    eligibility.
    """
    return read_with_retry(
        lambda: list(deleted_records_qs(tenant_id=tenant_id).order_by("deleted_at", "id")),
        label="list_deleted_records",
    )


def records_requiring_action(*, tenant_id: UUID) -> list[Record]:
    cutoff = purge_cutoff()
    return read_with_retry(
        lambda: list(
            deleted_records_qs(tenant_id=tenant_id)
            .filter(deleted_at__lte=cutoff)
            .order_by("deleted_at", "id")
        ),
        label="records_requiring_action",
    )


@dataclass(frozen=True)
class DaepStudent:
    record: Record
    incident_count: int


def list_daep_students(*, tenant_id: UUID) -> list[DaepStudent]:
    """
    Live DAEP records grouped per student (school_id, falling back to the
    name). The most recent incident represents the student.
    """
    rows = read_with_retry(
        lambda: list(
            live_records_qs(tenant_id=tenant_id)
            .filter(is_daep=True)
            .order_by(F("incident_date").desc(nulls_last=True), "-created_at", "-id")
        ),
        label="list_daep_students",
    )

    latest: dict[str, Record] = {}
    counts: dict[str, int] = {}
    for r in rows:
        key = r.school_id or f"{r.first_name.lower()}|{r.last_name.lower()}"
        if key not in latest:
            latest[key] = r
        counts[key] = counts.get(key, 0) + 1

    return [DaepStudent(record=r, incident_count=counts[k]) for k, r in latest.items()]
