# tr_core/audit/selectors.py
from __future__ import annotations

from typing import Mapping, Optional
from uuid import UUID

from django.db.models import QuerySet
from django_filters.utils import translate_validation

from tr_core.audit.filters import AuditEventFilter
from tr_core.audit.models import AuditEvent
from tr_core.common.api.pagination import Page, PageParams
from tr_core.common.storage import read_with_retry


def audit_events_qs(*, tenant_id: UUID, filters: Optional[Mapping] = None) -> QuerySet[AuditEvent]:
    qs = AuditEvent.objects.filter(tenant_id=tenant_id)
    if not filters:
        return qs

    fs = AuditEventFilter(data=filters, queryset=qs)
    if not fs.is_valid():
        raise translate_validation(fs.errors)
    return fs.qs


def query_audit_events(
    *,
    tenant_id: UUID,
    filters: Optional[Mapping],
    params: PageParams,
    oldest_first: bool = False,
) -> Page:
    qs = audit_events_qs(tenant_id=tenant_id, filters=filters)
    qs = qs.order_by("created_at", "id") if oldest_first else qs.order_by("-created_at", "-id")

    def _read():
        total = qs.count()
        items = list(qs[params.offset: params.offset + params.limit])
        return total, items

    total, items = read_with_retry(_read, label="query_audit_events")
    return Page(items=items, total=total, page=params.page, limit=params.limit)
