# tr_core/tenants/selectors.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from django.db.models import QuerySet

from tr_core.tenants.models import Tenant


def tenant_qs() -> QuerySet[Tenant]:
    return Tenant.objects.all()


def get_tenant_or_none(*, tenant_id: UUID) -> Optional[Tenant]:
    return Tenant.objects.filter(id=tenant_id).first()


def tenant_exists(*, tenant_id: UUID) -> bool:
    return Tenant.objects.filter(id=tenant_id).exists()
