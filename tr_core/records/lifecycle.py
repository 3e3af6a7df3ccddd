# tr_core/records/lifecycle.py
"""
Record lifecycle.

States are derived from stored fields, never stored themselves:

    ACTIVE        status=active, not expired, not deleted
    INACTIVE      status=inactive, not deleted
    EXPIRED       status=active and expiration_date < now, not deleted
    SOFT_DELETED  deleted_at set
    PURGED        row removed (terminal, never observed)

Permanent deletion is only allowed once a soft-deleted record has aged past
RETENTION_PERIOD. No role can override the floor.
"""
from __future__ import annotations

import math
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from django.utils import timezone

from tr_core.records.models import RecordStatus

# FERPA minimum retention. A code constant, not a setting.
RETENTION_PERIOD = timedelta(days=5 * 365)

_ONE_DAY = timedelta(days=1)


class LifecycleState(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    EXPIRED = "expired"
    SOFT_DELETED = "soft_deleted"


def is_expired(record, *, now: Optional[datetime] = None) -> bool:
    now = now or timezone.now()
    return (
        record.status == RecordStatus.ACTIVE
        and record.expiration_date is not None
        and record.expiration_date < now
    )


def derive_state(record, *, now: Optional[datetime] = None) -> LifecycleState:
    if record.deleted_at is not None:
        return LifecycleState.SOFT_DELETED
    if record.status == RecordStatus.INACTIVE:
        return LifecycleState.INACTIVE
    if is_expired(record, now=now):
        return LifecycleState.EXPIRED
    return LifecycleState.ACTIVE


def deletion_age(deleted_at: datetime, *, now: Optional[datetime] = None) -> timedelta:
    return (now or timezone.now()) - deleted_at


def days_since_deletion(deleted_at: datetime, *, now: Optional[datetime] = None) -> int:
    return max(0, deletion_age(deleted_at, now=now) // _ONE_DAY)


def retention_met(deleted_at: datetime, *, now: Optional[datetime] = None) -> bool:
    return deletion_age(deleted_at, now=now) >= RETENTION_PERIOD


def days_remaining(deleted_at: datetime, *, now: Optional[datetime] = None) -> int:
    """
    Whole days until the record may be purged, rounded up. 0 once eligible.
    """
    remaining = RETENTION_PERIOD - deletion_age(deleted_at, now=now)
    if remaining <= timedelta(0):
        return 0
    return math.ceil(remaining / _ONE_DAY)


def purge_cutoff(*, now: Optional[datetime] = None) -> datetime:
    """
    Latest deleted_at value that is old enough to purge.
    """
    return (now or timezone.now()) - RETENTION_PERIOD
