# tr_core/records/tests/test_lifecycle.py
from datetime import timedelta
from types import SimpleNamespace

from django.utils import timezone

from tr_core.records.lifecycle import (
    RETENTION_PERIOD,
    LifecycleState,
    days_remaining,
    days_since_deletion,
    derive_state,
    retention_met,
)
from tr_core.records.models import RecordStatus


def _rec(**kw):
    base = dict(status=RecordStatus.ACTIVE, expiration_date=None, deleted_at=None)
    base.update(kw)
    return SimpleNamespace(**base)


def test_retention_period_is_five_years_of_days():
    assert RETENTION_PERIOD == timedelta(days=1825)


def test_one_day_short_of_floor_reports_one_day():
    now = timezone.now()
    deleted_at = now - timedelta(days=4 * 365 + 364)
    assert not retention_met(deleted_at, now=now)
    assert days_remaining(deleted_at, now=now) == 1


def test_partial_day_rounds_up():
    now = timezone.now()
    deleted_at = now - timedelta(days=1000, hours=1)
    assert days_remaining(deleted_at, now=now) == 825


def test_exactly_five_years_is_eligible():
    now = timezone.now()
    deleted_at = now - RETENTION_PERIOD
    assert retention_met(deleted_at, now=now)
    assert days_remaining(deleted_at, now=now) == 0


def test_days_since_deletion_floors():
    now = timezone.now()
    assert days_since_deletion(now - timedelta(hours=23), now=now) == 0
    assert days_since_deletion(now - timedelta(days=3, hours=5), now=now) == 3


def test_derived_states():
    now = timezone.now()
    assert derive_state(_rec(), now=now) is LifecycleState.ACTIVE
    assert derive_state(_rec(status=RecordStatus.INACTIVE), now=now) is LifecycleState.INACTIVE
    assert derive_state(_rec(expiration_date=now - timedelta(days=1)), now=now) is LifecycleState.EXPIRED
    assert derive_state(_rec(expiration_date=now + timedelta(days=1)), now=now) is LifecycleState.ACTIVE
    assert derive_state(_rec(deleted_at=now), now=now) is LifecycleState.SOFT_DELETED


def test_inactive_record_is_never_expired():
    now = timezone.now()
    rec = _rec(status=RecordStatus.INACTIVE, expiration_date=now - timedelta(days=10))
    assert derive_state(rec, now=now) is LifecycleState.INACTIVE
