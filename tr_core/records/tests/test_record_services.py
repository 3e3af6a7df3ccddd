# tr_core/records/tests/test_record_services.py
import logging
from datetime import timedelta

import pytest
from django.utils import timezone

from conftest import age_deletion
from tr_core.audit.models import AuditEvent
from tr_core.common.api.exceptions import ConflictError, RetentionPeriodNotMet
from tr_core.iam.authz import Action
from tr_core.iam.privileged import verify_privileged_operation
from tr_core.records.models import Record
from tr_core.records.services import RecordData, RecordService

pytestmark = pytest.mark.django_db


def test_purge_loses_race_against_restore(district_admin, tenant, make_record):
    r = age_deletion(make_record(deleted_at=timezone.now()), days=5 * 365 + 10)
    observed = r.deleted_at

    # a concurrent restore lands between the purge's read and its delete
    RecordService.restore(actor=district_admin, tenant_id=tenant.id, record_id=r.id)

    grant = verify_privileged_operation(actor_id=district_admin.id, target_tenant_id=tenant.id, action=Action.RECORD_PURGE)
    with pytest.raises(ConflictError):
        RecordService._purge(grant=grant, tenant_id=tenant.id, record_id=r.id, observed_deleted_at=observed)

    assert Record.objects.filter(id=r.id, deleted_at__isnull=True).exists()


def test_purge_keyed_on_observed_deleted_at(district_admin, tenant, make_record):
    r = age_deletion(make_record(deleted_at=timezone.now()), days=5 * 365 + 10)

    grant = verify_privileged_operation(actor_id=district_admin.id, target_tenant_id=tenant.id, action=Action.RECORD_PURGE)
    with pytest.raises(ConflictError):
        RecordService._purge(
            grant=grant,
            tenant_id=tenant.id,
            record_id=r.id,
            observed_deleted_at=r.deleted_at + timedelta(seconds=1),
        )
    assert Record.objects.filter(id=r.id).exists()


def test_retention_floor_has_no_role_override(master_admin, tenant, make_record):
    r = age_deletion(make_record(deleted_at=timezone.now()), days=30)
    with pytest.raises(RetentionPeriodNotMet) as exc:
        RecordService.permanently_delete(actor=master_admin, tenant_id=tenant.id, record_id=r.id)
    assert exc.value.days_remaining == 5 * 365 - 30


def test_audit_failure_does_not_fail_soft_delete(district_admin, tenant, make_record, monkeypatch, caplog):
    r = make_record()

    def _boom(**kwargs):
        raise RuntimeError("ledger unavailable")

    monkeypatch.setattr(AuditEvent.objects, "create", _boom)

    with caplog.at_level(logging.ERROR, logger="tr_core.audit.services"):
        result = RecordService.soft_delete(actor=district_admin, tenant_id=tenant.id, record_id=r.id)

    assert result.deleted_at is not None
    assert Record.objects.get(id=r.id).deleted_at is not None
    assert "audit_append_failed" in caplog.text


def test_create_ignores_foreign_campus_for_campus_admin(campus_admin, tenant, other_campus):
    r = RecordService.create(
        actor=campus_admin,
        tenant_id=tenant.id,
        data=RecordData(first_name="Lee", last_name="Park", campus_id=other_campus.code),
    )
    assert r.campus_id == "010"
