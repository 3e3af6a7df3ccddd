# tr_core/records/tests/test_records_api.py
from datetime import timedelta

import pytest
from django.utils import timezone

from conftest import age_deletion, tenant_header
from tr_core.audit.models import AuditEvent, EventType
from tr_core.iam.models import Role
from tr_core.records.models import Record, RecordStatus

pytestmark = pytest.mark.django_db


def _ids(res):
    return {row["id"] for row in res.json()["records"]}


# ---------------------------------------------------------------------
# create / update
# ---------------------------------------------------------------------

def test_campus_admin_create_is_pinned_to_own_campus(client_for, campus_admin, other_campus):
    res = client_for(campus_admin).post(
        "/api/records/",
        {"first_name": "Ana", "last_name": "Lopez", "campus_id": other_campus.code},
        format="json",
    )
    assert res.status_code == 201
    body = res.json()
    assert body["campus_id"] == "010"
    assert body["state"] == "active"
    assert AuditEvent.objects.filter(target_id=body["id"], event_type=EventType.RECORD_CREATED).count() == 1


def test_viewer_cannot_create(client_for, viewer):
    res = client_for(viewer).post("/api/records/", {"first_name": "A", "last_name": "B"}, format="json")
    assert res.status_code == 403


def test_create_with_unknown_campus_is_rejected(client_for, district_admin):
    res = client_for(district_admin).post(
        "/api/records/",
        {"first_name": "A", "last_name": "B", "campus_id": "777"},
        format="json",
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "validation_error"


def test_campus_admin_cannot_update_other_campus_record(client_for, campus_admin, make_record, other_campus):
    r = make_record(campus_id=other_campus.code)
    res = client_for(campus_admin).patch(f"/api/records/{r.id}/", {"notes": "x"}, format="json")
    assert res.status_code == 404


def test_update_toggles_status_and_audits_diff(client_for, district_admin, make_record):
    r = make_record()
    res = client_for(district_admin).patch(f"/api/records/{r.id}/", {"status": "inactive"}, format="json")
    assert res.status_code == 200
    assert res.json()["status"] == "inactive"

    ev = AuditEvent.objects.get(target_id=str(r.id), event_type=EventType.RECORD_UPDATED)
    assert ev.details["changes"]["status"] == {"before": "active", "after": "inactive"}
    assert ev.record_subject_name == "Jordan Rivera"


def test_update_of_soft_deleted_record_is_not_found(client_for, district_admin, make_record):
    r = make_record(deleted_at=timezone.now())
    res = client_for(district_admin).patch(f"/api/records/{r.id}/", {"notes": "x"}, format="json")
    assert res.status_code == 404


# ---------------------------------------------------------------------
# listing
# ---------------------------------------------------------------------

def test_status_filters(client_for, viewer, make_record):
    now = timezone.now()
    active = make_record(first_name="Active")
    future = make_record(first_name="Future", expiration_date=now + timedelta(days=30))
    expired = make_record(first_name="Expired", expiration_date=now - timedelta(days=1))
    inactive = make_record(first_name="Inactive", status=RecordStatus.INACTIVE, expiration_date=now - timedelta(days=1))

    c = client_for(viewer)
    assert _ids(c.get("/api/records/?status=active")) == {str(active.id), str(future.id)}
    assert _ids(c.get("/api/records/?status=expired")) == {str(expired.id)}
    assert _ids(c.get("/api/records/?status=inactive")) == {str(inactive.id)}
    assert len(_ids(c.get("/api/records/?status=all"))) == 4


def test_search_is_case_insensitive(client_for, viewer, make_record):
    hit = make_record(first_name="Maria", last_name="Gonzalez", school_id="A-77")
    make_record(first_name="Sam", last_name="Lee", school_id="B-12")

    c = client_for(viewer)
    assert _ids(c.get("/api/records/?search=gonz")) == {str(hit.id)}
    assert _ids(c.get("/api/records/?search=a-77")) == {str(hit.id)}


def test_list_is_paginated_newest_first(client_for, viewer, make_record):
    base = timezone.now()
    for i in range(3):
        r = make_record(first_name=f"N{i}")
        Record.objects.filter(id=r.id).update(created_at=base + timedelta(minutes=i))

    res = client_for(viewer).get("/api/records/?page=1&limit=2")
    body = res.json()
    assert body["total"] == 3
    assert body["total_pages"] == 2
    assert [r["first_name"] for r in body["records"]] == ["N2", "N1"]


def test_limit_above_max_is_rejected(client_for, viewer, settings):
    res = client_for(viewer).get(f"/api/records/?limit={settings.RECORDS_LIST_MAX_LIMIT + 1}")
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "validation_error"


def test_daep_students_grouped_by_school_id(client_for, district_admin, make_record):
    make_record(school_id="D-1", is_daep=True, incident_date="2024-01-10", location="old")
    make_record(school_id="D-1", is_daep=True, incident_date="2024-03-01", location="new")
    make_record(school_id="D-2", is_daep=True)
    make_record(school_id="D-3", is_daep=False)

    res = client_for(district_admin).get("/api/records/daep/")
    assert res.status_code == 200
    by_school = {row["record"]["school_id"]: row for row in res.json()}
    assert set(by_school) == {"D-1", "D-2"}
    assert by_school["D-1"]["incident_count"] == 2
    assert by_school["D-1"]["record"]["location"] == "new"


# ---------------------------------------------------------------------
# lifecycle
# ---------------------------------------------------------------------

def test_soft_delete_hides_record_from_default_listing(client_for, district_admin, make_record):
    r = make_record()
    c = client_for(district_admin)

    res = c.delete(f"/api/records/{r.id}/")
    assert res.status_code == 200
    assert res.json()["state"] == "soft_deleted"

    assert str(r.id) not in _ids(c.get("/api/records/"))
    assert c.get(f"/api/records/{r.id}/").status_code == 404
    assert str(r.id) in _ids(c.get("/api/records/deleted/"))


def test_campus_admin_cannot_soft_delete(client_for, campus_admin, make_record, campus):
    r = make_record(campus_id=campus.code)
    res = client_for(campus_admin).delete(f"/api/records/{r.id}/")
    assert res.status_code == 403


def test_restore_keeps_stored_status(client_for, district_admin, make_record):
    r = make_record(status=RecordStatus.INACTIVE)
    c = client_for(district_admin)

    c.delete(f"/api/records/{r.id}/")
    res = c.post(f"/api/records/{r.id}/restore/")
    assert res.status_code == 200
    assert res.json()["status"] == "inactive"
    assert res.json()["deleted_at"] is None

    r.refresh_from_db()
    assert r.status == RecordStatus.INACTIVE
    assert r.deleted_at is None


def test_restore_of_live_record_is_conflict(client_for, district_admin, make_record):
    r = make_record()
    res = client_for(district_admin).post(f"/api/records/{r.id}/restore/")
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "conflict"


def test_purge_before_floor_reports_days_remaining(client_for, district_admin, make_record):
    r = make_record(deleted_at=timezone.now())
    age_deletion(r, days=4 * 365 + 364)

    res = client_for(district_admin).post(f"/api/records/{r.id}/purge/")
    assert res.status_code == 409
    err = res.json()["error"]
    assert err["code"] == "retention_period_not_met"
    assert err["details"] == {"days_remaining": 1}
    assert Record.objects.filter(id=r.id).exists()


def test_purge_after_floor_removes_record(client_for, master_admin, make_record):
    r = make_record(deleted_at=timezone.now())
    age_deletion(r, days=5 * 365)

    res = client_for(master_admin).post(f"/api/records/{r.id}/purge/")
    assert res.status_code == 204
    assert not Record.objects.filter(id=r.id).exists()
    assert AuditEvent.objects.filter(target_id=str(r.id), event_type=EventType.RECORD_PERMANENTLY_DELETED).count() == 1


def test_purge_of_live_record_is_conflict(client_for, district_admin, make_record):
    r = make_record()
    res = client_for(district_admin).post(f"/api/records/{r.id}/purge/")
    assert res.status_code == 409
    assert Record.objects.filter(id=r.id).exists()


def test_requiring_action_lists_only_aged_deletions(client_for, district_admin, make_record):
    old = make_record(deleted_at=timezone.now())
    age_deletion(old, days=5 * 365 + 3)
    make_record(deleted_at=timezone.now())

    res = client_for(district_admin).get("/api/records/requiring-action/")
    body = res.json()
    assert body["total"] == 1
    assert body["records"][0]["id"] == str(old.id)
    assert body["records"][0]["requires_action"] is True


@pytest.mark.parametrize(
    "method,suffix,event_type",
    [
        ("delete", "", EventType.RECORD_DELETED),
        ("post", "restore/", EventType.RECORD_RESTORED),
    ],
)
def test_each_lifecycle_call_appends_exactly_one_event(client_for, district_admin, make_record, method, suffix, event_type):
    deleted_at = timezone.now() if suffix else None
    r = make_record(deleted_at=deleted_at)

    res = getattr(client_for(district_admin), method)(f"/api/records/{r.id}/{suffix}")
    assert res.status_code == 200
    assert AuditEvent.objects.filter(target_id=str(r.id)).count() == 1
    ev = AuditEvent.objects.get(target_id=str(r.id))
    assert ev.event_type == event_type
    assert ev.actor_role == "district_admin"


# ---------------------------------------------------------------------
# tenant isolation
# ---------------------------------------------------------------------

def test_other_tenant_records_are_invisible(client_for, other_district_admin, make_record):
    r = make_record(deleted_at=None)
    c = client_for(other_district_admin)

    assert str(r.id) not in _ids(c.get("/api/records/"))
    for call in (
        lambda: c.get(f"/api/records/{r.id}/"),
        lambda: c.patch(f"/api/records/{r.id}/", {"notes": "x"}, format="json"),
        lambda: c.delete(f"/api/records/{r.id}/"),
        lambda: c.post(f"/api/records/{r.id}/restore/"),
        lambda: c.post(f"/api/records/{r.id}/purge/"),
    ):
        res = call()
        assert res.status_code == 404
        assert "first_name" not in res.content.decode()

    r.refresh_from_db()
    assert r.deleted_at is None


def test_non_master_cannot_select_foreign_tenant(client_for, other_district_admin, tenant):
    res = client_for(other_district_admin).get("/api/records/", **tenant_header(tenant))
    assert res.status_code == 403


def test_master_reads_selected_tenant(client_for, make_actor, other_tenant, tenant, make_record):
    m = make_actor(role=Role.MASTER_ADMIN, tenant=other_tenant)
    r = make_record()
    res = client_for(m).get("/api/records/", **tenant_header(tenant))
    assert res.status_code == 200
    assert _ids(res) == {str(r.id)}


# ---------------------------------------------------------------------
# end to end
# ---------------------------------------------------------------------

def test_soft_delete_then_purge_after_retention(client_for, district_admin, make_record, tenant):
    assert tenant.subdomain == "bisd"
    x = make_record(first_name="X")
    c = client_for(district_admin)

    assert c.delete(f"/api/records/{x.id}/").status_code == 200
    assert str(x.id) not in _ids(c.get("/api/records/"))

    deleted = c.get("/api/records/deleted/").json()["records"]
    row = next(d for d in deleted if d["id"] == str(x.id))
    assert row["days_since_deletion"] == 0
    assert row["requires_action"] is False

    x.refresh_from_db()
    age_deletion(x, days=5 * 365 + 1)

    row = next(d for d in c.get("/api/records/deleted/").json()["records"] if d["id"] == str(x.id))
    assert row["requires_action"] is True

    assert c.post(f"/api/records/{x.id}/purge/").status_code == 204
    assert not Record.objects.filter(id=x.id).exists()
    assert AuditEvent.objects.filter(target_id=str(x.id), event_type=EventType.RECORD_PERMANENTLY_DELETED).count() == 1
