# tr_core/iam/tests/test_users_api.py
import pytest
from django.utils import timezone

from tr_core.audit.models import AuditEvent, EventType
from tr_core.iam.models import Role, UserProfile

pytestmark = pytest.mark.django_db


def test_district_admin_does_not_see_master_admins(client_for, district_admin, master_admin, viewer):
    res = client_for(district_admin).get("/api/users/")
    assert res.status_code == 200
    ids = {row["id"] for row in res.json()}
    assert str(viewer.id) in ids
    assert str(master_admin.id) not in ids


def test_master_admin_sees_masters_of_other_tenants(client_for, master_admin, make_actor, other_tenant):
    other_master = make_actor(role=Role.MASTER_ADMIN, tenant=other_tenant)
    res = client_for(master_admin).get("/api/users/")
    ids = {row["id"] for row in res.json()}
    assert str(other_master.id) in ids


def test_viewer_cannot_list_users(client_for, viewer):
    res = client_for(viewer).get("/api/users/")
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "unauthorized"


def test_district_admin_cannot_read_master_admin(client_for, district_admin, master_admin):
    res = client_for(district_admin).get(f"/api/users/{master_admin.id}/")
    assert res.status_code == 403


@pytest.mark.parametrize("new_role", [Role.VIEWER, Role.DISTRICT_ADMIN, Role.MASTER_ADMIN])
def test_district_admin_cannot_change_master_role(client_for, district_admin, master_admin, new_role):
    res = client_for(district_admin).post(f"/api/users/{master_admin.id}/role/", {"role": new_role}, format="json")
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "unauthorized"
    master_admin.refresh_from_db()
    assert master_admin.role == Role.MASTER_ADMIN


def test_campus_admin_role_requires_campus(client_for, district_admin, viewer):
    res = client_for(district_admin).post(f"/api/users/{viewer.id}/role/", {"role": Role.CAMPUS_ADMIN}, format="json")
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "validation_error"


def test_unknown_campus_is_rejected(client_for, district_admin, viewer):
    res = client_for(district_admin).post(
        f"/api/users/{viewer.id}/role/",
        {"role": Role.CAMPUS_ADMIN, "campus_id": "999"},
        format="json",
    )
    assert res.status_code == 400


def test_role_update_is_applied_and_audited(client_for, district_admin, viewer, campus):
    res = client_for(district_admin).post(
        f"/api/users/{viewer.id}/role/",
        {"role": Role.CAMPUS_ADMIN, "campus_id": campus.code},
        format="json",
    )
    assert res.status_code == 200
    body = res.json()
    assert body["role"] == Role.CAMPUS_ADMIN
    assert body["campus_id"] == "010"

    events = AuditEvent.objects.filter(target_id=str(viewer.id), event_type=EventType.USER_UPDATED)
    assert events.count() == 1
    assert events.get().details["changes"]["role"] == {"before": "viewer", "after": "campus_admin"}


def test_demoting_master_clears_foreign_active_tenant(client_for, master_admin, make_actor, tenant, other_tenant):
    m2 = make_actor(role=Role.MASTER_ADMIN, tenant=tenant, active_tenant=other_tenant)
    res = client_for(master_admin).post(f"/api/users/{m2.id}/role/", {"role": Role.VIEWER}, format="json")
    assert res.status_code == 200
    m2.refresh_from_db()
    assert m2.role == Role.VIEWER
    assert m2.active_tenant_id is None


def test_user_in_other_tenant_is_not_found(client_for, district_admin, other_district_admin):
    res = client_for(district_admin).post(f"/api/users/{other_district_admin.id}/role/", {"role": Role.VIEWER}, format="json")
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "not_found"


def test_delete_self_is_forbidden(client_for, district_admin):
    res = client_for(district_admin).delete(f"/api/users/{district_admin.id}/")
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "forbidden_self_action"


def test_delete_user_soft_deletes_and_audits(client_for, district_admin, viewer):
    res = client_for(district_admin).delete(f"/api/users/{viewer.id}/")
    assert res.status_code == 204

    viewer.refresh_from_db()
    viewer.user.refresh_from_db()
    assert viewer.deleted_at is not None
    assert viewer.user.is_active is False
    assert AuditEvent.objects.filter(target_id=str(viewer.id), event_type=EventType.USER_DELETED).count() == 1


def test_deleted_actor_is_unauthenticated(client_for, viewer):
    c = client_for(viewer)
    UserProfile.objects.filter(id=viewer.id).update(deleted_at=timezone.now())
    res = c.get("/api/records/")
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "unauthenticated"


@pytest.fixture(params=["no_tenant", "other_tenant"])
def outside_master(request, make_actor, other_tenant):
    home = other_tenant if request.param == "other_tenant" else None
    return make_actor(role=Role.MASTER_ADMIN, tenant=home)


@pytest.mark.parametrize("new_role", [Role.VIEWER, Role.MASTER_ADMIN])
def test_district_admin_cannot_change_master_outside_tenant(client_for, district_admin, outside_master, new_role):
    res = client_for(district_admin).post(f"/api/users/{outside_master.id}/role/", {"role": new_role}, format="json")
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "unauthorized"
    outside_master.refresh_from_db()
    assert outside_master.role == Role.MASTER_ADMIN


def test_district_admin_cannot_read_or_delete_master_outside_tenant(client_for, district_admin, outside_master):
    c = client_for(district_admin)
    assert c.get(f"/api/users/{outside_master.id}/").json()["error"]["code"] == "unauthorized"

    res = c.delete(f"/api/users/{outside_master.id}/")
    assert res.status_code == 403
    outside_master.refresh_from_db()
    assert outside_master.deleted_at is None


def test_promotion_to_master_is_refused_before_lookup(client_for, district_admin):
    missing = "00000000-0000-0000-0000-000000000123"
    res = client_for(district_admin).post(f"/api/users/{missing}/role/", {"role": Role.MASTER_ADMIN}, format="json")
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "unauthorized"


def test_foreign_non_master_stays_not_found_on_role_change(client_for, district_admin, other_district_admin):
    res = client_for(district_admin).post(
        f"/api/users/{other_district_admin.id}/role/", {"role": Role.VIEWER}, format="json"
    )
    assert res.status_code == 404
