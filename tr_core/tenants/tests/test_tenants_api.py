# tr_core/tenants/tests/test_tenants_api.py
import pytest

from tr_core.audit.models import AuditEvent, EventType
from tr_core.tenants.models import Tenant, TenantStatus

pytestmark = pytest.mark.django_db


def test_only_master_admin_lists_tenants(client_for, district_admin, master_admin, tenant, other_tenant):
    assert client_for(district_admin).get("/api/tenants/").status_code == 403

    res = client_for(master_admin).get("/api/tenants/")
    assert res.status_code == 200
    assert {t["subdomain"] for t in res.json()} == {"bisd", "other-isd"}


def test_create_tenant_normalizes_subdomain(client_for, master_admin):
    res = client_for(master_admin).post(
        "/api/tenants/",
        {"subdomain": "  New-ISD ", "display_name": "New ISD"},
        format="json",
    )
    assert res.status_code == 201
    body = res.json()
    assert body["subdomain"] == "new-isd"
    assert body["status"] == "active"
    assert AuditEvent.objects.filter(event_type=EventType.TENANT_CREATED, target_id=body["id"]).count() == 1


@pytest.mark.parametrize("subdomain", ["bad_sub", "has space", "dots.not.ok"])
def test_create_rejects_bad_subdomain(client_for, master_admin, subdomain):
    res = client_for(master_admin).post("/api/tenants/", {"subdomain": subdomain, "display_name": "X"}, format="json")
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "validation_error"


def test_create_rejects_duplicate_subdomain(client_for, master_admin, tenant):
    res = client_for(master_admin).post("/api/tenants/", {"subdomain": "bisd", "display_name": "Dup"}, format="json")
    assert res.status_code == 400


def test_district_admin_cannot_create_tenant(client_for, district_admin):
    res = client_for(district_admin).post("/api/tenants/", {"subdomain": "x", "display_name": "X"}, format="json")
    assert res.status_code == 403
    assert not Tenant.objects.filter(subdomain="x").exists()


def test_update_display_name(client_for, master_admin, other_tenant):
    res = client_for(master_admin).patch(f"/api/tenants/{other_tenant.id}/", {"display_name": "Renamed ISD"}, format="json")
    assert res.status_code == 200
    assert res.json()["display_name"] == "Renamed ISD"
    ev = AuditEvent.objects.get(event_type=EventType.TENANT_UPDATED)
    assert ev.tenant_id == other_tenant.id


def test_deactivate_then_reactivate(client_for, master_admin, other_tenant):
    c = client_for(master_admin)

    res = c.post(f"/api/tenants/{other_tenant.id}/deactivate/")
    assert res.status_code == 200
    assert res.json()["status"] == TenantStatus.INACTIVE
    assert c.post(f"/api/tenants/{other_tenant.id}/deactivate/").status_code == 409

    res = c.post(f"/api/tenants/{other_tenant.id}/reactivate/")
    assert res.status_code == 200
    assert res.json()["status"] == TenantStatus.ACTIVE


def test_unknown_tenant_is_not_found(client_for, master_admin):
    res = client_for(master_admin).get("/api/tenants/00000000-0000-0000-0000-000000000404/")
    assert res.status_code == 404
