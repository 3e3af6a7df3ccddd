# conftest.py
from datetime import timedelta

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from tr_core.campuses.models import Campus
from tr_core.iam.models import Role, UserProfile
from tr_core.records.models import Record
from tr_core.tenants.models import Tenant


def tenant_header(tenant):
    """
    Optional tenant selector header. DRF test client requires HTTP_ prefix.
    """
    return {"HTTP_X_TENANT_ID": str(tenant.id)}


def age_deletion(record, *, days: int = 0, seconds: int = 0):
    """
    Rewrite deleted_at in the database so the record looks deleted
    `days` ago.
    """
    deleted_at = timezone.now() - timedelta(days=days, seconds=seconds)
    Record.objects.filter(id=record.id).update(deleted_at=deleted_at)
    record.refresh_from_db()
    return record


@pytest.fixture
def tenant(db):
    return Tenant.objects.create(subdomain="bisd", display_name="Brownsville ISD")


@pytest.fixture
def other_tenant(db):
    return Tenant.objects.create(subdomain="other-isd", display_name="Other ISD")


@pytest.fixture
def campus(db, tenant):
    return Campus.objects.create(tenant=tenant, code="010", name="Central High", abbreviation="CHS")


@pytest.fixture
def other_campus(db, tenant):
    return Campus.objects.create(tenant=tenant, code="020", name="North Middle", abbreviation="NMS")


@pytest.fixture
def make_actor(db):
    User = get_user_model()
    counter = {"n": 0}

    def _make(*, role=Role.VIEWER, tenant=None, campus_id=None, email=None, active_tenant=None):
        counter["n"] += 1
        email = email or f"{role}-{counter['n']}@example.test"
        user = User.objects.create_user(username=email, email=email, password="testpass")
        return UserProfile.objects.create(
            user=user,
            tenant=tenant,
            active_tenant=active_tenant,
            role=role,
            campus_id=campus_id,
            email=email,
            display_name=email.split("@")[0],
        )

    return _make


@pytest.fixture
def viewer(make_actor, tenant):
    return make_actor(role=Role.VIEWER, tenant=tenant)


@pytest.fixture
def campus_admin(make_actor, tenant, campus):
    return make_actor(role=Role.CAMPUS_ADMIN, tenant=tenant, campus_id=campus.code)


@pytest.fixture
def district_admin(make_actor, tenant):
    return make_actor(role=Role.DISTRICT_ADMIN, tenant=tenant, email="district@bisd.test")


@pytest.fixture
def master_admin(make_actor, tenant):
    return make_actor(role=Role.MASTER_ADMIN, tenant=tenant, email="master@platform.test")


@pytest.fixture
def other_district_admin(make_actor, other_tenant):
    return make_actor(role=Role.DISTRICT_ADMIN, tenant=other_tenant, email="district@other.test")


@pytest.fixture
def client_for():
    def _client(actor):
        c = APIClient()
        c.force_authenticate(user=actor.user)
        return c

    return _client


@pytest.fixture
def make_record(db, tenant):
    def _make(*, tenant_id=None, **fields):
        data = {
            "first_name": "Jordan",
            "last_name": "Rivera",
            "school_id": "S-1001",
        }
        data.update(fields)
        return Record.objects.create(tenant_id=tenant_id or tenant.id, **data)

    return _make
