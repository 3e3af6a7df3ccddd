# tr_core/iam/tests/test_privileged.py
import logging

import pytest

from tr_core.common.api.exceptions import Unauthorized
from tr_core.iam.authz import Action
from tr_core.iam.models import Role, UserProfile
from tr_core.iam.privileged import PrivilegeGrant, require_grant, verify_privileged_operation

pytestmark = pytest.mark.django_db


def test_grant_cannot_be_built_by_hand(district_admin, tenant):
    with pytest.raises(TypeError):
        PrivilegeGrant(actor_id=district_admin.id, actor_role=district_admin.role, tenant_id=tenant.id, action=Action.RECORD_DELETE)


def test_verify_issues_grant_for_home_tenant(district_admin, tenant):
    grant = verify_privileged_operation(actor_id=district_admin.id, target_tenant_id=tenant.id, action=Action.RECORD_DELETE)
    assert grant.tenant_id == tenant.id
    require_grant(grant, action=Action.RECORD_DELETE, tenant_id=tenant.id)


def test_verify_rejects_foreign_tenant(district_admin, other_tenant, caplog):
    with caplog.at_level(logging.WARNING, logger="tr_core.iam.privileged"):
        with pytest.raises(Unauthorized):
            verify_privileged_operation(actor_id=district_admin.id, target_tenant_id=other_tenant.id, action=Action.RECORD_DELETE)
    assert "tenant_mismatch" in caplog.text


def test_verify_uses_fresh_role(district_admin, tenant):
    # stale in-memory object still says district_admin
    UserProfile.objects.filter(id=district_admin.id).update(role=Role.VIEWER)
    with pytest.raises(Unauthorized):
        verify_privileged_operation(actor_id=district_admin.id, target_tenant_id=tenant.id, action=Action.RECORD_DELETE)


def test_master_may_target_any_tenant(master_admin, other_tenant):
    grant = verify_privileged_operation(actor_id=master_admin.id, target_tenant_id=other_tenant.id, action=Action.CAMPUS_UPDATE)
    assert grant.actor_role == Role.MASTER_ADMIN


def test_grant_is_bound_to_action_and_tenant(district_admin, tenant, other_tenant):
    grant = verify_privileged_operation(actor_id=district_admin.id, target_tenant_id=tenant.id, action=Action.RECORD_RESTORE)
    with pytest.raises(Unauthorized):
        require_grant(grant, action=Action.RECORD_PURGE, tenant_id=tenant.id)
    with pytest.raises(Unauthorized):
        require_grant(grant, action=Action.RECORD_RESTORE, tenant_id=other_tenant.id)
