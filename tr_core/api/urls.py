# tr_core/api/urls.py
from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from tr_core.audit.api.views import AuditEventViewSet
from tr_core.campuses.api.views import CampusViewSet
from tr_core.iam.api.auth import LoginView, LogoutView, RefreshView
from tr_core.iam.api.me import ActiveTenantView, MeView
from tr_core.iam.api.views import UserViewSet
from tr_core.records.api.views import RecordViewSet
from tr_core.tenants.api.views import TenantViewSet

router = DefaultRouter()

router.register(r"records", RecordViewSet, basename="records")
router.register(r"campuses", CampusViewSet, basename="campuses")
router.register(r"users", UserViewSet, basename="users")
router.register(r"tenants", TenantViewSet, basename="tenants")
router.register(r"audit/events", AuditEventViewSet, basename="audit-events")

urlpatterns = [
    path("auth/login/", LoginView.as_view(), name="login"),
    path("auth/refresh/", RefreshView.as_view(), name="refresh"),
    path("auth/logout/", LogoutView.as_view(), name="logout"),
    path("me/", MeView.as_view(), name="me"),
    path("me/active-tenant/", ActiveTenantView.as_view(), name="me-active-tenant"),

    *router.urls,
]
