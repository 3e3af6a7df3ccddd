# tr_core/common/openapi.py
from __future__ import annotations

from drf_spectacular.openapi import AutoSchema
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter


class TRAutoSchema(AutoSchema):
    """
    Adds the optional tenant selector header (X-Tenant-Id) to every
    tenant-scoped endpoint. Auth endpoints and the schema views are skipped.
    """

    TENANT_HEADER = OpenApiParameter(
        name="X-Tenant-Id",
        type=OpenApiTypes.UUID,
        location=OpenApiParameter.HEADER,
        required=False,
        description=(
            "Tenant to operate on. Defaults to the caller's active tenant, then home tenant. "
            "Only master admins may select a tenant other than their own."
        ),
    )

    def _is_unscoped_endpoint(self) -> bool:
        view = getattr(self, "view", None)
        if view is None:
            return False

        if view.__class__.__name__ in {"SpectacularAPIView", "SpectacularSwaggerView"}:
            return True

        module = view.__class__.__module__ or ""
        return module.startswith("tr_core.iam.api.auth")

    def get_override_parameters(self):
        params = list(super().get_override_parameters() or [])

        if not self._is_unscoped_endpoint():
            if not any(p.name.lower() == "x-tenant-id" for p in params):
                params.append(self.TENANT_HEADER)

        return params
