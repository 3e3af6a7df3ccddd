from __future__ import annotations

from typing import Optional
from uuid import UUID

from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin

from tr_core.common.api.exceptions import build_error_envelope

INVALID_TENANT_HEADER_MSG = "Invalid X-Tenant-Id header. Provide a valid tenant UUID."


def _parse_uuid(value: str) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


class RequestedTenantMiddleware(MiddlewareMixin):
    """
    Parses the optional tenant selector header for API requests.

    Behavior:
      - Header absent -> request.requested_tenant_id = None (scope falls back
        to the actor's active/home tenant).
      - Header present but not a UUID -> 400 validation_error envelope.
      - Header valid -> request.requested_tenant_id = UUID.

    Membership is NOT checked here; the scope resolver decides whether the
    actor may use the requested tenant.
    """

    TENANT_META_KEYS = ("HTTP_X_TENANT_ID",)

    ENFORCED_PREFIXES = ("/api/v1/", "/api/")

    PUBLIC_PATH_PREFIXES = (
        "/admin/",
        "/api/docs/",
        "/api/schema/",
    )

    def _starts_with_any(self, path: str, prefixes: tuple[str, ...]) -> bool:
        return any(path.startswith(p) for p in prefixes)

    def _get_meta_first(self, request, keys: tuple[str, ...]) -> Optional[str]:
        for k in keys:
            v = request.META.get(k)
            if v:
                return v
        return None

    def process_request(self, request):
        request.requested_tenant_id = None

        path = getattr(request, "path", "") or ""

        if self._starts_with_any(path, self.PUBLIC_PATH_PREFIXES):
            return None

        if not self._starts_with_any(path, self.ENFORCED_PREFIXES):
            return None

        raw = self._get_meta_first(request, self.TENANT_META_KEYS)
        if not raw:
            return None

        tenant_id = _parse_uuid(raw)
        if tenant_id is None:
            return JsonResponse(
                build_error_envelope(
                    request=request,
                    code="validation_error",
                    message=INVALID_TENANT_HEADER_MSG,
                    details=None,
                ),
                status=400,
            )

        request.requested_tenant_id = tenant_id
        return None
