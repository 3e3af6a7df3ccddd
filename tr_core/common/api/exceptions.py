# tr_core/common/api/exceptions.py

from __future__ import annotations

import uuid
from typing import Any

from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import (
    APIException,
    AuthenticationFailed,
    NotAuthenticated,
    NotFound as DRFNotFound,
    PermissionDenied,
    ValidationError,
)
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler


def ensure_request_id(request) -> str:
    """
    Ensures request has a stable request_id attribute and returns it.
    Safe to call from middleware and DRF exception handler.
    """
    rid = getattr(request, "request_id", None) if request is not None else None
    if not rid:
        rid = uuid.uuid4().hex
        if request is not None:
            setattr(request, "request_id", rid)
    return rid


def build_error_envelope(*, request=None, code: str, message: str, details: Any = None) -> dict[str, Any]:
    """
    Canonical error envelope.
    Reusable from Django middleware (JsonResponse) and DRF (Response).
    """
    rid = ensure_request_id(request)
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details,
            "request_id": rid,
        }
    }


# -------------------------------------------------------------------
# Error taxonomy
# -------------------------------------------------------------------

class Unauthenticated(NotAuthenticated):
    default_detail = "Authentication required."
    default_code = "unauthenticated"


class Unauthorized(PermissionDenied):
    """
    Role not permitted. The message never explains which tenant or record
    failed to match.
    """
    default_detail = "You do not have permission to perform this action."
    default_code = "unauthorized"


class ForbiddenSelfAction(PermissionDenied):
    default_detail = "This action cannot be performed on your own account."
    default_code = "forbidden_self_action"


class NoTenantSelected(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "No tenant selected. Select a tenant and retry."
    default_code = "no_tenant_selected"


class NotFound(DRFNotFound):
    """
    Absent OR out of the caller's scope. Both cases share one error so that
    cross-tenant existence never leaks.
    """
    default_detail = "Not found."
    default_code = "not_found"


class ConflictError(APIException):
    """
    409 Conflict that still flows through the global exception handler.
    Raised when a lifecycle transition is not valid from the current state,
    or when a concurrent restore/purge won the race.
    """
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict."
    default_code = "conflict"

    def __init__(self, detail=None, code=None):
        super().__init__(detail=detail or self.default_detail, code=code or self.default_code)


class RetentionPeriodNotMet(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_code = "retention_period_not_met"

    def __init__(self, *, days_remaining: int):
        self.days_remaining = int(days_remaining)
        super().__init__(
            detail={
                "detail": (
                    "FERPA compliance: record must be retained for 5 years. "
                    f"{self.days_remaining} days remaining."
                ),
                "days_remaining": self.days_remaining,
            },
            code=self.default_code,
        )


class StorageError(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Storage temporarily unavailable. Retry the request."
    default_code = "storage_error"


def _code_for(exc: Exception, http_status: int) -> str:
    if isinstance(exc, ValidationError):
        return "validation_error"
    if isinstance(exc, (Unauthenticated, Unauthorized, ForbiddenSelfAction, NotFound)):
        return exc.default_code
    if isinstance(exc, (NotAuthenticated, AuthenticationFailed)):
        return "unauthenticated"
    if isinstance(exc, PermissionDenied):
        return "unauthorized"
    if isinstance(exc, (Http404, DRFNotFound)):
        return "not_found"
    if isinstance(exc, APIException):
        return getattr(exc, "default_code", "api_error") or "api_error"
    if http_status >= 500:
        return "server_error"
    return "error"


def api_exception_handler(exc: Exception, context: dict[str, Any]):
    request = context.get("request")
    response = drf_exception_handler(exc, context)

    # Truly unhandled error
    if response is None:
        return Response(
            build_error_envelope(
                request=request,
                code="server_error",
                message="Unexpected server error.",
                details=None,
            ),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    http_status = response.status_code
    code = _code_for(exc, http_status)

    data = response.data

    # Message + details rules:
    # 1) {"detail": "..."} only -> message=detail, details=None
    # 2) {"detail": "...", ...} -> message=detail, details={...without detail}
    # 3) otherwise -> message="Request failed.", details=data
    message = "Request failed."
    details = data

    if isinstance(data, dict) and "detail" in data:
        message = str(data.get("detail"))
        rest = {k: v for k, v in data.items() if k != "detail"}
        details = rest or None

    # DRF stringifies detail values; keep days_remaining numeric for clients.
    if isinstance(exc, RetentionPeriodNotMet):
        details = {"days_remaining": exc.days_remaining}

    return Response(
        build_error_envelope(
            request=request,
            code=code,
            message=message,
            details=details,
        ),
        status=http_status,
        headers=response.headers,
    )
