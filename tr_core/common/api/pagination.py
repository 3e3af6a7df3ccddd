from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from rest_framework.exceptions import ValidationError


@dataclass(frozen=True)
class PageParams:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class Page:
    items: list[Any]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def _parse_positive_int(raw, *, field: str, default: int) -> int:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError({field: "Must be a positive integer."})
    if value < 1:
        raise ValidationError({field: "Must be a positive integer."})
    return value


def page_params(*, page=None, limit=None, default_limit: int, max_limit: int) -> PageParams:
    """
    Offset pagination contract shared by records and audit listings.
    limit is caller-bounded: values above max_limit are rejected, not clamped.
    """
    p = _parse_positive_int(page, field="page", default=1)
    n = _parse_positive_int(limit, field="limit", default=default_limit)
    if n > max_limit:
        raise ValidationError({"limit": f"Must be at most {max_limit}."})
    return PageParams(page=p, limit=n)


def page_params_from_request(request, *, default_limit: int, max_limit: int) -> PageParams:
    return page_params(
        page=request.query_params.get("page"),
        limit=request.query_params.get("limit"),
        default_limit=default_limit,
        max_limit=max_limit,
    )


def paginated_payload(page: Page, serializer_class, *, items_key: str = "results") -> dict[str, Any]:
    """
    Stable list contract:
      { <items_key>, total, page, limit, total_pages }
    """
    return {
        items_key: serializer_class(page.items, many=True).data,
        "total": page.total,
        "page": page.page,
        "limit": page.limit,
        "total_pages": page.total_pages,
    }
