"""Query-string parsing for the paginated document endpoints.

Cursors are raw record ids. Values that look like integers are coerced so
they compare equal to integer ids assigned by the store.
"""

from __future__ import annotations

from typing import Any

from starlette.requests import Request

from docpage.models import DEFAULT_PAGE_SIZE, Filter, PaginationParams, SearchSpec, SortOrder, SortSpec

MAX_PAGE_SIZE = 1000


class InvalidQueryParamError(ValueError):
    """Raised when a query parameter cannot be parsed."""


def coerce_scalar(raw: str) -> Any:
    try:
        return int(raw)
    except ValueError:
        return raw


def parse_page_params(request: Request) -> PaginationParams:
    """Extract ``first`` and ``after`` from query params, clamping the page size."""
    after_raw = request.query_params.get("after")
    size_raw = request.query_params.get("first", str(DEFAULT_PAGE_SIZE))
    try:
        size = max(1, min(int(size_raw), MAX_PAGE_SIZE))
    except (ValueError, TypeError):
        size = DEFAULT_PAGE_SIZE
    after = coerce_scalar(after_raw) if after_raw else None
    return PaginationParams(first=size, after=after)


def parse_sort(request: Request) -> SortSpec:
    field = request.query_params.get("sort_field")
    order_raw = request.query_params.get("sort_order")
    if not field:
        return SortSpec()
    try:
        order = SortOrder.parse(order_raw or "asc")
    except ValueError as exc:
        raise InvalidQueryParamError(str(exc)) from exc
    return SortSpec(field=field, order=order)


def parse_filters(request: Request) -> list[Filter]:
    """Parse repeated ``filter=field:value`` params; ``field:a|b`` means membership."""
    filters: list[Filter] = []
    for raw in request.query_params.getlist("filter"):
        field, sep, value = raw.partition(":")
        if not sep or not field:
            raise InvalidQueryParamError(f"Malformed filter: {raw!r}")
        if "|" in value:
            filters.append(Filter(field=field, value=[coerce_scalar(v) for v in value.split("|")]))
        else:
            filters.append(Filter(field=field, value=coerce_scalar(value)))
    return filters


def parse_search(request: Request) -> SearchSpec | None:
    pattern = request.query_params.get("search")
    return SearchSpec(pattern=pattern) if pattern else None
