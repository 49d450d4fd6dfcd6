"""Client-side search for stores that cannot run text search in a pipeline.

``filter_records`` replays cursor semantics over an unpaginated, already
sorted result set: skip until the ``after`` record, keep pattern matches,
stop once a page is full.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

from docpage.core.errors import CursorNotFoundError, InvalidSearchPatternError
from docpage.core.pipeline import ID_FIELD
from docpage.models import PaginationParams


def compile_pattern(pattern: str) -> re.Pattern[str]:
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as exc:
        raise InvalidSearchPatternError(pattern, str(exc)) from exc


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list | tuple)):
        return ",".join(_stringify(v) for v in value)
    return str(value)


def record_matches(record: Mapping[str, Any], regex: re.Pattern[str]) -> bool:
    return any(regex.search(_stringify(value)) for value in record.values() if value is not None)


def filter_records(
    records: Iterable[dict[str, Any]],
    pattern: str | re.Pattern[str],
    pagination: PaginationParams | None = None,
) -> list[dict[str, Any]]:
    """Return the records matching ``pattern``, in input order.

    Without ``pagination`` every match is returned. With it, records up to and
    including the ``after`` record are skipped and at most
    ``pagination.page_size`` matches are kept.

    Raises ``CursorNotFoundError`` if ``after`` never appears in ``records``.
    """
    regex = pattern if isinstance(pattern, re.Pattern) else compile_pattern(pattern)
    after = pagination.after if pagination is not None else None
    limit = pagination.page_size if pagination is not None else None

    seen = -1 if after is not None else 0
    included: list[dict[str, Any]] = []
    for record in records:
        if seen == limit:
            break
        if seen == -1:
            if record.get(ID_FIELD) == after:
                seen = 0
            continue
        if record_matches(record, regex):
            included.append(record)
            seen += 1

    if seen == -1:
        raise CursorNotFoundError(after)
    return included
