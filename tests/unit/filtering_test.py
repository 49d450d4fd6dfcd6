"""Unit tests for client-side search filtering."""

from __future__ import annotations

import re
from typing import Any

import pytest

from docpage.core.errors import CursorNotFoundError, InvalidSearchPatternError
from docpage.core.filtering import compile_pattern, filter_records, record_matches
from docpage.models import PaginationParams


def _records() -> list[dict[str, Any]]:
    names = ["Alpha", "beta", "ALPHABET", "gamma", "alphonse", "delta", "alpine"]
    return [{"id": i, "name": name} for i, name in enumerate(names, start=1)]


def _ids(records: list[dict[str, Any]]) -> list[int]:
    return [r["id"] for r in records]


def test_without_pagination_returns_all_matches_case_insensitive() -> None:
    assert _ids(filter_records(_records(), "alp")) == [1, 3, 5, 7]


def test_regex_patterns_are_supported() -> None:
    assert _ids(filter_records(_records(), r"^(beta|gamma)$")) == [2, 4]


def test_page_size_truncates_matches() -> None:
    result = filter_records(_records(), "alp", PaginationParams(first=2))

    assert _ids(result) == [1, 3]


def test_after_skips_through_the_cursor_record() -> None:
    result = filter_records(_records(), "alp", PaginationParams(first=2, after=3))

    assert _ids(result) == [5, 7]


def test_cursor_record_need_not_match_pattern() -> None:
    result = filter_records(_records(), "alp", PaginationParams(first=5, after=2))

    assert _ids(result) == [3, 5, 7]


def test_after_last_record_yields_empty_page() -> None:
    assert filter_records(_records(), "alp", PaginationParams(first=2, after=7)) == []


def test_unknown_after_raises_cursor_not_found() -> None:
    with pytest.raises(CursorNotFoundError) as excinfo:
        filter_records(_records(), "alp", PaginationParams(first=2, after=99))

    assert excinfo.value.cursor == 99


def test_default_page_size_applies_when_first_is_unset() -> None:
    records = [{"id": i, "name": "match"} for i in range(1, 41)]

    assert len(filter_records(records, "match", PaginationParams())) == 25


def test_none_values_are_not_searched() -> None:
    assert not record_matches({"id": 7, "name": None}, compile_pattern("none"))


def test_id_is_searched_like_any_field() -> None:
    regex = compile_pattern("^12$")

    assert record_matches({"id": 12, "name": "x"}, regex)
    assert not record_matches({"id": 2, "name": "x"}, regex)


def test_non_string_values_are_stringified() -> None:
    regex = compile_pattern("^true$|^42$|red,green")

    assert record_matches({"flag": True}, regex)
    assert record_matches({"n": 42}, regex)
    assert record_matches({"tags": ["red", "green"]}, regex)


def test_precompiled_pattern_is_accepted() -> None:
    assert _ids(filter_records(_records(), re.compile("delta"))) == [6]


def test_invalid_pattern_raises() -> None:
    with pytest.raises(InvalidSearchPatternError):
        compile_pattern("([unclosed")
