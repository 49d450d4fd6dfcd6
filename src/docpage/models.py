from enum import IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PAGE_SIZE = 25


class SortOrder(IntEnum):
    ASCENDING = 1
    DESCENDING = -1

    @classmethod
    def parse(cls, value: "str | int | SortOrder") -> "SortOrder":
        """Accept ``asc``/``desc``, ``1``/``-1`` or an existing member."""
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized in ("asc", "ascending", "1"):
                return cls.ASCENDING
            if normalized in ("desc", "descending", "-1"):
                return cls.DESCENDING
            raise ValueError(f"Unknown sort order: {value!r}")
        return cls(value)


class SortSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str | None = None
    order: SortOrder | None = None

    @property
    def is_set(self) -> bool:
        return bool(self.field) and self.order is not None


class Filter(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    value: Any


class SearchSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    pattern: str


class PaginationParams(BaseModel):
    model_config = ConfigDict(frozen=True)

    first: int | None = Field(default=None, gt=0)
    after: Any = None

    @property
    def page_size(self) -> int:
        return self.first or DEFAULT_PAGE_SIZE


class Edge(BaseModel):
    node: dict[str, Any]
    cursor: Any


class PageInfo(BaseModel):
    end_cursor: Any = None
    has_next_page: bool = False


class Connection(BaseModel):
    total_count: int
    edges: list[Edge]
    page_info: PageInfo
