"""Cursor pagination over a document-store pipeline.

One ``Pagination`` instance answers one query request. Its four public
operations (total count, edges, end cursor, has-next-page) each run at most
once per instance and may be awaited in any order or concurrently.

Two execution modes share the same cursor semantics:

* native: the after-boundary and page limit are pushed into the store as
  pipeline stages;
* search: the store returns the unpaginated base result and
  ``filter_records`` applies the pattern, the after-skip and the limit.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Iterable
from typing import Any, Protocol

from docpage.core.cursor import resolve_cursor
from docpage.core.filtering import compile_pattern, filter_records
from docpage.core.memo import MemoSlots
from docpage.core.pipeline import (
    ID_FIELD,
    Count,
    Limit,
    Match,
    Pipeline,
    Stage,
    build_pipeline,
    extend,
    strip_projections,
)
from docpage.core.ports.store import DocumentStore
from docpage.models import (
    DEFAULT_PAGE_SIZE,
    Connection,
    Edge,
    Filter,
    PageInfo,
    PaginationParams,
    SearchSpec,
    SortOrder,
    SortSpec,
)

logger = logging.getLogger(__name__)


class _Mode(Protocol):
    async def count(self) -> int: ...

    async def page(self, after: Any) -> list[dict[str, Any]]: ...


class NativeMode:
    """Filtering, boundary and limit all run inside the store."""

    def __init__(self, pagination: Pagination) -> None:
        self._p = pagination

    async def count(self) -> int:
        pipeline = extend(strip_projections(self._p.pipeline), Count("count"))
        results = await self._p.aggregate(pipeline)
        return int(results[0]["count"]) if results else 0

    async def page(self, after: Any) -> list[dict[str, Any]]:
        pipeline = await self._p.add_pagination(self._p.pipeline, after)
        return await self._p.aggregate(pipeline)


class SearchMode:
    """The store runs the base pipeline; pattern, boundary and limit run here."""

    def __init__(self, pagination: Pagination, regex: re.Pattern[str]) -> None:
        self._p = pagination
        self._regex = regex

    async def _documents(self) -> list[dict[str, Any]]:
        return await self._p.slots.run("documents", lambda: self._p.aggregate(self._p.pipeline))

    async def count(self) -> int:
        return len(filter_records(await self._documents(), self._regex))

    async def page(self, after: Any) -> list[dict[str, Any]]:
        params = PaginationParams(first=self._p.fix_per_page(), after=after)
        return filter_records(await self._documents(), self._regex, params)


class Pagination:
    def __init__(
        self,
        store: DocumentStore,
        collection: str,
        *,
        base_pipeline: Iterable[Stage] = (),
        pagination: PaginationParams | None = None,
        sort: SortSpec | None = None,
        filters: Iterable[Filter] = (),
        search: SearchSpec | None = None,
    ) -> None:
        """Build the base pipeline and select the execution mode.

        ``base_pipeline`` is copied; the caller's stages are never mutated.
        A ``search`` spec selects client-side filtering and is compiled here,
        so an invalid pattern fails before any store call.
        """
        self.store = store
        self.collection = collection
        self.pagination = pagination or PaginationParams()
        self.sort = sort or SortSpec()
        self.search = search
        self.pipeline: Pipeline = build_pipeline(base_pipeline, filters, self.sort)
        self.per_page: int | None = None
        self.slots = MemoSlots()

        self._mode: _Mode
        if search is not None:
            self._mode = SearchMode(self, compile_pattern(search.pattern))
        else:
            self._mode = NativeMode(self)

    @property
    def is_search(self) -> bool:
        return self.search is not None

    async def aggregate(self, pipeline: Pipeline) -> list[dict[str, Any]]:
        logger.debug("Running %d-stage pipeline on %s", len(pipeline), self.collection)
        return await self.store.aggregate(self.collection, pipeline)

    def fix_per_page(self) -> int:
        """Fix the page size on first use and return it."""
        if self.per_page is None:
            self.per_page = self.pagination.first or DEFAULT_PAGE_SIZE
        return self.per_page

    async def find_cursor_record(self, cursor: Any) -> dict[str, Any]:
        return await self.slots.run(
            ("cursor", cursor),
            lambda: resolve_cursor(self.store, self.collection, self.pipeline, cursor),
        )

    def boundary_criteria(self, boundary: dict[str, Any], after: Any) -> dict[str, Any]:
        """Admit records strictly past the boundary, or tied with a greater id."""
        ors: list[dict[str, Any]] = []
        field, order = self.sort.field, self.sort.order
        if field and order is not None:
            op = "$lt" if order == SortOrder.DESCENDING else "$gt"
            value = boundary.get(field)
            ors.append({field: {op: value}})
            ors.append({field: value, ID_FIELD: {"$gt": after}})
        else:
            ors.append({ID_FIELD: {"$gt": after}})
        return {"$or": ors}

    async def add_pagination(self, pipeline: Pipeline, after: Any) -> Pipeline:
        stages: list[Stage] = list(pipeline)
        if after is not None:
            boundary = await self.find_cursor_record(after)
            stages.append(Match(self.boundary_criteria(boundary, after)))
        stages.append(Limit(self.fix_per_page()))
        return tuple(stages)

    async def get_total_count(self) -> int:
        return await self.slots.run("count", self._mode.count)

    async def get_edges(self) -> list[Edge]:
        return await self.slots.run("edges", self._fetch_edges)

    async def get_end_cursor(self) -> Any:
        return await self.slots.run("end_cursor", self._fetch_end_cursor)

    async def has_next_page(self) -> bool:
        return await self.slots.run("next_page", self._probe_next_page)

    async def connection(self) -> Connection:
        total_count, edges, end_cursor, has_next = await asyncio.gather(
            self.get_total_count(),
            self.get_edges(),
            self.get_end_cursor(),
            self.has_next_page(),
        )
        return Connection(
            total_count=total_count,
            edges=edges,
            page_info=PageInfo(end_cursor=end_cursor, has_next_page=has_next),
        )

    async def _fetch_edges(self) -> list[Edge]:
        records = await self._mode.page(self.pagination.after)
        return [Edge(node=record, cursor=record[ID_FIELD]) for record in records]

    async def _fetch_end_cursor(self) -> Any:
        edges = await self.get_edges()
        if not edges:
            return None
        return edges[-1].cursor

    async def _probe_next_page(self) -> bool:
        end_cursor = await self.get_end_cursor()
        if end_cursor is None:
            return False
        return len(await self._mode.page(end_cursor)) > 0
