import logging
import time
from collections.abc import Mapping, Sequence
from typing import Any

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from docpage.core.errors import StoreError
from docpage.core.pipeline import ID_FIELD, Stage
from docpage.db.compiler import compile_pipeline, documents, metadata

logger = logging.getLogger(__name__)


class PostgresDocumentStore:
    """Documents stored as JSONB rows in one ``documents`` table, partitioned by collection."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self._ready = False

    async def ensure_ready(self) -> None:
        if self._ready:
            return
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(metadata.create_all)
        except (SQLAlchemyError, OSError) as exc:
            raise StoreError(f"Could not prepare documents table: {exc}") from exc
        self._ready = True
        logger.info("Documents table ready")

    async def insert_many(self, collection: str, documents_in: Sequence[Mapping[str, Any]]) -> list[Any]:
        if not documents_in:
            return []
        await self.ensure_ready()
        rows = [
            {"collection": collection, "body": {k: v for k, v in doc.items() if k != ID_FIELD}}
            for doc in documents_in
        ]
        stmt = sa.insert(documents).values(rows).returning(documents.c.id)
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(stmt)
                ids = [row[0] for row in result]
        except (SQLAlchemyError, OSError) as exc:
            raise StoreError(f"Insert into {collection!r} failed: {exc}") from exc
        logger.debug("Inserted %d document(s) into %s", len(ids), collection)
        return ids

    async def aggregate(self, collection: str, pipeline: Sequence[Stage]) -> list[dict[str, Any]]:
        await self.ensure_ready()
        stmt, count_field = compile_pipeline(collection, pipeline)
        t0 = time.perf_counter()
        try:
            async with self.engine.connect() as conn:
                result = await conn.execute(stmt)
                rows = result.all()
        except (SQLAlchemyError, OSError) as exc:
            raise StoreError(f"Pipeline on {collection!r} failed: {exc}") from exc
        logger.debug(
            "Pipeline on %s: %d stage(s), %d row(s) in %.3fs",
            collection,
            len(pipeline),
            len(rows),
            time.perf_counter() - t0,
        )

        if count_field is not None:
            count = int(rows[0][0]) if rows else 0
            return [{count_field: count}] if count else []
        return [{ID_FIELD: row.id, **(row.body or {})} for row in rows]

    async def ping(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(sa.text("SELECT 1"))
        except (SQLAlchemyError, OSError):
            return False
        return True

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database engine disposed")
