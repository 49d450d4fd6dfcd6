from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from docpage.core.pipeline import Stage


class DocumentStore(Protocol):
    async def aggregate(self, collection: str, pipeline: Sequence[Stage]) -> list[dict[str, Any]]: ...

    async def insert_many(self, collection: str, documents: Sequence[Mapping[str, Any]]) -> list[Any]: ...

    async def ensure_ready(self) -> None: ...

    async def ping(self) -> bool: ...

    async def dispose(self) -> None: ...
