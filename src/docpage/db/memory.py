import logging
import operator
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from docpage.core.errors import StoreError
from docpage.core.pipeline import ID_FIELD, Count, Limit, Match, Project, Sort, Stage
from docpage.models import SortOrder

logger = logging.getLogger(__name__)


def _order_key(value: Any) -> tuple[int, Any]:
    # missing and null values order before everything else
    return (0, 0) if value is None else (1, value)


def _ordered(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def compare(actual: Any, expected: Any) -> bool:
        try:
            return bool(op(_order_key(actual), _order_key(expected)))
        except TypeError:
            return False

    return compare


def _contains(actual: Any, expected: Any) -> bool:
    return actual in expected


_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "$eq": operator.eq,
    "$ne": operator.ne,
    "$gt": _ordered(operator.gt),
    "$gte": _ordered(operator.ge),
    "$lt": _ordered(operator.lt),
    "$lte": _ordered(operator.le),
    "$in": _contains,
    "$nin": lambda actual, expected: not _contains(actual, expected),
}


def _is_operator_doc(cond: Any) -> bool:
    return isinstance(cond, Mapping) and bool(cond) and all(str(k).startswith("$") for k in cond)


def matches(document: Mapping[str, Any], criteria: Mapping[str, Any]) -> bool:
    for key, cond in criteria.items():
        if key == "$or":
            if not any(matches(document, c) for c in cond):
                return False
        elif key == "$and":
            if not all(matches(document, c) for c in cond):
                return False
        elif key.startswith("$"):
            raise StoreError(f"Unsupported logical operator {key!r}")
        elif _is_operator_doc(cond):
            actual = document.get(key)
            for op, expected in cond.items():
                compare = _OPERATORS.get(op)
                if compare is None:
                    raise StoreError(f"Unsupported operator {op!r}")
                if not compare(actual, expected):
                    return False
        elif document.get(key) != cond:
            return False
    return True


class InMemoryDocumentStore:
    """Dict-backed store that interprets pipelines the way the SQL store compiles them.

    Records come back in id order unless a ``Sort`` stage reorders them; ties on
    the sort field keep id order.
    """

    def __init__(self, first_id: int = 1) -> None:
        self.first_id = first_id
        self.collections: dict[str, dict[int, dict[str, Any]]] = {}
        self.calls: list[tuple[str, tuple[Stage, ...]]] = []
        self._next_ids: dict[str, int] = {}

    async def insert_many(self, collection: str, documents: Sequence[Mapping[str, Any]]) -> list[Any]:
        records = self.collections.setdefault(collection, {})
        ids: list[Any] = []
        for document in documents:
            record_id = self._next_ids.get(collection, self.first_id)
            self._next_ids[collection] = record_id + 1
            records[record_id] = {**document, ID_FIELD: record_id}
            ids.append(record_id)
        logger.debug("Inserted %d document(s) into %s", len(ids), collection)
        return ids

    async def aggregate(self, collection: str, pipeline: Sequence[Stage]) -> list[dict[str, Any]]:
        self.calls.append((collection, tuple(pipeline)))
        records = self.collections.get(collection, {})
        documents = [dict(records[k]) for k in sorted(records)]
        for stage in pipeline:
            documents = self._apply(stage, documents)
        return documents

    async def ensure_ready(self) -> None:
        pass

    async def ping(self) -> bool:
        return True

    async def dispose(self) -> None:
        pass

    def _apply(self, stage: Stage, documents: list[dict[str, Any]]) -> list[dict[str, Any]]:
        if isinstance(stage, Match):
            return [d for d in documents if matches(d, stage.criteria)]
        if isinstance(stage, Sort):
            by_id = sorted(documents, key=lambda d: _order_key(d.get(ID_FIELD)))
            try:
                return sorted(
                    by_id,
                    key=lambda d: _order_key(d.get(stage.field)),
                    reverse=stage.order == SortOrder.DESCENDING,
                )
            except TypeError as exc:
                raise StoreError(f"Cannot order {stage.field!r}: {exc}") from exc
        if isinstance(stage, Limit):
            return documents[: stage.count]
        if isinstance(stage, Count):
            return [{stage.field: len(documents)}] if documents else []
        if isinstance(stage, Project):
            keep = {ID_FIELD, *stage.fields}
            return [{k: v for k, v in d.items() if k in keep} for d in documents]
        raise StoreError(f"Unsupported stage {stage!r}")
