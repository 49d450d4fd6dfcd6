"""Compile pipelines into SQLAlchemy statements over the ``documents`` table.

Each document is a row ``(id, collection, body)`` with the user fields in a
JSONB ``body``. Stages are folded into a single ``SELECT``; a stage that
follows a ``LIMIT`` wraps the statement as a subquery so the limit applies
first, and the current ordering is re-applied on the outer query.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from sqlalchemy.sql.elements import ColumnElement

from docpage.core.errors import StoreError
from docpage.core.pipeline import ID_FIELD, Count, Limit, Match, Project, Sort, Stage
from docpage.models import SortOrder

metadata = sa.MetaData()

documents = sa.Table(
    "documents",
    metadata,
    sa.Column("id", sa.BigInteger, sa.Identity(), primary_key=True),
    sa.Column("collection", sa.Text, nullable=False, index=True),
    sa.Column("body", postgresql.JSONB, nullable=False),
)


def _json(value: Any) -> ColumnElement[Any]:
    return sa.literal(value, postgresql.JSONB)


def _field(stmt: sa.Select[Any], name: str) -> ColumnElement[Any]:
    columns = stmt.selected_columns
    if name == ID_FIELD:
        return columns.id
    return columns.body[name]


def _is_null(expr: ColumnElement[Any], is_id: bool) -> ColumnElement[bool]:
    if is_id:
        return expr.is_(None)
    return sa.or_(expr.is_(None), sa.func.jsonb_typeof(expr) == "null")


def _is_id_value(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _id_comparison(expr: ColumnElement[Any], op: str, value: Any) -> ColumnElement[bool] | None:
    """Drop operands the BIGINT id column cannot hold; no such id exists."""
    if op in ("$in", "$nin"):
        valid = [v for v in value if _is_id_value(v)]
        return expr.in_(valid) if op == "$in" else sa.not_(expr.in_(valid))
    if value is None or _is_id_value(value):
        return None
    if op not in ("$eq", "$ne", "$gt", "$gte", "$lt", "$lte"):
        raise StoreError(f"Unsupported operator {op!r}")
    return sa.true() if op == "$ne" else sa.false()


def _comparison(expr: ColumnElement[Any], op: str, value: Any, is_id: bool) -> ColumnElement[bool]:
    def bind(v: Any) -> Any:
        return v if is_id else _json(v)

    if is_id:
        clause = _id_comparison(expr, op, value)
        if clause is not None:
            return clause

    if op == "$eq":
        return _is_null(expr, is_id) if value is None else expr == bind(value)
    if op == "$ne":
        return sa.not_(_is_null(expr, is_id)) if value is None else sa.or_(_is_null(expr, is_id), expr != bind(value))
    if op == "$in":
        return expr.in_([bind(v) for v in value])
    if op == "$nin":
        return sa.not_(expr.in_([bind(v) for v in value]))
    if op in ("$gt", "$gte", "$lt", "$lte"):
        # null orders first, matching the in-memory store
        if value is None:
            if op == "$gt":
                return sa.not_(_is_null(expr, is_id))
            if op == "$gte":
                return sa.true()
            return _is_null(expr, is_id) if op == "$lte" else sa.false()
        bound = bind(value)
        if op == "$gt":
            return expr > bound
        if op == "$gte":
            return expr >= bound
        if op == "$lt":
            return sa.or_(_is_null(expr, is_id), expr < bound)
        return sa.or_(_is_null(expr, is_id), expr <= bound)
    raise StoreError(f"Unsupported operator {op!r}")


def compile_criteria(stmt: sa.Select[Any], criteria: Mapping[str, Any]) -> ColumnElement[bool]:
    clauses: list[ColumnElement[bool]] = []
    for key, cond in criteria.items():
        if key == "$or":
            clauses.append(sa.or_(*(compile_criteria(stmt, c) for c in cond)))
        elif key == "$and":
            clauses.append(sa.and_(*(compile_criteria(stmt, c) for c in cond)))
        elif key.startswith("$"):
            raise StoreError(f"Unsupported logical operator {key!r}")
        elif isinstance(cond, Mapping) and cond and all(str(k).startswith("$") for k in cond):
            expr = _field(stmt, key)
            clauses.extend(_comparison(expr, op, v, key == ID_FIELD) for op, v in cond.items())
        else:
            clauses.append(_comparison(_field(stmt, key), "$eq", cond, key == ID_FIELD))
    return sa.and_(sa.true(), *clauses)


def _order_by(stmt: sa.Select[Any], ordering: Sort | None) -> sa.Select[Any]:
    id_column = _field(stmt, ID_FIELD)
    if ordering is None:
        return stmt.order_by(None).order_by(id_column.asc())
    expr = _field(stmt, ordering.field)
    if ordering.order == SortOrder.DESCENDING:
        primary = expr.desc().nulls_last()
    else:
        primary = expr.asc().nulls_first()
    return stmt.order_by(None).order_by(primary, id_column.asc())


def _wrap(stmt: sa.Select[Any], ordering: Sort | None) -> sa.Select[Any]:
    sub = stmt.subquery()
    return _order_by(sa.select(sub.c.id, sub.c.body), ordering)


def _project(stmt: sa.Select[Any], stage: Project, ordering: Sort | None) -> sa.Select[Any]:
    inner = stmt.subquery()
    pairs: list[Any] = []
    for name in stage.fields:
        pairs.extend([sa.cast(sa.literal(name), sa.Text), inner.c.body[name]])
    body = sa.func.jsonb_strip_nulls(sa.func.jsonb_build_object(*pairs), type_=postgresql.JSONB)
    projected = sa.select(inner.c.id, body.label("body")).subquery()
    return _order_by(sa.select(projected.c.id, projected.c.body), ordering)


def compile_pipeline(collection: str, pipeline: Sequence[Stage]) -> tuple[sa.Select[Any], str | None]:
    """Return the statement and, for a ``Count`` pipeline, the count field name."""
    stmt: sa.Select[Any] = sa.select(documents.c.id, documents.c.body).where(documents.c.collection == collection)
    ordering: Sort | None = None
    limited = False
    stmt = _order_by(stmt, ordering)

    for index, stage in enumerate(pipeline):
        if isinstance(stage, Count):
            if index != len(pipeline) - 1:
                raise StoreError("Count must be the last stage")
            source = stmt if limited else stmt.order_by(None)
            counted = sa.select(sa.func.count().label(stage.field)).select_from(source.subquery())
            return counted, stage.field
        if limited:
            stmt = _wrap(stmt, ordering)
            limited = False
        if isinstance(stage, Match):
            stmt = stmt.where(compile_criteria(stmt, stage.criteria))
        elif isinstance(stage, Sort):
            ordering = stage
            stmt = _order_by(stmt, ordering)
        elif isinstance(stage, Limit):
            stmt = stmt.limit(stage.count)
            limited = True
        elif isinstance(stage, Project):
            stmt = _project(stmt, stage, ordering)
        else:
            raise StoreError(f"Unsupported stage {stage!r}")
    return stmt, None
