"""Declarative query stages and the base-pipeline builder.

A pipeline is an immutable tuple of stages. Extending one always produces a
new tuple, so a base pipeline can be shared by every query an engine derives
from it.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from docpage.models import Filter, SortOrder, SortSpec

ID_FIELD = "id"


@dataclass(frozen=True)
class Match:
    criteria: Mapping[str, Any]


@dataclass(frozen=True)
class Sort:
    field: str
    order: SortOrder = SortOrder.ASCENDING


@dataclass(frozen=True)
class Limit:
    count: int


@dataclass(frozen=True)
class Count:
    field: str = "count"


@dataclass(frozen=True)
class Project:
    fields: tuple[str, ...]


Stage = Match | Sort | Limit | Count | Project
Pipeline = tuple[Stage, ...]


def filter_criteria(flt: Filter) -> dict[str, Any]:
    """Equality for scalar values, set membership for collections."""
    if isinstance(flt.value, (list | tuple | set | frozenset)):
        return {flt.field: {"$in": list(flt.value)}}
    return {flt.field: flt.value}


def build_pipeline(
    base_stages: Iterable[Stage] = (),
    filters: Iterable[Filter] = (),
    sort: SortSpec | None = None,
) -> Pipeline:
    stages: list[Stage] = list(base_stages)
    for flt in filters:
        stages.append(Match(filter_criteria(flt)))
    if sort is not None and sort.field and sort.order is not None:
        stages.append(Sort(sort.field, sort.order))
    return tuple(stages)


def extend(pipeline: Pipeline, *stages: Stage) -> Pipeline:
    return (*pipeline, *stages)


def strip_projections(pipeline: Pipeline) -> Pipeline:
    """Drop stages that only reshape records; counting does not need them."""
    return tuple(stage for stage in pipeline if not isinstance(stage, Project))
