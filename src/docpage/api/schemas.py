from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = "ok"


class ReadinessResponse(BaseModel):
    status: str = "ok"
    database: str = "up"


class DocumentsCreateRequest(BaseModel):
    """Body of POST /collections/{collection}/documents."""

    documents: list[dict[str, Any]] = Field(min_length=1)


class DocumentsCreateResponse(BaseModel):
    ids: list[Any]
