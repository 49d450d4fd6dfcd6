from fastapi import APIRouter, Depends, Response, status

from docpage.api.dependencies import get_store
from docpage.api.schemas import HealthResponse, ReadinessResponse
from docpage.core.ports.store import DocumentStore

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse()


@router.get("/healthz/live", response_model=HealthResponse)
async def liveness() -> HealthResponse:
    """Liveness probe: is the process alive?"""
    return HealthResponse()


@router.get("/healthz/ready", response_model=ReadinessResponse)
async def readiness(
    response: Response,
    store: DocumentStore = Depends(get_store),
) -> ReadinessResponse:
    """Readiness probe: checks store connectivity."""
    if await store.ping():
        return ReadinessResponse(status="ok", database="up")
    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(status="degraded", database="down")
