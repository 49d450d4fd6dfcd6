from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from docpage.api.lifespan import lifespan
from docpage.api.routes.documents import router as documents_router
from docpage.api.routes.health import router as health_router
from docpage.core.errors import CursorNotFoundError, InvalidSearchPatternError, StoreError

logger = logging.getLogger(__name__)


async def _bad_request(_request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


async def _store_unavailable(_request: Request, exc: Exception) -> JSONResponse:
    logger.error("Store failure: %s", exc)
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": "Document store unavailable"})


def create_app() -> FastAPI:
    app = FastAPI(
        title="docpage API",
        description="Cursor-paginated access to document collections.",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_exception_handler(CursorNotFoundError, _bad_request)
    app.add_exception_handler(InvalidSearchPatternError, _bad_request)
    app.add_exception_handler(StoreError, _store_unavailable)

    app.include_router(health_router, include_in_schema=False)
    app.include_router(documents_router)

    return app
