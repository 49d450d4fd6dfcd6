from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from docpage.api.dependencies import get_store
from docpage.api.pagination import (
    InvalidQueryParamError,
    parse_filters,
    parse_page_params,
    parse_search,
    parse_sort,
)
from docpage.api.schemas import DocumentsCreateRequest, DocumentsCreateResponse
from docpage.core.pagination import Pagination
from docpage.core.ports.store import DocumentStore
from docpage.models import Connection

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/collections", tags=["documents"])


@router.get("/{collection}/documents", response_model=Connection)
async def list_documents(
    collection: str,
    request: Request,
    store: DocumentStore = Depends(get_store),
) -> Connection:
    """Return one page of documents with total count and page info."""
    try:
        pagination = Pagination(
            store,
            collection,
            pagination=parse_page_params(request),
            sort=parse_sort(request),
            filters=parse_filters(request),
            search=parse_search(request),
        )
    except InvalidQueryParamError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return await pagination.connection()


@router.post(
    "/{collection}/documents",
    response_model=DocumentsCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_documents(
    collection: str,
    body: DocumentsCreateRequest,
    store: DocumentStore = Depends(get_store),
) -> DocumentsCreateResponse:
    ids = await store.insert_many(collection, body.documents)
    logger.info("Inserted %d document(s) into %s", len(ids), collection)
    return DocumentsCreateResponse(ids=ids)
