import logging
from typing import Any

from docpage.core.errors import CursorNotFoundError
from docpage.core.pipeline import ID_FIELD, Match, Pipeline
from docpage.core.ports.store import DocumentStore

logger = logging.getLogger(__name__)


async def resolve_cursor(
    store: DocumentStore,
    collection: str,
    pipeline: Pipeline,
    cursor: Any,
) -> dict[str, Any]:
    """Fetch the record a raw cursor refers to, within the pipeline's result domain.

    The identifier match runs first so the store can narrow the scan before
    applying the remaining stages. Raises ``CursorNotFoundError`` when nothing
    matches.
    """
    lookup = (Match({ID_FIELD: cursor}), *pipeline)
    logger.debug("Resolving cursor %r in %s", cursor, collection)
    results = await store.aggregate(collection, lookup)
    if not results:
        raise CursorNotFoundError(cursor)
    return results[0]
