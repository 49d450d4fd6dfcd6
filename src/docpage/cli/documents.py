import asyncio
import json
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.table import Table

from docpage.api.pagination import coerce_scalar
from docpage.core.errors import PaginationError
from docpage.core.pagination import Pagination
from docpage.core.pipeline import ID_FIELD
from docpage.core.ports.store import DocumentStore
from docpage.models import Connection, Filter, PaginationParams, SearchSpec, SortOrder, SortSpec

console = Console()


def _get_store() -> "DocumentStore":
    from docpage.db.engine import get_engine
    from docpage.db.postgres import PostgresDocumentStore

    return PostgresDocumentStore(get_engine())


def read_documents(path: Path) -> list[dict[str, Any]]:
    """Read a JSON array or a JSON-lines file of objects."""
    text = path.read_text(encoding="utf-8").strip()
    if not text:
        return []
    if text.startswith("["):
        loaded = json.loads(text)
    else:
        loaded = [json.loads(line) for line in text.splitlines() if line.strip()]
    if not all(isinstance(doc, dict) for doc in loaded):
        raise ValueError(f"{path} must contain JSON objects only")
    return loaded


def parse_filter_option(raw: str) -> Filter:
    """``field=value`` for equality, ``field=a,b`` for membership."""
    field, sep, value = raw.partition("=")
    if not sep or not field:
        raise typer.BadParameter(f"Expected field=value, got {raw!r}")
    if "," in value:
        return Filter(field=field, value=[coerce_scalar(v) for v in value.split(",")])
    return Filter(field=field, value=coerce_scalar(value))


def _render_connection(connection: Connection) -> None:
    fields: list[str] = [ID_FIELD]
    for edge in connection.edges:
        for key in edge.node:
            if key not in fields:
                fields.append(key)

    table = Table(show_lines=False)
    for name in fields:
        table.add_column(name)
    for edge in connection.edges:
        table.add_row(*(str(edge.node.get(name, "")) for name in fields))
    console.print(table)
    console.print(f"({len(connection.edges)} of {connection.total_count} rows)")
    console.print(f"end cursor: {connection.page_info.end_cursor}")
    console.print(f"has next page: {connection.page_info.has_next_page}")


def load(
    path: Annotated[Path, typer.Argument(help="JSON array or JSON-lines file.", exists=True, dir_okay=False)],
    collection: Annotated[str, typer.Option("--collection", "-c", help="Target collection.")],
) -> None:
    """Load documents into a collection."""
    try:
        docs = read_documents(path)
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc
    store = _get_store()

    async def _run() -> list[Any]:
        try:
            return await store.insert_many(collection, docs)
        finally:
            await store.dispose()

    try:
        ids = asyncio.run(_run())
    except PaginationError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc
    console.print(f"[green]Loaded[/green] {len(ids)} document(s) into {collection}")


def page(
    collection: Annotated[str, typer.Option("--collection", "-c", help="Collection to page through.")],
    first: Annotated[int, typer.Option(min=1, help="Page size.")] = 25,
    after: Annotated[str | None, typer.Option(help="Id of the last record of the previous page.")] = None,
    sort_field: Annotated[str | None, typer.Option(help="Field to sort by.")] = None,
    sort_order: Annotated[str, typer.Option(help="asc or desc.")] = "asc",
    search: Annotated[str | None, typer.Option(help="Case-insensitive regex matched client-side.")] = None,
    filters: Annotated[list[str] | None, typer.Option("--filter", help="field=value or field=a,b.")] = None,
) -> None:
    """Print one page of a collection."""
    try:
        order = SortOrder.parse(sort_order)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--sort-order") from exc
    parsed_filters = [parse_filter_option(f) for f in filters or []]
    store = _get_store()

    async def _run() -> Connection:
        try:
            pagination = Pagination(
                store,
                collection,
                pagination=PaginationParams(first=first, after=coerce_scalar(after) if after else None),
                sort=SortSpec(field=sort_field, order=order) if sort_field else None,
                filters=parsed_filters,
                search=SearchSpec(pattern=search) if search else None,
            )
            return await pagination.connection()
        finally:
            await store.dispose()

    try:
        connection = asyncio.run(_run())
    except PaginationError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc
    _render_connection(connection)
