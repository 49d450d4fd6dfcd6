import logging
from typing import Annotated

import typer

from docpage.cli.db import db_app
from docpage.cli.documents import load, page
from docpage.cli.serve import serve_app

app = typer.Typer(
    name="docpage",
    help="docpage CLI: load document collections and page through them by cursor.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def configure(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log debug output.")] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


app.add_typer(db_app, name="db")
app.command("load")(load)
app.command("page")(page)
app.add_typer(serve_app, name="serve")


def main() -> None:
    app()
