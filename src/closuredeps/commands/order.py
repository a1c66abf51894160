"""Command: print modules in dependency order."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from closuredeps.commands._base import DepsCommand

if TYPE_CHECKING:
    from closuredeps.commands._context import AppContext


@click.command(
    cls=DepsCommand,
    examples="""\
  closuredeps order
  closuredeps order --main src/main.js
  closuredeps order --main src/main.js --extra externs/jquery.js
  closuredeps --json order""",
)
@click.option("--main", "entry", default=None, help="Entry module; order only its closure.")
@click.option(
    "--extra",
    multiple=True,
    help="Source path appended after the ordered modules (repeatable).",
)
@click.pass_obj
def order(app: AppContext, entry: str | None, extra: tuple[str, ...]) -> None:
    """Print module paths in load order."""
    with app.graph() as service:
        app.emit(service.order(entry, extra))
