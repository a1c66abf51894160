"""Command: report graph problems."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from closuredeps.commands._base import DepsCommand

if TYPE_CHECKING:
    from closuredeps.commands._context import AppContext


@click.command(
    cls=DepsCommand,
    examples="""\
  closuredeps check
  closuredeps --json check""",
)
@click.pass_obj
def check(app: AppContext) -> None:
    """Report duplicate provides, base problems, missing requires and cycles."""
    with app.graph() as service:
        app.emit(service.check())
