"""Command: keep the graph live and report changes until interrupted."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any

import click

from closuredeps.commands._base import DepsCommand
from closuredeps.plugins.hookspecs import hookimpl

if TYPE_CHECKING:
    from closuredeps.commands._context import AppContext


class _EchoSubscriber:
    """Print graph events to the terminal."""

    @hookimpl
    def graph_ready(self, module_count: int) -> None:
        click.echo(f"ready: {module_count} module(s)")

    @hookimpl
    def module_changed(self, path: str, change: str) -> None:
        click.echo(f"{change}: {path}")

    @hookimpl
    def graph_error(self, code: str, message: str, detail: dict[str, Any]) -> None:
        click.echo(f"{code}: {message}", err=True)


@click.command(
    cls=DepsCommand,
    examples="""\
  closuredeps watch
  closuredeps -v --log-json watch""",
)
@click.pass_obj
def watch(app: AppContext) -> None:
    """Watch module files and report changes (Ctrl-C to stop)."""
    with app.graph(watch=True) as service:
        service.subscribe(_EchoSubscriber())
        click.echo(f"watching {len(service.modules)} module(s)")
        try:
            threading.Event().wait()
        except KeyboardInterrupt:
            click.echo("stopped")
