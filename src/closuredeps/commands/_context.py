"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``. Provides graph service construction and centralized
result emission (stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

import click

from closuredeps.domain.errors import GraphError
from closuredeps.output.formatters import format_result
from closuredeps.services.result import ServiceResult

if TYPE_CHECKING:
    from closuredeps.config.settings import DepsSettings
    from closuredeps.services.graph import GraphService


class AppContext:
    """Shared context flowing through Click's command hierarchy."""

    def __init__(self, settings: DepsSettings) -> None:
        self.settings = settings

        from closuredeps.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @contextmanager
    def graph(self, *, watch: bool = False) -> Iterator[GraphService]:
        """Start a GraphService, wait for the initial scan, stop it on exit.

        A failed scan is emitted as an error result (exit code 1).
        """
        from closuredeps.services.graph import GraphService

        watch_config = self.settings.watch.model_copy(update={"enabled": watch})
        settings = self.settings.model_copy(update={"watch": watch_config})
        service = GraphService(settings)
        try:
            try:
                service.start().result()
            except GraphError as exc:
                self.emit(ServiceResult.failure("scan", exc))
            yield service
        finally:
            service.stop()

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings are emitted to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        output = format_result(result, json_output=self.settings.json_output)
        if result.ok:
            click.echo(output)
            if not self.settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
