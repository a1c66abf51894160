"""Root CLI group for closuredeps with global flags and command registration."""

from __future__ import annotations

from pathlib import Path

import click

from closuredeps import __version__
from closuredeps.commands import register_commands
from closuredeps.commands._context import AppContext
from closuredeps.config.settings import DepsSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="closuredeps")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging to stderr.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory patterns are resolved against.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    root: Path | None,
) -> None:
    """closuredeps — dependency ordering for Closure-style JavaScript."""
    ctx.ensure_object(dict)
    settings = DepsSettings.from_cli(
        config_path=config_path,
        root=root,
        json_output=json_output,
        verbose=verbose,
        log_json=log_json,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
