"""Subcommand modules for closuredeps.

Provides register_commands() which uses deferred imports to keep
``closuredeps --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all standalone commands on the root CLI group."""
    from closuredeps.commands.check import check
    from closuredeps.commands.order import order
    from closuredeps.commands.watch import watch

    cli.add_command(order)
    cli.add_command(check)
    cli.add_command(watch)
