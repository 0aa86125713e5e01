"""Subcommand modules for jewelctl.

``register_commands()`` imports lazily so ``jewelctl --help`` stays fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register command groups and standalone commands on the root group."""
    # --- Groups ---
    from jewelctl.commands.catalog import catalog
    from jewelctl.commands.session import session

    cli.add_command(catalog)
    cli.add_command(session)

    # --- Standalone commands ---
    from jewelctl.commands.capacity import capacity
    from jewelctl.commands.fit import fit
    from jewelctl.commands.place import place

    cli.add_command(fit)
    cli.add_command(place)
    cli.add_command(capacity)
