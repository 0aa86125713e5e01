"""``jewelctl`` entry point: global output flags, settings, subcommands."""

from __future__ import annotations

import click
from pydantic import ValidationError

from jewelctl import __version__
from jewelctl.commands import register_commands
from jewelctl.commands._context import AppContext
from jewelctl.config.discovery import ConfigFileError
from jewelctl.config.settings import JewelSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="jewelctl")
@click.option("--json", "json_output", is_flag=True, help="Emit results as JSON.")
@click.option("-q", "--quiet", is_flag=True, help="Only the essential line of each result.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging and extra detail.")
@click.option("--log-json", is_flag=True, help="Write log records to stderr as JSON lines.")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help="Use this jewelctl.toml instead of searching for one.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, **flags: bool) -> None:
    """Design beaded jewelry: bracelet fit, letter beads, bead capacity."""
    try:
        settings = JewelSettings.from_cli(config_path=config_path, **flags)
    except (ConfigFileError, ValidationError) as exc:
        raise click.ClickException(f"Invalid configuration: {exc}") from exc
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
