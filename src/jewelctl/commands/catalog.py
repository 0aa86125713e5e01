"""Command group: browse the template/component catalog."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from jewelctl.commands._base import JewelGroup

if TYPE_CHECKING:
    from jewelctl.commands._context import AppContext
    from jewelctl.services.result import ServiceResult


def _as_items(result: ServiceResult, key: str) -> ServiceResult:
    """Replace model lists with plain dicts under ``items`` for output."""
    if not result.ok:
        return result
    items = [model.model_dump(mode="json") for model in result.data[key]]
    data = {k: v for k, v in result.data.items() if k != key}
    data["items"] = items
    return result.model_copy(update={"data": data})


@click.group(
    cls=JewelGroup,
    examples="""\
  jewelctl catalog templates
  jewelctl catalog templates --category bracelet
  jewelctl catalog components --type bead
  jewelctl catalog search silver""",
)
def catalog() -> None:
    """Browse templates and components."""


@catalog.command()
@click.option(
    "--category",
    type=click.Choice(["necklace", "earrings", "bracelet", "ring"]),
    default=None,
    help="Only templates of this category.",
)
@click.pass_obj
def templates(app: AppContext, category: str | None) -> None:
    """List active templates."""
    app.emit(_as_items(app.run(app.catalog.templates(category)), "templates"))


@catalog.command()
@click.option(
    "--type",
    "component_type",
    type=click.Choice(["bead", "charm", "pendant", "chain"]),
    default=None,
    help="Only components of this type.",
)
@click.pass_obj
def components(app: AppContext, component_type: str | None) -> None:
    """List active components."""
    app.emit(_as_items(app.run(app.catalog.components(component_type)), "components"))


@catalog.command()
@click.argument("query")
@click.pass_obj
def search(app: AppContext, query: str) -> None:
    """Find components whose name or material contains QUERY."""
    app.emit(_as_items(app.run(app.catalog.search(query)), "components"))
