"""Command group: inspect, edit or discard the saved design session.

Each editing command loads the catalog, resumes the saved session, applies
one change and writes the session back before exiting.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

import click

from jewelctl.commands._base import JewelGroup

if TYPE_CHECKING:
    from jewelctl.commands._context import AppContext
    from jewelctl.services.designer import DesignSession
    from jewelctl.services.result import ServiceResult


@click.group(
    cls=JewelGroup,
    examples="""\
  jewelctl session template tpl-bracelet
  jewelctl session next
  jewelctl session wrist 16.5
  jewelctl session text "code"
  jewelctl session add bead-0 pearl-10mm
  jewelctl session remove bead-0
  jewelctl session back
  jewelctl session show
  jewelctl --json session show
  jewelctl session clear""",
)
def session() -> None:
    """Saved design session."""


@session.command()
@click.pass_obj
def show(app: AppContext) -> None:
    """Show the saved design, if a valid one exists."""
    from jewelctl.services.result import ServiceResult

    design = app.session()
    restored = design.restore()
    if not restored.data.get("restored"):
        app.emit(ServiceResult(ok=True, op="session_show", data={"restored": False}))
        return

    bracelet = design.bracelet_configuration
    data = {
        "restored": True,
        "step": str(design.step),
        "template_id": design.template.id if design.template else "",
        "saved_at": restored.data["saved_at"],
        "total_price": design.total_price,
        "is_design_complete": design.is_design_complete,
        "wrist_circumference": bracelet.wrist_circumference if bracelet else None,
        "custom_text": bracelet.custom_text if bracelet else "",
        "placements": [
            {"position_id": position_id, "component_id": component.id}
            for position_id, component in design.selected_components.items()
        ],
    }
    app.emit(
        ServiceResult(ok=True, op="session_show", data=data, warnings=restored.warnings)
    )


@session.command()
@click.pass_obj
def clear(app: AppContext) -> None:
    """Discard the saved design session."""
    from jewelctl.services.result import ServiceResult

    design = app.session()
    design.reset()
    app.emit(ServiceResult(ok=True, op="session_clear", data={"cleared": True}))


def _open_design(app: AppContext) -> DesignSession:
    """Saved session with the catalog loaded; a catalog failure exits."""
    design = app.session()
    loaded = app.run(app.catalog.load_into(design))
    if not loaded.ok:
        app.emit(loaded)
    design.restore()
    return design


def _apply(app: AppContext, action: Callable[[DesignSession], ServiceResult]) -> None:
    design = _open_design(app)
    result = action(design)
    design.close()
    app.emit(result)


@session.command()
@click.argument("template_id")
@click.pass_obj
def template(app: AppContext, template_id: str) -> None:
    """Start the design over on TEMPLATE_ID."""
    from jewelctl.services.result import ErrorKind, failure

    def select(design: DesignSession) -> ServiceResult:
        chosen = next((t for t in design.templates if t.id == template_id), None)
        if chosen is None:
            return failure(
                "select_template",
                "UNKNOWN_TEMPLATE",
                f"No template with id {template_id}",
                kind=ErrorKind.VALIDATION,
            )
        return design.select_template(chosen)

    _apply(app, select)


@session.command()
@click.argument("position_id")
@click.argument("component_id")
@click.pass_obj
def add(app: AppContext, position_id: str, component_id: str) -> None:
    """Place COMPONENT_ID at POSITION_ID."""
    from jewelctl.services.result import ErrorKind, failure

    def place(design: DesignSession) -> ServiceResult:
        component = next((c for c in design.components if c.id == component_id), None)
        if component is None:
            return failure(
                "add_component",
                "UNKNOWN_COMPONENT",
                f"No component with id {component_id}",
                kind=ErrorKind.VALIDATION,
            )
        return design.add_component(position_id, component)

    _apply(app, place)


@session.command()
@click.argument("position_id")
@click.pass_obj
def remove(app: AppContext, position_id: str) -> None:
    """Empty POSITION_ID."""
    _apply(app, lambda design: design.remove_component(position_id))


@session.command()
@click.argument("circumference", type=float)
@click.pass_obj
def wrist(app: AppContext, circumference: float) -> None:
    """Set the bracelet's wrist circumference (cm)."""
    _apply(app, lambda design: design.update_wrist_size(circumference))


@session.command()
@click.argument("text")
@click.pass_obj
def text(app: AppContext, text: str) -> None:
    """Spell TEXT in letter beads; an empty string clears it."""
    _apply(app, lambda design: design.set_custom_text(text))


@session.command(name="next")
@click.pass_obj
def next_(app: AppContext) -> None:
    """Advance to the next design step."""
    _apply(app, lambda design: design.next_step())


@session.command()
@click.pass_obj
def back(app: AppContext) -> None:
    """Return to the previous design step."""
    _apply(app, lambda design: design.previous_step())
