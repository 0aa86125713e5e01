"""Command: capacity status of a set of beads."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from jewelctl.commands._base import JewelCommand

if TYPE_CHECKING:
    from jewelctl.commands._context import AppContext


@click.command(
    cls=JewelCommand,
    examples="""\
  jewelctl capacity red-8mm red-8mm blue-6mm
  jewelctl capacity --wrist 15 pearl-10mm pearl-10mm
  jewelctl --json capacity gold-4mm""",
)
@click.argument("bead_ids", nargs=-1, required=True)
@click.option("--wrist", type=float, default=None, help="Wrist circumference in cm.")
@click.pass_obj
def capacity(app: AppContext, bead_ids: tuple[str, ...], wrist: float | None) -> None:
    """Check whether BEAD_IDS fit on the bracelet; suggest reductions if not."""
    from jewelctl.domain.bracelet import calculate_bracelet_fit
    from jewelctl.domain.capacity import capacity_status, suggest_reductions, total_bead_space
    from jewelctl.domain.types import DEFAULT_BEAD_DIAMETER
    from jewelctl.services.result import ErrorKind, ServiceResult, failure

    op = "capacity"
    wrist = wrist if wrist is not None else app.settings.bracelet.default_wrist_size
    app.require_valid_wrist(op, wrist)

    fetched = app.run(app.catalog.components())
    if not fetched.ok:
        app.emit(fetched.model_copy(update={"op": op}))
        return

    by_id = {c.id: c for c in fetched.data["components"]}
    unknown = sorted({b for b in bead_ids if b not in by_id})
    if unknown:
        app.emit(
            failure(
                op,
                "UNKNOWN_COMPONENT",
                f"Unknown component(s): {', '.join(unknown)}",
                kind=ErrorKind.VALIDATION,
                detail={"unknown": unknown},
            )
        )
        return

    beads = [by_id[b] for b in bead_ids if by_id[b].is_bead]
    available = calculate_bracelet_fit(wrist, DEFAULT_BEAD_DIAMETER).available_bead_space
    status = capacity_status(beads, available)

    suggestions = []
    excess = total_bead_space(beads) - available
    if excess > 0:
        catalog = [c for c in by_id.values() if c.is_bead]
        suggestions = suggest_reductions(beads, catalog, excess)

    app.emit(
        ServiceResult(
            ok=True,
            op=op,
            data={
                "beads": len(beads),
                "available_bead_space": available,
                "usage_percentage": round(status.usage_percentage, 1),
                "warning_level": str(status.warning_level),
                "remaining_space": status.remaining_space,
                "can_add_more_beads": status.can_add_more_beads,
                "message": status.message,
                "suggestions": [
                    {
                        "type": str(s.type),
                        "description": s.description,
                        "space_saved": s.space_saved,
                    }
                    for s in suggestions
                ],
            },
        )
    )
