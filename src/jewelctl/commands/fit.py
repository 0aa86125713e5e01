"""Command: bead budget for a wrist size."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from jewelctl.commands._base import JewelCommand

if TYPE_CHECKING:
    from jewelctl.commands._context import AppContext


@click.command(
    cls=JewelCommand,
    examples="""\
  jewelctl fit 17
  jewelctl fit 16.5 --bead-diameter 0.8
  jewelctl --json fit 19""",
)
@click.argument("wrist", type=float)
@click.option(
    "--bead-diameter",
    type=float,
    default=0.5,
    show_default=True,
    help="Bead diameter in cm.",
)
@click.pass_obj
def fit(app: AppContext, wrist: float, bead_diameter: float) -> None:
    """Show how many beads fit a WRIST circumference (cm)."""
    from jewelctl.domain.bracelet import (
        calculate_bracelet_fit,
        validate_bead_diameter,
    )
    from jewelctl.services.result import ErrorKind, ServiceResult, failure

    rules = app.settings.bracelet.rules
    app.require_valid_wrist("bracelet_fit", wrist)
    bead_check = validate_bead_diameter(bead_diameter, rules)
    if not bead_check.valid:
        app.emit(
            failure(
                "bracelet_fit",
                "INVALID_BEAD_DIAMETER",
                bead_check.errors[0],
                kind=ErrorKind.VALIDATION,
            )
        )
        return

    result = calculate_bracelet_fit(wrist, bead_diameter)
    app.emit(
        ServiceResult(
            ok=True,
            op="bracelet_fit",
            data={
                "wrist_circumference": wrist,
                "bead_diameter": bead_diameter,
                "total_circumference": result.total_circumference,
                "available_bead_space": result.available_bead_space,
                "max_bead_count": result.max_bead_count,
                "recommended_bead_count": result.recommended_bead_count,
            },
        )
    )
