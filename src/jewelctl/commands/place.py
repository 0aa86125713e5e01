"""Command: letter-bead placement preview for a custom text."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from jewelctl.commands._base import JewelCommand

if TYPE_CHECKING:
    from jewelctl.commands._context import AppContext


@click.command(
    cls=JewelCommand,
    examples="""\
  jewelctl place code
  jewelctl place "שלום" --positions 18
  jewelctl place love --wrist 15 --reserve 10 --reserve 11
  jewelctl --json place anna""",
)
@click.argument("text")
@click.option("--wrist", type=float, default=None, help="Wrist circumference in cm.")
@click.option(
    "--positions",
    type=int,
    default=None,
    help="Letter positions available (default: the recommended bead count).",
)
@click.option(
    "--reserve",
    type=int,
    multiple=True,
    help="Bead index already taken by another bead (repeatable).",
)
@click.pass_obj
def place(
    app: AppContext,
    text: str,
    wrist: float | None,
    positions: int | None,
    reserve: tuple[int, ...],
) -> None:
    """Show where each letter of TEXT lands on the bracelet."""
    from jewelctl.domain.bracelet import (
        is_text_supported,
        recommended_bead_count,
        unsupported_text_message,
    )
    from jewelctl.domain.letters import (
        analyze_text_space,
        centered_start,
        detect_script,
        letter_bead_catalog,
        place_letters,
        plan_text_position,
    )
    from jewelctl.services.result import ErrorKind, ServiceResult, failure

    op = "place_letters"
    languages = app.settings.bracelet.rules.supported_languages
    if not is_text_supported(text, languages):
        app.emit(
            failure(
                op,
                "UNSUPPORTED_TEXT",
                unsupported_text_message(languages),
                kind=ErrorKind.VALIDATION,
            )
        )
        return

    wrist = wrist if wrist is not None else app.settings.bracelet.default_wrist_size
    app.require_valid_wrist(op, wrist)

    fetched = app.run(app.catalog.components())
    if not fetched.ok:
        app.emit(fetched.model_copy(update={"op": op}))
        return
    catalog = letter_bead_catalog(fetched.data["components"])

    total = recommended_bead_count(wrist)
    slots = positions if positions is not None else total

    placements = place_letters(text, total, catalog, slots)
    report = analyze_text_space(text, slots, catalog)
    data = {
        "text": text,
        "script": str(detect_script(text)),
        "positions": slots,
        "start": centered_start(len(text), slots),
        "placements": [p.model_dump() for p in placements],
        "missing": report.missing_letter_beads,
        "fits": report.fits_in_space,
        "recommendations": report.recommendations,
    }
    if reserve:
        plan = plan_text_position(text, total, reserve)
        data["plan"] = {
            "can_fit": plan.can_fit,
            "start": plan.start,
            "end": plan.end,
            "alternatives": len(plan.alternatives),
        }
    warnings = list(report.errors)
    if reserve:
        warnings.extend(plan.warnings)
    app.emit(ServiceResult(ok=True, op=op, data=data, warnings=warnings))
