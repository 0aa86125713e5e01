"""Bead capacity: admission control and remediation advice.

Space is measured as the sum of effective bead diameters (0.5cm when a
bead has none). Warning tiers use strict greater-than comparisons checked
from the top down, so a usage exactly on a boundary takes the lower tier.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum

from jewelctl.domain.types import Component

HIGH_USAGE = 0.9
MEDIUM_USAGE = 0.8
NEARLY_FULL_MIN_REMAINING = 0.3  # cm
MIN_SUBSTITUTION_SAVING = 0.1  # cm
MAX_SUGGESTIONS = 3
REDUCE_COUNT_MIN_BEADS = 5


class WarningLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class SuggestionType(StrEnum):
    REMOVE_LARGEST = "remove_largest"
    REPLACE_WITH_SMALLER = "replace_with_smaller"
    REDUCE_COUNT = "reduce_count"


def total_bead_space(beads: Iterable[Component]) -> float:
    return sum(bead.effective_diameter for bead in beads)


def beads_fit(beads: Iterable[Component], available_space: float) -> bool:
    return total_bead_space(beads) <= available_space


# ---------------------------------------------------------------------------
# Admission control
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AdditionCheck:
    """Whether a bead may be added. ``errors`` carries fill-level notices when valid."""

    is_valid: bool
    warning_level: WarningLevel
    errors: list[str] = field(default_factory=list)


def validate_bead_addition(
    current_beads: Iterable[Component],
    new_bead: Component,
    available_space: float,
) -> AdditionCheck:
    new_space = total_bead_space(current_beads) + new_bead.effective_diameter

    if new_space > available_space:
        excess = new_space - available_space
        return AdditionCheck(
            is_valid=False,
            warning_level=WarningLevel.CRITICAL,
            errors=[f"Adding this bead would exceed capacity by {excess:.1f}cm"],
        )

    usage = new_space / available_space
    if usage > HIGH_USAGE:
        return AdditionCheck(
            is_valid=True,
            warning_level=WarningLevel.HIGH,
            errors=[f"Adding this bead will fill {usage * 100:.1f}% of the bracelet"],
        )
    if usage > MEDIUM_USAGE:
        return AdditionCheck(
            is_valid=True,
            warning_level=WarningLevel.MEDIUM,
            errors=[f"Bracelet will be {usage * 100:.1f}% full after adding this bead"],
        )
    return AdditionCheck(is_valid=True, warning_level=WarningLevel.LOW)


@dataclass(frozen=True)
class CapacityStatus:
    usage_percentage: float
    warning_level: WarningLevel
    remaining_space: float
    can_add_more_beads: bool
    message: str


def capacity_status(
    selected_beads: Iterable[Component], available_space: float
) -> CapacityStatus:
    """Four-level fill status of a bracelet; ``critical`` means over 100%."""
    used = total_bead_space(selected_beads)
    usage = (used / available_space) * 100 if available_space > 0 else math.inf
    remaining = max(0.0, available_space - used)

    if usage > 100:
        return CapacityStatus(
            usage, WarningLevel.CRITICAL, remaining, False, "Bracelet is over capacity"
        )
    if usage > 90:
        return CapacityStatus(
            usage,
            WarningLevel.HIGH,
            remaining,
            remaining > NEARLY_FULL_MIN_REMAINING,
            "Bracelet is nearly full",
        )
    if usage > 80:
        return CapacityStatus(usage, WarningLevel.MEDIUM, remaining, True, "Bracelet is filling up")
    return CapacityStatus(usage, WarningLevel.LOW, remaining, True, "Bracelet has plenty of space")


# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReductionSuggestion:
    type: SuggestionType
    description: str
    space_saved: float
    bead_to_remove: Component | None = None
    replacement_bead: Component | None = None
    beads_to_remove: int | None = None


def _smaller_same_color(bead: Component, catalog: list[Component]) -> Component | None:
    """Largest catalog bead of the same colour that is strictly smaller than *bead*."""
    best: Component | None = None
    for candidate in catalog:
        if (
            candidate.is_bead
            and candidate.id != bead.id
            and candidate.color == bead.color
            and candidate.effective_diameter < bead.effective_diameter
        ):
            if best is None or candidate.effective_diameter > best.effective_diameter:
                best = candidate
    return best


def suggest_reductions(
    selected_beads: list[Component],
    catalog: list[Component],
    excess_space: float,
) -> list[ReductionSuggestion]:
    """Up to three ways to free *excess_space*, most direct first."""
    suggestions: list[ReductionSuggestion] = []
    by_size = sorted(selected_beads, key=lambda b: b.effective_diameter, reverse=True)

    if by_size:
        largest = by_size[0]
        saved = largest.effective_diameter
        if saved >= excess_space * 0.5:
            suggestions.append(
                ReductionSuggestion(
                    type=SuggestionType.REMOVE_LARGEST,
                    description=f"Remove largest bead ({largest.name}) to save {saved:.1f}cm",
                    space_saved=saved,
                    bead_to_remove=largest,
                )
            )

    for bead in by_size[:3]:
        replacement = _smaller_same_color(bead, catalog)
        if replacement is None:
            continue
        saved = bead.effective_diameter - replacement.effective_diameter
        if saved > MIN_SUBSTITUTION_SAVING:
            suggestions.append(
                ReductionSuggestion(
                    type=SuggestionType.REPLACE_WITH_SMALLER,
                    description=(
                        f"Replace {bead.name} with {replacement.name} to save {saved:.1f}cm"
                    ),
                    space_saved=saved,
                    bead_to_remove=bead,
                    replacement_bead=replacement,
                )
            )

    if len(selected_beads) > REDUCE_COUNT_MIN_BEADS:
        average = total_bead_space(selected_beads) / len(selected_beads)
        count = math.ceil(excess_space / average)
        suggestions.append(
            ReductionSuggestion(
                type=SuggestionType.REDUCE_COUNT,
                description=f"Remove {count} beads to fit bracelet size",
                space_saved=count * average,
                beads_to_remove=count,
            )
        )

    return suggestions[:MAX_SUGGESTIONS]
