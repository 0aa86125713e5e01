"""Letter-bead placement: custom text onto a bounded run of bead indices.

Placement centres the text on the strand. Script direction decides the
order in which letters are laid down:

- Right-to-left text (Hebrew) is assigned in reading order:
  letter ``i`` goes to ``start + i``.
- Left-to-right text (Latin) is assigned reversed:
  letter ``i`` goes to ``start + (len - 1 - i)``.

The reversal compensates for strand orientation (the strand is laid out
start-to-end, and a worn bracelet reads a Latin word from its far end).
Both branches produce the same contiguous index set.

Script detection is a majority count, not a bidi algorithm.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum

from jewelctl.domain.bracelet import (
    is_text_supported,
    recommended_bead_count,
    unsupported_text_message,
)
from jewelctl.domain.types import Component, LetterBeadPosition

_HEBREW_CHAR = re.compile(r"[\u0590-\u05FF]")
_LATIN_CHAR = re.compile(r"[a-zA-Z]")

LETTER_NAME_SUFFIX = "-letter"


class Script(StrEnum):
    HEBREW = "hebrew"
    ENGLISH = "english"


def detect_script(text: str) -> Script:
    """Hebrew only when Hebrew characters strictly outnumber Latin letters."""
    hebrew = len(_HEBREW_CHAR.findall(text))
    latin = len(_LATIN_CHAR.findall(text))
    return Script.HEBREW if hebrew > latin else Script.ENGLISH


# ---------------------------------------------------------------------------
# Letter bead catalog
# ---------------------------------------------------------------------------


def is_letter_component(component: Component) -> bool:
    """Flagged letter beads, or components named like ``a-letter``."""
    return component.is_letter_bead or LETTER_NAME_SUFFIX in component.name


def letter_bead_catalog(components: Iterable[Component]) -> dict[str, Component]:
    """Letter beads keyed by component id, in catalog order."""
    return {c.id: c for c in components if is_letter_component(c)}


def get_letter_bead_id(letter: str, catalog: Mapping[str, Component]) -> str:
    """Resolve *letter* to a component id, or ``""`` when no bead matches.

    Tiers, first match wins:

    1. exact name ``<lowercased>-letter`` or ``<letter>-letter``;
    2. a flagged letter bead whose ``letter_value`` is the lowercased letter;
    3. loose name pattern: lowercased name equals either candidate, or
       contains ``-letter`` and starts with the lowercased letter.
    """
    lower = letter.lower()
    lower_name = f"{lower}{LETTER_NAME_SUFFIX}"
    original_name = f"{letter}{LETTER_NAME_SUFFIX}"
    candidates = list(catalog.values())

    for component in candidates:
        if component.name in (lower_name, original_name):
            return component.id

    for component in candidates:
        if component.is_letter_bead and component.letter_value == lower:
            return component.id

    for component in candidates:
        if not component.name:
            continue
        name = component.name.lower()
        if name in (lower_name, original_name) or (
            LETTER_NAME_SUFFIX in name and name.startswith(lower)
        ):
            return component.id

    return ""


def find_missing_letter_beads(text: str, catalog: Mapping[str, Component]) -> list[str]:
    """Unique non-blank letters of *text* (lowercased) that resolve to no bead."""
    if not text:
        return []
    seen: list[str] = []
    for char in text.lower():
        if char.strip() and char not in seen:
            seen.append(char)
    return [char for char in seen if not get_letter_bead_id(char, catalog)]


# ---------------------------------------------------------------------------
# Placement
# ---------------------------------------------------------------------------


def centered_start(text_length: int, positions: int) -> int:
    """Start index centring *text_length* in *positions*, clamped into bounds."""
    start = math.floor((positions - text_length) / 2)
    return max(0, min(start, positions - text_length))


def place_letters(
    text: str,
    total_bead_count: int,
    catalog: Mapping[str, Component],
    available_positions: int | None = None,
) -> list[LetterBeadPosition]:
    """Map every character of *text* to a bead index.

    Letters without a matching bead keep an empty ``component_id``; callers
    skip them. When the text is longer than the positions, the trailing
    indices fall outside ``[0, positions)`` and must be dropped by the caller.
    """
    if not text:
        return []

    length = len(text)
    positions = available_positions if available_positions is not None else total_bead_count
    start = centered_start(length, positions)
    reverse = detect_script(text) is Script.ENGLISH

    placements: list[LetterBeadPosition] = []
    for index, letter in enumerate(text):
        offset = length - 1 - index if reverse else index
        placements.append(
            LetterBeadPosition(
                letter=letter,
                component_id=get_letter_bead_id(letter, catalog),
                position_index=start + offset,
            )
        )
    return placements


# ---------------------------------------------------------------------------
# Space analysis
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextSpaceReport:
    """How a text fits the available letter positions."""

    valid: bool
    text_length: int
    available_positions: int
    remaining_positions: int
    usage_percentage: float
    fits_in_space: bool
    missing_letter_beads: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


def analyze_text_space(
    text: str,
    available_positions: int,
    catalog: Mapping[str, Component],
) -> TextSpaceReport:
    errors: list[str] = []
    recommendations: list[str] = []

    if not is_text_supported(text):
        errors.append(unsupported_text_message())

    length = len(text)
    remaining = available_positions - length
    usage = (length / available_positions) * 100 if available_positions > 0 else math.inf
    fits = length <= available_positions

    if not fits:
        excess = length - available_positions
        errors.append(
            f"Text is {excess} characters too long. Maximum {available_positions} characters."
        )
        recommendations.append(f"Shorten the text by {excess} characters")
    elif usage > 90:
        recommendations.append("Text fills almost the whole bracelet; consider shortening it")
    elif usage < 30:
        recommendations.append("Plenty of space left; more characters can be added")

    missing = find_missing_letter_beads(text, catalog)
    if missing:
        errors.append(f"Missing letter beads for: {', '.join(missing)}")
        recommendations.append("Choose text using available letters")

    return TextSpaceReport(
        valid=not errors,
        text_length=length,
        available_positions=available_positions,
        remaining_positions=remaining,
        usage_percentage=usage,
        fits_in_space=fits,
        missing_letter_beads=missing,
        errors=errors,
        recommendations=recommendations,
    )


# ---------------------------------------------------------------------------
# Text budget against the beads already on the strand
# ---------------------------------------------------------------------------

POPULAR_TEXTS = (
    "אהבה",
    "שלום",
    "חיים",
    "אמא",
    "אבא",
    "LOVE",
    "HOPE",
    "JOY",
    "LIFE",
    "MOM",
    "DAD",
)

# Positions held back from the recommended text length.
TEXT_LENGTH_BUFFER = 2


@dataclass(frozen=True)
class TextSpaceInfo:
    text_length: int
    available_space: int
    used_by_other_beads: int
    remaining_space: int
    percentage_used: float


@dataclass(frozen=True)
class TextFitCheck:
    """Feedback for a text as it is typed, given the beads already chosen."""

    is_valid: bool
    can_fit: bool
    space: TextSpaceInfo
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    missing_letter_beads: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class TextInputRecommendations:
    max_recommended_length: int
    available_letters: list[str]
    popular_combinations: list[str]
    tips: list[str]


def text_space_budget(
    wrist_circumference: float, selected_beads: Iterable[Component]
) -> tuple[int, int]:
    """``(letter positions left, positions taken by non-letter beads)``."""
    others = sum(1 for c in selected_beads if not is_letter_component(c))
    return recommended_bead_count(wrist_circumference) - others, others


def validate_text_fit(
    text: str,
    wrist_circumference: float,
    selected_beads: Iterable[Component],
    catalog: Mapping[str, Component],
) -> TextFitCheck:
    budget, others = text_space_budget(wrist_circumference, selected_beads)
    length = len(text)
    remaining = budget - length
    if budget > 0:
        percentage = (length / budget) * 100
    else:
        percentage = math.inf if length else 0.0

    errors: list[str] = []
    warnings: list[str] = []
    suggestions: list[str] = []

    if not is_text_supported(text):
        errors.append(unsupported_text_message())

    can_fit = length <= budget
    if not can_fit:
        excess = length - budget
        errors.append(f"Text is {excess} characters too long")
        suggestions.append(f"Shorten the text by {excess} characters")
    elif percentage > 90:
        warnings.append("Text takes up almost all of the free space")
        suggestions.append("Consider shortening the text slightly")
    elif percentage > 70:
        warnings.append("Text takes up most of the free space")

    missing = find_missing_letter_beads(text, catalog)
    if missing:
        errors.append(f"Missing letter beads for: {', '.join(missing)}")
        suggestions.append("Choose text using available letters")

    if can_fit and not missing:
        if remaining > 5:
            suggestions.append("Plenty of free space; more characters can be added")
        elif remaining > 0:
            suggestions.append(f"{remaining} free positions left")

    return TextFitCheck(
        is_valid=not errors,
        can_fit=can_fit,
        space=TextSpaceInfo(
            text_length=length,
            available_space=budget,
            used_by_other_beads=others,
            remaining_space=remaining,
            percentage_used=percentage,
        ),
        errors=errors,
        warnings=warnings,
        suggestions=suggestions,
        missing_letter_beads=missing,
    )


def recommend_text_input(
    wrist_circumference: float,
    selected_beads: Iterable[Component],
    catalog: Mapping[str, Component],
) -> TextInputRecommendations:
    budget, _ = text_space_budget(wrist_circumference, selected_beads)
    letters = sorted(
        c.letter_value for c in catalog.values() if c.is_letter_bead and c.letter_value
    )
    tips = [
        f"Up to {budget} characters available",
        "Hebrew and English can be combined",
        "Spaces count as characters",
        "The text is centred on the bracelet",
    ]
    if budget < 5:
        tips.append("Limited space; consider short names or initials")
    elif budget > 15:
        tips.append("Plenty of space; longer phrases fit")
    return TextInputRecommendations(
        max_recommended_length=max(0, budget - TEXT_LENGTH_BUFFER),
        available_letters=letters,
        popular_combinations=[t for t in POPULAR_TEXTS if len(t) <= budget],
        tips=tips,
    )


@dataclass(frozen=True)
class TextWindow:
    start: int
    end: int
    reason: str


@dataclass(frozen=True)
class TextPlacementPlan:
    """Contiguous window for a text that avoids reserved bead indices."""

    can_fit: bool
    start: int = -1
    end: int = -1
    alternatives: list[TextWindow] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


def plan_text_position(
    text: str,
    total_bead_count: int,
    reserved_positions: Iterable[int] = (),
) -> TextPlacementPlan:
    """Prefer the centred window; otherwise scan from index 0 for a free one."""
    reserved = sorted(set(reserved_positions))
    length = len(text)
    free = total_bead_count - len(reserved)

    if length > free:
        return TextPlacementPlan(
            can_fit=False,
            warnings=[f"Text needs {length} positions but only {free} are free"],
            recommendations=[f"Shorten the text by {length - free} characters"],
        )

    ideal_start = math.floor(math.floor(total_bead_count / 2) - length / 2)
    ideal_end = ideal_start + length - 1
    if not any(ideal_start <= pos <= ideal_end for pos in reserved):
        warnings = []
        if length > total_bead_count * 0.8:
            warnings.append("Text takes up most of the bracelet")
        return TextPlacementPlan(can_fit=True, start=ideal_start, end=ideal_end, warnings=warnings)

    windows: list[TextWindow] = []
    for start in range(0, total_bead_count - length + 1):
        end = start + length - 1
        if any(start <= pos <= end for pos in reserved):
            continue
        if start < total_bead_count * 0.25:
            reason = "near the start of the bracelet"
        elif end > total_bead_count * 0.75:
            reason = "near the end of the bracelet"
        else:
            reason = "alternative central position"
        windows.append(TextWindow(start=start, end=end, reason=reason))

    if not windows:
        return TextPlacementPlan(
            can_fit=False,
            warnings=["Text cannot be placed around the existing beads"],
            recommendations=["Remove other beads or shorten the text"],
        )

    best = windows[0]
    return TextPlacementPlan(
        can_fit=True,
        start=best.start,
        end=best.end,
        alternatives=windows[1:],
        recommendations=["Found an alternative position because of conflicting beads"],
    )
