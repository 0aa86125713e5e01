"""Design workflow steps and their transition maps.

The workflow is linear: each step may move one step forward or one step
back. ``success`` is terminal and is never resumed from a saved session.
"""

from __future__ import annotations

from enum import StrEnum


class DesignStep(StrEnum):
    """Steps of the guided design flow, in order."""

    WELCOME = "welcome"
    TEMPLATE_SELECTION = "template-selection"
    CUSTOMIZATION = "customization"
    PREVIEW = "preview"
    ORDER = "order"
    SUCCESS = "success"


# --- Transition maps ---

FORWARD_TRANSITIONS: dict[str, str] = {
    "welcome": "template-selection",
    "template-selection": "customization",
    "customization": "preview",
    "preview": "order",
    "order": "success",
}

BACKWARD_TRANSITIONS: dict[str, str] = {
    "template-selection": "welcome",
    "customization": "template-selection",
    "preview": "customization",
    "order": "preview",
}

TERMINAL_STEPS: frozenset[str] = frozenset({"success"})


def next_step_of(current: str) -> DesignStep | None:
    """The step after *current*, or None when there is none."""
    target = FORWARD_TRANSITIONS.get(current)
    return DesignStep(target) if target else None


def previous_step_of(current: str) -> DesignStep | None:
    """The step before *current*, or None (welcome and success have none)."""
    target = BACKWARD_TRANSITIONS.get(current)
    return DesignStep(target) if target else None


def is_valid_transition(current: str, target: str) -> bool:
    """Check whether moving from *current* to *target* is a single step either way."""
    return FORWARD_TRANSITIONS.get(current) == target or BACKWARD_TRANSITIONS.get(current) == target


def is_restorable(step: str) -> bool:
    """Saved sessions never resume into a terminal step."""
    return step not in TERMINAL_STEPS
