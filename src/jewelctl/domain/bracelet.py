"""Bracelet geometry and configuration rules.

The fit calculation turns a wrist measurement into a bead budget:

    total = wrist + CLASP_ALLOWANCE
    max   = floor(total / bead_diameter)
    recommended = floor(max * COMFORT_FACTOR)

The clasp allowance is added once to obtain the strand length; the whole
strand is then available for beads. Both constants are fixed design values.
"""

from __future__ import annotations

import functools
import math
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from pydantic import BaseModel, Field

from jewelctl.domain.types import DEFAULT_BEAD_DIAMETER, BraceletConfiguration

CLASP_ALLOWANCE = 1.5  # cm
COMFORT_FACTOR = 0.9

# Character class per supported language code.
LANGUAGE_CHARACTERS = {"en": "a-zA-Z", "he": "\u0590-\u05FF"}
LANGUAGE_NAMES = {"en": "English", "he": "Hebrew"}


# ---------------------------------------------------------------------------
# Fit calculation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BraceletFit:
    """Bead budget for a wrist size and bead diameter."""

    total_circumference: float
    available_bead_space: float
    max_bead_count: int
    recommended_bead_count: int
    text_fits_in_space: bool = True


def calculate_bracelet_fit(wrist_circumference: float, bead_diameter: float) -> BraceletFit:
    """Compute the bead budget. *bead_diameter* must be positive."""
    total = wrist_circumference + CLASP_ALLOWANCE
    available = total
    max_count = math.floor(available / bead_diameter)
    return BraceletFit(
        total_circumference=total,
        available_bead_space=available,
        max_bead_count=max_count,
        recommended_bead_count=math.floor(max_count * COMFORT_FACTOR),
    )


def recommended_bead_count(
    wrist_circumference: float, average_bead_diameter: float = DEFAULT_BEAD_DIAMETER
) -> int:
    return calculate_bracelet_fit(wrist_circumference, average_bead_diameter).recommended_bead_count


# ---------------------------------------------------------------------------
# Validation rules
# ---------------------------------------------------------------------------


class BraceletRules(BaseModel):
    """Bounds applied to bracelet configurations."""

    model_config = {"frozen": True}

    min_wrist_size: float = 12.0
    max_wrist_size: float = 25.0
    min_bead_diameter: float = 0.3
    max_bead_diameter: float = 2.0
    max_text_length: int = 20
    supported_languages: list[str] = Field(default_factory=lambda: ["en", "he"])


DEFAULT_RULES = BraceletRules()


@dataclass(frozen=True)
class ValidationResult:
    """Result of a bracelet validation check."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@functools.lru_cache(maxsize=8)
def _text_pattern(languages: tuple[str, ...]) -> re.Pattern[str]:
    classes = "".join(LANGUAGE_CHARACTERS.get(lang, "") for lang in languages)
    return re.compile(f"^[{classes}\\s]*$")


def is_text_supported(text: str, languages: Iterable[str] | None = None) -> bool:
    """Letters of the supported *languages* (default: the rule defaults) and whitespace."""
    codes = tuple(DEFAULT_RULES.supported_languages if languages is None else languages)
    return _text_pattern(codes).match(text) is not None


def unsupported_text_message(
    languages: Iterable[str] | None = None, subject: str = "Text"
) -> str:
    codes = DEFAULT_RULES.supported_languages if languages is None else list(languages)
    names = " and ".join(LANGUAGE_NAMES.get(code, code) for code in codes)
    return f"{subject} contains unsupported characters. Only {names} letters are supported."


def does_text_fit(text: str, available_positions: int) -> bool:
    return len(text) <= available_positions


def validate_wrist_size(
    wrist_size: float, rules: BraceletRules = DEFAULT_RULES
) -> ValidationResult:
    errors: list[str] = []
    if not math.isfinite(wrist_size) or wrist_size <= 0:
        errors.append("Wrist size must be a positive number")
    elif wrist_size < rules.min_wrist_size:
        errors.append(f"Wrist size must be at least {rules.min_wrist_size:g}cm")
    elif wrist_size > rules.max_wrist_size:
        errors.append(f"Wrist size cannot exceed {rules.max_wrist_size:g}cm")
    return ValidationResult(valid=not errors, errors=errors)


def validate_custom_text(text: str, rules: BraceletRules = DEFAULT_RULES) -> ValidationResult:
    errors: list[str] = []
    if len(text) > rules.max_text_length:
        errors.append(f"Text cannot exceed {rules.max_text_length} characters")
    if not is_text_supported(text, rules.supported_languages):
        errors.append(unsupported_text_message(rules.supported_languages))
    return ValidationResult(valid=not errors, errors=errors)


def validate_bead_diameter(
    diameter: float, rules: BraceletRules = DEFAULT_RULES
) -> ValidationResult:
    errors: list[str] = []
    if (
        not math.isfinite(diameter)
        or diameter < rules.min_bead_diameter
        or diameter > rules.max_bead_diameter
    ):
        errors.append(
            f"Bead diameter must be between {rules.min_bead_diameter:g}cm"
            f" and {rules.max_bead_diameter:g}cm"
        )
    return ValidationResult(valid=not errors, errors=errors)


def validate_bracelet_configuration(
    config: BraceletConfiguration, rules: BraceletRules = DEFAULT_RULES
) -> ValidationResult:
    """Wrist bounds, text length and text characters of a configuration."""
    errors: list[str] = []

    wrist = config.wrist_circumference
    if not math.isfinite(wrist) or wrist <= 0:
        errors.append("Wrist circumference must be a positive number")
    elif wrist < rules.min_wrist_size:
        errors.append(f"Wrist circumference must be at least {rules.min_wrist_size:g}cm")
    elif wrist > rules.max_wrist_size:
        errors.append(f"Wrist circumference cannot exceed {rules.max_wrist_size:g}cm")

    text = config.custom_text
    if text and len(text) > rules.max_text_length:
        errors.append(f"Custom text cannot exceed {rules.max_text_length} characters")
    if text and not is_text_supported(text, rules.supported_languages):
        errors.append(unsupported_text_message(rules.supported_languages, "Custom text"))

    return ValidationResult(valid=not errors, errors=errors)
