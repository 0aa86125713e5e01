"""Locating and reading ``jewelctl.toml``.

``JEWELCTL_CONFIG`` names the file explicitly; otherwise the nearest
``jewelctl.toml`` in the start directory or one of its ancestors wins.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from jewelctl.config.models import JewelConfig

CONFIG_FILENAME = "jewelctl.toml"
CONFIG_ENV_VAR = "JEWELCTL_CONFIG"


class ConfigFileError(ValueError):
    """jewelctl.toml exists but is not valid TOML."""


def _candidates(start: Path) -> Iterator[Path]:
    for directory in (start, *start.parents):
        yield directory / CONFIG_FILENAME


def find_config(start: Path | None = None) -> Path | None:
    """Path of the config file in effect for *start* (default: cwd), if any.

    An explicit ``JEWELCTL_CONFIG`` that points at no file disables the
    walk-up rather than falling back to it.
    """
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        path = Path(explicit).expanduser()
        return path if path.is_file() else None

    base = (start or Path.cwd()).resolve()
    return next((c for c in _candidates(base) if c.is_file()), None)


def read_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigFileError(f"Invalid TOML in {path}: {exc}") from exc


def load_config(path: Path | None = None, cwd: Path | None = None) -> JewelConfig:
    """Validated file configuration; defaults when no file is found."""
    source = path or find_config(cwd)
    if source is None:
        return JewelConfig()
    return JewelConfig.model_validate(read_toml(source))
