"""Local JSON catalog: a read-only catalog source backed by one file.

File layout::

    {"templates": [{...Template...}], "components": [{...Component...}]}

Entries use the catalog field names (camelCase or snake_case). Inactive
entries are never returned.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from jewelctl.domain.types import Component, Template


class CatalogFileError(ValueError):
    """The catalog file is missing, unreadable or malformed."""


def read_catalog_file(path: Path) -> dict[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read catalog {path}: {exc}"
        raise CatalogFileError(msg) from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        msg = f"Invalid JSON in catalog {path}: {exc}"
        raise CatalogFileError(msg) from exc
    if not isinstance(data, dict):
        msg = f"Catalog {path} must contain a JSON object"
        raise CatalogFileError(msg)
    return data


class JsonCatalogSource:
    """Catalog source reading templates and components from a JSON file."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._templates: list[Template] | None = None
        self._components: list[Component] | None = None

    def _load(self) -> None:
        data = read_catalog_file(self.path)
        self._templates = [Template.model_validate(t) for t in data.get("templates", [])]
        self._components = [Component.model_validate(c) for c in data.get("components", [])]

    async def fetch_templates(self, category: str | None = None) -> list[Template]:
        if self._templates is None:
            self._load()
        assert self._templates is not None
        return [
            t
            for t in self._templates
            if t.is_active and (category is None or t.category == category)
        ]

    async def fetch_components(self, component_type: str | None = None) -> list[Component]:
        if self._components is None:
            self._load()
        assert self._components is not None
        return [
            c
            for c in self._components
            if c.is_active and (component_type is None or c.type == component_type)
        ]
