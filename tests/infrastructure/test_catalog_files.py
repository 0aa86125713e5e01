"""Tests for the JSON catalog file source."""

import asyncio
import json
from pathlib import Path

import pytest

from jewelctl.domain.types import Component, Template
from jewelctl.infrastructure.catalog_files import (
    CatalogFileError,
    JsonCatalogSource,
    read_catalog_file,
)
from tests.conftest import write_catalog


class TestReadCatalogFile:
    def test_missing(self, tmp_path: Path) -> None:
        with pytest.raises(CatalogFileError, match="Cannot read catalog"):
            read_catalog_file(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "catalog.json"
        path.write_text("{oops", encoding="utf-8")
        with pytest.raises(CatalogFileError, match="Invalid JSON"):
            read_catalog_file(path)

    def test_not_an_object(self, tmp_path: Path) -> None:
        path = tmp_path / "catalog.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(CatalogFileError, match="must contain a JSON object"):
            read_catalog_file(path)


class TestJsonCatalogSource:
    def test_filters(
        self, tmp_path: Path, templates: list[Template], components: list[Component]
    ) -> None:
        source = JsonCatalogSource(write_catalog(tmp_path / "c.json", templates, components))
        necklaces = asyncio.run(source.fetch_templates("necklace"))
        assert [t.id for t in necklaces] == ["tpl-necklace"]
        charms = asyncio.run(source.fetch_components("charm"))
        assert charms == []
        everything = asyncio.run(source.fetch_components())
        assert len(everything) == len(components) - 1

    def test_snake_case_entries(self, tmp_path: Path) -> None:
        path = tmp_path / "c.json"
        payload = {
            "components": [
                {"id": "letter-a", "name": "a-letter", "is_letter_bead": True, "letter_value": "a"}
            ]
        }
        path.write_text(json.dumps(payload), encoding="utf-8")
        (component,) = asyncio.run(JsonCatalogSource(path).fetch_components())
        assert component.is_letter_bead
        assert component.letter_value == "a"
        assert asyncio.run(JsonCatalogSource(path).fetch_templates()) == []

    def test_reads_file_once(
        self, tmp_path: Path, templates: list[Template], components: list[Component]
    ) -> None:
        path = write_catalog(tmp_path / "c.json", templates, components)
        source = JsonCatalogSource(path)
        asyncio.run(source.fetch_templates())
        path.unlink()
        assert len(asyncio.run(source.fetch_templates())) == 2
