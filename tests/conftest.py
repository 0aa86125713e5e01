"""Shared pytest fixtures and test helpers for jewelctl tests."""

from __future__ import annotations

import json
import string
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from jewelctl.domain.types import (
    Component,
    ComponentType,
    JewelryCategory,
    Position,
    SizeCategory,
    Template,
)
from jewelctl.infrastructure.storage import MemoryStore
from jewelctl.services.designer import DesignSession
from jewelctl.services.persistence import PersistenceManager

HEBREW_LETTERS = "שלוםאבגד"


# ---------------------------------------------------------------------------
# Timers and clocks
# ---------------------------------------------------------------------------


class FakeHandle:
    def __init__(self, delay: float, callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        self.delay = delay
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Scheduler that only fires when the test says so."""

    def __init__(self) -> None:
        self.handles: list[FakeHandle] = []

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> FakeHandle:
        handle = FakeHandle(delay, callback, args)
        self.handles.append(handle)
        return handle

    @property
    def live(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.cancelled]

    def fire_all(self) -> int:
        """Run every handle that was not cancelled; returns how many ran."""
        due = self.live
        self.handles = []
        for handle in due:
            handle.callback(*handle.args)
        return len(due)


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


# ---------------------------------------------------------------------------
# Catalog builders
# ---------------------------------------------------------------------------


def letter_bead(letter: str, *, price: float = 2.0) -> Component:
    return Component(
        id=f"letter-{letter}",
        name=f"{letter}-letter",
        type=ComponentType.BEAD,
        color="white",
        material="acrylic",
        price=price,
        diameter=0.5,
        is_letter_bead=True,
        letter_value=letter,
    )


def bead(
    component_id: str,
    *,
    diameter: float | None = 0.5,
    color: str = "red",
    price: float = 3.0,
    material: str = "glass",
) -> Component:
    return Component(
        id=component_id,
        name=component_id.replace("-", " ").title(),
        type=ComponentType.BEAD,
        color=color,
        material=material,
        price=price,
        diameter=diameter,
        compatible_sizes=[SizeCategory.SMALL, SizeCategory.MEDIUM],
    )


def bracelet_template(bead_positions: int = 18, *, center: bool = False) -> Template:
    positions = [Position(id=f"bead-{i}", x=float(i), y=0.0) for i in range(bead_positions)]
    if center:
        positions.append(Position(id="pendant_center", type=ComponentType.PENDANT))
    return Template(
        id="tpl-bracelet",
        name="Letter Bracelet",
        category=JewelryCategory.BRACELET,
        base_price=40.0,
        positions=positions,
        is_bracelet=True,
    )


def necklace_template() -> Template:
    return Template(
        id="tpl-necklace",
        name="Pendant Necklace",
        category=JewelryCategory.NECKLACE,
        base_price=60.0,
        positions=[
            Position(id="chain", type=ComponentType.CHAIN, required=True),
            Position(id="pendant_center", type=ComponentType.PENDANT, required=True),
            Position(id="bead-left", type=ComponentType.BEAD, size=SizeCategory.SMALL),
        ],
    )


def letter_catalog(letters: str = string.ascii_lowercase + HEBREW_LETTERS) -> list[Component]:
    return [letter_bead(letter) for letter in letters]


def plain_catalog() -> list[Component]:
    return [
        bead("red-8mm", diameter=0.8, color="red"),
        bead("red-6mm", diameter=0.6, color="red"),
        bead("blue-6mm", diameter=0.6, color="blue"),
        bead("pearl-10mm", diameter=1.0, color="white", price=5.0, material="pearl"),
        bead("silver-4mm", diameter=0.4, color="silver", material="silver"),
        Component(id="chain-silver", name="Silver Chain", type=ComponentType.CHAIN, price=20.0),
        Component(
            id="heart-pendant", name="Heart Pendant", type=ComponentType.PENDANT, price=15.0
        ),
        Component(
            id="old-charm", name="Old Charm", type=ComponentType.CHARM, is_active=False
        ),
    ]


@pytest.fixture
def components() -> list[Component]:
    return plain_catalog() + letter_catalog()


@pytest.fixture
def templates() -> list[Template]:
    return [bracelet_template(), necklace_template()]


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def persistence(
    store: MemoryStore, scheduler: FakeScheduler, clock: FakeClock
) -> PersistenceManager:
    return PersistenceManager(store, scheduler=scheduler, clock=clock)


@pytest.fixture
def session(
    persistence: PersistenceManager,
    clock: FakeClock,
    templates: list[Template],
    components: list[Component],
) -> DesignSession:
    s = DesignSession(persistence=persistence, clock=clock)
    s.set_catalog(templates, components)
    return s


# ---------------------------------------------------------------------------
# CLI project
# ---------------------------------------------------------------------------


def write_catalog(path: Path, templates: list[Template], components: list[Component]) -> Path:
    payload = {
        "templates": [t.model_dump(mode="json", by_alias=True) for t in templates],
        "components": [c.model_dump(mode="json", by_alias=True) for c in components],
    }
    path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
    return path


@pytest.fixture
def _isolated_project(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    templates: list[Template],
    components: list[Component],
) -> None:
    """Run the CLI from a temp directory holding ``catalog.json``.

    Use via ``@pytest.mark.usefixtures("_isolated_project")`` on command
    test classes.
    """
    for var in ("JEWELCTL_CONFIG", "JEWELCTL_CATALOG__PATH", "JEWELCTL_PERSISTENCE__STATE_DIR"):
        monkeypatch.delenv(var, raising=False)
    write_catalog(tmp_path / "catalog.json", templates, components)
    monkeypatch.chdir(tmp_path)
