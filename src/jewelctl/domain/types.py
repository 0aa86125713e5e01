"""Catalog and design models.

Templates and components arrive from the catalog already shaped; they are
frozen once loaded. Bracelet configuration and design state belong to the
active session and are replaced (never shared) on every mutation.

Serialized keys are camelCase so persisted snapshots keep the layout
``{version, timestamp, currentStep, selectedTemplate, ...}`` regardless of
the Python attribute names.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

DEFAULT_BEAD_DIAMETER = 0.5  # cm, used when a component carries no diameter


class JewelryCategory(StrEnum):
    NECKLACE = "necklace"
    EARRINGS = "earrings"
    BRACELET = "bracelet"
    RING = "ring"


class ComponentType(StrEnum):
    BEAD = "bead"
    CHARM = "charm"
    PENDANT = "pendant"
    CHAIN = "chain"


class SizeCategory(StrEnum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CamelModel(BaseModel):
    """Base for every model that crosses the persistence boundary."""

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


# ---------------------------------------------------------------------------
# Catalog (immutable)
# ---------------------------------------------------------------------------


class Position(CamelModel):
    """A slot within a template accepting one component."""

    model_config = {"frozen": True}

    id: str
    x: float = 0.0
    y: float = 0.0
    type: ComponentType = ComponentType.BEAD
    size: SizeCategory = SizeCategory.MEDIUM
    required: bool = False


class Template(CamelModel):
    """A jewelry blueprint with a fixed, ordered list of positions."""

    model_config = {"frozen": True}

    id: str
    name: str = ""
    category: JewelryCategory = JewelryCategory.NECKLACE
    description: str | None = None
    base_price: float = 0.0
    positions: list[Position] = Field(default_factory=list)
    is_bracelet: bool = False
    is_active: bool = True

    def position(self, position_id: str) -> Position | None:
        for pos in self.positions:
            if pos.id == position_id:
                return pos
        return None

    @property
    def required_positions(self) -> list[Position]:
        return [pos for pos in self.positions if pos.required]


class Component(CamelModel):
    """A placeable jewelry part."""

    model_config = {"frozen": True}

    id: str
    name: str = ""
    type: ComponentType = ComponentType.BEAD
    color: str = ""
    material: str = ""
    description: str | None = None
    price: float = 0.0
    diameter: float | None = None
    compatible_sizes: list[SizeCategory] = Field(default_factory=list)
    is_active: bool = True
    is_letter_bead: bool = False
    letter_value: str | None = None

    @property
    def effective_diameter(self) -> float:
        """Diameter in cm; missing or zero diameters count as the default bead size."""
        return self.diameter or DEFAULT_BEAD_DIAMETER

    @property
    def is_bead(self) -> bool:
        return self.type == ComponentType.BEAD


# ---------------------------------------------------------------------------
# Session-owned state (mutable)
# ---------------------------------------------------------------------------


class LetterBeadPosition(CamelModel):
    """One letter of the custom text mapped onto a bead index."""

    model_config = {"frozen": True}

    letter: str
    component_id: str
    position_index: int


class BraceletConfiguration(CamelModel):
    """Wrist size, custom text and the derived bead budget of a bracelet design."""

    wrist_circumference: float
    custom_text: str = ""
    calculated_bead_count: int = 0
    letter_bead_positions: list[LetterBeadPosition] = Field(default_factory=list)


class ComponentPlacement(CamelModel):
    """Flattened ``position -> component`` pair of the design snapshot."""

    model_config = {"frozen": True}

    position_id: str
    component_id: str
    is_letter_bead: bool = False
    letter_value: str | None = None


class DesignConfiguration(CamelModel):
    """Timestamped design snapshot: template id, placements and bracelet data."""

    template_id: str = ""
    components: list[ComponentPlacement] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=_utcnow)
    bracelet_data: BraceletConfiguration | None = None


class DesignState(CamelModel):
    """Selected template id, chosen components keyed by position, derived price."""

    template_id: str = ""
    selected_components: dict[str, Component] = Field(default_factory=dict)
    total_price: float = 0.0
    design_data: DesignConfiguration = Field(default_factory=DesignConfiguration)


def flatten_placements(selected: dict[str, Component]) -> list[ComponentPlacement]:
    """Flatten the position mapping into explicit placements (mapping order)."""
    return [
        ComponentPlacement(
            position_id=position_id,
            component_id=component.id,
            is_letter_bead=component.is_letter_bead,
            letter_value=component.letter_value,
        )
        for position_id, component in selected.items()
    ]


def calculate_total_price(template: Template | None, selected: dict[str, Component]) -> float:
    """Template base price plus every placed component's price."""
    if template is None:
        return 0.0
    return template.base_price + sum(component.price for component in selected.values())


def is_design_complete(template: Template | None, selected: dict[str, Component]) -> bool:
    """True when every required position of *template* holds a component."""
    if template is None:
        return False
    return all(pos.id in selected for pos in template.required_positions)


def filter_compatible_components(
    components: list[Component],
    position_type: ComponentType,
    position_size: SizeCategory,
) -> list[Component]:
    """Active components of *position_type* that declare *position_size* compatible."""
    return [
        component
        for component in components
        if component.type == position_type
        and position_size in component.compatible_sizes
        and component.is_active
    ]
