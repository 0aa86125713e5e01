"""Tests for catalog models, derived prices and workflow steps."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from jewelctl.domain.steps import (
    DesignStep,
    is_restorable,
    is_valid_transition,
    next_step_of,
    previous_step_of,
)
from jewelctl.domain.types import (
    Component,
    ComponentType,
    SizeCategory,
    Template,
    calculate_total_price,
    filter_compatible_components,
    flatten_placements,
    is_design_complete,
)
from tests.conftest import bead, letter_bead, necklace_template, plain_catalog


class TestModels:
    def test_camel_case_aliases(self) -> None:
        component = Component.model_validate(
            {"id": "c1", "isLetterBead": True, "letterValue": "a", "compatibleSizes": ["small"]}
        )
        assert component.is_letter_bead is True
        assert component.compatible_sizes == [SizeCategory.SMALL]
        dumped = component.model_dump(by_alias=True)
        assert "letterValue" in dumped

    def test_snake_case_accepted(self) -> None:
        template = Template.model_validate({"id": "t", "base_price": 12.5, "is_bracelet": True})
        assert template.base_price == 12.5
        assert template.is_bracelet

    def test_catalog_models_are_frozen(self) -> None:
        component = bead("red-8mm")
        with pytest.raises(ValidationError):
            component.price = 1.0  # type: ignore[misc]

    def test_effective_diameter(self) -> None:
        assert bead("x", diameter=None).effective_diameter == 0.5
        assert bead("x", diameter=0.0).effective_diameter == 0.5
        assert bead("x", diameter=0.8).effective_diameter == 0.8

    def test_template_position_lookup(self) -> None:
        template = necklace_template()
        assert template.position("chain") is not None
        assert template.position("nope") is None
        assert [p.id for p in template.required_positions] == ["chain", "pendant_center"]


class TestDerivedValues:
    def test_total_price(self) -> None:
        template = necklace_template()
        selected = {"chain": plain_catalog()[5], "bead-left": bead("b", price=3.5)}
        assert calculate_total_price(template, selected) == 60.0 + 20.0 + 3.5

    def test_total_price_without_template(self) -> None:
        assert calculate_total_price(None, {"x": bead("b")}) == 0.0

    def test_design_complete(self) -> None:
        template = necklace_template()
        components = {c.id: c for c in plain_catalog()}
        selected = {"chain": components["chain-silver"]}
        assert not is_design_complete(template, selected)
        selected["pendant_center"] = components["heart-pendant"]
        assert is_design_complete(template, selected)
        assert not is_design_complete(None, selected)

    def test_flatten_placements_keeps_order_and_letter_info(self) -> None:
        placements = flatten_placements({"b-2": letter_bead("a"), "b-1": bead("red")})
        assert [p.position_id for p in placements] == ["b-2", "b-1"]
        assert placements[0].is_letter_bead
        assert placements[0].letter_value == "a"
        assert not placements[1].is_letter_bead

    def test_filter_compatible(self) -> None:
        found = filter_compatible_components(
            plain_catalog(), ComponentType.BEAD, SizeCategory.SMALL
        )
        assert {c.id for c in found} == {
            "red-8mm",
            "red-6mm",
            "blue-6mm",
            "pearl-10mm",
            "silver-4mm",
        }
        assert filter_compatible_components(
            plain_catalog(), ComponentType.BEAD, SizeCategory.LARGE
        ) == []


class TestSteps:
    def test_linear_forward(self) -> None:
        assert next_step_of(DesignStep.WELCOME) is DesignStep.TEMPLATE_SELECTION
        assert next_step_of(DesignStep.ORDER) is DesignStep.SUCCESS
        assert next_step_of(DesignStep.SUCCESS) is None

    def test_linear_backward(self) -> None:
        assert previous_step_of(DesignStep.PREVIEW) is DesignStep.CUSTOMIZATION
        assert previous_step_of(DesignStep.WELCOME) is None
        assert previous_step_of(DesignStep.SUCCESS) is None

    def test_valid_transitions_are_single_steps(self) -> None:
        assert is_valid_transition("customization", "preview")
        assert is_valid_transition("customization", "template-selection")
        assert not is_valid_transition("welcome", "preview")
        assert not is_valid_transition("success", "order")

    def test_success_not_restorable(self) -> None:
        assert not is_restorable(DesignStep.SUCCESS)
        assert is_restorable(DesignStep.ORDER)
