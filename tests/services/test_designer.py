"""Tests for DesignSession: workflow steps, placements, bracelet rules, snapshots."""

from __future__ import annotations

import json
import math
import threading

import pytest

from jewelctl.domain.capacity import WarningLevel
from jewelctl.domain.steps import DesignStep
from jewelctl.domain.types import Component, Template
from jewelctl.infrastructure.storage import MemoryStore
from jewelctl.services.designer import DesignSession, SessionView
from jewelctl.services.persistence import DEFAULT_STATE_KEY, PersistenceManager
from tests.conftest import (
    FakeClock,
    FakeScheduler,
    bead,
    bracelet_template,
    letter_catalog,
    necklace_template,
    plain_catalog,
)

PEARL = bead("pearl-10mm", diameter=1.0, color="white", price=5.0, material="pearl")
CHAIN = Component(id="chain-silver", name="Silver Chain", type="chain", price=20.0)
PENDANT = Component(id="heart-pendant", name="Heart Pendant", type="pendant", price=15.0)


class SlowStore(MemoryStore):
    """MemoryStore whose writes wait until the test releases them."""

    def __init__(self) -> None:
        super().__init__()
        self.writing = threading.Event()
        self.release = threading.Event()

    def set(self, key: str, value: str) -> None:
        self.writing.set()
        self.release.wait(2.0)
        super().set(key, value)


def at_customization(session: DesignSession, template: Template) -> None:
    session.select_template(template)
    assert session.next_step().ok
    assert session.next_step().ok
    assert session.step is DesignStep.CUSTOMIZATION


class TestNavigation:
    def test_starts_at_welcome(self, session: DesignSession) -> None:
        assert session.step is DesignStep.WELCOME
        assert session.can_proceed()

    def test_template_selection_needs_template(self, session: DesignSession) -> None:
        session.next_step()
        result = session.next_step()
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "STEP_BLOCKED"
        assert result.error.kind == "state"
        assert result.error.detail["reasons"] == ["No template selected"]
        assert session.error == result.error
        assert session.step is DesignStep.TEMPLATE_SELECTION

    def test_forward_and_back(self, session: DesignSession) -> None:
        at_customization(session, bracelet_template())
        assert session.next_step().data == {"from": "customization", "step": "preview"}
        assert session.previous_step().ok
        assert session.step is DesignStep.CUSTOMIZATION

    def test_no_previous_from_welcome(self, session: DesignSession) -> None:
        result = session.previous_step()
        assert result.error is not None
        assert result.error.code == "NO_PREVIOUS_STEP"

    def test_required_positions_block(self, session: DesignSession) -> None:
        at_customization(session, necklace_template())
        assert session.proceed_blockers() == [
            "Required position chain is empty",
            "Required position pendant_center is empty",
        ]
        session.add_component("chain", CHAIN)
        session.add_component("pendant_center", PENDANT)
        assert session.is_design_complete
        assert session.next_step().ok

    def test_order_step_never_advances(self, session: DesignSession) -> None:
        at_customization(session, bracelet_template())
        session.next_step()
        session.next_step()
        assert session.step is DesignStep.ORDER
        result = session.next_step()
        assert not result.ok
        assert session.step is DesignStep.ORDER

    def test_set_step_adjacent_only(self, session: DesignSession) -> None:
        assert session.set_step("welcome").ok
        result = session.set_step(DesignStep.PREVIEW)
        assert result.error is not None
        assert result.error.code == "INVALID_TRANSITION"
        assert session.set_step("template-selection").ok
        assert session.set_step("welcome").ok
        assert session.step is DesignStep.WELCOME

    def test_set_step_forward_honours_guard(self, session: DesignSession) -> None:
        session.next_step()
        result = session.set_step("customization")
        assert result.error is not None
        assert result.error.code == "STEP_BLOCKED"


class TestTemplatesAndComponents:
    def test_select_bracelet_initialises_configuration(self, session: DesignSession) -> None:
        result = session.select_template(bracelet_template())
        assert result.data == {"template_id": "tpl-bracelet", "is_bracelet": True}
        config = session.bracelet_configuration
        assert config is not None
        assert config.wrist_circumference == 17.0
        assert config.calculated_bead_count == 33

    def test_select_template_resets_selection(self, session: DesignSession) -> None:
        session.select_template(necklace_template())
        session.add_component("chain", CHAIN)
        session.select_template(bracelet_template())
        assert session.selected_components == {}
        session.select_template(necklace_template())
        assert session.bracelet_configuration is None

    def test_add_requires_template(self, session: DesignSession) -> None:
        result = session.add_component("bead-0", PEARL)
        assert result.error is not None
        assert result.error.code == "NO_TEMPLATE"

    def test_unknown_position(self, session: DesignSession) -> None:
        session.select_template(bracelet_template())
        result = session.add_component("nowhere", PEARL)
        assert result.error is not None
        assert result.error.code == "UNKNOWN_POSITION"
        assert result.error.kind == "validation"

    def test_add_replace_and_price(self, session: DesignSession) -> None:
        session.select_template(necklace_template())
        session.add_component("chain", CHAIN)
        result = session.add_component("pendant_center", PENDANT)
        assert result.data["total_price"] == 95.0
        session.add_component("pendant_center", CHAIN)
        assert session.total_price == 100.0
        assert [p.component_id for p in session.design_data.components] == [
            "chain-silver",
            "chain-silver",
        ]

    def test_remove_component(self, session: DesignSession) -> None:
        session.select_template(necklace_template())
        session.add_component("chain", CHAIN)
        assert session.remove_component("chain").data["removed"] is True
        assert session.remove_component("chain").data["removed"] is False
        assert session.selected_components == {}


class TestBraceletCapacity:
    def fill_pearls(self, session: DesignSession, count: int) -> list[list[str]]:
        warnings = []
        for i in range(count):
            result = session.add_component(f"bead-{i}", PEARL)
            assert result.ok
            warnings.append(result.warnings)
        return warnings

    def test_warning_levels_then_refusal(self, session: DesignSession) -> None:
        session.select_template(bracelet_template())
        session.update_wrist_size(12.0)
        warnings = self.fill_pearls(session, 13)
        assert warnings[9] == []
        assert "full after adding this bead" in warnings[10][0]
        assert "will fill 96.3% of the bracelet" in warnings[12][0]

        result = session.add_component("bead-13", PEARL)
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "CAPACITY_EXCEEDED"
        assert result.error.detail["warning_level"] == "critical"
        assert "bead-13" not in session.selected_components

    def test_replacing_occupant_is_not_double_counted(self, session: DesignSession) -> None:
        session.select_template(bracelet_template())
        session.update_wrist_size(12.0)
        self.fill_pearls(session, 13)
        assert session.add_component("bead-12", PEARL).ok

    def test_can_add_bead(self, session: DesignSession) -> None:
        session.select_template(bracelet_template())
        session.update_wrist_size(12.0)
        self.fill_pearls(session, 12)
        admission = session.can_add_bead(PEARL)
        assert admission.can_add
        assert admission.warning is not None
        self.fill_pearls(session, 13)
        assert not session.can_add_bead(PEARL).can_add

    def test_can_add_bead_outside_bracelet(self, session: DesignSession) -> None:
        session.select_template(necklace_template())
        assert session.can_add_bead(PEARL).can_add

    def test_capacity_info(self, session: DesignSession) -> None:
        assert session.capacity_info() is None
        session.select_template(bracelet_template())
        session.update_wrist_size(12.0)
        self.fill_pearls(session, 12)
        info = session.capacity_info()
        assert info is not None
        assert info.fit.available_bead_space == 13.5
        assert len(info.selected_beads) == 12
        assert info.status.warning_level is WarningLevel.MEDIUM
        assert info.suggestions == []


class TestWristSize:
    def test_update_recomputes_budget(self, session: DesignSession) -> None:
        session.select_template(bracelet_template())
        result = session.update_wrist_size(12.0)
        assert result.data == {"wrist_circumference": 12.0, "calculated_bead_count": 24}

    @pytest.mark.parametrize(
        ("wrist", "message"),
        [
            (11.9, "Wrist size must be at least 12cm"),
            (25.5, "Wrist size cannot exceed 25cm"),
            (0, "Wrist size must be a positive number"),
        ],
    )
    def test_invalid_wrist_blocks(
        self, session: DesignSession, wrist: float, message: str
    ) -> None:
        session.select_template(bracelet_template())
        result = session.update_wrist_size(wrist)
        assert result.error is not None
        assert result.error.code == "INVALID_WRIST_SIZE"
        assert result.error.message == message
        config = session.bracelet_configuration
        assert config is not None
        assert config.wrist_circumference == 17.0

    def test_update_configuration_rejects_bad_wrist(self, session: DesignSession) -> None:
        session.select_template(bracelet_template())
        result = session.update_bracelet_configuration(wrist_circumference=30.0)
        assert result.error is not None
        assert result.error.code == "INVALID_WRIST_SIZE"
        assert result.error.message == "Wrist size cannot exceed 25cm"
        config = session.bracelet_configuration
        assert config is not None
        assert config.wrist_circumference == 17.0

    @pytest.mark.parametrize("wrist", [math.nan, math.inf, -math.inf])
    def test_update_configuration_non_finite_wrist(
        self, session: DesignSession, wrist: float
    ) -> None:
        session.select_template(bracelet_template())
        result = session.update_bracelet_configuration(wrist_circumference=wrist)
        assert not result.ok
        assert result.error is not None
        assert result.error.kind == "validation"
        assert session.error == result.error

    def test_update_configuration_reports_text_problems(self, session: DesignSession) -> None:
        session.select_template(bracelet_template())
        result = session.update_bracelet_configuration(
            wrist_circumference=16.0, custom_text="x" * 21
        )
        assert result.ok
        assert result.warnings == ["Custom text cannot exceed 20 characters"]
        assert result.data["calculated_bead_count"] == 31


class TestCustomText:
    def test_english_reversed_around_centre(self, session: DesignSession) -> None:
        at_customization(session, bracelet_template())
        result = session.set_custom_text("code")
        assert result.ok
        assert result.warnings == []
        selected = session.selected_components
        assert [selected[f"bead-{i}"].letter_value for i in (7, 8, 9, 10)] == ["e", "d", "o", "c"]
        config = session.bracelet_configuration
        assert config is not None
        assert config.custom_text == "code"
        assert [p.position_index for p in config.letter_bead_positions] == [10, 9, 8, 7]

    def test_hebrew_in_reading_order(self, session: DesignSession) -> None:
        session.select_template(bracelet_template())
        session.set_custom_text("שלום")
        selected = session.selected_components
        assert "".join(selected[f"bead-{i}"].letter_value or "" for i in range(7, 11)) == "שלום"

    def test_replacing_text_removes_old_letters(self, session: DesignSession) -> None:
        session.select_template(bracelet_template())
        session.set_custom_text("abcdef")
        session.set_custom_text("ab")
        letters = [c for c in session.selected_components.values() if c.is_letter_bead]
        assert len(letters) == 2

    def test_blank_text_clears(self, session: DesignSession) -> None:
        session.select_template(bracelet_template())
        session.set_custom_text("code")
        result = session.set_custom_text("   ")
        assert result.data == {"text": "", "removed": 4}
        assert session.selected_components == {}
        config = session.bracelet_configuration
        assert config is not None
        assert config.custom_text == ""

    def test_needs_bracelet(self, session: DesignSession) -> None:
        session.select_template(necklace_template())
        result = session.set_custom_text("hi")
        assert result.error is not None
        assert result.error.code == "NO_BRACELET_CONFIGURATION"

    def test_spaces_are_skipped_silently(self, session: DesignSession) -> None:
        session.select_template(bracelet_template())
        result = session.set_custom_text("a b")
        assert result.warnings == []
        assert result.data["placed"] == 2

    def test_keeps_ordinary_beads(self, session: DesignSession) -> None:
        session.select_template(bracelet_template())
        session.add_component("bead-10", PEARL)
        result = session.set_custom_text("code")
        assert result.data["placed"] == 3
        assert result.warnings == ["Position bead-10 already has a non-letter bead, skipping"]
        assert session.selected_components["bead-10"] == PEARL

    def test_missing_letter_bead(self, persistence: PersistenceManager) -> None:
        session = DesignSession(persistence=persistence)
        session.set_catalog([bracelet_template()], plain_catalog() + letter_catalog("ab"))
        session.select_template(bracelet_template())
        result = session.set_custom_text("abz")
        assert result.data["placed"] == 2
        assert result.warnings == ["No letter bead for 'z'"]

    def test_no_letter_catalog(self, persistence: PersistenceManager) -> None:
        session = DesignSession(persistence=persistence)
        session.set_catalog([bracelet_template()], plain_catalog())
        session.select_template(bracelet_template())
        result = session.set_custom_text("ab")
        assert result.warnings == ["No letter bead components available"]
        config = session.bracelet_configuration
        assert config is not None
        assert config.custom_text == "ab"

    def test_pendant_centre_counts_as_slot(self, session: DesignSession) -> None:
        session.select_template(bracelet_template(3, center=True))
        result = session.set_custom_text("abcd")
        assert result.data["placed"] == 4
        assert session.selected_components["pendant_center"].letter_value == "a"

    def test_overlong_text_blocks_progress(self, session: DesignSession) -> None:
        at_customization(session, bracelet_template())
        result = session.set_custom_text("abcdefghijklmnopqrstu")
        assert result.ok
        assert "Text cannot exceed 20 characters" in result.warnings
        assert "Text has 21 letters but only 18 positions available" in result.warnings
        assert result.data["placed"] == 18

        blocked = session.next_step()
        assert blocked.error is not None
        assert "Custom text cannot exceed 20 characters" in blocked.error.detail["reasons"]

        session.set_custom_text("code")
        assert session.next_step().ok

    def test_removing_letter_drops_its_position(self, session: DesignSession) -> None:
        session.select_template(bracelet_template())
        session.set_custom_text("code")
        assert session.remove_component("bead-10").ok
        config = session.bracelet_configuration
        assert config is not None
        assert [p.position_index for p in config.letter_bead_positions] == [9, 8, 7]

    def test_removing_plain_bead_keeps_positions(self, session: DesignSession) -> None:
        session.select_template(bracelet_template())
        session.add_component("bead-0", PEARL)
        session.set_custom_text("code")
        session.remove_component("bead-0")
        config = session.bracelet_configuration
        assert config is not None
        assert len(config.letter_bead_positions) == 4


class TestTextFeedback:
    def test_fit_counts_only_other_beads(self, session: DesignSession) -> None:
        session.select_template(bracelet_template())
        for i in range(3):
            session.add_component(f"bead-{i}", PEARL)
        session.set_custom_text("code")
        check = session.text_fit("love")
        assert check is not None
        assert check.is_valid
        assert check.space.available_space == 30
        assert check.space.used_by_other_beads == 3
        assert check.space.remaining_space == 26

    def test_recommendations(self, session: DesignSession) -> None:
        session.select_template(bracelet_template())
        for i in range(3):
            session.add_component(f"bead-{i}", PEARL)
        recommendations = session.text_recommendations()
        assert recommendations is not None
        assert recommendations.max_recommended_length == 28

    def test_needs_bracelet(self, session: DesignSession) -> None:
        assert session.text_fit("love") is None
        session.select_template(necklace_template())
        assert session.text_fit("love") is None
        assert session.text_recommendations() is None


class TestSubscribers:
    def test_views_follow_changes(self, session: DesignSession) -> None:
        views: list[SessionView] = []
        unsubscribe = session.subscribe(views.append)
        session.select_template(bracelet_template())
        unsubscribe()
        session.next_step()
        assert views[0].template is None
        assert views[-1].template is not None
        assert views[-1].is_bracelet
        assert views[-1].total_price == 40.0

    def test_blocked_action_notifies_error(self, session: DesignSession) -> None:
        views: list[SessionView] = []
        session.subscribe(views.append)
        session.previous_step()
        assert views[-1].error is not None
        session.clear_error()
        assert views[-1].error is None

    def test_loading_flags(self, session: DesignSession) -> None:
        session.set_loading("templates", True)
        assert session.view().loading["templates"] is True


class TestPersistence:
    def test_mutations_schedule_one_save(
        self, session: DesignSession, scheduler: FakeScheduler, store: MemoryStore
    ) -> None:
        session.select_template(bracelet_template())
        session.set_custom_text("code")
        session.update_wrist_size(16.0)
        assert len(scheduler.live) == 1
        scheduler.fire_all()
        saved = json.loads(store.get(DEFAULT_STATE_KEY) or "{}")
        assert saved["braceletConfiguration"]["wristCircumference"] == 16.0
        assert saved["braceletConfiguration"]["customText"] == "code"

    def test_empty_session_saves_nothing(
        self, session: DesignSession, scheduler: FakeScheduler, store: MemoryStore
    ) -> None:
        session.next_step()
        scheduler.fire_all()
        assert store.get(DEFAULT_STATE_KEY) is None

    def test_restore_round_trip(
        self,
        session: DesignSession,
        store: MemoryStore,
        scheduler: FakeScheduler,
        clock: FakeClock,
        templates: list[Template],
        components: list[Component],
    ) -> None:
        at_customization(session, bracelet_template())
        session.add_component("bead-0", PEARL)
        session.set_custom_text("code")
        session.close()

        fresh = DesignSession(
            persistence=PersistenceManager(store, scheduler=scheduler, clock=clock), clock=clock
        )
        fresh.set_catalog(templates, components)
        result = fresh.restore()
        assert result.data["restored"] is True
        assert result.data["step"] == "customization"
        assert fresh.step is DesignStep.CUSTOMIZATION
        assert fresh.selected_components == session.selected_components
        assert fresh.bracelet_configuration == session.bracelet_configuration
        assert fresh.has_recovered_session
        assert fresh.recovery_timestamp == clock.now

        fresh.dismiss_recovery()
        assert not fresh.has_recovered_session

    def test_restore_without_snapshot(self, session: DesignSession) -> None:
        assert session.restore().data == {"restored": False}
        assert not session.has_recovered_session

    def test_order_submission_clears_storage(
        self, session: DesignSession, store: MemoryStore, scheduler: FakeScheduler
    ) -> None:
        assert session.mark_order_submitted("o-1").error is not None
        at_customization(session, bracelet_template())
        session.next_step()
        session.next_step()
        session.close()
        assert store.get(DEFAULT_STATE_KEY) is not None

        result = session.mark_order_submitted("o-1")
        assert result.data == {"order_id": "o-1", "step": "success"}
        assert session.step is DesignStep.SUCCESS
        assert store.keys() == []
        assert scheduler.live == []

    def test_pending_save_dropped_on_submission(
        self, session: DesignSession, store: MemoryStore, scheduler: FakeScheduler
    ) -> None:
        at_customization(session, bracelet_template())
        session.next_step()
        session.next_step()
        assert session.step is DesignStep.ORDER
        session.mark_order_submitted("o-1")
        assert scheduler.fire_all() == 0
        assert session.to_snapshot() is None
        assert store.keys() == []

    def test_submission_waits_for_in_flight_save(
        self, scheduler: FakeScheduler, clock: FakeClock
    ) -> None:
        store = SlowStore()
        session = DesignSession(
            persistence=PersistenceManager(store, scheduler=scheduler, clock=clock), clock=clock
        )
        session.set_catalog([bracelet_template()], plain_catalog() + letter_catalog())
        at_customization(session, bracelet_template())
        session.next_step()
        session.next_step()

        saving = threading.Thread(target=scheduler.fire_all)
        saving.start()
        assert store.writing.wait(2.0)
        submitting = threading.Thread(target=session.mark_order_submitted, args=("o-1",))
        submitting.start()
        submitting.join(0.1)
        assert submitting.is_alive()

        store.release.set()
        saving.join(2.0)
        submitting.join(2.0)
        assert session.step is DesignStep.SUCCESS
        assert store.keys() == []

    def test_reset_clears_everything(self, session: DesignSession, store: MemoryStore) -> None:
        session.select_template(bracelet_template())
        session.close()
        session.reset()
        assert session.step is DesignStep.WELCOME
        assert session.template is None
        assert session.bracelet_configuration is None
        assert store.keys() == []
