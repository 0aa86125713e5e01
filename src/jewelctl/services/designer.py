"""DesignSession: the guided design workflow as a session-scoped state machine.

Steps run ``welcome -> template-selection -> customization -> preview ->
order -> success`` with single-step moves either way; ``success`` is
terminal and only reachable by recording a submitted order.

A session owns the selected template, the ``position -> component``
mapping and (for bracelet templates) the bracelet configuration. All state
changes go through the action methods below; each returns a ServiceResult.
Blocked actions leave state untouched, record ``session.error`` and come
back as ``ok=False`` with a ``validation`` or ``state`` error.

After every mutation the session notifies its subscribers and schedules a
debounced save on the attached PersistenceManager.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog

from jewelctl.domain.bracelet import (
    DEFAULT_RULES,
    BraceletFit,
    BraceletRules,
    calculate_bracelet_fit,
    validate_bracelet_configuration,
    validate_custom_text,
    validate_wrist_size,
)
from jewelctl.domain.capacity import (
    CapacityStatus,
    ReductionSuggestion,
    WarningLevel,
    capacity_status,
    suggest_reductions,
    total_bead_space,
    validate_bead_addition,
)
from jewelctl.domain.letters import (
    TextFitCheck,
    TextInputRecommendations,
    is_letter_component,
    letter_bead_catalog,
    place_letters,
    recommend_text_input,
    validate_text_fit,
)
from jewelctl.domain.steps import (
    DesignStep,
    is_valid_transition,
    next_step_of,
    previous_step_of,
)
from jewelctl.domain.types import (
    DEFAULT_BEAD_DIAMETER,
    BraceletConfiguration,
    Component,
    ComponentType,
    DesignConfiguration,
    DesignState,
    LetterBeadPosition,
    Position,
    Template,
    calculate_total_price,
    flatten_placements,
    is_design_complete,
)
from jewelctl.services._helpers import utcnow
from jewelctl.services.persistence import (
    PersistedDesignState,
    SessionSnapshot,
    flatten_selection,
)
from jewelctl.services.result import ErrorKind, ServiceError, ServiceResult, failure
from jewelctl.services.store import Observable

if TYPE_CHECKING:
    from jewelctl.config.settings import JewelSettings
    from jewelctl.infrastructure.scheduling import Scheduler
    from jewelctl.infrastructure.storage import KeyValueStore
    from jewelctl.services.persistence import PersistenceManager

log = structlog.get_logger(__name__)

# Non-bead position that may carry a letter of the custom text.
CENTER_POSITION_ID = "pendant_center"

DEFAULT_WRIST_SIZE = 17.0


@dataclass(frozen=True)
class SessionView:
    """Read-only picture of a session handed to subscribers."""

    step: DesignStep
    template: Template | None
    selected: dict[str, Component]
    bracelet: BraceletConfiguration | None
    total_price: float
    is_design_complete: bool
    can_proceed: bool
    is_bracelet: bool
    error: ServiceError | None
    loading: dict[str, bool] = field(default_factory=dict)
    has_recovered_session: bool = False


@dataclass(frozen=True)
class CapacityInfo:
    fit: BraceletFit
    selected_beads: list[Component]
    status: CapacityStatus
    suggestions: list[ReductionSuggestion]


@dataclass(frozen=True)
class BeadAdmission:
    can_add: bool
    warning: str | None = None
    error: str | None = None


class DesignSession:
    """One user's design session.

    Parameters:
        persistence: Optional snapshot manager; every mutation schedules a save.
        rules: Bracelet validation bounds.
        default_wrist_size: Wrist size given to a freshly selected bracelet.
        clock: Source of aware UTC timestamps for the design snapshot.
    """

    def __init__(
        self,
        *,
        persistence: PersistenceManager | None = None,
        rules: BraceletRules = DEFAULT_RULES,
        default_wrist_size: float = DEFAULT_WRIST_SIZE,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._rules = rules
        self._default_wrist_size = default_wrist_size
        self._clock = clock
        self._persistence = persistence

        self._step = DesignStep.WELCOME
        self._template: Template | None = None
        self._selected: dict[str, Component] = {}
        self._bracelet: BraceletConfiguration | None = None
        self._design_data = DesignConfiguration(timestamp=clock())

        self.templates: list[Template] = []
        self.components: list[Component] = []
        self.error: ServiceError | None = None
        self.loading: dict[str, bool] = {"templates": False, "components": False, "order": False}
        self.has_recovered_session = False
        self.recovery_timestamp: datetime | None = None

        self._observable: Observable[SessionView] = Observable(self.view)
        if persistence is not None:
            persistence.attach(self.to_snapshot)

    @classmethod
    def from_settings(
        cls,
        settings: JewelSettings,
        *,
        store: KeyValueStore | None = None,
        scheduler: Scheduler | None = None,
    ) -> DesignSession:
        """Build a session persisting under the configured state directory."""
        from datetime import timedelta

        from jewelctl.infrastructure.storage import FileStore
        from jewelctl.services.persistence import PersistenceManager

        cfg = settings.persistence
        manager = PersistenceManager(
            store or FileStore(settings.state_dir),
            key=cfg.state_key,
            ttl=timedelta(hours=cfg.ttl_hours),
            autosave_delay=cfg.autosave_delay,
            scheduler=scheduler,
        )
        return cls(
            persistence=manager,
            rules=settings.bracelet.rules,
            default_wrist_size=settings.bracelet.default_wrist_size,
        )

    # ------------------------------------------------------------------
    # Read access and derived values
    # ------------------------------------------------------------------

    @property
    def step(self) -> DesignStep:
        return self._step

    @property
    def template(self) -> Template | None:
        return self._template

    @property
    def selected_components(self) -> dict[str, Component]:
        return dict(self._selected)

    @property
    def bracelet_configuration(self) -> BraceletConfiguration | None:
        return self._bracelet.model_copy(deep=True) if self._bracelet else None

    @property
    def design_data(self) -> DesignConfiguration:
        return self._design_data.model_copy(deep=True)

    @property
    def is_bracelet(self) -> bool:
        return bool(self._template and self._template.is_bracelet)

    @property
    def total_price(self) -> float:
        return calculate_total_price(self._template, self._selected)

    @property
    def is_design_complete(self) -> bool:
        return is_design_complete(self._template, self._selected)

    @property
    def design_state(self) -> DesignState:
        return DesignState(
            template_id=self._template.id if self._template else "",
            selected_components=dict(self._selected),
            total_price=self.total_price,
            design_data=self.design_data,
        )

    def proceed_blockers(self, step: DesignStep | None = None) -> list[str]:
        """Reasons the workflow cannot leave *step* (default: current step)."""
        step = step or self._step
        if step in (DesignStep.WELCOME, DesignStep.PREVIEW):
            return []
        if step == DesignStep.TEMPLATE_SELECTION:
            return [] if self._template is not None else ["No template selected"]
        if step == DesignStep.CUSTOMIZATION:
            if self._template is None:
                return ["No template selected"]
            reasons = [
                f"Required position {pos.id} is empty"
                for pos in self._template.required_positions
                if pos.id not in self._selected
            ]
            if self._template.is_bracelet:
                if self._bracelet is None:
                    reasons.append("Bracelet configuration is missing")
                else:
                    reasons.extend(
                        validate_bracelet_configuration(self._bracelet, self._rules).errors
                    )
            return reasons
        if step == DesignStep.ORDER:
            return ["Orders are submitted explicitly"]
        return ["Design is complete"]

    def can_proceed(self, step: DesignStep | None = None) -> bool:
        return not self.proceed_blockers(step)

    def view(self) -> SessionView:
        return SessionView(
            step=self._step,
            template=self._template,
            selected=dict(self._selected),
            bracelet=self.bracelet_configuration,
            total_price=self.total_price,
            is_design_complete=self.is_design_complete,
            can_proceed=self.can_proceed(),
            is_bracelet=self.is_bracelet,
            error=self.error,
            loading=dict(self.loading),
            has_recovered_session=self.has_recovered_session,
        )

    def subscribe(self, subscriber: Callable[[SessionView], object]) -> Callable[[], None]:
        """Receive the current view now and after every change."""
        return self._observable.subscribe(subscriber)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def next_step(self) -> ServiceResult:
        op = "next_step"
        blockers = self.proceed_blockers()
        target = next_step_of(self._step)
        if blockers or target is None or target == DesignStep.SUCCESS:
            return self._fail(
                op,
                "STEP_BLOCKED",
                f"Cannot proceed from {self._step}",
                ErrorKind.STATE,
                {"step": str(self._step), "reasons": blockers},
            )
        previous = self._step
        self._step = target
        self._commit()
        return ServiceResult(ok=True, op=op, data={"from": str(previous), "step": str(target)})

    def previous_step(self) -> ServiceResult:
        op = "previous_step"
        target = previous_step_of(self._step)
        if target is None:
            return self._fail(
                op, "NO_PREVIOUS_STEP", f"No step before {self._step}", ErrorKind.STATE
            )
        previous = self._step
        self._step = target
        self._commit()
        return ServiceResult(ok=True, op=op, data={"from": str(previous), "step": str(target)})

    def set_step(self, step: DesignStep | str) -> ServiceResult:
        """Move to an adjacent step; forward moves honour the proceed guard."""
        target = DesignStep(step)
        if target == self._step:
            return ServiceResult(ok=True, op="set_step", data={"step": str(target)})
        if not is_valid_transition(self._step, target):
            return self._fail(
                "set_step",
                "INVALID_TRANSITION",
                f"Cannot move from {self._step} to {target}",
                ErrorKind.STATE,
            )
        if target == next_step_of(self._step):
            return self.next_step()
        return self.previous_step()

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def set_catalog(
        self,
        templates: Iterable[Template] | None = None,
        components: Iterable[Component] | None = None,
    ) -> None:
        if templates is not None:
            self.templates = list(templates)
        if components is not None:
            self.components = list(components)
        self._observable.notify()

    def set_loading(self, name: str, value: bool) -> None:
        self.loading[name] = value
        self._observable.notify()

    # ------------------------------------------------------------------
    # Template and components
    # ------------------------------------------------------------------

    def select_template(self, template: Template) -> ServiceResult:
        """Replace the template, reset placements, (re)initialise bracelet config."""
        self._template = template
        self._selected = {}
        if template.is_bracelet:
            self._bracelet = self._new_bracelet(self._default_wrist_size)
        else:
            self._bracelet = None
        self._commit()
        log.debug("template.selected", template_id=template.id, bracelet=template.is_bracelet)
        return ServiceResult(
            ok=True,
            op="select_template",
            data={"template_id": template.id, "is_bracelet": template.is_bracelet},
        )

    def add_component(self, position_id: str, component: Component) -> ServiceResult:
        """Place *component* at *position_id*, replacing any prior occupant.

        Beads on bracelet templates pass the capacity check first; an
        addition that overflows the strand is refused.
        """
        op = "add_component"
        if self._template is None:
            return self._fail(op, "NO_TEMPLATE", "Select a template first", ErrorKind.STATE)
        if self._template.position(position_id) is None:
            return self._fail(
                op,
                "UNKNOWN_POSITION",
                f"Template {self._template.id} has no position {position_id}",
                ErrorKind.VALIDATION,
                {"position_id": position_id},
            )

        warnings: list[str] = []
        if self._template.is_bracelet and component.is_bead:
            if self._bracelet is None:
                return self._fail(
                    op,
                    "NO_BRACELET_CONFIGURATION",
                    "Bracelet configuration not found",
                    ErrorKind.STATE,
                )
            check = validate_bead_addition(
                self._beads(exclude=position_id), component, self._available_space()
            )
            if not check.is_valid:
                return self._fail(
                    op,
                    "CAPACITY_EXCEEDED",
                    check.errors[0] if check.errors else "Cannot add this bead",
                    ErrorKind.VALIDATION,
                    {"component_id": component.id, "warning_level": str(check.warning_level)},
                )
            if check.warning_level != WarningLevel.LOW:
                log.warning(
                    "bracelet.capacity_warning",
                    level=str(check.warning_level),
                    component_id=component.id,
                )
                warnings.extend(check.errors)

        self._selected[position_id] = component
        self._commit()
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "position_id": position_id,
                "component_id": component.id,
                "total_price": self.total_price,
            },
            warnings=warnings,
        )

    def remove_component(self, position_id: str) -> ServiceResult:
        """Empty *position_id*; a removed letter bead also leaves the text layout."""
        removed = self._selected.pop(position_id, None)
        if removed is not None:
            if is_letter_component(removed):
                self._drop_letter_position(position_id)
            self._commit()
        return ServiceResult(
            ok=True,
            op="remove_component",
            data={"position_id": position_id, "removed": removed is not None},
        )

    # ------------------------------------------------------------------
    # Bracelet
    # ------------------------------------------------------------------

    def update_wrist_size(self, wrist_circumference: float) -> ServiceResult:
        """Set the wrist size and recompute the bead budget."""
        op = "update_wrist_size"
        check = validate_wrist_size(wrist_circumference, self._rules)
        if not check.valid:
            return self._fail(
                op,
                "INVALID_WRIST_SIZE",
                check.errors[0],
                ErrorKind.VALIDATION,
                {"wrist_circumference": wrist_circumference},
            )
        if self._bracelet is None:
            self._bracelet = self._new_bracelet(wrist_circumference)
        else:
            self._bracelet = self._bracelet.model_copy(
                update={
                    "wrist_circumference": wrist_circumference,
                    "calculated_bead_count": self._bead_budget(wrist_circumference),
                }
            )
        self._commit()
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "wrist_circumference": wrist_circumference,
                "calculated_bead_count": self._bracelet.calculated_bead_count,
            },
        )

    def update_bracelet_configuration(self, **changes: Any) -> ServiceResult:
        """Merge *changes* into the configuration, creating one if needed.

        A wrist size the rules reject blocks the update; other problems
        (text too long, unsupported characters) come back as warnings.
        """
        op = "update_bracelet_configuration"
        base = self._bracelet or self._new_bracelet(self._default_wrist_size)
        wrist = changes.get("wrist_circumference", base.wrist_circumference)
        wrist_check = validate_wrist_size(wrist, self._rules)
        if not wrist_check.valid:
            return self._fail(
                op,
                "INVALID_WRIST_SIZE",
                wrist_check.errors[0],
                ErrorKind.VALIDATION,
                {"wrist_circumference": wrist},
            )
        updated = base.model_copy(update=changes)
        updated = updated.model_copy(
            update={"calculated_bead_count": self._bead_budget(updated.wrist_circumference)}
        )
        self._bracelet = updated
        self._commit()
        check = validate_bracelet_configuration(updated, self._rules)
        return ServiceResult(
            ok=True,
            op=op,
            data=updated.model_dump(),
            warnings=check.errors,
        )

    def set_custom_text(self, text: str) -> ServiceResult:
        """Spell *text* in letter beads across the template's text positions.

        Existing letter beads are always removed first; empty text stops
        there. Letters without a bead, indices past the last position and
        positions held by ordinary beads are skipped with a warning.
        """
        op = "set_custom_text"

        if not text or not text.strip():
            removed = self._remove_letter_beads()
            if self._bracelet is not None:
                self._bracelet = self._bracelet.model_copy(
                    update={"custom_text": "", "letter_bead_positions": []}
                )
            self._commit()
            return ServiceResult(ok=True, op=op, data={"text": "", "removed": removed})

        if self._template is None or not self._template.is_bracelet or self._bracelet is None:
            return self._fail(
                op,
                "NO_BRACELET_CONFIGURATION",
                "Custom text needs a bracelet template",
                ErrorKind.STATE,
            )

        warnings = list(validate_custom_text(text, self._rules).errors)
        self._remove_letter_beads()

        catalog = letter_bead_catalog(self.components)
        if not catalog:
            warnings.append("No letter bead components available")
            self._bracelet = self._bracelet.model_copy(
                update={"custom_text": text, "letter_bead_positions": []}
            )
            self._commit()
            return ServiceResult(
                ok=True, op=op, data={"text": text, "placed": 0}, warnings=warnings
            )

        wrist = self._bracelet.wrist_circumference
        budget = self._bead_budget(wrist)
        slots = self._text_positions()
        placements = place_letters(text, budget, catalog, len(slots))

        placed: list[LetterBeadPosition] = []
        for placement in placements:
            if not placement.letter.strip():
                continue
            if not placement.component_id:
                warnings.append(f"No letter bead for {placement.letter!r}")
                continue
            if not 0 <= placement.position_index < len(slots):
                warnings.append(
                    f"Position index {placement.position_index} out of range"
                    f" (0-{len(slots) - 1}) for letter {placement.letter!r}"
                )
                continue
            slot = slots[placement.position_index]
            occupant = self._selected.get(slot.id)
            if occupant is not None and not is_letter_component(occupant):
                warnings.append(f"Position {slot.id} already has a non-letter bead, skipping")
                continue
            self._selected[slot.id] = catalog[placement.component_id]
            placed.append(placement)

        if len(placements) > len(slots):
            warnings.append(
                f"Text has {len(placements)} letters but only {len(slots)} positions available"
            )

        self._bracelet = self._bracelet.model_copy(
            update={
                "custom_text": text,
                "calculated_bead_count": budget,
                "letter_bead_positions": placed,
            }
        )
        self._commit()
        log.debug("bracelet.text_placed", text=text, placed=len(placed), slots=len(slots))
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "text": text,
                "placed": len(placed),
                "positions": [p.model_dump() for p in placed],
            },
            warnings=warnings,
        )

    def bracelet_fit(self) -> BraceletFit | None:
        if self._bracelet is None:
            return None
        return calculate_bracelet_fit(self._bracelet.wrist_circumference, DEFAULT_BEAD_DIAMETER)

    def capacity_info(self) -> CapacityInfo | None:
        """Fit, selected beads, fill status and reduction suggestions."""
        fit = self.bracelet_fit()
        if fit is None:
            return None
        beads = self._beads()
        catalog = [c for c in self.components if c.is_bead]
        suggestions: list[ReductionSuggestion] = []
        excess = total_bead_space(beads) - fit.available_bead_space
        if beads and excess > 0:
            suggestions = suggest_reductions(beads, catalog, excess)
        return CapacityInfo(
            fit=fit,
            selected_beads=beads,
            status=capacity_status(beads, fit.available_bead_space),
            suggestions=suggestions,
        )

    def can_add_bead(self, bead: Component) -> BeadAdmission:
        """Dry-run of the bracelet capacity check for a component picker."""
        if not self.is_bracelet:
            return BeadAdmission(can_add=True)
        if self._bracelet is None:
            return BeadAdmission(can_add=False, error="Bracelet configuration not found")
        check = validate_bead_addition(self._beads(), bead, self._available_space())
        if not check.is_valid:
            return BeadAdmission(can_add=False, error=check.errors[0])
        if check.warning_level != WarningLevel.LOW:
            return BeadAdmission(can_add=True, warning=check.errors[0])
        return BeadAdmission(can_add=True)

    def text_fit(self, text: str) -> TextFitCheck | None:
        """Check *text* against the positions the selected beads leave free."""
        if self._bracelet is None:
            return None
        return validate_text_fit(
            text,
            self._bracelet.wrist_circumference,
            self._beads(),
            letter_bead_catalog(self.components),
        )

    def text_recommendations(self) -> TextInputRecommendations | None:
        if self._bracelet is None:
            return None
        return recommend_text_input(
            self._bracelet.wrist_circumference,
            self._beads(),
            letter_bead_catalog(self.components),
        )

    # ------------------------------------------------------------------
    # Completion, reset, errors
    # ------------------------------------------------------------------

    def mark_order_submitted(self, order_id: str) -> ServiceResult:
        """Record a submitted order: ``order -> success`` and drop the saved session."""
        op = "mark_order_submitted"
        if self._step != DesignStep.ORDER:
            return self._fail(
                op,
                "NOT_AT_ORDER_STEP",
                f"No order can be recorded at {self._step}",
                ErrorKind.STATE,
            )
        self._step = DesignStep.SUCCESS
        self._observable.notify()
        if self._persistence is not None:
            self._persistence.cancel()
            self._persistence.clear()
        return ServiceResult(ok=True, op=op, data={"order_id": order_id, "step": str(self._step)})

    def reset(self) -> ServiceResult:
        """Discard the design and any saved snapshot; back to ``welcome``."""
        self._step = DesignStep.WELCOME
        self._template = None
        self._selected = {}
        self._bracelet = None
        self._design_data = DesignConfiguration(timestamp=self._clock())
        self.error = None
        self.has_recovered_session = False
        self.recovery_timestamp = None
        self._observable.notify()
        if self._persistence is not None:
            self._persistence.cancel()
            self._persistence.clear()
        return ServiceResult(ok=True, op="reset", data={"step": str(self._step)})

    def clear_error(self) -> None:
        self.error = None
        self._observable.notify()

    def dismiss_recovery(self) -> None:
        self.has_recovered_session = False
        self.recovery_timestamp = None
        self._observable.notify()

    def close(self) -> None:
        """End the session: write any pending save and drop subscribers."""
        if self._persistence is not None:
            self._persistence.flush()
        self._observable.clear()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_snapshot(self) -> SessionSnapshot | None:
        """Persisted form; None when there is nothing worth saving.

        May run on a timer thread, so it reads each field once and works on
        copies. A submitted order (``success``) is never saved.
        """
        step = self._step
        template = self._template
        selected = dict(self._selected)
        bracelet = self._bracelet
        design_data = self._design_data
        if step == DesignStep.SUCCESS or (template is None and not selected):
            return None
        pairs, components = flatten_selection(selected)
        return SessionSnapshot(
            current_step=step,
            selected_template=template,
            bracelet_configuration=bracelet.model_copy(deep=True) if bracelet else None,
            design_state=PersistedDesignState(
                template_id=template.id if template else "",
                selected_components=pairs,
                components=components,
                total_price=calculate_total_price(template, selected),
                design_data=design_data.model_copy(deep=True),
            ),
        )

    def restore(self) -> ServiceResult:
        """Resume from the saved snapshot, if a valid one exists."""
        op = "restore"
        if self._persistence is None:
            return ServiceResult(ok=True, op=op, data={"restored": False})
        restored = self._persistence.restore(self.components)
        if restored is None:
            return ServiceResult(ok=True, op=op, data={"restored": False})

        self._template = restored.template
        self._selected = dict(restored.selected_components)
        self._design_data = restored.design_data
        if restored.bracelet_configuration is not None:
            self._bracelet = restored.bracelet_configuration
        elif self._template is not None and self._template.is_bracelet:
            self._bracelet = self._new_bracelet(self._default_wrist_size)
        else:
            self._bracelet = None
        if restored.current_step is not None:
            self._step = restored.current_step
        self.has_recovered_session = True
        self.recovery_timestamp = restored.saved_at
        self._observable.notify()
        log.info("session.restored", step=str(self._step), saved_at=restored.saved_at.isoformat())
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "restored": True,
                "step": str(self._step),
                "saved_at": restored.saved_at.isoformat(),
                "positions": len(self._selected),
            },
            warnings=restored.warnings,
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _bead_budget(self, wrist_circumference: float) -> int:
        return calculate_bracelet_fit(
            wrist_circumference, DEFAULT_BEAD_DIAMETER
        ).recommended_bead_count

    def _new_bracelet(self, wrist_circumference: float) -> BraceletConfiguration:
        return BraceletConfiguration(
            wrist_circumference=wrist_circumference,
            calculated_bead_count=self._bead_budget(wrist_circumference),
        )

    def _available_space(self) -> float:
        assert self._bracelet is not None
        return calculate_bracelet_fit(
            self._bracelet.wrist_circumference, DEFAULT_BEAD_DIAMETER
        ).available_bead_space

    def _beads(self, *, exclude: str | None = None) -> list[Component]:
        return [
            component
            for position_id, component in self._selected.items()
            if component.is_bead and position_id != exclude
        ]

    def _text_positions(self) -> list[Position]:
        assert self._template is not None
        return [
            pos
            for pos in self._template.positions
            if pos.type == ComponentType.BEAD or pos.id == CENTER_POSITION_ID
        ]

    def _remove_letter_beads(self) -> int:
        letter_slots = [pid for pid, c in self._selected.items() if is_letter_component(c)]
        for position_id in letter_slots:
            del self._selected[position_id]
        return len(letter_slots)

    def _drop_letter_position(self, position_id: str) -> None:
        if self._bracelet is None or self._template is None:
            return
        slot_ids = [pos.id for pos in self._text_positions()]
        kept = [
            p
            for p in self._bracelet.letter_bead_positions
            if not (0 <= p.position_index < len(slot_ids))
            or slot_ids[p.position_index] != position_id
        ]
        self._bracelet = self._bracelet.model_copy(update={"letter_bead_positions": kept})

    def _sync_design_data(self) -> None:
        self._design_data = DesignConfiguration(
            template_id=self._template.id if self._template else "",
            components=flatten_placements(self._selected),
            timestamp=self._clock(),
            bracelet_data=self.bracelet_configuration,
        )

    def _commit(self) -> None:
        """Refresh derived design data, notify subscribers, schedule a save."""
        self._sync_design_data()
        self._observable.notify()
        if self._persistence is not None:
            self._persistence.schedule()

    def _fail(
        self,
        op: str,
        code: str,
        message: str,
        kind: ErrorKind,
        detail: dict[str, Any] | None = None,
    ) -> ServiceResult:
        result = failure(op, code, message, kind=kind, detail=detail)
        self.error = result.error
        log.info("session.action_blocked", op=op, code=code, kind=str(kind))
        self._observable.notify()
        return result

