"""PersistenceManager: debounced, expiring session snapshots.

A snapshot is a best-effort cache of the in-progress design, never the
source of truth:

- Saves are debounced: every mutation re-arms one timer, and the save
  captures the session as it is when the timer fires.
- Snapshots carry a schema version. ``1.0`` (no bracelet data) and ``1.1``
  are recognised; anything else is discarded on load.
- Snapshots older than the TTL (measured from their own timestamp) are
  discarded on load and storage is cleared.
- The terminal ``success`` step is never restored.
- Storage failures are logged and swallowed.

Persisted layout (camelCase keys)::

    {"version": "1.1", "timestamp": "...", "currentStep": "customization",
     "selectedTemplate": {...}, "braceletConfiguration": {...},
     "designState": {"selectedComponents": [["pos-1", "c-7"], ...],
                     "components": [{...}], "designData": {...}}}
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from pydantic import Field, ValidationError

from jewelctl.domain.steps import DesignStep, is_restorable
from jewelctl.domain.types import (
    BraceletConfiguration,
    CamelModel,
    Component,
    DesignConfiguration,
    Template,
)
from jewelctl.infrastructure.scheduling import Debouncer
from jewelctl.services._helpers import parse_iso, utcnow

if TYPE_CHECKING:
    from jewelctl.infrastructure.scheduling import Scheduler
    from jewelctl.infrastructure.storage import KeyValueStore

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = "1.1"
SUPPORTED_VERSIONS: frozenset[str] = frozenset({"1.0", "1.1"})
BRACELET_VERSIONS: frozenset[str] = frozenset({"1.1"})

DEFAULT_STATE_KEY = "jewelry-designer-state"
DEFAULT_TTL = timedelta(hours=24)
DEFAULT_AUTOSAVE_DELAY = 1.0


# ---------------------------------------------------------------------------
# Snapshot models
# ---------------------------------------------------------------------------


class PersistedDesignState(CamelModel):
    """DesignState with the position mapping flattened to ``(position, component)`` pairs."""

    template_id: str = ""
    selected_components: list[tuple[str, str]] = Field(default_factory=list)
    components: list[Component] = Field(default_factory=list)
    total_price: float = 0.0
    design_data: DesignConfiguration = Field(default_factory=DesignConfiguration)


class SessionSnapshot(CamelModel):
    """Versioned, timestamped serialization of a design session."""

    version: str = SNAPSHOT_VERSION
    timestamp: datetime = Field(default_factory=utcnow)
    current_step: DesignStep = DesignStep.WELCOME
    selected_template: Template | None = None
    bracelet_configuration: BraceletConfiguration | None = None
    design_state: PersistedDesignState = Field(default_factory=PersistedDesignState)


def flatten_selection(
    selected: dict[str, Component],
) -> tuple[list[tuple[str, str]], list[Component]]:
    """Split the position mapping into id pairs plus the distinct components."""
    pairs = [(position_id, component.id) for position_id, component in selected.items()]
    distinct: dict[str, Component] = {}
    for component in selected.values():
        distinct.setdefault(component.id, component)
    return pairs, list(distinct.values())


@dataclass
class RestoredSession:
    """A snapshot rehydrated into session-shaped values."""

    saved_at: datetime
    version: str
    current_step: DesignStep | None
    template: Template | None
    selected_components: dict[str, Component]
    design_data: DesignConfiguration
    bracelet_configuration: BraceletConfiguration | None
    warnings: list[str] = field(default_factory=list)


def rehydrate(
    snapshot: SessionSnapshot, catalog: Iterable[Component] = ()
) -> RestoredSession:
    """Rebuild the position mapping from stored pairs.

    Components resolve from the snapshot's own component list first, then
    from *catalog*. Pairs that resolve to nothing are dropped with a warning.
    """
    known: dict[str, Component] = {c.id: c for c in catalog}
    known.update({c.id: c for c in snapshot.design_state.components})

    selected: dict[str, Component] = {}
    warnings: list[str] = []
    for position_id, component_id in snapshot.design_state.selected_components:
        component = known.get(component_id)
        if component is None:
            warnings.append(f"Component {component_id} for position {position_id} not found")
            continue
        selected[position_id] = component

    step = snapshot.current_step if is_restorable(snapshot.current_step) else None
    bracelet = (
        snapshot.bracelet_configuration if snapshot.version in BRACELET_VERSIONS else None
    )
    return RestoredSession(
        saved_at=snapshot.timestamp,
        version=snapshot.version,
        current_step=step,
        template=snapshot.selected_template,
        selected_components=selected,
        design_data=snapshot.design_state.design_data,
        bracelet_configuration=bracelet,
        warnings=warnings,
    )


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------


SnapshotProvider = Callable[[], SessionSnapshot | None]


class PersistenceManager:
    """Debounced save / validated load of session snapshots.

    Parameters:
        store: Key/value back-end.
        key: Storage key of the snapshot; ``<key>-last-save`` holds the
            time of the last successful save.
        ttl: Maximum snapshot age on load.
        autosave_delay: Quiet period (seconds) before a scheduled save fires.
        scheduler: Timer source; an asyncio loop works, default is threads.
        clock: Returns the current aware UTC time.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        key: str = DEFAULT_STATE_KEY,
        ttl: timedelta = DEFAULT_TTL,
        autosave_delay: float = DEFAULT_AUTOSAVE_DELAY,
        scheduler: Scheduler | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._key = key
        self._last_save_key = f"{key}-last-save"
        self._ttl = ttl
        self._clock = clock
        self._provider: SnapshotProvider | None = None
        self._debouncer = Debouncer(autosave_delay, self.save_now, scheduler)

    def attach(self, provider: SnapshotProvider) -> None:
        """Register the callable that produces the snapshot at save time."""
        self._provider = provider

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def schedule(self) -> None:
        """Arm (or re-arm) the auto-save timer."""
        self._debouncer.trigger()

    @property
    def save_pending(self) -> bool:
        return self._debouncer.pending

    def flush(self) -> None:
        """Run a pending auto-save immediately."""
        self._debouncer.flush()

    def cancel(self) -> None:
        self._debouncer.cancel()

    def save_now(self) -> bool:
        """Write the current snapshot. Returns False when nothing was written."""
        if self._provider is None:
            return False
        try:
            snapshot = self._provider()
            if snapshot is None:
                return False
            snapshot = snapshot.model_copy(update={"timestamp": self._clock()})
            self._store.set(self._key, snapshot.model_dump_json(by_alias=True))
            self._store.set(self._last_save_key, snapshot.timestamp.isoformat())
        except Exception:
            logger.warning("Failed to save design session", exc_info=True)
            return False
        logger.debug("Saved design session (step=%s)", snapshot.current_step)
        return True

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> SessionSnapshot | None:
        """Read and validate the stored snapshot; invalid or stale ones are cleared."""
        try:
            raw = self._store.get(self._key)
        except Exception:
            logger.warning("Failed to read design session", exc_info=True)
            return None
        if raw is None:
            return None

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable design session")
            self.clear()
            return None

        version = data.get("version") if isinstance(data, dict) else None
        if version not in SUPPORTED_VERSIONS:
            logger.warning("Incompatible save data version %r, clearing", version)
            self._remove(self._key)
            return None

        try:
            snapshot = SessionSnapshot.model_validate(data)
        except ValidationError:
            logger.warning("Discarding malformed design session", exc_info=True)
            self.clear()
            return None

        if self._is_expired(snapshot.timestamp):
            logger.info("Saved design session expired, clearing")
            self.clear()
            return None
        return snapshot

    def restore(self, catalog: Iterable[Component] = ()) -> RestoredSession | None:
        """Load and rehydrate in one step."""
        snapshot = self.load()
        if snapshot is None:
            return None
        return rehydrate(snapshot, catalog)

    def has_saved_session(self) -> bool:
        """True when a snapshot exists and is within the TTL (version not checked)."""
        try:
            raw = self._store.get(self._key)
            if raw is None:
                return False
            timestamp = parse_iso(json.loads(raw)["timestamp"])
        except Exception:
            return False
        return not self._is_expired(timestamp)

    def last_save_time(self) -> datetime | None:
        try:
            raw = self._store.get(self._last_save_key)
            return parse_iso(raw) if raw else None
        except Exception:
            return None

    def clear(self) -> None:
        self._remove(self._key)
        self._remove(self._last_save_key)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _is_expired(self, timestamp: datetime) -> bool:
        if timestamp.tzinfo is None:
            timestamp = parse_iso(timestamp.isoformat())
        return self._clock() - timestamp > self._ttl

    def _remove(self, key: str) -> None:
        try:
            self._store.remove(key)
        except Exception:
            logger.warning("Failed to remove %s from storage", key, exc_info=True)

