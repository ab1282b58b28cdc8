"""
Zone planning session.

Holds the zone currently being configured, its cycle override and the list
of committed zones. Every tracked form change runs one full recomputation;
there are no partial field updates and no stale results.
"""
from typing import Any, Dict, Iterable, List, Optional
from dataclasses import dataclass, replace
from datetime import datetime, timezone
import logging
import threading
import uuid

from irrigation_planner.services.zone_calculator import (
    LiveCalculation,
    ZoneCalculator,
    ZoneFormData,
    ZoneInput,
    zone_calculator,
)
from irrigation_planner.services.cycle_override import (
    AUTOMATIC,
    CycleMode,
    CycleOverrideController,
    OVERRIDE_BREAKING_FIELDS,
    Override,
)
from irrigation_planner.services.aggregator import FleetReport, aggregate_zones

logger = logging.getLogger(__name__)

# Form fields the calculation depends on (the active override is the other dependency)
RECALCULATION_FIELDS = frozenset({
    "nozzle_type", "soil_type", "slope", "zone_type",
    "est_weekly_et", "est_weekly_rain", "pressure", "efficiency",
    "sunlight", "mowing_height",
})

# Cleared after a commit or reset; location, climate and water pricing carry over
ZONE_RESET_FIELDS = ("custom_zone_name", "zone_type", "zone_area_sq_ft", "nozzle_type", "efficiency")


class ZoneNotReadyError(ValueError):
    """Raised when committing a zone that has no calculation."""


class ZoneNotFoundError(LookupError):
    """Raised when a saved zone id is unknown."""


class SessionNotFoundError(LookupError):
    """Raised when a session id is unknown."""


@dataclass(frozen=True)
class RecalculationDecision:
    recompute: bool
    clear_override: bool


def evaluate_change(changed_fields: Iterable[str]) -> RecalculationDecision:
    """Decide whether a set of changed form fields needs a recompute or clears the override."""
    changed = frozenset(changed_fields)
    return RecalculationDecision(
        recompute=bool(changed & RECALCULATION_FIELDS),
        clear_override=bool(changed & OVERRIDE_BREAKING_FIELDS),
    )


@dataclass(frozen=True)
class SavedZone:
    """A committed zone snapshot, decoupled from further live recomputation."""
    id: str
    name: str
    stats: LiveCalculation
    form_data: ZoneFormData
    timestamp: datetime
    cycle_mode: CycleMode = AUTOMATIC

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "stats": self.stats.to_dict(),
            "form_data": self.form_data.to_dict(),
            "timestamp": self.timestamp.isoformat(),
            "manual_cycles": self.cycle_mode.cycles if isinstance(self.cycle_mode, Override) else None,
        }


class ZonePlanningSession:
    """One user's zone in progress plus the zones they have committed."""

    def __init__(self, calculator: Optional[ZoneCalculator] = None, form: Optional[ZoneFormData] = None):
        self.calculator = calculator or zone_calculator
        self.form = form or ZoneFormData()
        self.cycles = CycleOverrideController()
        self.saved_zones: List[SavedZone] = []
        self.editing_id: Optional[str] = None
        self.live: Optional[LiveCalculation] = None
        self._recalculate()

    @property
    def cycle_mode(self) -> CycleMode:
        return self.cycles.mode

    def _recalculate(self) -> Optional[LiveCalculation]:
        self.live = self.calculator.calculate(ZoneInput.from_form(self.form), self.cycles.mode)
        return self.live

    def _nozzle_efficiency_percent(self, nozzle_type: Optional[str]) -> Optional[str]:
        nozzle = self.calculator.tables.nozzle(nozzle_type)
        if nozzle is None:
            return None
        return f"{round(nozzle.efficiency * 100, 2):g}"

    def update_form(self, **changes) -> Optional[LiveCalculation]:
        """
        Apply raw form changes and recompute once if a tracked field changed.

        Selecting a nozzle pre-fills efficiency with the nozzle's default
        unless the same update sets efficiency explicitly.
        """
        unknown = set(changes) - ZoneFormData.field_names()
        if unknown:
            raise ValueError(f"Unknown zone form fields: {sorted(unknown)}")

        changed = {name for name, value in changes.items() if getattr(self.form, name) != value}
        if "nozzle_type" in changed and "efficiency" not in changes:
            default_efficiency = self._nozzle_efficiency_percent(changes["nozzle_type"])
            if default_efficiency is not None:
                changes["efficiency"] = default_efficiency
                if self.form.efficiency != default_efficiency:
                    changed.add("efficiency")

        self.form = replace(self.form, **changes)

        decision = evaluate_change(changed)
        if decision.clear_override:
            self.cycles.on_fields_changed(changed)
        if decision.recompute:
            self._recalculate()
        return self.live

    def adjust_cycles(self, delta: int) -> Optional[LiveCalculation]:
        """Step the cycle count up or down; no-op while there is no result."""
        if self.live is None:
            return None
        self.cycles.set_override(delta, self.live.cycles_per_day)
        return self._recalculate()

    def clear_cycle_override(self) -> Optional[LiveCalculation]:
        self.cycles.clear()
        return self._recalculate()

    def _find_zone(self, zone_id: str) -> SavedZone:
        for zone in self.saved_zones:
            if zone.id == zone_id:
                return zone
        raise ZoneNotFoundError(f"Zone '{zone_id}' not found")

    def commit_zone(self) -> SavedZone:
        """Save the current zone (or update the one being edited) and start the next."""
        if self.live is None:
            raise ZoneNotReadyError("Select a nozzle, soil, slope and zone type before saving the zone")

        now = datetime.now(timezone.utc)
        form_snapshot = replace(self.form)
        if self.editing_id is not None:
            previous = self._find_zone(self.editing_id)
            saved = SavedZone(
                id=previous.id,
                name=self.form.custom_zone_name or previous.name,
                stats=self.live,
                form_data=form_snapshot,
                timestamp=now,
                cycle_mode=self.cycles.mode,
            )
            self.saved_zones = [saved if z.id == previous.id else z for z in self.saved_zones]
            logger.info(f"Updated zone {saved.id} ({saved.name})")
        else:
            saved = SavedZone(
                id=uuid.uuid4().hex,
                name=self.form.custom_zone_name or f"Zone {len(self.saved_zones) + 1}",
                stats=self.live,
                form_data=form_snapshot,
                timestamp=now,
                cycle_mode=self.cycles.mode,
            )
            self.saved_zones = self.saved_zones + [saved]
            logger.info(f"Saved zone {saved.id} ({saved.name})")

        self.editing_id = None
        self.cycles.clear()
        self.update_form(**{name: None for name in ZONE_RESET_FIELDS})
        return saved

    def edit_zone(self, zone_id: str) -> Optional[LiveCalculation]:
        """Load a saved zone's form and cycle mode into the workspace for editing."""
        zone = self._find_zone(zone_id)
        self.form = replace(zone.form_data)
        self.editing_id = zone.id
        self.cycles.restore(zone.cycle_mode)
        return self._recalculate()

    def reset_zone(self) -> Optional[LiveCalculation]:
        """Clear the zone-specific fields without saving and leave edit mode."""
        self.editing_id = None
        self.cycles.clear()
        return self.update_form(**{name: None for name in ZONE_RESET_FIELDS})

    def fleet_report(self) -> FleetReport:
        return aggregate_zones(self.saved_zones)


class SessionStore:
    """In-memory sessions, isolated by id. Reference tables stay shared."""

    def __init__(self, calculator: Optional[ZoneCalculator] = None):
        self.calculator = calculator
        self._sessions: Dict[str, ZonePlanningSession] = {}
        self._lock = threading.Lock()

    def create(self) -> tuple:
        session_id = uuid.uuid4().hex
        session = ZonePlanningSession(calculator=self.calculator)
        with self._lock:
            self._sessions[session_id] = session
        logger.debug(f"Created session {session_id}")
        return session_id, session

    def get(self, session_id: str) -> ZonePlanningSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session '{session_id}' not found")
        return session

    def delete(self, session_id: str) -> None:
        with self._lock:
            if self._sessions.pop(session_id, None) is None:
                raise SessionNotFoundError(f"Session '{session_id}' not found")

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


# Singleton instance
_session_store: Optional[SessionStore] = None


def get_session_store() -> SessionStore:
    """Get or create the session store singleton."""
    global _session_store
    if _session_store is None:
        _session_store = SessionStore()
    return _session_store
