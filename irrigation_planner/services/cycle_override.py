"""
Manual cycle-count override for the zone in progress.

The calculator's automatic cycle count can be superseded by a user-chosen
value. The active mode is a tagged value: Automatic() or Override(cycles).
An override is tuned against the soil/nozzle/slope runoff relationship, so
changing any of those fields invalidates it.
"""
from typing import Iterable, Optional, Union
from dataclasses import dataclass
import logging

from irrigation_planner.services.irrigation_rules import MIN_CYCLES, MAX_CYCLES

logger = logging.getLogger(__name__)

# Fields whose change clears an active override
OVERRIDE_BREAKING_FIELDS = frozenset({"nozzle_type", "soil_type", "slope"})


@dataclass(frozen=True)
class Automatic:
    """Use the calculator's automatic cycle count."""


@dataclass(frozen=True)
class Override:
    """Use a user-chosen cycle count."""
    cycles: int

    def __post_init__(self):
        object.__setattr__(self, "cycles", clamp_cycles(self.cycles))


CycleMode = Union[Automatic, Override]

AUTOMATIC = Automatic()


def clamp_cycles(cycles: int) -> int:
    return max(MIN_CYCLES, min(MAX_CYCLES, int(cycles)))


def cycle_mode_from_manual(manual_cycles: Optional[int]) -> CycleMode:
    """Map an optional manual cycle count onto a cycle mode."""
    if manual_cycles is None:
        return AUTOMATIC
    return Override(manual_cycles)


class CycleOverrideController:
    """Holds at most one active override for a zone in progress."""

    def __init__(self):
        self._mode: CycleMode = AUTOMATIC

    @property
    def mode(self) -> CycleMode:
        return self._mode

    @property
    def is_overridden(self) -> bool:
        return isinstance(self._mode, Override)

    def set_override(self, delta: int, automatic_cycles: int) -> CycleMode:
        """
        Step the active cycle count by delta.

        The step is relative to the current override when present, otherwise
        to the calculator's last automatic value. Results outside [1, 10]
        are clamped, never rejected.
        """
        current = self._mode.cycles if isinstance(self._mode, Override) else automatic_cycles
        self._mode = Override(current + delta)
        logger.debug(f"Cycle override set to {self._mode.cycles} (delta {delta:+d})")
        return self._mode

    def clear(self) -> CycleMode:
        self._mode = AUTOMATIC
        return self._mode

    def restore(self, mode: CycleMode) -> CycleMode:
        """Reinstate a previously recorded mode, e.g. when a saved zone is reopened."""
        self._mode = mode
        return self._mode

    def on_fields_changed(self, changed_fields: Iterable[str]) -> bool:
        """Clear the override if a breaking field changed. Returns True if cleared."""
        if not self.is_overridden:
            return False
        breaking = OVERRIDE_BREAKING_FIELDS.intersection(changed_fields)
        if not breaking:
            return False
        logger.debug(f"Cycle override cleared by change to {sorted(breaking)}")
        self.clear()
        return True
