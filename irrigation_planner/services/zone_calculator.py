"""
Zone Calculator Service.

Turns one irrigation zone's inputs into a watering plan:
- Precipitation rate (nozzle base rate, square-root pressure law)
- Net weekly water need (ET x plant factor x sun factor - rain)
- Weekly and daily runtime, corrected by distribution efficiency
- Watering frequency (soil holding capacity, turf root-depth policy)
- Cycle-and-soak split (runoff ceiling from soil infiltration and slope)

The calculator is a pure function of its inputs, the reference tables and
the active cycle mode. It never raises for business-rule edge cases; a
missing required field yields None.
"""
from typing import Any, Dict, Optional
from dataclasses import dataclass, asdict, fields
import math
import logging

from irrigation_planner.services.reference_tables import ReferenceTables, load_reference_tables
from irrigation_planner.services.cycle_override import (
    CycleMode,
    Override,
    clamp_cycles,
    cycle_mode_from_manual,
)
from irrigation_planner.services.irrigation_rules import (
    DEFAULT_EFFICIENCY,
    DEFAULT_MOWING_HEIGHT_IN,
    DEEP_ROOT_HEIGHT_IN,
    DEEP_ROOT_MAX_FREQUENCY,
    FALLBACK_WEEKLY_ET_IN,
    HIGH_PRESSURE_PSI,
    LOAM_CLAY_FREQUENCY_FLOOR,
    LOAM_CLAY_FREQUENCY_THRESHOLDS,
    LOW_PRESSURE_PSI,
    MAX_FREQUENCY,
    MEDIUM_TURF_MIN_FREQUENCY,
    MIN_CYCLE_RUN_MINUTES,
    MIN_FREQUENCY,
    NO_RUNOFF_MAX_RUN_MINUTES,
    PRESSURE_MULTIPLIER_MAX,
    PRESSURE_MULTIPLIER_MIN,
    SANDY_FREQUENCY_FLOOR,
    SANDY_FREQUENCY_THRESHOLDS,
    SANDY_MIN_CYCLES,
    SCALP_FREQUENCY,
    SCALP_HEIGHT_IN,
    SHORT_TURF_HEIGHT_IN,
    SHORT_TURF_MIN_FREQUENCY,
    DEFAULT_WATER_PRICE_PER_1000_GAL,
    DEFAULT_WATER_SOURCE,
)

logger = logging.getLogger(__name__)


def parse_float(value: Any) -> Optional[float]:
    """Parse a decimal string or number; invalid or missing values become None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_int(value: Any) -> Optional[int]:
    number = parse_float(value)
    return int(number) if number is not None else None


def parse_key(value: Any) -> Optional[str]:
    if value is None:
        return None
    key = str(value).strip()
    return key or None


@dataclass
class ZoneFormData:
    """Raw form state for one zone. Numeric fields may be strings or numbers."""
    custom_zone_name: Optional[str] = None
    zone_type: Optional[str] = None
    zone_area_sq_ft: Any = None
    mowing_height: Any = None
    location: Optional[str] = None
    zip_code: Optional[str] = None
    month: Optional[str] = None
    est_weekly_et: Any = None
    est_weekly_rain: Any = None
    nozzle_type: Optional[str] = None
    pressure: Any = None
    efficiency: Any = None
    soil_type: Optional[str] = None
    slope: Optional[str] = None
    sunlight: Optional[str] = None
    water_source: str = DEFAULT_WATER_SOURCE
    water_price: Any = f"{DEFAULT_WATER_PRICE_PER_1000_GAL:.2f}"

    @classmethod
    def field_names(cls) -> frozenset:
        return frozenset(f.name for f in fields(cls))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ZoneInput:
    """Parsed calculator inputs for one zone."""
    nozzle_type: Optional[str] = None
    soil_type: Optional[str] = None
    slope: Optional[str] = None
    zone_type: Optional[str] = None
    pressure: Optional[float] = None  # PSI
    efficiency: Optional[float] = None  # percent
    sunlight: Optional[str] = None
    est_weekly_et: Optional[float] = None  # inches/week
    est_weekly_rain: Optional[float] = None  # inches/week
    mowing_height: Optional[float] = None  # inches
    manual_cycles: Optional[int] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.nozzle_type and self.soil_type and self.slope and self.zone_type)

    @classmethod
    def from_form(cls, form: ZoneFormData, manual_cycles: Optional[int] = None) -> "ZoneInput":
        return cls(
            nozzle_type=parse_key(form.nozzle_type),
            soil_type=parse_key(form.soil_type),
            slope=parse_key(form.slope),
            zone_type=parse_key(form.zone_type),
            pressure=parse_float(form.pressure),
            efficiency=parse_float(form.efficiency),
            sunlight=parse_key(form.sunlight),
            est_weekly_et=parse_float(form.est_weekly_et),
            est_weekly_rain=parse_float(form.est_weekly_rain),
            mowing_height=parse_float(form.mowing_height),
            manual_cycles=manual_cycles,
        )


@dataclass(frozen=True)
class LiveCalculation:
    """Computed watering plan for one zone."""
    precip_rate: float  # in/hr, pressure-adjusted
    weekly_total_minutes: int
    suggested_frequency: int  # days/week
    daily_run_time: int  # minutes
    max_run_time: int  # minutes per cycle before runoff
    recommended_soak_time: int  # minutes
    cycles_per_day: int
    minutes_per_cycle: int
    inches_applied_per_day: float
    is_est_data: bool
    efficiency: float  # fraction applied

    @property
    def runoff_warning(self) -> bool:
        """True when a single cycle runs longer than the runoff ceiling."""
        return self.minutes_per_cycle > self.max_run_time

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["runoff_warning"] = self.runoff_warning
        return data


@dataclass(frozen=True)
class PressureStatus:
    level: str  # "warn" or "success"
    message: str


def pressure_status(psi: Any) -> Optional[PressureStatus]:
    """Advice on system pressure, or None when no pressure was entered."""
    value = parse_float(psi)
    if value is None:
        return None
    if value < LOW_PRESSURE_PSI:
        return PressureStatus("warn", "Low PSI reduces flow.")
    if value > HIGH_PRESSURE_PSI:
        return PressureStatus("warn", "High PSI causes misting.")
    return PressureStatus("success", "PSI OK.")


class ZoneCalculator:
    """
    Calculator for zone watering plans.

    Methodology:
    1. Adjust the nozzle precipitation rate for actual pressure
    2. Compute net weekly water need from ET, plant, sun and rain
    3. Convert need to runtime using the efficiency-corrected rate
    4. Pick a frequency from soil texture and turf mowing height
    5. Split daily runtime into cycles below the runoff ceiling
    """

    def __init__(self, tables: Optional[ReferenceTables] = None):
        self.tables = tables if tables is not None else load_reference_tables()

    def calculate_precip_rate(self, zone: ZoneInput) -> float:
        nozzle = self.tables.nozzle(zone.nozzle_type)
        if nozzle is None:
            logger.warning(f"Unknown nozzle type '{zone.nozzle_type}', using zero precipitation rate")
            return 0.0

        if zone.pressure is None or zone.pressure <= 0 or nozzle.optimal_psi <= 0:
            return nozzle.rate

        multiplier = math.sqrt(zone.pressure / nozzle.optimal_psi)
        multiplier = min(max(multiplier, PRESSURE_MULTIPLIER_MIN), PRESSURE_MULTIPLIER_MAX)
        return round(nozzle.rate * multiplier, 2)

    def resolve_efficiency(self, zone: ZoneInput) -> float:
        if zone.efficiency is not None:
            return zone.efficiency / 100
        nozzle = self.tables.nozzle(zone.nozzle_type)
        return nozzle.efficiency if nozzle and nozzle.efficiency else DEFAULT_EFFICIENCY

    def calculate_net_weekly_inches(self, zone: ZoneInput) -> tuple:
        """Returns (net weekly inches, whether the ET fallback was used)."""
        is_est_data = not zone.est_weekly_et
        base_et = FALLBACK_WEEKLY_ET_IN if is_est_data else zone.est_weekly_et

        adjusted_et = base_et * self.tables.plant_factor(zone.zone_type) * self.tables.sun_factor(zone.sunlight)
        rain = zone.est_weekly_rain or 0.0
        return max(0.0, adjusted_et - rain), is_est_data

    def suggest_frequency(self, zone: ZoneInput, net_weekly_inches: float) -> int:
        """Days per week, from soil holding capacity then turf root depth."""
        if self.tables.is_sandy(zone.soil_type):
            thresholds, frequency = SANDY_FREQUENCY_THRESHOLDS, SANDY_FREQUENCY_FLOOR
        else:
            thresholds, frequency = LOAM_CLAY_FREQUENCY_THRESHOLDS, LOAM_CLAY_FREQUENCY_FLOOR
        for threshold, days in thresholds:
            if net_weekly_inches > threshold:
                frequency = days
                break

        if self.tables.is_turf(zone.zone_type):
            height = zone.mowing_height if zone.mowing_height is not None else DEFAULT_MOWING_HEIGHT_IN
            if height <= SCALP_HEIGHT_IN:
                frequency = SCALP_FREQUENCY
            elif height <= SHORT_TURF_HEIGHT_IN:
                frequency = max(frequency, SHORT_TURF_MIN_FREQUENCY)
            elif height < DEEP_ROOT_HEIGHT_IN:
                frequency = max(frequency, MEDIUM_TURF_MIN_FREQUENCY)
            else:
                # Deep and infrequent wins over heat and sand
                frequency = min(frequency, DEEP_ROOT_MAX_FREQUENCY)

        return max(MIN_FREQUENCY, min(MAX_FREQUENCY, frequency))

    def calculate_max_run_time(self, zone: ZoneInput, precip_rate: float) -> int:
        infiltration = self.tables.infiltration_rate(zone.soil_type)
        if precip_rate <= infiltration:
            return NO_RUNOFF_MAX_RUN_MINUTES
        runoff_ratio = infiltration / precip_rate
        max_run_time = math.floor(60 * runoff_ratio * self.tables.slope_factor(zone.slope))
        return max(MIN_CYCLE_RUN_MINUTES, max_run_time)

    def automatic_cycles(self, zone: ZoneInput, daily_run_time: int, max_run_time: int) -> int:
        cycles = math.ceil(daily_run_time / max_run_time)
        if self.tables.is_sandy(zone.soil_type) and cycles < SANDY_MIN_CYCLES:
            cycles = SANDY_MIN_CYCLES
        return clamp_cycles(cycles)

    def calculate(self, zone: ZoneInput, cycle_mode: Optional[CycleMode] = None) -> Optional[LiveCalculation]:
        """
        Compute the watering plan for one zone.

        Args:
            zone: Parsed zone inputs
            cycle_mode: Automatic() or Override(n). When omitted the zone's
                manual_cycles field decides.

        Returns:
            LiveCalculation, or None when nozzle, soil, slope or zone type
            is missing.
        """
        if not zone.is_complete:
            return None
        if cycle_mode is None:
            cycle_mode = cycle_mode_from_manual(zone.manual_cycles)

        precip_rate = self.calculate_precip_rate(zone)
        efficiency = self.resolve_efficiency(zone)
        net_weekly_inches, is_est_data = self.calculate_net_weekly_inches(zone)

        # Lower efficiency means a longer run for the same usable water
        effective_pr = precip_rate * efficiency
        weekly_total_minutes = math.ceil(net_weekly_inches / effective_pr * 60) if effective_pr > 0 else 0

        suggested_frequency = self.suggest_frequency(zone, net_weekly_inches)
        daily_run_time = math.ceil(weekly_total_minutes / suggested_frequency) if suggested_frequency > 0 else 0
        inches_applied_per_day = round((daily_run_time / 60) * effective_pr, 2) if daily_run_time > 0 else 0.0

        max_run_time = self.calculate_max_run_time(zone, precip_rate)

        if isinstance(cycle_mode, Override):
            cycles_per_day = cycle_mode.cycles
        else:
            cycles_per_day = self.automatic_cycles(zone, daily_run_time, max_run_time)

        minutes_per_cycle = math.ceil(daily_run_time / cycles_per_day)
        recommended_soak_time = self.tables.soak_time(zone.soil_type) if cycles_per_day > 1 else 0

        return LiveCalculation(
            precip_rate=precip_rate,
            weekly_total_minutes=weekly_total_minutes,
            suggested_frequency=suggested_frequency,
            daily_run_time=daily_run_time,
            max_run_time=max_run_time,
            recommended_soak_time=recommended_soak_time,
            cycles_per_day=cycles_per_day,
            minutes_per_cycle=minutes_per_cycle,
            inches_applied_per_day=inches_applied_per_day,
            is_est_data=is_est_data,
            efficiency=efficiency,
        )


# Singleton instance
zone_calculator = ZoneCalculator()


def recalculate(
    zone: ZoneInput,
    cycle_mode: Optional[CycleMode] = None,
    tables: Optional[ReferenceTables] = None,
) -> Optional[LiveCalculation]:
    """Recompute a zone plan from scratch with the shared or the given tables."""
    calculator = zone_calculator if tables is None else ZoneCalculator(tables)
    return calculator.calculate(zone, cycle_mode)


def get_zone_calculator() -> ZoneCalculator:
    """Return the shared zone calculator."""
    return zone_calculator
