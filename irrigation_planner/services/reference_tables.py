"""
Reference tables for the zone calculator.

Static lookup data keyed by the values a user picks on the zone form:
- Nozzles (base precipitation rate, optimal pressure, default efficiency)
- Soils (infiltration rate, soak time, sandy texture flag)
- Slope buckets (runoff factor)
- Plant types (water-use factor, turf flag)
- Sunlight exposure (ET factor)

Tables are loaded once from JSON and shared read-only. The calculator takes
a ReferenceTables instance so tests can inject alternate tables.
"""
from typing import Any, Dict, Mapping, Optional
from dataclasses import dataclass, field, asdict
from types import MappingProxyType
import json
import logging

from irrigation_planner.core.config import Config
from irrigation_planner.services.irrigation_rules import (
    DEFAULT_INFILTRATION_RATE,
    DEFAULT_PLANT_FACTOR,
    DEFAULT_SLOPE_FACTOR,
    DEFAULT_SUN_FACTOR,
)

logger = logging.getLogger(__name__)

_reference_tables_cache = None


@dataclass(frozen=True)
class NozzleSpec:
    """Nozzle characteristics."""
    rate: float  # in/hr at optimal pressure
    optimal_psi: float
    efficiency: float  # distribution uniformity, 0-1
    label: str = ""


@dataclass(frozen=True)
class SoilSpec:
    """Soil texture characteristics."""
    infiltration_rate: float  # in/hr
    soak_time: int  # minutes between cycles
    sandy: bool = False


@dataclass(frozen=True)
class PlantSpec:
    """Plant category water-use factor."""
    factor: float
    turf: bool = False


def _freeze(mapping: Mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class ReferenceTables:
    """Immutable lookup tables used by the zone calculator."""
    nozzles: Mapping[str, NozzleSpec] = field(default_factory=dict)
    soils: Mapping[str, SoilSpec] = field(default_factory=dict)
    slopes: Mapping[str, float] = field(default_factory=dict)
    plant_types: Mapping[str, PlantSpec] = field(default_factory=dict)
    sunlight: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        for name in ("nozzles", "soils", "slopes", "plant_types", "sunlight"):
            object.__setattr__(self, name, _freeze(getattr(self, name)))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReferenceTables":
        """Build tables from the JSON layout of reference_tables.json."""
        return cls(
            nozzles={
                key: NozzleSpec(
                    rate=float(spec["rate"]),
                    optimal_psi=float(spec["optimal_psi"]),
                    efficiency=float(spec["efficiency"]),
                    label=spec.get("label", key),
                )
                for key, spec in data.get("nozzles", {}).items()
            },
            soils={
                key: SoilSpec(
                    infiltration_rate=float(spec["infiltration_rate"]),
                    soak_time=int(spec.get("soak_time", 0)),
                    sandy=bool(spec.get("sandy", False)),
                )
                for key, spec in data.get("soils", {}).items()
            },
            slopes={key: float(v) for key, v in data.get("slopes", {}).items()},
            plant_types={
                key: PlantSpec(factor=float(spec["factor"]), turf=bool(spec.get("turf", False)))
                for key, spec in data.get("plant_types", {}).items()
            },
            sunlight={key: float(v) for key, v in data.get("sunlight", {}).items()},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nozzles": {k: asdict(v) for k, v in self.nozzles.items()},
            "soils": {k: asdict(v) for k, v in self.soils.items()},
            "slopes": dict(self.slopes),
            "plant_types": {k: asdict(v) for k, v in self.plant_types.items()},
            "sunlight": dict(self.sunlight),
        }

    def nozzle(self, nozzle_type: Optional[str]) -> Optional[NozzleSpec]:
        return self.nozzles.get(nozzle_type) if nozzle_type else None

    def infiltration_rate(self, soil_type: Optional[str]) -> float:
        soil = self.soils.get(soil_type) if soil_type else None
        return soil.infiltration_rate if soil else DEFAULT_INFILTRATION_RATE

    def soak_time(self, soil_type: Optional[str]) -> int:
        soil = self.soils.get(soil_type) if soil_type else None
        return soil.soak_time if soil else 0

    def is_sandy(self, soil_type: Optional[str]) -> bool:
        soil = self.soils.get(soil_type) if soil_type else None
        return bool(soil and soil.sandy)

    def slope_factor(self, slope: Optional[str]) -> float:
        return self.slopes.get(slope, DEFAULT_SLOPE_FACTOR) if slope else DEFAULT_SLOPE_FACTOR

    def plant_factor(self, zone_type: Optional[str]) -> float:
        plant = self.plant_types.get(zone_type) if zone_type else None
        return plant.factor if plant else DEFAULT_PLANT_FACTOR

    def is_turf(self, zone_type: Optional[str]) -> bool:
        plant = self.plant_types.get(zone_type) if zone_type else None
        return bool(plant and plant.turf)

    def sun_factor(self, sunlight: Optional[str]) -> float:
        return self.sunlight.get(sunlight, DEFAULT_SUN_FACTOR) if sunlight else DEFAULT_SUN_FACTOR


def clear_reference_tables_cache():
    """Clear the cache to reload reference tables on next call."""
    global _reference_tables_cache
    _reference_tables_cache = None


def load_reference_tables(path: Optional[str] = None) -> ReferenceTables:
    """
    Load reference tables from JSON.

    Args:
        path: Optional JSON path. When omitted, the configured path is used
            and the result is cached for the life of the process.

    Returns:
        ReferenceTables (empty tables if the file cannot be read, in which case
        every lookup falls back to its default).
    """
    global _reference_tables_cache
    if path is None and _reference_tables_cache is not None:
        return _reference_tables_cache

    source = path or Config.REFERENCE_TABLES_PATH
    try:
        with open(source, "r", encoding="utf-8") as f:
            tables = ReferenceTables.from_dict(json.load(f))
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
        logger.error(f"Error loading reference tables from {source}: {e}")
        return ReferenceTables()

    logger.debug(
        f"Loaded reference tables: {len(tables.nozzles)} nozzles, "
        f"{len(tables.soils)} soils, {len(tables.plant_types)} plant types"
    )
    if path is None:
        _reference_tables_cache = tables
    return tables
