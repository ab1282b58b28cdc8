"""
Water use and cost aggregation across committed zones.

Gallons per week come from the depth applied over the zone area; monthly
cost applies the user's price per 1000 gallons. Secondary (unmetered)
water is cost-exempt but still counts toward total gallons.
"""
from typing import Any, Dict, Iterable, List, Optional
from dataclasses import dataclass, field, asdict
import logging

from irrigation_planner.services.zone_calculator import LiveCalculation, parse_float
from irrigation_planner.services.irrigation_rules import (
    DEFAULT_WATER_PRICE_PER_1000_GAL,
    GALLONS_PER_INCH_SQFT,
    SECONDARY_WATER_SOURCE,
    WEEKS_PER_MONTH,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ZoneUsage:
    """Weekly gallons and monthly cost for one zone."""
    zone_id: Optional[str]
    name: str
    area_sq_ft: Optional[float]
    precip_rate: float
    weekly_total_minutes: int
    suggested_frequency: int
    cycles_per_day: int
    minutes_per_cycle: int
    gallons_per_week: int
    monthly_cost: float
    cost_exempt: bool

    @property
    def cycle_label(self) -> str:
        return f"{self.minutes_per_cycle}m x {self.cycles_per_day}"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["cycle_label"] = self.cycle_label
        return data


@dataclass(frozen=True)
class FleetReport:
    """Totals across all committed zones."""
    zones: List[ZoneUsage] = field(default_factory=list)
    total_gallons_per_week: int = 0
    total_monthly_cost: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "zones": [z.to_dict() for z in self.zones],
            "total_gallons_per_week": self.total_gallons_per_week,
            "total_monthly_cost": self.total_monthly_cost,
        }


def calculate_weekly_gallons(stats: LiveCalculation, area_sq_ft: Optional[float]) -> int:
    """Gallons per week = inches applied x area x 0.623; 0 without an area."""
    if not area_sq_ft:
        return 0
    inches = (stats.weekly_total_minutes / 60) * stats.precip_rate
    return round(inches * area_sq_ft * GALLONS_PER_INCH_SQFT)


def calculate_monthly_cost(gallons_per_week: int, price_per_1000_gal: float) -> float:
    return (gallons_per_week * WEEKS_PER_MONTH / 1000) * price_per_1000_gal


def is_cost_exempt(water_source: Optional[str]) -> bool:
    return water_source == SECONDARY_WATER_SOURCE


def calculate_zone_usage(
    stats: LiveCalculation,
    area_sq_ft: Any = None,
    water_source: Optional[str] = None,
    water_price: Any = None,
    name: str = "",
    zone_id: Optional[str] = None,
) -> ZoneUsage:
    """
    Derive gallons and cost for one zone.

    Args:
        stats: The zone's LiveCalculation
        area_sq_ft: Zone area (number or decimal string)
        water_source: "Secondary" marks unmetered water (cost 0)
        water_price: Dollars per 1000 gallons, default 3.00
        name: Display name
        zone_id: Saved-zone identity, if any
    """
    area = parse_float(area_sq_ft)
    gallons = calculate_weekly_gallons(stats, area)
    exempt = is_cost_exempt(water_source)
    if exempt:
        cost = 0.0
    else:
        price = parse_float(water_price)
        if price is None:
            price = DEFAULT_WATER_PRICE_PER_1000_GAL
        cost = calculate_monthly_cost(gallons, price)

    return ZoneUsage(
        zone_id=zone_id,
        name=name,
        area_sq_ft=area,
        precip_rate=stats.precip_rate,
        weekly_total_minutes=stats.weekly_total_minutes,
        suggested_frequency=stats.suggested_frequency,
        cycles_per_day=stats.cycles_per_day,
        minutes_per_cycle=stats.minutes_per_cycle,
        gallons_per_week=gallons,
        monthly_cost=cost,
        cost_exempt=exempt,
    )


def aggregate_usage(usages: Iterable[ZoneUsage]) -> FleetReport:
    rows = list(usages)
    total_gallons = sum(row.gallons_per_week for row in rows)
    total_cost = sum(row.monthly_cost for row in rows if not row.cost_exempt)
    return FleetReport(zones=rows, total_gallons_per_week=total_gallons, total_monthly_cost=total_cost)


def aggregate_zones(saved_zones: Iterable) -> FleetReport:
    """Build the fleet report for a sequence of SavedZone snapshots."""
    rows = [
        calculate_zone_usage(
            zone.stats,
            area_sq_ft=zone.form_data.zone_area_sq_ft,
            water_source=zone.form_data.water_source,
            water_price=zone.form_data.water_price,
            name=zone.name,
            zone_id=zone.id,
        )
        for zone in saved_zones
    ]
    report = aggregate_usage(rows)
    logger.debug(
        f"Fleet report: {len(rows)} zones, {report.total_gallons_per_week} gal/week, "
        f"${report.total_monthly_cost:.2f}/month"
    )
    return report
