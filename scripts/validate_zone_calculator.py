#!/usr/bin/env python3
"""
Zone Calculator Validation Script
Runs randomized zone scenarios and checks the calculator invariants:
frequency and cycle bounds, the turf root-depth policy, the runoff
ceiling, sandy split cycles, pressure monotonicity and idempotence.
"""
import sys
import os
import random
import json
from dataclasses import replace
from typing import Any, Dict, List

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from irrigation_planner.services.zone_calculator import ZoneInput, zone_calculator
from irrigation_planner.services.cycle_override import Override

PRESSURES = [None, 0, 15, 25, 30, 40, 50, 65, 80, 100]
MOWING_HEIGHTS = [None, 0.5, 0.75, 1.0, 1.5, 1.75, 2.0, 2.5, 3.0, 4.0]


def random_zone(tables) -> ZoneInput:
    return ZoneInput(
        nozzle_type=random.choice(list(tables.nozzles)),
        soil_type=random.choice(list(tables.soils)),
        slope=random.choice(list(tables.slopes)),
        zone_type=random.choice(list(tables.plant_types)),
        pressure=random.choice(PRESSURES),
        efficiency=random.choice([None, None, round(random.uniform(40, 95))]),
        sunlight=random.choice([None] + list(tables.sunlight)),
        est_weekly_et=random.choice([None, round(random.uniform(0.3, 3.0), 2)]),
        est_weekly_rain=random.choice([None, 0.0, round(random.uniform(0.0, 1.5), 2)]),
        mowing_height=random.choice(MOWING_HEIGHTS),
    )


def check_zone(zone: ZoneInput) -> List[str]:
    """Return the invariant violations for one zone."""
    tables = zone_calculator.tables
    issues = []
    result = zone_calculator.calculate(zone)

    if not 1 <= result.suggested_frequency <= 7:
        issues.append(f"frequency {result.suggested_frequency} out of range")
    if not 1 <= result.cycles_per_day <= 10:
        issues.append(f"cycles {result.cycles_per_day} out of range")

    if tables.is_turf(zone.zone_type):
        height = zone.mowing_height if zone.mowing_height is not None else 3.0
        if height >= 2.0 and result.suggested_frequency > 4:
            issues.append(f"deep-root turf watered {result.suggested_frequency} days")
        if height <= 0.75 and result.suggested_frequency != 7:
            issues.append(f"scalped turf watered {result.suggested_frequency} days")

    if result.precip_rate <= tables.infiltration_rate(zone.soil_type) and result.max_run_time != 60:
        issues.append(f"max run {result.max_run_time} without runoff risk")
    if tables.is_sandy(zone.soil_type) and result.cycles_per_day < 2:
        issues.append("sandy soil with a single cycle")
    if result.cycles_per_day == 1 and result.recommended_soak_time != 0:
        issues.append("soak time on a single cycle")

    if zone_calculator.calculate(zone) != result:
        issues.append("not idempotent")

    lower = zone_calculator.calculate_precip_rate(replace(zone, pressure=20))
    higher = zone_calculator.calculate_precip_rate(replace(zone, pressure=60))
    if lower > higher:
        issues.append("precipitation rate decreases with pressure")

    overridden = zone_calculator.calculate(zone, Override(random.randint(-2, 14)))
    if not 1 <= overridden.cycles_per_day <= 10:
        issues.append(f"override produced {overridden.cycles_per_day} cycles")

    return issues


def run_validation(num_tests: int = 500, seed: int = 42) -> Dict[str, Any]:
    random.seed(seed)
    tables = zone_calculator.tables

    anomalies = []
    stats = {
        "total_tests": num_tests,
        "passed": 0,
        "failed": 0,
        "runoff_warnings": 0,
        "estimated_et": 0,
        "frequency_histogram": {str(d): 0 for d in range(1, 8)},
        "cycles_histogram": {str(c): 0 for c in range(1, 11)},
    }

    for i in range(num_tests):
        zone = random_zone(tables)
        issues = check_zone(zone)
        result = zone_calculator.calculate(zone)

        stats["frequency_histogram"][str(result.suggested_frequency)] += 1
        stats["cycles_histogram"][str(result.cycles_per_day)] += 1
        if result.runoff_warning:
            stats["runoff_warnings"] += 1
        if result.is_est_data:
            stats["estimated_et"] += 1

        if issues:
            stats["failed"] += 1
            anomalies.append({
                "test_id": i + 1,
                "zone": zone.__dict__,
                "issues": issues,
            })
        else:
            stats["passed"] += 1

    return {"stats": stats, "anomalies": anomalies}


def generate_report(validation: Dict) -> str:
    stats = validation["stats"]
    lines = [
        "=" * 60,
        "ZONE CALCULATOR VALIDATION",
        "=" * 60,
        f"Scenarios: {stats['total_tests']}",
        f"Passed:    {stats['passed']}",
        f"Failed:    {stats['failed']}",
        f"Runoff warnings (cycle longer than ceiling): {stats['runoff_warnings']}",
        f"Zones on fallback ET: {stats['estimated_et']}",
        "",
        "Frequency (days/week):",
    ]
    for days, count in stats["frequency_histogram"].items():
        lines.append(f"  {days}: {count}")
    lines.append("Cycles per day:")
    for cycles, count in stats["cycles_histogram"].items():
        lines.append(f"  {cycles}: {count}")

    if validation["anomalies"]:
        lines.append("")
        lines.append("ANOMALIES:")
        for anomaly in validation["anomalies"][:20]:
            lines.append(f"  #{anomaly['test_id']}: {'; '.join(anomaly['issues'])}")
    return "\n".join(lines)


if __name__ == "__main__":
    print("Running zone calculator validation (500 scenarios)...")
    print("")

    validation = run_validation(num_tests=500, seed=42)

    report = generate_report(validation)
    print(report)

    with open("zone_calculator_validation_data.json", "w", encoding="utf-8") as f:
        json.dump(validation, f, indent=2)

    print("\nGenerated: zone_calculator_validation_data.json")
    sys.exit(1 if validation["stats"]["failed"] else 0)
