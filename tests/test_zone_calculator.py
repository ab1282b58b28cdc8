"""
Tests for the zone calculator.

Covers the watering-plan pipeline end to end:
1. Pressure-adjusted precipitation rate
2. Net weekly need and the ET fallback
3. Frequency policy (soil texture, turf mowing height)
4. Runoff ceiling and cycle-and-soak split
"""
import pytest
from dataclasses import replace

from irrigation_planner.services.cycle_override import AUTOMATIC, Override
from irrigation_planner.services.reference_tables import ReferenceTables
from irrigation_planner.services.zone_calculator import (
    ZoneCalculator,
    ZoneFormData,
    ZoneInput,
    parse_float,
    parse_int,
    pressure_status,
    recalculate,
)


class TestParsing:
    """Tests for raw form value parsing."""

    def test_decimal_strings(self):
        assert parse_float("1.25") == 1.25
        assert parse_float(" 30 ") == 30.0
        assert parse_float(2) == 2.0

    def test_invalid_values_are_absent(self):
        assert parse_float("") is None
        assert parse_float("abc") is None
        assert parse_float(None) is None
        assert parse_float("nan") is None
        assert parse_float(True) is None

    def test_parse_int_truncates(self):
        assert parse_int("3.7") == 3
        assert parse_int("x") is None

    def test_from_form_parses_numerics(self, complete_form):
        zone = ZoneInput.from_form(replace(complete_form, est_weekly_et="1.1", efficiency="bad"))
        assert zone.pressure == 30.0
        assert zone.est_weekly_et == 1.1
        assert zone.efficiency is None
        assert zone.is_complete


class TestMissingInputs:
    """A missing required field yields no result rather than an error."""

    @pytest.mark.parametrize("field", ["nozzle_type", "soil_type", "slope", "zone_type"])
    def test_required_field_missing(self, calculator, spray_on_loam, field):
        zone = replace(spray_on_loam, **{field: None})
        assert calculator.calculate(zone) is None

    def test_empty_form(self, calculator):
        assert calculator.calculate(ZoneInput.from_form(ZoneFormData())) is None


class TestPrecipitationRate:
    """Tests for the square-root pressure law."""

    def test_optimal_pressure_keeps_base_rate(self, calculator, spray_on_loam):
        assert calculator.calculate_precip_rate(spray_on_loam) == 1.5

    def test_absent_or_zero_pressure_uses_base_rate(self, calculator, spray_on_loam):
        assert calculator.calculate_precip_rate(replace(spray_on_loam, pressure=None)) == 1.5
        assert calculator.calculate_precip_rate(replace(spray_on_loam, pressure=0)) == 1.5
        assert calculator.calculate_precip_rate(replace(spray_on_loam, pressure=-10)) == 1.5

    def test_monotonic_in_pressure(self, calculator, spray_on_loam):
        rates = [
            calculator.calculate_precip_rate(replace(spray_on_loam, pressure=psi))
            for psi in (5, 10, 20, 30, 40, 55, 70, 90, 120)
        ]
        assert rates == sorted(rates)

    def test_multiplier_saturates(self, calculator, spray_on_loam):
        low = calculator.calculate_precip_rate(replace(spray_on_loam, pressure=1))
        high = calculator.calculate_precip_rate(replace(spray_on_loam, pressure=1000))
        assert low == pytest.approx(0.75)
        assert high == pytest.approx(2.25)

    def test_unknown_nozzle_has_zero_rate(self, calculator, spray_on_loam):
        zone = replace(spray_on_loam, nozzle_type="Mystery Head")
        assert calculator.calculate_precip_rate(zone) == 0.0
        result = calculator.calculate(zone)
        assert result.weekly_total_minutes == 0
        assert result.cycles_per_day >= 1


class TestEfficiency:

    def test_nozzle_default(self, calculator, spray_on_loam):
        assert calculator.resolve_efficiency(spray_on_loam) == pytest.approx(0.70)

    def test_override_percentage(self, calculator, spray_on_loam):
        assert calculator.resolve_efficiency(replace(spray_on_loam, efficiency=85)) == pytest.approx(0.85)

    def test_lower_efficiency_runs_longer(self, calculator, spray_on_loam):
        efficient = calculator.calculate(replace(spray_on_loam, efficiency=90))
        leaky = calculator.calculate(replace(spray_on_loam, efficiency=50))
        assert leaky.weekly_total_minutes > efficient.weekly_total_minutes


class TestNetWeeklyNeed:

    def test_fallback_et_for_cool_season_turf(self, calculator, spray_on_loam):
        net, is_est = calculator.calculate_net_weekly_inches(spray_on_loam)
        assert net == pytest.approx(1.1875)
        assert is_est is True

    def test_supplied_et_and_rain(self, calculator, spray_on_loam):
        zone = replace(spray_on_loam, est_weekly_et=2.0, est_weekly_rain=0.5, sunlight="Shade")
        net, is_est = calculator.calculate_net_weekly_inches(zone)
        assert net == pytest.approx(2.0 * 0.95 * 0.8 - 0.5)
        assert is_est is False

    def test_rain_exceeding_need_floors_at_zero(self, calculator, spray_on_loam):
        zone = replace(spray_on_loam, est_weekly_et=1.0, est_weekly_rain=3.0)
        net, _ = calculator.calculate_net_weekly_inches(zone)
        assert net == 0.0
        result = calculator.calculate(zone)
        assert result.weekly_total_minutes == 0
        assert result.daily_run_time == 0
        assert result.inches_applied_per_day == 0.0


class TestFrequency:
    """Tests for the frequency policy."""

    def test_loam_thresholds(self, calculator):
        zone = ZoneInput(soil_type="Loam", zone_type="Trees")
        assert calculator.suggest_frequency(zone, 1.5) == 4
        assert calculator.suggest_frequency(zone, 1.0) == 3
        assert calculator.suggest_frequency(zone, 0.3) == 2

    def test_sandy_thresholds(self, calculator):
        zone = ZoneInput(soil_type="Sandy Loam", zone_type="Trees")
        assert calculator.suggest_frequency(zone, 1.6) == 5
        assert calculator.suggest_frequency(zone, 1.0) == 4
        assert calculator.suggest_frequency(zone, 0.3) == 3

    def test_scalped_turf_waters_daily(self, calculator):
        zone = ZoneInput(soil_type="Clay", zone_type="Cool Season Turf Grass", mowing_height=0.5)
        assert calculator.suggest_frequency(zone, 0.2) == 7

    def test_short_turf_minimum(self, calculator):
        zone = ZoneInput(soil_type="Loam", zone_type="Warm Season Turf Grass", mowing_height=1.25)
        assert calculator.suggest_frequency(zone, 0.2) == 5

    def test_medium_turf_minimum(self, calculator):
        zone = ZoneInput(soil_type="Loam", zone_type="Warm Season Turf Grass", mowing_height=1.75)
        assert calculator.suggest_frequency(zone, 0.2) == 4

    def test_deep_root_turf_capped_even_on_sand(self, calculator):
        zone = ZoneInput(soil_type="Sand", zone_type="Cool Season Turf Grass", mowing_height=2.5)
        assert calculator.suggest_frequency(zone, 1.9) == 4

    def test_default_mowing_height_is_deep_root(self, calculator):
        zone = ZoneInput(soil_type="Sand", zone_type="Cool Season Turf Grass")
        assert calculator.suggest_frequency(zone, 1.9) == 4

    def test_mowing_height_ignored_for_non_turf(self, calculator):
        zone = ZoneInput(soil_type="Loam", zone_type="Perennials", mowing_height=0.5)
        assert calculator.suggest_frequency(zone, 0.3) == 2

    @pytest.mark.parametrize("height,expected", [(0.75, 7), (1.5, 5), (2.0, 4)])
    def test_mowing_height_boundaries(self, calculator, height, expected):
        """Boundary heights on sand with a 5-day base need."""
        zone = ZoneInput(soil_type="Sand", zone_type="Cool Season Turf Grass", mowing_height=height)
        assert calculator.suggest_frequency(zone, 1.9) == expected


class TestRunoffCeiling:

    def test_spray_on_loam_scenario(self, calculator, spray_on_loam):
        assert calculator.calculate_max_run_time(spray_on_loam, 1.5) == 20

    def test_steeper_slope_shortens_cycles(self, calculator, spray_on_loam):
        steep = replace(spray_on_loam, slope="30-45%")
        assert calculator.calculate_max_run_time(steep, 1.5) == 10

    def test_no_runoff_when_soil_keeps_up(self, calculator, spray_on_loam):
        zone = replace(spray_on_loam, soil_type="Sand")
        assert calculator.calculate_max_run_time(zone, 1.5) == 60

    def test_minimum_three_minutes(self, calculator, spray_on_loam):
        zone = replace(spray_on_loam, soil_type="Clay", slope=">45%")
        assert calculator.calculate_max_run_time(zone, 12.0) == 3


class TestCalculate:
    """End-to-end calculations."""

    def test_spray_on_loam_plan(self, calculator, spray_on_loam):
        result = calculator.calculate(spray_on_loam)

        assert result.precip_rate == 1.5
        assert result.is_est_data is True
        assert result.efficiency == pytest.approx(0.70)
        assert result.weekly_total_minutes == 68
        assert result.suggested_frequency == 3
        assert result.daily_run_time == 23
        assert result.max_run_time == 20
        assert result.cycles_per_day == 2
        assert result.minutes_per_cycle == 12
        assert result.recommended_soak_time == 30
        assert result.inches_applied_per_day == pytest.approx(0.40, abs=0.01)
        assert result.runoff_warning is False

    def test_sandy_soil_always_splits(self, calculator):
        zone = ZoneInput(
            nozzle_type="Rotor (Gear Drive - PGP/5000)",
            soil_type="Sand",
            slope="0-15%",
            zone_type="All Plants",
            est_weekly_et=1.0,
        )
        result = calculator.calculate(zone)
        assert result.max_run_time == 60
        assert result.cycles_per_day == 2

    def test_single_cycle_has_no_soak(self, calculator):
        zone = ZoneInput(
            nozzle_type="Drip Line (0.4 GPH - 12in Spacing)",
            soil_type="Loam",
            slope="0-15%",
            zone_type="Perennials",
            est_weekly_et=0.5,
        )
        result = calculator.calculate(zone)
        assert result.cycles_per_day == 1
        assert result.recommended_soak_time == 0

    def test_bounds_hold_across_inputs(self, calculator):
        for nozzle in calculator.tables.nozzles:
            for soil in calculator.tables.soils:
                for slope in calculator.tables.slopes:
                    zone = ZoneInput(
                        nozzle_type=nozzle, soil_type=soil, slope=slope,
                        zone_type="Cool Season Turf Grass", est_weekly_et=2.5,
                    )
                    result = calculator.calculate(zone)
                    assert 1 <= result.suggested_frequency <= 7
                    assert 1 <= result.cycles_per_day <= 10
                    assert result.max_run_time >= 3
                    if result.precip_rate <= calculator.tables.infiltration_rate(soil):
                        assert result.max_run_time == 60
                    if calculator.tables.is_sandy(soil):
                        assert result.cycles_per_day >= 2

    def test_idempotent(self, calculator, spray_on_loam):
        assert calculator.calculate(spray_on_loam) == calculator.calculate(spray_on_loam)

    def test_runoff_warning_when_cycles_clamped(self, calculator):
        zone = ZoneInput(
            nozzle_type="Bubbler (Flood)",
            soil_type="Clay",
            slope=">45%",
            zone_type="Cool Season Turf Grass",
            est_weekly_et=3.0,
            efficiency=5,
            mowing_height=1.0,
        )
        result = calculator.calculate(zone)
        assert result.max_run_time == 3
        assert result.cycles_per_day == 10
        assert result.runoff_warning is True


class TestCycleModes:

    def test_override_replaces_automatic_count(self, calculator, spray_on_loam):
        result = calculator.calculate(spray_on_loam, Override(4))
        assert result.cycles_per_day == 4
        assert result.minutes_per_cycle == 6  # ceil(23 / 4)
        assert result.recommended_soak_time == 30

    def test_override_of_one_drops_soak(self, calculator, spray_on_loam):
        result = calculator.calculate(spray_on_loam, Override(1))
        assert result.cycles_per_day == 1
        assert result.recommended_soak_time == 0
        assert result.runoff_warning is True

    def test_override_does_not_change_other_fields(self, calculator, spray_on_loam):
        automatic = calculator.calculate(spray_on_loam, AUTOMATIC)
        overridden = calculator.calculate(spray_on_loam, Override(5))
        assert overridden.weekly_total_minutes == automatic.weekly_total_minutes
        assert overridden.max_run_time == automatic.max_run_time
        assert overridden.suggested_frequency == automatic.suggested_frequency

    def test_manual_cycles_field_is_clamped(self, calculator, spray_on_loam):
        assert calculator.calculate(replace(spray_on_loam, manual_cycles=25)).cycles_per_day == 10
        assert calculator.calculate(replace(spray_on_loam, manual_cycles=0)).cycles_per_day == 1


class TestInjectedTables:

    def test_zero_optimal_pressure_uses_base_rate(self, spray_on_loam):
        tables = ReferenceTables.from_dict({
            "nozzles": {"Fixed Spray (Generic)": {"rate": 1.5, "optimal_psi": 0, "efficiency": 0.7}},
        })
        result = ZoneCalculator(tables).calculate(spray_on_loam)
        assert result.precip_rate == 1.5

    def test_empty_tables_use_defaults(self, spray_on_loam):
        calculator = ZoneCalculator(ReferenceTables())
        result = calculator.calculate(spray_on_loam)
        assert result.precip_rate == 0.0
        assert result.efficiency == pytest.approx(0.75)
        assert result.max_run_time == 60

    def test_recalculate_with_custom_tables(self, spray_on_loam):
        tables = ReferenceTables.from_dict({
            "nozzles": {"Fixed Spray (Generic)": {"rate": 1.0, "optimal_psi": 30, "efficiency": 1.0}},
            "soils": {"Loam": {"infiltration_rate": 0.5, "soak_time": 20}},
            "slopes": {"0-15%": 1.0},
            "plant_types": {"Cool Season Turf Grass": {"factor": 1.0, "turf": True}},
        })
        result = recalculate(spray_on_loam, tables=tables)
        assert result.max_run_time == 30
        assert result.weekly_total_minutes == 75
        assert result.cycles_per_day == 1
        assert result.recommended_soak_time == 0


class TestPressureStatus:

    @pytest.mark.parametrize("psi,level,message", [
        ("40", "warn", "Low PSI reduces flow."),
        (90, "warn", "High PSI causes misting."),
        (50, "success", "PSI OK."),
        ("85", "success", "PSI OK."),
    ])
    def test_advice(self, psi, level, message):
        status = pressure_status(psi)
        assert status.level == level
        assert status.message == message

    def test_absent(self):
        assert pressure_status(None) is None
        assert pressure_status("") is None
