"""
Deterministic hydraulic rules and thresholds for zone planning.

This module centralizes constants so the calculator, the cycle controller
and the aggregator stay deterministic, auditable, and consistent across
services and tests.
"""

# Fallbacks when an input is absent or a lookup key is unknown
FALLBACK_WEEKLY_ET_IN = 1.25
DEFAULT_EFFICIENCY = 0.75
DEFAULT_INFILTRATION_RATE = 0.5
DEFAULT_SLOPE_FACTOR = 1.0
DEFAULT_PLANT_FACTOR = 0.5
DEFAULT_SUN_FACTOR = 1.0
DEFAULT_MOWING_HEIGHT_IN = 3.0

# Square-root pressure law
PRESSURE_MULTIPLIER_MIN = 0.5
PRESSURE_MULTIPLIER_MAX = 1.5

# Base frequency (days/week) thresholds on net weekly inches
SANDY_FREQUENCY_THRESHOLDS = ((1.5, 5), (0.8, 4))
SANDY_FREQUENCY_FLOOR = 3
LOAM_CLAY_FREQUENCY_THRESHOLDS = ((1.4, 4), (0.7, 3))
LOAM_CLAY_FREQUENCY_FLOOR = 2

# Mowing height (inches) root-depth policy for turf
SCALP_HEIGHT_IN = 0.75
SHORT_TURF_HEIGHT_IN = 1.5
DEEP_ROOT_HEIGHT_IN = 2.0
SCALP_FREQUENCY = 7
SHORT_TURF_MIN_FREQUENCY = 5
MEDIUM_TURF_MIN_FREQUENCY = 4
DEEP_ROOT_MAX_FREQUENCY = 4

MIN_FREQUENCY = 1
MAX_FREQUENCY = 7

# Runoff ceiling for a single cycle (minutes)
NO_RUNOFF_MAX_RUN_MINUTES = 60
MIN_CYCLE_RUN_MINUTES = 3
SANDY_MIN_CYCLES = 2

MIN_CYCLES = 1
MAX_CYCLES = 10

# Aggregation
GALLONS_PER_INCH_SQFT = 0.623
WEEKS_PER_MONTH = 4.3
DEFAULT_WATER_PRICE_PER_1000_GAL = 3.00
SECONDARY_WATER_SOURCE = "Secondary"
DEFAULT_WATER_SOURCE = "Culinary"

# Pressure advice (PSI)
LOW_PRESSURE_PSI = 50
HIGH_PRESSURE_PSI = 85
