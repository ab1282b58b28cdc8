"""
Pytest configuration and shared fixtures for zone planner tests.
"""

import os
import sys
import tempfile
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set test environment variables before importing the app
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "zone_planner_test_logs"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

from irrigation_planner.services.reference_tables import load_reference_tables
from irrigation_planner.services.zone_calculator import ZoneCalculator, ZoneFormData, ZoneInput


@pytest.fixture
def tables():
    return load_reference_tables()


@pytest.fixture
def calculator(tables):
    return ZoneCalculator(tables)


@pytest.fixture
def spray_on_loam():
    """1.5 in/hr spray at its optimal 30 PSI on flat loam, cool-season turf."""
    return ZoneInput(
        nozzle_type="Fixed Spray (Generic)",
        soil_type="Loam",
        slope="0-15%",
        zone_type="Cool Season Turf Grass",
        pressure=30,
        sunlight="Direct Sun",
    )


@pytest.fixture
def complete_form():
    return ZoneFormData(
        custom_zone_name="Front Lawn",
        zone_type="Cool Season Turf Grass",
        zone_area_sq_ft="1000",
        location="Provo, UT",
        zip_code="84604",
        month="July",
        nozzle_type="Fixed Spray (Generic)",
        pressure="30",
        soil_type="Loam",
        slope="0-15%",
        sunlight="Direct Sun",
    )
