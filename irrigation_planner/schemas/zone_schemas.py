"""
Pydantic schemas for the Zone Planner API.
Numeric form fields accept numbers or decimal strings; invalid values are
treated as absent by the calculator rather than rejected here.
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any, Union
from datetime import datetime
from enum import Enum


NumericInput = Optional[Union[float, str]]


# ==================== ENUMS ====================

class WaterSourceEnum(str, Enum):
    """Water supply types."""
    CULINARY = "Culinary"
    SECONDARY = "Secondary"


class DifficultyEnum(str, Enum):
    """Zone care difficulty tiers."""
    EASY = "Easy"
    MODERATE = "Moderate"
    HARD = "Hard"


class CycleModeEnum(str, Enum):
    AUTOMATIC = "automatic"
    OVERRIDE = "override"


# ==================== ZONE INPUT SCHEMAS ====================

class ZoneFormBase(BaseModel):
    """Full form state for one zone."""
    custom_zone_name: Optional[str] = Field(None, max_length=100, description="Display name")
    zone_type: Optional[str] = Field(None, description="Plant category key")
    zone_area_sq_ft: NumericInput = Field(None, description="Zone area in square feet")
    mowing_height: NumericInput = Field(None, description="Turf mowing height in inches")
    location: Optional[str] = Field(None, max_length=200)
    zip_code: Optional[str] = Field(None, max_length=20)
    month: Optional[str] = Field(None, max_length=20)
    est_weekly_et: NumericInput = Field(None, description="Weekly evapotranspiration in inches")
    est_weekly_rain: NumericInput = Field(None, description="Weekly rainfall in inches")
    nozzle_type: Optional[str] = Field(None, description="Nozzle key")
    pressure: NumericInput = Field(None, description="System pressure in PSI")
    efficiency: NumericInput = Field(None, description="Distribution efficiency in percent")
    soil_type: Optional[str] = Field(None, description="Soil texture key")
    slope: Optional[str] = Field(None, description="Slope bucket key")
    sunlight: Optional[str] = Field(None, description="Sun exposure key")
    water_source: Optional[str] = Field(default=WaterSourceEnum.CULINARY.value, description="Culinary or Secondary")
    water_price: NumericInput = Field(default="3.00", description="Dollars per 1000 gallons")


class ZoneFormUpdate(BaseModel):
    """Partial form update; only fields that are sent are applied."""
    custom_zone_name: Optional[str] = Field(None, max_length=100)
    zone_type: Optional[str] = None
    zone_area_sq_ft: NumericInput = None
    mowing_height: NumericInput = None
    location: Optional[str] = Field(None, max_length=200)
    zip_code: Optional[str] = Field(None, max_length=20)
    month: Optional[str] = Field(None, max_length=20)
    est_weekly_et: NumericInput = None
    est_weekly_rain: NumericInput = None
    nozzle_type: Optional[str] = None
    pressure: NumericInput = None
    efficiency: NumericInput = None
    soil_type: Optional[str] = None
    slope: Optional[str] = None
    sunlight: Optional[str] = None
    water_source: Optional[str] = None
    water_price: NumericInput = None


class ZoneCalculateRequest(ZoneFormBase):
    """Stateless calculation request."""
    manual_cycles: NumericInput = Field(None, description="Cycle override, clamped to 1-10")


# ==================== CALCULATION SCHEMAS ====================

class LiveCalculationResponse(BaseModel):
    precip_rate: float
    weekly_total_minutes: int
    suggested_frequency: int
    daily_run_time: int
    max_run_time: int
    recommended_soak_time: int
    cycles_per_day: int
    minutes_per_cycle: int
    inches_applied_per_day: float
    is_est_data: bool
    efficiency: float
    runoff_warning: bool


class PressureStatusResponse(BaseModel):
    level: str
    message: str


class ZoneCalculateResponse(BaseModel):
    result: Optional[LiveCalculationResponse] = None
    pressure_status: Optional[PressureStatusResponse] = None


class PressureStatusRequest(BaseModel):
    pressure: NumericInput = None


# ==================== SESSION SCHEMAS ====================

class CycleAdjustRequest(BaseModel):
    delta: int = Field(..., ge=-10, le=10, description="Step applied to the active cycle count")


class SessionStateResponse(BaseModel):
    session_id: str
    form: ZoneFormBase
    result: Optional[LiveCalculationResponse] = None
    cycle_mode: CycleModeEnum
    manual_cycles: Optional[int] = None
    editing_id: Optional[str] = None
    saved_zone_count: int = 0


class SavedZoneResponse(BaseModel):
    id: str
    name: str
    stats: LiveCalculationResponse
    form_data: ZoneFormBase
    timestamp: datetime
    manual_cycles: Optional[int] = None


class SavedZoneList(BaseModel):
    items: List[SavedZoneResponse]
    total: int


# ==================== AGGREGATION SCHEMAS ====================

class ZoneUsageRequest(BaseModel):
    name: str = ""
    stats: LiveCalculationResponse
    zone_area_sq_ft: NumericInput = None
    water_source: str = WaterSourceEnum.CULINARY.value
    water_price: NumericInput = "3.00"


class AggregateRequest(BaseModel):
    zones: List[ZoneUsageRequest]


class ZoneUsageResponse(BaseModel):
    zone_id: Optional[str] = None
    name: str
    area_sq_ft: Optional[float] = None
    precip_rate: float
    weekly_total_minutes: int
    suggested_frequency: int
    cycles_per_day: int
    minutes_per_cycle: int
    cycle_label: str
    gallons_per_week: int
    monthly_cost: float
    cost_exempt: bool


class FleetReportResponse(BaseModel):
    zones: List[ZoneUsageResponse]
    total_gallons_per_week: int
    total_monthly_cost: float


# ==================== PLAN ADVISOR SCHEMAS ====================

class WeatherEstimateRequest(BaseModel):
    zip_code: str = Field("", max_length=20)
    month: str = Field("", max_length=20)
    session_id: Optional[str] = Field(None, description="Apply the estimate to this session's form")


class WeatherEstimateResponse(BaseModel):
    est_weekly_et: float
    est_weekly_rain: float
    summary: str = ""


class WateringPlanRequest(BaseModel):
    """Either a session id (uses its zone in progress) or an explicit form."""
    session_id: Optional[str] = None
    form: Optional[ZoneCalculateRequest] = None
    image_base64: Optional[str] = Field(None, description="Zone photo, base64 encoded")
    image_mime_type: str = Field(default="image/jpeg")


class MoisturePointResponse(BaseModel):
    day: float
    moisture_level: float


class WateringScheduleResponse(BaseModel):
    zone_name: str
    scientific_name: str = ""
    total_weekly_water_duration_minutes: float
    max_run_time_per_cycle: float
    recommended_soak_time: float = 0
    recommended_frequency_days_per_week: float
    estimated_gallons_per_week: Optional[int] = None
    estimated_cost_per_month: Optional[str] = None
    average_et: str
    climate_summary: str = ""
    rainfall_offset: str = ""
    soil_infiltration_rate: str = ""
    nozzle_precipitation_rate: str
    sunlight_needs: str = ""
    difficulty: DifficultyEnum = DifficultyEnum.MODERATE
    tips: List[str] = []
    mowing_advice: Optional[str] = None
    warning: Optional[str] = None
    pressure_advice: str = ""
    humidity_preference: str = ""
    moisture_curve_data: List[MoisturePointResponse] = []


class ReferenceTablesResponse(BaseModel):
    nozzles: Dict[str, Dict[str, Any]]
    soils: Dict[str, Dict[str, Any]]
    slopes: Dict[str, float]
    plant_types: Dict[str, Dict[str, Any]]
    sunlight: Dict[str, float]
