"""
Plan Advisor - narrative watering reports and climate estimates.

Uses an OpenAI chat model in JSON mode to:
- Write a narrative watering report for a zone (tips, advice, difficulty,
  soil moisture curve) around the deterministic hydraulic baseline.
- Estimate weekly ET and rainfall for a postal code and month.

The hydraulic schedule from the zone calculator is authoritative: numeric
schedule fields returned by the model are overwritten with the calculator's
values, and gallons/cost come from the aggregator.
"""
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field, asdict
import json
import logging

from fastapi.concurrency import run_in_threadpool
from openai import OpenAI

from irrigation_planner.core.config import Config
from irrigation_planner.services.zone_calculator import LiveCalculation, ZoneFormData, parse_float
from irrigation_planner.services.aggregator import calculate_zone_usage, is_cost_exempt
from irrigation_planner.services.irrigation_rules import DEFAULT_WATER_PRICE_PER_1000_GAL

logger = logging.getLogger(__name__)

DIFFICULTY_LEVELS = ("Easy", "Moderate", "Hard")

PLAN_ERROR_MESSAGE = "Failed to generate plan."
WEATHER_ERROR_MESSAGE = "Could not fetch weather data."


class PlanAdvisorError(Exception):
    """Raised when the text-generation service fails; message is user-visible."""


@dataclass
class MoisturePoint:
    day: float
    moisture_level: float


@dataclass
class WateringSchedule:
    """Narrative watering report for one zone."""
    zone_name: str
    total_weekly_water_duration_minutes: float
    max_run_time_per_cycle: float
    recommended_frequency_days_per_week: float
    average_et: str
    nozzle_precipitation_rate: str
    tips: List[str] = field(default_factory=list)
    moisture_curve_data: List[MoisturePoint] = field(default_factory=list)
    scientific_name: str = ""
    recommended_soak_time: float = 0
    estimated_gallons_per_week: Optional[int] = None
    estimated_cost_per_month: Optional[str] = None
    climate_summary: str = ""
    rainfall_offset: str = ""
    soil_infiltration_rate: str = ""
    sunlight_needs: str = ""
    difficulty: str = "Moderate"
    humidity_preference: str = ""
    pressure_advice: str = ""
    mowing_advice: Optional[str] = None
    warning: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class WeatherEstimate:
    est_weekly_et: float
    est_weekly_rain: float
    summary: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ZoneImage:
    """Zone photo sent alongside the prompt."""
    data_base64: str
    mime_type: str = "image/jpeg"

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data_base64}"


class PlanAdvisorService:
    """
    Plan Advisor - narrative reports with an OpenAI chat model.

    Every failure (no credentials, API error, empty or unparsable reply)
    raises PlanAdvisorError; callers keep working with the calculator's
    numbers and manually entered climate values.
    """

    SYSTEM_PROMPT = (
        "You are an expert hydraulic engineer and turf grass specialist. "
        "You write practical residential irrigation guidance. "
        "Always answer with a single JSON object."
    )

    def __init__(self, client: Optional[Any] = None, model: Optional[str] = None):
        """Initialize with an injected client, or build one from configuration."""
        self.model = model or Config.PLAN_MODEL
        self.client = client

        if self.client is None:
            if Config.OPENAI_API_KEY:
                try:
                    self.client = OpenAI(
                        api_key=Config.OPENAI_API_KEY,
                        base_url=Config.OPENAI_BASE_URL,
                        timeout=Config.PLAN_TIMEOUT_SECONDS,
                    )
                    logger.info(f"Plan advisor initialized with {self.model}")
                except Exception as e:
                    logger.error(f"Failed to initialize plan advisor: {e}")
            else:
                logger.warning("Plan advisor disabled - OPENAI_API_KEY not configured")

    def _build_hydraulic_context(self, stats: Optional[LiveCalculation]) -> str:
        if stats is None:
            return ""
        return f"""
HYDRAULIC BASELINE (STRICT):
  - Net Weekly Water Need: {stats.weekly_total_minutes} minutes/week.
  - Max Run Time: {stats.max_run_time} minutes.
  - Soak Time: {stats.recommended_soak_time} minutes.
  - Frequency: {stats.suggested_frequency} days/week.
  - Nozzle PR: {stats.precip_rate} in/hr.
  - Inches Applied Per Day: {stats.inches_applied_per_day} inches.
  - Efficiency Correction: {stats.efficiency * 100:g}%."""

    def _build_area_context(self, form: ZoneFormData) -> str:
        if parse_float(form.zone_area_sq_ft) is None:
            return "Area not provided."
        if is_cost_exempt(form.water_source):
            price = "N/A (Secondary, unmetered)"
        else:
            rate = parse_float(form.water_price)
            price = f"${rate if rate is not None else DEFAULT_WATER_PRICE_PER_1000_GAL:.2f} per 1000 Gallons"
        return f"""
AREA DATA:
  - Zone Size: {form.zone_area_sq_ft} Sq Ft.
  - Water Source: {form.water_source}.
  - Water Price: {price}."""

    def _build_plan_prompt(self, form: ZoneFormData, stats: Optional[LiveCalculation]) -> str:
        """Build the narrative report prompt for one zone."""
        mowing_info = f"\n  - Turf Mowing Height: {form.mowing_height} inches." if form.mowing_height else ""
        efficiency = form.efficiency if parse_float(form.efficiency) is not None else "Auto"
        et = form.est_weekly_et if parse_float(form.est_weekly_et) is not None else "Auto"
        rain = form.est_weekly_rain if parse_float(form.est_weekly_rain) is not None else "Auto"

        return f"""INPUT DATA:
  - Zone: {form.custom_zone_name or form.zone_type or "Unnamed zone"}
  - Location: {form.zip_code or "N/A"}, {form.month or "N/A"}
  - Soil: {form.soil_type or "N/A"}, Slope: {form.slope or "N/A"}
  - Nozzle: {form.nozzle_type or "N/A"}, PSI: {form.pressure if form.pressure not in (None, "") else "N/A"}
  - Sunlight: {form.sunlight or "N/A"}
  - System Efficiency: {efficiency}%
  - Weekly ET: {et}, Rain: {rain}{mowing_info}
{self._build_hydraulic_context(stats)}
{self._build_area_context(form)}

CALCULATION RULES:
1. Base PR on nozzle type and pressure (square root law).
2. Weekly Need = (ET * PlantFactor * Sun) - Rain.
3. Frequency (root depth): turf under 2.0" has shallow roots and may need 5-7 days
   when heat or sand dictates; turf at 2.0" or taller is capped at 4 days/week
   ("Deep & Infrequent").
4. Cycles: split when precipitation rate exceeds soil infiltration rate.

Give specific mowing_advice for the height provided.

Respond in JSON:
{{
  "zone_name": "string",
  "scientific_name": "string",
  "total_weekly_water_duration_minutes": 0,
  "max_run_time_per_cycle": 0,
  "recommended_soak_time": 0,
  "recommended_frequency_days_per_week": 0,
  "average_et": "string",
  "climate_summary": "string",
  "rainfall_offset": "string",
  "soil_infiltration_rate": "string",
  "nozzle_precipitation_rate": "string",
  "sunlight_needs": "string",
  "difficulty": "Easy/Moderate/Hard",
  "humidity_preference": "string",
  "pressure_advice": "string",
  "mowing_advice": "string",
  "tips": ["tip1", "tip2"],
  "warning": "string",
  "moisture_curve_data": [{{"day": 1, "moisture_level": 0}}]
}}"""

    def _build_weather_prompt(self, zip_code: str, month: str) -> str:
        return f"""Retrieve the standard 30-year historical climate averages (NOAA/NWS equivalent data) for Zip Code {zip_code} in {month}.
1. Get the average daily Reference Evapotranspiration (ETo).
2. Calculate WEEKLY ETo (Average Daily ETo * 7).
3. Get the average monthly rainfall.
4. Calculate WEEKLY Rainfall (Average Monthly Rainfall / 4.3).

Respond in JSON with RAW NUMBERS (no units):
{{"est_weekly_et": 0.0, "est_weekly_rain": 0.0, "summary": "string"}}"""

    def _complete_json(self, messages: List[Dict[str, Any]], error_message: str) -> Dict[str, Any]:
        """Run a JSON-mode chat completion and return the parsed object."""
        if not self.client:
            raise PlanAdvisorError(error_message)

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "system", "content": self.SYSTEM_PROMPT}] + messages,
                max_tokens=Config.PLAN_MAX_TOKENS,
                temperature=Config.PLAN_TEMPERATURE,
                response_format={"type": "json_object"}
            )
            content = response.choices[0].message.content
        except Exception as e:
            logger.error(f"Plan advisor API error: {e}")
            raise PlanAdvisorError(error_message) from e

        if not content:
            logger.warning("Empty response from plan advisor")
            raise PlanAdvisorError(error_message)

        try:
            result = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse plan advisor response: {e}")
            raise PlanAdvisorError(error_message) from e

        if not isinstance(result, dict):
            logger.error("Plan advisor response is not a JSON object")
            raise PlanAdvisorError(error_message)
        return result

    async def estimate_location_weather(self, zip_code: str, month: str) -> WeatherEstimate:
        """
        Estimate weekly ET and rainfall for a location and month.

        Args:
            zip_code: Postal code
            month: Month name

        Returns:
            WeatherEstimate; the values are ordinary optional inputs for the
            calculator, not trusted ground truth.
        """
        if not zip_code or not month:
            raise ValueError("Please enter a Zip Code and Month first.")

        prompt = self._build_weather_prompt(zip_code, month)
        result = await run_in_threadpool(
            self._complete_json, [{"role": "user", "content": prompt}], WEATHER_ERROR_MESSAGE
        )

        et = parse_float(result.get("est_weekly_et"))
        rain = parse_float(result.get("est_weekly_rain"))
        if et is None or rain is None:
            logger.error(f"Weather estimate missing numeric fields: {result}")
            raise PlanAdvisorError(WEATHER_ERROR_MESSAGE)

        return WeatherEstimate(est_weekly_et=et, est_weekly_rain=rain, summary=str(result.get("summary", "")))

    async def generate_watering_plan(
        self,
        form: ZoneFormData,
        stats: Optional[LiveCalculation],
        image: Optional[ZoneImage] = None,
    ) -> WateringSchedule:
        """
        Generate a narrative watering report for one zone.

        Args:
            form: Zone form state (metadata, environment, area and pricing)
            stats: The calculator's LiveCalculation, if the zone is complete
            image: Optional zone photo

        Returns:
            WateringSchedule with the calculator's numbers applied on top
        """
        prompt = self._build_plan_prompt(form, stats)
        if image is not None:
            content: Any = [
                {"type": "image_url", "image_url": {"url": image.data_url}},
                {"type": "text", "text": prompt},
            ]
        else:
            content = prompt

        result = await run_in_threadpool(
            self._complete_json, [{"role": "user", "content": content}], PLAN_ERROR_MESSAGE
        )
        schedule = self._parse_schedule(result, form)
        return self._apply_hydraulic_baseline(schedule, form, stats)

    def _parse_schedule(self, result: Dict[str, Any], form: ZoneFormData) -> WateringSchedule:
        difficulty = result.get("difficulty", "Moderate")
        if difficulty not in DIFFICULTY_LEVELS:
            difficulty = "Moderate"

        curve = []
        for point in result.get("moisture_curve_data") or []:
            if not isinstance(point, dict):
                continue
            day = parse_float(point.get("day"))
            level = parse_float(point.get("moisture_level", point.get("moistureLevel")))
            if day is not None and level is not None:
                curve.append(MoisturePoint(day=day, moisture_level=level))

        tips = result.get("tips") or []
        return WateringSchedule(
            zone_name=result.get("zone_name") or form.custom_zone_name or form.zone_type or "",
            scientific_name=result.get("scientific_name", ""),
            total_weekly_water_duration_minutes=parse_float(result.get("total_weekly_water_duration_minutes")) or 0,
            max_run_time_per_cycle=parse_float(result.get("max_run_time_per_cycle")) or 0,
            recommended_soak_time=parse_float(result.get("recommended_soak_time")) or 0,
            recommended_frequency_days_per_week=parse_float(result.get("recommended_frequency_days_per_week")) or 0,
            average_et=str(result.get("average_et", "")),
            climate_summary=result.get("climate_summary", ""),
            rainfall_offset=result.get("rainfall_offset", ""),
            soil_infiltration_rate=result.get("soil_infiltration_rate", ""),
            nozzle_precipitation_rate=str(result.get("nozzle_precipitation_rate", "")),
            sunlight_needs=result.get("sunlight_needs", ""),
            difficulty=difficulty,
            humidity_preference=result.get("humidity_preference", ""),
            pressure_advice=result.get("pressure_advice", ""),
            mowing_advice=result.get("mowing_advice"),
            tips=[str(t) for t in tips] if isinstance(tips, list) else [str(tips)],
            warning=result.get("warning"),
            moisture_curve_data=curve,
        )

    def _apply_hydraulic_baseline(
        self,
        schedule: WateringSchedule,
        form: ZoneFormData,
        stats: Optional[LiveCalculation],
    ) -> WateringSchedule:
        """Overwrite schedule numbers with the calculator's and add gallons/cost."""
        if stats is None:
            return schedule

        schedule.total_weekly_water_duration_minutes = stats.weekly_total_minutes
        schedule.max_run_time_per_cycle = stats.max_run_time
        schedule.recommended_soak_time = stats.recommended_soak_time
        schedule.recommended_frequency_days_per_week = stats.suggested_frequency

        if parse_float(form.zone_area_sq_ft) is not None:
            usage = calculate_zone_usage(
                stats,
                area_sq_ft=form.zone_area_sq_ft,
                water_source=form.water_source,
                water_price=form.water_price,
            )
            schedule.estimated_gallons_per_week = usage.gallons_per_week
            schedule.estimated_cost_per_month = (
                "N/A (Secondary)" if usage.cost_exempt else f"${usage.monthly_cost:.2f}"
            )
        return schedule


# Singleton instance
_plan_advisor_service: Optional[PlanAdvisorService] = None


def get_plan_advisor_service() -> PlanAdvisorService:
    """Get or create plan advisor service singleton."""
    global _plan_advisor_service
    if _plan_advisor_service is None:
        _plan_advisor_service = PlanAdvisorService()
    return _plan_advisor_service
