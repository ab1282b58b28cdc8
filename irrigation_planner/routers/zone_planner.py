"""
Zone Planner Router.
Provides endpoints for zone calculations, planning sessions, fleet reports
and the narrative plan/climate estimates.
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
import logging

from irrigation_planner.core.config import Config
from irrigation_planner.schemas.zone_schemas import (
    AggregateRequest,
    CycleAdjustRequest,
    CycleModeEnum,
    FleetReportResponse,
    LiveCalculationResponse,
    PressureStatusRequest,
    PressureStatusResponse,
    ReferenceTablesResponse,
    SavedZoneList,
    SavedZoneResponse,
    SessionStateResponse,
    WateringPlanRequest,
    WateringScheduleResponse,
    WeatherEstimateRequest,
    WeatherEstimateResponse,
    ZoneCalculateRequest,
    ZoneCalculateResponse,
    ZoneFormBase,
    ZoneFormUpdate,
)
from irrigation_planner.services.zone_calculator import (
    LiveCalculation,
    ZoneCalculator,
    ZoneFormData,
    ZoneInput,
    get_zone_calculator,
    parse_int,
    pressure_status,
)
from irrigation_planner.services.cycle_override import Override
from irrigation_planner.services.aggregator import aggregate_usage, calculate_zone_usage
from irrigation_planner.services.zone_session import (
    SessionNotFoundError,
    SessionStore,
    ZoneNotFoundError,
    ZoneNotReadyError,
    ZonePlanningSession,
    get_session_store,
)
from irrigation_planner.services.plan_advisor_service import (
    PlanAdvisorError,
    PlanAdvisorService,
    ZoneImage,
    get_plan_advisor_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix=Config.API_PREFIX, tags=["zone-planner"])

WEATHER_FAILURE_MESSAGE = "Failed to fetch weather data. You can enter values manually."


def _live_response(live: Optional[LiveCalculation]) -> Optional[LiveCalculationResponse]:
    return LiveCalculationResponse(**live.to_dict()) if live is not None else None


def _session_state(session_id: str, session: ZonePlanningSession) -> SessionStateResponse:
    mode = session.cycle_mode
    return SessionStateResponse(
        session_id=session_id,
        form=ZoneFormBase(**session.form.to_dict()),
        result=_live_response(session.live),
        cycle_mode=CycleModeEnum.OVERRIDE if isinstance(mode, Override) else CycleModeEnum.AUTOMATIC,
        manual_cycles=mode.cycles if isinstance(mode, Override) else None,
        editing_id=session.editing_id,
        saved_zone_count=len(session.saved_zones),
    )


def _get_session(store: SessionStore, session_id: str) -> ZonePlanningSession:
    try:
        return store.get(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")


def _form_from_request(request: ZoneCalculateRequest) -> ZoneFormData:
    return ZoneFormData(**request.model_dump(exclude={"manual_cycles"}))


# ==================== STATELESS ENDPOINTS ====================

@router.get("/reference-tables", response_model=ReferenceTablesResponse)
async def get_reference_tables(calculator: ZoneCalculator = Depends(get_zone_calculator)):
    """Lookup keys and values for nozzles, soils, slopes, plant types and sunlight."""
    return calculator.tables.to_dict()


@router.post("/calculate", response_model=ZoneCalculateResponse)
async def calculate_zone(
    request: ZoneCalculateRequest,
    calculator: ZoneCalculator = Depends(get_zone_calculator),
):
    """
    Compute the watering plan for one zone.

    Returns result=null (not an error) when nozzle, soil, slope or zone type
    is missing.
    """
    zone = ZoneInput.from_form(_form_from_request(request), manual_cycles=parse_int(request.manual_cycles))
    live = calculator.calculate(zone)
    psi = pressure_status(request.pressure)
    return ZoneCalculateResponse(
        result=_live_response(live),
        pressure_status=PressureStatusResponse(level=psi.level, message=psi.message) if psi else None,
    )


@router.post("/pressure-status", response_model=Optional[PressureStatusResponse])
async def get_pressure_status(request: PressureStatusRequest):
    psi = pressure_status(request.pressure)
    return PressureStatusResponse(level=psi.level, message=psi.message) if psi else None


@router.post("/aggregate", response_model=FleetReportResponse)
async def aggregate(request: AggregateRequest):
    """Gallons and monthly cost per zone plus fleet totals."""
    usages = [
        calculate_zone_usage(
            LiveCalculation(**zone.stats.model_dump(exclude={"runoff_warning"})),
            area_sq_ft=zone.zone_area_sq_ft,
            water_source=zone.water_source,
            water_price=zone.water_price,
            name=zone.name,
        )
        for zone in request.zones
    ]
    return aggregate_usage(usages).to_dict()


# ==================== SESSION ENDPOINTS ====================

@router.post("/sessions", response_model=SessionStateResponse, status_code=status.HTTP_201_CREATED)
async def create_session(store: SessionStore = Depends(get_session_store)):
    session_id, session = store.create()
    return _session_state(session_id, session)


@router.get("/sessions/{session_id}", response_model=SessionStateResponse)
async def get_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    return _session_state(session_id, _get_session(store, session_id))


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    try:
        store.delete(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")


@router.patch("/sessions/{session_id}/form", response_model=SessionStateResponse)
async def update_session_form(
    session_id: str,
    request: ZoneFormUpdate,
    store: SessionStore = Depends(get_session_store),
):
    """Apply form changes; the plan is recomputed once for the whole change set."""
    session = _get_session(store, session_id)
    session.update_form(**request.model_dump(exclude_unset=True))
    return _session_state(session_id, session)


@router.post("/sessions/{session_id}/cycles", response_model=SessionStateResponse)
async def adjust_session_cycles(
    session_id: str,
    request: CycleAdjustRequest,
    store: SessionStore = Depends(get_session_store),
):
    session = _get_session(store, session_id)
    session.adjust_cycles(request.delta)
    return _session_state(session_id, session)


@router.delete("/sessions/{session_id}/cycles", response_model=SessionStateResponse)
async def clear_session_cycles(session_id: str, store: SessionStore = Depends(get_session_store)):
    session = _get_session(store, session_id)
    session.clear_cycle_override()
    return _session_state(session_id, session)


@router.post("/sessions/{session_id}/zones", response_model=SavedZoneResponse, status_code=status.HTTP_201_CREATED)
async def commit_session_zone(session_id: str, store: SessionStore = Depends(get_session_store)):
    """Save the zone in progress, or update the zone being edited."""
    session = _get_session(store, session_id)
    try:
        saved = session.commit_zone()
    except ZoneNotReadyError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ZoneNotFoundError:
        raise HTTPException(status_code=404, detail="Zone not found")
    return saved.to_dict()


@router.get("/sessions/{session_id}/zones", response_model=SavedZoneList)
async def list_session_zones(session_id: str, store: SessionStore = Depends(get_session_store)):
    session = _get_session(store, session_id)
    items = [z.to_dict() for z in session.saved_zones]
    return {"items": items, "total": len(items)}


@router.post("/sessions/{session_id}/zones/{zone_id}/edit", response_model=SessionStateResponse)
async def edit_session_zone(session_id: str, zone_id: str, store: SessionStore = Depends(get_session_store)):
    session = _get_session(store, session_id)
    try:
        session.edit_zone(zone_id)
    except ZoneNotFoundError:
        raise HTTPException(status_code=404, detail="Zone not found")
    return _session_state(session_id, session)


@router.post("/sessions/{session_id}/reset", response_model=SessionStateResponse)
async def reset_session_zone(session_id: str, store: SessionStore = Depends(get_session_store)):
    session = _get_session(store, session_id)
    session.reset_zone()
    return _session_state(session_id, session)


@router.get("/sessions/{session_id}/report", response_model=FleetReportResponse)
async def get_session_report(session_id: str, store: SessionStore = Depends(get_session_store)):
    """Master report across the session's saved zones."""
    return _get_session(store, session_id).fleet_report().to_dict()


# ==================== PLAN ADVISOR ENDPOINTS ====================

@router.post("/weather-estimate", response_model=WeatherEstimateResponse)
async def estimate_weather(
    request: WeatherEstimateRequest,
    advisor: PlanAdvisorService = Depends(get_plan_advisor_service),
    store: SessionStore = Depends(get_session_store),
):
    """
    Estimate weekly ET and rainfall for a zip code and month.
    When session_id is given the values are written into that session's form.
    """
    session = _get_session(store, request.session_id) if request.session_id else None
    try:
        estimate = await advisor.estimate_location_weather(request.zip_code, request.month)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PlanAdvisorError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=WEATHER_FAILURE_MESSAGE)

    if session is not None:
        session.update_form(
            est_weekly_et=str(estimate.est_weekly_et),
            est_weekly_rain=str(estimate.est_weekly_rain),
        )
    return estimate.to_dict()


@router.post("/watering-plan", response_model=WateringScheduleResponse)
async def generate_watering_plan(
    request: WateringPlanRequest,
    advisor: PlanAdvisorService = Depends(get_plan_advisor_service),
    store: SessionStore = Depends(get_session_store),
    calculator: ZoneCalculator = Depends(get_zone_calculator),
):
    """
    Narrative watering report for a zone.

    Schedule numbers always come from the zone calculator; the text service
    adds tips, advice and the moisture curve.
    """
    if request.session_id:
        session = _get_session(store, request.session_id)
        form, stats = session.form, session.live
    elif request.form is not None:
        form = _form_from_request(request.form)
        stats = calculator.calculate(
            ZoneInput.from_form(form, manual_cycles=parse_int(request.form.manual_cycles))
        )
    else:
        raise HTTPException(status_code=400, detail="Provide a session_id or a zone form")

    image = ZoneImage(request.image_base64, request.image_mime_type) if request.image_base64 else None
    if image is None and not form.zone_type:
        raise HTTPException(status_code=400, detail="Please select a zone type or upload a photo.")
    if not form.zip_code:
        raise HTTPException(status_code=400, detail="Please enter a valid Zip Code.")

    try:
        schedule = await advisor.generate_watering_plan(form, stats, image=image)
    except PlanAdvisorError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return schedule.to_dict()
