from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from fastapi import FastAPI
from pydantic import BaseModel

from mont_blanc_snow.baseline import load_baseline
from mont_blanc_snow.config import app_config
from mont_blanc_snow.logging import get_logger, setup_logging
from mont_blanc_snow.models import AggregateResult, ResortSnapshot
from mont_blanc_snow.refresh import RefreshController, RefreshState
from mont_blanc_snow.resorts import ResortMeta, all_resorts, resort_lookup
from mont_blanc_snow.scheduler import build_scheduler

setup_logging(app_config.logging)
logger = get_logger(__name__)

app = FastAPI(title="Mont Blanc Snow API")


class StationPayload(BaseModel):
    name: str
    altitude: Optional[str] = None
    snow_depth: Optional[str] = None
    fresh_snow: Optional[str] = None
    temperature: Optional[str] = None
    wind_direction: Optional[str] = None
    wind_speed: Optional[str] = None


class AreaPayload(BaseModel):
    name: str
    altitude: Optional[str] = None
    resort_id: Optional[str] = None
    snow_depth_top: Optional[str] = None
    snow_depth_base: Optional[str] = None
    snow_quality: str
    fresh_snow_24h: Optional[str] = None
    lifts_open: Optional[int] = None
    lifts_total: Optional[int] = None
    slopes_open: Optional[int] = None
    slopes_total: Optional[int] = None
    slope_breakdown: Dict[str, Optional[str]]
    temperature_morning: Optional[str] = None
    temperature_afternoon: Optional[str] = None
    avalanche_risk: Optional[str] = None
    avalanche_detail: Optional[str] = None
    wind: Optional[str] = None
    visibility: Optional[str] = None
    is_closed: bool
    closure_reason: Optional[str] = None
    last_update: Optional[str] = None
    last_snowfall: Optional[str] = None
    fresh_snow_detail: Optional[str] = None
    forecast_snow: Optional[Dict[str, str]] = None
    weather_report: Optional[str] = None
    message_of_day: Optional[str] = None
    stations: List[StationPayload] = []
    note: Optional[str] = None


class ResortPayload(BaseModel):
    resort_id: str
    name: str
    elevation: str
    live_url: str
    forecast_url: str


class ResortConditionsPayload(ResortPayload):
    fetched_at: Optional[datetime] = None
    source_url: Optional[str] = None
    avalanche_risk: Optional[str] = None
    last_snowfall: Optional[str] = None
    areas: List[AreaPayload]


class ConditionsResponse(BaseModel):
    status: str
    error: Optional[str] = None
    is_live: bool
    last_updated: Optional[str] = None
    page_date: Optional[str] = None
    daily_report: Optional[str] = None
    closure_notices: List[str]
    area_count: int
    live_sources: List[str]
    unavailable_sources: List[str]
    resorts: List[ResortConditionsPayload]


class ResortsResponse(BaseModel):
    resorts: List[ResortPayload]


_resorts: List[ResortMeta] = all_resorts()
_resort_index: Dict[str, ResortMeta] = resort_lookup(_resorts)

controller = RefreshController(load_baseline())


def _resort_payload(meta: ResortMeta) -> ResortPayload:
    return ResortPayload(
        resort_id=meta.id,
        name=meta.name,
        elevation=meta.elevation,
        live_url=meta.live_url,
        forecast_url=meta.forecast_url,
    )


def _resort_conditions_payload(snapshot: ResortSnapshot) -> ResortConditionsPayload:
    meta = _resort_index.get(snapshot.resort_id)
    return ResortConditionsPayload(
        resort_id=snapshot.resort_id,
        name=meta.name if meta else snapshot.resort_id,
        elevation=meta.elevation if meta else "",
        live_url=meta.live_url if meta else (snapshot.source_url or ""),
        forecast_url=meta.forecast_url if meta else "",
        fetched_at=snapshot.fetched_at,
        source_url=snapshot.source_url,
        avalanche_risk=snapshot.avalanche_risk,
        last_snowfall=snapshot.last_snowfall,
        areas=[AreaPayload(**area.to_dict()) for area in snapshot.areas],
    )


def _ordered_snapshots(result: AggregateResult) -> List[ResortSnapshot]:
    """Configured resorts first, in display order, then anything else in the result."""
    ordered = [result.resorts[meta.id] for meta in _resorts if meta.id in result.resorts]
    ordered.extend(snapshot for resort_id, snapshot in result.resorts.items() if resort_id not in _resort_index)
    return ordered


def _conditions_response(state: RefreshState) -> ConditionsResponse:
    result = state.result
    return ConditionsResponse(
        status=state.status.value,
        error=state.error,
        is_live=result.is_live,
        last_updated=result.last_updated,
        page_date=result.page_date,
        daily_report=result.daily_report,
        closure_notices=list(result.closure_notices),
        area_count=result.area_count,
        live_sources=list(result.live_sources),
        unavailable_sources=list(result.unavailable_sources),
        resorts=[_resort_conditions_payload(snapshot) for snapshot in _ordered_snapshots(result)],
    )


def refresh_conditions() -> RefreshState:
    return controller.refresh()


@app.get("/conditions", response_model=ConditionsResponse)
def get_conditions() -> ConditionsResponse:
    return _conditions_response(controller.state)


@app.post("/refresh", response_model=ConditionsResponse)
def post_refresh() -> ConditionsResponse:
    return _conditions_response(refresh_conditions())


@app.get("/resorts", response_model=ResortsResponse)
def get_resorts() -> ResortsResponse:
    return ResortsResponse(resorts=[_resort_payload(meta) for meta in _resorts])


_scheduler = build_scheduler(refresh_conditions, app_config.scheduler)


@app.on_event("startup")
async def _start_scheduler() -> None:
    if _scheduler and not _scheduler.running:
        logger.info("scheduler.start")
        _scheduler.start()


@app.on_event("shutdown")
async def _stop_scheduler() -> None:
    if _scheduler and _scheduler.running:
        logger.info("scheduler.stop")
        _scheduler.shutdown()
    controller.fetcher.close()
