from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

SLOPE_DIFFICULTIES = ("green", "blue", "red", "black")
NO_DAILY_REPORT = "No daily report found"


class SnowQuality(str, Enum):
    """Canonical snow surface categories shown on the dashboard."""

    POWDER = "Powder"
    FRESH = "Fresh"
    WET = "Wet"
    GROOMED = "Groomed"
    HARD_ICY = "Hard/Icy"
    SPRING = "Spring"
    UNKNOWN = "Unknown"


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    raise TypeError("timestamp must be a datetime or ISO-8601 string")


Pairs = Tuple[Tuple[str, Optional[str]], ...]

EMPTY_BREAKDOWN: Pairs = tuple((difficulty, None) for difficulty in SLOPE_DIFFICULTIES)


def _freeze_breakdown(value: Any) -> Pairs:
    """Slope counts as ``((difficulty, "open/total"), ...)`` in difficulty order."""
    counts = dict(value or ())
    return tuple((difficulty, counts.get(difficulty)) for difficulty in SLOPE_DIFFICULTIES)


def _freeze_pairs(value: Any) -> Optional[Pairs]:
    if not value:
        return None
    return tuple(dict(value).items())


@dataclass(frozen=True)
class StationMeasurement:
    """A single weather/snow station reading from a station table."""

    name: str
    altitude: Optional[str] = None
    snow_depth: Optional[str] = None
    fresh_snow: Optional[str] = None
    temperature: Optional[str] = None
    wind_direction: Optional[str] = None
    wind_speed: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "altitude": self.altitude,
            "snow_depth": self.snow_depth,
            "fresh_snow": self.fresh_snow,
            "temperature": self.temperature,
            "wind_direction": self.wind_direction,
            "wind_speed": self.wind_speed,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StationMeasurement":
        return cls(
            name=data["name"],
            altitude=data.get("altitude"),
            snow_depth=data.get("snow_depth"),
            fresh_snow=data.get("fresh_snow"),
            temperature=data.get("temperature"),
            wind_direction=data.get("wind_direction"),
            wind_speed=data.get("wind_speed"),
        )


@dataclass(frozen=True)
class AreaRecord:
    """Conditions for one ski area (a sector or sub-resort of a resort).

    Depths, temperatures and wind keep their unit suffix ("190cm", "-4°C",
    "40 km/h SW") because they are displayed as-is. ``is_closed`` is always
    true when no lift is open or a closure reason is given, whatever the
    caller passed. ``slope_breakdown`` and ``forecast_snow`` accept mappings
    and are stored as tuples of pairs so a record stays immutable and
    hashable; ``to_dict`` turns them back into dicts.
    """

    name: str
    altitude: Optional[str] = None
    resort_id: Optional[str] = None
    snow_depth_top: Optional[str] = None
    snow_depth_base: Optional[str] = None
    snow_quality: str = SnowQuality.UNKNOWN.value
    fresh_snow_24h: Optional[str] = None
    lifts_open: Optional[int] = None
    lifts_total: Optional[int] = None
    slopes_open: Optional[int] = None
    slopes_total: Optional[int] = None
    slope_breakdown: Pairs = EMPTY_BREAKDOWN
    temperature_morning: Optional[str] = None
    temperature_afternoon: Optional[str] = None
    avalanche_risk: Optional[str] = None
    avalanche_detail: Optional[str] = None
    wind: Optional[str] = None
    visibility: Optional[str] = None
    is_closed: bool = False
    closure_reason: Optional[str] = None
    last_update: Optional[str] = None
    last_snowfall: Optional[str] = None
    fresh_snow_detail: Optional[str] = None
    forecast_snow: Optional[Pairs] = None
    weather_report: Optional[str] = None
    message_of_day: Optional[str] = None
    stations: Tuple[StationMeasurement, ...] = ()
    note: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.lifts_open == 0 or self.closure_reason) and not self.is_closed:
            object.__setattr__(self, "is_closed", True)
        if isinstance(self.snow_quality, SnowQuality):
            object.__setattr__(self, "snow_quality", self.snow_quality.value)
        object.__setattr__(self, "stations", tuple(self.stations))
        object.__setattr__(self, "slope_breakdown", _freeze_breakdown(self.slope_breakdown))
        object.__setattr__(self, "forecast_snow", _freeze_pairs(self.forecast_snow))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "altitude": self.altitude,
            "resort_id": self.resort_id,
            "snow_depth_top": self.snow_depth_top,
            "snow_depth_base": self.snow_depth_base,
            "snow_quality": self.snow_quality,
            "fresh_snow_24h": self.fresh_snow_24h,
            "lifts_open": self.lifts_open,
            "lifts_total": self.lifts_total,
            "slopes_open": self.slopes_open,
            "slopes_total": self.slopes_total,
            "slope_breakdown": dict(self.slope_breakdown),
            "temperature_morning": self.temperature_morning,
            "temperature_afternoon": self.temperature_afternoon,
            "avalanche_risk": self.avalanche_risk,
            "avalanche_detail": self.avalanche_detail,
            "wind": self.wind,
            "visibility": self.visibility,
            "is_closed": self.is_closed,
            "closure_reason": self.closure_reason,
            "last_update": self.last_update,
            "last_snowfall": self.last_snowfall,
            "fresh_snow_detail": self.fresh_snow_detail,
            "forecast_snow": dict(self.forecast_snow) if self.forecast_snow else None,
            "weather_report": self.weather_report,
            "message_of_day": self.message_of_day,
            "stations": [station.to_dict() for station in self.stations],
            "note": self.note,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AreaRecord":
        return cls(
            name=data["name"],
            altitude=data.get("altitude"),
            resort_id=data.get("resort_id"),
            snow_depth_top=data.get("snow_depth_top"),
            snow_depth_base=data.get("snow_depth_base"),
            snow_quality=data.get("snow_quality") or SnowQuality.UNKNOWN.value,
            fresh_snow_24h=data.get("fresh_snow_24h"),
            lifts_open=data.get("lifts_open"),
            lifts_total=data.get("lifts_total"),
            slopes_open=data.get("slopes_open"),
            slopes_total=data.get("slopes_total"),
            slope_breakdown=data.get("slope_breakdown"),
            temperature_morning=data.get("temperature_morning"),
            temperature_afternoon=data.get("temperature_afternoon"),
            avalanche_risk=data.get("avalanche_risk"),
            avalanche_detail=data.get("avalanche_detail"),
            wind=data.get("wind"),
            visibility=data.get("visibility"),
            is_closed=bool(data.get("is_closed", False)),
            closure_reason=data.get("closure_reason"),
            last_update=data.get("last_update"),
            last_snowfall=data.get("last_snowfall"),
            fresh_snow_detail=data.get("fresh_snow_detail"),
            forecast_snow=data.get("forecast_snow"),
            weather_report=data.get("weather_report"),
            message_of_day=data.get("message_of_day"),
            stations=tuple(StationMeasurement.from_dict(item) for item in data.get("stations") or ()),
            note=data.get("note"),
        )


@dataclass(frozen=True)
class ResortSnapshot:
    resort_id: str
    areas: Tuple[AreaRecord, ...] = ()
    fetched_at: Optional[datetime] = None
    source_url: Optional[str] = None
    avalanche_risk: Optional[str] = None
    last_snowfall: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resort_id": self.resort_id,
            "areas": [area.to_dict() for area in self.areas],
            "fetched_at": self.fetched_at.isoformat() if self.fetched_at else None,
            "source_url": self.source_url,
            "avalanche_risk": self.avalanche_risk,
            "last_snowfall": self.last_snowfall,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ResortSnapshot":
        return cls(
            resort_id=data["resort_id"],
            areas=tuple(AreaRecord.from_dict(area) for area in data.get("areas") or ()),
            fetched_at=_parse_timestamp(data.get("fetched_at")),
            source_url=data.get("source_url"),
            avalanche_risk=data.get("avalanche_risk"),
            last_snowfall=data.get("last_snowfall"),
        )


@dataclass(frozen=True)
class AggregateResult:
    """Everything the presentation layer needs for one refresh cycle."""

    resorts: Dict[str, ResortSnapshot]
    page_date: Optional[str] = None
    daily_report: Optional[str] = None
    closure_notices: Tuple[str, ...] = ()
    is_live: bool = False
    last_updated: Optional[str] = None
    area_count: int = 0
    live_sources: Tuple[str, ...] = ()
    unavailable_sources: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page_date": self.page_date,
            "daily_report": self.daily_report,
            "closure_notices": list(self.closure_notices),
            "resorts": {resort_id: snapshot.to_dict() for resort_id, snapshot in self.resorts.items()},
            "is_live": self.is_live,
            "last_updated": self.last_updated,
            "area_count": self.area_count,
            "live_sources": list(self.live_sources),
            "unavailable_sources": list(self.unavailable_sources),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AggregateResult":
        resorts = {}
        for resort_id, snapshot in (data.get("resorts") or {}).items():
            resorts[resort_id] = ResortSnapshot.from_dict({"resort_id": resort_id, **snapshot})
        return cls(
            resorts=resorts,
            page_date=data.get("page_date"),
            daily_report=data.get("daily_report"),
            closure_notices=tuple(data.get("closure_notices") or ()),
            is_live=bool(data.get("is_live", False)),
            last_updated=data.get("last_updated"),
            area_count=int(data.get("area_count") or 0),
            live_sources=tuple(data.get("live_sources") or ()),
            unavailable_sources=tuple(data.get("unavailable_sources") or ()),
        )


@dataclass(frozen=True)
class SourceReport:
    """Parsed output of a single source page.

    ``details`` carries loosely structured values for sources that only
    contribute part of an area and are combined later.
    """

    source_id: str
    url: Optional[str] = None
    fetched_at: Optional[datetime] = None
    areas: Tuple[AreaRecord, ...] = ()
    page_date: Optional[str] = None
    daily_report: Optional[str] = None
    closure_notices: Tuple[str, ...] = ()
    details: Mapping[str, Any] = field(default_factory=dict)
