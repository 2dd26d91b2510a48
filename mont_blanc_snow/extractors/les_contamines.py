"""Extractors for Les Contamines-Montjoie.

Sources:
  https://www.lescontamines.net/meteo.html      (snow, weather, avalanche)
  https://www.lescontamines.net/ouverture.html  (lift and slope status icons)

Neither page describes a whole area on its own; each parser returns
``details`` and :func:`compose_les_contamines` builds the single area from
whichever pages were available.
"""
from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..classifier import classify_area
from ..logging import get_logger
from ..models import AreaRecord, SnowQuality, SourceReport, StationMeasurement
from ..normalization import normalize_text
from ..segmenter import Segment, segment_by_anchors
from .base import Extractor, create_soup, first_match, match_quality_keyword

logger = get_logger(__name__)

METEO_SOURCE_ID = "contamines_meteo"
OUVERTURE_SOURCE_ID = "contamines_ouverture"
METEO_URL = "https://www.lescontamines.net/meteo.html"
OUVERTURE_URL = "https://www.lescontamines.net/ouverture.html"

AREA_NAME = "Les Contamines–Hauteluce"
AREA_ALTITUDE = "2500m"

STATION_NAMES: Sequence[str] = (
    "AIGUILLE",
    "SIGNAL",
    "RUELLE",
    "ETAPE",
    "VILLAGE",
    "COL du JOLY",
    "TSD Olympique",
)
TOP_STATIONS = ("AIGUILLE", "SIGNAL")
BASE_STATIONS = ("ETAPE", "VILLAGE")
WIND_STATION = "SIGNAL"

# The ouverture page mixes lift and slope icons without telling them apart.
# Open icons are split between the two in proportion to the resort's
# published inventory. This is an estimate, not a real per-category count.
LIFTS_TOTAL = 25
SLOPES_TOTAL = 48

WEATHER_REPORT_MAX_LENGTH = 400

_FRESH_RE = re.compile(r"Fraiche\s+(\w+)\s*\+\s*(\d+)\s*cm\s*/\s*24H", re.IGNORECASE)
_AVALANCHE_LABELLED_RE = re.compile(
    r"Risque\s+d.avalanche\s*:?\s*(\d)\s*/\s*5\s*(TR[EÈ]S\s*FORT|FORT|MARQU\w*|LIMIT\w*|FAIBLE)?",
    re.IGNORECASE,
)
_AVALANCHE_RE = re.compile(r"(\d)\s*/\s*5\s*(TR[EÈ]S\s*FORT|FORT|MARQU\w*|LIMIT\w*|FAIBLE)?", re.IGNORECASE)
_ANCHOR_PREFIX_RE = re.compile(r"^.*?\d{3,4}\s*m\b")
_STATION_SNOW_RE = re.compile(r"(?<![+\d])(\d{2,3})\s*cm")
_STATION_FRESH_RE = re.compile(r"\+\s*(\d+)\s*cm")
_STATION_TEMP_RE = re.compile(r"(-?\d+(?:[.,]\d+)?)\s*°C")
_STATION_WIND_RE = re.compile(r"\b(\w{1,3})\s+(\d+)\s*km/h", re.IGNORECASE)
_WEATHER_RE = re.compile(
    r"Vigilance\s*:?\s*([\s\S]{20,500}?)(?=Message du jour|Venir|Bulletin neige)", re.IGNORECASE
)
_MESSAGE_RE = re.compile(r"Message du jour\s+([\s\S]{5,200}?)(?=Venir|Bulletin|$)", re.IGNORECASE)
_ICON_RE = {
    "open": re.compile(r"icons/O\.png"),
    "closed": re.compile(r"icons/F\.png"),
    "problem": re.compile(r"icons/P\.png"),
}


def _parse_station(segment: Segment) -> StationMeasurement:
    # Skip the "NAME 1234m" anchor so the altitude is not read as a value.
    data = _ANCHOR_PREFIX_RE.sub("", segment.window, count=1)
    temperature = first_match(data, _STATION_TEMP_RE)
    wind = _STATION_WIND_RE.search(data)
    snow = first_match(data, _STATION_SNOW_RE)
    fresh = first_match(data, _STATION_FRESH_RE)
    return StationMeasurement(
        name=segment.name,
        altitude=segment.altitude,
        snow_depth=f"{snow}cm" if snow else None,
        fresh_snow=f"+{fresh}cm" if fresh else None,
        temperature=f"{temperature.replace(',', '.')}°C" if temperature else None,
        wind_direction=wind.group(1) if wind else None,
        wind_speed=f"{wind.group(2)} km/h" if wind else None,
    )


def parse_stations(text: str) -> List[StationMeasurement]:
    return [_parse_station(segment) for segment in segment_by_anchors(text, STATION_NAMES)]


def _first_station_value(stations: Sequence[StationMeasurement], names: Sequence[str], attr: str) -> Optional[str]:
    by_name = {station.name: station for station in stations}
    for name in names:
        station = by_name.get(name)
        if station is not None and getattr(station, attr):
            return getattr(station, attr)
    return None


def parse_fresh_snow(text: str) -> Dict[str, Optional[str]]:
    """Largest 24h fresh snow among all stations in the alert banner."""
    readings = [(match.group(1), int(match.group(2))) for match in _FRESH_RE.finditer(text)]
    if not readings:
        return {"fresh_snow": None, "fresh_detail": None}
    return {
        "fresh_snow": f"{max(cm for _, cm in readings)}cm",
        "fresh_detail": ", ".join(f"{station}: +{cm}cm" for station, cm in readings),
    }


def parse_avalanche(text: str) -> Dict[str, Optional[str]]:
    match = _AVALANCHE_LABELLED_RE.search(text) or _AVALANCHE_RE.search(text)
    if not match:
        return {"avalanche_risk": None, "avalanche_detail": None}
    detail = match.group(2)
    return {
        "avalanche_risk": f"{match.group(1)}/5",
        "avalanche_detail": detail.strip().upper() if detail else None,
    }


class LesContaminesMeteoExtractor(Extractor):
    source_id = METEO_SOURCE_ID
    default_url = METEO_URL

    def parse(self, html: str) -> SourceReport:
        text = normalize_text(html)
        stations = parse_stations(text)

        signal = next((station for station in stations if station.name == WIND_STATION), None)
        wind = None
        if signal is not None and signal.wind_speed and signal.wind_direction:
            wind = f"{signal.wind_speed} {signal.wind_direction}"

        quality = match_quality_keyword(text)
        weather = first_match(text, _WEATHER_RE)

        details: Dict[str, Any] = {
            **parse_fresh_snow(text),
            **parse_avalanche(text),
            "stations": tuple(stations),
            "snow_top": _first_station_value(stations, TOP_STATIONS, "snow_depth"),
            "snow_base": _first_station_value(stations, BASE_STATIONS, "snow_depth"),
            "temp_top": _first_station_value(stations, TOP_STATIONS[:1], "temperature"),
            "temp_base": _first_station_value(stations, BASE_STATIONS[:1], "temperature"),
            "snow_quality": (quality or SnowQuality.UNKNOWN).value,
            "wind": wind,
            "weather_report": weather[:WEATHER_REPORT_MAX_LENGTH].strip() if weather else None,
            "message_of_day": first_match(text, _MESSAGE_RE),
        }
        logger.info("contamines.meteo.parsed", stations=len(stations), fresh=details["fresh_snow"])
        return SourceReport(source_id=self.source_id, details=details)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def split_open_count(open_count: int) -> Dict[str, int]:
    """Split a combined open-icon count into lift and slope estimates."""
    inventory = LIFTS_TOTAL + SLOPES_TOTAL
    return {
        "lifts_open": _round_half_up(open_count * LIFTS_TOTAL / inventory),
        "lifts_total": LIFTS_TOTAL,
        "slopes_open": _round_half_up(open_count * SLOPES_TOTAL / inventory),
        "slopes_total": SLOPES_TOTAL,
    }


class LesContaminesOuvertureExtractor(Extractor):
    source_id = OUVERTURE_SOURCE_ID
    default_url = OUVERTURE_URL

    def parse(self, html: str) -> SourceReport:
        soup = create_soup(html)
        counts = {status: len(soup.find_all(src=pattern)) for status, pattern in _ICON_RE.items()}
        total = sum(counts.values())

        details: Dict[str, Any] = {
            "total_open": counts["open"],
            "total_closed": counts["closed"],
            "total_problem": counts["problem"],
            "total_items": total,
        }
        if total:
            details.update(split_open_count(counts["open"]))
        else:
            logger.warning("contamines.ouverture.no_icons")
        logger.info("contamines.ouverture.parsed", **counts)
        return SourceReport(source_id=self.source_id, details=details)


def compose_les_contamines(reports: Mapping[str, SourceReport]) -> Optional[SourceReport]:
    """Merge the meteo and ouverture reports into one Les Contamines area.

    Returns ``None`` when neither page could be parsed.
    """
    meteo = reports.get(METEO_SOURCE_ID)
    ouverture = reports.get(OUVERTURE_SOURCE_ID)
    if meteo is None and ouverture is None:
        return None

    m: Mapping[str, Any] = meteo.details if meteo else {}
    o: Mapping[str, Any] = ouverture.details if ouverture else {}

    area = AreaRecord(
        name=AREA_NAME,
        altitude=AREA_ALTITUDE,
        resort_id=classify_area(AREA_NAME),
        snow_depth_top=m.get("snow_top"),
        snow_depth_base=m.get("snow_base"),
        snow_quality=m.get("snow_quality") or SnowQuality.UNKNOWN.value,
        fresh_snow_24h=m.get("fresh_snow"),
        fresh_snow_detail=m.get("fresh_detail"),
        temperature_morning=m.get("temp_top"),
        temperature_afternoon=m.get("temp_base"),
        avalanche_risk=m.get("avalanche_risk"),
        avalanche_detail=m.get("avalanche_detail"),
        lifts_open=o.get("lifts_open"),
        lifts_total=o.get("lifts_total"),
        slopes_open=o.get("slopes_open"),
        slopes_total=o.get("slopes_total"),
        wind=m.get("wind"),
        weather_report=m.get("weather_report"),
        message_of_day=m.get("message_of_day"),
        stations=m.get("stations") or (),
    )

    parts = [report for report in (meteo, ouverture) if report is not None]
    fetched = [report.fetched_at for report in parts if report.fetched_at is not None]
    fetched_at: Optional[datetime] = max(fetched) if fetched else None
    return SourceReport(
        source_id="les_contamines",
        url=parts[0].url,
        fetched_at=fetched_at,
        areas=(area,),
    )
