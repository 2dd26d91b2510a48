"""Extractor for the Mont Blanc Natural Resort live page.

Source: https://www.montblancnaturalresort.com/en/info-live

One page lists every Chamonix valley area under an ``"Name - 2525m"``
heading, each followed by English labels ("Snow height", "Lift (7/12)"...).
"""
from __future__ import annotations

import re
from typing import List, Optional

from ..classifier import classify_area
from ..logging import get_logger
from ..models import AreaRecord, SourceReport
from ..normalization import normalize_text
from ..segmenter import HEADING_RE, Segment, segment_by_heading
from .base import (
    Extractor,
    create_soup,
    detect_closure,
    extract_depth,
    extract_pair,
    extract_temperature,
    first_match,
    translate_quality,
)

logger = get_logger(__name__)

SOURCE_ID = "mbnr"
DEFAULT_URL = "https://www.montblancnaturalresort.com/en/info-live"
DAILY_REPORT_MAX_LENGTH = 300
HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")

_WEEKDAY = r"(?:Monday|Tuesday|Wednesday|Thursday|Friday|Saturday|Sunday)"
_PAGE_DATE_RE = re.compile(
    rf"({_WEEKDAY}),\s+([A-Z][a-z]+)\s+(\d{{1,2}})(?:st|nd|rd|th)?\s+(\d{{4}})", re.IGNORECASE
)
_DAILY_REPORT_RE = re.compile(
    rf"Daily report\s+{_WEEKDAY}[^.]*?\d{{4}}\s+([\s\S]*?)(?=Opening|Lift|$)", re.IGNORECASE
)
_DAILY_REPORT_LOOSE_RE = re.compile(
    r"Daily report[^A-Z]*([A-Z][\s\S]{20,300}?)(?:\s*Opening|\s*Lift|\s*$)", re.IGNORECASE
)
_CLOSURE_NOTICE_RE = re.compile(
    r"The\s+([\w\s\-()]+?)\s+(?:ski\s+area|site|will\s+be)\s+(?:is\s+)?closed[^.]*\.", re.IGNORECASE
)

_QUALITY_RE = re.compile(
    r"Snow\s+quality\s*:?\s*\**\s*([A-Za-zà-ÿ\s]+?)(?:\*|\s{2}|Snow|Fresh|Last|Visibility|Wind|Lift|Slope|Train|\d|$)",
    re.IGNORECASE,
)
_LAST_SNOWFALL_RE = re.compile(r"Last\s+snow\s*fall?\s*:?\s*\**\s*([\d/]+)", re.IGNORECASE)
_VISIBILITY_RE = re.compile(
    r"Visibility\s*:?\s*\**\s*([^\n.:]{3,40}?)\s*(?=Wind|Snow|Fresh|Last|Lift|Slope|Train|Closed|Avalanche|-?\d+\s*°C|$)",
    re.IGNORECASE,
)
_WIND_RE = re.compile(r"(?i:Wind)\s*:?\s*\**\s*([\d.]+\s*[Kk]m/h\s*[A-Z]{1,3})\b")
_AVALANCHE_RE = re.compile(r"(\d)\s*/\s*5\s+Avalanche", re.IGNORECASE)
_MORNING_RE = re.compile(r"(-?\d+)\s*°C\s+Morning", re.IGNORECASE)
_AFTERNOON_RE = re.compile(r"(-?\d+)\s*°C\s+Afternoon", re.IGNORECASE)
_LIFT_RE = re.compile(r"Lifts?\s*\(\s*(\d+)\s*/\s*(\d+)\s*\)", re.IGNORECASE)
_TRAIN_RE = re.compile(r"Trains?\s*(?:&\s*Visits?)?\s*\(\s*(\d+)\s*/\s*(\d+)\s*\)", re.IGNORECASE)
_SLOPE_RE = re.compile(r"Slopes?\s*\(\s*(\d+)\s*/\s*(\d+)\s*\)", re.IGNORECASE)


def extract_page_date(text: str) -> Optional[str]:
    match = _PAGE_DATE_RE.search(text)
    if not match:
        return None
    weekday, month, day, year = match.groups()
    return f"{weekday}, {month} {day}, {year}"


def extract_daily_report(text: str) -> Optional[str]:
    report = first_match(text, _DAILY_REPORT_RE) or first_match(text, _DAILY_REPORT_LOOSE_RE)
    if not report:
        return None
    return report[:DAILY_REPORT_MAX_LENGTH].strip()


def extract_closure_notices(text: str) -> List[str]:
    return [match.group(0).strip() for match in _CLOSURE_NOTICE_RE.finditer(text)]


def extract_headings(html: str) -> List[str]:
    """Area headings (``"Brévent - 2525m"``) from heading tags, in page order."""
    soup = create_soup(html)
    headings = []
    for tag in soup.find_all(HEADING_TAGS):
        heading = normalize_text(tag.get_text(" "))
        if HEADING_RE.fullmatch(heading):
            headings.append(heading)
    return headings


def parse_area(segment: Segment) -> Optional[AreaRecord]:
    """Build an :class:`AreaRecord` from one heading window.

    Returns ``None`` for areas that are not shown on the dashboard and for
    windows that carry neither a snow height nor a lift count.
    """
    window = segment.window
    resort_id = classify_area(segment.name)
    if resort_id is None:
        logger.debug("mbnr.area.discarded", area=segment.name)
        return None

    snow = extract_depth(window, r"Snow\s+height")
    lifts = extract_pair(window, _LIFT_RE)
    if lifts == (None, None):
        lifts = extract_pair(window, _TRAIN_RE)
    if snow is None and lifts == (None, None):
        logger.debug("mbnr.area.empty", area=segment.name)
        return None

    slopes = extract_pair(window, _SLOPE_RE)
    is_closed, closure_reason = detect_closure(window, lifts[0])
    avalanche = first_match(window, _AVALANCHE_RE)

    return AreaRecord(
        name=segment.name,
        altitude=segment.altitude,
        resort_id=resort_id,
        snow_depth_top=snow,
        snow_quality=translate_quality(first_match(window, _QUALITY_RE)),
        fresh_snow_24h=extract_depth(window, r"Fresh\s+snow"),
        lifts_open=lifts[0],
        lifts_total=lifts[1],
        slopes_open=slopes[0],
        slopes_total=slopes[1],
        temperature_morning=extract_temperature(window, _MORNING_RE),
        temperature_afternoon=extract_temperature(window, _AFTERNOON_RE),
        avalanche_risk=f"{avalanche}/5" if avalanche else None,
        wind=first_match(window, _WIND_RE),
        visibility=first_match(window, _VISIBILITY_RE),
        is_closed=is_closed,
        closure_reason=closure_reason,
        last_snowfall=first_match(window, _LAST_SNOWFALL_RE),
    )


class MbnrExtractor(Extractor):
    source_id = SOURCE_ID
    default_url = DEFAULT_URL
    min_length = 1000
    accept_language = "en-GB,en;q=0.9"

    def parse(self, html: str) -> SourceReport:
        text = normalize_text(html)
        segments = []
        headings = extract_headings(html)
        if headings:
            segments = segment_by_heading(text, headings=headings)
        if not segments:
            logger.debug("mbnr.headings.text_scan", markup_headings=len(headings))
            segments = segment_by_heading(text)
        areas = []
        for segment in segments:
            area = parse_area(segment)
            if area is not None:
                areas.append(area)
        logger.info("mbnr.parsed", areas=len(areas))
        return SourceReport(
            source_id=self.source_id,
            areas=tuple(areas),
            page_date=extract_page_date(text),
            daily_report=extract_daily_report(text),
            closure_notices=tuple(extract_closure_notices(text)),
        )


def parse_conditions(html: str) -> SourceReport:
    """Parse the MBNR live page into a :class:`SourceReport`."""
    return MbnrExtractor().parse(html)
