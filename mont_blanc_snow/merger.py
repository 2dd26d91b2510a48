"""Combine freshly extracted areas with the curated baseline snapshot."""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence
from zoneinfo import ZoneInfo

from .logging import get_logger
from .models import NO_DAILY_REPORT, AggregateResult, AreaRecord, ResortSnapshot, SourceReport

logger = get_logger(__name__)

DEFAULT_DISPLAY_TIMEZONE = "Europe/Paris"


def format_last_updated(moment: datetime, *, tz_name: str = DEFAULT_DISPLAY_TIMEZONE, live: bool = True) -> str:
    """Human readable stamp, e.g. ``"Monday 16 February 2026, 12:30 CET (live)"``."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    local = moment.astimezone(ZoneInfo(tz_name))
    marker = "live" if live else "snapshot"
    return f"{local:%A} {local.day} {local:%B %Y}, {local:%H:%M} {local.tzname()} ({marker})"


def _has_daily_report(report: Optional[str]) -> bool:
    return bool(report and report.strip()) and report != NO_DAILY_REPORT


def _first_value(areas: Iterable[AreaRecord], attr: str) -> Optional[str]:
    for area in areas:
        value = getattr(area, attr)
        if value:
            return value
    return None


def merge_results(
    reports: Sequence[SourceReport],
    baseline: AggregateResult,
    *,
    fetched_at: datetime,
    tz_name: str = DEFAULT_DISPLAY_TIMEZONE,
    unavailable_sources: Sequence[str] = (),
) -> AggregateResult:
    """Overlay ``reports`` onto a copy of ``baseline``.

    A resort with at least one incoming area gets its whole area list
    replaced; resorts without incoming areas keep their baseline areas.
    Resort-level avalanche risk and last snowfall come from the first
    incoming area that carries them, else from the baseline.
    """
    # Snapshots and records are immutable; only the mapping is rebuilt.
    resorts: Dict[str, ResortSnapshot] = dict(baseline.resorts)

    grouped: Dict[str, List[AreaRecord]] = {}
    sources: Dict[str, SourceReport] = {}
    for report in reports:
        for area in report.areas:
            resort_id = area.resort_id
            if not resort_id or resort_id not in resorts:
                logger.debug("merge.area.skipped", area=area.name, resort_id=resort_id)
                continue
            grouped.setdefault(resort_id, []).append(area)
            sources.setdefault(resort_id, report)

    for resort_id, areas in grouped.items():
        previous = resorts[resort_id]
        report = sources[resort_id]
        resorts[resort_id] = replace(
            previous,
            areas=tuple(areas),
            fetched_at=report.fetched_at or fetched_at,
            source_url=report.url or previous.source_url,
            avalanche_risk=_first_value(areas, "avalanche_risk") or previous.avalanche_risk,
            last_snowfall=_first_value(areas, "last_snowfall") or previous.last_snowfall,
        )

    daily_report = baseline.daily_report
    page_date = baseline.page_date
    closure_notices = baseline.closure_notices
    for report in reports:
        if _has_daily_report(report.daily_report):
            daily_report = report.daily_report
            break
    for report in reports:
        if report.page_date:
            page_date = report.page_date
            break
    for report in reports:
        if report.closure_notices:
            closure_notices = tuple(report.closure_notices)
            break

    live_sources = tuple(report.source_id for report in reports)
    logger.info(
        "merge.complete",
        replaced=sorted(grouped),
        kept=sorted(set(resorts) - set(grouped)),
        live_sources=list(live_sources),
    )
    return AggregateResult(
        resorts=resorts,
        page_date=page_date,
        daily_report=daily_report,
        closure_notices=closure_notices,
        is_live=True,
        last_updated=format_last_updated(fetched_at, tz_name=tz_name, live=True),
        area_count=sum(len(areas) for areas in grouped.values()),
        live_sources=live_sources,
        unavailable_sources=tuple(unavailable_sources),
    )
