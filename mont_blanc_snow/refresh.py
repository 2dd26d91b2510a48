"""One refresh cycle: fetch every source in parallel, parse, merge.

``produce_snapshot`` is the pure part and only looks at what was fetched;
``RefreshController`` owns the network calls and the status shown to users.
"""
from __future__ import annotations

import threading
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional

from .config import SourceSettings, app_config
from .extractors import EXTRACTORS, Extractor, compose_reports
from .http_client import FetchResult, HttpFetcher
from .logging import bind_trace, get_logger
from .merger import DEFAULT_DISPLAY_TIMEZONE, merge_results
from .models import AggregateResult, SourceReport

logger = get_logger(__name__)

REASON_TOO_SHORT = "too_short"
REASON_NO_DATA = "no_data"
REASON_PARSE_ERROR = "parse_error"


class RefreshStatus(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    LIVE = "live"
    FAILED = "failed"


@dataclass(frozen=True)
class SourceInput:
    """Raw fetch outcome for one source, as handed to :func:`produce_snapshot`."""

    source_id: str
    url: str
    result: FetchResult
    fetched_at: datetime


@dataclass(frozen=True)
class RefreshState:
    status: RefreshStatus
    result: AggregateResult
    error: Optional[str] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def fetch_sources(
    fetcher: HttpFetcher,
    sources: Mapping[str, SourceSettings],
    *,
    extractors: Mapping[str, Extractor] = EXTRACTORS,
    max_workers: int = 4,
    clock: Callable[[], datetime] = _utcnow,
    trace_id: str | None = None,
) -> Dict[str, SourceInput]:
    """Fetch every enabled source concurrently and wait for all of them.

    Each request carries its own timeout, so a wedged source only loses its
    own result.
    """
    jobs = {}
    for source_id, settings in sources.items():
        extractor = extractors.get(source_id)
        if extractor is None or not settings.enabled:
            continue
        headers = extractor.request_headers()
        if settings.accept_language:
            headers["Accept-Language"] = settings.accept_language
        jobs[source_id] = (settings.url or extractor.default_url, settings, headers)

    inputs: Dict[str, SourceInput] = {}
    if not jobs:
        return inputs

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(jobs)))) as executor:
        future_to_source = {
            executor.submit(
                fetcher.fetch_markup,
                url,
                headers=headers,
                timeout=settings.timeout,
                trace_id=trace_id,
            ): (source_id, url)
            for source_id, (url, settings, headers) in jobs.items()
        }
        for future in as_completed(future_to_source):
            source_id, url = future_to_source[future]
            inputs[source_id] = SourceInput(
                source_id=source_id,
                url=url,
                result=future.result(),
                fetched_at=clock(),
            )
    return inputs


def _parse_source(
    source_input: SourceInput, extractor: Extractor
) -> tuple[Optional[SourceReport], Optional[str]]:
    result = source_input.result
    if not result.ok:
        return None, result.reason
    if not extractor.is_plausible(result.html):
        return None, REASON_TOO_SHORT
    try:
        report = extractor.parse(result.html or "")
    except Exception as exc:  # pragma: no cover - one bad page only drops its own source
        logger.error(
            "source.parse_failed",
            source=source_input.source_id,
            error=str(exc),
            exc_info=True,
        )
        return None, REASON_PARSE_ERROR
    if not report.areas and not report.details:
        return None, REASON_NO_DATA
    return replace(report, url=source_input.url, fetched_at=source_input.fetched_at), None


def produce_snapshot(
    source_inputs: Mapping[str, SourceInput],
    baseline: AggregateResult,
    now: datetime,
    *,
    extractors: Mapping[str, Extractor] = EXTRACTORS,
    tz_name: str = DEFAULT_DISPLAY_TIMEZONE,
) -> AggregateResult:
    """Turn fetched pages into an :class:`AggregateResult`.

    Sources that failed, returned a block page or yielded nothing are left
    out and their resorts keep the baseline. When no source is usable the
    baseline comes back as-is, flagged as not live.
    """
    reports: Dict[str, SourceReport] = {}
    unavailable: List[str] = []
    for source_id, source_input in source_inputs.items():
        extractor = extractors.get(source_id)
        if extractor is None:
            logger.warning("source.unknown", source=source_id)
            continue
        report, reason = _parse_source(source_input, extractor)
        if report is None:
            logger.warning(
                "source.unavailable",
                source=source_id,
                reason=reason,
                detail=source_input.result.detail,
            )
            unavailable.append(source_id)
            continue
        reports[source_id] = report

    if not reports:
        logger.error("refresh.all_sources_unavailable", sources=unavailable)
        return replace(baseline, is_live=False, unavailable_sources=tuple(unavailable))

    return merge_results(
        compose_reports(reports),
        baseline,
        fetched_at=now,
        tz_name=tz_name,
        unavailable_sources=unavailable,
    )


def describe_failures(source_inputs: Mapping[str, SourceInput]) -> str:
    parts = []
    for source_id, source_input in sorted(source_inputs.items()):
        result = source_input.result
        parts.append(f"{source_id} ({result.reason or 'no usable data'})")
    if not parts:
        return "No sources configured"
    return "All sources unavailable: " + ", ".join(parts)


class RefreshController:
    """Holds the dashboard state across refreshes.

    ``idle -> fetching -> live | failed``. A failed cycle keeps showing the
    last good result (the baseline until one refresh has succeeded).
    """

    def __init__(
        self,
        baseline: AggregateResult,
        *,
        fetcher: Optional[HttpFetcher] = None,
        sources: Optional[Mapping[str, SourceSettings]] = None,
        extractors: Mapping[str, Extractor] = EXTRACTORS,
        tz_name: str = app_config.display.timezone,
        max_workers: int = app_config.fetch.max_workers,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.baseline = baseline
        self.fetcher = fetcher or HttpFetcher()
        self.sources = dict(app_config.sources if sources is None else sources)
        self.extractors = extractors
        self.tz_name = tz_name
        self.max_workers = max_workers
        self.clock = clock
        self._lock = threading.Lock()
        self._state = RefreshState(status=RefreshStatus.IDLE, result=baseline)

    @property
    def state(self) -> RefreshState:
        return self._state

    def refresh(self) -> RefreshState:
        trace_id = uuid.uuid4().hex
        with self._lock, bind_trace(trace_id):
            previous = self._state.result
            self._state = RefreshState(status=RefreshStatus.FETCHING, result=previous)
            logger.info("refresh.start", sources=sorted(self.sources))

            # Worker threads do not inherit the bound context, so the id is passed along.
            inputs = fetch_sources(
                self.fetcher,
                self.sources,
                extractors=self.extractors,
                max_workers=self.max_workers,
                clock=self.clock,
                trace_id=trace_id,
            )
            result = produce_snapshot(
                inputs,
                self.baseline,
                self.clock(),
                extractors=self.extractors,
                tz_name=self.tz_name,
            )

            if result.is_live:
                self._state = RefreshState(status=RefreshStatus.LIVE, result=result)
                logger.info(
                    "refresh.complete",
                    live_sources=list(result.live_sources),
                    unavailable=list(result.unavailable_sources),
                )
            else:
                error = describe_failures(inputs)
                self._state = RefreshState(status=RefreshStatus.FAILED, result=previous, error=error)
                logger.error("refresh.failed", error=error)
            return self._state
