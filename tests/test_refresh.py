from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict

import httpx
import pytest

from mont_blanc_snow.baseline import load_baseline
from mont_blanc_snow.config import SourceSettings
from mont_blanc_snow.http_client import (
    REASON_HTTP_ERROR,
    REASON_NETWORK_ERROR,
    REASON_TIMEOUT,
    FetchResult,
    HttpFetcher,
)
from mont_blanc_snow.refresh import (
    RefreshController,
    RefreshStatus,
    SourceInput,
    fetch_sources,
    produce_snapshot,
)

FIXTURES = Path(__file__).parent / "fixtures"
NOW = datetime(2026, 2, 16, 11, 30, tzinfo=timezone.utc)

SOURCES: Dict[str, SourceSettings] = {
    "mbnr": SourceSettings(url="https://mbnr.test/en/info-live", timeout=15),
    "skiinfo": SourceSettings(url="https://skiinfo.test/combloux", timeout=12),
    "contamines_meteo": SourceSettings(url="https://contamines.test/meteo.html", timeout=12),
    "contamines_ouverture": SourceSettings(url="https://contamines.test/ouverture.html", timeout=12),
}

PAGES = {
    "/en/info-live": "mbnr_info_live.html",
    "/combloux": "skiinfo_combloux.html",
    "/meteo.html": "contamines_meteo.html",
    "/ouverture.html": "contamines_ouverture.html",
}


def _fixture_text(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


def _fetcher(handler: Callable[[httpx.Request], httpx.Response]) -> HttpFetcher:
    return HttpFetcher(httpx.Client(transport=httpx.MockTransport(handler)))


def _serve_all(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, text=_fixture_text(PAGES[request.url.path]))


def _input(source_id: str, result: FetchResult) -> SourceInput:
    return SourceInput(source_id=source_id, url=SOURCES[source_id].url, result=result, fetched_at=NOW)


@pytest.fixture()
def baseline():
    return load_baseline()


def test_fetch_markup_success_and_headers():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.headers)
        return httpx.Response(200, text="<p>ok</p>")

    result = _fetcher(handler).fetch_markup("https://mbnr.test/", headers={"Accept-Language": "en-GB"})

    assert result.ok is True
    assert result.html == "<p>ok</p>"
    assert seen["accept-language"] == "en-GB"
    assert "user-agent" in seen


def _unavailable(request: httpx.Request) -> httpx.Response:
    return httpx.Response(503, text="down")


def _refused(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("refused", request=request)


def _slow(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("slow", request=request)


@pytest.mark.parametrize(
    "handler, reason",
    [
        (_unavailable, REASON_HTTP_ERROR),
        (_refused, REASON_NETWORK_ERROR),
        (_slow, REASON_TIMEOUT),
    ],
)
def test_fetch_markup_failures_are_reported_not_raised(handler, reason):
    result = _fetcher(handler).fetch_markup("https://mbnr.test/")

    assert result.ok is False
    assert result.reason == reason
    assert result.html is None


def test_fetch_sources_fetches_every_enabled_source():
    sources = dict(SOURCES)
    sources["skiinfo"] = SourceSettings(url=SOURCES["skiinfo"].url, enabled=False)

    inputs = fetch_sources(_fetcher(_serve_all), sources, clock=lambda: NOW)

    assert set(inputs) == {"mbnr", "contamines_meteo", "contamines_ouverture"}
    assert all(source_input.result.ok for source_input in inputs.values())
    assert inputs["mbnr"].url == "https://mbnr.test/en/info-live"


def test_produce_snapshot_all_sources(baseline):
    inputs = fetch_sources(_fetcher(_serve_all), SOURCES, clock=lambda: NOW)

    result = produce_snapshot(inputs, baseline, NOW)

    assert result.is_live is True
    assert result.unavailable_sources == ()
    assert set(result.live_sources) == {"mbnr", "skiinfo", "les_contamines"}
    assert [area.name for area in result.resorts["chamonix"].areas] == ["Brévent", "Flégère", "Aiguille du Midi"]
    assert result.resorts["chamonix"].source_url == "https://mbnr.test/en/info-live"
    assert result.resorts["combloux"].areas[0].lifts_open == 20
    assert result.resorts["les-contamines"].areas[0].snow_depth_top == "220cm"
    assert result.area_count == 7
    assert result.last_updated == "Monday 16 February 2026, 12:30 CET (live)"


def test_produce_snapshot_partial_failure_keeps_baseline_for_failed_resorts(baseline):
    inputs = {
        "mbnr": _input("mbnr", FetchResult(ok=True, html=_fixture_text("mbnr_info_live.html"))),
        "skiinfo": _input("skiinfo", FetchResult.failure(REASON_TIMEOUT, "Timeout")),
    }

    result = produce_snapshot(inputs, baseline, NOW)

    assert result.is_live is True
    assert result.unavailable_sources == ("skiinfo",)
    assert result.resorts["combloux"] == baseline.resorts["combloux"]
    assert result.resorts["les-contamines"] == baseline.resorts["les-contamines"]
    assert result.resorts["chamonix"] != baseline.resorts["chamonix"]


def test_produce_snapshot_rejects_short_pages(baseline):
    inputs = {"mbnr": _input("mbnr", FetchResult(ok=True, html="<html>Access denied</html>"))}

    result = produce_snapshot(inputs, baseline, NOW)

    assert result.is_live is False
    assert result.resorts == baseline.resorts
    assert result.unavailable_sources == ("mbnr",)


def test_produce_snapshot_treats_page_without_areas_as_unavailable(baseline):
    html = "<html><body>" + "<p>Maintenance in progress.</p>" * 60 + "</body></html>"
    inputs = {"mbnr": _input("mbnr", FetchResult(ok=True, html=html))}

    result = produce_snapshot(inputs, baseline, NOW)

    assert result.is_live is False
    assert result.resorts == baseline.resorts


def test_produce_snapshot_all_fail_returns_baseline(baseline):
    inputs = {
        source_id: _input(source_id, FetchResult.failure(REASON_NETWORK_ERROR, "refused"))
        for source_id in SOURCES
    }

    result = produce_snapshot(inputs, baseline, NOW)

    assert result.is_live is False
    assert result.resorts == baseline.resorts
    assert result.daily_report == baseline.daily_report
    assert result.last_updated == baseline.last_updated


def test_controller_goes_live_then_keeps_last_good_result_on_failure(baseline):
    state = {"up": True}

    def handler(request: httpx.Request) -> httpx.Response:
        if state["up"]:
            return _serve_all(request)
        return httpx.Response(500, text="error")

    controller = RefreshController(
        baseline,
        fetcher=_fetcher(handler),
        sources=SOURCES,
        tz_name="Europe/Paris",
        clock=lambda: NOW,
    )
    assert controller.state.status is RefreshStatus.IDLE
    assert controller.state.result is baseline

    live = controller.refresh()
    assert live.status is RefreshStatus.LIVE
    assert live.error is None
    assert live.result.is_live is True

    state["up"] = False
    failed = controller.refresh()
    assert failed.status is RefreshStatus.FAILED
    assert failed.result is live.result
    assert failed.error.startswith("All sources unavailable")
    assert "mbnr (http_error)" in failed.error


def test_controller_failed_first_refresh_keeps_baseline(baseline):
    controller = RefreshController(
        baseline,
        fetcher=_fetcher(lambda request: httpx.Response(404)),
        sources=SOURCES,
        clock=lambda: NOW,
    )

    state = controller.refresh()

    assert state.status is RefreshStatus.FAILED
    assert state.result is baseline
