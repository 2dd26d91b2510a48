from __future__ import annotations

from pathlib import Path

import pytest

from mont_blanc_snow.extractors import EXTRACTORS, compose_reports
from mont_blanc_snow.extractors import les_contamines, mbnr, skiinfo
from mont_blanc_snow.extractors.base import (
    detect_closure,
    extract_depth,
    extract_pair,
    translate_quality,
)
from mont_blanc_snow.models import AreaRecord, SourceReport
from mont_blanc_snow.segmenter import Segment

FIXTURES = Path(__file__).parent / "fixtures"


def _fixture_text(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


def _areas_by_name(report: SourceReport):
    return {area.name: area for area in report.areas}


def test_extract_depth_labels():
    text = "En bas 80 cm Neige damée En haut 190 cm Poudreuse"

    assert extract_depth(text, r"En\s+bas") == "80cm"
    assert extract_depth(text, r"En\s+haut") == "190cm"
    assert extract_depth(text, r"Snow\s+height") is None


def test_extract_depth_without_space_before_unit():
    text = "Enneigement En bas 116cm En haut 190cm"

    assert extract_depth(text, r"En\s+bas") == "116cm"
    assert extract_depth(text, r"En\s+haut") == "190cm"
    assert extract_depth("Snow height 1 250 cm", r"Snow\s+height") == "1250cm"


def test_extract_pair_requires_both_numbers():
    assert extract_pair("Remontées ouvertes 20/22 ouvert", skiinfo._LIFTS_RE) == (20, 22)
    assert extract_pair("Remontées ouvertes", skiinfo._LIFTS_RE) == (None, None)


def test_translate_quality():
    assert translate_quality("Poudreuse") == "Powder"
    assert translate_quality("Neige damée") == "Groomed"
    assert translate_quality("Poudreuse damée") == "Powder"
    assert translate_quality("Neige de culture") == "Neige de culture"
    assert translate_quality(None) == "Unknown"
    assert translate_quality("  ") == "Unknown"


def test_detect_closure():
    assert detect_closure("Lift (0/8)", 0) == (True, None)
    assert detect_closure("Closed : bad weather -6°C", 2) == (True, "bad weather")
    assert detect_closure("Lift (3/8)", 3) == (False, None)


def test_detect_closure_generic_reason():
    assert detect_closure("Closed : maintenance -2°C Morning", 3) == (True, "maintenance")
    assert detect_closure("Closed : 0 Lift (2/4)", 2) == (False, None)


def test_mbnr_single_area_literal():
    segment = Segment(
        name="Brévent",
        altitude="2525m",
        start=0,
        window="Brévent - 2525m Snow height 190 cm Lift (7/12)",
    )

    area = mbnr.parse_area(segment)

    assert area is not None
    assert area.name == "Brévent"
    assert area.altitude == "2525m"
    assert area.resort_id == "chamonix"
    assert area.snow_depth_top == "190cm"
    assert area.lifts_open == 7
    assert area.lifts_total == 12
    assert area.is_closed is False
    assert area.snow_quality == "Unknown"


def test_mbnr_area_without_snow_or_lifts_is_skipped():
    segment = Segment(name="Brévent", altitude="2525m", start=0, window="Brévent - 2525m Webcams")

    assert mbnr.parse_area(segment) is None


def test_mbnr_page_parsing():
    report = mbnr.parse_conditions(_fixture_text("mbnr_info_live.html"))

    assert report.source_id == "mbnr"
    assert report.page_date == "Monday, February 16, 2026"
    assert report.daily_report == (
        "Heavy snowfall overnight with strong winds at altitude. "
        "Avalanche danger is high, stay on marked slopes."
    )
    assert report.closure_notices == ("The Aiguille du Midi site is closed due to strong winds.",)

    areas = _areas_by_name(report)
    assert set(areas) == {"Brévent", "Flégère", "Aiguille du Midi", "Balme", "Les Houches"}

    brevent = areas["Brévent"]
    assert brevent.resort_id == "chamonix"
    assert brevent.snow_depth_top == "190cm"
    assert brevent.snow_quality == "Powder"
    assert brevent.fresh_snow_24h == "25cm"
    assert (brevent.lifts_open, brevent.lifts_total) == (7, 12)
    assert (brevent.slopes_open, brevent.slopes_total) == (18, 25)
    assert brevent.temperature_morning == "-4°C"
    assert brevent.temperature_afternoon == "-1°C"
    assert brevent.wind == "40 km/h SW"
    assert brevent.visibility == "Good"
    assert brevent.avalanche_risk == "3/5"
    assert brevent.last_snowfall == "15/02/2026"
    assert brevent.is_closed is False

    flegere = areas["Flégère"]
    assert flegere.snow_quality == "Groomed"
    assert flegere.is_closed is True
    assert flegere.closure_reason == "bad weather"

    midi = areas["Aiguille du Midi"]
    assert (midi.lifts_open, midi.lifts_total) == (0, 3)
    assert midi.snow_depth_top is None
    assert midi.is_closed is True
    assert midi.closure_reason == "wind"

    assert areas["Balme"].resort_id == "vallorcine"
    assert areas["Les Houches"].resort_id == "saint-gervais"


def test_mbnr_area_matches_full_record():
    report = mbnr.parse_conditions(_fixture_text("mbnr_info_live.html"))

    assert _areas_by_name(report)["Brévent"] == AreaRecord(
        name="Brévent",
        altitude="2525m",
        resort_id="chamonix",
        snow_depth_top="190cm",
        snow_depth_base=None,
        snow_quality="Powder",
        fresh_snow_24h="25cm",
        lifts_open=7,
        lifts_total=12,
        slopes_open=18,
        slopes_total=25,
        slope_breakdown={"green": None, "blue": None, "red": None, "black": None},
        temperature_morning="-4°C",
        temperature_afternoon="-1°C",
        avalanche_risk="3/5",
        avalanche_detail=None,
        wind="40 km/h SW",
        visibility="Good",
        is_closed=False,
        closure_reason=None,
        last_update=None,
        last_snowfall="15/02/2026",
        fresh_snow_detail=None,
        forecast_snow=None,
        weather_report=None,
        message_of_day=None,
        stations=(),
        note=None,
    )


CARDS_WITHOUT_TRAILING_DATES = """
<html><body><main>
  <div class="area-card"><{tag}>Brévent - 2525m</{tag}>
    <ul><li>Snow height 190 cm</li><li>Lift (7/12)</li><li>Visibility Good</li></ul></div>
  <div class="area-card"><{tag}>Flégère - 2385m</{tag}>
    <ul><li>Snow height 150 cm</li><li>Lift (2/8)</li><li>Snow quality Powder</li></ul></div>
  <div class="area-card"><{tag}>Les Houches - 1900m</{tag}>
    <ul><li>Snow height 95 cm</li><li>Lift (10/16)</li><li>3/5 Avalanche</li></ul></div>
  <div class="area-card tomorrow"><{tag}>Brévent - 2525m</{tag}>
    <ul><li>Snow height 999 cm</li><li>Lift (1/12)</li></ul></div>
</main></body></html>
"""


@pytest.mark.parametrize("tag", ["h3", "div"])
def test_mbnr_card_values_do_not_leak_into_next_heading(tag):
    report = mbnr.parse_conditions(CARDS_WITHOUT_TRAILING_DATES.format(tag=tag))

    assert [area.name for area in report.areas] == ["Brévent", "Flégère", "Les Houches"]
    areas = _areas_by_name(report)
    assert areas["Brévent"].snow_depth_top == "190cm"
    assert areas["Brévent"].visibility == "Good"
    assert areas["Flégère"].snow_quality == "Powder"
    assert areas["Les Houches"].avalanche_risk == "3/5"
    assert areas["Les Houches"].resort_id == "saint-gervais"


def test_extract_headings_reads_heading_tags_in_order():
    headings = mbnr.extract_headings(_fixture_text("mbnr_info_live.html"))

    assert headings[0] == "Brévent - 2525m"
    assert headings[-1] == "Brévent - 2525m"
    assert "Daily report" not in headings
    assert "Les Houches - 1900m" in headings


def test_mbnr_keeps_first_occurrence_of_repeated_heading():
    report = mbnr.parse_conditions(_fixture_text("mbnr_info_live.html"))

    names = [area.name for area in report.areas]
    assert names.count("Brévent") == 1
    assert _areas_by_name(report)["Brévent"].snow_depth_top == "190cm"


def test_mbnr_ignores_script_content():
    report = mbnr.parse_conditions(_fixture_text("mbnr_info_live.html"))

    assert all(area.snow_depth_top != "999cm" for area in report.areas)


def test_skiinfo_parsing():
    report = skiinfo.parse_conditions(_fixture_text("skiinfo_combloux.html"))

    assert report.source_id == "skiinfo"
    assert len(report.areas) == 1
    area = report.areas[0]
    assert area.resort_id == "combloux"
    assert area.snow_depth_top == "190cm"
    assert area.snow_depth_base == "80cm"
    assert area.snow_quality == "Powder"
    assert (area.lifts_open, area.lifts_total) == (20, 22)
    assert (area.slopes_open, area.slopes_total) == (35, 40)
    assert dict(area.slope_breakdown) == {"green": "5/6", "blue": "12/14", "red": "14/15", "black": "4/5"}
    assert area.fresh_snow_24h == "15cm"
    assert dict(area.forecast_snow) == {"mon": "10cm", "tue": "5cm", "wed": "0cm"}
    assert area.last_update == "16 févr."
    assert area.is_closed is False
    assert area.closure_reason is None


def test_skiinfo_area_matches_full_record():
    area = skiinfo.parse_conditions(_fixture_text("skiinfo_combloux.html")).areas[0]

    assert area == AreaRecord(
        name=skiinfo.AREA_NAME,
        altitude="1930m",
        resort_id="combloux",
        snow_depth_top="190cm",
        snow_depth_base="80cm",
        snow_quality="Powder",
        fresh_snow_24h="15cm",
        lifts_open=20,
        lifts_total=22,
        slopes_open=35,
        slopes_total=40,
        slope_breakdown={"green": "5/6", "blue": "12/14", "red": "14/15", "black": "4/5"},
        temperature_morning=None,
        temperature_afternoon=None,
        avalanche_risk=None,
        avalanche_detail=None,
        wind=None,
        visibility=None,
        is_closed=False,
        closure_reason=None,
        last_update="16 févr.",
        last_snowfall=None,
        fresh_snow_detail=None,
        forecast_snow={"mon": "10cm", "tue": "5cm", "wed": "0cm"},
        weather_report=None,
        message_of_day=None,
        stations=(),
        note=None,
    )


def test_skiinfo_status_line_marks_area_closed():
    html = _fixture_text("skiinfo_combloux.html").replace("Combloux : Ouverte", "Combloux : Fermée")

    area = skiinfo.parse_conditions(html).areas[0]

    assert area.is_closed is True
    assert area.closure_reason == "Fermée"
    assert area.lifts_open == 20


def test_skiinfo_missing_labels_yield_none():
    area = skiinfo.parse_conditions("<p>Combloux</p>").areas[0]

    assert area.snow_depth_top is None
    assert area.lifts_open is None
    assert area.snow_quality == "Unknown"
    assert dict(area.slope_breakdown) == {"green": None, "blue": None, "red": None, "black": None}


def test_contamines_meteo_parsing():
    extractor = les_contamines.LesContaminesMeteoExtractor()

    report = extractor.parse(_fixture_text("contamines_meteo.html"))
    details = report.details

    assert details["fresh_snow"] == "30cm"
    assert details["fresh_detail"] == "AIGUILLE: +30cm, SIGNAL: +25cm, VILLAGE: +10cm"
    assert details["avalanche_risk"] == "4/5"
    assert details["avalanche_detail"] == "FORT"
    assert details["snow_top"] == "220cm"
    assert details["snow_base"] == "90cm"
    assert details["temp_top"] == "-12°C"
    assert details["temp_base"] == "-3°C"
    assert details["wind"] == "35 km/h NW"
    assert details["snow_quality"] == "Powder"
    assert details["weather_report"] == (
        "Chutes de neige abondantes attendues en altitude jusqu'à demain matin."
    )
    assert details["message_of_day"] == "Bonne glisse à tous, pensez au casque !"

    stations = {station.name: station for station in details["stations"]}
    assert list(stations) == ["AIGUILLE", "SIGNAL", "ETAPE", "VILLAGE"]
    assert stations["AIGUILLE"].altitude == "2487m"
    assert stations["AIGUILLE"].fresh_snow == "+30cm"
    assert stations["ETAPE"].wind_direction == "S"
    assert stations["VILLAGE"].wind_speed is None
    assert stations["VILLAGE"].snow_depth == "60cm"


def test_fresh_snow_takes_maximum_across_stations():
    text = "Fraiche SIGNAL + 12 cm/24H Fraiche AIGUILLE + 18 cm/24H Fraiche VILLAGE + 4 cm/24H"

    assert les_contamines.parse_fresh_snow(text)["fresh_snow"] == "18cm"
    assert les_contamines.parse_fresh_snow("Pas de neige")["fresh_snow"] is None


@pytest.mark.parametrize(
    "open_count, lifts_open, slopes_open",
    [(0, 0, 0), (6, 2, 4), (30, 10, 20), (73, 25, 48)],
)
def test_split_open_count(open_count, lifts_open, slopes_open):
    split = les_contamines.split_open_count(open_count)

    assert split["lifts_open"] == lifts_open
    assert split["slopes_open"] == slopes_open
    assert split["lifts_total"] == les_contamines.LIFTS_TOTAL
    assert split["slopes_total"] == les_contamines.SLOPES_TOTAL


def test_contamines_ouverture_counts_icons():
    extractor = les_contamines.LesContaminesOuvertureExtractor()

    details = extractor.parse(_fixture_text("contamines_ouverture.html")).details

    assert details["total_open"] == 6
    assert details["total_closed"] == 3
    assert details["total_problem"] == 1
    assert details["total_items"] == 10
    assert details["lifts_open"] == 2
    assert details["slopes_open"] == 4


def test_contamines_ouverture_without_icons_has_no_counts():
    details = les_contamines.LesContaminesOuvertureExtractor().parse("<p>Maintenance</p>").details

    assert details["total_items"] == 0
    assert "lifts_open" not in details


def test_compose_les_contamines_from_both_pages():
    meteo = les_contamines.LesContaminesMeteoExtractor().parse(_fixture_text("contamines_meteo.html"))
    ouverture = les_contamines.LesContaminesOuvertureExtractor().parse(_fixture_text("contamines_ouverture.html"))

    composed = compose_reports({meteo.source_id: meteo, ouverture.source_id: ouverture})

    assert len(composed) == 1
    area = composed[0].areas[0]
    assert area.resort_id == "les-contamines"
    assert area.snow_depth_top == "220cm"
    assert area.temperature_morning == "-12°C"
    assert area.temperature_afternoon == "-3°C"
    assert (area.lifts_open, area.lifts_total) == (2, 25)
    assert (area.slopes_open, area.slopes_total) == (4, 48)
    assert len(area.stations) == 4


def test_compose_les_contamines_with_meteo_only():
    meteo = les_contamines.LesContaminesMeteoExtractor().parse(_fixture_text("contamines_meteo.html"))

    composed = compose_reports({meteo.source_id: meteo})

    area = composed[0].areas[0]
    assert area.fresh_snow_24h == "30cm"
    assert area.lifts_open is None
    assert area.is_closed is False


def test_compose_reports_passes_standalone_sources_through():
    report = skiinfo.parse_conditions(_fixture_text("skiinfo_combloux.html"))

    assert compose_reports({report.source_id: report}) == [report]


def test_extractor_registry_and_plausibility():
    assert set(EXTRACTORS) == {"mbnr", "skiinfo", "contamines_meteo", "contamines_ouverture"}
    assert EXTRACTORS["mbnr"].is_plausible("<html>blocked</html>") is False
    assert EXTRACTORS["mbnr"].is_plausible(_fixture_text("mbnr_info_live.html")) is True
    assert EXTRACTORS["skiinfo"].request_headers()["Accept-Language"].startswith("fr-FR")
