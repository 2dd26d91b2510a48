"""Extractor for the Skiinfo snow bulletin of Combloux.

Source: https://www.skiinfo.fr/alpes-du-nord/combloux/bulletin-neige

The resort's own site refuses server-side requests; Skiinfo republishes the
piste service data with French labels ("En haut 190cm", "Remontées
ouvertes 20/22").
"""
from __future__ import annotations

import re
from typing import Dict, Optional

from ..classifier import classify_area
from ..logging import get_logger
from ..models import AreaRecord, SourceReport
from ..normalization import normalize_text
from .base import (
    Extractor,
    extract_depth,
    extract_pair,
    extract_slope_breakdown,
    first_match,
    translate_quality,
)

logger = get_logger(__name__)

SOURCE_ID = "skiinfo"
DEFAULT_URL = "https://www.skiinfo.fr/alpes-du-nord/combloux/bulletin-neige"
AREA_NAME = "Combloux–Portes du Mont-Blanc"
AREA_ALTITUDE = "1930m"

_LETTERS = r"A-Za-zéèêëàâôûùïîç\s"
_BASE_QUALITY_RE = re.compile(
    rf"En\s+bas\s+\d[\d\s]*cm\s+([{_LETTERS}]+?)(?=En\s+haut|Hauteur|Remont|\d|$)", re.IGNORECASE
)
_TOP_QUALITY_RE = re.compile(
    rf"En\s+haut\s+\d[\d\s]*cm\s+([{_LETTERS}]+?)(?=Hauteur|Remont|Piste|En\s+bas|\d|$)", re.IGNORECASE
)
_LIFTS_RE = re.compile(r"Remont[ée]*s?\s+ouvertes?\s+(\d+)\s*/\s*(\d+)", re.IGNORECASE)
_SLOPES_RE = re.compile(r"Pistes?\s+ouvertes?\s+(\d+)\s*/\s*(\d+)", re.IGNORECASE)
_FORECAST_RE = re.compile(
    r"lun\.\s+(\d+)\s*cm.*?mar\.\s+(\d+)\s*cm.*?mer\.\s+(\d+)\s*cm", re.IGNORECASE
)
_STATUS_RE = re.compile(r"Combloux\s*:\s*(Ouverte|Ferm[ée]*e)", re.IGNORECASE)
_UPDATE_RE = re.compile(r"mise\s+[àa]\s+jour\s*:\s*(\d+\s+[a-zéû]+\.?)", re.IGNORECASE)

SLOPE_LABELS: Dict[str, re.Pattern] = {
    "green": re.compile(r"\bvertes?\s+ouvertes?\s+(\d+)\s*/\s*(\d+)", re.IGNORECASE),
    "blue": re.compile(r"\bbleues?\s+ouvertes?\s+(\d+)\s*/\s*(\d+)", re.IGNORECASE),
    "red": re.compile(r"\brouges?\s+ouvertes?\s+(\d+)\s*/\s*(\d+)", re.IGNORECASE),
    "black": re.compile(r"\bnoires?\s+ouvertes?\s+(\d+)\s*/\s*(\d+)", re.IGNORECASE),
}


def _forecast(text: str) -> Optional[Dict[str, str]]:
    match = _FORECAST_RE.search(text)
    if not match:
        return None
    return {day: f"{amount}cm" for day, amount in zip(("mon", "tue", "wed"), match.groups())}


def _status_closed(text: str) -> bool:
    status = first_match(text, _STATUS_RE)
    return status is not None and status.lower().startswith("ferm")


class SkiinfoExtractor(Extractor):
    source_id = SOURCE_ID
    default_url = DEFAULT_URL
    min_length = 500
    accept_language = "fr-FR,fr;q=0.9"

    def parse(self, html: str) -> SourceReport:
        text = normalize_text(html)

        lifts = extract_pair(text, _LIFTS_RE)
        slopes = extract_pair(text, _SLOPES_RE)
        quality = first_match(text, _TOP_QUALITY_RE) or first_match(text, _BASE_QUALITY_RE)

        explicit_closed = _status_closed(text)

        area = AreaRecord(
            name=AREA_NAME,
            altitude=AREA_ALTITUDE,
            resort_id=classify_area(AREA_NAME),
            snow_depth_top=extract_depth(text, r"En\s+haut"),
            snow_depth_base=extract_depth(text, r"En\s+bas"),
            snow_quality=translate_quality(quality),
            fresh_snow_24h=extract_depth(text, r"24h"),
            lifts_open=lifts[0],
            lifts_total=lifts[1],
            slopes_open=slopes[0],
            slopes_total=slopes[1],
            slope_breakdown=extract_slope_breakdown(text, SLOPE_LABELS),
            forecast_snow=_forecast(text),
            is_closed=explicit_closed,
            closure_reason="Fermée" if explicit_closed else None,
            last_update=first_match(text, _UPDATE_RE),
        )
        logger.info("skiinfo.parsed", lifts_open=area.lifts_open, closed=area.is_closed)
        return SourceReport(source_id=self.source_id, areas=(area,))


def parse_conditions(html: str) -> SourceReport:
    """Parse the Skiinfo Combloux bulletin into a :class:`SourceReport`."""
    return SkiinfoExtractor().parse(html)
