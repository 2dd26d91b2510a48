"""Shared field-extraction rules for the source strategies.

Every helper works on normalized text (see :func:`normalize_text`) and
returns ``None`` when its label is not on the page. When a label occurs
several times the first occurrence wins.
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Dict, Mapping, Optional, Pattern, Sequence, Tuple, Union

from bs4 import BeautifulSoup

from ..models import SLOPE_DIFFICULTIES, SnowQuality, SourceReport
from ..normalization import to_int, with_unit

PatternLike = Union[str, Pattern[str]]

CLOSURE_REASON_MAX_LENGTH = 40

# Order matters: "poudreuse damée" is powder, not groomed.
QUALITY_KEYWORDS: Sequence[Tuple[str, SnowQuality]] = (
    ("poudreuse", SnowQuality.POWDER),
    ("powder", SnowQuality.POWDER),
    ("fraîche", SnowQuality.FRESH),
    ("fraiche", SnowQuality.FRESH),
    ("fresh", SnowQuality.FRESH),
    ("humide", SnowQuality.WET),
    ("mouillée", SnowQuality.WET),
    ("wet", SnowQuality.WET),
    ("damée", SnowQuality.GROOMED),
    ("damee", SnowQuality.GROOMED),
    ("packed", SnowQuality.GROOMED),
    ("groomed", SnowQuality.GROOMED),
    ("dure", SnowQuality.HARD_ICY),
    ("hard", SnowQuality.HARD_ICY),
    ("glacée", SnowQuality.HARD_ICY),
    ("verglac", SnowQuality.HARD_ICY),
    ("icy", SnowQuality.HARD_ICY),
    ("printemps", SnowQuality.SPRING),
    ("spring", SnowQuality.SPRING),
)

_CLOSED_RE = re.compile(
    r"Closed\s+(?:all\s+day|for\s+the\s+day|today)|Closed\s*:\s*[a-z]",
    re.IGNORECASE,
)
_CLOSED_REASON_RE = re.compile(r"Closed\s*[:\s]+([a-zA-Z\s]{3,%d})" % CLOSURE_REASON_MAX_LENGTH, re.IGNORECASE)


def create_soup(html: str) -> BeautifulSoup:
    """Create a BeautifulSoup parser from HTML content."""
    return BeautifulSoup(html, "lxml")


def _compile(pattern: PatternLike) -> Pattern[str]:
    if isinstance(pattern, str):
        return re.compile(pattern, re.IGNORECASE)
    return pattern


def first_match(text: str, pattern: PatternLike, group: int = 1) -> Optional[str]:
    """Return ``group`` of the first match, stripped, or ``None``."""
    if not text:
        return None
    match = _compile(pattern).search(text)
    if not match or match.group(group) is None:
        return None
    value = match.group(group).strip()
    return value or None


def extract_depth(text: str, label: str, unit: str = "cm") -> Optional[str]:
    """Find ``<label> 116 cm`` and return ``"116cm"``.

    ``label`` is a regex fragment; digits may be split by spaces
    (``"1 250 cm"``) and are joined before formatting.
    """
    raw = first_match(text, rf"{label}\s*:?\s*\**\s*(\d[\d\s]*?)\s*{unit}\b")
    return with_unit(raw, unit)


def extract_pair(text: str, pattern: PatternLike) -> Tuple[Optional[int], Optional[int]]:
    """Return ``(open, total)`` from a two-group pattern.

    Both numbers come from the same match; if either is missing the pair is
    treated as absent.
    """
    if not text:
        return None, None
    match = _compile(pattern).search(text)
    if not match:
        return None, None
    numerator, denominator = to_int(match.group(1)), to_int(match.group(2))
    if numerator is None or denominator is None:
        return None, None
    return numerator, denominator


def format_pair(pair: Tuple[Optional[int], Optional[int]]) -> Optional[str]:
    numerator, denominator = pair
    if numerator is None or denominator is None:
        return None
    return f"{numerator}/{denominator}"


def extract_slope_breakdown(text: str, labels: Mapping[str, str]) -> Dict[str, Optional[str]]:
    """Collect ``"open/total"`` per difficulty from ``labels`` (difficulty -> pattern)."""
    return {
        difficulty: format_pair(extract_pair(text, labels[difficulty])) if difficulty in labels else None
        for difficulty in SLOPE_DIFFICULTIES
    }


def extract_temperature(text: str, pattern: PatternLike) -> Optional[str]:
    raw = first_match(text, pattern)
    if raw is None:
        return None
    return f"{raw.replace(',', '.')}°C"


def match_quality_keyword(text: Optional[str]) -> Optional[SnowQuality]:
    """First entry of :data:`QUALITY_KEYWORDS` contained in ``text``."""
    lowered = (text or "").lower()
    for keyword, quality in QUALITY_KEYWORDS:
        if keyword in lowered:
            return quality
    return None


def translate_quality(raw: Optional[str]) -> str:
    """Map a French or English surface phrase onto :class:`SnowQuality`.

    Unknown phrases are returned verbatim so nothing the source says is
    lost; missing text becomes ``Unknown``.
    """
    if raw is None or not raw.strip():
        return SnowQuality.UNKNOWN.value
    quality = match_quality_keyword(raw)
    if quality is not None:
        return quality.value
    return raw.strip()


def detect_closure(text: str, lifts_open: Optional[int] = None) -> Tuple[bool, Optional[str]]:
    """Return ``(is_closed, reason)`` for an area window.

    An area is closed when an explicit closure phrase is present or no lift
    is open. The reason is the text following ``Closed``, kept verbatim.
    """
    explicit = bool(text) and _CLOSED_RE.search(text) is not None
    is_closed = explicit or lifts_open == 0
    reason = None
    if explicit:
        reason = first_match(text, _CLOSED_REASON_RE)
    return is_closed, reason


class Extractor(ABC):
    """A parsing strategy for one source page."""

    source_id: str = ""
    default_url: str = ""
    min_length: int = 0
    accept_language: str = "en,fr;q=0.9"

    def request_headers(self) -> Dict[str, str]:
        return {
            "Accept": "text/html,application/xhtml+xml",
            "Accept-Language": self.accept_language,
        }

    def is_plausible(self, html: Optional[str]) -> bool:
        """Reject empty bodies and block pages that are too short to be real."""
        return bool(html) and len(html) >= self.min_length

    @abstractmethod
    def parse(self, html: str) -> SourceReport:
        """Parse raw markup into a :class:`SourceReport`."""
