"""Split normalized page text into per-area windows.

Two flavours of anchor are supported: generic headings of the form
``"Brévent - 2525m"`` and a fixed list of station names followed by an
altitude (``"AIGUILLE 2450m"``). Each window runs from its anchor up to the
next anchor, and the last one is capped so it never swallows the page footer.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern, Sequence, Tuple

DEFAULT_HEADING_SPAN = 3000
DEFAULT_STATION_SPAN = 600

MIN_NAME_LENGTH = 3
MAX_NAME_LENGTH = 60

# Capitalized words joined by spaces, hyphens, slashes or French particles,
# e.g. "Tramway du Mont-Blanc" or "Balme (Le Tour–Vallorcine)".
_FIRST_WORD = r"[A-ZÀ-ÖØ-Þ][a-zß-öø-ÿ][\w'’.]*"
_NAME_WORD = r"\(?[A-ZÀ-ÖØ-Þ][\w'’.]*\)?"
_NAME_JOIN = r"(?:\s*[-–/]\s*|\s+)(?:(?:du|de|des|la|le|les|et|d'|l')\s+)?"
HEADING_RE = re.compile(
    rf"(?P<name>{_FIRST_WORD}(?:{_NAME_JOIN}{_NAME_WORD})*)\s*[-–—]\s*(?P<alt>\d{{3,4}})\s*m\b"
)

_STOP_WORD_RE = re.compile(r"^(?:from|to|max|min|near|at)\s", re.IGNORECASE)
_SPACES_RE = re.compile(r"\s+")
_TOKEN_RE = re.compile(r"\S+")

# Labels and values that close an area card on condition pages. When a card
# ends in one of them the next heading match starts too early, so leading
# tokens from this set are trimmed off the name.
CARD_VOCABULARY = frozenset(
    {
        "avalanche", "average", "bad", "closed", "fresh", "good", "groomed",
        "hard", "height", "icy", "last", "lift", "lifts", "moderate", "morning",
        "afternoon", "open", "packed", "poor", "powder", "quality", "slopes",
        "snow", "snowfall", "spring", "today", "trains", "visibility", "weather",
        "wet", "wind",
    }
)
_PARTICLES = frozenset({"du", "de", "des", "la", "le", "les", "et", "d'", "l'"})


@dataclass(frozen=True)
class Segment:
    name: str
    altitude: Optional[str]
    start: int
    window: str


def name_key(name: str) -> str:
    return _SPACES_RE.sub(" ", name.strip()).lower()


def is_plausible_name(name: str) -> bool:
    """Reject anchor matches that cannot be a real area heading."""
    name = name.strip()
    if not MIN_NAME_LENGTH <= len(name) <= MAX_NAME_LENGTH:
        return False
    if name[0].isdigit():
        return False
    return not _STOP_WORD_RE.match(name)


def trim_heading_name(name: str) -> Tuple[int, str]:
    """Drop leading card labels from a heading match.

    Returns the offset of the kept part within ``name`` and the kept part;
    ``"Visibility Good Flégère"`` becomes ``(16, "Flégère")``.
    """
    for token in _TOKEN_RE.finditer(name):
        word = token.group(0)
        if word.strip("()").lower() in CARD_VOCABULARY or word in _PARTICLES:
            continue
        return token.start(), name[token.start():].strip()
    return len(name), ""


def _slice(text: str, anchors: List[Tuple[str, Optional[str], int]], max_span: int) -> List[Segment]:
    # Repeated anchors are dropped but still end the window before them.
    seen = set()
    segments: List[Segment] = []
    for index, (name, altitude, start) in enumerate(anchors):
        key = name_key(name)
        if key in seen:
            continue
        seen.add(key)
        if index + 1 < len(anchors):
            end = anchors[index + 1][2]
        else:
            end = min(start + max_span, len(text))
        segments.append(Segment(name=name, altitude=altitude, start=start, window=text[start:end]))
    return segments


def segment_by_heading(
    text: str,
    *,
    pattern: Pattern[str] = HEADING_RE,
    max_span: int = DEFAULT_HEADING_SPAN,
    headings: Optional[Sequence[str]] = None,
) -> List[Segment]:
    """Find ``Name - 1234m`` headings and return one window per unique area.

    Sources repeat headings for today/tomorrow tabs; only the first
    occurrence of a name is kept.

    ``headings`` are heading texts taken from the page markup, in document
    order. When given, only those are used as anchors, so text that merely
    looks like a heading cannot open a window. Without them the whole text
    is scanned and leading card labels are trimmed from each name.
    """
    if headings is not None:
        return _slice(text, _locate_headings(text, headings, pattern), max_span)

    anchors: List[Tuple[str, Optional[str], int]] = []
    for match in pattern.finditer(text):
        offset, name = trim_heading_name(match.group("name"))
        if not is_plausible_name(name):
            continue
        anchors.append((name, f"{match.group('alt')}m", match.start("name") + offset))
    return _slice(text, anchors, max_span)


def _locate_headings(
    text: str, headings: Sequence[str], pattern: Pattern[str]
) -> List[Tuple[str, Optional[str], int]]:
    anchors: List[Tuple[str, Optional[str], int]] = []
    position = 0
    for heading in headings:
        match = pattern.fullmatch(heading.strip())
        if match is None:
            continue
        name = match.group("name").strip()
        if not is_plausible_name(name):
            continue
        # Markup and page text may differ in spacing around inline tags.
        literal = re.compile(r"\s*".join(re.escape(part) for part in heading.split()))
        found = literal.search(text, position)
        if found is None:
            continue
        position = found.end()
        anchors.append((name, f"{match.group('alt')}m", found.start()))
    return anchors


def segment_by_anchors(
    text: str,
    names: Iterable[str],
    *,
    max_span: int = DEFAULT_STATION_SPAN,
) -> List[Segment]:
    """Locate fixed station names followed by an altitude (``"SIGNAL 1850m"``).

    Names are matched case-insensitively; the returned segment keeps the
    canonical spelling from ``names``. Windows are ordered by position in the
    text.
    """
    anchors: List[Tuple[str, Optional[str], int]] = []
    for name in names:
        words = r"\s+".join(re.escape(part) for part in name.split())
        pattern = re.compile(rf"\b{words}\s+(\d{{3,4}})\s*m\b", re.IGNORECASE)
        for match in pattern.finditer(text):
            if is_plausible_name(name):
                anchors.append((name, f"{match.group(1)}m", match.start()))
    anchors.sort(key=lambda anchor: anchor[2])
    return _slice(text, anchors, max_span)
