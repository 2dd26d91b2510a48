"""Flatten raw markup into searchable text and normalize numeric tokens."""
from __future__ import annotations

import re
from typing import Optional

_SCRIPT_RE = re.compile(r"<script\b[\s\S]*?</script\s*>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style\b[\s\S]*?</style\s*>", re.IGNORECASE)
_COMMENT_RE = re.compile(r"<!--[\s\S]*?-->")
_TAG_RE = re.compile(r"<[^>]+>")
_ENTITY_RE = re.compile(r"&#?\w+;")
_WHITESPACE_RE = re.compile(r"\s+")
_NUMBER_NOISE_RE = re.compile(r"[\s']")


def normalize_text(html: Optional[str]) -> str:
    """Return ``html`` as a single line of plain text.

    Script and style blocks are dropped with their content, remaining tags
    become spaces, ``&nbsp;`` and ``&amp;`` are decoded and every other
    entity becomes a space. Entities are decoded after tags are stripped and
    ``&lt;``/``&gt;`` are never turned back into angle brackets, so the
    output cannot grow new markup and normalizing twice is a no-op.
    """
    if not html:
        return ""
    text = _SCRIPT_RE.sub(" ", html)
    text = _STYLE_RE.sub(" ", text)
    text = _COMMENT_RE.sub(" ", text)
    text = _TAG_RE.sub(" ", text)
    text = text.replace("&nbsp;", " ").replace("&amp;", "&")
    text = _ENTITY_RE.sub(" ", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def clean_number(raw: Optional[str]) -> Optional[str]:
    """Strip thousands separators and embedded spaces: ``"1 250"`` -> ``"1250"``."""
    if raw is None:
        return None
    cleaned = _NUMBER_NOISE_RE.sub("", raw)
    return cleaned or None


def to_int(raw: Optional[str]) -> Optional[int]:
    cleaned = clean_number(raw)
    if cleaned is None:
        return None
    try:
        return int(cleaned)
    except ValueError:
        return None


def with_unit(raw: Optional[str], unit: str) -> Optional[str]:
    """Format a matched number with its unit suffix, e.g. ``"116" -> "116cm"``."""
    cleaned = clean_number(raw)
    if cleaned is None:
        return None
    return f"{cleaned}{unit}"
