from __future__ import annotations

from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from ..models import SourceReport
from .base import Extractor
from .les_contamines import (
    LesContaminesMeteoExtractor,
    LesContaminesOuvertureExtractor,
    compose_les_contamines,
)
from .mbnr import MbnrExtractor
from .skiinfo import SkiinfoExtractor

Composer = Callable[[Mapping[str, SourceReport]], Optional[SourceReport]]

EXTRACTORS: Dict[str, Extractor] = {
    extractor.source_id: extractor
    for extractor in (
        MbnrExtractor(),
        SkiinfoExtractor(),
        LesContaminesMeteoExtractor(),
        LesContaminesOuvertureExtractor(),
    )
}

# Sources that only describe part of an area; the composer turns the
# partial reports of its group into one report with areas.
COMPOSERS: Sequence[Tuple[Tuple[str, ...], Composer]] = (
    (
        (LesContaminesMeteoExtractor.source_id, LesContaminesOuvertureExtractor.source_id),
        compose_les_contamines,
    ),
)


def compose_reports(reports: Mapping[str, SourceReport]) -> List[SourceReport]:
    """Return reports ready for merging, with partial sources combined."""
    consumed = set()
    composed: List[SourceReport] = []
    for source_ids, composer in COMPOSERS:
        group = {source_id: reports[source_id] for source_id in source_ids if source_id in reports}
        consumed.update(source_ids)
        result = composer(group)
        if result is not None:
            composed.append(result)
    standalone = [report for source_id, report in reports.items() if source_id not in consumed]
    return standalone + composed


__all__ = [
    "COMPOSERS",
    "EXTRACTORS",
    "Extractor",
    "LesContaminesMeteoExtractor",
    "LesContaminesOuvertureExtractor",
    "MbnrExtractor",
    "SkiinfoExtractor",
    "compose_reports",
]
