"""Mont Blanc valley snow condition scrapers."""

from .baseline import load_baseline
from .classifier import classify_area
from .extractors import EXTRACTORS, compose_reports
from .merger import merge_results
from .models import AggregateResult, AreaRecord, ResortSnapshot, SnowQuality
from .normalization import normalize_text
from .refresh import RefreshController, fetch_sources, produce_snapshot

__all__ = [
    "AggregateResult",
    "AreaRecord",
    "EXTRACTORS",
    "RefreshController",
    "ResortSnapshot",
    "SnowQuality",
    "classify_area",
    "compose_reports",
    "fetch_sources",
    "load_baseline",
    "merge_results",
    "normalize_text",
    "produce_snapshot",
]
