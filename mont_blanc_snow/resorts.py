from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List

from mont_blanc_snow.config import app_config


@dataclass
class ResortMeta:
    """Display metadata for a resort shown on the dashboard."""

    id: str
    name: str
    elevation: str
    live_url: str
    forecast_url: str


def all_resorts() -> List[ResortMeta]:
    """Build the resort list in configured display order."""

    return [
        ResortMeta(
            id=resort.id,
            name=resort.name,
            elevation=resort.elevation,
            live_url=resort.live_url,
            forecast_url=resort.forecast_url,
        )
        for resort in app_config.resorts
    ]


def resort_lookup(resorts: Iterable[ResortMeta]) -> Dict[str, ResortMeta]:
    return {resort.id: resort for resort in resorts}
