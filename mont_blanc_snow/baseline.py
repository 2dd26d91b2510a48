"""Loading of the curated fallback snapshot."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml

from .config import app_config
from .models import AggregateResult


def load_baseline(path: Optional[Path] = None) -> AggregateResult:
    """Read the baseline YAML into an :class:`AggregateResult`.

    The result is never mutated; the merger works on deep copies.
    """
    path = Path(path or app_config.baseline_path)
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return AggregateResult.from_dict(data)
