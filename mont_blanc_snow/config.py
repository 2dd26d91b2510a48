from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional

import yaml
from dotenv import load_dotenv

_CONFIG_DIR = Path(__file__).resolve().parent / "config"
_DEFAULT_CONFIG_PATH = _CONFIG_DIR / "defaults.yaml"
DEFAULT_BASELINE_PATH = _CONFIG_DIR / "baseline.yaml"
load_dotenv()

ENV_PREFIX = "MBSNOW_"


def _bool_from_env(value: str | None) -> Optional[bool]:
    if value is None:
        return None
    value = value.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    return None


def _merge_dicts(base: Dict, overrides: Mapping) -> Dict:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), Mapping):
            merged[key] = _merge_dicts(base[key], value)
        else:
            merged[key] = value
    return merged


def _load_yaml(path: Path) -> Dict:
    if not path.exists():
        return {}
    return yaml.safe_load(path.read_text(encoding="utf-8")) or {}


@dataclass
class SchedulerConfig:
    cron: str = "*/30 * * * *"
    enabled: bool = True
    refresh_on_startup: bool = True


@dataclass
class LoggingConfig:
    level: str = "INFO"
    json: bool = True


@dataclass
class FetchConfig:
    user_agent: str = "Mozilla/5.0 (compatible; SnowDashboard/1.0)"
    max_workers: int = 4


@dataclass
class DisplayConfig:
    timezone: str = "Europe/Paris"


@dataclass
class SourceSettings:
    url: str = ""
    timeout: float = 12.0
    accept_language: Optional[str] = None
    enabled: bool = True


@dataclass
class ResortSettings:
    id: str
    name: str
    elevation: str = ""
    live_url: str = ""
    forecast_url: str = ""


@dataclass
class AppConfig:
    resorts: Iterable[ResortSettings] = field(default_factory=list)
    sources: Dict[str, SourceSettings] = field(default_factory=dict)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    baseline_path: Path = DEFAULT_BASELINE_PATH


def _apply_source_overrides(sources: Dict[str, Dict], env: Mapping[str, str]) -> None:
    prefix = f"{ENV_PREFIX}SOURCE_"
    for key, value in env.items():
        if not key.startswith(prefix):
            continue
        remainder = key.removeprefix(prefix).lower()
        source_id, _, setting = remainder.rpartition("_")
        if source_id not in sources:
            continue
        if setting == "url":
            sources[source_id]["url"] = value
        elif setting == "timeout":
            try:
                sources[source_id]["timeout"] = float(value)
            except ValueError:
                continue
        elif setting == "enabled":
            enabled = _bool_from_env(value)
            if enabled is not None:
                sources[source_id]["enabled"] = enabled


def load_config(*, config_path: str | None = None, env: Mapping[str, str] | None = None) -> AppConfig:
    env = dict(os.environ if env is None else env)
    data = _load_yaml(_DEFAULT_CONFIG_PATH)

    explicit_path = config_path or env.get(f"{ENV_PREFIX}CONFIG_PATH")
    if explicit_path:
        data = _merge_dicts(data, _load_yaml(Path(explicit_path)))

    scheduler_data = dict(data.get("scheduler", {}))
    cron_override = env.get(f"{ENV_PREFIX}SCHEDULER_CRON")
    if cron_override:
        scheduler_data["cron"] = cron_override
    enabled_override = _bool_from_env(env.get(f"{ENV_PREFIX}SCHEDULER_ENABLED"))
    if enabled_override is not None:
        scheduler_data["enabled"] = enabled_override

    logging_data = dict(data.get("logging", {}))
    level_override = env.get(f"{ENV_PREFIX}LOG_LEVEL")
    if level_override:
        logging_data["level"] = level_override
    json_override = _bool_from_env(env.get(f"{ENV_PREFIX}LOG_JSON"))
    if json_override is not None:
        logging_data["json"] = json_override

    display_data = dict(data.get("display", {}))
    tz_override = env.get(f"{ENV_PREFIX}DISPLAY_TIMEZONE")
    if tz_override:
        display_data["timezone"] = tz_override

    sources_data = {key: dict(details or {}) for key, details in data.get("sources", {}).items()}
    _apply_source_overrides(sources_data, env)

    baseline_path = env.get(f"{ENV_PREFIX}BASELINE_PATH") or data.get("baseline_path")

    resorts = [ResortSettings(**resort) for resort in data.get("resorts", [])]
    sources = {key: SourceSettings(**details) for key, details in sources_data.items()}

    return AppConfig(
        resorts=resorts,
        sources=sources,
        fetch=FetchConfig(**data.get("fetch", {})),
        display=DisplayConfig(**display_data) if display_data else DisplayConfig(),
        scheduler=SchedulerConfig(**scheduler_data) if scheduler_data else SchedulerConfig(),
        logging=LoggingConfig(**logging_data) if logging_data else LoggingConfig(),
        baseline_path=Path(baseline_path) if baseline_path else DEFAULT_BASELINE_PATH,
    )


app_config = load_config()
