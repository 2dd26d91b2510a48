from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from mont_blanc_snow.config import SchedulerConfig
from mont_blanc_snow.logging import get_logger

logger = get_logger(__name__)

JOB_ID = "refresh-conditions"
# Seconds a run may start late; covers the startup run during app boot.
MISFIRE_GRACE_SECONDS = 300


def build_scheduler(job: Callable[[], object], config: SchedulerConfig) -> Optional[AsyncIOScheduler]:
    """Run ``job`` on the configured crontab, or return ``None`` when disabled.

    With ``refresh_on_startup`` the first run fires as soon as the scheduler
    starts so the baseline is replaced without waiting for the next slot.
    """
    if not config.enabled:
        logger.info("scheduler.disabled")
        return None

    scheduler = AsyncIOScheduler()
    trigger = CronTrigger.from_crontab(config.cron)
    extra: Dict[str, Any] = {}
    if config.refresh_on_startup:
        extra["next_run_time"] = datetime.now(timezone.utc)
    # The job is synchronous; APScheduler runs it in its thread pool executor.
    scheduler.add_job(
        job,
        trigger=trigger,
        id=JOB_ID,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=MISFIRE_GRACE_SECONDS,
        **extra,
    )
    logger.info("scheduler.configured", cron=config.cron, refresh_on_startup=config.refresh_on_startup)
    return scheduler
