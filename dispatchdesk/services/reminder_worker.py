import asyncio
import logging
import os
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dispatchdesk.core.config import env_bool, env_str
from dispatchdesk.models.records import JobStatus
from dispatchdesk.services.job_repository import list_jobs
from dispatchdesk.services.reminder_service import (
    ReminderRunResult,
    TelegramNotifier,
    parse_time_of_day,
    run_daily_reminder,
)

logger = logging.getLogger(__name__)


def reminder_enabled() -> bool:
    # off under pytest
    if os.getenv("PYTEST_CURRENT_TEST"):
        return False
    return env_bool("REMINDER_ENABLED", True)


def reminder_timezone() -> ZoneInfo:
    name = env_str("REMINDER_TIMEZONE", "Asia/Bangkok")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown reminder timezone; using Asia/Bangkok", extra={"timezone": name})
        return ZoneInfo("Asia/Bangkok")


def seconds_until_next_run(now: datetime, hour: int, minute: int) -> float:
    """`now` must be timezone-aware in the reminder's zone."""
    target = datetime.combine(now.date(), time(hour, minute), tzinfo=now.tzinfo)
    if target <= now:
        target = datetime.combine(now.date() + timedelta(days=1), time(hour, minute), tzinfo=now.tzinfo)
    return (target - now).total_seconds()


def run_reminder_once(now: datetime) -> ReminderRunResult:
    jobs = list_jobs(statuses=[JobStatus.ASSIGNED])
    return run_daily_reminder(jobs, TelegramNotifier.from_env(), now.date(), f"{now:%H:%M}")


async def reminder_loop() -> None:
    tz = reminder_timezone()
    hour, minute = parse_time_of_day(env_str("REMINDER_TIME", "18:30"))
    logger.info(
        "Reminder worker started",
        extra={"time": f"{hour:02d}:{minute:02d}", "timezone": str(tz)},
    )

    while True:
        try:
            delay = seconds_until_next_run(datetime.now(tz), hour, minute)
            await asyncio.sleep(delay)
            await asyncio.to_thread(run_reminder_once, datetime.now(tz))

        except asyncio.CancelledError:
            logger.info("Reminder worker cancelled; shutting down")
            raise

        except Exception:
            # the next trigger runs as usual
            logger.exception("Reminder run failed", extra={"component": "reminder_worker"})
            await asyncio.sleep(60)


def start_reminder_task() -> asyncio.Task | None:
    if not reminder_enabled():
        logger.info("Reminder worker disabled")
        return None
    return asyncio.create_task(reminder_loop())
