"""
APScheduler-based time triggers for the notification core.

Each concern is an independent cron job that scans the database and
publishes events on the bus:

    sessions_closing_soon  - daily, sessions ending in [now+24h, now+48h)
    sessions_auto_close    - hourly, close sessions whose end_date has passed
    semesters_started      - midnight, semesters starting today
    semesters_ending_soon  - daily, semesters ending in [now+7d, now+8d)
    exam_reminders         - daily, exams dated tomorrow

The "soon" windows are exactly one tick period wide, so each session or
semester falls inside the window on exactly one tick. That coupling is
checked when the scheduler is constructed.

Jobs live in memory: they are re-added on every start and carry no state,
and a missed tick is not replayed.
"""

import logging
from datetime import datetime, timedelta

import pytz
import sentry_sdk
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.ext.asyncio import AsyncEngine

from ..config import get_scheduler_timezone
from ..constants import UNKNOWN_COURSE, UNKNOWN_SEMESTER
from ..database import get_connection
from ..events import EventBus, EventName
from ..queries import sessions as session_queries
from ..sessions import close_and_announce, session_payload
from ..timezone import format_date, local_date, local_day_bounds, to_utc, utcnow

logger = logging.getLogger(__name__)


# =============================================================================
# Job configuration - SINGLE SOURCE OF TRUTH
# =============================================================================

DAILY = timedelta(days=1)
HOURLY = timedelta(hours=1)

JOB_CONFIG = {
    "sessions_closing_soon": {
        "cron": {"hour": 8, "minute": 0},
        "period": DAILY,
        "window": (timedelta(hours=24), timedelta(hours=48)),
    },
    "sessions_auto_close": {
        "cron": {"minute": 0},
        "period": HOURLY,
    },
    "semesters_started": {
        "cron": {"hour": 0, "minute": 0},
        "period": DAILY,
    },
    "semesters_ending_soon": {
        "cron": {"hour": 8, "minute": 0},
        "period": DAILY,
        "window": (timedelta(days=7), timedelta(days=8)),
    },
    "exam_reminders": {
        "cron": {"hour": 8, "minute": 0},
        "period": DAILY,
    },
}

# A tick that starts later than this is skipped, not caught up
MISFIRE_GRACE_SECONDS = 300


def check_single_fire_windows(job_config: dict) -> None:
    """
    Raise ValueError if a job's window is not exactly one tick period wide.

    A narrower window can miss items between ticks; a wider one fires twice.
    """
    for job_id, config in job_config.items():
        window = config.get("window")
        if window is None:
            continue
        start, end = window
        if end - start != config["period"]:
            raise ValueError(
                f"{job_id}: window {start}..{end} must be exactly one tick "
                f"period ({config['period']}) wide"
            )


class NotificationScheduler:
    """Owns the AsyncIOScheduler and the scan-and-publish ticks."""

    def __init__(
        self,
        engine: AsyncEngine,
        bus: EventBus,
        timezone_name: str | None = None,
        job_config: dict | None = None,
    ):
        self._engine = engine
        self._bus = bus
        self.timezone_name = timezone_name or get_scheduler_timezone()
        self.job_config = job_config if job_config is not None else JOB_CONFIG
        check_single_fire_windows(self.job_config)
        self._scheduler: AsyncIOScheduler | None = None

        self._ticks = {
            "sessions_closing_soon": self.check_sessions_closing_soon,
            "sessions_auto_close": self.close_expired_sessions,
            "semesters_started": self.check_semesters_started,
            "semesters_ending_soon": self.check_semesters_ending_soon,
            "exam_reminders": self.check_exam_reminders,
        }

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    # =========================================================================
    # Scheduler initialization and shutdown
    # =========================================================================

    def start(self) -> AsyncIOScheduler:
        """
        Create the scheduler, add one cron job per concern and start it.

        Call this during app startup (in FastAPI lifespan).
        """
        if self._scheduler is not None:
            return self._scheduler

        tz = pytz.timezone(self.timezone_name)
        scheduler = AsyncIOScheduler(
            timezone=tz,
            job_defaults={
                "coalesce": True,  # Combine missed runs into one
                "max_instances": 1,
                "misfire_grace_time": MISFIRE_GRACE_SECONDS,
            },
        )
        for job_id, config in self.job_config.items():
            scheduler.add_job(
                self.run_tick,
                trigger=CronTrigger(timezone=tz, **config["cron"]),
                id=job_id,
                replace_existing=True,
                kwargs={"job_id": job_id},
            )

        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            f"Notification scheduler started ({len(self.job_config)} jobs, "
            f"{self.timezone_name})"
        )
        return scheduler

    def shutdown(self) -> None:
        """
        Shutdown the scheduler gracefully.

        Call this during app shutdown.
        """
        if self._scheduler:
            self._scheduler.shutdown(wait=True)
            self._scheduler = None
            logger.info("Notification scheduler stopped")

    # =========================================================================
    # Tick execution
    # =========================================================================

    async def run_tick(self, job_id: str, now: datetime | None = None) -> int | None:
        """
        Run one tick, swallowing its errors.

        This is the job function called by APScheduler. A failed tick is
        logged and reported; the next scheduled tick runs normally.

        Returns:
            Number of events published, or None if the tick failed
        """
        tick = self._ticks[job_id]
        try:
            count = await tick(now)
        except Exception as e:
            logger.error(f"Scheduler tick {job_id} failed: {e}")
            sentry_sdk.capture_exception(e)
            return None

        if count:
            logger.info(f"Scheduler tick {job_id} published {count} event(s)")
        return count

    def _window(self, job_id: str, now: datetime) -> tuple[datetime, datetime]:
        start, end = self.job_config[job_id]["window"]
        return now + start, now + end

    async def check_sessions_closing_soon(self, now: datetime | None = None) -> int:
        """Publish closing_soon for active sessions ending in the window."""
        now = to_utc(now or utcnow())
        start, end = self._window("sessions_closing_soon", now)

        async with get_connection(self._engine) as conn:
            sessions = await session_queries.get_active_sessions_ending_between(
                conn, start, end
            )

        for session in sessions:
            self._bus.publish(
                EventName.SESSION_CLOSING_SOON,
                session_payload(session, self.timezone_name),
            )
        return len(sessions)

    async def close_expired_sessions(self, now: datetime | None = None) -> int:
        """
        Close active sessions whose end_date has passed.

        Each close is its own conditional update; only the sessions this
        tick actually flipped are announced.
        """
        now = to_utc(now or utcnow())

        async with get_connection(self._engine) as conn:
            candidates = await session_queries.get_expired_active_sessions(conn, now)

        closed = 0
        for session in candidates:
            if await close_and_announce(
                self._engine, self._bus, session, now, self.timezone_name
            ):
                logger.info(f"Auto-closed enrollment session {session['session_id']}")
                closed += 1
        return closed

    async def check_semesters_started(self, now: datetime | None = None) -> int:
        """Publish semester.started for semesters starting today (local calendar)."""
        now = to_utc(now or utcnow())
        start, end = local_day_bounds(now, self.timezone_name)

        async with get_connection(self._engine) as conn:
            semesters = await session_queries.get_semesters_starting_between(
                conn, start, end
            )

        for semester in semesters:
            self._bus.publish(
                EventName.SEMESTER_STARTED,
                semester_id=semester["semester_id"],
                semester_name=semester["name"] or UNKNOWN_SEMESTER,
            )
        return len(semesters)

    async def check_semesters_ending_soon(self, now: datetime | None = None) -> int:
        now = to_utc(now or utcnow())
        start, end = self._window("semesters_ending_soon", now)

        async with get_connection(self._engine) as conn:
            semesters = await session_queries.get_semesters_ending_between(
                conn, start, end
            )

        for semester in semesters:
            self._bus.publish(
                EventName.SEMESTER_ENDING_SOON,
                semester_id=semester["semester_id"],
                semester_name=semester["name"] or UNKNOWN_SEMESTER,
            )
        return len(semesters)

    async def check_exam_reminders(self, now: datetime | None = None) -> int:
        """Publish exam_schedule.reminder for exams dated tomorrow."""
        now = to_utc(now or utcnow())
        tomorrow = local_date(now, self.timezone_name) + timedelta(days=1)

        async with get_connection(self._engine) as conn:
            exams = await session_queries.get_exams_on(conn, tomorrow)

        for exam in exams:
            self._bus.publish(
                EventName.EXAM_REMINDER,
                exam_schedule_id=exam["exam_schedule_id"],
                course_on_semester_id=exam["course_on_semester_id"],
                course_name=exam["course_name"] or UNKNOWN_COURSE,
                exam_date=format_date(exam["exam_date"]),
            )
        return len(exams)
