"""APScheduler setup for the daily digest job."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from config import AppConfig
from services.errors import DigestRunAbortedError, DigestRunInProgressError
from services.observability import LogContext, get_logger
from services.orchestrator import DigestOrchestrator

DAILY_JOB_ID = "daily_digest_run"


@dataclass
class SchedulerRuntime:
    """Runtime wrapper around the APScheduler job used by the engine process."""

    config: AppConfig
    orchestrator: DigestOrchestrator
    scheduler: BackgroundScheduler | None = None

    def start(self) -> None:
        """Register the daily job and start the scheduler."""
        scheduler = BackgroundScheduler(timezone=UTC)
        scheduler.add_job(
            self._daily_run_job,
            trigger=CronTrigger(
                hour=self.config.digest_hour_utc,
                minute=0,
                timezone=UTC,
            ),
            id=DAILY_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=3600,
        )
        scheduler.start()
        self.scheduler = scheduler

    def shutdown(self) -> None:
        """Shutdown scheduler and wait for in-flight jobs to finish."""
        if self.scheduler is None:
            return
        self.scheduler.shutdown(wait=True)
        self.scheduler = None

    def next_digest_run_at(self) -> datetime | None:
        """Return next scheduled daily trigger time."""
        if self.scheduler is None:
            return None
        job = self.scheduler.get_job(DAILY_JOB_ID)
        if job is None:
            return None
        if job.next_run_time is None:
            return None
        return job.next_run_time.astimezone(UTC)

    def _daily_run_job(self) -> None:
        try:
            self.orchestrator.trigger_run(trigger="scheduled", force=False)
        except (DigestRunAbortedError, DigestRunInProgressError) as exc:
            # Already logged by the orchestrator; the next daily fire retries.
            get_logger().error(
                "scheduled_run_failed",
                context=LogContext(trigger="scheduled"),
                error=str(exc),
            )
