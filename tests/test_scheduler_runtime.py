"""Tests for APScheduler runtime wiring."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC

from config import AppConfig
from scheduler import DAILY_JOB_ID, SchedulerRuntime
from services.errors import DigestRunAbortedError


@dataclass
class _FakeOrchestrator:
    calls: list[tuple[str, bool]] = field(default_factory=list)
    fail: bool = False

    def trigger_run(self, *, trigger: str, force: bool) -> None:
        self.calls.append((trigger, force))
        if self.fail:
            raise DigestRunAbortedError("store offline")


def test_scheduler_registers_daily_job_at_configured_utc_hour(app_config: AppConfig) -> None:
    runtime = SchedulerRuntime(config=app_config, orchestrator=_FakeOrchestrator())  # type: ignore[arg-type]

    runtime.start()
    try:
        assert runtime.scheduler is not None
        job = runtime.scheduler.get_job(DAILY_JOB_ID)
        assert job is not None
        next_run = runtime.next_digest_run_at()
        assert next_run is not None
        assert next_run.tzinfo == UTC
        assert (next_run.hour, next_run.minute) == (9, 0)
    finally:
        runtime.shutdown()

    assert runtime.next_digest_run_at() is None


def test_daily_job_runs_unforced(app_config: AppConfig) -> None:
    orchestrator = _FakeOrchestrator()
    runtime = SchedulerRuntime(config=app_config, orchestrator=orchestrator)  # type: ignore[arg-type]

    runtime._daily_run_job()  # noqa: SLF001

    assert orchestrator.calls == [("scheduled", False)]


def test_daily_job_swallows_aborted_run(app_config: AppConfig) -> None:
    orchestrator = _FakeOrchestrator(fail=True)
    runtime = SchedulerRuntime(config=app_config, orchestrator=orchestrator)  # type: ignore[arg-type]

    runtime._daily_run_job()  # noqa: SLF001

    assert orchestrator.calls == [("scheduled", False)]


def test_shutdown_without_start_is_noop(app_config: AppConfig) -> None:
    runtime = SchedulerRuntime(config=app_config, orchestrator=_FakeOrchestrator())  # type: ignore[arg-type]

    runtime.shutdown()

    assert runtime.scheduler is None
