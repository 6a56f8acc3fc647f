"""Digest engine entrypoint.

This module wires configuration, storage, the digest pipeline and the daily scheduler.
"""

from __future__ import annotations

import signal
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from config import AppConfig, get_config
from scheduler import SchedulerRuntime
from services.content import ContentAggregator
from services.dispatch import DigestDispatcher, StateUpdater
from services.notifier import OpsNotifier
from services.observability import LogContext, get_logger
from services.orchestrator import DigestOrchestrator
from services.renderer import DigestRenderer
from services.resilience import ResiliencePolicy
from services.runtime_paths import bootstrap_runtime_paths
from services.sender import ResendMailer
from services.store import DigestStore


@dataclass(frozen=True)
class EngineRuntime:
    """Container for initialized engine runtime dependencies."""

    store: DigestStore
    orchestrator: DigestOrchestrator
    scheduler: SchedulerRuntime


def configure_template_path() -> Path:
    return Path(__file__).parent / "templates/digest_email.html"


def build_orchestrator(
    config: AppConfig,
    *,
    store: DigestStore | None = None,
    mailer: ResendMailer | None = None,
    notifier: OpsNotifier | None = None,
) -> DigestOrchestrator:
    """Assemble the digest pipeline from configuration."""
    store = store or DigestStore(config.digest_db_path)
    lookup_policy = ResiliencePolicy(
        name="digest_store",
        max_attempts=config.max_external_retries,
        timeout_seconds=config.call_timeout_seconds,
    )
    aggregator = ContentAggregator(
        store=store,
        lookup_policy=lookup_policy,
        app_url=config.app_url,
        timezone=config.timezone,
        resource_limit=config.resource_limit,
        lookback_days=config.resource_lookback_days,
    )
    dispatcher = DigestDispatcher(
        mailer=mailer or ResendMailer(config),
        state_updater=StateUpdater(store=store, policy=lookup_policy),
    )
    return DigestOrchestrator(
        config=config,
        store=store,
        aggregator=aggregator,
        renderer=DigestRenderer(configure_template_path()),
        dispatcher=dispatcher,
        lookup_policy=lookup_policy,
        notifier=notifier or OpsNotifier(config),
        logger=get_logger(),
    )


def _build_runtime(config: AppConfig) -> EngineRuntime:
    store = bootstrap_runtime_paths(config)
    orchestrator = build_orchestrator(config, store=store)
    return EngineRuntime(
        store=store,
        orchestrator=orchestrator,
        scheduler=SchedulerRuntime(config=config, orchestrator=orchestrator),
    )


def _install_signal_handlers(runtime: EngineRuntime, stop_event: threading.Event) -> None:
    def _shutdown(_signum: int, _frame: Any) -> None:
        runtime.orchestrator.cancel_active_run()
        stop_event.set()

    signal.signal(signal.SIGTERM, _shutdown)
    signal.signal(signal.SIGINT, _shutdown)


def main() -> None:
    """Run the digest engine process until signalled."""
    config = get_config()
    runtime = _build_runtime(config)
    runtime.scheduler.start()

    stop_event = threading.Event()
    _install_signal_handlers(runtime, stop_event)

    logger = get_logger()
    next_run = runtime.scheduler.next_digest_run_at()
    logger.info(
        "engine_started",
        context=LogContext(),
        dry_run=config.enable_dry_run,
        workers=config.digest_workers,
        next_run_at=next_run.isoformat() if next_run else None,
    )
    try:
        stop_event.wait()
    finally:
        runtime.scheduler.shutdown()


if __name__ == "__main__":
    main()
