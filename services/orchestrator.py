"""Batch orchestration for scheduled and operator-triggered digest runs."""

from __future__ import annotations

import re
import threading
import time
from collections.abc import Callable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import UTC, datetime

from config import AppConfig
from models import Child, EligiblePreference, RunResult
from services.content import ContentAggregator
from services.dispatch import DeliveryOutcome, DigestDispatcher
from services.errors import (
    DigestRunAbortedError,
    DigestRunInProgressError,
    DigestUnitError,
    RenderError,
    UnitCancelledError,
)
from services.failures import save_dead_letter
from services.notifier import OpsNotifier
from services.observability import LogContext, StructuredLogger, get_logger
from services.preferences import is_digest_enabled, should_send_today, to_local
from services.renderer import DigestRenderer
from services.resilience import ResiliencePolicy
from services.store import DigestStore

_CANCEL_POLL_SECONDS = 0.25


@dataclass(frozen=True)
class _SubscriberOutcome:
    sent: int = 0
    skipped: int = 0
    failures: tuple[DigestUnitError, ...] = ()


class DigestOrchestrator:
    """Fan eligible subscribers out to a bounded worker pool and merge the results."""

    def __init__(
        self,
        *,
        config: AppConfig,
        store: DigestStore,
        aggregator: ContentAggregator,
        renderer: DigestRenderer,
        dispatcher: DigestDispatcher,
        lookup_policy: ResiliencePolicy,
        notifier: OpsNotifier | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        self._config = config
        self._store = store
        self._aggregator = aggregator
        self._renderer = renderer
        self._dispatcher = dispatcher
        self._lookup_policy = lookup_policy
        self._notifier = notifier
        self._logger = logger or get_logger()
        self._run_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._active_cancel: threading.Event | None = None

    def trigger_run(
        self,
        *,
        trigger: str,
        force: bool,
        requested_by: str | None = None,
        now: datetime | None = None,
    ) -> RunResult:
        """Run a digest with logging, dead letters and the ops summary around it."""
        run_id = self._generate_run_id(trigger)
        context = LogContext(run_id=run_id, trigger=trigger, requested_by=requested_by)
        run_now = now or datetime.now(UTC)
        self._logger.info(
            "digest_run_started",
            context=context,
            force=force,
            now=run_now.isoformat(),
        )

        try:
            result = self.run_digest(run_now, force=force, run_id=run_id, trigger=trigger)
        except DigestRunInProgressError as exc:
            self._logger.warning("digest_run_rejected", context=context, reason=str(exc))
            raise
        except DigestRunAbortedError as exc:
            self._logger.error("digest_run_aborted", context=context, error=str(exc))
            self._record_failure(
                context,
                stage="load",
                error=str(exc),
                payload={"trigger": trigger, "force": force, "now": run_now.isoformat()},
            )
            self._notify(
                context,
                lambda notifier: notifier.post_run_aborted(
                    run_id=run_id, trigger=trigger, error=str(exc)
                ),
            )
            raise

        self._logger.info(
            "digest_run_completed",
            context=context,
            sent_count=result.sent_count,
            error_count=result.error_count,
            skipped_count=result.skipped_count,
            errors=list(result.errors),
        )
        for failure in result.failures:
            self._record_failure(
                context.for_unit(subscriber_id=failure.subscriber_id, child_id=failure.child_id),
                stage=failure.stage,
                error=str(failure),
                payload={**failure.to_log_fields(), "email": failure.email},
            )
        self._notify(
            context,
            lambda notifier: notifier.post_run_summary(
                run_id=run_id, trigger=trigger, result=result
            ),
        )
        return result

    def run_digest(
        self,
        now: datetime,
        force: bool = False,
        cancel_event: threading.Event | None = None,
        *,
        run_id: str | None = None,
        trigger: str | None = None,
    ) -> RunResult:
        """Evaluate, render and send every due digest as of ``now``.

        Only a failure to load the preference rows propagates
        (``DigestRunAbortedError``). Everything else is recorded on the result.
        """
        if not self._run_lock.acquire(blocking=False):
            raise DigestRunInProgressError("A digest run is already in progress")

        cancel = cancel_event or threading.Event()
        with self._state_lock:
            self._active_cancel = cancel
        try:
            return self._run(
                now,
                force=force,
                cancel=cancel,
                context=LogContext(run_id=run_id, trigger=trigger),
            )
        finally:
            with self._state_lock:
                self._active_cancel = None
            self._run_lock.release()

    def cancel_active_run(self) -> bool:
        """Signal the active run to stop; returns False when nothing is running."""
        with self._state_lock:
            if self._active_cancel is None:
                return False
            self._active_cancel.set()
            return True

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    def _run(
        self,
        now: datetime,
        *,
        force: bool,
        cancel: threading.Event,
        context: LogContext,
    ) -> RunResult:
        try:
            rows = self._lookup_policy.execute(self._store.list_eligible_preferences)
        except Exception as exc:  # noqa: BLE001
            raise DigestRunAbortedError(f"Failed to load notification preferences: {exc}") from exc

        local_now = to_local(now, self._config.timezone)
        selected = [
            row
            for row in rows
            if is_digest_enabled(row.preference)
            and (force or should_send_today(row.preference, local_now))
        ]

        outcomes = self._fan_out(selected, now=now, cancel=cancel, context=context)

        failures: list[DigestUnitError] = []
        sent = 0
        skipped = 0
        for outcome in outcomes:
            sent += outcome.sent
            skipped += outcome.skipped
            failures.extend(outcome.failures)

        for failure in failures:
            self._logger.error(
                "digest_unit_failed",
                context=context.for_unit(
                    subscriber_id=failure.subscriber_id, child_id=failure.child_id
                ),
                stage=failure.stage,
                reason=failure.reason,
            )

        return RunResult(
            sent_count=sent,
            error_count=len(failures),
            errors=tuple(str(failure) for failure in failures),
            skipped_count=skipped,
            failures=tuple(failures),
        )

    def _fan_out(
        self,
        selected: list[EligiblePreference],
        *,
        now: datetime,
        cancel: threading.Event,
        context: LogContext,
    ) -> list[_SubscriberOutcome]:
        if not selected:
            return []

        executor = ThreadPoolExecutor(
            max_workers=min(self._config.digest_workers, len(selected)),
            thread_name_prefix="digest-worker",
        )
        futures: list[Future[_SubscriberOutcome]] = [
            executor.submit(self._process_subscriber, eligible, now, cancel)
            for eligible in selected
        ]

        deadline = time.monotonic() + self._config.run_timeout_seconds
        pending: set[Future[_SubscriberOutcome]] = set(futures)
        stop_reason: str | None = None
        while pending:
            if cancel.is_set():
                stop_reason = "cancelled"
                break
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                stop_reason = "timed out"
                cancel.set()
                break
            _, pending = wait(
                pending,
                timeout=min(remaining, _CANCEL_POLL_SECONDS),
                return_when=FIRST_COMPLETED,
            )

        # Workers already running finish their current call; queued ones never start.
        executor.shutdown(wait=True, cancel_futures=True)

        if stop_reason is not None:
            self._logger.warning(
                "digest_run_cancelled",
                context=context,
                reason=stop_reason,
                unstarted=sum(1 for future in futures if future.cancelled()),
            )

        outcomes: list[_SubscriberOutcome] = []
        for eligible, future in zip(selected, futures):
            if future.cancelled():
                subscriber = eligible.subscriber
                outcomes.append(
                    _SubscriberOutcome(
                        failures=(
                            UnitCancelledError(
                                subscriber_id=subscriber.id,
                                email=subscriber.email,
                                reason=f"run {stop_reason or 'cancelled'}",
                            ),
                        )
                    )
                )
            else:
                outcomes.append(future.result())
        return outcomes

    def _process_subscriber(
        self,
        eligible: EligiblePreference,
        now: datetime,
        cancel: threading.Event,
    ) -> _SubscriberOutcome:
        subscriber = eligible.subscriber
        if cancel.is_set():
            return _SubscriberOutcome(
                failures=(
                    UnitCancelledError(
                        subscriber_id=subscriber.id,
                        email=subscriber.email,
                        reason="run cancelled",
                    ),
                )
            )

        try:
            children = self._aggregator.list_children(subscriber)
        except DigestUnitError as exc:
            return _SubscriberOutcome(failures=(exc,))
        except Exception as exc:  # noqa: BLE001
            return _SubscriberOutcome(
                failures=(
                    DigestUnitError(
                        subscriber_id=subscriber.id, email=subscriber.email, reason=str(exc)
                    ),
                )
            )

        sent = 0
        skipped = 0
        failures: list[DigestUnitError] = []
        for child in children:
            if cancel.is_set():
                failures.append(
                    UnitCancelledError(
                        subscriber_id=subscriber.id,
                        email=subscriber.email,
                        child_id=child.id,
                        child_name=child.name,
                        reason="run cancelled",
                    )
                )
                continue
            try:
                delivered = self._process_child(eligible, child, now)
            except DigestUnitError as exc:
                failures.append(exc)
                continue
            except Exception as exc:  # noqa: BLE001
                failures.append(
                    DigestUnitError(
                        subscriber_id=subscriber.id,
                        email=subscriber.email,
                        child_id=child.id,
                        child_name=child.name,
                        reason=str(exc),
                    )
                )
                continue

            if delivered is None:
                skipped += 1
                continue
            sent += 1
            if delivered.persist_error is not None:
                failures.append(delivered.persist_error)

        return _SubscriberOutcome(sent=sent, skipped=skipped, failures=tuple(failures))

    def _process_child(
        self,
        eligible: EligiblePreference,
        child: Child,
        now: datetime,
    ) -> DeliveryOutcome | None:
        subscriber = eligible.subscriber
        payload = self._aggregator.build_payload(subscriber, child, eligible.preference, now)
        if payload is None:
            return None

        try:
            message = self._renderer.render(payload)
        except Exception as exc:  # noqa: BLE001
            raise RenderError(
                subscriber_id=subscriber.id,
                email=subscriber.email,
                child_id=child.id,
                child_name=child.name,
                reason=str(exc),
            ) from exc

        return self._dispatcher.deliver(eligible, child, message, now)

    def _notify(self, context: LogContext, post: Callable[[OpsNotifier], object]) -> None:
        if self._notifier is None:
            return
        try:
            post(self._notifier)
        except Exception as exc:  # noqa: BLE001
            self._logger.error("ops_notification_failed", context=context, error=str(exc))

    def _record_failure(
        self,
        context: LogContext,
        *,
        stage: str,
        error: str,
        payload: dict[str, object],
    ) -> None:
        try:
            save_dead_letter(
                failure_dir=self._config.failure_log_dir,
                stage=stage,
                run_id=context.run_id or "run",
                error=error,
                payload=payload,
            )
        except OSError as exc:
            self._logger.error(
                "dead_letter_write_failed", context=context, stage=stage, error=str(exc)
            )

    @staticmethod
    def _generate_run_id(trigger: str) -> str:
        now = datetime.now(UTC)
        safe_trigger = re.sub(r"[^a-z0-9_-]+", "-", trigger.lower()).strip("-") or "run"
        return f"{now.strftime('%Y-%m-%d')}-{safe_trigger}-{now.strftime('%H%M%S')}"
