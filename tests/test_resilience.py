"""Tests for resilience policies."""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from pathlib import Path

import pytest

from services.resilience import (
    CircuitBreakerOpenError,
    CircuitBreakerState,
    ExternalServiceError,
    ResiliencePolicy,
    call_with_timeout,
)
from services.store import DigestStore


def test_resilience_policy_retries_then_succeeds() -> None:
    attempts = {"count": 0}

    def flaky() -> str:
        attempts["count"] += 1
        if attempts["count"] < 3:
            raise RuntimeError("transient")
        return "ok"

    policy = ResiliencePolicy(name="test", max_attempts=3)
    result = policy.execute(flaky)

    assert result == "ok"
    assert attempts["count"] == 3
    assert policy.breaker.state == CircuitBreakerState.CLOSED


def test_single_attempt_policy_does_not_retry() -> None:
    attempts = {"count": 0}

    def failing() -> str:
        attempts["count"] += 1
        raise ConnectionError("refused")

    policy = ResiliencePolicy(name="email", max_attempts=1)
    with pytest.raises(ExternalServiceError, match="refused"):
        policy.execute(failing)

    assert attempts["count"] == 1


def test_circuit_breaker_opens_after_failed_calls() -> None:
    policy = ResiliencePolicy(
        name="test",
        max_attempts=1,
        failure_threshold=2,
        recovery_timeout_seconds=60,
    )

    with pytest.raises(ExternalServiceError):
        policy.execute(lambda: (_ for _ in ()).throw(RuntimeError("fail1")))
    with pytest.raises(ExternalServiceError):
        policy.execute(lambda: (_ for _ in ()).throw(RuntimeError("fail2")))

    assert policy.breaker.state == CircuitBreakerState.OPEN

    with pytest.raises(CircuitBreakerOpenError):
        policy.execute(lambda: "should not run")


def test_policy_times_out_slow_call() -> None:
    release = threading.Event()
    policy = ResiliencePolicy(name="slow_store", max_attempts=1, timeout_seconds=0.05)

    try:
        with pytest.raises(ExternalServiceError, match="timed out"):
            policy.execute(lambda: release.wait(5))
    finally:
        release.set()


def test_call_with_timeout_returns_value_and_propagates_errors() -> None:
    assert call_with_timeout(lambda: 42, timeout_seconds=1.0) == 42
    assert call_with_timeout(lambda: "direct", timeout_seconds=None) == "direct"

    with pytest.raises(ValueError, match="bad"):
        call_with_timeout(
            lambda: (_ for _ in ()).throw(ValueError("bad")),
            timeout_seconds=1.0,
        )


def test_policy_rejects_non_positive_timeout() -> None:
    with pytest.raises(ValueError):
        ResiliencePolicy(name="test", max_attempts=1, timeout_seconds=0)


def test_store_query_failures_are_retried(tmp_path: Path) -> None:
    uninitialized = DigestStore(tmp_path / "empty.db")
    attempts = {"count": 0}

    def lookup() -> object:
        attempts["count"] += 1
        return uninitialized.list_children("user-1")

    policy = ResiliencePolicy(name="digest_store", max_attempts=3)
    with pytest.raises(ExternalServiceError, match="no such table"):
        policy.execute(lookup)

    assert attempts["count"] == 3


def test_missing_store_row_is_not_retried(store: DigestStore) -> None:
    attempts = {"count": 0}

    def mark_missing() -> None:
        attempts["count"] += 1
        store.mark_email_sent("pref-missing", datetime(2024, 10, 28, 9, 0, tzinfo=UTC))

    policy = ResiliencePolicy(name="digest_store", max_attempts=3)
    with pytest.raises(ExternalServiceError, match="Preference not found"):
        policy.execute(mark_missing)

    assert attempts["count"] == 1
