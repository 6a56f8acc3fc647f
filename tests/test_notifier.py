"""Tests for ops Slack summaries."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from config import AppConfig
from models import RunResult
from services.notifier import MAX_LISTED_ERRORS, OpsNotifier, format_run_summary


class _FakeSlackClient:
    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []

    def chat_postMessage(self, **kwargs: Any) -> dict[str, Any]:  # noqa: N802
        self.messages.append(kwargs)
        return {"ok": True}


def test_notifier_disabled_without_token(app_config: AppConfig) -> None:
    notifier = OpsNotifier(app_config)

    assert notifier.enabled is False
    assert (
        notifier.post_run_summary(
            run_id="r1", trigger="scheduled", result=RunResult(0, 0, ())
        )
        is False
    )


def test_notifier_disabled_without_channel(app_config: AppConfig) -> None:
    notifier = OpsNotifier(app_config, client=_FakeSlackClient())

    assert notifier.enabled is False


def test_post_run_summary_sends_to_ops_channel(app_config: AppConfig) -> None:
    client = _FakeSlackClient()
    notifier = OpsNotifier(replace(app_config, ops_channel_id="C_OPS"), client=client)
    result = RunResult(sent_count=4, error_count=1, errors=("b@example.com: boom",), skipped_count=2)

    assert notifier.post_run_summary(run_id="r1", trigger="manual", result=result) is True

    assert client.messages[0]["channel"] == "C_OPS"
    text = client.messages[0]["text"]
    assert "4 sent, 1 errors, 2 skipped" in text
    assert "- b@example.com: boom" in text


def test_post_run_aborted(app_config: AppConfig) -> None:
    client = _FakeSlackClient()
    notifier = OpsNotifier(replace(app_config, ops_channel_id="C_OPS"), client=client)

    notifier.post_run_aborted(run_id="r2", trigger="scheduled", error="store offline")

    assert client.messages[0]["text"] == "Digest run `r2` (scheduled) aborted: store offline"


def test_format_run_summary_truncates_error_list() -> None:
    errors = tuple(f"user{i}@example.com: failed" for i in range(MAX_LISTED_ERRORS + 3))
    result = RunResult(sent_count=0, error_count=len(errors), errors=errors)

    text = format_run_summary(run_id="r3", trigger="scheduled", result=result)

    assert text.count("\n- ") == MAX_LISTED_ERRORS
    assert text.endswith("...and 3 more")
