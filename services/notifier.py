"""Operator-facing Slack summaries for digest runs."""

from __future__ import annotations

from typing import Any

from slack_sdk import WebClient

from config import AppConfig
from models import RunResult
from services.resilience import ResiliencePolicy

MAX_LISTED_ERRORS = 10


class OpsNotifier:
    """Post run summaries to the ops channel when one is configured."""

    def __init__(self, config: AppConfig, *, client: Any | None = None) -> None:
        self._channel_id = config.ops_channel_id
        if client is None and config.ops_slack_bot_token:
            client = WebClient(token=config.ops_slack_bot_token)
        self._client = client
        self._resilience = ResiliencePolicy(
            name="slack_api",
            max_attempts=config.max_external_retries,
            timeout_seconds=config.call_timeout_seconds,
        )

    @property
    def enabled(self) -> bool:
        return self._client is not None and bool(self._channel_id)

    def post_run_summary(self, *, run_id: str, trigger: str, result: RunResult) -> bool:
        """Post the summary; returns False when notifications are disabled."""
        if not self.enabled:
            return False
        text = format_run_summary(run_id=run_id, trigger=trigger, result=result)
        self._post(text)
        return True

    def post_run_aborted(self, *, run_id: str, trigger: str, error: str) -> bool:
        if not self.enabled:
            return False
        self._post(f"Digest run `{run_id}` ({trigger}) aborted: {error}")
        return True

    def _post(self, text: str) -> None:
        def _operation() -> Any:
            return self._client.chat_postMessage(channel=self._channel_id, text=text)

        self._resilience.execute(_operation)


def format_run_summary(*, run_id: str, trigger: str, result: RunResult) -> str:
    lines = [
        f"Digest run `{run_id}` ({trigger}) finished: "
        f"{result.sent_count} sent, {result.error_count} errors, "
        f"{result.skipped_count} skipped."
    ]
    for error in result.errors[:MAX_LISTED_ERRORS]:
        lines.append(f"- {error}")
    hidden = len(result.errors) - MAX_LISTED_ERRORS
    if hidden > 0:
        lines.append(f"...and {hidden} more")
    return "\n".join(lines)
