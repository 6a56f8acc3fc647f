"""Resend transactional email delivery with dry-run support."""

from __future__ import annotations

import importlib
from dataclasses import dataclass
from typing import Any

from config import AppConfig
from services.resilience import ResiliencePolicy


@dataclass(frozen=True)
class SendResult:
    """Email send response."""

    message_id: str
    dry_run: bool
    raw_response: dict[str, Any]


class ResendMailer:
    """Send one digest email per call through Resend."""

    def __init__(
        self,
        config: AppConfig,
        *,
        client: Any | None = None,
        policy: ResiliencePolicy | None = None,
    ) -> None:
        self._config = config
        self._dry_run = config.enable_dry_run
        self._client = client or self._build_default_client(config)
        # A failed send is retried by the next scheduled run, never within this one.
        self._resilience = policy or ResiliencePolicy(
            name="resend_email",
            max_attempts=1,
            timeout_seconds=config.call_timeout_seconds,
        )

    @staticmethod
    def _build_default_client(config: AppConfig) -> Any:
        resend_module = importlib.import_module("resend")
        # Resend SDK v2.x uses module-level api_key + module-level resources
        resend_module.api_key = config.resend_api_key
        return resend_module

    def send_email(self, *, to: str, subject: str, html: str) -> SendResult:
        """Send an email or return a simulated dry-run payload."""
        if self._dry_run:
            return SendResult(
                message_id="dry-run-email",
                dry_run=True,
                raw_response={
                    "id": "dry-run-email",
                    "to": to,
                    "subject": subject,
                    "dry_run": True,
                },
            )

        params: dict[str, Any] = {
            "from": self._config.digest_from_email,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        if self._config.digest_reply_to_email:
            params["reply_to"] = self._config.digest_reply_to_email

        def _operation() -> Any:
            return self._client.Emails.send(params)

        response = self._resilience.execute(_operation)
        return SendResult(
            message_id=_extract_id(response),
            dry_run=False,
            raw_response=_to_dict(response),
        )


def _extract_id(response: Any) -> str:
    as_dict = _to_dict(response)
    if "id" not in as_dict:
        raise ValueError("Resend response missing id")
    return str(as_dict["id"])


def _to_dict(response: Any) -> dict[str, Any]:
    if isinstance(response, dict):
        return response
    if hasattr(response, "model_dump"):
        return response.model_dump()
    if hasattr(response, "__dict__"):
        return {k: v for k, v in vars(response).items() if not k.startswith("_")}
    return {"raw": str(response)}
