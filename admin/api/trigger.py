"""Operator endpoint that runs a forced digest or cancels the active run."""

from __future__ import annotations

import hmac
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from config import AppConfig, ConfigError, get_config
from services.errors import DigestRunAbortedError, DigestRunInProgressError
from services.observability import LogContext, get_logger
from services.orchestrator import DigestOrchestrator

_ORCHESTRATOR: DigestOrchestrator | None = None


@dataclass(frozen=True)
class EndpointResponse:
    """HTTP-like response shape used by tests and serverless adapters."""

    status_code: int
    headers: dict[str, str]
    body: dict[str, Any]


def process_request(
    *,
    method: str,
    headers: dict[str, str] | None,
    raw_body: str,
    orchestrator: DigestOrchestrator | None = None,
    config: AppConfig | None = None,
    now: datetime | None = None,
) -> EndpointResponse:
    """Process an admin trigger request for serverless and unit test use."""
    verb = method.upper()
    if verb not in {"POST", "DELETE"}:
        return _response(405, {"error": "method_not_allowed"})

    try:
        app_config = config or get_config()
    except ConfigError as exc:
        return _response(500, {"error": "misconfigured_server", "detail": str(exc)})
    if not app_config.admin_trigger_token:
        return _response(500, {"error": "misconfigured_server"})

    request_headers = _normalize_headers(headers)
    if not _is_authorized(request_headers.get("authorization", ""), app_config.admin_trigger_token):
        return _response(401, {"error": "unauthorized"})

    payload = _parse_payload(raw_body)
    if payload is None:
        return _response(400, {"error": "invalid_json"})

    runner = orchestrator or _default_orchestrator(app_config)
    logger = get_logger()
    requested_by = str(payload.get("requested_by") or "admin-endpoint")

    if verb == "DELETE":
        cancelled = runner.cancel_active_run()
        logger.info(
            "digest_cancel_requested",
            context=LogContext(trigger="manual", requested_by=requested_by),
            cancelled=cancelled,
        )
        return _response(200, {"cancelled": cancelled})

    try:
        result = runner.trigger_run(
            trigger="manual",
            force=True,
            requested_by=requested_by,
            now=now,
        )
    except DigestRunInProgressError:
        return _response(409, {"error": "run_in_progress"})
    except DigestRunAbortedError as exc:
        return _response(500, {"error": "run_aborted", "detail": str(exc)})

    return _response(200, result.as_dict())


def handler(request: Any) -> Any:
    """Vercel-style handler adapter."""
    method = str(getattr(request, "method", "GET"))
    headers = dict(getattr(request, "headers", {}) or {})

    body_value = getattr(request, "body", b"")
    if isinstance(body_value, (bytes, bytearray)):
        raw_body = body_value.decode("utf-8")
    else:
        raw_body = str(body_value or "")

    response = process_request(method=method, headers=headers, raw_body=raw_body)

    # Vercel python runtime accepts tuple (body, status, headers).
    return json.dumps(response.body), response.status_code, response.headers


def _default_orchestrator(config: AppConfig) -> DigestOrchestrator:
    global _ORCHESTRATOR
    if _ORCHESTRATOR is None:
        from engine import build_orchestrator
        from services.runtime_paths import bootstrap_runtime_paths

        _ORCHESTRATOR = build_orchestrator(config, store=bootstrap_runtime_paths(config))
    return _ORCHESTRATOR


def _is_authorized(header_value: str, expected_token: str) -> bool:
    scheme, _, token = header_value.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return False
    return hmac.compare_digest(token.strip().encode("utf-8"), expected_token.encode("utf-8"))


def _parse_payload(raw_body: str) -> dict[str, Any] | None:
    if not raw_body.strip():
        return {}
    try:
        payload = json.loads(raw_body)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict):
        return None
    return payload


def _normalize_headers(headers: dict[str, str] | None) -> dict[str, str]:
    if not headers:
        return {}
    return {str(k).lower(): str(v) for k, v in headers.items()}


def _response(status_code: int, body: dict[str, Any]) -> EndpointResponse:
    return EndpointResponse(
        status_code=status_code,
        headers={"Content-Type": "application/json", "Cache-Control": "no-store"},
        body=body,
    )
