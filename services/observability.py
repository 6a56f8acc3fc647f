"""Structured logging helpers for digest run and request observability."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

_LOGGER_NAME = "kinpath_digest"
_CONTEXT_FIELDS = ("run_id", "trigger", "requested_by", "subscriber_id", "child_id")


@dataclass(frozen=True)
class LogContext:
    """Context values merged into every structured log event."""

    run_id: str | None = None
    trigger: str | None = None
    requested_by: str | None = None
    subscriber_id: str | None = None
    child_id: str | None = None
    extras: dict[str, Any] = field(default_factory=dict)

    def for_unit(self, *, subscriber_id: str, child_id: str | None = None) -> LogContext:
        """Narrow a run context to one subscriber or (subscriber, child) pair."""
        return replace(self, subscriber_id=subscriber_id, child_id=child_id)


class StructuredLogger:
    """Emit one JSON line per digest event so a run can be traced per subscriber."""

    def __init__(self) -> None:
        self._logger = logging.getLogger(_LOGGER_NAME)
        if not self._logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter("%(message)s"))
            self._logger.addHandler(handler)
        self._logger.setLevel(logging.INFO)

    def info(self, event: str, *, context: LogContext | None = None, **fields: Any) -> None:
        self._emit(logging.INFO, event, context=context, fields=fields)

    def warning(self, event: str, *, context: LogContext | None = None, **fields: Any) -> None:
        self._emit(logging.WARNING, event, context=context, fields=fields)

    def error(self, event: str, *, context: LogContext | None = None, **fields: Any) -> None:
        self._emit(logging.ERROR, event, context=context, fields=fields)

    def _emit(
        self,
        level: int,
        event: str,
        *,
        context: LogContext | None,
        fields: dict[str, Any],
    ) -> None:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": logging.getLevelName(level).lower(),
            "event": event,
        }
        if context is not None:
            for name in _CONTEXT_FIELDS:
                value = getattr(context, name)
                if value:
                    payload[name] = value
            payload.update(context.extras)
        payload.update(fields)
        self._logger.log(level, json.dumps(payload, sort_keys=True, default=str))


_default_logger: StructuredLogger | None = None


def get_logger() -> StructuredLogger:
    global _default_logger
    if _default_logger is None:
        _default_logger = StructuredLogger()
    return _default_logger
