"""Dead-letter files for digest units that could not be delivered."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any


def save_dead_letter(
    *,
    failure_dir: Path,
    stage: str,
    run_id: str,
    error: str,
    payload: dict[str, Any] | None = None,
) -> Path:
    """Persist a failed unit so an operator can inspect or replay it."""
    failure_dir.mkdir(parents=True, exist_ok=True)
    now = datetime.now(UTC)
    fields = payload or {}
    unit = [str(fields.get("subscriber_id") or "run")]
    if fields.get("child_id"):
        unit.append(str(fields["child_id"]))
    unit_name = "_".join(_safe_name(part) for part in unit)
    out_path = failure_dir / (
        f"failure_{run_id}_{stage}_{unit_name}_{now.strftime('%Y%m%dT%H%M%S%fZ')}.json"
    )
    body = {
        "run_id": run_id,
        "stage": stage,
        "error": error,
        "payload": fields,
        "created_at": now.isoformat(),
    }
    out_path.write_text(json.dumps(body, indent=2, sort_keys=True), encoding="utf-8")
    return out_path


def _safe_name(raw: str) -> str:
    return "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in raw)[:64]
