"""Runtime directory/database bootstrap helpers."""

from __future__ import annotations

from config import AppConfig
from services.store import DigestStore


def bootstrap_runtime_paths(config: AppConfig) -> DigestStore:
    """Create runtime directories and initialize the digest store schema."""
    config.digest_db_path.parent.mkdir(parents=True, exist_ok=True)
    config.failure_log_dir.mkdir(parents=True, exist_ok=True)

    store = DigestStore(config.digest_db_path)
    store.initialize()
    return store
