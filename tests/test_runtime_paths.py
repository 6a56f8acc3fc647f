"""Tests for runtime path bootstrap logic."""

from __future__ import annotations

from config import AppConfig
from services.runtime_paths import bootstrap_runtime_paths


def test_bootstrap_runtime_paths_creates_expected_artifacts(app_config: AppConfig) -> None:
    store = bootstrap_runtime_paths(app_config)

    assert app_config.failure_log_dir.exists()
    assert app_config.digest_db_path.exists()
    assert store.list_eligible_preferences() == []


def test_bootstrap_runtime_paths_is_repeatable(app_config: AppConfig) -> None:
    bootstrap_runtime_paths(app_config)
    store = bootstrap_runtime_paths(app_config)

    assert store.db_path == app_config.digest_db_path
