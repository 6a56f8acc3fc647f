"""Shared pytest fixtures."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import pytest

from config import AppConfig
from models import Child, NotificationPreference
from services.store import DigestStore


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    data_dir = tmp_path / "data"
    return AppConfig(
        resend_api_key="re_test",
        digest_from_email="digest@kinpath.family",
        digest_reply_to_email=None,
        app_url="https://app.kinpath.test",
        timezone="UTC",
        digest_hour_utc=9,
        digest_db_path=data_dir / "digest.db",
        failure_log_dir=data_dir / "failures",
        max_external_retries=1,
        enable_dry_run=True,
        digest_workers=2,
        call_timeout_seconds=5.0,
        run_timeout_seconds=60.0,
        resource_limit=3,
        resource_lookback_days=7,
        admin_trigger_token="admin-secret",
    )


@pytest.fixture
def store(app_config: AppConfig) -> DigestStore:
    digest_store = DigestStore(app_config.digest_db_path)
    digest_store.initialize()
    return digest_store


@pytest.fixture
def add_subscriber(store: DigestStore) -> Callable[..., NotificationPreference]:
    """Insert a subscriber with one preference row and optional children."""

    def _add(
        subscriber_id: str,
        *,
        email: str | None = None,
        display_name: str | None = None,
        frequency: str = "weekly",
        preferred_day: int = 1,
        email_enabled: bool = True,
        last_email_sent_at: datetime | None = None,
        children: tuple[Child, ...] = (),
    ) -> NotificationPreference:
        store.upsert_subscriber(
            subscriber_id,
            email or f"{subscriber_id}@example.com",
            display_name,
        )
        preference = NotificationPreference(
            id=f"pref-{subscriber_id}",
            subscriber_id=subscriber_id,
            email_enabled=email_enabled,
            email_frequency=frequency,
            preferred_day=preferred_day,
            last_email_sent_at=last_email_sent_at,
        )
        store.upsert_preference(preference)
        for child in children:
            store.upsert_child(child)
        return preference

    return _add


@pytest.fixture
def template_path() -> Path:
    return Path(__file__).resolve().parent.parent / "templates" / "digest_email.html"
