"""SQLite-backed subscriber, child, resource and preference storage."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path

from models import Child, EligiblePreference, NotificationPreference, Subscriber


class StoreError(RuntimeError):
    """Raised when the digest store cannot be opened or a query fails."""


class StoreRowNotFoundError(LookupError):
    """Raised when an update targets a row that does not exist."""


_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL,
        display_name TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS notification_preferences (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL UNIQUE,
        email_enabled INTEGER NOT NULL DEFAULT 1,
        email_frequency TEXT NOT NULL DEFAULT 'weekly',
        preferred_day INTEGER NOT NULL DEFAULT 1,
        preferred_hour INTEGER NOT NULL DEFAULT 9,
        last_email_sent_at TEXT,
        pregnancy_updates INTEGER NOT NULL DEFAULT 1,
        new_resources INTEGER NOT NULL DEFAULT 1,
        planning_reminders INTEGER NOT NULL DEFAULT 1,
        updated_at TEXT NOT NULL,
        FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS children (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        name TEXT NOT NULL,
        is_born INTEGER NOT NULL DEFAULT 0,
        due_date TEXT,
        date_of_birth TEXT,
        created_at TEXT NOT NULL,
        FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS resources (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        slug TEXT NOT NULL UNIQUE,
        summary TEXT,
        status TEXT NOT NULL DEFAULT 'draft',
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_children_user ON children(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_resources_status_created ON resources(status, created_at)",
)


class DigestStore:
    """Read/write contract the digest engine needs from the data store."""

    def __init__(self, db_path: Path, *, busy_timeout_seconds: float = 5.0) -> None:
        self.db_path = db_path
        self.busy_timeout_seconds = busy_timeout_seconds

    def initialize(self) -> None:
        """Initialize SQLite tables if they do not exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)

    def list_eligible_preferences(self) -> list[EligiblePreference]:
        """Return enabled, non-off preference rows joined to their subscriber."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT
                    p.id,
                    p.user_id,
                    p.email_enabled,
                    p.email_frequency,
                    p.preferred_day,
                    p.preferred_hour,
                    p.last_email_sent_at,
                    p.pregnancy_updates,
                    p.new_resources,
                    p.planning_reminders,
                    u.email,
                    u.display_name
                FROM notification_preferences AS p
                JOIN users AS u ON u.id = p.user_id
                WHERE p.email_enabled = 1
                  AND lower(p.email_frequency) != 'off'
                ORDER BY p.id ASC
                """
            ).fetchall()

        return [
            EligiblePreference(
                preference=_preference_from_row(row),
                subscriber=Subscriber(
                    id=row["user_id"],
                    email=row["email"],
                    display_name=row["display_name"],
                ),
            )
            for row in rows
        ]

    def get_preference(self, preference_id: str) -> NotificationPreference | None:
        """Return one preference row by ID."""
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT
                    id,
                    user_id,
                    email_enabled,
                    email_frequency,
                    preferred_day,
                    preferred_hour,
                    last_email_sent_at,
                    pregnancy_updates,
                    new_resources,
                    planning_reminders
                FROM notification_preferences
                WHERE id = ?
                """,
                (preference_id,),
            ).fetchone()
        if row is None:
            return None
        return _preference_from_row(row)

    def list_children(self, subscriber_id: str) -> list[Child]:
        """Return a subscriber's children in creation order."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT id, user_id, name, is_born, due_date, date_of_birth
                FROM children
                WHERE user_id = ?
                ORDER BY created_at ASC, id ASC
                """,
                (subscriber_id,),
            ).fetchall()

        return [
            Child(
                id=row["id"],
                subscriber_id=row["user_id"],
                name=row["name"],
                is_born=bool(row["is_born"]),
                due_date=row["due_date"],
                date_of_birth=row["date_of_birth"],
            )
            for row in rows
        ]

    def list_published_resources_since(
        self, since: datetime, limit: int
    ) -> list[dict[str, object]]:
        """Return published resources created at or after ``since``, newest first."""
        if limit < 1:
            return []
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT id, title, slug, summary, created_at
                FROM resources
                WHERE status = 'published' AND created_at >= ?
                ORDER BY created_at DESC
                LIMIT ?
                """,
                (_to_iso(since), limit),
            ).fetchall()

        return [
            {
                "id": row["id"],
                "title": row["title"],
                "slug": row["slug"],
                "summary": row["summary"],
                "created_at": _parse_iso(row["created_at"]),
            }
            for row in rows
        ]

    def mark_email_sent(self, preference_id: str, sent_at: datetime) -> None:
        """Set ``last_email_sent_at`` for exactly one preference row."""
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE notification_preferences
                SET last_email_sent_at = ?, updated_at = ?
                WHERE id = ?
                """,
                (_to_iso(sent_at), _now_iso(), preference_id),
            )
            if cursor.rowcount != 1:
                raise StoreRowNotFoundError(f"Preference not found: {preference_id}")

    def upsert_subscriber(
        self, subscriber_id: str, email: str, display_name: str | None = None
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO users (id, email, display_name, created_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    email = excluded.email,
                    display_name = excluded.display_name
                """,
                (subscriber_id, email, display_name, _now_iso()),
            )

    def upsert_preference(self, preference: NotificationPreference) -> None:
        last_sent = (
            _to_iso(preference.last_email_sent_at)
            if preference.last_email_sent_at is not None
            else None
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO notification_preferences (
                    id,
                    user_id,
                    email_enabled,
                    email_frequency,
                    preferred_day,
                    preferred_hour,
                    last_email_sent_at,
                    pregnancy_updates,
                    new_resources,
                    planning_reminders,
                    updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    email_enabled = excluded.email_enabled,
                    email_frequency = excluded.email_frequency,
                    preferred_day = excluded.preferred_day,
                    preferred_hour = excluded.preferred_hour,
                    last_email_sent_at = excluded.last_email_sent_at,
                    pregnancy_updates = excluded.pregnancy_updates,
                    new_resources = excluded.new_resources,
                    planning_reminders = excluded.planning_reminders,
                    updated_at = excluded.updated_at
                """,
                (
                    preference.id,
                    preference.subscriber_id,
                    int(preference.email_enabled),
                    preference.email_frequency,
                    preference.preferred_day,
                    preference.preferred_hour,
                    last_sent,
                    int(preference.pregnancy_updates),
                    int(preference.new_resources),
                    int(preference.planning_reminders),
                    _now_iso(),
                ),
            )

    def upsert_child(self, child: Child, *, created_at: datetime | None = None) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO children (
                    id, user_id, name, is_born, due_date, date_of_birth, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    is_born = excluded.is_born,
                    due_date = excluded.due_date,
                    date_of_birth = excluded.date_of_birth
                """,
                (
                    child.id,
                    child.subscriber_id,
                    child.name,
                    int(child.is_born),
                    child.due_date,
                    child.date_of_birth,
                    _to_iso(created_at) if created_at is not None else _now_iso(),
                ),
            )

    def upsert_resource(
        self,
        resource_id: str,
        *,
        title: str,
        slug: str,
        summary: str | None,
        created_at: datetime,
        status: str = "published",
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO resources (id, title, slug, summary, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    title = excluded.title,
                    slug = excluded.slug,
                    summary = excluded.summary,
                    status = excluded.status,
                    created_at = excluded.created_at
                """,
                (resource_id, title, slug, summary, status, _to_iso(created_at)),
            )

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout_seconds)
        except sqlite3.Error as exc:
            raise StoreError(f"Unable to open digest store at {self.db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except sqlite3.OperationalError as exc:
            conn.rollback()
            raise StoreError(f"Digest store query failed: {exc}") from exc
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()


def _preference_from_row(row: sqlite3.Row) -> NotificationPreference:
    raw_last_sent = row["last_email_sent_at"]
    return NotificationPreference(
        id=row["id"],
        subscriber_id=row["user_id"],
        email_enabled=bool(row["email_enabled"]),
        email_frequency=row["email_frequency"],
        preferred_day=int(row["preferred_day"]),
        preferred_hour=int(row["preferred_hour"]),
        last_email_sent_at=_parse_iso(raw_last_sent) if raw_last_sent else None,
        pregnancy_updates=bool(row["pregnancy_updates"]),
        new_resources=bool(row["new_resources"]),
        planning_reminders=bool(row["planning_reminders"]),
    )


def _to_iso(value: datetime) -> str:
    # Naive instants are taken as UTC so stored strings compare lexically.
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def _now_iso() -> str:
    return _to_iso(datetime.now(UTC))


def _parse_iso(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed
