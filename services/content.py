"""Per-child digest content assembly from store lookups and weekly facts."""

from __future__ import annotations

from datetime import datetime, timedelta

from models import (
    Child,
    DigestPayload,
    NewResourceSummary,
    NotificationPreference,
    Subscriber,
)
from services.errors import ContentLookupError
from services.pregnancy import (
    body_change_for_week,
    compute_progress,
    parse_due_date,
    representative_tip,
)
from services.preferences import to_local
from services.resilience import ResiliencePolicy
from services.store import DigestStore

SETTINGS_PATH = "/settings/notifications"


class ContentAggregator:
    """Build renderer-ready payloads for one (subscriber, child) pair at a time."""

    def __init__(
        self,
        *,
        store: DigestStore,
        lookup_policy: ResiliencePolicy,
        app_url: str,
        timezone: str = "UTC",
        resource_limit: int = 3,
        lookback_days: int = 7,
    ) -> None:
        self._store = store
        self._lookup_policy = lookup_policy
        self._app_url = app_url.rstrip("/")
        self._timezone = timezone
        self._resource_limit = resource_limit
        self._lookback = timedelta(days=lookback_days)

    def list_children(self, subscriber: Subscriber) -> list[Child]:
        """Load a subscriber's children, raising a subscriber-scoped lookup error."""
        try:
            return self._lookup_policy.execute(lambda: self._store.list_children(subscriber.id))
        except Exception as exc:  # noqa: BLE001
            raise ContentLookupError(
                what="children",
                subscriber_id=subscriber.id,
                email=subscriber.email,
                reason=str(exc),
            ) from exc

    def build_payload(
        self,
        subscriber: Subscriber,
        child: Child,
        pref: NotificationPreference,
        now: datetime,
    ) -> DigestPayload | None:
        """Return the digest payload, or None when there is nothing to send for this child."""
        if child.is_born:
            return None
        due_date = parse_due_date(child.due_date)
        if due_date is None:
            return None

        progress = compute_progress(due_date, to_local(now, self._timezone).date())
        if progress is None:
            return None

        week = progress.gestational_week
        body_change = body_change_for_week(week) if pref.pregnancy_updates else None
        tip = representative_tip(week) if pref.planning_reminders else None
        resources = (
            self._new_resources(subscriber, child, pref, now) if pref.new_resources else ()
        )

        return DigestPayload(
            subscriber_id=subscriber.id,
            child_id=child.id,
            display_name=subscriber.label,
            child_name=child.name,
            progress=progress,
            body_change=body_change,
            planning_tips=(tip,) if tip is not None else (),
            new_resources=resources,
            dashboard_url=self._app_url,
            settings_url=f"{self._app_url}{SETTINGS_PATH}",
        )

    def resource_window_start(self, pref: NotificationPreference, now: datetime) -> datetime:
        """Later of the last send and the lookback floor."""
        floor = to_local(now, "UTC") - self._lookback
        last_sent = pref.last_email_sent_at
        if last_sent is None:
            return floor
        return max(to_local(last_sent, "UTC"), floor)

    def _new_resources(
        self,
        subscriber: Subscriber,
        child: Child,
        pref: NotificationPreference,
        now: datetime,
    ) -> tuple[NewResourceSummary, ...]:
        since = self.resource_window_start(pref, now)
        try:
            rows = self._lookup_policy.execute(
                lambda: self._store.list_published_resources_since(since, self._resource_limit)
            )
        except Exception as exc:  # noqa: BLE001
            raise ContentLookupError(
                what="new resources",
                subscriber_id=subscriber.id,
                email=subscriber.email,
                child_id=child.id,
                child_name=child.name,
                reason=str(exc),
            ) from exc

        return tuple(
            NewResourceSummary(
                title=str(row["title"]),
                slug=str(row["slug"]),
                summary=str(row.get("summary") or ""),
                url=f"{self._app_url}/resources/{row['slug']}",
                published_at=row.get("created_at"),  # type: ignore[arg-type]
            )
            for row in rows[: self._resource_limit]
        )
