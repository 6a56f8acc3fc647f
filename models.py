"""Core typed models used across the digest pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from services.errors import DigestUnitError


class EmailFrequency(StrEnum):
    """Digest cadence chosen by a subscriber."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    OFF = "off"

    @classmethod
    def parse(cls, raw: str | None) -> EmailFrequency:
        """Map a stored value to a cadence, treating unknown values as off."""
        if raw is None:
            return cls.OFF
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.OFF


@dataclass(frozen=True)
class Subscriber:
    """Identity and contact address of a digest recipient."""

    id: str
    email: str
    display_name: str | None = None

    @property
    def label(self) -> str:
        if self.display_name and self.display_name.strip():
            return self.display_name.strip()
        return self.email.split("@", 1)[0]


@dataclass(frozen=True)
class NotificationPreference:
    """Stored notification settings for one subscriber.

    ``preferred_day`` follows the stored settings convention where
    0 is Sunday and 6 is Saturday.
    """

    id: str
    subscriber_id: str
    email_enabled: bool
    email_frequency: str
    preferred_day: int = 1
    preferred_hour: int = 9
    last_email_sent_at: datetime | None = None
    pregnancy_updates: bool = True
    new_resources: bool = True
    planning_reminders: bool = True

    @property
    def frequency(self) -> EmailFrequency:
        return EmailFrequency.parse(self.email_frequency)


@dataclass(frozen=True)
class EligiblePreference:
    """Preference row joined to its subscriber identity."""

    preference: NotificationPreference
    subscriber: Subscriber


@dataclass(frozen=True)
class Child:
    """A child belonging to one subscriber; only prenatal children get digests."""

    id: str
    subscriber_id: str
    name: str
    is_born: bool
    due_date: str | None = None
    date_of_birth: str | None = None


@dataclass(frozen=True)
class SizeComparison:
    """Relatable size comparison for a gestational week."""

    week: int
    object: str
    emoji: str
    length_cm: float
    weight_description: str


@dataclass(frozen=True)
class ProgressFact:
    """Countdown facts for a prenatal child."""

    gestational_week: int
    weeks_remaining: int
    days_remaining: int
    trimester: int
    size: SizeComparison | None
    encouragement: str | None
    milestone: str | None = None


@dataclass(frozen=True)
class BodyChangeFact:
    """What is happening with the parent's body this week."""

    week: int
    body: str | None
    tip: str | None


@dataclass(frozen=True)
class PlanningTip:
    """Planning tip keyed by gestational week."""

    week: int
    category: str
    tip: str


@dataclass(frozen=True)
class NewResourceSummary:
    """Published resource surfaced in the digest."""

    title: str
    slug: str
    summary: str
    url: str
    published_at: datetime | None = None


@dataclass(frozen=True)
class DigestPayload:
    """Renderer-ready content for one (subscriber, child) pair."""

    subscriber_id: str
    child_id: str
    display_name: str
    child_name: str
    progress: ProgressFact | None
    body_change: BodyChangeFact | None
    planning_tips: tuple[PlanningTip, ...]
    new_resources: tuple[NewResourceSummary, ...]
    dashboard_url: str
    settings_url: str

    def to_template_context(self) -> dict[str, Any]:
        """Flatten the payload into the JSON-like shape used by the template."""
        progress: dict[str, Any] | None = None
        if self.progress is not None:
            size = self.progress.size
            progress = {
                "gestational_week": self.progress.gestational_week,
                "weeks_remaining": self.progress.weeks_remaining,
                "trimester": self.progress.trimester,
                "encouragement": self.progress.encouragement,
                "milestone": self.progress.milestone,
                "size": (
                    {"object": size.object, "emoji": size.emoji} if size is not None else None
                ),
            }

        body_change: dict[str, Any] | None = None
        if self.body_change is not None:
            body_change = {"body": self.body_change.body, "tip": self.body_change.tip}

        return {
            "display_name": self.display_name,
            "child_name": self.child_name,
            "progress": progress,
            "body_change": body_change,
            "planning_tips": [
                {"week": tip.week, "category": tip.category, "tip": tip.tip}
                for tip in self.planning_tips
            ],
            "new_resources": [
                {
                    "title": resource.title,
                    "slug": resource.slug,
                    "summary": resource.summary,
                    "url": resource.url,
                }
                for resource in self.new_resources
            ],
            "dashboard_url": self.dashboard_url,
            "settings_url": self.settings_url,
        }


@dataclass(frozen=True)
class RenderedMessage:
    """Transport-ready email."""

    subject: str
    html: str


@dataclass(frozen=True)
class RunResult:
    """Summary of one digest run, returned to both trigger paths."""

    sent_count: int
    error_count: int
    errors: tuple[str, ...]
    skipped_count: int = 0
    failures: tuple[DigestUnitError, ...] = field(default=(), repr=False, compare=False)

    def as_dict(self) -> dict[str, Any]:
        return {
            "sentCount": self.sent_count,
            "errorCount": self.error_count,
            "errors": list(self.errors),
        }
