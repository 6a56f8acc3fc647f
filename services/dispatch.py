"""Send rendered digests and record the send on the preference row."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from models import Child, EligiblePreference, RenderedMessage
from services.errors import DispatchError, PersistError
from services.resilience import ResiliencePolicy
from services.sender import ResendMailer, SendResult
from services.store import DigestStore


class StateUpdater:
    """Persist ``last_email_sent_at`` after a successful send."""

    def __init__(self, *, store: DigestStore, policy: ResiliencePolicy) -> None:
        self._store = store
        self._policy = policy

    def mark_sent(self, preference_id: str, now: datetime) -> None:
        self._policy.execute(lambda: self._store.mark_email_sent(preference_id, now))


@dataclass(frozen=True)
class DeliveryOutcome:
    """A completed send, plus a persistence failure if the timestamp write failed."""

    send_result: SendResult
    persist_error: PersistError | None = None


class DigestDispatcher:
    """Deliver one rendered digest, then advance the subscriber's last-sent time."""

    def __init__(self, *, mailer: ResendMailer, state_updater: StateUpdater) -> None:
        self._mailer = mailer
        self._state_updater = state_updater

    def deliver(
        self,
        eligible: EligiblePreference,
        child: Child,
        message: RenderedMessage,
        now: datetime,
    ) -> DeliveryOutcome:
        """Send ``message``; raises DispatchError when the transport does not accept it.

        The email is not recalled when the state write fails; that failure is
        returned on the outcome instead.
        """
        subscriber = eligible.subscriber
        try:
            result = self._mailer.send_email(
                to=subscriber.email,
                subject=message.subject,
                html=message.html,
            )
        except Exception as exc:  # noqa: BLE001
            raise DispatchError(
                subscriber_id=subscriber.id,
                email=subscriber.email,
                child_id=child.id,
                child_name=child.name,
                reason=str(exc),
            ) from exc

        try:
            self._state_updater.mark_sent(eligible.preference.id, now)
        except Exception as exc:  # noqa: BLE001
            return DeliveryOutcome(
                send_result=result,
                persist_error=PersistError(
                    preference_id=eligible.preference.id,
                    subscriber_id=subscriber.id,
                    email=subscriber.email,
                    child_id=child.id,
                    child_name=child.name,
                    reason=str(exc),
                ),
            )
        return DeliveryOutcome(send_result=result)
