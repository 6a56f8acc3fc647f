"""Typed unit-of-work failures recorded by the digest orchestrator."""

from __future__ import annotations


class DigestRunAbortedError(RuntimeError):
    """Raised when a run cannot start because the bulk preference load failed."""


class DigestRunInProgressError(RuntimeError):
    """Raised when a run is triggered while another run is still active."""


class DigestUnitError(RuntimeError):
    """Failure scoped to one subscriber or one (subscriber, child) pair."""

    stage = "process"

    def __init__(
        self,
        *,
        subscriber_id: str,
        email: str | None = None,
        child_id: str | None = None,
        child_name: str | None = None,
        reason: str = "",
    ) -> None:
        self.subscriber_id = subscriber_id
        self.email = email
        self.child_id = child_id
        self.child_name = child_name
        self.reason = reason
        super().__init__(self.describe())

    def describe(self) -> str:
        if self.child_id is not None:
            target = f"child {self.child_name or self.child_id} of subscriber {self.subscriber_id}"
        else:
            target = f"subscriber {self.subscriber_id}"
        return _with_reason(f"Failed to process {target}", self.reason)

    def to_log_fields(self) -> dict[str, str | None]:
        return {
            "stage": self.stage,
            "subscriber_id": self.subscriber_id,
            "child_id": self.child_id,
            "reason": self.reason,
        }


class ContentLookupError(DigestUnitError):
    """A read from the data store failed while assembling content."""

    stage = "lookup"

    def __init__(self, *, what: str, **kwargs: str | None) -> None:
        self.what = what
        super().__init__(**kwargs)  # type: ignore[arg-type]

    def describe(self) -> str:
        target = f"subscriber {self.subscriber_id}"
        if self.child_id is not None:
            target += f" (child {self.child_name or self.child_id})"
        return _with_reason(f"Failed to fetch {self.what} for {target}", self.reason)


class RenderError(DigestUnitError):
    """The assembled payload could not be rendered into a valid email."""

    stage = "render"

    def describe(self) -> str:
        return _with_reason(
            f"Failed to render digest for child {self.child_name or self.child_id} "
            f"of subscriber {self.subscriber_id}",
            self.reason,
        )


class DispatchError(DigestUnitError):
    """The email transport rejected or timed out on a send."""

    stage = "dispatch"

    def describe(self) -> str:
        suffix = f" (child {self.child_name})" if self.child_name else ""
        return _with_reason(f"Failed to send email to {self.email}{suffix}", self.reason)


class PersistError(DigestUnitError):
    """The last-sent timestamp could not be written after a successful send."""

    stage = "persist"

    def __init__(self, *, preference_id: str, **kwargs: str | None) -> None:
        self.preference_id = preference_id
        super().__init__(**kwargs)  # type: ignore[arg-type]

    def describe(self) -> str:
        return _with_reason(
            f"Sent digest to {self.email} but failed to record send "
            f"for preference {self.preference_id}",
            self.reason,
        )


class UnitCancelledError(DigestUnitError):
    """The run was cancelled or timed out before this unit was processed."""

    stage = "cancelled"

    def describe(self) -> str:
        target = self.email or self.subscriber_id
        if self.child_id is not None:
            target += f" (child {self.child_name or self.child_id})"
        return _with_reason(f"Digest run cancelled before processing {target}", self.reason)


def _with_reason(message: str, reason: str) -> str:
    return f"{message}: {reason}" if reason else message
