"""Stage event model and the envelopes pushed to observers.

A ``StageEvent`` is one observable transition of one request. It is
frozen on construction; the same instance may be serialized into many
observer streams but is never mutated after broadcast.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from stagewire.constants import EnvelopeType, StageStatus


class InvalidStageStatus(ValueError):
    """Raised for a status outside the five recognized values."""


def utc_timestamp() -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    return (
        datetime.now(UTC)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


@dataclass(frozen=True)
class StageEvent:
    """Typed event emitted at each pipeline transition."""

    request_id: str
    stage: str
    message: str
    timestamp: str
    status: StageStatus

    @property
    def is_final(self) -> bool:
        return self.status == StageStatus.FINAL

    def to_dict(self) -> dict[str, str]:
        return {
            "requestId": self.request_id,
            "stage": self.stage,
            "message": self.message,
            "timestamp": self.timestamp,
            "status": str(self.status),
        }


def create_stage_event(
    request_id: str,
    stage: str,
    message: str,
    status: StageStatus | str,
) -> StageEvent:
    """Build a StageEvent stamped with the current time."""
    try:
        parsed = StageStatus(status)
    except ValueError:
        raise InvalidStageStatus(
            f"unknown stage status {status!r}; expected one of "
            f"{', '.join(s.value for s in StageStatus)}"
        ) from None
    return StageEvent(
        request_id=request_id,
        stage=str(stage),
        message=message,
        timestamp=utc_timestamp(),
        status=parsed,
    )


def stage_update_envelope(event: StageEvent) -> dict[str, Any]:
    """Wrap *event* for the observer channel.

    ``id`` duplicates ``requestId`` for browser observers that read
    the request identifier under that name.
    """
    return {
        "type": EnvelopeType.STAGE_UPDATE.value,
        "id": event.request_id,
        **event.to_dict(),
    }


def connected_envelope(message: str) -> dict[str, Any]:
    """Handshake frame sent once when an observer subscribes."""
    return {"type": EnvelopeType.CONNECTED.value, "message": message}
