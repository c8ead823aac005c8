"""Webhook event dispatcher: turns decoded events into operator signals.

Each event maps to exactly one :class:`Signal`, reported in delivery order.
Absent fields (no userId for a group source, no timestamp) are carried as
``None`` and rendered with :data:`ABSENT`; they never fault dispatch.

Contract:
- Signals are reported in the same order as the events in the envelope
- A failing reporter is logged and does not stop later events
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Iterable

from line_webhook.webhooks.envelope import (
    BaseEvent,
    FollowEvent,
    MessageEvent,
    UnfollowEvent,
)

if TYPE_CHECKING:
    from line_webhook.events import Reporter

logger = logging.getLogger(__name__)

ABSENT = "(absent)"


class SignalKind(StrEnum):
    """What an event means for the operator."""

    NEW_SUBSCRIBER = "new_subscriber"
    UNSUBSCRIBED = "unsubscribed"
    MESSAGE_RECEIVED = "message_received"
    UNHANDLED = "unhandled"


@dataclass(frozen=True)
class Signal:
    """Normalized report for one webhook event."""

    kind: SignalKind
    event_type: str
    user_id: str | None = None
    occurred_at: datetime | None = None
    source: dict[str, Any] | None = None
    reply_token: str | None = None
    message_type: str | None = None
    message_text: str | None = None
    is_redelivery: bool = False

    @property
    def user_label(self) -> str:
        return self.user_id if self.user_id is not None else ABSENT

    @property
    def occurred_at_iso(self) -> str:
        """ISO-8601 instant with millisecond precision, e.g. 2023-11-14T22:13:20.000Z."""
        if self.occurred_at is None:
            return ABSENT
        return self.occurred_at.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": str(self.kind),
            "event_type": self.event_type,
            "user_id": self.user_id,
            "occurred_at": self.occurred_at_iso if self.occurred_at else None,
            "source": self.source,
            "reply_token": self.reply_token,
            "message_type": self.message_type,
            "message_text": self.message_text,
            "is_redelivery": self.is_redelivery,
        }


def _to_instant(timestamp: int | None) -> datetime | None:
    """Convert epoch milliseconds to an aware UTC datetime."""
    if timestamp is None:
        return None
    try:
        return datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        logger.warning("Event timestamp out of range: %s", timestamp)
        return None


def _source_mapping(event: BaseEvent) -> dict[str, Any] | None:
    if event.source is None:
        return None
    return event.source.model_dump(by_alias=True, exclude_none=True)


def build_signal(event: BaseEvent) -> Signal:
    """Extract the fields an event's type guarantees into a :class:`Signal`."""
    common = {
        "event_type": event.type,
        "occurred_at": _to_instant(event.timestamp),
        "reply_token": event.reply_token,
        "is_redelivery": event.is_redelivery,
    }

    if isinstance(event, FollowEvent):
        return Signal(kind=SignalKind.NEW_SUBSCRIBER, user_id=event.user_id, **common)
    if isinstance(event, UnfollowEvent):
        return Signal(kind=SignalKind.UNSUBSCRIBED, user_id=event.user_id, **common)
    if isinstance(event, MessageEvent):
        message = event.message
        return Signal(
            kind=SignalKind.MESSAGE_RECEIVED,
            user_id=event.user_id,
            message_type=message.type if message else None,
            message_text=message.text if message else None,
            **common,
        )
    return Signal(kind=SignalKind.UNHANDLED, source=_source_mapping(event), **common)


def dispatch_events(events: Iterable[BaseEvent], reporter: Reporter) -> list[Signal]:
    """Report one signal per event, strictly in input order.

    Returns:
        The signals, in the order they were reported.
    """
    signals: list[Signal] = []
    for event in events:
        signal = build_signal(event)
        try:
            reporter.report(signal)
        except Exception:
            logger.exception("Reporter failed for %s event", signal.event_type)
        signals.append(signal)
    return signals
