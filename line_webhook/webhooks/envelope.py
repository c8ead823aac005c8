"""Webhook envelope models and decoding.

A LINE callback body is a JSON object with a ``destination`` (the bot's user
ID) and an ordered ``events`` list. Each event is tagged by ``type``; the
variants modelled here are follow, unfollow and message, and every other type
decodes as :class:`OtherEvent`. Only ``type`` is structurally required, every
other field tolerates absence so dispatch can degrade gracefully.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    ValidationError,
)

_KNOWN_EVENT_TYPES = frozenset({"follow", "unfollow", "message"})


class EnvelopeDecodeError(ValueError):
    """Raised when a request body is not a usable webhook envelope."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class _LineModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class Source(_LineModel):
    """Who triggered an event: a user, group or room."""

    type: str | None = None
    user_id: str | None = Field(default=None, alias="userId")
    group_id: str | None = Field(default=None, alias="groupId")
    room_id: str | None = Field(default=None, alias="roomId")


class DeliveryContext(_LineModel):
    is_redelivery: bool = Field(default=False, alias="isRedelivery")


class Message(_LineModel):
    id: str | None = None
    type: str | None = None
    text: str | None = None


class BaseEvent(_LineModel):
    """Fields shared by every event type."""

    type: str
    timestamp: int | None = None
    source: Source | None = None
    reply_token: str | None = Field(default=None, alias="replyToken")
    webhook_event_id: str | None = Field(default=None, alias="webhookEventId")
    mode: str | None = None
    delivery_context: DeliveryContext | None = Field(default=None, alias="deliveryContext")

    @property
    def user_id(self) -> str | None:
        return self.source.user_id if self.source else None

    @property
    def is_redelivery(self) -> bool:
        return bool(self.delivery_context and self.delivery_context.is_redelivery)


class FollowEvent(BaseEvent):
    type: Literal["follow"]


class UnfollowEvent(BaseEvent):
    type: Literal["unfollow"]


class MessageEvent(BaseEvent):
    type: Literal["message"]
    message: Message | None = None


class OtherEvent(BaseEvent):
    """Any event type without a dedicated variant (postback, join, beacon...)."""


def _event_tag(value: Any) -> str | None:
    if isinstance(value, dict):
        event_type = value.get("type")
    else:
        event_type = getattr(value, "type", None)
    if not isinstance(event_type, str):
        return None
    return event_type if event_type in _KNOWN_EVENT_TYPES else "other"


Event = Annotated[
    Union[
        Annotated[FollowEvent, Tag("follow")],
        Annotated[UnfollowEvent, Tag("unfollow")],
        Annotated[MessageEvent, Tag("message")],
        Annotated[OtherEvent, Tag("other")],
    ],
    Discriminator(_event_tag),
]


class WebhookEnvelope(_LineModel):
    """Top-level webhook payload; ``events`` keeps delivery order."""

    destination: str | None = None
    events: list[Event]


def decode_envelope(body: bytes) -> WebhookEnvelope:
    """Parse a raw request body into a :class:`WebhookEnvelope`.

    Raises:
        EnvelopeDecodeError: on malformed JSON (including nesting too deep to
            parse and integers past the interpreter's digit limit), a non-object
            payload, a missing or non-list ``events`` key, an event without a
            string ``type``, or a field of the wrong type in any event.
    """
    try:
        payload = json.loads(body)
    except (ValueError, RecursionError) as exc:
        # JSONDecodeError and UnicodeDecodeError are ValueErrors
        raise EnvelopeDecodeError(f"invalid JSON: {type(exc).__name__}: {exc}") from exc

    if not isinstance(payload, dict):
        raise EnvelopeDecodeError(f"expected a JSON object, got {type(payload).__name__}")
    if "events" not in payload:
        raise EnvelopeDecodeError("missing required key 'events'")

    try:
        return WebhookEnvelope.model_validate(payload)
    except ValidationError as exc:
        raise EnvelopeDecodeError(f"invalid envelope: {exc.error_count()} error(s): {exc.errors()[0]['msg']}") from exc
    except RecursionError as exc:
        raise EnvelopeDecodeError("invalid envelope: nesting too deep") from exc
