"""Signal reporting for the operator.

Provides:
- Reporter: the sink protocol the dispatcher reports into
- LoggingReporter: writes each signal to the operator log
"""

from __future__ import annotations

import logging
from typing import Protocol

from line_webhook.webhooks.dispatcher import ABSENT, Signal, SignalKind

logger = logging.getLogger(__name__)


class Reporter(Protocol):
    def report(self, signal: Signal) -> None: ...


class LoggingReporter:
    """Operator console output, one block per event."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def report(self, signal: Signal) -> None:
        self._log.info(
            "Event received: type=%s timestamp=%s%s",
            signal.event_type,
            signal.occurred_at_iso,
            " (redelivery)" if signal.is_redelivery else "",
        )
        if signal.kind is SignalKind.NEW_SUBSCRIBER:
            self._log.info("New subscriber: user_id=%s", signal.user_label)
            if signal.user_id is not None:
                self._log.info("To notify this user, set LINE_USER_ID=%s in .env", signal.user_id)
        elif signal.kind is SignalKind.UNSUBSCRIBED:
            self._log.info("Unsubscribed (blocked): user_id=%s", signal.user_label)
        elif signal.kind is SignalKind.MESSAGE_RECEIVED:
            self._log.info(
                "Message received: user_id=%s message_type=%s",
                signal.user_label,
                signal.message_type or ABSENT,
            )
        else:
            self._log.info("Unhandled event: source=%s", signal.source)

