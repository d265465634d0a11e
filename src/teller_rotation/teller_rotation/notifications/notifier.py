from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol

logger = logging.getLogger(__name__)


class EventNotifier(Protocol):
    """Outbound channel for schedule events (e.g. a websocket broadcaster).

    Fire-and-forget: the engine never consumes a return value.
    """

    def emit(self, event_name: str, payload: Mapping[str, Any]) -> None:
        raise NotImplementedError


class NullNotifier(EventNotifier):
    def emit(self, event_name: str, payload: Mapping[str, Any]) -> None:
        return None


class LoggingNotifier(EventNotifier):
    """Default notifier when no real-time transport is wired in."""

    def __init__(self, level: int = logging.INFO):
        self._level = level

    def emit(self, event_name: str, payload: Mapping[str, Any]) -> None:
        logger.log(self._level, "event=%s payload=%s", event_name, dict(payload))


def safe_emit(notifier: EventNotifier, event_name: str, payload: Mapping[str, Any]) -> None:
    """Deliver an event without letting a notifier failure reach the caller."""

    try:
        notifier.emit(event_name, payload)
    except Exception:
        logger.exception("Notifier failed for event %s", event_name)
