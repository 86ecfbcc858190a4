"""Per-game publish/subscribe channels.

Delivery is best effort: a message reaches the handlers subscribed at the
moment it is published, at most once, with no acknowledgement and no retry.
"""

from __future__ import annotations

import json
import threading
from collections import deque
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol

from rpg_combat.core.constants import BUS_HISTORY_LIMIT
from rpg_combat.core.exceptions import RealtimeError
from rpg_combat.core.logging import get_logger


if TYPE_CHECKING:
    from rpg_combat.core.config import Settings

logger = get_logger(__name__)

Handler = Callable[[dict[str, Any]], None]
Unsubscribe = Callable[[], None]


class MessageBus(Protocol):
    """A named-channel broadcast service."""

    def publish(self, channel: str, event: str, payload: dict[str, Any]) -> None:
        """Send a JSON payload to every current subscriber of channel/event."""
        ...

    def subscribe(self, channel: str, event: str, handler: Handler) -> Unsubscribe:
        """Register a handler and return a function that removes it."""
        ...


class InMemoryBus:
    """Synchronous in-process bus.

    Payloads are serialized to JSON on publish and each handler receives its
    own decoded copy, as it would from a network transport. A failing
    handler is logged and does not stop delivery to the others. The most
    recent ``history_limit`` messages are kept in ``history``.
    """

    def __init__(self, history_limit: int = BUS_HISTORY_LIMIT) -> None:
        self._lock = threading.RLock()
        self._handlers: dict[tuple[str, str], list[Handler]] = {}
        self.history: deque[tuple[str, str, dict[str, Any]]] = deque(maxlen=history_limit)

    def publish(self, channel: str, event: str, payload: dict[str, Any]) -> None:
        """Deliver a payload to the current subscribers.

        Raises:
            RealtimeError: If the payload is not JSON serializable.
        """
        try:
            wire = json.dumps(payload)
        except (TypeError, ValueError) as exc:
            raise RealtimeError(
                "Payload is not JSON serializable",
                details={"channel": channel, "event": event},
            ) from exc

        with self._lock:
            self.history.append((channel, event, json.loads(wire)))
            handlers = list(self._handlers.get((channel, event), ()))

        logger.debug("Message published", channel=channel, event_name=event, subscribers=len(handlers))

        for handler in handlers:
            try:
                handler(json.loads(wire))
            except Exception:
                logger.exception("Subscriber failed", channel=channel, event_name=event)

    def subscribe(self, channel: str, event: str, handler: Handler) -> Unsubscribe:
        """Register a handler for one event on one channel."""
        key = (channel, event)
        with self._lock:
            self._handlers.setdefault(key, []).append(handler)

        def unsubscribe() -> None:
            with self._lock:
                handlers = self._handlers.get(key, [])
                if handler in handlers:
                    handlers.remove(handler)

        return unsubscribe

    def subscriber_count(self, channel: str, event: str) -> int:
        """Count the handlers registered for channel/event."""
        with self._lock:
            return len(self._handlers.get((channel, event), ()))


def combat_channel(game_id: str, settings: Settings | None = None) -> str:
    """Name of a game's combat channel."""
    if settings is None:
        from rpg_combat.core.config import get_settings

        settings = get_settings()
    return settings.realtime.channel_template.format(game_id=game_id)


def activity_channel(game_id: str, settings: Settings | None = None) -> str:
    """Name of a game's activity (chat/log) channel."""
    if settings is None:
        from rpg_combat.core.config import get_settings

        settings = get_settings()
    return settings.realtime.activity_channel_template.format(game_id=game_id)


__all__ = [
    "Handler",
    "Unsubscribe",
    "MessageBus",
    "InMemoryBus",
    "combat_channel",
    "activity_channel",
]
