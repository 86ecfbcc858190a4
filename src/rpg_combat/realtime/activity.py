"""Activity log shared by everyone at the table.

Every resolved action leaves a human-readable event. The row is stored
first, then a ``new_log`` notice goes out on the game's activity channel so
other clients can refresh.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rpg_combat.core.constants import NEW_LOG
from rpg_combat.core.logging import get_logger
from rpg_combat.realtime.bus import activity_channel


if TYPE_CHECKING:
    from rpg_combat.core.config import Settings
    from rpg_combat.models.events import ActivityEvent
    from rpg_combat.realtime.bus import MessageBus
    from rpg_combat.storage.database import ActivityRecord, Database

logger = get_logger(__name__)


class ActivityLog:
    """Append-only activity log with change notifications."""

    def __init__(
        self,
        database: Database,
        bus: MessageBus | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the log.

        Args:
            database: Store holding the activity rows.
            bus: Bus for ``new_log`` notices. Nothing is published without one.
            settings: Settings for the channel name.
        """
        if settings is None:
            from rpg_combat.core.config import get_settings

            settings = get_settings()
        self._db = database
        self._bus = bus
        self._settings = settings

    def record(self, game_id: str, event: ActivityEvent) -> ActivityRecord:
        """Store an event and announce it.

        A failed announcement is logged; the stored row stays.

        Returns:
            The stored record.
        """
        record = self._db.append_activity(game_id, event)
        logger.info("Activity recorded", game_id=game_id, event_type=event.type, log_id=record.id)

        if self._bus is not None:
            try:
                self._bus.publish(
                    activity_channel(game_id, self._settings),
                    NEW_LOG,
                    {"logId": record.id, "gameId": game_id},
                )
            except Exception:
                logger.exception("Activity notice not published", game_id=game_id, log_id=record.id)

        return record

    def recent(self, game_id: str, limit: int = 100) -> list[ActivityRecord]:
        """Get the latest events, oldest first."""
        return self._db.get_activity(game_id, limit)


__all__ = ["ActivityLog"]
