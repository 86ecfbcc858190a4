"""Realtime coordination between clients of one game.

Submodules:
    bus: Per-game publish/subscribe channels.
    confirmation: The master hit-confirmation handshake.
    activity: The shared activity log.
"""

from __future__ import annotations

from rpg_combat.realtime.activity import ActivityLog
from rpg_combat.realtime.bus import (
    InMemoryBus,
    MessageBus,
    activity_channel,
    combat_channel,
)
from rpg_combat.realtime.confirmation import (
    ConfirmationRequester,
    MasterConfirmationDesk,
    TrackedRequest,
)


__all__ = [
    "MessageBus",
    "InMemoryBus",
    "combat_channel",
    "activity_channel",
    "ConfirmationRequester",
    "MasterConfirmationDesk",
    "TrackedRequest",
    "ActivityLog",
]
