"""Persistent storage for encounters, roster and logs."""

from __future__ import annotations

from rpg_combat.storage.database import ActivityRecord, Database, get_database


__all__ = [
    "ActivityRecord",
    "Database",
    "get_database",
]
