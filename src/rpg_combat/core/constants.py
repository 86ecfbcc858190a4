"""Application-wide constants for the RPG combat engine."""

from __future__ import annotations

# =============================================================================
# Dice
# =============================================================================

VALID_DIE_SIZES = (4, 6, 8, 12, 20)
"""Die sizes a combat action may use."""

CRITICAL_DIE = 20
"""Only this die size produces critical/fumble tags."""

INITIATIVE_DIE = 20
"""Die rolled for initiative."""

DEFAULT_CRITICAL_MULTIPLIER = 2
"""Damage multiplier applied to a critical roll."""

# =============================================================================
# Combat
# =============================================================================

DEFAULT_COMBAT_LOG_LIMIT = 50
"""Number of combat log entries returned for history display."""

HEALING_ACTION_NAMES = frozenset({"cura", "heal", "healing"})
"""Action names treated as healing when the action has no explicit flag."""

# =============================================================================
# Experience (percentage of a level)
# =============================================================================

XP_EQUAL_LEVEL = 5.0
"""XP gained for defeating an NPC of the same level."""

XP_HIGHER_LEVEL = 10.0
"""XP gained for defeating an NPC of a higher level."""

XP_LEVEL_THRESHOLD = 100.0
"""XP percentage at which a character levels up."""

# =============================================================================
# Realtime
# =============================================================================

COMBAT_ACTION_REQUESTED = "combat_action_requested"
"""Event published by the acting client to ask the master for a hit ruling."""

COMBAT_HIT_CONFIRMED = "combat_hit_confirmed"
"""Event published by the master's client with the hit ruling."""

NEW_LOG = "new_log"
"""Event published on the activity channel after an activity row is stored."""

BUS_HISTORY_LIMIT = 1000
"""Published messages kept by the in-process bus."""

SETTLED_REQUEST_LIMIT = 100
"""Missed or expired confirmation requests kept for lookup."""


__all__ = [
    "VALID_DIE_SIZES",
    "CRITICAL_DIE",
    "INITIATIVE_DIE",
    "DEFAULT_CRITICAL_MULTIPLIER",
    "DEFAULT_COMBAT_LOG_LIMIT",
    "HEALING_ACTION_NAMES",
    "XP_EQUAL_LEVEL",
    "XP_HIGHER_LEVEL",
    "XP_LEVEL_THRESHOLD",
    "COMBAT_ACTION_REQUESTED",
    "COMBAT_HIT_CONFIRMED",
    "NEW_LOG",
    "BUS_HISTORY_LIMIT",
    "SETTLED_REQUEST_LIMIT",
]
