"""Enumeration types for the RPG combat engine."""

from __future__ import annotations

from enum import StrEnum


class EncounterStatus(StrEnum):
    """Encounter lifecycle states.

    ``setup -> active -> finished``; a setup encounter may also be finished
    directly, which acts as a cancel. ``finished`` is terminal.
    """

    SETUP = "setup"
    ACTIVE = "active"
    FINISHED = "finished"

    @property
    def is_open(self) -> bool:
        """Whether the encounter still counts as the game's current one.

        Returns:
            True for setup and active encounters.
        """
        return self is not EncounterStatus.FINISHED


class ParticipantType(StrEnum):
    """Which roster an initiative entry points into."""

    PLAYER = "player"
    NPC = "npc"


class TargetType(StrEnum):
    """How many targets a combat action may hit."""

    SINGLE = "single"
    MULTIPLE = "multiple"


class CombatantStatus(StrEnum):
    """Roster status of a player or NPC."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    DEAD = "dead"


class ConfirmationState(StrEnum):
    """Lifecycle of a hit confirmation request on the requesting client."""

    PENDING = "pending"
    HIT = "hit"
    MISSED = "missed"
    EXPIRED = "expired"


class Side(StrEnum):
    """The two sides of an encounter."""

    PLAYERS = "players"
    NPCS = "npcs"


__all__ = [
    "EncounterStatus",
    "ParticipantType",
    "TargetType",
    "CombatantStatus",
    "ConfirmationState",
    "Side",
]
