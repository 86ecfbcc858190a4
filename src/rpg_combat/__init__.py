"""RPG Combat - turn and initiative engine for tabletop sessions.

Runs the combat part of a game table shared by several clients:

- Encounters go setup -> active -> finished, one open encounter per game
- Initiative is a d20 per participant; ties go to whoever joined first
- Turns advance until everyone has acted, then a new round starts
- Attacks wait for the master to rule hit or miss before damage lands
- An encounter finishes on its own once a side is wiped out

Example:
    >>> from rpg_combat import CombatSession, ParticipantType
    >>>
    >>> session = CombatSession()
    >>> encounter = session.start_encounter("game-1", created_by="master")
    >>> entry = session.join(encounter.id, ParticipantType.PLAYER, "player-1")
    >>> session.roll_initiative_for(entry.id)
    >>> session.begin_combat(encounter.id)

Modules:
    core: Configuration, logging, and base exceptions.
    models: Pydantic V2 schemas for encounters, combat and messages.
    engine: Dice, encounters, turns, resolution and the session facade.
    realtime: Channels, hit confirmation and the activity log.
    storage: SQLite persistence.
"""

from __future__ import annotations

# Core
from rpg_combat.core.config import Settings, get_settings
from rpg_combat.core.exceptions import RpgCombatError
from rpg_combat.core.logging import configure_logging, get_logger

# Models
from rpg_combat.models import (
    CombatAction,
    CombatTarget,
    Encounter,
    EncounterStatus,
    InitiativeEntry,
    ParticipantType,
    TargetRef,
)

# Engine
from rpg_combat.engine import (
    CombatResolver,
    CombatSession,
    DiceRoller,
    EncounterManager,
    TurnSequencer,
)

# Realtime
from rpg_combat.realtime import InMemoryBus, MessageBus


__version__ = "0.1.0"
__all__ = [
    # Version info
    "__version__",
    # Core
    "RpgCombatError",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Models
    "CombatAction",
    "CombatTarget",
    "Encounter",
    "EncounterStatus",
    "InitiativeEntry",
    "ParticipantType",
    "TargetRef",
    # Engine
    "CombatResolver",
    "CombatSession",
    "DiceRoller",
    "EncounterManager",
    "TurnSequencer",
    # Realtime
    "InMemoryBus",
    "MessageBus",
]
