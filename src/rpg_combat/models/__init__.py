"""Pydantic V2 data models for the RPG combat engine.

Submodules:
    enums: Status and type enumerations.
    encounter: Encounter and InitiativeEntry records.
    combat: Combat actions, roster combatants, targets and the combat log.
    messages: Hit-confirmation wire payloads.
    events: Activity log event variants.
"""

from __future__ import annotations

from rpg_combat.models.combat import (
    Actor,
    CombatAction,
    Combatant,
    CombatLogEntry,
    CombatTarget,
    DamageDealt,
    TargetRef,
)
from rpg_combat.models.encounter import Encounter, InitiativeEntry
from rpg_combat.models.enums import (
    CombatantStatus,
    ConfirmationState,
    EncounterStatus,
    ParticipantType,
    Side,
    TargetType,
)
from rpg_combat.models.events import (
    ACTIVITY_EVENT_ADAPTER,
    ActivityEvent,
    CombatDamageEvent,
    CombatHealingEvent,
    CombatXpEvent,
    EncounterFinishedEvent,
    HitConfirmedEvent,
    StatusChangedEvent,
)
from rpg_combat.models.messages import CombatHitConfirmation, PendingCombatAction


__all__ = [
    # Enums
    "EncounterStatus",
    "ParticipantType",
    "TargetType",
    "CombatantStatus",
    "ConfirmationState",
    "Side",
    # Encounter
    "Encounter",
    "InitiativeEntry",
    # Combat
    "CombatAction",
    "TargetRef",
    "Actor",
    "Combatant",
    "CombatTarget",
    "DamageDealt",
    "CombatLogEntry",
    # Messages
    "PendingCombatAction",
    "CombatHitConfirmation",
    # Events
    "ActivityEvent",
    "ACTIVITY_EVENT_ADAPTER",
    "CombatDamageEvent",
    "CombatHealingEvent",
    "CombatXpEvent",
    "HitConfirmedEvent",
    "StatusChangedEvent",
    "EncounterFinishedEvent",
]
