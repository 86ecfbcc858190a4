"""Activity log events emitted after resolved actions.

Each event kind carries a closed set of fields and a human-readable
``message`` for display. The ``type`` field discriminates the union, so a
stored row can be validated back into the right class.

Example:
    >>> event = ACTIVITY_EVENT_ADAPTER.validate_python(row["metadata"])
    >>> isinstance(event, CombatDamageEvent)
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from rpg_combat.models.enums import CombatantStatus, Side


class _ActivityEventBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    message: str
    actor_id: str | None = None


class CombatDamageEvent(_ActivityEventBase):
    """Damage dealt to one target."""

    type: Literal["combat_damage"] = "combat_damage"
    actor_name: str
    action_name: str
    target_name: str
    damage: int
    new_hp: int
    max_hp: int


class CombatHealingEvent(_ActivityEventBase):
    """Healing applied to one target."""

    type: Literal["combat_healing"] = "combat_healing"
    actor_name: str
    target_name: str
    healing: int
    new_hp: int
    max_hp: int


class CombatXpEvent(_ActivityEventBase):
    """Experience awarded for defeating an NPC."""

    type: Literal["combat_xp"] = "combat_xp"
    actor_name: str
    target_name: str
    xp_gained: float
    leveled_up: bool
    new_level: int


class HitConfirmedEvent(_ActivityEventBase):
    """The master's hit or miss ruling on an attack."""

    type: Literal["combat_hit_confirmed"] = "combat_hit_confirmed"
    actor_name: str
    action_name: str
    target_names: list[str]
    hit: bool


class StatusChangedEvent(_ActivityEventBase):
    """A master quick action (resurrect, kill) changed a combatant."""

    type: Literal["status_changed"] = "status_changed"
    target_name: str
    new_hp: int
    new_status: CombatantStatus


class EncounterFinishedEvent(_ActivityEventBase):
    """An encounter ended, manually or because one side was wiped."""

    type: Literal["encounter_finished"] = "encounter_finished"
    encounter_id: str
    winner: Side | None = None


ActivityEvent = Annotated[
    Union[
        CombatDamageEvent,
        CombatHealingEvent,
        CombatXpEvent,
        HitConfirmedEvent,
        StatusChangedEvent,
        EncounterFinishedEvent,
    ],
    Field(discriminator="type"),
]

ACTIVITY_EVENT_ADAPTER: TypeAdapter[ActivityEvent] = TypeAdapter(ActivityEvent)


__all__ = [
    "CombatDamageEvent",
    "CombatHealingEvent",
    "CombatXpEvent",
    "HitConfirmedEvent",
    "StatusChangedEvent",
    "EncounterFinishedEvent",
    "ActivityEvent",
    "ACTIVITY_EVENT_ADAPTER",
]
