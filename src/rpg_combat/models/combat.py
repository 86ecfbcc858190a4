"""Pydantic V2 schemas for combat resolution.

Defines the master-authored combat actions, the roster view of combatants
that resolution reads and writes, and the append-only combat log entry.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rpg_combat.core.constants import HEALING_ACTION_NAMES, VALID_DIE_SIZES
from rpg_combat.models.enums import CombatantStatus, ParticipantType, TargetType


class CombatAction(BaseModel):
    """A move definition created per game by the master.

    Attributes:
        id: Action identifier (None for ad-hoc actions).
        game_id: Owning game.
        name: Display name.
        dice_type: Die size, one of 4, 6, 8, 12, 20.
        dice_amount: Number of dice rolled.
        modifier: Flat modifier added to the roll.
        damage_type: Free-form damage type label.
        target_type: Single or multiple targets.
        description: Optional description.
        is_healing: Whether the action restores hit points.
    """

    model_config = ConfigDict(extra="ignore")

    id: str | None = Field(default=None, description="Action ID")
    game_id: str | None = Field(default=None, description="Owning game ID")
    name: str = Field(min_length=1, max_length=100, description="Display name")
    dice_type: int = Field(default=20, description="Die size")
    dice_amount: Annotated[int, Field(ge=1, le=100, description="Dice rolled")] = 1
    modifier: int = Field(default=0, description="Flat modifier")
    damage_type: str = Field(default="", max_length=50, description="Damage type label")
    target_type: TargetType = Field(default=TargetType.SINGLE, description="Target cardinality")
    description: str | None = Field(default=None, max_length=500)
    is_healing: bool = Field(default=False, description="Restores hit points")

    @field_validator("dice_type")
    @classmethod
    def validate_dice_type(cls, value: int) -> int:
        """Restrict die sizes to the supported set.

        Args:
            value: Die size to validate.

        Returns:
            The validated die size.
        """
        if value not in VALID_DIE_SIZES:
            raise ValueError(f"dice_type must be one of {VALID_DIE_SIZES}, got {value}")
        return value

    @property
    def heals(self) -> bool:
        """Check if this action heals instead of dealing damage.

        Older action catalogues only mark healing by name.
        """
        return self.is_healing or self.name.strip().lower() in HEALING_ACTION_NAMES

    @property
    def notation(self) -> str:
        """Dice notation for display, e.g. ``2d6+3``."""
        if self.modifier > 0:
            return f"{self.dice_amount}d{self.dice_type}+{self.modifier}"
        if self.modifier < 0:
            return f"{self.dice_amount}d{self.dice_type}{self.modifier}"
        return f"{self.dice_amount}d{self.dice_type}"


class TargetRef(BaseModel):
    """Minimal reference to a combatant, as carried in logs and messages."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    type: ParticipantType
    name: str


class Actor(TargetRef):
    """The combatant performing an action."""


class Combatant(BaseModel):
    """A roster row for a player character or NPC.

    Attributes:
        id: Roster identifier (player id or NPC id).
        game_id: Owning game.
        kind: Player or NPC.
        name: Display name.
        hp: Current hit points.
        max_hp: Maximum hit points.
        status: Roster status.
        level: Character or monster level.
        xp_percentage: Progress towards the next level (players only).
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: str
    game_id: str
    kind: ParticipantType
    name: str = Field(min_length=1, max_length=100)
    hp: Annotated[int, Field(ge=0)]
    max_hp: Annotated[int, Field(ge=1)]
    status: CombatantStatus = CombatantStatus.ACTIVE
    level: Annotated[int, Field(ge=1)] = 1
    xp_percentage: Annotated[float, Field(ge=0)] = 0.0

    @property
    def is_down(self) -> bool:
        """Check if the combatant is out of the fight.

        Returns:
            True when HP is 0 or the status is inactive/dead.
        """
        return self.hp <= 0 or self.status in (CombatantStatus.INACTIVE, CombatantStatus.DEAD)

    def to_target(self) -> CombatTarget:
        """Build the combat view of this roster row."""
        return CombatTarget(
            id=self.id,
            type=self.kind,
            name=self.name,
            current_hp=self.hp,
            max_hp=self.max_hp,
            status=self.status,
        )


class CombatTarget(BaseModel):
    """A combatant as seen by combat resolution.

    Attributes:
        id: Roster identifier.
        type: Player or NPC.
        name: Display name.
        current_hp: Hit points before the action.
        max_hp: Maximum hit points.
        status: Roster status before the action.
    """

    model_config = ConfigDict(extra="forbid")

    id: str
    type: ParticipantType
    name: str
    current_hp: Annotated[int, Field(ge=0)]
    max_hp: Annotated[int, Field(ge=1)]
    status: CombatantStatus = CombatantStatus.ACTIVE

    def ref(self) -> TargetRef:
        """Return the minimal reference for logs and messages."""
        return TargetRef(id=self.id, type=self.type, name=self.name)


class DamageDealt(BaseModel):
    """Damage applied to one target by one action."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    target_id: str
    damage: int


class CombatLogEntry(BaseModel):
    """Append-only audit record of one resolved action.

    Attributes:
        id: Log entry identifier.
        encounter_id: Owning encounter.
        actor_id: Acting combatant.
        actor_type: Player or NPC.
        actor_name: Acting combatant's display name.
        action_name: Name of the action used.
        action_id: Action identifier, if the action came from the catalogue.
        dice_type: Die size rolled.
        dice_amount: Number of dice rolled.
        dice_modifier: Flat modifier applied.
        roll_values: Raw die results in roll order.
        roll_total: Sum of the raw dice.
        final_damage: Roll total plus modifier, or the entered damage.
        is_critical: Whether any d20 rolled 20.
        is_fumble: Whether any d20 rolled 1.
        targets_hit: Targets of the action.
        damage_dealt: Per-target damage breakdown.
        created_at: When the entry was written.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    encounter_id: str
    actor_id: str
    actor_type: ParticipantType
    actor_name: str
    action_name: str
    action_id: str | None = None
    dice_type: int
    dice_amount: int
    dice_modifier: int
    roll_values: list[int] = Field(default_factory=list)
    roll_total: int = 0
    final_damage: int = 0
    is_critical: bool = False
    is_fumble: bool = False
    targets_hit: list[TargetRef] = Field(default_factory=list)
    damage_dealt: list[DamageDealt] = Field(default_factory=list)
    created_at: datetime


__all__ = [
    "CombatAction",
    "TargetRef",
    "Actor",
    "Combatant",
    "CombatTarget",
    "DamageDealt",
    "CombatLogEntry",
]
