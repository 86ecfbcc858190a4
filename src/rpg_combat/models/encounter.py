"""Pydantic V2 schemas for encounters and initiative entries.

An Encounter is one combat instance within a game. Each combatant taking
part has one InitiativeEntry holding its rolled initiative, its dense
1..N turn order rank, and whether it has acted in the current round.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from rpg_combat.models.enums import EncounterStatus, ParticipantType


class Encounter(BaseModel):
    """One combat instance within a game session.

    Attributes:
        id: Unique encounter identifier.
        game_id: Owning game identifier.
        name: Optional display name.
        status: Lifecycle status.
        current_turn: 1-indexed position within the turn order; 0 before play.
        current_round: Current round, starting at 1.
        created_by: Identity of the user who created the encounter.
        created_at: Creation timestamp.
        updated_at: Last modification timestamp.
        version: Optimistic concurrency counter, bumped on every update.
    """

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
    )

    id: str = Field(description="Unique encounter ID")
    game_id: str = Field(description="Owning game ID")
    name: str | None = Field(default=None, description="Display name")
    status: EncounterStatus = Field(default=EncounterStatus.SETUP, description="Lifecycle status")
    current_turn: Annotated[int, Field(ge=0, description="1-indexed turn position")] = 0
    current_round: Annotated[int, Field(ge=1, description="Current round")] = 1
    created_by: str | None = Field(default=None, description="Creator identity")
    created_at: datetime = Field(description="Creation time")
    updated_at: datetime = Field(description="Last update time")
    version: Annotated[int, Field(ge=0, description="Optimistic lock version")] = 0

    @property
    def is_active(self) -> bool:
        """Check if turns are being played."""
        return self.status == EncounterStatus.ACTIVE

    @property
    def is_finished(self) -> bool:
        """Check if the encounter has ended."""
        return self.status == EncounterStatus.FINISHED


class InitiativeEntry(BaseModel):
    """One combatant's slot in an encounter.

    Attributes:
        id: Unique entry identifier.
        encounter_id: Owning encounter.
        participant_type: Player or NPC.
        participant_id: Reference into the player or NPC roster.
        initiative_value: Rolled initiative, None until rolled.
        turn_order: Dense 1..N rank, None until turn order is calculated.
        has_acted: Whether this participant acted in the current round.
        created_at: Creation timestamp.
        created_seq: Store-assigned insertion sequence.
    """

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
    )

    id: str = Field(description="Unique entry ID")
    encounter_id: str = Field(description="Owning encounter ID")
    participant_type: ParticipantType = Field(description="Player or NPC")
    participant_id: str = Field(description="Roster reference")
    initiative_value: int | None = Field(default=None, description="Rolled initiative")
    turn_order: Annotated[int, Field(ge=1)] | None = Field(default=None, description="Turn rank")
    has_acted: bool = Field(default=False, description="Acted this round")
    created_at: datetime = Field(description="Creation time")
    created_seq: Annotated[int, Field(ge=0)] = 0

    @property
    def has_rolled(self) -> bool:
        """Check if initiative has been rolled for this entry."""
        return self.initiative_value is not None

    @property
    def is_ranked(self) -> bool:
        """Check if this entry takes part in the turn order."""
        return self.turn_order is not None

    @property
    def creation_key(self) -> tuple[datetime, int]:
        """Sort key reproducing the order in which entries were added.

        Returns:
            Tuple of (created_at, created_seq).
        """
        return (self.created_at, self.created_seq)


__all__ = [
    "Encounter",
    "InitiativeEntry",
]
