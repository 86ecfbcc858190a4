"""Wire payloads for the master hit-confirmation handshake.

Both messages travel as flat JSON objects with camelCase keys on the
game's combat channel. The embedded action keeps its catalogue field names.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from rpg_combat.models.combat import CombatAction, TargetRef
from rpg_combat.models.enums import ParticipantType


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    def to_payload(self) -> dict[str, Any]:
        """Serialize for publishing on the channel."""
        return self.model_dump(mode="json", by_alias=True)


class PendingCombatAction(_WireModel):
    """``combat_action_requested``: the acting client asks whether it hit.

    Attributes:
        id: Request identifier generated by the acting client.
        actor_id: Acting combatant.
        actor_type: Player or NPC.
        actor_name: Acting combatant's display name.
        action: The chosen action.
        targets: The chosen targets.
        game_id: Game the request belongs to.
        encounter_id: Encounter the request belongs to.
        requested_at: Epoch milliseconds when the request was made.
    """

    id: str = Field(min_length=1)
    actor_id: str
    actor_type: ParticipantType
    actor_name: str
    action: CombatAction
    targets: list[TargetRef]
    game_id: str
    encounter_id: str
    requested_at: int = 0

    def actor_ref(self) -> TargetRef:
        """Return the acting combatant as a reference."""
        return TargetRef(id=self.actor_id, type=self.actor_type, name=self.actor_name)


class CombatHitConfirmation(_WireModel):
    """``combat_hit_confirmed``: the master's ruling on a request.

    Attributes:
        action_id: Identifier of the request being answered.
        hit: Whether the attack hit.
        game_id: Game the ruling belongs to.
    """

    action_id: str = Field(min_length=1)
    hit: bool
    game_id: str


__all__ = [
    "PendingCombatAction",
    "CombatHitConfirmation",
]
