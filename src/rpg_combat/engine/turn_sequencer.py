"""Turn and round progression for active encounters.

``current_turn`` is 1-indexed over the ranked entries: turn k belongs to the
entry with the k-th lowest turn order, and turn 0 resolves to the first.
A round completes only once every ranked entry has acted, not when the last
position is reached.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from rpg_combat.core.exceptions import (
    InvalidEncounterStateError,
    NotFoundError,
    OutOfTurnError,
    TurnManagementError,
)
from rpg_combat.core.logging import get_logger
from rpg_combat.models.enums import EncounterStatus, ParticipantType, Side


if TYPE_CHECKING:
    from rpg_combat.models.combat import Combatant, TargetRef
    from rpg_combat.models.encounter import Encounter, InitiativeEntry
    from rpg_combat.storage.database import Database

logger = get_logger(__name__)


# =============================================================================
# Turn Lookup
# =============================================================================


def turn_ordered(entries: list[InitiativeEntry]) -> list[InitiativeEntry]:
    """Return ranked entries sorted by turn order."""
    ranked = [e for e in entries if e.turn_order is not None]
    return sorted(ranked, key=lambda e: e.turn_order or 0)


def whose_turn(encounter: Encounter, entries: list[InitiativeEntry]) -> InitiativeEntry | None:
    """Resolve the entry that owns the encounter's current turn.

    Args:
        encounter: The encounter.
        entries: The encounter's entries in any order.

    Returns:
        The current entry, or None when nothing is ranked or the turn points
        past the end of the order.
    """
    ordered = turn_ordered(entries)
    index = max(encounter.current_turn - 1, 0)
    if index >= len(ordered):
        return None
    return ordered[index]


def authorize_turn(
    encounter: Encounter,
    entries: list[InitiativeEntry],
    actor: TargetRef,
    *,
    is_master: bool = False,
    override: bool = False,
) -> InitiativeEntry:
    """Check that a client may act for ``actor`` right now.

    Players act on their own turn. The master acts on NPC turns, and on
    any turn when ``override`` is set.

    Returns:
        The current entry.

    Raises:
        InvalidEncounterStateError: If the encounter is not active.
        TurnManagementError: If no participant holds the turn.
        OutOfTurnError: If the client does not control the current turn.
    """
    if encounter.status != EncounterStatus.ACTIVE:
        raise InvalidEncounterStateError(
            "Turns are only played in active encounters",
            current_state=encounter.status.value,
            expected_states=[EncounterStatus.ACTIVE.value],
        )

    current = whose_turn(encounter, entries)
    if current is None:
        raise TurnManagementError(
            "No participant holds the current turn",
            details={"encounter_id": encounter.id, "current_turn": encounter.current_turn},
        )

    if is_master and override:
        return current

    owns = current.participant_type == actor.type and current.participant_id == actor.id
    if owns and current.participant_type == ParticipantType.NPC and is_master:
        return current
    if owns and current.participant_type == ParticipantType.PLAYER and not is_master:
        return current

    raise OutOfTurnError(
        f"It is not {actor.name}'s turn",
        actor_id=actor.id,
        details={"encounter_id": encounter.id, "current_turn": encounter.current_turn},
    )


# =============================================================================
# End Conditions
# =============================================================================


@dataclass(frozen=True)
class CombatEndCondition:
    """Condition for ending combat.

    Attributes:
        name: Condition name.
        check: Function that checks if the condition is met.
        winner: Side that wins when it triggers.
        message: Message to display when it triggers.
    """

    name: str
    check: Callable[[list["InitiativeEntry"], Mapping[str, "Combatant"]], bool]
    winner: Side
    message: str


def _side(entries: list[InitiativeEntry], kind: ParticipantType) -> list[InitiativeEntry]:
    return [e for e in entries if e.participant_type == kind]


def all_npcs_defeated(
    entries: list[InitiativeEntry],
    roster: Mapping[str, Combatant],
) -> bool:
    """Check if every NPC participant is gone from the roster or at 0 HP."""
    npcs = _side(entries, ParticipantType.NPC)
    for entry in npcs:
        combatant = roster.get(entry.participant_id)
        if combatant is not None and combatant.hp > 0:
            return False
    return len(npcs) > 0


def all_players_defeated(
    entries: list[InitiativeEntry],
    roster: Mapping[str, Combatant],
) -> bool:
    """Check if every player participant is missing, at 0 HP, or out of action."""
    players = _side(entries, ParticipantType.PLAYER)
    for entry in players:
        combatant = roster.get(entry.participant_id)
        if combatant is not None and not combatant.is_down:
            return False
    return len(players) > 0


DEFAULT_END_CONDITIONS = [
    CombatEndCondition(
        name="victory",
        check=all_npcs_defeated,
        winner=Side.PLAYERS,
        message="All enemies have been defeated!",
    ),
    CombatEndCondition(
        name="defeat",
        check=all_players_defeated,
        winner=Side.NPCS,
        message="All player characters have fallen!",
    ),
]


def check_end_conditions(
    entries: list[InitiativeEntry],
    roster: Mapping[str, Combatant],
    conditions: list[CombatEndCondition] | None = None,
) -> CombatEndCondition | None:
    """Return the first end condition that holds, if any."""
    for condition in conditions or DEFAULT_END_CONDITIONS:
        if condition.check(entries, roster):
            return condition
    return None


# =============================================================================
# Turn Sequencer
# =============================================================================


class TurnSequencer:
    """Advance turns and rounds of active encounters."""

    def __init__(self, database: Database | None = None) -> None:
        """Initialize the sequencer.

        Args:
            database: Store to use. Defaults to the global database.
        """
        if database is None:
            from rpg_combat.storage.database import get_database

            database = get_database()
        self._db = database

    def current_participant(self, encounter_id: str) -> InitiativeEntry | None:
        """Get the entry holding the current turn.

        Raises:
            NotFoundError: If the encounter does not exist.
        """
        encounter = self._db.get_encounter(encounter_id)
        if encounter is None:
            raise NotFoundError("Encounter not found", entity="encounter", entity_id=encounter_id)
        return whose_turn(encounter, self._db.get_encounter_participants(encounter_id))

    def advance_turn(self, encounter_id: str) -> Encounter:
        """Mark the current participant as acted and move the turn on.

        When every ranked entry has acted the round completes: all entries are
        reset, the turn returns to the first in order and the round number
        goes up by one. Otherwise the turn moves to the next position,
        wrapping around.

        Args:
            encounter_id: Encounter to advance.

        Returns:
            The updated encounter.

        Raises:
            NotFoundError: If the encounter does not exist.
            InvalidEncounterStateError: If the encounter is not active.
            TurnManagementError: If no entry is ranked.
            ConcurrencyError: If another client changed the encounter meanwhile.
        """
        with self._db.transaction() as conn:
            encounter = self._db.get_encounter(encounter_id, conn=conn)
            if encounter is None:
                raise NotFoundError(
                    "Encounter not found", entity="encounter", entity_id=encounter_id
                )
            if encounter.status != EncounterStatus.ACTIVE:
                raise InvalidEncounterStateError(
                    "Only active encounters advance turns",
                    current_state=encounter.status.value,
                    expected_states=[EncounterStatus.ACTIVE.value],
                )

            entries = self._db.get_encounter_participants(encounter_id, conn=conn)
            if not turn_ordered(entries):
                raise TurnManagementError(
                    "Cannot advance turn: no participants in turn order",
                    details={"encounter_id": encounter_id},
                )

            current = whose_turn(encounter, entries)
            if current is not None and not current.has_acted:
                self._db.update_initiative_entry(current.id, conn=conn, has_acted=True)

            ordered = turn_ordered(self._db.get_encounter_participants(encounter_id, conn=conn))
            round_complete = all(e.has_acted for e in ordered)

            if round_complete:
                self._db.reset_has_acted(encounter_id, conn=conn)
                next_turn = 1
                next_round = encounter.current_round + 1
            else:
                next_turn = (encounter.current_turn % len(ordered)) + 1
                next_round = encounter.current_round

            updated = self._db.update_encounter(
                encounter_id,
                expected_version=encounter.version,
                conn=conn,
                current_turn=next_turn,
                current_round=next_round,
            )

        if round_complete:
            logger.info("Round completed", encounter_id=encounter_id, round=next_round)
        else:
            logger.info(
                "Turn advanced",
                encounter_id=encounter_id,
                current_turn=next_turn,
                round=next_round,
            )
        return updated


__all__ = [
    "turn_ordered",
    "whose_turn",
    "authorize_turn",
    "CombatEndCondition",
    "all_npcs_defeated",
    "all_players_defeated",
    "check_end_conditions",
    "DEFAULT_END_CONDITIONS",
    "TurnSequencer",
]
