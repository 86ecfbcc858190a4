"""Encounter lifecycle and initiative management.

An encounter moves through ``setup -> active -> finished``. A setup
encounter may also be finished directly, which cancels it. Finished is
terminal: every later mutation is rejected.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rpg_combat.core.exceptions import (
    InvalidEncounterStateError,
    NotFoundError,
    ValidationError,
)
from rpg_combat.core.logging import get_logger
from rpg_combat.models.encounter import Encounter, InitiativeEntry
from rpg_combat.models.enums import EncounterStatus, ParticipantType


if TYPE_CHECKING:
    from rpg_combat.core.config import Settings
    from rpg_combat.storage.database import Database

logger = get_logger(__name__)


def rank_by_initiative(entries: list[InitiativeEntry]) -> list[InitiativeEntry]:
    """Sort rolled entries by initiative, highest first.

    Ties go to the entry that was added first.

    Args:
        entries: Entries to rank; unrolled entries are dropped.

    Returns:
        Rolled entries in turn order.
    """
    rolled = [e for e in entries if e.has_rolled]
    return sorted(rolled, key=lambda e: (-(e.initiative_value or 0), e.creation_key))


def _require_status(encounter: Encounter, *allowed: EncounterStatus) -> None:
    if encounter.status not in allowed:
        raise InvalidEncounterStateError(
            f"Encounter is {encounter.status}",
            current_state=encounter.status.value,
            expected_states=[s.value for s in allowed],
            details={"encounter_id": encounter.id},
        )


class EncounterManager:
    """Create encounters, seat participants and fix the turn order.

    Example:
        >>> manager = EncounterManager(db)
        >>> encounter = manager.create_encounter("game-1", created_by="master")
        >>> entry = manager.add_participant(encounter.id, ParticipantType.PLAYER, "p1")
        >>> manager.roll_initiative(entry.id, 14)
        >>> manager.calculate_turn_order(encounter.id)
        >>> manager.activate_encounter(encounter.id)
    """

    def __init__(
        self,
        database: Database | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            database: Store to use. Defaults to the global database.
            settings: Settings to use. Defaults to the global settings.
        """
        if database is None:
            from rpg_combat.storage.database import get_database

            database = get_database()
        if settings is None:
            from rpg_combat.core.config import get_settings

            settings = get_settings()

        self._db = database
        self._settings = settings

    # =========================================================================
    # Encounters
    # =========================================================================

    def create_encounter(
        self,
        game_id: str,
        created_by: str | None = None,
        name: str | None = None,
    ) -> Encounter:
        """Create a setup encounter for a game.

        Args:
            game_id: Owning game.
            created_by: Creator identity.
            name: Optional display name.

        Returns:
            The new encounter (turn 0, round 1).

        Raises:
            InvalidEncounterStateError: If the game already has an open encounter.
        """
        existing = self._db.get_active_encounter(game_id)
        if existing is not None:
            raise InvalidEncounterStateError(
                "Game already has an open encounter",
                current_state=existing.status.value,
                details={"game_id": game_id, "encounter_id": existing.id},
            )

        encounter = self._db.create_encounter(game_id, created_by=created_by, name=name)
        logger.info("Encounter created", encounter_id=encounter.id, game_id=game_id)
        return encounter

    def get_encounter(self, encounter_id: str) -> Encounter:
        """Get an encounter.

        Raises:
            NotFoundError: If it does not exist.
        """
        encounter = self._db.get_encounter(encounter_id)
        if encounter is None:
            raise NotFoundError(
                "Encounter not found", entity="encounter", entity_id=encounter_id
            )
        return encounter

    def get_active_encounter(self, game_id: str) -> Encounter | None:
        """Get the game's setup or active encounter, if any."""
        return self._db.get_active_encounter(game_id)

    def list_encounters(
        self,
        game_id: str,
        status: EncounterStatus | None = None,
    ) -> list[Encounter]:
        """List a game's encounters, newest first."""
        return self._db.get_game_encounters(game_id, status)

    # =========================================================================
    # Participants
    # =========================================================================

    def add_participant(
        self,
        encounter_id: str,
        participant_type: ParticipantType,
        participant_id: str,
    ) -> InitiativeEntry:
        """Seat a player or NPC in an encounter.

        Joining is allowed during setup. Joining an active encounter requires
        ``combat.allow_reinforcements``; the newcomer takes no turn until it
        rolls and the order is recalculated.

        Args:
            encounter_id: Encounter to join.
            participant_type: Player or NPC.
            participant_id: Roster reference.

        Returns:
            The new entry with no initiative and no turn order.

        Raises:
            InvalidEncounterStateError: If the encounter does not accept joins.
            ValidationError: If the participant is already seated.
        """
        encounter = self.get_encounter(encounter_id)
        if self._settings.combat.allow_reinforcements:
            _require_status(encounter, EncounterStatus.SETUP, EncounterStatus.ACTIVE)
        else:
            _require_status(encounter, EncounterStatus.SETUP)

        for entry in self._db.get_encounter_participants(encounter_id):
            if entry.participant_type == participant_type and entry.participant_id == participant_id:
                raise ValidationError(
                    "Participant already in encounter",
                    field_name="participant_id",
                    invalid_value=participant_id,
                )

        entry = self._db.add_initiative_entry(encounter_id, participant_type, participant_id)
        logger.info(
            "Participant added",
            encounter_id=encounter_id,
            entry_id=entry.id,
            participant_type=participant_type.value,
            participant_id=participant_id,
        )
        return entry

    def remove_participant(self, entry_id: str) -> None:
        """Remove an entry from an encounter that has not finished.

        Raises:
            NotFoundError: If the entry does not exist.
            InvalidEncounterStateError: If the encounter is finished.
        """
        entry = self.get_participant(entry_id)
        _require_status(
            self.get_encounter(entry.encounter_id),
            EncounterStatus.SETUP,
            EncounterStatus.ACTIVE,
        )
        self._db.delete_initiative_entry(entry_id)

    def get_participant(self, entry_id: str) -> InitiativeEntry:
        """Get one initiative entry.

        Raises:
            NotFoundError: If it does not exist.
        """
        entry = self._db.get_initiative_entry(entry_id)
        if entry is None:
            raise NotFoundError(
                "Initiative entry not found", entity="initiative_entry", entity_id=entry_id
            )
        return entry

    def get_participants(self, encounter_id: str) -> list[InitiativeEntry]:
        """Get an encounter's entries by turn order, unranked last."""
        return self._db.get_encounter_participants(encounter_id)

    def find_participant(
        self,
        encounter_id: str,
        participant_type: ParticipantType,
        participant_id: str,
    ) -> InitiativeEntry | None:
        """Find the entry seating a given roster member, if any."""
        for entry in self.get_participants(encounter_id):
            if entry.participant_type == participant_type and entry.participant_id == participant_id:
                return entry
        return None

    # =========================================================================
    # Initiative
    # =========================================================================

    def roll_initiative(self, entry_id: str, die_value: int) -> InitiativeEntry:
        """Record an already-rolled initiative value on one entry.

        Args:
            entry_id: Entry to update.
            die_value: The rolled value.

        Returns:
            The updated entry.

        Raises:
            ValidationError: If die_value is not positive.
            InvalidEncounterStateError: If the encounter is finished.
        """
        if die_value < 1:
            raise ValidationError(
                "Initiative must be a positive die value",
                field_name="die_value",
                invalid_value=die_value,
            )

        entry = self.get_participant(entry_id)
        _require_status(
            self.get_encounter(entry.encounter_id),
            EncounterStatus.SETUP,
            EncounterStatus.ACTIVE,
        )

        updated = self._db.update_initiative_entry(entry_id, initiative_value=die_value)
        logger.info("Initiative rolled", entry_id=entry_id, value=die_value)
        return updated

    def calculate_turn_order(self, encounter_id: str) -> list[InitiativeEntry]:
        """Rank rolled entries into a dense 1..N turn order.

        Unrolled entries keep no turn order. Running this twice with the same
        initiative values gives the same ranking.

        Returns:
            All entries, sorted by turn order with unranked entries last.
        """
        encounter = self.get_encounter(encounter_id)
        _require_status(encounter, EncounterStatus.SETUP, EncounterStatus.ACTIVE)

        entries = self._db.get_encounter_participants(encounter_id)
        ranking: dict[str, int | None] = {e.id: None for e in entries}
        for rank, entry in enumerate(rank_by_initiative(entries), start=1):
            ranking[entry.id] = rank

        self._db.set_turn_orders(ranking)
        logger.info(
            "Turn order calculated",
            encounter_id=encounter_id,
            ranked=sum(1 for r in ranking.values() if r is not None),
        )
        return self._db.get_encounter_participants(encounter_id)

    # =========================================================================
    # Transitions
    # =========================================================================

    def activate_encounter(self, encounter_id: str) -> Encounter:
        """Start turns: first participant, round 1, nobody has acted.

        Raises:
            InvalidEncounterStateError: If the encounter is not in setup, is
                empty, or a participant has not rolled or been ranked.
        """
        encounter = self.get_encounter(encounter_id)
        _require_status(encounter, EncounterStatus.SETUP)

        entries = self._db.get_encounter_participants(encounter_id)
        if not entries:
            raise InvalidEncounterStateError(
                "Cannot activate an encounter without participants",
                current_state=encounter.status.value,
                details={"encounter_id": encounter_id},
            )
        waiting = [e.id for e in entries if not (e.has_rolled and e.is_ranked)]
        if waiting:
            raise InvalidEncounterStateError(
                "Every participant must roll initiative before combat starts",
                current_state=encounter.status.value,
                details={"encounter_id": encounter_id, "unranked": len(waiting)},
            )

        with self._db.transaction() as conn:
            self._db.reset_has_acted(encounter_id, conn=conn)
            activated = self._db.update_encounter(
                encounter_id,
                expected_version=encounter.version,
                conn=conn,
                status=EncounterStatus.ACTIVE,
                current_turn=1,
                current_round=1,
            )

        logger.info("Encounter activated", encounter_id=encounter_id, participants=len(entries))
        return activated

    def finish_encounter(self, encounter_id: str) -> Encounter:
        """End an encounter. Finishing from setup cancels it.

        Raises:
            InvalidEncounterStateError: If it is already finished.
        """
        encounter = self.get_encounter(encounter_id)
        _require_status(encounter, EncounterStatus.SETUP, EncounterStatus.ACTIVE)

        finished = self._db.update_encounter(
            encounter_id,
            expected_version=encounter.version,
            status=EncounterStatus.FINISHED,
        )
        logger.info(
            "Encounter finished",
            encounter_id=encounter_id,
            from_status=encounter.status.value,
            round=encounter.current_round,
        )
        return finished


__all__ = [
    "EncounterManager",
    "rank_by_initiative",
]
