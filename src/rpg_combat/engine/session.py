"""One client's view of combat in a game.

CombatSession wires the encounter manager, turn sequencer, resolver and
confirmation handshake together into the table flow:

    choose action and targets -> ask the master (attacks only) -> master
    rules hit or miss -> on a hit the actor enters damage -> damage is
    applied -> the encounter finishes if a side is wiped, otherwise the
    turn advances.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from rpg_combat.core.exceptions import NotFoundError, ValidationError
from rpg_combat.core.logging import bind_context, get_logger
from rpg_combat.engine.dice import DiceRoller
from rpg_combat.engine.encounter import EncounterManager
from rpg_combat.engine.resolution import CombatActionResult, CombatResolver
from rpg_combat.engine.turn_sequencer import TurnSequencer, authorize_turn, check_end_conditions
from rpg_combat.models.events import EncounterFinishedEvent
from rpg_combat.realtime.activity import ActivityLog
from rpg_combat.realtime.bus import InMemoryBus
from rpg_combat.realtime.confirmation import ConfirmationRequester, MasterConfirmationDesk


if TYPE_CHECKING:
    from rpg_combat.core.config import Settings
    from rpg_combat.models.combat import CombatAction, Combatant, CombatTarget, TargetRef
    from rpg_combat.models.encounter import Encounter, InitiativeEntry
    from rpg_combat.models.enums import ParticipantType, Side
    from rpg_combat.models.messages import PendingCombatAction
    from rpg_combat.realtime.bus import MessageBus
    from rpg_combat.storage.database import Database

logger = get_logger(__name__)


@dataclass
class ActionOutcome:
    """What happened to the encounter after an action.

    Attributes:
        encounter: The encounter after finishing or advancing.
        finished: Whether the action ended the encounter.
        winner: The side left standing, if it finished by a wipe.
        result: The resolved action, if there was one.
    """

    encounter: Encounter
    finished: bool = False
    winner: Side | None = None
    result: CombatActionResult | None = None


class CombatSession:
    """Combat flow for one client.

    Example:
        >>> session = CombatSession(db, bus)
        >>> encounter = session.start_encounter("game-1", created_by="master")
        >>> entry = session.join(encounter.id, ParticipantType.PLAYER, "p1")
        >>> session.roll_initiative_for(entry.id)
        >>> session.begin_combat(encounter.id)
    """

    def __init__(
        self,
        database: Database | None = None,
        bus: MessageBus | None = None,
        settings: Settings | None = None,
        roller: DiceRoller | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            database: Shared store. Defaults to the global database.
            bus: Channel service. Defaults to a private in-memory bus.
            settings: Settings. Defaults to the global settings.
            roller: Dice roller. Defaults to a fresh DiceRoller.
        """
        if database is None:
            from rpg_combat.storage.database import get_database

            database = get_database()
        if settings is None:
            from rpg_combat.core.config import get_settings

            settings = get_settings()

        self._db = database
        self._settings = settings
        self.bus = bus if bus is not None else InMemoryBus()
        self.roller = roller or DiceRoller()

        self.encounters = EncounterManager(database, settings)
        self.sequencer = TurnSequencer(database)
        self.activity = ActivityLog(database, self.bus, settings)
        self.resolver = CombatResolver(database, self.roller, settings, self.activity)
        self.requester = ConfirmationRequester(self.bus, settings)

    # =========================================================================
    # Setup
    # =========================================================================

    def start_encounter(
        self,
        game_id: str,
        created_by: str | None = None,
        name: str | None = None,
    ) -> Encounter:
        """Open a new encounter for a game."""
        return self.encounters.create_encounter(game_id, created_by, name)

    def join(
        self,
        encounter_id: str,
        participant_type: ParticipantType,
        participant_id: str,
    ) -> InitiativeEntry:
        """Seat a roster member in an encounter.

        Raises:
            NotFoundError: If the participant is not on the roster.
        """
        combatant = self._db.get_combatant(participant_id)
        if combatant is None or combatant.kind != participant_type:
            raise NotFoundError(
                "Participant not on roster", entity=participant_type.value, entity_id=participant_id
            )
        return self.encounters.add_participant(encounter_id, participant_type, participant_id)

    def roll_initiative_for(self, entry_id: str) -> InitiativeEntry:
        """Roll a d20 and record it as the entry's initiative."""
        value = self.roller.roll_initiative()
        return self.encounters.roll_initiative(entry_id, value)

    def begin_combat(self, encounter_id: str) -> Encounter:
        """Rank the participants and start the first round."""
        self.encounters.calculate_turn_order(encounter_id)
        encounter = self.encounters.activate_encounter(encounter_id)
        bind_context(encounter_id=encounter_id)
        return encounter

    def open_master_desk(self, game_id: str) -> MasterConfirmationDesk:
        """Start receiving hit-confirmation requests as the master."""
        return MasterConfirmationDesk(self.bus, game_id, self._settings, activity_log=self.activity)

    # =========================================================================
    # Turns
    # =========================================================================

    def authorize(
        self,
        encounter_id: str,
        actor: TargetRef,
        *,
        is_master: bool = False,
        override: bool = False,
    ) -> Encounter:
        """Check that the client may act for ``actor`` now.

        Raises:
            OutOfTurnError: If it is not the actor's turn.
        """
        encounter = self.encounters.get_encounter(encounter_id)
        entries = self.encounters.get_participants(encounter_id)
        authorize_turn(encounter, entries, actor, is_master=is_master, override=override)
        return encounter

    def request_attack(
        self,
        encounter_id: str,
        actor: TargetRef,
        action: CombatAction,
        targets: list[CombatTarget],
        *,
        is_master: bool = False,
    ) -> PendingCombatAction:
        """Ask the master whether an attack hits."""
        encounter = self.authorize(encounter_id, actor, is_master=is_master)
        return self.requester.request(actor, action, targets, encounter.game_id, encounter_id)

    def resolve_confirmed_attack(self, request_id: str, damage: int) -> ActionOutcome:
        """Apply entered damage for a confirmed hit, then close out the action.

        Raises:
            ConfirmationError: If the request was not ruled a hit.
        """
        if damage < 0:
            raise ValidationError("Damage cannot be negative", field_name="damage", invalid_value=damage)

        # The hit stays retryable until its damage is written.
        request = self.requester.confirmed_hit(request_id)
        targets = [self._roster_target(t.id) for t in request.targets]
        actor = request.actor_ref()
        result = self.resolver.apply_damage(
            targets, damage, actor, request.encounter_id, request.action
        )
        self.requester.take_hit(request_id)
        return self.complete_action(request.encounter_id, result)

    def perform_action(
        self,
        encounter_id: str,
        actor: TargetRef,
        action: CombatAction,
        targets: list[CombatTarget],
        *,
        is_master: bool = False,
    ) -> ActionOutcome:
        """Roll and apply an action without asking the master."""
        self.authorize(encounter_id, actor, is_master=is_master)
        result = self.resolver.execute_combat_action(action, targets, actor, encounter_id)
        return self.complete_action(encounter_id, result)

    def heal(
        self,
        encounter_id: str,
        actor: TargetRef,
        action: CombatAction,
        targets: list[CombatTarget],
        amount: int | None = None,
        *,
        is_master: bool = False,
    ) -> ActionOutcome:
        """Heal targets, rolling the action unless an amount is given.

        Raises:
            ValidationError: If the action does not heal.
        """
        if not action.heals:
            raise ValidationError(
                "Action does not heal", field_name="action", invalid_value=action.name
            )
        self.authorize(encounter_id, actor, is_master=is_master)
        if amount is None:
            result = self.resolver.execute_combat_action(action, targets, actor, encounter_id)
        else:
            result = self.resolver.apply_healing(targets, amount, actor, encounter_id, action)
        return self.complete_action(encounter_id, result)

    def end_turn(
        self,
        encounter_id: str,
        actor: TargetRef | None = None,
        *,
        is_master: bool = False,
    ) -> Encounter:
        """Pass the turn without acting (for example after a miss)."""
        if actor is not None:
            self.authorize(encounter_id, actor, is_master=is_master)
        return self.sequencer.advance_turn(encounter_id)

    def complete_action(
        self,
        encounter_id: str,
        result: CombatActionResult | None = None,
    ) -> ActionOutcome:
        """Finish the encounter if a side is wiped, otherwise advance the turn.

        No turn ever advances past a fully defeated side.
        """
        entries = self.encounters.get_participants(encounter_id)
        roster: dict[str, Combatant] = {}
        for entry in entries:
            combatant = self._db.get_combatant(entry.participant_id)
            if combatant is not None:
                roster[entry.participant_id] = combatant

        condition = check_end_conditions(entries, roster)
        if condition is None:
            encounter = self.sequencer.advance_turn(encounter_id)
            return ActionOutcome(encounter=encounter, result=result)

        encounter = self.encounters.finish_encounter(encounter_id)
        logger.info(
            "Encounter ended by wipe",
            encounter_id=encounter_id,
            condition=condition.name,
            winner=condition.winner.value,
        )
        try:
            self.activity.record(
                encounter.game_id,
                EncounterFinishedEvent(
                    message=condition.message,
                    encounter_id=encounter_id,
                    winner=condition.winner,
                ),
            )
        except Exception:
            logger.exception("Activity event not recorded", encounter_id=encounter_id)
        return ActionOutcome(
            encounter=encounter,
            finished=True,
            winner=condition.winner,
            result=result,
        )

    def finish_encounter(self, encounter_id: str) -> Encounter:
        """End an encounter by hand."""
        return self.encounters.finish_encounter(encounter_id)

    def close(self) -> None:
        """Stop listening on the bus."""
        self.requester.close()

    def _roster_target(self, combatant_id: str) -> CombatTarget:
        combatant = self._db.get_combatant(combatant_id)
        if combatant is None:
            raise NotFoundError("Combatant not found", entity="combatant", entity_id=combatant_id)
        return combatant.to_target()


__all__ = [
    "ActionOutcome",
    "CombatSession",
]
