"""Tests for the combat session facade."""

from __future__ import annotations

from typing import Any

import pytest

from rpg_combat.core.exceptions import (
    ConfirmationError,
    NotFoundError,
    OutOfTurnError,
    ValidationError,
)
from rpg_combat.models.combat import CombatAction, TargetRef
from rpg_combat.models.enums import (
    ConfirmationState,
    EncounterStatus,
    ParticipantType,
    Side,
    TargetType,
)


GAME_ID = "game-1"
ARIA = TargetRef(id="p-aria", type=ParticipantType.PLAYER, name="Aria")
BRAM = TargetRef(id="p-bram", type=ParticipantType.PLAYER, name="Bram")
GOBLIN = TargetRef(id="n-goblin", type=ParticipantType.NPC, name="Goblin")
SWORD = CombatAction(id="act-sword", name="Longsword", dice_type=8, modifier=2)
CLAWS = CombatAction(id="act-claws", name="Claws", dice_type=6)
HEAL = CombatAction(id="act-heal", name="Cura", dice_type=4, modifier=2)


def _start(session: Any, scripted_roller: Any) -> Any:
    """Seat Aria, Goblin and Bram and roll them into that order."""
    encounter = session.start_encounter(GAME_ID, created_by="master")
    for kind, pid in (
        (ParticipantType.PLAYER, "p-aria"),
        (ParticipantType.NPC, "n-goblin"),
        (ParticipantType.PLAYER, "p-bram"),
    ):
        entry = session.join(encounter.id, kind, pid)
        scripted_roller.push({"p-aria": 18, "n-goblin": 12, "p-bram": 9}[pid])
        session.roll_initiative_for(entry.id)
    return session.begin_combat(encounter.id)


def _target(session: Any, combatant_id: str) -> Any:
    return session._db.get_combatant(combatant_id).to_target()


class TestSetup:
    """Tests for setting up combat through the session."""

    def test_begin_combat(self, session: Any, scripted_roller: Any) -> None:
        """Test rolled initiative drives the order."""
        encounter = _start(session, scripted_roller)

        assert encounter.status == EncounterStatus.ACTIVE
        order = session.encounters.get_participants(encounter.id)
        assert [(e.participant_id, e.initiative_value) for e in order] == [
            ("p-aria", 18), ("n-goblin", 12), ("p-bram", 9),
        ]

    def test_join_requires_roster(self, session: Any) -> None:
        """Test only roster members can join."""
        encounter = session.start_encounter(GAME_ID)

        with pytest.raises(NotFoundError):
            session.join(encounter.id, ParticipantType.NPC, "n-dragon")

    def test_join_checks_kind(self, session: Any) -> None:
        """Test a player cannot be seated as an NPC."""
        encounter = session.start_encounter(GAME_ID)

        with pytest.raises(NotFoundError):
            session.join(encounter.id, ParticipantType.NPC, "p-aria")


class TestAttackFlow:
    """Tests for the confirm-then-damage attack flow."""

    def test_hit_applies_damage_and_advances(self, session: Any, scripted_roller: Any) -> None:
        """Test a confirmed hit applies entered damage then passes the turn."""
        encounter = _start(session, scripted_roller)
        desk = session.open_master_desk(GAME_ID)

        request = session.request_attack(encounter.id, ARIA, SWORD, [_target(session, "n-orc")])
        desk.confirm(request.id, hit=True)
        outcome = session.resolve_confirmed_attack(request.id, 6)

        assert outcome.finished is False
        assert outcome.encounter.current_turn == 2
        assert session._db.get_combatant("n-orc").hp == 9

    def test_miss_consumes_nothing(self, session: Any, scripted_roller: Any) -> None:
        """Test a miss leaves the turn with the actor until they end it."""
        encounter = _start(session, scripted_roller)
        desk = session.open_master_desk(GAME_ID)

        request = session.request_attack(encounter.id, ARIA, SWORD, [_target(session, "n-orc")])
        desk.confirm(request.id, hit=False)

        assert session.requester.state(request.id) == ConfirmationState.MISSED
        with pytest.raises(ConfirmationError):
            session.resolve_confirmed_attack(request.id, 6)
        assert session.encounters.get_encounter(encounter.id).current_turn == 1

        assert session.end_turn(encounter.id, ARIA).current_turn == 2

    def test_failed_damage_keeps_hit(self, session: Any, scripted_roller: Any) -> None:
        """Test a confirmed hit survives damage that could not be applied."""
        encounter = _start(session, scripted_roller)
        desk = session.open_master_desk(GAME_ID)
        sweep = CombatAction(id="act-sweep", name="Sweep", dice_type=6, target_type=TargetType.MULTIPLE)

        request = session.request_attack(
            encounter.id, ARIA, sweep, [_target(session, "n-goblin"), _target(session, "n-orc")],
        )
        desk.confirm(request.id, hit=True)
        session.resolver.kill("n-goblin")

        with pytest.raises(NotFoundError):
            session.resolve_confirmed_attack(request.id, 4)

        assert session.requester.state(request.id) == ConfirmationState.HIT
        assert session._db.get_combatant("n-orc").hp == 15
        assert session.encounters.get_encounter(encounter.id).current_turn == 1

    def test_hit_consumed_once_applied(self, session: Any, scripted_roller: Any) -> None:
        """Test damage for a hit can only be entered once."""
        encounter = _start(session, scripted_roller)
        desk = session.open_master_desk(GAME_ID)

        request = session.request_attack(encounter.id, ARIA, SWORD, [_target(session, "n-orc")])
        desk.confirm(request.id, hit=True)
        session.resolve_confirmed_attack(request.id, 2)

        with pytest.raises(ConfirmationError):
            session.resolve_confirmed_attack(request.id, 2)
        assert session._db.get_combatant("n-orc").hp == 13

    def test_repeated_target_rejected(self, session: Any, scripted_roller: Any) -> None:
        """Test an attack cannot list the same target twice."""
        encounter = _start(session, scripted_roller)
        orc = _target(session, "n-orc")
        sweep = CombatAction(id="act-sweep", name="Sweep", dice_type=6, target_type=TargetType.MULTIPLE)

        with pytest.raises(ValidationError):
            session.request_attack(encounter.id, ARIA, sweep, [orc, orc])
        assert session.requester.pending() == []

    def test_damage_waits_for_ruling(self, session: Any, scripted_roller: Any) -> None:
        """Test damage cannot be entered before the master rules."""
        encounter = _start(session, scripted_roller)

        request = session.request_attack(encounter.id, ARIA, SWORD, [_target(session, "n-orc")])

        with pytest.raises(ConfirmationError):
            session.resolve_confirmed_attack(request.id, 6)

    def test_out_of_turn_attack(self, session: Any, scripted_roller: Any) -> None:
        """Test a player cannot attack on someone else's turn."""
        encounter = _start(session, scripted_roller)

        with pytest.raises(OutOfTurnError):
            session.request_attack(encounter.id, BRAM, SWORD, [_target(session, "n-orc")])

    def test_wipe_finishes_instead_of_advancing(self, session: Any, scripted_roller: Any) -> None:
        """Test defeating the last NPC ends the encounter."""
        encounter = _start(session, scripted_roller)
        session._db.delete_combatant("n-orc")
        desk = session.open_master_desk(GAME_ID)

        request = session.request_attack(encounter.id, ARIA, SWORD, [_target(session, "n-goblin")])
        desk.confirm(request.id, hit=True)
        outcome = session.resolve_confirmed_attack(request.id, 10)

        assert outcome.finished is True
        assert outcome.winner == Side.PLAYERS
        assert outcome.encounter.status == EncounterStatus.FINISHED
        assert outcome.encounter.current_turn == 1

    def test_npc_turn_driven_by_master(self, session: Any, scripted_roller: Any) -> None:
        """Test the master rolls an NPC action on its turn."""
        encounter = _start(session, scripted_roller)
        session.end_turn(encounter.id, ARIA)
        scripted_roller.push(4)

        outcome = session.perform_action(
            encounter.id, GOBLIN, CLAWS, [_target(session, "p-bram")], is_master=True,
        )

        assert session._db.get_combatant("p-bram").hp == 11
        assert outcome.encounter.current_turn == 3


class TestHealFlow:
    """Tests for healing through the session."""

    def test_heal_needs_no_confirmation(self, session: Any, scripted_roller: Any) -> None:
        """Test healing applies immediately and passes the turn."""
        encounter = _start(session, scripted_roller)
        session._db.update_combatant("p-bram", hp=4)
        scripted_roller.push(3)

        outcome = session.heal(encounter.id, ARIA, HEAL, [_target(session, "p-bram")])

        assert session._db.get_combatant("p-bram").hp == 9
        assert outcome.encounter.current_turn == 2

    def test_heal_with_fixed_amount(self, session: Any, scripted_roller: Any) -> None:
        """Test an entered healing amount skips the roll."""
        encounter = _start(session, scripted_roller)
        session._db.update_combatant("p-bram", hp=4)

        session.heal(encounter.id, ARIA, HEAL, [_target(session, "p-bram")], amount=2)

        assert session._db.get_combatant("p-bram").hp == 6

    def test_heal_rejects_attacks(self, session: Any, scripted_roller: Any) -> None:
        """Test heal refuses a damaging action."""
        encounter = _start(session, scripted_roller)

        with pytest.raises(ValidationError):
            session.heal(encounter.id, ARIA, SWORD, [_target(session, "p-bram")])

    def test_healing_not_sent_for_confirmation(self, session: Any, scripted_roller: Any) -> None:
        """Test healing actions cannot be sent to the master."""
        encounter = _start(session, scripted_roller)

        with pytest.raises(ValidationError):
            session.request_attack(encounter.id, ARIA, HEAL, [_target(session, "p-bram")])


class TestEncounterFinish:
    """Tests for ending encounters through the session."""

    def test_manual_finish(self, session: Any, scripted_roller: Any) -> None:
        """Test the master can end combat by hand."""
        encounter = _start(session, scripted_roller)

        finished = session.finish_encounter(encounter.id)

        assert finished.status == EncounterStatus.FINISHED

    def test_wipe_is_announced(self, session: Any, scripted_roller: Any) -> None:
        """Test a wipe leaves an encounter_finished activity event."""
        encounter = _start(session, scripted_roller)
        session._db.delete_combatant("n-goblin")

        outcome = session.complete_action(encounter.id)

        assert outcome.finished is True
        events = [r.event for r in session.activity.recent(GAME_ID)]
        assert events[-1].type == "encounter_finished"
        assert events[-1].winner == Side.PLAYERS
