"""Tests for the SQLite persistence layer."""

from __future__ import annotations

from pathlib import Path

import pytest

from rpg_combat.core.exceptions import (
    ConcurrencyError,
    InvalidEncounterStateError,
    NotFoundError,
)
from rpg_combat.models.combat import CombatAction, DamageDealt, TargetRef
from rpg_combat.models.enums import CombatantStatus, EncounterStatus, ParticipantType, TargetType
from rpg_combat.models.events import CombatHealingEvent
from rpg_combat.storage.database import Database


GAME_ID = "game-1"


@pytest.fixture
def db(tmp_path: Path) -> Database:
    return Database(tmp_path / "nested" / "store.db")


class TestSchema:
    """Tests for database setup."""

    def test_creates_parent_directory(self, tmp_path: Path) -> None:
        """Test the database file's directory is created."""
        path = tmp_path / "a" / "b" / "combat.db"

        Database(path)

        assert path.exists()

    def test_reopen_keeps_data(self, tmp_path: Path) -> None:
        """Test schema creation is idempotent."""
        path = tmp_path / "combat.db"
        encounter = Database(path).create_encounter(GAME_ID)

        assert Database(path).get_encounter(encounter.id) == encounter


class TestEncounters:
    """Tests for encounter rows."""

    def test_one_open_per_game(self, db: Database) -> None:
        """Test the store enforces a single open encounter per game."""
        db.create_encounter(GAME_ID)

        with pytest.raises(InvalidEncounterStateError):
            db.create_encounter(GAME_ID)

    def test_long_name_round_trips(self, db: Database) -> None:
        """Test a long display name is stored and read back."""
        name = "Siege of the " + "very " * 60 + "long bridge"

        encounter = db.create_encounter(GAME_ID, name=name)

        assert db.get_active_encounter(GAME_ID).id == encounter.id
        assert db.get_encounter(encounter.id).name == name

    def test_finished_frees_the_slot(self, db: Database) -> None:
        """Test a finished encounter no longer blocks a new one."""
        first = db.create_encounter(GAME_ID)
        db.update_encounter(first.id, expected_version=first.version, status=EncounterStatus.FINISHED)

        second = db.create_encounter(GAME_ID)

        assert db.get_active_encounter(GAME_ID).id == second.id

    def test_update_bumps_version(self, db: Database) -> None:
        """Test each update increments the version."""
        encounter = db.create_encounter(GAME_ID)

        updated = db.update_encounter(encounter.id, expected_version=0, current_turn=1)

        assert updated.version == 1
        assert updated.current_turn == 1
        assert updated.updated_at >= encounter.updated_at

    def test_stale_version_rejected(self, db: Database) -> None:
        """Test a write based on an old read fails."""
        encounter = db.create_encounter(GAME_ID)
        db.update_encounter(encounter.id, expected_version=0, current_turn=1)

        with pytest.raises(ConcurrencyError):
            db.update_encounter(encounter.id, expected_version=0, current_turn=2)

        assert db.get_encounter(encounter.id).current_turn == 1

    def test_update_missing(self, db: Database) -> None:
        """Test updating an unknown encounter raises NotFoundError."""
        with pytest.raises(NotFoundError):
            db.update_encounter("missing", expected_version=0, current_turn=1)

    def test_unknown_column_rejected(self, db: Database) -> None:
        """Test only mutable columns can be updated."""
        encounter = db.create_encounter(GAME_ID)

        with pytest.raises(ValueError):
            db.update_encounter(encounter.id, expected_version=0, game_id="other")

    def test_transaction_rolls_back(self, db: Database) -> None:
        """Test a failed transaction leaves no partial writes."""
        encounter = db.create_encounter(GAME_ID)
        entry = db.add_initiative_entry(encounter.id, ParticipantType.PLAYER, "p1")

        with pytest.raises(RuntimeError), db.transaction() as conn:
            db.update_initiative_entry(entry.id, conn=conn, has_acted=True)
            db.update_encounter(encounter.id, expected_version=0, conn=conn, current_turn=1)
            raise RuntimeError("abort")

        assert db.get_encounter(encounter.id).version == 0
        assert db.get_initiative_entry(entry.id).has_acted is False


class TestInitiativeEntries:
    """Tests for initiative entry rows."""

    def test_creation_sequence(self, db: Database) -> None:
        """Test entries carry an increasing creation sequence."""
        encounter = db.create_encounter(GAME_ID)
        first = db.add_initiative_entry(encounter.id, ParticipantType.PLAYER, "p1")
        second = db.add_initiative_entry(encounter.id, ParticipantType.NPC, "n1")

        assert first.created_seq < second.created_seq

    def test_participants_ordered_unranked_last(self, db: Database) -> None:
        """Test ranked entries come first by rank, then unranked by creation."""
        encounter = db.create_encounter(GAME_ID)
        a = db.add_initiative_entry(encounter.id, ParticipantType.PLAYER, "a")
        b = db.add_initiative_entry(encounter.id, ParticipantType.PLAYER, "b")
        c = db.add_initiative_entry(encounter.id, ParticipantType.NPC, "c")
        db.set_turn_orders({c.id: 1, a.id: 2, b.id: None})

        order = db.get_encounter_participants(encounter.id)

        assert [e.participant_id for e in order] == ["c", "a", "b"]

    def test_reset_has_acted(self, db: Database) -> None:
        """Test has_acted is cleared for the whole encounter."""
        encounter = db.create_encounter(GAME_ID)
        entry = db.add_initiative_entry(encounter.id, ParticipantType.PLAYER, "a")
        db.update_initiative_entry(entry.id, has_acted=True)

        db.reset_has_acted(encounter.id)

        assert db.get_initiative_entry(entry.id).has_acted is False

    def test_update_missing_entry(self, db: Database) -> None:
        """Test updating an unknown entry raises NotFoundError."""
        with pytest.raises(NotFoundError):
            db.update_initiative_entry("missing", has_acted=True)

    def test_delete(self, db: Database) -> None:
        """Test entries can be deleted once."""
        encounter = db.create_encounter(GAME_ID)
        entry = db.add_initiative_entry(encounter.id, ParticipantType.PLAYER, "a")

        assert db.delete_initiative_entry(entry.id) is True
        assert db.delete_initiative_entry(entry.id) is False


class TestCombatLog:
    """Tests for combat log rows."""

    def test_round_trip(self, db: Database) -> None:
        """Test JSON columns come back as typed values."""
        encounter = db.create_encounter(GAME_ID)
        actor = TargetRef(id="p1", type=ParticipantType.PLAYER, name="Aria")
        target = TargetRef(id="n1", type=ParticipantType.NPC, name="Orc")

        stored = db.insert_combat_log(
            encounter_id=encounter.id,
            actor=actor,
            action=CombatAction(name="Smite", dice_type=6, dice_amount=2, modifier=1),
            roll_values=[3, 5],
            roll_total=8,
            final_damage=9,
            is_critical=False,
            is_fumble=False,
            targets_hit=[target],
            damage_dealt=[DamageDealt(target_id="n1", damage=9)],
        )

        (loaded,) = db.get_combat_log(encounter.id)
        assert loaded == stored
        assert loaded.roll_values == [3, 5]
        assert loaded.targets_hit == [target]


class TestCombatActions:
    """Tests for the per-game action catalogue."""

    def test_catalogue(self, db: Database) -> None:
        """Test actions are stored per game and listed by name."""
        smite = db.create_combat_action(GAME_ID, CombatAction(name="Smite", dice_type=8))
        db.create_combat_action(
            GAME_ID,
            CombatAction(name="Mass Cure", dice_type=4, is_healing=True, target_type=TargetType.MULTIPLE),
            created_by="master",
        )
        db.create_combat_action("game-2", CombatAction(name="Bite", dice_type=6))

        actions = db.get_combat_actions(GAME_ID)

        assert [a.name for a in actions] == ["Mass Cure", "Smite"]
        assert actions[0].heals
        assert actions[0].target_type == TargetType.MULTIPLE
        assert db.get_combat_action(smite.id) == smite
        assert db.get_combat_action("missing") is None


class TestRoster:
    """Tests for roster rows."""

    def test_add_and_update(self, db: Database) -> None:
        """Test roster entries can be stored and changed."""
        added = db.add_combatant(GAME_ID, ParticipantType.PLAYER, "Aria", hp=10, max_hp=12)

        updated = db.update_combatant(added.id, hp=0, status=CombatantStatus.INACTIVE)

        assert updated.hp == 0
        assert updated.status == CombatantStatus.INACTIVE
        assert db.get_combatant(added.id) == updated

    def test_update_missing(self, db: Database) -> None:
        """Test updating an unknown combatant raises NotFoundError."""
        with pytest.raises(NotFoundError):
            db.update_combatant("missing", hp=1)

    def test_roster_filtered_by_kind(self, db: Database) -> None:
        """Test the roster can be listed per kind in insertion order."""
        db.add_combatant(GAME_ID, ParticipantType.NPC, "Orc", hp=5, max_hp=5)
        db.add_combatant(GAME_ID, ParticipantType.PLAYER, "Aria", hp=5, max_hp=5)
        db.add_combatant(GAME_ID, ParticipantType.NPC, "Goblin", hp=5, max_hp=5)

        npcs = db.get_game_roster(GAME_ID, ParticipantType.NPC)

        assert [c.name for c in npcs] == ["Orc", "Goblin"]
        assert len(db.get_game_roster(GAME_ID)) == 3

    def test_delete(self, db: Database) -> None:
        """Test deleting a roster entry."""
        orc = db.add_combatant(GAME_ID, ParticipantType.NPC, "Orc", hp=5, max_hp=5)

        assert db.delete_combatant(orc.id) is True
        assert db.get_combatant(orc.id) is None


class TestActivity:
    """Tests for activity rows."""

    def test_typed_round_trip(self, db: Database) -> None:
        """Test stored events come back as their own class."""
        event = CombatHealingEvent(
            message="Aria healed Bram for 4 HP.",
            actor_name="Aria", target_name="Bram", healing=4, new_hp=9, max_hp=15,
        )

        record = db.append_activity(GAME_ID, event)

        (loaded,) = db.get_activity(GAME_ID)
        assert loaded.id == record.id
        assert isinstance(loaded.event, CombatHealingEvent)
        assert loaded.message == "Aria healed Bram for 4 HP."
