"""Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the RPG combat engine test suite.
"""

from __future__ import annotations

from collections import deque
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest

from rpg_combat.engine.dice import DiceRoller


if TYPE_CHECKING:
    from collections.abc import Generator


GAME_ID = "game-1"


class ScriptedRoller(DiceRoller):
    """Dice roller that returns pre-loaded values in order."""

    def __init__(self) -> None:
        super().__init__()
        self._script: deque[int] = deque()

    def push(self, *values: int) -> None:
        """Queue die values for the next rolls."""
        self._script.extend(values)

    def _roll_values(self, sides: int, count: int) -> list[int]:
        if len(self._script) < count:
            raise AssertionError(f"Dice script exhausted rolling {count}d{sides}")
        return [self._script.popleft() for _ in range(count)]


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from rpg_combat.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "RPG_COMBAT_DEBUG": "true",
        "RPG_COMBAT_LOG_LEVEL": "DEBUG",
        "RPG_COMBAT_COMBAT_CRITICAL_MULTIPLIER": "3",
        "RPG_COMBAT_COMBAT_ALLOW_REINFORCEMENTS": "true",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Provide a temporary database file path."""
    return tmp_path / "combat.db"


@pytest.fixture
def settings(db_path: Path) -> Any:
    """Provide settings pointing at the temporary database."""
    from rpg_combat.core.config import Settings, StorageSettings

    return Settings(storage=StorageSettings(database_path=db_path))


@pytest.fixture
def reinforcement_settings(db_path: Path) -> Any:
    """Provide settings that let participants join active encounters."""
    from rpg_combat.core.config import CombatSettings, Settings, StorageSettings

    return Settings(
        storage=StorageSettings(database_path=db_path),
        combat=CombatSettings(allow_reinforcements=True),
    )


# =============================================================================
# Storage Fixtures
# =============================================================================


@pytest.fixture
def database(db_path: Path) -> Any:
    """Provide a fresh database in a temporary directory."""
    from rpg_combat.storage.database import Database

    return Database(db_path)


@pytest.fixture
def roster(database: Any) -> dict[str, Any]:
    """Seed a game's roster with two players and two NPCs.

    Returns:
        Combatants keyed by short name.
    """
    from rpg_combat.models.enums import ParticipantType

    return {
        "aria": database.add_combatant(
            GAME_ID, ParticipantType.PLAYER, "Aria",
            hp=20, max_hp=20, level=2, combatant_id="p-aria",
        ),
        "bram": database.add_combatant(
            GAME_ID, ParticipantType.PLAYER, "Bram",
            hp=15, max_hp=15, level=1, combatant_id="p-bram",
        ),
        "goblin": database.add_combatant(
            GAME_ID, ParticipantType.NPC, "Goblin",
            hp=7, max_hp=7, level=2, combatant_id="n-goblin",
        ),
        "orc": database.add_combatant(
            GAME_ID, ParticipantType.NPC, "Orc",
            hp=15, max_hp=15, level=3, combatant_id="n-orc",
        ),
    }


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def scripted_roller() -> ScriptedRoller:
    """Provide a dice roller with scripted results."""
    return ScriptedRoller()


@pytest.fixture
def dice_roller() -> DiceRoller:
    """Provide a seeded dice roller."""
    return DiceRoller(seed=42)


@pytest.fixture
def bus() -> Any:
    """Provide an in-memory message bus."""
    from rpg_combat.realtime.bus import InMemoryBus

    return InMemoryBus()


@pytest.fixture
def activity_log(database: Any, bus: Any, settings: Any) -> Any:
    """Provide an activity log wired to the test bus."""
    from rpg_combat.realtime.activity import ActivityLog

    return ActivityLog(database, bus, settings)


@pytest.fixture
def manager(database: Any, settings: Any) -> Any:
    """Provide an encounter manager."""
    from rpg_combat.engine.encounter import EncounterManager

    return EncounterManager(database, settings)


@pytest.fixture
def resolver(database: Any, scripted_roller: ScriptedRoller, settings: Any, activity_log: Any) -> Any:
    """Provide a combat resolver with scripted dice."""
    from rpg_combat.engine.resolution import CombatResolver

    return CombatResolver(database, scripted_roller, settings, activity_log)


@pytest.fixture
def session(
    database: Any,
    bus: Any,
    settings: Any,
    scripted_roller: ScriptedRoller,
    roster: dict[str, Any],
) -> Generator[Any, None, None]:
    """Provide a combat session over the seeded roster."""
    from rpg_combat.engine.session import CombatSession

    combat_session = CombatSession(database, bus, settings, scripted_roller)
    yield combat_session
    combat_session.close()


@pytest.fixture
def active_encounter(manager: Any, roster: dict[str, Any]) -> Any:
    """Provide an active encounter: Aria (18), Goblin (12), Bram (9)."""
    from rpg_combat.models.enums import ParticipantType

    encounter = manager.create_encounter(GAME_ID, created_by="master")
    aria = manager.add_participant(encounter.id, ParticipantType.PLAYER, "p-aria")
    goblin = manager.add_participant(encounter.id, ParticipantType.NPC, "n-goblin")
    bram = manager.add_participant(encounter.id, ParticipantType.PLAYER, "p-bram")
    manager.roll_initiative(aria.id, 18)
    manager.roll_initiative(goblin.id, 12)
    manager.roll_initiative(bram.id, 9)
    manager.calculate_turn_order(encounter.id)
    return manager.activate_encounter(encounter.id)
