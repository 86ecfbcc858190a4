"""SQLite persistence layer for the combat engine.

Provides persistent storage for:
- Encounters and their initiative entries
- The append-only combat log
- The per-game combat action catalogue
- The player/NPC roster (health and status)
- The activity log shown to every client

The store is the single source of truth shared by all clients. Encounter
rows carry a version column; every update is conditional on the version
the writer read, so a stale concurrent write fails instead of silently
overwriting a newer one.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Generator
from uuid import uuid4

from rpg_combat.core.exceptions import (
    ConcurrencyError,
    InvalidEncounterStateError,
    NotFoundError,
)
from rpg_combat.core.logging import get_logger
from rpg_combat.models.combat import (
    CombatAction,
    Combatant,
    CombatLogEntry,
    DamageDealt,
    TargetRef,
)
from rpg_combat.models.encounter import Encounter, InitiativeEntry
from rpg_combat.models.enums import (
    CombatantStatus,
    EncounterStatus,
    ParticipantType,
)
from rpg_combat.models.events import ACTIVITY_EVENT_ADAPTER, ActivityEvent

logger = get_logger(__name__)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class ActivityRecord:
    """A stored activity log row.

    Attributes:
        id: Unique identifier.
        game_id: Owning game.
        event: The typed activity event.
        created_at: When the row was written.
    """

    id: str
    game_id: str
    event: ActivityEvent
    created_at: datetime

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> ActivityRecord:
        """Create from database row."""
        return cls(
            id=row["id"],
            game_id=row["game_id"],
            event=ACTIVITY_EVENT_ADAPTER.validate_json(row["event_json"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    @property
    def message(self) -> str:
        """Human-readable text of the event."""
        return self.event.message


_ENCOUNTER_COLUMNS = (
    "id, game_id, name, status, current_turn, current_round, "
    "created_by, created_at, updated_at, version"
)
_ENTRY_COLUMNS = (
    "id, encounter_id, participant_type, participant_id, initiative_value, "
    "turn_order, has_acted, created_at, rowid AS created_seq"
)
_ENTRY_ORDER = "turn_order IS NULL, turn_order ASC, created_at ASC, created_seq ASC"
_ROSTER_COLUMNS = "id, game_id, kind, name, hp, max_hp, status, level, xp_percentage"

_ENCOUNTER_MUTABLE = frozenset({"name", "status", "current_turn", "current_round"})
_ENTRY_MUTABLE = frozenset({"initiative_value", "turn_order", "has_acted"})
_ROSTER_MUTABLE = frozenset({"name", "hp", "max_hp", "status", "level", "xp_percentage"})


def _encounter_from_row(row: sqlite3.Row) -> Encounter:
    return Encounter.model_validate(dict(row))


def _entry_from_row(row: sqlite3.Row) -> InitiativeEntry:
    data = dict(row)
    data["has_acted"] = bool(data["has_acted"])
    return InitiativeEntry.model_validate(data)


def _combatant_from_row(row: sqlite3.Row) -> Combatant:
    return Combatant.model_validate(dict(row))


def _combat_log_from_row(row: sqlite3.Row) -> CombatLogEntry:
    data = dict(row)
    data["roll_values"] = json.loads(data["roll_values"])
    data["targets_hit"] = [TargetRef.model_validate(t) for t in json.loads(data["targets_hit"])]
    data["damage_dealt"] = [DamageDealt.model_validate(d) for d in json.loads(data["damage_dealt"])]
    data["is_critical"] = bool(data["is_critical"])
    data["is_fumble"] = bool(data["is_fumble"])
    return CombatLogEntry.model_validate(data)


def _assignments(changes: dict[str, Any], allowed: frozenset[str]) -> tuple[str, list[Any]]:
    unknown = set(changes) - allowed
    if unknown:
        raise ValueError(f"Cannot update columns: {sorted(unknown)}")
    columns = sorted(changes)
    values = [
        int(changes[c]) if isinstance(changes[c], bool) else changes[c]
        for c in columns
    ]
    return ", ".join(f"{c} = ?" for c in columns), values


# =============================================================================
# Database Class
# =============================================================================


class Database:
    """SQLite database for encounter, roster and combat log persistence.

    Methods that take a ``conn`` argument join the caller's transaction
    when one is given (see :meth:`transaction`) and otherwise run in their
    own short transaction.
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: str | Path | None = None) -> None:
        """Initialize database.

        Args:
            db_path: Path to database file. If None, uses the configured path.
        """
        if db_path is None:
            from rpg_combat.core.config import get_settings

            self.db_path = get_settings().storage.database_path
        else:
            self.db_path = Path(db_path)

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

        logger.info("Database initialized", path=str(self.db_path))

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with proper cleanup."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Run several operations atomically under a write lock.

        Example:
            >>> with db.transaction() as conn:
            ...     db.reset_has_acted(encounter_id, conn=conn)
            ...     db.update_encounter(encounter_id, expected_version=3, conn=conn, current_turn=1)
        """
        with self._get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            yield conn

    @contextmanager
    def _use(self, conn: sqlite3.Connection | None) -> Generator[sqlite3.Connection, None, None]:
        if conn is not None:
            yield conn
        else:
            with self._get_connection() as own:
                yield own

    def _init_schema(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS encounters (
                    id TEXT PRIMARY KEY,
                    game_id TEXT NOT NULL,
                    name TEXT,
                    status TEXT NOT NULL DEFAULT 'setup',
                    current_turn INTEGER NOT NULL DEFAULT 0,
                    current_round INTEGER NOT NULL DEFAULT 1,
                    created_by TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    version INTEGER NOT NULL DEFAULT 0
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS initiative_entries (
                    id TEXT PRIMARY KEY,
                    encounter_id TEXT NOT NULL REFERENCES encounters(id) ON DELETE CASCADE,
                    participant_type TEXT NOT NULL,
                    participant_id TEXT NOT NULL,
                    initiative_value INTEGER,
                    turn_order INTEGER,
                    has_acted INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS combat_logs (
                    id TEXT PRIMARY KEY,
                    encounter_id TEXT NOT NULL,
                    actor_id TEXT NOT NULL,
                    actor_type TEXT NOT NULL,
                    actor_name TEXT NOT NULL,
                    action_name TEXT NOT NULL,
                    action_id TEXT,
                    dice_type INTEGER NOT NULL,
                    dice_amount INTEGER NOT NULL,
                    dice_modifier INTEGER NOT NULL,
                    roll_values TEXT NOT NULL,
                    roll_total INTEGER NOT NULL,
                    final_damage INTEGER NOT NULL,
                    is_critical INTEGER NOT NULL,
                    is_fumble INTEGER NOT NULL,
                    targets_hit TEXT NOT NULL,
                    damage_dealt TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS combat_actions (
                    id TEXT PRIMARY KEY,
                    game_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    dice_type INTEGER NOT NULL,
                    dice_amount INTEGER NOT NULL DEFAULT 1,
                    modifier INTEGER NOT NULL DEFAULT 0,
                    damage_type TEXT NOT NULL DEFAULT '',
                    target_type TEXT NOT NULL DEFAULT 'single',
                    description TEXT,
                    is_healing INTEGER NOT NULL DEFAULT 0,
                    created_by TEXT,
                    created_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS roster (
                    id TEXT PRIMARY KEY,
                    game_id TEXT NOT NULL,
                    kind TEXT NOT NULL,
                    name TEXT NOT NULL,
                    hp INTEGER NOT NULL,
                    max_hp INTEGER NOT NULL,
                    status TEXT NOT NULL DEFAULT 'active',
                    level INTEGER NOT NULL DEFAULT 1,
                    xp_percentage REAL NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS activity_log (
                    id TEXT PRIMARY KEY,
                    game_id TEXT NOT NULL,
                    event_type TEXT NOT NULL,
                    message TEXT NOT NULL,
                    event_json TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)

            # At most one setup/active encounter per game
            cursor.execute("""
                CREATE UNIQUE INDEX IF NOT EXISTS idx_encounters_one_open
                ON encounters(game_id) WHERE status IN ('setup', 'active')
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_entries_encounter
                ON initiative_entries(encounter_id)
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_combat_logs_encounter
                ON combat_logs(encounter_id, created_at DESC)
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_roster_game
                ON roster(game_id, kind)
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_activity_game
                ON activity_log(game_id, created_at DESC)
            """)

            cursor.execute("""
                INSERT OR REPLACE INTO schema_version (version) VALUES (?)
            """, (self.SCHEMA_VERSION,))

    # =========================================================================
    # Encounter Operations
    # =========================================================================

    def create_encounter(
        self,
        game_id: str,
        *,
        created_by: str | None = None,
        name: str | None = None,
    ) -> Encounter:
        """Insert a new encounter in setup status.

        Args:
            game_id: Owning game.
            created_by: Creator identity.
            name: Optional display name.

        Returns:
            The created encounter.

        Raises:
            InvalidEncounterStateError: If the game already has an open encounter.
        """
        encounter_id = str(uuid4())
        now = datetime.now().isoformat()

        try:
            with self._get_connection() as conn:
                conn.execute(f"""
                    INSERT INTO encounters ({_ENCOUNTER_COLUMNS})
                    VALUES (?, ?, ?, ?, 0, 1, ?, ?, ?, 0)
                """, (encounter_id, game_id, name, EncounterStatus.SETUP.value,
                      created_by, now, now))
                # Validated before commit
                row = conn.execute(
                    f"SELECT {_ENCOUNTER_COLUMNS} FROM encounters WHERE id = ?",
                    (encounter_id,),
                ).fetchone()
                encounter = _encounter_from_row(row)
        except sqlite3.IntegrityError as exc:
            raise InvalidEncounterStateError(
                "Game already has an open encounter",
                details={"game_id": game_id},
            ) from exc

        logger.info("Encounter row created", encounter_id=encounter_id, game_id=game_id)
        return encounter

    def get_encounter(
        self,
        encounter_id: str,
        *,
        conn: sqlite3.Connection | None = None,
    ) -> Encounter | None:
        """Get an encounter by ID.

        Returns:
            The encounter if found, None otherwise.
        """
        with self._use(conn) as c:
            row = c.execute(
                f"SELECT {_ENCOUNTER_COLUMNS} FROM encounters WHERE id = ?",
                (encounter_id,),
            ).fetchone()
        return _encounter_from_row(row) if row else None

    def get_active_encounter(self, game_id: str) -> Encounter | None:
        """Get the game's setup or active encounter, if any."""
        with self._get_connection() as conn:
            row = conn.execute(f"""
                SELECT {_ENCOUNTER_COLUMNS} FROM encounters
                WHERE game_id = ? AND status IN ('setup', 'active')
                ORDER BY created_at DESC, rowid DESC LIMIT 1
            """, (game_id,)).fetchone()
        return _encounter_from_row(row) if row else None

    def get_game_encounters(
        self,
        game_id: str,
        status: EncounterStatus | None = None,
    ) -> list[Encounter]:
        """Get a game's encounters, newest first.

        Args:
            game_id: Owning game.
            status: Optional status filter.
        """
        query = f"SELECT {_ENCOUNTER_COLUMNS} FROM encounters WHERE game_id = ?"
        params: list[Any] = [game_id]
        if status is not None:
            query += " AND status = ?"
            params.append(status.value)
        query += " ORDER BY created_at DESC, rowid DESC"

        with self._get_connection() as conn:
            return [_encounter_from_row(r) for r in conn.execute(query, params).fetchall()]

    def update_encounter(
        self,
        encounter_id: str,
        *,
        expected_version: int,
        conn: sqlite3.Connection | None = None,
        **changes: Any,
    ) -> Encounter:
        """Update an encounter if nobody changed it since it was read.

        Args:
            encounter_id: Encounter to update.
            expected_version: Version the caller based its change on.
            conn: Optional transaction to join.
            **changes: Columns to set (name, status, current_turn, current_round).

        Returns:
            The updated encounter.

        Raises:
            NotFoundError: If the encounter does not exist.
            ConcurrencyError: If the stored version differs from expected_version.
        """
        assignments, values = _assignments(
            {k: (v.value if isinstance(v, EncounterStatus) else v) for k, v in changes.items()},
            _ENCOUNTER_MUTABLE,
        )
        now = datetime.now().isoformat()

        with self._use(conn) as c:
            cursor = c.execute(f"""
                UPDATE encounters
                SET {assignments}, updated_at = ?, version = version + 1
                WHERE id = ? AND version = ?
            """, (*values, now, encounter_id, expected_version))

            if cursor.rowcount == 0:
                current = self.get_encounter(encounter_id, conn=c)
                if current is None:
                    raise NotFoundError(
                        "Encounter not found", entity="encounter", entity_id=encounter_id
                    )
                raise ConcurrencyError(
                    "Encounter was modified by another client",
                    entity_id=encounter_id,
                    expected_version=expected_version,
                    details={"current_version": current.version},
                )

            updated = self.get_encounter(encounter_id, conn=c)

        if updated is None:
            raise NotFoundError("Encounter not found", entity="encounter", entity_id=encounter_id)
        return updated

    # =========================================================================
    # Initiative Entry Operations
    # =========================================================================

    def add_initiative_entry(
        self,
        encounter_id: str,
        participant_type: ParticipantType,
        participant_id: str,
    ) -> InitiativeEntry:
        """Insert an entry with no initiative and no turn order.

        Returns:
            The created entry.
        """
        entry_id = str(uuid4())
        now = datetime.now().isoformat()

        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO initiative_entries
                (id, encounter_id, participant_type, participant_id,
                 initiative_value, turn_order, has_acted, created_at, updated_at)
                VALUES (?, ?, ?, ?, NULL, NULL, 0, ?, ?)
            """, (entry_id, encounter_id, participant_type.value, participant_id, now, now))
            entry = self.get_initiative_entry(entry_id, conn=conn)

        if entry is None:
            raise NotFoundError(
                "Initiative entry not found", entity="initiative_entry", entity_id=entry_id
            )
        return entry

    def get_initiative_entry(
        self,
        entry_id: str,
        *,
        conn: sqlite3.Connection | None = None,
    ) -> InitiativeEntry | None:
        """Get an initiative entry by ID."""
        with self._use(conn) as c:
            row = c.execute(
                f"SELECT {_ENTRY_COLUMNS} FROM initiative_entries WHERE id = ?",
                (entry_id,),
            ).fetchone()
        return _entry_from_row(row) if row else None

    def get_encounter_participants(
        self,
        encounter_id: str,
        *,
        conn: sqlite3.Connection | None = None,
    ) -> list[InitiativeEntry]:
        """Get an encounter's entries by turn order, unranked last."""
        with self._use(conn) as c:
            rows = c.execute(f"""
                SELECT {_ENTRY_COLUMNS} FROM initiative_entries
                WHERE encounter_id = ?
                ORDER BY {_ENTRY_ORDER}
            """, (encounter_id,)).fetchall()
        return [_entry_from_row(r) for r in rows]

    def update_initiative_entry(
        self,
        entry_id: str,
        *,
        conn: sqlite3.Connection | None = None,
        **changes: Any,
    ) -> InitiativeEntry:
        """Update columns of one entry.

        Raises:
            NotFoundError: If the entry does not exist.
        """
        assignments, values = _assignments(changes, _ENTRY_MUTABLE)
        now = datetime.now().isoformat()

        with self._use(conn) as c:
            c.execute(f"""
                UPDATE initiative_entries SET {assignments}, updated_at = ?
                WHERE id = ?
            """, (*values, now, entry_id))
            entry = self.get_initiative_entry(entry_id, conn=c)

        if entry is None:
            raise NotFoundError(
                "Initiative entry not found", entity="initiative_entry", entity_id=entry_id
            )
        return entry

    def set_turn_orders(self, ranking: dict[str, int | None]) -> None:
        """Write several turn order ranks in one transaction.

        Args:
            ranking: Mapping of entry ID to rank (None clears it).
        """
        now = datetime.now().isoformat()
        with self._get_connection() as conn:
            conn.executemany(
                "UPDATE initiative_entries SET turn_order = ?, updated_at = ? WHERE id = ?",
                [(rank, now, entry_id) for entry_id, rank in ranking.items()],
            )

    def reset_has_acted(
        self,
        encounter_id: str,
        *,
        conn: sqlite3.Connection | None = None,
    ) -> None:
        """Clear has_acted on every entry of an encounter."""
        now = datetime.now().isoformat()
        with self._use(conn) as c:
            c.execute("""
                UPDATE initiative_entries SET has_acted = 0, updated_at = ?
                WHERE encounter_id = ?
            """, (now, encounter_id))

    def delete_initiative_entry(self, entry_id: str) -> bool:
        """Delete an entry.

        Returns:
            True if deleted, False if not found.
        """
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM initiative_entries WHERE id = ?", (entry_id,))
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info("Initiative entry deleted", entry_id=entry_id)
        return deleted

    # =========================================================================
    # Combat Log Operations
    # =========================================================================

    def insert_combat_log(
        self,
        *,
        encounter_id: str,
        actor: TargetRef,
        action: CombatAction,
        roll_values: list[int],
        roll_total: int,
        final_damage: int,
        is_critical: bool,
        is_fumble: bool,
        targets_hit: list[TargetRef],
        damage_dealt: list[DamageDealt],
    ) -> CombatLogEntry:
        """Append one combat log entry.

        Returns:
            The stored, immutable entry.
        """
        entry = CombatLogEntry(
            id=str(uuid4()),
            encounter_id=encounter_id,
            actor_id=actor.id,
            actor_type=actor.type,
            actor_name=actor.name,
            action_name=action.name,
            action_id=action.id,
            dice_type=action.dice_type,
            dice_amount=action.dice_amount,
            dice_modifier=action.modifier,
            roll_values=roll_values,
            roll_total=roll_total,
            final_damage=final_damage,
            is_critical=is_critical,
            is_fumble=is_fumble,
            targets_hit=targets_hit,
            damage_dealt=damage_dealt,
            created_at=datetime.now(),
        )

        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO combat_logs
                (id, encounter_id, actor_id, actor_type, actor_name, action_name,
                 action_id, dice_type, dice_amount, dice_modifier, roll_values,
                 roll_total, final_damage, is_critical, is_fumble, targets_hit,
                 damage_dealt, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                entry.id, entry.encounter_id, entry.actor_id, entry.actor_type.value,
                entry.actor_name, entry.action_name, entry.action_id, entry.dice_type,
                entry.dice_amount, entry.dice_modifier, json.dumps(entry.roll_values),
                entry.roll_total, entry.final_damage, int(entry.is_critical),
                int(entry.is_fumble),
                json.dumps([t.model_dump(mode="json") for t in entry.targets_hit]),
                json.dumps([d.model_dump(mode="json") for d in entry.damage_dealt]),
                entry.created_at.isoformat(),
            ))

        return entry

    def get_combat_log(self, encounter_id: str, limit: int = 50) -> list[CombatLogEntry]:
        """Get an encounter's combat log, newest first."""
        with self._get_connection() as conn:
            rows = conn.execute("""
                SELECT * FROM combat_logs WHERE encounter_id = ?
                ORDER BY created_at DESC, rowid DESC LIMIT ?
            """, (encounter_id, limit)).fetchall()
        return [_combat_log_from_row(r) for r in rows]

    # =========================================================================
    # Combat Action Catalogue
    # =========================================================================

    def create_combat_action(
        self,
        game_id: str,
        action: CombatAction,
        *,
        created_by: str | None = None,
    ) -> CombatAction:
        """Store a combat action definition for a game.

        Returns:
            The stored action with its ID and game ID set.
        """
        action_id = str(uuid4())
        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO combat_actions
                (id, game_id, name, dice_type, dice_amount, modifier, damage_type,
                 target_type, description, is_healing, created_by, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (action_id, game_id, action.name, action.dice_type, action.dice_amount,
                  action.modifier, action.damage_type, action.target_type.value,
                  action.description, int(action.is_healing), created_by,
                  datetime.now().isoformat()))

        logger.info("Combat action created", action_id=action_id, name=action.name)
        return action.model_copy(update={"id": action_id, "game_id": game_id})

    def get_combat_actions(self, game_id: str) -> list[CombatAction]:
        """Get a game's combat actions ordered by name."""
        with self._get_connection() as conn:
            rows = conn.execute("""
                SELECT * FROM combat_actions WHERE game_id = ? ORDER BY name ASC
            """, (game_id,)).fetchall()
        return [CombatAction.model_validate(dict(r)) for r in rows]

    def get_combat_action(self, action_id: str) -> CombatAction | None:
        """Get one combat action by ID."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM combat_actions WHERE id = ?", (action_id,)
            ).fetchone()
        return CombatAction.model_validate(dict(row)) if row else None

    # =========================================================================
    # Roster Operations
    # =========================================================================

    def add_combatant(
        self,
        game_id: str,
        kind: ParticipantType,
        name: str,
        *,
        hp: int,
        max_hp: int,
        level: int = 1,
        status: CombatantStatus = CombatantStatus.ACTIVE,
        combatant_id: str | None = None,
    ) -> Combatant:
        """Insert a player or NPC into a game's roster.

        Returns:
            The stored combatant.
        """
        combatant = Combatant(
            id=combatant_id or str(uuid4()),
            game_id=game_id,
            kind=kind,
            name=name,
            hp=hp,
            max_hp=max_hp,
            status=status,
            level=level,
        )
        with self._get_connection() as conn:
            conn.execute(f"""
                INSERT INTO roster ({_ROSTER_COLUMNS}, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (combatant.id, game_id, kind.value, name, hp, max_hp, status.value,
                  level, combatant.xp_percentage, datetime.now().isoformat()))
        return combatant

    def get_combatant(self, combatant_id: str) -> Combatant | None:
        """Get a roster entry by ID."""
        with self._get_connection() as conn:
            row = conn.execute(
                f"SELECT {_ROSTER_COLUMNS} FROM roster WHERE id = ?", (combatant_id,)
            ).fetchone()
        return _combatant_from_row(row) if row else None

    def get_game_roster(
        self,
        game_id: str,
        kind: ParticipantType | None = None,
    ) -> list[Combatant]:
        """Get a game's roster, optionally filtered by kind."""
        query = f"SELECT {_ROSTER_COLUMNS} FROM roster WHERE game_id = ?"
        params: list[Any] = [game_id]
        if kind is not None:
            query += " AND kind = ?"
            params.append(kind.value)
        query += " ORDER BY created_at ASC, rowid ASC"

        with self._get_connection() as conn:
            return [_combatant_from_row(r) for r in conn.execute(query, params).fetchall()]

    def update_combatant(self, combatant_id: str, **changes: Any) -> Combatant:
        """Update roster columns (hp, status, level, xp_percentage, ...).

        Raises:
            NotFoundError: If the roster entry does not exist.
        """
        assignments, values = _assignments(
            {k: (v.value if isinstance(v, CombatantStatus) else v) for k, v in changes.items()},
            _ROSTER_MUTABLE,
        )
        with self._get_connection() as conn:
            cursor = conn.execute(
                f"UPDATE roster SET {assignments} WHERE id = ?",
                (*values, combatant_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(
                    "Combatant not found", entity="combatant", entity_id=combatant_id
                )

        updated = self.get_combatant(combatant_id)
        if updated is None:
            raise NotFoundError("Combatant not found", entity="combatant", entity_id=combatant_id)
        return updated

    def delete_combatant(self, combatant_id: str) -> bool:
        """Remove a roster entry.

        Returns:
            True if deleted, False if not found.
        """
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM roster WHERE id = ?", (combatant_id,))
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info("Combatant removed from roster", combatant_id=combatant_id)
        return deleted

    # =========================================================================
    # Activity Log Operations
    # =========================================================================

    def append_activity(self, game_id: str, event: ActivityEvent) -> ActivityRecord:
        """Append an activity event for a game.

        Returns:
            The stored record.
        """
        record = ActivityRecord(
            id=str(uuid4()),
            game_id=game_id,
            event=event,
            created_at=datetime.now(),
        )
        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO activity_log (id, game_id, event_type, message, event_json, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (record.id, game_id, event.type, event.message, event.model_dump_json(),
                  record.created_at.isoformat()))
        return record

    def get_activity(self, game_id: str, limit: int = 100) -> list[ActivityRecord]:
        """Get a game's most recent activity, oldest first."""
        with self._get_connection() as conn:
            rows = conn.execute("""
                SELECT id, game_id, event_json, created_at FROM activity_log
                WHERE game_id = ? ORDER BY created_at DESC, rowid DESC LIMIT ?
            """, (game_id, limit)).fetchall()
        return [ActivityRecord.from_row(r) for r in reversed(rows)]


# =============================================================================
# Singleton Instance
# =============================================================================


_database_instance: Database | None = None


def get_database() -> Database:
    """Get the global database instance.

    Returns:
        Database singleton instance.
    """
    global _database_instance

    if _database_instance is None:
        _database_instance = Database()

    return _database_instance
