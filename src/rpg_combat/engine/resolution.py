"""Combat resolution: rolls, damage, healing and their consequences.

A resolved action changes roster health first and records it second. The
combat log and the activity log are audit trails: failures to write them
are logged and never undo accepted damage.

Reaching 0 HP removes an NPC from the roster entirely, while a player stays
on the roster as ``inactive``. Players are never deleted here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rpg_combat.core.exceptions import (
    InvalidEncounterStateError,
    NotFoundError,
    ValidationError,
)
from rpg_combat.core.logging import get_logger
from rpg_combat.engine.dice import DiceRoller, DiceRollResult, apply_critical_damage
from rpg_combat.engine.progression import XpAward, award_xp, xp_for_kill
from rpg_combat.models.combat import CombatAction, Combatant, CombatTarget, DamageDealt
from rpg_combat.models.enums import (
    CombatantStatus,
    EncounterStatus,
    ParticipantType,
    TargetType,
)
from rpg_combat.models.events import (
    CombatDamageEvent,
    CombatHealingEvent,
    CombatXpEvent,
    StatusChangedEvent,
)


if TYPE_CHECKING:
    from rpg_combat.core.config import Settings
    from rpg_combat.models.combat import CombatLogEntry, TargetRef
    from rpg_combat.models.encounter import Encounter
    from rpg_combat.models.events import ActivityEvent
    from rpg_combat.realtime.activity import ActivityLog
    from rpg_combat.storage.database import Database

logger = get_logger(__name__)

_AD_HOC_HEAL = CombatAction(name="Heal", is_healing=True)


@dataclass
class CombatActionResult:
    """Outcome of one resolved action.

    Attributes:
        action: The action used.
        roll_result: The roll, or None when damage was entered by hand.
        targets: Targets after the action (a deleted NPC shows 0 HP, dead).
        damage_dealt: Per-target damage; healing is recorded as negative.
        critical_hits: IDs of targets hit by a critical roll.
        fumbled: Whether the roll fumbled.
        defeated: IDs of targets brought from above 0 HP to 0 HP.
        xp_awards: XP granted to the actor, keyed by defeated target ID.
        log_entry: The combat log entry, or None if it could not be written.
    """

    action: CombatAction
    roll_result: DiceRollResult | None
    targets: list[CombatTarget] = field(default_factory=list)
    damage_dealt: list[DamageDealt] = field(default_factory=list)
    critical_hits: list[str] = field(default_factory=list)
    fumbled: bool = False
    defeated: list[str] = field(default_factory=list)
    xp_awards: dict[str, XpAward] = field(default_factory=dict)
    log_entry: CombatLogEntry | None = None

    @property
    def total_damage(self) -> int:
        """Sum of damage across all targets."""
        return sum(d.damage for d in self.damage_dealt)


def _validate_targets(action: CombatAction | None, targets: list[CombatTarget]) -> None:
    if not targets:
        raise ValidationError("At least one target is required", field_name="targets")
    if action is not None and action.target_type == TargetType.SINGLE and len(targets) > 1:
        raise ValidationError(
            "Single-target action used on several targets",
            field_name="targets",
            invalid_value=len(targets),
            details={"action": action.name},
        )
    seen: set[str] = set()
    for target in targets:
        if target.id in seen:
            raise ValidationError(
                "Target listed more than once",
                field_name="targets",
                invalid_value=target.id,
            )
        seen.add(target.id)


class CombatResolver:
    """Apply combat actions to the roster and record them."""

    def __init__(
        self,
        database: Database | None = None,
        roller: DiceRoller | None = None,
        settings: Settings | None = None,
        activity_log: ActivityLog | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            database: Store to use. Defaults to the global database.
            roller: Dice roller. Defaults to a fresh DiceRoller.
            settings: Settings to use. Defaults to the global settings.
            activity_log: Where to announce results. Nothing is announced without one.
        """
        if database is None:
            from rpg_combat.storage.database import get_database

            database = get_database()
        if settings is None:
            from rpg_combat.core.config import get_settings

            settings = get_settings()

        self._db = database
        self._roller = roller or DiceRoller()
        self._settings = settings
        self._activity = activity_log

    # =========================================================================
    # Public API
    # =========================================================================

    def execute_combat_action(
        self,
        action: CombatAction,
        targets: list[CombatTarget],
        actor: TargetRef,
        encounter_id: str,
    ) -> CombatActionResult:
        """Roll an action once and apply it to every target.

        A critical roll multiplies the total once and every target takes the
        same amount. Healing actions restore the rolled total instead.

        Args:
            action: The action used.
            targets: Chosen targets.
            actor: The acting combatant.
            encounter_id: Encounter the action belongs to.

        Returns:
            The resolved outcome.

        Raises:
            ValidationError: If the targets do not fit the action.
            NotFoundError: If the encounter or a target does not exist.
            InvalidEncounterStateError: If the encounter is not active.
        """
        _validate_targets(action, targets)
        encounter = self._require_encounter(encounter_id, EncounterStatus.ACTIVE)
        combatants = self._load_combatants(targets)

        roll = self._roller.roll_with_modifier(action.dice_type, action.dice_amount, action.modifier)
        amount = max(0, roll.final_total)

        if action.heals:
            return self._resolve_healing(encounter, action, actor, combatants, amount, roll)

        if roll.has_critical:
            amount = apply_critical_damage(amount, self._settings.combat.critical_multiplier)

        return self._resolve_damage(encounter, action, actor, combatants, amount, roll)

    def apply_damage(
        self,
        targets: list[CombatTarget],
        damage: int,
        actor: TargetRef,
        encounter_id: str,
        action: CombatAction,
    ) -> CombatActionResult:
        """Apply damage entered by hand after the master confirmed a hit.

        Raises:
            ValidationError: If damage is negative or the targets do not fit.
            NotFoundError: If the encounter or a target does not exist.
            InvalidEncounterStateError: If the encounter is not active.
        """
        if damage < 0:
            raise ValidationError("Damage cannot be negative", field_name="damage", invalid_value=damage)
        _validate_targets(action, targets)
        encounter = self._require_encounter(encounter_id, EncounterStatus.ACTIVE)
        combatants = self._load_combatants(targets)
        return self._resolve_damage(encounter, action, actor, combatants, damage, None)

    def apply_healing(
        self,
        targets: list[CombatTarget],
        amount: int,
        actor: TargetRef,
        encounter_id: str,
        action: CombatAction | None = None,
    ) -> CombatActionResult:
        """Restore hit points, capped at each target's maximum.

        A dead target stays dead. An inactive target healed above 0 HP is
        active again.

        Raises:
            ValidationError: If amount is negative or there are no targets.
            NotFoundError: If the encounter or a target does not exist.
            InvalidEncounterStateError: If the encounter is finished.
        """
        if amount < 0:
            raise ValidationError("Healing cannot be negative", field_name="amount", invalid_value=amount)
        _validate_targets(action, targets)
        encounter = self._require_encounter(
            encounter_id, EncounterStatus.SETUP, EncounterStatus.ACTIVE
        )
        combatants = self._load_combatants(targets)
        return self._resolve_healing(
            encounter, action or _AD_HOC_HEAL, actor, combatants, amount, None
        )

    def resurrect(self, target_id: str) -> Combatant:
        """Restore a combatant to full HP and active status.

        Raises:
            NotFoundError: If the combatant is not on the roster.
        """
        combatant = self._get_combatant(target_id)
        restored = self._db.update_combatant(
            target_id, hp=combatant.max_hp, status=CombatantStatus.ACTIVE
        )
        logger.info("Combatant resurrected", combatant_id=target_id, hp=restored.hp)
        self._announce(
            combatant.game_id,
            StatusChangedEvent(
                message=f"{combatant.name} was resurrected.",
                target_name=combatant.name,
                new_hp=restored.hp,
                new_status=restored.status,
            ),
        )
        return restored

    def kill(self, target_id: str) -> Combatant | None:
        """Drop a combatant to 0 HP with the usual consequences.

        Returns:
            The updated player, or None for an NPC (removed from the roster).

        Raises:
            NotFoundError: If the combatant is not on the roster.
        """
        combatant = self._get_combatant(target_id)
        target = self._write_health(combatant, 0)
        logger.info("Combatant killed", combatant_id=target_id, kind=combatant.kind.value)
        self._announce(
            combatant.game_id,
            StatusChangedEvent(
                message=f"{combatant.name} was killed.",
                target_name=combatant.name,
                new_hp=0,
                new_status=target.status,
            ),
        )
        return self._db.get_combatant(target_id)

    def get_combat_log(self, encounter_id: str, limit: int | None = None) -> list[CombatLogEntry]:
        """Get an encounter's combat log, newest first."""
        return self._db.get_combat_log(
            encounter_id, limit or self._settings.combat.combat_log_limit
        )

    # =========================================================================
    # Resolution
    # =========================================================================

    def _resolve_damage(
        self,
        encounter: Encounter,
        action: CombatAction,
        actor: TargetRef,
        combatants: list[Combatant],
        damage: int,
        roll: DiceRollResult | None,
    ) -> CombatActionResult:
        result = CombatActionResult(
            action=action,
            roll_result=roll,
            fumbled=roll is not None and roll.has_fumble,
        )

        for combatant in combatants:
            was_standing = combatant.hp > 0
            target = self._write_health(combatant, max(0, combatant.hp - damage))

            result.targets.append(target)
            result.damage_dealt.append(DamageDealt(target_id=combatant.id, damage=damage))
            if roll is not None and roll.has_critical:
                result.critical_hits.append(combatant.id)

            self._announce(
                encounter.game_id,
                CombatDamageEvent(
                    message=f"{actor.name} used {action.name} on {combatant.name} for {damage} damage.",
                    actor_id=actor.id,
                    actor_name=actor.name,
                    action_name=action.name,
                    target_name=combatant.name,
                    damage=damage,
                    new_hp=target.current_hp,
                    max_hp=target.max_hp,
                ),
            )

            if was_standing and target.current_hp == 0:
                result.defeated.append(combatant.id)
                if (
                    self._settings.combat.award_xp_on_kill
                    and actor.type == ParticipantType.PLAYER
                    and combatant.kind == ParticipantType.NPC
                ):
                    award = self._award_kill_xp(encounter.game_id, actor, combatant)
                    if award is not None:
                        result.xp_awards[combatant.id] = award

        result.log_entry = self._write_log(encounter.id, actor, action, roll, damage, result)
        logger.info(
            "Combat action resolved",
            encounter_id=encounter.id,
            actor_id=actor.id,
            action=action.name,
            damage=damage,
            targets=len(combatants),
            critical=bool(result.critical_hits),
            defeated=len(result.defeated),
        )
        return result

    def _resolve_healing(
        self,
        encounter: Encounter,
        action: CombatAction,
        actor: TargetRef,
        combatants: list[Combatant],
        amount: int,
        roll: DiceRollResult | None,
    ) -> CombatActionResult:
        result = CombatActionResult(
            action=action,
            roll_result=roll,
            fumbled=roll is not None and roll.has_fumble,
        )

        for combatant in combatants:
            new_hp = min(combatant.max_hp, combatant.hp + amount)
            status = combatant.status
            if status == CombatantStatus.INACTIVE and new_hp > 0:
                status = CombatantStatus.ACTIVE

            updated = self._db.update_combatant(combatant.id, hp=new_hp, status=status)
            healed = new_hp - combatant.hp

            result.targets.append(updated.to_target())
            result.damage_dealt.append(DamageDealt(target_id=combatant.id, damage=-healed))

            self._announce(
                encounter.game_id,
                CombatHealingEvent(
                    message=f"{actor.name} healed {combatant.name} for {healed} HP.",
                    actor_id=actor.id,
                    actor_name=actor.name,
                    target_name=combatant.name,
                    healing=healed,
                    new_hp=new_hp,
                    max_hp=combatant.max_hp,
                ),
            )

        result.log_entry = self._write_log(encounter.id, actor, action, roll, amount, result)
        logger.info(
            "Healing resolved",
            encounter_id=encounter.id,
            actor_id=actor.id,
            amount=amount,
            targets=len(combatants),
        )
        return result

    def _write_health(self, combatant: Combatant, new_hp: int) -> CombatTarget:
        """Persist a new HP value and the status change it implies."""
        if new_hp == 0 and combatant.kind == ParticipantType.NPC:
            self._db.delete_combatant(combatant.id)
            logger.info("NPC defeated", combatant_id=combatant.id, name=combatant.name)
            return CombatTarget(
                id=combatant.id,
                type=combatant.kind,
                name=combatant.name,
                current_hp=0,
                max_hp=combatant.max_hp,
                status=CombatantStatus.DEAD,
            )

        if new_hp == 0:
            status = (
                CombatantStatus.DEAD
                if combatant.status == CombatantStatus.DEAD
                else CombatantStatus.INACTIVE
            )
            updated = self._db.update_combatant(combatant.id, hp=0, status=status)
            logger.info("Player incapacitated", combatant_id=combatant.id, name=combatant.name)
            return updated.to_target()

        return self._db.update_combatant(combatant.id, hp=new_hp).to_target()

    def _award_kill_xp(
        self,
        game_id: str,
        actor: TargetRef,
        defeated: Combatant,
    ) -> XpAward | None:
        """Grant XP to a player for defeating an NPC. Never raises."""
        try:
            player = self._db.get_combatant(actor.id)
            if player is None:
                logger.warning("XP not awarded: player not on roster", actor_id=actor.id)
                return None

            gained = xp_for_kill(defeated.level, player.level)
            if gained <= 0:
                return None

            award = award_xp(player.xp_percentage, player.level, gained)
            self._db.update_combatant(
                player.id, xp_percentage=award.new_xp, level=award.new_level
            )
        except Exception:
            logger.exception("XP award failed", actor_id=actor.id, defeated_id=defeated.id)
            return None

        message = f"{player.name} gained {gained:g}% XP for defeating {defeated.name}."
        if award.leveled_up:
            message += f" Level up! Now level {award.new_level}."
        logger.info(
            "XP awarded",
            actor_id=actor.id,
            xp_gained=gained,
            new_level=award.new_level,
            leveled_up=award.leveled_up,
        )
        self._announce(
            game_id,
            CombatXpEvent(
                message=message,
                actor_id=actor.id,
                actor_name=player.name,
                target_name=defeated.name,
                xp_gained=gained,
                leveled_up=award.leveled_up,
                new_level=award.new_level,
            ),
        )
        return award

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require_encounter(self, encounter_id: str, *allowed: EncounterStatus) -> Encounter:
        encounter = self._db.get_encounter(encounter_id)
        if encounter is None:
            raise NotFoundError("Encounter not found", entity="encounter", entity_id=encounter_id)
        if encounter.status not in allowed:
            raise InvalidEncounterStateError(
                f"Cannot resolve actions in a {encounter.status} encounter",
                current_state=encounter.status.value,
                expected_states=[s.value for s in allowed],
            )
        return encounter

    def _get_combatant(self, combatant_id: str) -> Combatant:
        combatant = self._db.get_combatant(combatant_id)
        if combatant is None:
            raise NotFoundError("Combatant not found", entity="combatant", entity_id=combatant_id)
        return combatant

    def _load_combatants(self, targets: list[CombatTarget]) -> list[Combatant]:
        return [self._get_combatant(t.id) for t in targets]

    def _write_log(
        self,
        encounter_id: str,
        actor: TargetRef,
        action: CombatAction,
        roll: DiceRollResult | None,
        amount: int,
        result: CombatActionResult,
    ) -> CombatLogEntry | None:
        try:
            return self._db.insert_combat_log(
                encounter_id=encounter_id,
                actor=actor,
                action=action,
                roll_values=roll.values if roll is not None else [],
                roll_total=roll.total if roll is not None else amount,
                final_damage=amount,
                is_critical=roll is not None and roll.has_critical,
                is_fumble=roll is not None and roll.has_fumble,
                targets_hit=[t.ref() for t in result.targets],
                damage_dealt=result.damage_dealt,
            )
        except Exception:
            logger.exception("Combat log write failed", encounter_id=encounter_id, actor_id=actor.id)
            return None

    def _announce(self, game_id: str, event: ActivityEvent) -> None:
        if self._activity is None:
            return
        try:
            self._activity.record(game_id, event)
        except Exception:
            logger.exception("Activity event not recorded", game_id=game_id, event_type=event.type)


__all__ = [
    "CombatActionResult",
    "CombatResolver",
]
