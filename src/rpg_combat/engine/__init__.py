"""Combat engine: dice, encounters, turns and resolution.

Submodules:
    dice: Dice rolling on top of the d20 library.
    encounter: Encounter lifecycle and initiative.
    turn_sequencer: Turn/round progression and end conditions.
    resolution: Damage, healing and their consequences.
    progression: XP awarded for defeating NPCs.
    session: The combat flow for one client.
"""

from __future__ import annotations

from rpg_combat.engine.dice import (
    DiceRoller,
    DiceRollResult,
    DieRoll,
    apply_critical_damage,
    apply_modifier,
    format_dice_result,
    format_die_roll,
    roll_dice,
    roll_die,
    roll_with_modifier,
)
from rpg_combat.engine.encounter import EncounterManager, rank_by_initiative
from rpg_combat.engine.progression import XpAward, award_xp, xp_for_kill
from rpg_combat.engine.resolution import CombatActionResult, CombatResolver
from rpg_combat.engine.session import ActionOutcome, CombatSession
from rpg_combat.engine.turn_sequencer import (
    CombatEndCondition,
    TurnSequencer,
    all_npcs_defeated,
    all_players_defeated,
    authorize_turn,
    check_end_conditions,
    turn_ordered,
    whose_turn,
)


__all__ = [
    # Dice
    "DiceRoller",
    "DiceRollResult",
    "DieRoll",
    "apply_critical_damage",
    "apply_modifier",
    "format_dice_result",
    "format_die_roll",
    "roll_dice",
    "roll_die",
    "roll_with_modifier",
    # Encounters
    "EncounterManager",
    "rank_by_initiative",
    # Turns
    "TurnSequencer",
    "turn_ordered",
    "whose_turn",
    "authorize_turn",
    "CombatEndCondition",
    "all_npcs_defeated",
    "all_players_defeated",
    "check_end_conditions",
    # Resolution
    "CombatResolver",
    "CombatActionResult",
    "XpAward",
    "award_xp",
    "xp_for_kill",
    # Session
    "CombatSession",
    "ActionOutcome",
]
