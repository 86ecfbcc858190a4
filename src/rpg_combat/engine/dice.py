"""Dice rolling for combat actions and initiative.

Rolls are produced with the d20 library. Critical and fumble tags exist
only for the 20-sided die: a natural 20 is critical, a natural 1 a fumble.
Detecting a critical and doubling damage are separate steps so callers can
apply house rules in between.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any

import d20

from rpg_combat.core.constants import CRITICAL_DIE, DEFAULT_CRITICAL_MULTIPLIER, INITIATIVE_DIE
from rpg_combat.core.exceptions import DiceRollError
from rpg_combat.core.logging import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class DieRoll:
    """A single die result.

    Attributes:
        die_type: Number of sides.
        value: Rolled value in [1, die_type].
        is_critical: Natural 20 on a d20.
        is_fumble: Natural 1 on a d20.
    """

    die_type: int
    value: int
    is_critical: bool = False
    is_fumble: bool = False


@dataclass(frozen=True)
class DiceRollResult:
    """A set of dice with a flat modifier applied.

    Attributes:
        rolls: Individual dice in roll order.
        total: Sum of the raw dice.
        modifier: Flat modifier applied.
        final_total: total + modifier.
        has_critical: True if any die in the set was critical.
        has_fumble: True if any die in the set was a fumble.
    """

    rolls: list[DieRoll] = field(default_factory=list)
    total: int = 0
    modifier: int = 0
    final_total: int = 0
    has_critical: bool = False
    has_fumble: bool = False

    @property
    def values(self) -> list[int]:
        """Raw die values in roll order."""
        return [r.value for r in self.rolls]


def tag_roll(die_type: int, value: int) -> DieRoll:
    """Build a DieRoll, tagging criticals and fumbles on a d20.

    Args:
        die_type: Number of sides.
        value: The rolled value.

    Returns:
        The tagged DieRoll.
    """
    if die_type == CRITICAL_DIE:
        return DieRoll(die_type, value, is_critical=value == CRITICAL_DIE, is_fumble=value == 1)
    return DieRoll(die_type, value)


def _validate(sides: int, count: int) -> None:
    if sides <= 0:
        raise DiceRollError("Die must have at least one side", details={"sides": sides})
    if count <= 0:
        raise DiceRollError("Must roll at least one die", details={"count": count})


class DiceRoller:
    """Uniform dice roller backed by the d20 library.

    Example:
        >>> roller = DiceRoller()
        >>> result = roller.roll_with_modifier(6, 2, 3)
        >>> 5 <= result.final_total <= 15
        True
    """

    def __init__(self, *, seed: int | None = None) -> None:
        """Initialize the dice roller.

        Args:
            seed: Optional random seed for reproducible rolls.
        """
        self._seed = seed
        if seed is not None:
            random.seed(seed)
        logger.debug("DiceRoller initialized", seed=seed)

    def _roll_values(self, sides: int, count: int) -> list[int]:
        """Roll ``count`` dice of ``sides`` sides and return raw values.

        Raises:
            DiceRollError: If d20 refuses the expression.
        """
        expression = f"{count}d{sides}"
        try:
            result = d20.roll(expression)
        except d20.RollError as exc:
            raise DiceRollError(f"Could not roll dice: {exc}", expression=expression) from exc
        return self._extract_dice_values(result.expr)

    def _extract_dice_values(self, expr: Any) -> list[int]:
        """Extract individual dice values from a d20 expression tree."""
        values: list[int] = []

        def traverse(node: Any) -> None:
            if isinstance(node, d20.Dice):
                for die in node.values:
                    if die.kept:
                        values.append(die.number)
            elif hasattr(node, "children"):
                for child in node.children:
                    traverse(child)

        traverse(expr)
        return values

    def roll_die(self, sides: int) -> DieRoll:
        """Roll one die.

        Args:
            sides: Number of sides.

        Returns:
            The tagged DieRoll.

        Raises:
            DiceRollError: If sides is not positive.
        """
        return self.roll_dice(sides, 1)[0]

    def roll_dice(self, sides: int, count: int) -> list[DieRoll]:
        """Roll several independent dice of the same size.

        Args:
            sides: Number of sides.
            count: Number of dice.

        Returns:
            Tagged rolls in roll order.

        Raises:
            DiceRollError: If sides or count is not positive.
        """
        _validate(sides, count)
        rolls = [tag_roll(sides, v) for v in self._roll_values(sides, count)]
        logger.debug("Dice rolled", sides=sides, count=count, values=[r.value for r in rolls])
        return rolls

    def roll_with_modifier(self, sides: int, count: int, modifier: int = 0) -> DiceRollResult:
        """Roll dice and apply a flat modifier.

        Args:
            sides: Number of sides.
            count: Number of dice.
            modifier: Flat modifier.

        Returns:
            The complete DiceRollResult.
        """
        return apply_modifier(self.roll_dice(sides, count), modifier)

    def roll_initiative(self) -> int:
        """Roll a d20 for initiative.

        Returns:
            The raw d20 value.
        """
        return self.roll_die(INITIATIVE_DIE).value


def apply_modifier(rolls: list[DieRoll], modifier: int = 0) -> DiceRollResult:
    """Sum a set of rolls and add a flat modifier.

    A set is critical if any of its dice is critical, and a fumble if any is
    a fumble. The tags are not multiplied per die.

    Args:
        rolls: Rolls to sum.
        modifier: Flat modifier.

    Returns:
        The complete DiceRollResult.
    """
    total = sum(r.value for r in rolls)
    return DiceRollResult(
        rolls=list(rolls),
        total=total,
        modifier=modifier,
        final_total=total + modifier,
        has_critical=any(r.is_critical for r in rolls),
        has_fumble=any(r.is_fumble for r in rolls),
    )


def apply_critical_damage(amount: int, multiplier: int = DEFAULT_CRITICAL_MULTIPLIER) -> int:
    """Apply critical damage to an amount.

    Args:
        amount: Base damage.
        multiplier: Critical multiplier (2 doubles).

    Returns:
        The multiplied damage.
    """
    return amount * multiplier


def format_die_roll(roll: DieRoll) -> str:
    """Format one die for display, e.g. ``d20: 20 (critical)``."""
    output = f"d{roll.die_type}: {roll.value}"
    if roll.is_critical:
        output += " (critical)"
    if roll.is_fumble:
        output += " (fumble)"
    return output


def format_dice_result(result: DiceRollResult) -> str:
    """Format a roll for display, e.g. ``2d6 + 3 = 10``.

    Args:
        result: The roll to format.

    Returns:
        Display string with CRITICAL!/FUMBLE! suffixes when tagged.
    """
    die_type = result.rolls[0].die_type if result.rolls else CRITICAL_DIE
    modifier_str = ""
    if result.modifier > 0:
        modifier_str = f" + {result.modifier}"
    elif result.modifier < 0:
        modifier_str = f" - {abs(result.modifier)}"

    output = f"{len(result.rolls)}d{die_type}{modifier_str} = {result.final_total}"
    if result.has_critical:
        output += " CRITICAL!"
    if result.has_fumble:
        output += " FUMBLE!"
    return output


# Module-level convenience roller
_default_roller: DiceRoller | None = None


def _get_default_roller() -> DiceRoller:
    global _default_roller  # noqa: PLW0603
    if _default_roller is None:
        _default_roller = DiceRoller()
    return _default_roller


def roll_die(sides: int) -> DieRoll:
    """Roll one die with the module-level roller."""
    return _get_default_roller().roll_die(sides)


def roll_dice(sides: int, count: int) -> list[DieRoll]:
    """Roll several dice with the module-level roller."""
    return _get_default_roller().roll_dice(sides, count)


def roll_with_modifier(sides: int, count: int, modifier: int = 0) -> DiceRollResult:
    """Roll dice and apply a modifier with the module-level roller."""
    return _get_default_roller().roll_with_modifier(sides, count, modifier)


__all__ = [
    "DieRoll",
    "DiceRollResult",
    "DiceRoller",
    "tag_roll",
    "apply_modifier",
    "apply_critical_damage",
    "format_die_roll",
    "format_dice_result",
    "roll_die",
    "roll_dice",
    "roll_with_modifier",
]
