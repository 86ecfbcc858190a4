"""Tests for dice rolling mechanics."""

from __future__ import annotations

import pytest

from rpg_combat.core.exceptions import DiceRollError
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
    tag_roll,
)


class TestDiceRoller:
    """Tests for the DiceRoller class."""

    @pytest.mark.parametrize("sides", [4, 6, 8, 12, 20, 100])
    def test_roll_die_in_range(self, dice_roller: DiceRoller, sides: int) -> None:
        """Test single die stays within [1, sides]."""
        for _ in range(50):
            roll = dice_roller.roll_die(sides)
            assert 1 <= roll.value <= sides
            assert roll.die_type == sides

    def test_roll_dice_count(self, dice_roller: DiceRoller) -> None:
        """Test rolling several dice returns one roll per die."""
        rolls = dice_roller.roll_dice(6, 4)

        assert len(rolls) == 4
        assert all(1 <= r.value <= 6 for r in rolls)

    def test_roll_with_modifier(self, dice_roller: DiceRoller) -> None:
        """Test roll with modifier totals."""
        result = dice_roller.roll_with_modifier(6, 2, 3)

        assert result.total == sum(result.values)
        assert result.final_total == result.total + 3
        assert 5 <= result.final_total <= 15

    def test_roll_initiative_is_d20(self, dice_roller: DiceRoller) -> None:
        """Test initiative is a raw d20."""
        for _ in range(20):
            assert 1 <= dice_roller.roll_initiative() <= 20

    @pytest.mark.parametrize(("sides", "count"), [(0, 1), (-6, 1), (6, 0), (6, -2)])
    def test_invalid_input_rejected(self, dice_roller: DiceRoller, sides: int, count: int) -> None:
        """Test non-positive sides or counts are rejected."""
        with pytest.raises(DiceRollError):
            dice_roller.roll_dice(sides, count)

    def test_scripted_values_preserve_order(self, scripted_roller: DiceRoller) -> None:
        """Test rolls keep roll order."""
        scripted_roller.push(3, 1, 6)

        rolls = scripted_roller.roll_dice(6, 3)

        assert [r.value for r in rolls] == [3, 1, 6]


class TestCriticalTagging:
    """Tests for critical and fumble tags."""

    def test_natural_20_is_critical(self) -> None:
        """Test a 20 on a d20 is critical."""
        roll = tag_roll(20, 20)
        assert roll.is_critical is True
        assert roll.is_fumble is False

    def test_natural_1_is_fumble(self) -> None:
        """Test a 1 on a d20 is a fumble."""
        roll = tag_roll(20, 1)
        assert roll.is_fumble is True
        assert roll.is_critical is False

    @pytest.mark.parametrize("sides", [4, 6, 8, 12])
    def test_other_dice_never_tagged(self, sides: int) -> None:
        """Test only the d20 produces tags."""
        assert tag_roll(sides, sides) == DieRoll(sides, sides)
        assert tag_roll(sides, 1) == DieRoll(sides, 1)

    def test_set_is_critical_if_any_die_is(self) -> None:
        """Test the critical flag is an OR across the set."""
        result = apply_modifier([tag_roll(20, 5), tag_roll(20, 20), tag_roll(20, 1)], 2)

        assert result.has_critical is True
        assert result.has_fumble is True
        assert result.total == 26
        assert result.final_total == 28

    def test_critical_damage_doubles(self) -> None:
        """Test critical damage is applied by the caller."""
        assert apply_critical_damage(7) == 14
        assert apply_critical_damage(7, 3) == 21


class TestFormatting:
    """Tests for display formatting."""

    def test_format_die_roll(self) -> None:
        """Test single die display."""
        assert format_die_roll(DieRoll(6, 4)) == "d6: 4"
        assert format_die_roll(tag_roll(20, 20)) == "d20: 20 (critical)"

    def test_format_positive_modifier(self) -> None:
        """Test display with a positive modifier."""
        result = apply_modifier([DieRoll(6, 3), DieRoll(6, 4)], 3)
        assert format_dice_result(result) == "2d6 + 3 = 10"

    def test_format_negative_modifier(self) -> None:
        """Test display with a negative modifier."""
        result = apply_modifier([DieRoll(8, 5)], -2)
        assert format_dice_result(result) == "1d8 - 2 = 3"

    def test_format_critical(self) -> None:
        """Test critical suffix."""
        result = apply_modifier([tag_roll(20, 20)], 0)
        assert format_dice_result(result) == "1d20 = 20 CRITICAL!"

    def test_format_fumble(self) -> None:
        """Test fumble suffix."""
        result = apply_modifier([tag_roll(20, 1)], 1)
        assert format_dice_result(result) == "1d20 + 1 = 2 FUMBLE!"


class TestConvenienceFunctions:
    """Tests for module-level dice functions."""

    def test_roll_die(self) -> None:
        """Test the module-level roll_die."""
        assert 1 <= roll_die(8).value <= 8

    def test_roll_dice(self) -> None:
        """Test the module-level roll_dice."""
        assert len(roll_dice(4, 3)) == 3

    def test_roll_with_modifier(self) -> None:
        """Test the module-level roll_with_modifier."""
        result = roll_with_modifier(12, 1, -1)
        assert isinstance(result, DiceRollResult)
        assert result.modifier == -1
