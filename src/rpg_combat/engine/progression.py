"""Experience awarded for defeating NPCs.

XP is tracked as a percentage towards the next level. Beating an NPC of the
same level gives a small step, a stronger one a bigger step, a weaker one
nothing. Reaching 100% levels the character up and carries the remainder.
"""

from __future__ import annotations

from dataclasses import dataclass

from rpg_combat.core.constants import XP_EQUAL_LEVEL, XP_HIGHER_LEVEL, XP_LEVEL_THRESHOLD


@dataclass(frozen=True)
class XpAward:
    """Result of adding XP to a character.

    Attributes:
        xp_gained: Percentage points gained.
        new_xp: XP percentage after the award.
        new_level: Level after the award.
        leveled_up: Whether the award crossed a level.
    """

    xp_gained: float
    new_xp: float
    new_level: int
    leveled_up: bool


def xp_for_kill(monster_level: int, character_level: int) -> float:
    """XP percentage earned for defeating a monster."""
    if monster_level == character_level:
        return XP_EQUAL_LEVEL
    if monster_level > character_level:
        return XP_HIGHER_LEVEL
    return 0.0


def award_xp(current_xp: float, current_level: int, xp_gained: float) -> XpAward:
    """Add XP, levelling up once when the threshold is reached.

    Args:
        current_xp: XP percentage before the award.
        current_level: Level before the award.
        xp_gained: Percentage points to add.

    Returns:
        The resulting award.
    """
    new_xp = current_xp + xp_gained
    new_level = current_level
    leveled_up = False

    if new_xp >= XP_LEVEL_THRESHOLD:
        new_level += 1
        new_xp -= XP_LEVEL_THRESHOLD
        leveled_up = True

    return XpAward(
        xp_gained=xp_gained,
        new_xp=min(new_xp, XP_LEVEL_THRESHOLD),
        new_level=new_level,
        leveled_up=leveled_up,
    )


__all__ = [
    "XpAward",
    "xp_for_kill",
    "award_xp",
]
