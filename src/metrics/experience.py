"""Experience and combat level formulas."""

from __future__ import annotations

import math
from bisect import bisect_right

MAX_REAL_LEVEL = 99
MAX_VIRT_LEVEL = 126
MAX_SKILL_XP = 200_000_000


def _build_xp_table() -> tuple[int, ...]:
    """Return the xp threshold for every level from 1 to MAX_VIRT_LEVEL."""
    table: list[int] = []
    points = 0
    for level in range(1, MAX_VIRT_LEVEL + 1):
        table.append(points // 4)
        points += int(level + 300.0 * 2.0 ** (level / 7.0))
    return tuple(table)


XP_FOR_LEVEL = _build_xp_table()


def xp_for_level(level: int) -> int:
    """Minimum experience required to reach `level`."""
    if level < 1 or level > MAX_VIRT_LEVEL:
        raise ValueError(f"level must be between 1 and {MAX_VIRT_LEVEL}. Got: {level}")
    return XP_FOR_LEVEL[level - 1]


def level_for_xp(xp: int) -> int:
    """Virtual (uncapped) level implied by an experience value."""
    if xp < 0:
        raise ValueError(f"xp must be >= 0. Got: {xp}")
    return bisect_right(XP_FOR_LEVEL, xp)


def combat_level_precise(
    attack: int,
    strength: int,
    defence: int,
    hitpoints: int,
    magic: int,
    ranged: int,
    prayer: int,
) -> float:
    """Combat level without rounding down to a whole level."""
    base = 0.25 * (defence + hitpoints + math.floor(prayer / 2))
    melee = 0.325 * (attack + strength)
    range_ = 0.325 * (math.floor(ranged / 2) + ranged)
    mage = 0.325 * (math.floor(magic / 2) + magic)
    return base + max(melee, range_, mage)
