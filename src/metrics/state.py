"""Game state as seen by the measurement builder.

The builder only reads from a `StateProvider`. `GameSnapshot` is the concrete,
immutable provider used by the exporter: the host (or a JSON dump of it)
supplies one snapshot per collection cycle.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .experience import MAX_REAL_LEVEL, level_for_xp


class Skill(str, Enum):
    ATTACK = "ATTACK"
    DEFENCE = "DEFENCE"
    STRENGTH = "STRENGTH"
    HITPOINTS = "HITPOINTS"
    RANGED = "RANGED"
    PRAYER = "PRAYER"
    MAGIC = "MAGIC"
    COOKING = "COOKING"
    WOODCUTTING = "WOODCUTTING"
    FLETCHING = "FLETCHING"
    FISHING = "FISHING"
    FIREMAKING = "FIREMAKING"
    CRAFTING = "CRAFTING"
    SMITHING = "SMITHING"
    MINING = "MINING"
    HERBLORE = "HERBLORE"
    AGILITY = "AGILITY"
    THIEVING = "THIEVING"
    SLAYER = "SLAYER"
    FARMING = "FARMING"
    RUNECRAFT = "RUNECRAFT"
    HUNTER = "HUNTER"
    CONSTRUCTION = "CONSTRUCTION"
    # Aggregate pseudo-skill; not part of INDIVIDUAL_SKILLS.
    OVERALL = "OVERALL"


INDIVIDUAL_SKILLS: tuple[Skill, ...] = tuple(s for s in Skill if s is not Skill.OVERALL)


class InventoryID(Enum):
    """Item containers the exporter knows how to value (value = container id)."""

    INVENTORY = 93
    EQUIPMENT = 94
    BANK = 95
    LOOTING_BAG = 516
    SEED_VAULT = 626


class InvValueType(str, Enum):
    GE = "GE"
    HA = "HA"


class _Model(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class WorldPoint(_Model):
    x: int
    y: int
    plane: int = 0


class PlayerState(_Model):
    """Status of the local player."""

    name: str | None = None
    skulled: bool = False
    overhead_icon: str | None = None
    location: WorldPoint

    @field_validator("overhead_icon")
    @classmethod
    def _normalize_icon(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip().upper()


class InventoryItem(_Model):
    id: int
    quantity: int


class SkillState(_Model):
    experience: int = Field(default=0, ge=0)

    # Derived from experience (capped) when the host doesn't report it.
    real_level: int | None = Field(default=None, ge=1)

    def resolved_real_level(self) -> int:
        if self.real_level is not None:
            return self.real_level
        return min(level_for_xp(self.experience), MAX_REAL_LEVEL)


class StateProvider(Protocol):
    """Read-only view of the current game state."""

    def username(self) -> str:
        """Identifier of the current player session (the `user` tag)."""

    def skill_experience(self, skill: Skill) -> int:
        """Experience points for an individual skill."""

    def real_skill_level(self, skill: Skill) -> int:
        """Level of a skill respecting the level cap."""

    def overall_experience(self) -> int:
        """Total experience across all skills."""

    def total_level(self) -> int:
        """Sum of real levels across all skills."""

    def quest_points(self) -> int:
        """Quest points earned."""

    def in_instanced_region(self) -> bool:
        """Whether the player is inside an instanced region."""

    def local_player(self) -> PlayerState:
        """Status and position of the local player."""


class GameSnapshot(_Model):
    """Point-in-time game state (implements `StateProvider`)."""

    user: str
    skills: dict[Skill, SkillState] = Field(default_factory=dict)
    player: PlayerState
    in_instance: bool = False
    quest_point_count: int = Field(default=0, ge=0)

    # Container name (InventoryID member) -> items in slot order.
    inventories: dict[str, list[InventoryItem]] = Field(default_factory=dict)

    # Recent game chat, scanned for kill-count messages.
    chat_messages: list[str] = Field(default_factory=list)

    @field_validator("skills", mode="before")
    @classmethod
    def _upper_skill_keys(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {k.upper() if isinstance(k, str) else k: val for k, val in v.items()}
        return v

    @field_validator("inventories", mode="before")
    @classmethod
    def _upper_inventory_keys(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {k.strip().upper() if isinstance(k, str) else k: val for k, val in v.items()}
        return v

    @field_validator("inventories")
    @classmethod
    def _known_inventories(cls, v: dict[str, list[InventoryItem]]) -> dict[str, list[InventoryItem]]:
        unknown = [name for name in v if name not in InventoryID.__members__]
        if unknown:
            raise ValueError(f"unknown inventory ids: {unknown}")
        return v

    def _skill(self, skill: Skill) -> SkillState:
        return self.skills.get(skill) or SkillState()

    def username(self) -> str:
        return self.user

    def skill_experience(self, skill: Skill) -> int:
        if skill is Skill.OVERALL:
            return self.overall_experience()
        return self._skill(skill).experience

    def real_skill_level(self, skill: Skill) -> int:
        if skill is Skill.OVERALL:
            return self.total_level()
        return self._skill(skill).resolved_real_level()

    def overall_experience(self) -> int:
        return sum(self._skill(s).experience for s in INDIVIDUAL_SKILLS)

    def total_level(self) -> int:
        return sum(self._skill(s).resolved_real_level() for s in INDIVIDUAL_SKILLS)

    def quest_points(self) -> int:
        return self.quest_point_count

    def in_instanced_region(self) -> bool:
        return self.in_instance

    def local_player(self) -> PlayerState:
        return self.player
