"""Measurement construction from game state.

`MeasurementBuilder` is a pure transformation: it reads from a state provider
and an item valuation lookup, never mutates either, and returns immutable
`Measurement` records. Errors are raised synchronously to the caller; nothing
partial is returned.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Union

from prices.lookup import ItemLookupError, ItemValuationLookup
from prices.models import ItemID

from .experience import combat_level_precise, level_for_xp
from .models import (
    SERIES_INVENTORY,
    SERIES_KILL_COUNT,
    SERIES_SELF,
    SERIES_SELF_LOC,
    SERIES_SKILL,
    FieldValue,
    Measurement,
    Series,
)
from .state import INDIVIDUAL_SKILLS, InventoryID, InventoryItem, InvValueType, Skill, StateProvider

SELF_KEY_X = "locX"
SELF_KEY_Y = "locY"

HIGH_ALCHEMY_MULTIPLIER = 0.6

# Per-item values above this (in either valuation) get their own field.
HIGH_VALUE_THRESHOLD = 50_000

ItemLike = Union[InventoryItem, tuple[int, int]]

# Aggregate fields of an inventory record; item names never shadow them.
_TOTAL_FIELDS = frozenset({"total", "other"})


class UnknownSkillError(ValueError):
    """Raised for a skill identifier outside the `Skill` enumeration."""


def resolve_skill(skill: Skill | str) -> Skill:
    """Coerce a `Skill` or a skill name (any case) to a `Skill`."""
    if isinstance(skill, Skill):
        return skill
    if isinstance(skill, str):
        try:
            return Skill[skill.strip().upper()]
        except KeyError:
            pass
    raise UnknownSkillError(f"Unknown skill: {skill!r}")


def resolve_inventory(inventory: InventoryID | str) -> InventoryID:
    """Coerce an `InventoryID` or container name to an `InventoryID`."""
    if isinstance(inventory, InventoryID):
        return inventory
    try:
        return InventoryID[str(inventory).strip().upper()]
    except KeyError:
        raise ValueError(f"Unknown inventory: {inventory!r}") from None


def _unpack_item(item: ItemLike) -> tuple[int, int]:
    if isinstance(item, InventoryItem):
        return item.id, item.quantity
    item_id, quantity = item
    return int(item_id), int(quantity)


class MeasurementBuilder:
    """Builds tagged measurement records from a game state snapshot."""

    def __init__(self, *, state: StateProvider, items: ItemValuationLookup) -> None:
        """Create a builder reading from the given (read-only) collaborators."""
        self._state = state
        self._items = items

    def _tags(self, **extra: str) -> dict[str, str]:
        """Fresh tag set: `user` first, then measurement-specific tags."""
        tags = {"user": self._state.username()}
        tags.update(extra)
        return tags

    def _series(self, measurement: str, **tags: str) -> Series:
        return Series(measurement=measurement, tags=self._tags(**tags))

    def build_experience_record(self, skill: Skill | str) -> Measurement:
        """Experience, virtual level and real level for one skill (or OVERALL)."""
        skill = resolve_skill(skill)
        if skill is Skill.OVERALL:
            xp = self._state.overall_experience()
            virtual_level = sum(level_for_xp(self._state.skill_experience(s)) for s in INDIVIDUAL_SKILLS)
            real_level = self._state.total_level()
        else:
            xp = self._state.skill_experience(skill)
            virtual_level = level_for_xp(xp)
            real_level = self._state.real_skill_level(skill)

        return Measurement(
            series=self._series(SERIES_SKILL, skill=skill.name),
            fields={"xp": xp, "realLevel": real_level, "virtualLevel": virtual_level},
        )

    def _item_values(self, item_id: int, quantity: int) -> tuple[str, int, int]:
        """Return `(field name, market value, alchemy value)` for a stack."""
        canon_id = self._items.canonicalize(item_id)
        definition = self._items.get_item_definition(canon_id)
        if definition is None:
            raise ItemLookupError(canon_id)

        if canon_id == ItemID.COINS_995:
            ge = alch = quantity
        elif canon_id == ItemID.PLATINUM_TOKEN:
            ge = alch = quantity * 1000
        else:
            alch = int(definition.price * HIGH_ALCHEMY_MULTIPLIER) * quantity
            ge = self._items.get_item_price(canon_id) * quantity
        name = definition.name
        if name in _TOTAL_FIELDS:
            name = f"{name} ({canon_id})"
        return name, ge, alch

    def build_inventory_records(
        self, inventory_id: InventoryID | str, items: Iterable[ItemLike]
    ) -> tuple[Measurement, Measurement]:
        """Market (GE) and high-alchemy (HA) valuation of a container.

        Stacks worth more than `HIGH_VALUE_THRESHOLD` in either valuation are
        broken out by item name; everything else is summed into `other`.
        """
        inventory = resolve_inventory(inventory_id)

        ge_fields: dict[str, FieldValue] = {}
        ha_fields: dict[str, FieldValue] = {}
        total_ge = total_alch = 0
        other_ge = other_alch = 0

        for item in items:
            item_id, quantity = _unpack_item(item)
            if item_id < 0 or quantity <= 0 or item_id == ItemID.BANK_FILLER:
                continue

            name, ge, alch = self._item_values(item_id, quantity)
            total_ge += ge
            total_alch += alch

            if ge > HIGH_VALUE_THRESHOLD or alch > HIGH_VALUE_THRESHOLD:
                # Same-named stacks (e.g. split across slots) share one field.
                ge_fields[name] = int(ge_fields.get(name, 0)) + ge
                ha_fields[name] = int(ha_fields.get(name, 0)) + alch
            else:
                other_ge += ge
                other_alch += alch

        ge_fields.update(total=total_ge, other=other_ge)
        ha_fields.update(total=total_alch, other=other_alch)

        return (
            Measurement(
                series=self._series(SERIES_INVENTORY, inventory=inventory.name, type=InvValueType.GE.value),
                fields=ge_fields,
            ),
            Measurement(
                series=self._series(SERIES_INVENTORY, inventory=inventory.name, type=InvValueType.HA.value),
                fields=ha_fields,
            ),
        )

    def build_self_location_record(self) -> Measurement:
        location = self._state.local_player().location
        return Measurement(
            series=self._series(SERIES_SELF_LOC),
            fields={
                SELF_KEY_X: location.x,
                SELF_KEY_Y: location.y,
                "plane": location.plane,
                "instance": 1 if self._state.in_instanced_region() else 0,
            },
        )

    def build_self_status_record(self) -> Measurement:
        """Combat level, quest points, skull, name and overhead prayer."""
        player = self._state.local_player()
        level = self._state.real_skill_level
        combat = combat_level_precise(
            level(Skill.ATTACK),
            level(Skill.STRENGTH),
            level(Skill.DEFENCE),
            level(Skill.HITPOINTS),
            level(Skill.MAGIC),
            level(Skill.RANGED),
            level(Skill.PRAYER),
        )
        return Measurement(
            series=self._series(SERIES_SELF),
            fields={
                "combat": combat,
                "questPoints": self._state.quest_points(),
                "skulled": 1 if player.skulled else 0,
                "name": player.name if player.name is not None else "none",
                "overhead": player.overhead_icon if player.overhead_icon is not None else "NONE",
            },
        )

    def build_kill_count_record(self, boss_name: str, count: int) -> Measurement:
        if count < 0:
            raise ValueError(f"count must be >= 0. Got: {count}")
        return Measurement(
            series=self._series(SERIES_KILL_COUNT, boss=boss_name),
            fields={"kc": count},
        )
