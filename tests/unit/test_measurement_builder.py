from __future__ import annotations

import pytest

from metrics.builder import HIGH_VALUE_THRESHOLD, MeasurementBuilder, UnknownSkillError
from metrics.experience import level_for_xp
from metrics.models import SERIES_INVENTORY, SERIES_KILL_COUNT, SERIES_SELF, SERIES_SELF_LOC, SERIES_SKILL
from metrics.state import (
    INDIVIDUAL_SKILLS,
    GameSnapshot,
    InventoryID,
    InventoryItem,
    PlayerState,
    Skill,
    SkillState,
    WorldPoint,
)
from prices.lookup import ItemLookupError, ItemTable
from prices.models import ItemDefinition, ItemID

WHIP = 4151
NOTED_WHIP = 4152
SHRIMPS = 315
BOUNDARY = 1000
ALCH_HEAVY = 2000


def _make_items() -> ItemTable:
    return ItemTable(
        [
            ItemDefinition(id=ItemID.COINS_995, name="Coins", price=1),
            ItemDefinition(id=ItemID.PLATINUM_TOKEN, name="Platinum token", price=1),
            ItemDefinition(id=WHIP, name="Abyssal whip", price=120_001),
            ItemDefinition(id=SHRIMPS, name="Shrimps", price=5),
            ItemDefinition(id=BOUNDARY, name="Boundary item", price=10),
            ItemDefinition(id=ALCH_HEAVY, name="Alch-heavy item", price=100_000),
        ],
        prices={
            # Market prices deliberately far from store prices for coins/tokens.
            ItemID.COINS_995: 7,
            ItemID.PLATINUM_TOKEN: 999_999,
            WHIP: 1_500_000,
            SHRIMPS: 60,
            BOUNDARY: 50_000,
            ALCH_HEAVY: 1_000,
        },
        variants={NOTED_WHIP: WHIP},
    )


def _make_snapshot(**overrides) -> GameSnapshot:
    data = {
        "user": "zezima",
        "skills": {
            Skill.ATTACK: SkillState(experience=13_034_431),
            Skill.STRENGTH: SkillState(experience=1_210_421),
            Skill.DEFENCE: SkillState(experience=101_333),
            Skill.HITPOINTS: SkillState(experience=14_000_000, real_level=99),
            Skill.PRAYER: SkillState(experience=83),
            Skill.COOKING: SkillState(experience=50_000_000),
        },
        "player": PlayerState(name="Zezima", location=WorldPoint(x=3222, y=3218, plane=0)),
        "quest_point_count": 12,
    }
    data.update(overrides)
    return GameSnapshot(**data)


def _make_builder(snapshot: GameSnapshot | None = None) -> MeasurementBuilder:
    return MeasurementBuilder(state=snapshot or _make_snapshot(), items=_make_items())


def test_experience_record_for_individual_skill():
    record = _make_builder().build_experience_record(Skill.COOKING)

    assert record.series.measurement == SERIES_SKILL
    assert record.series.tags == {"user": "zezima", "skill": "COOKING"}
    assert list(record.series.tags) == ["user", "skill"]
    assert record.fields == {"xp": 50_000_000, "realLevel": 99, "virtualLevel": level_for_xp(50_000_000)}
    assert record.fields["virtualLevel"] > 99


def test_experience_record_accepts_skill_names():
    record = _make_builder().build_experience_record("attack")
    assert record.series.tags["skill"] == "ATTACK"
    assert record.fields["virtualLevel"] == 99


def test_overall_record_sums_virtual_levels():
    snapshot = _make_snapshot()
    record = _make_builder(snapshot).build_experience_record(Skill.OVERALL)

    expected_virtual = sum(level_for_xp(snapshot.skill_experience(s)) for s in INDIVIDUAL_SKILLS)
    assert record.series.tags["skill"] == "OVERALL"
    assert record.fields["xp"] == snapshot.overall_experience()
    assert record.fields["virtualLevel"] == expected_virtual
    assert record.fields["realLevel"] == snapshot.total_level()


@pytest.mark.parametrize("skill", ["SAILING", "", 7, None])
def test_unknown_skill_raises(skill):
    with pytest.raises(UnknownSkillError):
        _make_builder().build_experience_record(skill)


def test_inventory_records_currency_below_threshold():
    ge, ha = _make_builder().build_inventory_records("inventory", [InventoryItem(id=ItemID.COINS_995, quantity=100)])

    assert ge.series.measurement == SERIES_INVENTORY
    assert ge.series.tags == {"user": "zezima", "inventory": "INVENTORY", "type": "GE"}
    assert ha.series.tags == {"user": "zezima", "inventory": "INVENTORY", "type": "HA"}
    # Below the threshold coins are folded into `other`; no named field.
    assert ge.fields == {"total": 100, "other": 100}
    assert ha.fields == {"total": 100, "other": 100}


def test_inventory_fixed_ratio_items_ignore_market_price():
    ge, ha = _make_builder().build_inventory_records(
        InventoryID.BANK, [(ItemID.COINS_995, 60_000), (ItemID.PLATINUM_TOKEN, 3)]
    )
    assert ge.fields == {"Coins": 60_000, "total": 63_000, "other": 3_000}
    assert ha.fields == {"Coins": 60_000, "total": 63_000, "other": 3_000}


def test_inventory_high_value_item_is_broken_out_by_name():
    table = ItemTable([ItemDefinition(id=42, name="Item X", price=0)], prices={42: 60_000})
    builder = MeasurementBuilder(state=_make_snapshot(), items=table)

    ge, ha = builder.build_inventory_records(InventoryID.INVENTORY, [(42, 1)])

    assert ge.fields == {"Item X": 60_000, "total": 60_000, "other": 0}
    assert list(ge.fields) == ["Item X", "total", "other"]
    assert ha.fields == {"Item X": 0, "total": 0, "other": 0}


def test_inventory_threshold_is_exclusive():
    builder = _make_builder()

    at_threshold, _ = builder.build_inventory_records(InventoryID.INVENTORY, [(BOUNDARY, 1)])
    assert at_threshold.fields == {"total": HIGH_VALUE_THRESHOLD, "other": HIGH_VALUE_THRESHOLD}

    table = ItemTable([ItemDefinition(id=BOUNDARY, name="Boundary item", price=10)], prices={BOUNDARY: 50_001})
    above, _ = MeasurementBuilder(state=_make_snapshot(), items=table).build_inventory_records(
        InventoryID.INVENTORY, [(BOUNDARY, 1)]
    )
    assert above.fields == {"Boundary item": 50_001, "total": 50_001, "other": 0}


def test_inventory_alchemy_value_alone_triggers_breakout():
    ge, ha = _make_builder().build_inventory_records(InventoryID.INVENTORY, [(ALCH_HEAVY, 1)])
    assert ge.fields == {"Alch-heavy item": 1_000, "total": 1_000, "other": 0}
    assert ha.fields == {"Alch-heavy item": 60_000, "total": 60_000, "other": 0}


def test_inventory_skips_empty_negative_and_filler_slots():
    ge, ha = _make_builder().build_inventory_records(
        InventoryID.BANK,
        [(-1, 5), (SHRIMPS, 0), (SHRIMPS, -3), (ItemID.BANK_FILLER, 1), (SHRIMPS, 10)],
    )
    assert ge.fields == {"total": 600, "other": 600}
    assert ha.fields == {"total": 30, "other": 30}


def test_inventory_canonicalizes_variants_and_totals_every_item():
    ge, ha = _make_builder().build_inventory_records(
        InventoryID.BANK,
        [(WHIP, 1), (NOTED_WHIP, 2), (SHRIMPS, 100), (ItemID.COINS_995, 5_000)],
    )
    # Both whip stacks share the "Abyssal whip" field.
    assert ge.fields["Abyssal whip"] == 3 * 1_500_000
    assert ha.fields["Abyssal whip"] == 3 * 72_000
    for record in (ge, ha):
        named = sum(v for k, v in record.fields.items() if k not in {"total", "other"})
        assert record.fields["total"] == named + record.fields["other"]
    assert ge.fields["other"] == 100 * 60 + 5_000


def test_inventory_missing_definition_aborts_batch():
    with pytest.raises(ItemLookupError) as excinfo:
        _make_builder().build_inventory_records(InventoryID.INVENTORY, [(SHRIMPS, 1), (123456, 1)])
    assert excinfo.value.item_id == 123456


def test_inventory_unknown_container_raises():
    with pytest.raises(ValueError):
        _make_builder().build_inventory_records("POCKET", [])


def test_empty_inventory_still_reports_zero_totals():
    ge, ha = _make_builder().build_inventory_records(InventoryID.EQUIPMENT, [])
    assert ge.fields == {"total": 0, "other": 0}
    assert ha.fields == {"total": 0, "other": 0}


@pytest.mark.parametrize("instanced,expected", [(False, 0), (True, 1)])
def test_self_location_record(instanced: bool, expected: int):
    snapshot = _make_snapshot(
        player=PlayerState(location=WorldPoint(x=2271, y=4680, plane=1)),
        in_instance=instanced,
    )
    record = _make_builder(snapshot).build_self_location_record()

    assert record.series.measurement == SERIES_SELF_LOC
    assert record.series.tags == {"user": "zezima"}
    assert record.fields == {"locX": 2271, "locY": 4680, "plane": 1, "instance": expected}


def test_self_status_record():
    snapshot = _make_snapshot(
        player=PlayerState(name="Zezima", skulled=True, overhead_icon="melee", location=WorldPoint(x=0, y=0))
    )
    record = _make_builder(snapshot).build_self_status_record()

    assert record.series.measurement == SERIES_SELF
    # att 99, str 75, def 50, hp 99, mage 1, range 1, prayer 2
    expected_combat = 0.25 * (50 + 99 + 1) + 0.325 * (99 + 75)
    assert record.fields["combat"] == pytest.approx(expected_combat)
    assert record.fields["questPoints"] == 12
    assert record.fields["skulled"] == 1
    assert record.fields["name"] == "Zezima"
    assert record.fields["overhead"] == "MELEE"


def test_self_status_defaults_for_absent_name_and_icon():
    snapshot = _make_snapshot(player=PlayerState(location=WorldPoint(x=0, y=0)))
    record = _make_builder(snapshot).build_self_status_record()

    assert record.fields["name"] == "none"
    assert record.fields["overhead"] == "NONE"
    assert record.fields["skulled"] == 0


@pytest.mark.parametrize("count", [0, 1, 2_500])
def test_kill_count_record(count: int):
    record = _make_builder().build_kill_count_record("Zulrah", count)

    assert record.series.measurement == SERIES_KILL_COUNT
    assert record.series.tags == {"user": "zezima", "boss": "Zulrah"}
    assert record.fields == {"kc": count}


def test_kill_count_rejects_negative():
    with pytest.raises(ValueError):
        _make_builder().build_kill_count_record("Zulrah", -1)


def test_builder_does_not_mutate_snapshot():
    snapshot = _make_snapshot(inventories={"INVENTORY": [InventoryItem(id=SHRIMPS, quantity=3)]})
    before = snapshot.model_dump()
    builder = _make_builder(snapshot)

    builder.build_experience_record(Skill.OVERALL)
    builder.build_inventory_records(InventoryID.INVENTORY, snapshot.inventories["INVENTORY"])
    builder.build_self_status_record()
    builder.build_self_location_record()

    assert snapshot.model_dump() == before


@pytest.mark.parametrize("name", ["total", "other"])
def test_inventory_item_named_like_aggregate_field_keeps_totals(name: str):
    table = ItemTable([ItemDefinition(id=77, name=name, price=0)], prices={77: 60_000})
    builder = MeasurementBuilder(state=_make_snapshot(), items=table)

    ge, _ = builder.build_inventory_records(InventoryID.INVENTORY, [(77, 1), (SHRIMPS, 0)])

    assert ge.fields == {f"{name} (77)": 60_000, "total": 60_000, "other": 0}
    named = sum(v for k, v in ge.fields.items() if k not in {"total", "other"})
    assert ge.fields["total"] == named + ge.fields["other"]
