"""Collect every measurement derivable from one game snapshot."""

from __future__ import annotations

from collections.abc import Iterator

from .builder import MeasurementBuilder
from .killcount import parse_kill_count
from .models import Measurement
from .state import GameSnapshot, Skill


def iter_snapshot_measurements(builder: MeasurementBuilder, snapshot: GameSnapshot) -> Iterator[Measurement]:
    """Lazily yield skill, self, inventory and kill-count records.

    `builder` should read from `snapshot`; the snapshot is only consulted here
    for the containers and chat messages to process.
    """
    for skill in Skill:
        yield builder.build_experience_record(skill)

    yield builder.build_self_status_record()
    yield builder.build_self_location_record()

    for inventory, items in snapshot.inventories.items():
        yield from builder.build_inventory_records(inventory, items)

    for message in snapshot.chat_messages:
        kill_count = parse_kill_count(message)
        if kill_count is not None:
            yield builder.build_kill_count_record(kill_count.boss, kill_count.count)
