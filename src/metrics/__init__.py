"""Measurement records built from game state.

This package turns point-in-time game snapshots into tagged, immutable
measurement records:
- `MeasurementBuilder` builds skill, inventory, self and kill-count records.
- `iter_snapshot_measurements` walks a whole snapshot lazily.

Timestamps and storage are the writer's/sink's concern (see `export`).
"""

from .builder import MeasurementBuilder, UnknownSkillError
from .collector import iter_snapshot_measurements
from .killcount import KillCount, parse_kill_count
from .models import Measurement, Point, Series
from .state import GameSnapshot, InventoryID, InvValueType, Skill, StateProvider

__all__ = [
    "GameSnapshot",
    "InvValueType",
    "InventoryID",
    "KillCount",
    "Measurement",
    "MeasurementBuilder",
    "Point",
    "Series",
    "Skill",
    "StateProvider",
    "UnknownSkillError",
    "iter_snapshot_measurements",
    "parse_kill_count",
]
