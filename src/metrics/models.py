"""Measurement record models.

Records are designed to be:
- Immutable once constructed (the writer and sinks never mutate them).
- Identified by a series: measurement name + ordered tag set.
- Timestamped only when written, not when built.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

FieldValue = Union[int, float, str]
SeriesKey = tuple[str, tuple[tuple[str, str], ...]]

SERIES_INVENTORY = "rs_inventory"
SERIES_SKILL = "rs_skill"
SERIES_SELF = "rs_self"
SERIES_KILL_COUNT = "rs_killcount"
SERIES_SELF_LOC = "rs_self_loc"


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(tz=timezone.utc)


def _freeze(v: Mapping[str, Any]) -> Mapping[str, Any]:
    """Read-only copy of a mapping."""
    return MappingProxyType(dict(v))


class _Model(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class Series(_Model):
    """A named, tagged stream of measurements."""

    measurement: str

    # Insertion-ordered; always starts with the `user` tag.
    tags: Mapping[str, str] = Field(default_factory=dict, validate_default=True)

    @field_validator("tags")
    @classmethod
    def _freeze_tags(cls, v: Mapping[str, str]) -> Mapping[str, str]:
        return _freeze(v)

    @field_serializer("tags")
    def _dump_tags(self, v: Mapping[str, str]) -> dict[str, str]:
        return dict(v)

    @property
    def key(self) -> SeriesKey:
        """Hashable identity used to group records of the same series."""
        return self.measurement, tuple(self.tags.items())


class Measurement(_Model):
    """One observation: a series reference plus a non-empty field set."""

    series: Series
    fields: Mapping[str, FieldValue]

    @field_validator("fields")
    @classmethod
    def _require_fields(cls, v: Mapping[str, FieldValue]) -> Mapping[str, FieldValue]:
        if not v:
            raise ValueError("a measurement needs at least one field")
        return _freeze(v)

    @field_serializer("fields")
    def _dump_fields(self, v: Mapping[str, FieldValue]) -> dict[str, FieldValue]:
        return dict(v)


class Point(_Model):
    """A measurement stamped with the time it was handed to a sink."""

    measurement: Measurement
    written_at: datetime = Field(default_factory=utc_now)
