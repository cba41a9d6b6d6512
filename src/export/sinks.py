"""Measurement sinks (storage backends)."""

from __future__ import annotations

import json
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import duckdb

from metrics.models import Point


class MeasurementSink(Protocol):
    """A synchronous sink for timestamped measurements.

    Sinks are synchronous because the writer isolates blocking I/O in a
    worker thread to keep the event loop unblocked.
    """

    def write(self, points: Sequence[Point]) -> None:
        """Persist a batch of points."""

    def close(self) -> None:
        """Close any underlying resources."""


class InMemoryMeasurementSink:
    """In-memory sink for tests and local debugging."""

    def __init__(self) -> None:
        """Create an empty in-memory sink."""
        self._lock = threading.Lock()
        self._points: list[Point] = []

    def write(self, points: Sequence[Point]) -> None:
        """Append points to the in-memory list (thread-safe)."""
        with self._lock:
            self._points.extend(points)

    def close(self) -> None:  # noqa: D401 - keep interface consistent
        """No-op."""

    def snapshot(self) -> Sequence[Point]:
        """Return a point-in-time copy of all written points."""
        with self._lock:
            return list(self._points)


@dataclass(frozen=True)
class DuckDBOptions:
    path: Path
    table: str = "measurements"


class DuckDBMeasurementSink:
    """DuckDB sink for durable local persistence of measurements."""

    def __init__(self, *, path: str | Path, table: str = "measurements") -> None:
        """Create (or open) a DuckDB-backed sink at the given path."""
        self._opts = DuckDBOptions(path=Path(path), table=table)
        self._lock = threading.Lock()
        self._conn = duckdb.connect(str(self._opts.path))
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        """Create the backing table if it does not exist yet."""
        create_sql = f"""
        create table if not exists {self._opts.table} (
          written_at timestamptz not null,
          measurement varchar not null,
          tags_json varchar not null,
          fields_json varchar not null
        )
        """
        with self._lock:
            self._conn.execute(create_sql)

    def write(self, points: Sequence[Point]) -> None:
        """Insert a batch of points into DuckDB.

        Tags keep their insertion order in `tags_json` (user first); fields are
        stored as JSON in the order they were built.
        """
        if not points:
            return
        insert_sql = f"""
        insert into {self._opts.table}
        (written_at, measurement, tags_json, fields_json)
        values (?, ?, ?, ?)
        """
        rows = [
            [
                p.written_at,
                p.measurement.series.measurement,
                json.dumps(dict(p.measurement.series.tags), separators=(",", ":")),
                json.dumps(dict(p.measurement.fields), separators=(",", ":")),
            ]
            for p in points
        ]
        with self._lock:
            self._conn.executemany(insert_sql, rows)

    def close(self) -> None:
        """Close the underlying DuckDB connection."""
        with self._lock:
            self._conn.close()
