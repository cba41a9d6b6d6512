"""Measurement export.

This package hands built measurements to storage:
- `MeasurementWriter` batches the latest value per series and flushes
  periodically without blocking the event loop.
- Sinks persist timestamped points (DuckDB by default, in-memory for tests).
"""

from .sinks import DuckDBMeasurementSink, InMemoryMeasurementSink, MeasurementSink
from .writer import MeasurementWriter

__all__ = [
    "DuckDBMeasurementSink",
    "InMemoryMeasurementSink",
    "MeasurementSink",
    "MeasurementWriter",
]
