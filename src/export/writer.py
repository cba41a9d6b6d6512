"""Async writer that batches measurements to a sink without blocking the event loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from contextlib import suppress
from datetime import datetime
from typing import Any

from metrics.models import Measurement, Point, SeriesKey, utc_now

from .sinks import MeasurementSink

logger = logging.getLogger(__name__)


class MeasurementWriter:
    """Keeps the latest measurement per series and flushes them periodically.

    - A measurement identical to the last one written for its series is skipped.
    - Pending measurements are keyed by series; a newer submit replaces an older one.
    - Flushing stamps the whole batch with one `written_at`.
    """

    def __init__(
        self,
        *,
        sink: MeasurementSink,
        flush_interval_s: float = 15.0,
        max_pending: int = 10000,
        skip_unchanged: bool = True,
    ) -> None:
        """Create a writer backed by a synchronous sink.

        Args:
            sink: Storage backend used for flushed batches.
            flush_interval_s: Period of the background flush task.
            max_pending: Bound on distinct pending series; measurements for new
                series are dropped when full.
            skip_unchanged: Skip measurements equal to the last one written.
        """
        self._sink = sink
        self._flush_interval_s = flush_interval_s
        self._max_pending = max_pending
        self._skip_unchanged = skip_unchanged

        self._pending: dict[SeriesKey, Measurement] = {}
        self._last_written: dict[SeriesKey, Measurement] = {}
        self._flush_lock = asyncio.Lock()
        self._worker: asyncio.Task[None] | None = None
        self._closed = False

        # Degradation tracking: drops + failed sink writes.
        self._write_failures = 0
        self._first_failure_at: datetime | None = None
        self._last_failure_at: datetime | None = None

    @property
    def pending_count(self) -> int:
        """Number of series waiting for the next flush."""
        return len(self._pending)

    def _ensure_started(self) -> None:
        """Start the background flush task if it hasn't been started yet."""
        if self._worker is not None:
            return
        self._worker = asyncio.create_task(self._run_worker(), name="measurement-writer")

    def _track_failure(self) -> None:
        now = utc_now()
        self._write_failures += 1
        self._first_failure_at = self._first_failure_at or now
        self._last_failure_at = now

    async def submit(self, measurement: Measurement) -> None:
        """Queue a measurement for the next flush (non-blocking)."""
        if self._closed:
            return

        self._ensure_started()

        key = measurement.series.key
        if self._skip_unchanged and self._last_written.get(key) == measurement:
            # Back to the stored value: an older pending change is now stale.
            self._pending.pop(key, None)
            return

        if key not in self._pending and len(self._pending) >= self._max_pending:
            self._track_failure()
            logger.warning("Writer full (%d series pending); dropping %s", len(self._pending), key[0])
            return

        self._pending[key] = measurement

    async def submit_many(self, measurements: Iterable[Measurement]) -> None:
        """Submit multiple measurements, preserving order."""
        for measurement in measurements:
            await self.submit(measurement)

    async def flush(self) -> int:
        """Write every pending measurement to the sink; return how many were written."""
        async with self._flush_lock:
            if not self._pending:
                return 0

            batch = list(self._pending.values())
            self._pending.clear()

            written_at = utc_now()
            points = [Point(measurement=m, written_at=written_at) for m in batch]
            try:
                await asyncio.to_thread(self._sink.write, points)
            except Exception:  # noqa: BLE001 - a failed sink must not crash collection
                self._track_failure()
                logger.warning("Failed to write %d measurements", len(points), exc_info=True)
                return 0

            for m in batch:
                self._last_written[m.series.key] = m
            logger.debug("Wrote %d measurements", len(points))
            return len(points)

    async def aclose(self) -> None:
        """Flush and close the writer.

        Safe to call multiple times.
        """
        if self._closed:
            return
        self._closed = True
        if self._worker is not None:
            self._worker.cancel()
            with suppress(asyncio.CancelledError):
                await self._worker
        await self.flush()
        await asyncio.to_thread(self._sink.close)

    async def _run_worker(self) -> None:
        """Background loop that flushes on a fixed interval."""
        while True:
            await asyncio.sleep(self._flush_interval_s)
            await self.flush()

    def degraded_status(self) -> dict[str, Any]:
        """Return a minimal degraded-status snapshot."""
        return {
            "write_failures": self._write_failures,
            "first_failure_at": self._first_failure_at,
            "last_failure_at": self._last_failure_at,
        }
