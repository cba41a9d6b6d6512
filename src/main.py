"""Entrypoint exporting one game snapshot to the local measurement store.

This module wires the pieces together:

- Loads configuration from environment and configures logging.
- Loads a `GameSnapshot` from a JSON file (as dumped by the host client).
- Resolves prices from an offline table or the price API.
- Builds every measurement for the snapshot and writes them to DuckDB.

Run from `src/` with `python -m main snapshot.json`.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

from config import Config, load_config
from export import DuckDBMeasurementSink, MeasurementWriter
from metrics import GameSnapshot, MeasurementBuilder, iter_snapshot_measurements
from prices import ItemTable, ItemValuationLookup, WikiItemLookup, WikiPriceClient

logger = logging.getLogger(__name__)


def _build_lookup(cfg: Config) -> ItemValuationLookup:
    """Offline table when configured, otherwise the (cached) price API."""
    if cfg.prices.table_path:
        return ItemTable.from_json(cfg.prices.table_path)
    return WikiItemLookup(WikiPriceClient(cfg.prices))


async def export_snapshot(snapshot: GameSnapshot, *, cfg: Config, items: ItemValuationLookup) -> int:
    """Build and write every measurement for `snapshot`; return how many were written."""
    builder = MeasurementBuilder(state=snapshot, items=items)
    writer = MeasurementWriter(
        sink=DuckDBMeasurementSink(path=cfg.sink.db_path, table=cfg.sink.table),
        flush_interval_s=cfg.writer.flush_interval_s,
        max_pending=cfg.writer.max_pending,
        skip_unchanged=cfg.writer.skip_unchanged,
    )
    try:
        await writer.submit_many(iter_snapshot_measurements(builder, snapshot))
        written = await writer.flush()
    finally:
        await writer.aclose()

    status = writer.degraded_status()
    if status["write_failures"]:
        logger.warning("Export degraded: %s", status)
    return written


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint: `python -m main <snapshot.json>`."""
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        print("usage: python -m main <snapshot.json>", file=sys.stderr)
        return 2

    cfg = load_config()
    logging.basicConfig(
        level=cfg.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    snapshot = GameSnapshot.model_validate_json(Path(args[0]).read_text(encoding="utf-8"))
    items = _build_lookup(cfg)
    try:
        written = asyncio.run(export_snapshot(snapshot, cfg=cfg, items=items))
    finally:
        if isinstance(items, WikiItemLookup):
            items.close()
    logger.info("Exported %d measurements for %s to %s", written, snapshot.username(), cfg.sink.db_path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
