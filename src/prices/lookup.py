"""Item valuation lookups.

The measurement builder depends on the small `ItemValuationLookup` interface so
the price source (a static table, the public price API) can be swapped without
changing valuation code.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Protocol

from .client import WikiPriceClient
from .models import ItemDefinition, LatestPrice

logger = logging.getLogger(__name__)


class ItemLookupError(LookupError):
    """Raised when an item id has no known definition."""

    def __init__(self, item_id: int):
        self.item_id = item_id
        super().__init__(f"No item definition for id {item_id}")


class ItemValuationLookup(Protocol):
    def canonicalize(self, item_id: int) -> int:
        """Map noted/placeholder/variant ids to the base item id."""

    def get_item_definition(self, item_id: int) -> ItemDefinition | None:
        """Return the definition for a canonical id, or None if unknown."""

    def get_item_price(self, item_id: int) -> int:
        """Return the market price of one unit of a canonical id."""


class ItemTable:
    """In-memory lookup for tests, offline runs and cached price dumps."""

    def __init__(
        self,
        definitions: Iterable[ItemDefinition],
        prices: Mapping[int, int] | None = None,
        variants: Mapping[int, int] | None = None,
    ) -> None:
        self._definitions = {d.id: d for d in definitions}
        self._prices = dict(prices or {})
        self._variants = dict(variants or {})

    @classmethod
    def from_json(cls, path: str | Path) -> "ItemTable":
        """Load a table from a JSON file.

        Expected shape::

            {"items": [{"id": 4151, "name": "Abyssal whip", "price": 120001}],
             "prices": {"4151": 1500000},
             "variants": {"4152": 4151}}
        """
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        definitions = [ItemDefinition.model_validate(item) for item in raw.get("items", [])]
        prices = {int(k): int(v) for k, v in raw.get("prices", {}).items()}
        variants = {int(k): int(v) for k, v in raw.get("variants", {}).items()}
        logger.debug("Loaded item table from %s (%d items)", path, len(definitions))
        return cls(definitions, prices=prices, variants=variants)

    def canonicalize(self, item_id: int) -> int:
        return self._variants.get(item_id, item_id)

    def get_item_definition(self, item_id: int) -> ItemDefinition | None:
        return self._definitions.get(item_id)

    def get_item_price(self, item_id: int) -> int:
        return self._prices.get(item_id, 0)


class WikiItemLookup:
    """Lookup backed by the public price API, cached after first use.

    The API has no notion of noted or placeholder ids, so variant mapping is
    supplied by the caller.
    """

    def __init__(self, client: WikiPriceClient, *, variants: Mapping[int, int] | None = None) -> None:
        self._client = client
        self._variants = dict(variants or {})
        self._definitions: dict[int, ItemDefinition] | None = None
        self._prices: dict[int, LatestPrice] | None = None

    def close(self) -> None:
        """Close the underlying price client."""
        self._client.close()

    def refresh(self) -> None:
        """Reload item definitions and latest prices from the API."""
        self._definitions = {d.id: d for d in self._client.fetch_mapping()}
        self._prices = self._client.fetch_latest()
        logger.info(
            "Loaded %d item definitions and %d prices", len(self._definitions), len(self._prices)
        )

    def _loaded(self) -> tuple[dict[int, ItemDefinition], dict[int, LatestPrice]]:
        if self._definitions is None or self._prices is None:
            self.refresh()
        assert self._definitions is not None and self._prices is not None
        return self._definitions, self._prices

    def canonicalize(self, item_id: int) -> int:
        return self._variants.get(item_id, item_id)

    def get_item_definition(self, item_id: int) -> ItemDefinition | None:
        definitions, _ = self._loaded()
        return definitions.get(item_id)

    def get_item_price(self, item_id: int) -> int:
        _, prices = self._loaded()
        latest = prices.get(item_id)
        return latest.market_price if latest is not None else 0
