"""Item definitions and prices used for inventory valuation."""

from .client import PriceApiError, WikiPriceClient
from .lookup import ItemLookupError, ItemTable, ItemValuationLookup, WikiItemLookup
from .models import ItemDefinition, ItemID, LatestPrice

__all__ = [
    "ItemDefinition",
    "ItemID",
    "ItemLookupError",
    "ItemTable",
    "ItemValuationLookup",
    "LatestPrice",
    "PriceApiError",
    "WikiItemLookup",
    "WikiPriceClient",
]
