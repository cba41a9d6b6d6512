"""Item definition and price API models.

Only the subset of the price API payloads that the exporter values items with.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ItemID:
    """Item ids with special meaning for inventory valuation."""

    COINS_995 = 995
    PLATINUM_TOKEN = 13204
    BANK_FILLER = 20594


class _Model(BaseModel):
    # Price API payloads carry more fields than we need.
    model_config = ConfigDict(extra="ignore", frozen=True)


class ItemDefinition(_Model):
    """Canonical item: display name and store price (basis for alchemy value)."""

    id: int
    name: str
    price: int = Field(default=0, ge=0)

    @classmethod
    def from_mapping(cls, payload: dict[str, Any]) -> "ItemDefinition":
        """Parse one entry of the `/mapping` endpoint (`value` is the store price)."""
        return cls(id=payload["id"], name=payload["name"], price=payload.get("value") or 0)


class LatestPrice(_Model):
    """Most recent instant-buy (`high`) and instant-sell (`low`) prices."""

    high: int | None = None
    low: int | None = None

    @field_validator("high", "low", mode="before")
    @classmethod
    def _coerce_price(cls, v: Any) -> int | None:
        if v is None or v == "":
            return None
        return int(v)

    @property
    def market_price(self) -> int:
        """Mean of high/low when both are known, else whichever is known (0 if none)."""
        if self.high is not None and self.low is not None:
            return (self.high + self.low) // 2
        if self.high is not None:
            return self.high
        if self.low is not None:
            return self.low
        return 0
