from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, TypeAdapter

from .base_types import AssetId

_PRICE_ADAPTER: TypeAdapter[Decimal] = TypeAdapter(Decimal)

if TYPE_CHECKING:
    from .catalog import Asset


class PriceHistoryEntry(BaseModel):
    """Snapshot of an asset's price taken right before it was overwritten."""

    id: UUID = Field(default_factory=uuid4)
    asset_id: AssetId
    price: Decimal
    date: datetime


def record_price_change(asset: Asset, new_price: Decimal, *, at: datetime | None = None) -> PriceHistoryEntry:
    """Append the previous price to the asset history, then overwrite it.

    The entry is written for every call, including when the price does not change.
    An invalid price raises before anything is recorded.
    """
    price = _PRICE_ADAPTER.validate_python(new_price)
    entry = PriceHistoryEntry(asset_id=asset.id, price=asset.current_price, date=asset.last_updated)
    asset.price_history.append(entry)
    asset.apply_price(price, at or datetime.now(timezone.utc))
    return entry


def price_at(asset: Asset, day: date | datetime) -> Decimal | None:
    """Return the recorded price for the same calendar day, if any. No interpolation."""
    target = day.date() if isinstance(day, datetime) else day
    for entry in asset.price_history:
        if entry.date.date() == target:
            return entry.price
    return None


def performance_since(asset: Asset, day: date | datetime) -> Decimal | None:
    previous = price_at(asset, day)
    if previous is None or previous == 0:
        return None
    return (asset.current_price - previous) / previous * 100


__all__ = ["PriceHistoryEntry", "performance_since", "price_at", "record_price_change"]
