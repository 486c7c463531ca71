from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, TypeVar
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from .base_types import NAME_MAX_LENGTH, SYMBOL_MAX_LENGTH, AssetId, FiatId, WalletId
from .price_history import PriceHistoryEntry, record_price_change


class _CatalogEntry(BaseModel):
    # Names and symbols are validated on every assignment, not only on construction.
    model_config = ConfigDict(validate_assignment=True)

    name: str = Field(max_length=NAME_MAX_LENGTH)
    symbol: str = Field(min_length=1, max_length=SYMBOL_MAX_LENGTH)


class Wallet(_CatalogEntry):
    id: WalletId = WalletId(Field(default_factory=uuid4))


class FiatCurrency(_CatalogEntry):
    id: FiatId = FiatId(Field(default_factory=uuid4))
    price_usd: Decimal


class PriceSyncConfig(BaseModel):
    """Where to fetch the USD price of an asset, and what to use when that fails."""

    id: UUID = Field(default_factory=uuid4)
    asset_id: AssetId
    sync_url: str = Field(min_length=1)
    default_price: Decimal


class Asset(_CatalogEntry):
    id: AssetId = AssetId(Field(default_factory=uuid4))
    current_price: Decimal = Decimal(0)
    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    price_history: list[PriceHistoryEntry] = Field(default_factory=list)

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "current_price":
            record_price_change(self, value)
            return
        super().__setattr__(name, value)

    def apply_price(self, price: Decimal, at: datetime) -> None:
        """Overwrite price and timestamp without touching the history."""
        super().__setattr__("current_price", price)
        super().__setattr__("last_updated", at)


_EntryT = TypeVar("_EntryT", bound=_CatalogEntry)


def _index_by_symbol(entries: Iterable[_EntryT]) -> dict[str, _EntryT]:
    indexed: dict[str, _EntryT] = {}
    for entry in entries:
        # First entry wins, same as a linear first-match lookup.
        indexed.setdefault(entry.symbol.upper(), entry)
    return indexed


class CatalogSnapshot:
    """Wallets, assets and fiat currencies captured once for a batch of work."""

    def __init__(
        self,
        *,
        wallets: Iterable[Wallet] = (),
        assets: Iterable[Asset] = (),
        fiats: Iterable[FiatCurrency] = (),
    ) -> None:
        self.wallets = list(wallets)
        self.assets = list(assets)
        self.fiats = list(fiats)
        self._wallets_by_symbol = _index_by_symbol(self.wallets)
        self._assets_by_symbol = _index_by_symbol(self.assets)
        self._fiats_by_symbol = _index_by_symbol(self.fiats)
        self._assets_by_id = {asset.id: asset for asset in self.assets}

    def wallet_by_symbol(self, symbol: str) -> Wallet | None:
        return self._wallets_by_symbol.get(symbol.upper())

    def asset_by_symbol(self, symbol: str) -> Asset | None:
        return self._assets_by_symbol.get(symbol.upper())

    def fiat_by_symbol(self, symbol: str) -> FiatCurrency | None:
        return self._fiats_by_symbol.get(symbol.upper())

    def asset(self, asset_id: AssetId) -> Asset | None:
        return self._assets_by_id.get(asset_id)


__all__ = ["Asset", "CatalogSnapshot", "FiatCurrency", "PriceSyncConfig", "Wallet"]
