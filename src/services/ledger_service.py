from __future__ import annotations

import logging
from decimal import Decimal
from enum import StrEnum
from typing import Iterable

from domain.balance import BalanceEngine, net_add_back
from domain.base_types import MovementId
from domain.catalog import Asset, CatalogSnapshot, FiatCurrency, PriceSyncConfig, Wallet
from domain.ledger import LedgerSnapshot
from domain.ledger_store import LedgerStore, fetch_movements, load_snapshot
from domain.movements import Movement
from importers.errors import InsufficientFundsError

logger = logging.getLogger(__name__)


class DataGroup(StrEnum):
    MOVEMENTS = "movements"
    PRICE_HISTORY = "price_history"
    WALLETS = "wallets"
    ASSETS = "assets"
    FIATS = "fiats"


class LedgerService:
    """Single-record maintenance on top of a ledger store.

    Bulk loading goes through the import pipeline; this covers editing, deleting
    and repricing what is already stored.
    """

    def __init__(self, store: LedgerStore) -> None:
        self.store = store

    def snapshot(self) -> LedgerSnapshot:
        return load_snapshot(self.store)

    def catalog(self) -> CatalogSnapshot:
        return CatalogSnapshot(
            wallets=self.store.fetch(Wallet, order=lambda wallet: wallet.name),
            assets=self.store.fetch(Asset, order=lambda asset: asset.symbol),
            fiats=self.store.fetch(FiatCurrency, order=lambda fiat: fiat.name),
        )

    def get_movement(self, movement_id: MovementId) -> Movement | None:
        for movement in fetch_movements(self.store):
            if movement.id == movement_id:
                return movement
        return None

    def add_movement(self, movement: Movement) -> None:
        self._check_funds(movement, previous=None)
        self.store.insert(movement)
        logger.info("Added %s %s", movement.kind, movement.id)

    def replace_movement(self, updated: Movement) -> None:
        """Replace a stored movement, checking funds as if the previous version never happened."""
        previous = self.get_movement(updated.id)
        if previous is None:
            raise KeyError(f"Movement {updated.id} does not exist")
        self._check_funds(updated, previous=previous)

        with self.store.transaction():
            if type(previous) is type(updated):
                self.store.replace(updated)
            else:
                self.store.delete(previous)
                self.store.insert(updated)
        logger.info("Replaced %s %s", updated.kind, updated.id)

    def delete_movement(self, movement_id: MovementId) -> bool:
        movement = self.get_movement(movement_id)
        if movement is None:
            return False
        # Balances are derived, so deleting may leave later outflows uncovered.
        self.store.delete(movement)
        logger.info("Deleted %s %s", movement.kind, movement.id)
        return True

    def update_asset_price(self, asset: Asset, price: Decimal) -> None:
        previous = asset.current_price
        asset.current_price = price
        self.store.replace(asset)
        logger.info("Price updated for %s: %s (previous: %s)", asset.symbol, price, previous)

    def clear(self, groups: Iterable[DataGroup]) -> dict[DataGroup, int]:
        selected = set(groups)
        deleted: dict[DataGroup, int] = {}
        with self.store.transaction():
            if DataGroup.MOVEMENTS in selected:
                movements = fetch_movements(self.store)
                for movement in movements:
                    self.store.delete(movement)
                deleted[DataGroup.MOVEMENTS] = len(movements)

            if DataGroup.PRICE_HISTORY in selected:
                count = 0
                for asset in self.store.fetch(Asset):
                    count += len(asset.price_history)
                    asset.price_history = []
                    self.store.replace(asset)
                for sync_config in self.store.fetch(PriceSyncConfig):
                    self.store.delete(sync_config)
                deleted[DataGroup.PRICE_HISTORY] = count

            for group, entity_type in (
                (DataGroup.WALLETS, Wallet),
                (DataGroup.ASSETS, Asset),
                (DataGroup.FIATS, FiatCurrency),
            ):
                if group not in selected:
                    continue
                entities = self.store.fetch(entity_type)
                for entity in entities:
                    self.store.delete(entity)
                deleted[group] = len(entities)

        logger.info("Cleared data: %s", ", ".join(f"{group}={count}" for group, count in deleted.items()) or "none")
        return deleted

    def _check_funds(self, movement: Movement, *, previous: Movement | None) -> None:
        balances = BalanceEngine(self.snapshot())
        catalog = self.catalog()
        for leg in movement.legs():
            if leg.inflow:
                continue
            add_back = net_add_back(previous, leg.wallet_id, leg.asset_id) if previous is not None else Decimal(0)
            available = balances.available_balance(leg.wallet_id, leg.asset_id, add_back=add_back)
            if leg.quantity > available:
                asset = catalog.asset(leg.asset_id)
                raise InsufficientFundsError(
                    row=0,
                    asset=asset.symbol if asset is not None else str(leg.asset_id),
                    requested=leg.quantity,
                    available=available,
                )


__all__ = ["DataGroup", "LedgerService"]
