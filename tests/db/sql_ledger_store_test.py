from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from db.ledger_store import SqlLedgerStore
from domain.catalog import Asset, CatalogSnapshot, Wallet
from domain.ledger_store import load_snapshot
from domain.movements import Deposit, Transfer
from domain.price_history import PriceHistoryEntry
from tests.constants import BIN_WALLET, BTC, LEDGER_WALLET
from tests.helpers.builders import deposit, seed_store, transfer


def test_store_round_trips_catalog_and_movements(sql_store: SqlLedgerStore, catalog: CatalogSnapshot) -> None:
    seed_store(sql_store, catalog, [deposit("1", "40000"), transfer("0.4", "0.39")])

    snapshot = load_snapshot(sql_store)

    assert {wallet.symbol for wallet in sql_store.fetch(Wallet)} == {"BIN", "LDG"}
    assert len(sql_store.fetch(Transfer)) == 1
    assert len(snapshot.legs_for(BIN_WALLET, BTC)) == 2
    assert len(snapshot.legs_for(LEDGER_WALLET, BTC)) == 1


def test_fetch_applies_predicate_and_order(sql_store: SqlLedgerStore, catalog: CatalogSnapshot) -> None:
    seed_store(sql_store, catalog)

    assets = sql_store.fetch(Asset, predicate=lambda asset: asset.symbol != "ETH", order=lambda asset: asset.name)

    assert [asset.symbol for asset in assets] == ["BTC", "USDT"]


def test_transaction_rolls_back_everything(
    sql_store: SqlLedgerStore, catalog: CatalogSnapshot, test_session: Session
) -> None:
    seed_store(sql_store, catalog)

    with pytest.raises(RuntimeError):
        with sql_store.transaction():
            sql_store.insert(deposit("1", "1"))
            sql_store.insert(deposit("2", "1"))
            raise RuntimeError("boom")

    assert sql_store.fetch(Deposit) == []
    assert len(sql_store.fetch(Wallet)) == 2


def test_replace_asset_persists_price_history(sql_store: SqlLedgerStore, catalog: CatalogSnapshot) -> None:
    seed_store(sql_store, catalog)
    (btc,) = sql_store.fetch(Asset, predicate=lambda asset: asset.id == BTC)

    btc.current_price = Decimal("50000")
    sql_store.replace(btc)

    (stored,) = sql_store.fetch(Asset, predicate=lambda asset: asset.id == BTC)
    assert stored.current_price == Decimal("50000")
    assert [entry.price for entry in sql_store.fetch(PriceHistoryEntry)] == [Decimal(0)]


def test_delete_movement(sql_store: SqlLedgerStore, catalog: CatalogSnapshot) -> None:
    movement = deposit("1", "1")
    seed_store(sql_store, catalog, [movement])

    sql_store.delete(movement)

    assert sql_store.fetch(Deposit) == []


def test_unsupported_entity_type(sql_store: SqlLedgerStore) -> None:
    with pytest.raises(TypeError):
        sql_store.insert(PriceHistoryEntry(asset_id=BTC, price=Decimal(1), date=datetime.now(timezone.utc)))
