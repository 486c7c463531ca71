from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence

from domain.base_types import AssetId, FiatId, WalletId
from domain.catalog import Asset, CatalogSnapshot, FiatCurrency, Wallet
from domain.ledger_store import LedgerStore
from domain.movements import Deposit, Movement, Swap, Transfer, UsdAndAltFiat, UsdOnly, Withdrawal
from importers.tabular import Table
from tests.constants import BIN_WALLET, BTC, DAY_1, ETH, EUR, LEDGER_WALLET, USDT


def make_wallets() -> list[Wallet]:
    return [
        Wallet(id=BIN_WALLET, name="Binance", symbol="BIN"),
        Wallet(id=LEDGER_WALLET, name="Ledger", symbol="LDG"),
    ]


def make_assets(
    *,
    btc_price: Decimal = Decimal(0),
    eth_price: Decimal = Decimal(0),
    usdt_price: Decimal = Decimal(1),
) -> list[Asset]:
    return [
        Asset(id=BTC, name="Bitcoin", symbol="BTC", current_price=btc_price),
        Asset(id=ETH, name="Ethereum", symbol="ETH", current_price=eth_price),
        Asset(id=USDT, name="Tether", symbol="USDT", current_price=usdt_price),
    ]


def make_fiats(price_usd: Decimal = Decimal("1.1")) -> list[FiatCurrency]:
    return [FiatCurrency(id=EUR, name="Euro", symbol="EUR", price_usd=price_usd)]


def make_catalog(*, assets: Sequence[Asset] | None = None, with_fiats: bool = True) -> CatalogSnapshot:
    return CatalogSnapshot(
        wallets=make_wallets(),
        assets=assets if assets is not None else make_assets(),
        fiats=make_fiats() if with_fiats else (),
    )


def seed_store(store: LedgerStore, catalog: CatalogSnapshot, movements: Iterable[Movement] = ()) -> None:
    with store.transaction():
        for entity in [*catalog.wallets, *catalog.assets, *catalog.fiats, *movements]:
            store.insert(entity)


def deposit(
    quantity: str,
    unit_price: str,
    *,
    wallet_id: WalletId = BIN_WALLET,
    asset_id: AssetId = BTC,
    day: date = DAY_1,
    fiat_amount: str | None = None,
    fiat_id: FiatId = EUR,
) -> Deposit:
    amount_usd = Decimal(quantity) * Decimal(unit_price)
    value: UsdOnly | UsdAndAltFiat = UsdOnly(amount_usd=amount_usd)
    if fiat_amount is not None:
        value = UsdAndAltFiat(amount_usd=amount_usd, fiat_id=fiat_id, fiat_amount=Decimal(fiat_amount))
    return Deposit(
        date=day,
        wallet_id=wallet_id,
        asset_id=asset_id,
        quantity=Decimal(quantity),
        unit_price_usd=Decimal(unit_price),
        value=value,
    )


def withdrawal(
    quantity: str,
    unit_price: str,
    *,
    wallet_id: WalletId = BIN_WALLET,
    asset_id: AssetId = BTC,
    day: date = DAY_1,
) -> Withdrawal:
    return Withdrawal(
        date=day,
        wallet_id=wallet_id,
        asset_id=asset_id,
        quantity=Decimal(quantity),
        unit_price_usd=Decimal(unit_price),
    )


def transfer(
    sent: str,
    received: str,
    *,
    source_wallet_id: WalletId = BIN_WALLET,
    dest_wallet_id: WalletId = LEDGER_WALLET,
    asset_id: AssetId = BTC,
    day: date = DAY_1,
) -> Transfer:
    return Transfer(
        date=day,
        asset_id=asset_id,
        source_wallet_id=source_wallet_id,
        dest_wallet_id=dest_wallet_id,
        quantity_sent=Decimal(sent),
        quantity_received=Decimal(received),
    )


def swap(
    sent: str,
    received: str,
    *,
    source_price: str,
    dest_price: str,
    wallet_id: WalletId = BIN_WALLET,
    source_asset_id: AssetId = BTC,
    dest_asset_id: AssetId = ETH,
    day: date = DAY_1,
) -> Swap:
    return Swap(
        date=day,
        wallet_id=wallet_id,
        source_asset_id=source_asset_id,
        dest_asset_id=dest_asset_id,
        quantity_sent=Decimal(sent),
        quantity_received=Decimal(received),
        unit_price_source_usd=Decimal(source_price),
        unit_price_dest_usd=Decimal(dest_price),
    )


def table(headers: Sequence[str], *rows: Sequence[str]) -> Table:
    return Table(headers=list(headers), rows=[list(row) for row in rows])
