from decimal import Decimal

import pytest
from pydantic import ValidationError

from domain.catalog import Asset, CatalogSnapshot, Wallet
from tests.constants import BTC
from tests.helpers.builders import make_catalog


def test_lookup_by_symbol_is_case_insensitive() -> None:
    catalog = make_catalog()

    wallet = catalog.wallet_by_symbol("bin")
    asset = catalog.asset_by_symbol("Btc")
    fiat = catalog.fiat_by_symbol("eur")

    assert wallet is not None and wallet.name == "Binance"
    assert asset is not None and asset.id == BTC
    assert fiat is not None and fiat.symbol == "EUR"
    assert catalog.wallet_by_symbol("KRAKEN") is None


def test_first_entry_wins_on_duplicate_symbols() -> None:
    first = Wallet(name="Binance", symbol="BIN")
    second = Wallet(name="Binance 2", symbol="bin")

    catalog = CatalogSnapshot(wallets=[first, second])

    assert catalog.wallet_by_symbol("BIN") is first


def test_name_and_symbol_length_caps_raise() -> None:
    with pytest.raises(ValidationError):
        Wallet(name="x" * 21, symbol="BIN")
    with pytest.raises(ValidationError):
        Asset(name="Bitcoin", symbol="S" * 11)

    wallet = Wallet(name="x" * 20, symbol="S" * 10)
    with pytest.raises(ValidationError):
        wallet.symbol = "S" * 11
    assert wallet.symbol == "S" * 10


def test_empty_symbol_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Wallet(name="Binance", symbol="")


def test_asset_defaults() -> None:
    asset = Asset(name="Bitcoin", symbol="BTC")

    assert asset.current_price == Decimal(0)
    assert asset.price_history == []
    assert asset.last_updated.tzinfo is not None
