from decimal import Decimal
from typing import Sequence

import pytest

from domain.balance import BalanceEngine
from domain.base_types import MovementKind
from domain.catalog import CatalogSnapshot
from domain.ledger import LedgerSnapshot
from domain.movements import Movement, UsdAndAltFiat, UsdOnly
from importers.errors import (
    AssetNotFoundError,
    FiatNotFoundError,
    InsufficientFundsError,
    InvalidDateError,
    InvalidNumberError,
    InvalidReceivedAmountError,
    MissingColumnsError,
    MissingDataError,
    SameAssetError,
    SameWalletError,
    WalletNotFoundError,
)
from importers.movements import (
    DepositColumns,
    FundsCheckMode,
    MovementImporter,
    SwapColumns,
    TransferColumns,
    WithdrawalColumns,
    validate_headers,
)
from tests.constants import BIN_WALLET, BTC, DAY_1, ETH, EUR, LEDGER_WALLET, USDT
from tests.helpers.builders import deposit, table

DEPOSIT_HEADERS = [*DepositColumns.REQUIRED, DepositColumns.FIAT_AMOUNT, DepositColumns.FIAT_SYMBOL]
WITHDRAWAL_HEADERS = [*WithdrawalColumns.REQUIRED, WithdrawalColumns.FIAT_AMOUNT, WithdrawalColumns.FIAT_SYMBOL]
TRANSFER_HEADERS = [*TransferColumns.REQUIRED, TransferColumns.FEE]
SWAP_HEADERS = list(SwapColumns.REQUIRED)


def _importer(
    catalog: CatalogSnapshot,
    existing: Sequence[Movement] = (),
    *,
    funds_check: FundsCheckMode = FundsCheckMode.RUNNING,
) -> MovementImporter:
    return MovementImporter(catalog, BalanceEngine(LedgerSnapshot(existing)), funds_check=funds_check)


def test_validate_headers_lists_every_missing_column() -> None:
    with pytest.raises(MissingColumnsError) as exc_info:
        validate_headers(["Fecha", "Cripto", "Extra"], DepositColumns.REQUIRED)

    assert exc_info.value.columns == ["ID_Cartera", "Cripto adquirido", "USD Invertido", "Costo Cripto / USD"]
    assert exc_info.value.found == ["Fecha", "Cripto", "Extra"]


def test_header_check_runs_before_rows(catalog: CatalogSnapshot) -> None:
    headers = [column for column in TRANSFER_HEADERS if column != TransferColumns.QUANTITY_RECEIVED]

    with pytest.raises(MissingColumnsError) as exc_info:
        _importer(catalog).parse_transfers(table(headers, ["not a date"]))

    assert exc_info.value.columns == ["Monto recibido"]


def test_parse_deposits(catalog: CatalogSnapshot) -> None:
    rows = table(
        DEPOSIT_HEADERS,
        ["15/01/2024", "bin", " btc ", "1.23456789", "55555.555", "45000", "", ""],
        ["01/02/2024", "LDG", "ETH", "2", "5000", "2500", "4600", "eur"],
    )

    deposits = _importer(catalog).parse_deposits(rows)

    assert len(deposits) == 2
    first, second = deposits
    assert first.date == DAY_1
    assert first.wallet_id == BIN_WALLET
    assert first.asset_id == BTC
    assert str(first.quantity) == "1.23456789"
    assert isinstance(first.value, UsdOnly)
    assert first.total_value_usd == Decimal("1.23456789") * Decimal("45000")

    assert second.wallet_id == LEDGER_WALLET
    assert second.asset_id == ETH
    assert isinstance(second.value, UsdAndAltFiat)
    assert second.value.fiat_id == EUR
    assert second.value.fiat_amount == Decimal("4600")
    assert second.total_value_usd == Decimal("5000")


def test_deposits_without_optional_fiat_columns(catalog: CatalogSnapshot) -> None:
    rows = table(DepositColumns.REQUIRED, ["15/01/2024", "BIN", "BTC", "1", "100", "100"])

    (movement,) = _importer(catalog).parse_deposits(rows)

    assert movement.value == UsdOnly(amount_usd=Decimal("100"))


def test_first_data_row_is_reported_as_row_two(catalog: CatalogSnapshot) -> None:
    rows = table(DEPOSIT_HEADERS, ["15/01/2024", "BIN", "BTC", "", "100", "100", "", ""])

    with pytest.raises(MissingDataError) as exc_info:
        _importer(catalog).parse_deposits(rows)

    assert exc_info.value.row == 2
    assert exc_info.value.field == "Cripto adquirido"
    assert str(exc_info.value).startswith("Row 2:")


@pytest.mark.parametrize(
    ("row", "error_type", "attributes"),
    [
        (["2024-01-15", "BIN", "BTC", "1", "100", "100", "", ""], InvalidDateError, {"value": "2024-01-15"}),
        (["15/01/2024", "kraken", "BTC", "1", "100", "100", "", ""], WalletNotFoundError, {"symbol": "KRAKEN"}),
        (["15/01/2024", "BIN", "doge", "1", "100", "100", "", ""], AssetNotFoundError, {"symbol": "DOGE"}),
        (
            ["15/01/2024", "BIN", "BTC", "1,5", "100", "100", "", ""],
            InvalidNumberError,
            {"field": "Cripto adquirido", "value": "1,5"},
        ),
        (
            ["15/01/2024", "BIN", "BTC", "1", "abc", "100", "", ""],
            InvalidNumberError,
            {"field": "USD Invertido", "value": "abc"},
        ),
        (
            ["15/01/2024", "BIN", "BTC", "1", "100", "NaN", "", ""],
            InvalidNumberError,
            {"field": "Costo Cripto / USD", "value": "NaN"},
        ),
        (
            ["15/01/2024", "BIN", "BTC", "1", "100", "100", "x", "EUR"],
            InvalidNumberError,
            {"field": "FIAT Invertido", "value": "x"},
        ),
        (["15/01/2024", "BIN", "BTC", "1", "100", "100", "90", "ars"], FiatNotFoundError, {"symbol": "ARS"}),
        (["15/01/2024", "BIN", "BTC", "1", "100", "100", "90", ""], MissingDataError, {"field": "FIAT_Simbolo"}),
        (["15/01/2024", "BIN", "BTC", "1", "100", "100", "", "EUR"], MissingDataError, {"field": "FIAT Invertido"}),
    ],
)
def test_deposit_row_errors(catalog: CatalogSnapshot, row: list[str], error_type: type, attributes: dict) -> None:
    rows = table(DEPOSIT_HEADERS, ["14/01/2024", "BIN", "BTC", "1", "100", "100", "", ""], row)

    with pytest.raises(error_type) as exc_info:
        _importer(catalog).parse_deposits(rows)

    assert exc_info.value.row == 3
    for name, expected in attributes.items():
        assert getattr(exc_info.value, name) == expected


def test_parse_withdrawals_checks_funds(catalog: CatalogSnapshot) -> None:
    existing = [deposit("1", "40000")]
    rows = table(WITHDRAWAL_HEADERS, ["01/02/2024", "BTC", "BIN", "0.4", "42000", "16800", "15000", "EUR"])

    (movement,) = _importer(catalog, existing).parse_withdrawals(rows)

    assert movement.quantity == Decimal("0.4")
    assert movement.total_value_usd == Decimal("16800.0")
    assert movement.alt_total_value == Decimal("15000")

    too_much = table(WITHDRAWAL_HEADERS, ["01/02/2024", "BTC", "BIN", "1.5", "42000", "63000", "", ""])
    with pytest.raises(InsufficientFundsError) as exc_info:
        _importer(catalog, existing).parse_withdrawals(too_much)

    assert exc_info.value.asset == "BTC"
    assert exc_info.value.requested == Decimal("1.5")
    assert exc_info.value.available == Decimal("1")


def test_parse_transfers(catalog: CatalogSnapshot) -> None:
    rows = table(TRANSFER_HEADERS, ["01/02/2024", "BTC", "BIN", "LDG", "0.5", "0.4995", "0.0005"])

    (movement,) = _importer(catalog, [deposit("1", "40000")]).parse_transfers(rows)

    assert movement.source_wallet_id == BIN_WALLET
    assert movement.dest_wallet_id == LEDGER_WALLET
    assert movement.fee == Decimal("0.0005")


def test_transfer_insufficient_funds_reports_exact_decimals(catalog: CatalogSnapshot) -> None:
    rows = table(TRANSFER_HEADERS, ["01/02/2024", "BTC", "BIN", "LDG", "0.30000001", "0.3", ""])

    with pytest.raises(InsufficientFundsError) as exc_info:
        _importer(catalog, [deposit("0.3", "40000")]).parse_transfers(rows)

    assert exc_info.value.row == 2
    assert exc_info.value.requested == Decimal("0.30000001")
    assert exc_info.value.available == Decimal("0.3")


def test_transfer_to_same_wallet_is_rejected(catalog: CatalogSnapshot) -> None:
    rows = table(TRANSFER_HEADERS, ["01/02/2024", "BTC", "BIN", "bin", "0.1", "0.1", ""])

    with pytest.raises(SameWalletError) as exc_info:
        _importer(catalog, [deposit("1", "40000")]).parse_transfers(rows)

    assert exc_info.value.row == 2


def test_transfer_received_above_sent_is_rejected(catalog: CatalogSnapshot) -> None:
    rows = table(TRANSFER_HEADERS, ["01/02/2024", "BTC", "BIN", "LDG", "0.1", "0.2", ""])

    with pytest.raises(InvalidReceivedAmountError) as exc_info:
        _importer(catalog, [deposit("1", "40000")]).parse_transfers(rows)

    assert exc_info.value.sent == Decimal("0.1")
    assert exc_info.value.received == Decimal("0.2")


def test_transfer_fee_column_must_be_numeric(catalog: CatalogSnapshot) -> None:
    rows = table(TRANSFER_HEADERS, ["01/02/2024", "BTC", "BIN", "LDG", "0.1", "0.1", "free"])

    with pytest.raises(InvalidNumberError) as exc_info:
        _importer(catalog, [deposit("1", "40000")]).parse_transfers(rows)

    assert exc_info.value.field == "Comision"


def test_parse_swaps(catalog: CatalogSnapshot) -> None:
    rows = table(SWAP_HEADERS, ["01/02/2024", "BIN", "BTC", "0.1", "USDT", "4200", "42000", "1"])

    (movement,) = _importer(catalog, [deposit("1", "40000")]).parse_swaps(rows)

    assert movement.source_asset_id == BTC
    assert movement.dest_asset_id == USDT
    assert movement.sold_value_usd == Decimal("4200.0")
    assert movement.acquired_value_usd == Decimal("4200")


def test_swap_between_same_asset_is_rejected(catalog: CatalogSnapshot) -> None:
    rows = table(SWAP_HEADERS, ["01/02/2024", "BIN", "btc", "0.1", "BTC", "0.1", "42000", "42000"])

    with pytest.raises(SameAssetError) as exc_info:
        _importer(catalog, [deposit("1", "40000")]).parse_swaps(rows)

    assert exc_info.value.row == 2
    assert exc_info.value.symbol == "BTC"


def test_running_funds_check_counts_earlier_rows(catalog: CatalogSnapshot) -> None:
    rows = table(
        WITHDRAWAL_HEADERS,
        ["01/02/2024", "BTC", "BIN", "0.6", "42000", "25200", "", ""],
        ["02/02/2024", "BTC", "BIN", "0.6", "42000", "25200", "", ""],
    )

    with pytest.raises(InsufficientFundsError) as exc_info:
        _importer(catalog, [deposit("1", "40000")]).parse_withdrawals(rows)

    assert exc_info.value.row == 3
    assert exc_info.value.available == Decimal("0.4")


def test_batch_start_funds_check_ignores_earlier_rows(catalog: CatalogSnapshot) -> None:
    rows = table(
        WITHDRAWAL_HEADERS,
        ["01/02/2024", "BTC", "BIN", "0.6", "42000", "25200", "", ""],
        ["02/02/2024", "BTC", "BIN", "0.6", "42000", "25200", "", ""],
    )
    importer = _importer(catalog, [deposit("1", "40000")], funds_check=FundsCheckMode.BATCH_START)

    movements = importer.parse_withdrawals(rows)

    assert len(movements) == 2


def test_running_funds_check_sees_inflows_from_same_file(catalog: CatalogSnapshot) -> None:
    rows = table(
        SWAP_HEADERS,
        ["01/02/2024", "BIN", "BTC", "0.5", "ETH", "10", "40000", "2000"],
        ["02/02/2024", "BIN", "ETH", "10", "USDT", "20000", "2000", "1"],
    )

    movements = _importer(catalog, [deposit("0.5", "40000")]).parse_swaps(rows)

    assert len(movements) == 2


def test_parse_dispatches_on_kind(catalog: CatalogSnapshot) -> None:
    rows = table(DepositColumns.REQUIRED, ["15/01/2024", "BIN", "BTC", "1", "100", "100"])

    movements = _importer(catalog).parse(MovementKind.DEPOSIT, rows)

    assert [movement.kind for movement in movements] == [MovementKind.DEPOSIT]
