from __future__ import annotations

import datetime as dt
import logging
from decimal import Decimal, InvalidOperation
from enum import StrEnum
from typing import Callable, Sequence, TypeVar

from domain.balance import BalanceEngine, WalletBalanceTracker
from domain.base_types import MovementKind
from domain.catalog import Asset, CatalogSnapshot, FiatCurrency, Wallet
from domain.movements import Deposit, Movement, MovementValue, Swap, Transfer, UsdAndAltFiat, UsdOnly, Withdrawal

from .errors import (
    AssetNotFoundError,
    FiatNotFoundError,
    InsufficientFundsError,
    InvalidDateError,
    InvalidNumberError,
    InvalidReceivedAmountError,
    MissingColumnsError,
    MissingDataError,
    RowError,
    SameAssetError,
    SameWalletError,
    WalletNotFoundError,
)
from .tabular import Table

logger = logging.getLogger(__name__)

DATE_FORMAT = "%d/%m/%Y"

MovementT = TypeVar("MovementT", Deposit, Withdrawal, Transfer, Swap)


class FundsCheckMode(StrEnum):
    # Every row is checked against the balances as they were before the file.
    BATCH_START = "BATCH_START"
    # Rows accepted earlier in the same file count towards later rows' balances.
    RUNNING = "RUNNING"


class DepositColumns:
    DATE = "Fecha"
    WALLET = "ID_Cartera"
    ASSET = "Cripto"
    QUANTITY = "Cripto adquirido"
    TOTAL_USD = "USD Invertido"
    UNIT_PRICE_USD = "Costo Cripto / USD"
    FIAT_AMOUNT = "FIAT Invertido"
    FIAT_SYMBOL = "FIAT_Simbolo"

    REQUIRED = (DATE, WALLET, ASSET, QUANTITY, TOTAL_USD, UNIT_PRICE_USD)


class WithdrawalColumns:
    DATE = "Fecha"
    ASSET = "Cripto"
    WALLET = "ID_Cartera"
    QUANTITY = "Crypto Salido"
    UNIT_PRICE_USD = "Precio USD Venta"
    TOTAL_USD = "USD Total Salido"
    FIAT_AMOUNT = "FIAT Recibido"
    FIAT_SYMBOL = "FIAT_Simbolo"

    REQUIRED = (DATE, ASSET, WALLET, QUANTITY, UNIT_PRICE_USD, TOTAL_USD)


class TransferColumns:
    DATE = "Fecha"
    ASSET = "Cripto"
    SOURCE_WALLET = "ID_Cartera_Origen"
    DEST_WALLET = "ID_Cartera_Destino"
    QUANTITY_SENT = "Monto Envio"
    QUANTITY_RECEIVED = "Monto recibido"
    FEE = "Comision"

    REQUIRED = (DATE, ASSET, SOURCE_WALLET, DEST_WALLET, QUANTITY_SENT, QUANTITY_RECEIVED)


class SwapColumns:
    DATE = "Fecha"
    WALLET = "ID_Cartera"
    SOURCE_ASSET = "Cripto origen"
    QUANTITY_SENT = "Monto Descontado"
    DEST_ASSET = "Cripto final"
    QUANTITY_RECEIVED = "Monto Adquirido"
    UNIT_PRICE_SOURCE_USD = "precio de venta"
    UNIT_PRICE_DEST_USD = "precio de compra"

    REQUIRED = (
        DATE,
        WALLET,
        SOURCE_ASSET,
        QUANTITY_SENT,
        DEST_ASSET,
        QUANTITY_RECEIVED,
        UNIT_PRICE_SOURCE_USD,
        UNIT_PRICE_DEST_USD,
    )


def validate_headers(headers: Sequence[str], required: Sequence[str]) -> None:
    """Fail with every missing column at once, before any row is read."""
    missing = [column for column in required if column not in headers]
    if missing:
        raise MissingColumnsError(columns=missing, found=headers)


class _RowReader:
    """Row-scoped cell access that raises errors carrying the reported row number."""

    def __init__(self, table: Table, row: Sequence[str], row_number: int, catalog: CatalogSnapshot) -> None:
        self._table = table
        self._row = row
        self.row_number = row_number
        self._catalog = catalog

    def optional(self, column: str) -> str | None:
        value = self._table.cell(self._row, column)
        return value or None

    def required(self, column: str) -> str:
        value = self._table.cell(self._row, column)
        if not value:
            raise MissingDataError(row=self.row_number, field=column)
        return value

    def date(self, column: str) -> dt.date:
        raw = self.required(column)
        try:
            return dt.datetime.strptime(raw, DATE_FORMAT).date()
        except ValueError as err:
            raise InvalidDateError(row=self.row_number, value=raw) from err

    def decimal(self, column: str) -> Decimal:
        return self.parse_decimal(column, self.required(column))

    def parse_decimal(self, column: str, raw: str) -> Decimal:
        try:
            value = Decimal(raw)
        except InvalidOperation as err:
            raise InvalidNumberError(row=self.row_number, field=column, value=raw) from err
        # Quantities and prices are never negative, NaN or infinite.
        if not value.is_finite() or value < 0:
            raise InvalidNumberError(row=self.row_number, field=column, value=raw)
        return value

    def wallet(self, column: str) -> Wallet:
        symbol = self.required(column).upper()
        wallet = self._catalog.wallet_by_symbol(symbol)
        if wallet is None:
            raise WalletNotFoundError(row=self.row_number, symbol=symbol)
        return wallet

    def asset(self, column: str) -> Asset:
        symbol = self.required(column).upper()
        asset = self._catalog.asset_by_symbol(symbol)
        if asset is None:
            raise AssetNotFoundError(row=self.row_number, symbol=symbol)
        return asset

    def fiat(self, symbol: str) -> FiatCurrency:
        fiat = self._catalog.fiat_by_symbol(symbol)
        if fiat is None:
            raise FiatNotFoundError(row=self.row_number, symbol=symbol.upper())
        return fiat

    def movement_value(
        self,
        *,
        amount_usd: Decimal,
        fiat_amount_column: str,
        fiat_symbol_column: str,
    ) -> MovementValue:
        """USD-only unless the alternate fiat amount and symbol are both given.

        Supplying only one of the two is rejected as missing data for the other.
        """
        raw_amount = self.optional(fiat_amount_column)
        raw_symbol = self.optional(fiat_symbol_column)
        if raw_amount is None and raw_symbol is None:
            return UsdOnly(amount_usd=amount_usd)
        if raw_amount is None:
            raise MissingDataError(row=self.row_number, field=fiat_amount_column)
        if raw_symbol is None:
            raise MissingDataError(row=self.row_number, field=fiat_symbol_column)

        fiat_amount = self.parse_decimal(fiat_amount_column, raw_amount)
        fiat = self.fiat(raw_symbol)
        return UsdAndAltFiat(amount_usd=amount_usd, fiat_id=fiat.id, fiat_amount=fiat_amount)


class MovementImporter:
    """Turn movement tables into validated movement records.

    The catalog snapshot and the balances are captured by the caller once,
    before the batch starts. Parsing is all-or-nothing: the first failing row
    raises and no movement of that table is returned.
    """

    def __init__(
        self,
        catalog: CatalogSnapshot,
        balances: BalanceEngine,
        *,
        funds_check: FundsCheckMode = FundsCheckMode.RUNNING,
    ) -> None:
        self._catalog = catalog
        self._balances = balances
        self._funds_check = funds_check

    def parse(self, kind: MovementKind, table: Table) -> list[Movement]:
        parsers: dict[MovementKind, Callable[[Table], Sequence[Movement]]] = {
            MovementKind.DEPOSIT: self.parse_deposits,
            MovementKind.WITHDRAWAL: self.parse_withdrawals,
            MovementKind.TRANSFER: self.parse_transfers,
            MovementKind.SWAP: self.parse_swaps,
        }
        return list(parsers[kind](table))

    def parse_deposits(self, table: Table) -> list[Deposit]:
        return self._parse_table(table, DepositColumns.REQUIRED, self._deposit_row, label="deposits")

    def parse_withdrawals(self, table: Table) -> list[Withdrawal]:
        return self._parse_table(table, WithdrawalColumns.REQUIRED, self._withdrawal_row, label="withdrawals")

    def parse_transfers(self, table: Table) -> list[Transfer]:
        return self._parse_table(table, TransferColumns.REQUIRED, self._transfer_row, label="transfers")

    def parse_swaps(self, table: Table) -> list[Swap]:
        return self._parse_table(table, SwapColumns.REQUIRED, self._swap_row, label="swaps")

    def _parse_table(
        self,
        table: Table,
        required: Sequence[str],
        parse_row: Callable[[_RowReader, WalletBalanceTracker], MovementT],
        *,
        label: str,
    ) -> list[MovementT]:
        validate_headers(table.headers, required)

        tracker = WalletBalanceTracker(self._balances)
        movements: list[MovementT] = []
        logger.info("Parsing %d %s rows (funds check: %s)", len(table.rows), label, self._funds_check)

        for index, row in enumerate(table.rows):
            row_number = index + 2
            reader = _RowReader(table, row, row_number, self._catalog)
            try:
                movement = parse_row(reader, tracker)
            except RowError as err:
                logger.info("Aborting %s import: %s", label, err)
                raise
            if self._funds_check == FundsCheckMode.RUNNING:
                tracker.apply_movement(movement)
            movements.append(movement)
            logger.debug("Row %d accepted as %s %s", row_number, movement.kind, movement.id)

        logger.info("Parsed %d %s", len(movements), label)
        return movements

    def _deposit_row(self, reader: _RowReader, tracker: WalletBalanceTracker) -> Deposit:
        columns = DepositColumns
        day = reader.date(columns.DATE)
        wallet = reader.wallet(columns.WALLET)
        asset = reader.asset(columns.ASSET)
        quantity = reader.decimal(columns.QUANTITY)
        reader.decimal(columns.TOTAL_USD)
        unit_price = reader.decimal(columns.UNIT_PRICE_USD)
        value = reader.movement_value(
            amount_usd=quantity * unit_price,
            fiat_amount_column=columns.FIAT_AMOUNT,
            fiat_symbol_column=columns.FIAT_SYMBOL,
        )
        return Deposit(
            date=day,
            wallet_id=wallet.id,
            asset_id=asset.id,
            quantity=quantity,
            unit_price_usd=unit_price,
            value=value,
        )

    def _withdrawal_row(self, reader: _RowReader, tracker: WalletBalanceTracker) -> Withdrawal:
        columns = WithdrawalColumns
        day = reader.date(columns.DATE)
        asset = reader.asset(columns.ASSET)
        wallet = reader.wallet(columns.WALLET)
        quantity = reader.decimal(columns.QUANTITY)
        self._check_funds(reader, tracker, wallet=wallet, asset=asset, requested=quantity)
        unit_price = reader.decimal(columns.UNIT_PRICE_USD)
        reader.decimal(columns.TOTAL_USD)
        value = reader.movement_value(
            amount_usd=quantity * unit_price,
            fiat_amount_column=columns.FIAT_AMOUNT,
            fiat_symbol_column=columns.FIAT_SYMBOL,
        )
        return Withdrawal(
            date=day,
            wallet_id=wallet.id,
            asset_id=asset.id,
            quantity=quantity,
            unit_price_usd=unit_price,
            value=value,
        )

    def _transfer_row(self, reader: _RowReader, tracker: WalletBalanceTracker) -> Transfer:
        columns = TransferColumns
        day = reader.date(columns.DATE)
        asset = reader.asset(columns.ASSET)
        source = reader.wallet(columns.SOURCE_WALLET)
        dest = reader.wallet(columns.DEST_WALLET)
        if source.id == dest.id:
            raise SameWalletError(row=reader.row_number)

        sent = reader.decimal(columns.QUANTITY_SENT)
        received = reader.decimal(columns.QUANTITY_RECEIVED)
        if received > sent:
            raise InvalidReceivedAmountError(row=reader.row_number, sent=sent, received=received)

        raw_fee = reader.optional(columns.FEE)
        if raw_fee is not None:
            # The stored fee is always sent - received; the column is only checked.
            reader.parse_decimal(columns.FEE, raw_fee)

        self._check_funds(reader, tracker, wallet=source, asset=asset, requested=sent)
        return Transfer(
            date=day,
            asset_id=asset.id,
            source_wallet_id=source.id,
            dest_wallet_id=dest.id,
            quantity_sent=sent,
            quantity_received=received,
        )

    def _swap_row(self, reader: _RowReader, tracker: WalletBalanceTracker) -> Swap:
        columns = SwapColumns
        day = reader.date(columns.DATE)
        wallet = reader.wallet(columns.WALLET)
        source_asset = reader.asset(columns.SOURCE_ASSET)
        dest_asset = reader.asset(columns.DEST_ASSET)
        if source_asset.id == dest_asset.id:
            raise SameAssetError(row=reader.row_number, symbol=source_asset.symbol)

        sent = reader.decimal(columns.QUANTITY_SENT)
        received = reader.decimal(columns.QUANTITY_RECEIVED)
        sell_price = reader.decimal(columns.UNIT_PRICE_SOURCE_USD)
        buy_price = reader.decimal(columns.UNIT_PRICE_DEST_USD)

        self._check_funds(reader, tracker, wallet=wallet, asset=source_asset, requested=sent)
        return Swap(
            date=day,
            wallet_id=wallet.id,
            source_asset_id=source_asset.id,
            dest_asset_id=dest_asset.id,
            quantity_sent=sent,
            quantity_received=received,
            unit_price_source_usd=sell_price,
            unit_price_dest_usd=buy_price,
        )

    @staticmethod
    def _check_funds(
        reader: _RowReader,
        tracker: WalletBalanceTracker,
        *,
        wallet: Wallet,
        asset: Asset,
        requested: Decimal,
    ) -> None:
        available = tracker.get_balance(wallet_id=wallet.id, asset_id=asset.id)
        if requested > available:
            raise InsufficientFundsError(
                row=reader.row_number,
                asset=asset.symbol,
                requested=requested,
                available=available,
            )


__all__ = [
    "DATE_FORMAT",
    "DepositColumns",
    "FundsCheckMode",
    "MovementImporter",
    "SwapColumns",
    "TransferColumns",
    "WithdrawalColumns",
    "validate_headers",
]
