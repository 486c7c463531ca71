from __future__ import annotations

from decimal import Decimal
from typing import Sequence


class MovementImportError(Exception):
    """Base class for every failure raised while importing a movements table."""


class MissingColumnsError(MovementImportError):
    def __init__(self, *, columns: Sequence[str], found: Sequence[str] = ()) -> None:
        self.columns = list(columns)
        self.found = list(found)
        super().__init__(
            f"Missing required columns: {', '.join(self.columns)} (found: {', '.join(self.found) or 'none'})"
        )


class RowError(MovementImportError):
    """A failure tied to one data row; `row` counts the header as row 1."""

    def __init__(self, message: str, *, row: int) -> None:
        self.row = row
        super().__init__(f"Row {row}: {message}")


class MissingDataError(RowError):
    def __init__(self, *, row: int, field: str) -> None:
        self.field = field
        super().__init__(f"missing value for '{field}'", row=row)


class InvalidDateError(RowError):
    def __init__(self, *, row: int, value: str) -> None:
        self.value = value
        super().__init__(f"date '{value}' is not in DD/MM/YYYY format", row=row)


class InvalidNumberError(RowError):
    def __init__(self, *, row: int, field: str, value: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"value '{value}' for '{field}' is not a valid number", row=row)


class WalletNotFoundError(RowError):
    def __init__(self, *, row: int, symbol: str) -> None:
        self.symbol = symbol
        super().__init__(f"wallet '{symbol}' not found, use the wallet symbol (e.g. BIN)", row=row)


class AssetNotFoundError(RowError):
    def __init__(self, *, row: int, symbol: str) -> None:
        self.symbol = symbol
        super().__init__(f"asset '{symbol}' not found", row=row)


class FiatNotFoundError(RowError):
    def __init__(self, *, row: int, symbol: str) -> None:
        self.symbol = symbol
        super().__init__(f"fiat currency '{symbol}' not found", row=row)


class SameWalletError(RowError):
    def __init__(self, *, row: int) -> None:
        super().__init__("source and destination wallet must differ", row=row)


class SameAssetError(RowError):
    def __init__(self, *, row: int, symbol: str) -> None:
        self.symbol = symbol
        super().__init__(f"source and destination asset must differ (both '{symbol}')", row=row)


class InvalidReceivedAmountError(RowError):
    def __init__(self, *, row: int, sent: Decimal, received: Decimal) -> None:
        self.sent = sent
        self.received = received
        super().__init__(f"received amount {received} exceeds sent amount {sent}", row=row)


class InsufficientFundsError(RowError):
    def __init__(self, *, row: int, asset: str, requested: Decimal, available: Decimal) -> None:
        self.asset = asset
        self.requested = requested
        self.available = available
        super().__init__(
            f"insufficient funds for {asset} requested={requested} available={available}",
            row=row,
        )


__all__ = [
    "AssetNotFoundError",
    "FiatNotFoundError",
    "InsufficientFundsError",
    "InvalidDateError",
    "InvalidNumberError",
    "InvalidReceivedAmountError",
    "MissingColumnsError",
    "MissingDataError",
    "MovementImportError",
    "RowError",
    "SameAssetError",
    "SameWalletError",
    "WalletNotFoundError",
]
