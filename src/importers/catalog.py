from __future__ import annotations

import csv
import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Iterator, Sequence

from domain.catalog import Asset, FiatCurrency, PriceSyncConfig, Wallet

logger = logging.getLogger(__name__)


class CatalogFormatError(ValueError):
    def __init__(self, *, path: Path, line_number: int, line: str) -> None:
        self.path = path
        self.line_number = line_number
        self.line = line
        super().__init__(f"Invalid format in {path.name} line {line_number}: {line}")


def _read_lines(path: Path, field_count: int) -> Iterator[tuple[int, list[str]]]:
    """Headerless comma separated lines; blank lines are skipped."""
    with path.open(newline="", encoding="utf-8-sig") as handle:
        for line_number, fields in enumerate(csv.reader(handle), start=1):
            if not any(field.strip() for field in fields):
                continue
            if len(fields) != field_count:
                raise CatalogFormatError(path=path, line_number=line_number, line=",".join(fields))
            yield line_number, [field.strip() for field in fields]


def _parse_price(path: Path, line_number: int, fields: Sequence[str]) -> Decimal:
    raw = fields[-1]
    try:
        price = Decimal(raw)
    except InvalidOperation as err:
        raise CatalogFormatError(path=path, line_number=line_number, line=",".join(fields)) from err
    if not price.is_finite():
        raise CatalogFormatError(path=path, line_number=line_number, line=",".join(fields))
    return price


def load_wallets(path: Path) -> list[Wallet]:
    wallets = [Wallet(name=name, symbol=symbol) for _, (name, symbol) in _read_lines(path, 2)]
    logger.info("Loaded %d wallets from %s", len(wallets), path)
    return wallets


def load_assets(path: Path) -> list[Asset]:
    assets = [Asset(name=name, symbol=symbol) for _, (name, symbol) in _read_lines(path, 2)]
    logger.info("Loaded %d assets from %s", len(assets), path)
    return assets


def load_fiats(path: Path) -> list[FiatCurrency]:
    fiats: list[FiatCurrency] = []
    for line_number, fields in _read_lines(path, 3):
        name, symbol, _ = fields
        fiats.append(FiatCurrency(name=name, symbol=symbol, price_usd=_parse_price(path, line_number, fields)))
    logger.info("Loaded %d fiat currencies from %s", len(fiats), path)
    return fiats


def load_price_sync_configs(path: Path, assets: Sequence[Asset]) -> list[PriceSyncConfig]:
    """Lines of `symbol,sync_url,default_price`; unknown symbols are skipped with a warning."""
    by_symbol: dict[str, Asset] = {}
    for asset in assets:
        by_symbol.setdefault(asset.symbol.upper(), asset)
    configs: list[PriceSyncConfig] = []
    for line_number, fields in _read_lines(path, 3):
        symbol, sync_url, _ = fields
        default_price = _parse_price(path, line_number, fields)
        asset = by_symbol.get(symbol.upper())
        if asset is None:
            logger.warning("No asset found for symbol %s (line %d), skipping sync config", symbol, line_number)
            continue
        configs.append(PriceSyncConfig(asset_id=asset.id, sync_url=sync_url, default_price=default_price))
    logger.info("Loaded %d price sync configs from %s", len(configs), path)
    return configs


__all__ = ["CatalogFormatError", "load_assets", "load_fiats", "load_price_sync_configs", "load_wallets"]
