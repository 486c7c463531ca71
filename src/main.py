from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from config import config
from db.db import init_db
from db.ledger_store import SqlLedgerStore
from domain.base_types import MovementKind
from domain.catalog import Asset
from domain.ledger_store import LedgerStore
from domain.portfolio import PortfolioAggregator, gain_distribution
from importers.catalog import load_assets, load_fiats, load_price_sync_configs, load_wallets
from importers.movements import FundsCheckMode
from services.ledger_service import LedgerService
from services.movement_import import MovementImportService
from services.price_sync import HttpPriceFeed, PriceSyncService
from utils.portfolio_report import render_portfolio_report

# Outflows are checked against earlier inflows, so deposits go first.
IMPORT_ORDER = (MovementKind.DEPOSIT, MovementKind.TRANSFER, MovementKind.SWAP, MovementKind.WITHDRAWAL)


def load_catalogs(
    store: LedgerStore,
    *,
    wallets: Path | None,
    assets: Path | None,
    fiats: Path | None,
    sync_configs: Path | None,
) -> None:
    with store.transaction():
        if wallets is not None:
            for wallet in load_wallets(wallets):
                store.insert(wallet)
        if assets is not None:
            for asset in load_assets(assets):
                store.insert(asset)
        if fiats is not None:
            for fiat in load_fiats(fiats):
                store.insert(fiat)
    if sync_configs is not None:
        with store.transaction():
            for sync_config in load_price_sync_configs(sync_configs, store.fetch(Asset)):
                store.insert(sync_config)


def run(
    db_file: Path,
    *,
    reset: bool,
    catalogs: dict[str, Path | None],
    movement_files: dict[MovementKind, Path | None],
    funds_check_mode: FundsCheckMode,
    sync_prices: bool,
) -> None:
    session = init_db(db_file=db_file, reset=reset)
    store = SqlLedgerStore(session)

    load_catalogs(store, **catalogs)

    import_service = MovementImportService(store, funds_check_mode=funds_check_mode)
    for kind in IMPORT_ORDER:
        path = movement_files.get(kind)
        if path is not None:
            movements = import_service.import_file(kind, path)
            print(f"Imported {len(movements)} {kind.lower()} movements from {path}")

    if sync_prices:
        PriceSyncService(store, HttpPriceFeed(timeout=config().price_sync_timeout)).sync_all()

    ledger = LedgerService(store)
    catalog = ledger.catalog()
    aggregator = PortfolioAggregator(ledger.snapshot())
    wallet_details = aggregator.portfolio_details(catalog.wallets, catalog.assets, catalog.fiats)
    summary = aggregator.portfolio_summary(wallet_details, catalog.wallets)

    print(
        render_portfolio_report(
            summary,
            wallet_details,
            gain_distribution(wallet_details),
            aggregator.asset_summaries(catalog.wallets, catalog.assets),
        )
    )


def main(argv: Sequence[str] | None = None) -> None:
    settings = config()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    parser = argparse.ArgumentParser(description="Load catalogs and movements, then print the portfolio.")
    parser.add_argument("--db", type=Path, default=settings.db_file)
    parser.add_argument("--reset", action="store_true", help="Delete the database before loading.")
    parser.add_argument("--wallets", type=Path)
    parser.add_argument("--assets", type=Path)
    parser.add_argument("--fiats", type=Path)
    parser.add_argument("--sync-configs", type=Path)
    parser.add_argument("--deposits", type=Path)
    parser.add_argument("--withdrawals", type=Path)
    parser.add_argument("--transfers", type=Path)
    parser.add_argument("--swaps", type=Path)
    parser.add_argument(
        "--funds-check",
        type=FundsCheckMode,
        choices=list(FundsCheckMode),
        default=settings.funds_check_mode,
    )
    parser.add_argument("--sync-prices", action="store_true", help="Fetch current prices before reporting.")
    args = parser.parse_args(argv)
    run(
        args.db,
        reset=args.reset,
        catalogs={
            "wallets": args.wallets,
            "assets": args.assets,
            "fiats": args.fiats,
            "sync_configs": args.sync_configs,
        },
        movement_files={
            MovementKind.DEPOSIT: args.deposits,
            MovementKind.WITHDRAWAL: args.withdrawals,
            MovementKind.TRANSFER: args.transfers,
            MovementKind.SWAP: args.swaps,
        },
        funds_check_mode=args.funds_check,
        sync_prices=args.sync_prices,
    )


if __name__ == "__main__":
    main()
