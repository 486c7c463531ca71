from __future__ import annotations

import logging
from pathlib import Path

from domain.balance import BalanceEngine
from domain.base_types import MovementKind
from domain.catalog import Asset, CatalogSnapshot, FiatCurrency, Wallet
from domain.ledger_store import LedgerStore, load_snapshot
from domain.movements import Deposit, Movement, Swap, Transfer, Withdrawal
from importers.movements import FundsCheckMode, MovementImporter
from importers.tabular import Table, read_csv_table

logger = logging.getLogger(__name__)


class MovementImportService:
    """Parse a movements table and persist it atomically.

    Catalog and balances are read from the store once per table. When any row
    fails nothing is written.
    """

    def __init__(self, store: LedgerStore, *, funds_check_mode: FundsCheckMode = FundsCheckMode.RUNNING) -> None:
        self.store = store
        self.funds_check_mode = funds_check_mode

    def import_deposits(self, table: Table) -> list[Deposit]:
        return self._import(MovementKind.DEPOSIT, table)  # type: ignore[return-value]

    def import_withdrawals(self, table: Table) -> list[Withdrawal]:
        return self._import(MovementKind.WITHDRAWAL, table)  # type: ignore[return-value]

    def import_transfers(self, table: Table) -> list[Transfer]:
        return self._import(MovementKind.TRANSFER, table)  # type: ignore[return-value]

    def import_swaps(self, table: Table) -> list[Swap]:
        return self._import(MovementKind.SWAP, table)  # type: ignore[return-value]

    def import_file(self, kind: MovementKind, path: Path) -> list[Movement]:
        logger.info("Importing %s movements from %s", kind, path)
        return self._import(kind, read_csv_table(path))

    def _import(self, kind: MovementKind, table: Table) -> list[Movement]:
        importer = MovementImporter(
            self._catalog(),
            BalanceEngine(load_snapshot(self.store)),
            funds_check=self.funds_check_mode,
        )
        movements = importer.parse(kind, table)

        with self.store.transaction():
            for movement in movements:
                self.store.insert(movement)
        logger.info("Stored %d %s movements", len(movements), kind)
        return movements

    def _catalog(self) -> CatalogSnapshot:
        return CatalogSnapshot(
            wallets=self.store.fetch(Wallet),
            assets=self.store.fetch(Asset),
            fiats=self.store.fetch(FiatCurrency),
        )


__all__ = ["MovementImportService"]
