from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from pydantic import BaseModel

from .balance import BalanceEngine
from .base_types import AssetId, MovementKind, WalletId
from .catalog import Asset, FiatCurrency, Wallet
from .ledger import LedgerSnapshot


class AssetDetail(BaseModel):
    """Valuation of one asset held in one wallet.

    Invested amounts only accumulate from deposits: they are the total capital
    committed, not a remaining cost basis, so withdrawals and swaps never reduce them.
    """

    wallet_id: WalletId
    asset_id: AssetId
    asset_symbol: str
    total_acquired: Decimal
    total_sold: Decimal
    net_transferred: Decimal
    current_balance: Decimal
    invested_usd: Decimal
    invested_fiat: Decimal
    current_value_usd: Decimal
    current_value_fiat: Decimal
    gain: Decimal

    @property
    def gain_percent(self) -> Decimal:
        if self.invested_fiat == 0:
            return Decimal(0)
        return self.gain / self.invested_fiat * 100


def fiat_factor(fiats: Sequence[FiatCurrency]) -> Decimal:
    """USD price of the first available fiat currency; 1 when there is none."""
    if not fiats:
        return Decimal(1)
    return fiats[0].price_usd


class ValuationEngine:
    def __init__(self, snapshot: LedgerSnapshot, balance_engine: BalanceEngine | None = None) -> None:
        self._snapshot = snapshot
        self._balances = balance_engine or BalanceEngine(snapshot)

    def asset_detail(self, wallet: Wallet, asset: Asset, fiats: Sequence[FiatCurrency]) -> AssetDetail:
        legs = self._snapshot.legs_for(wallet.id, asset.id)

        def total(kind: MovementKind, *, inflow: bool) -> Decimal:
            return sum(
                (leg.quantity for leg in legs if leg.kind == kind and leg.inflow == inflow),
                start=Decimal(0),
            )

        deposits = self._snapshot.deposits(wallet.id, asset.id)
        invested_usd = sum((deposit.total_value_usd for deposit in deposits), start=Decimal(0))
        invested_fiat = sum(
            (
                deposit.alt_total_value if deposit.alt_total_value is not None else deposit.total_value_usd
                for deposit in deposits
            ),
            start=Decimal(0),
        )

        current_balance = self._balances.available_balance(wallet.id, asset.id)
        current_value_usd = current_balance * asset.current_price
        current_value_fiat = current_value_usd * fiat_factor(fiats)

        return AssetDetail(
            wallet_id=wallet.id,
            asset_id=asset.id,
            asset_symbol=asset.symbol,
            total_acquired=total(MovementKind.DEPOSIT, inflow=True) + total(MovementKind.SWAP, inflow=True),
            total_sold=total(MovementKind.WITHDRAWAL, inflow=False) + total(MovementKind.SWAP, inflow=False),
            net_transferred=total(MovementKind.TRANSFER, inflow=True) - total(MovementKind.TRANSFER, inflow=False),
            current_balance=current_balance,
            invested_usd=invested_usd,
            invested_fiat=invested_fiat,
            current_value_usd=current_value_usd,
            current_value_fiat=current_value_fiat,
            gain=current_value_fiat - invested_fiat,
        )

    def wallet_asset_details(
        self,
        wallet: Wallet,
        assets: Sequence[Asset],
        fiats: Sequence[FiatCurrency],
    ) -> list[AssetDetail]:
        """Details for every asset with a non-zero balance in `wallet`."""
        details: list[AssetDetail] = []
        for asset in assets:
            detail = self.asset_detail(wallet, asset, fiats)
            if detail.current_balance == 0:
                continue
            details.append(detail)
        return details


__all__ = ["AssetDetail", "ValuationEngine", "fiat_factor"]
