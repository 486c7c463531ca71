from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Sequence

from .balance import BalanceEngine
from .base_types import AssetId, WalletId
from .catalog import Asset, FiatCurrency, Wallet
from .ledger import LedgerSnapshot
from .valuation import AssetDetail, ValuationEngine


def _percent(part: Decimal, whole: Decimal) -> Decimal:
    if whole <= 0:
        return Decimal(0)
    return part / whole * 100


@dataclass
class WalletDetail:
    wallet: Wallet
    asset_details: list[AssetDetail] = field(default_factory=list)

    @property
    def total_current_value(self) -> Decimal:
        return sum((detail.current_value_usd for detail in self.asset_details), start=Decimal(0))

    @property
    def total_current_value_fiat(self) -> Decimal:
        return sum((detail.current_value_fiat for detail in self.asset_details), start=Decimal(0))

    @property
    def total_invested(self) -> Decimal:
        return sum((detail.invested_fiat for detail in self.asset_details), start=Decimal(0))

    @property
    def total_gain(self) -> Decimal:
        return sum((detail.gain for detail in self.asset_details), start=Decimal(0))

    @property
    def gain_percent(self) -> Decimal:
        return _percent(self.total_current_value_fiat - self.total_invested, self.total_invested)


@dataclass(frozen=True)
class PortfolioSummary:
    total_invested_usd: Decimal
    total_current_value_usd: Decimal
    total_sold_usd: Decimal
    total_gain: Decimal
    gain_percent: Decimal

    @property
    def is_gain(self) -> bool:
        return self.gain_percent >= 0


@dataclass(frozen=True)
class GainDistributionEntry:
    asset_id: AssetId
    symbol: str
    gain: Decimal
    current_value: Decimal
    percent: Decimal


@dataclass(frozen=True)
class AssetSummary:
    """One asset across every wallet of the portfolio."""

    asset: Asset
    total_available: Decimal
    current_price: Decimal
    total_acquired_usd: Decimal
    current_value_usd: Decimal
    total_sold_usd: Decimal
    gain_usd: Decimal


class PortfolioAggregator:
    def __init__(self, snapshot: LedgerSnapshot) -> None:
        self._snapshot = snapshot
        self._balances = BalanceEngine(snapshot)
        self._valuation = ValuationEngine(snapshot, self._balances)

    def wallet_detail(self, wallet: Wallet, assets: Sequence[Asset], fiats: Sequence[FiatCurrency]) -> WalletDetail:
        return WalletDetail(wallet=wallet, asset_details=self._valuation.wallet_asset_details(wallet, assets, fiats))

    def portfolio_details(
        self,
        wallets: Sequence[Wallet],
        assets: Sequence[Asset],
        fiats: Sequence[FiatCurrency],
    ) -> list[WalletDetail]:
        """Wallet details for the whole portfolio; wallets without holdings are dropped."""
        details = [self.wallet_detail(wallet, assets, fiats) for wallet in wallets]
        return [detail for detail in details if detail.asset_details]

    def portfolio_summary(self, wallet_details: Sequence[WalletDetail], wallets: Sequence[Wallet]) -> PortfolioSummary:
        total_invested = sum((detail.total_invested for detail in wallet_details), start=Decimal(0))
        total_current_value = sum((detail.total_current_value for detail in wallet_details), start=Decimal(0))
        total_sold = sum((self._sold_usd(wallet.id) for wallet in wallets), start=Decimal(0))

        return PortfolioSummary(
            total_invested_usd=total_invested,
            total_current_value_usd=total_current_value,
            total_sold_usd=total_sold,
            total_gain=total_current_value - total_invested,
            gain_percent=_percent(total_current_value - total_invested, total_invested),
        )

    def asset_summaries(self, wallets: Sequence[Wallet], assets: Sequence[Asset]) -> list[AssetSummary]:
        summaries: list[AssetSummary] = []
        for asset in assets:
            total_available = sum(
                (self._balances.available_balance(wallet.id, asset.id) for wallet in wallets),
                start=Decimal(0),
            )
            if total_available <= 0:
                continue

            acquired = Decimal(0)
            sold = Decimal(0)
            for wallet in wallets:
                acquired += sum(
                    (deposit.total_value_usd for deposit in self._snapshot.deposits(wallet.id, asset.id)),
                    start=Decimal(0),
                )
                sold += sum(
                    (withdrawal.total_value_usd for withdrawal in self._snapshot.withdrawals(wallet.id, asset.id)),
                    start=Decimal(0),
                )
                for swap in self._snapshot.swaps(wallet.id):
                    if swap.dest_asset_id == asset.id:
                        acquired += swap.acquired_value_usd
                    if swap.source_asset_id == asset.id:
                        sold += swap.sold_value_usd

            current_value = total_available * asset.current_price
            summaries.append(
                AssetSummary(
                    asset=asset,
                    total_available=total_available,
                    current_price=asset.current_price,
                    total_acquired_usd=acquired,
                    current_value_usd=current_value,
                    total_sold_usd=sold,
                    gain_usd=current_value - acquired + sold,
                )
            )

        summaries.sort(key=lambda summary: summary.current_value_usd, reverse=True)
        return summaries

    def _sold_usd(self, wallet_id: WalletId) -> Decimal:
        withdrawals = sum(
            (withdrawal.total_value_usd for withdrawal in self._snapshot.withdrawals(wallet_id)),
            start=Decimal(0),
        )
        swaps = sum((swap.sold_value_usd for swap in self._snapshot.swaps(wallet_id)), start=Decimal(0))
        return withdrawals + swaps


def gain_distribution(wallet_details: Sequence[WalletDetail]) -> list[GainDistributionEntry]:
    """Gain per asset across wallets, largest gain first.

    Percentages are relative to the sum of absolute gains, so a mix of gains and
    losses does not add up to 100.
    """
    symbols: dict[AssetId, str] = {}
    gains: dict[AssetId, Decimal] = {}
    values: dict[AssetId, Decimal] = {}

    for wallet_detail in wallet_details:
        for detail in wallet_detail.asset_details:
            symbols.setdefault(detail.asset_id, detail.asset_symbol)
            gains[detail.asset_id] = gains.get(detail.asset_id, Decimal(0)) + detail.gain
            values[detail.asset_id] = values.get(detail.asset_id, Decimal(0)) + detail.current_value_usd

    total_absolute = sum((abs(gain) for gain in gains.values()), start=Decimal(0))

    entries = [
        GainDistributionEntry(
            asset_id=asset_id,
            symbol=symbols[asset_id],
            gain=gain,
            current_value=values[asset_id],
            percent=gain / total_absolute * 100 if total_absolute != 0 else Decimal(0),
        )
        for asset_id, gain in gains.items()
    ]
    entries.sort(key=lambda entry: entry.gain, reverse=True)
    return entries


__all__ = [
    "AssetSummary",
    "GainDistributionEntry",
    "PortfolioAggregator",
    "PortfolioSummary",
    "WalletDetail",
    "gain_distribution",
]
