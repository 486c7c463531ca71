from __future__ import annotations

from collections import defaultdict
from decimal import Decimal

from .base_types import AssetId, WalletId
from .ledger import LedgerSnapshot
from .movements import Movement


class BalanceEngine:
    """Net available quantity of an asset in a wallet, derived from movements.

    Balances are never stored and never clamped: a negative result (possible
    after out-of-order edits or deletes) is returned as-is.
    """

    def __init__(self, snapshot: LedgerSnapshot) -> None:
        self._snapshot = snapshot

    def available_balance(
        self,
        wallet_id: WalletId,
        asset_id: AssetId,
        add_back: Decimal = Decimal(0),
    ) -> Decimal:
        """Deposits + transfers in + swaps in + add_back - (withdrawals + transfers out + swaps out).

        `add_back` lets the editor of an existing movement take that movement
        out of the balance before checking funds against the new value.
        """
        balance = sum(
            (leg.signed_quantity for leg in self._snapshot.legs_for(wallet_id, asset_id)),
            start=Decimal(0),
        )
        return balance + add_back

    def has_available(self, wallet_id: WalletId, asset_id: AssetId, quantity: Decimal) -> bool:
        return self.available_balance(wallet_id, asset_id) >= quantity

    def asset_balances_for(self, wallet_ids: set[WalletId] | None = None) -> dict[AssetId, Decimal]:
        totals: dict[AssetId, Decimal] = defaultdict(lambda: Decimal(0))
        for wallet_id, asset_id in self._snapshot.positions():
            if wallet_ids is not None and wallet_id not in wallet_ids:
                continue
            totals[asset_id] += self.available_balance(wallet_id, asset_id)
        return dict(totals)


def _flow_of(movement: Movement, wallet_id: WalletId, asset_id: AssetId, *, inflow: bool) -> Decimal:
    return sum(
        (
            leg.quantity
            for leg in movement.legs()
            if leg.inflow is inflow and leg.wallet_id == wallet_id and leg.asset_id == asset_id
        ),
        start=Decimal(0),
    )


def outflow_of(movement: Movement, wallet_id: WalletId, asset_id: AssetId) -> Decimal:
    """Quantity `movement` takes out of (wallet, asset)."""
    return _flow_of(movement, wallet_id, asset_id, inflow=False)


def inflow_of(movement: Movement, wallet_id: WalletId, asset_id: AssetId) -> Decimal:
    """Quantity `movement` puts into (wallet, asset)."""
    return _flow_of(movement, wallet_id, asset_id, inflow=True)


def net_add_back(movement: Movement, wallet_id: WalletId, asset_id: AssetId) -> Decimal:
    """Balance correction that removes `movement` entirely from (wallet, asset), used when editing it."""
    return outflow_of(movement, wallet_id, asset_id) - inflow_of(movement, wallet_id, asset_id)


class WalletBalanceTracker:
    """Running balances on top of a fixed snapshot.

    Starts from the balances of `engine` and accumulates the legs of movements
    applied afterwards, e.g. rows already accepted earlier in an import batch.
    """

    def __init__(self, engine: BalanceEngine) -> None:
        self._engine = engine
        self._deltas: dict[tuple[WalletId, AssetId], Decimal] = defaultdict(lambda: Decimal(0))

    def apply_movement(self, movement: Movement) -> None:
        for leg in movement.legs():
            self._deltas[(leg.wallet_id, leg.asset_id)] += leg.signed_quantity

    def get_balance(self, *, wallet_id: WalletId, asset_id: AssetId) -> Decimal:
        return self._engine.available_balance(wallet_id, asset_id) + self._deltas.get(
            (wallet_id, asset_id), Decimal(0)
        )

    def has_available(self, *, wallet_id: WalletId, asset_id: AssetId, quantity: Decimal) -> bool:
        return self.get_balance(wallet_id=wallet_id, asset_id=asset_id) >= quantity


__all__ = ["BalanceEngine", "WalletBalanceTracker", "inflow_of", "net_add_back", "outflow_of"]
