from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from .base_types import AssetId, MovementKind, MovementLeg, WalletId
from .movements import Deposit, Movement, Swap, Transfer, Withdrawal


class LedgerSnapshot:
    """Immutable, indexed view over a set of movements.

    Movements only reference wallets and assets by id; the snapshot builds the
    (wallet, asset) -> legs and wallet -> movements indexes once so the read-side
    engines never scan the whole movement list per query.
    """

    def __init__(self, movements: Iterable[Movement] = ()) -> None:
        self.movements: list[Movement] = sorted(movements, key=lambda movement: movement.date)
        self._legs: dict[tuple[WalletId, AssetId], list[MovementLeg]] = defaultdict(list)
        self._by_wallet: dict[WalletId, list[Movement]] = defaultdict(list)

        for movement in self.movements:
            touched: list[WalletId] = []
            for leg in movement.legs():
                self._legs[(leg.wallet_id, leg.asset_id)].append(leg)
                if leg.wallet_id not in touched:
                    touched.append(leg.wallet_id)
            for wallet_id in touched:
                self._by_wallet[wallet_id].append(movement)

    def legs_for(self, wallet_id: WalletId, asset_id: AssetId) -> list[MovementLeg]:
        return list(self._legs.get((wallet_id, asset_id), ()))

    def legs_of_kind(self, wallet_id: WalletId, asset_id: AssetId, kind: MovementKind) -> list[MovementLeg]:
        return [leg for leg in self._legs.get((wallet_id, asset_id), ()) if leg.kind == kind]

    def positions(self) -> list[tuple[WalletId, AssetId]]:
        return list(self._legs.keys())

    def movements_for_wallet(self, wallet_id: WalletId) -> list[Movement]:
        return list(self._by_wallet.get(wallet_id, ()))

    def deposits(self, wallet_id: WalletId, asset_id: AssetId | None = None) -> list[Deposit]:
        return [
            movement
            for movement in self._by_wallet.get(wallet_id, ())
            if isinstance(movement, Deposit) and (asset_id is None or movement.asset_id == asset_id)
        ]

    def withdrawals(self, wallet_id: WalletId, asset_id: AssetId | None = None) -> list[Withdrawal]:
        return [
            movement
            for movement in self._by_wallet.get(wallet_id, ())
            if isinstance(movement, Withdrawal) and (asset_id is None or movement.asset_id == asset_id)
        ]

    def swaps(self, wallet_id: WalletId) -> list[Swap]:
        return [movement for movement in self._by_wallet.get(wallet_id, ()) if isinstance(movement, Swap)]

    def transfers(self, wallet_id: WalletId) -> list[Transfer]:
        return [movement for movement in self._by_wallet.get(wallet_id, ()) if isinstance(movement, Transfer)]


__all__ = ["LedgerSnapshot"]
