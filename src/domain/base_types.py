from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from typing import NewType
from uuid import UUID

from pydantic import BaseModel

WalletId = NewType("WalletId", UUID)
AssetId = NewType("AssetId", UUID)
FiatId = NewType("FiatId", UUID)
MovementId = NewType("MovementId", UUID)

NAME_MAX_LENGTH = 20
SYMBOL_MAX_LENGTH = 10


class MovementKind(StrEnum):
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    TRANSFER = "TRANSFER"
    SWAP = "SWAP"


class MovementLeg(BaseModel):
    """The effect of a movement on a single (wallet, asset) position.

    `quantity` is always the non-negative amount moved; `inflow` tells the
    direction. `signed_quantity` follows the ledger sign convention:
    - Positive quantity indicates an asset/position increase.
    - Negative quantity indicates an asset/position decrease.
    """

    kind: MovementKind
    wallet_id: WalletId
    asset_id: AssetId
    quantity: Decimal
    inflow: bool

    @property
    def signed_quantity(self) -> Decimal:
        return self.quantity if self.inflow else -self.quantity
