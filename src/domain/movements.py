from __future__ import annotations

import datetime as dt
from decimal import Decimal, InvalidOperation
from typing import Annotated, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from .base_types import AssetId, FiatId, MovementId, MovementKind, MovementLeg, WalletId

NonNegativeDecimal = Annotated[Decimal, Field(ge=0)]


class UsdOnly(BaseModel):
    mode: Literal["USD"] = "USD"
    amount_usd: NonNegativeDecimal


class UsdAndAltFiat(BaseModel):
    mode: Literal["USD_AND_FIAT"] = "USD_AND_FIAT"
    amount_usd: NonNegativeDecimal
    fiat_id: FiatId
    fiat_amount: NonNegativeDecimal


MovementValue = Annotated[Union[UsdOnly, UsdAndAltFiat], Field(discriminator="mode")]


class _Movement(BaseModel):
    id: MovementId = MovementId(Field(default_factory=uuid4))
    date: dt.date


class _ValuedMovement(_Movement):
    """Shared shape of deposits and withdrawals.

    `value.amount_usd` always equals `quantity * unit_price_usd`.
    """

    wallet_id: WalletId
    asset_id: AssetId
    quantity: NonNegativeDecimal
    unit_price_usd: NonNegativeDecimal
    value: MovementValue

    @model_validator(mode="before")
    @classmethod
    def _default_value(cls, data: object) -> object:
        if not isinstance(data, dict) or data.get("value") is not None:
            return data
        try:
            quantity = Decimal(str(data["quantity"]))
            unit_price = Decimal(str(data["unit_price_usd"]))
        except (KeyError, InvalidOperation):
            # Leave it to field validation to report the problem.
            return data
        return {**data, "value": UsdOnly(amount_usd=quantity * unit_price)}

    @model_validator(mode="after")
    def _validate_total(self) -> _ValuedMovement:
        if self.value.amount_usd != self.quantity * self.unit_price_usd:
            raise ValueError("value.amount_usd must equal quantity * unit_price_usd")
        return self

    @property
    def total_value_usd(self) -> Decimal:
        return self.value.amount_usd

    @property
    def uses_alt_fiat(self) -> bool:
        return isinstance(self.value, UsdAndAltFiat)

    @property
    def alt_fiat_id(self) -> FiatId | None:
        return self.value.fiat_id if isinstance(self.value, UsdAndAltFiat) else None

    @property
    def alt_total_value(self) -> Decimal | None:
        return self.value.fiat_amount if isinstance(self.value, UsdAndAltFiat) else None

    @property
    def alt_unit_price(self) -> Decimal | None:
        if not isinstance(self.value, UsdAndAltFiat) or self.quantity == 0:
            return None
        return self.value.fiat_amount / self.quantity


class Deposit(_ValuedMovement):
    kind: Literal[MovementKind.DEPOSIT] = MovementKind.DEPOSIT

    def legs(self) -> list[MovementLeg]:
        return [
            MovementLeg(
                kind=self.kind, wallet_id=self.wallet_id, asset_id=self.asset_id, quantity=self.quantity, inflow=True
            )
        ]


class Withdrawal(_ValuedMovement):
    kind: Literal[MovementKind.WITHDRAWAL] = MovementKind.WITHDRAWAL

    def legs(self) -> list[MovementLeg]:
        return [
            MovementLeg(
                kind=self.kind, wallet_id=self.wallet_id, asset_id=self.asset_id, quantity=self.quantity, inflow=False
            )
        ]


class Transfer(_Movement):
    kind: Literal[MovementKind.TRANSFER] = MovementKind.TRANSFER
    asset_id: AssetId
    source_wallet_id: WalletId
    dest_wallet_id: WalletId
    quantity_sent: NonNegativeDecimal
    quantity_received: NonNegativeDecimal

    @model_validator(mode="after")
    def _validate_transfer(self) -> Transfer:
        if self.source_wallet_id == self.dest_wallet_id:
            raise ValueError("source_wallet_id and dest_wallet_id must differ")
        if self.quantity_received > self.quantity_sent:
            raise ValueError("quantity_received must be <= quantity_sent")
        return self

    @property
    def fee(self) -> Decimal:
        return self.quantity_sent - self.quantity_received

    def legs(self) -> list[MovementLeg]:
        return [
            MovementLeg(
                kind=self.kind,
                wallet_id=self.source_wallet_id,
                asset_id=self.asset_id,
                quantity=self.quantity_sent,
                inflow=False,
            ),
            MovementLeg(
                kind=self.kind,
                wallet_id=self.dest_wallet_id,
                asset_id=self.asset_id,
                quantity=self.quantity_received,
                inflow=True,
            ),
        ]


class Swap(_Movement):
    kind: Literal[MovementKind.SWAP] = MovementKind.SWAP
    wallet_id: WalletId
    source_asset_id: AssetId
    dest_asset_id: AssetId
    quantity_sent: NonNegativeDecimal
    quantity_received: NonNegativeDecimal
    unit_price_source_usd: NonNegativeDecimal
    unit_price_dest_usd: NonNegativeDecimal

    @model_validator(mode="after")
    def _validate_swap(self) -> Swap:
        if self.source_asset_id == self.dest_asset_id:
            raise ValueError("source_asset_id and dest_asset_id must differ")
        return self

    @property
    def sold_value_usd(self) -> Decimal:
        return self.quantity_sent * self.unit_price_source_usd

    @property
    def acquired_value_usd(self) -> Decimal:
        return self.quantity_received * self.unit_price_dest_usd

    def legs(self) -> list[MovementLeg]:
        return [
            MovementLeg(
                kind=self.kind,
                wallet_id=self.wallet_id,
                asset_id=self.source_asset_id,
                quantity=self.quantity_sent,
                inflow=False,
            ),
            MovementLeg(
                kind=self.kind,
                wallet_id=self.wallet_id,
                asset_id=self.dest_asset_id,
                quantity=self.quantity_received,
                inflow=True,
            ),
        ]


Movement = Annotated[Union[Deposit, Withdrawal, Transfer, Swap], Field(discriminator="kind")]
MOVEMENT_TYPES = (Deposit, Withdrawal, Transfer, Swap)


__all__ = [
    "Deposit",
    "MOVEMENT_TYPES",
    "Movement",
    "MovementValue",
    "Swap",
    "Transfer",
    "UsdAndAltFiat",
    "UsdOnly",
    "Withdrawal",
]
