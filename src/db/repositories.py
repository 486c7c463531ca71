from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from db import models
from domain.base_types import AssetId, FiatId, MovementId, MovementKind, WalletId
from domain.catalog import Asset, FiatCurrency, PriceSyncConfig, Wallet
from domain.movements import Deposit, Movement, Swap, Transfer, UsdAndAltFiat, UsdOnly, Withdrawal
from domain.price_history import PriceHistoryEntry


def _as_utc(value: datetime) -> datetime:
    # SQLite drops the offset of timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class WalletRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, wallet: Wallet) -> Wallet:
        orm_wallet = models.WalletOrm(id=wallet.id, name=wallet.name, symbol=wallet.symbol)
        self._session.add(orm_wallet)
        self._session.flush()
        return self._to_domain(orm_wallet)

    def update(self, wallet: Wallet) -> Wallet:
        orm_wallet = self._get_orm(wallet.id)
        orm_wallet.name = wallet.name
        orm_wallet.symbol = wallet.symbol
        self._session.flush()
        return self._to_domain(orm_wallet)

    def delete(self, wallet_id: UUID) -> None:
        orm_wallet = self._session.get(models.WalletOrm, wallet_id)
        if orm_wallet is not None:
            self._session.delete(orm_wallet)
            self._session.flush()

    def get(self, wallet_id: UUID) -> Wallet | None:
        orm_wallet = self._session.get(models.WalletOrm, wallet_id)
        if orm_wallet is None:
            return None
        return self._to_domain(orm_wallet)

    def list(self) -> list[Wallet]:
        orm_wallets = self._session.scalars(select(models.WalletOrm).order_by(models.WalletOrm.name.asc())).all()
        return [self._to_domain(wallet) for wallet in orm_wallets]

    def _get_orm(self, wallet_id: UUID) -> models.WalletOrm:
        orm_wallet = self._session.get(models.WalletOrm, wallet_id)
        if orm_wallet is None:
            raise KeyError(f"Wallet {wallet_id} does not exist")
        return orm_wallet

    @staticmethod
    def _to_domain(orm_wallet: models.WalletOrm) -> Wallet:
        return Wallet(id=WalletId(orm_wallet.id), name=orm_wallet.name, symbol=orm_wallet.symbol)


class AssetRepository:
    """Assets together with their price history, which is owned by the asset row."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, asset: Asset) -> Asset:
        orm_asset = models.AssetOrm(
            id=asset.id,
            name=asset.name,
            symbol=asset.symbol,
            current_price=asset.current_price,
            last_updated=asset.last_updated,
        )
        orm_asset.price_history = [self._history_to_orm(entry) for entry in asset.price_history]
        self._session.add(orm_asset)
        self._session.flush()
        return self._to_domain(orm_asset)

    def update(self, asset: Asset) -> Asset:
        orm_asset = self._get_orm(asset.id)
        orm_asset.name = asset.name
        orm_asset.symbol = asset.symbol
        orm_asset.current_price = asset.current_price
        orm_asset.last_updated = asset.last_updated

        kept = {entry.id for entry in asset.price_history}
        orm_asset.price_history = [entry for entry in orm_asset.price_history if entry.id in kept]
        stored = {entry.id for entry in orm_asset.price_history}
        for entry in asset.price_history:
            if entry.id not in stored:
                orm_asset.price_history.append(self._history_to_orm(entry))
        self._session.flush()
        return self._to_domain(orm_asset)

    def delete(self, asset_id: UUID) -> None:
        orm_asset = self._session.get(models.AssetOrm, asset_id)
        if orm_asset is not None:
            self._session.delete(orm_asset)
            self._session.flush()

    def get(self, asset_id: UUID) -> Asset | None:
        orm_asset = self._session.get(models.AssetOrm, asset_id)
        if orm_asset is None:
            return None
        return self._to_domain(orm_asset)

    def list(self) -> list[Asset]:
        orm_assets = self._session.scalars(select(models.AssetOrm).order_by(models.AssetOrm.symbol.asc())).all()
        return [self._to_domain(asset) for asset in orm_assets]

    def _get_orm(self, asset_id: UUID) -> models.AssetOrm:
        orm_asset = self._session.get(models.AssetOrm, asset_id)
        if orm_asset is None:
            raise KeyError(f"Asset {asset_id} does not exist")
        return orm_asset

    @staticmethod
    def _history_to_orm(entry: PriceHistoryEntry) -> models.PriceHistoryOrm:
        return models.PriceHistoryOrm(id=entry.id, asset_id=entry.asset_id, price=entry.price, date=entry.date)

    @staticmethod
    def _to_domain(orm_asset: models.AssetOrm) -> Asset:
        history = [PriceHistoryRepository._to_domain(entry) for entry in orm_asset.price_history]
        return Asset(
            id=AssetId(orm_asset.id),
            name=orm_asset.name,
            symbol=orm_asset.symbol,
            current_price=orm_asset.current_price,
            last_updated=_as_utc(orm_asset.last_updated),
            price_history=history,
        )


class PriceHistoryRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def list_for_asset(self, asset_id: UUID) -> list[PriceHistoryEntry]:
        orm_entries = self._session.scalars(
            select(models.PriceHistoryOrm)
            .where(models.PriceHistoryOrm.asset_id == asset_id)
            .order_by(models.PriceHistoryOrm.date.asc())
        ).all()
        return [self._to_domain(entry) for entry in orm_entries]

    def list(self) -> list[PriceHistoryEntry]:
        orm_entries = self._session.scalars(
            select(models.PriceHistoryOrm).order_by(models.PriceHistoryOrm.date.asc())
        ).all()
        return [self._to_domain(entry) for entry in orm_entries]

    @staticmethod
    def _to_domain(orm_entry: models.PriceHistoryOrm) -> PriceHistoryEntry:
        return PriceHistoryEntry(
            id=orm_entry.id, asset_id=AssetId(orm_entry.asset_id), price=orm_entry.price, date=_as_utc(orm_entry.date)
        )


class FiatCurrencyRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, fiat: FiatCurrency) -> FiatCurrency:
        orm_fiat = models.FiatCurrencyOrm(id=fiat.id, name=fiat.name, symbol=fiat.symbol, price_usd=fiat.price_usd)
        self._session.add(orm_fiat)
        self._session.flush()
        return self._to_domain(orm_fiat)

    def update(self, fiat: FiatCurrency) -> FiatCurrency:
        orm_fiat = self._session.get(models.FiatCurrencyOrm, fiat.id)
        if orm_fiat is None:
            raise KeyError(f"FiatCurrency {fiat.id} does not exist")
        orm_fiat.name = fiat.name
        orm_fiat.symbol = fiat.symbol
        orm_fiat.price_usd = fiat.price_usd
        self._session.flush()
        return self._to_domain(orm_fiat)

    def delete(self, fiat_id: UUID) -> None:
        orm_fiat = self._session.get(models.FiatCurrencyOrm, fiat_id)
        if orm_fiat is not None:
            self._session.delete(orm_fiat)
            self._session.flush()

    def list(self) -> list[FiatCurrency]:
        orm_fiats = self._session.scalars(
            select(models.FiatCurrencyOrm).order_by(models.FiatCurrencyOrm.name.asc())
        ).all()
        return [self._to_domain(fiat) for fiat in orm_fiats]

    @staticmethod
    def _to_domain(orm_fiat: models.FiatCurrencyOrm) -> FiatCurrency:
        return FiatCurrency(
            id=FiatId(orm_fiat.id), name=orm_fiat.name, symbol=orm_fiat.symbol, price_usd=orm_fiat.price_usd
        )


class PriceSyncConfigRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, sync_config: PriceSyncConfig) -> PriceSyncConfig:
        orm_config = models.PriceSyncConfigOrm(
            id=sync_config.id,
            asset_id=sync_config.asset_id,
            sync_url=sync_config.sync_url,
            default_price=sync_config.default_price,
        )
        self._session.add(orm_config)
        self._session.flush()
        return self._to_domain(orm_config)

    def update(self, sync_config: PriceSyncConfig) -> PriceSyncConfig:
        orm_config = self._session.get(models.PriceSyncConfigOrm, sync_config.id)
        if orm_config is None:
            raise KeyError(f"PriceSyncConfig {sync_config.id} does not exist")
        orm_config.asset_id = sync_config.asset_id
        orm_config.sync_url = sync_config.sync_url
        orm_config.default_price = sync_config.default_price
        self._session.flush()
        return self._to_domain(orm_config)

    def delete(self, config_id: UUID) -> None:
        orm_config = self._session.get(models.PriceSyncConfigOrm, config_id)
        if orm_config is not None:
            self._session.delete(orm_config)
            self._session.flush()

    def list(self) -> list[PriceSyncConfig]:
        orm_configs = self._session.scalars(select(models.PriceSyncConfigOrm)).all()
        return [self._to_domain(orm_config) for orm_config in orm_configs]

    @staticmethod
    def _to_domain(orm_config: models.PriceSyncConfigOrm) -> PriceSyncConfig:
        return PriceSyncConfig(
            id=orm_config.id,
            asset_id=AssetId(orm_config.asset_id),
            sync_url=orm_config.sync_url,
            default_price=orm_config.default_price,
        )


class MovementRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, movement: Movement) -> Movement:
        orm_movement = models.MovementOrm(id=movement.id)
        self._apply(orm_movement, movement)
        self._session.add(orm_movement)
        self._session.flush()
        return self._to_domain(orm_movement)

    def update(self, movement: Movement) -> Movement:
        orm_movement = self._session.get(models.MovementOrm, movement.id)
        if orm_movement is None:
            raise KeyError(f"{type(movement).__name__} {movement.id} does not exist")
        self._apply(orm_movement, movement)
        self._session.flush()
        return self._to_domain(orm_movement)

    def delete(self, movement_id: UUID) -> None:
        orm_movement = self._session.get(models.MovementOrm, movement_id)
        if orm_movement is not None:
            self._session.delete(orm_movement)
            self._session.flush()

    def get(self, movement_id: UUID) -> Movement | None:
        orm_movement = self._session.get(models.MovementOrm, movement_id)
        if orm_movement is None:
            return None
        return self._to_domain(orm_movement)

    def list(self, kind: MovementKind | None = None) -> list[Movement]:
        query = select(models.MovementOrm).order_by(models.MovementOrm.date.asc())
        if kind is not None:
            query = query.where(models.MovementOrm.kind == kind.value)
        return [self._to_domain(orm_movement) for orm_movement in self._session.scalars(query).all()]

    @staticmethod
    def _apply(orm_movement: models.MovementOrm, movement: Movement) -> None:
        orm_movement.kind = movement.kind.value
        orm_movement.date = movement.date
        orm_movement.dest_wallet_id = None
        orm_movement.dest_asset_id = None
        orm_movement.quantity_received = None
        orm_movement.unit_price_usd = None
        orm_movement.dest_unit_price_usd = None
        orm_movement.alt_fiat_id = None
        orm_movement.alt_fiat_amount = None

        if isinstance(movement, (Deposit, Withdrawal)):
            orm_movement.wallet_id = movement.wallet_id
            orm_movement.asset_id = movement.asset_id
            orm_movement.quantity = movement.quantity
            orm_movement.unit_price_usd = movement.unit_price_usd
            if isinstance(movement.value, UsdAndAltFiat):
                orm_movement.alt_fiat_id = movement.value.fiat_id
                orm_movement.alt_fiat_amount = movement.value.fiat_amount
        elif isinstance(movement, Transfer):
            orm_movement.wallet_id = movement.source_wallet_id
            orm_movement.dest_wallet_id = movement.dest_wallet_id
            orm_movement.asset_id = movement.asset_id
            orm_movement.quantity = movement.quantity_sent
            orm_movement.quantity_received = movement.quantity_received
        else:
            orm_movement.wallet_id = movement.wallet_id
            orm_movement.asset_id = movement.source_asset_id
            orm_movement.dest_asset_id = movement.dest_asset_id
            orm_movement.quantity = movement.quantity_sent
            orm_movement.quantity_received = movement.quantity_received
            orm_movement.unit_price_usd = movement.unit_price_source_usd
            orm_movement.dest_unit_price_usd = movement.unit_price_dest_usd

    @staticmethod
    def _to_domain(orm_movement: models.MovementOrm) -> Movement:
        kind = MovementKind(orm_movement.kind)
        movement_id = MovementId(orm_movement.id)

        if kind in (MovementKind.DEPOSIT, MovementKind.WITHDRAWAL):
            amount_usd = orm_movement.quantity * orm_movement.unit_price_usd
            value: UsdOnly | UsdAndAltFiat
            if orm_movement.alt_fiat_id is not None and orm_movement.alt_fiat_amount is not None:
                value = UsdAndAltFiat(
                    amount_usd=amount_usd,
                    fiat_id=FiatId(orm_movement.alt_fiat_id),
                    fiat_amount=orm_movement.alt_fiat_amount,
                )
            else:
                value = UsdOnly(amount_usd=amount_usd)
            movement_type = Deposit if kind == MovementKind.DEPOSIT else Withdrawal
            return movement_type(
                id=movement_id,
                date=orm_movement.date,
                wallet_id=WalletId(orm_movement.wallet_id),
                asset_id=AssetId(orm_movement.asset_id),
                quantity=orm_movement.quantity,
                unit_price_usd=orm_movement.unit_price_usd,
                value=value,
            )
        if kind == MovementKind.TRANSFER:
            return Transfer(
                id=movement_id,
                date=orm_movement.date,
                asset_id=AssetId(orm_movement.asset_id),
                source_wallet_id=WalletId(orm_movement.wallet_id),
                dest_wallet_id=WalletId(orm_movement.dest_wallet_id),
                quantity_sent=orm_movement.quantity,
                quantity_received=orm_movement.quantity_received,
            )
        return Swap(
            id=movement_id,
            date=orm_movement.date,
            wallet_id=WalletId(orm_movement.wallet_id),
            source_asset_id=AssetId(orm_movement.asset_id),
            dest_asset_id=AssetId(orm_movement.dest_asset_id),
            quantity_sent=orm_movement.quantity,
            quantity_received=orm_movement.quantity_received,
            unit_price_source_usd=orm_movement.unit_price_usd,
            unit_price_dest_usd=orm_movement.dest_unit_price_usd,
        )


__all__ = [
    "AssetRepository",
    "FiatCurrencyRepository",
    "MovementRepository",
    "PriceHistoryRepository",
    "PriceSyncConfigRepository",
    "WalletRepository",
]
