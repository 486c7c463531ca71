from __future__ import annotations

import datetime as dt
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Date, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator


class DecimalAsString(TypeDecorator):
    impl = String
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: object) -> str | None:
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value: str | None, dialect: object) -> Decimal | None:
        if value is None:
            return None
        return Decimal(value)


class Base(DeclarativeBase):
    pass


class WalletOrm(Base):
    __tablename__ = "wallets"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    symbol: Mapped[str] = mapped_column(String, nullable=False)


class AssetOrm(Base):
    __tablename__ = "assets"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    symbol: Mapped[str] = mapped_column(String, nullable=False)
    current_price: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    last_updated: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    price_history: Mapped[list["PriceHistoryOrm"]] = relationship(
        cascade="all, delete-orphan", order_by="PriceHistoryOrm.date", lazy="selectin"
    )


class PriceHistoryOrm(Base):
    __tablename__ = "price_history"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    asset_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("assets.id"), nullable=False)
    price: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    date: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class FiatCurrencyOrm(Base):
    __tablename__ = "fiat_currencies"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    symbol: Mapped[str] = mapped_column(String, nullable=False)
    price_usd: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)


class PriceSyncConfigOrm(Base):
    __tablename__ = "price_sync_configs"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    asset_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    sync_url: Mapped[str] = mapped_column(String, nullable=False)
    default_price: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)


class MovementOrm(Base):
    """Every movement kind in one table; unused columns stay NULL.

    Catalog references are plain ids without foreign keys: deleting a wallet or
    an asset leaves its movements in place.
    """

    __tablename__ = "movements"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    kind: Mapped[str] = mapped_column(String, nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    wallet_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    dest_wallet_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    asset_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    dest_asset_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    quantity: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    quantity_received: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    unit_price_usd: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    dest_unit_price_usd: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    alt_fiat_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    alt_fiat_amount: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
