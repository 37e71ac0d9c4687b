"""Platform, asset and transaction tables."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, Float, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from investment_tracker.models import AssetType, TransactionKind, utcnow


class PlatformRecord(Base):
    __tablename__ = "platform"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    transactions: Mapped[list["TransactionRecord"]] = relationship(back_populates="platform", passive_deletes=True)


class AssetRecord(Base):
    __tablename__ = "asset"
    __table_args__ = (Index("ix_asset_symbol", "symbol"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    type: Mapped[AssetType] = mapped_column(Enum(AssetType, name="asset_type"))
    symbol: Mapped[str] = mapped_column(String(32))
    name: Mapped[str] = mapped_column(String(255))
    currency: Mapped[str] = mapped_column(String(3))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class TransactionRecord(Base):
    __tablename__ = "transaction"
    __table_args__ = (
        Index("ix_transaction_asset_platform", "asset_id", "platform_id"),
        Index("ix_transaction_date", "date"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    platform_id: Mapped[str] = mapped_column(ForeignKey("platform.id", ondelete="CASCADE"))
    asset_id: Mapped[str | None] = mapped_column(ForeignKey("asset.id", ondelete="SET NULL"), nullable=True)
    kind: Mapped[TransactionKind] = mapped_column(Enum(TransactionKind, name="transaction_kind"))
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    qty: Mapped[float | None] = mapped_column(Float, nullable=True)
    price: Mapped[float | None] = mapped_column(Float, nullable=True)
    fee: Mapped[float | None] = mapped_column(Float, nullable=True)
    currency: Mapped[str] = mapped_column(String(3))
    note: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    platform: Mapped[PlatformRecord] = relationship(back_populates="transactions")
    asset: Mapped[Optional[AssetRecord]] = relationship()


__all__ = ["PlatformRecord", "AssetRecord", "TransactionRecord"]
