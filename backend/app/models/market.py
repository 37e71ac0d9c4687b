"""Price and FX observation tables."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from investment_tracker.models import utcnow


class PriceSnapshotRecord(Base):
    __tablename__ = "price_snapshot"
    __table_args__ = (Index("ix_price_snapshot_asset_date", "asset_id", "date"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    asset_id: Mapped[str] = mapped_column(ForeignKey("asset.id", ondelete="CASCADE"))
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    price: Mapped[float] = mapped_column(Float)
    currency: Mapped[str] = mapped_column(String(3))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class FxSnapshotRecord(Base):
    __tablename__ = "fx_snapshot"
    __table_args__ = (Index("ix_fx_snapshot_pair_date", "pair", "date"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    pair: Mapped[str] = mapped_column(String(7))
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    rate: Mapped[float] = mapped_column(Float)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


__all__ = ["PriceSnapshotRecord", "FxSnapshotRecord"]
