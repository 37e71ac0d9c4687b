"""Remembered CSV column mappings keyed by header signature."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from investment_tracker.models import utcnow


class CsvMappingTemplateRecord(Base):
    __tablename__ = "csv_mapping_template"

    signature: Mapped[str] = mapped_column(Text, primary_key=True)
    mapping: Mapped[dict[str, str]] = mapped_column(JSON, default=dict)
    preferred_counterparty: Mapped[str | None] = mapped_column(String(128), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


__all__ = ["CsvMappingTemplateRecord"]
