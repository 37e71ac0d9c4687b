"""Pydantic schemas for the portfolio valuation summary."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from investment_tracker.models import AssetType


class PlatformSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str


class AssetSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: AssetType
    symbol: str
    name: str
    currency: str


class PositionSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    asset: AssetSchema
    platform: PlatformSchema
    qty: float
    latest_price: float | None = None
    latest_price_date: datetime | None = None
    currency: str
    fx_rate: float | None = None
    value_eur: float | None = None


class TickerHoldingSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    asset: AssetSchema
    qty: float
    latest_price: float | None = None
    latest_price_date: datetime | None = None
    fx_rate: float | None = None
    value_eur: float | None = None


class HistoryPointSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: datetime
    total_value_eur: float | None = None
    known_value_eur: float
    has_missing_data: bool


class PlatformValueSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    platform_id: str
    name: str
    value_eur: float | None = None


class TypeValueSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: AssetType
    value_eur: float | None = None


class PortfolioSummarySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_value_eur: float | None = None
    positions: list[PositionSchema]
    by_ticker: list[TickerHoldingSchema]
    by_platform: list[PlatformValueSchema]
    by_type: list[TypeValueSchema]
    history: list[HistoryPointSchema]
