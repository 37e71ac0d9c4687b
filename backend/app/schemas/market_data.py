"""Pydantic schemas for live market data refreshes."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .imports import FxErrorSchema


class QuoteErrorSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    asset_id: str
    symbol: str
    message: str


class MarketDataRefreshResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    prices_created: int
    fx_created: int
    quote_errors: list[QuoteErrorSchema] = Field(default_factory=list)
    fx_errors: list[FxErrorSchema] = Field(default_factory=list)
