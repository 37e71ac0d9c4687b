"""Pydantic schemas for CSV import preview and commit."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.services.imports import ImportState
from investment_tracker.models import AssetType, TransactionKind


class ImportRequest(BaseModel):
    csv_text: str = Field(..., description="Raw CSV export, comma or semicolon separated")
    default_platform: str | None = Field(default=None, description="Broker used when a row has no platform")
    default_currency: str | None = Field(default=None, min_length=3, max_length=3)
    column_mapping: dict[str, str | None] | None = Field(
        default=None,
        description="Field to header overrides; a null header unmaps the field",
    )


class ImportCommitRequest(ImportRequest):
    remember_mapping: bool = True
    refresh_fx: bool = Field(default=False, description="Fetch current EUR rates for the imported currencies")


class MappingSuggestionSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    headers: list[str]
    signature: str | None
    mapping: dict[str, str]
    confidence: dict[str, float]


class NormalizedRowSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: datetime
    platform: str
    kind: TransactionKind
    currency: str
    cash_currency: str | None = None
    asset_symbol: str | None = None
    asset_name: str | None = None
    asset_type: AssetType | None = None
    qty: float | None = None
    price: float | None = None
    fee: float | None = None
    note: str | None = None


class CsvErrorSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    row: int
    message: str


class ImportPreviewResponse(BaseModel):
    state: ImportState
    suggestion: MappingSuggestionSchema
    mapping: dict[str, str]
    confidence: dict[str, float]
    fields_needing_review: list[str]
    template_applied: bool
    default_platform: str | None = None
    records: list[NormalizedRowSchema]
    errors: list[CsvErrorSchema]


class FxErrorSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    currency: str
    message: str


class ImportSummarySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    transactions_created: int
    platforms_created: int
    assets_created: int
    prices_created: int
    fx_created: int = 0
    fx_errors: list[FxErrorSchema] = Field(default_factory=list)
