"""Pydantic schema exports."""

from .imports import (
    CsvErrorSchema,
    FxErrorSchema,
    ImportCommitRequest,
    ImportPreviewResponse,
    ImportRequest,
    ImportSummarySchema,
    MappingSuggestionSchema,
    NormalizedRowSchema,
)
from .market_data import MarketDataRefreshResponse, QuoteErrorSchema
from .portfolio import (
    AssetSchema,
    HistoryPointSchema,
    PlatformSchema,
    PlatformValueSchema,
    PortfolioSummarySchema,
    PositionSchema,
    TickerHoldingSchema,
    TypeValueSchema,
)

__all__ = [
    "AssetSchema",
    "CsvErrorSchema",
    "FxErrorSchema",
    "HistoryPointSchema",
    "ImportCommitRequest",
    "ImportPreviewResponse",
    "ImportRequest",
    "ImportSummarySchema",
    "MappingSuggestionSchema",
    "MarketDataRefreshResponse",
    "NormalizedRowSchema",
    "PlatformSchema",
    "PlatformValueSchema",
    "PortfolioSummarySchema",
    "PositionSchema",
    "QuoteErrorSchema",
    "TickerHoldingSchema",
    "TypeValueSchema",
]
