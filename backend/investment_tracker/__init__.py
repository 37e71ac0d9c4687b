"""Core package for the investment tracker: CSV ingestion and valuation."""

from .ingest import parse_transactions_csv, suggest_column_mapping
from .models import (
    Asset,
    AssetType,
    FxSnapshot,
    Platform,
    PortfolioSummary,
    PriceSnapshot,
    Transaction,
    TransactionKind,
)
from .valuation import build_portfolio_history, compute_portfolio_summary

__all__ = [
    "Asset",
    "AssetType",
    "FxSnapshot",
    "Platform",
    "PortfolioSummary",
    "PriceSnapshot",
    "Transaction",
    "TransactionKind",
    "build_portfolio_history",
    "compute_portfolio_summary",
    "parse_transactions_csv",
    "suggest_column_mapping",
]
