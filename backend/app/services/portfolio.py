"""Load the ledger from the entity store and value it."""

from __future__ import annotations

import logging

from app.repositories import EntityStore
from investment_tracker.models import (
    Asset,
    FxSnapshot,
    Platform,
    PortfolioSummary,
    PriceSnapshot,
    Transaction,
)
from investment_tracker.valuation import compute_portfolio_summary

logger = logging.getLogger(__name__)


async def load_portfolio_summary(store: EntityStore) -> PortfolioSummary:
    assets = await store.get_all(Asset)
    transactions = await store.get_all(Transaction)
    prices = await store.get_all(PriceSnapshot)
    fx_snapshots = await store.get_all(FxSnapshot)
    platforms = await store.get_all(Platform)
    logger.debug(
        "Valuing %d transactions over %d assets and %d platforms",
        len(transactions),
        len(assets),
        len(platforms),
    )
    return compute_portfolio_summary(assets, transactions, prices, fx_snapshots, platforms)


__all__ = ["load_portfolio_summary"]
