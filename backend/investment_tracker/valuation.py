"""Valuation engine: positions, aggregates and history in the reporting currency.

Every value that depends on a missing price or FX rate is ``None`` and stays
``None`` through every aggregate that includes it.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .fx import FXRateProvider
from .lookup import group_by, latest_observation, observation_at
from .models import (
    Asset,
    AssetType,
    FxSnapshot,
    Platform,
    PlatformValue,
    PortfolioHistoryPoint,
    PortfolioSummary,
    Position,
    PriceSnapshot,
    TickerHolding,
    Transaction,
    TypeValue,
)

logger = logging.getLogger(__name__)

QTY_EPSILON = 1e-12


def compute_position_qty(transactions: Iterable[Transaction], asset_id: str, platform_id: str) -> float:
    """Return ``sum(BUY.qty) - sum(SELL.qty)`` for one asset on one platform."""

    return sum(
        tx.signed_qty()
        for tx in transactions
        if tx.asset_id == asset_id and tx.platform_id == platform_id
    )


def get_latest_price(prices: Iterable[PriceSnapshot], asset_id: str) -> Optional[PriceSnapshot]:
    return latest_observation(p for p in prices if p.asset_id == asset_id)


def get_price_at(prices: Iterable[PriceSnapshot], asset_id: str, when: datetime) -> Optional[PriceSnapshot]:
    return observation_at((p for p in prices if p.asset_id == asset_id), when)


def compute_value_eur(qty: float, price: Optional[float], fx_rate: Optional[float]) -> Optional[float]:
    if price is None or fx_rate is None:
        return None
    return qty * price * fx_rate


def _add_known(total: Optional[float], value: Optional[float]) -> Optional[float]:
    if total is None or value is None:
        return None
    return total + value


def _build_positions(
    assets_by_id: Dict[str, Asset],
    platforms_by_id: Dict[str, Platform],
    transactions: Sequence[Transaction],
    prices_by_asset: Dict[str, List[PriceSnapshot]],
    fx: FXRateProvider,
) -> List[Position]:
    tx_by_key: Dict[Tuple[str, str], List[Transaction]] = group_by(
        (tx for tx in transactions if tx.asset_id),
        lambda tx: (tx.asset_id, tx.platform_id),
    )

    positions: List[Position] = []
    for asset_id, platform_id in tx_by_key:
        asset = assets_by_id.get(asset_id)
        platform = platforms_by_id.get(platform_id)
        if asset is None or platform is None:
            logger.debug("Skipping position %s@%s without reference data", asset_id, platform_id)
            continue

        qty = compute_position_qty(tx_by_key[(asset_id, platform_id)], asset_id, platform_id)
        latest = latest_observation(prices_by_asset.get(asset_id, []))
        latest_price = latest.price if latest else None
        fx_rate = fx.latest_rate(asset.currency)
        positions.append(
            Position(
                asset=asset,
                platform=platform,
                qty=qty,
                latest_price=latest_price,
                latest_price_date=latest.date if latest else None,
                currency=asset.currency,
                fx_rate=fx_rate,
                value_eur=compute_value_eur(qty, latest_price, fx_rate),
            )
        )
    return positions


def _by_platform(positions: Sequence[Position]) -> List[PlatformValue]:
    grouped: Dict[str, PlatformValue] = {}
    for position in positions:
        entry = grouped.setdefault(
            position.platform_id,
            PlatformValue(platform_id=position.platform_id, name=position.platform.name, value_eur=0.0),
        )
        entry.value_eur = _add_known(entry.value_eur, position.value_eur)
    return list(grouped.values())


def _by_type(positions: Sequence[Position]) -> List[TypeValue]:
    grouped: Dict[AssetType, TypeValue] = {}
    for position in positions:
        entry = grouped.setdefault(position.asset.type, TypeValue(type=position.asset.type, value_eur=0.0))
        entry.value_eur = _add_known(entry.value_eur, position.value_eur)
    return list(grouped.values())


def _by_ticker(positions: Sequence[Position]) -> List[TickerHolding]:
    grouped: Dict[str, TickerHolding] = {}
    for position in positions:
        existing = grouped.get(position.asset_id)
        if existing is None:
            grouped[position.asset_id] = TickerHolding(
                asset=position.asset,
                qty=position.qty,
                latest_price=position.latest_price,
                latest_price_date=position.latest_price_date,
                fx_rate=position.fx_rate,
                value_eur=position.value_eur,
            )
            continue
        existing.qty += position.qty
        existing.value_eur = _add_known(existing.value_eur, position.value_eur)

    holdings = [holding for holding in grouped.values() if abs(holding.qty) > QTY_EPSILON]
    # Highest value first, unknown values last, ties by symbol.
    holdings.sort(key=lambda h: h.asset.symbol)
    holdings.sort(key=lambda h: h.value_eur if h.value_eur is not None else float("-inf"), reverse=True)
    return holdings


def build_portfolio_history(
    assets: Iterable[Asset],
    transactions: Iterable[Transaction],
    prices: Iterable[PriceSnapshot],
    fx_snapshots: Iterable[FxSnapshot],
) -> List[PortfolioHistoryPoint]:
    """Rebuild the portfolio value at every date any input refers to.

    The timeline is the union of trade dates, price dates and FX dates. Trades
    are applied with a single forward pointer; each open position is valued
    with the latest price and rate known on the timeline date. Dates without
    any open position are not emitted.
    """

    assets_by_id = {asset.id: asset for asset in assets}
    prices = list(prices)
    fx_snapshots = list(fx_snapshots)
    prices_by_asset = group_by(prices, lambda p: p.asset_id)
    fx = FXRateProvider(fx_snapshots)

    trades = sorted(
        (tx for tx in transactions if tx.asset_id and tx.kind.is_trade),
        key=lambda tx: tx.date,
    )
    timeline_dates = sorted(
        {tx.date for tx in trades}
        | {p.date for p in prices}
        | {rate.date for rate in fx_snapshots}
    )

    history: List[PortfolioHistoryPoint] = []
    qty_by_asset: Dict[str, float] = {}
    tx_index = 0

    for current_date in timeline_dates:
        while tx_index < len(trades) and trades[tx_index].date <= current_date:
            tx = trades[tx_index]
            tx_index += 1
            qty_by_asset[tx.asset_id] = qty_by_asset.get(tx.asset_id, 0.0) + tx.signed_qty()

        known_value = 0.0
        has_missing_data = False
        has_open_position = False

        for asset_id, qty in qty_by_asset.items():
            if abs(qty) <= QTY_EPSILON:
                continue
            has_open_position = True
            asset = assets_by_id.get(asset_id)
            if asset is None:
                continue
            price = observation_at(prices_by_asset.get(asset_id, []), current_date)
            value = compute_value_eur(
                qty,
                price.price if price else None,
                fx.rate_at(asset.currency, current_date),
            )
            if value is None:
                has_missing_data = True
            else:
                known_value += value

        if not has_open_position:
            continue
        history.append(
            PortfolioHistoryPoint(
                date=current_date,
                total_value_eur=None if has_missing_data else known_value,
                known_value_eur=known_value,
                has_missing_data=has_missing_data,
            )
        )

    return history


def compute_portfolio_summary(
    assets: Iterable[Asset],
    transactions: Iterable[Transaction],
    prices: Iterable[PriceSnapshot],
    fx_snapshots: Iterable[FxSnapshot],
    platforms: Iterable[Platform],
) -> PortfolioSummary:
    """Value every position and roll the values up by platform, type and ticker."""

    assets = list(assets)
    transactions = list(transactions)
    prices = list(prices)
    fx_snapshots = list(fx_snapshots)

    positions = _build_positions(
        {asset.id: asset for asset in assets},
        {platform.id: platform for platform in platforms},
        transactions,
        group_by(prices, lambda p: p.asset_id),
        FXRateProvider(fx_snapshots),
    )

    total: Optional[float] = 0.0
    for position in positions:
        total = _add_known(total, position.value_eur)

    return PortfolioSummary(
        positions=positions,
        by_ticker=_by_ticker(positions),
        history=build_portfolio_history(assets, transactions, prices, fx_snapshots),
        total_value_eur=total,
        by_platform=_by_platform(positions),
        by_type=_by_type(positions),
    )


__all__ = [
    "QTY_EPSILON",
    "compute_position_qty",
    "get_latest_price",
    "get_price_at",
    "compute_value_eur",
    "build_portfolio_history",
    "compute_portfolio_summary",
]
