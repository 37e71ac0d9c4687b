"""Live quote and FX enrichment for the entity store."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Protocol

from app.providers.frankfurter import FxProviderError
from app.providers.twelve_data import Quote, QuoteProviderError
from app.repositories import EntityStore, ImportBatch
from investment_tracker.fx import fx_pair, is_reporting_currency
from investment_tracker.models import (
    Asset,
    AssetType,
    FxSnapshot,
    PriceSnapshot,
    Transaction,
    new_id,
    utcnow,
)
from investment_tracker.valuation import QTY_EPSILON

logger = logging.getLogger(__name__)


class QuoteClient(Protocol):
    async def quote(self, symbol: str) -> Quote: ...


class FxClient(Protocol):
    async def rate_to_eur(self, currency: str) -> float: ...


@dataclass
class LiveQuote:
    asset_id: str
    source_symbol: str
    price: float
    currency: str
    date: datetime


@dataclass
class QuoteError:
    asset_id: str
    symbol: str
    message: str


@dataclass
class QuoteFetchResult:
    quotes: list[LiveQuote] = field(default_factory=list)
    errors: list[QuoteError] = field(default_factory=list)


@dataclass
class FxError:
    currency: str
    message: str


@dataclass
class FxFetchResult:
    rates: dict[str, float] = field(default_factory=dict)
    errors: list[FxError] = field(default_factory=list)


@dataclass
class MarketDataRefresh:
    prices_created: int = 0
    fx_created: int = 0
    quote_errors: list[QuoteError] = field(default_factory=list)
    fx_errors: list[FxError] = field(default_factory=list)


def build_symbol_candidates(asset: Asset) -> list[str]:
    """Provider symbols to try, in order, for ``asset``.

    Crypto tickers are ambiguous about their quote currency, so the asset's own
    currency is tried first before falling back to the other one and finally
    to the bare symbol.
    """

    symbol = asset.symbol.strip().upper()
    if asset.type is not AssetType.CRYPTO:
        return [symbol]
    if "/" in symbol:
        return [symbol]
    if "-" in symbol:
        return [symbol.replace("-", "/", 1), symbol]
    if asset.currency.strip().upper() == "EUR":
        return [f"{symbol}/EUR", f"{symbol}/USD", symbol]
    return [f"{symbol}/USD", f"{symbol}/EUR", symbol]


async def fetch_live_quotes(assets: Iterable[Asset], client: QuoteClient) -> QuoteFetchResult:
    """Quote every asset, trying each candidate symbol once until one succeeds."""

    result = QuoteFetchResult()
    for asset in assets:
        last_error = "No live price available."
        for candidate in build_symbol_candidates(asset):
            try:
                quote = await client.quote(candidate)
            except QuoteProviderError as exc:
                last_error = str(exc) or "Unknown provider error."
                logger.debug("Quote for %s via %s failed: %s", asset.symbol, candidate, last_error)
                continue
            result.quotes.append(
                LiveQuote(
                    asset_id=asset.id,
                    source_symbol=candidate,
                    price=quote.price,
                    currency=quote.currency,
                    date=quote.date,
                )
            )
            break
        else:
            logger.warning("No live quote for %s: %s", asset.symbol, last_error)
            result.errors.append(QuoteError(asset_id=asset.id, symbol=asset.symbol, message=last_error))
    return result


async def fetch_fx_rates_to_eur(currencies: Iterable[str], client: FxClient) -> FxFetchResult:
    """Fetch ``CCY -> EUR`` rates concurrently; one failure never blocks another."""

    unique: list[str] = []
    for currency in currencies:
        code = (currency or "").strip().upper()
        if code and not is_reporting_currency(code) and code not in unique:
            unique.append(code)

    async def _fetch(code: str) -> tuple[str, float | None, str | None]:
        try:
            return code, await client.rate_to_eur(code), None
        except FxProviderError as exc:
            return code, None, str(exc) or "Unknown FX provider error."

    result = FxFetchResult()
    for code, rate, message in await asyncio.gather(*(_fetch(code) for code in unique)):
        if rate is None:
            logger.warning("No EUR rate for %s: %s", code, message)
            result.errors.append(FxError(currency=code, message=message or ""))
        else:
            result.rates[code] = rate
    return result


def fx_snapshots_from_rates(rates: dict[str, float], now: datetime) -> list[FxSnapshot]:
    return [
        FxSnapshot(id=new_id("fx"), pair=fx_pair(currency), date=now, rate=rate, created_at=now)
        for currency, rate in rates.items()
    ]


def _held_asset_ids(transactions: Iterable[Transaction]) -> set[str]:
    qty_by_asset: dict[str, float] = {}
    for tx in transactions:
        if tx.asset_id:
            qty_by_asset[tx.asset_id] = qty_by_asset.get(tx.asset_id, 0.0) + tx.signed_qty()
    return {asset_id for asset_id, qty in qty_by_asset.items() if abs(qty) > QTY_EPSILON}


def _rate_to_eur(currency: str, rates: dict[str, float]) -> float | None:
    if is_reporting_currency(currency):
        return 1.0
    return rates.get(currency)


def _price_in_asset_currency(quote: LiveQuote, asset: Asset, rates: dict[str, float]) -> float | None:
    """Express ``quote`` in the asset's own currency, crossing through EUR when they differ."""

    quote_ccy = quote.currency.strip().upper()
    asset_ccy = asset.currency.strip().upper()
    if quote_ccy == asset_ccy:
        return quote.price
    quote_rate = _rate_to_eur(quote_ccy, rates)
    asset_rate = _rate_to_eur(asset_ccy, rates)
    if quote_rate is None or not asset_rate:
        return None
    return quote.price * quote_rate / asset_rate


async def refresh_market_data(
    store: EntityStore,
    quote_client: QuoteClient,
    fx_client: FxClient,
    now: datetime | None = None,
) -> MarketDataRefresh:
    """Quote every held asset, refresh the FX rates it needs and store both."""

    now = now or utcnow()
    held = _held_asset_ids(await store.get_all(Transaction))
    assets = [asset for asset in await store.get_all(Asset) if asset.id in held]

    quotes = await fetch_live_quotes(assets, quote_client)
    currencies = [quote.currency for quote in quotes.quotes] + [asset.currency for asset in assets]
    fx = await fetch_fx_rates_to_eur(currencies, fx_client)

    by_id = {asset.id: asset for asset in assets}
    prices: list[PriceSnapshot] = []
    for quote in quotes.quotes:
        asset = by_id[quote.asset_id]
        price = _price_in_asset_currency(quote, asset, fx.rates)
        if price is None:
            message = f"No FX rate to convert {quote.currency} quote into {asset.currency}."
            logger.warning("Dropping quote for %s: %s", asset.symbol, message)
            quotes.errors.append(QuoteError(asset_id=asset.id, symbol=asset.symbol, message=message))
            continue
        prices.append(
            PriceSnapshot(
                id=new_id("price"),
                asset_id=asset.id,
                date=quote.date,
                price=price,
                currency=asset.currency,
                created_at=now,
            )
        )

    batch = ImportBatch(
        prices=prices,
        fx_snapshots=fx_snapshots_from_rates(fx.rates, now),
    )
    if not batch.is_empty():
        await store.write_batch(batch)

    logger.info(
        "Market data refreshed: %d prices, %d fx rates, %d quote errors, %d fx errors",
        len(batch.prices),
        len(batch.fx_snapshots),
        len(quotes.errors),
        len(fx.errors),
    )
    return MarketDataRefresh(
        prices_created=len(batch.prices),
        fx_created=len(batch.fx_snapshots),
        quote_errors=quotes.errors,
        fx_errors=fx.errors,
    )


__all__ = [
    "FxClient",
    "FxError",
    "FxFetchResult",
    "LiveQuote",
    "MarketDataRefresh",
    "QuoteClient",
    "QuoteError",
    "QuoteFetchResult",
    "build_symbol_candidates",
    "fetch_fx_rates_to_eur",
    "fetch_live_quotes",
    "fx_snapshots_from_rates",
    "refresh_market_data",
]
