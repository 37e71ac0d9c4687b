"""Twelve Data quote client."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx

from app.config import get_settings
from investment_tracker.models import utcnow


class QuoteProviderError(RuntimeError):
    """Raised when a quote cannot be obtained for a symbol."""


@dataclass(frozen=True)
class Quote:
    symbol: str
    price: float
    currency: str
    date: datetime


def _parse_price(value: Any) -> float | None:
    if value in (None, ""):
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    return price if math.isfinite(price) else None


class TwelveDataClient:
    """Fetch the latest quote of a symbol from Twelve Data."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        client: Any | None = None,
    ) -> None:
        settings = get_settings()
        self._api_key = (api_key or settings.twelve_data_api_key).strip()
        self._base_url = (base_url or settings.twelve_data_base_url).rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout_seconds or settings.market_data_timeout_seconds
        )

    async def quote(self, symbol: str) -> Quote:
        symbol = symbol.strip().upper()
        try:
            response = await self._client.get(
                f"{self._base_url}/quote",
                params={"symbol": symbol, "apikey": self._api_key},
            )
        except httpx.HTTPError as exc:
            raise QuoteProviderError(f"Failed to reach Twelve Data: {exc}") from exc

        if response.status_code >= 400:
            raise QuoteProviderError(f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise QuoteProviderError("Twelve Data returned invalid JSON payload") from exc
        if not isinstance(payload, dict):
            raise QuoteProviderError("Twelve Data response is not an object")

        if payload.get("status") == "error" or payload.get("code"):
            raise QuoteProviderError(payload.get("message") or f"Code {payload.get('code', 'unknown')}")

        price = _parse_price(payload.get("close"))
        if price is None:
            raise QuoteProviderError("No close price returned by provider.")

        currency = str(payload.get("currency") or "").strip().upper()
        if not currency:
            raise QuoteProviderError("Missing quote currency.")

        timestamp = payload.get("timestamp")
        date = datetime.fromtimestamp(int(timestamp), tz=timezone.utc) if timestamp else utcnow()
        return Quote(symbol=symbol, price=price, currency=currency, date=date)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = ["Quote", "QuoteProviderError", "TwelveDataClient"]
