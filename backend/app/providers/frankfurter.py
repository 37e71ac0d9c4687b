"""Frankfurter (ECB reference rates) FX client."""

from __future__ import annotations

from typing import Any

import httpx

from app.config import get_settings


class FxProviderError(RuntimeError):
    """Raised when an EUR conversion rate cannot be obtained."""


class FrankfurterClient:
    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        client: Any | None = None,
    ) -> None:
        settings = get_settings()
        self._base_url = (base_url or settings.frankfurter_base_url).rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout_seconds or settings.market_data_timeout_seconds
        )

    async def rate_to_eur(self, currency: str) -> float:
        """Return the EUR value of one unit of ``currency``."""

        currency = currency.strip().upper()
        try:
            response = await self._client.get(
                f"{self._base_url}/latest",
                params={"from": currency, "to": "EUR"},
            )
        except httpx.HTTPError as exc:
            raise FxProviderError(f"Failed to reach Frankfurter: {exc}") from exc

        if response.status_code >= 400:
            raise FxProviderError(f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise FxProviderError("Frankfurter returned invalid JSON payload") from exc

        rates = payload.get("rates") if isinstance(payload, dict) else None
        rate = rates.get("EUR") if isinstance(rates, dict) else None
        if isinstance(rate, bool) or not isinstance(rate, (int, float)):
            raise FxProviderError("No EUR conversion returned.")
        return float(rate)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = ["FrankfurterClient", "FxProviderError"]
