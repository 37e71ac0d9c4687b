"""FX conversion helpers towards the reporting currency."""
from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from .lookup import group_by, latest_observation, observation_at
from .models import REPORTING_CURRENCY, FxSnapshot


def fx_pair(currency: str) -> str:
    """Return the ``CCY/EUR`` pair key used by :class:`FxSnapshot`."""

    return f"{currency.strip().upper()}/{REPORTING_CURRENCY}"


def is_reporting_currency(currency: str) -> bool:
    return currency.strip().upper() == REPORTING_CURRENCY


class FXRateProvider:
    """Look up ``CCY/EUR`` rates from a set of FX observations.

    EUR always resolves to ``1.0`` without touching the observations. A
    currency without any usable observation resolves to ``None``.
    """

    def __init__(self, snapshots: Iterable[FxSnapshot]):
        self._by_pair: Dict[str, List[FxSnapshot]] = group_by(snapshots, lambda fx: fx.pair)

    def latest_rate(self, currency: str) -> Optional[float]:
        if is_reporting_currency(currency):
            return 1.0
        snapshot = latest_observation(self._by_pair.get(fx_pair(currency), []))
        return snapshot.rate if snapshot else None

    def rate_at(self, currency: str, when: datetime) -> Optional[float]:
        if is_reporting_currency(currency):
            return 1.0
        snapshot = observation_at(self._by_pair.get(fx_pair(currency), []), when)
        return snapshot.rate if snapshot else None


def get_latest_fx_rate(fx_snapshots: Iterable[FxSnapshot], currency: str) -> Optional[float]:
    """Return the most recent EUR rate for ``currency``."""

    if is_reporting_currency(currency):
        return 1.0
    return FXRateProvider(fx_snapshots).latest_rate(currency)


def get_fx_rate_at(fx_snapshots: Iterable[FxSnapshot], currency: str, when: datetime) -> Optional[float]:
    """Return the EUR rate for ``currency`` as known on ``when``."""

    if is_reporting_currency(currency):
        return 1.0
    return FXRateProvider(fx_snapshots).rate_at(currency, when)


__all__ = [
    "FXRateProvider",
    "fx_pair",
    "is_reporting_currency",
    "get_latest_fx_rate",
    "get_fx_rate_at",
]
