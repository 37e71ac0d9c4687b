"""Domain models used by the investment tracker core."""
from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

REPORTING_CURRENCY = "EUR"


class TransactionKind(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    FEE = "FEE"

    @property
    def is_trade(self) -> bool:
        return self in (TransactionKind.BUY, TransactionKind.SELL)


class AssetType(str, enum.Enum):
    ETF = "ETF"
    STOCK = "STOCK"
    CRYPTO = "CRYPTO"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    """Return a prefixed random identifier such as ``asset_3f2a...``."""

    return f"{prefix}_{uuid.uuid4().hex}"


@dataclass(frozen=True)
class Platform:
    """An account or broker holding positions."""

    id: str
    name: str
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class Asset:
    """A tradable instrument priced in ``currency``."""

    id: str
    type: AssetType
    symbol: str
    name: str
    currency: str
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class Transaction:
    """A ledger line: a trade or a cash movement on a platform.

    BUY and SELL lines always carry an asset, a positive quantity and a
    non-negative price. ``currency`` is the settlement currency of the line.
    """

    id: str
    platform_id: str
    kind: TransactionKind
    date: datetime
    currency: str
    asset_id: Optional[str] = None
    qty: Optional[float] = None
    price: Optional[float] = None
    fee: Optional[float] = None
    note: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if not self.kind.is_trade:
            return
        if not self.asset_id:
            raise ValueError(f"{self.kind.value} transaction {self.id} requires an asset")
        if self.qty is None or self.qty <= 0:
            raise ValueError(f"{self.kind.value} transaction {self.id} requires qty > 0")
        if self.price is None or self.price < 0:
            raise ValueError(f"{self.kind.value} transaction {self.id} requires price >= 0")

    def signed_qty(self) -> float:
        """Return the quantity delta this line applies to its position."""

        if self.kind is TransactionKind.BUY:
            return self.qty or 0.0
        if self.kind is TransactionKind.SELL:
            return -(self.qty or 0.0)
        return 0.0


@dataclass(frozen=True)
class PriceSnapshot:
    """Observed price of an asset, in the asset's currency."""

    id: str
    asset_id: str
    date: datetime
    price: float
    currency: str
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class FxSnapshot:
    """Observed ``CCY/EUR`` rate: the EUR value of one unit of ``CCY``."""

    id: str
    pair: str
    date: datetime
    rate: float
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class NormalizedTransactionRow:
    """One validated CSV line, before identities are assigned."""

    date: datetime
    platform: str
    kind: TransactionKind
    currency: str
    cash_currency: Optional[str] = None
    asset_symbol: Optional[str] = None
    asset_name: Optional[str] = None
    asset_type: Optional[AssetType] = None
    qty: Optional[float] = None
    price: Optional[float] = None
    fee: Optional[float] = None
    note: Optional[str] = None


@dataclass(frozen=True)
class CsvParseError:
    """A rejected CSV line. Row 0 marks a structural error for the whole file."""

    row: int
    message: str


@dataclass
class CsvParseResult:
    records: list[NormalizedTransactionRow] = field(default_factory=list)
    errors: list[CsvParseError] = field(default_factory=list)

    @property
    def has_structural_error(self) -> bool:
        return any(error.row == 0 for error in self.errors)


@dataclass
class Position:
    """Net holding of one asset on one platform with its latest valuation."""

    asset: Asset
    platform: Platform
    qty: float
    latest_price: Optional[float]
    latest_price_date: Optional[datetime]
    currency: str
    fx_rate: Optional[float]
    value_eur: Optional[float]

    @property
    def asset_id(self) -> str:
        return self.asset.id

    @property
    def platform_id(self) -> str:
        return self.platform.id


@dataclass
class TickerHolding:
    """Net holding of one asset across every platform."""

    asset: Asset
    qty: float
    latest_price: Optional[float]
    latest_price_date: Optional[datetime]
    fx_rate: Optional[float]
    value_eur: Optional[float]

    @property
    def asset_id(self) -> str:
        return self.asset.id


@dataclass(frozen=True)
class PortfolioHistoryPoint:
    date: datetime
    total_value_eur: Optional[float]
    known_value_eur: float
    has_missing_data: bool


@dataclass
class PlatformValue:
    platform_id: str
    name: str
    value_eur: Optional[float]


@dataclass
class TypeValue:
    type: AssetType
    value_eur: Optional[float]


@dataclass
class PortfolioSummary:
    positions: list[Position]
    by_ticker: list[TickerHolding]
    history: list[PortfolioHistoryPoint]
    total_value_eur: Optional[float]
    by_platform: list[PlatformValue]
    by_type: list[TypeValue]


__all__ = [
    "REPORTING_CURRENCY",
    "TransactionKind",
    "AssetType",
    "Platform",
    "Asset",
    "Transaction",
    "PriceSnapshot",
    "FxSnapshot",
    "NormalizedTransactionRow",
    "CsvParseError",
    "CsvParseResult",
    "Position",
    "TickerHolding",
    "PortfolioHistoryPoint",
    "PlatformValue",
    "TypeValue",
    "PortfolioSummary",
    "new_id",
    "utcnow",
]
