"""Row normalization: turn tokenized CSV rows into validated transaction rows."""
from __future__ import annotations

import logging
import math
import re
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from ..models import (
    AssetType,
    CsvParseError,
    CsvParseResult,
    NormalizedTransactionRow,
    TransactionKind,
)
from .headers import resolve_headers
from .tokenizer import is_blank_row, tokenize

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "EUR"
DEFAULT_ASSET_TYPE = AssetType.STOCK

KIND_ALIASES: Mapping[str, TransactionKind] = MappingProxyType(
    {
        "buy": TransactionKind.BUY,
        "bought": TransactionKind.BUY,
        "purchase": TransactionKind.BUY,
        "market_buy": TransactionKind.BUY,
        "limit_buy": TransactionKind.BUY,
        "achat": TransactionKind.BUY,
        "kauf": TransactionKind.BUY,
        "sell": TransactionKind.SELL,
        "sold": TransactionKind.SELL,
        "sale": TransactionKind.SELL,
        "market_sell": TransactionKind.SELL,
        "limit_sell": TransactionKind.SELL,
        "vente": TransactionKind.SELL,
        "verkauf": TransactionKind.SELL,
        "deposit": TransactionKind.DEPOSIT,
        "versement": TransactionKind.DEPOSIT,
        "depot": TransactionKind.DEPOSIT,
        "dépôt": TransactionKind.DEPOSIT,
        "einzahlung": TransactionKind.DEPOSIT,
        "withdraw": TransactionKind.WITHDRAW,
        "withdrawal": TransactionKind.WITHDRAW,
        "retrait": TransactionKind.WITHDRAW,
        "auszahlung": TransactionKind.WITHDRAW,
        "fee": TransactionKind.FEE,
        "fees": TransactionKind.FEE,
        "frais": TransactionKind.FEE,
        "commission": TransactionKind.FEE,
    }
)

ASSET_TYPE_ALIASES: Mapping[str, AssetType] = MappingProxyType(
    {
        "equity": AssetType.STOCK,
        "equities": AssetType.STOCK,
        "share": AssetType.STOCK,
        "action": AssetType.STOCK,
        "actions": AssetType.STOCK,
        "aktie": AssetType.STOCK,
        "fund": AssetType.ETF,
        "tracker": AssetType.ETF,
        "coin": AssetType.CRYPTO,
        "token": AssetType.CRYPTO,
        "cryptocurrency": AssetType.CRYPTO,
    }
)

SUFFIX_CURRENCY_MAP: Mapping[str, str] = MappingProxyType(
    {
        ".L": "GBP",
        ".LN": "GBP",
        ".PA": "EUR",
        ".AS": "EUR",
        ".DE": "EUR",
        ".F": "EUR",
        ".MI": "EUR",
        ".MC": "EUR",
        ".BR": "EUR",
        ".HE": "EUR",
        ".SW": "CHF",
        ".TO": "CAD",
        ".V": "CAD",
        ".AX": "AUD",
        ".HK": "HKD",
        ".SI": "SGD",
        ".T": "JPY",
    }
)

_PAIR_SUFFIX = re.compile(r"[-/]([A-Z]{3})$")
_CURRENCY_CODE = re.compile(r"^[A-Z]{3}$")

_NUMBER_NOISE = re.compile(r"[\s'’€$£¥₹₿¢]")
_PLAIN_NUMBER = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")

_ISO_DATE = re.compile(r"^(\d{4})[-/](\d{1,2})[-/](\d{1,2})$")
_DAY_FIRST_DATE = re.compile(r"^(\d{1,2})[./-](\d{1,2})[./-](\d{2}|\d{4})$")
_EPOCH = re.compile(r"^\d+$")


def parse_number(raw: Optional[str]) -> Optional[float]:
    """Parse a locale-formatted number, returning ``None`` when it is not numeric.

    ``"1 234,56"``, ``"1.234,56"``, ``"1,234.56"`` and ``"(12.50)"`` are all
    understood. When both separators are present the later one is the decimal
    separator. A lone comma is decimal while repeated commas, or repeated dots
    without any comma, group thousands. ``"1,234"`` therefore reads as 1.234.
    """

    if raw is None:
        return None
    value = _NUMBER_NOISE.sub("", str(raw))
    negative = False
    if len(value) > 2 and value.startswith("(") and value.endswith(")"):
        negative = True
        value = value[1:-1]
    if not value:
        return None

    last_comma = value.rfind(",")
    last_dot = value.rfind(".")
    if last_comma != -1 and last_dot != -1:
        if last_comma > last_dot:
            value = value.replace(".", "").replace(",", ".")
        else:
            value = value.replace(",", "")
    elif last_comma != -1:
        value = value.replace(",", ".") if value.count(",") == 1 else value.replace(",", "")
    elif value.count(".") > 1:
        value = value.replace(".", "")

    if not _PLAIN_NUMBER.match(value):
        return None
    number = float(value)
    if not math.isfinite(number):
        return None
    return -number if negative else number


def _utc_date(year: int, month: int, day: int) -> Optional[datetime]:
    try:
        return datetime(year, month, day, tzinfo=timezone.utc)
    except ValueError:
        return None


def parse_date(raw: Optional[str]) -> Optional[datetime]:
    """Parse a date cell into a UTC ``datetime``.

    Formats are tried in order: ``YYYY-MM-DD`` (``-`` or ``/``), day-first
    ``DD.MM.YYYY`` (two-digit years are 20xx), a bare epoch timestamp
    (milliseconds from 12 digits up, seconds below) and finally the pandas
    parser.
    """

    if raw is None:
        return None
    value = raw.strip()
    if not value:
        return None

    match = _ISO_DATE.match(value)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return _utc_date(year, month, day)

    match = _DAY_FIRST_DATE.match(value)
    if match:
        day, month, year = (int(part) for part in match.groups())
        if len(match.group(3)) == 2:
            year += 2000
        return _utc_date(year, month, day)

    if _EPOCH.match(value):
        seconds = int(value) / 1000 if len(value) >= 12 else int(value)
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    try:
        parsed = pd.to_datetime(value, utc=True)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(parsed):
        return None
    return parsed.to_pydatetime()


def normalize_currency(raw: Optional[str]) -> Optional[str]:
    if not raw:
        return None
    code = raw.strip().upper()
    return code if _CURRENCY_CODE.match(code) else None


def infer_currency_from_symbol(symbol: Optional[str]) -> Optional[str]:
    """Guess a pricing currency from exchange (``.PA``) or pair (``-USD``) suffixes."""

    if not symbol:
        return None
    symbol = symbol.strip().upper()
    match = _PAIR_SUFFIX.search(symbol)
    if match:
        return match.group(1)
    if "." in symbol:
        return SUFFIX_CURRENCY_MAP.get("." + symbol.rsplit(".", 1)[1])
    return None


def parse_kind(raw: Optional[str]) -> Optional[TransactionKind]:
    if not raw:
        return None
    value = raw.strip()
    try:
        return TransactionKind(value.upper())
    except ValueError:
        pass
    return KIND_ALIASES.get(re.sub(r"[\s-]+", "_", value.lower()))


def parse_asset_type(raw: Optional[str]) -> Optional[AssetType]:
    if not raw:
        return None
    value = raw.strip()
    try:
        return AssetType(value.upper())
    except ValueError:
        pass
    return ASSET_TYPE_ALIASES.get(value.lower())


def _cell(cells: Sequence[str], columns: Mapping[str, List[int]], name: str) -> str:
    for index in columns.get(name, ()):
        if index < len(cells):
            value = cells[index].strip()
            if value:
                return value
    return ""


def normalize_row(
    cells: Sequence[str],
    columns: Mapping[str, List[int]],
    *,
    default_currency: Optional[str] = DEFAULT_CURRENCY,
    default_platform: Optional[str] = None,
) -> Tuple[Optional[NormalizedTransactionRow], List[str]]:
    """Validate one data row.

    Returns ``(row, [])`` on success or ``(None, messages)`` with every
    problem found in the row.
    """

    errors: List[str] = []

    platform = _cell(cells, columns, "platform") or (default_platform or "").strip()
    if not platform:
        errors.append("Column platform is required.")

    raw_currency = _cell(cells, columns, "currency")
    provided_currency = normalize_currency(raw_currency)
    if raw_currency and not provided_currency:
        errors.append(f'Invalid currency "{raw_currency}". Use an ISO code (EUR, USD...).')

    raw_symbol = _cell(cells, columns, "asset_symbol")
    currency = provided_currency or infer_currency_from_symbol(raw_symbol) or normalize_currency(default_currency)
    if not currency and not raw_currency:
        errors.append("Unable to determine the currency of the row.")

    raw_cash_currency = _cell(cells, columns, "cash_currency")
    cash_currency = normalize_currency(raw_cash_currency)
    if raw_cash_currency and not cash_currency:
        errors.append(f'Invalid settlement currency "{raw_cash_currency}".')

    raw_kind = _cell(cells, columns, "kind")
    kind = parse_kind(raw_kind)
    if kind is None:
        accepted = ", ".join(k.value for k in TransactionKind)
        errors.append(f'Invalid transaction kind "{raw_kind}". Accepted values: {accepted}.')

    date = parse_date(_cell(cells, columns, "date"))
    if date is None:
        errors.append("Column date must hold a valid date (ISO, DD/MM/YYYY or timestamp).")

    qty = parse_number(_cell(cells, columns, "qty"))
    price = parse_number(_cell(cells, columns, "price"))
    fee = parse_number(_cell(cells, columns, "fee"))

    raw_asset_type = _cell(cells, columns, "asset_type")
    asset_type = parse_asset_type(raw_asset_type)
    if raw_asset_type and asset_type is None:
        accepted = ", ".join(t.value for t in AssetType)
        errors.append(f'Invalid asset_type "{raw_asset_type}". Accepted values: {accepted}.')

    symbol = raw_symbol.upper() or None
    if kind is not None and kind.is_trade:
        if not symbol:
            errors.append("asset_symbol is required for BUY / SELL.")
        if qty is None or qty <= 0:
            errors.append("qty must be positive for BUY / SELL.")
        if price is None or price < 0:
            errors.append("price must be provided for BUY / SELL.")
        if asset_type is None and not raw_asset_type:
            asset_type = DEFAULT_ASSET_TYPE

    if errors:
        return None, errors

    asset_name = _cell(cells, columns, "asset_name")
    return (
        NormalizedTransactionRow(
            date=date,
            platform=platform,
            kind=kind,
            currency=currency,
            cash_currency=cash_currency or currency,
            asset_symbol=symbol,
            asset_name=asset_name or symbol,
            asset_type=asset_type,
            qty=qty,
            price=price,
            fee=fee,
            note=_cell(cells, columns, "note") or None,
        ),
        [],
    )


def _missing_columns_message(missing: Sequence[str]) -> str:
    message = f"Missing columns: {', '.join(missing)}."
    if "platform" in missing:
        message += " Map a platform column or provide a default broker."
    return message


def parse_transactions_csv(
    text: str,
    *,
    default_currency: Optional[str] = DEFAULT_CURRENCY,
    default_platform: Optional[str] = None,
    column_mapping: Optional[Mapping[str, Optional[str]]] = None,
) -> CsvParseResult:
    """Tokenize, resolve headers and normalize every data row of ``text``.

    Structural problems (empty file, required columns missing) abort with a
    single error on row 0. Row problems are collected with 1-based row
    numbers counting the header as row 1.
    """

    rows = tokenize(text)
    if not rows:
        return CsvParseResult(records=[], errors=[CsvParseError(row=0, message="The file is empty.")])

    resolution = resolve_headers(rows[0], column_mapping)
    missing = resolution.missing_required(default_platform)
    if missing:
        logger.debug("Rejecting CSV, missing required columns %s", missing)
        return CsvParseResult(records=[], errors=[CsvParseError(row=0, message=_missing_columns_message(missing))])

    result = CsvParseResult()
    for index, cells in enumerate(rows[1:], start=1):
        if is_blank_row(cells):
            continue
        record, messages = normalize_row(
            cells,
            resolution.columns,
            default_currency=default_currency,
            default_platform=default_platform,
        )
        if record is None:
            row_number = index + 1
            logger.debug("Rejected CSV row %s: %s", row_number, messages)
            result.errors.append(CsvParseError(row=row_number, message=" ".join(messages)))
            continue
        result.records.append(record)
    return result


__all__ = [
    "DEFAULT_CURRENCY",
    "KIND_ALIASES",
    "ASSET_TYPE_ALIASES",
    "SUFFIX_CURRENCY_MAP",
    "parse_number",
    "parse_date",
    "normalize_currency",
    "infer_currency_from_symbol",
    "parse_kind",
    "parse_asset_type",
    "normalize_row",
    "parse_transactions_csv",
]
