"""Header resolution: map raw CSV column names onto canonical fields.

Resolution for each header runs through three tiers:

1. exact match on a canonical field name or on :data:`HEADER_ALIASES`,
2. the first matching pattern in :data:`GUESS_RULES`,
3. otherwise the header stays unmapped.

New broker vocabularies are supported by extending the tables, not the code.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Pattern, Sequence, Tuple

logger = logging.getLogger(__name__)

CSV_FIELDS: Tuple[str, ...] = (
    "date",
    "platform",
    "kind",
    "asset_symbol",
    "asset_name",
    "asset_type",
    "qty",
    "price",
    "currency",
    "cash_currency",
    "fee",
    "note",
)

CANONICAL_CONFIDENCE = 1.0
ALIAS_CONFIDENCE = 0.9
GUESS_CONFIDENCE = 0.7
OVERRIDE_CONFIDENCE = 0.55
REVIEW_THRESHOLD = 0.6

HEADER_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "broker": "platform",
        "broker_name": "platform",
        "platform_name": "platform",
        "ticker": "asset_symbol",
        "symbol": "asset_symbol",
        "isin": "asset_symbol",
        "shares": "qty",
        "quantity": "qty",
        "amount": "qty",
        "fees": "fee",
        "fee_amount": "fee",
        "commission": "fee",
        "commissions": "fee",
        "type": "kind",
        "side": "kind",
        "action": "kind",
        "trade_type": "kind",
        "transaction_type": "kind",
        "name": "asset_name",
        "asset": "asset_name",
        "assetclass": "asset_type",
        "asset_class": "asset_type",
        "currency_code": "currency",
        "price_currency": "currency",
        "settlement_currency": "cash_currency",
        "notes": "note",
        "comment": "note",
        "comments": "note",
    }
)

# Ordered: the first matching rule wins, so narrower rules come first.
GUESS_RULES: Tuple[Tuple[str, Pattern[str]], ...] = (
    ("date", re.compile(r"date|when|day|time|datum|jour|horodatage")),
    ("cash_currency", re.compile(r"(cash|settle\w*|account|payment|reglement)_?(currenc|ccy|devise)")),
    ("currency", re.compile(r"currenc|ccy|devise|w[aä]hrung|monnaie|divisa|^cur$")),
    ("platform", re.compile(r"broker|platform|courtier|account|compte|where|venue|bank|wallet|provider")),
    ("asset_type", re.compile(r"asset_?type|asset_?class|security_type|instrument_type|product_type|class|categor")),
    ("kind", re.compile(r"kind|type|side|action|operation|transaction|direction|sens|buy_?sell")),
    ("fee", re.compile(r"fee|frais|commission|charge|geb[uü]hr")),
    ("price", re.compile(r"price|px|prix|cours|kurs|unit_cost|cost_per")),
    ("qty", re.compile(r"qty|quant|shares?|units?|nominal|volume|nombre|anzahl|menge")),
    ("asset_name", re.compile(r"name|nom|description|libell|designation|security|instrument|product|produit|titre")),
    ("asset_symbol", re.compile(r"symbol|ticker|tkr|sym|isin|code|wkn|stock")),
    ("note", re.compile(r"note|comment|memo|remark|reference")),
)


def normalize_header(raw: str) -> str:
    """Trim, lowercase and turn whitespace or hyphen runs into underscores."""

    return re.sub(r"[\s-]+", "_", raw.lstrip("﻿").strip().lower())


def header_signature(headers: Sequence[str]) -> str:
    """Return a stable key for an ordered header row."""

    return "|".join(normalize_header(header) for header in headers)


def _auto_match(header: str) -> Tuple[Optional[str], float]:
    normalized = normalize_header(header)
    if normalized in CSV_FIELDS:
        return normalized, CANONICAL_CONFIDENCE
    alias = HEADER_ALIASES.get(normalized)
    if alias:
        return alias, ALIAS_CONFIDENCE
    for canonical, pattern in GUESS_RULES:
        if pattern.search(normalized):
            return canonical, GUESS_CONFIDENCE
    return None, 0.0


def _required_fields(default_platform: Optional[str]) -> Tuple[str, ...]:
    if default_platform and default_platform.strip():
        return ("date", "kind")
    return ("date", "kind", "platform")


@dataclass
class HeaderResolution:
    """Resolved header row.

    ``suggested``/``confidence`` describe the automatic resolution; ``mapping``
    and ``columns`` are the effective assignment after any caller override.
    """

    headers: List[str]
    signature: str
    suggested: Dict[str, str] = field(default_factory=dict)
    confidence: Dict[str, float] = field(default_factory=dict)
    mapping: Dict[str, str] = field(default_factory=dict)
    columns: Dict[str, List[int]] = field(default_factory=dict)

    def field_confidence(self, name: str) -> float:
        return field_confidence(name, self.mapping, self.suggested, self.confidence)

    def missing_required(self, default_platform: Optional[str] = None) -> List[str]:
        return [name for name in _required_fields(default_platform) if not self.columns.get(name)]

    def fields_needing_review(self, default_platform: Optional[str] = None) -> List[str]:
        """Required fields whose confidence is below the review threshold."""

        return fields_needing_review(self.mapping, self.suggested, self.confidence, default_platform)


def field_confidence(
    name: str,
    mapping: Mapping[str, str],
    suggested: Mapping[str, str],
    confidence: Mapping[str, float],
) -> float:
    """Score how trustworthy the current header choice for ``name`` is."""

    current = mapping.get(name)
    if not current:
        return 0.0
    if current == suggested.get(name):
        return confidence.get(name, 0.5)
    return OVERRIDE_CONFIDENCE


def fields_needing_review(
    mapping: Mapping[str, str],
    suggested: Mapping[str, str],
    confidence: Mapping[str, float],
    default_platform: Optional[str] = None,
) -> List[str]:
    return [
        name
        for name in _required_fields(default_platform)
        if field_confidence(name, mapping, suggested, confidence) < REVIEW_THRESHOLD
    ]


def sanitize_mapping(mapping: Mapping[str, Optional[str]], headers: Sequence[str]) -> Dict[str, str]:
    """Keep only canonical fields whose header exists in ``headers``."""

    allowed = set(headers)
    return {
        name: header
        for name, header in mapping.items()
        if name in CSV_FIELDS and header and header in allowed
    }


def resolve_headers(
    headers: Sequence[str],
    override: Optional[Mapping[str, Optional[str]]] = None,
) -> HeaderResolution:
    """Resolve ``headers`` and apply an optional field -> header ``override``.

    An override entry with an empty header explicitly unmaps the field.
    """

    headers = list(headers)
    assignment: List[Optional[str]] = []
    resolution = HeaderResolution(headers=headers, signature=header_signature(headers))

    for header in headers:
        canonical, score = _auto_match(header)
        assignment.append(canonical)
        if canonical is None:
            continue
        if score > resolution.confidence.get(canonical, 0.0):
            resolution.suggested[canonical] = header
            resolution.confidence[canonical] = score
        logger.debug("Header %r resolved to %s (%.2f)", header, canonical, score)

    for name, header in (override or {}).items():
        if name not in CSV_FIELDS:
            continue
        assignment = [None if assigned == name else assigned for assigned in assignment]
        if not header:
            continue
        wanted = header.strip()
        for index, raw in enumerate(headers):
            if raw.strip() == wanted:
                assignment[index] = name

    for index, assigned in enumerate(assignment):
        if assigned is not None:
            resolution.columns.setdefault(assigned, []).append(index)

    for name, indexes in resolution.columns.items():
        candidates = [headers[index] for index in indexes]
        overridden = (override or {}).get(name)
        if overridden and overridden.strip() in (c.strip() for c in candidates):
            resolution.mapping[name] = next(c for c in candidates if c.strip() == overridden.strip())
        elif resolution.suggested.get(name) in candidates:
            resolution.mapping[name] = resolution.suggested[name]
        else:
            resolution.mapping[name] = candidates[0]

    return resolution


@dataclass
class MappingSuggestion:
    headers: List[str]
    signature: Optional[str]
    mapping: Dict[str, str]
    confidence: Dict[str, float]


def suggest_column_mapping(text: str) -> MappingSuggestion:
    """Tokenize ``text`` and return the automatic mapping for its header row."""

    from .tokenizer import tokenize

    rows = tokenize(text)
    if not rows:
        return MappingSuggestion(headers=[], signature=None, mapping={}, confidence={})
    resolution = resolve_headers(rows[0])
    return MappingSuggestion(
        headers=resolution.headers,
        signature=resolution.signature,
        mapping=dict(resolution.suggested),
        confidence=dict(resolution.confidence),
    )


__all__ = [
    "CSV_FIELDS",
    "HEADER_ALIASES",
    "GUESS_RULES",
    "REVIEW_THRESHOLD",
    "HeaderResolution",
    "MappingSuggestion",
    "normalize_header",
    "header_signature",
    "field_confidence",
    "fields_needing_review",
    "sanitize_mapping",
    "resolve_headers",
    "suggest_column_mapping",
]
