"""CSV import workflow: parse, review the column mapping, commit atomically."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from app.repositories import EntityStore, ImportBatch, MappingMemory, MappingTemplate
from app.services.market_data import FxClient, FxError, fetch_fx_rates_to_eur, fx_snapshots_from_rates
from investment_tracker.ingest import (
    CSV_FIELDS,
    MappingSuggestion,
    field_confidence,
    fields_needing_review,
    parse_transactions_csv,
    sanitize_mapping,
    suggest_column_mapping,
)
from investment_tracker.models import (
    Asset,
    AssetType,
    CsvParseResult,
    FxSnapshot,
    NormalizedTransactionRow,
    Platform,
    PriceSnapshot,
    Transaction,
    new_id,
    utcnow,
)

logger = logging.getLogger(__name__)


class ImportState(str, enum.Enum):
    IDLE = "idle"
    PARSING = "parsing"
    MAPPING = "mapping"
    READY = "ready"
    ERROR = "error"
    IMPORTING = "importing"
    DONE = "done"


ALLOWED_TRANSITIONS: Mapping[ImportState, frozenset[ImportState]] = MappingProxyType(
    {
        ImportState.IDLE: frozenset({ImportState.PARSING}),
        ImportState.PARSING: frozenset({ImportState.MAPPING, ImportState.READY, ImportState.ERROR}),
        ImportState.MAPPING: frozenset({ImportState.PARSING, ImportState.IDLE}),
        ImportState.READY: frozenset({ImportState.PARSING, ImportState.IMPORTING, ImportState.IDLE}),
        ImportState.ERROR: frozenset({ImportState.PARSING, ImportState.IDLE}),
        ImportState.IMPORTING: frozenset({ImportState.DONE, ImportState.ERROR}),
        ImportState.DONE: frozenset({ImportState.PARSING, ImportState.IDLE}),
    }
)


class ImportStateError(RuntimeError):
    """Raised when an operation is not allowed in the current import state."""


class ImportCommitError(RuntimeError):
    """Raised when the import batch could not be written."""


@dataclass
class ImportSummary:
    transactions_created: int = 0
    platforms_created: int = 0
    assets_created: int = 0
    prices_created: int = 0
    fx_created: int = 0
    fx_errors: list[FxError] = field(default_factory=list)


def _platform_key(name: str) -> str:
    return name.strip().lower()


def build_import_batch(
    rows: Iterable[NormalizedTransactionRow],
    existing_platforms: Iterable[Platform],
    existing_assets: Iterable[Asset],
    now: Optional[datetime] = None,
) -> ImportBatch:
    """Turn normalized rows into the entities one import creates.

    Platforms are matched by trimmed, case-insensitive name and assets by
    upper-cased symbol; unknown ones are created once. Every trade with a
    non-zero price also records a price observation, one per asset and date.
    """

    now = now or utcnow()
    platforms = {_platform_key(p.name): p for p in existing_platforms}
    assets = {a.symbol.upper(): a for a in existing_assets}
    batch = ImportBatch()
    price_keys: set[tuple[str, datetime]] = set()

    for row in rows:
        key = _platform_key(row.platform)
        platform = platforms.get(key)
        if platform is None:
            platform = Platform(id=new_id("platform"), name=row.platform.strip(), created_at=now)
            platforms[key] = platform
            batch.platforms.append(platform)

        asset: Optional[Asset] = None
        if row.kind.is_trade and row.asset_symbol:
            symbol = row.asset_symbol.upper()
            asset = assets.get(symbol)
            if asset is None:
                asset = Asset(
                    id=new_id("asset"),
                    type=row.asset_type or AssetType.STOCK,
                    symbol=symbol,
                    name=row.asset_name or symbol,
                    currency=row.currency,
                    created_at=now,
                )
                assets[symbol] = asset
                batch.assets.append(asset)

        batch.transactions.append(
            Transaction(
                id=new_id("tx"),
                platform_id=platform.id,
                asset_id=asset.id if asset else None,
                kind=row.kind,
                date=row.date,
                qty=row.qty if asset else None,
                price=row.price if asset else None,
                fee=row.fee,
                currency=row.cash_currency or row.currency,
                note=row.note,
                created_at=now,
            )
        )

        if asset is not None and row.price:
            price_key = (asset.id, row.date)
            if price_key not in price_keys:
                price_keys.add(price_key)
                batch.prices.append(
                    PriceSnapshot(
                        id=new_id("price"),
                        asset_id=asset.id,
                        date=row.date,
                        price=row.price,
                        currency=row.currency,
                        created_at=now,
                    )
                )

    return batch


class ImportSession:
    """Lifecycle of one CSV file from upload to commit.

    The session is a small state machine (see :data:`ALLOWED_TRANSITIONS`).
    Every mapping change re-parses the file and re-evaluates the state.
    """

    def __init__(
        self,
        store: EntityStore,
        memory: MappingMemory,
        *,
        default_currency: Optional[str] = "EUR",
        fx_client: Optional[FxClient] = None,
    ) -> None:
        self._store = store
        self._memory = memory
        self._fx_client = fx_client
        self._default_currency = default_currency
        self._text: Optional[str] = None
        self.state = ImportState.IDLE
        self.default_platform: Optional[str] = None
        self.suggestion: Optional[MappingSuggestion] = None
        self.mapping: dict[str, str] = {}
        self.template_applied = False
        self.result = CsvParseResult()
        self._baseline_mapping: dict[str, str] = {}
        self._baseline_confidence: dict[str, float] = {}
        # Fields the caller mapped by hand no longer need review.
        self.confirmed: set[str] = set()

    def _transition(self, target: ImportState) -> None:
        if target not in ALLOWED_TRANSITIONS[self.state]:
            raise ImportStateError(f"Cannot move import from {self.state.value} to {target.value}")
        logger.info("Import state %s -> %s", self.state.value, target.value)
        self.state = target

    @property
    def signature(self) -> Optional[str]:
        return self.suggestion.signature if self.suggestion else None

    @property
    def headers(self) -> list[str]:
        return list(self.suggestion.headers) if self.suggestion else []

    def field_review(self) -> list[str]:
        """Required fields whose mapping is uncertain and was not confirmed."""

        return [
            name
            for name in fields_needing_review(
                self.mapping,
                self._baseline_mapping,
                self._baseline_confidence,
                self.default_platform,
            )
            if name not in self.confirmed or not self.mapping.get(name)
        ]

    def confidence(self) -> dict[str, float]:
        return {
            name: field_confidence(name, self.mapping, self._baseline_mapping, self._baseline_confidence)
            for name in CSV_FIELDS
        }

    async def load(
        self,
        text: str,
        default_platform: Optional[str] = None,
        default_currency: Optional[str] = None,
        column_mapping: Optional[Mapping[str, Optional[str]]] = None,
    ) -> ImportState:
        """Read a new file, recall the remembered mapping for its headers and parse it."""

        self._transition(ImportState.PARSING)
        self._text = text
        if default_currency is not None:
            self._default_currency = default_currency
        self.default_platform = (default_platform or "").strip() or None
        self.suggestion = suggest_column_mapping(text)
        self.template_applied = False
        self.confirmed = set()

        mapping = dict(self.suggestion.mapping)
        self._baseline_confidence = dict(self.suggestion.confidence)
        template = await self._memory.get(self.signature) if self.signature else None
        if template is not None:
            remembered = sanitize_mapping(template.mapping, self.headers)
            mapping.update(remembered)
            # A remembered mapping was confirmed by the user before.
            self._baseline_confidence.update({name: 1.0 for name in remembered})
            self.template_applied = bool(remembered)
            if self.default_platform is None and template.preferred_counterparty:
                self.default_platform = template.preferred_counterparty
            logger.info("Recalled mapping template for signature %s", self.signature)
        self._baseline_mapping = dict(mapping)

        for name, header in (column_mapping or {}).items():
            if name in CSV_FIELDS:
                self._set_field(mapping, name, header)
                self.confirmed.add(name)
        self.mapping = mapping
        return self._parse()

    @staticmethod
    def _set_field(mapping: dict[str, str], name: str, header: Optional[str]) -> None:
        if header:
            mapping[name] = header
        else:
            mapping.pop(name, None)

    def _require_loaded(self) -> None:
        if self._text is None or self.state in (ImportState.IDLE, ImportState.IMPORTING):
            raise ImportStateError(f"No file to remap in state {self.state.value}")

    def remap(self, name: str, header: Optional[str]) -> ImportState:
        """Map ``name`` to ``header``; an empty header unmaps the field."""

        if name not in CSV_FIELDS:
            raise ValueError(f"Unknown field {name!r}")
        self._require_loaded()
        self._transition(ImportState.PARSING)
        self._set_field(self.mapping, name, header)
        self.confirmed.add(name)
        return self._parse()

    def confirm_mapping(self) -> ImportState:
        """Accept the current mapping of every field as reviewed."""

        self._require_loaded()
        self._transition(ImportState.PARSING)
        self.confirmed.update(self.mapping)
        return self._parse()

    def set_default_platform(self, name: Optional[str]) -> ImportState:
        self._require_loaded()
        self._transition(ImportState.PARSING)
        self.default_platform = (name or "").strip() or None
        return self._parse()

    def restore_auto_mapping(self) -> ImportState:
        self._require_loaded()
        self._transition(ImportState.PARSING)
        suggested = self.suggestion.mapping if self.suggestion else {}
        self.mapping.update(suggested)
        self.confirmed.difference_update(suggested)
        return self._parse()

    def _parse(self) -> ImportState:
        override = {name: self.mapping.get(name) for name in CSV_FIELDS}
        self.result = parse_transactions_csv(
            self._text or "",
            default_currency=self._default_currency,
            default_platform=self.default_platform,
            column_mapping=override,
        )

        if not self.result.records and not self.result.errors:
            target = ImportState.ERROR
        elif self.result.has_structural_error and self.headers:
            target = ImportState.MAPPING
        elif self.result.errors:
            target = ImportState.ERROR
        elif self.field_review():
            target = ImportState.MAPPING
        else:
            target = ImportState.READY
        self._transition(target)
        return target

    async def commit(self, remember_mapping: bool = True) -> ImportSummary:
        """Write the parsed rows in one batch; only allowed once the session is ready."""

        if self.state is not ImportState.READY:
            raise ImportStateError(f"Import is not ready (state: {self.state.value})")
        self._transition(ImportState.IMPORTING)

        try:
            if remember_mapping and self.signature:
                await self._memory.put(
                    self.signature,
                    MappingTemplate(
                        mapping=sanitize_mapping(self.mapping, self.headers),
                        preferred_counterparty=self.default_platform,
                    ),
                )
            fx_snapshots, fx_errors = await self._fetch_fx()

            def _build(platforms: list[Platform], assets: list[Asset]) -> ImportBatch:
                batch = build_import_batch(self.result.records, platforms, assets)
                batch.fx_snapshots.extend(fx_snapshots)
                return batch

            batch = await self._store.write_import(_build)
        except Exception as exc:
            self._transition(ImportState.ERROR)
            logger.exception("Import commit failed")
            raise ImportCommitError(f"Import failed: {exc}") from exc

        summary = ImportSummary(
            transactions_created=len(batch.transactions),
            platforms_created=len(batch.platforms),
            assets_created=len(batch.assets),
            prices_created=len(batch.prices),
            fx_created=len(batch.fx_snapshots),
            fx_errors=fx_errors,
        )

        self._transition(ImportState.DONE)
        logger.info(
            "Imported %d transactions (%d new platforms, %d new assets)",
            summary.transactions_created,
            summary.platforms_created,
            summary.assets_created,
        )
        return summary

    async def _fetch_fx(self) -> tuple[list[FxSnapshot], list[FxError]]:
        """Current EUR rates for the imported currencies."""

        if self._fx_client is None:
            return [], []
        fx = await fetch_fx_rates_to_eur((row.currency for row in self.result.records), self._fx_client)
        return fx_snapshots_from_rates(fx.rates, utcnow()), fx.errors

    def reset(self) -> None:
        if self.state is ImportState.IMPORTING:
            raise ImportStateError("Cannot reset while importing")
        if self.state is not ImportState.IDLE:
            self._transition(ImportState.IDLE)
        self._text = None
        self.suggestion = None
        self.mapping = {}
        self.confirmed = set()
        self.default_platform = None
        self.template_applied = False
        self.result = CsvParseResult()


__all__ = [
    "ALLOWED_TRANSITIONS",
    "ImportBatch",
    "ImportCommitError",
    "ImportSession",
    "ImportState",
    "ImportStateError",
    "ImportSummary",
    "build_import_batch",
]
