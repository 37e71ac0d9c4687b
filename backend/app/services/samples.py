"""Deterministic demo portfolio used to seed an empty store."""

from __future__ import annotations

from datetime import datetime, timezone

from app.repositories import EntityStore, ImportBatch
from investment_tracker.models import (
    Asset,
    AssetType,
    FxSnapshot,
    Platform,
    PriceSnapshot,
    Transaction,
    TransactionKind,
    utcnow,
)


def build_sample_batch(now: datetime | None = None) -> ImportBatch:
    """Two platforms, three assets and one USD rate; worth about 35 109.60 EUR."""

    now = now or utcnow()
    return ImportBatch(
        platforms=[
            Platform(id="platform_1", name="DEGIRO", created_at=now),
            Platform(id="platform_2", name="Interactive Brokers", created_at=now),
        ],
        assets=[
            Asset(
                id="asset_1",
                type=AssetType.ETF,
                symbol="VWRL",
                name="Vanguard FTSE All-World UCITS ETF",
                currency="EUR",
                created_at=now,
            ),
            Asset(id="asset_2", type=AssetType.STOCK, symbol="AAPL", name="Apple Inc.", currency="USD", created_at=now),
            Asset(id="asset_3", type=AssetType.CRYPTO, symbol="BTC", name="Bitcoin", currency="USD", created_at=now),
        ],
        transactions=[
            Transaction(
                id="tx_1",
                platform_id="platform_1",
                asset_id="asset_1",
                kind=TransactionKind.BUY,
                date=datetime(2024, 1, 1, tzinfo=timezone.utc),
                qty=100,
                price=90.5,
                currency="EUR",
                created_at=now,
            ),
            Transaction(
                id="tx_2",
                platform_id="platform_1",
                asset_id="asset_2",
                kind=TransactionKind.BUY,
                date=datetime(2024, 1, 15, tzinfo=timezone.utc),
                qty=10,
                price=150,
                currency="USD",
                created_at=now,
            ),
            Transaction(
                id="tx_3",
                platform_id="platform_2",
                asset_id="asset_3",
                kind=TransactionKind.BUY,
                date=datetime(2024, 2, 1, tzinfo=timezone.utc),
                qty=0.5,
                price=45000,
                currency="USD",
                created_at=now,
            ),
        ],
        prices=[
            PriceSnapshot(id="price_1", asset_id="asset_1", date=now, price=95.75, currency="EUR", created_at=now),
            PriceSnapshot(id="price_2", asset_id="asset_2", date=now, price=175.5, currency="USD", created_at=now),
            PriceSnapshot(id="price_3", asset_id="asset_3", date=now, price=52000, currency="USD", created_at=now),
        ],
        fx_snapshots=[FxSnapshot(id="fx_1", pair="USD/EUR", date=now, rate=0.92, created_at=now)],
    )


async def seed_sample_data(store: EntityStore, now: datetime | None = None) -> ImportBatch:
    """Write the sample entities that are not in ``store`` yet and return them."""

    sample = build_sample_batch(now)
    missing = ImportBatch()
    for source, target in (
        (sample.platforms, missing.platforms),
        (sample.assets, missing.assets),
        (sample.transactions, missing.transactions),
        (sample.prices, missing.prices),
        (sample.fx_snapshots, missing.fx_snapshots),
    ):
        for entity in source:
            if await store.get(type(entity), entity.id) is None:
                target.append(entity)
    if not missing.is_empty():
        await store.write_batch(missing)
    return missing


__all__ = ["build_sample_batch", "seed_sample_data"]
