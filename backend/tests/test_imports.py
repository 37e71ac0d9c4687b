"""Import batch building and the CSV import session state machine."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from app.repositories import InMemoryMappingMemory
from app.services.imports import (
    ALLOWED_TRANSITIONS,
    ImportCommitError,
    ImportSession,
    ImportState,
    ImportStateError,
    build_import_batch,
)
from investment_tracker.ingest import header_signature, parse_transactions_csv
from investment_tracker.models import Asset, AssetType, FxSnapshot, Platform, PriceSnapshot, Transaction

BROKER_EXPORT = (
    "date,broker,type,ticker,shares,price,currency,fees\n"
    "2024-01-02,DEGIRO,BUY,AAPL,10,150,USD,1\n"
    "2024-01-03,degiro ,buy,aapl,5,155,USD,\n"
    "2024-01-03,IBKR,SELL,AAPL,2,160,USD,0.5\n"
    "2024-01-04,IBKR,DEPOSIT,,,,EUR,\n"
)

TERSE_EXPORT = "When,Op,Code,Units,Px,Ccy\n2024-03-01,BUY,MSFT,3,400,USD\n"


def _rows(text: str = BROKER_EXPORT):
    result = parse_transactions_csv(text)
    assert result.errors == []
    return result.records


def test_batch_creates_each_platform_and_asset_once():
    batch = build_import_batch(_rows(), [], [])

    assert sorted(p.name for p in batch.platforms) == ["DEGIRO", "IBKR"]
    assert [a.symbol for a in batch.assets] == ["AAPL"]
    assert batch.assets[0].type is AssetType.STOCK
    assert batch.assets[0].currency == "USD"
    assert len(batch.transactions) == 4
    assert len({tx.platform_id for tx in batch.transactions}) == 2


def test_batch_records_one_price_per_asset_and_date():
    batch = build_import_batch(_rows(), [], [])

    assert [(p.date.day, p.price) for p in batch.prices] == [(2, 150), (3, 155)]


def test_batch_reuses_existing_reference_data():
    degiro = Platform(id="platform_1", name="Degiro")
    apple = Asset(id="asset_2", type=AssetType.STOCK, symbol="AAPL", name="Apple Inc.", currency="USD")

    batch = build_import_batch(_rows(), [degiro], [apple])

    assert [p.name for p in batch.platforms] == ["IBKR"]
    assert batch.assets == []
    assert batch.transactions[0].platform_id == "platform_1"
    assert batch.transactions[0].asset_id == "asset_2"


def test_cash_rows_never_link_an_asset():
    batch = build_import_batch(_rows(), [], [])

    deposit = batch.transactions[-1]
    assert deposit.asset_id is None
    assert deposit.qty is None
    assert deposit.currency == "EUR"


def test_transition_table_covers_every_state():
    assert set(ALLOWED_TRANSITIONS) == set(ImportState)
    assert ImportState.IMPORTING not in ALLOWED_TRANSITIONS[ImportState.MAPPING]
    assert ALLOWED_TRANSITIONS[ImportState.IMPORTING] == {ImportState.DONE, ImportState.ERROR}


async def test_clean_export_is_ready_and_commits(memory_store):
    memory = InMemoryMappingMemory()
    session = ImportSession(memory_store, memory)

    assert await session.load(BROKER_EXPORT) is ImportState.READY
    assert session.field_review() == []
    assert session.confidence()["platform"] == pytest.approx(0.9)

    summary = await session.commit()

    assert session.state is ImportState.DONE
    assert summary.transactions_created == 4
    assert summary.platforms_created == 2
    assert summary.assets_created == 1
    assert summary.prices_created == 2
    assert len(await memory_store.get_all(Transaction)) == 4
    assert len(await memory_store.get_all(PriceSnapshot)) == 2
    template = await memory.get(header_signature(session.headers))
    assert template.mapping["platform"] == "broker"
    assert template.preferred_counterparty is None


async def test_second_import_reuses_stored_entities(memory_store):
    memory = InMemoryMappingMemory()
    first = ImportSession(memory_store, memory)
    await first.load(BROKER_EXPORT)
    await first.commit()

    second = ImportSession(memory_store, memory)
    await second.load(BROKER_EXPORT)
    summary = await second.commit()

    assert summary.platforms_created == 0
    assert summary.assets_created == 0
    assert len(await memory_store.get_all(Platform)) == 2


async def test_missing_required_column_requires_mapping(memory_store):
    session = ImportSession(memory_store, InMemoryMappingMemory())

    state = await session.load(TERSE_EXPORT, default_platform="Revolut")

    assert state is ImportState.MAPPING
    assert session.result.errors[0].row == 0
    assert session.result.errors[0].message == "Missing columns: kind."
    assert session.field_review() == ["kind"]
    assert session.confidence()["date"] == pytest.approx(0.7)
    with pytest.raises(ImportStateError):
        await session.commit()


async def test_manual_mapping_is_confirmed_and_remembered(memory_store):
    memory = InMemoryMappingMemory()
    session = ImportSession(memory_store, memory)
    await session.load(TERSE_EXPORT, default_platform="Revolut")

    assert session.remap("kind", "Op") is ImportState.READY
    assert session.confidence()["kind"] == pytest.approx(0.55)
    await session.commit()

    recalled = ImportSession(memory_store, memory)
    state = await recalled.load(TERSE_EXPORT)

    assert state is ImportState.READY
    assert recalled.template_applied
    assert recalled.default_platform == "Revolut"
    assert recalled.mapping["kind"] == "Op"
    assert recalled.confidence()["kind"] == 1.0
    assert recalled.result.records[0].platform == "Revolut"


async def test_column_mapping_passed_on_load_counts_as_confirmed(memory_store):
    session = ImportSession(memory_store, InMemoryMappingMemory())

    state = await session.load(TERSE_EXPORT, default_platform="Revolut", column_mapping={"kind": "Op"})

    assert state is ImportState.READY
    assert session.result.records[0].qty == 3


async def test_manual_override_scores_lower_than_a_suggestion(memory_store):
    text = "date,broker,type,ticker,shares,price,label\n2024-01-02,DEGIRO,BUY,AAPL,10,150,BUY\n"
    session = ImportSession(memory_store, InMemoryMappingMemory())
    await session.load(text)

    state = session.remap("kind", "label")

    assert state is ImportState.READY
    assert session.confidence()["kind"] == pytest.approx(0.55)
    assert session.field_review() == []


async def test_unmapping_and_restoring_the_platform(memory_store):
    session = ImportSession(memory_store, InMemoryMappingMemory())
    await session.load(BROKER_EXPORT)

    assert session.remap("platform", None) is ImportState.MAPPING
    assert "platform" in session.field_review()

    assert session.restore_auto_mapping() is ImportState.READY
    assert session.mapping["platform"] == "broker"


async def test_default_platform_replaces_missing_column(memory_store):
    session = ImportSession(memory_store, InMemoryMappingMemory())
    await session.load(BROKER_EXPORT)
    session.remap("platform", None)

    assert session.set_default_platform("Trade Republic") is ImportState.READY
    assert {row.platform for row in session.result.records} == {"Trade Republic"}


async def test_row_errors_block_commit(memory_store):
    text = BROKER_EXPORT + "2024-01-05,IBKR,SWAP,AAPL,1,1,USD,\n"
    session = ImportSession(memory_store, InMemoryMappingMemory())

    state = await session.load(text)

    assert state is ImportState.ERROR
    assert [error.row for error in session.result.errors] == [6]
    assert len(session.result.records) == 4
    with pytest.raises(ImportStateError):
        await session.commit()


async def test_empty_and_header_only_files_are_errors(memory_store):
    session = ImportSession(memory_store, InMemoryMappingMemory())

    assert await session.load("") is ImportState.ERROR
    assert session.result.errors[0].message == "The file is empty."

    assert await session.load("date,broker,type\n") is ImportState.ERROR
    assert session.result.errors == []


async def test_failed_write_leaves_store_untouched(failing_store):
    session = ImportSession(failing_store, InMemoryMappingMemory())
    await session.load(BROKER_EXPORT)

    with pytest.raises(ImportCommitError, match="disk full"):
        await session.commit()

    assert session.state is ImportState.ERROR
    assert await failing_store.get_all(Transaction) == []
    assert await failing_store.get_all(Platform) == []


async def test_commit_adds_fx_rates_to_the_same_batch(memory_store, fx_client):
    text = BROKER_EXPORT + "2024-01-06,IBKR,BUY,VOD.L,100,1.1,CHF,\n"
    session = ImportSession(memory_store, InMemoryMappingMemory(), fx_client=fx_client)
    await session.load(text)

    summary = await session.commit()

    assert summary.fx_created == 1
    assert [error.currency for error in summary.fx_errors] == ["CHF"]
    assert len(memory_store.batches) == 1
    snapshots = await memory_store.get_all(FxSnapshot)
    assert [(fx.pair, fx.rate) for fx in snapshots] == [("USD/EUR", 0.9)]


def test_remap_requires_a_loaded_file(memory_store):
    session = ImportSession(memory_store, InMemoryMappingMemory())

    with pytest.raises(ImportStateError):
        session.remap("kind", "type")
    with pytest.raises(ValueError):
        session.remap("colour", "type")


async def test_reset_returns_to_idle(memory_store):
    session = ImportSession(memory_store, InMemoryMappingMemory())
    await session.load(BROKER_EXPORT)

    session.reset()

    assert session.state is ImportState.IDLE
    assert session.mapping == {}
    assert session.result.records == []


async def test_dates_are_utc_midnight(memory_store):
    session = ImportSession(memory_store, InMemoryMappingMemory())
    await session.load(BROKER_EXPORT)

    assert session.result.records[0].date == datetime(2024, 1, 2, tzinfo=timezone.utc)
