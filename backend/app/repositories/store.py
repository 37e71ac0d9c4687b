"""Entity store: CRUD per entity type plus atomic import batches."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Protocol, Type, TypeVar

from sqlalchemy import delete as sql_delete
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import Database
from app.models import (
    AssetRecord,
    FxSnapshotRecord,
    PlatformRecord,
    PriceSnapshotRecord,
    TransactionRecord,
)
from app.repositories.batch import ImportBatch
from investment_tracker.models import Asset, FxSnapshot, Platform, PriceSnapshot, Transaction

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT", Platform, Asset, Transaction, PriceSnapshot, FxSnapshot)

# Insert order respects foreign keys; deletes run in reverse.
_RECORDS: dict[type, Type[Any]] = {
    Platform: PlatformRecord,
    Asset: AssetRecord,
    Transaction: TransactionRecord,
    PriceSnapshot: PriceSnapshotRecord,
    FxSnapshot: FxSnapshotRecord,
}


class EntityNotFoundError(LookupError):
    """Raised when updating an entity that does not exist."""


class EntityStore(Protocol):
    async def get_all(self, entity_type: Type[EntityT]) -> list[EntityT]: ...

    async def get(self, entity_type: Type[EntityT], entity_id: str) -> EntityT | None: ...

    async def create(self, entity: EntityT) -> EntityT: ...

    async def update(self, entity: EntityT) -> EntityT: ...

    async def delete(self, entity_type: Type[EntityT], entity_id: str) -> bool: ...

    async def write_batch(self, batch: ImportBatch) -> None: ...

    async def write_import(
        self, build: Callable[[list[Platform], list[Asset]], ImportBatch]
    ) -> ImportBatch: ...

    async def reset(self) -> None: ...


def _as_utc(value: Any) -> Any:
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_record(entity: Any) -> Any:
    record_type = _RECORDS[type(entity)]
    return record_type(**{f.name: getattr(entity, f.name) for f in dataclasses.fields(entity)})


def _to_entity(entity_type: Type[EntityT], record: Any) -> EntityT:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    values = {f.name: _as_utc(getattr(record, f.name)) for f in dataclasses.fields(entity_type)}
    return entity_type(**values)


async def _load_all(session: AsyncSession, entity_type: Type[EntityT]) -> list[EntityT]:
    result = await session.execute(select(_RECORDS[entity_type]))
    return [_to_entity(entity_type, record) for record in result.scalars()]


async def _add_batch(session: AsyncSession, batch: ImportBatch) -> None:
    for group in (
        batch.platforms,
        batch.assets,
        batch.transactions,
        batch.prices,
        batch.fx_snapshots,
    ):
        session.add_all([_to_record(entity) for entity in group])
        await session.flush()


def _log_batch(batch: ImportBatch) -> None:
    logger.info(
        "Stored batch: %d platforms, %d assets, %d transactions, %d prices, %d fx rates",
        len(batch.platforms),
        len(batch.assets),
        len(batch.transactions),
        len(batch.prices),
        len(batch.fx_snapshots),
    )


class SqlAlchemyEntityStore:
    """:class:`EntityStore` backed by the async SQLAlchemy tables."""

    def __init__(self, database: Database):
        self._database = database
        self._write_lock = asyncio.Lock()

    async def get_all(self, entity_type: Type[EntityT]) -> list[EntityT]:
        async with self._database.session() as session:
            return await _load_all(session, entity_type)

    async def get(self, entity_type: Type[EntityT], entity_id: str) -> EntityT | None:
        async with self._database.session() as session:
            record = await session.get(_RECORDS[entity_type], entity_id)
            return _to_entity(entity_type, record) if record is not None else None

    async def create(self, entity: EntityT) -> EntityT:
        async with self._database.session() as session:
            async with session.begin():
                session.add(_to_record(entity))
        return entity

    async def update(self, entity: EntityT) -> EntityT:
        async with self._database.session() as session:
            async with session.begin():
                existing = await session.get(_RECORDS[type(entity)], entity.id)
                if existing is None:
                    raise EntityNotFoundError(f"{type(entity).__name__} {entity.id} not found")
                for f in dataclasses.fields(entity):
                    setattr(existing, f.name, getattr(entity, f.name))
        return entity

    async def delete(self, entity_type: Type[EntityT], entity_id: str) -> bool:
        async with self._database.session() as session:
            async with session.begin():
                record = await session.get(_RECORDS[entity_type], entity_id)
                if record is None:
                    return False
                await session.delete(record)
        return True

    async def write_batch(self, batch: ImportBatch) -> None:
        """Insert every entity of ``batch`` in one transaction, or none of them."""

        async with self._write_lock:
            async with self._database.session() as session:
                async with session.begin():
                    await _add_batch(session, batch)
        _log_batch(batch)

    async def write_import(
        self, build: Callable[[list[Platform], list[Asset]], ImportBatch]
    ) -> ImportBatch:
        """Build a batch from the stored platforms and assets and insert it in the same transaction.

        Writes are serialized, so two imports naming the same new platform or
        asset never both create it.
        """

        async with self._write_lock:
            async with self._database.session() as session:
                async with session.begin():
                    platforms = await _load_all(session, Platform)
                    assets = await _load_all(session, Asset)
                    batch = build(platforms, assets)
                    await _add_batch(session, batch)
        _log_batch(batch)
        return batch

    async def reset(self) -> None:
        """Delete every row of every entity table in one transaction."""

        async with self._write_lock:
            async with self._database.session() as session:
                async with session.begin():
                    for record_type in reversed(list(_RECORDS.values())):
                        await session.execute(sql_delete(record_type))
        logger.info("Entity store cleared")


__all__ = ["EntityStore", "EntityNotFoundError", "SqlAlchemyEntityStore"]
