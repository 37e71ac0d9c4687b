"""Per-signature memory of confirmed CSV column mappings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from app.db.session import Database
from app.models import CsvMappingTemplateRecord


@dataclass
class MappingTemplate:
    mapping: dict[str, str] = field(default_factory=dict)
    preferred_counterparty: str | None = None


class MappingMemory(Protocol):
    async def get(self, signature: str) -> MappingTemplate | None: ...

    async def put(self, signature: str, template: MappingTemplate) -> None: ...


class InMemoryMappingMemory:
    def __init__(self) -> None:
        self._templates: dict[str, MappingTemplate] = {}

    async def get(self, signature: str) -> MappingTemplate | None:
        return self._templates.get(signature)

    async def put(self, signature: str, template: MappingTemplate) -> None:
        self._templates[signature] = MappingTemplate(
            mapping=dict(template.mapping),
            preferred_counterparty=template.preferred_counterparty,
        )


class SqlAlchemyMappingMemory:
    """Templates stored in the ``csv_mapping_template`` table."""

    def __init__(self, database: Database):
        self._database = database

    async def get(self, signature: str) -> MappingTemplate | None:
        async with self._database.session() as session:
            record = await session.get(CsvMappingTemplateRecord, signature)
            if record is None:
                return None
            return MappingTemplate(
                mapping=dict(record.mapping or {}),
                preferred_counterparty=record.preferred_counterparty,
            )

    async def put(self, signature: str, template: MappingTemplate) -> None:
        async with self._database.session() as session:
            async with session.begin():
                record = await session.get(CsvMappingTemplateRecord, signature)
                if record is None:
                    record = CsvMappingTemplateRecord(signature=signature)
                    session.add(record)
                record.mapping = dict(template.mapping)
                record.preferred_counterparty = template.preferred_counterparty


__all__ = [
    "MappingTemplate",
    "MappingMemory",
    "InMemoryMappingMemory",
    "SqlAlchemyMappingMemory",
]
