"""Persistence collaborators: entity store and mapping memory."""

from .batch import ImportBatch
from .mapping_memory import InMemoryMappingMemory, MappingMemory, MappingTemplate, SqlAlchemyMappingMemory
from .store import EntityNotFoundError, EntityStore, SqlAlchemyEntityStore

__all__ = [
    "EntityNotFoundError",
    "EntityStore",
    "ImportBatch",
    "InMemoryMappingMemory",
    "MappingMemory",
    "MappingTemplate",
    "SqlAlchemyEntityStore",
    "SqlAlchemyMappingMemory",
]
