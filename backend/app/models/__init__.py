"""Database model exports."""

from .ledger import AssetRecord, PlatformRecord, TransactionRecord
from .mapping import CsvMappingTemplateRecord
from .market import FxSnapshotRecord, PriceSnapshotRecord

__all__ = [
    "PlatformRecord",
    "AssetRecord",
    "TransactionRecord",
    "PriceSnapshotRecord",
    "FxSnapshotRecord",
    "CsvMappingTemplateRecord",
]
