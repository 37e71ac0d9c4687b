"""The unit of work written atomically by :meth:`EntityStore.write_batch`."""

from __future__ import annotations

from dataclasses import dataclass, field

from investment_tracker.models import Asset, FxSnapshot, Platform, PriceSnapshot, Transaction


@dataclass
class ImportBatch:
    platforms: list[Platform] = field(default_factory=list)
    assets: list[Asset] = field(default_factory=list)
    transactions: list[Transaction] = field(default_factory=list)
    prices: list[PriceSnapshot] = field(default_factory=list)
    fx_snapshots: list[FxSnapshot] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.platforms or self.assets or self.transactions or self.prices or self.fx_snapshots)


__all__ = ["ImportBatch"]
