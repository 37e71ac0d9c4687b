"""Latest and as-of selection over dated observations."""
from __future__ import annotations

from datetime import datetime
from typing import Callable, Dict, Hashable, Iterable, List, Optional, Protocol, TypeVar


class Dated(Protocol):
    date: datetime


T = TypeVar("T", bound=Dated)
K = TypeVar("K", bound=Hashable)


def group_by(items: Iterable[T], key: Callable[[T], K]) -> Dict[K, List[T]]:
    """Group ``items`` by ``key`` preserving input order inside each group."""

    grouped: Dict[K, List[T]] = {}
    for item in items:
        grouped.setdefault(key(item), []).append(item)
    return grouped


def latest_observation(observations: Iterable[T]) -> Optional[T]:
    """Return the observation with the maximum date.

    Among several observations sharing the maximum date the first one in input
    order wins, so the result is stable for a fixed input order.
    """

    best: Optional[T] = None
    for observation in observations:
        if best is None or observation.date > best.date:
            best = observation
    return best


def observation_at(observations: Iterable[T], when: datetime) -> Optional[T]:
    """Return the latest observation dated on or before ``when``."""

    return latest_observation(obs for obs in observations if obs.date <= when)


__all__ = ["group_by", "latest_observation", "observation_at"]
