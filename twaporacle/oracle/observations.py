"""
Per-pair observation store for the cumulative-price oracle.

Each tracked pair owns an append-only sequence of
(price0_cumulative, price1_cumulative, block_timestamp) samples with
strictly increasing timestamps. Lookups binary-search the timestamps.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, NamedTuple, Optional, Tuple

from .math import lower_bound
from .sources import V2Pair


class Observation(NamedTuple):
    """A single cumulative-price sample."""
    price0_cumulative: int
    price1_cumulative: int
    block_timestamp: int


class ObservationStore:
    """Append-only, timestamp-ordered observation sequence."""

    def __init__(self) -> None:
        self._observations: List[Observation] = []
        self._timestamps: List[int] = []

    def __len__(self) -> int:
        return len(self._observations)

    def __getitem__(self, index: int) -> Observation:
        return self._observations[index]

    def __iter__(self) -> Iterator[Observation]:
        return iter(self._observations)

    @property
    def last(self) -> Optional[Observation]:
        if not self._observations:
            return None
        return self._observations[-1]

    def append(self, observation: Observation) -> bool:
        """
        Append *observation* if its timestamp is newer than the last one.

        Returns:
            True if stored, False if skipped (same or older timestamp).
        """
        if self._timestamps and observation.block_timestamp <= self._timestamps[-1]:
            return False
        self._observations.append(observation)
        self._timestamps.append(observation.block_timestamp)
        return True

    def index_at(self, target: int) -> int:
        """
        lower_bound(target) stepped back by one, i.e. the last sample older
        than *target*; index 0 when no sample is older.
        """
        if not self._observations:
            raise LookupError("Observation store is empty")
        index = lower_bound(self._timestamps, target)
        return index - 1 if index > 0 else 0

    def lookup(self, target: int) -> Tuple[int, Observation]:
        index = self.index_at(target)
        return index, self._observations[index]


@dataclass
class PairInfo:
    """A tracked pair: its contract, observations and reference count."""
    pair: V2Pair
    observations: ObservationStore = field(default_factory=ObservationStore)
    refs: int = 0

    @property
    def address(self) -> str:
        return self.pair.address

    @property
    def rounds(self) -> int:
        return len(self.observations)
