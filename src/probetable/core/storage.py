"""Fixed-length slot storage and the prime capacity schedule it is sized from."""

from __future__ import annotations

import bisect
from typing import Iterator, List, Sequence, Tuple

from probetable.contracts.error import CapacityExhaustedError

from .slots import Slot

# Roughly doubling primes.
PRIME_CAPACITIES: Tuple[int, ...] = (
    7,
    17,
    37,
    79,
    163,
    331,
    673,
    1361,
    2729,
    5471,
    10949,
    21911,
    43853,
    87719,
    175447,
    350899,
    701819,
    1403641,
    2807303,
    5614657,
    11229331,
    22458671,
    44917381,
    89834777,
    179669557,
    359339171,
    718678369,
    1437356741,
)


class PrimeSchedule:
    """Ascending sequence of table capacities addressed by a capacity index."""

    __slots__ = ("_primes",)

    def __init__(self, primes: Sequence[int] = PRIME_CAPACITIES) -> None:
        if not primes:
            raise ValueError("prime schedule must not be empty")
        if any(p < 2 for p in primes):
            raise ValueError("prime schedule entries must be >= 2")
        if any(b <= a for a, b in zip(primes, primes[1:])):
            raise ValueError("prime schedule must be strictly ascending")
        self._primes: Tuple[int, ...] = tuple(primes)

    def __len__(self) -> int:
        return len(self._primes)

    def __iter__(self) -> Iterator[int]:
        return iter(self._primes)

    @property
    def max_index(self) -> int:
        return len(self._primes) - 1

    def capacity_at(self, index: int) -> int:
        if index < 0:
            raise ValueError("capacity index must be >= 0")
        if index > self.max_index:
            raise CapacityExhaustedError(
                f"capacity index {index} is past the end of the prime schedule "
                f"(largest capacity {self._primes[-1]})",
                hint="Supply a PrimeSchedule with larger primes.",
            )
        return self._primes[index]

    def index_for(self, minimum: int) -> int:
        """Return the first index whose capacity is at least ``minimum``."""
        idx = bisect.bisect_left(self._primes, minimum)
        if idx > self.max_index:
            raise CapacityExhaustedError(
                f"no scheduled capacity can hold {minimum} buckets "
                f"(largest capacity {self._primes[-1]})"
            )
        return idx


class SlotStorage:
    """Exclusively owned array of slots; allocated virgin, never resized in place."""

    __slots__ = ("_slots",)

    def __init__(self, slots: List[Slot]) -> None:
        self._slots = slots

    @classmethod
    def allocate(cls, capacity: int) -> "SlotStorage":
        if capacity < 1:
            raise ValueError("storage capacity must be >= 1")
        return cls([Slot() for _ in range(capacity)])

    def __len__(self) -> int:
        return len(self._slots)

    def __getitem__(self, index: int) -> Slot:
        return self._slots[index]

    def __iter__(self) -> Iterator[Slot]:
        return iter(self._slots)

    @property
    def capacity(self) -> int:
        return len(self._slots)

    def clone(self) -> "SlotStorage":
        return SlotStorage([slot.clone() for slot in self._slots])


DEFAULT_SCHEDULE = PrimeSchedule()

__all__ = ["DEFAULT_SCHEDULE", "PRIME_CAPACITIES", "PrimeSchedule", "SlotStorage"]
