from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Literal, Optional, Tuple

from .hashing import BuiltinHasher, KeyHasher
from .slots import Slot
from .storage import DEFAULT_SCHEDULE, PrimeSchedule, SlotStorage

logger = logging.getLogger("probetable")

# Linear probing degrades sharply past half occupancy.
REHASH_LOAD_FACTOR: float = 0.5
DEFAULT_INITIAL_CAPACITY: int = 7
DEFAULT_LARGE_TABLE_WARN: int = 1_000_000

PutOutcome = Literal["insert", "reuse-tombstone", "update", "exhausted"]


@dataclass(frozen=True, slots=True)
class Lookup:
    """Result of :meth:`LinearProbingMap.get`; falsy when the key is absent."""

    found: bool
    value: Any = None

    def __bool__(self) -> bool:
        return self.found

    def value_or(self, default: Any) -> Any:
        return self.value if self.found else default

    def unwrap(self) -> Any:
        if not self.found:
            raise KeyError("key not present")
        return self.value


MISSING = Lookup(False)


class LinearProbingMap:
    """Open-addressing hash map with linear probing, tombstones, and prime-sized growth.

    Every walk starts at ``hasher.bucket(key, capacity)`` and steps one slot at a
    time, wrapping, for at most one lap. Virgin slots end a walk; tombstones do
    not. Before a ``put`` fills a new slot the table grows to the next scheduled
    prime when the prospective size would exceed ``max_load_factor * capacity``.
    """

    __slots__ = (
        "_hasher",
        "_schedule",
        "_max_lf",
        "_large_warn",
        "_prime_index",
        "_storage",
        "_size",
        "_tombstones",
        "_resizes",
    )

    def __init__(
        self,
        hasher: Optional[KeyHasher] = None,
        initial_capacity: int = DEFAULT_INITIAL_CAPACITY,
        *,
        schedule: Optional[PrimeSchedule] = None,
        max_load_factor: float = REHASH_LOAD_FACTOR,
        large_table_warn_threshold: int = DEFAULT_LARGE_TABLE_WARN,
    ) -> None:
        if initial_capacity < 1:
            raise ValueError("initial_capacity must be >= 1")
        if not 0.0 < max_load_factor < 1.0:
            raise ValueError("max_load_factor must be in (0, 1)")
        self._hasher: KeyHasher = hasher if hasher is not None else BuiltinHasher()
        self._schedule = schedule if schedule is not None else DEFAULT_SCHEDULE
        self._max_lf = max_load_factor
        self._large_warn = large_table_warn_threshold
        self._prime_index = self._schedule.index_for(initial_capacity)
        capacity = self._schedule.capacity_at(self._prime_index)
        if capacity != initial_capacity:
            logger.warning(
                "Rounded initial capacity from %d to %d (next scheduled prime)",
                initial_capacity,
                capacity,
            )
        self._storage = SlotStorage.allocate(capacity)
        self._size = 0
        self._tombstones = 0
        self._resizes = 0

    def __len__(self) -> int:
        return self._size

    def __contains__(self, key: Any) -> bool:
        return self.contains(key)

    @property
    def capacity(self) -> int:
        return len(self._storage)

    @property
    def prime_index(self) -> int:
        return self._prime_index

    @property
    def hasher(self) -> KeyHasher:
        return self._hasher

    @property
    def schedule(self) -> PrimeSchedule:
        return self._schedule

    @property
    def max_load_factor(self) -> float:
        return self._max_lf

    @property
    def resize_count(self) -> int:
        return self._resizes

    def size(self) -> int:
        return self._size

    def is_empty(self) -> bool:
        return self._size == 0

    def load_factor(self) -> float:
        return self._size / self.capacity

    def tombstone_count(self) -> int:
        return self._tombstones

    def tombstone_ratio(self) -> float:
        return self._tombstones / self.capacity

    # ------------------------------------------------------------------
    # Probe walks
    # ------------------------------------------------------------------
    def _probe(self, storage: SlotStorage, key: Any) -> Iterator[Tuple[int, Slot]]:
        cap = len(storage)
        idx = self._hasher.bucket(key, cap)
        for _ in range(cap):
            yield idx, storage[idx]
            idx = (idx + 1) % cap

    def _find(self, key: Any) -> Optional[Slot]:
        for _, slot in self._probe(self._storage, key):
            if slot.is_virgin:
                return None
            if slot.is_occupied and slot.key == key:
                return slot
        return None

    def _place(self, storage: SlotStorage, key: Any, value: Any) -> PutOutcome:
        # A live copy past a tombstone is updated, never duplicated.
        reuse: Optional[Slot] = None
        virgin: Optional[Slot] = None
        for _, slot in self._probe(storage, key):
            if slot.is_virgin:
                virgin = slot
                break
            if slot.is_tombstone:
                if reuse is None:
                    reuse = slot
                continue
            if slot.key == key:
                slot.value = value
                return "update"
        if reuse is not None:
            reuse.fill(key, value)
            return "reuse-tombstone"
        if virgin is not None:
            virgin.fill(key, value)
            return "insert"
        return "exhausted"

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------
    def put(self, key: Any, value: Any) -> PutOutcome:
        live = self._find(key)
        if live is not None:
            # Updates never grow the table.
            live.value = value
            return "update"
        self.resize_check()
        outcome = self._place(self._storage, key, value)
        if outcome == "insert":
            self._size += 1
        elif outcome == "reuse-tombstone":
            self._size += 1
            self._tombstones -= 1
        elif outcome == "exhausted":
            logger.warning(
                "Probe run exhausted for key %r (size=%d, capacity=%d); insert skipped",
                key,
                self._size,
                self.capacity,
            )
        return outcome

    def get(self, key: Any) -> Lookup:
        slot = self._find(key)
        if slot is None:
            return MISSING
        return Lookup(True, slot.value)

    def contains(self, key: Any) -> bool:
        return self._find(key) is not None

    def delete(self, key: Any) -> bool:
        for _, slot in self._probe(self._storage, key):
            if slot.is_virgin:
                return False
            if slot.is_occupied and slot.key == key:
                slot.vacate()
                self._size -= 1
                self._tombstones += 1
                return True
        return False

    def items(self) -> Iterator[Tuple[Any, Any]]:
        for slot in self._storage:
            if slot.is_occupied:
                yield slot.key, slot.value

    def keys(self) -> Iterator[Any]:
        for key, _ in self.items():
            yield key

    def values(self) -> Iterator[Any]:
        for _, value in self.items():
            yield value

    # ------------------------------------------------------------------
    # Growth
    # ------------------------------------------------------------------
    def needs_resize(self, incoming: int = 1) -> bool:
        return self._size + incoming > self._max_lf * self.capacity

    def resize_check(self, incoming: int = 1) -> bool:
        """Grow to the first scheduled prime that keeps the load bound; return True if grown."""
        if not self.needs_resize(incoming):
            return False
        needed = self._size + incoming
        target = self._prime_index
        while True:
            target += 1
            # Raises CapacityExhaustedError before any state changes.
            capacity = self._schedule.capacity_at(target)
            if needed <= self._max_lf * capacity:
                break
        self._rehash(target)
        self._resizes += 1
        if self._large_warn and self._size >= self._large_warn:
            logger.warning("Large table resized (size=%d, capacity=%d)", self._size, capacity)
        return True

    def compact(self) -> None:
        """Rebuild at the current capacity, dropping every tombstone."""
        self._rehash(self._prime_index)

    def _rehash(self, prime_index: int) -> None:
        capacity = self._schedule.capacity_at(prime_index)
        old = self._storage
        fresh = SlotStorage.allocate(capacity)
        for slot in old:
            if slot.is_occupied:
                self._place(fresh, slot.key, slot.value)
        dropped = self._tombstones
        self._storage = fresh
        self._prime_index = prime_index
        self._tombstones = 0
        logger.debug(
            "Rehashed %d live entries from %d to %d buckets (dropped %d tombstones)",
            self._size,
            len(old),
            capacity,
            dropped,
        )

    # ------------------------------------------------------------------
    # Copy & diagnostics
    # ------------------------------------------------------------------
    def copy(self) -> "LinearProbingMap":
        """Independent copy with its own slot records; keys and values are shared."""
        other = object.__new__(type(self))
        other._hasher = self._hasher
        other._schedule = self._schedule
        other._max_lf = self._max_lf
        other._large_warn = self._large_warn
        other._prime_index = self._prime_index
        other._storage = self._storage.clone()
        other._size = self._size
        other._tombstones = self._tombstones
        other._resizes = self._resizes
        return other

    __copy__ = copy

    def probe_distance(self, index: int) -> Optional[int]:
        """Distance of the live entry at ``index`` from its start bucket, or None."""
        slot = self._storage[index]
        if not slot.is_occupied:
            return None
        ideal = self._hasher.bucket(slot.key, self.capacity)
        return (index - ideal) % self.capacity

    def avg_probe_distance(self) -> float:
        if self._size == 0:
            return 0.0
        total = 0
        for idx in range(self.capacity):
            dist = self.probe_distance(idx)
            if dist is not None:
                total += dist
        return total / self._size

    def dump_lines(self) -> List[str]:
        lines = [
            f" Dumping hash with {self._size} items in {self.capacity} buckets",
            "[X] Key | Value | State",
        ]
        for idx, slot in enumerate(self._storage):
            lines.append(f"[{idx}] {slot.key!r} | {slot.value!r} | {slot.state.value}")
        return lines

    def print_out(self, print_fn: Callable[[str], None] = print) -> None:
        for line in self.dump_lines():
            print_fn(line)

    def stats(self) -> Dict[str, Any]:
        return {
            "size": self._size,
            "capacity": self.capacity,
            "prime_index": self._prime_index,
            "load_factor": self.load_factor(),
            "max_load_factor": self._max_lf,
            "tombstones": self._tombstones,
            "tombstone_ratio": self.tombstone_ratio(),
            "resizes": self._resizes,
            "avg_probe_distance": self.avg_probe_distance(),
            "hasher": self._hasher.name,
        }


def collect_probe_histogram(m: LinearProbingMap) -> List[List[int]]:
    histogram: Dict[int, int] = defaultdict(int)
    for idx in range(m.capacity):
        dist = m.probe_distance(idx)
        if dist is not None:
            histogram[dist] += 1
    return [[distance, count] for distance, count in sorted(histogram.items())]


__all__ = [
    "DEFAULT_INITIAL_CAPACITY",
    "DEFAULT_LARGE_TABLE_WARN",
    "LinearProbingMap",
    "Lookup",
    "MISSING",
    "PutOutcome",
    "REHASH_LOAD_FACTOR",
    "collect_probe_histogram",
]
