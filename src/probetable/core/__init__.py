from .hashing import (
    HASHERS,
    BuiltinHasher,
    FunctionHasher,
    GoldenRatioHasher,
    KeyHasher,
    resolve_hasher,
)
from .maps import (
    DEFAULT_INITIAL_CAPACITY,
    MISSING,
    REHASH_LOAD_FACTOR,
    LinearProbingMap,
    Lookup,
    collect_probe_histogram,
)
from .slots import Slot, SlotState
from .storage import DEFAULT_SCHEDULE, PRIME_CAPACITIES, PrimeSchedule, SlotStorage

__all__ = [
    "BuiltinHasher",
    "DEFAULT_INITIAL_CAPACITY",
    "DEFAULT_SCHEDULE",
    "FunctionHasher",
    "GoldenRatioHasher",
    "HASHERS",
    "KeyHasher",
    "LinearProbingMap",
    "Lookup",
    "MISSING",
    "PRIME_CAPACITIES",
    "PrimeSchedule",
    "REHASH_LOAD_FACTOR",
    "Slot",
    "SlotState",
    "SlotStorage",
    "collect_probe_histogram",
    "resolve_hasher",
]
