"""Key hashers: map a key to a start bucket for a given capacity."""

from __future__ import annotations

from typing import Any, Callable, Dict, Protocol, runtime_checkable

from probetable.contracts.error import InvariantError

_HASH_GOLDEN_64: int = 0x9E3779B97F4A7C15
_MASK_64: int = (1 << 64) - 1


@runtime_checkable
class KeyHasher(Protocol):
    """Deterministic ``key -> bucket`` mapping; recomputed after every resize."""

    name: str

    def bucket(self, key: Any, capacity: int) -> int: ...


class BuiltinHasher:
    name = "builtin"

    def bucket(self, key: Any, capacity: int) -> int:
        return hash(key) % capacity


class GoldenRatioHasher:
    """Fibonacci-style mix of ``hash(key)`` before reducing modulo the capacity."""

    name = "golden"

    def bucket(self, key: Any, capacity: int) -> int:
        x = (hash(key) * _HASH_GOLDEN_64) & _MASK_64
        x ^= x >> 29
        return x % capacity


class FunctionHasher:
    """Adapt a plain ``fn(key, capacity) -> int`` callable, checking its range."""

    def __init__(self, fn: Callable[[Any, int], int], name: str = "function") -> None:
        self._fn = fn
        self.name = name

    def bucket(self, key: Any, capacity: int) -> int:
        idx = self._fn(key, capacity)
        if not 0 <= idx < capacity:
            raise InvariantError(f"hasher {self.name!r} returned bucket {idx} for capacity {capacity}")
        return idx


HASHERS: Dict[str, Callable[[], KeyHasher]] = {
    BuiltinHasher.name: BuiltinHasher,
    GoldenRatioHasher.name: GoldenRatioHasher,
}


def resolve_hasher(name: str) -> KeyHasher:
    try:
        factory = HASHERS[name]
    except KeyError:
        raise ValueError(f"unknown hasher: {name}") from None
    return factory()


__all__ = [
    "BuiltinHasher",
    "FunctionHasher",
    "GoldenRatioHasher",
    "HASHERS",
    "KeyHasher",
    "resolve_hasher",
]
