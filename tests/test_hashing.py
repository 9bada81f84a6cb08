from __future__ import annotations

import pytest
from hypothesis import given, strategies as st

from probetable.contracts.error import InvariantError
from probetable.core.hashing import (
    BuiltinHasher,
    FunctionHasher,
    GoldenRatioHasher,
    KeyHasher,
    resolve_hasher,
)
from probetable.core.storage import PRIME_CAPACITIES


@given(
    key=st.one_of(st.integers(), st.text(max_size=12), st.tuples(st.integers(), st.booleans())),
    capacity=st.sampled_from(PRIME_CAPACITIES[:8]),
)
def test_builtin_hashers_stay_in_range(key: object, capacity: int) -> None:
    for hasher in (BuiltinHasher(), GoldenRatioHasher()):
        bucket = hasher.bucket(key, capacity)
        assert 0 <= bucket < capacity
        assert hasher.bucket(key, capacity) == bucket


def test_golden_hasher_spreads_sequential_ints() -> None:
    hasher = GoldenRatioHasher()
    buckets = {hasher.bucket(i, 37) for i in range(37)}
    assert len(buckets) > 15


def test_function_hasher_checks_range() -> None:
    hasher = FunctionHasher(lambda _key, capacity: capacity, name="broken")
    with pytest.raises(InvariantError, match="broken"):
        hasher.bucket("k", 7)


def test_resolve_hasher() -> None:
    assert isinstance(resolve_hasher("builtin"), BuiltinHasher)
    golden = resolve_hasher("golden")
    assert isinstance(golden, GoldenRatioHasher)
    assert isinstance(golden, KeyHasher)
    with pytest.raises(ValueError):
        resolve_hasher("md5")
