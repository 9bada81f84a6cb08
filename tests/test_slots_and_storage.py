from __future__ import annotations

import pytest

from probetable.contracts.error import CapacityExhaustedError, InvariantError
from probetable.core.slots import Slot, SlotState
from probetable.core.storage import PRIME_CAPACITIES, PrimeSchedule, SlotStorage


def test_slot_lifecycle() -> None:
    slot = Slot()
    assert slot.is_virgin and not slot.ever_occupied

    slot.fill("k", 1)
    assert slot.is_occupied and slot.ever_occupied
    assert (slot.key, slot.value) == ("k", 1)

    slot.vacate()
    assert slot.is_tombstone and slot.ever_occupied
    assert slot.key is None and slot.value is None

    slot.fill("other", 2)
    assert slot.state is SlotState.OCCUPIED
    assert slot.key == "other"


def test_slot_rejects_invalid_transitions() -> None:
    with pytest.raises(InvariantError):
        Slot().vacate()

    tomb = Slot()
    tomb.fill("k", 1)
    tomb.vacate()
    with pytest.raises(InvariantError):
        tomb.vacate()

    live = Slot()
    live.fill("k", 1)
    with pytest.raises(InvariantError):
        live.fill("different", 2)
    live.fill("k", 3)
    assert live.value == 3


def test_slot_clone_is_detached() -> None:
    slot = Slot()
    slot.fill("k", 1)
    twin = slot.clone()
    twin.vacate()
    assert slot.is_occupied
    assert twin.is_tombstone


def test_prime_capacities_are_ascending_and_start_at_seven() -> None:
    assert PRIME_CAPACITIES[0] == 7
    assert PRIME_CAPACITIES[1] == 17
    assert list(PRIME_CAPACITIES) == sorted(set(PRIME_CAPACITIES))
    # Each step at least doubles.
    assert all(b >= 2 * a for a, b in zip(PRIME_CAPACITIES, PRIME_CAPACITIES[1:]))


def test_prime_schedule_lookup() -> None:
    schedule = PrimeSchedule()
    assert schedule.capacity_at(0) == 7
    assert schedule.index_for(1) == 0
    assert schedule.index_for(7) == 0
    assert schedule.index_for(8) == 1
    assert schedule.index_for(17) == 1
    assert len(schedule) == len(PRIME_CAPACITIES)
    with pytest.raises(CapacityExhaustedError):
        schedule.capacity_at(schedule.max_index + 1)
    with pytest.raises(CapacityExhaustedError):
        schedule.index_for(PRIME_CAPACITIES[-1] + 1)
    with pytest.raises(ValueError):
        schedule.capacity_at(-1)


@pytest.mark.parametrize("primes", [(), (7, 7), (17, 7), (1, 3)])
def test_prime_schedule_validation(primes: tuple[int, ...]) -> None:
    with pytest.raises(ValueError):
        PrimeSchedule(primes)


def test_storage_allocates_virgin_slots() -> None:
    storage = SlotStorage.allocate(7)
    assert storage.capacity == len(storage) == 7
    assert all(slot.is_virgin for slot in storage)
    assert len({id(slot) for slot in storage}) == 7
    with pytest.raises(ValueError):
        SlotStorage.allocate(0)


def test_storage_clone_copies_every_slot() -> None:
    storage = SlotStorage.allocate(3)
    storage[1].fill("k", "v")
    clone = storage.clone()
    clone[1].vacate()
    clone[2].fill("x", "y")
    assert storage[1].is_occupied
    assert storage[2].is_virgin
