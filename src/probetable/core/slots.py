from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from probetable.contracts.error import InvariantError


class SlotState(Enum):
    """Occupancy of one bucket.

    ``VIRGIN`` slots have never been written and are the only state that may end
    a failed search. ``TOMBSTONE`` slots held an entry that was deleted; probe
    walks step over them.
    """

    VIRGIN = "virgin"
    OCCUPIED = "occupied"
    TOMBSTONE = "tombstone"


@dataclass(slots=True)
class Slot:
    key: Any = None
    value: Any = None
    state: SlotState = SlotState.VIRGIN

    @property
    def is_occupied(self) -> bool:
        return self.state is SlotState.OCCUPIED

    @property
    def is_tombstone(self) -> bool:
        return self.state is SlotState.TOMBSTONE

    @property
    def is_virgin(self) -> bool:
        return self.state is SlotState.VIRGIN

    @property
    def ever_occupied(self) -> bool:
        return self.state is not SlotState.VIRGIN

    def fill(self, key: Any, value: Any) -> None:
        """Store a live entry; valid from virgin, tombstone, or an occupied slot with the same key."""
        if self.state is SlotState.OCCUPIED and self.key != key:
            raise InvariantError(f"slot already holds live key {self.key!r}")
        self.key = key
        self.value = value
        self.state = SlotState.OCCUPIED

    def vacate(self) -> None:
        """Turn a live slot into a tombstone."""
        if self.state is not SlotState.OCCUPIED:
            raise InvariantError(f"cannot vacate a {self.state.value} slot")
        self.key = None
        self.value = None
        self.state = SlotState.TOMBSTONE

    def clone(self) -> "Slot":
        return Slot(self.key, self.value, self.state)


__all__ = ["Slot", "SlotState"]
