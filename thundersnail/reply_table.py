"""Open-addressing table that maps hash-table replies to dense ids starting at 1."""

from __future__ import annotations

from typing import Optional

from .base import Reply, TupleId, reply_type
from .hashing import hash64_2

_MASK64 = 0xFFFF_FFFF_FFFF_FFFF
_MAX_CAPACITY_REQUEST = 1 << 30


def reply_hash(key: Reply) -> int:
    """64-bit hash of a reply, mixing its kind with its value."""
    kind = reply_type(key)
    result = hash64_2(int(kind))
    if isinstance(key, TupleId):
        result ^= hash64_2(key.table_id & _MASK64) ^ hash64_2(key.tuple_addr)
    else:
        result ^= hash64_2(key.r_ptr.to_i64())
    return result


def _round_up_to_power2(x: int) -> int:
    """Smallest power of two strictly greater than ``x``."""
    if x >= _MAX_CAPACITY_REQUEST:
        raise OverflowError(f"capacity too large: {x}")
    return 1 << x.bit_length()


class ReplyIdTable:
    """Gives each distinct reply a unique id, counting up from 1 in insertion order."""

    def __init__(self) -> None:
        self.capacity = 0
        self.count = 0
        self._slots: list[Optional[tuple[Reply, int]]] = []

    def __len__(self) -> int:
        return self.count

    def soft_reset(self) -> None:
        """Forget every id while keeping the allocated capacity."""
        self.count = 0
        self._slots = [None] * self.capacity

    def expand_and_soft_reset(self, capacity: int) -> None:
        """Make room for at least ``capacity`` entries and forget every id."""
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        if self.capacity >= capacity:
            self.soft_reset()
            return
        self.capacity = _round_up_to_power2(capacity)
        self.soft_reset()

    def get_id(self, key: Reply) -> int:
        """Return the id of ``key``, assigning the next one if it is new."""
        reply_type(key)
        if self.capacity == 0:
            raise RuntimeError("table has no capacity; expand it first")
        if self.count >= self.capacity:
            raise RuntimeError("table is full")
        mask = self.capacity - 1
        first = reply_hash(key) & mask
        for step in range(self.capacity):
            slot = (first + step) & mask
            entry = self._slots[slot]
            if entry is None:
                self.count += 1
                self._slots[slot] = (key, self.count)
                return self.count
            stored_key, stored_id = entry
            if stored_key == key:
                return stored_id
        raise RuntimeError("table is full")