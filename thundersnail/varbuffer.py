"""Growable byte buffers and a buffer of variable-length records."""

from __future__ import annotations


class ExpandableBuffer:
    """A byte buffer that doubles past what is needed when it runs out of room.

    Growing allocates a fresh buffer, so views taken earlier stop tracking it.
    """

    def __init__(self) -> None:
        self.capacity = 0
        self.size = 0
        self.buffer = bytearray()

    def _expand(self, capacity: int) -> None:
        if self.capacity >= capacity:
            return
        grown = bytearray(capacity)
        grown[: self.capacity] = self.buffer[: self.capacity]
        self.buffer = grown
        self.capacity = capacity

    def append_placeholder(self, length: int) -> int:
        """Reserve ``length`` bytes at the end and return their offset."""
        if length <= 0:
            raise ValueError(f"length must be positive, got {length}")
        if self.size + length > self.capacity:
            self._expand((self.capacity + length) * 2)
        offset = self.size
        self.size += length
        return offset

    def append(self, data: bytes) -> int:
        """Copy ``data`` to the end and return its offset."""
        offset = self.append_placeholder(len(data))
        self.buffer[offset : offset + len(data)] = data
        return offset

    def soft_reset(self) -> None:
        """Drop all content; the next append allocates anew."""
        self.size = 0
        self.capacity = 0
        self.buffer = bytearray()


class VariableLengthStructBuffer:
    """Records of varying length stored back to back, addressed by index."""

    def __init__(self) -> None:
        self.data = ExpandableBuffer()
        self.offsets: list[int] = []

    def __len__(self) -> int:
        return len(self.offsets)

    def append_placeholder(self, length: int) -> int:
        """Reserve a record of ``length`` bytes and return its index."""
        if length <= 0:
            raise ValueError(f"length must be positive, got {length}")
        self.offsets.append(self.data.append_placeholder(length))
        return len(self.offsets) - 1

    def append(self, data: bytes) -> int:
        """Store a copy of ``data`` as a new record and return its index."""
        idx = self.append_placeholder(len(data))
        self.get(idx)[:] = data
        return idx

    def _check_index(self, idx: int) -> None:
        if not 0 <= idx < len(self.offsets):
            raise IndexError(f"record index out of range: {idx}")

    def get_size(self, idx: int) -> int:
        """Length in bytes of record ``idx``."""
        self._check_index(idx)
        if idx < len(self.offsets) - 1:
            return self.offsets[idx + 1] - self.offsets[idx]
        return self.data.size - self.offsets[idx]

    def get(self, idx: int) -> memoryview:
        """A writable view of record ``idx``."""
        size = self.get_size(idx)
        start = self.offsets[idx]
        return memoryview(self.data.buffer)[start : start + size]

    def soft_reset(self) -> None:
        """Remove every record."""
        self.offsets.clear()
        self.data.soft_reset()