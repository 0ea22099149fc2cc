"""New links: groups of tuple ids, max-link addresses and hash addresses found together."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from .base import HashAddr, MaxLinkAddr, RemotePtr, TupleId

MAXSIZE_HASH_TABLE_QUERY_BATCH = 24000
MAXSIZE_MAXLINK = 300

_HEADER = struct.Struct("<iiii")
_TUPLE_ID = struct.Struct("<iIQ")
_REMOTE_PTR = struct.Struct("<II")

NEW_LINK_HEADER_SIZE = _HEADER.size


def new_link_size(tuple_id_count: int, max_link_addr_count: int, hash_addr_count: int) -> int:
    """Encoded size in bytes of a new link with the given counts."""
    if min(tuple_id_count, max_link_addr_count, hash_addr_count) < 0:
        raise ValueError("counts must not be negative")
    return (
        _HEADER.size
        + _TUPLE_ID.size * tuple_id_count
        + _REMOTE_PTR.size * max_link_addr_count
        + _REMOTE_PTR.size * hash_addr_count
    )


@dataclass
class NewLink:
    """Tuple ids, max-link addresses and hash addresses that belong together."""

    tuple_ids: list[TupleId] = field(default_factory=list)
    max_link_addrs: list[MaxLinkAddr] = field(default_factory=list)
    hash_addrs: list[HashAddr] = field(default_factory=list)

    def size(self) -> int:
        return new_link_size(
            len(self.tuple_ids), len(self.max_link_addrs), len(self.hash_addrs)
        )

    def to_bytes(self) -> bytes:
        """Encode as header, then tuple ids, then max-link and hash addresses."""
        parts = [
            _HEADER.pack(
                len(self.tuple_ids), len(self.max_link_addrs), len(self.hash_addrs), 0
            )
        ]
        parts.extend(_TUPLE_ID.pack(t.table_id, 0, t.tuple_addr) for t in self.tuple_ids)
        parts.extend(
            _REMOTE_PTR.pack(a.r_ptr.dpu_id, a.r_ptr.dpu_addr)
            for a in (*self.max_link_addrs, *self.hash_addrs)
        )
        return b"".join(parts)

    @classmethod
    def from_bytes(cls, data: bytes) -> NewLink:
        """Decode a new link from the layout written by :meth:`to_bytes`."""
        if len(data) < _HEADER.size:
            raise ValueError("data shorter than a new link header")
        tuple_count, max_link_count, hash_count, _ = _HEADER.unpack_from(data, 0)
        if min(tuple_count, max_link_count, hash_count) < 0:
            raise ValueError("negative count in new link header")
        if len(data) < new_link_size(tuple_count, max_link_count, hash_count):
            raise ValueError("data shorter than the new link it describes")

        offset = _HEADER.size
        tuple_ids = []
        for _ in range(tuple_count):
            table_id, _, tuple_addr = _TUPLE_ID.unpack_from(data, offset)
            tuple_ids.append(TupleId(table_id, tuple_addr))
            offset += _TUPLE_ID.size

        def read_ptrs(count: int) -> list[RemotePtr]:
            nonlocal offset
            ptrs = []
            for _ in range(count):
                ptrs.append(RemotePtr(*_REMOTE_PTR.unpack_from(data, offset)))
                offset += _REMOTE_PTR.size
            return ptrs

        max_link_addrs = [MaxLinkAddr(p) for p in read_ptrs(max_link_count)]
        hash_addrs = [HashAddr(p) for p in read_ptrs(hash_count)]
        return cls(tuple_ids, max_link_addrs, hash_addrs)

    def describe(self) -> str:
        """A readable multi-line listing of the link's contents."""
        lines = [
            f"TupleIdCount = {len(self.tuple_ids)}",
            f"MaxLinkAddrCount = {len(self.max_link_addrs)}",
            f"HashAddrCount = {len(self.hash_addrs)}",
        ]
        lines.extend(str(t) for t in self.tuple_ids)
        lines.extend(str(a) for a in self.max_link_addrs)
        lines.extend(str(a) for a in self.hash_addrs)
        return "\n".join(lines)