"""Core identifiers: remote pointers, tuple ids, hash-table replies and max links."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Union

UINT32_MAX = 0xFFFF_FFFF
UINT64_MAX = 0xFFFF_FFFF_FFFF_FFFF
INT32_MIN = -(1 << 31)
INT32_MAX = (1 << 31) - 1

REMOTE_PTR_SIZE = 8
TUPLE_ID_SIZE = 16
HASH_ADDR_SIZE = 8
MAX_LINK_ADDR_SIZE = 8
MAX_LINK_HEADER_SIZE = 8


def _check_range(name: str, value: int, low: int, high: int) -> None:
    if not low <= value <= high:
        raise ValueError(f"{name} out of range: {value}")


@dataclass(frozen=True, slots=True)
class RemotePtr:
    """A pointer into the memory of one processing unit."""

    dpu_id: int
    dpu_addr: int

    def __post_init__(self) -> None:
        _check_range("dpu_id", self.dpu_id, 0, UINT32_MAX)
        _check_range("dpu_addr", self.dpu_addr, 0, UINT32_MAX)

    def to_i64(self) -> int:
        """Pack into one 64-bit integer: id in the low half, address in the high half."""
        return self.dpu_id | (self.dpu_addr << 32)

    @classmethod
    def from_i64(cls, value: int) -> RemotePtr:
        _check_range("value", value, 0, UINT64_MAX)
        return cls(value & UINT32_MAX, value >> 32)

    def is_invalid(self) -> bool:
        return self == INVALID_REMOTE_PTR

    def __str__(self) -> str:
        return f"(RemotePtrT){{.dpuId = {self.dpu_id:x}\t, .dpuAddr = {self.dpu_addr:x}}}"


INVALID_REMOTE_PTR = RemotePtr(UINT32_MAX, UINT32_MAX)


@dataclass(frozen=True, slots=True)
class HashAddr:
    """Address of an entry in a remote hash index."""

    r_ptr: RemotePtr

    def __str__(self) -> str:
        return f"HashAddrT.rPtr = {self.r_ptr}"


@dataclass(frozen=True, slots=True)
class MaxLinkAddr:
    """Address of a stored max link."""

    r_ptr: RemotePtr

    def __str__(self) -> str:
        return f"MaxLinkAddrT.rPtr = {self.r_ptr}"


@dataclass(frozen=True, slots=True)
class TupleId:
    """A tuple identified by its table and its address."""

    table_id: int
    tuple_addr: int

    def __post_init__(self) -> None:
        _check_range("table_id", self.table_id, INT32_MIN, INT32_MAX)
        _check_range("tuple_addr", self.tuple_addr, 0, UINT64_MAX)

    def __str__(self) -> str:
        return f"(TupleIdT){{.tableId = {self.table_id}\t, .tupleAddr = {self.tuple_addr:x}}}"


class ReplyType(enum.IntEnum):
    """Kind of value a get-or-insert on the hash index answers with."""

    TUPLE_ID = 0
    MAX_LINK_ADDR = 1
    HASH_ADDR = 2


Reply = Union[TupleId, MaxLinkAddr, HashAddr]


def reply_type(reply: Reply) -> ReplyType:
    """Return the kind of a reply value."""
    if isinstance(reply, TupleId):
        return ReplyType.TUPLE_ID
    if isinstance(reply, MaxLinkAddr):
        return ReplyType.MAX_LINK_ADDR
    if isinstance(reply, HashAddr):
        return ReplyType.HASH_ADDR
    raise TypeError(f"not a hash table reply: {reply!r}")


def max_link_size(tuple_id_count: int, hash_addr_count: int) -> int:
    """Encoded size in bytes of a max link with the given counts."""
    if tuple_id_count < 0 or hash_addr_count < 0:
        raise ValueError("counts must not be negative")
    return (
        MAX_LINK_HEADER_SIZE
        + tuple_id_count * TUPLE_ID_SIZE
        + hash_addr_count * HASH_ADDR_SIZE
    )


@dataclass
class MaxLink:
    """A set of joined tuples together with the hash entries that point to them."""

    tuple_ids: list[TupleId] = field(default_factory=list)
    hash_addrs: list[HashAddr] = field(default_factory=list)

    @property
    def size(self) -> int:
        return max_link_size(len(self.tuple_ids), len(self.hash_addrs))