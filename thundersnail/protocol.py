"""Wire format of task buffers exchanged between the host and processing units."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field
from typing import ClassVar, Union

from .base import (
    HASH_ADDR_SIZE,
    TUPLE_ID_SIZE,
    HashAddr,
    MaxLink,
    MaxLinkAddr,
    RemotePtr,
    Reply,
    ReplyType,
    TupleId,
    reply_type,
)


class TaskType(enum.IntEnum):
    """Task kinds: requests sent to a unit and the responses it returns."""

    SET_DPU_ID_REQ = 0
    CREATE_INDEX_REQ = 1
    GET_OR_INSERT_REQ = 2
    GET_POINTER_REQ = 3
    UPDATE_POINTER_REQ = 4
    GET_MAX_LINK_SIZE_REQ = 5
    FETCH_MAX_LINK_REQ = 6
    MERGE_MAX_LINK_REQ = 7
    NEW_MAX_LINK_REQ = 14
    NEW_MAX_LINK_RESP = 15
    EMPTY_RESP = 128
    GET_OR_INSERT_RESP = 129
    GET_POINTER_RESP = 130
    UPDATE_POINTER_RESP = 131
    GET_MAX_LINK_SIZE_RESP = 132
    FETCH_MAX_LINK_RESP = 133
    MERGE_MAX_LINK_RESP = 134


CPU_BUFFER_HEAD_LEN = 8
DPU_BUFFER_HEAD_LEN = 8
BLOCK_HEAD_LEN = 8
OFFSET_SIZE = 4
BATCH_SIZE = 320
NUM_BLOCKS = 8
BUFFER_LEN = 65535

_HEADER = struct.Struct("<BxHI")
_TUPLE_ID = struct.Struct("<iIQ")
_PTR = struct.Struct("<II")
_COUNTS = struct.Struct("<ii")


def round_up_to_8(x: int) -> int:
    """Round ``x`` up to a multiple of 8."""
    return (x + 7) & ~7


def is_var_len_task(task_type: int) -> bool:
    """Whether blocks of this task type carry per-task offsets."""
    return task_type in (
        TaskType.GET_OR_INSERT_REQ,
        TaskType.GET_POINTER_REQ,
        TaskType.MERGE_MAX_LINK_REQ,
    )


@dataclass(frozen=True)
class BlockHeader:
    """Header at the start of every block."""

    task_type: int
    task_count: int = 0
    total_size: int = BLOCK_HEAD_LEN

    def pack(self) -> bytes:
        try:
            return _HEADER.pack(self.task_type, self.task_count, self.total_size)
        except struct.error as exc:
            raise ValueError(str(exc)) from exc

    @classmethod
    def unpack(cls, data: bytes) -> BlockHeader:
        if len(data) < _HEADER.size:
            raise ValueError("data shorter than a block header")
        return cls(*_HEADER.unpack_from(data, 0))


@dataclass(frozen=True)
class BufferHeader:
    """Header of a whole buffer; ``state`` is the epoch or the buffer state."""

    state: int
    block_count: int = 0
    total_size: int = CPU_BUFFER_HEAD_LEN

    def pack(self) -> bytes:
        try:
            return _HEADER.pack(self.state, self.block_count, self.total_size)
        except struct.error as exc:
            raise ValueError(str(exc)) from exc

    @classmethod
    def unpack(cls, data: bytes) -> BufferHeader:
        if len(data) < _HEADER.size:
            raise ValueError("data shorter than a buffer header")
        return cls(*_HEADER.unpack_from(data, 0))


def _pack_ptr(ptr: RemotePtr) -> bytes:
    return _PTR.pack(ptr.dpu_id, ptr.dpu_addr)


def _unpack_ptr(data, offset: int) -> RemotePtr:
    return RemotePtr(*_PTR.unpack_from(data, offset))


def _max_link_payload(max_link: MaxLink) -> int:
    return len(max_link.tuple_ids) * TUPLE_ID_SIZE + len(max_link.hash_addrs) * HASH_ADDR_SIZE


def _raw_max_link_payload(data, offset: int) -> int:
    tuples, hashes = _COUNTS.unpack_from(data, offset)
    if tuples < 0 or hashes < 0:
        raise ValueError("negative count in max link")
    return tuples * TUPLE_ID_SIZE + hashes * HASH_ADDR_SIZE


def _pack_max_link(max_link: MaxLink) -> bytes:
    parts = [_COUNTS.pack(len(max_link.tuple_ids), len(max_link.hash_addrs))]
    parts.extend(_TUPLE_ID.pack(t.table_id, 0, t.tuple_addr) for t in max_link.tuple_ids)
    parts.extend(_pack_ptr(h.r_ptr) for h in max_link.hash_addrs)
    return b"".join(parts)


def _unpack_max_link(data, offset: int) -> MaxLink:
    tuples, hashes = _COUNTS.unpack_from(data, offset)
    offset += _COUNTS.size
    tuple_ids = []
    for _ in range(tuples):
        table_id, _pad, addr = _TUPLE_ID.unpack_from(data, offset)
        tuple_ids.append(TupleId(table_id, addr))
        offset += _TUPLE_ID.size
    hash_addrs = []
    for _ in range(hashes):
        hash_addrs.append(HashAddr(_unpack_ptr(data, offset)))
        offset += _PTR.size
    return MaxLink(tuple_ids, hash_addrs)


def _check_key(key: bytes) -> None:
    if len(key) > 0xFF:
        raise ValueError(f"key longer than 255 bytes: {len(key)}")


@dataclass(frozen=True)
class SetDpuIdReq:
    dpu_id: int
    task_type: ClassVar[TaskType] = TaskType.SET_DPU_ID_REQ
    _FMT: ClassVar[struct.Struct] = struct.Struct("<B3xI")

    def _size(self) -> int:
        return self._FMT.size

    @classmethod
    def _wire_size(cls, data) -> int:
        return cls._FMT.size

    def _pack(self) -> bytes:
        return self._FMT.pack(self.task_type, self.dpu_id)

    @classmethod
    def _unpack(cls, data) -> SetDpuIdReq:
        return cls(cls._FMT.unpack_from(data, 0)[1])


@dataclass(frozen=True)
class CreateIndexReq:
    hash_table_id: int
    task_type: ClassVar[TaskType] = TaskType.CREATE_INDEX_REQ
    _FMT: ClassVar[struct.Struct] = struct.Struct("<B3xI")

    def _size(self) -> int:
        return self._FMT.size

    @classmethod
    def _wire_size(cls, data) -> int:
        return cls._FMT.size

    def _pack(self) -> bytes:
        return self._FMT.pack(self.task_type, self.hash_table_id)

    @classmethod
    def _unpack(cls, data) -> CreateIndexReq:
        return cls(cls._FMT.unpack_from(data, 0)[1])


@dataclass(frozen=True)
class GetOrInsertReq:
    key: bytes
    tid: TupleId
    hash_table_id: int
    task_type: ClassVar[TaskType] = TaskType.GET_OR_INSERT_REQ
    _FMT: ClassVar[struct.Struct] = struct.Struct("<BB6xiIQI")
    _BASE: ClassVar[int] = 32

    def _size(self) -> int:
        _check_key(self.key)
        return round_up_to_8(len(self.key)) + self._BASE

    @classmethod
    def _wire_size(cls, data) -> int:
        return round_up_to_8(data[1]) + cls._BASE

    def _pack(self) -> bytes:
        _check_key(self.key)
        head = self._FMT.pack(
            self.task_type, len(self.key), self.tid.table_id, 0,
            self.tid.tuple_addr, self.hash_table_id,
        )
        return head + bytes(self.key)

    @classmethod
    def _unpack(cls, data) -> GetOrInsertReq:
        _t, length, table_id, _p, addr, htid = cls._FMT.unpack_from(data, 0)
        start = cls._FMT.size
        return cls(bytes(data[start : start + length]), TupleId(table_id, addr), htid)


@dataclass(frozen=True)
class GetPointerReq:
    key: bytes
    hash_table_id: int
    task_type: ClassVar[TaskType] = TaskType.GET_POINTER_REQ
    _FMT: ClassVar[struct.Struct] = struct.Struct("<BBxxI")

    def _size(self) -> int:
        _check_key(self.key)
        return round_up_to_8(len(self.key)) + self._FMT.size

    @classmethod
    def _wire_size(cls, data) -> int:
        return round_up_to_8(data[1]) + cls._FMT.size

    def _pack(self) -> bytes:
        _check_key(self.key)
        return self._FMT.pack(self.task_type, len(self.key), self.hash_table_id) + bytes(self.key)

    @classmethod
    def _unpack(cls, data) -> GetPointerReq:
        _t, length, htid = cls._FMT.unpack_from(data, 0)
        start = cls._FMT.size
        return cls(bytes(data[start : start + length]), htid)


@dataclass(frozen=True)
class UpdatePointerReq:
    hash_entry: HashAddr
    max_link_addr: MaxLinkAddr
    task_type: ClassVar[TaskType] = TaskType.UPDATE_POINTER_REQ
    _SIZE: ClassVar[int] = 24

    def _size(self) -> int:
        return self._SIZE

    @classmethod
    def _wire_size(cls, data) -> int:
        return cls._SIZE

    def _pack(self) -> bytes:
        return (
            bytes([self.task_type, 0, 0, 0])
            + _pack_ptr(self.hash_entry.r_ptr)
            + _pack_ptr(self.max_link_addr.r_ptr)
        )

    @classmethod
    def _unpack(cls, data) -> UpdatePointerReq:
        return cls(HashAddr(_unpack_ptr(data, 4)), MaxLinkAddr(_unpack_ptr(data, 12)))


class _AddrTask:
    """Tasks made of a type byte and one max-link address."""

    _SIZE: ClassVar[int] = 16

    def _size(self) -> int:
        return self._SIZE

    @classmethod
    def _wire_size(cls, data) -> int:
        return cls._SIZE

    def _pack(self) -> bytes:
        return bytes([self.task_type, 0, 0, 0]) + _pack_ptr(self.max_link_addr.r_ptr)

    @classmethod
    def _unpack(cls, data):
        return cls(MaxLinkAddr(_unpack_ptr(data, 4)))


@dataclass(frozen=True)
class GetMaxLinkSizeReq(_AddrTask):
    max_link_addr: MaxLinkAddr
    task_type: ClassVar[TaskType] = TaskType.GET_MAX_LINK_SIZE_REQ


@dataclass(frozen=True)
class FetchMaxLinkReq(_AddrTask):
    max_link_addr: MaxLinkAddr
    task_type: ClassVar[TaskType] = TaskType.FETCH_MAX_LINK_REQ


@dataclass(frozen=True)
class GetPointerResp(_AddrTask):
    max_link_addr: MaxLinkAddr
    task_type: ClassVar[TaskType] = TaskType.GET_POINTER_RESP


@dataclass(frozen=True)
class MergeMaxLinkReq:
    ptr: RemotePtr
    max_link: MaxLink = field(default_factory=MaxLink)
    task_type: ClassVar[TaskType] = TaskType.MERGE_MAX_LINK_REQ
    _BASE: ClassVar[int] = 24

    def _size(self) -> int:
        return round_up_to_8(_max_link_payload(self.max_link) + self._BASE)

    @classmethod
    def _wire_size(cls, data) -> int:
        return round_up_to_8(_raw_max_link_payload(data, 12) + cls._BASE)

    def _pack(self) -> bytes:
        return bytes([self.task_type, 0, 0, 0]) + _pack_ptr(self.ptr) + _pack_max_link(self.max_link)

    @classmethod
    def _unpack(cls, data) -> MergeMaxLinkReq:
        return cls(_unpack_ptr(data, 4), _unpack_max_link(data, 12))


@dataclass(frozen=True)
class NewMaxLinkReq:
    max_link: MaxLink = field(default_factory=MaxLink)
    task_type: ClassVar[TaskType] = TaskType.NEW_MAX_LINK_REQ
    _BASE: ClassVar[int] = 16

    def _size(self) -> int:
        return round_up_to_8(_max_link_payload(self.max_link) + self._BASE)

    @classmethod
    def _wire_size(cls, data) -> int:
        return round_up_to_8(_raw_max_link_payload(data, 4) + cls._BASE)

    def _pack(self) -> bytes:
        return bytes([self.task_type, 0, 0, 0]) + _pack_max_link(self.max_link)

    @classmethod
    def _unpack(cls, data) -> NewMaxLinkReq:
        return cls(_unpack_max_link(data, 4))


@dataclass(frozen=True)
class FetchMaxLinkResp:
    max_link: MaxLink = field(default_factory=MaxLink)
    task_type: ClassVar[TaskType] = TaskType.FETCH_MAX_LINK_RESP
    _BASE: ClassVar[int] = 16

    def _size(self) -> int:
        return round_up_to_8(_max_link_payload(self.max_link)) + self._BASE

    @classmethod
    def _wire_size(cls, data) -> int:
        return round_up_to_8(_raw_max_link_payload(data, 4)) + cls._BASE

    def _pack(self) -> bytes:
        return bytes([self.task_type, 0, 0, 0]) + _pack_max_link(self.max_link)

    @classmethod
    def _unpack(cls, data) -> FetchMaxLinkResp:
        return cls(_unpack_max_link(data, 4))


@dataclass(frozen=True)
class NewMaxLinkResp:
    ptr: RemotePtr
    task_type: ClassVar[TaskType] = TaskType.NEW_MAX_LINK_RESP
    _SIZE: ClassVar[int] = 16

    def _size(self) -> int:
        return self._SIZE

    @classmethod
    def _wire_size(cls, data) -> int:
        return cls._SIZE

    def _pack(self) -> bytes:
        return bytes([self.task_type, 0, 0, 0]) + _pack_ptr(self.ptr)

    @classmethod
    def _unpack(cls, data) -> NewMaxLinkResp:
        return cls(_unpack_ptr(data, 4))


@dataclass(frozen=True)
class GetOrInsertResp:
    reply: Reply
    task_type: ClassVar[TaskType] = TaskType.GET_OR_INSERT_RESP
    _SIZE: ClassVar[int] = 32

    def _size(self) -> int:
        return self._SIZE

    @classmethod
    def _wire_size(cls, data) -> int:
        return cls._SIZE

    def _pack(self) -> bytes:
        kind = reply_type(self.reply)
        head = struct.pack("<B7xI4x", self.task_type, kind)
        if isinstance(self.reply, TupleId):
            value = _TUPLE_ID.pack(self.reply.table_id, 0, self.reply.tuple_addr)
        else:
            value = _pack_ptr(self.reply.r_ptr) + bytes(8)
        return head + value

    @classmethod
    def _unpack(cls, data) -> GetOrInsertResp:
        kind = ReplyType(struct.unpack_from("<I", data, 8)[0])
        if kind is ReplyType.TUPLE_ID:
            table_id, _p, addr = _TUPLE_ID.unpack_from(data, 16)
            return cls(TupleId(table_id, addr))
        ptr = _unpack_ptr(data, 16)
        if kind is ReplyType.MAX_LINK_ADDR:
            return cls(MaxLinkAddr(ptr))
        return cls(HashAddr(ptr))


@dataclass(frozen=True)
class GetMaxLinkSizeResp:
    max_link_size: int
    task_type: ClassVar[TaskType] = TaskType.GET_MAX_LINK_SIZE_RESP
    _SIZE: ClassVar[int] = 8

    def _size(self) -> int:
        return self._SIZE

    @classmethod
    def _wire_size(cls, data) -> int:
        return cls._SIZE

    def _pack(self) -> bytes:
        return struct.pack("<BB", self.task_type, self.max_link_size)

    @classmethod
    def _unpack(cls, data) -> GetMaxLinkSizeResp:
        return cls(data[1])


Task = Union[
    SetDpuIdReq, CreateIndexReq, GetOrInsertReq, GetPointerReq, UpdatePointerReq,
    GetMaxLinkSizeReq, FetchMaxLinkReq, MergeMaxLinkReq, NewMaxLinkReq,
    NewMaxLinkResp, GetOrInsertResp, GetPointerResp, GetMaxLinkSizeResp,
    FetchMaxLinkResp,
]

_TASK_CLASSES = {
    cls.task_type: cls
    for cls in (
        SetDpuIdReq, CreateIndexReq, GetOrInsertReq, GetPointerReq, UpdatePointerReq,
        GetMaxLinkSizeReq, FetchMaxLinkReq, MergeMaxLinkReq, NewMaxLinkReq,
        NewMaxLinkResp, GetOrInsertResp, GetPointerResp, GetMaxLinkSizeResp,
        FetchMaxLinkResp,
    )
}


def _class_for(task_type: int):
    try:
        return _TASK_CLASSES[task_type]
    except KeyError:
        raise ValueError(f"unknown task type: {task_type}") from None


def task_size(task) -> int:
    """Encoded size of a task object, or of the encoded task at the start of ``task``."""
    if isinstance(task, (bytes, bytearray, memoryview)):
        if len(task) == 0:
            raise ValueError("empty task data")
        cls = _class_for(task[0])
        try:
            return cls._wire_size(task)
        except struct.error as exc:
            raise ValueError("task data truncated") from exc
    _class_for(getattr(task, "task_type", -1))
    return task._size()


def encode_task(task) -> bytes:
    """Encode a task, zero-padded to its full size."""
    size = task_size(task)
    try:
        body = task._pack()
    except struct.error as exc:
        raise ValueError(str(exc)) from exc
    return body.ljust(size, b"\0")


def decode_task(data):
    """Decode the task that starts at the beginning of ``data``."""
    size = task_size(data)
    if len(data) < size:
        raise ValueError("task data truncated")
    return _class_for(data[0])._unpack(bytes(data[:size]))