"""Builds the buffer of response blocks that a unit hands back to the host."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .protocol import (
    BATCH_SIZE,
    BLOCK_HEAD_LEN,
    BUFFER_LEN,
    DPU_BUFFER_HEAD_LEN,
    NUM_BLOCKS,
    OFFSET_SIZE,
    BlockHeader,
    BufferHeader,
    TaskType,
    encode_task,
    is_var_len_task,
    round_up_to_8,
)

BUFFER_STATE_OK = 0

_APPENDABLE = frozenset(
    {
        TaskType.FETCH_MAX_LINK_RESP,
        TaskType.GET_OR_INSERT_RESP,
        TaskType.GET_POINTER_RESP,
        TaskType.GET_MAX_LINK_SIZE_RESP,
        TaskType.NEW_MAX_LINK_RESP,
    }
)


def _carries_offsets(task_type: int) -> bool:
    """Whether a block of this type records the offset of every task."""
    return is_var_len_task(task_type) or task_type == TaskType.FETCH_MAX_LINK_RESP


@dataclass
class _OpenBlock:
    start: int
    task_type: int
    var_len: bool
    task_count: int = 0
    total_size: int = BLOCK_HEAD_LEN
    task_offset: int = BLOCK_HEAD_LEN
    task_offsets: list[int] = field(default_factory=list)


class DpuBufferBuilder:
    """Lays out blocks of response tasks, their offsets and the buffer header.

    Fetch-max-link responses vary in length, so their blocks keep a table of
    task offsets; every other response has a fixed size.
    """

    def __init__(self, state: int = BUFFER_STATE_OK) -> None:
        if not 0 <= state <= 0xFF:
            raise ValueError(f"buffer state out of range: {state}")
        self.state = state
        self.total_size = DPU_BUFFER_HEAD_LEN
        self._buffer = bytearray(BUFFER_LEN)
        self._block_offsets: list[int] = []
        self._cur_block_offset = DPU_BUFFER_HEAD_LEN
        self._block: Optional[_OpenBlock] = None
        self._finished = False

    @property
    def block_count(self) -> int:
        return len(self._block_offsets)

    def _header(self) -> BufferHeader:
        return BufferHeader(self.state, self.block_count, self.total_size)

    def _write(self, pos: int, data: bytes) -> None:
        if pos + len(data) > BUFFER_LEN:
            raise OverflowError("buffer full")
        self._buffer[pos : pos + len(data)] = data

    def _check_open(self) -> None:
        if self._finished:
            raise RuntimeError("buffer already finished")

    def begin_block(self, task_type: int) -> None:
        """Start a new block whose tasks are of ``task_type``."""
        self._check_open()
        if self._block is not None:
            raise RuntimeError("a block is already open")
        if self.block_count >= NUM_BLOCKS:
            raise OverflowError(f"a buffer holds at most {NUM_BLOCKS} blocks")
        task_type = TaskType(task_type)
        self._block_offsets.append(self._cur_block_offset)
        self.total_size += OFFSET_SIZE + BLOCK_HEAD_LEN
        self._write(self._cur_block_offset, bytes([task_type]))
        self._block = _OpenBlock(
            self._cur_block_offset, task_type, _carries_offsets(task_type)
        )

    def append_task(self, task) -> None:
        """Append one encoded response to the open block."""
        self._check_open()
        block = self._block
        if block is None:
            raise RuntimeError("no block is open")
        if task.task_type not in _APPENDABLE:
            raise ValueError(f"task type cannot be sent to the host: {task.task_type}")
        task_var_len = task.task_type == TaskType.FETCH_MAX_LINK_RESP
        if task_var_len != block.var_len:
            raise ValueError(
                f"task type {task.task_type} does not fit a block of type {block.task_type}"
            )
        if block.var_len and block.task_count >= BATCH_SIZE:
            raise OverflowError(f"a block holds at most {BATCH_SIZE} tasks")
        data = encode_task(task)
        self._write(block.start + block.task_offset, data)
        extra = OFFSET_SIZE if block.var_len else 0
        if block.var_len:
            block.task_offsets.append(block.task_offset)
        block.task_count += 1
        block.task_offset += len(data)
        block.total_size += len(data) + extra
        self.total_size += len(data) + extra

    def end_block(self) -> None:
        """Close the open block, writing its offsets and header."""
        self._check_open()
        block = self._block
        if block is None:
            raise RuntimeError("no block is open")
        if block.var_len:
            offsets = b"".join(o.to_bytes(OFFSET_SIZE, "little") for o in block.task_offsets)
            self._write(block.start + block.total_size - len(offsets), offsets)
            padding = round_up_to_8(len(offsets)) - len(offsets)
            block.total_size += padding
            self.total_size += padding
        self._cur_block_offset += block.total_size
        self._write(
            block.start,
            BlockHeader(block.task_type, block.task_count, block.total_size).pack(),
        )
        self._write(0, self._header().pack())
        self._block = None

    def finish(self) -> bytes:
        """Write the block offsets and header; return the finished buffer."""
        self._check_open()
        if self._block is not None:
            raise RuntimeError("a block is still open")
        offsets = b"".join(o.to_bytes(OFFSET_SIZE, "little") for o in self._block_offsets)
        self._write(self.total_size - len(offsets), offsets)
        self.total_size = round_up_to_8(self.total_size)
        if self.total_size > BUFFER_LEN:
            raise OverflowError("buffer full")
        self._write(0, self._header().pack())
        self._finished = True
        return bytes(self._buffer[: self.total_size])