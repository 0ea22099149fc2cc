"""Decodes a buffer of request blocks and answers its requests."""

from __future__ import annotations

import enum
import logging
from typing import Optional

from .base import HashAddr, RemotePtr
from .dpu_builder import DpuBufferBuilder
from .protocol import (
    BLOCK_HEAD_LEN,
    BlockHeader,
    BufferHeader,
    GetOrInsertReq,
    GetOrInsertResp,
    TaskType,
    decode_task,
    is_var_len_task,
    round_up_to_8,
    task_size,
)
from .reply_reader import block_offsets, buffer_offsets

TASK_HEADER_LEN = 128
TASK_MAX_LEN = 256

_logger = logging.getLogger(__name__)

_RESPONSES = {
    TaskType.GET_OR_INSERT_REQ: TaskType.GET_OR_INSERT_RESP,
    TaskType.GET_POINTER_REQ: TaskType.GET_POINTER_RESP,
    TaskType.UPDATE_POINTER_REQ: TaskType.UPDATE_POINTER_RESP,
    TaskType.GET_MAX_LINK_SIZE_REQ: TaskType.GET_MAX_LINK_SIZE_RESP,
    TaskType.FETCH_MAX_LINK_REQ: TaskType.FETCH_MAX_LINK_RESP,
    TaskType.MERGE_MAX_LINK_REQ: TaskType.MERGE_MAX_LINK_RESP,
    TaskType.SET_DPU_ID_REQ: TaskType.EMPTY_RESP,
    TaskType.CREATE_INDEX_REQ: TaskType.EMPTY_RESP,
}


class DecoderState(enum.IntEnum):
    """What a step of the decoder found."""

    NO_MORE_TASK = 0
    NO_MORE_BLOCK = 0
    NEW_TASK = 1
    NEW_BLOCK = 2


def resp_task_type(task_type: int) -> TaskType:
    """The response type that answers a request type."""
    try:
        return _RESPONSES[task_type]
    except KeyError:
        raise ValueError(f"no response type for task type {task_type}") from None


class BufferDecoder:
    """Walks the blocks and tasks of a received buffer."""

    def __init__(self, buffer) -> None:
        self._buffer = memoryview(bytes(buffer))
        self.header = BufferHeader.unpack(self._buffer)
        self.block_index = 0
        self.task_index = 0
        self.block_header: Optional[BlockHeader] = None
        self.is_var_len_block = False
        self.task_len = 0
        self._block_start = 0
        self._task_pos = 0
        self._task_offsets: list[int] = []
        self._block_offsets: list[int] = (
            buffer_offsets(self._buffer) if self.header.block_count else []
        )
        if self._block_offsets:
            self.next_block()

    def _load_next_block_header(self) -> None:
        offset = self._block_offsets[self.block_index]
        self._block_start = offset
        self.block_index += 1
        self.block_header = BlockHeader.unpack(self._buffer[offset:])

    def _init_block(self) -> None:
        header = self.block_header
        self.task_index = 0
        self._task_pos = self._block_start + BLOCK_HEAD_LEN
        self.is_var_len_block = is_var_len_task(header.task_type)
        self._task_offsets = []
        self.task_len = 0
        if self.is_var_len_block:
            self._task_offsets = block_offsets(self._buffer[self._block_start :])
        elif header.task_count:
            self.task_len = task_size(self._buffer[self._task_pos :])

    def _read_task(self, pos: int):
        view = self._buffer[pos:]
        size = round_up_to_8(task_size(view))
        if size >= TASK_MAX_LEN:
            raise ValueError(f"task size overflow: {size}")
        return decode_task(view)

    def next_block(self) -> DecoderState:
        """Move to the next block, or report that there is none."""
        if self.block_index >= self.header.block_count:
            return DecoderState.NO_MORE_BLOCK
        self._load_next_block_header()
        self._init_block()
        return DecoderState.NEW_BLOCK

    def kth_task(self, k: int):
        """Decode task ``k`` of the current block."""
        header = self.block_header
        if header is None or not 0 <= k < header.task_count:
            raise IndexError(f"task index out of range: {k}")
        if self.is_var_len_block:
            pos = self._block_start + self._task_offsets[k]
        else:
            pos = self._block_start + BLOCK_HEAD_LEN + k * self.task_len
        return self._read_task(pos)

    def next_task(self) -> tuple[DecoderState, Optional[object]]:
        """The next task, moving over empty blocks.

        Returns the state and the task; the state is ``NEW_BLOCK`` when the task
        opens a block other than the current one, and the task is ``None`` once
        every task is consumed.
        """
        state = DecoderState.NEW_TASK
        header = self.block_header
        if header is None:
            return DecoderState.NO_MORE_TASK, None
        if self.task_index >= header.task_count:
            state = DecoderState.NEW_BLOCK
            while True:
                if self.block_index >= self.header.block_count:
                    return DecoderState.NO_MORE_TASK, None
                self._load_next_block_header()
                if self.block_header.task_count:
                    break
            self._init_block()

        task = self._read_task(self._task_pos)
        self.task_index += 1
        if self.is_var_len_block:
            if self.task_index < self.block_header.task_count:
                self._task_pos = self._block_start + self._task_offsets[self.task_index]
        else:
            self._task_pos += self.task_len
        return state, task


def get_or_insert_fake(req: GetOrInsertReq) -> HashAddr:
    """Answer a get-or-insert request without an index, with a fixed hash address."""
    _logger.warning(
        "fake get-or-insert: hashTableId=%d, keyLen=%d, key=%s %s",
        req.hash_table_id,
        len(req.key),
        req.key.decode("latin-1"),
        req.tid,
    )
    return HashAddr(RemotePtr(0xAAAA, 0xFFFF))


def execute_task(builder: DpuBufferBuilder, task) -> None:
    """Run one request and append its response to ``builder``."""
    if isinstance(task, GetOrInsertReq):
        builder.append_task(GetOrInsertResp(get_or_insert_fake(task)))
        return
    raise ValueError(f"unsupported task type: {getattr(task, 'task_type', task)!r}")


def run_main_loop(buffer) -> bytes:
    """Decode a request buffer, answer every task and return the response buffer."""
    decoder = BufferDecoder(buffer)
    builder = DpuBufferBuilder()
    if decoder.header.block_count > 0:
        builder.begin_block(resp_task_type(decoder.block_header.task_type))
    while True:
        state, task = decoder.next_task()
        if state is DecoderState.NO_MORE_TASK:
            break
        if state is DecoderState.NEW_BLOCK:
            builder.end_block()
            builder.begin_block(resp_task_type(decoder.block_header.task_type))
        execute_task(builder, task)
    if decoder.header.block_count > 0:
        builder.end_block()
    return builder.finish()