"""Reads buffers of blocks: headers, offsets and the tasks they hold."""

from __future__ import annotations

from collections.abc import Iterator

from .base import HashAddr, MaxLinkAddr, TupleId
from .protocol import (
    BLOCK_HEAD_LEN,
    DPU_BUFFER_HEAD_LEN,
    OFFSET_SIZE,
    BlockHeader,
    BufferHeader,
    GetOrInsertResp,
    decode_task,
    is_var_len_task,
    round_up_to_8,
)


def read_buffer_header(buffer) -> BufferHeader:
    return BufferHeader.unpack(buffer)


def read_block_header(block) -> BlockHeader:
    return BlockHeader.unpack(block)


def _offsets(data, total_size: int, count: int) -> list[int]:
    start = total_size - round_up_to_8(count * OFFSET_SIZE)
    end = start + count * OFFSET_SIZE
    if start < 0 or end > len(data):
        raise ValueError("offset table lies outside the data")
    view = memoryview(data)[start:end]
    return [int.from_bytes(view[i : i + OFFSET_SIZE], "little") for i in range(0, len(view), OFFSET_SIZE)]


def buffer_offsets(buffer) -> list[int]:
    """Offsets of the blocks, from the table at the end of the buffer."""
    header = read_buffer_header(buffer)
    return _offsets(buffer, header.total_size, header.block_count)


def block_offsets(block) -> list[int]:
    """Offsets of the tasks of a variable-length block, relative to the block."""
    header = read_block_header(block)
    return _offsets(block, header.total_size, header.task_count)


def iter_blocks(buffer) -> Iterator[memoryview]:
    """Each block of the buffer as a view."""
    view = memoryview(buffer)
    for offset in buffer_offsets(buffer):
        header = read_block_header(view[offset:])
        yield view[offset : offset + header.total_size]


def iter_block_tasks(block) -> Iterator:
    """The decoded tasks of one block, in order."""
    header = read_block_header(block)
    view = memoryview(block)
    if is_var_len_task(header.task_type):
        for offset in block_offsets(block):
            yield decode_task(view[offset:])
    elif header.task_count:
        each = (header.total_size - DPU_BUFFER_HEAD_LEN) // header.task_count
        for i in range(header.task_count):
            start = BLOCK_HEAD_LEN + each * i
            yield decode_task(view[start : start + each])


def traverse(buffer) -> Iterator:
    """Every task of every block of the buffer."""
    for block in iter_blocks(buffer):
        yield from iter_block_tasks(block)


def describe_get_or_insert_resp(resp: GetOrInsertResp) -> str:
    """One-line description of a get-or-insert response."""
    if not isinstance(resp, GetOrInsertResp):
        raise TypeError(f"not a get-or-insert response: {resp!r}")
    value = resp.reply
    if isinstance(value, TupleId):
        return f"(TupleIdT){{.tableId = {value.table_id}, \t.tupleAddr = 0x{value.tuple_addr:x}}}"
    if isinstance(value, MaxLinkAddr):
        p = value.r_ptr
        return f"(MaxLinkAddrT) {{.dpuId = {p.dpu_id},\t.dpuAddr = 0x{p.dpu_addr:x}}}"
    if isinstance(value, HashAddr):
        p = value.r_ptr
        return f"(HashAddrT) {{.dpuId = {p.dpu_id}, \t.dpuAddr = 0x{p.dpu_addr:x}}}"
    raise TypeError(f"not a hash table reply: {value!r}")