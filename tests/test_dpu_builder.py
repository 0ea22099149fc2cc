import pytest

from thundersnail.base import HashAddr, MaxLink, MaxLinkAddr, RemotePtr, TupleId
from thundersnail.dpu_builder import BUFFER_STATE_OK, DpuBufferBuilder
from thundersnail.protocol import (
    BATCH_SIZE,
    BLOCK_HEAD_LEN,
    DPU_BUFFER_HEAD_LEN,
    NUM_BLOCKS,
    BlockHeader,
    BufferHeader,
    FetchMaxLinkResp,
    GetMaxLinkSizeResp,
    GetOrInsertReq,
    GetOrInsertResp,
    TaskType,
    decode_task,
)
from thundersnail.reply_reader import (
    block_offsets,
    iter_blocks,
    read_block_header,
    read_buffer_header,
    traverse,
)


def test_max_link_size_responses_round_trip():
    builder = DpuBufferBuilder()
    tasks = [GetMaxLinkSizeResp(i % 255) for i in range(BATCH_SIZE)]
    builder.begin_block(TaskType.GET_MAX_LINK_SIZE_RESP)
    for task in tasks:
        builder.append_task(task)
    builder.end_block()
    buffer = builder.finish()

    header = read_buffer_header(buffer)
    assert header.state == BUFFER_STATE_OK
    assert header.block_count == 1
    assert header.total_size == len(buffer)
    assert len(buffer) % 8 == 0
    assert list(traverse(buffer)) == tasks


def test_empty_buffer_is_only_a_header():
    buffer = DpuBufferBuilder().finish()
    assert len(buffer) == DPU_BUFFER_HEAD_LEN
    assert read_buffer_header(buffer) == BufferHeader(BUFFER_STATE_OK, 0, DPU_BUFFER_HEAD_LEN)


def test_state_is_written_to_header():
    buffer = DpuBufferBuilder(state=3).finish()
    assert read_buffer_header(buffer).state == 3


def test_get_or_insert_responses_round_trip():
    replies = [
        GetOrInsertResp(TupleId(3, 0x1234)),
        GetOrInsertResp(MaxLinkAddr(RemotePtr(1, 2))),
        GetOrInsertResp(HashAddr(RemotePtr(0xAAAA, 0xFFFF))),
    ]
    builder = DpuBufferBuilder()
    builder.begin_block(TaskType.GET_OR_INSERT_RESP)
    for reply in replies:
        builder.append_task(reply)
    builder.end_block()
    buffer = builder.finish()
    blocks = list(iter_blocks(buffer))
    assert len(blocks) == 1
    assert read_block_header(blocks[0]).task_count == 3
    assert list(traverse(buffer)) == replies


def test_fetch_max_link_block_has_task_offsets():
    first = FetchMaxLinkResp(MaxLink([TupleId(1, 5)], [HashAddr(RemotePtr(2, 3))]))
    second = FetchMaxLinkResp(MaxLink([TupleId(2, 7), TupleId(4, 9)], []))
    builder = DpuBufferBuilder()
    builder.begin_block(TaskType.FETCH_MAX_LINK_RESP)
    builder.append_task(first)
    builder.append_task(second)
    builder.end_block()
    buffer = builder.finish()

    (block,) = iter_blocks(buffer)
    header = read_block_header(block)
    assert header.task_count == 2
    assert header.total_size % 8 == 0
    offsets = block_offsets(block)
    assert offsets[0] == BLOCK_HEAD_LEN
    assert [decode_task(block[o:]) for o in offsets] == [first, second]


def test_empty_block_header():
    builder = DpuBufferBuilder()
    builder.begin_block(TaskType.EMPTY_RESP)
    builder.end_block()
    buffer = builder.finish()
    (block,) = iter_blocks(buffer)
    assert read_block_header(block) == BlockHeader(TaskType.EMPTY_RESP, 0, BLOCK_HEAD_LEN)


def test_append_without_block_fails():
    with pytest.raises(RuntimeError):
        DpuBufferBuilder().append_task(GetMaxLinkSizeResp(1))


def test_request_cannot_be_appended():
    builder = DpuBufferBuilder()
    builder.begin_block(TaskType.GET_OR_INSERT_RESP)
    with pytest.raises(ValueError):
        builder.append_task(GetOrInsertReq(b"abcd", TupleId(3, 1), 0))


def test_fixed_task_in_fetch_block_fails():
    builder = DpuBufferBuilder()
    builder.begin_block(TaskType.FETCH_MAX_LINK_RESP)
    with pytest.raises(ValueError):
        builder.append_task(GetMaxLinkSizeResp(1))


def test_begin_twice_fails():
    builder = DpuBufferBuilder()
    builder.begin_block(TaskType.GET_OR_INSERT_RESP)
    with pytest.raises(RuntimeError):
        builder.begin_block(TaskType.GET_OR_INSERT_RESP)


def test_too_many_blocks():
    builder = DpuBufferBuilder()
    for _ in range(NUM_BLOCKS):
        builder.begin_block(TaskType.EMPTY_RESP)
        builder.end_block()
    with pytest.raises(OverflowError):
        builder.begin_block(TaskType.EMPTY_RESP)


def test_finish_with_open_block_fails():
    builder = DpuBufferBuilder()
    builder.begin_block(TaskType.EMPTY_RESP)
    with pytest.raises(RuntimeError):
        builder.finish()


def test_finish_twice_fails():
    builder = DpuBufferBuilder()
    builder.finish()
    with pytest.raises(RuntimeError):
        builder.finish()


def test_state_out_of_range():
    with pytest.raises(ValueError):
        DpuBufferBuilder(state=256)