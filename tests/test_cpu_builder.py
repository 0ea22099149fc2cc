import pytest

from thundersnail.base import TupleId
from thundersnail.cpu_builder import CpuBufferBuilder
from thundersnail.protocol import (
    BATCH_SIZE,
    GetOrInsertReq,
    GetOrInsertResp,
    SetDpuIdReq,
    TaskType,
)
from thundersnail.reply_reader import iter_block_tasks, iter_blocks, read_buffer_header


def _source_batch():
    return [
        GetOrInsertReq(bytes([(ord("a") + i) & 0xFF]), TupleId(i, i), i % 64)
        for i in range(BATCH_SIZE)
    ]


def test_one_get_or_insert_block():
    tasks = _source_batch()
    builder = CpuBufferBuilder(epoch_number=1)
    builder.begin_block(TaskType.GET_OR_INSERT_REQ)
    for task in tasks:
        builder.append_task(task)
    builder.end_block()
    buffer = builder.finish()

    header = read_buffer_header(buffer)
    assert header.state == 1
    assert header.block_count == 1
    assert header.total_size == len(buffer) == 14104
    blocks = list(iter_blocks(buffer))
    assert len(blocks) == 1
    assert list(iter_block_tasks(blocks[0])) == tasks


def test_fixed_blocks():
    builder = CpuBufferBuilder()
    builder.begin_block(TaskType.SET_DPU_ID_REQ)
    builder.append_task(SetDpuIdReq(1))
    builder.append_task(SetDpuIdReq(2))
    builder.end_block()
    builder.begin_block(TaskType.SET_DPU_ID_REQ)
    builder.append_task(SetDpuIdReq(3))
    builder.end_block()
    buffer = builder.finish()
    assert len(buffer) % 8 == 0
    decoded = [list(iter_block_tasks(b)) for b in iter_blocks(buffer)]
    assert decoded == [[SetDpuIdReq(1), SetDpuIdReq(2)], [SetDpuIdReq(3)]]


def test_errors():
    builder = CpuBufferBuilder()
    with pytest.raises(RuntimeError):
        builder.append_task(SetDpuIdReq(1))
    builder.begin_block(TaskType.GET_OR_INSERT_REQ)
    with pytest.raises(ValueError):
        builder.append_task(GetOrInsertResp(TupleId(1, 1)))
    with pytest.raises(RuntimeError):
        builder.finish()
    with pytest.raises(ValueError):
        CpuBufferBuilder(epoch_number=256)


def test_too_many_blocks():
    builder = CpuBufferBuilder()
    for _ in range(8):
        builder.begin_block(TaskType.SET_DPU_ID_REQ)
        builder.end_block()
    with pytest.raises(OverflowError):
        builder.begin_block(TaskType.SET_DPU_ID_REQ)


def test_batch_limit():
    builder = CpuBufferBuilder()
    builder.begin_block(TaskType.GET_OR_INSERT_REQ)
    for task in _source_batch():
        builder.append_task(task)
    with pytest.raises(OverflowError):
        builder.append_task(GetOrInsertReq(b"z", TupleId(1, 1), 0))