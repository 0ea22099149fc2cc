# thundersnail

`thundersnail` holds the host-side building blocks of a join engine that
spreads a hash index and "max-link" records over many processing-in-memory
units. A host sends the units batches of tasks in a packed binary buffer.
The units answer in the same format. The host then gathers the answers into
connected groups of tuples and addresses.

It is a pure-Python library with no runtime dependencies.

## What is inside

| Module | Purpose |
| --- | --- |
| `thundersnail.base` | Core value types: `RemotePtr`, `HashAddr`, `MaxLinkAddr`, `TupleId`, `ReplyType`, `MaxLink`, plus `reply_type` and `max_link_size`. |
| `thundersnail.hashing` | Fixed integer mixers `hash32`, `hash32_2`, `hash32_3`, `hash64`, `hash64_2`. |
| `thundersnail.disjoint_set` | `DisjointSetNode`, a union–find node that keeps per-set tuple, max-link and hash-address counts at its root. |
| `thundersnail.varbuffer` | `ExpandableBuffer` and `VariableLengthStructBuffer`, growable byte stores for records of differing length. |
| `thundersnail.newlink` | `NewLink`, a group of tuple ids, max-link addresses and hash addresses, with its packed size and byte form. |
| `thundersnail.reply_table` | `ReplyIdTable`, an open-addressing table that gives each distinct index reply a dense id starting at 1, and `reply_hash`. |
| `thundersnail.linking` | Turns a batch of get-or-insert results into `NewLink` groups (`build_ids`, `build_new_links`), with a synthetic chain-join workload (`chain_join_workload`) and a timing helper (`benchmark`). |
| `thundersnail.merging` | `NewLinkMerger`, which unions several new links without duplicates, and `new_link_to_max_link`. |
| `thundersnail.protocol` | `TaskType`, the request and response records, `BlockHeader` and `BufferHeader`, and `task_size`, `encode_task`, `decode_task`. |
| `thundersnail.cpu_builder` | `CpuBufferBuilder`, which packs request tasks into a host-to-unit buffer. |
| `thundersnail.reply_reader` | Walks a buffer block by block and task by task (`iter_blocks`, `iter_block_tasks`, `traverse`). |
| `thundersnail.dpu_builder` | `DpuBufferBuilder`, which packs response tasks into a reply buffer. |
| `thundersnail.decoder` | `BufferDecoder`, which reads a request buffer block by block, and `run_main_loop`, which answers every task of a buffer. |

## A few examples

Sizes of the packed records follow the wire layout:

```python
from thundersnail.base import max_link_size
from thundersnail.newlink import new_link_size
from thundersnail.protocol import round_up_to_8

assert max_link_size(5, 5) == 128
assert new_link_size(10, 10, 10) == 336
assert round_up_to_8(13) == 16
```

A remote pointer packs into one 64-bit integer and unpacks again unchanged:

```python
from thundersnail.base import RemotePtr

ptr = RemotePtr.from_i64(0x0000_00FF_0000_0001)
assert RemotePtr.from_i64(ptr.to_i64()) == ptr
```

A request buffer built on the host can be decoded, answered and read back:

```python
from thundersnail.base import TupleId
from thundersnail.cpu_builder import CpuBufferBuilder
from thundersnail.decoder import run_main_loop
from thundersnail.protocol import GetOrInsertReq, TaskType
from thundersnail.reply_reader import traverse

builder = CpuBufferBuilder(epoch_number=1)
builder.begin_block(TaskType.GET_OR_INSERT_REQ)
builder.append_task(GetOrInsertReq(b"abcd", TupleId(3, 0x1234), 0))
builder.end_block()
request = builder.finish()

for resp in traverse(run_main_loop(request)):
    print(resp.reply)
```

## Buffer format in brief

A buffer starts with an 8-byte header: an epoch number on the host side or a
state byte on the unit side, then a block count and a total size. Blocks come
next, each with an 8-byte header: task type, task count and block size.
Fixed-length blocks hold their tasks back to back. Variable-length blocks
hold their tasks followed by a table of task offsets, padded to 8 bytes. The
buffer ends with a table of block offsets, and the total size is rounded up
to a multiple of 8. A buffer holds at most 8 blocks and 65535 bytes.

## What it does not do

- It does not talk to processing units. Buffers are built and read as bytes.
  Sending them anywhere is left to the caller.
- It holds no hash index and no store of max links. `run_main_loop` answers
  only get-or-insert requests, and it answers each one with the same fixed
  hash address. It logs a warning for each. Any other request type raises
  `ValueError`.
- Nothing here keeps data between runs.

## Errors

Bad input raises an exception and is never passed over quietly. An unknown
task type raises `ValueError`. So do a malformed or truncated task. A record
or task index past the end of a buffer raises `IndexError`. A buffer that
runs out of room raises `OverflowError`.

## Running the tests

Install the `test` extra, which brings in pytest and hypothesis, then run
pytest from the project root.