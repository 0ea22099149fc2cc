"""Group the answers of a get-or-insert batch into new links."""

from __future__ import annotations

import time
from collections.abc import Sequence

from .base import (
    HashAddr,
    MaxLinkAddr,
    RemotePtr,
    Reply,
    ReplyType,
    TupleId,
    reply_type,
)
from .disjoint_set import DisjointSetNode
from .newlink import MAXSIZE_HASH_TABLE_QUERY_BATCH, NewLink
from .reply_table import ReplyIdTable

_BENCHMARK_TABLES = 9


def is_valid_reply(reply: Reply) -> bool:
    """Whether a reply holds a usable value."""
    kind = reply_type(reply)
    if kind is ReplyType.TUPLE_ID:
        return reply.table_id > 0 and reply.tuple_addr != 0
    return not reply.r_ptr.is_invalid()


def _check_batch(tuple_ids: Sequence[TupleId], counterparts: Sequence[Reply]) -> None:
    if len(tuple_ids) != len(counterparts):
        raise ValueError("tuple ids and counterparts differ in length")
    if len(tuple_ids) * 2 >= MAXSIZE_HASH_TABLE_QUERY_BATCH:
        raise ValueError(f"batch too large: {len(tuple_ids)}")
    for counterpart in counterparts:
        if not is_valid_reply(counterpart):
            raise ValueError(f"invalid counterpart: {counterpart!r}")


def build_ids(
    table: ReplyIdTable,
    tuple_ids: Sequence[TupleId],
    counterparts: Sequence[Reply],
) -> tuple[list[int], list[int]]:
    """Map each tuple id and its counterpart to dense ids, resetting ``table`` first."""
    _check_batch(tuple_ids, counterparts)
    if not tuple_ids:
        table.soft_reset()
        return [], []
    table.expand_and_soft_reset(len(tuple_ids) * 3)
    left_ids = []
    right_ids = []
    for tuple_id, counterpart in zip(tuple_ids, counterparts):
        left_ids.append(table.get_id(tuple_id))
        right_ids.append(table.get_id(counterpart))
    return left_ids, right_ids


def build_new_links(
    tuple_ids: Sequence[TupleId],
    counterparts: Sequence[Reply],
    left_ids: Sequence[int],
    right_ids: Sequence[int],
) -> list[NewLink]:
    """Join every tuple id with its counterpart and return the connected groups.

    A right id of 0 means the tuple has no counterpart.
    """
    _check_batch(tuple_ids, counterparts)
    if len(left_ids) != len(tuple_ids) or len(right_ids) != len(tuple_ids):
        raise ValueError("id lists differ in length from the batch")

    nodes: dict[int, DisjointSetNode] = {}
    for left_id, right_id, counterpart in zip(left_ids, right_ids, counterparts):
        nodes[left_id] = DisjointSetNode(tuple_id_count=1)
        if right_id == 0:
            continue
        kind = reply_type(counterpart)
        nodes[right_id] = DisjointSetNode(
            tuple_id_count=int(kind is ReplyType.TUPLE_ID),
            max_link_addr_count=int(kind is ReplyType.MAX_LINK_ADDR),
            hash_addr_count=int(kind is ReplyType.HASH_ADDR),
        )
    for left_id, right_id in zip(left_ids, right_ids):
        if right_id != 0:
            nodes[left_id].join(nodes[right_id])

    links: list[NewLink] = []
    by_root: dict[DisjointSetNode, NewLink] = {}
    processed: set[int] = set()

    def fill(node_id: int, value: Reply) -> None:
        if node_id in processed:
            return
        root = nodes[node_id].find()
        link = by_root.get(root)
        if link is None:
            link = NewLink()
            by_root[root] = link
            links.append(link)
        if isinstance(value, TupleId):
            link.tuple_ids.append(value)
        elif isinstance(value, MaxLinkAddr):
            link.max_link_addrs.append(value)
        else:
            link.hash_addrs.append(value)
        processed.add(node_id)

    for tuple_id, counterpart, left_id, right_id in zip(
        tuple_ids, counterparts, left_ids, right_ids
    ):
        fill(left_id, tuple_id)
        if right_id != 0:
            fill(right_id, counterpart)

    # Each group is filled from its last slot backwards.
    for link in links:
        link.tuple_ids.reverse()
        link.max_link_addrs.reverse()
        link.hash_addrs.reverse()
    return links


def chain_join_workload(
    batch_size: int, tables: int
) -> tuple[list[TupleId], list[Reply]]:
    """A chain natural join over tables 1..``tables``.

    Table 0 stays empty, table ``tables + 1`` already holds max links, and each
    table in between is joined with both of its neighbours.
    """
    if batch_size <= 0 or tables <= 0:
        raise ValueError("batch_size and tables must be positive")
    tuple_ids: list[TupleId] = []
    counterparts: list[Reply] = []
    for table in range(1, tables + 1):
        for i in range(batch_size):
            tuple_ids.append(TupleId(table, i + 1))
            if table == 1:
                counterparts.append(HashAddr(RemotePtr(0, i + batch_size)))
            else:
                counterparts.append(TupleId(table - 1, i + 1))
        for i in range(batch_size):
            tuple_ids.append(TupleId(table, i + 1))
            if table == tables:
                counterparts.append(MaxLinkAddr(RemotePtr(table + 1, i)))
            else:
                counterparts.append(HashAddr(RemotePtr(table + 1, i + batch_size)))
    return tuple_ids, counterparts


def benchmark(rounds: int = 1000, batch_size: int = 400) -> float:
    """Time id building plus grouping on a chain join; nanoseconds per task."""
    if rounds <= 0:
        raise ValueError("rounds must be positive")
    tuple_ids, counterparts = chain_join_workload(batch_size, _BENCHMARK_TABLES)
    table = ReplyIdTable()
    start = time.perf_counter()
    for _ in range(rounds):
        left_ids, right_ids = build_ids(table, tuple_ids, counterparts)
        build_new_links(tuple_ids, counterparts, left_ids, right_ids)
    spent = time.perf_counter() - start
    return spent / rounds * 1e9 / _BENCHMARK_TABLES / batch_size