import struct

import pytest

from thundersnail.base import HashAddr, MaxLinkAddr, RemotePtr, TupleId
from thundersnail.newlink import NEW_LINK_HEADER_SIZE, NewLink, new_link_size

MAXN = 10


def _sample_link():
    return NewLink(
        tuple_ids=[TupleId(10, i) for i in range(MAXN)],
        max_link_addrs=[MaxLinkAddr(RemotePtr(11, i)) for i in range(MAXN)],
        hash_addrs=[HashAddr(RemotePtr(12, i)) for i in range(MAXN)],
    )


def test_header_is_four_ints():
    assert NEW_LINK_HEADER_SIZE == 4 * 4
    assert new_link_size(0, 0, 0) == 16


def test_layout_matches_source_case():
    link = _sample_link()
    data = link.to_bytes()
    size = new_link_size(MAXN, MAXN, MAXN)
    assert link.size() == size
    assert len(data) == size
    assert struct.unpack_from("<iii", data, 0) == (MAXN, MAXN, MAXN)

    tuples_start = 16
    max_links_start = tuples_start + 16 * MAXN
    hashes_start = max_links_start + 8 * MAXN
    assert hashes_start + 8 * MAXN == size
    for i in range(MAXN):
        table_id, _, addr = struct.unpack_from("<iIQ", data, tuples_start + 16 * i)
        assert (table_id, addr) == (10, i)
        assert struct.unpack_from("<II", data, max_links_start + 8 * i) == (11, i)
        assert struct.unpack_from("<II", data, hashes_start + 8 * i) == (12, i)


def test_round_trip():
    link = _sample_link()
    assert NewLink.from_bytes(link.to_bytes()) == link
    empty = NewLink()
    assert NewLink.from_bytes(empty.to_bytes()) == empty


def test_from_bytes_rejects_short_data():
    data = _sample_link().to_bytes()
    with pytest.raises(ValueError):
        NewLink.from_bytes(data[:-1])
    with pytest.raises(ValueError):
        NewLink.from_bytes(data[:8])
    with pytest.raises(ValueError):
        NewLink.from_bytes(struct.pack("<iiii", -1, 0, 0, 0))


def test_negative_size_counts():
    with pytest.raises(ValueError):
        new_link_size(1, -1, 0)


def test_describe_lists_everything():
    link = NewLink(
        tuple_ids=[TupleId(2, 0x20)],
        max_link_addrs=[MaxLinkAddr(RemotePtr(1, 2))],
        hash_addrs=[HashAddr(RemotePtr(3, 4))],
    )
    lines = link.describe().splitlines()
    assert lines[:3] == ["TupleIdCount = 1", "MaxLinkAddrCount = 1", "HashAddrCount = 1"]
    assert lines[3] == "(TupleIdT){.tableId = 2\t, .tupleAddr = 20}"
    assert lines[4].startswith("MaxLinkAddrT.rPtr = ")
    assert lines[5].startswith("HashAddrT.rPtr = ")
    assert len(lines) == 6