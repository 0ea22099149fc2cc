import pytest

from thundersnail.base import HashAddr, MaxLinkAddr, RemotePtr, TupleId, max_link_size
from thundersnail.merging import NewLinkMerger, new_link_to_max_link
from thundersnail.newlink import MAXSIZE_MAXLINK, NewLink


def _link(tag):
    return NewLink(
        tuple_ids=[TupleId(tag, 1), TupleId(tag, 2)],
        max_link_addrs=[MaxLinkAddr(RemotePtr(tag, 3))],
        hash_addrs=[HashAddr(RemotePtr(tag, 4))],
    )


def test_merging_same_link_twice_removes_duplicates():
    link = _link(1)
    merger = NewLinkMerger()
    merger.merge(link)
    merger.merge(link)
    assert merger.export() == link


def test_merge_keeps_first_seen_order():
    a, b = _link(1), _link(2)
    merger = NewLinkMerger()
    merger.merge(a)
    merger.merge(b)
    merger.merge(a)
    merged = merger.export()
    assert merged.tuple_ids == a.tuple_ids + b.tuple_ids
    assert merged.max_link_addrs == a.max_link_addrs + b.max_link_addrs
    assert merged.hash_addrs == a.hash_addrs + b.hash_addrs


def test_export_is_a_copy():
    merger = NewLinkMerger()
    merger.merge(_link(1))
    exported = merger.export()
    exported.tuple_ids.clear()
    assert merger.export().tuple_ids == _link(1).tuple_ids


def test_empty_merger_exports_empty_link():
    assert NewLinkMerger().export() == NewLink()


def test_merge_within_limit():
    link = NewLink(tuple_ids=[TupleId(1, i + 1) for i in range(MAXSIZE_MAXLINK)])
    merger = NewLinkMerger()
    merger.merge(link)
    assert len(merger.export().tuple_ids) == MAXSIZE_MAXLINK


def test_merge_overflow_raises():
    link = NewLink(tuple_ids=[TupleId(1, i + 1) for i in range(MAXSIZE_MAXLINK + 1)])
    with pytest.raises(OverflowError):
        NewLinkMerger().merge(link)


def test_new_link_to_max_link_drops_max_link_addrs():
    link = _link(3)
    max_link = new_link_to_max_link(link)
    assert max_link.tuple_ids == link.tuple_ids
    assert max_link.hash_addrs == link.hash_addrs
    assert max_link.size == max_link_size(len(link.tuple_ids), len(link.hash_addrs))


def test_new_link_to_max_link_copies_lists():
    link = _link(4)
    max_link = new_link_to_max_link(link)
    max_link.tuple_ids.clear()
    assert link.tuple_ids == _link(4).tuple_ids