"""Merging new links into one and turning a new link into a max link."""

from __future__ import annotations

from .base import HashAddr, MaxLink, MaxLinkAddr, TupleId
from .newlink import MAXSIZE_MAXLINK, NewLink


class NewLinkMerger:
    """Collects the distinct members of several new links, in first-seen order."""

    def __init__(self) -> None:
        self.tuple_ids: list[TupleId] = []
        self.max_link_addrs: list[MaxLinkAddr] = []
        self.hash_addrs: list[HashAddr] = []

    @staticmethod
    def _add_unique(target: list, items: list) -> None:
        for item in items:
            if item in target:
                continue
            if len(target) >= MAXSIZE_MAXLINK:
                raise OverflowError(f"a max link holds at most {MAXSIZE_MAXLINK} items per kind")
            target.append(item)

    def merge(self, new_link: NewLink) -> None:
        """Add the members of ``new_link`` not already present."""
        self._add_unique(self.tuple_ids, new_link.tuple_ids)
        self._add_unique(self.max_link_addrs, new_link.max_link_addrs)
        self._add_unique(self.hash_addrs, new_link.hash_addrs)

    def export(self) -> NewLink:
        """The merged members as a new link."""
        return NewLink(
            list(self.tuple_ids), list(self.max_link_addrs), list(self.hash_addrs)
        )


def new_link_to_max_link(new_link: NewLink) -> MaxLink:
    """The tuple ids and hash addresses of a new link, as a max link."""
    return MaxLink(list(new_link.tuple_ids), list(new_link.hash_addrs))