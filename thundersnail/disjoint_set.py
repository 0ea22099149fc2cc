"""Union-find nodes that carry element counts at their roots."""

from __future__ import annotations


class DisjointSetNode:
    """A union-find node; the counts are meaningful only on a root."""

    __slots__ = ("tuple_id_count", "max_link_addr_count", "hash_addr_count", "parent")

    def __init__(
        self,
        tuple_id_count: int = 0,
        max_link_addr_count: int = 0,
        hash_addr_count: int = 0,
    ) -> None:
        self.tuple_id_count = tuple_id_count
        self.max_link_addr_count = max_link_addr_count
        self.hash_addr_count = hash_addr_count
        self.parent: DisjointSetNode = self

    def find(self) -> DisjointSetNode:
        """Return the root of this node's set, compressing the path to it."""
        root = self
        while root.parent is not root:
            root = root.parent
        node = self
        while node is not root:
            following = node.parent
            node.parent = root
            node = following
        return root

    def join(self, other: DisjointSetNode) -> None:
        """Merge this node's set into the set of ``other``, summing the counts."""
        mine, theirs = self.find(), other.find()
        if mine is theirs:
            return
        theirs.tuple_id_count += mine.tuple_id_count
        theirs.max_link_addr_count += mine.max_link_addr_count
        theirs.hash_addr_count += mine.hash_addr_count
        mine.parent = theirs

    def __repr__(self) -> str:
        return (
            f"DisjointSetNode(tuple_id_count={self.tuple_id_count}, "
            f"max_link_addr_count={self.max_link_addr_count}, "
            f"hash_addr_count={self.hash_addr_count})"
        )