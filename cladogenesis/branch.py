from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

try:
    from typing import Self
except ImportError:
    from typing_extensions import Self


class Branch:
    """
    Node of a dated phylogeny.

    A branch owns its children; the parent link is a plain back-reference
    used for walking towards the root. Dates are integer simulation ticks:
    ``start_date`` is when the lineage appeared and ``end_date`` is set once
    it has been retired.
    """

    __slots__ = ("children", "parent", "start_date", "end_date")

    children: List[Self]
    parent: Optional[Self]
    start_date: int
    end_date: Optional[int]

    def __init__(
        self,
        start_date: int = 0,
        children: Optional[List[Self]] = None,
        end_date: Optional[int] = None,
    ):
        self.parent = None
        self.start_date = start_date
        self.end_date = end_date
        self.children = []
        for child in children or []:
            self.append_child(child)

    def __repr__(self) -> str:
        return f"Branch(start={self.start_date}, end={self.end_date})"

    # ------------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------------
    def append_child(self, node: Self) -> None:
        node.parent = self
        self.children.append(node)

    def remove_child(self, node: Self) -> None:
        """Detach ``node`` from this branch; its own subtree goes with it."""
        if node not in self.children:
            raise ValueError("node is not a child of this branch.")
        self.children.remove(node)
        node.parent = None

    def get_root(self) -> Self:
        cur = self
        while cur.parent is not None:
            cur = cur.parent
        return cur

    def is_root(self) -> bool:
        return self.parent is None

    def is_leaf(self) -> bool:
        return len(self.children) == 0

    def traverse(self) -> List[Self]:
        """
        Return all nodes of the subtree rooted at this branch (pre-order).
        Iterative, so deep lineages do not hit the recursion limit.
        """
        nodes: List[Self] = []
        stack: List[Self] = [self]
        while stack:
            current = stack.pop()
            nodes.append(current)
            stack.extend(reversed(current.children))
        return nodes

    def get_leaves(self) -> List[Self]:
        return [node for node in self.traverse() if node.is_leaf()]

    # ------------------------------------------------------------------------
    # Ancestry
    # ------------------------------------------------------------------------
    def ancestors(self) -> Iterator[Self]:
        """Yield this branch, then its parent, and so on up to the root."""
        current: Optional[Self] = self
        while current is not None:
            yield current
            current = current.parent

    def find_lowest_common_ancestor(self, other: "Branch") -> Optional["Branch"]:
        """
        Find the youngest branch lying on both ancestor chains.

        Returns:
            The shared branch, or None if the two branches are in different trees.
        """
        if self is other:
            return self
        return self._first_shared([other])

    def most_recent_common_ancestor(
        self, other: Union["Branch", Iterable["Branch"]]
    ) -> Optional[int]:
        """
        Date of the most recent common ancestor.

        ``other`` is either a single branch or a frontier of candidate
        branches. For a frontier the convergence is measured against the
        member closest to this branch, i.e. the first branch on this
        lineage's chain that is an ancestor of any frontier member.

        Returns:
            The ``start_date`` of the shared branch, or None when nothing is
            shared (unrelated trees or empty frontier).
        """
        frontier = [other] if isinstance(other, Branch) else list(other)
        shared = self._first_shared(frontier)
        return shared.start_date if shared is not None else None

    def _first_shared(self, frontier: List["Branch"]) -> Optional["Branch"]:
        # Identity-based: subclasses may redefine equality.
        reachable = {id(node) for member in frontier for node in member.ancestors()}
        for node in self.ancestors():
            if id(node) in reachable:
                return node
        return None

    # ------------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------------
    def label(self) -> str:
        return ""

    def branch_length(self, now: int) -> int:
        end = self.end_date if self.end_date is not None else now
        return end - self.start_date

    def render(self, now: int) -> str:
        """Newick text for this subtree, without the closing semicolon."""
        rendered: Dict[int, str] = {}
        for node in self._post_order():
            text = node.label()
            if node.children:
                inner = ",".join(rendered.pop(id(ch)) for ch in node.children)
                text = f"({inner}){text}"
            rendered[id(node)] = f"{text}:{node.branch_length(now)}"
        return rendered[id(self)]

    def to_newick(self, now: int) -> str:
        return self.render(now) + ";"

    def _post_order(self) -> List[Self]:
        """Children before parents, left to right. Iterative."""
        # Root-first walk visiting children right to left, reversed.
        nodes: List[Self] = []
        stack: List[Self] = [self]
        while stack:
            current = stack.pop()
            nodes.append(current)
            stack.extend(current.children)
        nodes.reverse()
        return nodes

    def node_dict(self, now: int) -> Dict[str, Any]:
        """Fields of this node alone, without its children."""
        return {
            "name": self.label(),
            "start_date": self.start_date,
            "end_date": self.end_date,
            "length": self.branch_length(now),
        }

    def to_dict(self, now: int) -> Dict[str, Any]:
        built: Dict[int, Dict[str, Any]] = {}
        for node in self._post_order():
            data = node.node_dict(now)
            data["children"] = [built.pop(id(ch)) for ch in node.children]
            built[id(node)] = data
        return built[id(self)]

    def to_json(self, now: int) -> str:
        return json.dumps(self.to_dict(now), indent=4)
