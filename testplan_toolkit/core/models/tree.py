from __future__ import annotations

"""In-memory document tree for test plans.

A test plan is a tree of :class:`TreeNode` objects. Children are owned by
their parent in an ordered list; the parent back-reference is a weak
reference so the tree never forms reference cycles.

All structural mutations go through :meth:`TreeNode.insert_child` and
:meth:`TreeNode.remove_child`, which update the child list and the parent
pointer together and refuse edits that would break the tree shape.
"""

import enum
import itertools
import weakref
from typing import Iterator, List, Optional, Tuple

from lxml import etree as ET

__all__ = ["NodeKind", "TreeNode", "TreeError", "move_node"]


_ID_COUNTER = itertools.count(1)


class TreeError(Exception):
    """Raised when a structural edit would break the tree invariants."""


class NodeKind(enum.Enum):
    """Closed set of node roles understood by the grouping engine."""

    CONTAINER = "container"
    LEAF_GROUPABLE = "leaf_groupable"
    LEAF_OTHER = "leaf_other"
    GROUPING_CONTAINER = "grouping_container"


class TreeNode:
    """A single element of the test plan tree.

    Parameters
    ----------
    display_name
        Human-readable name shown in the tree (JMeter ``testname``).
    kind
        Role of the node. Fixed for the lifetime of the node.
    node_id
        Stable identity within a session. Generated when omitted.
    testclass
        Optional JMeter element class (``HTTPSamplerProxy``, ``ThreadGroup``...).
    element
        Optional lxml element carrying the raw element properties. The tree
        structure is owned by the nodes, not by this element.

    Notes
    -----
    Nodes compare and hash by identity, so they can be used as dictionary
    keys in operation records.
    """

    def __init__(
        self,
        display_name: str,
        kind: NodeKind,
        node_id: Optional[str] = None,
        testclass: Optional[str] = None,
        element: Optional[ET._Element] = None,
    ) -> None:
        if not isinstance(kind, NodeKind):
            raise TypeError(f"kind must be a NodeKind, got {kind!r}")
        self.id: str = node_id or f"node-{next(_ID_COUNTER)}"
        self.display_name: str = display_name or ""
        self._kind = kind
        self.testclass = testclass
        self.element = element
        self._children: List[TreeNode] = []
        self._parent_ref: Optional[weakref.ReferenceType[TreeNode]] = None

    # ------------------------------------------------------------------ state

    @property
    def kind(self) -> NodeKind:
        return self._kind

    @property
    def parent(self) -> Optional[TreeNode]:
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @property
    def children(self) -> Tuple[TreeNode, ...]:
        """Read-only snapshot of the ordered children."""
        return tuple(self._children)

    def __len__(self) -> int:
        return len(self._children)

    def __iter__(self) -> Iterator[TreeNode]:
        return iter(list(self._children))

    def __repr__(self) -> str:
        return f"TreeNode(id={self.id!r}, name={self.display_name!r}, kind={self._kind.name})"

    # ------------------------------------------------------------- structure

    def index_of(self, child: TreeNode) -> int:
        """Return the position of *child* among this node's children.

        Raises
        ------
        ValueError
            If *child* is not a direct child of this node.
        """
        for idx, candidate in enumerate(self._children):
            if candidate is child:
                return idx
        raise ValueError(f"{child!r} is not a child of {self!r}")

    def insert_child(self, index: Optional[int], child: TreeNode) -> None:
        """Insert a detached *child* at *index* (``None`` or past the end appends)."""
        if child is self:
            raise TreeError("A node cannot be its own child.")
        if child.parent is not None:
            raise TreeError(f"{child!r} already has a parent; detach it first.")
        for ancestor in self.ancestors():
            if ancestor is child:
                raise TreeError(f"Inserting {child!r} under {self!r} would create a cycle.")
        if index is None or index >= len(self._children):
            self._children.append(child)
        else:
            self._children.insert(max(0, index), child)
        child._parent_ref = weakref.ref(self)

    def append_child(self, child: TreeNode) -> None:
        self.insert_child(None, child)

    def remove_child(self, child: TreeNode) -> int:
        """Detach *child* and return the index it occupied."""
        idx = self.index_of(child)
        del self._children[idx]
        child._parent_ref = None
        return idx

    def detach(self) -> Optional[int]:
        """Remove this node from its parent; return its former index or None."""
        parent = self.parent
        if parent is None:
            return None
        return parent.remove_child(self)

    # ------------------------------------------------------------- traversal

    def ancestors(self) -> Iterator[TreeNode]:
        """Yield this node, then its parent, up to the root."""
        node: Optional[TreeNode] = self
        while node is not None:
            yield node
            node = node.parent

    def iter_descendants(self) -> Iterator[TreeNode]:
        """Depth-first, document-order iteration over all descendants."""
        for child in list(self._children):
            yield child
            yield from child.iter_descendants()

    def contains(self, node: Optional[TreeNode]) -> bool:
        """Return True if *node* is this node or is attached below it."""
        if node is None:
            return False
        return any(ancestor is self for ancestor in node.ancestors())

    def find_by_id(self, node_id: str) -> Optional[TreeNode]:
        if self.id == node_id:
            return self
        for node in self.iter_descendants():
            if node.id == node_id:
                return node
        return None

    def find_by_name(self, name: str) -> Optional[TreeNode]:
        """Return the first descendant (document order) with *name*."""
        for node in self.iter_descendants():
            if node.display_name == name:
                return node
        return None


def move_node(node: TreeNode, new_parent: TreeNode, index: Optional[int] = None) -> None:
    """Reparent *node* under *new_parent* at *index* (append when None).

    The node keeps its own children untouched. If the insert is rejected the
    node is put back where it was before the error propagates.
    """
    old_parent = node.parent
    old_index = node.detach()
    try:
        new_parent.insert_child(index, node)
    except Exception:
        if old_parent is not None and node.parent is None:
            old_parent.insert_child(old_index, node)
        raise
