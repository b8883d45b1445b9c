from __future__ import annotations

"""Value objects produced and consumed by the wrap (grouping) engine."""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from .tree import TreeNode

__all__ = ["GroupKey", "LeafRecord", "GroupingOperation"]


@dataclass(frozen=True)
class GroupKey:
    """Identity of a cluster: where the leaves live and what they are called.

    Attributes
    ----------
    ancestor_path
        Display names from the wrap root down to the leaves' parent.
    normalized_name
        Canonical name pattern shared by the leaves.
    parent_id
        Identity of the leaves' parent. Sibling scopes that share a name
        also share a path, so the path alone cannot keep them apart.
    """

    ancestor_path: Tuple[str, ...]
    normalized_name: str
    parent_id: str = ""


@dataclass(frozen=True)
class LeafRecord:
    """A groupable leaf found by discovery, with its position at discovery time."""

    node: TreeNode
    parent: TreeNode
    original_index: int
    ancestor_path: str
    ancestor_names: Tuple[str, ...] = ()


@dataclass(eq=False)
class GroupingOperation:
    """One container's worth of a wrap run, kept for undo/redo.

    ``original_indices`` holds the position each leaf had under
    ``original_parent`` before the run touched the tree. ``container`` is
    replaced when redo has to recreate a container that disappeared.
    ``created`` is False when the run merged into a container that was
    already in the document; undo never removes such a container.
    """

    container: TreeNode
    moved_leaves: List[TreeNode]
    original_parent: TreeNode
    original_indices: Dict[TreeNode, int] = field(default_factory=dict)
    label: str = ""
    created: bool = True
