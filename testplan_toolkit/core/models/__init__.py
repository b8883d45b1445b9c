from __future__ import annotations

"""Shared data structures used across the Test Plan Toolkit core.

This package is intentionally free of UI / I/O code so that the contained
objects can be reused in any context (unit-tests, CLI, embedding hosts).
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .grouping import GroupKey, GroupingOperation, LeafRecord
from .operation_log import OperationLog
from .tree import NodeKind, TreeError, TreeNode, move_node

__all__ = [
    "TestPlanContext",
    "TreeNode",
    "NodeKind",
    "TreeError",
    "move_node",
    "GroupKey",
    "LeafRecord",
    "GroupingOperation",
    "OperationLog",
]


@dataclass
class TestPlanContext:
    """In-memory representation of an open test plan.

    Attributes
    ----------
    root
        Document root node (holds the Test Plan element and its subtree).
    source_path
        File the plan was loaded from, when any.
    metadata
        Arbitrary key/value pairs captured at import time (JMX root attributes...).
    operation_log
        Wrap undo/redo history for this document only.
    """

    __test__ = False  # not a pytest test class despite the name

    root: Optional[TreeNode] = None
    source_path: Optional[Path] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    operation_log: OperationLog = field(default_factory=OperationLog)

    def reset_history(self) -> None:
        """Forget wrap history (document closed or replaced)."""
        self.operation_log.clear()

    def replace_root(self, root: Optional[TreeNode]) -> None:
        self.root = root
        self.reset_history()

    def contains(self, node: Optional[TreeNode]) -> bool:
        """Return True if *node* is attached to this document."""
        return self.root is not None and self.root.contains(node)
