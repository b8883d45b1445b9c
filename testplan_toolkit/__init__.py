"""Top-level package for Test Plan Toolkit.

This package hosts a GUI-agnostic implementation of test plan restructuring
(the ``@wrap`` command and its undo/redo). Front-ends (CLI, embedding hosts)
should only depend on the public API exposed here rather than importing
internal modules directly.
"""

from .core.models import TestPlanContext, TreeNode, NodeKind  # re-export for convenience
from .core.services import WrapService, WrapUndoService

__all__: list[str] = [
    "TestPlanContext",
    "TreeNode",
    "NodeKind",
    "WrapService",
    "WrapUndoService",
]
