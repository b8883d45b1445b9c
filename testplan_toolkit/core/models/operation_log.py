from __future__ import annotations

"""Operation log backing undo/redo of wrap runs.

Scope:
- Pure core model (no I/O, no UI), one instance per open document.
- Holds a single run: recording a new run replaces the undo stack and
  drops any redo history.
- Never persisted; cleared when the document is closed or replaced.

The tree mutations themselves live in
:class:`testplan_toolkit.core.services.undo_service.WrapUndoService`.
"""

from dataclasses import dataclass, field
from typing import Iterable, List

from .grouping import GroupingOperation

__all__ = ["OperationLog"]


@dataclass
class OperationLog:
    """Undo and redo stacks of :class:`GroupingOperation` entries.

    Attributes
    ----------
    undo_stack
        Operations of the last applied run, in application order.
    redo_stack
        Operations of the last undone run, in application order.
    """

    undo_stack: List[GroupingOperation] = field(default_factory=list)
    redo_stack: List[GroupingOperation] = field(default_factory=list)

    def record_run(self, operations: Iterable[GroupingOperation]) -> None:
        """Replace the undo history with *operations* and clear redo."""
        self.undo_stack = list(operations)
        self.redo_stack = []

    def take_undo(self) -> List[GroupingOperation]:
        """Pop the whole undo stack as one unit."""
        ops, self.undo_stack = self.undo_stack, []
        return ops

    def take_redo(self) -> List[GroupingOperation]:
        """Pop the whole redo stack as one unit."""
        ops, self.redo_stack = self.redo_stack, []
        return ops

    def can_undo(self) -> bool:
        return bool(self.undo_stack)

    def can_redo(self) -> bool:
        return bool(self.redo_stack)

    def clear(self) -> None:
        self.undo_stack.clear()
        self.redo_stack.clear()

    def __len__(self) -> int:
        return len(self.undo_stack) + len(self.redo_stack)
