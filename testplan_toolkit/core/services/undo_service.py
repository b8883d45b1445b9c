from __future__ import annotations

"""Undo/redo of wrap runs for a TestPlanContext.

This service is UI-agnostic and works entirely on the operation log stored on
the context; it never re-runs discovery or grouping.

Design principles
-----------------
- No UI imports and no I/O.
- A run is one unit: undo restores every operation of the last run, redo
  re-applies all of them in their original order.
- References recorded by a run may go stale (nodes deleted by the user in
  between). Stale nodes are skipped and simply not counted.
- Only one run is kept. Undo moves it to the redo stack, redo moves it back,
  and a new wrap run replaces both.

Notes
-----
Undo puts every leaf back at the index it had before the run. Containers the
run created are taken out before the leaves are re-inserted in ascending index
order, which reproduces the original sibling order exactly as long as nothing
else changed the parent in between. A container that was already in the
document when the run merged into it is never removed, even when undo leaves
it empty.

Redo cannot know where a deleted container used to sit, so a container that
has to be recreated is appended at the end of the original parent.
"""

import logging
from typing import Dict, List, Optional, Tuple

from testplan_toolkit.core.models import (
    GroupingOperation,
    OperationLog,
    TestPlanContext,
    TreeError,
    TreeNode,
    move_node,
)
from testplan_toolkit.core.services.results import RedoResult, UndoResult
from testplan_toolkit.core.services.wrap_service import (
    ContainerFactory,
    Mover,
    StructureObserver,
    default_container_factory,
    notify_structure_changed,
)

__all__ = ["WrapUndoService"]

logger = logging.getLogger(__name__)


class WrapUndoService:
    """Undo and redo the last wrap run of a document.

    Parameters
    ----------
    container_factory
        Used by redo to recreate a container that is no longer in the
        document. Should be the same factory the wrap service uses.
    mover
        ``(node, new_parent, index) -> None`` used for every reparent.
    on_structure_changed
        Called with each parent whose children changed.

    Examples
    --------
    >>> ctx = TestPlanContext(root=plan)
    >>> WrapService().wrap(ctx, thread_group)
    >>> svc = WrapUndoService()
    >>> svc.undo(ctx).restored_leaf_count
    4
    >>> svc.redo(ctx).regrouped_leaf_count
    4
    """

    def __init__(
        self,
        container_factory: Optional[ContainerFactory] = None,
        mover: Optional[Mover] = None,
        on_structure_changed: Optional[StructureObserver] = None,
    ) -> None:
        self._container_factory: ContainerFactory = container_factory or default_container_factory
        self._mover: Mover = mover or move_node
        self._on_structure_changed = on_structure_changed

    # --------------------------------------------------------------------- API

    @staticmethod
    def record_run(context: TestPlanContext, operations: List[GroupingOperation]) -> None:
        """Make *operations* the undoable run and drop redo history."""
        context.operation_log.record_run(operations)

    def undo(self, context: TestPlanContext) -> UndoResult:
        """Move the leaves of the last run back to where they were."""
        log = self._log(context)
        if log is None or not log.can_undo():
            return UndoResult(False, "Nothing to undo.", {"reason": "empty_history"}, restored_leaf_count=0)

        operations = log.take_undo()
        logger.info("Undo: operations=%d", len(operations))

        # 1. take the leaves out of their containers
        pending: List[Tuple[TreeNode, TreeNode, int]] = []
        skipped = 0
        for operation in operations:
            parent = operation.original_parent
            if not context.contains(parent):
                logger.warning("Undo skip: original parent gone label=%s", operation.label)
                skipped += len(operation.moved_leaves)
                continue
            for leaf in operation.moved_leaves:
                if not context.contains(leaf) or leaf.parent is None:
                    logger.warning("Undo skip: leaf no longer in document leaf=%s", leaf.display_name)
                    skipped += 1
                    continue
                current_parent = leaf.parent
                try:
                    current_parent.remove_child(leaf)
                except ValueError as exc:
                    logger.error("Undo FAIL: detach leaf=%s error=%s", leaf.display_name, exc)
                    skipped += 1
                    continue
                notify_structure_changed(self._on_structure_changed, current_parent)
                pending.append((leaf, parent, operation.original_indices.get(leaf, 0)))

        # 2. drop containers the run created and left empty
        removed_containers = 0
        for operation in operations:
            container = operation.container
            if not operation.created:
                continue
            if context.contains(container) and len(container) == 0 and container.parent is not None:
                holder = container.parent
                holder.remove_child(container)
                removed_containers += 1
                notify_structure_changed(self._on_structure_changed, holder)
                logger.info("Undo: removed empty container '%s'", operation.label)

        # 3. re-insert, lowest original index first, per parent
        restored = 0
        for leaf, parent, index in sorted(pending, key=lambda item: item[2]):
            try:
                self._mover(leaf, parent, min(index, len(parent)))
            except Exception as exc:
                logger.error("Undo FAIL: restore leaf=%s error=%s", leaf.display_name, exc)
                skipped += 1
                continue
            restored += 1
        for parent in _unique(p for _, p, _ in pending):
            notify_structure_changed(self._on_structure_changed, parent)

        log.redo_stack = operations
        details = {
            "operations": len(operations),
            "containers_removed": removed_containers,
            "skipped": skipped,
        }
        logger.info("Undo OK: restored=%d skipped=%d containers_removed=%d", restored, skipped, removed_containers)
        return UndoResult(
            restored > 0,
            f"Successfully unwrapped {restored} samplers.",
            details,
            restored_leaf_count=restored,
        )

    def redo(self, context: TestPlanContext) -> RedoResult:
        """Re-apply the last undone run, in its original order."""
        log = self._log(context)
        if log is None or not log.can_redo():
            return RedoResult(False, "Nothing to redo.", {"reason": "empty_history"}, regrouped_leaf_count=0)

        operations = log.take_redo()
        logger.info("Redo: operations=%d", len(operations))

        regrouped = 0
        skipped = 0
        recreated = 0
        for operation in operations:
            if not context.contains(operation.original_parent):
                logger.warning("Redo skip: original parent gone label=%s", operation.label)
                skipped += len(operation.moved_leaves)
                continue

            if not context.contains(operation.container):
                container = self._recreate_container(operation)
                if container is None:
                    skipped += len(operation.moved_leaves)
                    continue
                operation.container = container
                operation.created = True
                recreated += 1

            for leaf in operation.moved_leaves:
                if not context.contains(leaf):
                    logger.warning("Redo skip: leaf no longer in document leaf=%s", leaf.display_name)
                    skipped += 1
                    continue
                previous_parent = leaf.parent
                try:
                    self._mover(leaf, operation.container, None)
                except Exception as exc:
                    logger.error("Redo FAIL: move leaf=%s error=%s", leaf.display_name, exc)
                    skipped += 1
                    continue
                regrouped += 1
                notify_structure_changed(self._on_structure_changed, previous_parent)

            notify_structure_changed(self._on_structure_changed, operation.container)
            notify_structure_changed(self._on_structure_changed, operation.original_parent)

        log.undo_stack = operations
        details = {"operations": len(operations), "containers_recreated": recreated, "skipped": skipped}
        logger.info("Redo OK: regrouped=%d skipped=%d containers_recreated=%d", regrouped, skipped, recreated)
        return RedoResult(
            regrouped > 0,
            f"Successfully rewrapped {regrouped} samplers.",
            details,
            regrouped_leaf_count=regrouped,
        )

    @staticmethod
    def can_undo(context: TestPlanContext) -> bool:
        return context.operation_log.can_undo()

    @staticmethod
    def can_redo(context: TestPlanContext) -> bool:
        return context.operation_log.can_redo()

    @staticmethod
    def clear(context: TestPlanContext) -> None:
        """Clear both undo and redo histories."""
        context.operation_log.clear()

    # --------------------------------------------------------------- Internals

    @staticmethod
    def _log(context: Optional[TestPlanContext]) -> Optional[OperationLog]:
        if context is None:
            return None
        return context.operation_log

    def _recreate_container(self, operation: GroupingOperation) -> Optional[TreeNode]:
        parent = operation.original_parent
        label = operation.label or operation.container.display_name
        try:
            container = self._container_factory(label, parent)
        except Exception as exc:
            logger.error("Redo FAIL: recreate container label=%s error=%s", label, exc)
            return None
        if container is None:
            logger.error("Redo FAIL: recreate container label=%s returned nothing", label)
            return None
        try:
            container.detach()
            parent.append_child(container)
        except TreeError as exc:
            logger.error("Redo FAIL: place container label=%s error=%s", label, exc)
            return None
        logger.info("Redo: recreated container '%s' at end of '%s'", label, parent.display_name)
        return container


def _unique(nodes) -> List[TreeNode]:
    seen: Dict[int, TreeNode] = {}
    for node in nodes:
        seen.setdefault(id(node), node)
    return list(seen.values())
