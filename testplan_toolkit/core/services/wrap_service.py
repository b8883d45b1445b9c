from __future__ import annotations

"""Service layer for the ``@wrap`` command.

Groups the samplers of a thread group into Transaction Controllers based on
name similarity, and records what it did so the run can be undone.

Scope and guarantees:
- Operates purely in-memory on TestPlanContext, no file I/O nor UI imports.
- Invalid requests return ``WrapResult(success=False, ...)`` with a clear
  message and leave the tree untouched; nothing raises past the public API.
- Partial runs are accepted: a group whose container cannot be created is
  skipped, a leaf that cannot be moved stays where it is, and the recorded
  operations always match the tree as it was actually changed.

Pipeline
--------
``collect_leaves`` -> ``group_leaves`` -> ``apply_group`` per group ->
``OperationLog.record_run``.

Examples
--------
Basic usage:

    service = WrapService()
    result = service.wrap(ctx, thread_group)
    print(result.message)

"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from testplan_toolkit.config import ConfigManager
from testplan_toolkit.core.models import (
    GroupingOperation,
    GroupKey,
    LeafRecord,
    NodeKind,
    TestPlanContext,
    TreeError,
    TreeNode,
    move_node,
)
from testplan_toolkit.core.services.results import WrapResult
from testplan_toolkit.core.utils import format_group_label, join_ancestor_path, normalize_name

__all__ = [
    "ContainerFactory",
    "Mover",
    "StructureObserver",
    "WrapService",
    "default_container_factory",
]

logger = logging.getLogger(__name__)

ContainerFactory = Callable[[str, TreeNode], Optional[TreeNode]]
Mover = Callable[[TreeNode, TreeNode, Optional[int]], None]
StructureObserver = Callable[[TreeNode], None]

DEFAULT_LABEL_TEMPLATE = "Transaction - {pattern}"
DEFAULT_PATH_SEPARATOR = " > "


def default_container_factory(label: str, parent: TreeNode) -> TreeNode:
    """Create a detached Transaction Controller node named *label*."""
    return TreeNode(label, NodeKind.GROUPING_CONTAINER, testclass="TransactionController")


def notify_structure_changed(observer: Optional[StructureObserver], node: Optional[TreeNode]) -> None:
    """Tell the host that *node*'s children changed; observer errors are logged only."""
    if observer is None or node is None:
        return
    try:
        observer(node)
    except Exception:
        logger.warning("Structure observer failed for %r", node, exc_info=True)


class WrapService:
    """Groups similar samplers under Transaction Controllers.

    Parameters
    ----------
    container_factory
        ``(label, parent) -> TreeNode | None`` creating a grouping container.
        The returned node may be detached or attached anywhere; the service
        moves it into place. ``None`` (or an exception) skips the group.
    mover
        ``(node, new_parent, index) -> None`` reparenting a node together with
        its subtree; ``index=None`` appends. Raises on failure.
    on_structure_changed
        Called with each parent whose children changed, so a UI can repaint.
    config
        Wrap settings (``label_template``, ``path_separator``,
        ``root_testclasses``). Defaults to the ``wrap`` config section.
    """

    def __init__(
        self,
        container_factory: Optional[ContainerFactory] = None,
        mover: Optional[Mover] = None,
        on_structure_changed: Optional[StructureObserver] = None,
        config: Optional[Dict[str, Any]] = None,
    ) -> None:
        cfg = config if config is not None else ConfigManager().get_wrap_config()
        self._label_template: str = cfg.get("label_template") or DEFAULT_LABEL_TEMPLATE
        self._separator: str = cfg.get("path_separator") or DEFAULT_PATH_SEPARATOR
        self._root_testclasses = frozenset(cfg.get("root_testclasses") or ())
        self._container_factory: ContainerFactory = container_factory or default_container_factory
        self._mover: Mover = mover or move_node
        self._on_structure_changed = on_structure_changed

    @property
    def container_factory(self) -> ContainerFactory:
        return self._container_factory

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def wrap(self, context: TestPlanContext, root: Union[TreeNode, str, None]) -> WrapResult:
        """Group the samplers under *root* (a thread group node or its id).

        A successful run replaces the document's undo history with the
        operations of this run and clears redo history.
        """
        root_node, problem = self._resolve_root(context, root)
        if root_node is None:
            logger.warning("Wrap FAIL: not_applicable reason=%s", problem)
            return WrapResult(False, problem, {"reason": "not_applicable"}, groups_created=0)

        logger.info("Wrap: root=%s", root_node.display_name)
        leaves = self.collect_leaves(root_node)
        logger.info("Wrap: found %d samplers under '%s'", len(leaves), root_node.display_name)
        if not leaves:
            logger.info("Wrap noop: no samplers root=%s", root_node.display_name)
            return WrapResult(
                False,
                "No samplers found in the selected Thread Group.",
                {"reason": "no_leaves", "root": root_node.id},
                groups_created=0,
            )

        groups = self.group_leaves(leaves)
        logger.info("Wrap: %d groups based on similarity", len(groups))

        operations: List[GroupingOperation] = []
        created = reused = skipped = 0
        for key, records in groups.items():
            operation, was_reused = self._apply_group(records, key)
            if operation is None:
                skipped += 1
                continue
            operations.append(operation)
            if was_reused:
                reused += 1
            else:
                created += 1

        leaves_moved = sum(len(op.moved_leaves) for op in operations)
        details = {
            "root": root_node.id,
            "leaves_found": len(leaves),
            "leaves_moved": leaves_moved,
            "containers_created": created,
            "containers_reused": reused,
            "groups_skipped": skipped,
        }

        if not operations:
            # Nothing changed, so the previous run stays undoable.
            logger.warning("Wrap FAIL: no group could be applied root=%s groups=%d", root_node.display_name, len(groups))
            return WrapResult(False, "Could not create any Transaction Controller.", details, groups_created=0)

        context.operation_log.record_run(operations)
        notify_structure_changed(self._on_structure_changed, root_node)

        message = (
            f"Successfully grouped {leaves_moved} samplers into {len(operations)} "
            f"Transaction Controllers based on similarity."
        )
        if skipped:
            message += f" {skipped} group(s) could not be wrapped."
        logger.info(
            "Wrap OK: root=%s groups=%d leaves=%d created=%d reused=%d skipped=%d",
            root_node.display_name, len(operations), leaves_moved, created, reused, skipped,
        )
        return WrapResult(True, message, details, groups_created=len(operations))

    def collect_leaves(self, root: TreeNode) -> List[LeafRecord]:
        """Return the groupable leaves below *root* in document order.

        ``root`` itself is never collected. Subtrees rooted at a grouping
        container are skipped entirely; every other non-leaf is searched.
        The tree is not modified.
        """
        records: List[LeafRecord] = []

        def visit(node: TreeNode, names: Tuple[str, ...]) -> None:
            for index, child in enumerate(node.children):
                if child.kind is NodeKind.LEAF_GROUPABLE:
                    records.append(LeafRecord(
                        node=child,
                        parent=node,
                        original_index=index,
                        ancestor_path=join_ancestor_path(names, self._separator),
                        ancestor_names=names,
                    ))
                elif child.kind is NodeKind.GROUPING_CONTAINER:
                    logger.debug("Skipping grouping container: '%s'", child.display_name)
                else:
                    visit(child, names + (child.display_name,))

        visit(root, (root.display_name,))
        return records

    def group_leaves(self, leaves: List[LeafRecord]) -> Dict[GroupKey, List[LeafRecord]]:
        """Partition *leaves* by parent, then by ancestor path and name pattern.

        Groups come back in first-seen order (parents, then patterns within a
        parent), which is the order they are applied in.
        """
        by_parent: Dict[TreeNode, List[LeafRecord]] = {}
        for record in leaves:
            by_parent.setdefault(record.parent, []).append(record)

        groups: Dict[GroupKey, List[LeafRecord]] = {}
        for parent, records in by_parent.items():
            for record in records:
                key = self.make_group_key(record)
                logger.debug("Sampler '%s' -> pattern '%s'", record.node.display_name, key.normalized_name)
                groups.setdefault(key, []).append(record)

        for key, records in groups.items():
            logger.debug(
                "Group '%s: %s' has %d samplers",
                self._separator.join(key.ancestor_path), key.normalized_name, len(records),
            )
        return groups

    def make_group_key(self, record: LeafRecord) -> GroupKey:
        names = record.ancestor_names or tuple(record.ancestor_path.split(self._separator))
        return GroupKey(
            ancestor_path=names,
            normalized_name=normalize_name(record.node.display_name),
            parent_id=record.parent.id,
        )

    def label_for(self, key: GroupKey) -> str:
        return format_group_label(key.normalized_name, self._label_template)

    def apply_group(self, records: List[LeafRecord], key: Optional[GroupKey] = None) -> Optional[GroupingOperation]:
        """Wrap one group of sibling leaves into a grouping container.

        Returns the recorded operation, or None when the group was skipped
        (empty group, container creation failure, or no leaf could be moved).
        """
        operation, _ = self._apply_group(records, key)
        return operation

    def is_grouping_root(self, node: Optional[TreeNode]) -> bool:
        """Return True if *node* may be selected as the root of a wrap run."""
        if node is None or node.kind is not NodeKind.CONTAINER:
            return False
        if not node.testclass or not self._root_testclasses:
            return True
        return node.testclass.rsplit(".", 1)[-1] in self._root_testclasses

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _resolve_root(
        self, context: Optional[TestPlanContext], root: Union[TreeNode, str, None]
    ) -> Tuple[Optional[TreeNode], str]:
        select_msg = "Please select a Thread Group in the test plan before using the @wrap command."
        if context is None or context.root is None:
            return None, "No test plan is loaded."
        if root is None:
            return None, select_msg
        node = root if isinstance(root, TreeNode) else context.root.find_by_id(str(root))
        if node is None:
            return None, select_msg
        if not context.contains(node):
            return None, "The selected element is no longer part of the test plan."
        if not self.is_grouping_root(node):
            kind = node.testclass or node.kind.value
            return None, f"{select_msg} The currently selected element is a {kind}."
        return node, ""

    def _apply_group(
        self, records: List[LeafRecord], key: Optional[GroupKey]
    ) -> Tuple[Optional[GroupingOperation], bool]:
        if not records:
            return None, False

        ordered = sorted(records, key=lambda r: r.original_index)
        parent = ordered[0].parent
        if key is None:
            key = self.make_group_key(ordered[0])
        label = self.label_for(key)
        logger.info("Wrap: group '%s' with %d samplers under '%s'", label, len(ordered), parent.display_name)

        container = self._find_grouping_container(parent, label)
        reused = container is not None
        if container is None:
            container = self._create_container(label, parent, ordered[0].node)
            if container is None:
                return None, False
        else:
            logger.info("Wrap: reusing existing container '%s'", label)

        moved: List[TreeNode] = []
        original_indices: Dict[TreeNode, int] = {}
        for record in ordered:
            leaf = record.node
            if leaf.parent is not parent:
                logger.warning("Wrap FAIL: move leaf=%s reason=moved_since_discovery", leaf.display_name)
                continue
            try:
                self._mover(leaf, container, None)
            except Exception as exc:
                logger.error("Wrap FAIL: move leaf=%s container=%s error=%s", leaf.display_name, label, exc)
                continue
            moved.append(leaf)
            original_indices[leaf] = record.original_index
            logger.debug("Moved sampler '%s' into '%s'", leaf.display_name, label)

        if not moved:
            if not reused and len(container) == 0 and container.parent is parent:
                parent.remove_child(container)
            notify_structure_changed(self._on_structure_changed, parent)
            logger.warning("Wrap FAIL: group '%s' moved no samplers", label)
            return None, reused

        notify_structure_changed(self._on_structure_changed, container)
        notify_structure_changed(self._on_structure_changed, parent)
        if len(moved) < len(ordered):
            logger.warning("Wrap PARTIAL: group '%s' moved=%d total=%d", label, len(moved), len(ordered))
        return GroupingOperation(
            container=container,
            moved_leaves=moved,
            original_parent=parent,
            original_indices=original_indices,
            label=label,
            created=not reused,
        ), reused

    def _create_container(self, label: str, parent: TreeNode, first_leaf: TreeNode) -> Optional[TreeNode]:
        """Create a container and put it where *first_leaf* currently sits."""
        try:
            container = self._container_factory(label, parent)
        except Exception as exc:
            logger.error("Wrap FAIL: create container label=%s error=%s", label, exc)
            return None
        if container is None:
            logger.error("Wrap FAIL: create container label=%s returned nothing", label)
            return None

        try:
            container.detach()
            parent.insert_child(parent.index_of(first_leaf), container)
        except (TreeError, ValueError) as exc:
            logger.error("Wrap FAIL: place container label=%s error=%s", label, exc)
            container.detach()
            return None
        logger.info("Wrap: created container '%s' at index %d under '%s'",
                    label, parent.index_of(container), parent.display_name)
        return container

    @staticmethod
    def _find_grouping_container(parent: TreeNode, label: str) -> Optional[TreeNode]:
        for child in parent.children:
            if child.kind is NodeKind.GROUPING_CONTAINER and child.display_name == label:
                return child
        return None
