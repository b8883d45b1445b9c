import pytest

from testplan_toolkit.core.models import NodeKind, TreeNode, move_node
from testplan_toolkit.core.services import UndoResult, RedoResult, WrapService, WrapUndoService


@pytest.fixture
def wrap():
    return WrapService()


@pytest.fixture
def undo_service():
    return WrapUndoService()


def test_nothing_to_undo_or_redo(make_plan, undo_service):
    ctx, tg = make_plan(["Login"])

    undo = undo_service.undo(ctx)
    redo = undo_service.redo(ctx)

    assert isinstance(undo, UndoResult) and isinstance(redo, RedoResult)
    assert (undo.success, undo.message, undo.restored_leaf_count) == (False, "Nothing to undo.", 0)
    assert (redo.success, redo.message, redo.regrouped_leaf_count) == (False, "Nothing to redo.", 0)
    assert not undo_service.can_undo(ctx)
    assert not undo_service.can_redo(ctx)


def test_undo_restores_exact_original_order(make_plan, names, wrap, undo_service):
    ctx, tg = make_plan(["Home", "Login 1", "~Think Time", "Login 2", "Search"])
    wrap.wrap(ctx, tg)

    result = undo_service.undo(ctx)

    assert result.success is True
    assert result.restored_leaf_count == 5
    assert result.message == "Successfully unwrapped 5 samplers."
    assert names(tg) == ["Home", "Login 1", "Think Time", "Login 2", "Search"]
    assert all(child.parent is tg for child in tg.children)
    assert result.details["containers_removed"] == 3


def test_undo_restores_nested_sections(make_plan, outline, wrap, undo_service):
    ctx, tg = make_plan([
        ("Section A", ["Login 1", "~x", "Login 2"]),
        ("Section B", [("Pay 1", ["~extract"]), "Pay 2"]),
    ])
    before = outline(tg)
    wrap.wrap(ctx, tg)

    undo_service.undo(ctx)

    assert outline(tg) == before


def test_undo_keeps_reused_container(make_plan, outline, wrap, undo_service):
    ctx, tg = make_plan([("#Transaction - Login", ["Login 1"]), "Login 3", "Login 4"])
    before = outline(tg)
    wrap.wrap(ctx, tg)

    undo_service.undo(ctx)

    assert outline(tg) == before


def test_undo_keeps_empty_container_that_predates_the_run(make_plan, names, wrap, undo_service):
    ctx, tg = make_plan([("#Transaction - Login", []), "Login 1", "Login 2"])
    existing = tg.children[0]
    wrap.wrap(ctx, tg)
    assert ctx.operation_log.undo_stack[0].created is False

    result = undo_service.undo(ctx)

    assert result.restored_leaf_count == 2
    assert result.details["containers_removed"] == 0
    assert names(tg) == ["Transaction - Login", "Login 1", "Login 2"]
    assert tg.children[0] is existing
    assert len(existing) == 0


def test_undo_then_redo_matches_wrapped_tree(make_plan, outline, wrap, undo_service):
    ctx, tg = make_plan(["Login", "Login 2", "Checkout 1", "Checkout 2"])
    wrap.wrap(ctx, tg)
    wrapped = outline(tg)

    undo_service.undo(ctx)
    assert undo_service.can_redo(ctx)
    assert not undo_service.can_undo(ctx)

    result = undo_service.redo(ctx)

    assert result.success is True
    assert result.regrouped_leaf_count == 4
    assert result.message == "Successfully rewrapped 4 samplers."
    assert outline(tg) == wrapped
    assert undo_service.can_undo(ctx)
    assert not undo_service.can_redo(ctx)


def test_redo_reuses_container_objects_still_in_document(make_plan, wrap, undo_service):
    ctx, tg = make_plan([("#Transaction - Login", ["Login 1"]), "Login 2"])
    container = tg.children[0]
    wrap.wrap(ctx, tg)
    undo_service.undo(ctx)

    undo_service.redo(ctx)

    assert tg.children == (container,)
    assert [c.display_name for c in container.children] == ["Login 1", "Login 2"]


def test_second_undo_reports_nothing(make_plan, names, wrap, undo_service):
    ctx, tg = make_plan(["Login", "Login 2"])
    wrap.wrap(ctx, tg)
    undo_service.undo(ctx)

    result = undo_service.undo(ctx)

    assert result.success is False
    assert result.restored_leaf_count == 0
    assert names(tg) == ["Login", "Login 2"]


def test_cycle_can_repeat(make_plan, outline, wrap, undo_service):
    ctx, tg = make_plan(["A 1", "A 2", "B 1"])
    original = outline(tg)
    wrap.wrap(ctx, tg)
    wrapped = outline(tg)

    for _ in range(3):
        undo_service.undo(ctx)
        assert outline(tg) == original
        undo_service.redo(ctx)
        assert outline(tg) == wrapped


def test_deleted_leaf_is_skipped(make_plan, names, wrap, undo_service):
    ctx, tg = make_plan(["Login", "Login 2", "Login 3"])
    wrap.wrap(ctx, tg)
    container = tg.children[0]
    container.children[1].detach()

    result = undo_service.undo(ctx)

    assert result.restored_leaf_count == 2
    assert result.details["skipped"] == 1
    assert names(tg) == ["Login", "Login 3"]


def test_leaf_deleted_before_redo_is_skipped(make_plan, names, wrap, undo_service):
    ctx, tg = make_plan(["Login", "Login 2"])
    wrap.wrap(ctx, tg)
    undo_service.undo(ctx)
    tg.children[1].detach()

    result = undo_service.redo(ctx)

    assert result.regrouped_leaf_count == 1
    assert names(tg.children[0]) == ["Login"]


def test_redo_recreates_deleted_container_at_end(make_plan, names, wrap, undo_service):
    ctx, tg = make_plan(["Login", "Login 2", "~Footer"])
    wrap.wrap(ctx, tg)
    old_container = tg.children[0]
    undo_service.undo(ctx)
    assert old_container.parent is None

    result = undo_service.redo(ctx)

    assert result.regrouped_leaf_count == 2
    assert result.details["containers_recreated"] == 1
    assert names(tg) == ["Footer", "Transaction - Login"]
    assert tg.children[-1] is not old_container
    assert tg.children[-1].kind is NodeKind.GROUPING_CONTAINER
    assert names(tg.children[-1]) == ["Login", "Login 2"]


def test_redo_skips_group_when_container_cannot_be_recreated(make_plan, names, wrap):
    ctx, tg = make_plan(["Login", "Search"])
    wrap.wrap(ctx, tg)
    undo_service = WrapUndoService(container_factory=lambda label, parent: None)
    undo_service.undo(ctx)

    result = undo_service.redo(ctx)

    assert result.success is False
    assert result.regrouped_leaf_count == 0
    assert names(tg) == ["Login", "Search"]


def test_undo_skips_operations_whose_parent_is_gone(make_plan, outline, wrap, undo_service):
    ctx, tg = make_plan([("Section A", ["Login 1"]), ("Section B", ["Login 2"])])
    wrap.wrap(ctx, tg)
    tg.children[0].detach()

    result = undo_service.undo(ctx)

    assert result.restored_leaf_count == 1
    assert outline(tg) == [{"Section B": ["Login 2"]}]


def test_new_run_clears_redo(make_plan, wrap, undo_service):
    ctx, tg = make_plan(["Login", "Login 2", "Search"])
    wrap.wrap(ctx, tg)
    undo_service.undo(ctx)
    assert undo_service.can_redo(ctx)

    wrap.wrap(ctx, tg)

    assert undo_service.can_undo(ctx)
    assert not undo_service.can_redo(ctx)
    assert undo_service.redo(ctx).message == "Nothing to redo."


def test_only_last_run_is_undoable(make_plan, names, wrap, undo_service):
    ctx, tg = make_plan(["Login", "Login 2"])
    wrap.wrap(ctx, tg)
    tg.append_child(TreeNode("Search", NodeKind.LEAF_GROUPABLE))
    wrap.wrap(ctx, tg)

    undo_service.undo(ctx)

    assert names(tg) == ["Transaction - Login", "Search"]
    assert undo_service.undo(ctx).success is False


def test_record_run_and_clear(make_plan, wrap, undo_service):
    ctx, tg = make_plan(["Login"])
    operation = wrap.apply_group(wrap.collect_leaves(tg))

    WrapUndoService.record_run(ctx, [operation])
    assert undo_service.can_undo(ctx)

    undo_service.clear(ctx)
    assert not undo_service.can_undo(ctx)
    assert not undo_service.can_redo(ctx)


def test_custom_mover_is_used(make_plan, names, wrap):
    ctx, tg = make_plan(["Login", "Login 2"])
    wrap.wrap(ctx, tg)
    calls = []

    def mover(node, new_parent, index=None):
        calls.append((node.display_name, new_parent.display_name, index))
        move_node(node, new_parent, index)

    WrapUndoService(mover=mover).undo(ctx)

    assert calls == [("Login", "T", 0), ("Login 2", "T", 1)]
    assert names(tg) == ["Login", "Login 2"]


def test_observer_notified_on_undo_and_redo(make_plan, wrap):
    ctx, tg = make_plan(["Login"])
    wrap.wrap(ctx, tg)
    seen = []
    service = WrapUndoService(on_structure_changed=seen.append)

    service.undo(ctx)
    assert tg in seen

    seen.clear()
    service.redo(ctx)
    assert tg in seen
    assert tg.children[0] in seen


def test_histories_are_per_document(make_plan, wrap, undo_service):
    ctx_a, tg_a = make_plan(["Login", "Login 2"])
    ctx_b, tg_b = make_plan(["Search"])
    wrap.wrap(ctx_a, tg_a)

    assert undo_service.can_undo(ctx_a)
    assert not undo_service.can_undo(ctx_b)
    assert undo_service.undo(ctx_b).message == "Nothing to undo."
