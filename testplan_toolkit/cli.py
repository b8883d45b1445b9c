"""Command-line front-end for Test Plan Toolkit.

Examples:
  testplan-toolkit tree plan.jmx
  testplan-toolkit wrap plan.jmx --thread-group "Users" -o plan_wrapped.jmx
  testplan-toolkit shell plan.jmx     # interactive: wrap / undo / redo / save
"""

from __future__ import annotations

import argparse
import logging
import shlex
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, TextIO

from testplan_toolkit.core.generators import jmx_container_factory, save_jmx
from testplan_toolkit.core.importers import JmxImporter, JmxImportError
from testplan_toolkit.core.models import NodeKind, TestPlanContext, TreeNode
from testplan_toolkit.core.services import WrapService, WrapUndoService
from testplan_toolkit.logging_config import setup_logging
from testplan_toolkit.version import get_app_version

logger = logging.getLogger(__name__)

_KIND_MARKERS = {
    NodeKind.CONTAINER: "+",
    NodeKind.GROUPING_CONTAINER: "#",
    NodeKind.LEAF_GROUPABLE: "-",
    NodeKind.LEAF_OTHER: ".",
}


def render_tree(node: TreeNode, indent: str = "  ") -> str:
    """Return an indented outline of the subtree below *node*."""
    lines: List[str] = []

    def walk(current: TreeNode, depth: int) -> None:
        for child in current.children:
            lines.append(f"{indent * depth}{_KIND_MARKERS[child.kind]} {child.display_name}")
            walk(child, depth + 1)

    walk(node, 0)
    return "\n".join(lines)


class TestPlanShell:
    """Binds one open document to the wrap and undo services.

    Each command returns a one-line status (or the tree outline), ready to be
    printed by whatever front-end drives the shell.
    """

    __test__ = False

    def __init__(self, context: TestPlanContext) -> None:
        self.context = context
        self.wrap_service = WrapService(container_factory=jmx_container_factory)
        self.undo_service = WrapUndoService(container_factory=jmx_container_factory)
        self._commands: Dict[str, Callable[[List[str]], str]] = {
            "tree": self._cmd_tree,
            "wrap": self._cmd_wrap,
            "undo": self._cmd_undo,
            "redo": self._cmd_redo,
            "save": self._cmd_save,
            "help": self._cmd_help,
        }

    def find_thread_group(self, name: Optional[str]) -> Optional[TreeNode]:
        """Find a wrap root by name; without a name, the only one there is."""
        root = self.context.root
        if root is None:
            return None
        candidates = [n for n in root.iter_descendants() if self.wrap_service.is_grouping_root(n)]
        if name:
            for node in candidates:
                if node.display_name == name:
                    return node
            return None
        return candidates[0] if len(candidates) == 1 else None

    def execute(self, line: str) -> str:
        try:
            parts = shlex.split(line)
        except ValueError as exc:
            return f"Could not parse command: {exc}"
        if not parts:
            return ""
        command = parts[0].lstrip("@").lower()
        handler = self._commands.get(command)
        if handler is None:
            return f"Unknown command '{parts[0]}'. Type 'help' for the list of commands."
        return handler(parts[1:])

    # ------------------------------------------------------------- commands

    def _cmd_tree(self, args: List[str]) -> str:
        if self.context.root is None:
            return "No test plan is loaded."
        return render_tree(self.context.root)

    def _cmd_wrap(self, args: List[str]) -> str:
        name = " ".join(args) if args else None
        target = self.find_thread_group(name)
        if target is None:
            return "Please select a Thread Group in the test plan before using the @wrap command."
        return self.wrap_service.wrap(self.context, target).message

    def _cmd_undo(self, args: List[str]) -> str:
        return self.undo_service.undo(self.context).message

    def _cmd_redo(self, args: List[str]) -> str:
        return self.undo_service.redo(self.context).message

    def _cmd_save(self, args: List[str]) -> str:
        target = Path(args[0]) if args else self.context.source_path
        if target is None:
            return "No output path given."
        try:
            save_jmx(self.context, target)
        except (OSError, ValueError) as exc:
            logger.error("Save failed path=%s error=%s", target, exc)
            return f"Could not save test plan: {exc}"
        return f"Saved test plan to {target}."

    def _cmd_help(self, args: List[str]) -> str:
        return "Commands: tree | wrap [THREAD GROUP] | undo | redo | save [PATH] | quit"


# ---------------------------------------------------------------------------
# argparse entry points
# ---------------------------------------------------------------------------

def _load(path: str) -> Optional[TestPlanContext]:
    try:
        return JmxImporter().import_file(Path(path))
    except JmxImportError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return None


def cmd_tree(args: argparse.Namespace) -> int:
    context = _load(args.plan)
    if context is None:
        return 1
    print(TestPlanShell(context).execute("tree"))
    return 0


def cmd_wrap(args: argparse.Namespace) -> int:
    context = _load(args.plan)
    if context is None:
        return 1
    shell = TestPlanShell(context)
    target = shell.find_thread_group(args.thread_group)
    if target is None:
        print("Error: Thread Group not found; use --thread-group NAME.", file=sys.stderr)
        return 1
    result = shell.wrap_service.wrap(context, target)
    print(result.message)
    if not result.success:
        return 1
    source = Path(args.plan)
    output = Path(args.output) if args.output else source.with_name(f"{source.stem}_wrapped{source.suffix}")
    try:
        save_jmx(context, output)
    except (OSError, ValueError) as exc:
        logger.error("Save failed path=%s error=%s", output, exc)
        print(f"Error: Could not save test plan: {exc}", file=sys.stderr)
        return 1
    print(f"Saved test plan to {output}.")
    return 0


def cmd_shell(args: argparse.Namespace, stdin: Optional[TextIO] = None) -> int:
    context = _load(args.plan)
    if context is None:
        return 1
    shell = TestPlanShell(context)
    stream = stdin or sys.stdin
    interactive = stream.isatty()
    while True:
        if interactive:
            print("testplan> ", end="", flush=True)
        line = stream.readline()
        if not line:
            break
        if line.strip().lower() in {"quit", "exit", "@quit"}:
            break
        output = shell.execute(line)
        if output:
            print(output)
    context.reset_history()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="testplan-toolkit",
        description="Group JMeter samplers into Transaction Controllers, with undo/redo.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("Examples:", 1)[1] if __doc__ else None,
    )
    parser.add_argument("--version", action="version", version=get_app_version())
    parser.add_argument("-v", "--verbose", action="store_true", help="Show progress logs on the console")
    sub = parser.add_subparsers(dest="command", required=True)

    p_tree = sub.add_parser("tree", help="Print the structure of a test plan")
    p_tree.add_argument("plan", help="Path to a .jmx file")
    p_tree.set_defaults(func=cmd_tree)

    p_wrap = sub.add_parser("wrap", help="Wrap the samplers of a Thread Group and save the result")
    p_wrap.add_argument("plan", help="Path to a .jmx file")
    p_wrap.add_argument("--thread-group", "-t", help="Thread Group name (optional when there is only one)")
    p_wrap.add_argument("--output", "-o", help="Output path (default: <plan>_wrapped.jmx)")
    p_wrap.set_defaults(func=cmd_wrap)

    p_shell = sub.add_parser("shell", help="Interactive wrap/undo/redo session")
    p_shell.add_argument("plan", help="Path to a .jmx file")
    p_shell.set_defaults(func=cmd_shell)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
