"""Shared fixtures for Test Plan Toolkit tests.

Builds small test plan trees in memory so tests can assert on structure
without going through JMX files.
"""

import logging
import sys
from pathlib import Path
from typing import Dict, List, Sequence, Union

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from testplan_toolkit.config import ConfigManager
from testplan_toolkit.core.models import NodeKind, TestPlanContext, TreeNode

# Configure test logging
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep user-level config overrides and log files out of the tests."""
    monkeypatch.setenv("TESTPLAN_CONFIG_DIR", str(tmp_path / "user_config"))
    monkeypatch.setenv("TESTPLAN_LOG_DIR", str(tmp_path / "logs"))
    ConfigManager.reset()
    yield
    ConfigManager.reset()


# Nested shape format used by the builders below:
#   "Login"                          -> groupable leaf (sampler)
#   ("Section", [...])               -> plain container with children
#   ("#Transaction - X", [...])      -> existing grouping container
#   ("Login", ["~Extractor", ...])   -> sampler with attached children
#   "~Timer"                         -> non-groupable leaf
Shape = Union[str, tuple]


def _build(shape: Shape) -> TreeNode:
    if isinstance(shape, str):
        if shape.startswith("~"):
            return TreeNode(shape[1:], NodeKind.LEAF_OTHER)
        return TreeNode(shape, NodeKind.LEAF_GROUPABLE, testclass="HTTPSamplerProxy")
    name, children = shape
    if name.startswith("#"):
        node = TreeNode(name[1:], NodeKind.GROUPING_CONTAINER, testclass="TransactionController")
    elif all(isinstance(c, str) and c.startswith("~") for c in children) and children:
        node = TreeNode(name, NodeKind.LEAF_GROUPABLE, testclass="HTTPSamplerProxy")
    else:
        node = TreeNode(name, NodeKind.CONTAINER)
    for child in children:
        node.append_child(_build(child))
    return node


@pytest.fixture
def make_plan():
    """Return a factory building ``(context, thread_group)`` from child shapes."""
    def factory(children: Sequence[Shape], thread_group_name: str = "T"):
        document = TreeNode("Plan", NodeKind.CONTAINER, testclass="TestPlan")
        thread_group = TreeNode(thread_group_name, NodeKind.CONTAINER, testclass="ThreadGroup")
        document.append_child(thread_group)
        for child in children:
            thread_group.append_child(_build(child))
        return TestPlanContext(root=document), thread_group
    return factory


@pytest.fixture
def names():
    """Return a helper listing child display names of a node."""
    def to_names(node: TreeNode) -> List[str]:
        return [child.display_name for child in node.children]
    return to_names


@pytest.fixture
def outline():
    """Return a helper rendering a subtree as nested ``{name: children}`` data."""
    def render(node: TreeNode) -> List[Union[str, Dict[str, list]]]:
        out: List[Union[str, Dict[str, list]]] = []
        for child in node.children:
            if len(child):
                out.append({child.display_name: render(child)})
            else:
                out.append(child.display_name)
        return out
    return render


@pytest.fixture
def shop_jmx() -> Path:
    """Path of a small recorded JMeter plan with one thread group."""
    return Path(__file__).parent / "fixtures" / "plans" / "shop.jmx"
