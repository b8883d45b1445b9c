from __future__ import annotations

"""Rebuild a JMeter ``.jmx`` document from the in-memory node tree.

The node tree is the source of truth for structure and names. Each node's
original element (when it has one) supplies the element properties; the
``<hashTree>`` nesting is regenerated from the node children.
"""

import copy
import logging
from pathlib import Path
from typing import Dict, Union

from lxml import etree as ET

from testplan_toolkit.core.models import NodeKind, TestPlanContext, TreeNode

logger = logging.getLogger(__name__)

__all__ = [
    "build_jmx_tree",
    "to_jmx_bytes",
    "save_jmx",
    "new_transaction_controller",
    "jmx_container_factory",
]

DEFAULT_ROOT_ATTRIBUTES: Dict[str, str] = {
    "version": "1.2",
    "properties": "5.0",
    "jmeter": "5.6.3",
}


def new_transaction_controller(label: str) -> ET._Element:
    """Return a fresh ``TransactionController`` element named *label*."""
    el = ET.Element(
        "TransactionController",
        guiclass="TransactionControllerGui",
        testclass="TransactionController",
        testname=label,
        enabled="true",
    )
    ET.SubElement(el, "boolProp", name="TransactionController.includeTimers").text = "false"
    ET.SubElement(el, "boolProp", name="TransactionController.parent").text = "false"
    return el


def jmx_container_factory(label: str, parent: TreeNode) -> TreeNode:
    """Container factory for JMX documents: node plus its XML element."""
    return TreeNode(
        label,
        NodeKind.GROUPING_CONTAINER,
        testclass="TransactionController",
        element=new_transaction_controller(label),
    )


def build_jmx_tree(context: TestPlanContext) -> ET._Element:
    """Return a ``<jmeterTestPlan>`` element mirroring ``context.root``."""
    if context.root is None:
        raise ValueError("Context has no test plan to serialize.")
    attrs = context.metadata.get("jmx_attributes") or DEFAULT_ROOT_ATTRIBUTES
    doc = ET.Element("jmeterTestPlan", {k: str(v) for k, v in attrs.items()})
    top = ET.SubElement(doc, "hashTree")
    _append_children(top, context.root)
    return doc


def to_jmx_bytes(context: TestPlanContext) -> bytes:
    return ET.tostring(
        build_jmx_tree(context),
        encoding="UTF-8",
        xml_declaration=True,
        pretty_print=True,
    )


def save_jmx(context: TestPlanContext, path: Union[str, Path]) -> Path:
    """Write the context to *path* as a JMX file and return the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(to_jmx_bytes(context))
    logger.info("Saved test plan: %s", path)
    return path


def _append_children(hash_tree: ET._Element, node: TreeNode) -> None:
    for child in node.children:
        hash_tree.append(_element_for(child))
        sub_tree = ET.SubElement(hash_tree, "hashTree")
        _append_children(sub_tree, child)


def _element_for(node: TreeNode) -> ET._Element:
    if node.element is not None:
        el = copy.deepcopy(node.element)
        el.tail = None
    elif node.kind is NodeKind.GROUPING_CONTAINER:
        el = new_transaction_controller(node.display_name)
    else:
        tag = node.testclass or "GenericController"
        el = ET.Element(tag, testclass=tag, enabled="true")
    el.set("testname", node.display_name)
    return el
