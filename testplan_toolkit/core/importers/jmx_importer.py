from __future__ import annotations

"""Apache JMeter ``.jmx`` importer.

Loads a JMeter test plan into a :class:`TestPlanContext`. In a JMX file every
test element is followed by a ``<hashTree>`` sibling holding its children::

    <hashTree>
      <ThreadGroup testname="Users" .../>
      <hashTree>
        <HTTPSamplerProxy testname="Login" .../>
        <hashTree/>
      </hashTree>
    </hashTree>

Each element becomes a :class:`TreeNode` whose children come from the paired
``hashTree``. Node kinds are decided once, here, from the element's
``testclass`` using the ``element_kinds`` config section.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

from lxml import etree as ET

from testplan_toolkit.config import ConfigManager
from testplan_toolkit.core.models import NodeKind, TestPlanContext, TreeNode
from testplan_toolkit.core.utils import classify_testclass

logger = logging.getLogger(__name__)

__all__ = ["JmxImporter", "JmxImportError"]

ROOT_TAG = "jmeterTestPlan"
HASH_TREE_TAG = "hashTree"


class JmxImportError(Exception):
    """Exception raised when a JMX test plan cannot be imported."""

    def __init__(self, message: str, file_path: Optional[Path] = None, cause: Optional[Exception] = None):
        self.file_path = file_path
        self.cause = cause
        super().__init__(message)


class JmxImporter:
    """Importer for JMeter test plan files.

    Parameters
    ----------
    rules
        Element classification rules (see ``element_kinds.yml``). Defaults to
        the loaded configuration.
    """

    def __init__(self, rules: Optional[Dict[str, Any]] = None) -> None:
        self._rules = rules if rules is not None else ConfigManager().get_element_kinds()
        self.logger = logging.getLogger(f"{__name__}.JmxImporter")

    def can_import(self, file_path: Path) -> bool:
        """Check if this importer can handle the given file."""
        file_path = Path(file_path)
        if not file_path.exists() or not file_path.is_file():
            return False
        return file_path.suffix.lower() == ".jmx"

    def import_file(self, file_path: Union[str, Path]) -> TestPlanContext:
        """Parse *file_path* into a new context.

        Raises
        ------
        JmxImportError
            If the file is missing, not XML, or not a JMeter test plan.
        """
        file_path = Path(file_path)
        if not self.can_import(file_path):
            raise JmxImportError(f"File is not a JMeter test plan: {file_path}", file_path)
        try:
            tree = ET.parse(str(file_path), self._parser())
        except (ET.XMLSyntaxError, OSError) as e:
            raise JmxImportError(f"Failed to parse test plan: {e}", file_path, e)

        context = self._build_context(tree.getroot(), file_path)
        context.source_path = file_path
        return context

    def import_bytes(self, data: Union[bytes, str], source: Optional[Path] = None) -> TestPlanContext:
        """Parse an in-memory JMX document into a new context."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        try:
            root = ET.fromstring(data, self._parser())
        except ET.XMLSyntaxError as e:
            raise JmxImportError(f"Failed to parse test plan: {e}", source, e)
        context = self._build_context(root, source)
        context.source_path = source
        return context

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _parser() -> ET.XMLParser:
        return ET.XMLParser(remove_blank_text=True, resolve_entities=False, no_network=True)

    def _build_context(self, root: ET._Element, source: Optional[Path]) -> TestPlanContext:
        if root.tag != ROOT_TAG:
            raise JmxImportError(f"Unexpected root element <{root.tag}>, expected <{ROOT_TAG}>", source)
        top = root.find(HASH_TREE_TAG)
        if top is None:
            raise JmxImportError("Test plan has no top-level <hashTree>", source)

        document = TreeNode(source.stem if source else "Test Plan", NodeKind.CONTAINER)
        count = self._attach_children(top, document, source)

        metadata = {
            "jmx_attributes": dict(root.attrib),
            "source_type": "jmx",
            "import_timestamp": datetime.now().isoformat(timespec="seconds"),
        }
        if source is not None:
            metadata["source_file"] = str(source)
        self.logger.debug("Imported test plan with %d elements", count)
        return TestPlanContext(root=document, metadata=metadata)

    def _attach_children(self, hash_tree: ET._Element, parent: TreeNode, source: Optional[Path]) -> int:
        count = 0
        owner: Optional[TreeNode] = None
        for el in hash_tree:
            if not isinstance(el.tag, str):
                continue  # comments, processing instructions
            if el.tag == HASH_TREE_TAG:
                if owner is None:
                    raise JmxImportError("Found <hashTree> without an owning element", source)
                count += self._attach_children(el, owner, source)
                owner = None
                continue
            owner = self._make_node(el)
            parent.append_child(owner)
            count += 1
        return count

    def _make_node(self, el: ET._Element) -> TreeNode:
        testclass = el.get("testclass") or el.tag
        name = el.get("testname") or el.tag
        kind = classify_testclass(testclass, self._rules)
        self.logger.debug("Element '%s' (%s) -> %s", name, testclass, kind.name)
        return TreeNode(name, kind, testclass=testclass, element=el)
