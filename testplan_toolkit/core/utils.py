from __future__ import annotations

"""Simple reusable helper functions.

These helpers are side-effect-free and contain no GUI or disk I/O; they can be
used across all layers of the toolkit.
"""

import re
from typing import Any, Dict, Iterable, Optional, Sequence

from testplan_toolkit.core.models import NodeKind

__all__ = [
    "UUID_PLACEHOLDER",
    "NUM_PLACEHOLDER",
    "normalize_name",
    "join_ancestor_path",
    "format_group_label",
    "classify_testclass",
]

UUID_PLACEHOLDER = "{UUID}"
NUM_PLACEHOLDER = "{NUM}"

_UUID_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
    re.IGNORECASE,
)
_DIGITS_RE = re.compile(r"\d+")
_TRAILING_ORDINAL_RE = re.compile(r"(?<![/\s_\-#.])[\s_\-#.]*" + re.escape(NUM_PLACEHOLDER) + r"$")


def normalize_name(name: Optional[str]) -> str:
    """Return the canonical grouping pattern of a node display name.

    UUIDs are replaced first so their hex digits are never collapsed as plain
    numbers. Remaining digit runs become ``{NUM}``. A trailing ordinal such as
    the ``2`` in ``"Login 2"`` is dropped so numbered repeats group with the
    unnumbered original. A number that forms a whole path segment
    (``"/users/42"``, ``"/a/-42"``) is kept as ``{NUM}``.

    Examples:
        >>> normalize_name("Login 42") == normalize_name("Login 7")
        True
        >>> normalize_name("Request-11111111-2222-3333-4444-555555555555")
        'Request-{UUID}'
        >>> normalize_name("GET /users/42/orders")
        'GET /users/{NUM}/orders'
    """
    if not name:
        return ""
    simplified = _UUID_RE.sub(UUID_PLACEHOLDER, name)
    simplified = _DIGITS_RE.sub(NUM_PLACEHOLDER, simplified)
    stripped = _TRAILING_ORDINAL_RE.sub("", simplified).rstrip()
    return stripped if stripped else simplified.strip()


def join_ancestor_path(names: Iterable[str], separator: str = " > ") -> str:
    return separator.join(names)


def format_group_label(pattern: str, template: str = "Transaction - {pattern}") -> str:
    """Render a grouping container label for *pattern*.

    A template without ``{pattern}`` (or a broken one) falls back to the
    default so a bad user override cannot stop a wrap run.
    """
    try:
        label = template.format(pattern=pattern)
    except (KeyError, IndexError, ValueError):
        label = f"Transaction - {pattern}"
    return label.strip() or "Transaction"


def classify_testclass(testclass: Optional[str], rules: Dict[str, Any]) -> NodeKind:
    """Map a JMeter element class name onto a :class:`NodeKind`.

    Rules come from ``element_kinds.yml``; grouping containers are checked
    first because ``TransactionController`` also ends in ``Controller``.
    """
    if not testclass:
        return NodeKind.LEAF_OTHER
    simple = testclass.rsplit(".", 1)[-1]
    if simple in _as_list(rules.get("grouping_containers")):
        return NodeKind.GROUPING_CONTAINER
    if any(marker in simple for marker in _as_list(rules.get("groupable_markers"))):
        return NodeKind.LEAF_GROUPABLE
    if simple in _as_list(rules.get("containers")):
        return NodeKind.CONTAINER
    if any(simple.endswith(suffix) for suffix in _as_list(rules.get("container_suffixes"))):
        return NodeKind.CONTAINER
    return NodeKind.LEAF_OTHER


def _as_list(value: Any) -> Sequence[str]:
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)
