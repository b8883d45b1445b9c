from __future__ import annotations

"""Result objects returned by the structural services.

Every public service operation returns one of these instead of raising, so a
command layer can render ``message`` as a one-line status.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

__all__ = ["OperationResult", "WrapResult", "UndoResult", "RedoResult"]


@dataclass(frozen=True)
class OperationResult:
    """Result of a structural editing operation.

    Attributes
    ----------
    success
        Whether the operation changed the document.
    message
        Human-readable summary suitable for logs or UI display.
    details
        Optional structured details for diagnostics or caller logic.
    """
    success: bool
    message: str
    details: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class WrapResult(OperationResult):
    groups_created: int = 0


@dataclass(frozen=True)
class UndoResult(OperationResult):
    restored_leaf_count: int = 0


@dataclass(frozen=True)
class RedoResult(OperationResult):
    regrouped_leaf_count: int = 0
