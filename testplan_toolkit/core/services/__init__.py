from __future__ import annotations

"""High-level structural services (wrap, undo/redo).

Services are instantiated directly; tree mutation callbacks and the
container factory are injected through their constructors.
"""

from .results import OperationResult, RedoResult, UndoResult, WrapResult  # noqa: F401
from .wrap_service import WrapService, default_container_factory  # noqa: F401
from .undo_service import WrapUndoService  # noqa: F401

__all__: list[str] = [
    "OperationResult",
    "WrapResult",
    "UndoResult",
    "RedoResult",
    "WrapService",
    "WrapUndoService",
    "default_container_factory",
]
