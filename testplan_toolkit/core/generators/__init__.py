"""Serializers that turn the in-memory test plan back into files."""

from .jmx_builder import (
    build_jmx_tree,
    jmx_container_factory,
    new_transaction_controller,
    save_jmx,
    to_jmx_bytes,
)

__all__ = [
    "build_jmx_tree",
    "jmx_container_factory",
    "new_transaction_controller",
    "save_jmx",
    "to_jmx_bytes",
]
