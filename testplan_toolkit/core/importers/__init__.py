from __future__ import annotations

"""Importers for test plan formats.

Key components:
- JmxImporter: loads Apache JMeter .jmx test plans into a TestPlanContext
"""

from .jmx_importer import JmxImporter, JmxImportError

__all__ = ["JmxImporter", "JmxImportError"]
