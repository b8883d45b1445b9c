from __future__ import annotations

"""Configuration loading and access helpers.

This module centralises all declarative rules (element classification,
wrap labels, logging). It loads YAML files packaged with *testplan_toolkit*
and optionally merges them with user overrides.

On Windows: ``%LOCALAPPDATA%\\TestPlanToolkit\\config\\*.yml``
On Unix: ``~/.testplan_toolkit/*.yml``
"""

import copy
import importlib.resources as pkg_resources
import logging
import os
from pathlib import Path
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)

__all__ = ["ConfigManager"]


def _get_user_config_dir() -> Path:
    """Get the user configuration directory."""
    override = os.environ.get("TESTPLAN_CONFIG_DIR")
    if override:
        return Path(override)
    if os.name == 'nt':  # Windows
        local_appdata = os.environ.get('LOCALAPPDATA')
        if local_appdata:
            return Path(local_appdata) / "TestPlanToolkit" / "config"
        return Path.home() / "AppData" / "Local" / "TestPlanToolkit" / "config"
    return Path.home() / ".testplan_toolkit"


def _read_packaged(filename: str) -> str:
    return pkg_resources.files(__package__).joinpath(filename).read_text(encoding="utf-8")


class _Singleton(type):
    _instance: "ConfigManager" | None = None

    def __call__(cls, *args, **kwargs):  # type: ignore[no-self-use]
        if cls._instance is None:
            cls._instance = super().__call__(*args, **kwargs)
        return cls._instance


class ConfigManager(metaclass=_Singleton):
    """Lazy-loads and exposes configuration sections as dictionaries."""

    _DEFAULT_FILENAMES = {
        "element_kinds": "element_kinds.yml",
        "wrap": "wrap.yml",
        "logging": "logging.yml",
    }

    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, Any]] = {}
        self._ensure_loaded()

    @classmethod
    def reset(cls) -> None:
        """Drop the cached instance so the next call reloads from disk."""
        cls._instance = None  # type: ignore[misc]

    # ------------------------------------------------------------------
    # Public helpers
    # ------------------------------------------------------------------
    def get_element_kinds(self) -> Dict[str, Any]:
        return self._data.get("element_kinds", {})

    def get_wrap_config(self) -> Dict[str, Any]:
        return self._data.get("wrap", {})

    def get_logging_config(self) -> Dict[str, Any]:
        # dictConfig mutates what it is given
        return copy.deepcopy(self._data.get("logging", {}))

    # ------------------------------------------------------------------
    # Internal loading logic
    # ------------------------------------------------------------------
    def _ensure_loaded(self) -> None:
        if self._data:
            return  # already loaded

        startup_summary = []
        user_config_dir = _get_user_config_dir()
        defaults = self._builtin_defaults()

        for key, filename in self._DEFAULT_FILENAMES.items():
            merged_cfg: Dict[str, Any] = dict(defaults.get(key, {}))
            status = "builtin"

            # 1. packaged default
            try:
                packaged_data = yaml.safe_load(_read_packaged(filename)) or {}
                merged_cfg.update(packaged_data)
                status = "loaded"
            except (FileNotFoundError, OSError):
                logger.error("Missing packaged config for %s (%s)", key, filename)
            except yaml.YAMLError as exc:
                logger.error("Invalid packaged config for %s (%s): %s", key, filename, exc)
                status = "invalid"

            # 2. user overrides
            user_path = user_config_dir / filename
            if user_path.exists():
                try:
                    user_data = yaml.safe_load(user_path.read_text(encoding="utf-8")) or {}
                    merged_cfg.update(user_data)
                    if status == "loaded":
                        status = "loaded+overrides"
                except (OSError, yaml.YAMLError) as exc:
                    logger.error("Could not parse user config %s: %s", user_path, exc)

            self._data[key] = merged_cfg
            startup_summary.append(f"{key}: {status}")

        logger.info("Config startup: %s", " | ".join(startup_summary))

    @staticmethod
    def _builtin_defaults() -> Dict[str, Dict[str, Any]]:
        """Minimal rules so the engine behaves sensibly without YAML files."""
        return {
            "element_kinds": {
                "grouping_containers": ["TransactionController"],
                "groupable_markers": ["Sampler"],
                "containers": ["TestPlan", "ThreadGroup", "GenericController"],
                "container_suffixes": ["Controller", "ThreadGroup"],
            },
            "wrap": {
                "label_template": "Transaction - {pattern}",
                "path_separator": " > ",
                "root_testclasses": ["ThreadGroup", "SetupThreadGroup", "PostThreadGroup"],
            },
            "logging": {},
        }
