from __future__ import annotations

"""Central logging configuration for Test Plan Toolkit.

Import and call :func:`setup_logging` at application start-up.
"""

import logging
import logging.config
import os
from typing import Any, Dict

from testplan_toolkit.config import ConfigManager

__all__ = ["setup_logging"]

_ENGINE_LOGGERS = (
    "testplan_toolkit.core.services.wrap_service",
    "testplan_toolkit.core.services.undo_service",
)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application using the packaged YAML config."""
    log_dir = os.environ.get("TESTPLAN_LOG_DIR", "logs")
    log_file = os.path.join(log_dir, "app.log")

    try:
        os.makedirs(log_dir, exist_ok=True)
        logging_config = ConfigManager().get_logging_config()

        if logging_config and isinstance(logging_config, dict) and logging_config.get("version"):
            if "handlers" in logging_config and "file" in logging_config["handlers"]:
                logging_config["handlers"]["file"]["filename"] = log_file
            if verbose and "console" in logging_config.get("handlers", {}):
                logging_config["handlers"]["console"]["level"] = "INFO"

            logging.config.dictConfig(logging_config)
            logging.getLogger(__name__).debug("Logging initialised from config files")
        else:
            _setup_minimal_logging(verbose)
    except (OSError, ValueError, TypeError, AttributeError, ImportError) as exc:
        _setup_minimal_logging(verbose)
        logging.getLogger(__name__).error("Error loading logging config: %s", exc)

    _apply_debug_overrides()


def _setup_minimal_logging(verbose: bool = False) -> None:
    """Set up console-only logging when config is unavailable."""
    minimal_config: Dict[str, Any] = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'simple': {
                'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'simple',
                'level': 'INFO' if verbose else 'WARNING',
            },
        },
        'root': {
            'level': 'INFO',
            'handlers': ['console'],
        },
    }
    logging.config.dictConfig(minimal_config)


def _apply_debug_overrides() -> None:
    """Apply environment-driven module-specific debug overrides.

    Supports:
    - TESTPLAN_DEBUG_WRAP=true -> DEBUG for the wrap and undo services
    - TESTPLAN_DEBUG_MODULES=comma,separated,logger,names -> DEBUG for listed loggers
    """
    debug_wrap = os.environ.get('TESTPLAN_DEBUG_WRAP', '').strip().lower() in {'1', 'true', 'yes', 'on'}
    extra_modules = os.environ.get('TESTPLAN_DEBUG_MODULES', '').strip()
    targets = []
    if debug_wrap:
        targets.extend(_ENGINE_LOGGERS)
    if extra_modules:
        targets.extend([m.strip() for m in extra_modules.split(',') if m.strip()])

    for name in targets:
        logger = logging.getLogger(name)
        logger.setLevel(logging.DEBUG)
        has_debug_handler = any(
            h.level == logging.NOTSET or h.level <= logging.DEBUG for h in logger.handlers
        )
        if not has_debug_handler:
            h = logging.StreamHandler()
            h.setLevel(logging.DEBUG)
            h.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
            logger.addHandler(h)
        logger.info("Debug override active for logger '%s'", name)
