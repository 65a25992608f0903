"""
Logging categories.

sessionkit logs through the standard library, one module logger per
module. Property overrides can toggle four categories, each mapped to
a package-level parent logger:

    bootstrap    -> sessionkit.runtime
    scan         -> sessionkit.scanning
    runtime      -> sessionkit.parsing
    compilation  -> sessionkit.scripting

A disabled category is raised to WARNING so scan failures and other
warnings still surface. An enabled category logs at DEBUG.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)

CATEGORY_LOGGERS: dict[str, str] = {
    "enableBootstrapLog": "sessionkit.runtime",
    "enableMapperScanLog": "sessionkit.scanning",
    "enableRuntimeLog": "sessionkit.parsing",
    "enableCompilationLog": "sessionkit.scripting",
}

MASTER_SWITCH = "enableLogger"


def is_enabled(value: Any) -> bool | None:
    """Interpret a property value as a flag. Returns None when unset."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def apply_log_toggles(properties: Mapping[str, Any]) -> dict[str, bool]:
    """
    Apply category toggles found in a property map.

    Categories not mentioned in the properties keep their current level.
    When the master switch is off, every category is disabled.

    Args:
        properties: Merged configuration properties

    Returns:
        Mapping of logger name to the enabled state that was applied
    """
    master = is_enabled(properties.get(MASTER_SWITCH))
    applied: dict[str, bool] = {}

    for key, logger_name in CATEGORY_LOGGERS.items():
        state = is_enabled(properties.get(key))
        if master is False:
            state = False
        elif state is None:
            state = master
        if state is None:
            continue

        logging.getLogger(logger_name).setLevel(logging.DEBUG if state else logging.WARNING)
        applied[logger_name] = state

    if applied:
        logger.debug(f"[logs] Applied category toggles: {applied}")
    return applied
