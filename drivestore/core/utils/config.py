"""Configuration loading utilities using importlib.

Named storage backends are described by plain dicts living in a Python
module (``configs.storage_backends`` by default). Entries may extend another
entry through the "__inherits__" key, e.g. a second Drive account that only
swaps the refresh token.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any

logger = logging.getLogger(__name__)

INHERITS_KEY = "__inherits__"


class ConfigError(Exception):
    """Raised when configuration loading or resolution fails."""

    pass


def load_config_from_module(
    module_path: str,
    config_name: str = "CONFIGURATION",
    default: Any | None = None,
) -> Any:
    """Import ``module_path`` and return its ``config_name`` attribute.

    Args:
        module_path: Dotted module path (e.g., "configs.storage_backends")
        config_name: Attribute holding the configuration
        default: Returned when the module or attribute is missing

    Returns:
        The configuration object, or ``default``
    """
    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        logger.warning(f"Could not import module '{module_path}': {e}")
        return default

    if not hasattr(module, config_name):
        logger.warning(f"Module '{module_path}' does not have attribute '{config_name}'")
        return default

    logger.debug(f"Loaded configuration from {module_path}.{config_name}")
    return getattr(module, config_name)


def resolve_config_inheritance(config_dict: dict[str, dict[str, Any]]) -> dict[str, dict[str, Any]]:
    """Expand "__inherits__" references into fully populated entries.

    Args:
        config_dict: Named configurations, possibly inheriting from each other

    Returns:
        A new dict where every entry carries its inherited values and no
        "__inherits__" key

    Raises:
        ConfigError: On circular inheritance or an unknown parent

    Examples:
        >>> config = {
        ...     "drive": {"type": "drive", "tokenType": "Bearer", "refreshToken": "a"},
        ...     "drive.backup": {"__inherits__": "drive", "refreshToken": "b"},
        ... }
        >>> resolved = resolve_config_inheritance(config)
        >>> resolved["drive.backup"]["tokenType"]
        'Bearer'
        >>> resolved["drive.backup"]["refreshToken"]
        'b'
    """
    resolved_configs: dict[str, dict[str, Any]] = {}

    def _resolve(name: str, chain: tuple[str, ...]) -> dict[str, Any]:
        if name in chain:
            raise ConfigError(f"Circular inheritance detected: {' -> '.join(chain + (name,))}")
        if name in resolved_configs:
            return resolved_configs[name]

        config = config_dict[name]
        parent_name = config.get(INHERITS_KEY)
        if parent_name is None:
            resolved = dict(config)
        else:
            if parent_name not in config_dict:
                raise ConfigError(
                    f"Configuration '{name}' inherits from '{parent_name}', "
                    f"but '{parent_name}' not found"
                )
            resolved = dict(_resolve(parent_name, chain + (name,)))
            resolved.update({k: v for k, v in config.items() if k != INHERITS_KEY})
            logger.debug(f"Resolved inheritance for '{name}' from '{parent_name}'")

        resolved_configs[name] = resolved
        return resolved

    for name in config_dict:
        _resolve(name, ())

    return resolved_configs


def load_and_resolve_config(
    module_path: str,
    config_name: str = "CONFIGURATION",
    default: dict[str, dict[str, Any]] | None = None,
) -> dict[str, dict[str, Any]]:
    """Load configuration from a module and resolve inheritance.

    Args:
        module_path: Dotted module path (e.g., "configs.storage_backends")
        config_name: Attribute holding the configuration
        default: Returned when nothing usable can be loaded

    Returns:
        Fully resolved configuration dictionary
    """
    raw_config = load_config_from_module(module_path, config_name, default)

    if not isinstance(raw_config, dict):
        logger.warning(f"Invalid configuration loaded from {module_path}, using default")
        return default or {}

    try:
        resolved = resolve_config_inheritance(raw_config)
    except ConfigError as e:
        logger.error(f"Failed to resolve configuration inheritance: {e}")
        raise
    logger.info(f"Loaded and resolved {len(resolved)} configurations from {module_path}")
    return resolved
