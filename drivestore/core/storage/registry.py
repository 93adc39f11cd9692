"""Backend registry for named blob storage backends."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

from drivestore.core.storage.backends.drive_backend import DEFAULT_TIMEOUT, DriveBackend
from drivestore.core.storage.blob import BlobStorageBackend, InvalidConfigError
from drivestore.core.storage.cache import DEFAULT_CACHE_SIZE
from drivestore.core.utils.config import load_and_resolve_config

logger = logging.getLogger(__name__)

BackendFactory = Callable[[dict[str, Any]], BlobStorageBackend]


class BackendConfigError(InvalidConfigError):
    """Raised when backend configuration is invalid."""

    pass


class BackendNotFoundError(Exception):
    """Raised when a named backend is not found in configuration."""

    pass


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _create_drive_backend(config: dict[str, Any]) -> BlobStorageBackend:
    options = {
        key: str(value)
        for key, value in config.items()
        if key in ("accessToken", "tokenType", "refreshToken", "expiry")
    }
    return DriveBackend.from_options(
        options,
        cache_size=int(config.get("cache_size", DEFAULT_CACHE_SIZE)),
        timeout=float(config.get("timeout", DEFAULT_TIMEOUT)),
        serialize_writes=_as_bool(config.get("serialize_writes", True)),
    )


_BACKEND_TYPES: dict[str, BackendFactory] = {"drive": _create_drive_backend}


def register_backend_type(name: str, factory: BackendFactory) -> None:
    """Make a backend type available under ``name`` (case-insensitive).

    Args:
        name: Value of the "type" config key (or "backend" store-config line)
        factory: Callable building a backend from its config dict
    """
    _BACKEND_TYPES[name.lower()] = factory


def parse_store_config(lines: Iterable[str]) -> dict[str, Any]:
    """Parse host-server style "key=value" store configuration lines.

    The "backend" key selects the backend type.

    Examples:
        >>> parse_store_config(["backend=Drive", "tokenType=Bearer"])
        {'type': 'Drive', 'tokenType': 'Bearer'}
    """
    config: dict[str, Any] = {}
    for line in lines:
        if "=" not in line:
            raise BackendConfigError(f"Invalid store config line {line!r}: expected key=value")
        key, value = line.split("=", 1)
        key = key.strip()
        config["type" if key == "backend" else key] = value.strip()
    return config


class BlobBackendRegistry:
    """Registry for managing named blob storage backends.

    Examples:
        >>> registry = BlobBackendRegistry()
        >>> backend = registry.get_backend("drive")
    """

    def __init__(self, configuration: dict[str, dict[str, Any]] | None = None):
        """Initialize the registry.

        Args:
            configuration: Backend configuration dict. If None, loads and resolves
                          configuration from configs/storage_backends.py
        """
        if configuration is None:
            configuration = load_and_resolve_config(
                "configs.storage_backends",
                config_name="CONFIGURATION",
                default={},
            )

        self._config = configuration
        self._backend_cache: dict[str, BlobStorageBackend] = {}

    def create_backend(self, config: dict[str, Any]) -> BlobStorageBackend:
        """Create a backend instance from configuration.

        Args:
            config: Backend configuration dict with "type" and backend-specific params

        Returns:
            Instantiated backend

        Raises:
            BackendConfigError: If configuration is invalid
        """
        backend_type = config.get("type")
        if not backend_type:
            raise BackendConfigError("Backend configuration must specify 'type'")

        factory = _BACKEND_TYPES.get(str(backend_type).lower())
        if factory is None:
            raise BackendConfigError(f"Unknown backend type: {backend_type}")

        try:
            return factory(config)
        except BackendConfigError:
            raise
        except InvalidConfigError as e:
            raise BackendConfigError(str(e)) from e
        except (TypeError, ValueError) as e:
            raise BackendConfigError(f"Invalid {backend_type} backend configuration: {e}") from e

    def get_backend(self, name: str, use_cache: bool = True) -> BlobStorageBackend:
        """Get a backend instance by name.

        Args:
            name: Backend name
            use_cache: Whether to reuse a previously created instance

        Returns:
            Backend instance

        Raises:
            BackendNotFoundError: If name not found in configuration
            BackendConfigError: If backend configuration is invalid
        """
        if use_cache and name in self._backend_cache:
            return self._backend_cache[name]

        if name not in self._config:
            available = ", ".join(self._config.keys())
            raise BackendNotFoundError(
                f"Backend '{name}' not found in configuration. "
                f"Available backends: {available or 'none'}"
            )

        backend = self.create_backend(self._config[name])
        if use_cache:
            self._backend_cache[name] = backend

        logger.info(f"Created backend for '{name}' (type: {self._config[name]['type']})")
        return backend

    def list_backends(self) -> list[str]:
        """List all configured backend names."""
        return list(self._config.keys())

    def register(self, name: str, config: dict[str, Any]) -> None:
        """Register a new backend configuration, replacing any cached instance."""
        self._config[name] = config
        self._backend_cache.pop(name, None)

    def clear_cache(self) -> None:
        """Clear the backend instance cache."""
        self._backend_cache.clear()


# Global registry instance
_default_registry: BlobBackendRegistry | None = None


def get_default_registry() -> BlobBackendRegistry:
    """Get the default global registry instance."""
    global _default_registry
    if _default_registry is None:
        _default_registry = BlobBackendRegistry()
    return _default_registry


def get_blob_backend(name: str) -> BlobStorageBackend:
    """Get a blob backend by name from the default registry.

    Examples:
        >>> from drivestore.core.storage import get_blob_backend
        >>> backend = get_blob_backend("drive")
    """
    return get_default_registry().get_backend(name)


def dial_store_config(lines: Iterable[str]) -> BlobStorageBackend:
    """Create a backend straight from store configuration lines.

    Examples:
        >>> backend = dial_store_config([
        ...     "backend=Drive",
        ...     "accessToken=...",
        ...     "tokenType=Bearer",
        ...     "refreshToken=...",
        ...     "expiry=2026-01-01T00:00:00Z",
        ... ])
    """
    config = parse_store_config(lines)
    backend = BlobBackendRegistry({}).create_backend(config)
    logger.info(f"Dialed {config.get('type')} backend from store config")
    return backend
