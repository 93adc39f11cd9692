"""Storage abstractions for reference-addressed blob storage."""

from drivestore.core.storage.blob import (
    BlobNotFoundError,
    BlobStorage,
    BlobStorageBackend,
    BlobStorageError,
    BlobStorageIOError,
    InvalidConfigError,
    ListRefsItem,
    ListRefsResult,
    NotSupportedError,
    OperationCancelledError,
    OperationTimeoutError,
)
from drivestore.core.storage.cache import LRUCache, NameCache
from drivestore.core.storage.locks import KeyedLock
from drivestore.core.storage.registry import (
    BackendConfigError,
    BackendNotFoundError,
    BlobBackendRegistry,
    dial_store_config,
    get_blob_backend,
    get_default_registry,
    parse_store_config,
    register_backend_type,
)

__all__ = [
    # Blob storage
    "BlobStorage",
    "BlobStorageBackend",
    "ListRefsItem",
    "ListRefsResult",
    "BlobStorageError",
    "InvalidConfigError",
    "BlobNotFoundError",
    "NotSupportedError",
    "BlobStorageIOError",
    "OperationCancelledError",
    "OperationTimeoutError",
    # Caching and locking
    "NameCache",
    "LRUCache",
    "KeyedLock",
    # Registry
    "BlobBackendRegistry",
    "BackendConfigError",
    "BackendNotFoundError",
    "register_backend_type",
    "parse_store_config",
    "dial_store_config",
    "get_default_registry",
    "get_blob_backend",
]
