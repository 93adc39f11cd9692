"""Blob storage abstraction for reference-addressed binary data.

Provides a small get/put/delete/list interface keyed by opaque reference
strings, with pluggable backends (Google Drive, ...).
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ListRefsItem:
    """One stored object as reported by a listing."""

    ref: str  # Backend-assigned ID, not the logical reference name
    size: int


@dataclass
class ListRefsResult:
    """One page of a listing."""

    items: list[ListRefsItem] = field(default_factory=list)
    next_token: str = ""  # Empty on the final page

    @property
    def is_truncated(self) -> bool:
        return self.next_token != ""


class BlobStorageBackend(ABC):
    """Abstract base class for blob storage backends.

    Every operation accepts an optional ``cancel`` event. Backends check it
    around each remote call and raise ``OperationCancelledError`` once it is set.
    """

    @abstractmethod
    def fetch(self, ref: str, cancel: threading.Event | None = None) -> bytes:
        """Retrieve a blob.

        Args:
            ref: Reference the blob was stored under
            cancel: Optional cancellation signal

        Returns:
            Binary content of the blob

        Raises:
            BlobNotFoundError: If nothing is stored under ``ref``
            BlobStorageIOError: On any transport or backend failure
        """
        pass

    @abstractmethod
    def store(self, ref: str, data: bytes, cancel: threading.Event | None = None) -> None:
        """Store a blob, replacing whatever was stored under ``ref`` before.

        Args:
            ref: Reference to store the blob under
            data: Binary data
            cancel: Optional cancellation signal

        Raises:
            BlobStorageIOError: On any transport or backend failure
        """
        pass

    @abstractmethod
    def delete(self, ref: str, cancel: threading.Event | None = None) -> None:
        """Delete a blob. Deleting an unknown reference is a no-op.

        Args:
            ref: Reference to delete
            cancel: Optional cancellation signal

        Raises:
            BlobStorageIOError: On any transport or backend failure
        """
        pass

    @abstractmethod
    def list_refs(self, token: str = "", cancel: threading.Event | None = None) -> ListRefsResult:
        """List one page of stored objects.

        Args:
            token: Continuation token from a previous page, or "" for the first page
            cancel: Optional cancellation signal

        Returns:
            Page of items and the token for the next page ("" when done)
        """
        pass

    @abstractmethod
    def link_base(self) -> str:
        """Return the base URL under which blobs are directly reachable.

        Raises:
            NotSupportedError: If the backend has no such URL
        """
        pass


class BlobStorage:
    """High-level blob storage interface with pluggable backends."""

    def __init__(self, backend: BlobStorageBackend):
        """Initialize blob storage.

        Args:
            backend: Storage backend implementation
        """
        self._backend = backend

    @property
    def backend(self) -> BlobStorageBackend:
        return self._backend

    def get(self, ref: str, cancel: threading.Event | None = None) -> bytes:
        """Retrieve a blob."""
        return self._backend.fetch(ref, cancel=cancel)

    def put(self, ref: str, data: bytes, cancel: threading.Event | None = None) -> None:
        """Store a blob, overwriting any previous content."""
        self._backend.store(ref, data, cancel=cancel)

    def delete(self, ref: str, cancel: threading.Event | None = None) -> None:
        """Delete a blob."""
        self._backend.delete(ref, cancel=cancel)

    def exists(self, ref: str, cancel: threading.Event | None = None) -> bool:
        """Check if a blob exists by fetching it."""
        try:
            self._backend.fetch(ref, cancel=cancel)
        except BlobNotFoundError:
            return False
        return True

    def iter_refs(self, cancel: threading.Event | None = None) -> Iterator[ListRefsItem]:
        """Iterate over every stored object, following continuation tokens.

        Yields:
            ListRefsItem for each object
        """
        token = ""
        while True:
            result = self._backend.list_refs(token, cancel=cancel)
            yield from result.items

            if not result.is_truncated:
                break
            token = result.next_token

    def link_base(self) -> str:
        """Return the backend's direct-link base URL."""
        return self._backend.link_base()


# Custom exceptions


class BlobStorageError(Exception):
    """Base exception for blob storage errors.

    ``op`` names the logical operation that failed (e.g. ``"drive.fetch"``).
    """

    def __init__(self, message: str, op: str | None = None):
        self.op = op
        super().__init__(f"{op}: {message}" if op else message)


class InvalidConfigError(BlobStorageError):
    """Raised when backend construction options are missing or malformed."""

    pass


class BlobNotFoundError(BlobStorageError):
    """Raised when no blob is stored under a reference."""

    pass


class NotSupportedError(BlobStorageError):
    """Raised when a backend lacks a capability."""

    pass


class BlobStorageIOError(BlobStorageError):
    """Raised on transport or backend failures."""

    pass


class OperationCancelledError(BlobStorageError):
    """Raised when the caller cancelled an operation."""

    pass


class OperationTimeoutError(OperationCancelledError):
    """Raised when a backend call exceeded its deadline."""

    pass
