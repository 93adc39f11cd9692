"""Google Drive backend implementation for blob storage.

Blobs live in the application-private ``appDataFolder`` space, one Drive file
per reference, with the reference as the file name. Drive does not enforce
unique names, so this backend keeps the one-object-per-name rule itself:

* ``store`` deletes any file already carrying the name before creating the
  new one (overwrite emulation);
* name lookups take the first file Drive returns when several share a name;
* resolved name -> file ID mappings are kept in a bounded LRU cache, and the
  entry is dropped whenever the file is deleted through this backend;
* a cached ID whose file has vanished (404) is forgotten and the name is
  looked up once more before giving up.

Resolve, delete and create are separate HTTP calls, so two writers storing the
same name at once can both create a file. Writers sharing one ``DriveBackend``
are serialised per name (see ``serialize_writes``); writers in different
processes are not, and callers needing strict single-writer semantics across
processes must coordinate externally.

This backend never logs. Failures surface as typed ``BlobStorageError``
subclasses carrying the failed operation.
"""

from __future__ import annotations

import io
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager, nullcontext
from typing import Any

import google_auth_httplib2
import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import Error as GoogleApiClientError
from googleapiclient.errors import HttpError
from googleapiclient.http import HttpRequest, MediaIoBaseUpload

from drivestore.core.auth.oauth2 import AuthError, OAuth2Config, parse_rfc3339
from drivestore.core.storage.blob import (
    BlobNotFoundError,
    BlobStorageBackend,
    BlobStorageIOError,
    InvalidConfigError,
    ListRefsItem,
    ListRefsResult,
    NotSupportedError,
    OperationCancelledError,
    OperationTimeoutError,
)
from drivestore.core.storage.cache import DEFAULT_CACHE_SIZE, LRUCache, NameCache
from drivestore.core.storage.locks import KeyedLock

APP_DATA_FOLDER = "appDataFolder"
CONTENT_TYPE = "application/octet-stream"
DEFAULT_TIMEOUT = 60.0

TOKEN_OPTIONS = ("accessToken", "tokenType", "refreshToken")


def credentials_from_options(
    options: Mapping[str, str], oauth2: OAuth2Config | None = None
) -> Credentials:
    """Build OAuth2 credentials from the four string backend options.

    Raises:
        InvalidConfigError: If an option is missing, the expiry is not an
            RFC 3339 timestamp, or no OAuth client is configured
    """
    op = "drive.new"
    for key in TOKEN_OPTIONS:
        if key not in options:
            raise InvalidConfigError(f"missing {key}", op=op)

    raw_expiry = options.get("expiry", "")
    try:
        expiry = parse_rfc3339(raw_expiry)
    except ValueError as e:
        raise InvalidConfigError(f"invalid expiry {raw_expiry!r}: {e}", op=op) from e

    if oauth2 is None:
        try:
            oauth2 = OAuth2Config.from_env()
        except AuthError as e:
            raise InvalidConfigError(str(e), op=op) from e

    return Credentials(
        token=options["accessToken"],
        refresh_token=options["refreshToken"],
        token_uri=oauth2.token_url,
        client_id=oauth2.client_id,
        client_secret=oauth2.client_secret,
        scopes=list(oauth2.scopes),
        # google-auth compares expiry against naive UTC time.
        expiry=expiry.replace(tzinfo=None),
    )


def build_drive_service(credentials: Credentials, timeout: float | None = DEFAULT_TIMEOUT) -> Any:
    """Build a Drive v3 service that is safe to share between threads.

    ``httplib2.Http`` is not thread-safe, so every request gets its own
    authorized transport.
    """

    def new_http() -> google_auth_httplib2.AuthorizedHttp:
        return google_auth_httplib2.AuthorizedHttp(credentials, http=httplib2.Http(timeout=timeout))

    def build_request(http, *args, **kwargs) -> HttpRequest:
        return HttpRequest(new_http(), *args, **kwargs)

    try:
        return build(
            "drive",
            "v3",
            http=new_http(),
            requestBuilder=build_request,
            cache_discovery=False,
        )
    except GoogleApiClientError as e:
        raise BlobStorageIOError(f"failed to build Drive service: {e}", op="drive.new") from e


def _name_query(name: str) -> str:
    """Return a Drive query matching files named exactly ``name``."""
    escaped = name.replace("\\", "\\\\").replace("'", "\\'")
    return f"name = '{escaped}'"


def _check_cancelled(op: str, cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise OperationCancelledError("operation cancelled", op=op)


class DriveBackend(BlobStorageBackend):
    """Google Drive implementation of blob storage backend."""

    def __init__(
        self,
        service: Any,
        cache: NameCache | None = None,
        serialize_writes: bool = True,
    ):
        """Initialize Drive backend.

        Args:
            service: Drive v3 service (``googleapiclient`` resource)
            cache: Name -> file ID cache; a 1024 entry LRU by default
            serialize_writes: Serialise store/delete calls for the same
                reference within this instance
        """
        self._service = service
        self._ids: NameCache = cache if cache is not None else LRUCache(DEFAULT_CACHE_SIZE)
        self._write_locks = KeyedLock() if serialize_writes else None
        # Bumped on every delete; a lookup that overlapped one is not cached.
        self._delete_epoch = 0
        self._epoch_lock = threading.Lock()

    @classmethod
    def from_options(
        cls,
        options: Mapping[str, str],
        oauth2: OAuth2Config | None = None,
        cache: NameCache | None = None,
        cache_size: int = DEFAULT_CACHE_SIZE,
        timeout: float | None = DEFAULT_TIMEOUT,
        serialize_writes: bool = True,
    ) -> DriveBackend:
        """Create a backend from accessToken/tokenType/refreshToken/expiry options.

        Args:
            options: Credential options as written by the setup command
            oauth2: OAuth client configuration; read from environment if omitted
            cache: Name cache to use instead of a fresh LRU
            cache_size: Capacity of the default LRU cache
            timeout: Socket timeout in seconds for each HTTP request
            serialize_writes: See ``DriveBackend.__init__``

        Raises:
            InvalidConfigError: If the options are incomplete or malformed
        """
        credentials = credentials_from_options(options, oauth2)
        service = build_drive_service(credentials, timeout)
        if cache is None:
            cache = LRUCache(cache_size)
        return cls(service, cache=cache, serialize_writes=serialize_writes)

    @property
    def cache(self) -> NameCache:
        return self._ids

    def link_base(self) -> str:
        # Drive links are followed by the file ID, never the file name, so a
        # reference cannot be turned into a link.
        raise NotSupportedError("Drive has no name-addressable link base", op="drive.link_base")

    def resolve(self, ref: str, cancel: threading.Event | None = None) -> str:
        """Return the Drive file ID stored under ``ref``.

        Raises:
            BlobNotFoundError: If no file carries that name
        """
        return self._resolve("drive.resolve", ref, cancel)

    def fetch(self, ref: str, cancel: threading.Event | None = None) -> bytes:
        """Retrieve a blob from Drive."""
        op = "drive.fetch"
        file_id = self._resolve(op, ref, cancel)
        try:
            return self._execute(op, self._service.files().get_media(fileId=file_id), cancel)
        except BlobNotFoundError:
            # Stale ID: the file was replaced or removed since it was resolved.
            self._ids.remove(ref)
            file_id = self._resolve(op, ref, cancel)
            return self._execute(op, self._service.files().get_media(fileId=file_id), cancel)

    def store(self, ref: str, data: bytes, cancel: threading.Event | None = None) -> None:
        """Store a blob in Drive, replacing any file with the same name."""
        op = "drive.store"
        with self._write_lock(ref):
            self._delete_named(op, ref, cancel)

            media = MediaIoBaseUpload(io.BytesIO(data), mimetype=CONTENT_TYPE, resumable=False)
            request = self._service.files().create(
                body={"name": ref, "parents": [APP_DATA_FOLDER]},
                media_body=media,
                fields="id",
            )
            self._execute(op, request, cancel)

    def delete(self, ref: str, cancel: threading.Event | None = None) -> None:
        """Delete a blob from Drive; unknown references are ignored."""
        op = "drive.delete"
        with self._write_lock(ref):
            self._delete_named(op, ref, cancel)

    def list_refs(self, token: str = "", cancel: threading.Event | None = None) -> ListRefsResult:
        """List one page of files in the appDataFolder space.

        Items carry Drive file IDs rather than reference names.
        """
        op = "drive.list"
        params: dict[str, Any] = {
            "spaces": APP_DATA_FOLDER,
            "fields": "nextPageToken, files(id, quotaBytesUsed)",
        }
        if token:
            params["pageToken"] = token

        response = self._execute(op, self._service.files().list(**params), cancel)

        items = [
            ListRefsItem(ref=f["id"], size=int(f.get("quotaBytesUsed", 0)))
            for f in response.get("files", [])
        ]
        return ListRefsResult(items=items, next_token=response.get("nextPageToken") or "")

    def _resolve(self, op: str, ref: str, cancel: threading.Event | None) -> str:
        file_id = self._ids.get(ref)
        if file_id is not None:
            return file_id

        with self._epoch_lock:
            epoch = self._delete_epoch
        request = self._service.files().list(
            q=_name_query(ref),
            spaces=APP_DATA_FOLDER,
            fields="files(id)",
        )
        response = self._execute(op, request, cancel)
        # A request that was cancelled while in flight must not populate the cache.
        _check_cancelled(op, cancel)

        files = response.get("files", [])
        if not files:
            raise BlobNotFoundError(f"no file named {ref!r}", op=op)

        file_id = files[0]["id"]
        with self._epoch_lock:
            # The answer may name a file deleted while the query was in flight.
            if self._delete_epoch == epoch:
                self._ids.put(ref, file_id)
        return file_id

    def _delete_named(self, op: str, ref: str, cancel: threading.Event | None) -> None:
        """Delete the file currently carrying ``ref``; no-op if there is none."""
        for _ in range(2):
            try:
                file_id = self._resolve(op, ref, cancel)
            except BlobNotFoundError:
                return
            if self._delete_file(op, ref, file_id, cancel):
                return
            # The ID was stale; the name may now belong to a newer file.

    def _delete_file(self, op: str, ref: str, file_id: str, cancel: threading.Event | None) -> bool:
        """Delete ``file_id``; returns False if it was already gone."""
        try:
            self._execute(op, self._service.files().delete(fileId=file_id), cancel)
            deleted = True
        except BlobNotFoundError:
            deleted = False
        with self._epoch_lock:
            self._delete_epoch += 1
            self._ids.remove(ref)
        return deleted

    def _execute(self, op: str, request: Any, cancel: threading.Event | None) -> Any:
        _check_cancelled(op, cancel)
        try:
            return request.execute()
        except TimeoutError as e:
            raise OperationTimeoutError(f"backend call timed out: {e}", op=op) from e
        except HttpError as e:
            if e.resp.status == 404:
                raise BlobNotFoundError(f"file vanished: {e}", op=op) from e
            raise BlobStorageIOError(str(e), op=op) from e
        except (GoogleApiClientError, GoogleAuthError, httplib2.HttpLib2Error, OSError) as e:
            raise BlobStorageIOError(str(e), op=op) from e

    @contextmanager
    def _write_lock(self, ref: str) -> Iterator[None]:
        with self._write_locks.hold(ref) if self._write_locks is not None else nullcontext():
            yield
