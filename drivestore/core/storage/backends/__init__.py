"""Storage backend implementations."""

from drivestore.core.storage.backends.drive_backend import (
    APP_DATA_FOLDER,
    DriveBackend,
    build_drive_service,
    credentials_from_options,
)

__all__ = [
    "APP_DATA_FOLDER",
    "DriveBackend",
    "build_drive_service",
    "credentials_from_options",
]
