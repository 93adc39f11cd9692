"""Blob storage backend configuration.

This module defines the CONFIGURATION dict which maps backend names to their
construction options. The Drive credentials are normally produced by
``drivestore-setupstorage`` and exported into the environment or `.env`.

Configuration location: configs/storage_backends.py

Example usage:
    from drivestore.core.storage import BlobStorage, get_blob_backend

    storage = BlobStorage(get_blob_backend("drive"))

Configuration inheritance:
    # Use the "__inherits__" key to reuse another entry's settings

    "drive.bulk": {
        "__inherits__": "drive",
        "timeout": 300,
    }
"""

from __future__ import annotations

import os
from typing import Any

from drivestore.core.utils.env import load_env_file_if_present

load_env_file_if_present()  # Load .env file if present


def _build_drive_config() -> dict[str, Any]:
    """Return a Drive backend configuration from DRIVE_* variables."""
    config: dict[str, Any] = {"type": "drive"}
    for key, env_key in (
        ("accessToken", "DRIVE_ACCESS_TOKEN"),
        ("tokenType", "DRIVE_TOKEN_TYPE"),
        ("refreshToken", "DRIVE_REFRESH_TOKEN"),
        ("expiry", "DRIVE_EXPIRY"),
    ):
        value = os.getenv(env_key)
        if value is not None:
            config[key] = value
    return config


CONFIGURATION = {
    "drive": _build_drive_config(),
    # Longer socket timeout for large blobs
    "drive.bulk": {
        "__inherits__": "drive",
        "timeout": 300,
    },
}
