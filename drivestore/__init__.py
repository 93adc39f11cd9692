"""Google Drive blob storage for reference-addressed data.

This package provides:
- A Drive backend storing blobs by name in the appDataFolder space
- A bounded name -> file ID cache and overwrite-by-name emulation
- A registry that builds backends from named or "key=value" configuration
- OAuth2 client configuration and a one-time setup command
"""

__all__ = ["core", "cli"]
