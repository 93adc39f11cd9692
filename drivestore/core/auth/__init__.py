"""OAuth2 configuration and token acquisition for Google Drive."""

from drivestore.core.auth.oauth2 import (
    DRIVE_APPDATA_SCOPE,
    AuthError,
    OAuth2Config,
    OAuthToken,
    extract_auth_code,
    format_rfc3339,
    parse_rfc3339,
)

__all__ = [
    "DRIVE_APPDATA_SCOPE",
    "AuthError",
    "OAuth2Config",
    "OAuthToken",
    "extract_auth_code",
    "format_rfc3339",
    "parse_rfc3339",
]
