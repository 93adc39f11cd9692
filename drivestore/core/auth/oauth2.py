"""OAuth2 client configuration shared by the Drive backend and the setup command."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from urllib.parse import parse_qs, urlencode, urlparse

import requests

from drivestore.core.utils.env import load_env_file_if_present

AUTH_URL = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
DEFAULT_REDIRECT_URL = "http://localhost"

# Only the application-private appDataFolder space is ever touched.
DRIVE_APPDATA_SCOPE = "https://www.googleapis.com/auth/drive.appdata"


class AuthError(RuntimeError):
    pass


def format_rfc3339(value: datetime) -> str:
    """Format an aware datetime as an RFC 3339 UTC timestamp."""
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware UTC datetime.

    Raises ValueError if the value is empty, malformed or lacks a UTC offset.
    """
    if not value:
        raise ValueError("empty timestamp")
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        raise ValueError(f"timestamp {value!r} has no UTC offset")
    return parsed.astimezone(UTC)


@dataclass(frozen=True)
class OAuthToken:
    """Token material obtained from the authorization server."""

    access_token: str
    token_type: str
    refresh_token: str
    expiry: datetime

    def to_store_options(self) -> dict[str, str]:
        """Return the options a Drive backend is constructed from."""
        return {
            "accessToken": self.access_token,
            "tokenType": self.token_type,
            "refreshToken": self.refresh_token,
            "expiry": format_rfc3339(self.expiry),
        }


@dataclass(frozen=True)
class OAuth2Config:
    """Immutable OAuth2 client configuration for the Drive application."""

    client_id: str
    client_secret: str
    auth_url: str = AUTH_URL
    token_url: str = TOKEN_URL
    redirect_url: str = DEFAULT_REDIRECT_URL
    scopes: tuple[str, ...] = (DRIVE_APPDATA_SCOPE,)

    @classmethod
    def from_env(cls, dotenv: bool = True) -> OAuth2Config:
        """Build the client configuration from environment or .env.

        Reads DRIVESTORE_CLIENT_ID, DRIVESTORE_CLIENT_SECRET and optionally
        DRIVESTORE_REDIRECT_URL. Raises AuthError if the client is missing.
        """
        if dotenv:
            load_env_file_if_present()
        client_id = os.getenv("DRIVESTORE_CLIENT_ID")
        client_secret = os.getenv("DRIVESTORE_CLIENT_SECRET")
        if not client_id or not client_secret:
            raise AuthError(
                "Missing OAuth client. Set DRIVESTORE_CLIENT_ID and "
                "DRIVESTORE_CLIENT_SECRET in environment or .env"
            )
        return cls(
            client_id=client_id,
            client_secret=client_secret,
            redirect_url=os.getenv("DRIVESTORE_REDIRECT_URL", DEFAULT_REDIRECT_URL),
        )

    def auth_code_url(self, state: str = "state-token", offline: bool = True) -> str:
        """Return the consent page URL the user opens to obtain a code."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_url,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "state": state,
        }
        if offline:
            # Without a forced consent prompt Google omits the refresh token
            # for users who granted access before.
            params["access_type"] = "offline"
            params["prompt"] = "consent"
        return f"{self.auth_url}?{urlencode(params)}"

    def exchange(self, code: str, timeout: float = 30.0) -> OAuthToken:
        """Exchange an authorization code for a token."""
        res = requests.post(
            self.token_url,
            data={
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.redirect_url,
                "grant_type": "authorization_code",
            },
            timeout=timeout,
        )
        if res.status_code != 200:
            try:
                detail = res.json()
            except Exception:
                detail = res.text
            raise AuthError(f"Token exchange failed: {res.status_code} {detail}")

        data = res.json()
        access_token = data.get("access_token")
        if not access_token:
            raise AuthError("Token exchange succeeded but access_token missing in response")
        refresh_token = data.get("refresh_token")
        if not refresh_token:
            raise AuthError("Token exchange succeeded but refresh_token missing in response")

        expires_in = int(data.get("expires_in", 3600))
        return OAuthToken(
            access_token=access_token,
            token_type=data.get("token_type", "Bearer"),
            refresh_token=refresh_token,
            expiry=datetime.now(UTC) + timedelta(seconds=expires_in),
        )


def extract_auth_code(text: str) -> str:
    """Return the authorization code from a pasted code or redirected URL."""
    text = text.strip()
    if "://" in text:
        query = parse_qs(urlparse(text).query)
        if "error" in query:
            raise AuthError(f"Authorization denied: {query['error'][0]}")
        codes = query.get("code")
        if not codes:
            raise AuthError(f"No authorization code in URL: {text}")
        return codes[0]
    if not text:
        raise AuthError("Empty authorization code")
    return text
