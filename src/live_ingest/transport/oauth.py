"""
OAuth2 authorization-code flow and token refresh for the YouTube Data API.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

import httpx
from loguru import logger

from ..errors import AuthenticationError, ConfigurationError, TransportError
from .settings_store import REFRESH_TOKEN_KEY, LocalSettings


AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
SCOPE = "https://www.googleapis.com/auth/youtube.readonly"

# ${VAR} left in place by read_yaml when the variable is unset
_PLACEHOLDER = re.compile(r"^\$\{\w+\}$")


def _is_set(value: str) -> bool:
    value = (value or "").strip()
    return bool(value) and not _PLACEHOLDER.match(value)


@dataclass
class TokenSet:
    access_token: str
    expires_at: float
    refresh_token: str = ""


class OAuthManager:
    """
    Manages OAuth2 tokens for the polling transport.

    Handles:
    - Authorization URL generation
    - Code exchange
    - Proactive token refresh
    - Refresh token persistence
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        settings: LocalSettings,
        refresh_margin: float = 60.0,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            client_id: OAuth2 client ID from the Google Cloud console
            client_secret: OAuth2 client secret
            redirect_uri: Loopback redirect URI registered for the client
            settings: Store holding the refresh token
            refresh_margin: Refresh this many seconds before expiry
            timeout: HTTP timeout for token requests
            transport: Custom httpx transport (tests)
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.settings = settings
        self.refresh_margin = refresh_margin
        self.timeout = timeout
        self._transport = transport
        self._tokens: Optional[TokenSet] = None

    @property
    def has_client_credentials(self) -> bool:
        return _is_set(self.client_id) and _is_set(self.client_secret)

    def require_client_credentials(self) -> None:
        """
        Raises:
            ConfigurationError: If the client id or secret is missing
        """
        if not self.has_client_credentials:
            raise ConfigurationError(
                "YouTube OAuth client id/secret not set "
                "(youtube.oauth.client_id / client_secret or YOUTUBE_CLIENT_ID / YOUTUBE_CLIENT_SECRET)"
            )

    @property
    def refresh_token(self) -> str:
        return self.settings.get(REFRESH_TOKEN_KEY, "") or ""

    @property
    def is_authorized(self) -> bool:
        return bool(self.refresh_token) or self._tokens is not None

    @property
    def access_token(self) -> str:
        return self._tokens.access_token if self._tokens else ""

    @property
    def expires_at(self) -> float:
        return self._tokens.expires_at if self._tokens else 0.0

    def generate_auth_url(self, state: str) -> str:
        """
        Returns:
            str: Consent page URL for the user to visit
        """
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": SCOPE,
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return f"{AUTH_URL}?{urlencode(params)}"

    async def _token_request(self, data: dict) -> dict:
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self.timeout
            ) as client:
                response = await client.post(TOKEN_URL, data=data)
        except httpx.HTTPError as e:
            raise TransportError(f"Token endpoint unreachable: {e}") from e

        if response.status_code in (400, 401):
            try:
                body = response.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}
            error = body.get("error", "invalid_request")
            description = body.get("error_description", "")
            raise AuthenticationError(f"Token request rejected: {error} {description}".strip())
        if response.status_code >= 400:
            raise TransportError(
                f"Token endpoint returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response.json()

    def _store_tokens(self, data: dict, now: float) -> TokenSet:
        refresh_token = data.get("refresh_token") or self.refresh_token
        tokens = TokenSet(
            access_token=data["access_token"],
            expires_at=now + float(data.get("expires_in", 3600)),
            refresh_token=refresh_token,
        )
        self._tokens = tokens
        if refresh_token:
            self.settings.set(REFRESH_TOKEN_KEY, refresh_token)
        return tokens

    async def exchange_code(self, code: str, now: Optional[float] = None) -> TokenSet:
        """
        Exchange an authorization code for access and refresh tokens.

        Raises:
            AuthenticationError: If the code is rejected
        """
        data = await self._token_request(
            {
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.redirect_uri,
                "grant_type": "authorization_code",
            }
        )
        tokens = self._store_tokens(data, time.time() if now is None else now)
        logger.success("[YouTube] Authorization completed, refresh token stored")
        return tokens

    async def refresh_access_token(self, now: Optional[float] = None) -> TokenSet:
        """
        Obtain a new access token with the stored refresh token.

        Raises:
            AuthenticationError: If there is no refresh token or it was revoked
        """
        refresh_token = self.refresh_token
        if not refresh_token:
            raise AuthenticationError("No refresh token stored; authorization required")

        data = await self._token_request(
            {
                "refresh_token": refresh_token,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "grant_type": "refresh_token",
            }
        )
        tokens = self._store_tokens(data, time.time() if now is None else now)
        logger.debug(
            f"[YouTube] Access token refreshed, expires in {tokens.expires_at - time.time():.0f}s"
        )
        return tokens

    def needs_refresh(self, now: Optional[float] = None) -> bool:
        if self._tokens is None:
            return True
        now = time.time() if now is None else now
        return now >= self._tokens.expires_at - self.refresh_margin

    async def ensure_access_token(self, now: Optional[float] = None) -> str:
        """Return a valid access token, refreshing it first when it is close to expiry."""
        if self.needs_refresh(now):
            await self.refresh_access_token(now)
        return self.access_token

    def invalidate(self) -> None:
        """Forget the current access token so the next call refreshes it."""
        self._tokens = None

    def clear_tokens(self) -> None:
        self._tokens = None
        self.settings.delete(REFRESH_TOKEN_KEY)
        logger.info("[YouTube] Stored tokens cleared")
