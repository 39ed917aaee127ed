"""OAuth credentials for the Home Connect API.

The transport only needs something that hands out a bearer token and can
refresh it. :class:`OAuthCredentialProvider` implements that with the
refresh-token grant of the Home Connect authorization server.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from .api import HTTP_OK, AuthError, CommunicationError
from .const import API_BASE_URL, OAUTH_TOKEN_PATH
from .models import Credential

if TYPE_CHECKING:
    from collections.abc import Callable

_LOGGER = logging.getLogger(__name__)

HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401


class CredentialProvider(Protocol):
    """Source of bearer credentials for the transport."""

    async def async_get_valid_token(self) -> Credential:
        """Return the current credential."""

    async def async_refresh(self, credential: Credential) -> Credential:
        """Refresh the given credential and return the new one."""


def extract_credential(data: dict[str, Any], previous: Credential) -> Credential:
    """Build a credential from a token endpoint response.

    Args:
        data: Token endpoint JSON response.
        previous: Credential being refreshed; its refresh token is kept if
            the server does not rotate it.

    Returns:
        The new credential.

    Raises:
        AuthError: If the response carries no access token.

    """
    access_token = data.get("access_token")
    if not access_token:
        error_msg = "Token response without access token"
        raise AuthError(error_msg)

    expire_at = None
    expires_in = data.get("expires_in")
    if expires_in is not None:
        expire_at = datetime.now(UTC) + timedelta(seconds=int(expires_in))

    return Credential(
        access_token=access_token,
        refresh_token=data.get("refresh_token") or previous.refresh_token,
        expire_at=expire_at,
    )


class OAuthCredentialProvider:
    """Credential provider using the OAuth refresh-token grant."""

    def __init__(  # noqa: PLR0913
        self,
        session: httpx.AsyncClient,
        client_id: str,
        client_secret: str,
        credential: Credential,
        base_url: str = API_BASE_URL,
        on_refresh: Callable[[Credential], None] | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            session: HTTP client session.
            client_id: OAuth client id of the registered application.
            client_secret: OAuth client secret.
            credential: Initial credential, usually restored from the config
                entry.
            base_url: Authorization server base URL.
            on_refresh: Called with every newly issued credential.

        """
        self._session = session
        self._client_id = client_id
        self._client_secret = client_secret
        self._credential = credential
        self._token_url = f"{base_url.rstrip('/')}{OAUTH_TOKEN_PATH}"
        self._on_refresh = on_refresh
        self._lock = asyncio.Lock()

    @property
    def credential(self) -> Credential:
        return self._credential

    async def async_get_valid_token(self) -> Credential:
        return self._credential

    async def async_refresh(self, credential: Credential) -> Credential:
        """Refresh the access token.

        Concurrent callers holding the same stale credential share one
        refresh: whoever gets the lock second finds a newer credential and
        returns it.

        Raises:
            AuthError: If no refresh token is available or it was rejected.
            CommunicationError: If the token endpoint could not be reached.

        """
        async with self._lock:
            if self._credential.access_token != credential.access_token:
                return self._credential

            refresh_token = self._credential.refresh_token
            if not refresh_token:
                error_msg = "No refresh token available"
                raise AuthError(error_msg)

            _LOGGER.debug("Refreshing Home Connect access token")
            try:
                response = await self._session.post(
                    self._token_url,
                    data={
                        "grant_type": "refresh_token",
                        "refresh_token": refresh_token,
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                    },
                )
            except httpx.HTTPError as err:
                error_msg = f"Token refresh failed: {err}"
                raise CommunicationError(None, error_msg) from err

            if response.status_code in (HTTP_BAD_REQUEST, HTTP_UNAUTHORIZED):
                error_msg = f"Refresh token rejected: {response.text}"
                raise AuthError(error_msg)
            if response.status_code != HTTP_OK:
                raise CommunicationError(
                    response.status_code, response.reason_phrase, response.text
                )

            try:
                data = response.json()
            except ValueError as err:
                error_msg = "Token response is not valid JSON"
                raise AuthError(error_msg) from err
            if not isinstance(data, dict):
                error_msg = "Token response is not a JSON object"
                raise AuthError(error_msg)

            self._credential = extract_credential(data, self._credential)
            _LOGGER.info("Successfully refreshed Home Connect access token")

        if self._on_refresh is not None:
            self._on_refresh(self._credential)
        return self._credential
