"""Bearer token providers for the Domo API.

Every request made by the stream transport asks a token provider for a
currently valid access token. ``ClientCredentialsTokenProvider`` implements
the OAuth2 client-credentials grant used by Domo client applications and
refreshes the token transparently once it is about to expire.
``StaticTokenProvider`` wraps an access token issued elsewhere.
"""

import logging
import threading
import time
from typing import Protocol

from oauthlib.oauth2 import BackendApplicationClient, OAuth2Error
from requests.exceptions import RequestException
from requests_oauthlib import OAuth2Session

from domostream.core.const import (
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SCOPES,
    TOKEN_EXPIRY_LEEWAY_S,
    TOKEN_URL,
)
from domostream.core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class TokenProvider(Protocol):
    """Source of bearer credentials for Domo API calls."""

    def get_token(self) -> str:
        """Return a currently valid access token."""
        ...

    def get_headers(self) -> dict[str, str]:
        """Return the authorization headers for a request."""
        ...


class StaticTokenProvider:
    """Token provider for a pre-issued access token."""

    def __init__(self, access_token: str):
        """Initialize the provider.

        Args:
            access_token: Access token to attach to every request.
        """
        if not access_token:
            raise AuthenticationError("An access token is required")
        self._access_token = access_token

    def get_token(self) -> str:
        """Return the configured access token."""
        return self._access_token

    def get_headers(self) -> dict[str, str]:
        """Return the bearer authorization header."""
        return {"Authorization": f"Bearer {self.get_token()}"}


class ClientCredentialsTokenProvider:
    """OAuth2 client-credentials token provider with transparent refresh.

    The token is cached in memory and shared by all threads using the
    provider. It is refreshed under a lock once fewer than ``leeway`` seconds
    of its lifetime remain, so concurrent callers never request more than one
    new token at a time.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        scopes: tuple[str, ...] | list[str] = DEFAULT_SCOPES,
        token_url: str = TOKEN_URL,
        leeway: float = TOKEN_EXPIRY_LEEWAY_S,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        """Initialize the provider.

        Args:
            client_id: Domo client application id.
            client_secret: Domo client application secret.
            scopes: OAuth2 scopes to request, e.g. ``("data",)``.
            token_url: Token endpoint URL.
            leeway: Seconds before expiry at which the token is refreshed.
            timeout: Timeout in seconds for the token request.
        """
        if not client_id or not client_secret:
            raise AuthenticationError("Both client_id and client_secret are required")
        self.client_id = client_id
        self._client_secret = client_secret
        self.scopes = list(scopes)
        self.token_url = token_url
        self.leeway = leeway
        self.timeout = timeout

        self._lock = threading.Lock()
        self._access_token: str | None = None
        self._expires_at = 0.0
        self.refresh_count = 0
        self.use_count = 0

    def _is_expired(self) -> bool:
        return self._access_token is None or time.monotonic() >= self._expires_at

    def _fetch_token(self) -> dict:
        """Request a new token from the token endpoint.

        Returns:
            The token response as parsed by oauthlib.

        Raises:
            AuthenticationError: If the token request fails.
        """
        session = OAuth2Session(
            client=BackendApplicationClient(
                client_id=self.client_id, scope=self.scopes
            )
        )
        try:
            return session.fetch_token(
                token_url=self.token_url,
                client_id=self.client_id,
                client_secret=self._client_secret,
                timeout=self.timeout,
            )
        except (OAuth2Error, RequestException, ValueError) as e:
            raise AuthenticationError(f"Failed to obtain access token: {e}") from e
        finally:
            session.close()

    def get_token(self) -> str:
        """Return a valid access token, refreshing it when expired.

        Returns:
            The bearer access token.

        Raises:
            AuthenticationError: If a new token cannot be obtained.
        """
        with self._lock:
            if self._access_token is not None and not self._is_expired():
                self.use_count += 1
                return self._access_token

            token = self._fetch_token()
            expires_in = float(token.get("expires_in", 0))
            if self._access_token is not None:
                self.refresh_count += 1
            access_token: str = token["access_token"]
            self._access_token = access_token
            self._expires_at = time.monotonic() + expires_in - self.leeway
            self.use_count = 0
            logger.debug(
                "Fetched access token: client_id=%s refresh_count=%d",
                self.client_id,
                self.refresh_count,
            )
            return access_token

    def get_headers(self) -> dict[str, str]:
        """Return the bearer authorization header."""
        return {"Authorization": f"Bearer {self.get_token()}"}
