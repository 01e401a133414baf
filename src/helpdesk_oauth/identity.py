"""Caller identity and client scope lookups."""

import logging
from typing import List
from urllib.parse import quote

import httpx

from helpdesk_oauth.authorization import require, validate_subdomain
from helpdesk_oauth.errors import AuthError, NetworkError, OAuthError
from helpdesk_oauth.models import UserIdentity
from helpdesk_oauth.transport import (
    CLIENT_PATH,
    USER_INFO_PATH,
    TenantHTTPClient,
    bearer_headers,
    json_body,
    raise_for_rate_limit,
)

logger = logging.getLogger(__name__)

FETCH_FAILED = "Failed to fetch user information"


class UserInfoFetcher(TenantHTTPClient):
    """Retrieves the user that owns an access token."""

    async def fetch(self, access_token: str, subdomain: str) -> UserIdentity:
        """Fetch the authenticated user's identity.

        Raises:
            ValidationError: Malformed subdomain or missing token
            ConfigurationError: Client credentials are not configured
            AuthError: The provider reports 401
            RateLimitError: The provider reports 429
            NetworkError: Any other failure
        """
        validate_subdomain(subdomain)
        require(access_token, "access_token")
        self._require_credentials()
        url = self.url(subdomain, USER_INFO_PATH)

        try:
            response = await self.send(
                "GET",
                url,
                headers=bearer_headers(access_token),
                timeout=self.settings.request_timeout,
            )
        except httpx.HTTPError as e:
            logger.warning("Identity endpoint transport failure for subdomain %s: %s", subdomain, type(e).__name__)
            raise NetworkError(FETCH_FAILED) from e

        if response.status_code == 401:
            raise AuthError()
        raise_for_rate_limit(response)
        if not response.is_success:
            logger.warning("Identity fetch returned HTTP %s for subdomain %s", response.status_code, subdomain)
            raise NetworkError(FETCH_FAILED)

        user = json_body(response).get("user")
        if not isinstance(user, dict):
            raise NetworkError(f"{FETCH_FAILED}: response has no user object")
        try:
            return UserIdentity.from_provider(user, subdomain)
        except KeyError as e:
            raise NetworkError(f"{FETCH_FAILED}: user object has no id") from e


class ScopeDiscoveryClient(TenantHTTPClient):
    """Looks up the scopes registered for this OAuth client."""

    async def available_scopes(self, subdomain: str) -> List[str]:
        """Return the client's scopes, or the default scopes if they cannot be fetched."""
        defaults = list(self.settings.credentials.default_scopes)
        client_id = self.settings.credentials.client_id
        if not client_id:
            return defaults

        try:
            url = self.url(subdomain, CLIENT_PATH.format(client_id=quote(client_id, safe="")))
            response = await self.send("GET", url, timeout=self.settings.request_timeout)
        except OAuthError as e:
            logger.warning("Scope lookup skipped: %s", e.message)
            return defaults
        except httpx.HTTPError as e:
            logger.warning("Scope lookup transport failure for subdomain %s: %s", subdomain, type(e).__name__)
            return defaults

        if not response.is_success:
            logger.info("Scope lookup returned HTTP %s for subdomain %s", response.status_code, subdomain)
            return defaults

        scopes = json_body(response).get("scopes")
        if isinstance(scopes, list) and scopes and all(isinstance(s, str) for s in scopes):
            return scopes
        return defaults
