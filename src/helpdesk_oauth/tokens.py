"""Token lifecycle operations: exchange, refresh, validation and revocation.

Exchange and refresh raise typed :mod:`helpdesk_oauth.errors` exceptions.
Validation and revocation are advisory: they never raise and collapse every
failure to ``False``, logging the underlying cause for operators.
"""

import logging
from typing import Dict, List, Optional

import httpx

from helpdesk_oauth.authorization import require, validate_subdomain
from helpdesk_oauth.errors import NetworkError, OAuthError
from helpdesk_oauth.models import TokenResponse
from helpdesk_oauth.transport import (
    CURRENT_TOKEN_PATH,
    FORM_HEADERS,
    TOKEN_PATH,
    TenantHTTPClient,
    bearer_headers,
    json_body,
    raise_for_not_found,
    raise_for_provider_error,
    raise_for_rate_limit,
)

logger = logging.getLogger(__name__)

EXCHANGE_FAILED = "Failed to exchange authorization code"
REFRESH_FAILED = "Token refresh failed"


class _TokenEndpointClient(TenantHTTPClient):
    """Common form-encoded POST to the token endpoint."""

    async def _post_token(self, subdomain: str, form: Dict[str, str], failure_message: str) -> httpx.Response:
        url = self.url(subdomain, TOKEN_PATH)
        try:
            return await self.send(
                "POST",
                url,
                data=form,
                headers=FORM_HEADERS,
                timeout=self.settings.request_timeout,
            )
        except httpx.TimeoutException as e:
            logger.warning("Token endpoint timed out for subdomain %s", subdomain)
            raise NetworkError(f"{failure_message}: request timed out") from e
        except httpx.HTTPError as e:
            logger.warning("Token endpoint transport failure for subdomain %s: %s", subdomain, type(e).__name__)
            raise NetworkError(failure_message) from e

    @staticmethod
    def _parse_token(response: httpx.Response, failure_message: str) -> TokenResponse:
        try:
            return TokenResponse.from_provider(response.json())
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Malformed token response (HTTP %s)", response.status_code)
            raise NetworkError(failure_message) from e


class TokenExchangeClient(_TokenEndpointClient):
    """Turns an authorization code into a token (``authorization_code`` grant)."""

    async def exchange(
        self,
        code: str,
        redirect_uri: str,
        subdomain: str,
        scopes: Optional[List[str]] = None,
    ) -> TokenResponse:
        """Exchange an authorization code for an access token.

        Args:
            code: Authorization code from the callback
            redirect_uri: Must equal the URI used to build the authorization URL
            subdomain: Tenant subdomain
            scopes: Requested scopes, defaults to the configured default scopes

        Returns:
            The issued token; ``scope`` defaults to ``"read"`` when omitted

        Raises:
            ValidationError: Malformed subdomain or missing code/redirect URI
            ConfigurationError: Client credentials are not configured
            NotFoundError: The provider reports 404 for the tenant
            RateLimitError: The provider reports 429
            ProviderError: The provider reports a structured OAuth error
            NetworkError: Any other transport or provider failure
        """
        validate_subdomain(subdomain)
        require(code, "code")
        require(redirect_uri, "redirect_uri")
        self._require_credentials()

        credentials = self.settings.credentials
        form = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": credentials.client_id,
            "client_secret": credentials.client_secret,
            "redirect_uri": redirect_uri,
            "scope": " ".join(scopes or credentials.default_scopes),
        }

        response = await self._post_token(subdomain, form, EXCHANGE_FAILED)

        raise_for_not_found(response)
        raise_for_rate_limit(response)
        raise_for_provider_error(response)
        if not response.is_success:
            logger.warning("Token exchange failed with HTTP %s for subdomain %s", response.status_code, subdomain)
            raise NetworkError(EXCHANGE_FAILED)

        token = self._parse_token(response, EXCHANGE_FAILED)
        logger.info("Exchanged authorization code for subdomain %s", subdomain)
        return token


class TokenRefreshClient(_TokenEndpointClient):
    """Obtains a new token from a refresh token (``refresh_token`` grant)."""

    async def refresh(self, refresh_token: str, subdomain: str) -> TokenResponse:
        """Refresh an access token.

        Raises:
            ValidationError: Malformed subdomain or missing refresh token
            ConfigurationError: Client credentials are not configured
            RateLimitError: The provider reports 429
            ProviderError: The provider reports a structured OAuth error
            NetworkError: Any other failure
        """
        validate_subdomain(subdomain)
        require(refresh_token, "refresh_token")
        self._require_credentials()

        credentials = self.settings.credentials
        form = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": credentials.client_id,
            "client_secret": credentials.client_secret,
        }

        response = await self._post_token(subdomain, form, REFRESH_FAILED)

        raise_for_rate_limit(response)
        raise_for_provider_error(response)
        if not response.is_success:
            logger.warning("Token refresh failed with HTTP %s for subdomain %s", response.status_code, subdomain)
            raise NetworkError(REFRESH_FAILED)

        token = self._parse_token(response, REFRESH_FAILED)
        logger.info("Refreshed access token for subdomain %s", subdomain)
        return token


class TokenValidator(TenantHTTPClient):
    """Introspects whether an access token is currently active."""

    async def validate(self, access_token: str, subdomain: str) -> bool:
        """Return True only if the provider reports the token as active. Never raises."""
        try:
            require(access_token, "access_token")
            self._require_credentials()
            url = self.url(subdomain, CURRENT_TOKEN_PATH)
            response = await self.send(
                "POST",
                url,
                headers=bearer_headers(access_token),
                timeout=self.settings.validation_timeout,
            )
        except OAuthError as e:
            logger.warning("Token validation skipped: %s", e.message)
            return False
        except httpx.HTTPError as e:
            logger.warning("Token validation transport failure for subdomain %s: %s", subdomain, type(e).__name__)
            return False
        except Exception:
            logger.exception("Unexpected error validating token for subdomain %s", subdomain)
            return False

        if not response.is_success:
            logger.info("Token validation returned HTTP %s for subdomain %s", response.status_code, subdomain)
            return False

        return json_body(response).get("active") is True


class TokenRevoker(TenantHTTPClient):
    """Invalidates an access token.

    Callers cannot tell "already revoked" from "revocation failed"; both are False.
    """

    async def revoke(self, access_token: str, subdomain: str) -> bool:
        """Return True if the provider accepted the revocation. Never raises."""
        try:
            require(access_token, "access_token")
            self._require_credentials()
            url = self.url(subdomain, CURRENT_TOKEN_PATH)
            response = await self.send(
                "DELETE",
                url,
                headers=bearer_headers(access_token),
                timeout=self.settings.request_timeout,
            )
        except OAuthError as e:
            logger.warning("Token revocation skipped: %s", e.message)
            return False
        except httpx.HTTPError as e:
            logger.warning("Token revocation transport failure for subdomain %s: %s", subdomain, type(e).__name__)
            return False
        except Exception:
            logger.exception("Unexpected error revoking token for subdomain %s", subdomain)
            return False

        if not response.is_success:
            logger.warning("Token revocation returned HTTP %s for subdomain %s", response.status_code, subdomain)
            return False

        logger.info("Revoked access token for subdomain %s", subdomain)
        return True
