"""Shared HTTP plumbing for the network-facing components."""

import logging
from typing import Any, Dict, Optional

import httpx

from helpdesk_oauth.authorization import validate_subdomain
from helpdesk_oauth.config import OAuthSettings
from helpdesk_oauth.errors import ConfigurationError, NotFoundError, ProviderError, RateLimitError

logger = logging.getLogger(__name__)

FORM_HEADERS = {
    "Content-Type": "application/x-www-form-urlencoded",
    "Accept": "application/json",
}

TOKEN_PATH = "/oauth/tokens"
CURRENT_TOKEN_PATH = "/oauth/tokens/current"
USER_INFO_PATH = "/api/v2/users/me.json"
CLIENT_PATH = "/oauth/clients/{client_id}"


def bearer_headers(access_token: str) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {access_token}",
        "Accept": "application/json",
    }


def json_body(response: httpx.Response) -> Dict[str, Any]:
    """Return the decoded JSON object, or an empty dict for anything else."""
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def raise_for_rate_limit(response: httpx.Response) -> None:
    if response.status_code == 429:
        raise RateLimitError(retry_after_header=response.headers.get("retry-after"))


def raise_for_provider_error(response: httpx.Response) -> None:
    """Raise ``ProviderError`` when the body carries a structured ``error`` field."""
    data = json_body(response)
    error_code = data.get("error")
    if error_code:
        description = data.get("error_description")
        raise ProviderError(
            str(error_code),
            str(description) if description else None,
        )


def raise_for_not_found(response: httpx.Response) -> None:
    if response.status_code == 404:
        raise NotFoundError()


class TenantHTTPClient:
    """Base class for components that call per-tenant provider endpoints.

    Components may share one ``httpx.AsyncClient``; a component that creates
    its own client closes it in :meth:`aclose`.
    """

    def __init__(self, settings: OAuthSettings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.request_timeout)

    def url(self, subdomain: str, path: str) -> str:
        """Build an endpoint URL, validating the subdomain first.

        Raises:
            ValidationError: If the subdomain is malformed
        """
        validate_subdomain(subdomain)
        return f"{self.settings.base_url(subdomain)}{path}"

    def _require_credentials(self) -> None:
        """Refuse network operations while client credentials are missing.

        Raises:
            ConfigurationError: If the client id or secret is empty
        """
        if not self.settings.credentials.is_configured:
            raise ConfigurationError()

    async def send(self, method: str, url: str, *, timeout: Optional[float] = None, **kwargs: Any) -> httpx.Response:
        """Issue a single request. No retries; transport errors propagate."""
        timeout = timeout if timeout is not None else self.settings.request_timeout
        logger.debug("%s %s (timeout=%ss)", method, url, timeout)
        return await self._client.request(method, url, timeout=timeout, **kwargs)

    async def aclose(self) -> None:
        """Close the HTTP client if this component created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        await self.aclose()
