"""High-level facade over the integration components.

``HelpDeskOAuthService`` wires every component to one immutable
:class:`~helpdesk_oauth.config.OAuthSettings` and one shared
``httpx.AsyncClient``. It holds no per-user or per-tenant state: the tenant
subdomain is an argument of every call.

Usage:
    ```python
    settings = load_settings()

    async with HelpDeskOAuthService(settings) as oauth:
        state = oauth.generate_state()
        url = oauth.get_authorization_url("acme", "https://app.example.com/cb", state)
        # ... redirect, then on callback:
        code = oauth.parse_callback(request.query_params, expected_state=state)
        token = await oauth.exchange_code_for_token(code, "https://app.example.com/cb", "acme")
        user = await oauth.get_user_info(token.access_token, "acme")
    ```
"""

import logging
from typing import Any, List, Mapping, Optional

import httpx

from helpdesk_oauth.authorization import AuthorizationURLBuilder
from helpdesk_oauth.config import OAuthSettings
from helpdesk_oauth.errors import ErrorClassifier, ProviderError, ValidationError
from helpdesk_oauth.identity import ScopeDiscoveryClient, UserInfoFetcher
from helpdesk_oauth.models import TokenResponse, UserIdentity
from helpdesk_oauth.state import StateTokenManager
from helpdesk_oauth.tokens import TokenExchangeClient, TokenRefreshClient, TokenRevoker, TokenValidator
from helpdesk_oauth.webhook_verification import Payload, WebhookSignatureVerifier

logger = logging.getLogger(__name__)


class HelpDeskOAuthService:
    """OAuth2 and webhook integration with a multi-tenant help desk."""

    def __init__(self, settings: OAuthSettings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.request_timeout)

        self.url_builder = AuthorizationURLBuilder(settings)
        self.state_manager = StateTokenManager()
        self.webhook_verifier = WebhookSignatureVerifier()
        self.exchange_client = TokenExchangeClient(settings, self._client)
        self.refresh_client = TokenRefreshClient(settings, self._client)
        self.validator = TokenValidator(settings, self._client)
        self.revoker = TokenRevoker(settings, self._client)
        self.user_info = UserInfoFetcher(settings, self._client)
        self.scope_discovery = ScopeDiscoveryClient(settings, self._client)

    def get_authorization_url(
        self,
        subdomain: str,
        redirect_uri: str,
        state: str,
        scopes: Optional[List[str]] = None,
    ) -> str:
        return self.url_builder.build(subdomain, redirect_uri, state, scopes)

    async def exchange_code_for_token(
        self,
        code: str,
        redirect_uri: str,
        subdomain: str,
        scopes: Optional[List[str]] = None,
    ) -> TokenResponse:
        return await self.exchange_client.exchange(code, redirect_uri, subdomain, scopes)

    async def refresh_token(self, refresh_token: str, subdomain: str) -> TokenResponse:
        return await self.refresh_client.refresh(refresh_token, subdomain)

    async def get_user_info(self, access_token: str, subdomain: str) -> UserIdentity:
        return await self.user_info.fetch(access_token, subdomain)

    async def validate_token(self, access_token: str, subdomain: str) -> bool:
        return await self.validator.validate(access_token, subdomain)

    async def revoke_token(self, access_token: str, subdomain: str) -> bool:
        return await self.revoker.revoke(access_token, subdomain)

    async def get_available_scopes(self, subdomain: str) -> List[str]:
        return await self.scope_discovery.available_scopes(subdomain)

    def verify_webhook_signature(
        self,
        payload: Payload,
        signature: Optional[str],
        secret: Optional[str] = None,
    ) -> bool:
        """Verify a webhook signature, falling back to the configured webhook secret."""
        return self.webhook_verifier.verify(payload, signature, secret or self.settings.webhook_secret)

    def generate_state(self) -> str:
        return self.state_manager.generate_state()

    def validate_state(self, received: Any, expected: Any) -> bool:
        return self.state_manager.validate_state(received, expected)

    @staticmethod
    def parse_oauth_error(error_code: Any, description: Optional[str] = None) -> str:
        return ErrorClassifier.classify(error_code, description)

    def parse_callback(self, params: Mapping[str, Any], expected_state: Optional[str]) -> str:
        """Validate the provider's redirect back to us and return the authorization code.

        The caller must discard ``expected_state`` after this call whatever the
        outcome; states are single-use.

        Args:
            params: Callback query parameters
            expected_state: State issued when the authorization URL was built

        Returns:
            The authorization code

        Raises:
            ProviderError: The provider redirected with an ``error`` parameter
            ValidationError: Missing code or state, or state mismatch
        """
        error_code = params.get("error")
        if error_code:
            raise ProviderError(str(error_code), params.get("error_description") or None)

        code = params.get("code")
        received_state = params.get("state")
        if not code:
            raise ValidationError("Missing authorization code")
        if not received_state:
            raise ValidationError("Missing state parameter")
        if not self.state_manager.validate_state(received_state, expected_state):
            logger.warning("OAuth callback rejected: state mismatch")
            raise ValidationError("Invalid OAuth state")
        return str(code)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HelpDeskOAuthService":
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        await self.aclose()
