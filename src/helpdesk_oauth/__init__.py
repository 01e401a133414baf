"""helpdesk-oauth - OAuth2 and webhook integration for multi-tenant help desks.

The package implements the security-critical integration layer with a help
desk that exposes each customer under its own subdomain: the authorization-code
grant, token refresh, introspection and revocation, identity lookup, CSRF
state handling and webhook signature verification.

Key Components:
    - HelpDeskOAuthService: Facade wiring every component to one configuration
    - OAuthSettings / TenantCredentials: Immutable configuration
    - OAuthError and subclasses: Stable error taxonomy

Usage:
    ```python
    from helpdesk_oauth import HelpDeskOAuthService, load_settings

    oauth = HelpDeskOAuthService(load_settings())
    url = oauth.get_authorization_url("acme", "https://app.example.com/cb", oauth.generate_state())
    ```
"""

from helpdesk_oauth.authorization import AuthorizationURLBuilder, validate_subdomain
from helpdesk_oauth.config import OAuthSettings, TenantCredentials, load_settings
from helpdesk_oauth.errors import (
    AuthError,
    ConfigurationError,
    ErrorClassifier,
    NetworkError,
    NotFoundError,
    OAuthError,
    OAuthErrorCode,
    OAuthErrorKind,
    ProviderError,
    RateLimitError,
    ValidationError,
    parse_oauth_error,
)
from helpdesk_oauth.identity import ScopeDiscoveryClient, UserInfoFetcher
from helpdesk_oauth.models import AuthorizationRequest, TokenResponse, UserIdentity, WebhookEnvelope
from helpdesk_oauth.service import HelpDeskOAuthService
from helpdesk_oauth.state import StateTokenManager
from helpdesk_oauth.tokens import TokenExchangeClient, TokenRefreshClient, TokenRevoker, TokenValidator
from helpdesk_oauth.webhook_verification import WebhookSignatureVerifier, webhook_signature_guard

__version__ = "0.1.0"

__all__ = [
    "AuthorizationURLBuilder",
    "validate_subdomain",
    "OAuthSettings",
    "TenantCredentials",
    "load_settings",
    "AuthError",
    "ConfigurationError",
    "ErrorClassifier",
    "NetworkError",
    "NotFoundError",
    "OAuthError",
    "OAuthErrorCode",
    "OAuthErrorKind",
    "ProviderError",
    "RateLimitError",
    "ValidationError",
    "parse_oauth_error",
    "ScopeDiscoveryClient",
    "UserInfoFetcher",
    "AuthorizationRequest",
    "TokenResponse",
    "UserIdentity",
    "WebhookEnvelope",
    "HelpDeskOAuthService",
    "StateTokenManager",
    "TokenExchangeClient",
    "TokenRefreshClient",
    "TokenRevoker",
    "TokenValidator",
    "WebhookSignatureVerifier",
    "webhook_signature_guard",
]
