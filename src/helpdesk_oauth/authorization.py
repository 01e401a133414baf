"""Authorization-URL construction and tenant subdomain validation."""

import logging
import re
from typing import Any, List, Optional
from urllib.parse import urlencode

from helpdesk_oauth.config import OAuthSettings
from helpdesk_oauth.errors import ValidationError
from helpdesk_oauth.models import AuthorizationRequest

logger = logging.getLogger(__name__)

SUBDOMAIN_PATTERN = re.compile(r"[A-Za-z0-9-]+")
AUTHORIZATION_PATH = "/oauth/authorizations/new"


def validate_subdomain(subdomain: Any) -> str:
    """Return ``subdomain`` if it is made only of ASCII letters, digits and hyphens.

    Raises:
        ValidationError: For empty, non-string or otherwise malformed values
    """
    if not isinstance(subdomain, str) or not SUBDOMAIN_PATTERN.fullmatch(subdomain):
        raise ValidationError("Invalid subdomain format")
    return subdomain


def require(value: Any, name: str) -> str:
    """Return ``value`` if it is a non-empty string, else raise ``ValidationError``."""
    if not isinstance(value, str) or not value:
        raise ValidationError(f"Missing required parameter: {name}")
    return value


class AuthorizationURLBuilder:
    """Builds the provider login-redirect URL for a tenant.

    Pure: no network access, and it works even when client credentials are
    absent (the ``client_id`` parameter is then empty).
    """

    def __init__(self, settings: OAuthSettings):
        self.settings = settings

    def build(
        self,
        subdomain: str,
        redirect_uri: str,
        state: str,
        scopes: Optional[List[str]] = None,
    ) -> str:
        """Build the authorization URL.

        Args:
            subdomain: Tenant subdomain, e.g. ``acme``
            redirect_uri: Callback URI; must be reused verbatim for the token exchange
            state: Opaque CSRF state, included verbatim
            scopes: Requested scopes, defaults to the configured default scopes

        Returns:
            The full authorization URL

        Raises:
            ValidationError: If the subdomain is malformed or a parameter is missing
        """
        validate_subdomain(subdomain)
        require(redirect_uri, "redirect_uri")
        require(state, "state")

        scope_list = scopes if scopes else self.settings.credentials.default_scopes
        params = {
            "response_type": "code",
            "client_id": self.settings.credentials.client_id,
            "redirect_uri": redirect_uri,
            "scope": " ".join(scope_list),
            "state": state,
        }

        url = f"{self.settings.base_url(subdomain)}{AUTHORIZATION_PATH}?{urlencode(params)}"
        logger.debug("Built authorization URL for subdomain %s", subdomain)
        return url

    def build_for(self, request: AuthorizationRequest) -> str:
        return self.build(
            request.subdomain,
            request.redirect_uri,
            request.state,
            list(request.scopes),
        )
