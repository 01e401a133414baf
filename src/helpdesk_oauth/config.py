"""Process-wide configuration for helpdesk-oauth.

Settings are built once at startup, usually from environment variables via
:func:`load_settings`, and then passed into each component. Models are frozen
so a shared instance can be read from any number of tasks without locking.
"""

import logging
import os
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from helpdesk_oauth.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SCOPES = ["read"]
DEFAULT_PROVIDER_DOMAIN = "zendesk.com"
DEFAULT_ENV_PREFIX = "ZENDESK_"
DEFAULT_WEBHOOK_SIGNATURE_HEADER = "X-Zendesk-Webhook-Signature"


class TenantCredentials(BaseModel):
    """OAuth client credentials shared by every tenant."""

    client_id: str = ""
    client_secret: str = Field(default="", repr=False)
    default_scopes: List[str] = Field(default_factory=lambda: list(DEFAULT_SCOPES))

    model_config = {"frozen": True}

    @field_validator("default_scopes")
    @classmethod
    def _non_empty_scopes(cls, value: List[str]) -> List[str]:
        scopes = [scope.strip() for scope in value if scope and scope.strip()]
        return scopes or list(DEFAULT_SCOPES)

    @property
    def is_configured(self) -> bool:
        """True when both the client id and secret are present."""
        return bool(self.client_id and self.client_secret)


class OAuthSettings(BaseModel):
    """Complete configuration for the integration layer."""

    credentials: TenantCredentials = Field(default_factory=TenantCredentials)
    webhook_secret: Optional[str] = Field(default=None, repr=False)
    provider_domain: str = DEFAULT_PROVIDER_DOMAIN
    request_timeout: float = 10.0
    validation_timeout: float = 5.0
    webhook_signature_header: str = DEFAULT_WEBHOOK_SIGNATURE_HEADER

    model_config = {"frozen": True}

    @field_validator("provider_domain")
    @classmethod
    def _strip_domain(cls, value: str) -> str:
        value = value.strip().strip(".").lower()
        if not value or "/" in value or ":" in value:
            raise ValueError("provider_domain must be a bare host name, e.g. 'zendesk.com'")
        return value

    @field_validator("request_timeout", "validation_timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeouts must be positive")
        return value

    def base_url(self, subdomain: str) -> str:
        """Return the per-tenant base URL. ``subdomain`` must already be validated."""
        return f"https://{subdomain}.{self.provider_domain}"


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    prefix: str = DEFAULT_ENV_PREFIX,
) -> OAuthSettings:
    """Build :class:`OAuthSettings` from environment variables.

    Recognised variables (shown with the default ``ZENDESK_`` prefix):
    ``ZENDESK_CLIENT_ID``, ``ZENDESK_CLIENT_SECRET``, ``ZENDESK_WEBHOOK_SECRET``,
    ``ZENDESK_SCOPES`` (comma separated), ``ZENDESK_DOMAIN``,
    ``ZENDESK_REQUEST_TIMEOUT`` and ``ZENDESK_VALIDATION_TIMEOUT``.

    Missing client credentials only produce a warning: local operations keep
    working and network operations fail individually when invoked.

    Args:
        environ: Mapping to read from, defaults to ``os.environ``
        prefix: Variable name prefix, matched case-insensitively

    Returns:
        Frozen settings instance

    Raises:
        ConfigurationError: If a present value is malformed
    """
    if environ is None:
        environ = os.environ

    upper_prefix = prefix.upper()
    values: Dict[str, str] = {}
    for key, value in environ.items():
        if key.upper().startswith(upper_prefix):
            values[key[len(prefix):].lower()] = value

    credentials_data: Dict[str, Any] = {
        "client_id": values.get("client_id", "").strip(),
        "client_secret": values.get("client_secret", "").strip(),
    }
    if values.get("scopes"):
        credentials_data["default_scopes"] = _split_list(values["scopes"])

    settings_data: Dict[str, Any] = {}
    if values.get("webhook_secret"):
        settings_data["webhook_secret"] = values["webhook_secret"]
    if values.get("domain"):
        settings_data["provider_domain"] = values["domain"]
    if values.get("request_timeout"):
        settings_data["request_timeout"] = values["request_timeout"]
    if values.get("validation_timeout"):
        settings_data["validation_timeout"] = values["validation_timeout"]

    try:
        settings = OAuthSettings(
            credentials=TenantCredentials(**credentials_data),
            **settings_data,
        )
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid help desk OAuth configuration: {e}") from e

    if not settings.credentials.is_configured:
        logger.warning(
            "Help desk OAuth credentials not configured (%sCLIENT_ID/%sCLIENT_SECRET). "
            "Token exchange and refresh will fail until they are set.",
            upper_prefix,
            upper_prefix,
        )
    if not settings.webhook_secret:
        logger.info("No %sWEBHOOK_SECRET configured; webhook verification needs an explicit secret", upper_prefix)

    return settings
