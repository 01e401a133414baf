"""Error taxonomy and OAuth error classification for helpdesk-oauth.

Every network-facing operation maps transport and provider failures onto the
exception classes defined here, so callers can handle a small, stable set of
error kinds instead of raw ``httpx`` exceptions or provider payloads.
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class OAuthErrorKind(str, Enum):
    """Stable error kinds surfaced to callers."""
    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    RATE_LIMIT = "rate_limit"
    PROVIDER = "provider"
    NETWORK = "network"
    AUTH = "auth"


class OAuthErrorCode(str, Enum):
    """OAuth2 error codes as defined in RFC 6749."""
    ACCESS_DENIED = "access_denied"
    INVALID_REQUEST = "invalid_request"
    UNSUPPORTED_RESPONSE_TYPE = "unsupported_response_type"
    INVALID_SCOPE = "invalid_scope"
    SERVER_ERROR = "server_error"
    TEMPORARILY_UNAVAILABLE = "temporarily_unavailable"
    INVALID_CLIENT = "invalid_client"
    INVALID_GRANT = "invalid_grant"
    UNAUTHORIZED_CLIENT = "unauthorized_client"
    UNSUPPORTED_GRANT_TYPE = "unsupported_grant_type"


UNKNOWN_ERROR_MESSAGE = "Unknown OAuth error occurred"

ERROR_MESSAGES: Dict[str, str] = {
    OAuthErrorCode.ACCESS_DENIED.value: "User denied access to the application",
    OAuthErrorCode.INVALID_REQUEST.value: "Invalid OAuth request parameters",
    OAuthErrorCode.UNSUPPORTED_RESPONSE_TYPE.value: "Unsupported OAuth response type",
    OAuthErrorCode.INVALID_SCOPE.value: "Invalid or unsupported OAuth scope",
    OAuthErrorCode.SERVER_ERROR.value: "Help desk server error occurred",
    OAuthErrorCode.TEMPORARILY_UNAVAILABLE.value: "Help desk service is temporarily unavailable",
    OAuthErrorCode.INVALID_CLIENT.value: "OAuth client authentication failed",
    OAuthErrorCode.INVALID_GRANT.value: "Invalid, expired or revoked authorization grant",
    OAuthErrorCode.UNAUTHORIZED_CLIENT.value: "Client is not authorized for this grant type",
    OAuthErrorCode.UNSUPPORTED_GRANT_TYPE.value: "Unsupported OAuth grant type",
}


class ErrorClassifier:
    """Maps provider error codes to human-readable messages."""

    messages: Dict[str, str] = ERROR_MESSAGES

    @classmethod
    def classify(cls, error_code: Any, description: Optional[str] = None) -> str:
        """Return the message for ``error_code``, with ``description`` appended.

        Args:
            error_code: Provider-supplied error code, e.g. ``access_denied``
            description: Optional provider-supplied ``error_description``

        Returns:
            ``"{message}: {description}"`` when a description is given,
            otherwise just the message. Unknown or non-string codes map to
            the generic unknown-error message.
        """
        message = UNKNOWN_ERROR_MESSAGE
        if isinstance(error_code, str):
            message = cls.messages.get(error_code, UNKNOWN_ERROR_MESSAGE)

        if description:
            return f"{message}: {description}"
        return message


def parse_oauth_error(error_code: Any, description: Optional[str] = None) -> str:
    """Module-level shortcut for :meth:`ErrorClassifier.classify`."""
    return ErrorClassifier.classify(error_code, description)


class OAuthError(Exception):
    """Base exception for every failure raised by helpdesk-oauth."""

    kind: OAuthErrorKind = OAuthErrorKind.NETWORK
    default_message: str = "OAuth operation failed"
    http_status_code: int = 502

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        error_code: Optional[str] = None,
        description: Optional[str] = None,
        retry_after: Optional[int] = None,
        retry_after_header: Optional[str] = None,
    ):
        self.message = message or self.default_message
        self.error_code = error_code
        self.description = description
        self.retry_after = retry_after
        self.retry_after_header = retry_after_header
        super().__init__(self.message)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r}, "
            f"error_code={self.error_code!r})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        data: Dict[str, Any] = {
            "error": True,
            "kind": self.kind.value,
            "message": self.message,
        }
        if self.error_code is not None:
            data["error_code"] = self.error_code
        if self.description is not None:
            data["error_description"] = self.description
        if self.retry_after_header is not None:
            data["retry_after"] = self.retry_after if self.retry_after is not None else self.retry_after_header
        return data

    def to_http_response(self) -> JSONResponse:
        """Convert to an HTTP response for callers serving FastAPI routes."""
        headers = None
        if self.retry_after_header is not None:
            headers = {"Retry-After": self.retry_after_header}
        return JSONResponse(
            status_code=self.http_status_code,
            content=self.to_dict(),
            headers=headers,
        )


class ConfigurationError(OAuthError):
    """Client credentials are missing or the configuration is malformed."""
    kind = OAuthErrorKind.CONFIGURATION
    default_message = "OAuth client credentials are not configured"
    http_status_code = 500


class ValidationError(OAuthError):
    """Malformed subdomain or missing required parameter."""
    kind = OAuthErrorKind.VALIDATION
    default_message = "Invalid OAuth request parameters"
    http_status_code = 400


class NotFoundError(OAuthError):
    """The provider does not know the tenant subdomain."""
    kind = OAuthErrorKind.NOT_FOUND
    default_message = "Help desk subdomain not found"
    http_status_code = 404


class RateLimitError(OAuthError):
    """The provider rate limited the request; carries its retry-after hint."""
    kind = OAuthErrorKind.RATE_LIMIT
    default_message = "Rate limit exceeded"
    http_status_code = 429

    def __init__(self, message: Optional[str] = None, *, retry_after_header: Optional[str] = None, **kwargs):
        retry_after = parse_retry_after(retry_after_header)
        if message is None:
            message = (
                f"Rate limit exceeded. Retry after {retry_after_header} seconds"
                if retry_after_header is not None
                else self.default_message
            )
        super().__init__(
            message,
            retry_after=retry_after,
            retry_after_header=retry_after_header,
            **kwargs,
        )


class ProviderError(OAuthError):
    """The provider reported a structured OAuth error code."""
    kind = OAuthErrorKind.PROVIDER
    default_message = UNKNOWN_ERROR_MESSAGE
    http_status_code = 400

    def __init__(self, error_code: str, description: Optional[str] = None, message: Optional[str] = None):
        super().__init__(
            message or ErrorClassifier.classify(error_code, description),
            error_code=error_code,
            description=description,
        )


class NetworkError(OAuthError):
    """Timeout, connection failure, or any unstructured transport failure."""
    kind = OAuthErrorKind.NETWORK
    default_message = "Network error while contacting the help desk"
    http_status_code = 502


class AuthError(OAuthError):
    """The provider rejected the access token."""
    kind = OAuthErrorKind.AUTH
    default_message = "Invalid or expired access token"
    http_status_code = 401


def parse_retry_after(value: Optional[str]) -> Optional[int]:
    """Parse a ``Retry-After`` header expressed in delta-seconds.

    HTTP-date values are not converted; callers still get them verbatim
    through ``retry_after_header``.
    """
    if value is None:
        return None
    try:
        seconds = int(str(value).strip())
    except ValueError:
        logger.debug("Retry-After header is not a delta-seconds value: %r", value)
        return None
    return seconds if seconds >= 0 else None
