"""Data models exchanged with callers of helpdesk-oauth."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

DEFAULT_GRANTED_SCOPE = "read"


@dataclass(frozen=True)
class AuthorizationRequest:
    """One login attempt. Its ``state`` must be consumed exactly once at callback."""
    subdomain: str
    redirect_uri: str
    state: str
    scopes: List[str] = field(default_factory=lambda: [DEFAULT_GRANTED_SCOPE])


@dataclass(frozen=True)
class TokenResponse:
    """Access token issued by the provider's token endpoint."""
    access_token: str
    token_type: str
    scope: str
    expires_in: Optional[int] = None
    refresh_token: Optional[str] = None

    @classmethod
    def from_provider(cls, data: Dict[str, Any]) -> "TokenResponse":
        """Map the provider's snake-cased payload.

        Raises:
            KeyError: If ``access_token`` is missing or empty
        """
        access_token = data["access_token"]
        if not access_token:
            raise KeyError("access_token")
        return cls(
            access_token=access_token,
            token_type=data.get("token_type") or "bearer",
            scope=data.get("scope") or DEFAULT_GRANTED_SCOPE,
            expires_in=data.get("expires_in"),
            refresh_token=data.get("refresh_token"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert token to dictionary format."""
        token_dict: Dict[str, Any] = {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "scope": self.scope,
        }
        if self.expires_in is not None:
            token_dict["expires_in"] = self.expires_in
        if self.refresh_token is not None:
            token_dict["refresh_token"] = self.refresh_token
        return token_dict

    def __repr__(self) -> str:
        # tokens stay out of logs and tracebacks
        return (
            f"TokenResponse(token_type={self.token_type!r}, scope={self.scope!r}, "
            f"expires_in={self.expires_in!r}, has_refresh_token={self.refresh_token is not None})"
        )


@dataclass(frozen=True)
class UserIdentity:
    """Snapshot of the authenticated help-desk user."""
    id: int
    email: str
    name: str
    role: str
    verified: bool
    active: bool
    subdomain: str
    time_zone: Optional[str] = None
    locale: Optional[str] = None

    @classmethod
    def from_provider(cls, user: Dict[str, Any], subdomain: str) -> "UserIdentity":
        """Map the nested ``user`` object of the identity endpoint.

        Raises:
            KeyError: If ``id`` is missing
        """
        return cls(
            id=user["id"],
            email=user.get("email") or "",
            name=user.get("name") or "",
            role=user.get("role") or "",
            verified=bool(user.get("verified", False)),
            active=bool(user.get("active", False)),
            subdomain=subdomain,
            time_zone=user.get("time_zone"),
            locale=user.get("locale"),
        )


@dataclass(frozen=True)
class WebhookEnvelope:
    """Raw webhook body exactly as received, plus the signature header value."""
    body: bytes
    signature: str
