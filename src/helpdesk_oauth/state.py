"""CSRF state tokens for the authorization-code flow."""

import hmac
import logging
import secrets
from typing import Any

logger = logging.getLogger(__name__)


class StateTokenManager:
    """Generates and validates OAuth2 state parameters."""

    DEFAULT_STATE_BYTES = 32

    @staticmethod
    def generate_state(num_bytes: int = DEFAULT_STATE_BYTES) -> str:
        """Generate a cryptographically random, hex-encoded state parameter.

        Args:
            num_bytes: Bytes of entropy, at least 32

        Returns:
            Hex string of ``2 * num_bytes`` characters

        Raises:
            ValueError: If fewer than 32 bytes are requested
        """
        if num_bytes < StateTokenManager.DEFAULT_STATE_BYTES:
            raise ValueError(
                f"State must carry at least {StateTokenManager.DEFAULT_STATE_BYTES} bytes of entropy"
            )
        return secrets.token_hex(num_bytes)

    @staticmethod
    def validate_state(received: Any, expected: Any) -> bool:
        """Compare the callback state with the one issued for this login attempt.

        Returns ``False`` when either value is empty or not a string. The
        comparison itself is constant-time over UTF-8 bytes; a length mismatch
        is simply a mismatch. Never raises.
        """
        if not received or not expected:
            return False
        if not isinstance(received, str) or not isinstance(expected, str):
            return False

        try:
            return hmac.compare_digest(received.encode("utf-8"), expected.encode("utf-8"))
        except (TypeError, UnicodeError) as e:
            logger.warning("State comparison failed: %s", type(e).__name__)
            return False
