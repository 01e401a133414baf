"""Tests for token exchange, refresh, validation and revocation."""

import logging

import httpx
import pytest

from helpdesk_oauth.errors import (
    ConfigurationError,
    NetworkError,
    NotFoundError,
    ProviderError,
    RateLimitError,
    ValidationError,
)
from helpdesk_oauth.models import TokenResponse
from helpdesk_oauth.tokens import TokenExchangeClient, TokenRefreshClient, TokenRevoker, TokenValidator

from tests.mocks.helpdesk_mocks import (
    TEST_CLIENT_ID,
    TEST_CLIENT_SECRET,
    MockHelpDeskProvider,
    create_test_settings,
    form_fields,
    token_payload,
)

TOKEN_PATH = "/oauth/tokens"
CURRENT_PATH = "/oauth/tokens/current"


@pytest.fixture
def provider() -> MockHelpDeskProvider:
    return MockHelpDeskProvider()


class TestTokenExchangeClient:
    """Test the authorization_code grant."""

    @pytest.mark.asyncio
    async def test_exchange_success_defaults_scope(self, provider):
        provider.respond("POST", TOKEN_PATH, json_data=token_payload())

        async with provider.client() as client:
            token = await TokenExchangeClient(create_test_settings(), client).exchange("code1", "https://app/cb", "acme")

        assert token == TokenResponse(
            access_token="tok123",
            token_type="bearer",
            scope="read",
            expires_in=3600,
            refresh_token=None,
        )

    @pytest.mark.asyncio
    async def test_exchange_sends_form_encoded_grant(self, provider):
        provider.respond("POST", TOKEN_PATH, json_data=token_payload(scope="read write", refresh_token="ref1"))

        async with provider.client() as client:
            token = await TokenExchangeClient(create_test_settings(), client).exchange(
                "code1", "https://app/cb", "acme", ["read", "write"]
            )

        request = provider.last_request
        assert request.method == "POST"
        assert str(request.url) == "https://acme.zendesk.com/oauth/tokens"
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert form_fields(request) == {
            "grant_type": "authorization_code",
            "code": "code1",
            "client_id": TEST_CLIENT_ID,
            "client_secret": TEST_CLIENT_SECRET,
            "redirect_uri": "https://app/cb",
            "scope": "read write",
        }
        assert token.scope == "read write"
        assert token.refresh_token == "ref1"

    @pytest.mark.asyncio
    async def test_exchange_uses_ten_second_timeout(self, provider):
        provider.respond("POST", TOKEN_PATH, json_data=token_payload())

        async with provider.client() as client:
            await TokenExchangeClient(create_test_settings(), client).exchange("code1", "https://app/cb", "acme")

        assert provider.last_request.extensions["timeout"]["read"] == 10.0

    @pytest.mark.asyncio
    async def test_404_is_not_found(self, provider):
        provider.respond("POST", TOKEN_PATH, status_code=404, json_data={"error": "RecordNotFound"})

        async with provider.client() as client:
            with pytest.raises(NotFoundError, match="subdomain not found"):
                await TokenExchangeClient(create_test_settings(), client).exchange("code1", "https://app/cb", "acme")

    @pytest.mark.asyncio
    async def test_429_is_rate_limit_with_retry_after(self, provider):
        provider.respond("POST", TOKEN_PATH, status_code=429, headers={"retry-after": "30"})

        async with provider.client() as client:
            with pytest.raises(RateLimitError) as exc_info:
                await TokenExchangeClient(create_test_settings(), client).exchange("code1", "https://app/cb", "acme")

        assert exc_info.value.retry_after == 30
        assert exc_info.value.retry_after_header == "30"

    @pytest.mark.asyncio
    async def test_provider_error_field(self, provider):
        provider.respond(
            "POST",
            TOKEN_PATH,
            status_code=400,
            json_data={"error": "invalid_grant", "error_description": "code expired"},
        )

        async with provider.client() as client:
            with pytest.raises(ProviderError) as exc_info:
                await TokenExchangeClient(create_test_settings(), client).exchange("code1", "https://app/cb", "acme")

        assert exc_info.value.error_code == "invalid_grant"
        assert exc_info.value.description == "code expired"

    @pytest.mark.asyncio
    async def test_error_field_in_success_response(self, provider):
        provider.respond("POST", TOKEN_PATH, json_data={"error": "access_denied"})

        async with provider.client() as client:
            with pytest.raises(ProviderError, match="User denied access"):
                await TokenExchangeClient(create_test_settings(), client).exchange("code1", "https://app/cb", "acme")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code,content", [(500, b"<html>oops</html>"), (400, b"not json"), (200, b"not json")])
    async def test_unstructured_failures_are_network_errors(self, provider, status_code, content):
        provider.respond("POST", TOKEN_PATH, status_code=status_code, content=content)

        async with provider.client() as client:
            with pytest.raises(NetworkError, match="Failed to exchange authorization code"):
                await TokenExchangeClient(create_test_settings(), client).exchange("code1", "https://app/cb", "acme")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [{"token_type": "bearer"}, token_payload(access_token=None), token_payload(access_token="")],
    )
    async def test_success_without_usable_access_token(self, provider, body):
        provider.respond("POST", TOKEN_PATH, json_data=body)

        async with provider.client() as client:
            with pytest.raises(NetworkError, match="Failed to exchange authorization code"):
                await TokenExchangeClient(create_test_settings(), client).exchange("code1", "https://app/cb", "acme")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [httpx.ConnectError("connection reset"), httpx.ReadTimeout("timed out"), httpx.RemoteProtocolError("eof")],
    )
    async def test_transport_failures_are_network_errors(self, provider, error):
        provider.fail("POST", TOKEN_PATH, error)

        async with provider.client() as client:
            with pytest.raises(NetworkError) as exc_info:
                await TokenExchangeClient(create_test_settings(), client).exchange("code1", "https://app/cb", "acme")

        assert exc_info.value.__cause__ is error

    @pytest.mark.asyncio
    async def test_invalid_subdomain_never_reaches_network(self, provider):
        async with provider.client() as client:
            with pytest.raises(ValidationError):
                await TokenExchangeClient(create_test_settings(), client).exchange(
                    "code1", "https://app/cb", "evil.com/x"
                )

        assert provider.requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code,redirect_uri", [("", "https://app/cb"), ("code1", "")])
    async def test_missing_parameters(self, provider, code, redirect_uri):
        async with provider.client() as client:
            with pytest.raises(ValidationError):
                await TokenExchangeClient(create_test_settings(), client).exchange(code, redirect_uri, "acme")

        assert provider.requests == []

    @pytest.mark.asyncio
    async def test_missing_credentials(self, provider):
        async with provider.client() as client:
            with pytest.raises(ConfigurationError):
                await TokenExchangeClient(create_test_settings(configured=False), client).exchange(
                    "code1", "https://app/cb", "acme"
                )

        assert provider.requests == []


class TestTokenRefreshClient:
    """Test the refresh_token grant."""

    @pytest.mark.asyncio
    async def test_refresh_success(self, provider):
        provider.respond("POST", TOKEN_PATH, json_data=token_payload(access_token="tok456", refresh_token="ref2"))

        async with provider.client() as client:
            token = await TokenRefreshClient(create_test_settings(), client).refresh("ref1", "acme")

        assert token.access_token == "tok456"
        assert token.refresh_token == "ref2"
        assert token.scope == "read"
        assert form_fields(provider.last_request) == {
            "grant_type": "refresh_token",
            "refresh_token": "ref1",
            "client_id": TEST_CLIENT_ID,
            "client_secret": TEST_CLIENT_SECRET,
        }

    @pytest.mark.asyncio
    async def test_provider_error(self, provider):
        provider.respond("POST", TOKEN_PATH, status_code=400, json_data={"error": "invalid_grant"})

        async with provider.client() as client:
            with pytest.raises(ProviderError) as exc_info:
                await TokenRefreshClient(create_test_settings(), client).refresh("ref1", "acme")

        assert exc_info.value.error_code == "invalid_grant"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 404, 500])
    async def test_generic_refresh_failure(self, provider, status_code):
        provider.respond("POST", TOKEN_PATH, status_code=status_code)

        async with provider.client() as client:
            with pytest.raises(NetworkError, match="Token refresh failed"):
                await TokenRefreshClient(create_test_settings(), client).refresh("ref1", "acme")

    @pytest.mark.asyncio
    async def test_rate_limit(self, provider):
        provider.respond("POST", TOKEN_PATH, status_code=429, headers={"Retry-After": "5"})

        async with provider.client() as client:
            with pytest.raises(RateLimitError) as exc_info:
                await TokenRefreshClient(create_test_settings(), client).refresh("ref1", "acme")

        assert exc_info.value.retry_after == 5

    @pytest.mark.asyncio
    async def test_transport_failure(self, provider):
        provider.fail("POST", TOKEN_PATH, httpx.ConnectError("refused"))

        async with provider.client() as client:
            with pytest.raises(NetworkError, match="Token refresh failed"):
                await TokenRefreshClient(create_test_settings(), client).refresh("ref1", "acme")

    @pytest.mark.asyncio
    async def test_null_access_token_in_success_body(self, provider):
        provider.respond("POST", TOKEN_PATH, json_data=token_payload(access_token=None))

        async with provider.client() as client:
            with pytest.raises(NetworkError, match="Token refresh failed"):
                await TokenRefreshClient(create_test_settings(), client).refresh("ref1", "acme")

    @pytest.mark.asyncio
    async def test_missing_refresh_token(self, provider):
        async with provider.client() as client:
            with pytest.raises(ValidationError):
                await TokenRefreshClient(create_test_settings(), client).refresh("", "acme")

        assert provider.requests == []


class TestTokenValidator:
    """Test advisory token introspection."""

    @pytest.mark.asyncio
    async def test_active_token(self, provider):
        provider.respond("POST", CURRENT_PATH, json_data={"active": True})

        async with provider.client() as client:
            assert await TokenValidator(create_test_settings(), client).validate("tok123", "acme") is True

        request = provider.last_request
        assert request.headers["authorization"] == "Bearer tok123"
        assert request.extensions["timeout"]["read"] == 5.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"active": False}, {}, {"active": "true"}, {"active": 1}, ["active"]])
    async def test_inactive_or_ambiguous_body(self, provider, body):
        provider.respond("POST", CURRENT_PATH, json_data=body)

        async with provider.client() as client:
            assert await TokenValidator(create_test_settings(), client).validate("tok123", "acme") is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 404, 429, 500])
    async def test_error_status(self, provider, status_code):
        provider.respond("POST", CURRENT_PATH, status_code=status_code, json_data={"active": True})

        async with provider.client() as client:
            assert await TokenValidator(create_test_settings(), client).validate("tok123", "acme") is False

    @pytest.mark.asyncio
    async def test_connection_reset_resolves_false(self, provider, caplog):
        provider.fail("POST", CURRENT_PATH, httpx.ConnectError("connection reset by peer"))

        with caplog.at_level(logging.WARNING, logger="helpdesk_oauth.tokens"):
            async with provider.client() as client:
                assert await TokenValidator(create_test_settings(), client).validate("tok123", "acme") is False

        assert "ConnectError" in caplog.text

    @pytest.mark.asyncio
    async def test_timeout_resolves_false(self, provider):
        provider.fail("POST", CURRENT_PATH, httpx.ReadTimeout("timed out"))

        async with provider.client() as client:
            assert await TokenValidator(create_test_settings(), client).validate("tok123", "acme") is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token,subdomain", [("", "acme"), ("tok123", "a.b"), (None, "acme")])
    async def test_invalid_input_resolves_false(self, provider, token, subdomain):
        async with provider.client() as client:
            assert await TokenValidator(create_test_settings(), client).validate(token, subdomain) is False

        assert provider.requests == []

    @pytest.mark.asyncio
    async def test_missing_credentials_resolve_false_without_request(self, provider, caplog):
        provider.respond("POST", CURRENT_PATH, json_data={"active": True})

        with caplog.at_level(logging.WARNING, logger="helpdesk_oauth.tokens"):
            async with provider.client() as client:
                validator = TokenValidator(create_test_settings(configured=False), client)
                assert await validator.validate("tok123", "acme") is False

        assert provider.requests == []
        assert "credentials are not configured" in caplog.text


class TestTokenRevoker:
    """Test advisory token revocation."""

    @pytest.mark.asyncio
    async def test_revoke_success(self, provider):
        provider.respond("DELETE", CURRENT_PATH, status_code=204)

        async with provider.client() as client:
            assert await TokenRevoker(create_test_settings(), client).revoke("tok123", "acme") is True

        request = provider.last_request
        assert request.method == "DELETE"
        assert str(request.url) == "https://acme.zendesk.com/oauth/tokens/current"
        assert request.headers["authorization"] == "Bearer tok123"
        assert request.extensions["timeout"]["read"] == 10.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 404, 500])
    async def test_revoke_rejected(self, provider, status_code):
        provider.respond("DELETE", CURRENT_PATH, status_code=status_code)

        async with provider.client() as client:
            assert await TokenRevoker(create_test_settings(), client).revoke("tok123", "acme") is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [httpx.ConnectError("reset"), httpx.WriteTimeout("slow")])
    async def test_network_failure_resolves_false(self, provider, error):
        provider.fail("DELETE", CURRENT_PATH, error)

        async with provider.client() as client:
            assert await TokenRevoker(create_test_settings(), client).revoke("tok123", "acme") is False

    @pytest.mark.asyncio
    async def test_invalid_subdomain_resolves_false(self, provider):
        async with provider.client() as client:
            assert await TokenRevoker(create_test_settings(), client).revoke("tok123", "a b") is False

        assert provider.requests == []

    @pytest.mark.asyncio
    async def test_missing_credentials_resolve_false_without_request(self, provider):
        provider.respond("DELETE", CURRENT_PATH, status_code=204)

        async with provider.client() as client:
            revoker = TokenRevoker(create_test_settings(configured=False), client)
            assert await revoker.revoke("tok123", "acme") is False

        assert provider.requests == []


class TestOwnedClient:
    """Test client ownership."""

    @pytest.mark.asyncio
    async def test_component_closes_its_own_client(self):
        async with TokenValidator(create_test_settings()) as validator:
            client = validator._client

        assert client.is_closed

    @pytest.mark.asyncio
    async def test_component_leaves_shared_client_open(self, provider):
        async with provider.client() as client:
            async with TokenRevoker(create_test_settings(), client):
                pass
            assert not client.is_closed
