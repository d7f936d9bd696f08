"""Tests for access token resolution and revocation."""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest

from extrarows.actions import DatasourceConfiguration, parse_datasource_configuration
from extrarows.credentials import DEFAULT_SCOPES, TokenProvider, revoke_token
from extrarows.exceptions import IntegrationError

SERVICE_ACCOUNT_INFO = {
    "type": "service_account",
    "client_email": "robot@project.iam.gserviceaccount.com",
    "private_key": "not-a-real-key",
    "token_uri": "https://oauth2.googleapis.com/token",
}


class FakeCredentials:
    """Stands in for google.oauth2.service_account.Credentials."""

    created: list[tuple[dict[str, Any], list[str]]] = []

    def __init__(self) -> None:
        self.token: str | None = None

    @classmethod
    def from_service_account_info(
        cls, info: dict[str, Any], scopes: list[str]
    ) -> FakeCredentials:
        cls.created.append((info, scopes))
        return cls()

    def refresh(self, request: Any) -> None:
        self.token = "minted-token"


def service_account(value: str, scope: Any = None) -> DatasourceConfiguration:
    auth_config: dict[str, Any] = {"googleServiceAccount": {"value": value}}
    if scope is not None:
        auth_config["scope"] = scope
    return parse_datasource_configuration(
        {"authType": "SERVICE_ACCOUNT", "authConfig": auth_config}
    )


@pytest.fixture
def provider() -> TokenProvider:
    FakeCredentials.created = []
    return TokenProvider(credentials_class=FakeCredentials, request_factory=object)


class TestTokenProvider:
    @pytest.mark.asyncio
    async def test_oauth_token_is_used_as_is(self, provider: TokenProvider) -> None:
        datasource = parse_datasource_configuration(
            {"authType": "OAUTH2_CODE", "authConfig": {"authToken": "ya29.abc"}}
        )
        assert await provider.access_token(datasource) == "ya29.abc"

    @pytest.mark.asyncio
    async def test_missing_oauth_token(self, provider: TokenProvider) -> None:
        datasource = parse_datasource_configuration({"authType": "OAUTH2_CODE"})
        with pytest.raises(IntegrationError) as exc_info:
            await provider.access_token(datasource)
        assert str(exc_info.value) == (
            "Authentication has failed. "
            "Please ensure you're connected to your Google account."
        )

    @pytest.mark.asyncio
    async def test_service_account_token(self, provider: TokenProvider) -> None:
        datasource = service_account(json.dumps(SERVICE_ACCOUNT_INFO))
        assert await provider.access_token(datasource) == "minted-token"
        assert FakeCredentials.created == [(SERVICE_ACCOUNT_INFO, DEFAULT_SCOPES)]

    @pytest.mark.asyncio
    async def test_service_account_scopes(self, provider: TokenProvider) -> None:
        datasource = service_account(
            json.dumps(SERVICE_ACCOUNT_INFO),
            scope="https://www.googleapis.com/auth/spreadsheets.readonly other",
        )
        await provider.access_token(datasource)
        assert FakeCredentials.created[0][1] == [
            "https://www.googleapis.com/auth/spreadsheets.readonly",
            "other",
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", ["", "{not json", "[1, 2]"])
    async def test_unparseable_service_account(
        self, provider: TokenProvider, value: str
    ) -> None:
        with pytest.raises(
            IntegrationError, match="Failed to parse the service account object"
        ):
            await provider.access_token(service_account(value))
        assert FakeCredentials.created == []


class TestRevokeToken:
    @pytest.mark.asyncio
    async def test_posts_token(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="")

        response = await revoke_token(
            "ya29.abc", http_transport=httpx.MockTransport(handler)
        )

        assert response.ok
        assert seen[0].url == "https://oauth2.googleapis.com/revoke"
        assert parse_qs(seen[0].content.decode()) == {"token": ["ya29.abc"]}

    @pytest.mark.asyncio
    async def test_status_is_passed_through(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, text='{"error": "invalid_token"}')

        response = await revoke_token(
            "stale", http_transport=httpx.MockTransport(handler)
        )

        assert response.status_code == 400
        assert "invalid_token" in response.data["body"]
