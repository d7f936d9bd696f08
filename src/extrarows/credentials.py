"""Access tokens for a Google Sheets datasource.

Supports two authentication modes:
1. OAuth2 - the host already holds a user access token
2. Service account - a JSON key exchanged for a short-lived token

Also revokes OAuth tokens when a datasource is deleted.
"""

from __future__ import annotations

import asyncio
import json
import ssl
from typing import Any

import certifi
import httpx
from google.auth.transport import requests as google_requests
from google.oauth2 import service_account

from extrarows.actions import AuthType, DatasourceConfiguration
from extrarows.exceptions import IntegrationError
from extrarows.transport import ApiResponse, TransportError

REVOKE_URL = "https://oauth2.googleapis.com/revoke"

# Scopes requested for service-account tokens when the datasource has none
DEFAULT_SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive.readonly",
]


def _scopes(datasource: DatasourceConfiguration) -> list[str]:
    scope = datasource.auth_config.scope
    if not scope:
        return DEFAULT_SCOPES
    if isinstance(scope, str):
        return scope.split()
    return list(scope)


def load_service_account_info(datasource: DatasourceConfiguration) -> dict[str, Any]:
    """Parse the service account JSON key stored on the datasource."""
    secret = datasource.auth_config.google_service_account
    raw = secret.value if secret and secret.value else ""
    try:
        info = json.loads(raw)
    except json.JSONDecodeError as e:
        raise IntegrationError(
            f"Failed to parse the service account object. Error:\n{e}"
        ) from e
    if not isinstance(info, dict):
        raise IntegrationError(
            "Failed to parse the service account object. Error:\n"
            "expected a JSON object"
        )
    return info


class TokenProvider:
    """Resolves the bearer token for a datasource.

    Dependencies are injected via constructor for testability.
    """

    def __init__(
        self,
        credentials_class: type = service_account.Credentials,
        request_factory: Any = google_requests.Request,
    ) -> None:
        self._credentials_class = credentials_class
        self._request_factory = request_factory

    async def access_token(self, datasource: DatasourceConfiguration) -> str:
        """Return an access token usable as ``Authorization: Bearer``.

        Raises:
            IntegrationError: If the datasource holds no usable credentials
        """
        if datasource.auth_type is AuthType.SERVICE_ACCOUNT:
            info = load_service_account_info(datasource)
            # google-auth is sync only
            return await asyncio.to_thread(
                self._service_account_token, info, _scopes(datasource)
            )

        token = datasource.auth_config.auth_token
        if not token:
            raise IntegrationError(
                "Authentication has failed. "
                "Please ensure you're connected to your Google account."
            )
        return token

    def _service_account_token(self, info: dict[str, Any], scopes: list[str]) -> str:
        """Mint a token from a service account key (blocking)."""
        try:
            credentials = self._credentials_class.from_service_account_info(
                info, scopes=scopes
            )
        except (ValueError, KeyError) as e:
            raise IntegrationError(
                f"Failed to parse the service account object. Error:\n{e}"
            ) from e
        credentials.refresh(self._request_factory())
        if not credentials.token:
            raise IntegrationError("Failed to obtain a service account access token")
        token: str = credentials.token
        return token


async def revoke_token(
    token: str,
    *,
    revoke_url: str = REVOKE_URL,
    timeout: float = 30,
    http_transport: httpx.AsyncBaseTransport | None = None,
) -> ApiResponse:
    """Revoke an OAuth token at Google's revocation endpoint.

    The status is returned as-is; Google answers 400 for tokens that are
    already invalid.
    """
    ssl_context = ssl.create_default_context(cafile=certifi.where())
    async with httpx.AsyncClient(
        timeout=timeout, verify=ssl_context, transport=http_transport
    ) as client:
        try:
            response = await client.post(
                revoke_url,
                data={"token": token},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.RequestError as e:
            raise TransportError(f"Network error: {e}") from e
    return ApiResponse(response.status_code, {"body": response.text})
