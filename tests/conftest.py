"""Shared test fixtures for extrarows."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from extrarows.config import Settings
from extrarows.plugin import SheetsPlugin
from extrarows.transport import InMemoryTransport

SPREADSHEET_ID = "sheet-123"
SHEET = "Sheet1"

ActionFactory = Callable[..., dict[str, Any]]


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def datasource() -> dict[str, Any]:
    """OAuth datasource configuration as sent by the host."""
    return {
        "authType": "OAUTH2_CODE",
        "authConfig": {"authToken": "ya29.test-token"},
    }


@pytest.fixture
def transport() -> InMemoryTransport:
    """An in-memory spreadsheet with a single empty sheet."""
    memory = InMemoryTransport()
    memory.add_sheet(SPREADSHEET_ID, SHEET, [], spreadsheet_title="Budget")
    return memory


@pytest.fixture
def plugin(settings: Settings, transport: InMemoryTransport) -> SheetsPlugin:
    """A plugin whose every action runs against ``transport``."""
    return SheetsPlugin(settings, transport_factory=lambda _token: transport)


@pytest.fixture
def make_action() -> ActionFactory:
    """Build camelCase action configurations for the default sheet."""

    def build(kind: str, **fields: Any) -> dict[str, Any]:
        config: dict[str, Any] = {
            "action": kind,
            "spreadsheetId": SPREADSHEET_ID,
            "sheetTitle": SHEET,
        }
        config.update(fields)
        return config

    return build
