"""Tests for settings loading."""

from __future__ import annotations

from pathlib import Path

import pydantic
import pytest

from extrarows.config import Settings
from extrarows.transport import SHEETS_API_BASE


def test_defaults() -> None:
    settings = Settings(_env_file=None)
    assert settings.sheets_api_base == SHEETS_API_BASE
    assert settings.request_timeout == 60
    assert settings.log_level == "INFO"
    assert settings.json_logs is False


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXTRAROWS_REQUEST_TIMEOUT", "5.5")
    monkeypatch.setenv("EXTRAROWS_LOG_LEVEL", "debug")
    monkeypatch.setenv("EXTRAROWS_JSON_LOGS", "true")
    settings = Settings(_env_file=None)
    assert settings.request_timeout == 5.5
    assert settings.log_level == "DEBUG"
    assert settings.json_logs is True


def test_env_file(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("EXTRAROWS_SHEETS_API_BASE=http://localhost:8080/v4\n")
    settings = Settings(_env_file=env_file)
    assert settings.sheets_api_base == "http://localhost:8080/v4"


@pytest.mark.parametrize(
    "name, value",
    [("EXTRAROWS_REQUEST_TIMEOUT", "0"), ("EXTRAROWS_LOG_LEVEL", "LOUD")],
)
def test_invalid_values(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(pydantic.ValidationError):
        Settings(_env_file=None)
