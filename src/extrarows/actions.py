"""Action and datasource configuration.

The plugin host sends camelCase JSON. ``ActionConfiguration`` and
``DatasourceConfiguration`` mirror that payload; ``build_action`` validates
it and turns it into one of the action variants the orchestrator
dispatches on.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

import pydantic
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
)

from extrarows import a1
from extrarows.cells import ValueFormat
from extrarows.exceptions import ValidationError

DEFAULT_ROW_NUMBER = 2
DEFAULT_HEADER_ROW_NUMBER = 1


class ActionType(str, Enum):
    READ_SPREADSHEET = "READ_SPREADSHEET"
    READ_SPREADSHEET_RANGE = "READ_SPREADSHEET_RANGE"
    APPEND_SPREADSHEET = "APPEND_SPREADSHEET"
    CREATE_SPREADSHEET_ROWS = "CREATE_SPREADSHEET_ROWS"
    CLEAR_SPREADSHEET = "CLEAR_SPREADSHEET"


class DestinationType(str, Enum):
    APPEND = "APPEND"
    ROW_NUMBER = "ROW_NUMBER"


class AuthType(str, Enum):
    OAUTH2_CODE = "OAUTH2_CODE"
    SERVICE_ACCOUNT = "SERVICE_ACCOUNT"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ActionConfiguration(_CamelModel):
    """Raw action configuration as sent by the plugin host."""

    action: ActionType
    spreadsheet_id: str | None = Field(None, alias="spreadsheetId")
    sheet_title: str | None = Field(None, alias="sheetTitle")
    range: str | None = None
    extract_first_row_header: bool | None = Field(
        None, alias="extractFirstRowHeader"
    )
    format: ValueFormat | None = None
    data: str | None = None
    write_to_destination_type: DestinationType | None = Field(
        None, alias="writeToDestinationType"
    )
    row_number: int | None = Field(None, alias="rowNumber")
    include_header_row: bool | None = Field(None, alias="includeHeaderRow")
    preserve_header_row: bool | None = Field(None, alias="preserveHeaderRow")
    header_row_number: int | None = Field(None, alias="headerRowNumber")


class ServiceAccountSecret(_CamelModel):
    value: str | None = None


class AuthConfig(_CamelModel):
    auth_token: str | None = Field(None, alias="authToken")
    google_service_account: ServiceAccountSecret | None = Field(
        None, alias="googleServiceAccount"
    )
    scope: str | list[str] | None = None


class DatasourceConfiguration(_CamelModel):
    """Credentials of a Google Sheets datasource."""

    auth_type: AuthType = Field(AuthType.OAUTH2_CODE, alias="authType")
    auth_config: AuthConfig = Field(default_factory=AuthConfig, alias="authConfig")


# Allowed cell values in a row to write
RowValue = Union[StrictStr, StrictBool, StrictInt, StrictFloat, None]
_ROWS_ADAPTER = pydantic.TypeAdapter(list[dict[str, RowValue]])


@dataclass(frozen=True)
class ReadAction:
    spreadsheet_id: str
    sheet_title: str
    extract_first_row_header: bool
    format: ValueFormat


@dataclass(frozen=True)
class ReadRangeAction:
    spreadsheet_id: str
    sheet_title: str
    extract_first_row_header: bool
    format: ValueFormat
    range: str | None


@dataclass(frozen=True)
class AppendAction:
    """Deprecated append: header taken from row 1, no header handling."""

    spreadsheet_id: str
    sheet_title: str
    rows: list[dict[str, Any]]


@dataclass(frozen=True)
class CreateRowsAction:
    spreadsheet_id: str
    sheet_title: str
    rows: list[dict[str, Any]]
    destination: DestinationType
    row_number: int
    include_header_row: bool
    header_row_number: int


@dataclass(frozen=True)
class ClearAction:
    spreadsheet_id: str
    sheet_title: str
    preserve_header_row: bool
    header_row_number: int


ActionRequest = Union[
    ReadAction, ReadRangeAction, AppendAction, CreateRowsAction, ClearAction
]


def parse_action_configuration(raw: dict[str, Any]) -> ActionConfiguration:
    """Validate a raw camelCase action configuration."""
    try:
        return ActionConfiguration.model_validate(raw)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid action configuration: {e}") from e


def parse_datasource_configuration(raw: dict[str, Any]) -> DatasourceConfiguration:
    """Validate a raw camelCase datasource configuration."""
    try:
        return DatasourceConfiguration.model_validate(raw)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid datasource configuration: {e}") from e


def parse_rows(data: str | None) -> list[dict[str, Any]]:
    """Decode and validate the JSON rows of a write action.

    Rows must be a non-empty JSON array of objects whose values are
    strings, numbers, booleans or null.
    """
    if not data:
        raise ValidationError("Rows to append are required")
    try:
        rows = json.loads(data)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Failed to parse rows to append as JSON: {e}") from e
    try:
        validated = _ROWS_ADAPTER.validate_python(rows)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Validation failed for rows to append: {e}") from e
    if not validated:
        raise ValidationError("Rows to append are required")
    return validated


def build_action(config: ActionConfiguration) -> ActionRequest:
    """Validate an action configuration and build its action variant.

    Raises:
        ValidationError: If a required field is missing or inconsistent
    """
    if not config.spreadsheet_id:
        raise ValidationError("Spreadsheet is required")
    if not config.sheet_title:
        raise ValidationError("Sheet name is required")
    spreadsheet_id = config.spreadsheet_id
    sheet_title = config.sheet_title

    if config.action is ActionType.READ_SPREADSHEET:
        return ReadAction(
            spreadsheet_id=spreadsheet_id,
            sheet_title=sheet_title,
            extract_first_row_header=bool(config.extract_first_row_header),
            format=config.format or ValueFormat.FORMATTED_VALUE,
        )
    if config.action is ActionType.READ_SPREADSHEET_RANGE:
        if config.range and not a1.is_valid(config.range):
            raise ValidationError(f"The provided range {config.range} is invalid")
        return ReadRangeAction(
            spreadsheet_id=spreadsheet_id,
            sheet_title=sheet_title,
            extract_first_row_header=bool(config.extract_first_row_header),
            format=config.format or ValueFormat.FORMATTED_VALUE,
            range=config.range or None,
        )
    if config.action is ActionType.APPEND_SPREADSHEET:
        return AppendAction(
            spreadsheet_id=spreadsheet_id,
            sheet_title=sheet_title,
            rows=parse_rows(config.data),
        )
    if config.action is ActionType.CREATE_SPREADSHEET_ROWS:
        return _build_create_rows(config, spreadsheet_id, sheet_title)
    if config.action is ActionType.CLEAR_SPREADSHEET:
        _validate_header_row_number(
            config.preserve_header_row, config.header_row_number
        )
        return ClearAction(
            spreadsheet_id=spreadsheet_id,
            sheet_title=sheet_title,
            preserve_header_row=bool(config.preserve_header_row),
            header_row_number=config.header_row_number or DEFAULT_HEADER_ROW_NUMBER,
        )
    raise ValidationError(f"{config.action} is not supported action")


def _build_create_rows(
    config: ActionConfiguration, spreadsheet_id: str, sheet_title: str
) -> CreateRowsAction:
    if config.write_to_destination_type is DestinationType.ROW_NUMBER:
        if not config.row_number:
            raise ValidationError("Row number is required")
        if (config.header_row_number or 0) >= config.row_number:
            raise ValidationError(
                "Data must be inserted after the table header row number "
                f"({config.header_row_number})"
            )
        if config.row_number <= 0:
            raise ValidationError("Row number has to be a positive number")
    _validate_header_row_number(config.include_header_row, config.header_row_number)
    if not config.write_to_destination_type:
        raise ValidationError("Write location is required")

    return CreateRowsAction(
        spreadsheet_id=spreadsheet_id,
        sheet_title=sheet_title,
        rows=parse_rows(config.data),
        destination=config.write_to_destination_type,
        row_number=config.row_number or DEFAULT_ROW_NUMBER,
        include_header_row=bool(config.include_header_row),
        header_row_number=config.header_row_number or DEFAULT_HEADER_ROW_NUMBER,
    )


def _validate_header_row_number(
    uses_header: bool | None, header_row_number: int | None
) -> None:
    if not uses_header:
        return
    if not header_row_number:
        raise ValidationError(
            "Header row number is required because you are including a header row"
        )
    if header_row_number <= 0:
        raise ValidationError("Header row number has to be a positive number")
