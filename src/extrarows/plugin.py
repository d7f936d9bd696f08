"""SheetsPlugin - Main API for extrarows.

Runs one Google Sheets action per call: read, read a range, append rows,
create rows at the end or at a row number, or clear a sheet. Every action
is a short sequence of remote calls awaited one at a time; a failed call
aborts the action.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, assert_never

from extrarows import a1
from extrarows.actions import (
    ActionConfiguration,
    ActionRequest,
    AppendAction,
    AuthType,
    ClearAction,
    CreateRowsAction,
    DatasourceConfiguration,
    DestinationType,
    ReadAction,
    ReadRangeAction,
    build_action,
    parse_action_configuration,
    parse_datasource_configuration,
)
from extrarows.columns import (
    Column,
    columns_and_row_count,
    columns_from_data,
    columns_from_header,
    columns_from_header_and_data,
    count_rows,
)
from extrarows.config import Settings, get_settings
from extrarows.credentials import TokenProvider, revoke_token
from extrarows.exceptions import IntegrationError, ValidationError
from extrarows.logging import clear_action_context, logger, set_action_context
from extrarows.projection import Record, grid_to_records, records_to_grid
from extrarows.transport import ApiResponse, GoogleSheetsTransport, Transport

TransportFactory = Callable[[str], Transport]
Revoker = Callable[..., Awaitable[ApiResponse]]


@dataclass
class ExecutionOutput:
    """Result handed back to the plugin host."""

    output: Any = None


@dataclass
class TableColumn:
    name: str
    type: str = "column"


@dataclass
class Table:
    id: str | None
    name: str
    type: str = "TABLE"
    columns: list[TableColumn] = field(default_factory=list)


@dataclass
class DatasourceMetadata:
    """Spreadsheets visible to a datasource."""

    tables: list[Table] = field(default_factory=list)


class SheetsPlugin:
    """Google Sheets integration for the workflow host.

    Example:
        >>> plugin = SheetsPlugin()
        >>> result = await plugin.execute(
        ...     {"authType": "OAUTH2_CODE", "authConfig": {"authToken": "ya29..."}},
        ...     {
        ...         "action": "READ_SPREADSHEET",
        ...         "spreadsheetId": "1BxiMVs0XRA5nFMdKvBdBZjgmUUqptlbs74OgvE2upms",
        ...         "sheetTitle": "Sheet1",
        ...         "extractFirstRowHeader": True,
        ...     },
        ... )
        >>> result.output[0]
        {'Name': 'Alice', 'Age': '30'}
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        token_provider: TokenProvider | None = None,
        transport_factory: TransportFactory | None = None,
        revoke: Revoker = revoke_token,
    ) -> None:
        """Initialize the plugin.

        Args:
            settings: Settings to use (defaults to environment settings)
            token_provider: Resolves access tokens from datasource credentials
            transport_factory: Builds a Transport from an access token
            revoke: Coroutine revoking an OAuth token
        """
        self._settings = settings or get_settings()
        self._token_provider = token_provider or TokenProvider()
        self._transport_factory = transport_factory or self._google_transport
        self._revoke = revoke

    def _google_transport(self, access_token: str) -> Transport:
        return GoogleSheetsTransport(
            access_token,
            timeout=self._settings.request_timeout,
            sheets_api_base=self._settings.sheets_api_base,
            drive_api_base=self._settings.drive_api_base,
        )

    @asynccontextmanager
    async def _open_transport(
        self, datasource: DatasourceConfiguration
    ) -> AsyncIterator[Transport]:
        token = await self._token_provider.access_token(datasource)
        transport = self._transport_factory(token)
        try:
            yield transport
        finally:
            await transport.close()

    async def execute(
        self,
        datasource_configuration: DatasourceConfiguration | Mapping[str, Any],
        action_configuration: ActionConfiguration | Mapping[str, Any],
    ) -> ExecutionOutput:
        """Validate and run one action.

        Args:
            datasource_configuration: Credentials (model or camelCase dict)
            action_configuration: Action and its parameters (model or
                camelCase dict)

        Returns:
            ExecutionOutput whose ``output`` is a list of records for reads,
            or the remote confirmation payload for writes and clears

        Raises:
            IntegrationError: Wrapping whatever made the action fail
        """
        try:
            datasource = _as_datasource(datasource_configuration)
            config = _as_action_configuration(action_configuration)
            action = build_action(config)
            set_action_context(config.action.value, action.spreadsheet_id)
            logger.info(
                "Executing Google Sheets action",
                extra={"sheet_title": action.sheet_title},
            )
            async with self._open_transport(datasource) as transport:
                output = await self.run(transport, action)
            return ExecutionOutput(output=output)
        except Exception as e:
            logger.warning(f"Google Sheets action failed: {e}")
            raise IntegrationError(f"Google Sheets request failed. {e}") from e
        finally:
            clear_action_context()

    async def run(self, transport: Transport, action: ActionRequest) -> Any:
        """Dispatch a validated action to its handler."""
        match action:
            case ReadAction() | ReadRangeAction():
                return await self.read_spreadsheet(transport, action)
            case AppendAction():
                return await self.append_to_spreadsheet(transport, action)
            case CreateRowsAction():
                return await self.write_to_spreadsheet(transport, action)
            case ClearAction():
                return await self.clear_sheet(transport, action)
            case _:
                assert_never(action)

    async def read_spreadsheet(
        self, transport: Transport, action: ReadAction | ReadRangeAction
    ) -> list[Record]:
        """Read a sheet, or a range of it, as records.

        With header extraction, column names come from row 1 of the sheet.
        A requested range starting at row 1 gives that row up to the
        header; a range elsewhere is read unchanged.
        """
        sheet = action.sheet_title
        requested = action.range if isinstance(action, ReadRangeAction) else None
        columns: list[Column] = []
        if action.extract_first_row_header:
            columns = await columns_from_header(
                transport, action.spreadsheet_id, sheet, header_row_number=1
            )

        column_names_offset = 0
        if requested and action.extract_first_row_header:
            if not a1.is_round_trip_stable(requested):
                raise ValidationError(f"The provided range {requested} is invalid")
            block = a1.parse(requested)
            # The header row was the only row asked for
            if block.height == 1 and block.row == 1:
                return []
            adjusted = block.shrink_top_row() if block.row == 1 else block
            fetch_range = a1.sheet_range(sheet, adjusted)
            column_names_offset = block.col - 1
        elif requested:
            fetch_range = a1.sheet_range(sheet, requested)
            column_names_offset = a1.parse(requested).col - 1
        elif action.extract_first_row_header:
            fetch_range = a1.sheet_range(sheet, a1.open_range(2))
        else:
            fetch_range = a1.sheet_range(sheet, a1.open_range(1))

        response = await transport.get_values(
            action.spreadsheet_id, fetch_range, action.format
        )
        data = response.raise_for_status("read data from Google Sheet")
        return grid_to_records(
            data.get("values") or [], action.format, columns, column_names_offset
        )

    async def append_to_spreadsheet(
        self, transport: Transport, action: AppendAction
    ) -> dict[str, Any] | None:
        """Deprecated: append rows below the data, keyed by the row-1 header."""
        columns, row_count = await columns_and_row_count(
            transport, action.spreadsheet_id, action.sheet_title
        )
        grid = records_to_grid(action.rows, columns)
        target = a1.sheet_range(
            action.sheet_title, a1.row_span(row_count + 1, row_count + 1)
        )
        response = await transport.append_values(action.spreadsheet_id, target, grid)
        data = response.raise_for_status("append data to Google Sheet")
        updates: dict[str, Any] | None = data.get("updates")
        return updates

    async def write_to_spreadsheet(
        self, transport: Transport, action: CreateRowsAction
    ) -> dict[str, Any] | None:
        """Write rows at the end of the sheet or at a given row number."""
        if action.destination is DestinationType.APPEND:
            return await self._append_rows(transport, action)
        return await self._write_rows(transport, action)

    async def _append_rows(
        self, transport: Transport, action: CreateRowsAction
    ) -> dict[str, Any] | None:
        row_count = await count_rows(
            transport, action.spreadsheet_id, action.sheet_title
        )
        last_row = max(row_count, action.header_row_number)
        if action.include_header_row:
            columns = await columns_from_header_and_data(
                transport,
                action.spreadsheet_id,
                action.sheet_title,
                action.header_row_number,
                action.rows,
            )
            await self._write_table_header(transport, action, columns)
        else:
            columns = columns_from_data(action.rows)

        grid = records_to_grid(action.rows, columns)
        target = a1.sheet_range(
            action.sheet_title, a1.row_span(last_row + 1, last_row + 1)
        )
        response = await transport.append_values(action.spreadsheet_id, target, grid)
        data = response.raise_for_status("append data to Google Sheet")
        updates: dict[str, Any] | None = data.get("updates")
        return updates

    async def _write_rows(
        self, transport: Transport, action: CreateRowsAction
    ) -> dict[str, Any]:
        columns = columns_from_data(action.rows)
        if action.include_header_row:
            await self._write_table_header(transport, action, columns)

        grid = records_to_grid(action.rows, columns)
        # Rows being overwritten are cleared first
        target = a1.sheet_range(
            action.sheet_title,
            a1.row_span(action.row_number, action.row_number + len(grid) - 1),
        )
        response = await transport.clear_values(action.spreadsheet_id, target)
        response.raise_for_status("clear data in Google Sheet")
        response = await transport.update_values(action.spreadsheet_id, target, grid)
        return response.raise_for_status("write data to Google Sheet")

    async def _write_table_header(
        self, transport: Transport, action: CreateRowsAction, columns: list[Column]
    ) -> None:
        """Replace the header row with the names of ``columns``."""
        header_range = a1.sheet_range(
            action.sheet_title,
            a1.row_span(action.header_row_number, action.header_row_number),
        )
        response = await transport.clear_values(action.spreadsheet_id, header_range)
        response.raise_for_status("clear Google Sheet")
        response = await transport.update_values(
            action.spreadsheet_id, header_range, [[column.name for column in columns]]
        )
        response.raise_for_status("write table header to Google Sheet")

    async def clear_sheet(
        self, transport: Transport, action: ClearAction
    ) -> dict[str, Any]:
        """Clear the sheet, optionally keeping everything up to the header."""
        first_row = action.header_row_number + 1 if action.preserve_header_row else 1
        target = a1.sheet_range(action.sheet_title, a1.open_range(first_row))
        response = await transport.clear_values(action.spreadsheet_id, target)
        return response.raise_for_status("clear Google Sheet")

    async def metadata(
        self,
        datasource_configuration: DatasourceConfiguration | Mapping[str, Any],
        action_configuration: ActionConfiguration | Mapping[str, Any] | None = None,
    ) -> DatasourceMetadata:
        """List spreadsheets, expanding the one the action points at.

        The expanded spreadsheet lists its sheet titles as columns.
        """
        try:
            datasource = _as_datasource(datasource_configuration)
            wanted = _spreadsheet_id_of(action_configuration)
            tables: list[Table] = []
            async with self._open_transport(datasource) as transport:
                page_token: str | None = None
                while True:
                    response = await transport.list_spreadsheets(page_token)
                    data = response.raise_for_status("list spreadsheets")
                    for file in data.get("files", []):
                        if wanted and file.get("id") == wanted:
                            tables.append(await self._describe(transport, wanted))
                        else:
                            tables.append(
                                Table(id=file.get("id"), name=file.get("name", ""))
                            )
                    page_token = data.get("nextPageToken")
                    if not page_token:
                        break
            return DatasourceMetadata(tables=tables)
        except Exception as e:
            raise IntegrationError(f"Failed to get metadata: {e}") from e

    async def _describe(self, transport: Transport, spreadsheet_id: str) -> Table:
        response = await transport.get_spreadsheet(spreadsheet_id)
        data = response.raise_for_status("get spreadsheet")
        return Table(
            id=data.get("spreadsheetId", ""),
            name=data.get("properties", {}).get("title", ""),
            columns=[
                TableColumn(name=sheet.get("properties", {}).get("title", ""))
                for sheet in data.get("sheets", [])
            ],
        )

    async def test(
        self, datasource_configuration: DatasourceConfiguration | Mapping[str, Any]
    ) -> None:
        """Check that the credentials can list spreadsheets."""
        try:
            datasource = _as_datasource(datasource_configuration)
            async with self._open_transport(datasource) as transport:
                response = await transport.list_spreadsheets()
                response.raise_for_status("test Google Sheet")
        except Exception as e:
            raise IntegrationError(
                f"Google Sheets client configuration failed. {e}"
            ) from e

    async def pre_delete(
        self, datasource_configuration: DatasourceConfiguration | Mapping[str, Any]
    ) -> None:
        """Revoke the OAuth token of a datasource about to be deleted.

        Service accounts and datasources without a token have nothing to
        revoke. Google answers 400 for a token that is already invalid,
        which is not an error here.
        """
        datasource = _as_datasource(datasource_configuration)
        token = datasource.auth_config.auth_token
        if datasource.auth_type is AuthType.SERVICE_ACCOUNT or not token:
            return

        try:
            response = await self._revoke(
                token,
                revoke_url=self._settings.revoke_url,
                timeout=self._settings.request_timeout,
            )
        except Exception as e:
            raise IntegrationError(f"Failed to revoke token: {e}") from e
        if response.status_code == 400:
            logger.warning(
                "Failed to revoke a token, treating it as already revoked: "
                f"{response.data.get('body', '')}"
            )
            return
        if not response.ok:
            raise IntegrationError(
                "Failed to revoke token, unexpected HTTP status: "
                f"{response.status_code}, response: {response.data.get('body', '')}"
            )


def _as_datasource(
    config: DatasourceConfiguration | Mapping[str, Any],
) -> DatasourceConfiguration:
    if isinstance(config, DatasourceConfiguration):
        return config
    return parse_datasource_configuration(dict(config))


def _as_action_configuration(
    config: ActionConfiguration | Mapping[str, Any],
) -> ActionConfiguration:
    if isinstance(config, ActionConfiguration):
        return config
    return parse_action_configuration(dict(config))


def _spreadsheet_id_of(
    config: ActionConfiguration | Mapping[str, Any] | None,
) -> str | None:
    if config is None:
        return None
    if isinstance(config, ActionConfiguration):
        return config.spreadsheet_id
    spreadsheet_id = config.get("spreadsheetId")
    return str(spreadsheet_id) if spreadsheet_id else None
