"""Transport layer for talking to the spreadsheet service.

Defines the Transport protocol and implementations:
- GoogleSheetsTransport: Production transport using the Sheets and Drive APIs
- InMemoryTransport: Test transport backed by in-memory grids
"""

from __future__ import annotations

import ssl
import urllib.parse
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import certifi
import httpx

from extrarows import a1
from extrarows.cells import ValueFormat
from extrarows.exceptions import RemoteCallError

# API constants
SHEETS_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"
DRIVE_API_BASE = "https://www.googleapis.com/drive/v3"
DEFAULT_TIMEOUT = 60

SPREADSHEET_MIME_QUERY = "mimeType='application/vnd.google-apps.spreadsheet'"
GRID_DATA_FIELDS = (
    "sheets(data(rowData(values(formattedValue,effectiveValue,userEnteredValue))))"
)


class TransportError(Exception):
    """Raised when the remote service cannot be reached."""


@dataclass(frozen=True)
class ApiResponse:
    """Status and decoded JSON body of one remote call.

    Transports return statuses as-is; callers decide what counts as
    success via ``raise_for_status``.
    """

    status_code: int
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status_code == 200

    def raise_for_status(self, operation: str) -> dict[str, Any]:
        """Return ``data`` or raise RemoteCallError naming ``operation``."""
        if not self.ok:
            raise RemoteCallError(operation, self.status_code)
        return self.data


class Transport(ABC):
    """Abstract base class for the spreadsheet client capability.

    Every ``a1_range`` argument is fully qualified: ``<sheet title>!<A1 range>``.
    """

    @abstractmethod
    async def get_values(
        self,
        spreadsheet_id: str,
        a1_range: str,
        value_format: ValueFormat = ValueFormat.FORMATTED_VALUE,
    ) -> ApiResponse:
        """Fetch the cells of a range.

        Args:
            spreadsheet_id: The spreadsheet identifier
            a1_range: Qualified A1 range to read
            value_format: Cell representation to return

        Returns:
            ApiResponse whose ``data["values"]`` is the raw grid. Rows are
            ragged and trailing empty rows/cells are omitted.
        """
        ...

    @abstractmethod
    async def update_values(
        self, spreadsheet_id: str, a1_range: str, values: list[list[Any]]
    ) -> ApiResponse:
        """Overwrite the cells of a range, starting at its top-left cell."""
        ...

    @abstractmethod
    async def append_values(
        self, spreadsheet_id: str, a1_range: str, values: list[list[Any]]
    ) -> ApiResponse:
        """Append rows after the table found in a range.

        ``data["updates"]`` describes what was written.
        """
        ...

    @abstractmethod
    async def clear_values(self, spreadsheet_id: str, a1_range: str) -> ApiResponse:
        """Clear the values of a range, keeping formatting."""
        ...

    @abstractmethod
    async def list_spreadsheets(self, page_token: str | None = None) -> ApiResponse:
        """List one page of spreadsheet files visible to the credentials.

        ``data`` holds ``files`` (``id`` and ``name``) and, when more pages
        exist, ``nextPageToken``.
        """
        ...

    @abstractmethod
    async def get_spreadsheet(self, spreadsheet_id: str) -> ApiResponse:
        """Fetch spreadsheet properties and sheet titles, without cell data."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections."""
        ...


class GoogleSheetsTransport(Transport):
    """Production transport that talks to the Google Sheets and Drive APIs.

    Handles authentication, SSL, and HTTP communication. HTTP error
    statuses are returned, not raised; only network failures raise.
    """

    def __init__(
        self,
        access_token: str,
        timeout: float = DEFAULT_TIMEOUT,
        *,
        sheets_api_base: str = SHEETS_API_BASE,
        drive_api_base: str = DRIVE_API_BASE,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            access_token: OAuth2 access token with spreadsheets and drive scopes
            timeout: Request timeout in seconds
            sheets_api_base: Base URL of the Sheets API
            drive_api_base: Base URL of the Drive API
            http_transport: Optional httpx transport (used by tests)
        """
        self._sheets_api_base = sheets_api_base.rstrip("/")
        self._drive_api_base = drive_api_base.rstrip("/")
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        self._client = httpx.AsyncClient(
            timeout=timeout,
            verify=ssl_context,
            transport=http_transport,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
            },
        )

    async def get_values(
        self,
        spreadsheet_id: str,
        a1_range: str,
        value_format: ValueFormat = ValueFormat.FORMATTED_VALUE,
    ) -> ApiResponse:
        """Fetch a range from the values endpoint or as grid data."""
        if value_format is ValueFormat.FORMATTED_VALUE:
            response = await self._send(
                "GET",
                self._values_url(spreadsheet_id, a1_range),
                params={
                    "valueRenderOption": "FORMATTED_VALUE",
                    "majorDimension": "ROWS",
                },
            )
            if response.ok:
                data = dict(response.data)
                data.setdefault("values", [])
                return ApiResponse(response.status_code, data)
            return response

        # Effective and user-entered values are only exposed on CellData
        response = await self._send(
            "GET",
            f"{self._sheets_api_base}/{spreadsheet_id}",
            params={
                "ranges": a1_range,
                "includeGridData": "true",
                "fields": GRID_DATA_FIELDS,
            },
        )
        if not response.ok:
            return response
        return ApiResponse(
            response.status_code,
            {"range": a1_range, "values": _grid_data_to_rows(response.data)},
        )

    async def update_values(
        self, spreadsheet_id: str, a1_range: str, values: list[list[Any]]
    ) -> ApiResponse:
        """Write a range with valueInputOption=RAW."""
        return await self._send(
            "PUT",
            self._values_url(spreadsheet_id, a1_range),
            params={"valueInputOption": "RAW"},
            json={"range": a1_range, "majorDimension": "ROWS", "values": values},
        )

    async def append_values(
        self, spreadsheet_id: str, a1_range: str, values: list[list[Any]]
    ) -> ApiResponse:
        """Append rows with valueInputOption=RAW."""
        return await self._send(
            "POST",
            self._values_url(spreadsheet_id, a1_range, ":append"),
            params={"valueInputOption": "RAW"},
            json={"range": a1_range, "majorDimension": "ROWS", "values": values},
        )

    async def clear_values(self, spreadsheet_id: str, a1_range: str) -> ApiResponse:
        """Clear a range."""
        return await self._send(
            "POST", self._values_url(spreadsheet_id, a1_range, ":clear"), json={}
        )

    async def list_spreadsheets(self, page_token: str | None = None) -> ApiResponse:
        """List spreadsheet files through the Drive API."""
        params = {
            "q": SPREADSHEET_MIME_QUERY,
            "fields": "nextPageToken, files(id,name)",
        }
        if page_token:
            params["pageToken"] = page_token
        return await self._send("GET", f"{self._drive_api_base}/files", params=params)

    async def get_spreadsheet(self, spreadsheet_id: str) -> ApiResponse:
        """Fetch spreadsheet metadata without grid data."""
        return await self._send(
            "GET",
            f"{self._sheets_api_base}/{spreadsheet_id}",
            params={
                "includeGridData": "false",
                "fields": "spreadsheetId,properties.title,sheets.properties.title",
            },
        )

    def _values_url(self, spreadsheet_id: str, a1_range: str, suffix: str = "") -> str:
        quoted = urllib.parse.quote(a1_range, safe="")
        return f"{self._sheets_api_base}/{spreadsheet_id}/values/{quoted}{suffix}"

    async def _send(self, method: str, url: str, **kwargs: Any) -> ApiResponse:
        """Make an authenticated request and decode its JSON body."""
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise TransportError(f"Network error: {e}") from e

        data: dict[str, Any] = {}
        if response.content:
            try:
                body = response.json()
            except ValueError:
                body = {"error": response.text}
            data = body if isinstance(body, dict) else {"body": body}
        return ApiResponse(response.status_code, data)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()


def _grid_data_to_rows(data: dict[str, Any]) -> list[list[Any]]:
    """Flatten a spreadsheets.get grid-data response into rows of CellData.

    Trailing rows without any cell data are dropped, as the values endpoint
    drops them.
    """
    sheets = data.get("sheets") or [{}]
    grids = sheets[0].get("data") or [{}]
    rows = [row.get("values", []) for row in grids[0].get("rowData", [])]
    while rows and not any(rows[-1]):
        rows.pop()
    return rows


class InMemoryTransport(Transport):
    """Test transport that keeps spreadsheets as in-memory grids.

    Reads mimic the Sheets API: trailing empty cells and rows are dropped,
    holes inside a row come back as ``""`` (formatted) or ``{}`` (grid
    data). Every call is recorded in ``calls`` as ``(operation, range)``.

    Example:
        >>> transport = InMemoryTransport()
        >>> transport.add_sheet("sheet-id", "Sheet1", [["Name"], ["Alice"]])
    """

    def __init__(self, page_size: int = 100) -> None:
        self._page_size = page_size
        self._titles: dict[str, str] = {}
        self._sheets: dict[str, dict[str, list[list[Any]]]] = {}
        self._failures: dict[str, int] = {}
        self.calls: list[tuple[str, str]] = []
        self.closed = False

    def add_sheet(
        self,
        spreadsheet_id: str,
        sheet_title: str,
        values: list[list[Any]] | None = None,
        *,
        spreadsheet_title: str | None = None,
    ) -> None:
        """Create (or replace) a sheet with initial values."""
        self._titles.setdefault(spreadsheet_id, spreadsheet_title or spreadsheet_id)
        sheets = self._sheets.setdefault(spreadsheet_id, {})
        sheets[sheet_title] = [list(row) for row in values or []]

    def fail(self, operation: str, status_code: int) -> None:
        """Answer every future ``operation`` call with ``status_code``."""
        self._failures[operation] = status_code

    def grid(self, spreadsheet_id: str, sheet_title: str) -> list[list[Any]]:
        """Stored values with trailing empties trimmed (``None`` = empty)."""
        return _trim(self._sheets[spreadsheet_id][sheet_title])

    def ranges(self, operation: str) -> list[str]:
        """Ranges passed to ``operation``, in call order."""
        return [rng for op, rng in self.calls if op == operation]

    async def get_values(
        self,
        spreadsheet_id: str,
        a1_range: str,
        value_format: ValueFormat = ValueFormat.FORMATTED_VALUE,
    ) -> ApiResponse:
        failed = self._record("get_values", a1_range)
        if failed:
            return failed
        located = self._locate(spreadsheet_id, a1_range)
        if located is None:
            return ApiResponse(400, {"error": f"Unable to parse range: {a1_range}"})
        grid, block = located
        rows = [
            row[block.col - 1 : block.last_col]
            for row in grid[block.row - 1 : block.last_row]
        ]
        values = [
            [_render(cell, value_format) for cell in row] for row in _trim(rows)
        ]
        data: dict[str, Any] = {"range": a1_range, "majorDimension": "ROWS"}
        if values:
            data["values"] = values
        return ApiResponse(200, data)

    async def update_values(
        self, spreadsheet_id: str, a1_range: str, values: list[list[Any]]
    ) -> ApiResponse:
        failed = self._record("update_values", a1_range)
        if failed:
            return failed
        located = self._locate(spreadsheet_id, a1_range)
        if located is None:
            return ApiResponse(400, {"error": f"Unable to parse range: {a1_range}"})
        grid, block = located
        return ApiResponse(200, _write(grid, a1_range, block.row, block.col, values))

    async def append_values(
        self, spreadsheet_id: str, a1_range: str, values: list[list[Any]]
    ) -> ApiResponse:
        failed = self._record("append_values", a1_range)
        if failed:
            return failed
        located = self._locate(spreadsheet_id, a1_range)
        if located is None:
            return ApiResponse(400, {"error": f"Unable to parse range: {a1_range}"})
        grid, block = located
        start_row = max(block.row, len(_trim(grid)) + 1)
        updates = _write(grid, a1_range, start_row, block.col, values)
        return ApiResponse(
            200,
            {
                "spreadsheetId": spreadsheet_id,
                "tableRange": a1_range,
                "updates": updates,
            },
        )

    async def clear_values(self, spreadsheet_id: str, a1_range: str) -> ApiResponse:
        failed = self._record("clear_values", a1_range)
        if failed:
            return failed
        located = self._locate(spreadsheet_id, a1_range)
        if located is None:
            return ApiResponse(400, {"error": f"Unable to parse range: {a1_range}"})
        grid, block = located
        for row in grid[block.row - 1 : block.last_row]:
            for index in range(block.col - 1, min(block.last_col, len(row))):
                row[index] = None
        return ApiResponse(
            200, {"spreadsheetId": spreadsheet_id, "clearedRange": a1_range}
        )

    async def list_spreadsheets(self, page_token: str | None = None) -> ApiResponse:
        failed = self._record("list_spreadsheets", page_token or "")
        if failed:
            return failed
        start = int(page_token) if page_token else 0
        ids = list(self._titles)
        page = ids[start : start + self._page_size]
        data: dict[str, Any] = {
            "files": [{"id": sid, "name": self._titles[sid]} for sid in page]
        }
        if start + self._page_size < len(ids):
            data["nextPageToken"] = str(start + self._page_size)
        return ApiResponse(200, data)

    async def get_spreadsheet(self, spreadsheet_id: str) -> ApiResponse:
        failed = self._record("get_spreadsheet", spreadsheet_id)
        if failed:
            return failed
        if spreadsheet_id not in self._sheets:
            return ApiResponse(404, {"error": "Requested entity was not found."})
        return ApiResponse(
            200,
            {
                "spreadsheetId": spreadsheet_id,
                "properties": {"title": self._titles[spreadsheet_id]},
                "sheets": [
                    {"properties": {"title": title}}
                    for title in self._sheets[spreadsheet_id]
                ],
            },
        )

    async def close(self) -> None:
        """No-op for the in-memory transport."""
        self.closed = True

    def _record(self, operation: str, a1_range: str) -> ApiResponse | None:
        self.calls.append((operation, a1_range))
        status = self._failures.get(operation)
        if status is not None:
            return ApiResponse(status, {"error": f"{operation} failed"})
        return None

    def _locate(
        self, spreadsheet_id: str, qualified_range: str
    ) -> tuple[list[list[Any]], a1.A1Range] | None:
        title, _, cells = qualified_range.rpartition("!")
        if title.startswith("'") and title.endswith("'"):
            title = title[1:-1].replace("''", "'")
        grid = self._sheets.get(spreadsheet_id, {}).get(title)
        if grid is None or not a1.is_valid(cells):
            return None
        return grid, a1.parse(cells)


def _trim(rows: list[list[Any]]) -> list[list[Any]]:
    """Drop trailing empty cells of each row and trailing empty rows."""
    trimmed = []
    for row in rows:
        end = len(row)
        while end and row[end - 1] is None:
            end -= 1
        trimmed.append(list(row[:end]))
    while trimmed and not trimmed[-1]:
        trimmed.pop()
    return trimmed


def _write(
    grid: list[list[Any]],
    a1_range: str,
    start_row: int,
    start_col: int,
    values: list[list[Any]],
) -> dict[str, Any]:
    """Write ``values`` into ``grid``; ``None`` leaves the cell untouched."""
    width = 0
    for offset, row_values in enumerate(values):
        row_index = start_row - 1 + offset
        while len(grid) <= row_index:
            grid.append([])
        row = grid[row_index]
        for col_offset, value in enumerate(row_values):
            col_index = start_col - 1 + col_offset
            while len(row) <= col_index:
                row.append(None)
            if value is not None:
                row[col_index] = value
        width = max(width, len(row_values))

    sheet = a1_range.rpartition("!")[0]
    written = a1.A1Range(
        col=start_col,
        row=start_row,
        width=max(width, 1),
        height=max(len(values), 1),
        two_corner=True,
    )
    return {
        "updatedRange": f"{sheet}!{written}",
        "updatedRows": len(values),
        "updatedColumns": width,
        "updatedCells": sum(
            1 for row in values for value in row if value is not None
        ),
    }


def _render(cell: Any, value_format: ValueFormat) -> Any:
    """Render a stored value the way the API returns it for a format."""
    if value_format is ValueFormat.FORMATTED_VALUE:
        return _format(cell)
    if cell is None:
        return {}
    if isinstance(cell, bool):
        extended: dict[str, Any] = {"boolValue": cell}
    elif isinstance(cell, (int, float)):
        extended = {"numberValue": cell}
    else:
        extended = {"stringValue": cell}
    return {
        "formattedValue": _format(cell),
        "effectiveValue": extended,
        "userEnteredValue": extended,
    }


def _format(cell: Any) -> str:
    if cell is None:
        return ""
    if isinstance(cell, bool):
        return "TRUE" if cell else "FALSE"
    if isinstance(cell, float) and cell == int(cell):
        return str(int(cell))
    return str(cell)
