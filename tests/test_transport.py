"""Tests for transport layer."""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from extrarows.cells import ValueFormat
from extrarows.exceptions import RemoteCallError
from extrarows.transport import (
    ApiResponse,
    GoogleSheetsTransport,
    InMemoryTransport,
    TransportError,
)

Handler = Callable[[httpx.Request], httpx.Response]


def google(handler: Handler) -> GoogleSheetsTransport:
    return GoogleSheetsTransport(
        "test-token", http_transport=httpx.MockTransport(handler)
    )


def test_api_response_raise_for_status() -> None:
    """Only 200 counts as success."""
    assert ApiResponse(200, {"a": 1}).raise_for_status("read") == {"a": 1}
    with pytest.raises(RemoteCallError) as exc_info:
        ApiResponse(204).raise_for_status("clear Google Sheet")
    assert str(exc_info.value) == (
        "Failed to clear Google Sheet, unexpected status: 204"
    )


class TestGoogleSheetsTransport:
    """Requests sent by the production transport."""

    @pytest.mark.asyncio
    async def test_formatted_values(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"range": "Sheet1!A1:B2"})

        transport = google(handler)
        response = await transport.get_values("sid", "Sheet1!A1:B2")
        await transport.close()

        assert response.data["values"] == []
        request = seen[0]
        assert request.method == "GET"
        assert request.url.host == "sheets.googleapis.com"
        assert request.url.path == "/v4/spreadsheets/sid/values/Sheet1!A1:B2"
        assert b"Sheet1%21A1%3AB2" in request.url.raw_path
        assert request.url.params["valueRenderOption"] == "FORMATTED_VALUE"
        assert request.headers["Authorization"] == "Bearer test-token"

    @pytest.mark.asyncio
    async def test_effective_values_come_from_grid_data(self) -> None:
        seen: list[httpx.Request] = []
        cell = {"formattedValue": "1", "effectiveValue": {"numberValue": 1}}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "sheets": [
                        {"data": [{"rowData": [{"values": [cell]}, {}]}]}
                    ]
                },
            )

        transport = google(handler)
        response = await transport.get_values(
            "sid", "Sheet1!A1:B2", ValueFormat.EFFECTIVE_VALUE
        )
        await transport.close()

        assert response.data["values"] == [[cell]]
        assert seen[0].url.path == "/v4/spreadsheets/sid"
        assert seen[0].url.params["ranges"] == "Sheet1!A1:B2"
        assert seen[0].url.params["includeGridData"] == "true"

    @pytest.mark.asyncio
    async def test_grid_data_drops_trailing_empty_rows(self) -> None:
        """Blank rows inside the range stay; blank rows after the data go."""
        cell = {"userEnteredValue": {"stringValue": "a"}}

        def handler(request: httpx.Request) -> httpx.Response:
            row_data = [
                {"values": [cell]},
                {},
                {"values": [{}, cell]},
                {"values": [{}, {}]},
                {},
            ]
            return httpx.Response(
                200, json={"sheets": [{"data": [{"rowData": row_data}]}]}
            )

        transport = google(handler)
        response = await transport.get_values(
            "sid", "Sheet1!A1:B5", ValueFormat.USER_ENTERED_VALUE
        )
        await transport.close()

        assert response.data["values"] == [[cell], [], [{}, cell]]

    @pytest.mark.asyncio
    async def test_update_is_raw_put(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"updatedRows": 1})

        transport = google(handler)
        response = await transport.update_values("sid", "Sheet1!A2:ZZZ2", [["x", None]])
        await transport.close()

        assert response.ok
        assert seen[0].method == "PUT"
        assert seen[0].url.params["valueInputOption"] == "RAW"
        assert json.loads(seen[0].content)["values"] == [["x", None]]

    @pytest.mark.asyncio
    async def test_append_and_clear_endpoints(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        transport = google(handler)
        await transport.append_values("sid", "Sheet1!A3:ZZZ3", [["a"]])
        await transport.clear_values("sid", "Sheet1!A1:ZZZ10000000")
        await transport.close()

        assert [r.method for r in seen] == ["POST", "POST"]
        assert seen[0].url.path.endswith("/values/Sheet1!A3:ZZZ3:append")
        assert seen[1].url.path.endswith("/values/Sheet1!A1:ZZZ10000000:clear")

    @pytest.mark.asyncio
    async def test_list_spreadsheets_uses_drive(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"files": []})

        transport = google(handler)
        await transport.list_spreadsheets("next-page")
        await transport.close()

        assert seen[0].url.host == "www.googleapis.com"
        assert seen[0].url.path == "/drive/v3/files"
        assert seen[0].url.params["pageToken"] == "next-page"
        assert "spreadsheet" in seen[0].url.params["q"]

    @pytest.mark.asyncio
    async def test_error_status_is_returned(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={"error": {"message": "denied"}})

        transport = google(handler)
        response = await transport.clear_values("sid", "Sheet1!A1")
        await transport.close()

        assert response.status_code == 403
        with pytest.raises(RemoteCallError):
            response.raise_for_status("clear Google Sheet")

    @pytest.mark.asyncio
    async def test_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        transport = google(handler)
        with pytest.raises(TransportError, match="Network error"):
            await transport.get_values("sid", "Sheet1!A1")
        await transport.close()


class TestInMemoryTransport:
    """The test double behaves like the API where the plugin depends on it."""

    @pytest.fixture
    def memory(self) -> InMemoryTransport:
        memory = InMemoryTransport()
        memory.add_sheet("sid", "My Sheet", [["a", None, "c", None], [None], []])
        return memory

    @pytest.mark.asyncio
    async def test_reads_trim_trailing_empties(self, memory: InMemoryTransport) -> None:
        response = await memory.get_values("sid", "'My Sheet'!A1:ZZZ10000000")
        assert response.data["values"] == [["a", "", "c"]]

    @pytest.mark.asyncio
    async def test_empty_range_has_no_values_key(
        self, memory: InMemoryTransport
    ) -> None:
        response = await memory.get_values("sid", "'My Sheet'!A5:B6")
        assert response.ok
        assert "values" not in response.data

    @pytest.mark.asyncio
    async def test_unknown_sheet(self, memory: InMemoryTransport) -> None:
        response = await memory.get_values("sid", "Nope!A1")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_none_leaves_cells_untouched(self, memory: InMemoryTransport) -> None:
        await memory.update_values("sid", "'My Sheet'!A1:ZZZ1", [[None, "b"]])
        assert memory.grid("sid", "My Sheet")[0] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_append_goes_after_last_row(self, memory: InMemoryTransport) -> None:
        response = await memory.append_values("sid", "'My Sheet'!A1:ZZZ1", [["z"]])
        assert response.data["updates"]["updatedRange"] == "'My Sheet'!A2:A2"
        assert memory.grid("sid", "My Sheet") == [["a", None, "c"], ["z"]]

    @pytest.mark.asyncio
    async def test_failures_are_injected(self, memory: InMemoryTransport) -> None:
        memory.fail("clear_values", 500)
        response = await memory.clear_values("sid", "'My Sheet'!A1")
        assert response.status_code == 500
        assert memory.calls == [("clear_values", "'My Sheet'!A1")]
