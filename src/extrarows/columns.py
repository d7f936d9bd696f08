"""Column resolution.

Derives the ordered list of named columns used to line records up with
grid positions. Three strategies exist:

- from a header row fetched from the sheet,
- from the keys of the records being written,
- a merge of both, keeping the existing header order and appending new keys.

Name matching is case-insensitive; a column keeps the casing of the header
cell or record key that introduced it.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from extrarows import a1
from extrarows.exceptions import MissingHeaderError
from extrarows.transport import Transport


@dataclass(frozen=True)
class Column:
    """A named field and its zero-based position in a grid row."""

    name: str
    source_column_index: int


def _columns_from_cells(cells: Iterable[Any]) -> list[Column]:
    return [
        Column(name=str(cell) if cell is not None else "", source_column_index=i)
        for i, cell in enumerate(cells)
    ]


def find_column(columns: Iterable[Column], name: str) -> Column | None:
    """Case-insensitive lookup of a column by name."""
    wanted = name.lower()
    for column in columns:
        if column.name.lower() == wanted:
            return column
    return None


def columns_from_data(records: Iterable[Mapping[str, Any]]) -> list[Column]:
    """Union of all record keys, in first-seen order.

    Records need not share the same keys. Keys differing only by case
    collapse into the first one seen.
    """
    columns: list[Column] = []
    seen: set[str] = set()
    for record in records:
        for key in record:
            if key.lower() in seen:
                continue
            seen.add(key.lower())
            columns.append(Column(name=key, source_column_index=len(columns)))
    return columns


def merge_columns(
    header_columns: list[Column], records: Iterable[Mapping[str, Any]]
) -> list[Column]:
    """Extend a header with the record keys it does not have yet.

    Existing header columns keep their order and indices; new keys are
    appended in first-seen order, continuing the index sequence.
    """
    columns = list(header_columns)
    known = {column.name.lower() for column in columns}
    next_index = len(columns)
    for record in records:
        for key in record:
            if key.lower() in known:
                continue
            known.add(key.lower())
            columns.append(Column(name=key, source_column_index=next_index))
            next_index += 1
    return columns


async def columns_from_header(
    transport: Transport,
    spreadsheet_id: str,
    sheet_title: str,
    header_row_number: int | None = None,
) -> list[Column]:
    """Read column names from a header row.

    Fetches from the header row to the end of the sheet and uses the first
    returned row.

    Args:
        transport: Spreadsheet client
        spreadsheet_id: Spreadsheet to read
        sheet_title: Sheet to read
        header_row_number: 1-based header row. When given, an empty result
            is an error; when omitted, row 1 is read and an empty sheet
            yields no columns.

    Raises:
        MissingHeaderError: If ``header_row_number`` was given but the row
            has no cells
        RemoteCallError: If the read fails
    """
    row_number = header_row_number or 1
    response = await transport.get_values(
        spreadsheet_id, a1.sheet_range(sheet_title, a1.open_range(row_number))
    )
    values = response.raise_for_status("read table header from Google Sheet").get(
        "values"
    )
    if not values:
        if header_row_number:
            raise MissingHeaderError(header_row_number)
        return []
    return _columns_from_cells(values[0])


async def columns_and_row_count(
    transport: Transport, spreadsheet_id: str, sheet_title: str
) -> tuple[list[Column], int]:
    """Read row 1 as columns together with the number of used rows."""
    response = await transport.get_values(
        spreadsheet_id, a1.sheet_range(sheet_title, a1.open_range(1))
    )
    values = response.raise_for_status("read data from Google Sheet").get("values")
    if not values:
        return [], 0
    return _columns_from_cells(values[0]), len(values)


async def count_rows(
    transport: Transport, spreadsheet_id: str, sheet_title: str
) -> int:
    """Number of rows up to the last non-empty one."""
    response = await transport.get_values(
        spreadsheet_id, a1.sheet_range(sheet_title, a1.open_range(1))
    )
    values = response.raise_for_status("read data from Google Sheet").get("values")
    return len(values or [])


async def columns_from_header_and_data(
    transport: Transport,
    spreadsheet_id: str,
    sheet_title: str,
    header_row_number: int,
    records: Iterable[Mapping[str, Any]],
) -> list[Column]:
    """Existing header columns plus any new keys from the records.

    Only the header row itself is fetched; an empty header row behaves
    like no header at all.
    """
    response = await transport.get_values(
        spreadsheet_id,
        a1.sheet_range(sheet_title, a1.row_span(header_row_number, header_row_number)),
    )
    values = response.raise_for_status("read table header from Google Sheet").get(
        "values"
    )
    header_columns: list[Column] = []
    if values and len(values) == 1:
        header_columns = _columns_from_cells(values[0])
    return merge_columns(header_columns, records)
