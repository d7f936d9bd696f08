"""Projection between raw grids and records.

A raw grid is a list of ragged rows as exchanged with the Sheets API. A
record is a dict from column name to cell value, one per grid row.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from extrarows.cells import CellScalar, ValueFormat, decode_cell, encode_value
from extrarows.columns import Column, find_column
from extrarows.exceptions import UnexpectedKeyError

Record = dict[str, CellScalar]


def placeholder_column_name(column_index: int) -> str:
    """Name used for a cell beyond the known columns.

    Examples:
        0 -> column0, 3 -> column3
    """
    return f"column{column_index}"


def grid_to_records(
    grid: Iterable[list[Any]],
    value_format: ValueFormat,
    columns: list[Column],
    column_names_offset: int = 0,
) -> list[Record]:
    """Convert grid rows into records.

    Args:
        grid: Raw rows, possibly ragged
        value_format: Representation the cells were fetched in
        columns: Known columns, indexed by absolute sheet column
        column_names_offset: Zero-based sheet column of the grid's first
            cell, for grids read from a range not starting at column A

    Returns:
        One record per row. Keys follow cell order; cells that decode to
        nothing are left out instead of being set to an empty value.
    """
    records: list[Record] = []
    for row in grid:
        record: Record = {}
        for cell_index, cell in enumerate(row):
            column_index = cell_index + column_names_offset
            if column_index < len(columns):
                name = columns[column_index].name
            else:
                name = placeholder_column_name(column_index)
            decoded = decode_cell(cell, value_format)
            if not decoded.is_absent:
                record[name] = decoded.value
        records.append(record)
    return records


def records_to_grid(
    records: Iterable[Mapping[str, Any]], columns: list[Column]
) -> list[list[Any]]:
    """Convert records into grid rows for writing.

    With columns, each value lands at the position of the column whose
    name matches its key (case-insensitively); skipped positions are
    ``None``, which the API leaves untouched. Without columns, values are
    laid out in key order.

    Raises:
        UnexpectedKeyError: If a key matches none of the columns
    """
    grid: list[list[Any]] = []
    for record in records:
        row: list[Any] = []
        for key, value in record.items():
            if not columns:
                row.append(encode_value(value))
                continue
            column = find_column(columns, key)
            if column is None:
                raise UnexpectedKeyError(key, (c.name for c in columns))
            while len(row) <= column.source_column_index:
                row.append(None)
            row[column.source_column_index] = encode_value(value)
        grid.append(row)
    return grid
