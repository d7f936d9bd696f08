"""Cell value extraction for the three value formats the Sheets API returns."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

# bool | str | int | float | ErrorValue dict
CellScalar = Any


class ValueFormat(str, Enum):
    """How cell values are rendered when read."""

    FORMATTED_VALUE = "FORMATTED_VALUE"
    EFFECTIVE_VALUE = "EFFECTIVE_VALUE"
    USER_ENTERED_VALUE = "USER_ENTERED_VALUE"


class ValueKind(Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ERROR = "error"
    FORMULA = "formula"
    ABSENT = "absent"


@dataclass(frozen=True)
class CellValue:
    """A decoded cell: its kind plus the scalar to put in a record."""

    kind: ValueKind
    value: CellScalar = None

    @property
    def is_absent(self) -> bool:
        return self.kind is ValueKind.ABSENT


ABSENT = CellValue(ValueKind.ABSENT)

# Checked in order; the first key present with a non-null value wins
_EXTENDED_VALUE_PRIORITY = (
    ("stringValue", ValueKind.STRING),
    ("numberValue", ValueKind.NUMBER),
    ("boolValue", ValueKind.BOOLEAN),
    ("errorValue", ValueKind.ERROR),
    ("formulaValue", ValueKind.FORMULA),
)

# CellData field holding the value for each non-formatted format
_CELL_DATA_FIELD = {
    ValueFormat.EFFECTIVE_VALUE: "effectiveValue",
    ValueFormat.USER_ENTERED_VALUE: "userEnteredValue",
}


def resolve_extended_value(extended_value: Mapping[str, Any] | None) -> CellValue:
    """Resolve an ExtendedValue object to a single typed value.

    Presence is tested by key, so ``0``, ``False`` and ``""`` are real
    values rather than "empty".
    """
    if not extended_value:
        return ABSENT
    for key, kind in _EXTENDED_VALUE_PRIORITY:
        value = extended_value.get(key)
        if value is not None:
            return CellValue(kind, value)
    return ABSENT


def classify_scalar(value: Any) -> CellValue:
    """Wrap a bare value (as returned by the values API) in a CellValue."""
    if value is None:
        return ABSENT
    # bool is a subclass of int, check it first
    if isinstance(value, bool):
        return CellValue(ValueKind.BOOLEAN, value)
    if isinstance(value, (int, float)):
        return CellValue(ValueKind.NUMBER, value)
    if isinstance(value, Mapping):
        return CellValue(ValueKind.ERROR, dict(value))
    return CellValue(ValueKind.STRING, value)


def decode_cell(cell: Any, value_format: ValueFormat) -> CellValue:
    """Decode one raw cell.

    A raw cell is either a bare value from the ``values`` endpoint or a
    ``CellData`` mapping from a grid-data fetch.

    Args:
        cell: The raw cell
        value_format: Which representation the caller asked for

    Returns:
        The decoded value, ``ABSENT`` when the cell holds nothing
    """
    if cell is None:
        return ABSENT

    if value_format is ValueFormat.FORMATTED_VALUE:
        if isinstance(cell, Mapping):
            return CellValue(ValueKind.STRING, cell.get("formattedValue", ""))
        return classify_scalar(cell)

    if isinstance(cell, Mapping):
        return resolve_extended_value(cell.get(_CELL_DATA_FIELD[value_format]))
    return classify_scalar(cell)


def encode_value(value: CellScalar) -> CellScalar:
    """Encode a record value for the write path.

    Values are written with ``valueInputOption=RAW`` and are not coerced.
    """
    return value
