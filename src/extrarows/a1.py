"""
A1 notation helpers for extrarows.

Provides range parsing, validation, round-trip checks and the range
arithmetic used when a header row is carved off a requested range.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# Practical ceiling of a Google spreadsheet, used as "to the end of the sheet"
MAX_COLUMN = "ZZZ"
MAX_ROW = 10_000_000
MAX_A1_RANGE = f"{MAX_COLUMN}{MAX_ROW}"

_CELL_PATTERN = r"([A-Za-z]{1,3})([1-9][0-9]*)"
_RANGE_PATTERN = re.compile(rf"^{_CELL_PATTERN}(?::{_CELL_PATTERN})?$")


class InvalidRangeError(ValueError):
    """Raised when a string is not a valid A1 cell or range."""

    def __init__(self, expression: str) -> None:
        self.expression = expression
        super().__init__(f"Invalid A1 range: {expression!r}")


def column_index_to_letter(index: int) -> str:
    """Convert a zero-based column index to A1 notation letter(s).

    Examples:
        0 -> A, 1 -> B, 25 -> Z, 26 -> AA, 27 -> AB, 702 -> AAA
    """
    result = ""
    while True:
        result = chr(ord("A") + (index % 26)) + result
        index = index // 26 - 1
        if index < 0:
            break
    return result


def letter_to_column_index(letter: str) -> int:
    """Convert A1 notation letter(s) to a zero-based column index.

    Examples:
        A -> 0, B -> 1, Z -> 25, AA -> 26, AB -> 27, AAA -> 702
    """
    result = 0
    for char in letter.upper():
        result = result * 26 + (ord(char) - ord("A") + 1)
    return result - 1


@dataclass(frozen=True)
class A1Range:
    """A rectangular block of cells.

    ``col`` and ``row`` are the 1-based coordinates of the top-left cell.
    ``two_corner`` remembers whether the range was written as ``A1:B2``
    rather than a single ``A1`` so that serialisation keeps its shape.
    """

    col: int
    row: int
    width: int = 1
    height: int = 1
    two_corner: bool = False

    @property
    def last_col(self) -> int:
        return self.col + self.width - 1

    @property
    def last_row(self) -> int:
        return self.row + self.height - 1

    def shrink_top_row(self) -> A1Range:
        """Return the range without its first row.

        A single-row range has nothing left once its top row is removed;
        callers are expected to handle that case before shrinking.
        """
        if self.height <= 1:
            raise ValueError(f"Cannot remove the top row of single-row range {self}")
        return A1Range(
            col=self.col,
            row=self.row + 1,
            width=self.width,
            height=self.height - 1,
            two_corner=True,
        )

    def __str__(self) -> str:
        start = f"{column_index_to_letter(self.col - 1)}{self.row}"
        if not self.two_corner and self.width == 1 and self.height == 1:
            return start
        return f"{start}:{column_index_to_letter(self.last_col - 1)}{self.last_row}"


def parse(expression: str) -> A1Range:
    """Parse an A1 cell (``B3``) or range (``A1:D10``).

    Corners may be given in any order; the result is normalised to the
    top-left cell plus width and height.

    Raises:
        InvalidRangeError: If the expression is not valid A1 notation
    """
    match = _RANGE_PATTERN.match(expression)
    if not match:
        raise InvalidRangeError(expression)
    start_col, start_row, end_col, end_row = match.groups()
    col1 = letter_to_column_index(start_col) + 1
    row1 = int(start_row)
    if end_col is None:
        return A1Range(col=col1, row=row1)

    col2 = letter_to_column_index(end_col) + 1
    row2 = int(end_row)
    return A1Range(
        col=min(col1, col2),
        row=min(row1, row2),
        width=abs(col2 - col1) + 1,
        height=abs(row2 - row1) + 1,
        two_corner=True,
    )


def is_valid(expression: str) -> bool:
    """Check whether a string is a syntactically valid A1 cell or range."""
    return bool(_RANGE_PATTERN.match(expression))


def is_round_trip_stable(expression: str) -> bool:
    """Check that parsing and re-serialising reproduces the input exactly.

    Lower-case letters and reversed corners parse fine but are not
    canonical, so they fail this check.
    """
    if not is_valid(expression):
        return False
    return str(parse(expression)) == expression


def escape_sheet_title(title: str) -> str:
    """Escape sheet title for use in A1 notation ranges.

    Sheet names containing spaces, special characters, or starting with
    digits need to be wrapped in single quotes.
    """
    needs_quoting = (
        " " in title
        or "'" in title
        or "!" in title
        or ":" in title
        or (len(title) > 0 and title[0].isdigit())
    )
    if needs_quoting:
        escaped = title.replace("'", "''")
        return f"'{escaped}'"
    return title


def sheet_range(sheet_title: str, a1_range: str | A1Range) -> str:
    """Qualify a range with its sheet, e.g. ``Sheet1!A1:B2``."""
    return f"{escape_sheet_title(sheet_title)}!{a1_range}"


def open_range(from_row: int) -> str:
    """Range from column A of ``from_row`` down to the end of the sheet."""
    return f"A{from_row}:{MAX_A1_RANGE}"


def row_span(first_row: int, last_row: int) -> str:
    """Full-width range covering rows ``first_row`` to ``last_row``."""
    return f"A{first_row}:{MAX_COLUMN}{last_row}"
