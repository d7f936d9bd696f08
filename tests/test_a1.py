"""Tests for A1 notation helpers."""

from __future__ import annotations

import pytest

from extrarows import a1


class TestColumnLetters:
    """Tests for column index <-> letter conversion."""

    def test_single_letters(self) -> None:
        assert a1.column_index_to_letter(0) == "A"
        assert a1.column_index_to_letter(25) == "Z"

    def test_double_letters(self) -> None:
        assert a1.column_index_to_letter(26) == "AA"
        assert a1.column_index_to_letter(27) == "AB"
        assert a1.column_index_to_letter(701) == "ZZ"

    def test_triple_letters(self) -> None:
        assert a1.column_index_to_letter(702) == "AAA"
        assert a1.column_index_to_letter(18277) == a1.MAX_COLUMN

    def test_letter_to_index(self) -> None:
        assert a1.letter_to_column_index("A") == 0
        assert a1.letter_to_column_index("z") == 25
        assert a1.letter_to_column_index("AA") == 26
        assert a1.letter_to_column_index("ZZZ") == 18277


class TestParse:
    """Tests for parsing cells and ranges."""

    def test_single_cell(self) -> None:
        block = a1.parse("B3")
        assert (block.col, block.row, block.width, block.height) == (2, 3, 1, 1)
        assert not block.two_corner

    def test_range(self) -> None:
        block = a1.parse("B2:D10")
        assert (block.col, block.row) == (2, 2)
        assert block.width == 3
        assert block.height == 9
        assert block.last_col == 4
        assert block.last_row == 10

    def test_reversed_corners_are_normalised(self) -> None:
        block = a1.parse("D10:B2")
        assert str(block) == "B2:D10"

    @pytest.mark.parametrize(
        "expression", ["", "A", "1", "A0", "A1:", "A1:B", "Sheet1!A1", "AAAA1"]
    )
    def test_invalid(self, expression: str) -> None:
        assert not a1.is_valid(expression)
        with pytest.raises(a1.InvalidRangeError):
            a1.parse(expression)

    def test_open_ended_ranges_parse(self) -> None:
        block = a1.parse(a1.open_range(2))
        assert block.row == 2
        assert block.last_row == a1.MAX_ROW
        assert block.last_col == 18278


class TestRoundTrip:
    """Tests for canonical-form checks."""

    @pytest.mark.parametrize("expression", ["A1", "B2:D10", "A1:A1", "AA5:AB7"])
    def test_canonical_forms_are_stable(self, expression: str) -> None:
        assert a1.is_round_trip_stable(expression)

    @pytest.mark.parametrize("expression", ["a1:b2", "D10:B2", "not-a-range"])
    def test_non_canonical_forms_are_not_stable(self, expression: str) -> None:
        assert not a1.is_round_trip_stable(expression)


class TestShrinkTopRow:
    """Tests for removing a header row from a range."""

    def test_removes_first_row(self) -> None:
        assert str(a1.parse("A1:C5").shrink_top_row()) == "A2:C5"

    def test_two_row_range_keeps_two_corners(self) -> None:
        assert str(a1.parse("B1:B2").shrink_top_row()) == "B2:B2"

    def test_single_row_cannot_shrink(self) -> None:
        with pytest.raises(ValueError):
            a1.parse("A1:C1").shrink_top_row()


class TestSheetRanges:
    """Tests for qualified range construction."""

    def test_plain_title(self) -> None:
        assert a1.sheet_range("Sheet1", "A1:B2") == "Sheet1!A1:B2"

    def test_title_with_space_is_quoted(self) -> None:
        assert a1.sheet_range("My Data", "A1") == "'My Data'!A1"

    def test_title_with_quote_is_escaped(self) -> None:
        assert a1.escape_sheet_title("Bob's") == "'Bob''s'"

    def test_title_starting_with_digit_is_quoted(self) -> None:
        assert a1.escape_sheet_title("2024") == "'2024'"

    def test_accepts_parsed_range(self) -> None:
        assert a1.sheet_range("Sheet1", a1.parse("C3")) == "Sheet1!C3"

    def test_open_range(self) -> None:
        assert a1.open_range(1) == "A1:ZZZ10000000"

    def test_row_span(self) -> None:
        assert a1.row_span(4, 6) == "A4:ZZZ6"
