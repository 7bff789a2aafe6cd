"""Tests for A1 notation helpers."""

import pytest

from funfull_server.utils import escape_sheet_title, row_start_a1


class TestEscapeSheetTitle:
    """Tests for escape_sheet_title."""

    def test_simple_title_unchanged(self) -> None:
        assert escape_sheet_title("Orders") == "Orders"

    def test_title_with_space_is_quoted(self) -> None:
        assert escape_sheet_title("My Orders") == "'My Orders'"

    def test_single_quote_is_doubled(self) -> None:
        assert escape_sheet_title("Bob's") == "'Bob''s'"

    def test_leading_digit_is_quoted(self) -> None:
        assert escape_sheet_title("2025") == "'2025'"


class TestRowStartA1:
    """Tests for row_start_a1."""

    def test_plain_sheet(self) -> None:
        assert row_start_a1("Orders", 3) == "Orders!A3"

    def test_quoted_sheet(self) -> None:
        assert row_start_a1("My Orders", 12) == "'My Orders'!A12"

    def test_row_zero_rejected(self) -> None:
        """Sheet rows are 1-based."""
        with pytest.raises(ValueError):
            row_start_a1("Orders", 0)
