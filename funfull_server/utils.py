"""A1 notation helpers for addressing sheet ranges."""

from __future__ import annotations


def escape_sheet_title(title: str) -> str:
    """Escape a sheet title for use in A1 notation ranges.

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


def row_start_a1(sheet_name: str, row_number: int) -> str:
    """Address the first cell of a 1-based sheet row.

    Examples:
        ("Orders", 3) -> Orders!A3, ("My Orders", 3) -> 'My Orders'!A3
    """
    if row_number < 1:
        raise ValueError(f"Row numbers start at 1, got {row_number}")
    return f"{escape_sheet_title(sheet_name)}!A{row_number}"
