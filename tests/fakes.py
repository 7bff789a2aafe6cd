"""Fake implementations for testing repositories and endpoints.

These fakes allow us to control the behavior of external dependencies
(the Sheets API, settings, credentials) during unit tests.
"""

import asyncio
from typing import Any

from funfull_server.config import Settings
from funfull_server.transport import NotFoundError, Rows, SheetsTransport, TransportError

SPREADSHEET_ID = "test-spreadsheet"
ACCESS_TOKEN = "test-access-token"


def _unquote_title(title: str) -> str:
    if len(title) >= 2 and title.startswith("'") and title.endswith("'"):
        return title[1:-1].replace("''", "'")
    return title


def _trim_row(row: list[str]) -> list[str]:
    """Drop trailing empty cells, as the Sheets API does."""
    end = len(row)
    while end and row[end - 1] == "":
        end -= 1
    return row[:end]


class FakeSheetsTransport(SheetsTransport):
    """In-memory spreadsheet.

    Every call yields to the event loop first, so concurrent repository
    operations interleave the way real round-trips do.
    """

    def __init__(self, sheets: dict[str, list[list[str]]] | None = None) -> None:
        self.sheets: dict[str, list[list[str]]] = {
            name: [list(row) for row in rows] for name, rows in (sheets or {}).items()
        }
        self.writes: list[tuple[str, Rows]] = []
        self.appends: list[tuple[str, Rows]] = []
        self.calls: list[str] = []
        self.fail_with: TransportError | None = None
        self.closed = False

    def _grid(self, sheet_name: str) -> list[list[str]]:
        name = _unquote_title(sheet_name)
        if name not in self.sheets:
            raise NotFoundError(f"Unable to parse range: {sheet_name}")
        return self.sheets[name]

    async def _enter(self, operation: str) -> None:
        await asyncio.sleep(0)
        self.calls.append(operation)
        if self.fail_with is not None:
            raise self.fail_with

    async def list_values(self, spreadsheet_id: str, selector: str) -> Rows:
        """Return the sheet with trailing empty cells and rows trimmed."""
        await self._enter("list_values")
        rows = [_trim_row(list(row)) for row in self._grid(selector)]
        while rows and not rows[-1]:
            rows.pop()
        return rows

    async def write_range(self, spreadsheet_id: str, a1_range: str, rows: Rows) -> dict[str, Any]:
        """Overwrite rows starting at a column-A cell such as Orders!A3."""
        await self._enter("write_range")
        sheet, cell = a1_range.rsplit("!", 1)
        grid = self._grid(sheet)
        start = int(cell.lstrip("A")) - 1
        while len(grid) < start + len(rows):
            grid.append([])
        for offset, row in enumerate(rows):
            grid[start + offset] = list(row)
        self.writes.append((a1_range, [list(row) for row in rows]))
        return {"updatedRange": a1_range, "updatedRows": len(rows)}

    async def append_rows(self, spreadsheet_id: str, sheet_name: str, rows: Rows) -> dict[str, Any]:
        """Append rows after the last populated row."""
        await self._enter("append_rows")
        grid = self._grid(sheet_name)
        while grid and not any(grid[-1]):
            grid.pop()
        grid.extend(list(row) for row in rows)
        self.appends.append((sheet_name, [list(row) for row in rows]))
        return {"updates": {"updatedRows": len(rows)}}

    async def close(self) -> None:
        self.closed = True


class FakeCredentials:
    """Fake google-auth credentials counting token refreshes."""

    def __init__(self, valid: bool = True, token: str = "fake-token", fail_with: Exception | None = None) -> None:
        self.token: str | None = token if valid else None
        self._valid = valid
        self._fail_with = fail_with
        self._next_token = token
        self.refresh_count = 0

    @property
    def valid(self) -> bool:
        return self._valid

    def refresh(self, _request: Any) -> None:
        self.refresh_count += 1
        if self._fail_with is not None:
            raise self._fail_with
        self.token = self._next_token
        self._valid = True


def make_settings(**overrides: Any) -> Settings:
    """Settings isolated from the environment and any .env file."""
    values: dict[str, Any] = {
        "google_spreadsheet_id": SPREADSHEET_ID,
        "secret_access_token": ACCESS_TOKEN,
        "rate_limit_enabled": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def booking_sheets() -> dict[str, list[list[str]]]:
    """A spreadsheet with schedule, v2 orders and v1 services."""
    return {
        "Schedule": [
            ["date", "10:00", "12:00", "14:00"],
            ["2025-06-01", "booked", "", "booked"],
            ["2025-06-02", "", "", ""],
        ],
        "Orders": [
            ["Do not edit this sheet by hand"],
            ["sessionId", "name", "phone", "services", "slot", "details", "price", "status", "createdAt"],
            [
                "sess-1",
                "Alice",
                "+100",
                '[{"name":"Party","price":"10,50"}]',
                "2025-06-01 12:00",
                "",
                "10.50",
                "pending",
                "2025-05-01T10:00:00.000Z",
            ],
            ["sess-2", "Bob", "+200", "not json", "", "", "0.00", "paid", ""],
        ],
        "Services": [
            ["name", "price", "description"],
            ["Party", "10,50", "Kids party"],
            ["", "99", "orphan row"],
            ["Cake", "5", ""],
        ],
    }
