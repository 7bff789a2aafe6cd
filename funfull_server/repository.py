"""Keyed record repository over a single sheet.

Implements find-by-key, list-all, append and update-by-key on top of the
row mapper and a SheetsTransport. Every operation re-reads the sheet: the
backend is the only source of truth and row positions can shift between
requests, so nothing is cached.

There is no locking. Two requests updating the same key both read the
old row and both write it back; the later write wins.
"""

from __future__ import annotations

from collections.abc import Awaitable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from loguru import logger

from funfull_server.layouts import Layout
from funfull_server.mapper import decode_row, encode_record, row_key, split_rows
from funfull_server.transport import Rows, SheetsTransport, TransportError
from funfull_server.utils import escape_sheet_title, row_start_a1

T = TypeVar("T")


class RepositoryError(Exception):
    """Base exception for repository errors."""


class StorageError(RepositoryError):
    """Raised when a backend call fails. Never retried."""

    def __init__(
        self, message: str, sheet: str, operation: str, cause: Exception | None = None
    ) -> None:
        super().__init__(message)
        self.sheet = sheet
        self.operation = operation
        self.cause = cause


class RecordNotFound(RepositoryError):
    """Raised when no data row carries the requested key.

    A normal outcome, distinct from StorageError.
    """

    def __init__(self, sheet: str, key: str) -> None:
        super().__init__(f"No record with key {key!r} in sheet {sheet!r}")
        self.sheet = sheet
        self.key = key


@dataclass(frozen=True)
class FoundRecord:
    """A record together with the header it was decoded against.

    Attributes:
        record: Decoded fields
        header: Header row used for decoding; required to encode it back
        index: Zero-based position among the data rows
    """

    record: dict[str, Any]
    header: tuple[str, ...]
    index: int


@dataclass(frozen=True)
class Table:
    """Header plus decoded records of a whole sheet."""

    header: tuple[str, ...]
    records: list[dict[str, Any]]


class SheetRepository:
    """Layout-driven record access for one sheet of one spreadsheet."""

    def __init__(
        self,
        transport: SheetsTransport,
        spreadsheet_id: str,
        sheet_name: str,
        layout: Layout,
    ) -> None:
        self._transport = transport
        self._spreadsheet_id = spreadsheet_id
        self._sheet_name = sheet_name
        self._layout = layout

    @property
    def sheet_name(self) -> str:
        return self._sheet_name

    @property
    def layout(self) -> Layout:
        return self._layout

    async def read_table(self) -> Table:
        """Read the header and every data row, in sheet order.

        Rows with a blank key are skipped for layouts that treat them as
        filler rather than records.
        """
        rows = await self._read_rows("read")
        split = split_rows(self._layout, rows)
        if split is None:
            return Table(header=(), records=[])

        header, data_rows = split
        records = [
            decode_row(self._layout, header, row)
            for row in data_rows
            if not (self._layout.skip_blank_keys and not row_key(self._layout, row).strip())
        ]
        return Table(header=tuple(header), records=records)

    async def list_all(self) -> list[dict[str, Any]]:
        """Return all records, or an empty list when there are no data rows."""
        table = await self.read_table()
        return table.records

    async def find_by_key(self, key: str) -> FoundRecord:
        """Find the first data row whose key cell equals `key` exactly.

        Duplicate keys are not detected; later rows are ignored.

        Raises:
            RecordNotFound: No row matches.
            StorageError: The backend call failed.
        """
        rows = await self._read_rows("find")
        split = split_rows(self._layout, rows)
        if split is None:
            raise RecordNotFound(self._sheet_name, key)

        header, data_rows = split
        for index, row in enumerate(data_rows):
            if row_key(self._layout, row) == key:
                return FoundRecord(
                    record=decode_row(self._layout, header, row),
                    header=tuple(header),
                    index=index,
                )
        raise RecordNotFound(self._sheet_name, key)

    async def append(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        """Append a row built from `fields` in current header order.

        Returns the record as a fresh read would decode it. The backend is
        not re-read to confirm the write.
        """
        header = await self._read_header("append")
        self._log_dropped_fields(fields, header, "append")
        row = encode_record(self._layout, header, fields)

        await self._call(
            "append",
            self._transport.append_rows(self._spreadsheet_id, self._sheet_name, [row]),
        )
        logger.info(
            "Appended row",
            extra={"sheet": self._sheet_name, "key": row_key(self._layout, row)},
        )
        return decode_row(self._layout, header, row)

    async def update_by_key(self, key: str, patch: Mapping[str, Any]) -> dict[str, Any]:
        """Merge `patch` over the record with `key` and write the row back.

        Patch fields win over stored ones; fields the header does not
        declare are dropped. The write targets the row's current position.

        Raises:
            RecordNotFound: No row matches.
            StorageError: The backend call failed; nothing was written.
        """
        found = await self.find_by_key(key)
        self._log_dropped_fields(patch, found.header, "update")

        merged = dict(found.record)
        merged.update({name: value for name, value in patch.items() if name in found.header})
        row = encode_record(self._layout, found.header, merged)

        address = row_start_a1(self._sheet_name, self._layout.sheet_row_number(found.index))
        await self._call(
            "update",
            self._transport.write_range(self._spreadsheet_id, address, [row]),
        )
        logger.info("Updated row", extra={"sheet": self._sheet_name, "key": key, "range": address})
        return decode_row(self._layout, found.header, row)

    async def _read_rows(self, operation: str) -> Rows:
        selector = escape_sheet_title(self._sheet_name)
        return await self._call(
            operation, self._transport.list_values(self._spreadsheet_id, selector)
        )

    async def _read_header(self, operation: str) -> list[str]:
        rows = await self._read_rows(operation)
        split = split_rows(self._layout, rows)
        if split is None:
            raise StorageError(
                f"Sheet {self._sheet_name!r} has no header row",
                sheet=self._sheet_name,
                operation=operation,
            )
        return split[0]

    async def _call(self, operation: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except TransportError as e:
            logger.error(
                "Sheet operation failed",
                extra={"sheet": self._sheet_name, "operation": operation, "error": str(e)},
            )
            raise StorageError(
                f"Failed to {operation} sheet {self._sheet_name!r}",
                sheet=self._sheet_name,
                operation=operation,
                cause=e,
            ) from e

    def _log_dropped_fields(
        self, fields: Mapping[str, Any], header: Sequence[str], operation: str
    ) -> None:
        dropped = sorted(set(fields) - set(header))
        if dropped:
            logger.debug(
                "Dropping fields not declared by the header",
                extra={"sheet": self._sheet_name, "operation": operation, "fields": dropped},
            )
