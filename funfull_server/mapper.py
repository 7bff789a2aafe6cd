"""Conversion between sheet rows and keyed records.

The header row is the single source of truth for field order: a record is
always encoded with the same header it was decoded against, so fields can
never drift into neighbouring columns.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, Overflow, localcontext
from typing import Any

from loguru import logger

from funfull_server.layouts import Codec, Layout, strip_numeric

# Leading numeric prefix, matching how prices were typed into the sheet
# ("10.50", "10.50 USD", "1e3").
_PRICE_PREFIX = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")

CENTS = Decimal("0.01")


class CellDecodeError(ValueError):
    """Raised when a JSON-coded cell does not hold valid JSON."""

    def __init__(self, raw: str, cause: Exception | None = None) -> None:
        super().__init__(f"Cell is not valid JSON: {raw[:40]!r}")
        self.raw = raw
        self.cause = cause


def parse_json_cell(raw: str) -> Any:
    """Parse a JSON-coded cell, raising CellDecodeError on malformed input."""
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise CellDecodeError(raw, e) from e


def decode_json_cell(raw: str) -> Any:
    """Parse a JSON-coded cell, recovering to an empty collection.

    A malformed cell must not fail the whole read.
    """
    try:
        return parse_json_cell(raw)
    except CellDecodeError as e:
        logger.debug("Recovered malformed JSON cell as empty list", extra={"error": str(e)})
        return []


def _decode_cell(codec: Codec, cell: Any) -> Any:
    if not isinstance(cell, str):
        cell = "" if cell is None else str(cell)
    if codec is Codec.JSON:
        # An empty JSON cell is an unset field, not malformed JSON.
        return decode_json_cell(cell) if cell else ""
    if codec is Codec.DERIVED_NUMERIC:
        return strip_numeric(cell)
    return cell


def _encode_cell(codec: Codec, value: Any) -> str:
    if value is None:
        return ""
    if codec is Codec.DERIVED_NUMERIC:
        return strip_numeric(str(value))
    if codec is Codec.JSON:
        return "" if value == "" else _dump_json(value)
    if isinstance(value, str):
        return value
    return _dump_json(value)


def _dump_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def split_rows(
    layout: Layout, rows: Sequence[Sequence[str]]
) -> tuple[list[str], list[Sequence[str]]] | None:
    """Separate the header and data rows, skipping metadata rows.

    Returns None when the sheet does not even have a header row.
    """
    if len(rows) <= layout.header_index:
        return None
    header = [str(name) for name in rows[layout.header_index]]
    return header, list(rows[layout.leading_rows :])


def row_key(layout: Layout, row: Sequence[str]) -> str:
    """Raw key cell of a data row, empty when the row is too short."""
    if len(row) <= layout.key_column:
        return ""
    cell = row[layout.key_column]
    return cell if isinstance(cell, str) else str(cell)


def decode_row(layout: Layout, header: Sequence[str], row: Sequence[str]) -> dict[str, Any]:
    """Decode a data row into a record keyed by header names.

    Short rows are padded logically: header fields without a cell decode to
    an empty string.
    """
    if layout.derive is not None:
        record = layout.derive(row)
    else:
        record = {}
        for index, name in enumerate(header):
            if index >= len(row):
                record[name] = ""
                continue
            record[name] = _decode_cell(layout.codec_for(name), row[index])

    if layout.drop_empty_fields:
        record = {name: value for name, value in record.items() if value not in ("", None)}
    return record


def encode_record(layout: Layout, header: Sequence[str], record: Mapping[str, Any]) -> list[str]:
    """Encode a record into a positional row ordered by `header`.

    Fields missing from the record become empty cells; fields the header
    does not declare are dropped.
    """
    if layout.derive is not None:
        raise ValueError(f"Layout {layout.name!r} is derived and cannot be written")
    return [_encode_cell(layout.codec_for(name), record.get(name)) for name in header]


def parse_price(value: Any) -> Decimal:
    """Parse a price that may use ',' as decimal separator.

    Only the leading numeric part counts. Anything unparsable, or too large
    for the decimal context, is zero.
    """
    if value is None or isinstance(value, bool):
        return Decimal(0)
    if isinstance(value, int | float):
        text = str(value)
    else:
        text = str(value) or "0"
    match = _PRICE_PREFIX.match(text.replace(",", ".", 1))
    if not match:
        return Decimal(0)
    try:
        price = +Decimal(match.group(0).strip())
    except (InvalidOperation, Overflow):
        return Decimal(0)
    return price if price.is_finite() else Decimal(0)


def sum_prices(items: Any) -> Decimal:
    """Sum item prices, recursing into nested relatedServices."""
    total = Decimal(0)
    if not isinstance(items, list):
        return total
    for item in items:
        if not isinstance(item, Mapping):
            continue
        total += parse_price(item.get("price"))
        related = item.get("relatedServices")
        if isinstance(related, list):
            total += sum_prices(related)
    return total


def format_price(amount: Decimal) -> str:
    """Render an amount with two decimals, rounding half up.

    Precision grows with the amount, so quantizing a large total never fails.
    """
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, amount.adjusted() + 3)
        return f"{amount.quantize(CENTS, rounding=ROUND_HALF_UP):f}"
