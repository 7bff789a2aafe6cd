"""Sheet layouts for each resource type.

A layout says how many leading rows are metadata, where the header is,
which column holds the natural key and how each column is encoded.
The header row itself is always read from the sheet; the layout never
hard-codes column order.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

_NON_NUMERIC = re.compile(r"[^0-9.,]")


class Codec(str, Enum):
    """Per-column encode/decode rule."""

    PLAIN = "plain"
    JSON = "json"
    DERIVED_NUMERIC = "derived-numeric"


def strip_numeric(value: str) -> str:
    """Keep only digits and decimal separators, plus a leading minus.

    Examples:
        "$ 1 200,50" -> "1200,50", "-5 EUR" -> "-5", "free" -> ""
    """
    text = value.strip()
    sign = "-" if text.startswith("-") else ""
    digits = _NON_NUMERIC.sub("", text)
    return f"{sign}{digits}" if digits else ""


# Builds a record straight from a raw data row, bypassing the header.
RowDeriver = Callable[[Sequence[str]], dict[str, Any]]


@dataclass(frozen=True)
class Layout:
    """Static schema of one resource sheet."""

    name: str
    metadata_rows: int = 0
    header_rows: int = 1
    key_column: int = 0
    codecs: Mapping[str, Codec] = field(default_factory=dict)
    skip_blank_keys: bool = False
    drop_empty_fields: bool = False
    derive: RowDeriver | None = None

    @property
    def leading_rows(self) -> int:
        """Rows above the first data row."""
        return self.metadata_rows + self.header_rows

    @property
    def header_index(self) -> int:
        """Zero-based grid index of the header row."""
        return self.metadata_rows

    def codec_for(self, field_name: str) -> Codec:
        return self.codecs.get(field_name, Codec.PLAIN)

    def sheet_row_number(self, data_index: int) -> int:
        """1-based sheet row of the zero-based data row `data_index`.

        Recomputed on every call: rows inserted above by other editors
        shift it.
        """
        return self.leading_rows + data_index + 1


def derive_service_row(row: Sequence[str]) -> dict[str, Any]:
    """Build a service record from a v2 services row.

    Column 0 is the name, column 1 the price. The remaining columns are
    read pairwise as related (name, price) services.
    """
    cells = [cell if isinstance(cell, str) else str(cell) for cell in row]
    name = cells[0].strip() if cells else ""
    price = strip_numeric(cells[1]) if len(cells) > 1 else ""

    related: list[dict[str, str]] = []
    rest = cells[2:]
    for offset in range(0, len(rest), 2):
        related_name = rest[offset].strip()
        if not related_name:
            continue
        related_price = strip_numeric(rest[offset + 1]) if offset + 1 < len(rest) else ""
        related.append({"name": related_name, "price": related_price})

    service: dict[str, Any] = {"name": name, "price": price}
    if related:
        service["relatedServices"] = related
    return service


SCHEDULE = Layout(name="schedule")

ORDERS_V1 = Layout(name="orders-v1")

ORDERS_V2 = Layout(
    name="orders-v2",
    metadata_rows=1,
    codecs={"services": Codec.JSON},
)

SERVICES_V1 = Layout(
    name="services-v1",
    skip_blank_keys=True,
    drop_empty_fields=True,
)

SERVICES_V2 = Layout(
    name="services-v2",
    metadata_rows=1,
    skip_blank_keys=True,
    derive=derive_service_row,
)

ORDER_LAYOUTS = {"v1": ORDERS_V1, "v2": ORDERS_V2}
SERVICE_LAYOUTS = {"v1": SERVICES_V1, "v2": SERVICES_V2}
