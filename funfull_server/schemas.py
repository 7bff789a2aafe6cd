"""Request models for the order endpoints.

Each order sheet version gets explicit create/patch models enumerating the
fields a caller may set. Unknown request fields are ignored, and the
repository later drops anything the sheet header does not declare.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ServiceItem(BaseModel):
    """A booked service, optionally with nested related services."""

    model_config = ConfigDict(extra="allow")

    name: str | None = None
    price: str | int | float | None = None
    relatedServices: list[ServiceItem] | None = None  # noqa: N815


ServiceItem.model_rebuild()


class OrderCreateV2(BaseModel):
    """New order for the v2 sheet. Price, status and createdAt are derived."""

    sessionId: str = Field(min_length=1)  # noqa: N815
    name: str | None = None
    phone: str | None = None
    services: list[ServiceItem] = Field(default_factory=list)
    slot: str | None = None
    details: str | None = None


class OrderPatchV2(BaseModel):
    """Fields of a v2 order that may be changed. The session ID is the key."""

    name: str | None = None
    phone: str | None = None
    services: list[ServiceItem] | None = None
    slot: str | None = None
    details: str | None = None
    price: str | int | float | None = None
    status: str | None = None


class OrderFieldsV1(BaseModel):
    """v1 sheet columns, addressed by their header names."""

    model_config = ConfigDict(populate_by_name=True)

    date: str | None = Field(default=None, alias="Date")
    name: str | None = Field(default=None, alias="Name")
    phone: str | None = Field(default=None, alias="Phone")
    price: str | int | float | None = Field(default=None, alias="Price")
    status: str | None = Field(default=None, alias="Status")
    details: str | None = Field(default=None, alias="Order Details")


class OrderCreateV1(OrderFieldsV1):
    """New order for the v1 sheet, stored as given."""

    session_id: str = Field(alias="Session Id", min_length=1)


class OrderPatchV1(OrderFieldsV1):
    """Fields of a v1 order that may be changed."""


def patch_fields(patch: BaseModel) -> dict[str, Any]:
    """Fields explicitly set on a patch, keyed by sheet column name."""
    return patch.model_dump(by_alias=True, exclude_unset=True, exclude_none=True, mode="json")


def create_fields(order: BaseModel) -> dict[str, Any]:
    """All fields of a create request, keyed by sheet column name."""
    return order.model_dump(by_alias=True, exclude_none=True, mode="json")


@dataclass(frozen=True)
class OrderColumns:
    """Sheet column names of the order fields handlers need by meaning."""

    session_id: str
    name: str
    phone: str
    price: str
    status: str
    details: str
    slot: str | None = None
    services: str | None = None


ORDER_COLUMNS = {
    "v1": OrderColumns(
        session_id="Session Id",
        name="Name",
        phone="Phone",
        price="Price",
        status="Status",
        details="Order Details",
    ),
    "v2": OrderColumns(
        session_id="sessionId",
        name="name",
        phone="phone",
        price="price",
        status="status",
        details="details",
        slot="slot",
        services="services",
    ),
}
