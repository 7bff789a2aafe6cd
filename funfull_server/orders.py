"""Order endpoints.

Orders are rows of the orders sheet keyed by session ID. Endpoints:
- POST /orders                  - create (public, rate limited)
- GET  /orders                  - list (token)
- GET  /orders/{id}             - fetch one (token)
- PUT  /orders/{id}             - patch fields (token)
- GET  /orders/{id}/checkout    - payment page, marks the order "opened"
- POST /orders/{id}/checkout    - stub payment, marks the order "paid"

The router is mounted under both /orders and /order.

Payment is not integrated with a gateway: checkout is a status transition
done as a lookup followed by a separate update. Two concurrent checkouts of
the same order both succeed and the later write wins.
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse
from loguru import logger
from pydantic import BaseModel, ValidationError

from funfull_server.auth import require_access_token
from funfull_server.config import Settings, get_settings
from funfull_server.database import Database, get_database
from funfull_server.mapper import format_price, sum_prices
from funfull_server.rate_limit import limiter, public_write_limit
from funfull_server.rendering import (
    checkout_page,
    order_not_found_page,
    payment_page,
    server_error_page,
)
from funfull_server.repository import RecordNotFound, StorageError
from funfull_server.schemas import (
    OrderCreateV1,
    OrderCreateV2,
    OrderPatchV1,
    OrderPatchV2,
    create_fields,
    patch_fields,
)

router = APIRouter(tags=["orders"])

CREATE_MODELS: dict[str, type[BaseModel]] = {"v1": OrderCreateV1, "v2": OrderCreateV2}
PATCH_MODELS: dict[str, type[BaseModel]] = {"v1": OrderPatchV1, "v2": OrderPatchV2}

STATUS_PENDING = "pending"
STATUS_OPENED = "opened"
STATUS_PAID = "paid"


def _validate(model: type[BaseModel], payload: Any) -> BaseModel:
    """Validate a raw body against the model of the configured sheet version."""
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False)) from e


def _storage_failure(message: str, exc: StorageError) -> JSONResponse:
    logger.error(message, extra={"sheet": exc.sheet, "operation": exc.operation})
    return JSONResponse(status_code=500, content={"error": message})


def _order_not_found() -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "Order not found"})


def _utc_timestamp() -> str:
    """ISO 8601 UTC timestamp with milliseconds and a Z suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@router.post("", status_code=201, response_model=None)
@limiter.limit(public_write_limit)
async def create_order(
    request: Request,
    payload: dict[str, Any] = Body(...),
    db: Database = Depends(get_database),
) -> JSONResponse:
    """Append a new order.

    v2 sheets derive the price from the booked services and start the
    order as pending; v1 sheets store the given fields as they are.
    """
    order = _validate(CREATE_MODELS[db.orders_version], payload)
    fields = create_fields(order)

    if db.orders_version == "v2":
        fields["price"] = format_price(sum_prices(fields.get("services", [])))
        fields["status"] = STATUS_PENDING
        fields["createdAt"] = _utc_timestamp()

    try:
        record = await db.orders.append(fields)
    except StorageError as e:
        return _storage_failure("Failed to create order in Google Sheets", e)

    logger.info(
        "Order created",
        extra={"session_id": record.get(db.order_columns.session_id), "version": db.orders_version},
    )
    if db.orders_version == "v1":
        return JSONResponse(status_code=201, content={"status": "ok", "order": record})
    return JSONResponse(status_code=201, content=record)


@router.get("", dependencies=[Depends(require_access_token)], response_model=None)
async def get_all_orders(db: Database = Depends(get_database)) -> dict | JSONResponse:
    """List all orders in sheet order."""
    try:
        orders = await db.orders.list_all()
    except StorageError as e:
        return _storage_failure("Failed to load orders from Google Sheets", e)
    return {"orders": orders}


@router.get("/{order_id}", dependencies=[Depends(require_access_token)], response_model=None)
async def get_order(order_id: str, db: Database = Depends(get_database)) -> dict | JSONResponse:
    """Fetch one order by session ID."""
    try:
        found = await db.orders.find_by_key(order_id)
    except RecordNotFound:
        return _order_not_found()
    except StorageError as e:
        return _storage_failure("Failed to get the order in Google Sheets", e)
    return found.record


@router.put("/{order_id}", dependencies=[Depends(require_access_token)], response_model=None)
async def update_order(
    order_id: str,
    payload: dict[str, Any] = Body(...),
    db: Database = Depends(get_database),
) -> dict | JSONResponse:
    """Overwrite the given fields of an order, keeping the others."""
    patch = _validate(PATCH_MODELS[db.orders_version], payload)
    try:
        order = await db.orders.update_by_key(order_id, patch_fields(patch))
    except RecordNotFound:
        return _order_not_found()
    except StorageError as e:
        return _storage_failure("Failed to update order in Google Sheets", e)
    return {"status": "ok", "order": order}


@router.get("/{order_id}/checkout", response_class=HTMLResponse)
async def get_payment_form(
    order_id: str,
    db: Database = Depends(get_database),
    settings: Settings = Depends(get_settings),
) -> HTMLResponse:
    """Render the payment page and mark the order as opened."""
    columns = db.order_columns
    try:
        order = await db.orders.update_by_key(order_id, {columns.status: STATUS_OPENED})
    except RecordNotFound:
        return HTMLResponse(content=order_not_found_page(), status_code=404)
    except StorageError as e:
        logger.error("Opening payment page failed", extra={"sheet": e.sheet, "order_id": order_id})
        return HTMLResponse(content=server_error_page(), status_code=500)

    return HTMLResponse(content=payment_page(order, columns, settings.deposit_amount))


@router.post("/{order_id}/checkout", response_class=HTMLResponse)
@limiter.limit(public_write_limit)
async def checkout_order(
    request: Request,
    order_id: str,
    db: Database = Depends(get_database),
) -> HTMLResponse:
    """Mark the order as paid.

    Lookup and update are separate round-trips with no lock between them.
    """
    columns = db.order_columns
    try:
        # Separate lookup, unlocked: the row may change before the update.
        await db.orders.find_by_key(order_id)
        order = await db.orders.update_by_key(order_id, {columns.status: STATUS_PAID})
    except RecordNotFound:
        return HTMLResponse(content=order_not_found_page(), status_code=404)
    except StorageError as e:
        logger.error("Checkout failed", extra={"sheet": e.sheet, "order_id": order_id})
        return HTMLResponse(content=server_error_page(), status_code=500)

    logger.info("Order paid", extra={"order_id": order_id})
    return HTMLResponse(content=checkout_page(order, columns))
