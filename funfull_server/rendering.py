"""HTML pages served to customers and for the status check.

Every value taken from the sheet is HTML-escaped before rendering.
"""

from __future__ import annotations

import html
import urllib.parse
from collections.abc import Mapping
from typing import Any

from funfull_server.schemas import OrderColumns

_PAYMENT_STYLE = """
      body { font-family: system-ui, sans-serif; background: #f5f7fa; margin: 0; color: #222; }
      .order-block {
        background: #fff;
        border-radius: 14px;
        padding: 28px 20px 20px;
        box-shadow: 0 2px 16px #0002;
        max-width: 420px;
        margin: 4vw auto;
        min-height: 80vh;
      }
      h1 { font-size: 1.25em; font-weight: 700; margin-top: 0; margin-bottom: 18px; }
      .field { margin-bottom: 10px; }
      label { color: #555; font-weight: 600; min-width: 110px; display: inline-block; }
      .val { color: #1a2232; margin-left: 2px; }
      .services { margin: 15px 0 12px 0; padding-left: 0; }
      .services li { font-size: 1em; margin-bottom: 8px; font-weight: 500; }
      .services ul { margin-top: 2px; margin-bottom: 2px; padding-left: 19px; }
      .pay-btn {
        width: 100%;
        padding: 14px 0;
        background: linear-gradient(90deg, #1a7cff, #51bbfe);
        color: #fff; border: none; border-radius: 8px;
        font-size: 1.1em; cursor: pointer; margin-top: 22px; font-weight: 600;
      }
      .pay-btn:hover { background: #155bc1; }
      .footnote { margin-top: 18px; color: #888; font-size: 0.97em; text-align: center; }
      @media (max-width: 560px) {
        .order-block { max-width: 97vw; min-height: auto; padding: 18px 2vw 12px 2vw; }
      }
"""


def _text(value: Any) -> str:
    return html.escape("" if value is None else str(value))


def render_services(services: Any) -> str:
    """Render booked services and their related services as nested lists."""
    if not isinstance(services, list) or not services:
        return '<div style="color:#aaa">No services</div>'

    items = []
    for service in services:
        if not isinstance(service, Mapping):
            continue
        related = service.get("relatedServices")
        nested = ""
        if isinstance(related, list) and related:
            nested_items = "".join(
                f"<li>{_text(rel.get('name'))} &mdash; ${_text(rel.get('price'))}</li>"
                for rel in related
                if isinstance(rel, Mapping)
            )
            nested = f"<ul>{nested_items}</ul>"
        items.append(
            f"<li><strong>{_text(service.get('name'))}</strong> &mdash; "
            f"${_text(service.get('price'))}{nested}</li>"
        )
    return f'<ul class="services">{"".join(items)}</ul>'


def payment_page(order: Mapping[str, Any], columns: OrderColumns, deposit_amount: str) -> str:
    """Order summary with a deposit payment button."""
    session_id = str(order.get(columns.session_id, ""))
    action = f"/orders/{urllib.parse.quote(session_id, safe='')}/checkout"

    fields = [
        ("Order", order.get(columns.session_id)),
        ("Name", order.get(columns.name)),
        ("Phone", order.get(columns.phone)),
    ]
    if columns.slot:
        fields.append(("Slot", order.get(columns.slot)))
    fields += [
        ("Order Details", order.get(columns.details)),
        ("Full Price", f"${order.get(columns.price, '')}"),
        ("Status", order.get(columns.status)),
    ]
    rows = "\n".join(
        f'      <div class="field"><label>{label}:</label> '
        f'<span class="val">{_text(value)}</span></div>'
        for label, value in fields
    )
    services = ""
    if columns.services:
        services = (
            '      <div class="field"><label>Services:</label></div>\n'
            f"      {render_services(order.get(columns.services))}"
        )
    amount = _text(deposit_amount)

    return f"""<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="UTF-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <title>Order Payment</title>
    <style>{_PAYMENT_STYLE}</style>
  </head>
  <body>
    <div class="order-block">
      <h1>Pay the deposit for your order</h1>
{rows}
{services}
      <form method="POST" action="{_text(action)}">
        <input type="hidden" name="amount" value="{amount}" />
        <input type="hidden" name="purpose" value="Deposit" />
        <button type="submit" class="pay-btn">Pay ${amount} Deposit</button>
      </form>
      <div class="footnote">After payment, the deposit will be credited to your order.</div>
    </div>
  </body>
</html>
"""


def checkout_page(order: Mapping[str, Any], columns: OrderColumns) -> str:
    """Confirmation shown after the order was marked as paid."""
    return f"""<html>
  <body>
    <h1>Payment successful</h1>
    <p>Thank you for your order!</p>
    <p>Order ID: <b>{_text(order.get(columns.session_id))}</b></p>
    <p>Status: <b>{_text(order.get(columns.status))}</b></p>
  </body>
</html>
"""


def order_not_found_page() -> str:
    return """<html>
  <body>
    <h1>Order not found</h1>
    <p>We could not find your order. Please check the link or contact support.</p>
  </body>
</html>
"""


def server_error_page() -> str:
    return """<html>
  <body>
    <h1>Internal server error</h1>
    <p>Sorry, something went wrong. Please try again later.</p>
  </body>
</html>
"""


def status_page() -> str:
    """Landing page confirming the server is up."""
    return """<html>
  <head>
    <title>API status</title>
    <style>
      body { font-family: sans-serif; padding: 40px; background: #fafbfc; color: #21262c; }
      h1 { font-size: 2em; }
    </style>
  </head>
  <body>
    <h1>Hello, FunFull is working correctly.</h1>
    <p>If you see this page, the backend server is up and responding to requests.</p>
  </body>
</html>
"""
