from __future__ import annotations

from dataclasses import asdict

from flask import Blueprint, current_app, session

from partyfud.app.extensions import db
from partyfud.app.common.auth import current_account, role_required
from partyfud.app.common.errors import abort_json
from partyfud.app.common.json import ok
from partyfud.app.common.validation import get_json, to_int
from partyfud.modules.cart.service import cart_item_to_dict, server_cart_items
from partyfud.modules.cart.storage import SessionCart
from partyfud.modules.checkout.flow import PAYMENT_METHODS, CheckoutFlow, CheckoutStepError
from partyfud.modules.orders.service import OrderLine, order_to_dict, place_order
from partyfud.modules.packages.pricing import order_totals, price_per_person
from partyfud.modules.packages.service import touch

bp = Blueprint("checkout", __name__)


def _prefill(items) -> dict:
    """Saved event details first, then whatever the first cart line knows."""
    prefill = SessionCart(session).get_event_details()
    if items:
        first = items[0]
        prefill.setdefault("event_date", first.date.date().isoformat() if first.date else None)
        prefill.setdefault("area", first.location)
        prefill.setdefault("guest_count", first.guests)
    prefill.pop("location", None)
    return prefill


def _flow() -> tuple[CheckoutFlow, list]:
    items = server_cart_items(current_account().id)
    flow = CheckoutFlow(session)
    flow.start(_prefill(items))
    return flow, items


def _summary(flow: CheckoutFlow, items) -> dict:
    guests = flow.details.guest_count
    totals = order_totals(
        [price_per_person(i.package) for i in items],
        guests,
        delivery_fee_cents=current_app.config["DELIVERY_FEE_CENTS"],
        service_fee_rate=current_app.config["SERVICE_FEE_RATE"],
    )
    data = totals.to_dict()
    data["currency"] = current_app.config["CURRENCY"]
    data["guests"] = guests
    return data


def _state(flow: CheckoutFlow, items) -> dict:
    data = flow.to_dict()
    data["items"] = [cart_item_to_dict(i) for i in items]
    data["summary"] = _summary(flow, items)
    data["payment_methods"] = list(PAYMENT_METHODS)
    return data


def _step_error(err: CheckoutStepError):
    abort_json(400, "validation_error", err.message, {"fields": err.field_errors} if err.field_errors else None)


@bp.get("/user/checkout")
@role_required("USER")
def get_checkout():
    flow, items = _flow()
    return ok(_state(flow, items))


@bp.put("/user/checkout/details")
@role_required("USER")
def update_details():
    flow, items = _flow()
    flow.update_details(get_json())
    return ok(_state(flow, items))


@bp.post("/user/checkout/guests")
@role_required("USER")
def change_guests():
    """{"delta": +1|-1} nudges the count; {"guest_count": n} sets it."""
    flow, items = _flow()
    data = get_json()
    if "delta" in data:
        flow.adjust_guests(to_int(data.get("delta"), "delta", 0))
    else:
        flow.update_details({"guest_count": data.get("guest_count")})
    return ok(_state(flow, items))


@bp.post("/user/checkout/next")
@role_required("USER")
def next_step():
    flow, items = _flow()
    try:
        flow.advance()
    except CheckoutStepError as err:
        _step_error(err)
    return ok(_state(flow, items))


@bp.post("/user/checkout/back")
@role_required("USER")
def previous_step():
    flow, items = _flow()
    flow.back()
    return ok(_state(flow, items))


@bp.put("/user/checkout/payment-method")
@role_required("USER")
def choose_payment_method():
    flow, items = _flow()
    method = get_json().get("payment_method") or ""
    if method not in PAYMENT_METHODS:
        abort_json(400, "validation_error", "Please select a payment method")
    flow.set_payment_method(method)
    return ok(_state(flow, items))


@bp.post("/user/checkout/place-order")
@role_required("USER")
def place():
    account = current_account()
    flow, items = _flow()
    if not items:
        abort_json(400, "validation_error", "Your cart is empty")
    try:
        flow.ensure_ready_to_pay()
    except CheckoutStepError as err:
        _step_error(err)

    details = flow.details
    totals = _summary(flow, items)
    lines = []
    for item, price in zip(items, totals["item_prices_cents"]):
        item.guests = details.guest_count
        item.price_at_time_cents = price
        touch(item)
        lines.append(OrderLine(item.package, item.guests, price, item.location, item.date))

    order = place_order(account, lines, details=asdict(details), payment_method=flow.payment_method)
    for item in items:
        db.session.delete(item)
    db.session.commit()

    flow.reset()
    SessionCart(session).clear_event_details()
    return ok(order_to_dict(order), 201, message="Order placed")
