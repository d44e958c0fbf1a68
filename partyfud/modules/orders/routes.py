from __future__ import annotations

from flask import Blueprint, request

from partyfud.app.extensions import db
from partyfud.app.models import CartItem, Order
from partyfud.app.common.auth import current_account, role_required
from partyfud.app.common.errors import abort_json
from partyfud.app.common.json import ok
from partyfud.app.common.validation import get_json, to_int, to_int_list
from partyfud.modules.cart.service import clamp_guests, parse_event_date
from partyfud.modules.checkout.flow import PAYMENT_METHODS
from partyfud.modules.orders.service import ORDER_STATUSES, OrderLine, cancel_order, order_to_dict, place_order
from partyfud.modules.packages.pricing import quote_package
from partyfud.modules.packages.service import checked_selection, visible_package

bp = Blueprint("orders", __name__)


def _own_order(order_id: int) -> Order:
    order = Order.query.filter_by(id=order_id, account_id=current_account().id).first()
    if order is None:
        abort_json(404, "not_found", "Order not found")
    return order


@bp.post("/user/orders")
@role_required("USER")
def create_order():
    """POST /api/user/orders - Order the given cart items and/or explicit items."""
    account = current_account()
    data = get_json()
    payment_method = data.get("payment_method") or PAYMENT_METHODS[0]
    if payment_method not in PAYMENT_METHODS:
        abort_json(400, "validation_error", "Please select a payment method")

    lines: list[OrderLine] = []
    cart_ids = to_int_list(data.get("cart_item_ids"), "cart_item_ids")
    cart_items = []
    if cart_ids:
        cart_items = CartItem.query.filter(CartItem.account_id == account.id, CartItem.id.in_(cart_ids)).all()
        missing = sorted(set(cart_ids) - {i.id for i in cart_items})
        if missing:
            abort_json(404, "not_found", "Cart item not found", {"cart_item_ids": missing})
        for item in cart_items:
            guests = clamp_guests(item.guests, default=item.package.minimum_people or 1)
            price = item.price_at_time_cents
            if price is None:
                price = quote_package(item.package, guests, set(item.selected_dish_ids or []))
            lines.append(OrderLine(item.package, guests, price, item.location, item.date))

    raw_items = data.get("items") or []
    if not isinstance(raw_items, list):
        abort_json(400, "validation_error", "items must be a list")
    for raw in raw_items:
        if not isinstance(raw, dict) or "package_id" not in raw:
            abort_json(400, "validation_error", "Each item needs a package_id")
        package = visible_package(to_int(raw["package_id"], "package_id"))
        guests = clamp_guests(raw.get("guests"), default=package.minimum_people or 1)
        selected = set(checked_selection(package, raw.get("selected_dish_ids")))
        lines.append(
            OrderLine(
                package,
                guests,
                quote_package(package, guests, selected),
                str(raw.get("location") or "").strip() or None,
                parse_event_date(raw.get("date")),
            )
        )

    order = place_order(account, lines, details=data, payment_method=payment_method)
    for item in cart_items:
        db.session.delete(item)
    db.session.commit()
    return ok(order_to_dict(order), 201, message="Order placed")


@bp.get("/user/orders")
@role_required("USER")
def list_orders():
    q = Order.query.filter_by(account_id=current_account().id)
    status = (request.args.get("status") or "").upper()
    if status:
        if status not in ORDER_STATUSES:
            abort_json(400, "validation_error", f"status must be one of {', '.join(ORDER_STATUSES)}")
        q = q.filter(Order.status == status)
    orders = q.order_by(Order.created_at.desc(), Order.id.desc()).all()
    return ok([order_to_dict(o) for o in orders], count=len(orders))


@bp.get("/user/orders/<int:order_id>")
@role_required("USER")
def get_order(order_id: int):
    return ok(order_to_dict(_own_order(order_id)))


@bp.put("/user/orders/<int:order_id>")
@role_required("USER")
def update_order(order_id: int):
    """Customers may only cancel, and only while the order is pending."""
    order = _own_order(order_id)
    data = get_json()
    status = str(data.get("status") or "").upper()
    if status != "CANCELLED":
        abort_json(400, "validation_error", "Orders can only be updated to CANCELLED")
    cancel_order(order)
    db.session.commit()
    return ok(order_to_dict(order))


@bp.delete("/user/orders/<int:order_id>")
@role_required("USER")
def delete_order(order_id: int):
    order = cancel_order(_own_order(order_id))
    db.session.commit()
    return ok(order_to_dict(order), message="Order cancelled")
