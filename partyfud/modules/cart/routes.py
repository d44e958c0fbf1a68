from __future__ import annotations

from decimal import Decimal

from flask import Blueprint, current_app, session

from partyfud.app.extensions import db
from partyfud.app.models import CartItem
from partyfud.app.common.auth import current_account
from partyfud.app.common.errors import abort_json
from partyfud.app.common.json import ok
from partyfud.app.common.validation import get_json, is_blank, require_fields, to_int
from partyfud.modules.cart.service import (
    cart_item_to_dict,
    clamp_guests,
    parse_event_date,
    server_cart_items,
    upsert_cart_item,
)
from partyfud.modules.cart.storage import SessionCart, is_custom_package_id, is_session_item_id
from partyfud.modules.packages.pricing import quote_package, round_half_up, totals_for
from partyfud.modules.packages.service import (
    checked_selection,
    custom_snapshot,
    package_snapshot,
    touch,
    visible_package,
)

bp = Blueprint("cart", __name__)

ADD_TO_CART_MESSAGES = {
    "event_type": "Please select an event type",
    "location": "Please select a location",
    "date": "Please select an event date",
    "guests": "Please enter number of guests",
}


def _customer():
    """The logged-in customer, or None for an anonymous visitor."""
    account = current_account()
    if account is not None and account.type != "USER":
        abort_json(403, "forbidden", "Only customers have a cart")
    return account


def custom_line_price(custom: dict, guests: int) -> int:
    people = custom.get("people_count") or 1
    return round_half_up(Decimal(custom["total_price_cents"]) * guests / people)


def _resolve_package(raw_id, store):
    """(package, snapshot, custom) for a database package id or a session custom package id."""
    if is_custom_package_id(raw_id):
        custom = SessionCart(store).get_custom_package(str(raw_id))
        if custom is None:
            abort_json(404, "not_found", "Package not found")
        return None, custom_snapshot(custom), custom
    package_id = to_int(raw_id, "package_id")
    package = visible_package(package_id)
    return package, package_snapshot(package), None


def _line_price(package, custom, guests: int, selected: set[int]) -> int:
    if custom is not None:
        return custom_line_price(custom, guests)
    return quote_package(package, guests, selected)


def _cart_payload(account) -> dict:
    if account is None:
        items = SessionCart(session).get_items()
    else:
        items = [cart_item_to_dict(i) for i in server_cart_items(account.id)]
    subtotal = sum(i.get("price_at_time_cents") or 0 for i in items)
    return {
        "items": items,
        "count": len(items),
        "subtotal_cents": subtotal,
        "currency": current_app.config["CURRENCY"],
    }


def _add(data: dict, account):
    require_fields(data, ["package_id"])
    package, snapshot, custom = _resolve_package(data["package_id"], session)
    guests = clamp_guests(data.get("guests"), default=snapshot["people_count"])
    selected = checked_selection(package, data.get("selected_dish_ids"))
    price = _line_price(package, custom, guests, set(selected))
    event_date = parse_event_date(data.get("date"))
    location = str(data.get("location") or "").strip() or None

    if account is None:
        item = SessionCart(session).add_item(
            snapshot["id"],
            snapshot,
            guests=guests,
            price_at_time_cents=price,
            location=location,
            date=event_date.isoformat() if event_date else None,
            selected_dish_ids=selected,
        )
        return item, 201

    if custom is not None:
        # custom packages only live in the session until login
        abort_json(409, "conflict", "Custom package has not been saved yet")
    item, created = upsert_cart_item(account.id, package, guests, price, location, event_date, selected)
    db.session.commit()
    return cart_item_to_dict(item), 201 if created else 200


@bp.get("/user/cart/items")
def get_cart():
    return ok(_cart_payload(_customer()))


@bp.post("/user/cart/items")
def add_cart_item():
    """POST /api/user/cart/items - Add a package (or refresh its existing line)."""
    item, status = _add(get_json(), _customer())
    return ok(item, status)


@bp.post("/user/cart/add")
def add_from_package_page():
    """Add to cart from the package page: event details are required and remembered for checkout."""
    account = _customer()
    data = get_json()

    for field, message in ADD_TO_CART_MESSAGES.items():
        value = data.get(field)
        if field == "guests":
            if to_int(value, "guests", 0) <= 0:
                abort_json(400, "validation_error", message, {"field": field})
        elif is_blank(value):
            abort_json(400, "validation_error", message, {"field": field})

    item, status = _add(data, account)
    SessionCart(session).save_event_details(
        event_type=data.get("event_type"),
        location=data.get("location"),
        area=data.get("location"),
        event_date=str(data.get("date"))[:10],
        guest_count=to_int(data.get("guests"), "guests"),
    )
    return ok(item, status)


@bp.put("/user/cart/items/<item_id>")
def update_cart_item(item_id: str):
    account = _customer()
    data = get_json()

    if account is None or is_session_item_id(item_id):
        cart = SessionCart(session)
        existing = next((i for i in cart.get_items() if i["id"] == item_id), None)
        if existing is None:
            abort_json(404, "not_found", "Cart item not found")
        package, _, custom = _resolve_package(existing["package_id"], session)
        guests = clamp_guests(data.get("guests"), default=existing.get("guests") or 1)
        selected = existing.get("selected_dish_ids") or []
        if "selected_dish_ids" in data:
            selected = checked_selection(package, data["selected_dish_ids"])
        event_date = parse_event_date(data.get("date"))
        updated = cart.update_item(
            item_id,
            guests=guests,
            price_at_time_cents=_line_price(package, custom, guests, set(selected)),
            location=str(data.get("location") or "").strip() or None,
            date=event_date.isoformat() if event_date else None,
            selected_dish_ids=selected,
        )
        return ok(updated)

    item = CartItem.query.filter_by(id=to_int(item_id, "item_id"), account_id=account.id).first()
    if item is None:
        abort_json(404, "not_found", "Cart item not found")

    guests = clamp_guests(data.get("guests"), default=item.guests or 1)
    selected = list(item.selected_dish_ids or [])
    if "selected_dish_ids" in data:
        selected = checked_selection(item.package, data["selected_dish_ids"])
    item.guests = guests
    item.selected_dish_ids = selected
    item.price_at_time_cents = quote_package(item.package, guests, set(selected))
    if "location" in data:
        item.location = str(data.get("location") or "").strip() or None
    if not is_blank(data.get("date")):
        item.date = parse_event_date(data["date"])
    touch(item)
    db.session.commit()
    return ok(cart_item_to_dict(item))


@bp.delete("/user/cart/items/<item_id>")
def remove_cart_item(item_id: str):
    account = _customer()
    if account is None or is_session_item_id(item_id):
        if not SessionCart(session).remove_item(item_id):
            abort_json(404, "not_found", "Cart item not found")
        return ok({"message": "removed"})

    item = CartItem.query.filter_by(id=to_int(item_id, "item_id"), account_id=account.id).first()
    if item is None:
        abort_json(404, "not_found", "Cart item not found")
    db.session.delete(item)
    db.session.commit()
    return ok({"message": "removed"})


@bp.delete("/user/cart/items")
def clear_cart():
    account = _customer()
    if account is None:
        SessionCart(session).clear()
    else:
        CartItem.query.filter_by(account_id=account.id).delete()
        db.session.commit()
    return ok({"message": "cleared"})


@bp.get("/user/cart/summary")
def cart_summary():
    payload = _cart_payload(_customer())
    totals = totals_for(
        (i.get("price_at_time_cents") or 0 for i in payload["items"]),
        delivery_fee_cents=current_app.config["DELIVERY_FEE_CENTS"] if payload["count"] else 0,
        service_fee_rate=current_app.config["SERVICE_FEE_RATE"],
    )
    data = totals.to_dict()
    data.update(count=payload["count"], currency=payload["currency"])
    return ok(data)


@bp.get("/user/cart/event-details")
def saved_event_details():
    return ok(SessionCart(session).get_event_details())
