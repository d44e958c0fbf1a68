from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Any, MutableMapping, Optional

from partyfud.app.common.errors import ApiError, abort_json
from partyfud.app.extensions import db
from partyfud.app.models import Account, CartItem, Package
from partyfud.modules.cart.storage import SessionCart, is_custom_package_id
from partyfud.modules.packages.pricing import price_per_person, round_half_up
from partyfud.modules.packages.service import create_custom_package, touch

logger = logging.getLogger(__name__)

# Events are delivered in the evening unless the checkout says otherwise.
DEFAULT_EVENT_HOUR = 18


def parse_event_date(raw: Any) -> Optional[datetime]:
    """Parse an ISO date (or datetime) and pin it to the default event hour."""
    if raw in (None, ""):
        return None
    if isinstance(raw, datetime):
        day = raw.date()
    elif isinstance(raw, date):
        day = raw
    else:
        try:
            day = date.fromisoformat(str(raw)[:10])
        except ValueError:
            abort_json(400, "validation_error", "date must be an ISO date (YYYY-MM-DD)")
    return datetime.combine(day, time(hour=DEFAULT_EVENT_HOUR))


def clamp_guests(value: Any, default: int = 1) -> int:
    """Guest counts never drop below one."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return max(1, default)
    return max(1, number)


def server_cart_items(account_id: int) -> list[CartItem]:
    return CartItem.query.filter_by(account_id=account_id).order_by(CartItem.id.asc()).all()


def upsert_cart_item(
    account_id: int,
    package: Package,
    guests: Optional[int],
    price_at_time_cents: Optional[int],
    location: Optional[str] = None,
    event_date: Optional[datetime] = None,
    selected_dish_ids: Optional[list[int]] = None,
) -> tuple[CartItem, bool]:
    """Create the cart line for a package, or refresh the one already there."""
    item = CartItem.query.filter_by(account_id=account_id, package_id=package.id).first()
    created = item is None
    if created:
        item = CartItem(account_id=account_id, package_id=package.id, package=package)
        db.session.add(item)

    item.guests = guests if guests is not None else item.guests
    item.price_at_time_cents = price_at_time_cents if price_at_time_cents is not None else item.price_at_time_cents
    if location is not None:
        item.location = location
    if event_date is not None:
        item.date = event_date
    if selected_dish_ids is not None:
        item.selected_dish_ids = list(selected_dish_ids)
    touch(item)
    return item, created


def cart_item_to_dict(item: CartItem) -> dict:
    p = item.package
    info = p.caterer.caterer_info if p.caterer is not None else None
    return {
        "id": item.id,
        "package": {
            "id": p.id,
            "name": p.name,
            "people_count": p.minimum_people or 1,
            "total_price_cents": p.total_price_cents,
            "price_per_person_cents": round_half_up(price_per_person(p)),
            "currency": p.currency,
            "cover_image_url": p.cover_image_url,
            "caterer": {
                "id": p.caterer_id,
                "business_name": info.business_name if info else None,
                "name": p.caterer.name if p.caterer is not None else None,
            },
        },
        "location": item.location,
        "guests": item.guests,
        "date": item.date.isoformat() if item.date else None,
        "price_at_time_cents": item.price_at_time_cents,
        "selected_dish_ids": list(item.selected_dish_ids or []),
        "created_at": item.created_at.isoformat() if item.created_at else None,
        "updated_at": item.updated_at.isoformat() if item.updated_at else None,
    }


def sync_session_cart(account: Account, store: MutableMapping[str, Any]) -> dict:
    """Move the visitor's session cart into the account cart.

    Custom packages are created first; lines pointing at a custom package
    that failed to persist are skipped. One bad line does not stop the rest.
    """
    cart = SessionCart(store)
    items = cart.get_items()
    custom_packages = cart.get_custom_packages()
    if not items and not custom_packages:
        return {"synced": 0, "skipped": 0}

    package_map: dict[str, int] = {}
    for custom in custom_packages:
        # create_custom_package validates before it touches the session
        try:
            package = create_custom_package(
                account,
                dish_ids=list(custom.get("dish_ids") or []),
                people_count=int(custom.get("people_count") or 1),
                name=custom.get("name"),
                quantities=custom.get("quantities"),
            )
            package_map[custom["id"]] = package.id
        except ApiError as err:
            logger.warning("Could not sync custom package %s: %s", custom.get("id"), err.message)
    cart.clear_custom_packages()

    synced = skipped = 0
    for item in items:
        package_id = item.get("package_id")
        if is_custom_package_id(package_id):
            if package_id not in package_map:
                logger.warning("Skipping cart item with unsynced custom package: %s", package_id)
                skipped += 1
                continue
            package_id = package_map[package_id]

        package = db.session.get(Package, int(package_id))
        if package is None or not package.is_active:
            logger.warning("Skipping cart item for missing package %s", package_id)
            skipped += 1
            continue

        try:
            event_date = parse_event_date(item.get("date"))
        except ApiError:
            event_date = None
        upsert_cart_item(
            account.id,
            package,
            guests=item.get("guests"),
            price_at_time_cents=item.get("price_at_time_cents"),
            location=item.get("location"),
            event_date=event_date,
            selected_dish_ids=item.get("selected_dish_ids"),
        )
        synced += 1

    db.session.commit()
    cart.clear()
    logger.info("Synced session cart for account %s: %s synced, %s skipped", account.id, synced, skipped)
    return {"synced": synced, "skipped": skipped}
