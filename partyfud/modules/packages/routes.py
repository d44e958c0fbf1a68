from __future__ import annotations

from flask import Blueprint, request, session

from partyfud.app.extensions import db
from partyfud.app.models import Package
from partyfud.app.common.auth import current_account
from partyfud.app.common.errors import abort_json
from partyfud.app.common.json import ok
from partyfud.app.common.validation import get_json, require_fields, to_int, to_int_list
from partyfud.modules.cart.service import clamp_guests
from partyfud.modules.cart.storage import SessionCart
from partyfud.modules.catalog.filters import PackageFilter, filter_packages, sort_packages_query
from partyfud.modules.catalog.serializers import caterer_ref, package_to_dict
from partyfud.modules.packages.customization import SelectionError, selection_summary, toggle_dish
from partyfud.modules.packages.pricing import format_price, people_count, quote_package
from partyfud.modules.packages.service import (
    create_custom_package,
    custom_package_total,
    load_custom_dishes,
    visible_package,
)

bp = Blueprint("packages", __name__)


@bp.post("/user/packages")
def create_user_package():
    """POST /api/user/packages - Build a package from individual dishes.

    Logged-in customers get a saved package; anonymous visitors get one kept
    in their session until they log in.
    """
    data = get_json()
    require_fields(data, ["dish_ids", "people_count"])
    dish_ids = to_int_list(data.get("dish_ids"), "dish_ids")
    people = to_int(data.get("people_count"), "people_count")
    if people is None or people < 1:
        abort_json(400, "validation_error", "people_count must be at least 1")
    quantities = data.get("quantities") or {}
    if not isinstance(quantities, dict):
        abort_json(400, "validation_error", "quantities must be an object of dish id to quantity")

    account = current_account()
    if account is not None:
        if account.type != "USER":
            abort_json(403, "forbidden", "Only customers can create custom packages")
        package = create_custom_package(account, dish_ids, people, name=data.get("name"), quantities=quantities)
        db.session.commit()
        return ok(package_to_dict(package), 201)

    picked = load_custom_dishes(dish_ids, quantities)
    first = picked[0][0]
    custom = SessionCart(session).add_custom_package(
        {
            "name": str(data.get("name") or "").strip() or f"My Custom Package ({people} guests)",
            "dish_ids": [d.id for d, _ in picked],
            "quantities": {str(d.id): qty for d, qty in picked},
            "people_count": people,
            "total_price_cents": custom_package_total(picked, people),
            "currency": first.currency,
            "caterer": caterer_ref(first.caterer),
            "items": [
                {"dish_id": d.id, "name": d.name, "price_cents": d.price_cents, "quantity": qty} for d, qty in picked
            ],
        }
    )
    return ok(custom, 201)


@bp.get("/user/packages/my-packages")
def my_packages():
    account = current_account()
    if account is None:
        return ok(SessionCart(session).get_custom_packages())

    flt = PackageFilter.from_args(request.args)
    q = Package.query.filter(
        Package.owner_id == account.id,
        Package.created_by == "USER",
        Package.is_active.is_(True),
    )
    if flt.search:
        q = q.filter(Package.name.ilike(f"%{flt.search.strip()}%"))
    packages = filter_packages(
        sort_packages_query(q, flt.sort_by).all(),
        min_guests=flt.min_guests,
        max_guests=flt.max_guests,
        min_price_cents=flt.min_price_cents,
        max_price_cents=flt.max_price_cents,
    )
    return ok([package_to_dict(p) for p in packages], count=len(packages))


@bp.get("/user/packages/<int:package_id>")
def get_package(package_id: int):
    package = visible_package(package_id)
    data = package_to_dict(package)
    data["selection"] = selection_summary(package, set())
    return ok(data)


@bp.post("/user/packages/<int:package_id>/quote")
def quote(package_id: int):
    """Price for a guest count and dish selection, as shown on the package page."""
    package = visible_package(package_id)
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    guests = clamp_guests(data.get("guests"), default=people_count(package))
    selected = set(to_int_list(data.get("selected_dish_ids"), "selected_dish_ids"))

    known = {item.dish_id for item in package.items}
    unknown = sorted(selected - known)
    if unknown:
        abort_json(400, "validation_error", f"Dish {unknown[0]} is not part of this package")

    price = quote_package(package, guests, selected)
    return ok(
        {
            "package_id": package.id,
            "guests": guests,
            "selected_dish_ids": sorted(selected),
            "price_cents": price,
            "formatted_price": format_price(price, package.currency),
            "selection": selection_summary(package, selected),
        }
    )


@bp.post("/user/packages/<int:package_id>/selection/toggle")
def toggle_selection(package_id: int):
    package = visible_package(package_id)
    data = get_json()
    require_fields(data, ["dish_id"])
    dish_id = to_int(data.get("dish_id"), "dish_id")
    selected = to_int_list(data.get("selected_dish_ids"), "selected_dish_ids")

    try:
        updated = toggle_dish(package, selected, dish_id)
    except SelectionError as err:
        abort_json(400, "validation_error", err.message, {"category": err.category})

    guests = clamp_guests(data.get("guests"), default=people_count(package))
    return ok(
        {
            "selected_dish_ids": sorted(updated),
            "price_cents": quote_package(package, guests, updated),
            "selection": selection_summary(package, updated),
        }
    )
