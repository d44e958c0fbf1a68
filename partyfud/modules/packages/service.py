from __future__ import annotations

from datetime import datetime
from typing import Optional

from partyfud.app.common.auth import current_account
from partyfud.app.common.errors import abort_json
from partyfud.app.common.validation import to_int_list
from partyfud.app.extensions import db
from partyfud.app.models import Account, Dish, Package, PackageItem
from partyfud.modules.packages.customization import SelectionError, validate_selection
from partyfud.modules.packages.pricing import catalogue_price, price_per_person, round_half_up


def visible_package(package_id: int) -> Package:
    """A package the current visitor may see, or 404."""
    package = db.session.get(Package, package_id)
    if package is None or not package.is_active:
        abort_json(404, "not_found", "Package not found")

    viewer = current_account()
    if package.created_by == "USER":
        if viewer is None or viewer.id != package.owner_id:
            abort_json(404, "not_found", "Package not found")
        return package

    if viewer is not None and viewer.id == package.caterer_id:
        return package
    info = package.caterer.caterer_info if package.caterer is not None else None
    if info is None or info.status != "APPROVED" or not package.is_available:
        abort_json(404, "not_found", "Package not found")
    return package


def checked_selection(package: Optional[Package], raw) -> list[int]:
    """Selected dish ids for `package`, or a 400 when they break its selection rules."""
    selected = to_int_list(raw, "selected_dish_ids")
    if package is None:
        return []
    try:
        return sorted(validate_selection(package, selected))
    except SelectionError as err:
        abort_json(400, "validation_error", err.message, {"category": err.category})


def load_custom_dishes(dish_ids: list[int], quantities: Optional[dict] = None) -> list[tuple[Dish, int]]:
    """Dishes for a user-built package; all active and from one caterer."""
    if not dish_ids:
        abort_json(400, "validation_error", "Please select at least one dish")

    dishes = Dish.query.filter(Dish.id.in_(dish_ids)).all()
    by_id = {d.id: d for d in dishes}
    missing = [i for i in dish_ids if i not in by_id]
    if missing:
        abort_json(404, "not_found", "Dish not found", {"dish_ids": missing})

    inactive = [d.id for d in dishes if not d.is_active]
    if inactive:
        abort_json(409, "conflict", "Dish is not available", {"dish_ids": inactive})

    caterers = {d.caterer_id for d in dishes}
    if len(caterers) > 1:
        abort_json(400, "validation_error", "All dishes must come from the same caterer")

    quantities = quantities or {}
    picked = []
    for dish_id in dish_ids:
        qty = int(quantities.get(str(dish_id), quantities.get(dish_id, 1)) or 1)
        if qty < 1:
            abort_json(400, "validation_error", "Quantity must be at least 1")
        picked.append((by_id[dish_id], qty))
    return picked


def custom_package_total(picked: list[tuple[Dish, int]], people_count: int) -> int:
    return sum(d.price_cents * qty for d, qty in picked) * people_count


def create_custom_package(
    owner: Account,
    dish_ids: list[int],
    people_count: int,
    name: Optional[str] = None,
    quantities: Optional[dict] = None,
) -> Package:
    if people_count is None or people_count < 1:
        abort_json(400, "validation_error", "people_count must be at least 1")

    picked = load_custom_dishes(dish_ids, quantities)
    caterer_id = picked[0][0].caterer_id

    package = Package(
        caterer_id=caterer_id,
        owner_id=owner.id,
        name=(name or "").strip() or f"My Custom Package ({people_count} guests)",
        minimum_people=people_count,
        currency=picked[0][0].currency,
        customisation_type="FIXED",
        created_by="USER",
        is_custom_price=False,
    )
    for dish, qty in picked:
        package.items.append(PackageItem(dish_id=dish.id, dish=dish, quantity=qty, price_at_time_cents=dish.price_cents))
    package.total_price_cents = catalogue_price(package.items, people_count)

    db.session.add(package)
    db.session.flush()
    return package


def package_snapshot(package: Package) -> dict:
    """Enough of a package to render a session cart line without a lookup."""
    caterer = package.caterer
    info = caterer.caterer_info if caterer is not None else None
    return {
        "id": package.id,
        "name": package.name,
        "people_count": package.minimum_people or 1,
        "total_price_cents": package.total_price_cents,
        "price_per_person_cents": round_half_up(price_per_person(package)),
        "currency": package.currency,
        "cover_image_url": package.cover_image_url,
        "caterer": {
            "id": caterer.id if caterer is not None else None,
            "business_name": info.business_name if info else None,
            "name": caterer.name if caterer is not None else None,
        },
    }


def custom_snapshot(custom: dict) -> dict:
    """Snapshot for a package that only exists in the visitor's session."""
    people = custom.get("people_count") or 1
    return {
        "id": custom["id"],
        "name": custom.get("name") or f"My Custom Package ({people} guests)",
        "people_count": people,
        "total_price_cents": custom["total_price_cents"],
        "price_per_person_cents": round_half_up(custom["total_price_cents"] / people),
        "currency": custom.get("currency", "AED"),
        "cover_image_url": None,
        "caterer": custom.get("caterer") or {"id": None, "business_name": None, "name": None},
    }


def touch(obj) -> None:
    obj.updated_at = datetime.utcnow()
