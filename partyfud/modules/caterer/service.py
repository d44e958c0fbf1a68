from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from partyfud.app.common.errors import abort_json
from partyfud.app.common.validation import is_blank, to_bool, to_cents, to_int, to_int_list
from partyfud.app.extensions import db
from partyfud.app.models import (
    Account,
    Category,
    CatererInfo,
    CuisineType,
    Dish,
    Occasion,
    Package,
    PackageCategorySelection,
    PackageItem,
    SubCategory,
)
from partyfud.modules.caterer.onboarding import OnboardingDraft
from partyfud.modules.packages.pricing import catalogue_price, price_per_person, round_half_up

CUSTOMISATION_TYPES = {"FIXED": "FIXED", "CUSTOMISABLE": "CUSTOMISABLE", "CUSTOMIZABLE": "CUSTOMISABLE"}

DRAFT_SCALARS = (
    "business_name",
    "business_type",
    "business_description",
    "service_area",
    "region",
    "minimum_guests",
    "maximum_guests",
    "certifications",
    "delivery_only",
    "delivery_plus_setup",
    "full_service",
    "preparation_time",
    "staff",
    "servers",
    "unavailable_dates",
)


# --- onboarding ---

def caterer_info_for(account: Account) -> CatererInfo:
    info = account.caterer_info
    if info is None:
        info = CatererInfo(account_id=account.id, business_name=account.company_name, status="DRAFT")
        db.session.add(info)
        db.session.flush()
    return info


def draft_from_info(info: Optional[CatererInfo]) -> OnboardingDraft:
    if info is None:
        return OnboardingDraft()
    data = {key: getattr(info, key) for key in DRAFT_SCALARS}
    data["cuisine_types"] = [c.id for c in info.cuisine_types]
    return OnboardingDraft.from_dict(data)


def normalise_draft_changes(changes: dict) -> dict:
    """Coerce form-ish values (strings, "true") into the draft's types."""
    out: dict[str, Any] = {}
    for key, value in changes.items():
        if key in ("minimum_guests", "maximum_guests", "preparation_time", "staff", "servers"):
            out[key] = to_int(value, key)
        elif key in ("delivery_only", "delivery_plus_setup", "full_service"):
            out[key] = to_bool(value)
        elif key == "cuisine_types":
            out[key] = to_int_list(value, key)
        elif key in ("certifications", "unavailable_dates"):
            out[key] = list(value) if isinstance(value, (list, tuple)) else [v.strip() for v in str(value).split(",") if v.strip()]
        else:
            out[key] = value.strip() if isinstance(value, str) else value
    return out


def apply_draft(info: CatererInfo, draft: OnboardingDraft) -> None:
    for key in DRAFT_SCALARS:
        setattr(info, key, getattr(draft, key))
    ids = list(draft.cuisine_types or [])
    info.cuisine_types = CuisineType.query.filter(CuisineType.id.in_(ids)).all() if ids else []
    info.updated_at = datetime.utcnow()


# --- payload parsing ---

def json_field(value: Any, field: str, default=None):
    """Multipart forms send lists and objects as JSON strings."""
    if is_blank(value):
        return default
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except ValueError:
        abort_json(400, "validation_error", f"{field} must be valid JSON")


def _lookup(model, raw: Any, field: str, required: bool = True):
    ident = to_int(raw, field)
    if ident is None:
        if required:
            abort_json(400, "validation_error", f"{field} is required")
        return None
    obj = db.session.get(model, ident)
    if obj is None:
        abort_json(400, "validation_error", f"Unknown {field}")
    return obj


def apply_dish_payload(dish: Dish, data: dict, creating: bool) -> None:
    if creating or "name" in data:
        if is_blank(data.get("name")):
            abort_json(400, "validation_error", "Dish name is required")
        dish.name = data["name"].strip()
    if creating or "cuisine_type_id" in data:
        dish.cuisine_type = _lookup(CuisineType, data.get("cuisine_type_id"), "cuisine_type_id")
    if creating or "category_id" in data:
        dish.category = _lookup(Category, data.get("category_id"), "category_id")
    if "sub_category_id" in data:
        sub = _lookup(SubCategory, data.get("sub_category_id"), "sub_category_id", required=False)
        if sub is not None and sub.category_id != dish.category.id:
            abort_json(400, "validation_error", "Sub-category does not belong to the dish category")
        dish.sub_category = sub
    if creating or "price" in data:
        price = to_cents(data.get("price"), "price")
        if price is None:
            abort_json(400, "validation_error", "Dish price is required")
        dish.price_cents = price
    if "quantity_in_gm" in data:
        dish.quantity_in_gm = to_int(data.get("quantity_in_gm"), "quantity_in_gm")
    if "pieces" in data:
        dish.pieces = max(1, to_int(data.get("pieces"), "pieces", 1))
    if "currency" in data and not is_blank(data.get("currency")):
        dish.currency = data["currency"].strip().upper()[:3]
    if "is_active" in data:
        dish.is_active = to_bool(data.get("is_active"), True)
    if "image_url" in data:
        dish.image_url = str(data.get("image_url") or "").strip() or None
    dish.updated_at = datetime.utcnow()


def own_dishes(caterer_id: int, dish_ids: list[int]) -> dict[int, Dish]:
    dishes = Dish.query.filter(Dish.caterer_id == caterer_id, Dish.id.in_(dish_ids)).all() if dish_ids else []
    found = {d.id: d for d in dishes}
    missing = [i for i in dish_ids if i not in found]
    if missing:
        abort_json(400, "validation_error", "Unknown dish for this caterer", {"dish_ids": missing})
    return found


def _package_items(caterer_id: int, data: dict, package: Optional[Package]) -> Optional[list[PackageItem]]:
    """Items named by `package_item_ids` (draft items) or inline `items`; None when neither is sent."""
    raw_ids = data.get("package_item_ids")
    inline = json_field(data.get("items"), "items")
    if raw_ids is None and inline is None:
        return None

    items: list[PackageItem] = []
    item_ids = to_int_list(raw_ids, "package_item_ids")
    if item_ids:
        rows = PackageItem.query.filter(PackageItem.id.in_(item_ids), PackageItem.caterer_id == caterer_id).all()
        found = {i.id: i for i in rows}
        missing = [i for i in item_ids if i not in found]
        if missing:
            abort_json(400, "validation_error", "Unknown package item", {"package_item_ids": missing})
        for ident in item_ids:
            item = found[ident]
            if item.package_id is not None and (package is None or item.package_id != package.id):
                abort_json(409, "conflict", f"Package item {ident} already belongs to another package")
            items.append(item)

    if inline:
        if not isinstance(inline, list):
            abort_json(400, "validation_error", "items must be a list")
        dishes = own_dishes(caterer_id, [to_int(i.get("dish_id"), "dish_id") for i in inline])
        for raw in inline:
            dish = dishes[int(raw["dish_id"])]
            items.append(
                PackageItem(
                    caterer_id=caterer_id,
                    dish=dish,
                    dish_id=dish.id,
                    quantity=max(1, to_int(raw.get("quantity"), "quantity", 1)),
                    price_at_time_cents=dish.price_cents,
                    is_optional=to_bool(raw.get("is_optional")),
                )
            )
    return items


def _category_selections(data: dict) -> Optional[list[PackageCategorySelection]]:
    raw = json_field(data.get("category_selections"), "category_selections")
    if raw is None:
        return None
    if not isinstance(raw, list):
        abort_json(400, "validation_error", "category_selections must be a list")
    selections = []
    seen = set()
    for entry in raw:
        category = _lookup(Category, entry.get("category_id"), "category_id")
        if category.id in seen:
            abort_json(400, "validation_error", f"Duplicate category selection for {category.name}")
        seen.add(category.id)
        limit = to_int(entry.get("num_dishes_to_select"), "num_dishes_to_select")
        if limit is not None and limit < 1:
            abort_json(400, "validation_error", "num_dishes_to_select must be at least 1")
        selections.append(PackageCategorySelection(category_id=category.id, category=category, num_dishes_to_select=limit))
    return selections


def _occasions(data: dict) -> Optional[list[Occasion]]:
    raw = data.get("occasions", data.get("occassion"))
    if raw is None:
        return None
    ids = to_int_list(json_field(raw, "occasions", []), "occasions")
    occasions = Occasion.query.filter(Occasion.id.in_(ids)).all() if ids else []
    if len(occasions) != len(set(ids)):
        abort_json(400, "validation_error", "Unknown occasion")
    return occasions


def apply_package_payload(caterer: Account, package: Package, data: dict, creating: bool) -> None:
    if creating or "name" in data:
        if is_blank(data.get("name")):
            abort_json(400, "validation_error", "Package name is required")
        package.name = data["name"].strip()
    if "description" in data:
        package.description = str(data.get("description") or "").strip() or None
    if "additional_info" in data:
        package.additional_info = str(data.get("additional_info") or "").strip() or None

    if creating or "minimum_people" in data:
        info = caterer.caterer_info
        default_people = info.minimum_guests if info is not None else 1
        people = to_int(data.get("minimum_people"), "minimum_people", default_people)
        if people < 1:
            abort_json(400, "validation_error", "minimum_people must be at least 1")
        package.minimum_people = people

    if creating or "customisation_type" in data:
        raw_type = str(data.get("customisation_type") or "FIXED").upper()
        if raw_type not in CUSTOMISATION_TYPES:
            abort_json(400, "validation_error", "customisation_type must be FIXED or CUSTOMISABLE")
        package.customisation_type = CUSTOMISATION_TYPES[raw_type]

    for flag in ("is_active", "is_available"):
        if flag in data:
            setattr(package, flag, to_bool(data.get(flag), True))
    if "currency" in data and not is_blank(data.get("currency")):
        package.currency = data["currency"].strip().upper()[:3]
    if "cover_image_url" in data:
        package.cover_image_url = str(data.get("cover_image_url") or "").strip() or None

    items = _package_items(caterer.id, data, None if creating else package)
    if items is not None:
        replaced = [i for i in package.items if i not in items]
        package.items = items
        for item in items:
            item.caterer_id = caterer.id
        for item in replaced:
            db.session.delete(item)
    selections = _category_selections(data)
    if selections is not None:
        package.category_selections = selections
    occasions = _occasions(data)
    if occasions is not None:
        package.occasions = occasions

    total = to_cents(data.get("total_price"), "total_price")
    wants_derived = "is_custom_price" in data and not to_bool(data.get("is_custom_price"))
    if total is not None:
        package.total_price_cents = total
        package.is_custom_price = True
    elif creating or wants_derived or (not package.is_custom_price and (items is not None or "minimum_people" in data)):
        if not package.items:
            abort_json(400, "validation_error", "Add at least one dish or set a total price")
        package.total_price_cents = catalogue_price(package.items, package.minimum_people)
        package.is_custom_price = False

    per_person = to_cents(data.get("price_per_person"), "price_per_person")
    if per_person is not None:
        package.price_per_person_cents = per_person
    package.updated_at = datetime.utcnow()


# --- dashboard ---

def dashboard_stats(caterer: Account) -> dict:
    dishes = Dish.query.filter_by(caterer_id=caterer.id).order_by(Dish.created_at.desc(), Dish.id.desc()).all()
    packages = (
        Package.query.filter_by(caterer_id=caterer.id, created_by="CATERER")
        .order_by(Package.created_at.desc(), Package.id.desc())
        .all()
    )
    items = PackageItem.query.filter_by(caterer_id=caterer.id).all()

    active_packages = [p for p in packages if p.is_active]
    average = average_pp = 0
    if active_packages:
        average = round_half_up(sum(p.total_price_cents for p in active_packages) / len(active_packages))
        average_pp = round_half_up(sum(price_per_person(p) for p in active_packages) / len(active_packages))
    currency = packages[0].currency if packages else "AED"
    return {
        "dishes": {
            "total": len(dishes),
            "active": sum(1 for d in dishes if d.is_active),
            "inactive": sum(1 for d in dishes if not d.is_active),
        },
        "packages": {
            "total": len(packages),
            "active": len(active_packages),
            "available": sum(1 for p in active_packages if p.is_available),
            "inactive": len(packages) - len(active_packages),
        },
        "packageItems": {
            "total": len(items),
            "draft": sum(1 for i in items if i.package_id is None),
            "linked": sum(1 for i in items if i.package_id is not None),
        },
        "financial": {
            "averagePackagePriceCents": average,
            "averagePricePerPersonCents": average_pp,
            "totalRevenuePotentialCents": sum(p.total_price_cents for p in active_packages if p.is_available),
            "currency": currency,
        },
        "recent": {
            "dishes": [
                {
                    "id": d.id,
                    "name": d.name,
                    "image_url": d.image_url,
                    "price_cents": d.price_cents,
                    "currency": d.currency,
                    "is_active": d.is_active,
                    "created_at": d.created_at.isoformat() if d.created_at else None,
                }
                for d in dishes[:5]
            ],
            "packages": [
                {
                    "id": p.id,
                    "name": p.name,
                    "cover_image_url": p.cover_image_url,
                    "total_price_cents": p.total_price_cents,
                    "currency": p.currency,
                    "people_count": p.minimum_people,
                    "is_available": p.is_available,
                    "created_at": p.created_at.isoformat() if p.created_at else None,
                }
                for p in packages[:5]
            ],
        },
    }
