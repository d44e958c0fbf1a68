from __future__ import annotations

from flask import Blueprint, current_app, request
from sqlalchemy.orm import selectinload

from partyfud.app.extensions import db
from partyfud.app.models import Account, Category, CatererInfo, CuisineType, Dish, Occasion, Package, SubCategory
from partyfud.app.common.errors import abort_json
from partyfud.app.common.json import ok
from partyfud.app.common.validation import to_int
from partyfud.modules.catalog.filters import (
    CatererFilter,
    DishFilter,
    PackageFilter,
    group_dishes_by_category,
    packages_by_caterer,
    public_packages_query,
)
from partyfud.modules.catalog.serializers import (
    caterer_to_dict,
    dish_to_dict,
    named_to_dict,
    occasion_to_dict,
    package_to_dict,
)

bp = Blueprint("catalog", __name__)


def _approved_caterer(caterer_id: int) -> Account:
    caterer = db.session.get(Account, caterer_id)
    if (
        caterer is None
        or caterer.type != "CATERER"
        or caterer.caterer_info is None
        or caterer.caterer_info.status != "APPROVED"
    ):
        abort_json(404, "not_found", "Caterer not found")
    return caterer


def _page_args() -> tuple[int, int]:
    default_limit = current_app.config["DEFAULT_LIMIT"]
    max_limit = current_app.config["MAX_LIMIT"]
    page = max(1, to_int(request.args.get("page"), "page", 1))
    limit = min(max(1, to_int(request.args.get("limit"), "limit", default_limit)), max_limit)
    return page, limit


# --- Caterers ---

@bp.post("/user/caterers")
def list_caterers():
    """POST /api/user/caterers - Caterers matching the filter body (all optional)."""
    payload = request.get_json(silent=True) or {}
    flt = CatererFilter.from_payload(payload if isinstance(payload, dict) else {})

    caterers = flt.query().all()
    packages = packages_by_caterer([c.id for c in caterers])
    matched = [c for c in caterers if flt.matches(c, packages[c.id])]
    return ok([caterer_to_dict(c, packages[c.id]) for c in matched], count=len(matched))


@bp.get("/user/caterers/<int:caterer_id>")
def get_caterer(caterer_id: int):
    caterer = _approved_caterer(caterer_id)
    packages = packages_by_caterer([caterer.id])[caterer.id]
    return ok(caterer_to_dict(caterer, packages))


@bp.get("/user/caterers/<int:caterer_id>/dishes")
def caterer_dishes(caterer_id: int):
    caterer = _approved_caterer(caterer_id)
    dishes = (
        Dish.query.filter_by(caterer_id=caterer.id, is_active=True)
        .order_by(Dish.category_id.asc(), Dish.name.asc())
        .all()
    )
    return ok({"categories": group_dishes_by_category(dishes, dish_to_dict)}, count=len(dishes))


# --- Packages ---

@bp.get("/user/packages")
def list_packages():
    """GET /api/user/packages?caterer_id= - A caterer's public packages."""
    caterer_id = to_int(request.args.get("caterer_id"), "caterer_id")
    if caterer_id is None:
        abort_json(400, "validation_error", "caterer_id is required")
    packages = (
        public_packages_query()
        .filter(Package.caterer_id == caterer_id)
        .order_by(Package.created_at.desc(), Package.id.desc())
        .all()
    )
    return ok([package_to_dict(p) for p in packages], count=len(packages))


@bp.get("/user/packages/all")
def search_packages():
    """GET /api/user/packages/all - Package search across approved caterers."""
    flt = PackageFilter.from_args(request.args)
    q = flt.apply(public_packages_query()).options(
        selectinload(Package.occasions), selectinload(Package.items), selectinload(Package.category_selections)
    )
    packages = flt.in_memory(q.all())

    page, limit = _page_args()
    total = len(packages)
    start = (page - 1) * limit
    return ok(
        [package_to_dict(p) for p in packages[start:start + limit]],
        count=total,
        page=page,
        limit=limit,
    )


# --- Dishes ---

@bp.get("/user/dishes")
def list_dishes():
    flt = DishFilter.from_args(request.args)
    q = flt.query().join(CatererInfo, CatererInfo.account_id == Dish.caterer_id).filter(
        CatererInfo.status == "APPROVED"
    )
    dishes = q.all()
    if flt.group_by_category:
        return ok({"categories": group_dishes_by_category(dishes, dish_to_dict)}, count=len(dishes))
    return ok([dish_to_dict(d) for d in dishes], count=len(dishes))


@bp.get("/user/dishes/<int:dish_id>")
def get_dish(dish_id: int):
    dish = db.session.get(Dish, dish_id)
    if dish is None or not dish.is_active:
        abort_json(404, "not_found", "Dish not found")
    return ok(dish_to_dict(dish))


# --- Reference data ---

@bp.get("/user/occasions")
def list_occasions():
    occasions = Occasion.query.order_by(Occasion.name.asc()).all()
    return ok([occasion_to_dict(o) for o in occasions], count=len(occasions))


@bp.get("/user/metadata/cuisine-types")
def list_cuisine_types():
    rows = CuisineType.query.order_by(CuisineType.name.asc()).all()
    return ok([named_to_dict(r) for r in rows])


@bp.get("/user/metadata/categories")
def list_categories():
    rows = Category.query.order_by(Category.name.asc()).all()
    return ok([named_to_dict(r) for r in rows])


@bp.get("/user/metadata/subcategories")
def list_subcategories():
    q = SubCategory.query
    category_id = to_int(request.args.get("category_id"), "category_id")
    if category_id is not None:
        q = q.filter(SubCategory.category_id == category_id)
    rows = q.order_by(SubCategory.name.asc()).all()
    return ok([named_to_dict(r) for r in rows])
