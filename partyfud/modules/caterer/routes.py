from __future__ import annotations

import logging

from flask import Blueprint, request

from partyfud.app.extensions import db
from partyfud.app.models import CartItem, Dish, Order, OrderItem, Package, PackageItem, Proposal
from partyfud.app.common.auth import current_account, role_required
from partyfud.app.common.errors import abort_json, validation_failed
from partyfud.app.common.json import ok
from partyfud.app.common.validation import get_json, get_payload, require_fields, to_bool, to_int
from partyfud.modules.catalog.filters import DishFilter, group_dishes_by_category
from partyfud.modules.catalog.serializers import caterer_info_to_dict, dish_to_dict, package_to_dict, proposal_to_dict
from partyfud.modules.caterer import onboarding
from partyfud.modules.caterer.documents import save_document
from partyfud.modules.caterer.service import (
    apply_dish_payload,
    apply_draft,
    apply_package_payload,
    caterer_info_for,
    dashboard_stats,
    draft_from_info,
    normalise_draft_changes,
    own_dishes,
)
from partyfud.modules.orders.service import order_to_dict
from partyfud.modules.packages.service import touch

logger = logging.getLogger(__name__)

bp = Blueprint("caterer", __name__)

PROPOSAL_STATUSES = ("PENDING", "ACCEPTED", "REJECTED")
# caterer-side order transitions
ORDER_TRANSITIONS = {
    "PENDING": ("CONFIRMED", "CANCELLED"),
    "CONFIRMED": ("COMPLETED", "CANCELLED"),
}


def _onboarding_payload(info) -> dict:
    step = info.onboarding_step if info is not None else 1
    return {
        "step": step,
        "steps": [{"step": n, "name": name} for n, name in onboarding.STEPS],
        "progress": onboarding.progress(step),
        "status": info.status if info is not None else "DRAFT",
        "draft": draft_from_info(info).to_dict(),
        "options": {
            "business_types": list(onboarding.BUSINESS_TYPES),
            "certifications": list(onboarding.CERTIFICATIONS),
            "service_areas": list(onboarding.MAX_TRAVEL_DISTANCES),
            "lead_times": list(onboarding.LEAD_TIMES),
        },
    }


# --- onboarding ---

@bp.get("/caterer/onboarding/status")
@role_required("CATERER")
def onboarding_status():
    return ok(_onboarding_payload(current_account().caterer_info))


@bp.put("/caterer/onboarding/draft")
@role_required("CATERER")
def save_onboarding_draft():
    """Save one step: {"step": n, "data": {...}}. The step must validate before it is stored."""
    account = current_account()
    data = get_json()
    require_fields(data, ["step"])
    step = to_int(data.get("step"), "step")
    changes = data.get("data") or {}
    if not isinstance(changes, dict):
        abort_json(400, "validation_error", "data must be an object")

    info = caterer_info_for(account)
    if info.status == "BLOCKED":
        abort_json(403, "forbidden", "This caterer account has been blocked")

    draft = draft_from_info(info).merged(normalise_draft_changes(changes))
    errors = onboarding.step_errors(step, draft)
    if errors:
        validation_failed("Please fix the highlighted fields", errors)

    apply_draft(info, draft)
    info.onboarding_step = onboarding.next_step(info.onboarding_step or 1, step)
    db.session.commit()
    return ok(_onboarding_payload(info))


@bp.post("/caterer/onboarding/submit")
@role_required("CATERER")
def submit_onboarding():
    account = current_account()
    info = caterer_info_for(account)
    if info.status in ("PENDING", "APPROVED"):
        abort_json(409, "conflict", "Profile has already been submitted")
    if info.status == "BLOCKED":
        abort_json(403, "forbidden", "This caterer account has been blocked")

    errors = onboarding.all_errors(draft_from_info(info))
    if errors:
        validation_failed("Please complete all onboarding steps", errors)

    info.status = "PENDING"
    info.onboarding_step = onboarding.LAST_STEP
    touch(info)
    db.session.commit()
    logger.info("Caterer %s submitted onboarding for review", account.id)
    return ok(caterer_info_to_dict(info), message="Submitted for review")


# --- dishes ---

def _own_dish(dish_id: int) -> Dish:
    dish = Dish.query.filter_by(id=dish_id, caterer_id=current_account().id).first()
    if dish is None:
        abort_json(404, "not_found", "Dish not found")
    return dish


@bp.get("/caterer/dishes")
@role_required("CATERER")
def list_own_dishes():
    flt = DishFilter.from_args(request.args)
    flt.caterer_id = current_account().id
    if "is_active" not in request.args:
        flt.is_active = None
    dishes = flt.query().all()
    if flt.group_by_category:
        return ok({"categories": group_dishes_by_category(dishes, dish_to_dict)}, count=len(dishes))
    return ok([dish_to_dict(d) for d in dishes], count=len(dishes))


@bp.get("/caterer/dishes/<int:dish_id>")
@role_required("CATERER")
def get_own_dish(dish_id: int):
    return ok(dish_to_dict(_own_dish(dish_id)))


@bp.post("/caterer/dishes")
@role_required("CATERER")
def create_dish():
    data = get_payload()
    dish = Dish(caterer_id=current_account().id)
    apply_dish_payload(dish, data, creating=True)
    upload = request.files.get("image")
    if upload is not None and upload.filename:
        dish.image_url = save_document(upload, None, "image")
    db.session.add(dish)
    db.session.commit()
    return ok(dish_to_dict(dish), 201)


@bp.put("/caterer/dishes/<int:dish_id>")
@role_required("CATERER")
def update_dish(dish_id: int):
    dish = _own_dish(dish_id)
    apply_dish_payload(dish, get_payload(), creating=False)
    upload = request.files.get("image")
    if upload is not None and upload.filename:
        dish.image_url = save_document(upload, None, "image")
    db.session.commit()
    return ok(dish_to_dict(dish))


@bp.delete("/caterer/dishes/<int:dish_id>")
@role_required("CATERER")
def delete_dish(dish_id: int):
    """Dishes used by a package are deactivated rather than removed."""
    dish = _own_dish(dish_id)
    if PackageItem.query.filter_by(dish_id=dish.id).first() is not None:
        dish.is_active = False
        touch(dish)
        db.session.commit()
        return ok({"message": "deactivated"})
    db.session.delete(dish)
    db.session.commit()
    return ok({"message": "deleted"})


# --- package items (drafts linked to packages later) ---

def _item_to_dict(item: PackageItem) -> dict:
    return {
        "id": item.id,
        "package_id": item.package_id,
        "dish": dish_to_dict(item.dish),
        "quantity": item.quantity,
        "price_at_time_cents": item.price_at_time_cents,
        "is_optional": item.is_optional,
    }


@bp.get("/caterer/packages/items")
@role_required("CATERER")
def list_package_items():
    q = PackageItem.query.filter_by(caterer_id=current_account().id)
    package_id = to_int(request.args.get("package_id"), "package_id")
    if package_id is not None:
        q = q.filter(PackageItem.package_id == package_id)
    if to_bool(request.args.get("draft")):
        q = q.filter(PackageItem.package_id.is_(None))
    items = q.order_by(PackageItem.id.asc()).all()
    return ok([_item_to_dict(i) for i in items], count=len(items))


@bp.post("/caterer/packages/items")
@role_required("CATERER")
def create_package_item():
    account = current_account()
    data = get_json()
    require_fields(data, ["dish_id"])
    dish_id = to_int(data.get("dish_id"), "dish_id")
    dish = own_dishes(account.id, [dish_id])[dish_id]
    quantity = to_int(data.get("quantity"), "quantity", 1)
    if quantity < 1:
        abort_json(400, "validation_error", "Quantity must be at least 1")
    item = PackageItem(
        caterer_id=account.id,
        dish=dish,
        dish_id=dish.id,
        quantity=quantity,
        price_at_time_cents=dish.price_cents,
        is_optional=to_bool(data.get("is_optional")),
    )
    db.session.add(item)
    db.session.commit()
    return ok(_item_to_dict(item), 201)


@bp.delete("/caterer/packages/items/<int:item_id>")
@role_required("CATERER")
def delete_package_item(item_id: int):
    item = PackageItem.query.filter_by(id=item_id, caterer_id=current_account().id).first()
    if item is None:
        abort_json(404, "not_found", "Package item not found")
    if item.package_id is not None:
        abort_json(409, "conflict", "Package item is linked to a package")
    db.session.delete(item)
    db.session.commit()
    return ok({"message": "deleted"})


# --- packages ---

def _own_package(package_id: int) -> Package:
    package = Package.query.filter_by(id=package_id, caterer_id=current_account().id, created_by="CATERER").first()
    if package is None:
        abort_json(404, "not_found", "Package not found")
    return package


@bp.get("/caterer/packages")
@role_required("CATERER")
def list_own_packages():
    packages = (
        Package.query.filter_by(caterer_id=current_account().id, created_by="CATERER")
        .order_by(Package.created_at.desc(), Package.id.desc())
        .all()
    )
    return ok([package_to_dict(p) for p in packages], count=len(packages))


@bp.get("/caterer/packages/<int:package_id>")
@role_required("CATERER")
def get_own_package(package_id: int):
    return ok(package_to_dict(_own_package(package_id)))


@bp.post("/caterer/packages")
@role_required("CATERER")
def create_package():
    account = current_account()
    package = Package(caterer_id=account.id, created_by="CATERER")
    apply_package_payload(account, package, get_payload(), creating=True)
    upload = request.files.get("image")
    if upload is not None and upload.filename:
        package.cover_image_url = save_document(upload, None, "image")
    db.session.add(package)
    db.session.commit()
    return ok(package_to_dict(package), 201)


@bp.put("/caterer/packages/<int:package_id>")
@role_required("CATERER")
def update_package(package_id: int):
    account = current_account()
    package = _own_package(package_id)
    apply_package_payload(account, package, get_payload(), creating=False)
    upload = request.files.get("image")
    if upload is not None and upload.filename:
        package.cover_image_url = save_document(upload, None, "image")
    db.session.commit()
    return ok(package_to_dict(package))


@bp.delete("/caterer/packages/<int:package_id>")
@role_required("CATERER")
def delete_package(package_id: int):
    """Ordered packages are kept (orders point at them) and only deactivated."""
    package = _own_package(package_id)
    if OrderItem.query.filter_by(package_id=package.id).first() is not None:
        package.is_active = False
        package.is_available = False
        touch(package)
        db.session.commit()
        return ok({"message": "deactivated"})
    CartItem.query.filter_by(package_id=package.id).delete()
    db.session.delete(package)
    db.session.commit()
    return ok({"message": "deleted"})


@bp.get("/caterer/dashboard")
@role_required("CATERER")
def dashboard():
    return ok(dashboard_stats(current_account()))


# --- proposals ---

def _own_proposal(proposal_id: int) -> Proposal:
    proposal = Proposal.query.filter_by(id=proposal_id, caterer_id=current_account().id).first()
    if proposal is None:
        abort_json(404, "not_found", "Proposal not found")
    return proposal


@bp.get("/caterer/proposals")
@role_required("CATERER")
def list_proposals():
    proposals = (
        Proposal.query.filter_by(caterer_id=current_account().id)
        .order_by(Proposal.created_at.desc(), Proposal.id.desc())
        .all()
    )
    return ok([proposal_to_dict(p) for p in proposals], count=len(proposals))


@bp.get("/caterer/proposals/<int:proposal_id>")
@role_required("CATERER")
def get_proposal(proposal_id: int):
    return ok(proposal_to_dict(_own_proposal(proposal_id)))


@bp.put("/caterer/proposals/<int:proposal_id>/status")
@role_required("CATERER")
def update_proposal_status(proposal_id: int):
    proposal = _own_proposal(proposal_id)
    status = str(get_json().get("status") or "").upper()
    if status not in PROPOSAL_STATUSES:
        abort_json(400, "validation_error", f"status must be one of {', '.join(PROPOSAL_STATUSES)}")
    proposal.status = status
    touch(proposal)
    db.session.commit()
    return ok(proposal_to_dict(proposal))


# --- orders for this caterer's packages ---

def _orders_query(caterer_id: int):
    return Order.query.filter(Order.items.any(OrderItem.package.has(Package.caterer_id == caterer_id)))


@bp.get("/caterer/orders")
@role_required("CATERER")
def list_caterer_orders():
    orders = _orders_query(current_account().id).order_by(Order.created_at.desc(), Order.id.desc()).all()
    return ok([order_to_dict(o) for o in orders], count=len(orders))


@bp.get("/caterer/orders/<int:order_id>")
@role_required("CATERER")
def get_caterer_order(order_id: int):
    order = _orders_query(current_account().id).filter(Order.id == order_id).first()
    if order is None:
        abort_json(404, "not_found", "Order not found")
    return ok(order_to_dict(order))


@bp.put("/caterer/orders/<int:order_id>")
@role_required("CATERER")
def update_caterer_order(order_id: int):
    order = _orders_query(current_account().id).filter(Order.id == order_id).first()
    if order is None:
        abort_json(404, "not_found", "Order not found")
    status = str(get_json().get("status") or "").upper()
    if status not in ORDER_TRANSITIONS.get(order.status, ()):
        abort_json(409, "conflict", f"Cannot move order from {order.status} to {status or 'nothing'}")
    order.status = status
    touch(order)
    db.session.commit()
    logger.info("Order %s moved to %s by caterer %s", order.id, status, current_account().id)
    return ok(order_to_dict(order))
