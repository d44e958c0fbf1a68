from __future__ import annotations

import logging

from flask import Blueprint, request

from partyfud.app.extensions import db
from partyfud.app.models import Account, CatererInfo, Order
from partyfud.app.common.auth import role_required
from partyfud.app.common.errors import abort_json
from partyfud.app.common.json import ok
from partyfud.app.common.validation import get_json
from partyfud.modules.catalog.serializers import caterer_info_to_dict
from partyfud.modules.packages.service import touch

logger = logging.getLogger(__name__)

bp = Blueprint("admin", __name__)

REVIEW_STATUSES = ("PENDING", "APPROVED", "REJECTED", "BLOCKED")


def _with_account(info: CatererInfo) -> dict:
    data = caterer_info_to_dict(info)
    account = info.account
    data["caterer"] = {
        "id": account.id,
        "name": account.name,
        "email": account.email,
        "phone": account.phone,
        "company_name": account.company_name,
    }
    return data


@bp.get("/admin")
@role_required("ADMIN")
def overview():
    counts = dict(
        db.session.query(CatererInfo.status, db.func.count(CatererInfo.id)).group_by(CatererInfo.status).all()
    )
    return ok(
        {
            "users": Account.query.filter_by(type="USER").count(),
            "caterers": {status: counts.get(status, 0) for status in ("DRAFT",) + REVIEW_STATUSES},
            "orders": Order.query.count(),
        }
    )


@bp.get("/admin/catererinfo")
@role_required("ADMIN")
def list_caterer_info():
    q = CatererInfo.query
    status = (request.args.get("status") or "").upper()
    if status:
        if status not in REVIEW_STATUSES:
            abort_json(400, "validation_error", f"status must be one of {', '.join(REVIEW_STATUSES)}")
        q = q.filter(CatererInfo.status == status)
    else:
        # drafts are still being written by the caterer
        q = q.filter(CatererInfo.status != "DRAFT")
    rows = q.order_by(CatererInfo.updated_at.desc(), CatererInfo.id.desc()).all()
    return ok([_with_account(i) for i in rows], count=len(rows))


@bp.get("/admin/catererinfo/<int:info_id>")
@role_required("ADMIN")
def get_caterer_info(info_id: int):
    info = db.session.get(CatererInfo, info_id)
    if info is None:
        abort_json(404, "not_found", "Caterer info not found")
    return ok(_with_account(info))


@bp.put("/admin/catererinfo/<int:info_id>")
@role_required("ADMIN")
def update_caterer_status(info_id: int):
    info = db.session.get(CatererInfo, info_id)
    if info is None:
        abort_json(404, "not_found", "Caterer info not found")
    status = str(get_json().get("status") or "").upper()
    if status not in REVIEW_STATUSES:
        abort_json(400, "validation_error", f"status must be one of {', '.join(REVIEW_STATUSES)}")
    previous = info.status
    info.status = status
    touch(info)
    db.session.commit()
    logger.info("Caterer info %s moved from %s to %s", info.id, previous, status)
    return ok(_with_account(info))
