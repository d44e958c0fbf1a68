from __future__ import annotations

from datetime import date

from flask import Blueprint

from partyfud.app.extensions import db
from partyfud.app.models import Account, Proposal
from partyfud.app.common.auth import current_account, role_required
from partyfud.app.common.errors import abort_json
from partyfud.app.common.json import ok
from partyfud.app.common.validation import get_json, is_blank, require_fields, to_cents, to_int
from partyfud.modules.catalog.serializers import proposal_to_dict

bp = Blueprint("proposals", __name__)


@bp.post("/user/proposals")
@role_required("USER")
def create_proposal():
    """POST /api/user/proposals - Ask a caterer for a tailored quote."""
    data = get_json()
    require_fields(data, ["caterer_id", "guest_count"])

    caterer = db.session.get(Account, to_int(data.get("caterer_id"), "caterer_id"))
    if caterer is None or caterer.type != "CATERER" or caterer.caterer_info is None \
            or caterer.caterer_info.status != "APPROVED":
        abort_json(404, "not_found", "Caterer not found")

    guest_count = to_int(data.get("guest_count"), "guest_count")
    if guest_count is None or guest_count <= 0:
        abort_json(400, "validation_error", "Guest count must be greater than 0")

    event_date = None
    if not is_blank(data.get("event_date")):
        try:
            event_date = date.fromisoformat(str(data["event_date"])[:10])
        except ValueError:
            abort_json(400, "validation_error", "event_date must be an ISO date (YYYY-MM-DD)")

    preferences = data.get("dietary_preferences") or []
    if not isinstance(preferences, list):
        abort_json(400, "validation_error", "dietary_preferences must be a list")

    proposal = Proposal(
        account_id=current_account().id,
        caterer_id=caterer.id,
        event_type=str(data.get("event_type") or "").strip() or None,
        location=str(data.get("location") or "").strip() or None,
        dietary_preferences=[str(p).strip() for p in preferences if str(p).strip()],
        budget_per_person_cents=to_cents(data.get("budget_per_person"), "budget_per_person"),
        event_date=event_date,
        vision=str(data.get("vision") or "").strip() or None,
        guest_count=guest_count,
    )
    db.session.add(proposal)
    db.session.commit()
    return ok(proposal_to_dict(proposal), 201, message="Proposal sent")


@bp.get("/user/proposals")
@role_required("USER")
def list_proposals():
    proposals = (
        Proposal.query.filter_by(account_id=current_account().id)
        .order_by(Proposal.created_at.desc(), Proposal.id.desc())
        .all()
    )
    return ok([proposal_to_dict(p) for p in proposals], count=len(proposals))


@bp.get("/user/proposals/<int:proposal_id>")
@role_required("USER")
def get_proposal(proposal_id: int):
    proposal = Proposal.query.filter_by(id=proposal_id, account_id=current_account().id).first()
    if proposal is None:
        abort_json(404, "not_found", "Proposal not found")
    return ok(proposal_to_dict(proposal))
