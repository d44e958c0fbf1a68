from __future__ import annotations

import logging
import re
from datetime import datetime

from flask import Blueprint, request, session
from werkzeug.security import generate_password_hash, check_password_hash

from partyfud.app.extensions import db
from partyfud.app.models import Account, CatererInfo, CuisineType
from partyfud.app.common.auth import current_account, end_session, login_required, role_required, start_session
from partyfud.app.common.errors import abort_json, validation_failed
from partyfud.app.common.json import ok
from partyfud.app.common.validation import get_json, get_payload, is_blank, require_fields, to_bool, to_int, to_int_list
from partyfud.modules.cart.service import sync_session_cart
from partyfud.modules.catalog.serializers import caterer_info_to_dict
from partyfud.modules.caterer.documents import save_document

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__)

EMAIL_REGEX = r"^[^\s@]+@[^\s@]+\.[^\s@]{2,}$"
ACCOUNT_TYPES = ("USER", "CATERER")

CATERER_INFO_REQUIRED = (
    "business_name",
    "business_type",
    "business_description",
    "service_area",
    "minimum_guests",
    "maximum_guests",
    "preparation_time",
    "region",
)


def get_password_errors(password: str) -> list[str]:
    errors = []
    if len(password) < 8:
        errors.append("Password must be at least 8 characters")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must include one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must include one lowercase letter")
    if not re.search(r"[0-9]", password):
        errors.append("Password must include one number")
    if not re.search(r"[!@#$%^&*(),.?\":{}|<>]", password):
        errors.append("Password must include one special character")
    return errors


def account_to_dict(account: Account) -> dict:
    info = account.caterer_info
    return {
        "id": account.id,
        "email": account.email,
        "first_name": account.first_name,
        "last_name": account.last_name,
        "phone": account.phone,
        "type": account.type,
        "company_name": account.company_name,
        "image_url": account.image_url,
        "profile_completed": (info is not None and info.status != "DRAFT") if account.type == "CATERER" else True,
        "created_at": account.created_at.isoformat() if account.created_at else None,
        "updated_at": account.updated_at.isoformat() if account.updated_at else None,
    }


def _login(account: Account) -> dict:
    """Start the session and move any anonymous cart into the account."""
    start_session(account)
    synced = sync_session_cart(account, session) if account.type == "USER" else {"synced": 0, "skipped": 0}
    return {"user": account_to_dict(account), "cart": synced}


@bp.post("/auth/signup")
def signup():
    """POST /api/auth/signup - Create a customer or caterer account."""
    data = get_json()
    require_fields(data, ["email", "password", "first_name", "last_name"])

    email = str(data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    account_type = str(data.get("type") or "USER").upper()
    company_name = str(data.get("company_name") or "").strip()

    if account_type not in ACCOUNT_TYPES:
        abort_json(400, "validation_error", "type must be USER or CATERER")
    if is_blank(data.get("first_name")) or is_blank(data.get("last_name")):
        abort_json(400, "validation_error", "first_name and last_name are required")
    if not re.match(EMAIL_REGEX, email):
        abort_json(400, "validation_error", "Invalid email format")
    password_errors = get_password_errors(password)
    if password_errors:
        abort_json(400, "validation_error", " ".join(password_errors), {"password": password_errors})
    if account_type == "CATERER" and not company_name:
        abort_json(400, "validation_error", "Company name is required for caterers")
    if Account.query.filter_by(email=email).first():
        abort_json(409, "conflict", "Email already registered")

    account = Account(
        email=email,
        password_hash=generate_password_hash(password),
        first_name=data["first_name"].strip(),
        last_name=data["last_name"].strip(),
        phone=str(data.get("phone") or "").strip() or None,
        type=account_type,
        company_name=company_name or None,
    )
    db.session.add(account)
    db.session.commit()
    logger.info("Account %s created (%s)", account.id, account.type)

    return ok(_login(account), 201, message="Account created")


@bp.post("/auth/login")
def login():
    """POST /api/auth/login - Authenticate and start a session."""
    data = get_json()
    require_fields(data, ["email", "password"])

    email = str(data.get("email") or "").strip().lower()
    account = Account.query.filter_by(email=email).first()
    if not account or not check_password_hash(account.password_hash, data.get("password") or ""):
        abort_json(401, "unauthorized", "Invalid email or password")

    if account.type == "CATERER" and account.caterer_info is not None and account.caterer_info.status == "BLOCKED":
        abort_json(403, "forbidden", "This caterer account has been blocked")

    return ok(_login(account), message="Logged in")


@bp.post("/auth/logout")
def logout():
    """POST /api/auth/logout - Terminate session (anonymous cart goes with it)."""
    end_session()
    session.clear()
    return ok({"message": "logged_out"})


@bp.get("/auth/me")
@login_required
def me():
    account = current_account()
    if not account:
        end_session()
        abort_json(401, "unauthorized", "Invalid session")
    return ok({"user": account_to_dict(account)})


@bp.put("/auth/profile")
@login_required
def update_profile():
    account = current_account()
    if not account:
        abort_json(401, "unauthorized", "Invalid session")

    data = get_payload()
    for field in ("first_name", "last_name"):
        if field in data:
            if is_blank(data[field]):
                abort_json(400, "validation_error", f"{field} cannot be empty")
            setattr(account, field, data[field].strip())
    if "phone" in data:
        account.phone = str(data.get("phone") or "").strip() or None
    if "company_name" in data:
        company_name = str(data.get("company_name") or "").strip()
        if account.type == "CATERER" and not company_name:
            abort_json(400, "validation_error", "Company name is required for caterers")
        account.company_name = company_name or None

    upload = request.files.get("image")
    if upload is not None and upload.filename:
        account.image_url = save_document(upload, None, "image")
    elif "image_url" in data:
        account.image_url = str(data.get("image_url") or "").strip() or None

    account.updated_at = datetime.utcnow()
    db.session.commit()
    return ok({"user": account_to_dict(account)}, message="Profile updated")


# --- caterer business info (multipart form) ---

def _apply_caterer_info(info: CatererInfo, form: dict) -> None:
    missing = [f for f in CATERER_INFO_REQUIRED if is_blank(form.get(f))]
    if missing:
        validation_failed("Please fill in all required fields", {f: "This field is required" for f in missing})

    delivery_only = to_bool(form.get("delivery_only"))
    delivery_plus_setup = to_bool(form.get("delivery_plus_setup"))
    full_service = to_bool(form.get("full_service"))
    if not (delivery_only or delivery_plus_setup or full_service):
        abort_json(400, "validation_error", "Please select at least one delivery option")

    minimum = to_int(form.get("minimum_guests"), "minimum_guests")
    maximum = to_int(form.get("maximum_guests"), "maximum_guests")
    if minimum < 1:
        abort_json(400, "validation_error", "Minimum guests must be at least 1")
    if maximum < minimum:
        abort_json(400, "validation_error", "Maximum guests must be greater than minimum")

    info.business_name = form["business_name"].strip()
    info.business_type = form["business_type"].strip()
    info.business_description = form["business_description"].strip()
    info.service_area = form["service_area"].strip()
    info.region = form["region"].strip()
    info.minimum_guests = minimum
    info.maximum_guests = maximum
    info.preparation_time = to_int(form.get("preparation_time"), "preparation_time")
    info.delivery_only = delivery_only
    info.delivery_plus_setup = delivery_plus_setup
    info.full_service = full_service
    info.live_stations = to_bool(form.get("live_stations"), info.live_stations or False)
    info.staff = max(0, to_int(form.get("staff"), "staff", 0))
    info.servers = max(0, to_int(form.get("servers"), "servers", 0))

    raw_cuisines = form.get("cuisine_types") if request.is_json else ",".join(request.form.getlist("cuisine_types"))
    ids = to_int_list(raw_cuisines, "cuisine_types")
    if ids:
        info.cuisine_types = CuisineType.query.filter(CuisineType.id.in_(ids)).all()

    info.food_license = save_document(request.files.get("food_license"), form.get("food_license"), "food_license")
    info.registration = save_document(request.files.get("Registration"), form.get("Registration"), "Registration")
    info.updated_at = datetime.utcnow()


@bp.get("/auth/caterer-info")
@role_required("CATERER")
def get_caterer_info():
    account = current_account()
    if account.caterer_info is None:
        abort_json(404, "not_found", "Caterer info not found")
    return ok(caterer_info_to_dict(account.caterer_info))


@bp.post("/auth/caterer-info")
@role_required("CATERER")
def submit_caterer_info():
    account = current_account()
    info = account.caterer_info
    if info is None:
        info = CatererInfo(account_id=account.id)
        db.session.add(info)
    _apply_caterer_info(info, get_payload())
    if info.status in (None, "DRAFT", "REJECTED"):
        info.status = "PENDING"
    db.session.commit()
    logger.info("Caterer info submitted for account %s", account.id)
    return ok(caterer_info_to_dict(info), 201, message="Caterer information submitted")


@bp.put("/auth/caterer-info")
@role_required("CATERER")
def update_caterer_info():
    account = current_account()
    info = account.caterer_info
    if info is None:
        abort_json(404, "not_found", "Caterer info not found")
    _apply_caterer_info(info, get_payload())
    db.session.commit()
    return ok(caterer_info_to_dict(info), message="Caterer information updated")
