from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Optional
from flask import request

from partyfud.app.common.errors import abort_json


def get_json() -> Dict[str, Any]:
    if not request.is_json:
        abort_json(400, "invalid_json", "Request must be application/json")
    data = request.get_json(silent=True)
    if data is None or not isinstance(data, dict):
        abort_json(400, "invalid_json", "Malformed JSON body")
    return data


def get_payload() -> Dict[str, Any]:
    """JSON body, or form fields for multipart submissions."""
    if request.is_json:
        return get_json()
    return request.form.to_dict()


def require_fields(data: Dict[str, Any], fields: Iterable[str]) -> None:
    missing = [f for f in fields if f not in data]
    if missing:
        abort_json(400, "validation_error", "Missing required fields", {"missing": missing})


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, float):
        return math.isnan(value)
    return False


def to_int(value: Any, field: str, default: Optional[int] = None) -> Optional[int]:
    if is_blank(value):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        abort_json(400, "validation_error", f"{field} must be an integer")


def to_bool(value: Any, default: bool = False) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def to_cents(value: Any, field: str) -> Optional[int]:
    """Parse a money amount in major units ("12.5") into integer cents."""
    if is_blank(value):
        return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        abort_json(400, "validation_error", f"{field} must be a number")
    if amount < 0:
        abort_json(400, "validation_error", f"{field} must be >= 0")
    return int((amount * 100).to_integral_value())


def to_int_list(value: Any, field: str) -> list[int]:
    """Accept a list, a JSON-ish list of ids, or a comma separated string."""
    if is_blank(value):
        return []
    if isinstance(value, str):
        value = [v for v in value.strip("[]").split(",") if v.strip()]
    if not isinstance(value, (list, tuple)):
        abort_json(400, "validation_error", f"{field} must be a list")
    try:
        return [int(str(v).strip().strip('"')) for v in value]
    except ValueError:
        abort_json(400, "validation_error", f"{field} must contain integer ids")
