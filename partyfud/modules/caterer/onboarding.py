"""Caterer onboarding: four steps, each validated before the next."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Optional

STEPS = (
    (1, "Profile"),
    (2, "Menu Type"),
    (3, "Availability"),
    (4, "Preview"),
)
LAST_STEP = len(STEPS)

BUSINESS_TYPES = (
    "Restaurant",
    "Catering Company",
    "Home Kitchen",
    "Food Truck",
    "Cloud Kitchen",
    "Hotel",
    "Other",
)

CERTIFICATIONS = (
    "Food Hygiene Level 2",
    "Kosher Certified",
    "Organic Certified",
    "Halal Certified",
    "Allergen Training",
)

MAX_TRAVEL_DISTANCES = ("10km", "25km", "50km", "100km")

# hours of notice before an event
LEAD_TIMES = (12, 24, 48, 72, 168)

STATUSES = ("DRAFT", "PENDING", "APPROVED", "REJECTED", "BLOCKED")


@dataclass
class OnboardingDraft:
    business_name: str = ""
    business_type: str = ""
    business_description: str = ""
    service_area: str = ""
    region: str = ""
    minimum_guests: int = 50
    maximum_guests: int = 500
    cuisine_types: list = field(default_factory=list)
    certifications: list = field(default_factory=list)
    delivery_only: bool = True
    delivery_plus_setup: bool = True
    full_service: bool = False
    preparation_time: int = 24
    staff: int = 0
    servers: int = 0
    unavailable_dates: list = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "OnboardingDraft":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known and v is not None})

    def merged(self, changes: dict) -> "OnboardingDraft":
        return OnboardingDraft.from_dict({**asdict(self), **changes})

    def to_dict(self) -> dict:
        return asdict(self)


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def profile_errors(d: OnboardingDraft) -> dict[str, str]:
    errors: dict[str, str] = {}
    if not (d.business_name or "").strip():
        errors["business_name"] = "Business name is required"
    if not d.business_type:
        errors["business_type"] = "Please select a business type"
    elif d.business_type not in BUSINESS_TYPES:
        errors["business_type"] = "Unknown business type"
    if not (d.region or "").strip():
        errors["region"] = "Service area is required"
    if d.service_area and d.service_area not in MAX_TRAVEL_DISTANCES:
        errors["service_area"] = "Unknown travel distance"

    minimum = _as_int(d.minimum_guests)
    maximum = _as_int(d.maximum_guests)
    if minimum is None or minimum < 1:
        errors["minimum_guests"] = "Minimum guests must be at least 1"
    if maximum is None or (minimum is not None and maximum < minimum):
        errors["maximum_guests"] = "Maximum guests must be greater than minimum"
    if not d.cuisine_types:
        errors["cuisine_types"] = "Select at least one cuisine type"
    unknown = [c for c in (d.certifications or []) if c not in CERTIFICATIONS]
    if unknown:
        errors["certifications"] = f"Unknown certification: {unknown[0]}"
    return errors


def menu_type_errors(d: OnboardingDraft) -> dict[str, str]:
    if not (d.delivery_only or d.delivery_plus_setup or d.full_service):
        return {"delivery_options": "Please select at least one delivery option"}
    return {}


def availability_errors(d: OnboardingDraft) -> dict[str, str]:
    errors: dict[str, str] = {}
    if _as_int(d.preparation_time) not in LEAD_TIMES:
        errors["preparation_time"] = "Pick one of the available lead times"
    for key in ("staff", "servers"):
        value = _as_int(getattr(d, key))
        if value is None or value < 0:
            errors[key] = f"{key.capitalize()} must be 0 or more"
    return errors


STEP_VALIDATORS = {
    1: profile_errors,
    2: menu_type_errors,
    3: availability_errors,
}


def step_errors(step: int, draft: OnboardingDraft) -> dict[str, str]:
    if step == LAST_STEP:
        return all_errors(draft)
    validator = STEP_VALIDATORS.get(step)
    if validator is None:
        return {"step": f"Step must be between 1 and {LAST_STEP}"}
    return validator(draft)


def all_errors(draft: OnboardingDraft) -> dict[str, str]:
    errors: dict[str, str] = {}
    for validator in STEP_VALIDATORS.values():
        errors.update(validator(draft))
    return errors


def next_step(current: int, completed: int) -> int:
    """Step to resume at once `completed` has been saved."""
    return min(LAST_STEP, max(current, completed + 1))


def progress(step: int) -> int:
    return int(step / LAST_STEP * 100)
