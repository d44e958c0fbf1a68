"""Three-step checkout kept in the session.

event-details -> review -> payment. Only the first transition is gated;
leaving the session (logout, expiry) discards the progress.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from datetime import date, timedelta
from typing import Any, MutableMapping, Optional

STEPS = ("event-details", "review", "payment")
CHECKOUT_KEY = "checkout"

PAYMENT_METHODS = ("pay_on_delivery",)
DEFAULT_GUEST_COUNT = 50


def _slots() -> tuple[str, ...]:
    slots = []
    for minutes in range(10 * 60, 21 * 60 + 1, 30):
        hour, minute = divmod(minutes, 60)
        suffix = "AM" if hour < 12 else "PM"
        shown = hour if hour <= 12 else hour - 12
        slots.append(f"{shown}:{minute:02d} {suffix}")
    return tuple(slots)


# 10:00 AM .. 9:00 PM every half hour
TIME_SLOTS = _slots()


class CheckoutStepError(ValueError):
    def __init__(self, message: str, field_errors: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.field_errors = field_errors or {}


def min_event_date(today: Optional[date] = None) -> date:
    return (today or date.today()) + timedelta(days=1)


@dataclass
class EventDetails:
    event_date: str = ""
    event_time: str = ""
    event_type: str = ""
    guest_count: int = DEFAULT_GUEST_COUNT
    venue_name: str = ""
    street_address: str = ""
    area: str = ""
    special_instructions: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "EventDetails":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def errors(self, today: Optional[date] = None) -> dict[str, str]:
        errors: dict[str, str] = {}
        if not self.event_date:
            errors["event_date"] = "Event date is required"
        else:
            try:
                chosen = date.fromisoformat(str(self.event_date)[:10])
            except ValueError:
                errors["event_date"] = "Event date must be YYYY-MM-DD"
            else:
                if chosen < min_event_date(today):
                    errors["event_date"] = "Event date must be at least one day ahead"
        if not self.event_time:
            errors["event_time"] = "Event time is required"
        elif str(self.event_time) not in TIME_SLOTS:
            errors["event_time"] = "Pick one of the available time slots"
        if not str(self.event_type).strip():
            errors["event_type"] = "Event type is required"
        if not isinstance(self.guest_count, int) or self.guest_count <= 0:
            errors["guest_count"] = "Guest count must be greater than 0"
        if not str(self.street_address).strip():
            errors["street_address"] = "Street address is required"
        if not str(self.area).strip():
            errors["area"] = "Area is required"
        return errors

    def is_valid(self, today: Optional[date] = None) -> bool:
        return not self.errors(today)


def parse_guest_input(raw: Any, current: int) -> int:
    """Typed guest count: invalid input keeps the current value, otherwise clamp at 1."""
    text = str(raw).strip() if raw is not None else ""
    if not text:
        return current
    try:
        number = int(float(text))
    except ValueError:
        return current
    return max(1, number)


class CheckoutFlow:
    def __init__(self, store: MutableMapping[str, Any]):
        self.store = store

    def _state(self) -> dict:
        state = self.store.get(CHECKOUT_KEY)
        if not isinstance(state, dict):
            state = {"step": STEPS[0], "details": asdict(EventDetails()), "payment_method": PAYMENT_METHODS[0]}
        return state

    def _save(self, state: dict) -> None:
        self.store[CHECKOUT_KEY] = state
        if hasattr(self.store, "modified"):
            self.store.modified = True

    @property
    def started(self) -> bool:
        return isinstance(self.store.get(CHECKOUT_KEY), dict)

    @property
    def step(self) -> str:
        return self._state()["step"]

    @property
    def details(self) -> EventDetails:
        return EventDetails.from_dict(self._state()["details"])

    @property
    def payment_method(self) -> str:
        return self._state()["payment_method"]

    def start(self, prefill: Optional[dict] = None) -> None:
        """Begin a checkout unless one is already in progress."""
        if self.started:
            return
        state = self._state()
        if prefill:
            details = EventDetails.from_dict({**state["details"], **{k: v for k, v in prefill.items() if v}})
            state["details"] = asdict(details)
        self._save(state)

    def update_details(self, data: dict, today: Optional[date] = None) -> EventDetails:
        """Merge edited details. Invalid edits past the first step send the flow back to it."""
        state = self._state()
        merged = dict(state["details"])
        for key, value in data.items():
            if key == "guest_count":
                merged[key] = parse_guest_input(value, merged.get("guest_count", DEFAULT_GUEST_COUNT))
            elif value is not None:
                merged[key] = str(value).strip()
        details = EventDetails.from_dict(merged)
        state["details"] = asdict(details)
        if state["step"] != STEPS[0] and details.errors(today):
            state["step"] = STEPS[0]
        self._save(state)
        return details

    def adjust_guests(self, delta: int) -> int:
        state = self._state()
        count = max(1, int(state["details"].get("guest_count", DEFAULT_GUEST_COUNT)) + delta)
        state["details"]["guest_count"] = count
        self._save(state)
        return count

    def set_payment_method(self, method: str) -> None:
        state = self._state()
        state["payment_method"] = method
        self._save(state)

    def advance(self, today: Optional[date] = None) -> str:
        state = self._state()
        step = state["step"]
        if step == "event-details":
            errors = EventDetails.from_dict(state["details"]).errors(today)
            if errors:
                raise CheckoutStepError("Please fill in all required fields", errors)
            state["step"] = "review"
        elif step == "review":
            state["step"] = "payment"
        else:
            raise CheckoutStepError("Already at the payment step")
        self._save(state)
        return state["step"]

    def back(self) -> str:
        state = self._state()
        index = STEPS.index(state["step"])
        state["step"] = STEPS[max(0, index - 1)]
        self._save(state)
        return state["step"]

    def ensure_ready_to_pay(self, today: Optional[date] = None) -> None:
        if self.step != "payment":
            raise CheckoutStepError("Complete the previous checkout steps first")
        errors = self.details.errors(today)
        if errors:
            raise CheckoutStepError("Please fill in all required fields", errors)
        if self.payment_method not in PAYMENT_METHODS:
            raise CheckoutStepError("Please select a payment method")

    def reset(self) -> None:
        self.store.pop(CHECKOUT_KEY, None)

    def to_dict(self) -> dict:
        state = self._state()
        return {
            "step": state["step"],
            "steps": list(STEPS),
            "details": state["details"],
            "payment_method": state["payment_method"],
            "time_slots": list(TIME_SLOTS),
        }
