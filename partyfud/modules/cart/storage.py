"""Anonymous cart kept in the visitor's session.

Logged-out visitors can build a cart; the items (and any custom packages
they assembled) live in the session until login, when they are synced to
the account cart and cleared.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, MutableMapping, Optional

CART_KEY = "cart_items"
CUSTOM_PACKAGES_KEY = "custom_packages"
EVENT_DETAILS_KEY = "event_details"

SESSION_ITEM_PREFIX = "session_"
CUSTOM_PACKAGE_PREFIX = "custom_"


def _now() -> str:
    return datetime.utcnow().isoformat()


def _new_id(prefix: str) -> str:
    return f"{prefix}{uuid.uuid4().hex[:12]}"


def is_session_item_id(item_id: str) -> bool:
    return str(item_id).startswith(SESSION_ITEM_PREFIX)


def is_custom_package_id(package_id: Any) -> bool:
    return str(package_id).startswith(CUSTOM_PACKAGE_PREFIX)


class SessionCart:
    def __init__(self, store: MutableMapping[str, Any]):
        self.store = store

    def _save(self, key: str, value) -> None:
        self.store[key] = value
        # Flask sessions only notice top-level assignment; nested edits need this.
        if hasattr(self.store, "modified"):
            self.store.modified = True

    # --- items ---

    def get_items(self) -> list[dict]:
        items = self.store.get(CART_KEY)
        return list(items) if isinstance(items, list) else []

    def find_by_package(self, package_id) -> Optional[dict]:
        return next((i for i in self.get_items() if str(i["package_id"]) == str(package_id)), None)

    def add_item(
        self,
        package_id,
        package: dict,
        guests: int,
        price_at_time_cents: int,
        location: Optional[str] = None,
        date: Optional[str] = None,
        selected_dish_ids: Optional[list[int]] = None,
    ) -> dict:
        """Add a package, or update the existing line for the same package."""
        items = self.get_items()
        for index, existing in enumerate(items):
            if str(existing["package_id"]) == str(package_id):
                updated = dict(existing)
                updated.update(
                    guests=guests,
                    price_at_time_cents=price_at_time_cents,
                    location=location if location is not None else existing.get("location"),
                    date=date if date is not None else existing.get("date"),
                    selected_dish_ids=selected_dish_ids if selected_dish_ids is not None
                    else existing.get("selected_dish_ids", []),
                    updated_at=_now(),
                )
                items[index] = updated
                self._save(CART_KEY, items)
                return updated

        now = _now()
        item = {
            "id": _new_id(SESSION_ITEM_PREFIX),
            "package_id": package_id,
            "package": package,
            "location": location,
            "guests": guests,
            "date": date,
            "price_at_time_cents": price_at_time_cents,
            "selected_dish_ids": list(selected_dish_ids or []),
            "created_at": now,
            "updated_at": now,
        }
        items.append(item)
        self._save(CART_KEY, items)
        return item

    def update_item(self, item_id: str, **changes) -> Optional[dict]:
        items = self.get_items()
        for index, existing in enumerate(items):
            if existing["id"] == item_id:
                updated = dict(existing)
                updated.update({k: v for k, v in changes.items() if v is not None})
                updated["updated_at"] = _now()
                items[index] = updated
                self._save(CART_KEY, items)
                return updated
        return None

    def update_guest_count(self, item_id: str, guests: int, price_at_time_cents: int) -> Optional[dict]:
        return self.update_item(item_id, guests=guests, price_at_time_cents=price_at_time_cents)

    def remove_item(self, item_id: str) -> bool:
        items = self.get_items()
        remaining = [i for i in items if i["id"] != item_id]
        self._save(CART_KEY, remaining)
        return len(remaining) != len(items)

    def clear(self) -> None:
        self.store.pop(CART_KEY, None)

    # --- custom packages ---

    def get_custom_packages(self) -> list[dict]:
        packages = self.store.get(CUSTOM_PACKAGES_KEY)
        return list(packages) if isinstance(packages, list) else []

    def get_custom_package(self, package_id: str) -> Optional[dict]:
        return next((p for p in self.get_custom_packages() if p["id"] == package_id), None)

    def add_custom_package(self, package: dict) -> dict:
        stored = dict(package)
        stored["id"] = _new_id(CUSTOM_PACKAGE_PREFIX)
        stored["created_at"] = _now()
        packages = self.get_custom_packages()
        packages.append(stored)
        self._save(CUSTOM_PACKAGES_KEY, packages)
        return stored

    def clear_custom_packages(self) -> None:
        self.store.pop(CUSTOM_PACKAGES_KEY, None)

    # --- event details (prefill for checkout) ---

    def get_event_details(self) -> dict:
        details = self.store.get(EVENT_DETAILS_KEY)
        return dict(details) if isinstance(details, dict) else {}

    def save_event_details(self, **details) -> dict:
        merged = self.get_event_details()
        merged.update({k: v for k, v in details.items() if v not in (None, "")})
        self._save(EVENT_DETAILS_KEY, merged)
        return merged

    def clear_event_details(self) -> None:
        self.store.pop(EVENT_DETAILS_KEY, None)
