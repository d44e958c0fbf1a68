"""Catalogue search: caterer filters, package filters, dish filters.

Filters are sparse: any key that is missing, empty or NaN is dropped before
it reaches a query (`compact_params`). Package listing runs in two passes,
a database query for the coarse filters and an in-memory pass for
occasion/guest/price ranges.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Mapping, Optional

from sqlalchemy import or_

from partyfud.app.models import Account, CatererInfo, Dish, Occasion, Package, PackageItem
from partyfud.modules.packages.pricing import price_per_person, is_customisable

# The storefront price slider tops out here; treat it as "no upper bound".
UNBOUNDED_MAX_PRICE_CENTS = 50000 * 100

SORT_OPTIONS = ("price_asc", "price_desc", "rating_desc", "created_desc")


def compact_params(params: Mapping[str, Any]) -> dict:
    compacted = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, str) and value == "":
            continue
        if isinstance(value, float) and math.isnan(value):
            continue
        compacted[key] = value
    return compacted


def _num(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _major_to_cents(value: Any) -> Optional[int]:
    number = _num(value)
    return None if number is None else int(round(number * 100))


def _like(term: str) -> str:
    return f"%{term.strip()}%"


# --- Caterers ---

@dataclass
class CatererFilter:
    search: Optional[str] = None
    location: Optional[str] = None
    guests: Optional[int] = None
    date: Optional[date] = None
    min_budget_cents: Optional[int] = None
    max_budget_cents: Optional[int] = None
    fixed: bool = False
    customizable: bool = False
    live_stations: bool = False
    occasion_id: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "CatererFilter":
        data = compact_params(payload)
        menu = data.get("menuType")
        if not isinstance(menu, dict):
            menu = {}
        guests = _num(data.get("guests"))
        occasion = _num(data.get("occasionId"))
        event_date = None
        if data.get("date"):
            try:
                event_date = date.fromisoformat(str(data["date"])[:10])
            except ValueError:
                event_date = None
        return cls(
            search=str(data.get("search") or "").strip() or None,
            location=str(data.get("location") or "").strip() or None,
            guests=int(guests) if guests is not None else None,
            date=event_date,
            min_budget_cents=_major_to_cents(data.get("minBudget")),
            max_budget_cents=_major_to_cents(data.get("maxBudget")),
            fixed=bool(menu.get("fixed")),
            customizable=bool(menu.get("customizable")),
            live_stations=bool(menu.get("liveStations")),
            occasion_id=int(occasion) if occasion is not None else None,
        )

    def query(self):
        q = (
            Account.query.join(CatererInfo, CatererInfo.account_id == Account.id)
            .filter(Account.type == "CATERER", CatererInfo.status == "APPROVED")
        )
        if self.search:
            like = _like(self.search)
            q = q.filter(
                or_(
                    CatererInfo.business_name.ilike(like),
                    CatererInfo.business_description.ilike(like),
                    Account.company_name.ilike(like),
                )
            )
        if self.location:
            like = _like(self.location)
            q = q.filter(or_(CatererInfo.region.ilike(like), CatererInfo.service_area.ilike(like)))
        if self.guests is not None:
            q = q.filter(CatererInfo.minimum_guests <= self.guests, CatererInfo.maximum_guests >= self.guests)
        return q.order_by(Account.id.asc())

    def matches(self, caterer: Account, packages: list[Package]) -> bool:
        """Rules that need the caterer's packages loaded."""
        info = caterer.caterer_info
        if self.date is not None and self.date.isoformat() in (info.unavailable_dates or []):
            return False

        if self.min_budget_cents is not None or self.max_budget_cents is not None:
            if not packages:
                return False
            prices = [price_per_person(p) for p in packages]
            if self.min_budget_cents is not None and max(prices) < self.min_budget_cents:
                return False
            if self.max_budget_cents is not None and min(prices) > self.max_budget_cents:
                return False

        wanted = []
        if self.fixed:
            wanted.append(any(not is_customisable(p) for p in packages))
        if self.customizable:
            wanted.append(any(is_customisable(p) for p in packages))
        if self.live_stations:
            wanted.append(bool(info.live_stations))
        if wanted and not any(wanted):
            return False

        if self.occasion_id is not None:
            if not any(o.id == self.occasion_id for p in packages for o in p.occasions):
                return False
        return True


def public_packages_query():
    return (
        Package.query.join(CatererInfo, CatererInfo.account_id == Package.caterer_id)
        .filter(
            Package.is_active.is_(True),
            Package.is_available.is_(True),
            Package.created_by == "CATERER",
            CatererInfo.status == "APPROVED",
        )
    )


# --- Packages ---

@dataclass
class PackageFilter:
    caterer_id: Optional[int] = None
    location: Optional[str] = None
    occasion_id: Optional[int] = None
    occasion_name: Optional[str] = None
    cuisine_type_id: Optional[int] = None
    category_id: Optional[int] = None
    dish_id: Optional[int] = None
    search: Optional[str] = None
    menu_type: Optional[str] = None
    sort_by: str = "created_desc"
    # In-memory pass
    occasion_ids: list[int] = field(default_factory=list)
    min_guests: Optional[int] = None
    max_guests: Optional[int] = None
    min_price_cents: Optional[int] = None
    max_price_cents: Optional[int] = None

    @classmethod
    def from_args(cls, args) -> "PackageFilter":
        data = compact_params({k: args.get(k) for k in args.keys()})

        def as_int(key):
            number = _num(data.get(key))
            return int(number) if number is not None else None

        occasion_ids = []
        raw_ids = args.getlist("occasion_ids") if hasattr(args, "getlist") else data.get("occasion_ids", [])
        for raw in raw_ids:
            for part in str(raw).split(","):
                number = _num(part)
                if number is not None:
                    occasion_ids.append(int(number))

        sort_by = data.get("sort_by") or "created_desc"
        if sort_by not in SORT_OPTIONS:
            sort_by = "created_desc"
        menu_type = str(data.get("menu_type") or "").lower() or None
        if menu_type not in (None, "fixed", "customizable"):
            menu_type = None

        return cls(
            caterer_id=as_int("caterer_id"),
            location=data.get("location") or data.get("region"),
            occasion_id=as_int("occasion_id"),
            occasion_name=data.get("occasion_name"),
            cuisine_type_id=as_int("cuisine_type_id"),
            category_id=as_int("category_id"),
            dish_id=as_int("dish_id"),
            search=data.get("search"),
            menu_type=menu_type,
            sort_by=sort_by,
            occasion_ids=occasion_ids,
            min_guests=as_int("min_guests"),
            max_guests=as_int("max_guests"),
            min_price_cents=_major_to_cents(data.get("min_price")),
            max_price_cents=_major_to_cents(data.get("max_price")),
        )

    def apply(self, q):
        if self.caterer_id is not None:
            q = q.filter(Package.caterer_id == self.caterer_id)
        if self.location:
            q = q.filter(CatererInfo.region.ilike(_like(self.location)))
        if self.occasion_id is not None:
            q = q.filter(Package.occasions.any(Occasion.id == self.occasion_id))
        if self.occasion_name:
            q = q.filter(Package.occasions.any(Occasion.name.ilike(self.occasion_name.strip())))
        if self.cuisine_type_id is not None:
            q = q.filter(Package.items.any(PackageItem.dish.has(Dish.cuisine_type_id == self.cuisine_type_id)))
        if self.category_id is not None:
            q = q.filter(Package.items.any(PackageItem.dish.has(Dish.category_id == self.category_id)))
        if self.dish_id is not None:
            q = q.filter(Package.items.any(PackageItem.dish_id == self.dish_id))
        if self.search:
            like = _like(self.search)
            q = q.filter(
                or_(Package.name.ilike(like), Package.description.ilike(like), CatererInfo.business_name.ilike(like))
            )
        if self.menu_type == "fixed":
            q = q.filter(Package.customisation_type == "FIXED")
        elif self.menu_type == "customizable":
            q = q.filter(Package.customisation_type.in_(["CUSTOMISABLE", "CUSTOMIZABLE"]))
        return sort_packages_query(q, self.sort_by)

    def in_memory(self, packages: Iterable[Package]) -> list[Package]:
        return filter_packages(
            packages,
            occasion_ids=self.occasion_ids,
            min_guests=self.min_guests,
            max_guests=self.max_guests,
            min_price_cents=self.min_price_cents,
            max_price_cents=self.max_price_cents,
        )


def sort_packages_query(q, sort_by: str):
    if sort_by == "price_asc":
        return q.order_by(Package.total_price_cents.asc(), Package.id.asc())
    if sort_by == "price_desc":
        return q.order_by(Package.total_price_cents.desc(), Package.id.asc())
    if sort_by == "rating_desc":
        return q.order_by(Package.rating.is_(None), Package.rating.desc(), Package.id.asc())
    return q.order_by(Package.created_at.desc(), Package.id.desc())


def filter_packages(
    packages: Iterable[Package],
    occasion_ids: Iterable[int] = (),
    min_guests: Optional[int] = None,
    max_guests: Optional[int] = None,
    min_price_cents: Optional[int] = None,
    max_price_cents: Optional[int] = None,
) -> list[Package]:
    wanted = set(occasion_ids)
    result = list(packages)
    if wanted:
        result = [p for p in result if wanted & {o.id for o in p.occasions}]
    if min_guests is not None:
        result = [p for p in result if (p.minimum_people or 1) >= min_guests]
    if max_guests is not None:
        result = [p for p in result if (p.minimum_people or 1) <= max_guests]
    if min_price_cents is not None:
        result = [p for p in result if p.total_price_cents >= min_price_cents]
    if max_price_cents is not None and max_price_cents != UNBOUNDED_MAX_PRICE_CENTS:
        result = [p for p in result if p.total_price_cents <= max_price_cents]
    return result


# --- Dishes ---

@dataclass
class DishFilter:
    caterer_id: Optional[int] = None
    cuisine_type_id: Optional[int] = None
    category_id: Optional[int] = None
    sub_category_id: Optional[int] = None
    search: Optional[str] = None
    min_price_cents: Optional[int] = None
    max_price_cents: Optional[int] = None
    is_active: Optional[bool] = True
    group_by_category: bool = False

    @classmethod
    def from_args(cls, args) -> "DishFilter":
        data = compact_params({k: args.get(k) for k in args.keys()})

        def as_int(key):
            number = _num(data.get(key))
            return int(number) if number is not None else None

        is_active = True
        if "is_active" in data:
            is_active = str(data["is_active"]).lower() in {"1", "true", "yes"}
        return cls(
            caterer_id=as_int("caterer_id"),
            cuisine_type_id=as_int("cuisine_type_id"),
            category_id=as_int("category_id"),
            sub_category_id=as_int("sub_category_id"),
            search=data.get("search"),
            min_price_cents=_major_to_cents(data.get("min_price")),
            max_price_cents=_major_to_cents(data.get("max_price")),
            is_active=is_active,
            group_by_category=str(data.get("group_by_category", "")).lower() == "true",
        )

    def query(self):
        q = Dish.query
        if self.caterer_id is not None:
            q = q.filter(Dish.caterer_id == self.caterer_id)
        if self.cuisine_type_id is not None:
            q = q.filter(Dish.cuisine_type_id == self.cuisine_type_id)
        if self.category_id is not None:
            q = q.filter(Dish.category_id == self.category_id)
        if self.sub_category_id is not None:
            q = q.filter(Dish.sub_category_id == self.sub_category_id)
        if self.search:
            q = q.filter(Dish.name.ilike(_like(self.search)))
        if self.min_price_cents is not None:
            q = q.filter(Dish.price_cents >= self.min_price_cents)
        if self.max_price_cents is not None:
            q = q.filter(Dish.price_cents <= self.max_price_cents)
        if self.is_active is not None:
            q = q.filter(Dish.is_active.is_(self.is_active))
        return q.order_by(Dish.category_id.asc(), Dish.name.asc())


def group_dishes_by_category(dishes: Iterable[Dish], to_dict) -> list[dict]:
    groups: dict[int, dict] = {}
    for d in dishes:
        group = groups.setdefault(
            d.category_id,
            {"category": {"id": d.category.id, "name": d.category.name}, "dishes": []},
        )
        group["dishes"].append(to_dict(d))
    return list(groups.values())


def packages_by_caterer(caterer_ids: list[int]) -> dict[int, list[Package]]:
    grouped: dict[int, list[Package]] = {cid: [] for cid in caterer_ids}
    if not caterer_ids:
        return grouped
    rows = (
        Package.query.filter(
            Package.caterer_id.in_(caterer_ids),
            Package.is_active.is_(True),
            Package.created_by == "CATERER",
        )
        .order_by(Package.id.asc())
        .all()
    )
    for p in rows:
        grouped[p.caterer_id].append(p)
    return grouped
