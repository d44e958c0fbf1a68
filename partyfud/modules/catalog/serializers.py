from __future__ import annotations

from partyfud.app.models import Account, CatererInfo, Dish, Occasion, Package, CuisineType, Category, SubCategory, Proposal
from partyfud.modules.packages.pricing import price_per_person, round_half_up


def _iso(dt):
    return dt.isoformat() if dt else None


def named_to_dict(obj: CuisineType | Category | SubCategory) -> dict:
    data = {"id": obj.id, "name": obj.name, "description": obj.description}
    if isinstance(obj, SubCategory):
        data["category_id"] = obj.category_id
    return data


def occasion_to_dict(o: Occasion) -> dict:
    return {
        "id": o.id,
        "name": o.name,
        "image_url": o.image_url,
        "description": o.description,
        "created_at": _iso(o.created_at),
        "updated_at": _iso(o.updated_at),
    }


def caterer_ref(account: Account | None) -> dict | None:
    if account is None:
        return None
    info = account.caterer_info
    return {
        "id": account.id,
        "name": account.name,
        "business_name": info.business_name if info else account.company_name,
        "location": info.region if info else None,
    }


def dish_to_dict(d: Dish) -> dict:
    return {
        "id": d.id,
        "name": d.name,
        "image_url": d.image_url,
        "cuisine_type": named_to_dict(d.cuisine_type) if d.cuisine_type else None,
        "category": named_to_dict(d.category) if d.category else None,
        "sub_category": named_to_dict(d.sub_category) if d.sub_category else None,
        "caterer": caterer_ref(d.caterer),
        "quantity_in_gm": d.quantity_in_gm,
        "pieces": d.pieces,
        "price_cents": d.price_cents,
        "currency": d.currency,
        "is_active": d.is_active,
        "created_at": _iso(d.created_at),
        "updated_at": _iso(d.updated_at),
    }


def package_to_dict(p: Package, include_items: bool = True) -> dict:
    data = {
        "id": p.id,
        "name": p.name,
        "description": p.description,
        "minimum_people": p.minimum_people,
        "people_count": p.minimum_people,
        "cover_image_url": p.cover_image_url,
        "total_price_cents": p.total_price_cents,
        "price_per_person_cents": round_half_up(price_per_person(p)),
        "is_custom_price": p.is_custom_price,
        "currency": p.currency,
        "rating": p.rating,
        "is_active": p.is_active,
        "is_available": p.is_available,
        "customisation_type": p.customisation_type,
        "created_by": p.created_by,
        "user_id": p.owner_id,
        "additional_info": p.additional_info,
        "caterer": caterer_ref(p.caterer),
        "occasions": [{"occasion": {"id": o.id, "name": o.name}} for o in p.occasions],
        "created_at": _iso(p.created_at),
    }
    if include_items:
        data["items"] = [
            {
                "id": i.id,
                "dish": dish_to_dict(i.dish),
                "quantity": i.quantity,
                "price_at_time_cents": i.price_at_time_cents,
                "is_optional": i.is_optional,
            }
            for i in p.items
        ]
        data["category_selections"] = [
            {
                "id": s.id,
                "category": named_to_dict(s.category),
                "num_dishes_to_select": s.num_dishes_to_select,
            }
            for s in p.category_selections
        ]
    return data


def caterer_info_to_dict(info: CatererInfo) -> dict:
    return {
        "id": info.id,
        "business_name": info.business_name,
        "business_type": info.business_type,
        "business_description": info.business_description,
        "region": info.region,
        "service_area": info.service_area,
        "minimum_guests": info.minimum_guests,
        "maximum_guests": info.maximum_guests,
        "cuisine_types": [c.id for c in info.cuisine_types],
        "certifications": list(info.certifications or []),
        "delivery_only": info.delivery_only,
        "delivery_plus_setup": info.delivery_plus_setup,
        "full_service": info.full_service,
        "live_stations": info.live_stations,
        "preparation_time": info.preparation_time,
        "staff": info.staff,
        "servers": info.servers,
        "unavailable_dates": list(info.unavailable_dates or []),
        "food_license": info.food_license,
        "registration": info.registration,
        "onboarding_step": info.onboarding_step,
        "status": info.status,
        "updated_at": _iso(info.updated_at),
    }


def caterer_to_dict(account: Account, packages: list[Package]) -> dict:
    info = account.caterer_info
    per_person = [round_half_up(price_per_person(p)) for p in packages]
    min_price = min(per_person) if per_person else 0
    max_price = max(per_person) if per_person else 0
    return {
        "id": account.id,
        "name": account.name,
        "first_name": account.first_name,
        "last_name": account.last_name,
        "company_name": account.company_name,
        "business_name": info.business_name if info else account.company_name,
        "email": account.email,
        "phone": account.phone,
        "image_url": account.image_url,
        "cuisines": [c.name for c in info.cuisine_types] if info else [],
        "location": info.region if info else None,
        "minPrice": min_price,
        "maxPrice": max_price,
        "priceRange": f"{min_price // 100} - {max_price // 100}" if per_person else "",
        "description": info.business_description if info else None,
        "minimum_guests": info.minimum_guests if info else None,
        "maximum_guests": info.maximum_guests if info else None,
        "service_area": info.service_area if info else None,
        "delivery_only": info.delivery_only if info else False,
        "delivery_plus_setup": info.delivery_plus_setup if info else False,
        "full_service": info.full_service if info else False,
        "packages": [package_to_dict(p, include_items=False) for p in packages],
        "packages_count": len(packages),
    }


def proposal_to_dict(p: Proposal) -> dict:
    return {
        "id": p.id,
        "user": {"id": p.account.id, "name": p.account.name, "email": p.account.email} if p.account else None,
        "caterer": caterer_ref(p.caterer),
        "event_type": p.event_type,
        "location": p.location,
        "dietary_preferences": list(p.dietary_preferences or []),
        "budget_per_person_cents": p.budget_per_person_cents,
        "event_date": p.event_date.isoformat() if p.event_date else None,
        "vision": p.vision,
        "guest_count": p.guest_count,
        "status": p.status,
        "created_at": _iso(p.created_at),
        "updated_at": _iso(p.updated_at),
    }
