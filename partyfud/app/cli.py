from __future__ import annotations

from flask import Blueprint
from werkzeug.security import generate_password_hash

from partyfud.app.extensions import db
from partyfud.app.models import (
    Account,
    Category,
    CatererInfo,
    CuisineType,
    Dish,
    Occasion,
    Package,
    PackageCategorySelection,
    PackageItem,
    SubCategory,
)
from partyfud.modules.packages.pricing import catalogue_price

cli_bp = Blueprint("cli", __name__)

OCCASIONS = ["Wedding", "Birthday", "Corporate Event", "Engagement", "Family Gathering", "Iftar"]
CUISINES = ["Arabic", "Indian", "Italian", "Continental", "Asian"]
CATEGORIES = {
    "Starters": ["Cold Mezze", "Hot Appetizers"],
    "Main Course": ["Grills", "Rice"],
    "Desserts": ["Arabic Sweets", "Cakes"],
    "Beverages": [],
}
DEMO_PASSWORD = "Password123!"


def _get_or_create(model, **fields):
    obj = model.query.filter_by(**fields).first()
    if obj is None:
        obj = model(**fields)
        db.session.add(obj)
        db.session.flush()
    return obj


def _account(email: str, first_name: str, last_name: str, type_: str, company_name: str | None = None) -> Account:
    account = Account.query.filter_by(email=email).first()
    if account is None:
        account = Account(
            email=email,
            password_hash=generate_password_hash(DEMO_PASSWORD),
            first_name=first_name,
            last_name=last_name,
            type=type_,
            company_name=company_name,
        )
        db.session.add(account)
        db.session.flush()
    return account


def seed_metadata() -> dict:
    occasions = {name: _get_or_create(Occasion, name=name) for name in OCCASIONS}
    cuisines = {name: _get_or_create(CuisineType, name=name) for name in CUISINES}
    categories = {}
    for name, subs in CATEGORIES.items():
        category = _get_or_create(Category, name=name)
        categories[name] = category
        for sub in subs:
            _get_or_create(SubCategory, name=sub, category_id=category.id)
    return {"occasions": occasions, "cuisines": cuisines, "categories": categories}


def seed_demo_caterer(meta: dict) -> Account:
    caterer = _account("caterer@example.com", "Demo", "Caterer", "CATERER", company_name="Al Bait Kitchen")
    if caterer.caterer_info is None:
        info = CatererInfo(
            account_id=caterer.id,
            business_name="Al Bait Kitchen",
            business_type="Catering Company",
            business_description="Home style Emirati and Levantine catering.",
            region="Dubai",
            service_area="25km",
            certifications=["Food Hygiene Level 2", "Halal Certified"],
            live_stations=True,
            onboarding_step=4,
            status="APPROVED",
        )
        info.cuisine_types = [meta["cuisines"]["Arabic"]]
        db.session.add(info)

    if Dish.query.filter_by(caterer_id=caterer.id).count() == 0:
        arabic = meta["cuisines"]["Arabic"]
        cats = meta["categories"]
        dishes = [
            Dish(caterer_id=caterer.id, name="Hummus", cuisine_type=arabic, category=cats["Starters"], price_cents=1200),
            Dish(caterer_id=caterer.id, name="Fattoush", cuisine_type=arabic, category=cats["Starters"], price_cents=1500),
            Dish(caterer_id=caterer.id, name="Mixed Grill", cuisine_type=arabic, category=cats["Main Course"], price_cents=4500),
            Dish(caterer_id=caterer.id, name="Lamb Ouzi", cuisine_type=arabic, category=cats["Main Course"], price_cents=5500),
            Dish(caterer_id=caterer.id, name="Kunafa", cuisine_type=arabic, category=cats["Desserts"], price_cents=1800),
        ]
        db.session.add_all(dishes)
        db.session.flush()

        fixed = Package(caterer_id=caterer.id, name="Classic Arabic Feast", minimum_people=50, customisation_type="FIXED")
        fixed.occasions = [meta["occasions"]["Wedding"], meta["occasions"]["Family Gathering"]]
        for dish in dishes[:3] + dishes[4:]:
            fixed.items.append(
                PackageItem(caterer_id=caterer.id, dish=dish, dish_id=dish.id, price_at_time_cents=dish.price_cents)
            )
        fixed.total_price_cents = catalogue_price(fixed.items, fixed.minimum_people)

        custom = Package(
            caterer_id=caterer.id,
            name="Build Your Own Mezze",
            minimum_people=20,
            customisation_type="CUSTOMISABLE",
        )
        custom.occasions = [meta["occasions"]["Birthday"]]
        for dish in dishes:
            custom.items.append(
                PackageItem(caterer_id=caterer.id, dish=dish, dish_id=dish.id, price_at_time_cents=dish.price_cents)
            )
        custom.category_selections = [
            PackageCategorySelection(category_id=cats["Starters"].id, num_dishes_to_select=1),
            PackageCategorySelection(category_id=cats["Main Course"].id, num_dishes_to_select=1),
            PackageCategorySelection(category_id=cats["Desserts"].id, num_dishes_to_select=None),
        ]
        custom.total_price_cents = catalogue_price(custom.items, custom.minimum_people)
        db.session.add_all([fixed, custom])
    return caterer


@cli_bp.cli.command("seed")
def seed_data() -> None:
    """Seed reference data and demo accounts.

    Safe to run multiple times; existing rows are reused.
    """
    meta = seed_metadata()
    seed_demo_caterer(meta)
    _account("user@example.com", "Demo", "User", "USER")
    _account("admin@example.com", "Demo", "Admin", "ADMIN")
    db.session.commit()
    print(f"Seed complete. Logins: user@example.com, caterer@example.com, admin@example.com / {DEMO_PASSWORD}")
