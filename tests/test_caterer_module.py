import io
import json

from conftest import login
from partyfud.app.extensions import db
from partyfud.app.models import Account, Order, OrderItem, Package

PROFILE = {
    "business_name": "Mezze Co",
    "business_type": "Catering Company",
    "region": "Abu Dhabi",
    "service_area": "25km",
    "minimum_guests": "20",
    "maximum_guests": 300,
}


def new_caterer(client):
    r = client.post(
        "/api/auth/signup",
        json={
            "email": "chef@example.com",
            "password": "Secret123!",
            "first_name": "Omar",
            "last_name": "Haddad",
            "type": "CATERER",
            "company_name": "Mezze Co",
        },
    )
    assert r.status_code == 201


def draft(client, step, **data):
    return client.put("/api/caterer/onboarding/draft", json={"step": step, "data": data})


# CATERER-001: onboarding walks through the steps
def test_onboarding(client, seeded):
    new_caterer(client)
    status = client.get("/api/caterer/onboarding/status").json["data"]
    assert status["step"] == 1
    assert status["status"] == "DRAFT"
    assert "Home Kitchen" in status["options"]["business_types"]

    r = draft(client, 1, business_name="")
    assert r.status_code == 400
    assert "business_name" in r.json["error"]["details"]["fields"]

    r = draft(client, 1, cuisine_types=[seeded["cuisines"]["Arabic"]], **PROFILE)
    assert r.status_code == 200
    assert r.json["data"]["step"] == 2
    assert r.json["data"]["progress"] == 50
    assert r.json["data"]["draft"]["minimum_guests"] == 20

    r = draft(client, 2, delivery_only=False, delivery_plus_setup=False, full_service=False)
    assert r.status_code == 400
    assert draft(client, 2, delivery_only=False, full_service=True).json["data"]["step"] == 3

    r = draft(client, 3, preparation_time=48, staff="3", servers=2)
    assert r.json["data"]["step"] == 4

    r = client.post("/api/caterer/onboarding/submit")
    assert r.status_code == 200
    assert r.json["data"]["status"] == "PENDING"
    assert r.json["data"]["region"] == "Abu Dhabi"
    assert client.post("/api/caterer/onboarding/submit").status_code == 409
    assert client.get("/api/auth/me").json["data"]["user"]["profile_completed"] is True


def test_submit_incomplete_onboarding(client, seeded):
    new_caterer(client)
    r = client.post("/api/caterer/onboarding/submit")
    assert r.status_code == 400
    assert r.json["error"]["message"] == "Please complete all onboarding steps"


# CATERER-002: business info form with documents
def test_caterer_info_form(app, client, seeded):
    new_caterer(client)
    form = {
        "business_name": "Mezze Co",
        "business_type": "Restaurant",
        "business_description": "Levantine small plates",
        "service_area": "10km",
        "region": "Sharjah",
        "minimum_guests": "10",
        "maximum_guests": "200",
        "preparation_time": "24",
        "delivery_only": "true",
        "cuisine_types": [str(seeded["cuisines"]["Arabic"]), str(seeded["cuisines"]["Indian"])],
        "food_license": (io.BytesIO(b"%PDF-1.4 licence"), "licence.pdf"),
    }
    r = client.post("/api/auth/caterer-info", data=form, content_type="multipart/form-data")
    assert r.status_code == 201
    info = r.json["data"]
    assert info["status"] == "PENDING"
    assert len(info["cuisine_types"]) == 2
    assert info["food_license"].startswith("/uploads/")
    assert client.get(info["food_license"]).status_code == 200

    bad = dict(form, food_license=(io.BytesIO(b"MZ"), "tool.exe"))
    r = client.put("/api/auth/caterer-info", data=bad, content_type="multipart/form-data")
    assert r.status_code == 400

    r = client.put("/api/auth/caterer-info", data={"business_name": "Mezze Co"}, content_type="multipart/form-data")
    assert r.status_code == 400
    assert r.json["error"]["message"] == "Please fill in all required fields"


def test_caterer_routes_need_caterer_role(user_client):
    assert user_client.get("/api/caterer/dishes").status_code == 403


# CATERER-003: dishes
def test_dish_crud(caterer_client, seeded):
    payload = {
        "name": "Tabbouleh",
        "cuisine_type_id": seeded["cuisines"]["Arabic"],
        "category_id": seeded["categories"]["Starters"],
        "price": "14.5",
    }
    r = caterer_client.post("/api/caterer/dishes", json=payload)
    assert r.status_code == 201
    dish = r.json["data"]
    assert dish["price_cents"] == 1450

    r = caterer_client.post("/api/caterer/dishes", json=dict(payload, price=""))
    assert r.json["error"]["message"] == "Dish price is required"

    desserts = seeded["categories"]["Desserts"]
    sweets = caterer_client.get(f"/api/user/metadata/subcategories?category_id={desserts}").json["data"][0]
    r = caterer_client.put(f"/api/caterer/dishes/{dish['id']}", json={"sub_category_id": sweets["id"]})
    assert r.status_code == 400

    r = caterer_client.put(f"/api/caterer/dishes/{dish['id']}", json={"price": 16})
    assert r.json["data"]["price_cents"] == 1600

    grouped = caterer_client.get("/api/caterer/dishes?group_by_category=true").json
    assert grouped["count"] == 6

    assert caterer_client.delete(f"/api/caterer/dishes/{dish['id']}").json["data"]["message"] == "deleted"
    hummus = seeded["dishes"]["Hummus"]
    assert caterer_client.delete(f"/api/caterer/dishes/{hummus}").json["data"]["message"] == "deactivated"
    assert caterer_client.get(f"/api/caterer/dishes/{hummus}").json["data"]["is_active"] is False


# CATERER-004: draft package items become a package
def test_package_from_draft_items(caterer_client, seeded):
    r = caterer_client.post("/api/caterer/packages/items", json={"dish_id": seeded["dishes"]["Kunafa"], "quantity": 2})
    assert r.status_code == 201
    item = r.json["data"]
    assert item["package_id"] is None
    assert caterer_client.get("/api/caterer/packages/items?draft=true").json["count"] == 1

    r = caterer_client.post(
        "/api/caterer/packages",
        json={"name": "Sweet Table", "package_item_ids": [item["id"]], "minimum_people": 10},
    )
    assert r.status_code == 201
    package = r.json["data"]
    assert package["total_price_cents"] == 36000
    assert package["is_custom_price"] is False

    assert caterer_client.get("/api/caterer/packages/items?draft=true").json["count"] == 0
    assert caterer_client.delete(f"/api/caterer/packages/items/{item['id']}").status_code == 409

    r = caterer_client.post("/api/caterer/packages", json={"name": "Other", "package_item_ids": [item["id"]]})
    assert r.status_code == 409


# CATERER-005: package pricing
def test_package_pricing(caterer_client, seeded):
    r = caterer_client.post("/api/caterer/packages", json={"name": "Empty"})
    assert r.status_code == 400
    assert r.json["error"]["message"] == "Add at least one dish or set a total price"

    r = caterer_client.post(
        "/api/caterer/packages",
        json={"name": "Fattoush Bar", "items": [{"dish_id": seeded["dishes"]["Fattoush"]}], "total_price": "999"},
    )
    package = r.json["data"]
    assert package["total_price_cents"] == 99900
    assert package["is_custom_price"] is True
    # defaults to the caterer's minimum guests
    assert package["minimum_people"] == 50

    r = caterer_client.put(f"/api/caterer/packages/{package['id']}", json={"minimum_people": 30})
    assert r.json["data"]["total_price_cents"] == 99900

    r = caterer_client.put(f"/api/caterer/packages/{package['id']}", json={"is_custom_price": False})
    assert r.json["data"]["total_price_cents"] == 1500 * 30
    assert r.json["data"]["is_custom_price"] is False


# CATERER-006: customisable package from a multipart form
def test_customisable_package_form(caterer_client, seeded):
    dishes, categories = seeded["dishes"], seeded["categories"]
    form = {
        "name": "Grill Night",
        "customisation_type": "customizable",
        "minimum_people": "25",
        "items": json.dumps([{"dish_id": dishes["Mixed Grill"]}, {"dish_id": dishes["Lamb Ouzi"]}]),
        "category_selections": json.dumps([{"category_id": categories["Main Course"], "num_dishes_to_select": 1}]),
        "occassion": json.dumps([seeded["occasions"]["Corporate Event"]]),
    }
    r = caterer_client.post("/api/caterer/packages", data=form, content_type="multipart/form-data")
    assert r.status_code == 201
    package = r.json["data"]
    assert package["customisation_type"] == "CUSTOMISABLE"
    assert package["total_price_cents"] == (4500 + 5500) * 25
    assert package["category_selections"][0]["num_dishes_to_select"] == 1
    assert package["occasions"][0]["occasion"]["name"] == "Corporate Event"

    bad = dict(form, category_selections="not json")
    r = caterer_client.post("/api/caterer/packages", data=bad, content_type="multipart/form-data")
    assert r.status_code == 400


# CATERER-007: deleting packages
def test_delete_package(app, caterer_client, seeded):
    fixed, custom = seeded["fixed_package_id"], seeded["custom_package_id"]
    with app.app_context():
        package = db.session.get(Package, fixed)
        order = Order(account_id=seeded["user_id"], status="PENDING")
        order.items.append(OrderItem(package=package, package_id=package.id, guests=50, price_at_time_cents=450000))
        db.session.add(order)
        db.session.commit()

    assert caterer_client.delete(f"/api/caterer/packages/{fixed}").json["data"]["message"] == "deactivated"
    assert caterer_client.delete(f"/api/caterer/packages/{custom}").json["data"]["message"] == "deleted"
    assert caterer_client.get(f"/api/caterer/packages/{custom}").status_code == 404
    assert caterer_client.get(f"/api/caterer/packages/{fixed}").json["data"]["is_active"] is False


def test_other_caterers_packages_are_not_editable(client, seeded):
    new_caterer(client)
    r = client.put(f"/api/caterer/packages/{seeded['fixed_package_id']}", json={"name": "Mine now"})
    assert r.status_code == 404


def test_dashboard(caterer_client, seeded):
    data = caterer_client.get("/api/caterer/dashboard").json["data"]
    assert data["dishes"]["total"] == 5
    assert data["packages"]["total"] == 2
    assert data["packageItems"]["total"] == 9
    assert data["financial"]["averagePackagePriceCents"] == 370000
    assert data["financial"]["averagePricePerPersonCents"] == 11750


def test_blocked_caterer_cannot_edit_draft(app, client, seeded):
    new_caterer(client)
    assert draft(client, 1, cuisine_types=[seeded["cuisines"]["Arabic"]], **PROFILE).status_code == 200
    with app.app_context():
        info = Account.query.filter_by(email="chef@example.com").one().caterer_info
        info.status = "BLOCKED"
        db.session.commit()

    assert draft(client, 2, full_service=True).status_code == 403
    assert client.post("/api/caterer/onboarding/submit").status_code == 403
    client.post("/api/auth/logout")
    assert login(client, "chef@example.com", "Secret123!").status_code == 403
