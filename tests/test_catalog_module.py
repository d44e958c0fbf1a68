from partyfud.app.extensions import db
from partyfud.app.models import CatererInfo


def caterers(client, **body):
    return client.post("/api/user/caterers", json=body).json


def package_ids(response):
    return [p["id"] for p in response["data"]]


# CATALOG-001: caterer listing with price range
def test_list_caterers(client, seeded):
    body = caterers(client)
    assert body["count"] == 1
    caterer = body["data"][0]
    assert caterer["business_name"] == "Al Bait Kitchen"
    assert caterer["minPrice"] == 9000
    assert caterer["maxPrice"] == 14500
    assert caterer["priceRange"] == "90 - 145"
    assert caterer["packages_count"] == 2


# CATALOG-002: caterer filters
def test_caterer_filters(client, seeded):
    assert caterers(client, guests=10)["count"] == 0
    assert caterers(client, guests=100, location="dubai")["count"] == 1
    assert caterers(client, maxBudget=80)["count"] == 0
    assert caterers(client, maxBudget=100, minBudget="")["count"] == 1
    assert caterers(client, menuType={"customizable": True})["count"] == 1
    assert caterers(client, occasionId=seeded["occasions"]["Iftar"])["count"] == 0
    assert caterers(client, occasionId=seeded["occasions"]["Birthday"])["count"] == 1
    assert caterers(client, search="nobody")["count"] == 0


def test_caterer_filters_with_wrong_types(client, seeded):
    r = client.post("/api/user/caterers", json={"menuType": "fixed"})
    assert r.status_code == 200
    assert r.json["count"] == 1
    r = client.post("/api/user/caterers", json={"search": 5, "location": 7})
    assert r.status_code == 200
    assert r.json["count"] == 0


def test_unapproved_caterers_are_hidden(app, client, seeded):
    with app.app_context():
        CatererInfo.query.filter_by(account_id=seeded["caterer_id"]).one().status = "PENDING"
        db.session.commit()
    assert caterers(client)["count"] == 0
    assert client.get(f"/api/user/caterers/{seeded['caterer_id']}").status_code == 404
    assert client.get(f"/api/user/packages/{seeded['fixed_package_id']}").status_code == 404


def test_caterer_detail_and_dishes(client, seeded):
    assert client.get(f"/api/user/caterers/{seeded['caterer_id']}").status_code == 200
    assert client.get(f"/api/user/caterers/{seeded['user_id']}").status_code == 404

    body = client.get(f"/api/user/caterers/{seeded['caterer_id']}/dishes").json
    assert body["count"] == 5
    names = [group["category"]["name"] for group in body["data"]["categories"]]
    assert sorted(names) == ["Desserts", "Main Course", "Starters"]


# CATALOG-003: packages of one caterer
def test_caterer_packages(client, seeded):
    assert client.get("/api/user/packages").status_code == 400
    body = client.get(f"/api/user/packages?caterer_id={seeded['caterer_id']}").json
    assert body["count"] == 2


# CATALOG-004: package search
def test_package_search(client, seeded):
    fixed, custom = seeded["fixed_package_id"], seeded["custom_package_id"]
    assert package_ids(client.get("/api/user/packages/all?sort_by=price_asc").json) == [custom, fixed]
    assert package_ids(client.get("/api/user/packages/all?menu_type=fixed").json) == [fixed]
    occasion = seeded["occasions"]["Birthday"]
    assert package_ids(client.get(f"/api/user/packages/all?occasion_ids={occasion}").json) == [custom]
    assert package_ids(client.get("/api/user/packages/all?min_price=3000").json) == [fixed]
    assert client.get("/api/user/packages/all?max_price=50000").json["count"] == 2
    assert package_ids(client.get("/api/user/packages/all?min_guests=30").json) == [fixed]
    assert package_ids(client.get("/api/user/packages/all?search=mezze").json) == [custom]

    dish = seeded["dishes"]["Lamb Ouzi"]
    assert package_ids(client.get(f"/api/user/packages/all?dish_id={dish}").json) == [custom]


def test_package_search_pagination(client, seeded):
    body = client.get("/api/user/packages/all?sort_by=price_desc&page=2&limit=1").json
    assert body["count"] == 2
    assert body["page"] == 2
    assert package_ids(body) == [seeded["custom_package_id"]]


# CATALOG-005: package page quote and dish toggles
def test_package_detail_and_quote(client, seeded):
    pid = seeded["custom_package_id"]
    data = client.get(f"/api/user/packages/{pid}").json["data"]
    assert data["customisation_type"] == "CUSTOMISABLE"
    limits = {row["category"]: row["limit"] for row in data["selection"]}
    assert limits == {"Starters": 1, "Main Course": 1, "Desserts": None}

    r = client.post(f"/api/user/packages/{pid}/quote", json={"guests": 40})
    assert r.json["data"]["price_cents"] == 580000
    assert r.json["data"]["formatted_price"] == "AED 5,800"

    r = client.post(f"/api/user/packages/{pid}/quote", json={"selected_dish_ids": [9999]})
    assert r.status_code == 400


def test_toggle_selection(client, seeded):
    pid = seeded["custom_package_id"]
    hummus, fattoush = seeded["dishes"]["Hummus"], seeded["dishes"]["Fattoush"]

    r = client.post(f"/api/user/packages/{pid}/selection/toggle", json={"dish_id": hummus})
    assert r.json["data"]["selected_dish_ids"] == [hummus]

    r = client.post(
        f"/api/user/packages/{pid}/selection/toggle", json={"dish_id": fattoush, "selected_dish_ids": [hummus]}
    )
    assert r.status_code == 400
    assert r.json["error"]["details"]["category"] == "Starters"


# CATALOG-006: dishes and reference data
def test_dishes(client, seeded):
    starters = seeded["categories"]["Starters"]
    assert client.get(f"/api/user/dishes?category_id={starters}").json["count"] == 2
    grouped = client.get("/api/user/dishes?group_by_category=true").json["data"]
    assert len(grouped["categories"]) == 3
    assert client.get("/api/user/dishes?max_price=15").json["count"] == 2

    dish_id = seeded["dishes"]["Kunafa"]
    assert client.get(f"/api/user/dishes/{dish_id}").json["data"]["price_cents"] == 1800
    assert client.get("/api/user/dishes/9999").status_code == 404


def test_reference_data(client, seeded):
    assert client.get("/api/user/occasions").json["count"] == 6
    assert len(client.get("/api/user/metadata/cuisine-types").json["data"]) == 5
    assert len(client.get("/api/user/metadata/categories").json["data"]) == 4
    starters = seeded["categories"]["Starters"]
    subs = client.get(f"/api/user/metadata/subcategories?category_id={starters}").json["data"]
    assert sorted(s["name"] for s in subs) == ["Cold Mezze", "Hot Appetizers"]
