from conftest import event_day
from partyfud.app.models import CartItem, Order

EVENT = {
    "event_time": "6:30 PM",
    "event_type": "Wedding",
    "venue_name": "Palm Hall",
    "street_address": "12 Beach Rd",
}


def fill_cart(client, seeded, guests=50):
    r = client.post(
        "/api/user/cart/items",
        json={"package_id": seeded["fixed_package_id"], "guests": guests, "location": "Jumeirah", "date": event_day()},
    )
    assert r.status_code == 201
    return r.json["data"]


def go_to_payment(client):
    assert client.put("/api/user/checkout/details", json=EVENT).status_code == 200
    assert client.post("/api/user/checkout/next").json["data"]["step"] == "review"
    assert client.post("/api/user/checkout/next").json["data"]["step"] == "payment"


def test_checkout_requires_login(client, seeded):
    assert client.get("/api/user/checkout").status_code == 401


# CHECKOUT-001: details are prefilled from the cart
def test_prefill_from_cart(user_client, seeded):
    fill_cart(user_client, seeded, guests=60)
    data = user_client.get("/api/user/checkout").json["data"]
    assert data["step"] == "event-details"
    assert data["details"]["event_date"] == event_day()
    assert data["details"]["area"] == "Jumeirah"
    assert data["details"]["guest_count"] == 60
    assert data["payment_methods"] == ["pay_on_delivery"]
    assert "10:00 AM" in data["time_slots"]
    # 9000 per person
    assert data["summary"]["subtotal_cents"] == 540000


# CHECKOUT-002: the first step is validated
def test_details_step_validation(user_client, seeded):
    fill_cart(user_client, seeded)
    r = user_client.post("/api/user/checkout/next")
    assert r.status_code == 400
    fields = r.json["error"]["details"]["fields"]
    assert set(fields) == {"event_time", "event_type", "street_address"}


# CHECKOUT-003: guest count controls
def test_guest_controls(user_client, seeded):
    fill_cart(user_client, seeded)
    data = user_client.post("/api/user/checkout/guests", json={"delta": 1}).json["data"]
    assert data["details"]["guest_count"] == 51
    assert data["summary"]["subtotal_cents"] == 459000

    data = user_client.post("/api/user/checkout/guests", json={"guest_count": "abc"}).json["data"]
    assert data["details"]["guest_count"] == 51
    data = user_client.post("/api/user/checkout/guests", json={"guest_count": 0}).json["data"]
    assert data["details"]["guest_count"] == 1


# CHECKOUT-004: back keeps entered details
def test_back(user_client, seeded):
    fill_cart(user_client, seeded)
    go_to_payment(user_client)
    data = user_client.post("/api/user/checkout/back").json["data"]
    assert data["step"] == "review"
    assert data["details"]["venue_name"] == "Palm Hall"


# CHECKOUT-005: cannot pay before reaching the payment step
def test_place_order_too_early(user_client, seeded):
    fill_cart(user_client, seeded)
    r = user_client.post("/api/user/checkout/place-order")
    assert r.status_code == 400


def test_place_order_with_empty_cart(user_client, seeded):
    r = user_client.post("/api/user/checkout/place-order")
    assert r.status_code == 400
    assert r.json["error"]["message"] == "Your cart is empty"


# CHECKOUT-006: place order
def test_place_order(app, user_client, seeded):
    fill_cart(user_client, seeded)
    go_to_payment(user_client)
    assert user_client.put("/api/user/checkout/payment-method", json={"payment_method": "card"}).status_code == 400

    r = user_client.post("/api/user/checkout/place-order")
    assert r.status_code == 201
    order = r.json["data"]
    assert order["status"] == "PENDING"
    assert order["subtotal_cents"] == 450000
    assert order["delivery_fee_cents"] == 15000
    assert order["service_fee_cents"] == 22500
    assert order["total_cents"] == 487500
    assert order["event"]["type"] == "Wedding"
    assert order["event"]["date"] == event_day()
    assert order["items"][0]["guests"] == 50

    with app.app_context():
        assert CartItem.query.filter_by(account_id=seeded["user_id"]).count() == 0
        assert Order.query.count() == 1

    # checkout starts over
    assert user_client.get("/api/user/checkout").json["data"]["step"] == "event-details"


# CHECKOUT-007: editing details after reaching payment is checked again
def test_invalid_edit_at_payment_returns_to_details(user_client, seeded):
    fill_cart(user_client, seeded)
    go_to_payment(user_client)
    r = user_client.put(
        "/api/user/checkout/details",
        json={"street_address": "", "area": "", "event_date": "2000-01-01"},
    )
    assert r.status_code == 200
    assert r.json["data"]["step"] == "event-details"

    r = user_client.post("/api/user/checkout/place-order")
    assert r.status_code == 400
    r = user_client.post("/api/user/checkout/next")
    assert set(r.json["error"]["details"]["fields"]) == {"event_date", "street_address", "area"}


def test_valid_edit_at_payment_keeps_step(user_client, seeded):
    fill_cart(user_client, seeded)
    go_to_payment(user_client)
    r = user_client.put("/api/user/checkout/details", json={"venue_name": "Rose Hall"})
    assert r.json["data"]["step"] == "payment"
    assert user_client.post("/api/user/checkout/place-order").status_code == 201


# CHECKOUT-008: wrong-typed fields are validation errors
def test_non_string_details(user_client, seeded):
    fill_cart(user_client, seeded)
    user_client.put("/api/user/checkout/details", json=dict(EVENT, event_date=12345, area=["Marina"]))
    r = user_client.post("/api/user/checkout/next")
    assert r.status_code == 400
    assert set(r.json["error"]["details"]["fields"]) == {"event_date"}
