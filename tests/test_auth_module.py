from conftest import login
from partyfud.app.extensions import db
from partyfud.app.models import CatererInfo
from partyfud.modules.auth.routes import get_password_errors

GOOD_PASSWORD = "Secret123!"


def signup(client, **overrides):
    payload = {
        "email": "new@example.com",
        "password": GOOD_PASSWORD,
        "first_name": "Sara",
        "last_name": "Ali",
    }
    payload.update(overrides)
    return client.post("/api/auth/signup", json=payload)


def test_password_rules():
    assert get_password_errors(GOOD_PASSWORD) == []
    assert get_password_errors("short") == [
        "Password must be at least 8 characters",
        "Password must include one uppercase letter",
        "Password must include one number",
        "Password must include one special character",
    ]


# AUTH-001: signup starts a session
def test_signup_logs_in(client):
    r = signup(client, email="  New@Example.com ")
    assert r.status_code == 201
    assert r.json["success"] == True
    assert r.json["data"]["user"]["email"] == "new@example.com"
    assert r.json["data"]["user"]["type"] == "USER"

    me = client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json["data"]["user"]["email"] == "new@example.com"


# AUTH-002: signup validation
def test_signup_validation(client):
    r = signup(client, password="weakpass")
    assert r.status_code == 400
    assert "uppercase" in r.json["error"]["message"]
    assert len(r.json["error"]["details"]["password"]) == 3

    assert signup(client, email="not-an-email").status_code == 400
    assert signup(client, type="ADMIN").status_code == 400
    r = signup(client, type="CATERER")
    assert r.json["error"]["message"] == "Company name is required for caterers"


# AUTH-003: duplicate email
def test_signup_duplicate_email(client, seeded):
    r = signup(client, email="user@example.com")
    assert r.status_code == 409


# AUTH-004: login / logout
def test_login_and_logout(client, seeded):
    r = login(client, password="wrong")
    assert r.status_code == 401
    assert r.json["error"]["code"] == "unauthorized"

    r = login(client)
    assert r.status_code == 200
    assert r.json["data"]["user"]["type"] == "USER"

    assert client.post("/api/auth/logout").status_code == 200
    assert client.get("/api/auth/me").status_code == 401


# AUTH-005: blocked caterers cannot log in
def test_blocked_caterer_login(app, client, seeded):
    with app.app_context():
        info = CatererInfo.query.filter_by(account_id=seeded["caterer_id"]).one()
        info.status = "BLOCKED"
        db.session.commit()
    r = login(client, "caterer@example.com")
    assert r.status_code == 403


# AUTH-006: profile update
def test_update_profile(user_client):
    r = user_client.put("/api/auth/profile", json={"first_name": "Layla", "phone": "+971500000000"})
    assert r.status_code == 200
    assert r.json["data"]["user"]["first_name"] == "Layla"
    assert r.json["data"]["user"]["phone"] == "+971500000000"

    r = user_client.put("/api/auth/profile", json={"last_name": "  "})
    assert r.status_code == 400


def test_caterer_signup_is_not_profile_complete(client):
    r = signup(client, type="CATERER", company_name="Mezze Co")
    assert r.status_code == 201
    assert r.json["data"]["user"]["profile_completed"] is False


def test_switching_account_drops_checkout(client, seeded):
    login(client)
    client.put("/api/user/checkout/details", json={"venue_name": "Palm Hall"})
    with client.session_transaction() as sess:
        sess["event_details"] = {"event_type": "Wedding"}

    assert signup(client).status_code == 201
    with client.session_transaction() as sess:
        assert "event_details" not in sess
    assert client.get("/api/user/checkout").json["data"]["details"]["venue_name"] == ""


def test_login_again_keeps_checkout(client, seeded):
    login(client)
    client.put("/api/user/checkout/details", json={"venue_name": "Palm Hall"})
    login(client)
    assert client.get("/api/user/checkout").json["data"]["details"]["venue_name"] == "Palm Hall"
