from conftest import login


def pending_caterer(client, seeded):
    client.post(
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
    client.put(
        "/api/caterer/onboarding/draft",
        json={
            "step": 1,
            "data": {
                "business_name": "Mezze Co",
                "business_type": "Home Kitchen",
                "region": "Dubai",
                "cuisine_types": [seeded["cuisines"]["Arabic"]],
            },
        },
    )
    assert client.post("/api/caterer/onboarding/submit").status_code == 200
    client.post("/api/auth/logout")


# ADMIN-001: only admins get in
def test_admin_requires_role(client, seeded):
    assert client.get("/api/admin").status_code == 401
    login(client)
    assert client.get("/api/admin").status_code == 403


def test_overview(admin_client, seeded):
    data = admin_client.get("/api/admin").json["data"]
    assert data["users"] == 1
    assert data["caterers"]["APPROVED"] == 1
    assert data["caterers"]["PENDING"] == 0
    assert data["orders"] == 0


# ADMIN-002: review a pending caterer
def test_approve_caterer(client, seeded):
    pending_caterer(client, seeded)
    login(client, "admin@example.com")

    pending = client.get("/api/admin/catererinfo?status=pending").json
    assert pending["count"] == 1
    info = pending["data"][0]
    assert info["caterer"]["email"] == "chef@example.com"
    assert client.get("/api/admin/catererinfo").json["count"] == 2

    assert client.put(f"/api/admin/catererinfo/{info['id']}", json={"status": "DRAFT"}).status_code == 400
    r = client.put(f"/api/admin/catererinfo/{info['id']}", json={"status": "approved"})
    assert r.status_code == 200
    assert r.json["data"]["status"] == "APPROVED"
    assert client.get(f"/api/admin/catererinfo/{info['id']}").json["data"]["business_name"] == "Mezze Co"

    client.post("/api/auth/logout")
    assert client.post("/api/user/caterers", json={}).json["count"] == 2


def test_unknown_caterer_info(admin_client, seeded):
    assert admin_client.get("/api/admin/catererinfo/9999").status_code == 404
    assert admin_client.get("/api/admin/catererinfo?status=weird").status_code == 400
