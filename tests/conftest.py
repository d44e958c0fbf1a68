import os
import sys
from datetime import date, timedelta

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from partyfud.app.cli import DEMO_PASSWORD, _account, seed_demo_caterer, seed_metadata
from partyfud.app.config import TestingConfig
from partyfud.app.extensions import db
from partyfud.app.factory import create_app
from partyfud.app.models import Dish, Package


@pytest.fixture()
def app(tmp_path):
    class Config(TestingConfig):
        UPLOAD_FOLDER = str(tmp_path / "uploads")

    app = create_app(Config)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture()
def seeded(app):
    """Reference data, an approved caterer with a fixed and a customisable package, and demo accounts."""
    with app.app_context():
        meta = seed_metadata()
        caterer = seed_demo_caterer(meta)
        user = _account("user@example.com", "Demo", "User", "USER")
        admin = _account("admin@example.com", "Demo", "Admin", "ADMIN")
        db.session.commit()

        dishes = {d.name: d.id for d in Dish.query.filter_by(caterer_id=caterer.id).all()}
        packages = {p.name: p.id for p in Package.query.filter_by(caterer_id=caterer.id).all()}
        return {
            "caterer_id": caterer.id,
            "user_id": user.id,
            "admin_id": admin.id,
            "dishes": dishes,
            "fixed_package_id": packages["Classic Arabic Feast"],
            "custom_package_id": packages["Build Your Own Mezze"],
            "occasions": {name: o.id for name, o in meta["occasions"].items()},
            "cuisines": {name: c.id for name, c in meta["cuisines"].items()},
            "categories": {name: c.id for name, c in meta["categories"].items()},
        }


def login(client, email="user@example.com", password=DEMO_PASSWORD):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def event_day(days_ahead=7):
    return (date.today() + timedelta(days=days_ahead)).isoformat()


@pytest.fixture()
def user_client(client, seeded):
    r = login(client)
    assert r.status_code == 200
    return client


@pytest.fixture()
def caterer_client(client, seeded):
    r = login(client, "caterer@example.com")
    assert r.status_code == 200
    return client


@pytest.fixture()
def admin_client(client, seeded):
    r = login(client, "admin@example.com")
    assert r.status_code == 200
    return client
