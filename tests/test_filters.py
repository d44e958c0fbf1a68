from werkzeug.datastructures import MultiDict

from partyfud.app.models import Occasion, Package
from partyfud.modules.catalog.filters import (
    UNBOUNDED_MAX_PRICE_CENTS,
    CatererFilter,
    PackageFilter,
    compact_params,
    filter_packages,
)


def package(pid, total, people, occasion_ids=()):
    return Package(
        id=pid,
        name=f"P{pid}",
        total_price_cents=total,
        minimum_people=people,
        occasions=[Occasion(id=o, name=f"O{o}") for o in occasion_ids],
    )


PACKAGES = [
    package(1, 100000, 10, [1]),
    package(2, 250000, 50, [2]),
    package(3, 6000000, 100, [1, 2]),
]


def ids(packages):
    return [p.id for p in packages]


def test_compact_params_drops_empty_values():
    params = {"search": "", "guests": None, "budget": float("nan"), "location": "Dubai", "fixed": False}
    assert compact_params(params) == {"location": "Dubai", "fixed": False}


def test_filter_by_occasion():
    assert ids(filter_packages(PACKAGES, occasion_ids=[2])) == [2, 3]


def test_filter_by_guest_range():
    assert ids(filter_packages(PACKAGES, min_guests=20, max_guests=60)) == [2]


def test_filter_by_price():
    assert ids(filter_packages(PACKAGES, min_price_cents=200000)) == [2, 3]
    assert ids(filter_packages(PACKAGES, max_price_cents=300000)) == [1, 2]


def test_slider_maximum_means_no_upper_bound():
    assert ids(filter_packages(PACKAGES, max_price_cents=UNBOUNDED_MAX_PRICE_CENTS)) == [1, 2, 3]


def test_package_filter_from_query_args():
    args = MultiDict(
        [
            ("occasion_ids", "1,2"),
            ("occasion_ids", "5"),
            ("min_price", "1000"),
            ("max_price", ""),
            ("sort_by", "bogus"),
            ("menu_type", "Fixed"),
        ]
    )
    f = PackageFilter.from_args(args)
    assert f.occasion_ids == [1, 2, 5]
    assert f.min_price_cents == 100000
    assert f.max_price_cents is None
    assert f.sort_by == "created_desc"
    assert f.menu_type == "fixed"


def test_caterer_filter_from_payload():
    f = CatererFilter.from_payload(
        {"search": " kitchen ", "guests": "80", "maxBudget": 95.5, "menuType": {"liveStations": True}, "date": "bad"}
    )
    assert f.search == "kitchen"
    assert f.guests == 80
    assert f.max_budget_cents == 9550
    assert f.live_stations is True
    assert f.date is None


def test_caterer_filter_ignores_wrong_types():
    f = CatererFilter.from_payload({"search": 5, "location": ["Dubai"], "menuType": "fixed", "guests": "inf"})
    assert f.search == "5"
    assert f.location == "['Dubai']"
    assert f.fixed is False
    assert f.guests is None


def test_guest_range_treats_missing_minimum_as_one():
    loose = package(4, 1000, None)
    assert ids(filter_packages([loose], min_guests=1)) == [4]
    assert ids(filter_packages([loose], max_guests=1)) == [4]
    assert ids(filter_packages([loose], min_guests=2)) == []
