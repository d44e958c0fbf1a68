import pytest

from partyfud.app.models import Category, Dish, Package, PackageCategorySelection, PackageItem
from partyfud.modules.packages.customization import (
    SelectionError,
    SelectionLimitError,
    can_select_more,
    category_limits,
    group_items_by_category,
    selected_count,
    selection_summary,
    toggle_dish,
    validate_selection,
)

STARTERS = Category(name="Starters")
MAINS = Category(name="Main Course")
DESSERTS = Category(name="Desserts")


def item(dish_id, category):
    return PackageItem(dish_id=dish_id, dish=Dish(id=dish_id, name=f"Dish {dish_id}", price_cents=1000, category=category))


@pytest.fixture()
def package():
    # Starters: 1, 2 (pick 1) / Main: 3, 4 (pick 1) / Desserts: 5 (no limit)
    return Package(
        name="Mezze",
        total_price_cents=290000,
        minimum_people=20,
        customisation_type="CUSTOMISABLE",
        items=[item(1, STARTERS), item(2, STARTERS), item(3, MAINS), item(4, MAINS), item(5, DESSERTS)],
        category_selections=[
            PackageCategorySelection(category=STARTERS, num_dishes_to_select=1),
            PackageCategorySelection(category=MAINS, num_dishes_to_select=1),
            PackageCategorySelection(category=DESSERTS, num_dishes_to_select=None),
        ],
    )


def test_toggle_adds_and_removes(package):
    selected = toggle_dish(package, set(), 1)
    assert selected == {1}
    assert toggle_dish(package, selected, 1) == set()


def test_toggle_respects_category_limit(package):
    with pytest.raises(SelectionLimitError) as err:
        toggle_dish(package, {1}, 2)
    assert err.value.category == "Starters"
    assert err.value.message == "You can only select 1 dish(es) from Starters"


def test_unlimited_category_never_blocks(package):
    assert can_select_more(package, "Desserts", {5})
    assert not can_select_more(package, "Starters", {1})


def test_toggle_unknown_dish(package):
    with pytest.raises(SelectionError):
        toggle_dish(package, set(), 99)


def test_fixed_package_ignores_toggles(package):
    package.customisation_type = "FIXED"
    assert toggle_dish(package, {1}, 2) == {1}
    assert not can_select_more(package, "Starters", set())


def test_validate_requires_each_category(package):
    with pytest.raises(SelectionError) as err:
        validate_selection(package, {1})
    assert err.value.message == "Please select at least one dish from Main Course category"
    assert validate_selection(package, {1, 3, 5}) == {1, 3, 5}


def test_validate_rejects_over_limit(package):
    with pytest.raises(SelectionLimitError) as err:
        validate_selection(package, {1, 2, 3, 5})
    assert "up to 1 dish from Starters" in err.value.message


def test_validate_without_limits_needs_a_dish(package):
    package.category_selections = []
    with pytest.raises(SelectionError):
        validate_selection(package, set())
    assert validate_selection(package, {2}) == {2}


def test_selection_summary(package):
    summary = {row["category"]: row for row in selection_summary(package, {1})}
    assert summary["Starters"]["selected"] == 1
    assert summary["Starters"]["can_select_more"] is False
    assert summary["Desserts"]["limit"] is None
    assert summary["Main Course"]["available"] == 2


def test_limits_and_grouping(package):
    assert category_limits(package) == {"Starters": 1, "Main Course": 1, "Desserts": None}
    grouped = group_items_by_category(package.items + [PackageItem(dish_id=9)])
    assert [i.dish_id for i in grouped["Starters"]] == [1, 2]
    assert [i.dish_id for i in grouped["Other"]] == [9]
    assert selected_count(grouped, "Main Course", {1, 3, 4}) == 2
    assert selected_count(grouped, "Salads", {1}) == 0


def test_fixed_package_has_no_limits(package):
    package.customisation_type = "FIXED"
    assert category_limits(package) == {}
