"""Dish selection rules for customisable packages.

A caterer may cap how many dishes a customer picks per category
(`PackageCategorySelection.num_dishes_to_select`). A missing row or a NULL
limit means the category is unrestricted.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from partyfud.app.models import Package, PackageItem
from partyfud.modules.packages.pricing import is_customisable

OTHER_CATEGORY = "Other"


class SelectionError(ValueError):
    """The dish selection does not satisfy the package rules."""

    def __init__(self, message: str, category: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.category = category


class SelectionLimitError(SelectionError):
    pass


def _plural(n: int) -> str:
    return "dish" if n == 1 else "dishes"


def item_category(item: PackageItem) -> str:
    dish = item.dish
    if dish is not None and dish.category is not None and dish.category.name:
        return dish.category.name
    return OTHER_CATEGORY


def group_items_by_category(items: Iterable[PackageItem]) -> Dict[str, List[PackageItem]]:
    grouped: Dict[str, List[PackageItem]] = {}
    for item in items:
        grouped.setdefault(item_category(item), []).append(item)
    return grouped


def category_limits(package: Package) -> Dict[str, Optional[int]]:
    if not is_customisable(package):
        return {}
    return {
        (s.category.name if s.category is not None else ""): s.num_dishes_to_select
        for s in package.category_selections
    }


def selected_count(grouped: Dict[str, List[PackageItem]], category: str, selected: set[int]) -> int:
    return sum(1 for item in grouped.get(category, []) if item.dish_id in selected)


def can_select_more(package: Package, category: str, selected: set[int]) -> bool:
    if not is_customisable(package):
        return False
    if not package.category_selections:
        return True
    limits = category_limits(package)
    if category not in limits:
        return True
    limit = limits[category]
    if limit is None:
        return True
    grouped = group_items_by_category(package.items)
    return selected_count(grouped, category, selected) < limit


def _category_of_dish(package: Package, dish_id: int) -> str:
    for item in package.items:
        if item.dish_id == dish_id:
            return item_category(item)
    raise SelectionError(f"Dish {dish_id} is not part of this package")


def toggle_dish(package: Package, selected: Iterable[int], dish_id: int) -> set[int]:
    """Return the selection with `dish_id` flipped.

    Raises SelectionLimitError when adding would exceed the category limit.
    """
    current = set(selected)
    if not is_customisable(package):
        return current
    category = _category_of_dish(package, dish_id)
    if dish_id in current:
        current.discard(dish_id)
        return current
    if not can_select_more(package, category, current):
        limit = category_limits(package).get(category)
        shown = "all" if limit is None else limit
        raise SelectionLimitError(f"You can only select {shown} dish(es) from {category}", category)
    current.add(dish_id)
    return current


def validate_selection(package: Package, selected: Iterable[int]) -> set[int]:
    """Check a complete selection before it goes into the cart."""
    chosen = set(selected)
    if not is_customisable(package):
        return chosen

    known = {item.dish_id for item in package.items}
    unknown = sorted(chosen - known)
    if unknown:
        raise SelectionError(f"Dish {unknown[0]} is not part of this package")

    if not package.category_selections:
        if not chosen:
            raise SelectionError("Please select at least one dish")
        return chosen

    grouped = group_items_by_category(package.items)
    for selection in package.category_selections:
        category = selection.category.name if selection.category is not None else ""
        limit = selection.num_dishes_to_select
        count = selected_count(grouped, category, chosen)
        available = len(grouped.get(category, []))
        if count == 0 and available > 0:
            raise SelectionError(f"Please select at least one dish from {category} category", category)
        if limit is not None and count > limit:
            raise SelectionLimitError(
                f"You can only select up to {limit} {_plural(limit)} from {category} category", category
            )
    return chosen


def selection_summary(package: Package, selected: set[int]) -> list[dict]:
    grouped = group_items_by_category(package.items)
    limits = category_limits(package)
    return [
        {
            "category": category,
            "limit": limits.get(category),
            "selected": selected_count(grouped, category, selected),
            "available": len(items),
            "can_select_more": can_select_more(package, category, selected),
        }
        for category, items in grouped.items()
    ]
