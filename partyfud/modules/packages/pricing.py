"""Package and checkout price arithmetic.

All amounts are integer cents. Derived amounts are rounded half-up, which
matches how the storefront displays scaled prices.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from partyfud.app.models import Package, PackageItem

DEFAULT_DELIVERY_FEE_CENTS = 15000
DEFAULT_SERVICE_FEE_RATE = 0.05


def round_half_up(value) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def people_count(package: Package) -> int:
    return package.minimum_people or 1


def price_per_person(package: Package) -> float:
    if package.price_per_person_cents:
        return float(package.price_per_person_cents)
    return package.total_price_cents / people_count(package)


def scale_package_price(package: Package, guests: int) -> int:
    """Package total scaled from its base head count to `guests`."""
    return round_half_up(Decimal(package.total_price_cents) * guests / people_count(package))


def item_unit_price(item: PackageItem) -> int:
    if item.price_at_time_cents:
        return item.price_at_time_cents
    if item.dish is not None and item.dish.price_cents:
        return item.dish.price_cents
    return 0


def selected_dishes_price(items: Iterable[PackageItem], selected: set[int], guests: int) -> int:
    total = Decimal(0)
    for item in items:
        if item.dish_id in selected:
            total += Decimal(item_unit_price(item)) * (item.quantity or 1) * guests
    return round_half_up(total)


def is_customisable(package: Package) -> bool:
    return (package.customisation_type or "").upper() in {"CUSTOMISABLE", "CUSTOMIZABLE"}


def quote_package(package: Package, guests: int, selected: Optional[set[int]] = None) -> int:
    """Price shown on the package page for a guest count and dish selection."""
    if is_customisable(package) and not package.category_selections:
        return selected_dishes_price(package.items, selected or set(), guests)
    return scale_package_price(package, guests)


def catalogue_price(items: Iterable[PackageItem], minimum_people: int) -> int:
    """Starting price of a package whose price is derived from its dishes."""
    per_person = sum(item_unit_price(i) * (i.quantity or 1) for i in items)
    return per_person * (minimum_people or 1)


def checkout_item_price(per_person: float, guests: int) -> int:
    return round_half_up(Decimal(str(per_person)) * guests)


@dataclass
class OrderTotals:
    item_prices: list[int] = field(default_factory=list)
    subtotal_cents: int = 0
    delivery_fee_cents: int = 0
    service_fee_cents: int = 0
    total_cents: int = 0

    def to_dict(self) -> dict:
        return {
            "item_prices_cents": self.item_prices,
            "subtotal_cents": self.subtotal_cents,
            "delivery_fee_cents": self.delivery_fee_cents,
            "service_fee_cents": self.service_fee_cents,
            "total_cents": self.total_cents,
        }


def totals_for(
    prices: Iterable[int],
    delivery_fee_cents: int = DEFAULT_DELIVERY_FEE_CENTS,
    service_fee_rate: float = DEFAULT_SERVICE_FEE_RATE,
) -> OrderTotals:
    """Subtotal of line prices plus the fixed delivery fee and a percentage service fee."""
    prices = list(prices)
    subtotal = sum(prices)
    service_fee = round_half_up(Decimal(subtotal) * Decimal(str(service_fee_rate)))
    return OrderTotals(
        item_prices=prices,
        subtotal_cents=subtotal,
        delivery_fee_cents=delivery_fee_cents,
        service_fee_cents=service_fee,
        total_cents=subtotal + delivery_fee_cents + service_fee,
    )


def order_totals(
    per_person_prices: Iterable[float],
    guests: int,
    delivery_fee_cents: int = DEFAULT_DELIVERY_FEE_CENTS,
    service_fee_rate: float = DEFAULT_SERVICE_FEE_RATE,
) -> OrderTotals:
    prices = [checkout_item_price(p, guests) for p in per_person_prices]
    return totals_for(prices, delivery_fee_cents, service_fee_rate)


def format_price(cents: int, currency: str = "AED") -> str:
    amount = Decimal(cents) / 100
    if amount == amount.to_integral_value():
        return f"{currency} {int(amount):,}"
    return f"{currency} {amount:,.2f}"
