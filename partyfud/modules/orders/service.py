from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional

from flask import current_app

from partyfud.app.common.errors import abort_json
from partyfud.app.extensions import db
from partyfud.app.models import Account, Order, OrderItem, Package
from partyfud.modules.catalog.serializers import caterer_ref
from partyfud.modules.packages.pricing import OrderTotals, totals_for
from partyfud.modules.packages.service import touch

logger = logging.getLogger(__name__)

ORDER_STATUSES = ("PENDING", "CONFIRMED", "CANCELLED", "COMPLETED")
CANCELLABLE = ("PENDING",)

EVENT_FIELDS = (
    "event_time",
    "event_type",
    "guest_count",
    "venue_name",
    "street_address",
    "area",
    "special_instructions",
)


@dataclass
class OrderLine:
    package: Package
    guests: int
    price_at_time_cents: int
    location: Optional[str] = None
    date: Optional[datetime] = None


def current_totals(prices: Iterable[int]) -> OrderTotals:
    return totals_for(
        prices,
        delivery_fee_cents=current_app.config["DELIVERY_FEE_CENTS"],
        service_fee_rate=current_app.config["SERVICE_FEE_RATE"],
    )


def _event_day(details: dict, lines: list[OrderLine]) -> Optional[date]:
    raw = details.get("event_date")
    if raw:
        try:
            return date.fromisoformat(str(raw)[:10])
        except ValueError:
            abort_json(400, "validation_error", "event_date must be an ISO date (YYYY-MM-DD)")
    dated = [line.date for line in lines if line.date is not None]
    return dated[0].date() if dated else None


def place_order(
    account: Account,
    lines: list[OrderLine],
    details: Optional[dict] = None,
    payment_method: str = "pay_on_delivery",
) -> Order:
    """Create a PENDING order from priced lines. The caller commits."""
    if not lines:
        abort_json(400, "validation_error", "Your cart is empty")

    details = details or {}
    totals = current_totals(line.price_at_time_cents for line in lines)
    order = Order(
        account_id=account.id,
        status="PENDING",
        payment_method=payment_method,
        event_date=_event_day(details, lines),
        subtotal_cents=totals.subtotal_cents,
        delivery_fee_cents=totals.delivery_fee_cents,
        service_fee_cents=totals.service_fee_cents,
        total_cents=totals.total_cents,
        currency=current_app.config["CURRENCY"],
    )
    for field in EVENT_FIELDS:
        if details.get(field) not in (None, ""):
            setattr(order, field, details[field])

    for line in lines:
        order.items.append(
            OrderItem(
                package_id=line.package.id,
                package=line.package,
                guests=line.guests,
                location=line.location,
                date=line.date,
                price_at_time_cents=line.price_at_time_cents,
            )
        )
    db.session.add(order)
    db.session.flush()
    logger.info("Order %s placed by account %s: %s item(s), total %s", order.id, account.id, len(lines), order.total_cents)
    return order


def cancel_order(order: Order) -> Order:
    if order.status == "CANCELLED":
        return order
    if order.status not in CANCELLABLE:
        abort_json(409, "conflict", f"Order cannot be cancelled once {order.status.lower()}")
    order.status = "CANCELLED"
    touch(order)
    logger.info("Order %s cancelled", order.id)
    return order


def order_to_dict(order: Order) -> dict:
    return {
        "id": order.id,
        "status": order.status,
        "payment_method": order.payment_method,
        "event": {
            "date": order.event_date.isoformat() if order.event_date else None,
            "time": order.event_time,
            "type": order.event_type,
            "guest_count": order.guest_count,
            "venue_name": order.venue_name,
            "street_address": order.street_address,
            "area": order.area,
            "special_instructions": order.special_instructions,
        },
        "items": [
            {
                "id": i.id,
                "package": {
                    "id": i.package.id,
                    "name": i.package.name,
                    "caterer": caterer_ref(i.package.caterer),
                },
                "guests": i.guests,
                "location": i.location,
                "date": i.date.isoformat() if i.date else None,
                "price_at_time_cents": i.price_at_time_cents,
            }
            for i in order.items
        ],
        "subtotal_cents": order.subtotal_cents,
        "delivery_fee_cents": order.delivery_fee_cents,
        "service_fee_cents": order.service_fee_cents,
        "total_cents": order.total_cents,
        "currency": order.currency,
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "updated_at": order.updated_at.isoformat() if order.updated_at else None,
    }
