from __future__ import annotations

from typing import Any, Iterable

from floorline.core.constants import ITEM_READY
from floorline.models.order import Order
from floorline.models.order_item import OrderItem
from floorline.models.payment import Payment
from floorline.services import event_bus as bus
from floorline.services.event_bus import event_bus

Event = tuple[str, dict[str, Any]]


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def build_table_payload(order: Order) -> dict[str, Any]:
    table = order.table
    return {
        "id": order.table_id,
        "number": table.number if table else None,
        "name": table.name if table else None,
    }


def build_item_payload(item: OrderItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "order_id": item.order_id,
        "name": item.name,
        "quantity": item.quantity,
        "notes": item.notes,
        "seat_number": item.seat_number,
        "destination": item.destination,
        "status": item.status,
        "version": item.version,
        "modifiers": [modifier.name for modifier in item.modifiers],
        "sent_at": _iso(item.sent_at),
    }


def items_submitted_events(order: Order, items: Iterable[OrderItem]) -> list[Event]:
    """One event per destination, built from the items' own destination snapshot."""
    partitions: dict[str, list[dict[str, Any]]] = {}
    for item in items:
        partitions.setdefault(item.destination, []).append(build_item_payload(item))

    table = build_table_payload(order)
    return [
        (
            bus.ITEMS_SUBMITTED,
            {
                "destination": destination,
                "order_id": order.id,
                "table": table,
                "server_id": order.server_id,
                "items": entries,
            },
        )
        for destination, entries in sorted(partitions.items())
        if entries
    ]


def item_status_events(item: OrderItem, previous_status: str | None, *, order_completed: bool = False) -> list[Event]:
    order = item.order
    payload = {
        "item_id": item.id,
        "order_id": item.order_id,
        "status": item.status,
        "previous_status": previous_status,
        "destination": item.destination,
        "item_name": item.name,
        "quantity": item.quantity,
        "version": item.version,
        "void_reason": item.void_reason,
        "table": build_table_payload(order),
        "server_id": order.server_id,
        "order_status": order.status,
        "order_completed": order_completed,
        "ready_at": _iso(item.ready_at),
    }
    events: list[Event] = [(bus.ITEM_STATUS_CHANGED, payload)]
    if item.status == ITEM_READY:
        events.append((bus.ITEM_READY, dict(payload)))
    return events


def order_cancelled_events(order: Order, cancelled_items: Iterable[OrderItem]) -> list[Event]:
    events: list[Event] = []
    for item in cancelled_items:
        events.extend(item_status_events(item, previous_status=None))
    return events


def order_closed_events(order: Order, payment: Payment) -> list[Event]:
    return [
        (
            bus.ORDER_CLOSED,
            {
                "order_id": order.id,
                "table": build_table_payload(order),
                "server_id": order.server_id,
                "method": payment.method,
                "total": str(payment.total),
                "tip": str(payment.tip),
                "closed_at": _iso(payment.created_at),
            },
        )
    ]


def publish(events: list[Event]) -> None:
    event_bus.emit_many(events)
