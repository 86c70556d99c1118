from __future__ import annotations

from sqlalchemy.orm import Session

from floorline.core.constants import (
    EVENT_ITEM_READY,
    EVENT_NEW_ITEMS,
    EVENT_ORDER_CLOSED,
    EVENT_STATUS_CHANGED,
)
from floorline.core.database import SessionLocal
from floorline.core.stations import ADMIN_CHANNEL, server_channel, station_channel
from floorline.realtime.service import realtime_service
from floorline.services import event_bus as bus
from floorline.services.event_bus import event_bus
from floorline.services.push import send_to_user


def _with_session(handler):
    def wrapper(payload: dict) -> None:
        db: Session = SessionLocal()
        try:
            handler(db, payload)
        finally:
            db.close()

    wrapper.__name__ = handler.__name__
    return wrapper


def _table_label(table: dict | None) -> str:
    table = table or {}
    return table.get("name") or f"Table {table.get('number') or table.get('id')}"


def handle_items_submitted(payload: dict) -> None:
    realtime_service.publish(
        station_channel(payload["destination"]),
        EVENT_NEW_ITEMS,
        {
            "orderId": payload["order_id"],
            "table": payload["table"],
            "server": payload["server_id"],
            "items": payload["items"],
        },
    )


def handle_item_status_changed(payload: dict) -> None:
    realtime_service.publish(
        station_channel(payload["destination"]),
        EVENT_STATUS_CHANGED,
        {
            "itemId": payload["item_id"],
            "status": payload["status"],
            "orderId": payload["order_id"],
            "version": payload.get("version"),
        },
    )


def handle_item_ready(payload: dict) -> None:
    realtime_service.publish(
        server_channel(payload["server_id"]),
        EVENT_ITEM_READY,
        {
            "order": {"id": payload["order_id"], "status": payload.get("order_status")},
            "item": {
                "id": payload["item_id"],
                "name": payload["item_name"],
                "quantity": payload["quantity"],
                "destination": payload["destination"],
            },
            "table": payload["table"],
        },
    )


@_with_session
def push_item_ready(db: Session, payload: dict) -> None:
    send_to_user(
        db,
        user_id=payload["server_id"],
        payload={
            "title": f"{payload['item_name']} ready",
            "body": f"{_table_label(payload.get('table'))}: {payload['quantity']}x {payload['item_name']}",
            "tag": f"item-ready-{payload['item_id']}",
            "data": {
                "orderId": payload["order_id"],
                "orderItemId": payload["item_id"],
                "destination": payload["destination"],
            },
        },
    )


def handle_order_closed(payload: dict) -> None:
    realtime_service.publish(ADMIN_CHANNEL, EVENT_ORDER_CLOSED, payload)


def register_event_handlers() -> None:
    event_bus.subscribe(bus.ITEMS_SUBMITTED, handle_items_submitted)
    event_bus.subscribe(bus.ITEM_STATUS_CHANGED, handle_item_status_changed)
    event_bus.subscribe(bus.ITEM_READY, handle_item_ready)
    event_bus.subscribe(bus.ITEM_READY, push_item_ready)
    event_bus.subscribe(bus.ORDER_CLOSED, handle_order_closed)


register_event_handlers()
