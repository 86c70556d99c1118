from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from floorline.core.config import DISPLAY_POLL_INTERVAL_SECONDS
from floorline.core.constants import ACTIVE_ORDER_STATUSES, ITEM_PREPARING, ITEM_READY, ITEM_SENT
from floorline.core.database import get_db
from floorline.core.stations import normalize_destination
from floorline.deps import Actor, get_current_actor
from floorline.models.order import Order
from floorline.models.order_item import OrderItem
from floorline.schemas.serializers import order_item_to_dict

router = APIRouter(prefix="/api/kds", tags=["kds"])

QUEUE_STATUSES = (ITEM_SENT, ITEM_PREPARING, ITEM_READY)


@router.get("/items")
def station_queue(
    destination: str = Query(...),
    db: Session = Depends(get_db),
    _actor: Actor = Depends(get_current_actor),
):
    """Authoritative station queue; displays re-read it every poll interval."""
    try:
        station = normalize_destination(destination)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    items = (
        db.query(OrderItem)
        .join(Order, Order.id == OrderItem.order_id)
        .filter(
            OrderItem.destination == station,
            OrderItem.status.in_(QUEUE_STATUSES),
            Order.status.in_(ACTIVE_ORDER_STATUSES),
        )
        .order_by(OrderItem.sent_at.asc(), OrderItem.id.asc())
        .all()
    )

    entries: List[Dict[str, Any]] = []
    for item in items:
        order = item.order
        entry = order_item_to_dict(item)
        entry["table"] = {
            "id": order.table_id,
            "number": order.table.number if order.table else None,
            "name": order.table.name if order.table else None,
        }
        entry["server_id"] = order.server_id
        entries.append(entry)

    return {
        "destination": station,
        "poll_interval_seconds": DISPLAY_POLL_INTERVAL_SECONDS,
        "data": entries,
    }
