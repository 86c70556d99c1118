from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from floorline.core.constants import ITEM_READY
from floorline.core.database import get_db
from floorline.core.timeutils import utcnow
from floorline.deps import Actor, get_current_actor, http_error
from floorline.models.order import Order
from floorline.models.order_item import OrderItem
from floorline.services.errors import FloorlineError
from floorline.services.push import subscribe, unsubscribe

router = APIRouter(prefix="/api", tags=["notifications"])

CATCH_UP_WINDOW = timedelta(hours=24)


class SubscriptionKeys(BaseModel):
    auth: Optional[str] = None
    p256dh: Optional[str] = None


class PushSubscribeRequest(BaseModel):
    endpoint: str
    auth: Optional[str] = None
    p256dh: Optional[str] = None
    keys: Optional[SubscriptionKeys] = None


class PushUnsubscribeRequest(BaseModel):
    endpoint: str


def _since_to_datetime(since: Optional[int]) -> datetime:
    if since is None:
        return utcnow() - CATCH_UP_WINDOW
    try:
        return datetime.fromtimestamp(since / 1000, tz=timezone.utc).replace(tzinfo=None)
    except (OverflowError, OSError, ValueError) as exc:
        raise HTTPException(status_code=400, detail="Invalid since timestamp") from exc


@router.post("/push/subscribe", status_code=status.HTTP_201_CREATED)
def push_subscribe(
    body: PushSubscribeRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    try:
        subscription = subscribe(db, user_id=actor.id, body=body.model_dump())
    except FloorlineError as exc:
        raise http_error(exc) from exc
    return {"data": {"id": subscription.id}}


@router.post("/push/unsubscribe")
def push_unsubscribe(
    body: PushUnsubscribeRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    try:
        unsubscribe(db, user_id=actor.id, endpoint=body.endpoint)
    except FloorlineError as exc:
        raise http_error(exc) from exc
    return {"ok": True}


@router.get("/notifications")
def list_ready_notifications(
    since: Optional[int] = Query(None, ge=0, description="epoch milliseconds"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """READY items on the caller's orders, for catching up on missed item-ready events."""
    since_dt = _since_to_datetime(since)
    items = (
        db.query(OrderItem)
        .join(Order, Order.id == OrderItem.order_id)
        .filter(
            Order.server_id == actor.id,
            OrderItem.status == ITEM_READY,
            OrderItem.ready_at >= since_dt,
        )
        .order_by(OrderItem.ready_at.desc(), OrderItem.id.desc())
        .all()
    )

    notifications: list[Dict[str, Any]] = []
    for item in items:
        table = item.order.table
        ready_ms = int(item.ready_at.replace(tzinfo=timezone.utc).timestamp() * 1000)
        notifications.append(
            {
                "id": f"{item.id}-{ready_ms}",
                "order_id": item.order_id,
                "order_item_id": item.id,
                "item_name": item.name,
                "quantity": item.quantity,
                "destination": item.destination,
                "table_number": table.number if table else None,
                "table_name": table.name if table else None,
                "timestamp": ready_ms,
            }
        )
    return {"data": notifications}
