from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from floorline.core.config import TIP_PRESET_PERCENTAGES
from floorline.core.constants import ORDER_CANCELLED, ROLE_ADMIN, ROLE_SERVER
from floorline.core.database import get_db
from floorline.core.timeutils import parse_datetime
from floorline.deps import Actor, get_current_actor, http_error, require_role
from floorline.schemas.serializers import bill_to_dict, order_item_to_dict, order_to_dict
from floorline.services import order_events
from floorline.services.errors import FloorlineError
from floorline.services.orders import (
    cancel_order,
    count_open_items,
    get_order,
    list_orders,
    open_order,
    preview_bill,
    submit_items,
)

router = APIRouter(prefix="/api", tags=["orders"])


class OpenOrderRequest(BaseModel):
    table_id: int


class SubmitItemRequest(BaseModel):
    menu_item_id: int
    quantity: int = Field(1, ge=1)
    notes: Optional[str] = Field(None, max_length=500)
    modifier_ids: List[int] = Field(default_factory=list)
    seat_number: Optional[int] = Field(None, ge=1)


class SubmitItemsRequest(BaseModel):
    items: List[SubmitItemRequest] = Field(..., min_length=1)


class OrderStatusUpdate(BaseModel):
    status: str
    reason: Optional[str] = Field(None, max_length=500)


def _parse_bound(value: Optional[str], name: str):
    if value is None:
        return None
    parsed = parse_datetime(value)
    if parsed is None:
        raise HTTPException(status_code=400, detail=f"Invalid {name} timestamp")
    return parsed


@router.get("/orders")
def list_orders_endpoint(
    status_filter: Optional[str] = Query(None, alias="status"),
    server_id: Optional[int] = None,
    table_id: Optional[int] = None,
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    db: Session = Depends(get_db),
    _actor: Actor = Depends(get_current_actor),
):
    orders = list_orders(
        db,
        status=status_filter,
        server_id=server_id,
        table_id=table_id,
        created_from=_parse_bound(date_from, "from"),
        created_to=_parse_bound(date_to, "to"),
    )
    return {"data": [order_to_dict(order) for order in orders]}


@router.post("/orders")
def open_order_endpoint(
    body: OpenOrderRequest,
    response: Response,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role([ROLE_SERVER, ROLE_ADMIN])),
):
    try:
        order, created = open_order(db, table_id=body.table_id, server_id=actor.id)
    except FloorlineError as exc:
        raise http_error(exc) from exc

    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return {"data": order_to_dict(order), "created": created}


@router.get("/orders/{order_id}")
def get_order_endpoint(
    order_id: int,
    db: Session = Depends(get_db),
    _actor: Actor = Depends(get_current_actor),
):
    try:
        order = get_order(db, order_id)
    except FloorlineError as exc:
        raise http_error(exc) from exc

    data = order_to_dict(order)
    data["open_item_count"] = count_open_items(db, order.id)
    return {"data": data}


@router.post("/orders/{order_id}/items", status_code=status.HTTP_201_CREATED)
def submit_items_endpoint(
    order_id: int,
    body: SubmitItemsRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    _actor: Actor = Depends(require_role([ROLE_SERVER, ROLE_ADMIN])),
):
    try:
        order, created = submit_items(
            db,
            order_id=order_id,
            items=[item.model_dump() for item in body.items],
        )
    except FloorlineError as exc:
        raise http_error(exc) from exc

    background_tasks.add_task(order_events.publish, order_events.items_submitted_events(order, created))
    return {
        "data": [order_item_to_dict(item) for item in created],
        "order_status": order.status,
    }


@router.patch("/orders/{order_id}/status")
def update_order_status(
    order_id: int,
    body: OrderStatusUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role([ROLE_SERVER, ROLE_ADMIN])),
):
    new_status = body.status.strip().upper()
    if new_status != ORDER_CANCELLED:
        raise HTTPException(
            status_code=400,
            detail="Only CANCELLED can be set directly; other statuses follow items and payment",
        )

    try:
        order, cancelled_items = cancel_order(db, order_id=order_id, actor_id=actor.id, reason=body.reason)
    except FloorlineError as exc:
        raise http_error(exc) from exc

    background_tasks.add_task(
        order_events.publish,
        order_events.order_cancelled_events(order, cancelled_items),
    )
    return {"data": order_to_dict(order)}


@router.get("/orders/{order_id}/bill")
def preview_bill_endpoint(
    order_id: int,
    tip: Optional[Decimal] = Query(None, ge=0),
    tip_percent: Optional[Decimal] = Query(None, ge=0, le=100),
    db: Session = Depends(get_db),
    _actor: Actor = Depends(get_current_actor),
):
    try:
        order, bill = preview_bill(db, order_id=order_id, tip=tip, tip_percent=tip_percent)
    except FloorlineError as exc:
        raise http_error(exc) from exc

    return {
        "data": {
            "order_id": order.id,
            "order_status": order.status,
            **bill_to_dict(bill),
            "tip_presets": [str(percent) for percent in TIP_PRESET_PERCENTAGES],
        }
    }
