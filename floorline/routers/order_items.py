from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from floorline.core.constants import ITEM_CANCELLED, ROLE_ADMIN, ROLE_SERVER
from floorline.core.database import get_db
from floorline.deps import Actor, get_current_actor, http_error
from floorline.schemas.serializers import order_item_to_dict
from floorline.services import order_events
from floorline.services.errors import FloorlineError
from floorline.services.orders import transition_item

router = APIRouter(prefix="/api", tags=["order-items"])

VOID_ROLES = {ROLE_SERVER, ROLE_ADMIN}


class ItemStatusUpdate(BaseModel):
    status: str
    void_reason: Optional[str] = None
    void_note: Optional[str] = Field(None, max_length=500)
    expected_version: Optional[int] = Field(None, ge=1)


@router.patch("/order-items/{item_id}/status")
def update_item_status(
    item_id: int,
    body: ItemStatusUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    if body.status.strip().upper() == ITEM_CANCELLED and actor.role not in VOID_ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only servers can void items")

    try:
        result = transition_item(
            db,
            item_id=item_id,
            status=body.status,
            actor_id=actor.id,
            void_reason=body.void_reason,
            void_note=body.void_note,
            expected_version=body.expected_version,
        )
    except FloorlineError as exc:
        raise http_error(exc) from exc

    background_tasks.add_task(
        order_events.publish,
        order_events.item_status_events(
            result.item,
            result.previous_status,
            order_completed=result.order_completed,
        ),
    )
    return {
        "data": order_item_to_dict(result.item),
        "previous_status": result.previous_status,
        "order_status": result.item.order.status,
        "order_completed": result.order_completed,
    }
