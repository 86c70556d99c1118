from __future__ import annotations

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from floorline.core.constants import ROLE_ADMIN, ROLE_SERVER
from floorline.core.database import get_db
from floorline.deps import Actor, http_error, require_role
from floorline.schemas.serializers import order_to_dict, payment_to_dict
from floorline.services import order_events
from floorline.services.errors import FloorlineError
from floorline.services.orders import settle_payment

router = APIRouter(prefix="/api", tags=["payments"])


class PaymentCreate(BaseModel):
    order_id: int
    method: str
    tip: Optional[Decimal] = Field(None, ge=0)
    tip_percent: Optional[Decimal] = Field(None, ge=0, le=100)


@router.post("/payments", status_code=status.HTTP_201_CREATED)
def create_payment(
    body: PaymentCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role([ROLE_SERVER, ROLE_ADMIN])),
):
    try:
        payment = settle_payment(
            db,
            order_id=body.order_id,
            method=body.method,
            actor_id=actor.id,
            tip=body.tip,
            tip_percent=body.tip_percent,
        )
    except FloorlineError as exc:
        raise http_error(exc) from exc

    order = payment.order
    background_tasks.add_task(order_events.publish, order_events.order_closed_events(order, payment))
    return {"data": payment_to_dict(payment), "order": order_to_dict(order, include_items=False)}
