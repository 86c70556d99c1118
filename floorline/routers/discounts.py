from __future__ import annotations

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from floorline.core.constants import ROLE_ADMIN, ROLE_SERVER
from floorline.core.database import get_db
from floorline.deps import Actor, http_error, require_role
from floorline.schemas.serializers import discount_to_dict, order_discount_to_dict
from floorline.services.discounts import apply_discount, list_applications, list_definitions, remove_discount
from floorline.services.errors import FloorlineError

router = APIRouter(prefix="/api", tags=["discounts"])

DISCOUNT_ROLES = [ROLE_SERVER, ROLE_ADMIN]


class DiscountApplicationCreate(BaseModel):
    discount_id: Optional[int] = None
    type: Optional[str] = None
    value: Optional[Decimal] = None
    note: Optional[str] = Field(None, max_length=500)


@router.get("/discounts")
def list_discounts(
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    _actor: Actor = Depends(require_role(DISCOUNT_ROLES)),
):
    return {"data": [discount_to_dict(discount) for discount in list_definitions(db, include_inactive=include_inactive)]}


@router.get("/orders/{order_id}/discounts")
def list_order_discounts(
    order_id: int,
    db: Session = Depends(get_db),
    _actor: Actor = Depends(require_role(DISCOUNT_ROLES)),
):
    try:
        applications = list_applications(db, order_id)
    except FloorlineError as exc:
        raise http_error(exc) from exc
    return {"data": [order_discount_to_dict(entry) for entry in applications]}


@router.post("/orders/{order_id}/discounts", status_code=status.HTTP_201_CREATED)
def create_order_discount(
    order_id: int,
    body: DiscountApplicationCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(DISCOUNT_ROLES)),
):
    try:
        application = apply_discount(
            db,
            order_id=order_id,
            actor_id=actor.id,
            discount_id=body.discount_id,
            discount_type=body.type,
            value=body.value,
            note=body.note,
        )
    except FloorlineError as exc:
        raise http_error(exc) from exc
    return {"data": order_discount_to_dict(application)}


@router.delete("/orders/{order_id}/discounts/{application_id}")
def delete_order_discount(
    order_id: int,
    application_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role(DISCOUNT_ROLES)),
):
    try:
        remove_discount(db, order_id=order_id, application_id=application_id, actor_id=actor.id)
    except FloorlineError as exc:
        raise http_error(exc) from exc
    return {"ok": True}
