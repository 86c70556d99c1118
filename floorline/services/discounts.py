from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session

from floorline.core.constants import (
    AUDIT_DISCOUNT_APPLIED,
    AUDIT_DISCOUNT_REMOVED,
    DISCOUNT_PERCENTAGE,
    DISCOUNT_TYPES,
    FINAL_ORDER_STATUSES,
    ORDER_CLOSED,
)
from floorline.models.discount import Discount, OrderDiscount
from floorline.services.audit import record_audit
from floorline.services.billing import money
from floorline.services.errors import NotFound, StateConflict, ValidationFailed
from floorline.services.orders import get_order

logger = logging.getLogger(__name__)

MAX_PERCENTAGE = Decimal("100")


def list_definitions(db: Session, *, include_inactive: bool = False) -> list[Discount]:
    query = db.query(Discount)
    if not include_inactive:
        query = query.filter(Discount.active.is_(True))
    return query.order_by(Discount.name.asc(), Discount.id.asc()).all()


def list_applications(db: Session, order_id: int) -> list[OrderDiscount]:
    order = get_order(db, order_id)
    return (
        db.query(OrderDiscount)
        .filter(OrderDiscount.order_id == order.id)
        .order_by(OrderDiscount.created_at.desc(), OrderDiscount.id.desc())
        .all()
    )


def _validate_value(discount_type: str, value: Decimal) -> None:
    if value <= 0:
        raise ValidationFailed("Discount value must be greater than zero")
    if discount_type == DISCOUNT_PERCENTAGE and value > MAX_PERCENTAGE:
        raise ValidationFailed("Percentage discount cannot exceed 100")


def apply_discount(
    db: Session,
    *,
    order_id: int,
    actor_id: int,
    discount_id: Optional[int] = None,
    discount_type: Optional[str] = None,
    value: Any = None,
    note: Optional[str] = None,
) -> OrderDiscount:
    """Attach a named discount or a comp to the order.

    A named discount supplies its own type and value unless the caller
    overrides them. A comp carries no definition and needs a note.
    """
    order = get_order(db, order_id)
    if order.status in FINAL_ORDER_STATUSES:
        raise StateConflict(f"Order is {order.status}; discounts are not allowed")

    clean_note = (note or "").strip() or None
    definition = None
    if discount_id is not None:
        definition = db.query(Discount).filter(Discount.id == discount_id).first()
        if not definition:
            raise NotFound("Discount not found")
        if not definition.active:
            raise StateConflict("Discount is inactive")
        discount_type = discount_type or definition.type
        value = definition.value if value is None else value
    elif not clean_note:
        raise ValidationFailed("A note is required for a comp")

    normalized_type = (discount_type or "").strip().upper()
    if normalized_type not in DISCOUNT_TYPES:
        raise ValidationFailed(f"Invalid discount type: {discount_type}")
    if value is None:
        raise ValidationFailed("Discount value is required")
    amount = money(value)
    _validate_value(normalized_type, amount)

    application = OrderDiscount(
        order_id=order.id,
        discount_id=definition.id if definition else None,
        type=normalized_type,
        value=amount,
        note=clean_note,
        applied_by_id=actor_id,
    )
    db.add(application)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(application)

    logger.info(
        "discount applied order_id=%s application_id=%s type=%s value=%s",
        order.id,
        application.id,
        normalized_type,
        amount,
    )
    record_audit(
        db,
        action=AUDIT_DISCOUNT_APPLIED,
        user_id=actor_id,
        order_id=order.id,
        details={
            "discount_id": application.discount_id,
            "application_id": application.id,
            "type": normalized_type,
            "value": str(amount),
            "note": clean_note,
        },
    )
    return application


def remove_discount(db: Session, *, order_id: int, application_id: int, actor_id: int) -> None:
    order = get_order(db, order_id)
    if order.status == ORDER_CLOSED:
        raise StateConflict("Order is settled; its discounts are final")

    application = (
        db.query(OrderDiscount)
        .filter(OrderDiscount.id == application_id, OrderDiscount.order_id == order.id)
        .first()
    )
    if not application:
        raise NotFound("Discount application not found")

    details = {
        "discount_id": application.discount_id,
        "application_id": application.id,
        "type": application.type,
        "value": str(application.value),
    }
    db.delete(application)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("discount removed order_id=%s application_id=%s", order.id, application_id)
    record_audit(
        db,
        action=AUDIT_DISCOUNT_REMOVED,
        user_id=actor_id,
        order_id=order.id,
        details=details,
    )
