from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from floorline.core.constants import (
    ACTIVE_ORDER_STATUSES,
    AUDIT_ITEM_VOIDED,
    AUDIT_ORDER_CANCELLED,
    AUDIT_PAYMENT_PROCESSED,
    CANCELLABLE_ORDER_STATUSES,
    FINAL_ORDER_STATUSES,
    ITEM_CANCELLED,
    ITEM_PENDING,
    ITEM_READY,
    ITEM_SENT,
    ITEM_SERVED,
    ITEM_TRANSITION_TARGETS,
    ORDER_CANCELLED,
    ORDER_CLOSED,
    ORDER_COMPLETED,
    ORDER_OPEN,
    ORDER_SUBMITTED,
    PAYMENT_METHODS,
    TABLE_AVAILABLE,
    TABLE_OCCUPIED,
    TERMINAL_ITEM_STATUSES,
    VOID_REASONS,
)
from floorline.core.stations import normalize_destination
from floorline.core.timeutils import utcnow
from floorline.models.dining_table import DiningTable
from floorline.models.menu_item import MenuItem
from floorline.models.order import Order
from floorline.models.order_item import OrderItem, OrderItemModifier
from floorline.models.payment import Payment
from floorline.services.audit import record_audit
from floorline.services.billing import ComputedBill, compute_bill, money
from floorline.services.errors import NotFound, StateConflict, ValidationFailed

logger = logging.getLogger(__name__)


@dataclass
class ItemTransition:
    item: OrderItem
    previous_status: str
    order_completed: bool = False


@dataclass
class _ResolvedLine:
    menu_item: MenuItem
    quantity: int
    notes: Optional[str]
    seat_number: Optional[int]
    modifiers: list = field(default_factory=list)


def _get(entry: Any, key: str, default: Any = None) -> Any:
    if isinstance(entry, dict):
        return entry.get(key, default)
    return getattr(entry, key, default)


def get_order(db: Session, order_id: int) -> Order:
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise NotFound("Order not found")
    return order


def get_order_item(db: Session, item_id: int) -> OrderItem:
    item = db.query(OrderItem).filter(OrderItem.id == item_id).first()
    if not item:
        raise NotFound("Order item not found")
    return item


def list_orders(
    db: Session,
    *,
    status: Optional[str] = None,
    server_id: Optional[int] = None,
    table_id: Optional[int] = None,
    created_from: Optional[datetime] = None,
    created_to: Optional[datetime] = None,
) -> list[Order]:
    query = db.query(Order)
    if status:
        query = query.filter(Order.status == status.strip().upper())
    if server_id is not None:
        query = query.filter(Order.server_id == server_id)
    if table_id is not None:
        query = query.filter(Order.table_id == table_id)
    if created_from:
        query = query.filter(Order.created_at >= created_from)
    if created_to:
        query = query.filter(Order.created_at <= created_to)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def find_active_order(db: Session, table_id: int) -> Optional[Order]:
    return (
        db.query(Order)
        .filter(Order.table_id == table_id, Order.status.in_(ACTIVE_ORDER_STATUSES))
        .order_by(Order.created_at.asc(), Order.id.asc())
        .first()
    )


def release_table_if_idle(db: Session, table_id: int, *, exclude_order_id: Optional[int] = None) -> bool:
    """Mark the table AVAILABLE when no other active order references it."""
    query = db.query(Order).filter(
        Order.table_id == table_id,
        Order.status.in_(ACTIVE_ORDER_STATUSES),
    )
    if exclude_order_id is not None:
        query = query.filter(Order.id != exclude_order_id)
    if query.count() > 0:
        return False

    table = db.query(DiningTable).filter(DiningTable.id == table_id).first()
    if table is None:
        return False
    table.status = TABLE_AVAILABLE
    return True


def count_open_items(db: Session, order_id: int) -> int:
    return (
        db.query(OrderItem)
        .filter(
            OrderItem.order_id == order_id,
            OrderItem.status.notin_(TERMINAL_ITEM_STATUSES),
        )
        .count()
    )


def open_order(db: Session, *, table_id: int, server_id: int) -> tuple[Order, bool]:
    """Return ``(order, created)``; an already active order on the table is reused."""
    table = db.query(DiningTable).filter(DiningTable.id == table_id).first()
    if not table:
        raise NotFound("Table not found")

    existing = find_active_order(db, table_id)
    if existing:
        return existing, False

    order = Order(table_id=table.id, server_id=server_id, status=ORDER_OPEN)
    table.status = TABLE_OCCUPIED
    db.add(order)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(order)
    logger.info("order opened order_id=%s table_id=%s server_id=%s", order.id, table.id, server_id)
    return order, True


def _resolve_lines(db: Session, entries: list[Any]) -> list[_ResolvedLine]:
    menu_ids = set()
    for entry in entries:
        menu_item_id = _get(entry, "menu_item_id")
        if menu_item_id is None:
            raise ValidationFailed("menu_item_id is required")
        menu_ids.add(int(menu_item_id))

    menu = {item.id: item for item in db.query(MenuItem).filter(MenuItem.id.in_(menu_ids)).all()}

    lines: list[_ResolvedLine] = []
    for entry in entries:
        menu_item = menu.get(int(_get(entry, "menu_item_id")))
        if menu_item is None:
            raise NotFound(f"Menu item {_get(entry, 'menu_item_id')} not found")
        if not menu_item.available:
            raise StateConflict(f"Menu item {menu_item.name} is unavailable")

        quantity = int(_get(entry, "quantity", 1) or 1)
        if quantity < 1:
            raise ValidationFailed("quantity must be at least 1")

        own_modifiers = {modifier.id: modifier for modifier in menu_item.modifiers}
        selected = []
        for modifier_id in _get(entry, "modifier_ids") or []:
            modifier = own_modifiers.get(int(modifier_id))
            if modifier is None:
                raise ValidationFailed(f"Modifier {modifier_id} does not belong to menu item {menu_item.id}")
            selected.append(modifier)

        notes = (_get(entry, "notes") or _get(entry, "note") or "").strip() or None
        lines.append(
            _ResolvedLine(
                menu_item=menu_item,
                quantity=quantity,
                notes=notes,
                seat_number=_get(entry, "seat_number"),
                modifiers=selected,
            )
        )
    return lines


def submit_items(db: Session, *, order_id: int, items: Iterable[Any]) -> tuple[Order, list[OrderItem]]:
    entries = list(items or [])
    if not entries:
        raise ValidationFailed("At least one item is required")

    order = get_order(db, order_id)
    if order.status in FINAL_ORDER_STATUSES:
        raise StateConflict(f"Order is {order.status}")

    # Every line is validated before anything is written so a bad line rejects the whole batch
    lines = _resolve_lines(db, entries)

    now = utcnow()
    created: list[OrderItem] = []
    try:
        for line in lines:
            unit_price = money(
                money(line.menu_item.price) + sum((money(m.price_adjustment) for m in line.modifiers), money(0))
            )
            order_item = OrderItem(
                order_id=order.id,
                menu_item_id=line.menu_item.id,
                name=line.menu_item.name,
                unit_price=unit_price,
                destination=normalize_destination(line.menu_item.destination),
                quantity=line.quantity,
                notes=line.notes,
                seat_number=line.seat_number,
                status=ITEM_SENT,
                version=1,
                sent_at=now,
            )
            order_item.modifiers = [
                OrderItemModifier(
                    modifier_id=modifier.id,
                    name=modifier.name,
                    price_adjustment=money(modifier.price_adjustment),
                )
                for modifier in line.modifiers
            ]
            db.add(order_item)
            created.append(order_item)

        # New items reopen the prep cycle, even on a COMPLETED order
        order.status = ORDER_SUBMITTED
        db.commit()
    except ValueError as exc:
        db.rollback()
        raise ValidationFailed(str(exc)) from exc
    except Exception:
        db.rollback()
        raise

    for order_item in created:
        db.refresh(order_item)
    db.refresh(order)
    logger.info("items submitted order_id=%s count=%s", order.id, len(created))
    return order, created


def transition_item(
    db: Session,
    *,
    item_id: int,
    status: str,
    actor_id: int,
    void_reason: Optional[str] = None,
    void_note: Optional[str] = None,
    expected_version: Optional[int] = None,
) -> ItemTransition:
    target = (status or "").strip().upper()
    if target == ITEM_PENDING or target not in ITEM_TRANSITION_TARGETS:
        raise ValidationFailed(f"Invalid item status: {status}")

    item = get_order_item(db, item_id)
    order = item.order
    if order.status in FINAL_ORDER_STATUSES:
        raise StateConflict(f"Order is {order.status}")
    if item.status in TERMINAL_ITEM_STATUSES:
        raise StateConflict(f"Item is already {item.status}")
    if expected_version is not None and int(item.version or 0) != int(expected_version):
        raise StateConflict("Item was modified by someone else; reload and retry")

    reason = None
    note = None
    if target == ITEM_CANCELLED:
        reason = (void_reason or "").strip().upper()
        if not reason:
            raise StateConflict("A void reason is required")
        if reason not in VOID_REASONS:
            raise ValidationFailed(f"Invalid void reason: {void_reason}")
        note = (void_note or "").strip() or None

    previous_status = item.status
    now = utcnow()
    item.status = target
    item.version = int(item.version or 0) + 1
    if target == ITEM_READY:
        item.ready_at = now
    elif target == ITEM_SERVED:
        item.served_at = now
    elif target == ITEM_CANCELLED:
        item.void_reason = reason
        item.void_note = note

    order_completed = False
    try:
        if target == ITEM_SERVED and order.status in (ORDER_OPEN, ORDER_SUBMITTED):
            db.flush()
            if count_open_items(db, order.id) == 0:
                order.status = ORDER_COMPLETED
                order_completed = True
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(item)
    logger.info(
        "item transitioned item_id=%s %s->%s order_completed=%s",
        item.id,
        previous_status,
        target,
        order_completed,
    )

    if target == ITEM_CANCELLED:
        record_audit(
            db,
            action=AUDIT_ITEM_VOIDED,
            user_id=actor_id,
            order_id=item.order_id,
            order_item_id=item.id,
            details={
                "item_name": item.name,
                "quantity": item.quantity,
                "reason": reason,
                "note": note,
                "previous_status": previous_status,
            },
        )

    return ItemTransition(item=item, previous_status=previous_status, order_completed=order_completed)


def cancel_order(
    db: Session,
    *,
    order_id: int,
    actor_id: int,
    reason: Optional[str] = None,
) -> tuple[Order, list[OrderItem]]:
    """Cancel an OPEN/SUBMITTED order and every item still in flight."""
    order = get_order(db, order_id)
    if order.status not in CANCELLABLE_ORDER_STATUSES:
        raise StateConflict(f"Order cannot be cancelled from {order.status}")

    cancelled_items: list[OrderItem] = []
    for item in order.items:
        if item.status in TERMINAL_ITEM_STATUSES:
            continue
        item.status = ITEM_CANCELLED
        item.version = int(item.version or 0) + 1
        cancelled_items.append(item)

    previous_status = order.status
    order.status = ORDER_CANCELLED
    try:
        db.flush()
        table_released = release_table_if_idle(db, order.table_id, exclude_order_id=order.id)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(order)
    logger.info(
        "order cancelled order_id=%s items=%s table_released=%s",
        order.id,
        len(cancelled_items),
        table_released,
    )
    record_audit(
        db,
        action=AUDIT_ORDER_CANCELLED,
        user_id=actor_id,
        order_id=order.id,
        details={
            "previous_status": previous_status,
            "reason": (reason or "").strip() or None,
            "cancelled_items": len(cancelled_items),
            "table_id": order.table_id,
        },
    )
    return order, cancelled_items


def preview_bill(
    db: Session,
    *,
    order_id: int,
    tip: Any = None,
    tip_percent: Any = None,
) -> tuple[Order, ComputedBill]:
    order = get_order(db, order_id)
    bill = compute_bill(order.items, order.discounts, tip=tip, tip_percent=tip_percent)
    return order, bill


def settle_payment(
    db: Session,
    *,
    order_id: int,
    method: str,
    actor_id: int,
    tip: Any = None,
    tip_percent: Any = None,
) -> Payment:
    """Close the order with a Payment derived from the stored items and discounts."""
    normalized_method = (method or "").strip().upper()
    if normalized_method not in PAYMENT_METHODS:
        raise ValidationFailed(f"Invalid payment method: {method}")

    order = get_order(db, order_id)
    if order.status == ORDER_CLOSED or order.payment is not None:
        raise StateConflict("Order is already settled")
    if order.status == ORDER_CANCELLED:
        raise StateConflict("Order is cancelled")

    bill = compute_bill(order.items, order.discounts, tip=tip, tip_percent=tip_percent)

    payment = Payment(
        order_id=order.id,
        method=normalized_method,
        subtotal=bill.subtotal,
        discount=bill.discount,
        tax=bill.tax,
        tip=bill.tip,
        total=bill.total,
        created_by_id=actor_id,
    )
    db.add(payment)
    order.status = ORDER_CLOSED
    try:
        db.flush()
        release_table_if_idle(db, order.table_id, exclude_order_id=order.id)
        db.commit()
    except IntegrityError as exc:
        # Another settlement of this order committed after our status check
        db.rollback()
        raise StateConflict("Order is already settled") from exc
    except Exception:
        db.rollback()
        raise

    db.refresh(payment)
    logger.info(
        "payment recorded order_id=%s method=%s total=%s",
        order.id,
        normalized_method,
        payment.total,
    )
    record_audit(
        db,
        action=AUDIT_PAYMENT_PROCESSED,
        user_id=actor_id,
        order_id=order.id,
        details={
            "method": normalized_method,
            "subtotal": str(bill.subtotal),
            "discount": str(bill.discount),
            "tax": str(bill.tax),
            "tip": str(bill.tip),
            "total": str(bill.total),
        },
    )
    return payment
