"""End-of-day cash and card reconciliation.

A ``Payment.total`` already contains its tip, so the cash drawer expects
the sum of CASH totals and revenue is the sum of totals net of tips.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from floorline.core.constants import AUDIT_DAILY_CLOSED, PAYMENT_CASH
from floorline.core.timeutils import business_day_window
from floorline.models.daily_close import DailyClose
from floorline.models.payment import Payment
from floorline.services.audit import record_audit
from floorline.services.billing import ZERO, money, to_decimal
from floorline.services.errors import StateConflict, ValidationFailed

logger = logging.getLogger(__name__)


@dataclass
class DayTotals:
    expected_cash: Decimal = ZERO
    card_total: Decimal = ZERO
    total_revenue: Decimal = ZERO
    total_tax: Decimal = ZERO
    total_tips: Decimal = ZERO
    total_discount: Decimal = ZERO
    subtotal: Decimal = ZERO
    order_count: int = 0


def aggregate_payments(payments: list[Payment]) -> DayTotals:
    totals = DayTotals()
    for payment in payments:
        total = to_decimal(payment.total)
        tip = to_decimal(payment.tip)
        if (payment.method or "").upper() == PAYMENT_CASH:
            totals.expected_cash += total
        else:
            totals.card_total += total
        totals.total_revenue += total - tip
        totals.total_tax += to_decimal(payment.tax)
        totals.total_tips += tip
        totals.total_discount += to_decimal(payment.discount)
        totals.subtotal += to_decimal(payment.subtotal)
        totals.order_count += 1

    # Rounded once, at the point of storage
    return DayTotals(
        expected_cash=money(totals.expected_cash),
        card_total=money(totals.card_total),
        total_revenue=money(totals.total_revenue),
        total_tax=money(totals.total_tax),
        total_tips=money(totals.total_tips),
        total_discount=money(totals.total_discount),
        subtotal=money(totals.subtotal),
        order_count=totals.order_count,
    )


def payments_for_day(db: Session, business_date: date) -> list[Payment]:
    start, end = business_day_window(business_date)
    return (
        db.query(Payment)
        .filter(Payment.created_at >= start, Payment.created_at < end)
        .order_by(Payment.created_at.asc(), Payment.id.asc())
        .all()
    )


def get_close(db: Session, business_date: date) -> Optional[DailyClose]:
    return db.query(DailyClose).filter(DailyClose.business_date == business_date).first()


def list_closes(
    db: Session,
    *,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> list[DailyClose]:
    query = db.query(DailyClose)
    if date_from:
        query = query.filter(DailyClose.business_date >= date_from)
    if date_to:
        query = query.filter(DailyClose.business_date <= date_to)
    return query.order_by(DailyClose.business_date.desc()).all()


def close_day(
    db: Session,
    *,
    business_date: date,
    actual_cash: Any,
    actor_id: int,
    notes: Optional[str] = None,
) -> DailyClose:
    if actual_cash is None or actual_cash == "":
        raise ValidationFailed("actual_cash is required")
    counted = money(actual_cash)
    if counted < 0:
        raise ValidationFailed("actual_cash cannot be negative")

    if get_close(db, business_date):
        raise StateConflict("This day has already been closed")

    totals = aggregate_payments(payments_for_day(db, business_date))
    variance = money(counted - totals.expected_cash)

    record = DailyClose(
        business_date=business_date,
        expected_cash=totals.expected_cash,
        actual_cash=counted,
        variance=variance,
        card_total=totals.card_total,
        total_revenue=totals.total_revenue,
        total_tax=totals.total_tax,
        total_tips=totals.total_tips,
        total_discount=totals.total_discount,
        subtotal=totals.subtotal,
        order_count=totals.order_count,
        closed_by_id=actor_id,
        notes=(notes or "").strip() or None,
    )
    db.add(record)
    try:
        db.commit()
    except IntegrityError as exc:
        # A concurrent close for the same date won the unique constraint
        db.rollback()
        raise StateConflict("This day has already been closed") from exc
    except Exception:
        db.rollback()
        raise

    db.refresh(record)
    logger.info(
        "day closed date=%s orders=%s expected_cash=%s variance=%s",
        business_date.isoformat(),
        record.order_count,
        record.expected_cash,
        record.variance,
    )
    record_audit(
        db,
        action=AUDIT_DAILY_CLOSED,
        user_id=actor_id,
        details={
            "date": business_date.isoformat(),
            "expected_cash": str(record.expected_cash),
            "actual_cash": str(record.actual_cash),
            "variance": str(record.variance),
            "order_count": record.order_count,
            "total_revenue": str(record.total_revenue),
        },
    )
    return record
