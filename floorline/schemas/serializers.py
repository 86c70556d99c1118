"""Response shapes shared by the routers.

Money leaves the service as a two-decimal string so clients never see a
binary float rounding of a bill.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from floorline.models.daily_close import DailyClose
from floorline.models.discount import Discount, OrderDiscount
from floorline.models.order import Order
from floorline.models.order_item import OrderItem
from floorline.models.payment import Payment
from floorline.services.billing import ComputedBill, money


def _money(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(money(value))


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def order_item_to_dict(item: OrderItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "order_id": item.order_id,
        "menu_item_id": item.menu_item_id,
        "name": item.name,
        "unit_price": _money(item.unit_price),
        "quantity": item.quantity,
        "notes": item.notes,
        "seat_number": item.seat_number,
        "destination": item.destination,
        "status": item.status,
        "version": item.version,
        "void_reason": item.void_reason,
        "void_note": item.void_note,
        "sent_at": _iso(item.sent_at),
        "ready_at": _iso(item.ready_at),
        "served_at": _iso(item.served_at),
        "modifiers": [
            {
                "id": modifier.id,
                "modifier_id": modifier.modifier_id,
                "name": modifier.name,
                "price_adjustment": _money(modifier.price_adjustment),
            }
            for modifier in item.modifiers
        ],
    }


def payment_to_dict(payment: Optional[Payment]) -> Optional[Dict[str, Any]]:
    if payment is None:
        return None
    return {
        "id": payment.id,
        "order_id": payment.order_id,
        "method": payment.method,
        "subtotal": _money(payment.subtotal),
        "discount": _money(payment.discount),
        "tax": _money(payment.tax),
        "tip": _money(payment.tip),
        "total": _money(payment.total),
        "created_by_id": payment.created_by_id,
        "created_at": _iso(payment.created_at),
    }


def discount_to_dict(discount: Discount) -> Dict[str, Any]:
    return {
        "id": discount.id,
        "name": discount.name,
        "code": discount.code,
        "type": discount.type,
        "value": _money(discount.value),
        "active": bool(discount.active),
    }


def order_discount_to_dict(application: OrderDiscount) -> Dict[str, Any]:
    definition = application.discount
    return {
        "id": application.id,
        "order_id": application.order_id,
        "discount_id": application.discount_id,
        "discount_name": definition.name if definition else None,
        "type": application.type,
        "value": _money(application.value),
        "note": application.note,
        "applied_by_id": application.applied_by_id,
        "created_at": _iso(application.created_at),
    }


def order_to_dict(order: Order, *, include_items: bool = True) -> Dict[str, Any]:
    table = order.table
    data: Dict[str, Any] = {
        "id": order.id,
        "status": order.status,
        "server_id": order.server_id,
        "table": {
            "id": order.table_id,
            "number": table.number if table else None,
            "name": table.name if table else None,
            "status": table.status if table else None,
        },
        "created_at": _iso(order.created_at),
        "updated_at": _iso(order.updated_at),
        "payment": payment_to_dict(order.payment),
    }
    if include_items:
        data["items"] = [order_item_to_dict(item) for item in order.items]
        data["discounts"] = [order_discount_to_dict(entry) for entry in order.discounts]
    return data


def bill_to_dict(bill: ComputedBill) -> Dict[str, Any]:
    return {
        "subtotal": _money(bill.subtotal),
        "raw_discount": _money(bill.raw_discount),
        "discount": _money(bill.discount),
        "discounted_subtotal": _money(bill.discounted_subtotal),
        "tax_rate": str(bill.tax_rate),
        "tax": _money(bill.tax),
        "tip": _money(bill.tip),
        "total": _money(bill.total),
    }


def daily_close_to_dict(record: DailyClose, closed_by_name: Optional[str] = None) -> Dict[str, Any]:
    return {
        "id": record.id,
        "date": record.business_date.isoformat(),
        "expected_cash": _money(record.expected_cash),
        "actual_cash": _money(record.actual_cash),
        "variance": _money(record.variance),
        "card_total": _money(record.card_total),
        "total_revenue": _money(record.total_revenue),
        "total_tax": _money(record.total_tax),
        "total_tips": _money(record.total_tips),
        "total_discount": _money(record.total_discount),
        "subtotal": _money(record.subtotal),
        "order_count": record.order_count,
        "closed_by_id": record.closed_by_id,
        "closed_by_name": closed_by_name,
        "notes": record.notes,
        "created_at": _iso(record.created_at),
    }
