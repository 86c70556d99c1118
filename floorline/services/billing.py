"""Bill arithmetic shared by previews and settlement.

Every amount is a ``Decimal`` rounded half-up to cents. The total is the
sum of already-rounded parts, so ``total == discounted_subtotal + tax + tip``
holds exactly no matter how many discounts are stacked.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable

from floorline.core.config import TAX_RATE
from floorline.core.constants import DISCOUNT_FIXED, DISCOUNT_PERCENTAGE, ITEM_CANCELLED
from floorline.services.errors import ValidationFailed

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None or value == "":
        return ZERO
    try:
        # str() keeps floats like 0.1 from dragging binary noise into the bill
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationFailed(f"Invalid amount: {value!r}") from exc


def money(value: Any) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _field(entry: Any, name: str, default: Any = None) -> Any:
    if isinstance(entry, dict):
        return entry.get(name, default)
    return getattr(entry, name, default)


@dataclass(frozen=True)
class ComputedBill:
    subtotal: Decimal
    raw_discount: Decimal
    discount: Decimal
    discounted_subtotal: Decimal
    tax_rate: Decimal
    tax: Decimal
    tip: Decimal
    total: Decimal

    def as_dict(self) -> dict[str, str]:
        return {key: str(value) for key, value in asdict(self).items()}


def compute_subtotal(items: Iterable[Any]) -> Decimal:
    subtotal = ZERO
    for item in items:
        if (_field(item, "status") or "").upper() == ITEM_CANCELLED:
            continue
        quantity = int(_field(item, "quantity", 0) or 0)
        subtotal += to_decimal(_field(item, "unit_price")) * quantity
    return money(subtotal)


def compute_raw_discount(subtotal: Decimal, discounts: Iterable[Any]) -> Decimal:
    raw = ZERO
    for entry in discounts:
        discount_type = (_field(entry, "type") or "").upper()
        value = to_decimal(_field(entry, "value"))
        if discount_type == DISCOUNT_PERCENTAGE:
            raw += money(subtotal * value / HUNDRED)
        elif discount_type == DISCOUNT_FIXED:
            raw += value
        else:
            raise ValidationFailed(f"Unknown discount type: {discount_type or '(empty)'}")
    return money(raw)


def compute_tip(
    discounted_subtotal: Decimal,
    *,
    tip: Any = None,
    tip_percent: Any = None,
) -> Decimal:
    if tip not in (None, "") and tip_percent not in (None, ""):
        raise ValidationFailed("Send either tip or tip_percent, not both")
    if tip_percent not in (None, ""):
        percent = to_decimal(tip_percent)
        if percent < 0:
            raise ValidationFailed("tip_percent cannot be negative")
        return money(discounted_subtotal * percent / HUNDRED)
    amount = money(tip)
    if amount < 0:
        raise ValidationFailed("tip cannot be negative")
    return amount


def compute_bill(
    items: Iterable[Any],
    discounts: Iterable[Any] = (),
    *,
    tax_rate: Any = None,
    tip: Any = None,
    tip_percent: Any = None,
) -> ComputedBill:
    rate = to_decimal(TAX_RATE if tax_rate is None else tax_rate)
    subtotal = compute_subtotal(items)
    raw_discount = compute_raw_discount(subtotal, discounts)
    discount = min(raw_discount, subtotal)
    discounted_subtotal = subtotal - discount
    tax = money(discounted_subtotal * rate)
    tip_amount = compute_tip(discounted_subtotal, tip=tip, tip_percent=tip_percent)
    total = discounted_subtotal + tax + tip_amount

    return ComputedBill(
        subtotal=subtotal,
        raw_discount=raw_discount,
        discount=discount,
        discounted_subtotal=discounted_subtotal,
        tax_rate=rate,
        tax=tax,
        tip=tip_amount,
        total=total,
    )
