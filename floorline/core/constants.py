from __future__ import annotations

# Order lifecycle
ORDER_OPEN = "OPEN"
ORDER_SUBMITTED = "SUBMITTED"
ORDER_COMPLETED = "COMPLETED"
ORDER_CLOSED = "CLOSED"
ORDER_CANCELLED = "CANCELLED"

ORDER_STATUSES = {ORDER_OPEN, ORDER_SUBMITTED, ORDER_COMPLETED, ORDER_CLOSED, ORDER_CANCELLED}
ACTIVE_ORDER_STATUSES = (ORDER_OPEN, ORDER_SUBMITTED, ORDER_COMPLETED)
CANCELLABLE_ORDER_STATUSES = {ORDER_OPEN, ORDER_SUBMITTED}
FINAL_ORDER_STATUSES = {ORDER_CLOSED, ORDER_CANCELLED}

# Item lifecycle
ITEM_PENDING = "PENDING"
ITEM_SENT = "SENT"
ITEM_PREPARING = "PREPARING"
ITEM_READY = "READY"
ITEM_SERVED = "SERVED"
ITEM_CANCELLED = "CANCELLED"

ITEM_STATUSES = {ITEM_PENDING, ITEM_SENT, ITEM_PREPARING, ITEM_READY, ITEM_SERVED, ITEM_CANCELLED}
TERMINAL_ITEM_STATUSES = (ITEM_SERVED, ITEM_CANCELLED)
ITEM_TRANSITION_TARGETS = {ITEM_SENT, ITEM_PREPARING, ITEM_READY, ITEM_SERVED, ITEM_CANCELLED}

VOID_REASONS = {
    "WRONG_ITEM",
    "CUSTOMER_CHANGED_MIND",
    "QUALITY_ISSUE",
    "KITCHEN_ERROR",
    "OUT_OF_STOCK",
    "OTHER",
}

# Tables
TABLE_AVAILABLE = "AVAILABLE"
TABLE_OCCUPIED = "OCCUPIED"
TABLE_RESERVED = "RESERVED"

# Money
PAYMENT_CASH = "CASH"
PAYMENT_CARD = "CARD"
PAYMENT_METHODS = {PAYMENT_CASH, PAYMENT_CARD}

DISCOUNT_PERCENTAGE = "PERCENTAGE"
DISCOUNT_FIXED = "FIXED"
DISCOUNT_TYPES = {DISCOUNT_PERCENTAGE, DISCOUNT_FIXED}

# Staff
ROLE_ADMIN = "ADMIN"
ROLE_SERVER = "SERVER"
ROLE_KITCHEN = "KITCHEN"
ROLE_BAR = "BAR"
ROLES = {ROLE_ADMIN, ROLE_SERVER, ROLE_KITCHEN, ROLE_BAR}

# Audit trail
AUDIT_ITEM_VOIDED = "ITEM_VOIDED"
AUDIT_ORDER_CANCELLED = "ORDER_CANCELLED"
AUDIT_PAYMENT_PROCESSED = "PAYMENT_PROCESSED"
AUDIT_DISCOUNT_APPLIED = "DISCOUNT_APPLIED"
AUDIT_DISCOUNT_REMOVED = "DISCOUNT_REMOVED"
AUDIT_DAILY_CLOSED = "DAILY_CLOSED"

AUDIT_ACTIONS = {
    AUDIT_ITEM_VOIDED,
    AUDIT_ORDER_CANCELLED,
    AUDIT_PAYMENT_PROCESSED,
    AUDIT_DISCOUNT_APPLIED,
    AUDIT_DISCOUNT_REMOVED,
    AUDIT_DAILY_CLOSED,
}

# Realtime events
EVENT_NEW_ITEMS = "new-items"
EVENT_STATUS_CHANGED = "status-changed"
EVENT_ITEM_READY = "item-ready"
EVENT_ORDER_CLOSED = "order-closed"
