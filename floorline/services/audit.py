from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from floorline.core.constants import AUDIT_ACTIONS
from floorline.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def _encode_details(details: Optional[Mapping[str, Any]]) -> Optional[str]:
    if not details:
        return None
    return json.dumps(details, default=str, sort_keys=True)


def record_audit(
    db: Session,
    *,
    action: str,
    user_id: int,
    order_id: Optional[int] = None,
    order_item_id: Optional[int] = None,
    details: Optional[Mapping[str, Any]] = None,
) -> Optional[AuditLog]:
    """Append one audit entry in its own commit.

    Call only after the business change has been committed. A failure here
    is logged and swallowed: the caller's operation has already succeeded.
    """
    if action not in AUDIT_ACTIONS:
        logger.error("audit action rejected action=%s", action)
        return None

    try:
        entry = AuditLog(
            action=action,
            user_id=user_id,
            order_id=order_id,
            order_item_id=order_item_id,
            details_json=_encode_details(details),
        )
        db.add(entry)
        db.commit()
        return entry
    except Exception:
        db.rollback()
        logger.exception(
            "audit write failed action=%s user_id=%s order_id=%s",
            action,
            user_id,
            order_id,
        )
        return None


def parse_details(raw: Optional[str]) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return raw
