from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from floorline.core.constants import AUDIT_ACTIONS, ROLE_ADMIN
from floorline.core.database import get_db
from floorline.core.timeutils import parse_datetime
from floorline.deps import Actor, require_role
from floorline.models.audit_log import AuditLog
from floorline.models.staff_user import StaffUser
from floorline.services.audit import parse_details

router = APIRouter(prefix="/api/audit", tags=["audit"])


class AuditEntryRead(BaseModel):
    id: int
    action: str
    user_id: int
    user_name: Optional[str]
    user_role: Optional[str]
    order_id: Optional[int]
    order_item_id: Optional[int]
    details: Optional[Any]
    created_at: datetime


class AuditPage(BaseModel):
    data: List[AuditEntryRead]
    total: int
    page: int
    limit: int


def _parse_bound(value: Optional[str], name: str) -> Optional[datetime]:
    if value is None:
        return None
    parsed = parse_datetime(value)
    if parsed is None:
        raise HTTPException(status_code=400, detail=f"Invalid {name} timestamp")
    return parsed


@router.get("", response_model=AuditPage)
def list_audit_entries(
    action: Optional[str] = None,
    user_id: Optional[int] = None,
    from_date: Optional[str] = Query(None, alias="from"),
    to_date: Optional[str] = Query(None, alias="to"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    _actor: Actor = Depends(require_role([ROLE_ADMIN])),
    db: Session = Depends(get_db),
):
    if action and action.strip().upper() not in AUDIT_ACTIONS:
        raise HTTPException(status_code=400, detail=f"Unknown audit action: {action}")

    query = db.query(AuditLog)
    if action:
        query = query.filter(AuditLog.action == action.strip().upper())
    if user_id:
        query = query.filter(AuditLog.user_id == user_id)
    start_dt = _parse_bound(from_date, "from")
    end_dt = _parse_bound(to_date, "to")
    if start_dt:
        query = query.filter(AuditLog.created_at >= start_dt)
    if end_dt:
        query = query.filter(AuditLog.created_at <= end_dt)

    total = query.count()
    rows = (
        query.outerjoin(StaffUser, StaffUser.id == AuditLog.user_id)
        .add_columns(StaffUser.name, StaffUser.role)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    results: List[Dict[str, Any]] = []
    for entry, user_name, user_role in rows:
        results.append(
            {
                "id": entry.id,
                "action": entry.action,
                "user_id": entry.user_id,
                "user_name": user_name,
                "user_role": user_role,
                "order_id": entry.order_id,
                "order_item_id": entry.order_item_id,
                "details": parse_details(entry.details_json),
                "created_at": entry.created_at,
            }
        )

    return {"data": results, "total": total, "page": page, "limit": limit}
