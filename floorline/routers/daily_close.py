from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from floorline.core.constants import ROLE_ADMIN
from floorline.core.database import get_db
from floorline.deps import Actor, http_error, require_role
from floorline.models.staff_user import StaffUser
from floorline.schemas.serializers import daily_close_to_dict
from floorline.services.daily_close import close_day, list_closes
from floorline.services.errors import FloorlineError

router = APIRouter(prefix="/api", tags=["daily-close"])


class DailyCloseCreate(BaseModel):
    date: dt.date
    actual_cash: Decimal = Field(..., ge=0)
    notes: Optional[str] = Field(None, max_length=1000)


def _staff_names(db: Session, user_ids: set[int]) -> dict[int, str]:
    if not user_ids:
        return {}
    rows = db.query(StaffUser.id, StaffUser.name).filter(StaffUser.id.in_(user_ids)).all()
    return {row.id: row.name for row in rows}


@router.get("/daily-close")
def list_daily_closes(
    date_from: Optional[dt.date] = Query(None, alias="from"),
    date_to: Optional[dt.date] = Query(None, alias="to"),
    db: Session = Depends(get_db),
    _actor: Actor = Depends(require_role([ROLE_ADMIN])),
):
    closes = list_closes(db, date_from=date_from, date_to=date_to)
    names = _staff_names(db, {record.closed_by_id for record in closes})
    return {"data": [daily_close_to_dict(record, names.get(record.closed_by_id)) for record in closes]}


@router.post("/daily-close", status_code=status.HTTP_201_CREATED)
def create_daily_close(
    body: DailyCloseCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_role([ROLE_ADMIN])),
):
    try:
        record = close_day(
            db,
            business_date=body.date,
            actual_cash=body.actual_cash,
            actor_id=actor.id,
            notes=body.notes,
        )
    except FloorlineError as exc:
        raise http_error(exc) from exc

    names = _staff_names(db, {record.closed_by_id})
    return {"data": daily_close_to_dict(record, names.get(record.closed_by_id) or actor.name)}
