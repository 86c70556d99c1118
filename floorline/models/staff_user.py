from sqlalchemy import Boolean, Column, DateTime, Integer, String

from floorline.core.database import Base
from floorline.core.timeutils import utcnow


class StaffUser(Base):
    """Read-only projection of staff accounts, used to label audit and close records."""

    __tablename__ = "staff_users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    role = Column(String, nullable=False, default="SERVER")
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
