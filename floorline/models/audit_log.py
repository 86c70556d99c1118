from sqlalchemy import Column, DateTime, Integer, String, Text

from floorline.core.database import Base
from floorline.core.timeutils import utcnow


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, index=True)
    action = Column(String, nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    order_id = Column(Integer, nullable=True, index=True)
    order_item_id = Column(Integer, nullable=True)
    details_json = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True, nullable=False)
