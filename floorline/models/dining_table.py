from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from floorline.core.database import Base
from floorline.core.timeutils import utcnow


class DiningTable(Base):
    __tablename__ = "dining_tables"

    id = Column(Integer, primary_key=True)
    number = Column(Integer, unique=True, nullable=False)
    name = Column(String, nullable=True)
    seats = Column(Integer, nullable=False, default=4)
    status = Column(String, nullable=False, default="AVAILABLE")  # AVAILABLE / OCCUPIED / RESERVED
    created_at = Column(DateTime, default=utcnow, nullable=False)

    orders = relationship("Order", back_populates="table")
