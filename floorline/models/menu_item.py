from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String
from sqlalchemy.orm import relationship

from floorline.core.database import Base
from floorline.core.timeutils import utcnow


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    destination = Column(String, nullable=False, default="KITCHEN")  # KITCHEN / BAR
    available = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    modifiers = relationship("Modifier", back_populates="menu_item", cascade="all, delete-orphan")
