from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from floorline.core.database import Base
from floorline.core.timeutils import utcnow


class Modifier(Base):
    __tablename__ = "modifiers"

    id = Column(Integer, primary_key=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    price_adjustment = Column(Numeric(10, 2), nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    menu_item = relationship("MenuItem", back_populates="modifiers")
