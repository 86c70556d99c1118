from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from floorline.core.database import Base
from floorline.core.timeutils import utcnow


class Payment(Base):
    """Settlement of one order. Written once, never updated."""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), unique=True, nullable=False)

    method = Column(String, nullable=False)  # CASH / CARD
    subtotal = Column(Numeric(10, 2), nullable=False)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    tax = Column(Numeric(10, 2), nullable=False)
    tip = Column(Numeric(10, 2), nullable=False, default=0)
    # discounted subtotal + tax + tip
    total = Column(Numeric(10, 2), nullable=False)

    created_by_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True, nullable=False)

    order = relationship("Order", back_populates="payment")
