from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from floorline.core.database import Base
from floorline.core.timeutils import utcnow


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)

    # One table per order; exclusivity is enforced by the state machine, not by a constraint
    table_id = Column(Integer, ForeignKey("dining_tables.id"), index=True, nullable=False)
    server_id = Column(Integer, index=True, nullable=False)

    status = Column(String, default="OPEN", nullable=False)  # OPEN / SUBMITTED / COMPLETED / CLOSED / CANCELLED

    created_at = Column(DateTime, default=utcnow, index=True, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    table = relationship("DiningTable", back_populates="orders")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    discounts = relationship(
        "OrderDiscount",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderDiscount.id",
    )
    payment = relationship("Payment", back_populates="order", uselist=False)
