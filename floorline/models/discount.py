from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from floorline.core.database import Base
from floorline.core.timeutils import utcnow


class Discount(Base):
    __tablename__ = "discounts"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    code = Column(String(64), nullable=True, unique=True)
    type = Column(String(20), nullable=False)  # PERCENTAGE / FIXED
    value = Column(Numeric(10, 2), nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    applications = relationship("OrderDiscount", back_populates="discount")


class OrderDiscount(Base):
    __tablename__ = "order_discounts"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), index=True, nullable=False)
    # Null for a comp: an ad-hoc value justified by the note
    discount_id = Column(Integer, ForeignKey("discounts.id"), nullable=True, index=True)
    type = Column(String(20), nullable=False)
    value = Column(Numeric(10, 2), nullable=False)
    note = Column(Text, nullable=True)
    applied_by_id = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    order = relationship("Order", back_populates="discounts")
    discount = relationship("Discount", back_populates="applications")
