from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from floorline.core.database import Base
from floorline.core.timeutils import utcnow


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), index=True, nullable=False)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False)

    # Snapshots taken at submission time; later menu edits never reach these columns
    name = Column(String, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    destination = Column(String, nullable=False, default="KITCHEN")

    quantity = Column(Integer, nullable=False, default=1)
    notes = Column(Text, nullable=True)
    seat_number = Column(Integer, nullable=True)

    status = Column(String, nullable=False, default="SENT", index=True)
    version = Column(Integer, nullable=False, default=1)
    sent_at = Column(DateTime, nullable=True)
    ready_at = Column(DateTime, nullable=True)
    served_at = Column(DateTime, nullable=True)

    void_reason = Column(String, nullable=True)
    void_note = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    order = relationship("Order", back_populates="items")
    modifiers = relationship(
        "OrderItemModifier",
        back_populates="order_item",
        cascade="all, delete-orphan",
        order_by="OrderItemModifier.id",
    )


class OrderItemModifier(Base):
    __tablename__ = "order_item_modifiers"

    id = Column(Integer, primary_key=True)
    order_item_id = Column(Integer, ForeignKey("order_items.id"), index=True, nullable=False)
    modifier_id = Column(Integer, ForeignKey("modifiers.id"), nullable=True)
    name = Column(String, nullable=False)
    price_adjustment = Column(Numeric(10, 2), nullable=False, default=0)

    order_item = relationship("OrderItem", back_populates="modifiers")
