from sqlalchemy import Column, Date, DateTime, Integer, Numeric, Text

from floorline.core.database import Base
from floorline.core.timeutils import utcnow


class DailyClose(Base):
    __tablename__ = "daily_closes"

    id = Column(Integer, primary_key=True)
    business_date = Column(Date, unique=True, nullable=False)

    expected_cash = Column(Numeric(10, 2), nullable=False)
    actual_cash = Column(Numeric(10, 2), nullable=False)
    variance = Column(Numeric(10, 2), nullable=False)
    card_total = Column(Numeric(10, 2), nullable=False)
    total_revenue = Column(Numeric(10, 2), nullable=False)
    total_tax = Column(Numeric(10, 2), nullable=False)
    total_tips = Column(Numeric(10, 2), nullable=False)
    total_discount = Column(Numeric(10, 2), nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)
    order_count = Column(Integer, nullable=False, default=0)

    closed_by_id = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
