from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint

from floorline.core.database import Base
from floorline.core.timeutils import utcnow


class PushSubscription(Base):
    __tablename__ = "push_subscriptions"
    __table_args__ = (UniqueConstraint("user_id", "endpoint", name="uq_push_subscriptions_user_endpoint"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    endpoint = Column(Text, nullable=False)
    auth = Column(String, nullable=False)
    p256dh = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
