"""
Subscription model: one user's registration for one event.

Key design decisions:
- Unique constraint on (event_id, user_id): a user holds at most one
  subscription per event, and concurrent duplicates fail at the database
- Both foreign keys cascade on delete, so removing an event or a user
  removes the registrations that point at it
"""

from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint, func

from event_management.db.base import Base
from event_management.utils import utcnow


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = Column(DateTime, nullable=False, default=utcnow, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_subscription_event_user"),
    )

    def __repr__(self) -> str:
        return f"<Subscription(id={self.id}, event={self.event_id}, user={self.user_id})>"
