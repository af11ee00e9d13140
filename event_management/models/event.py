"""
Event model: a schedulable activity with a participant capacity.

Subscriptions and comments reference events with ON DELETE CASCADE, so
deleting an event row removes its dependants inside the database.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, Index, CheckConstraint

from event_management.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    start_time = Column(DateTime, nullable=False)
    location = Column(String(200), nullable=True)
    category = Column(String(100), nullable=True)
    max_participants = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("max_participants >= 0", name="max_participants_non_negative"),
        # Listings and the upcoming/past split are always by start time
        Index("ix_events_start_time", "start_time"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, capacity={self.max_participants})>"
