"""
Event discussion comments, one level of replies via parent_id.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Index, func

from event_management.db.base import Base
from event_management.utils import utcnow


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    parent_id = Column(Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    user_display_name = Column(String(100), nullable=False, default="")
    body = Column(Text, nullable=False)
    from_admin = Column(Boolean, nullable=False, default=False)
    is_hidden = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow, server_default=func.now())

    __table_args__ = (
        Index("ix_comments_event_id", "event_id"),
    )

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, event={self.event_id}, parent={self.parent_id})>"
