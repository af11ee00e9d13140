"""
Roles, their claims, and user-role assignments.

A role's permissions are claims with claim_type "permission". A user's
effective permissions are the union of the claims of every role they hold.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint

from event_management.db.base import Base, TimestampMixin


class Role(Base, TimestampMixin):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(64), unique=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name={self.name})>"


class RoleClaim(Base):
    __tablename__ = "role_claims"

    id = Column(Integer, primary_key=True)
    role_id = Column(
        Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    claim_type = Column(String(64), nullable=False)
    claim_value = Column(String(128), nullable=False)

    __table_args__ = (
        UniqueConstraint("role_id", "claim_type", "claim_value", name="uq_role_claim"),
    )


class UserRole(Base):
    __tablename__ = "user_roles"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True)
