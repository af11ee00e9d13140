from event_management.models.user import User
from event_management.models.event import Event
from event_management.models.subscription import Subscription
from event_management.models.role import Role, RoleClaim, UserRole
from event_management.models.comment import Comment

__all__ = ["User", "Event", "Subscription", "Role", "RoleClaim", "UserRole", "Comment"]
