from event_management.schemas.user import UserCreate, UserResponse, UserLogin, Token
from event_management.schemas.event import (
    EventCreate, EventUpdate, EventResponse, EventDetail, EventSearchParams, EventStats,
)
from event_management.schemas.subscription import SubscribeResult, SubscribeResponse, SubscriberResponse
from event_management.schemas.role import RoleCreate, RoleResponse, PermissionGrant, RoleAssignment
from event_management.schemas.comment import CommentCreate, CommentResponse

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token",
    "EventCreate", "EventUpdate", "EventResponse", "EventDetail", "EventSearchParams", "EventStats",
    "SubscribeResult", "SubscribeResponse", "SubscriberResponse",
    "RoleCreate", "RoleResponse", "PermissionGrant", "RoleAssignment",
    "CommentCreate", "CommentResponse",
]
