"""
Permission catalogue.

Permissions are stored as role claims of type ``permission``. The set of
grantable values is closed: anything outside ``Permission`` is rejected when
an administrator grants it, and simply never matches at check time.
"""

from enum import Enum

CLAIM_TYPE = "permission"


class Permission(str, Enum):
    MANAGE_EVENTS = "events.manage"
    VIEW_SUBSCRIBERS = "subscribers.view"
    MANAGE_USERS = "users.manage"
    MANAGE_ROLES = "roles.manage"
    CONFIGURE_PERMISSIONS = "permissions.configure"


ALL_PERMISSIONS: tuple[str, ...] = tuple(p.value for p in Permission)


def is_known_permission(value: str) -> bool:
    return value in ALL_PERMISSIONS
