from __future__ import annotations

from enum import Enum

from .enums import Role
from .exceptions import AuthorizationError


class Capability(str, Enum):
    REGISTER_USERS = "register_users"
    LIST_USERS = "list_users"
    UPDATE_ANY_USER = "update_any_user"
    DELETE_USERS = "delete_users"
    UPLOAD_FOR_OTHERS = "upload_for_others"
    VIEW_ANY_ATTENDANCE = "view_any_attendance"
    MANAGE_OTHERS_BREAKS = "manage_others_breaks"
    CORRECT_ATTENDANCE = "correct_attendance"


_GRANTS: dict[Role, frozenset[Capability]] = {
    Role.ADMIN: frozenset(Capability),
    Role.MANAGER: frozenset(
        {
            Capability.LIST_USERS,
            Capability.VIEW_ANY_ATTENDANCE,
            Capability.MANAGE_OTHERS_BREAKS,
        }
    ),
    Role.EMPLOYEE: frozenset(),
}


def has_capability(role: Role, capability: Capability) -> bool:
    return capability in _GRANTS.get(role, frozenset())


def require_capability(role: Role, capability: Capability, message: str = "Insufficient role") -> None:
    if not has_capability(role, capability):
        raise AuthorizationError(message)


def can_act_on(role: Role, *, actor_id: int, target_id: int, capability: Capability) -> bool:
    """Self always passes; anyone else needs the capability."""
    return int(actor_id) == int(target_id) or has_capability(role, capability)
