# investment_tracker/services/access_control.py
import enum
from typing import Dict, FrozenSet, Optional

from investment_tracker.db.enums import UserRole


class Action(str, enum.Enum):
    VIEW = "view"
    CREATE = "create"
    UPDATE = "update"
    EXPORT = "export"
    DELETE = "delete"
    MANAGE_USERS = "manage_users"


# viewer: read only / editor: create, update, export / admin: everything
ROLE_PERMISSIONS: Dict[UserRole, FrozenSet[Action]] = {
    UserRole.VIEWER: frozenset({Action.VIEW}),
    UserRole.EDITOR: frozenset({Action.VIEW, Action.CREATE, Action.UPDATE, Action.EXPORT}),
    UserRole.ADMIN: frozenset(Action),
}


def can(role: Optional[UserRole], action: Action) -> bool:
    if role is None:
        return Action(action) == Action.VIEW
    return Action(action) in ROLE_PERMISSIONS.get(UserRole(role), frozenset())


def require(role: Optional[UserRole], action: Action) -> None:
    '''
    Gate in front of a mutation.
    Raises PermissionError when the role may not perform the action.
    '''
    if not can(role, action):
        role_name = UserRole(role).value if role is not None else "guest"
        raise PermissionError(f"Role '{role_name}' is not allowed to {Action(action).value}")
