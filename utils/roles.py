"""
Role hierarchy policy.

Roles form a strict total order: owner > admin > manager > user.
Every user-management operation goes through these checks; nothing else in
the codebase compares ranks directly.
"""
from __future__ import annotations

import enum

from services.errors import ForbiddenError


class Role(str, enum.Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"

    @classmethod
    def parse(cls, value: "Role | str") -> "Role":
        """Return the Role for a value, raising ValueError for unknown roles."""
        if isinstance(value, cls):
            return value
        return cls(str(value).lower())


ROLE_RANKS = {
    Role.OWNER: 100,
    Role.ADMIN: 80,
    Role.MANAGER: 60,
    Role.USER: 40,
}

# Roles that may be handed out after registration. Owner only exists via register.
ASSIGNABLE_ROLES = (Role.ADMIN.value, Role.MANAGER.value, Role.USER.value)


def rank(role: Role | str) -> int:
    return ROLE_RANKS[Role.parse(role)]


def can_manage(actor_role: Role | str, target_role: Role | str) -> bool:
    """True iff actor strictly outranks target. Equal rank is always denied."""
    return rank(actor_role) > rank(target_role)


def has_at_least(role: Role | str, minimum: Role | str) -> bool:
    """Route gating: the role meets or exceeds the minimum."""
    try:
        return rank(role) >= rank(minimum)
    except ValueError:
        return False


def check_not_self(actor_id: str, target_id: str, action: str = "modify") -> None:
    if actor_id == target_id:
        if action == "delete":
            raise ForbiddenError("You cannot delete your own account")
        raise ForbiddenError("You cannot change your own role or status")


def check_can_manage_user(actor_role: Role | str, target_role: Role | str, action: str = "modify") -> None:
    """Owners are untouchable; everyone else needs a strictly higher rank."""
    if Role.parse(target_role) is Role.OWNER:
        if action == "delete":
            raise ForbiddenError("Cannot delete the owner account")
        raise ForbiddenError("Cannot change the owner's role or status")
    if not can_manage(actor_role, target_role):
        raise ForbiddenError("You cannot modify users with a role equal to or higher than yours")


def check_can_grant(actor_role: Role | str, new_role: Role | str) -> None:
    if not can_manage(actor_role, new_role):
        raise ForbiddenError("You cannot assign a role equal to or higher than your own")
