"""
Role Registry
==============
Hierarchical roles for billing operations.

Levels (each includes all below):
  member → create bills, update unpaid bills, record payments
  admin  → member + cancel bills, manage stock and catalog, view reports
  owner  → admin + everything else
"""

import enum


class Role(str, enum.Enum):
    MEMBER = "member"
    ADMIN = "admin"
    OWNER = "owner"


ROLE_LEVELS = [Role.MEMBER.value, Role.ADMIN.value, Role.OWNER.value]


def level_index(role) -> int:
    """Numeric index for a role. Higher = more access. -1 for unknown."""
    value = role.value if isinstance(role, Role) else role
    try:
        return ROLE_LEVELS.index(value)
    except ValueError:
        return -1


def has_role(granted, required) -> bool:
    """Check if granted role >= required role in the hierarchy."""
    granted_idx = level_index(granted)
    return granted_idx >= 0 and granted_idx >= level_index(required)


def ensure_role(actor, required: Role):
    """Raise AuthorizationError unless actor is active and holds `required` (or higher)."""
    from common.exceptions import AuthorizationError

    required_value = required.value if isinstance(required, Role) else required
    if actor is None or not getattr(actor, "is_active", False):
        raise AuthorizationError(required_value)
    if not has_role(actor.role, required_value):
        raise AuthorizationError(required_value, actor.role)
    return actor
