"""Static role to permission matrix and role resolution."""

from collections.abc import Mapping
from types import MappingProxyType

from guildhall.core.rbac.types import Membership, Permission, Role

P = Permission

_MEMBER = frozenset(
    {
        P.COMMUNITY_READ,
        P.COURSE_READ,
        P.LESSON_READ,
        P.POST_READ,
        P.POST_WRITE,
        P.COMMENT_READ,
        P.COMMENT_WRITE,
        P.POINTS_READ,
    }
)

_MODERATOR = _MEMBER | {
    P.COMMUNITY_WRITE,
    P.MEMBER_READ,
    P.MEMBER_WRITE,
    P.COURSE_WRITE,
    P.LESSON_WRITE,
    P.POST_MODERATE,
    P.COMMENT_MODERATE,
}

_ADMIN = _MODERATOR | {
    P.COMMUNITY_ADMIN,
    P.MEMBER_REMOVE,
    P.COURSE_PUBLISH,
    P.COURSE_DELETE,
    P.LESSON_DELETE,
    P.POST_DELETE,
    P.COMMENT_DELETE,
    P.POINTS_ADMIN,
    P.PAYMENT_READ,
}

# Only the creator may delete the community or manage payments.
_CREATOR = _ADMIN | {P.COMMUNITY_DELETE, P.PAYMENT_ADMIN}

PERMISSION_MATRIX: Mapping[Role, frozenset[Permission]] = MappingProxyType(
    {
        Role.MEMBER: _MEMBER,
        Role.MODERATOR: frozenset(_MODERATOR),
        Role.ADMIN: frozenset(_ADMIN),
        Role.CREATOR: frozenset(_CREATOR),
    }
)

# Actions that need a real active membership even when the role allows them.
WRITE_CLASS_ACTIONS = frozenset({"write", "admin", "moderate", "delete", "publish"})

# Roles that may view premium lessons without a subscription.
PREMIUM_OVERRIDE_ROLES = frozenset({Role.MODERATOR, Role.ADMIN, Role.CREATOR})


def _coerce_permission(permission: Permission | str) -> Permission | None:
    if isinstance(permission, Permission):
        return permission
    try:
        return Permission(permission)
    except ValueError:
        return None


def has_permission(role: Role | str, permission: Permission | str) -> bool:
    """Check whether a role grants a permission.

    Unknown roles or permissions are treated as not granted.
    """
    try:
        resolved_role = Role(role)
    except ValueError:
        return False
    resolved = _coerce_permission(permission)
    if resolved is None:
        return False
    return resolved in PERMISSION_MATRIX[resolved_role]


def permissions_for(role: Role) -> list[Permission]:
    """List the permissions a role grants, in declaration order."""
    granted = PERMISSION_MATRIX[role]
    return [p for p in Permission if p in granted]


def requires_active_membership(permission: Permission | str) -> bool:
    """Whether the permission is write-class.

    Write-class permissions are never satisfied by the implicit member
    role that non-members receive.
    """
    resolved = _coerce_permission(permission)
    if resolved is None:
        action = str(permission).rsplit(":", 1)[-1]
        return action in WRITE_CLASS_ACTIONS
    return resolved.action in WRITE_CLASS_ACTIONS


def get_effective_role(membership: Membership | None, is_creator: bool) -> Role:
    """Resolve the role used for a decision.

    The creator always resolves to ``creator``. An active membership
    resolves to its stored role. Anything else, including no membership
    at all, resolves to ``member`` so public reads can proceed.
    """
    if is_creator:
        return Role.CREATOR
    if membership is None or not membership.is_active:
        return Role.MEMBER
    return Role(membership.role.value)
