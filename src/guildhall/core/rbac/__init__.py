"""RBAC core domain."""

from guildhall.core.rbac.access_service import AccessControlService
from guildhall.core.rbac.matrix import (
    PERMISSION_MATRIX,
    get_effective_role,
    has_permission,
    permissions_for,
    requires_active_membership,
)
from guildhall.core.rbac.types import (
    AccessCheckResult,
    AccessDenial,
    BulkOperation,
    BulkOperationResult,
    Community,
    ContentAccessResult,
    ContentRef,
    ContentType,
    Membership,
    MembershipRole,
    MembershipStatus,
    Permission,
    PermissionCheck,
    Role,
    Subscription,
    SubscriptionStatus,
    UserPermissions,
)

__all__ = [
    "PERMISSION_MATRIX",
    "AccessCheckResult",
    "AccessControlService",
    "AccessDenial",
    "BulkOperation",
    "BulkOperationResult",
    "Community",
    "ContentAccessResult",
    "ContentRef",
    "ContentType",
    "Membership",
    "MembershipRole",
    "MembershipStatus",
    "Permission",
    "PermissionCheck",
    "Role",
    "Subscription",
    "SubscriptionStatus",
    "UserPermissions",
    "get_effective_role",
    "has_permission",
    "permissions_for",
    "requires_active_membership",
]
