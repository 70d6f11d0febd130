"""Access decisions for communities and their content.

Every public method here fails closed: an unexpected error is logged and
turned into a denial, never raised to the caller and never a grant.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from guildhall.adapters.audit.types import AuditAction, SecurityEvent
from guildhall.core.interfaces import AccessStore, AuditSink
from guildhall.core.rbac.matrix import (
    PREMIUM_OVERRIDE_ROLES,
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
    ContentAccessResult,
    ContentType,
    Permission,
    PermissionCheck,
    UserPermissions,
)

logger = structlog.get_logger()

BULK_OPERATION_PERMISSIONS: dict[BulkOperation, Permission] = {
    BulkOperation.PUBLISH: Permission.COURSE_PUBLISH,
    BulkOperation.DELETE: Permission.COURSE_DELETE,
    BulkOperation.MODERATE: Permission.POST_MODERATE,
}

REASON_COMMUNITY_NOT_FOUND = "Community not found"
REASON_AUTH_REQUIRED = "Authentication required"
REASON_PRIVATE_COMMUNITY = "Private community requires membership"
REASON_SUBSCRIPTION_REQUIRED = "Paid subscription required for premium content"
REASON_ACCESS_CHECK_FAILED = "Access check failed"
REASON_CONTENT_CHECK_FAILED = "Content access check failed"
REASON_ACCESS_DENIED = "Access denied to community"
REASON_ACTIVE_MEMBERSHIP = "Active membership required for this action"
REASON_PAID_REQUIRED = "Paid subscription required"
REASON_VALIDATION_FAILED = "Permission validation failed"
REASON_NO_COMMUNITY_ACCESS = "No community access"
REASON_BULK_FAILED = "Bulk operation validation failed"


class AccessControlService:
    """Role, membership and payment aware authorization.

    Lookups go through an ``AccessStore`` and are chained sequentially,
    since each one depends on the previous result. Denials from
    ``validate_permission`` are written to the injected ``AuditSink``.
    """

    def __init__(self, store: AccessStore, audit: AuditSink) -> None:
        """Initialize the service.

        Args:
            store: Read-only persistence lookups.
            audit: Destination for access decisions.
        """
        self._store = store
        self._audit = audit

    async def check_community_access(
        self, community_id: str, user_id: str | None = None
    ) -> AccessCheckResult:
        """Determine basic and paid access to a community.

        Args:
            community_id: Community being accessed.
            user_id: Caller, or None for anonymous visitors.

        Returns:
            Access result. Never raises; failures deny.
        """
        try:
            community = await self._store.find_community(community_id)
            if community is None:
                return AccessCheckResult.denied(REASON_COMMUNITY_NOT_FOUND)

            if not user_id:
                return AccessCheckResult(
                    has_access=community.is_public,
                    has_paid_access=False,
                    reason=None if community.is_public else REASON_AUTH_REQUIRED,
                )

            is_creator = community.creator_id == user_id
            membership = await self._store.find_membership(user_id, community_id)
            is_active_member = membership is not None and membership.is_active

            reason: str | None = None
            has_access = is_creator or is_active_member or community.is_public
            if not has_access:
                reason = REASON_PRIVATE_COMMUNITY

            if is_creator:
                has_paid_access = True
            elif community.is_free:
                # Free content still needs an active membership.
                has_paid_access = has_access and is_active_member
            elif is_active_member:
                subscription = await self._store.find_active_subscription(user_id, community_id)
                has_paid_access = subscription is not None
                if not has_paid_access:
                    reason = REASON_SUBSCRIPTION_REQUIRED
            else:
                has_paid_access = False

            return AccessCheckResult(
                has_access=has_access,
                has_paid_access=has_paid_access,
                role=get_effective_role(membership, is_creator),
                is_creator=is_creator,
                membership=membership,
                reason=reason,
            )
        except Exception as e:
            logger.error(
                "community_access_check_failed",
                community_id=community_id,
                user_id=user_id,
                error=str(e),
            )
            return AccessCheckResult.denied(REASON_ACCESS_CHECK_FAILED)

    async def check_content_access(
        self,
        content_type: ContentType | str,
        content_id: str,
        user_id: str | None = None,
    ) -> ContentAccessResult:
        """Determine what the caller may do with one lesson, post or comment.

        Args:
            content_type: Kind of content.
            content_id: Content identifier.
            user_id: Caller, or None for anonymous visitors.

        Returns:
            Content access result. Never raises; failures deny.
        """
        try:
            kind = ContentType(content_type)
            content = await self._store.find_content(kind, content_id)
            if content is None or not content.community_id:
                return ContentAccessResult.denied(f"{kind.value} not found")

            is_author = (
                kind != ContentType.LESSON
                and user_id is not None
                and content.author_id == user_id
            )

            access = await self.check_community_access(content.community_id, user_id)
            if not access.has_access:
                return ContentAccessResult(
                    has_access=False,
                    has_paid_access=access.has_paid_access,
                    role=access.role,
                    is_creator=access.is_creator,
                    membership=access.membership,
                    reason=access.reason,
                )

            can_view = True
            if content.is_premium and not access.has_paid_access:
                can_view = access.role in PREMIUM_OVERRIDE_ROLES

            owns = is_author or access.is_creator
            return ContentAccessResult(
                has_access=access.has_access,
                has_paid_access=access.has_paid_access,
                role=access.role,
                is_creator=access.is_creator,
                membership=access.membership,
                reason=access.reason,
                can_view=can_view,
                can_edit=owns or has_permission(access.role, f"{kind.value}:write"),
                can_delete=owns or has_permission(access.role, f"{kind.value}:delete"),
                can_moderate=has_permission(access.role, f"{kind.value}:moderate"),
            )
        except Exception as e:
            logger.error(
                "content_access_check_failed",
                content_type=str(content_type),
                content_id=content_id,
                user_id=user_id,
                error=str(e),
            )
            return ContentAccessResult.denied(REASON_CONTENT_CHECK_FAILED)

    async def validate_permission(
        self,
        user_id: str,
        community_id: str,
        permission: Permission | str,
        require_paid_access: bool = False,
    ) -> PermissionCheck:
        """Decide whether a user may perform an action in a community.

        Every denial is audited as ``ACCESS_DENIED`` before returning.

        Args:
            user_id: Acting user.
            community_id: Community the action targets.
            permission: Permission the action needs.
            require_paid_access: Also require paid access.

        Returns:
            Whether the action is allowed, with a reason when it is not.
        """
        resource = permission.value if isinstance(permission, Permission) else str(permission)
        try:
            access = await self.check_community_access(community_id, user_id)

            if not access.has_access:
                kind = (
                    AccessDenial.NOT_FOUND
                    if access.reason == REASON_COMMUNITY_NOT_FOUND
                    else AccessDenial.ACCESS_DENIED
                )
                return await self._deny(
                    user_id,
                    community_id,
                    resource,
                    access.reason or REASON_ACCESS_DENIED,
                    kind,
                )

            membership_active = access.membership is not None and access.membership.is_active
            if (
                requires_active_membership(resource)
                and not access.is_creator
                and not membership_active
            ):
                return await self._deny(
                    user_id,
                    community_id,
                    resource,
                    REASON_ACTIVE_MEMBERSHIP,
                    AccessDenial.ACCESS_DENIED,
                )

            if require_paid_access and not access.has_paid_access:
                return await self._deny(
                    user_id,
                    community_id,
                    resource,
                    REASON_PAID_REQUIRED,
                    AccessDenial.PAYMENT_REQUIRED,
                )

            if not has_permission(access.role, resource):
                return await self._deny(
                    user_id,
                    community_id,
                    resource,
                    f"Insufficient permissions. Required: {resource}",
                    AccessDenial.ACCESS_DENIED,
                )

            return PermissionCheck(allowed=True, role=access.role)
        except Exception as e:
            logger.error(
                "permission_validation_failed",
                user_id=user_id,
                community_id=community_id,
                permission=resource,
                error=str(e),
            )
            await self._audit.log_security_event(
                SecurityEvent(
                    user_id=user_id,
                    action=AuditAction.ACCESS_ERROR.value,
                    resource=resource,
                    reason=f"Permission validation failed: {e}",
                    community_id=community_id,
                )
            )
            return PermissionCheck(
                allowed=False,
                reason=REASON_VALIDATION_FAILED,
                denial=AccessDenial.ACCESS_ERROR,
            )

    async def get_user_permissions(self, user_id: str, community_id: str) -> UserPermissions:
        """List a user's effective role and permissions in a community."""
        access = await self.check_community_access(community_id, user_id)
        return UserPermissions(
            role=access.role,
            permissions=permissions_for(access.role) if access.has_access else [],
            has_access=access.has_access,
            has_paid_access=access.has_paid_access,
        )

    async def check_multiple_community_access(
        self, community_ids: Sequence[str], user_id: str | None = None
    ) -> dict[str, AccessCheckResult]:
        """Evaluate community access for several communities."""
        results: dict[str, AccessCheckResult] = {}
        for community_id in community_ids:
            results[community_id] = await self.check_community_access(community_id, user_id)
        return results

    async def validate_bulk_operation(
        self,
        user_id: str,
        community_id: str,
        operation: BulkOperation | str,
        resource_ids: Sequence[str],
    ) -> BulkOperationResult:
        """Check one representative permission for a whole batch.

        The decision applies uniformly to every id: the batch is either
        entirely allowed or entirely denied.

        Args:
            user_id: Acting user.
            community_id: Community the batch belongs to.
            operation: Bulk operation to perform.
            resource_ids: Ids in the batch.

        Returns:
            Partition of ``resource_ids`` into allowed and denied.
        """
        ids = list(resource_ids)
        try:
            op = BulkOperation(operation)
            access = await self.check_community_access(community_id, user_id)
            if not access.has_access:
                return BulkOperationResult(
                    allowed=False, denied_ids=ids, reason=REASON_NO_COMMUNITY_ACCESS
                )

            if not has_permission(access.role, BULK_OPERATION_PERMISSIONS[op]):
                return BulkOperationResult(
                    allowed=False,
                    denied_ids=ids,
                    reason=f"Insufficient permissions for {op.value} operation",
                )

            return BulkOperationResult(allowed=True, allowed_ids=ids)
        except Exception as e:
            logger.error(
                "bulk_operation_validation_failed",
                user_id=user_id,
                community_id=community_id,
                operation=str(operation),
                error=str(e),
            )
            return BulkOperationResult(allowed=False, denied_ids=ids, reason=REASON_BULK_FAILED)

    async def _deny(
        self,
        user_id: str,
        community_id: str,
        resource: str,
        reason: str,
        denial: AccessDenial,
    ) -> PermissionCheck:
        """Audit a denial and build the result."""
        await self._audit.log_security_event(
            SecurityEvent(
                user_id=user_id,
                action=AuditAction.ACCESS_DENIED.value,
                resource=resource,
                reason=reason,
                community_id=community_id,
            )
        )
        return PermissionCheck(allowed=False, reason=reason, denial=denial)
