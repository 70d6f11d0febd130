"""Access control dependencies for API routes.

These translate access decisions into HTTP errors: 401 when the caller is
anonymous and the route needs an identity, 402 when a paid gate fails,
404 for missing content and 403 for everything else.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Annotated, Any

import structlog
from fastapi import Depends, HTTPException, Request

from guildhall.adapters.audit import AuditAction, AuditLogger, SecurityEvent
from guildhall.core.rbac import (
    AccessCheckResult,
    AccessControlService,
    AccessDenial,
    ContentAccessResult,
    ContentType,
    MembershipStatus,
    Permission,
    Role,
)
from guildhall.entrypoints.api.deps import get_access_service, get_audit_logger
from guildhall.entrypoints.api.middleware.jwt_auth import JwtContext, optional_jwt

logger = structlog.get_logger()

# Grants for these actions are audited as well as denials.
SENSITIVE_ACTIONS = frozenset({"admin", "delete", "moderate"})


@dataclass
class CommunityAccessContext:
    """Caller context for a route that passed a community permission check."""

    community_id: str
    user_id: str | None
    role: Role


def get_client_ip(request: Request) -> str | None:
    """Extract client IP from request.

    Args:
        request: FastAPI request object.

    Returns:
        Client IP address or None.
    """
    # Check X-Forwarded-For header first (for proxied requests)
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    if request.client:
        return request.client.host

    return None


async def _audit(
    audit_logger: AuditLogger,
    request: Request,
    *,
    user_id: str | None,
    action: AuditAction,
    resource: str,
    reason: str,
    community_id: str | None = None,
) -> None:
    """Record an access event with the request's client details."""
    await audit_logger.log_security_event(
        SecurityEvent(
            user_id=user_id,
            action=action.value,
            resource=resource,
            reason=reason,
            community_id=community_id,
            ip_address=get_client_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    )


def _unauthenticated() -> HTTPException:
    return HTTPException(
        status_code=401,
        detail={
            "error": "authentication_required",
            "message": "Please log in to access this resource",
        },
        headers={"WWW-Authenticate": "Bearer"},
    )


def _payment_required(message: str) -> HTTPException:
    return HTTPException(
        status_code=402,
        detail={"error": "payment_required", "message": message},
    )


def _forbidden(message: str) -> HTTPException:
    return HTTPException(
        status_code=403,
        detail={"error": "access_denied", "message": message},
    )


def require_permission(
    permission: Permission,
    *,
    allow_public_read: bool = False,
    require_paid_access: bool = False,
) -> Callable[..., Any]:
    """Dependency to require a permission in the route's community.

    The route must declare a ``community_id`` path parameter.

    Usage:
        @router.get("/communities/{community_id}/audit-logs")
        async def list_logs(
            ctx: Annotated[
                CommunityAccessContext,
                Depends(require_permission(Permission.COMMUNITY_ADMIN)),
            ],
        ):
            ...

    Args:
        permission: Permission the route needs.
        allow_public_read: Let anonymous callers through for ``:read``
            permissions on communities they can see.
        require_paid_access: Also require paid access.

    Returns:
        Dependency function that validates the permission.
    """

    async def permission_checker(
        request: Request,
        community_id: str,
        service: Annotated[AccessControlService, Depends(get_access_service)],
        audit_logger: Annotated[AuditLogger, Depends(get_audit_logger)],
        auth: Annotated[JwtContext | None, Depends(optional_jwt)],
    ) -> CommunityAccessContext:
        if auth is None:
            if allow_public_read and permission.action == "read":
                access = await service.check_community_access(community_id)
                if access.has_access:
                    return CommunityAccessContext(
                        community_id=community_id, user_id=None, role=access.role
                    )

            await _audit(
                audit_logger,
                request,
                user_id=None,
                action=AuditAction.ACCESS_DENIED,
                resource=permission.value,
                reason="Authentication required",
                community_id=community_id,
            )
            raise _unauthenticated()

        check = await service.validate_permission(
            auth.user_id,
            community_id,
            permission,
            require_paid_access=require_paid_access,
        )
        if not check.allowed:
            logger.info(
                "permission_denied",
                community_id=community_id,
                user_id=auth.user_id,
                permission=permission.value,
                denial=check.denial.value if check.denial else None,
            )
            message = check.reason or "Access denied"
            if check.denial == AccessDenial.PAYMENT_REQUIRED:
                raise _payment_required("This content requires a paid subscription")
            raise _forbidden(message)

        role = check.role or Role.MEMBER
        if permission.action in SENSITIVE_ACTIONS:
            await _audit(
                audit_logger,
                request,
                user_id=auth.user_id,
                action=AuditAction.ACCESS_GRANTED,
                resource=permission.value,
                reason=f"Permission granted (role: {role.value})",
                community_id=community_id,
            )

        return CommunityAccessContext(community_id=community_id, user_id=auth.user_id, role=role)

    return permission_checker


def require_membership(
    *,
    allow_pending: bool = False,
    require_paid_access: bool = False,
) -> Callable[..., Any]:
    """Dependency to require membership in the route's community.

    The creator always passes. Other callers need a membership row whose
    status is active, or pending when ``allow_pending`` is set.

    Args:
        allow_pending: Accept pending memberships too.
        require_paid_access: Also require paid access.

    Returns:
        Dependency function that validates membership.
    """
    valid_statuses = {MembershipStatus.ACTIVE}
    if allow_pending:
        valid_statuses.add(MembershipStatus.PENDING)

    async def membership_checker(
        request: Request,
        community_id: str,
        service: Annotated[AccessControlService, Depends(get_access_service)],
        audit_logger: Annotated[AuditLogger, Depends(get_audit_logger)],
        auth: Annotated[JwtContext | None, Depends(optional_jwt)],
    ) -> AccessCheckResult:
        if auth is None:
            raise _unauthenticated()

        access = await service.check_community_access(community_id, auth.user_id)
        if access.is_creator:
            return access

        if access.membership is None:
            await _audit(
                audit_logger,
                request,
                user_id=auth.user_id,
                action=AuditAction.ACCESS_DENIED,
                resource="membership",
                reason="Not a member",
                community_id=community_id,
            )
            raise _forbidden("You must be a member of this community")

        if access.membership.status not in valid_statuses:
            await _audit(
                audit_logger,
                request,
                user_id=auth.user_id,
                action=AuditAction.ACCESS_DENIED,
                resource="membership",
                reason=f"Invalid membership status: {access.membership.status.value}",
                community_id=community_id,
            )
            raise _forbidden("Your membership status does not allow access to this resource")

        if require_paid_access and not access.has_paid_access:
            await _audit(
                audit_logger,
                request,
                user_id=auth.user_id,
                action=AuditAction.ACCESS_DENIED,
                resource="paid_content",
                reason="Paid access required",
                community_id=community_id,
            )
            raise _payment_required("This content requires a paid subscription")

        return access

    return membership_checker


def require_content_access(content_type: ContentType) -> Callable[..., Any]:
    """Dependency to require view access to a lesson, post or comment.

    The route must declare a ``content_id`` path parameter.

    Args:
        content_type: Kind of content the route serves.

    Returns:
        Dependency function that validates content access.
    """

    async def content_checker(
        request: Request,
        content_id: str,
        service: Annotated[AccessControlService, Depends(get_access_service)],
        audit_logger: Annotated[AuditLogger, Depends(get_audit_logger)],
        auth: Annotated[JwtContext | None, Depends(optional_jwt)],
    ) -> ContentAccessResult:
        if auth is None:
            raise _unauthenticated()

        resource = f"{content_type.value}:{content_id}"
        result = await service.check_content_access(content_type, content_id, auth.user_id)

        if result.reason == f"{content_type.value} not found":
            raise HTTPException(
                status_code=404,
                detail={"error": "not_found", "message": result.reason},
            )

        if not result.has_access:
            await _audit(
                audit_logger,
                request,
                user_id=auth.user_id,
                action=AuditAction.ACCESS_DENIED,
                resource=resource,
                reason=result.reason or "No community access",
            )
            raise _forbidden("You do not have access to this community")

        if not result.can_view:
            await _audit(
                audit_logger,
                request,
                user_id=auth.user_id,
                action=AuditAction.ACCESS_DENIED,
                resource=resource,
                reason="Premium content requires paid access",
            )
            raise _payment_required(f"This {content_type.value} requires a paid subscription")

        return result

    return content_checker
