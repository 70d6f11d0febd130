"""Community administration routes for the audit trail and access reports."""

from datetime import UTC, datetime, timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from guildhall.adapters.audit import (
    AuditAction,
    AuditLogEntry,
    AuditLogFilter,
    SecurityEvent,
    SecuritySummary,
)
from guildhall.core.rbac import (
    MembershipRole,
    MembershipStatus,
    Permission,
    Role,
    permissions_for,
)
from guildhall.entrypoints.api.deps import (
    AccessRepoDep,
    AccessServiceDep,
    AuditLoggerDep,
    SettingsDep,
)
from guildhall.entrypoints.api.middleware import (
    CommunityAccessContext,
    JwtContext,
    require_permission,
    verify_jwt,
)

router = APIRouter(prefix="/admin", tags=["admin"])

RequireCommunityAdmin = Annotated[
    CommunityAccessContext, Depends(require_permission(Permission.COMMUNITY_ADMIN))
]
AuthDep = Annotated[JwtContext, Depends(verify_jwt)]

RECENT_DENIALS_DAYS = 7
RECENT_DENIALS_LIMIT = 20
RECENT_USER_EVENTS_DAYS = 30
RECENT_USER_EVENTS_LIMIT = 50


class AuditLogListResponse(BaseModel):
    """Paginated list of audit logs."""

    items: list[AuditLogEntry]
    total: int
    limit: int
    offset: int


class MemberAccess(BaseModel):
    """A member row with the permissions it currently resolves to."""

    user_id: str
    role: MembershipRole
    status: MembershipStatus
    joined_at: datetime | None = None
    effective_role: Role
    permissions: list[Permission]


class AccessReportSummary(BaseModel):
    """Membership counts for an access report."""

    total_members: int
    admin_count: int
    moderator_count: int
    member_count: int
    pending_count: int
    suspended_count: int


class AccessReportResponse(BaseModel):
    """Members, their permissions and recent denials in a community."""

    members: list[MemberAccess]
    recent_denials: list[AuditLogEntry]
    summary: AccessReportSummary


class ValidatePermissionsRequest(BaseModel):
    """Permissions to evaluate for one user."""

    user_id: str
    permissions: list[str] = Field(min_length=1)


class PermissionResult(BaseModel):
    """Outcome for one permission."""

    permission: str
    allowed: bool
    reason: str | None = None


class ValidatePermissionsResponse(BaseModel):
    """Outcomes for every requested permission."""

    user_id: str
    community_id: str
    results: list[PermissionResult]


class CommunityAccess(BaseModel):
    """A user's standing in one community."""

    community_id: str
    role: MembershipRole
    status: MembershipStatus
    joined_at: datetime | None = None
    is_creator: bool
    has_access: bool
    has_paid_access: bool
    permissions: list[Permission]


class UserAccessSummary(BaseModel):
    """Membership counts across a user's communities."""

    total_communities: int
    active_memberships: int
    pending_memberships: int
    created_communities: int
    admin_roles: int
    moderator_roles: int


class UserAccessSummaryResponse(BaseModel):
    """A user's access across all their communities."""

    user_id: str
    communities: list[CommunityAccess]
    recent_events: list[AuditLogEntry]
    summary: UserAccessSummary


class CleanupRequest(BaseModel):
    """Audit retention cleanup request."""

    retention_days: int = 365


class CleanupResponse(BaseModel):
    """Audit retention cleanup result."""

    deleted_count: int
    retention_days: int


@router.get("/communities/{community_id}/audit-logs", response_model=AuditLogListResponse)
async def list_community_audit_logs(
    community_id: str,
    ctx: RequireCommunityAdmin,
    audit_logger: AuditLoggerDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
    action: str | None = None,
    resource: str | None = None,
    user_id: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> AuditLogListResponse:
    """List a community's audit logs with filtering and pagination.

    Args:
        community_id: Community whose logs to list.
        ctx: Caller context (community admin).
        audit_logger: Audit logger dependency.
        limit: Number of items per page.
        offset: Number of items to skip.
        action: Substring filter on the action tag.
        resource: Substring filter on the resource.
        user_id: Filter by acting user.
        start_date: Filter entries at or after this date.
        end_date: Filter entries at or before this date.

    Returns:
        Paginated list of audit log entries.
    """
    entries, total = await audit_logger.get_audit_logs(
        AuditLogFilter(
            community_id=community_id,
            user_id=user_id,
            action=action,
            resource=resource,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
            offset=offset,
        )
    )
    return AuditLogListResponse(items=entries, total=total, limit=limit, offset=offset)


@router.get("/communities/{community_id}/security-summary", response_model=SecuritySummary)
async def get_security_summary(
    community_id: str,
    ctx: RequireCommunityAdmin,
    audit_logger: AuditLoggerDep,
    days: Annotated[int, Query(ge=1, le=365)] = 30,
) -> SecuritySummary:
    """Summarize a community's audit trail over a trailing window."""
    return await audit_logger.get_security_summary(community_id, days)


@router.get("/communities/{community_id}/access-report", response_model=AccessReportResponse)
async def get_access_report(
    community_id: str,
    ctx: RequireCommunityAdmin,
    service: AccessServiceDep,
    access_repo: AccessRepoDep,
    audit_logger: AuditLoggerDep,
) -> AccessReportResponse:
    """Report every member's effective permissions and recent denials."""
    memberships = await access_repo.list_community_memberships(community_id)

    members = []
    for membership in memberships:
        perms = await service.get_user_permissions(membership.user_id, community_id)
        members.append(
            MemberAccess(
                user_id=membership.user_id,
                role=membership.role,
                status=membership.status,
                joined_at=membership.joined_at,
                effective_role=perms.role,
                permissions=perms.permissions,
            )
        )

    recent_denials, _ = await audit_logger.get_audit_logs(
        AuditLogFilter(
            community_id=community_id,
            action=AuditAction.ACCESS_DENIED.value,
            start_date=datetime.now(UTC) - timedelta(days=RECENT_DENIALS_DAYS),
            limit=RECENT_DENIALS_LIMIT,
        )
    )

    return AccessReportResponse(
        members=members,
        recent_denials=recent_denials,
        summary=AccessReportSummary(
            total_members=len(memberships),
            admin_count=sum(1 for m in memberships if m.role == MembershipRole.ADMIN),
            moderator_count=sum(1 for m in memberships if m.role == MembershipRole.MODERATOR),
            member_count=sum(1 for m in memberships if m.role == MembershipRole.MEMBER),
            pending_count=sum(1 for m in memberships if m.status == MembershipStatus.PENDING),
            suspended_count=sum(
                1 for m in memberships if m.status == MembershipStatus.SUSPENDED
            ),
        ),
    )


@router.post(
    "/communities/{community_id}/validate-permissions",
    response_model=ValidatePermissionsResponse,
)
async def validate_permissions(
    community_id: str,
    body: ValidatePermissionsRequest,
    ctx: RequireCommunityAdmin,
    service: AccessServiceDep,
) -> ValidatePermissionsResponse:
    """Evaluate a list of permissions for another user in the community."""
    results = []
    for permission in body.permissions:
        check = await service.validate_permission(body.user_id, community_id, permission)
        results.append(
            PermissionResult(permission=permission, allowed=check.allowed, reason=check.reason)
        )
    return ValidatePermissionsResponse(
        user_id=body.user_id, community_id=community_id, results=results
    )


@router.get("/users/{user_id}/access-summary", response_model=UserAccessSummaryResponse)
async def get_user_access_summary(
    user_id: str,
    auth: AuthDep,
    service: AccessServiceDep,
    access_repo: AccessRepoDep,
    audit_logger: AuditLoggerDep,
) -> UserAccessSummaryResponse:
    """Summarize the caller's own access across their communities.

    Raises:
        HTTPException: 403 when asking about another user.
    """
    if auth.user_id != user_id:
        raise HTTPException(
            status_code=403,
            detail={
                "error": "access_denied",
                "message": "You can only view your own access summary",
            },
        )

    memberships = await access_repo.list_user_memberships(user_id)

    communities = []
    for membership in memberships:
        access = await service.check_community_access(membership.community_id, user_id)
        communities.append(
            CommunityAccess(
                community_id=membership.community_id,
                role=membership.role,
                status=membership.status,
                joined_at=membership.joined_at,
                is_creator=access.is_creator,
                has_access=access.has_access,
                has_paid_access=access.has_paid_access,
                permissions=permissions_for(access.role) if access.has_access else [],
            )
        )

    recent_events, _ = await audit_logger.get_audit_logs(
        AuditLogFilter(
            user_id=user_id,
            start_date=datetime.now(UTC) - timedelta(days=RECENT_USER_EVENTS_DAYS),
            limit=RECENT_USER_EVENTS_LIMIT,
        )
    )

    return UserAccessSummaryResponse(
        user_id=user_id,
        communities=communities,
        recent_events=recent_events,
        summary=UserAccessSummary(
            total_communities=len(memberships),
            active_memberships=sum(1 for m in memberships if m.is_active),
            pending_memberships=sum(
                1 for m in memberships if m.status == MembershipStatus.PENDING
            ),
            created_communities=sum(1 for c in communities if c.is_creator),
            admin_roles=sum(1 for m in memberships if m.role == MembershipRole.ADMIN),
            moderator_roles=sum(1 for m in memberships if m.role == MembershipRole.MODERATOR),
        ),
    )


@router.post("/audit-logs/cleanup", response_model=CleanupResponse)
async def cleanup_audit_logs(
    body: CleanupRequest,
    auth: AuthDep,
    audit_logger: AuditLoggerDep,
    config: SettingsDep,
) -> CleanupResponse:
    """Delete audit logs older than the retention period.

    Only users listed in ``AUDIT_ADMIN_USER_IDS`` may purge the trail.

    Raises:
        HTTPException: 403 for callers who are not audit operators, 400 when
            the retention period is below the minimum.
    """
    if auth.user_id not in config.audit_admin_user_ids:
        await audit_logger.log_security_event(
            SecurityEvent(
                user_id=auth.user_id,
                action=AuditAction.ACCESS_DENIED.value,
                resource="audit_logs",
                reason="Audit cleanup requires an audit operator",
                metadata={"retention_days": body.retention_days},
            )
        )
        raise HTTPException(
            status_code=403,
            detail={
                "error": "access_denied",
                "message": "Only audit operators can clean up audit logs",
            },
        )

    if body.retention_days < config.audit_min_retention_days:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "invalid_retention",
                "message": (
                    f"Retention period must be at least "
                    f"{config.audit_min_retention_days} days"
                ),
            },
        )

    deleted_count = await audit_logger.cleanup_old_logs(body.retention_days)

    await audit_logger.log_security_event(
        SecurityEvent(
            user_id=auth.user_id,
            action=AuditAction.AUDIT_CLEANUP.value,
            resource="audit_logs",
            reason=f"Cleaned up logs older than {body.retention_days} days",
            metadata={"retention_days": body.retention_days, "deleted_count": deleted_count},
        )
    )

    return CleanupResponse(deleted_count=deleted_count, retention_days=body.retention_days)
