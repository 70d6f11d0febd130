"""Audit logging service for security events."""

from datetime import UTC, datetime, timedelta
from typing import Any

import structlog

from guildhall.adapters.audit.repository import AuditRepository
from guildhall.adapters.audit.types import (
    AUTH_ACTIONS,
    AuditAction,
    AuditLogEntry,
    AuditLogFilter,
    SecurityEvent,
    SecuritySummary,
)

logger = structlog.get_logger()

DEFAULT_RETENTION_DAYS = 365
RECENT_EVENTS_LIMIT = 10


class AuditLogger:
    """Records and queries the security audit trail.

    One instance is created at startup and injected wherever decisions are
    made. Writing an event is best-effort: a storage failure is logged and
    never reaches the caller.
    """

    def __init__(self, repository: AuditRepository) -> None:
        """Initialize the audit logger.

        Args:
            repository: Storage for audit entries.
        """
        self._repo = repository

    async def log_security_event(self, event: SecurityEvent) -> None:
        """Append one audit entry, swallowing storage errors.

        Args:
            event: Event to record.
        """
        try:
            await self._repo.record(event)
            logger.debug(
                "security_event",
                action=event.action,
                resource=event.resource,
                user_id=event.user_id,
                community_id=event.community_id,
                reason=event.reason,
            )
        except Exception as e:
            logger.error(
                "security_event_write_failed",
                action=event.action,
                resource=event.resource,
                error=str(e),
            )

    async def log_auth_event(
        self,
        user_id: str | None,
        action: AuditAction,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Record an authentication event.

        Args:
            user_id: User involved, None for unknown users.
            action: One of the authentication actions.
            metadata: Extra context.

        Raises:
            ValueError: If the action is not an authentication action.
        """
        if action not in AUTH_ACTIONS:
            raise ValueError(f"Not an authentication action: {action}")
        await self.log_security_event(
            SecurityEvent(
                user_id=user_id,
                action=action.value,
                resource="authentication",
                metadata=metadata or {},
            )
        )

    async def log_permission_change(
        self,
        admin_user_id: str,
        target_user_id: str,
        community_id: str,
        action: str,
        old_role: str | None = None,
        new_role: str | None = None,
    ) -> None:
        """Record a change to another user's role or membership status."""
        await self.log_security_event(
            SecurityEvent(
                user_id=admin_user_id,
                action=AuditAction.PERMISSION_CHANGE.value,
                resource=f"user:{target_user_id}",
                reason=action,
                community_id=community_id,
                metadata={
                    "target_user_id": target_user_id,
                    "old_role": old_role,
                    "new_role": new_role,
                    "action": action,
                },
            )
        )

    async def log_moderation_event(
        self,
        moderator_id: str,
        action: str,
        resource_type: str,
        resource_id: str,
        community_id: str | None = None,
        reason: str | None = None,
    ) -> None:
        """Record a moderation action on a post, comment or user."""
        await self.log_security_event(
            SecurityEvent(
                user_id=moderator_id,
                action=AuditAction.MODERATION.value,
                resource=f"{resource_type}:{resource_id}",
                reason=f"{action}: {reason or 'No reason provided'}",
                community_id=community_id,
                metadata={
                    "moderation_action": action,
                    "resource_type": resource_type,
                    "resource_id": resource_id,
                    "reason": reason,
                },
            )
        )

    async def log_payment_event(
        self,
        user_id: str,
        action: str,
        community_id: str | None = None,
        amount: float | None = None,
        currency: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Record a payment lifecycle event."""
        await self.log_security_event(
            SecurityEvent(
                user_id=user_id,
                action=AuditAction.PAYMENT.value,
                resource="subscription",
                reason=action,
                community_id=community_id,
                metadata={
                    "payment_action": action,
                    "amount": amount,
                    "currency": currency,
                    **(metadata or {}),
                },
            )
        )

    async def log_data_access(
        self,
        user_id: str,
        action: str,
        resource: str,
        community_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Record access to sensitive data."""
        await self.log_security_event(
            SecurityEvent(
                user_id=user_id,
                action=AuditAction.DATA_ACCESS.value,
                resource=resource,
                reason=action,
                community_id=community_id,
                metadata=metadata or {},
            )
        )

    async def get_audit_logs(
        self, filters: AuditLogFilter | None = None
    ) -> tuple[list[AuditLogEntry], int]:
        """List audit entries, newest first.

        Args:
            filters: Filter and pagination options.

        Returns:
            Tuple of (entries, total matching entries).
        """
        return await self._repo.list(filters or AuditLogFilter())

    async def get_security_summary(self, community_id: str, days: int = 30) -> SecuritySummary:
        """Summarize a community's audit trail over the last ``days`` days.

        Args:
            community_id: Community to summarize.
            days: Length of the trailing window.

        Returns:
            Event counts and the most recent events.
        """
        since = datetime.now(UTC) - timedelta(days=days)
        counts = await self._repo.count_by_action(community_id, since)
        recent, _ = await self._repo.list(
            AuditLogFilter(
                community_id=community_id,
                start_date=since,
                limit=RECENT_EVENTS_LIMIT,
            )
        )
        return SecuritySummary(
            total_events=sum(counts.values()),
            access_denied_events=counts.get(AuditAction.ACCESS_DENIED.value, 0),
            moderation_events=counts.get(AuditAction.MODERATION.value, 0),
            permission_changes=counts.get(AuditAction.PERMISSION_CHANGE.value, 0),
            recent_events=recent,
        )

    async def cleanup_old_logs(self, retention_days: int = DEFAULT_RETENTION_DAYS) -> int:
        """Delete entries older than the retention horizon.

        The cutoff is fixed before the delete runs, so entries inserted
        concurrently are always newer than it.

        Args:
            retention_days: Entries older than this many days are removed.

        Returns:
            Number of entries deleted.
        """
        cutoff = datetime.now(UTC) - timedelta(days=retention_days)
        count = await self._repo.delete_before(cutoff)
        logger.info("audit_logs_cleaned", cutoff=cutoff.isoformat(), deleted=count)
        return count
