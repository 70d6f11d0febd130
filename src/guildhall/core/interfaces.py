"""Protocol definitions for the access core's collaborators.

The access service depends only on these protocols. Concrete asyncpg
implementations live under ``guildhall.adapters``; tests swap in
in-memory fakes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from guildhall.adapters.audit.types import SecurityEvent
    from guildhall.core.rbac.types import (
        Community,
        ContentRef,
        ContentType,
        Membership,
        Subscription,
    )


@runtime_checkable
class AccessStore(Protocol):
    """Read-only lookups against the relational store.

    Each call is an independent round-trip. The access core chains them
    sequentially and never writes through this interface.
    """

    async def find_community(self, community_id: str) -> Community | None:
        """Fetch a community by id."""
        ...

    async def find_membership(self, user_id: str, community_id: str) -> Membership | None:
        """Fetch the membership row for a (user, community) pair."""
        ...

    async def find_active_subscription(
        self, user_id: str, community_id: str
    ) -> Subscription | None:
        """Fetch an active or trialing subscription, if any."""
        ...

    async def find_content(self, content_type: ContentType, content_id: str) -> ContentRef | None:
        """Fetch a content item projected onto its owning community."""
        ...


@runtime_checkable
class AuditSink(Protocol):
    """Append-only destination for security events."""

    async def log_security_event(self, event: SecurityEvent) -> None:
        """Record one event. Must never raise."""
        ...

    async def log_permission_change(
        self,
        admin_user_id: str,
        target_user_id: str,
        community_id: str,
        action: str,
        old_role: str | None = None,
        new_role: str | None = None,
    ) -> None:
        """Record a role or status change."""
        ...

    async def log_moderation_event(
        self,
        moderator_id: str,
        action: str,
        resource_type: str,
        resource_id: str,
        community_id: str | None = None,
        reason: str | None = None,
    ) -> None:
        """Record a moderation action."""
        ...

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
        ...
