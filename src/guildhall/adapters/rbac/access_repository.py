"""Access lookups repository."""

from typing import Any

from asyncpg import Pool

from guildhall.core.rbac import (
    Community,
    ContentRef,
    ContentType,
    Membership,
    MembershipRole,
    MembershipStatus,
    Subscription,
    SubscriptionStatus,
)
from guildhall.core.rbac.types import PAID_SUBSCRIPTION_STATUSES

# Each query projects content onto its owning community in one round-trip.
_CONTENT_QUERIES: dict[ContentType, str] = {
    ContentType.LESSON: """
        SELECT l.id, c.community_id, NULL::text AS author_id, l.is_free
        FROM lessons l
        JOIN courses c ON c.id = l.course_id
        WHERE l.id = $1
    """,
    ContentType.POST: """
        SELECT p.id, p.community_id, p.author_id, TRUE AS is_free
        FROM posts p
        WHERE p.id = $1
    """,
    ContentType.COMMENT: """
        SELECT cm.id, p.community_id, cm.author_id, TRUE AS is_free
        FROM comments cm
        JOIN posts p ON p.id = cm.post_id
        WHERE cm.id = $1
    """,
}


class AccessRepository:
    """Read-only lookups used by access decisions."""

    def __init__(self, pool: Pool) -> None:
        """Initialize the repository.

        Args:
            pool: Database connection pool.
        """
        self._pool = pool

    async def find_community(self, community_id: str) -> Community | None:
        """Get community by ID."""
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT id, is_public, creator_id, price_monthly, price_yearly
                FROM communities WHERE id = $1
                """,
                community_id,
            )
        if not row:
            return None
        return Community(
            id=str(row["id"]),
            is_public=row["is_public"],
            creator_id=str(row["creator_id"]),
            price_monthly=_to_float(row["price_monthly"]),
            price_yearly=_to_float(row["price_yearly"]),
        )

    async def find_membership(self, user_id: str, community_id: str) -> Membership | None:
        """Get the membership row for a user in a community."""
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT user_id, community_id, role, status, joined_at
                FROM community_memberships
                WHERE user_id = $1 AND community_id = $2
                """,
                user_id,
                community_id,
            )
        if not row:
            return None
        return self._row_to_membership(row)

    async def find_active_subscription(
        self, user_id: str, community_id: str
    ) -> Subscription | None:
        """Get an active or trialing subscription for a user in a community."""
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT user_id, community_id, status
                FROM subscriptions
                WHERE user_id = $1 AND community_id = $2 AND status = ANY($3::text[])
                LIMIT 1
                """,
                user_id,
                community_id,
                sorted(s.value for s in PAID_SUBSCRIPTION_STATUSES),
            )
        if not row:
            return None
        return Subscription(
            user_id=str(row["user_id"]),
            community_id=str(row["community_id"]),
            status=SubscriptionStatus(row["status"]),
        )

    async def find_content(self, content_type: ContentType, content_id: str) -> ContentRef | None:
        """Get a lesson, post or comment with its owning community."""
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(_CONTENT_QUERIES[content_type], content_id)
        if not row:
            return None
        return ContentRef(
            content_type=content_type,
            content_id=str(row["id"]),
            community_id=str(row["community_id"]) if row["community_id"] else None,
            author_id=str(row["author_id"]) if row["author_id"] else None,
            is_free=bool(row["is_free"]),
        )

    async def list_community_memberships(self, community_id: str) -> list[Membership]:
        """List every membership row in a community, by role then join date."""
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT user_id, community_id, role, status, joined_at
                FROM community_memberships
                WHERE community_id = $1
                ORDER BY role, joined_at
                """,
                community_id,
            )
        return [self._row_to_membership(row) for row in rows]

    async def list_user_memberships(self, user_id: str) -> list[Membership]:
        """List every membership row a user holds."""
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT user_id, community_id, role, status, joined_at
                FROM community_memberships
                WHERE user_id = $1
                ORDER BY joined_at
                """,
                user_id,
            )
        return [self._row_to_membership(row) for row in rows]

    def _row_to_membership(self, row: Any) -> Membership:
        """Convert database row to Membership."""
        return Membership(
            user_id=str(row["user_id"]),
            community_id=str(row["community_id"]),
            role=MembershipRole(row["role"]),
            status=MembershipStatus(row["status"]),
            joined_at=row["joined_at"],
        )


def _to_float(value: Any) -> float | None:
    return float(value) if value is not None else None
