"""Audit log repository."""

import json
from datetime import datetime
from typing import Any
from uuid import UUID

from asyncpg import Pool

from guildhall.adapters.audit.types import AuditLogEntry, AuditLogFilter, SecurityEvent

_COLUMNS = """
    id, user_id, action, resource, reason, community_id,
    ip_address, user_agent, metadata, created_at
"""


class AuditRepository:
    """Repository for audit log operations.

    Entries are write-once: the repository exposes inserts, reads and the
    retention delete, never updates.
    """

    def __init__(self, pool: Pool) -> None:
        """Initialize the repository.

        Args:
            pool: Database connection pool.
        """
        self._pool = pool

    async def record(self, event: SecurityEvent) -> UUID:
        """Record an audit log entry.

        Args:
            event: Security event to record.

        Returns:
            ID of the created entry.
        """
        query = """
            INSERT INTO audit_logs (
                user_id, action, resource, reason, community_id,
                ip_address, user_agent, metadata
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
            RETURNING id
        """
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                query,
                event.user_id,
                event.action,
                event.resource,
                event.reason,
                event.community_id,
                event.ip_address,
                event.user_agent,
                json.dumps(event.metadata),
            )
            result: UUID = row["id"]
            return result

    async def list(self, filters: AuditLogFilter) -> tuple[list[AuditLogEntry], int]:
        """List audit log entries with filters, newest first.

        Args:
            filters: Filter and pagination options.

        Returns:
            Tuple of (entries, total_count).
        """
        conditions: list[str] = []
        params: list[Any] = []
        param_idx = 1

        if filters.user_id:
            conditions.append(f"user_id = ${param_idx}")
            params.append(filters.user_id)
            param_idx += 1

        if filters.community_id:
            conditions.append(f"community_id = ${param_idx}")
            params.append(filters.community_id)
            param_idx += 1

        if filters.action:
            conditions.append(f"action ILIKE ${param_idx} ESCAPE '\\'")
            params.append(_contains_pattern(filters.action))
            param_idx += 1

        if filters.resource:
            conditions.append(f"resource ILIKE ${param_idx} ESCAPE '\\'")
            params.append(_contains_pattern(filters.resource))
            param_idx += 1

        if filters.start_date:
            conditions.append(f"created_at >= ${param_idx}")
            params.append(filters.start_date)
            param_idx += 1

        if filters.end_date:
            conditions.append(f"created_at <= ${param_idx}")
            params.append(filters.end_date)
            param_idx += 1

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        count_query = f"SELECT COUNT(*) FROM audit_logs {where_clause}"
        list_query = f"""
            SELECT {_COLUMNS} FROM audit_logs
            {where_clause}
            ORDER BY created_at DESC
            LIMIT ${param_idx} OFFSET ${param_idx + 1}
        """

        async with self._pool.acquire() as conn:
            total = await conn.fetchval(count_query, *params)
            rows = await conn.fetch(list_query, *params, filters.limit, filters.offset)

        total_count: int = total or 0
        return [self._row_to_entry(row) for row in rows], total_count

    async def get(self, entry_id: UUID) -> AuditLogEntry | None:
        """Get a single audit log entry.

        Args:
            entry_id: Entry ID to fetch.

        Returns:
            Audit log entry or None if not found.
        """
        query = f"SELECT {_COLUMNS} FROM audit_logs WHERE id = $1"
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(query, entry_id)

        if not row:
            return None
        return self._row_to_entry(row)

    async def count_by_action(self, community_id: str, since: datetime) -> dict[str, int]:
        """Count a community's entries per action since a point in time.

        Args:
            community_id: Community to aggregate.
            since: Inclusive lower bound on created_at.

        Returns:
            Mapping of action tag to number of entries.
        """
        query = """
            SELECT action, COUNT(*) AS count FROM audit_logs
            WHERE community_id = $1 AND created_at >= $2
            GROUP BY action
        """
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(query, community_id, since)
        return {row["action"]: row["count"] for row in rows}

    async def delete_before(self, cutoff: datetime) -> int:
        """Delete audit logs created before the cutoff.

        Args:
            cutoff: Delete entries strictly older than this.

        Returns:
            Number of entries deleted.
        """
        query = "DELETE FROM audit_logs WHERE created_at < $1"
        async with self._pool.acquire() as conn:
            result = await conn.execute(query, cutoff)

        # Result is like "DELETE 100"
        count_str = result.split()[-1]
        return int(count_str)

    def _row_to_entry(self, row: Any) -> AuditLogEntry:
        """Convert database row to AuditLogEntry."""
        metadata = row["metadata"]
        if isinstance(metadata, str):
            metadata = json.loads(metadata)
        return AuditLogEntry(
            id=row["id"],
            user_id=row["user_id"],
            action=row["action"],
            resource=row["resource"],
            reason=row["reason"],
            community_id=row["community_id"],
            ip_address=row["ip_address"],
            user_agent=row["user_agent"],
            metadata=metadata or {},
            created_at=row["created_at"],
        )


def _contains_pattern(value: str) -> str:
    """Build an ILIKE pattern matching ``value`` literally as a substring."""
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
