"""Audit log cleanup job.

Run via: python -m guildhall.jobs.audit_cleanup
"""

import asyncio
import os

import structlog

from guildhall.adapters.audit import AuditLogger, AuditRepository
from guildhall.adapters.db import AppDatabase

logger = structlog.get_logger()

RETENTION_DAYS = int(os.getenv("AUDIT_RETENTION_DAYS", "365"))


async def run_cleanup(audit_logger: AuditLogger, retention_days: int = RETENTION_DAYS) -> int:
    """Delete audit logs past the retention horizon.

    Args:
        audit_logger: Audit logger bound to the audit repository.
        retention_days: Entries older than this many days are removed.

    Returns:
        Number of entries deleted.
    """
    logger.info("audit_cleanup_started", retention_days=retention_days)
    count = await audit_logger.cleanup_old_logs(retention_days)
    logger.info("audit_cleanup_finished", deleted=count)
    return count


async def main() -> None:
    """Run audit log cleanup."""
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        logger.error("DATABASE_URL not set")
        return

    logger.info("Connecting to database...")
    app_db = AppDatabase(database_url, min_size=1, max_size=2)
    await app_db.connect()

    try:
        repo = AuditRepository(pool=app_db.require_pool())
        await run_cleanup(AuditLogger(repo))
    finally:
        await app_db.close()


if __name__ == "__main__":
    asyncio.run(main())
