"""Dependency injection and application lifespan management."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Annotated

import structlog
from fastapi import Depends, Request

from guildhall.adapters.audit import AuditLogger, AuditRepository
from guildhall.adapters.db import AppDatabase
from guildhall.adapters.rbac import AccessRepository
from guildhall.core.rbac import AccessControlService

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = structlog.get_logger()


class Settings:
    """Application settings loaded from environment."""

    def __init__(self) -> None:
        """Load settings from environment variables."""
        self.database_url = os.getenv("DATABASE_URL", "postgresql://localhost:5432/guildhall")
        self.db_pool_min_size = int(os.getenv("DB_POOL_MIN_SIZE", "2"))
        self.db_pool_max_size = int(os.getenv("DB_POOL_MAX_SIZE", "10"))

        # Audit retention
        self.audit_retention_days = int(os.getenv("AUDIT_RETENTION_DAYS", "365"))
        self.audit_min_retention_days = int(os.getenv("AUDIT_MIN_RETENTION_DAYS", "90"))
        # Operators allowed to purge the audit trail, comma separated. Empty means nobody.
        self.audit_admin_user_ids = frozenset(
            uid.strip() for uid in os.getenv("AUDIT_ADMIN_USER_IDS", "").split(",") if uid.strip()
        )


settings = Settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan - setup and teardown.

    Builds the process-lifetime audit logger and access service on top of
    one connection pool.
    """
    app_db = AppDatabase(
        settings.database_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
    )
    await app_db.connect()
    pool = app_db.require_pool()

    audit_logger = AuditLogger(AuditRepository(pool=pool))
    access_repo = AccessRepository(pool=pool)

    app.state.app_db = app_db
    app.state.settings = settings
    app.state.audit_logger = audit_logger
    app.state.access_repo = access_repo
    app.state.access_service = AccessControlService(store=access_repo, audit=audit_logger)
    logger.info("access_core_ready")

    yield

    await app_db.close()


def get_settings(request: Request) -> Settings:
    """Get settings from app state, falling back to the module default."""
    return getattr(request.app.state, "settings", settings)


def get_access_service(request: Request) -> AccessControlService:
    """Get the access control service from app state."""
    service: AccessControlService = request.app.state.access_service
    return service


def get_audit_logger(request: Request) -> AuditLogger:
    """Get the audit logger from app state."""
    audit_logger: AuditLogger = request.app.state.audit_logger
    return audit_logger


def get_access_repo(request: Request) -> AccessRepository:
    """Get the access lookups repository from app state."""
    repo: AccessRepository = request.app.state.access_repo
    return repo


# Annotated types for dependency injection
SettingsDep = Annotated[Settings, Depends(get_settings)]
AccessServiceDep = Annotated[AccessControlService, Depends(get_access_service)]
AuditLoggerDep = Annotated[AuditLogger, Depends(get_audit_logger)]
AccessRepoDep = Annotated[AccessRepository, Depends(get_access_repo)]
