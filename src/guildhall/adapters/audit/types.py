"""Audit log types."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class AuditAction(str, Enum):
    """Well-known audit action tags.

    ``action`` is free-form on the wire; these are the tags the access
    core and its callers emit.
    """

    ACCESS_DENIED = "ACCESS_DENIED"
    ACCESS_GRANTED = "ACCESS_GRANTED"
    ACCESS_ERROR = "ACCESS_ERROR"
    PERMISSION_CHANGE = "PERMISSION_CHANGE"
    MODERATION = "MODERATION"
    PAYMENT = "PAYMENT"
    DATA_ACCESS = "DATA_ACCESS"
    AUDIT_CLEANUP = "AUDIT_CLEANUP"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    LOGIN_FAILED = "LOGIN_FAILED"
    REGISTER = "REGISTER"
    PASSWORD_RESET = "PASSWORD_RESET"


AUTH_ACTIONS = frozenset(
    {
        AuditAction.LOGIN,
        AuditAction.LOGOUT,
        AuditAction.LOGIN_FAILED,
        AuditAction.REGISTER,
        AuditAction.PASSWORD_RESET,
    }
)


class SecurityEvent(BaseModel):
    """Request to record a security event."""

    model_config = ConfigDict(frozen=True)

    user_id: str | None = None
    action: str
    resource: str
    reason: str | None = None
    community_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class AuditLogEntry(BaseModel):
    """Audit log entry from database."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    user_id: str | None = None
    action: str
    resource: str
    reason: str | None = None
    community_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class AuditLogFilter(BaseModel):
    """Filters for listing audit log entries.

    ``action`` and ``resource`` match case-insensitive substrings.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str | None = None
    community_id: str | None = None
    action: str | None = None
    resource: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    limit: int = Field(default=50, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class SecuritySummary(BaseModel):
    """Aggregate audit counts for a community over a trailing window."""

    model_config = ConfigDict(frozen=True)

    total_events: int
    access_denied_events: int
    moderation_events: int
    permission_changes: int
    recent_events: list[AuditLogEntry]
