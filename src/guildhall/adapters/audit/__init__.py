"""Audit logging adapters."""

from guildhall.adapters.audit.logger import AuditLogger
from guildhall.adapters.audit.repository import AuditRepository
from guildhall.adapters.audit.types import (
    AuditAction,
    AuditLogEntry,
    AuditLogFilter,
    SecurityEvent,
    SecuritySummary,
)

__all__ = [
    "AuditAction",
    "AuditLogEntry",
    "AuditLogFilter",
    "AuditLogger",
    "AuditRepository",
    "SecurityEvent",
    "SecuritySummary",
]
