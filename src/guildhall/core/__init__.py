"""Core domain - access decisions behind protocol ports."""

from .interfaces import AccessStore, AuditSink

__all__ = [
    "AccessStore",
    "AuditSink",
]
