"""RBAC adapters."""

from guildhall.adapters.rbac.access_repository import AccessRepository

__all__ = [
    "AccessRepository",
]
