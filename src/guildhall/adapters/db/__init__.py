"""Database adapters."""

from guildhall.adapters.db.app_db import AppDatabase

__all__ = ["AppDatabase"]
