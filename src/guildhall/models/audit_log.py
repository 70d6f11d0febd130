"""Immutable audit log for security decisions."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from guildhall.models.base import BaseModel


class AuditLog(BaseModel):
    """Append-only audit log entry. Rows are never updated."""

    __tablename__ = "audit_logs"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )

    # Who
    user_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    community_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # What
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)  # "ACCESS_DENIED"
    resource: Mapped[str] = mapped_column(String(200), nullable=False)  # "course:write"
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # "metadata" is reserved on declarative classes
    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONB, nullable=False, default=dict
    )
