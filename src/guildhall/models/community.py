"""Community, membership and subscription models."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Numeric, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from guildhall.models.base import BaseModel


class Community(BaseModel):
    """A community owned by its creator."""

    __tablename__ = "communities"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    creator_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    is_public: Mapped[bool] = mapped_column(default=True, nullable=False)
    requires_approval: Mapped[bool] = mapped_column(default=False, nullable=False)
    price_monthly: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    price_yearly: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    memberships = relationship(
        "CommunityMembership", back_populates="community", cascade="all, delete-orphan"
    )
    courses = relationship("Course", back_populates="community", cascade="all, delete-orphan")
    posts = relationship("Post", back_populates="community", cascade="all, delete-orphan")


class CommunityMembership(BaseModel):
    """A user's membership in a community."""

    __tablename__ = "community_memberships"

    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    community_id: Mapped[str] = mapped_column(
        ForeignKey("communities.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(String(20), default="member", nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    community = relationship("Community", back_populates="memberships")

    __table_args__ = (UniqueConstraint("user_id", "community_id"),)


class Subscription(BaseModel):
    """A paid subscription to a priced community."""

    __tablename__ = "subscriptions"

    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    community_id: Mapped[str] = mapped_column(
        ForeignKey("communities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)  # active, canceled, ...
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
