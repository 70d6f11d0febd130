"""RBAC domain types."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """Effective roles within a community, ordered by privilege."""

    MEMBER = "member"
    MODERATOR = "moderator"
    ADMIN = "admin"
    CREATOR = "creator"

    @property
    def rank(self) -> int:
        """Position in the privilege order (member is lowest)."""
        return _ROLE_ORDER.index(self)


_ROLE_ORDER = (Role.MEMBER, Role.MODERATOR, Role.ADMIN, Role.CREATOR)


class Permission(str, Enum):
    """Fine-grained ``resource:action`` capabilities."""

    COMMUNITY_READ = "community:read"
    COMMUNITY_WRITE = "community:write"
    COMMUNITY_ADMIN = "community:admin"
    COMMUNITY_DELETE = "community:delete"
    MEMBER_READ = "member:read"
    MEMBER_WRITE = "member:write"
    MEMBER_REMOVE = "member:remove"
    COURSE_READ = "course:read"
    COURSE_WRITE = "course:write"
    COURSE_PUBLISH = "course:publish"
    COURSE_DELETE = "course:delete"
    LESSON_READ = "lesson:read"
    LESSON_WRITE = "lesson:write"
    LESSON_DELETE = "lesson:delete"
    POST_READ = "post:read"
    POST_WRITE = "post:write"
    POST_MODERATE = "post:moderate"
    POST_DELETE = "post:delete"
    COMMENT_READ = "comment:read"
    COMMENT_WRITE = "comment:write"
    COMMENT_MODERATE = "comment:moderate"
    COMMENT_DELETE = "comment:delete"
    POINTS_READ = "points:read"
    POINTS_ADMIN = "points:admin"
    PAYMENT_READ = "payment:read"
    PAYMENT_ADMIN = "payment:admin"

    @property
    def resource(self) -> str:
        """Resource half of the permission."""
        return self.value.split(":", 1)[0]

    @property
    def action(self) -> str:
        """Action half of the permission."""
        return self.value.split(":", 1)[1]


class MembershipRole(str, Enum):
    """Roles that can be stored on a membership row."""

    MEMBER = "member"
    MODERATOR = "moderator"
    ADMIN = "admin"


class MembershipStatus(str, Enum):
    """Membership lifecycle states."""

    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"


class SubscriptionStatus(str, Enum):
    """Subscription states reported by billing."""

    ACTIVE = "active"
    CANCELED = "canceled"
    PAST_DUE = "past_due"
    TRIALING = "trialing"


PAID_SUBSCRIPTION_STATUSES = frozenset({SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING})


class ContentType(str, Enum):
    """Content items gated by community access."""

    LESSON = "lesson"
    POST = "post"
    COMMENT = "comment"


class BulkOperation(str, Enum):
    """Operations accepted by bulk validation."""

    PUBLISH = "publish"
    DELETE = "delete"
    MODERATE = "moderate"


class AccessDenial(str, Enum):
    """Why a permission check was refused.

    Callers use this to choose between a login prompt, an upsell and a
    plain refusal.
    """

    NOT_FOUND = "not_found"
    ACCESS_DENIED = "access_denied"
    PAYMENT_REQUIRED = "payment_required"
    ACCESS_ERROR = "access_error"


@dataclass(frozen=True)
class Community:
    """Community fields that matter for access decisions."""

    id: str
    is_public: bool
    creator_id: str
    price_monthly: float | None = None
    price_yearly: float | None = None

    @property
    def is_free(self) -> bool:
        """True when the community has no monthly or yearly price."""
        return not self.price_monthly and not self.price_yearly


@dataclass(frozen=True)
class Membership:
    """A user's membership row in a community."""

    user_id: str
    community_id: str
    role: MembershipRole
    status: MembershipStatus
    joined_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        """Only active memberships confer role-based permissions."""
        return self.status == MembershipStatus.ACTIVE


@dataclass(frozen=True)
class Subscription:
    """A user's subscription to a priced community."""

    user_id: str
    community_id: str
    status: SubscriptionStatus


@dataclass(frozen=True)
class ContentRef:
    """Flat projection of a content item and its owning community."""

    content_type: ContentType
    content_id: str
    community_id: str | None
    author_id: str | None = None
    is_free: bool = True

    @property
    def is_premium(self) -> bool:
        """Lessons not marked free require paid access."""
        return self.content_type == ContentType.LESSON and not self.is_free


@dataclass(frozen=True)
class AccessCheckResult:
    """Outcome of a community access evaluation."""

    has_access: bool
    has_paid_access: bool
    role: Role = Role.MEMBER
    is_creator: bool = False
    membership: Membership | None = None
    reason: str | None = None

    @classmethod
    def denied(cls, reason: str) -> "AccessCheckResult":
        """Build a fully denied result."""
        return cls(has_access=False, has_paid_access=False, reason=reason)


@dataclass(frozen=True)
class ContentAccessResult(AccessCheckResult):
    """Community access extended with per-item capabilities."""

    can_view: bool = False
    can_edit: bool = False
    can_delete: bool = False
    can_moderate: bool = False

    @classmethod
    def denied(cls, reason: str) -> "ContentAccessResult":
        """Build a fully denied result."""
        return cls(has_access=False, has_paid_access=False, reason=reason)


@dataclass(frozen=True)
class PermissionCheck:
    """Result of validating one permission.

    ``role`` is the effective role the grant was based on; it is only set
    when the permission is allowed.
    """

    allowed: bool
    reason: str | None = None
    denial: AccessDenial | None = None
    role: Role | None = None


@dataclass(frozen=True)
class UserPermissions:
    """A user's effective role and permissions in one community."""

    role: Role
    permissions: list[Permission]
    has_access: bool
    has_paid_access: bool


@dataclass(frozen=True)
class BulkOperationResult:
    """Partition of a batch into allowed and denied ids."""

    allowed: bool
    allowed_ids: list[str] = field(default_factory=list)
    denied_ids: list[str] = field(default_factory=list)
    reason: str | None = None
