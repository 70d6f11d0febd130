"""Tests for AccessControlService."""

from unittest.mock import AsyncMock, patch

import pytest

from guildhall.adapters.audit import AuditAction
from guildhall.core.rbac import (
    AccessControlService,
    AccessDenial,
    BulkOperation,
    ContentType,
    MembershipRole,
    MembershipStatus,
    Permission,
    Role,
    SubscriptionStatus,
    permissions_for,
)
from guildhall.core.rbac.access_service import (
    REASON_ACCESS_CHECK_FAILED,
    REASON_ACTIVE_MEMBERSHIP,
    REASON_AUTH_REQUIRED,
    REASON_COMMUNITY_NOT_FOUND,
    REASON_CONTENT_CHECK_FAILED,
    REASON_NO_COMMUNITY_ACCESS,
    REASON_PAID_REQUIRED,
    REASON_PRIVATE_COMMUNITY,
    REASON_SUBSCRIPTION_REQUIRED,
    REASON_VALIDATION_FAILED,
)
from tests.fixtures.access import CREATOR_ID, MEMBER_ID, OUTSIDER_ID, FakeAccessStore
from tests.fixtures.audit import InMemoryAuditRepository


class TestCheckCommunityAccess:
    """Tests for check_community_access."""

    async def test_missing_community(self, access_service: AccessControlService) -> None:
        """Test that an unknown community is denied with a not-found reason."""
        result = await access_service.check_community_access("nope", MEMBER_ID)

        assert not result.has_access
        assert not result.has_paid_access
        assert result.reason == REASON_COMMUNITY_NOT_FOUND

    async def test_creator_has_full_paid_access(
        self, access_service: AccessControlService, paid_community
    ) -> None:
        """Test that the creator gets full and paid access without a subscription."""
        result = await access_service.check_community_access("c1", CREATOR_ID)

        assert result.has_access
        assert result.has_paid_access
        assert result.is_creator
        assert result.role == Role.CREATOR

    async def test_creator_overrides_suspended_membership(
        self, access_service: AccessControlService, access_store: FakeAccessStore
    ) -> None:
        """Test that a suspended membership row never limits the creator."""
        access_store.add_community("private", is_public=False, price_monthly=5.0)
        access_store.add_membership(
            CREATOR_ID, "private", MembershipRole.MEMBER, MembershipStatus.SUSPENDED
        )

        result = await access_service.check_community_access("private", CREATOR_ID)

        assert result.has_access
        assert result.has_paid_access
        assert result.role == Role.CREATOR

    async def test_active_member_without_subscription(
        self,
        access_service: AccessControlService,
        access_store: FakeAccessStore,
        paid_community,
    ) -> None:
        """Test that a member of a priced community needs a subscription for paid access."""
        access_store.add_membership(MEMBER_ID, "c1")

        result = await access_service.check_community_access("c1", MEMBER_ID)

        assert result.has_access
        assert not result.has_paid_access
        assert result.role == Role.MEMBER
        assert result.reason == REASON_SUBSCRIPTION_REQUIRED

    async def test_active_member_with_subscription(
        self,
        access_service: AccessControlService,
        access_store: FakeAccessStore,
        paid_community,
    ) -> None:
        """Test that an active subscription grants paid access."""
        access_store.add_membership(MEMBER_ID, "c1")
        access_store.add_subscription(MEMBER_ID, "c1")

        result = await access_service.check_community_access("c1", MEMBER_ID)

        assert result.has_access
        assert result.has_paid_access
        assert result.reason is None

    async def test_trialing_subscription_counts_as_paid(
        self,
        access_service: AccessControlService,
        access_store: FakeAccessStore,
        paid_community,
    ) -> None:
        """Test that a trialing subscription grants paid access."""
        access_store.add_membership(MEMBER_ID, "c1")
        access_store.add_subscription(MEMBER_ID, "c1", SubscriptionStatus.TRIALING)

        result = await access_service.check_community_access("c1", MEMBER_ID)

        assert result.has_paid_access

    async def test_canceled_subscription_is_not_paid(
        self,
        access_service: AccessControlService,
        access_store: FakeAccessStore,
        paid_community,
    ) -> None:
        """Test that a canceled subscription does not grant paid access."""
        access_store.add_membership(MEMBER_ID, "c1")
        access_store.add_subscription(MEMBER_ID, "c1", SubscriptionStatus.CANCELED)

        result = await access_service.check_community_access("c1", MEMBER_ID)

        assert not result.has_paid_access

    async def test_anonymous_on_public_paid_community(
        self, access_service: AccessControlService, paid_community
    ) -> None:
        """Test that anonymous visitors see public communities without paid access."""
        result = await access_service.check_community_access("c1")

        assert result.has_access
        assert not result.has_paid_access
        assert result.role == Role.MEMBER
        assert not result.is_creator

    async def test_anonymous_on_private_community(
        self, access_service: AccessControlService, private_community
    ) -> None:
        """Test that anonymous visitors are asked to authenticate for private communities."""
        result = await access_service.check_community_access("private")

        assert not result.has_access
        assert result.reason == REASON_AUTH_REQUIRED

    async def test_outsider_on_private_community(
        self, access_service: AccessControlService, private_community
    ) -> None:
        """Test that non-members cannot enter a private community."""
        result = await access_service.check_community_access("private", OUTSIDER_ID)

        assert not result.has_access
        assert not result.has_paid_access
        assert result.reason == REASON_PRIVATE_COMMUNITY

    async def test_pending_member_on_private_community(
        self,
        access_service: AccessControlService,
        access_store: FakeAccessStore,
        private_community,
    ) -> None:
        """Test that a pending membership does not open a private community."""
        access_store.add_membership(
            MEMBER_ID, "private", MembershipRole.ADMIN, MembershipStatus.PENDING
        )

        result = await access_service.check_community_access("private", MEMBER_ID)

        assert not result.has_access
        assert result.role == Role.MEMBER
        assert result.membership is not None

    async def test_free_community_member_has_paid_access(
        self,
        access_service: AccessControlService,
        access_store: FakeAccessStore,
        private_community,
    ) -> None:
        """Test that free communities grant paid access to active members."""
        access_store.add_membership(MEMBER_ID, "private")

        result = await access_service.check_community_access("private", MEMBER_ID)

        assert result.has_access
        assert result.has_paid_access

    async def test_free_public_community_non_member(
        self, access_service: AccessControlService, access_store: FakeAccessStore
    ) -> None:
        """Test that a non-member can read a free public community but has no paid access."""
        access_store.add_community("free", is_public=True)

        result = await access_service.check_community_access("free", OUTSIDER_ID)

        assert result.has_access
        assert not result.has_paid_access

    async def test_subscription_not_looked_up_for_non_members(
        self,
        access_service: AccessControlService,
        access_store: FakeAccessStore,
        paid_community,
    ) -> None:
        """Test that only active members of priced communities hit the subscription lookup."""
        access_store.add_subscription(OUTSIDER_ID, "c1")

        result = await access_service.check_community_access("c1", OUTSIDER_ID)

        assert result.has_access
        assert not result.has_paid_access
        assert access_store.subscription_lookups == 0

    async def test_store_failure_denies(
        self, access_service: AccessControlService, access_store: FakeAccessStore
    ) -> None:
        """Test that lookup errors fail closed."""
        access_store.fail_with = ConnectionError("database unavailable")

        result = await access_service.check_community_access("c1", MEMBER_ID)

        assert not result.has_access
        assert not result.has_paid_access
        assert result.reason == REASON_ACCESS_CHECK_FAILED


class TestCheckContentAccess:
    """Tests for check_content_access."""

    async def test_missing_content(self, access_service: AccessControlService) -> None:
        """Test that unknown content is reported as not found."""
        result = await access_service.check_content_access(ContentType.LESSON, "x", MEMBER_ID)

        assert not result.has_access
        assert not result.can_view
        assert result.reason == "lesson not found"

    async def test_content_without_community_is_not_found(
        self, access_service: AccessControlService, access_store: FakeAccessStore
    ) -> None:
        """Test that orphaned content is treated as missing."""
        access_store.add_content(ContentType.POST, "p1", None, author_id=MEMBER_ID)

        result = await access_service.check_content_access(ContentType.POST, "p1", MEMBER_ID)

        assert not result.has_access
        assert result.reason == "post not found"

    async def test_premium_lesson_blocks_unpaid_member(
        self,
        access_service: AccessControlService,
        access_store: FakeAccessStore,
        paid_community,
    ) -> None:
        """Test that premium lessons need paid access for plain members."""
        access_store.add_membership(MEMBER_ID, "c1")
        access_store.add_content(ContentType.LESSON, "l1", "c1", is_free=False)

        result = await access_service.check_content_access("lesson", "l1", MEMBER_ID)

        assert result.has_access
        assert not result.can_view
        assert not result.can_edit

    async def test_premium_lesson_open_to_paid_member(
        self,
        access_service: AccessControlService,
        access_store: FakeAccessStore,
        paid_community,
    ) -> None:
        """Test that paying members can view premium lessons."""
        access_store.add_membership(MEMBER_ID, "c1")
        access_store.add_subscription(MEMBER_ID, "c1")
        access_store.add_content(ContentType.LESSON, "l1", "c1", is_free=False)

        result = await access_service.check_content_access("lesson", "l1", MEMBER_ID)

        assert result.can_view

    async def test_premium_lesson_open_to_moderator(
        self,
        access_service: AccessControlService,
        access_store: FakeAccessStore,
        paid_community,
    ) -> None:
        """Test that moderators see premium lessons without a subscription."""
        access_store.add_membership(MEMBER_ID, "c1", MembershipRole.MODERATOR)
        access_store.add_content(ContentType.LESSON, "l1", "c1", is_free=False)

        result = await access_service.check_content_access("lesson", "l1", MEMBER_ID)

        assert result.can_view
        assert result.can_edit
        assert not result.can_delete

    async def test_free_lesson_open_to_member(
        self,
        access_service: AccessControlService,
        access_store: FakeAccessStore,
        paid_community,
    ) -> None:
        """Test that free lessons are viewable by any member with access."""
        access_store.add_membership(MEMBER_ID, "c1")
        access_store.add_content(ContentType.LESSON, "l1", "c1", is_free=True)

        result = await access_service.check_content_access("lesson", "l1", MEMBER_ID)

        assert result.can_view

    async def test_author_can_edit_and_delete_own_post(
        self,
        access_service: AccessControlService,
        access_store: FakeAccessStore,
        paid_community,
    ) -> None:
        """Test that authors own their posts."""
        access_store.add_membership(MEMBER_ID, "c1")
        access_store.add_content(ContentType.POST, "p1", "c1", author_id=MEMBER_ID)

        result = await access_service.check_content_access("post", "p1", MEMBER_ID)

        assert result.can_view
        assert result.can_edit
        assert result.can_delete
        assert not result.can_moderate

    async def test_other_member_cannot_delete_post(
        self,
        access_service: AccessControlService,
        access_store: FakeAccessStore,
        paid_community,
    ) -> None:
        """Test that a member cannot delete someone else's post."""
        access_store.add_membership(OUTSIDER_ID, "c1")
        access_store.add_content(ContentType.POST, "p1", "c1", author_id=MEMBER_ID)

        result = await access_service.check_content_access("post", "p1", OUTSIDER_ID)

        assert result.can_view
        assert not result.can_delete
        assert not result.can_moderate

    async def test_creator_owns_all_content(
        self,
        access_service: AccessControlService,
        access_store: FakeAccessStore,
        paid_community,
    ) -> None:
        """Test that the creator can manage every item."""
        access_store.add_content(ContentType.COMMENT, "cm1", "c1", author_id=MEMBER_ID)

        result = await access_service.check_content_access("comment", "cm1", CREATOR_ID)

        assert result.can_view
        assert result.can_edit
        assert result.can_delete
        assert result.can_moderate

    async def test_private_community_content_denied(
        self,
        access_service: AccessControlService,
        access_store: FakeAccessStore,
        private_community,
    ) -> None:
        """Test that content inherits its community's access."""
        access_store.add_content(ContentType.POST, "p1", "private", author_id=MEMBER_ID)

        result = await access_service.check_content_access("post", "p1", OUTSIDER_ID)

        assert not result.has_access
        assert not result.can_view
        assert result.reason == REASON_PRIVATE_COMMUNITY

    async def test_unknown_content_type_fails_closed(
        self, access_service: AccessControlService
    ) -> None:
        """Test that an unknown content type is denied."""
        result = await access_service.check_content_access("video", "v1", MEMBER_ID)

        assert not result.has_access
        assert result.reason == REASON_CONTENT_CHECK_FAILED


class TestValidatePermission:
    """Tests for validate_permission."""

    async def test_allows_and_does_not_audit(
        self,
        access_service: AccessControlService,
        access_store: FakeAccessStore,
        audit_repo: InMemoryAuditRepository,
        paid_community,
    ) -> None:
        """Test that allowed checks carry the role and leave no audit entry."""
        access_store.add_membership(MEMBER_ID, "c1", MembershipRole.ADMIN)

        result = await access_service.validate_permission(
            MEMBER_ID, "c1", Permission.COURSE_PUBLISH
        )

        assert result.allowed
        assert result.role == Role.ADMIN
        assert audit_repo.entries == []

    async def test_insufficient_role_denied_and_audited(
        self,
        access_service: AccessControlService,
        access_store: FakeAccessStore,
        audit_repo: InMemoryAuditRepository,
        paid_community,
    ) -> None:
        """Test that a member cannot publish and the denial is audited once."""
        access_store.add_membership(MEMBER_ID, "c1")

        result = await access_service.validate_permission(MEMBER_ID, "c1", "course:publish")

        assert not result.allowed
        assert result.denial == AccessDenial.ACCESS_DENIED
        assert result.reason == "Insufficient permissions. Required: course:publish"
        assert len(audit_repo.entries) == 1
        entry = audit_repo.entries[0]
        assert entry.action == AuditAction.ACCESS_DENIED.value
        assert entry.resource == "course:publish"
        assert entry.user_id == MEMBER_ID
        assert entry.community_id == "c1"
        assert entry.reason == result.reason

    async def test_pending_admin_cannot_escalate(
        self,
        access_service: AccessControlService,
        access_store: FakeAccessStore,
        audit_repo: InMemoryAuditRepository,
        paid_community,
    ) -> None:
        """Test that a pending admin on a public community cannot perform write-class actions."""
        access_store.add_membership(
            MEMBER_ID, "c1", MembershipRole.ADMIN, MembershipStatus.PENDING
        )

        result = await access_service.validate_permission(
            MEMBER_ID, "c1", Permission.COMMUNITY_ADMIN
        )

        assert not result.allowed
        assert result.reason == REASON_ACTIVE_MEMBERSHIP
        assert len(audit_repo.entries) == 1

    async def test_non_member_cannot_write_on_public_community(
        self, access_service: AccessControlService, paid_community
    ) -> None:
        """Test that the implicit member role never satisfies write-class permissions."""
        result = await access_service.validate_permission(
            OUTSIDER_ID, "c1", Permission.POST_WRITE
        )

        assert not result.allowed
        assert result.reason == REASON_ACTIVE_MEMBERSHIP

    async def test_non_member_can_read_public_community(
        self, access_service: AccessControlService, paid_community
    ) -> None:
        """Test that the implicit member role allows public reads."""
        result = await access_service.validate_permission(
            OUTSIDER_ID, "c1", Permission.COURSE_READ
        )

        assert result.allowed
        assert result.role == Role.MEMBER

    async def test_creator_allowed_without_membership(
        self, access_service: AccessControlService, paid_community
    ) -> None:
        """Test that the creator passes every check without a membership row."""
        for permission in Permission:
            result = await access_service.validate_permission(
                CREATOR_ID, "c1", permission, require_paid_access=True
            )
            assert result.allowed, permission

    async def test_paid_access_required(
        self,
        access_service: AccessControlService,
        access_store: FakeAccessStore,
        audit_repo: InMemoryAuditRepository,
        paid_community,
    ) -> None:
        """Test that the paid gate reports payment required."""
        access_store.add_membership(MEMBER_ID, "c1")

        result = await access_service.validate_permission(
            MEMBER_ID, "c1", Permission.COURSE_READ, require_paid_access=True
        )

        assert not result.allowed
        assert result.denial == AccessDenial.PAYMENT_REQUIRED
        assert result.reason == REASON_PAID_REQUIRED
        assert len(audit_repo.entries) == 1

    async def test_missing_community_reports_not_found(
        self, access_service: AccessControlService, audit_repo: InMemoryAuditRepository
    ) -> None:
        """Test that a missing community is a not-found denial."""
        result = await access_service.validate_permission(
            MEMBER_ID, "nope", Permission.COMMUNITY_READ
        )

        assert not result.allowed
        assert result.denial == AccessDenial.NOT_FOUND
        assert result.reason == REASON_COMMUNITY_NOT_FOUND
        assert len(audit_repo.entries) == 1

    async def test_private_community_outsider_denied(
        self,
        access_service: AccessControlService,
        audit_repo: InMemoryAuditRepository,
        private_community,
    ) -> None:
        """Test that outsiders are denied reads on private communities."""
        result = await access_service.validate_permission(
            OUTSIDER_ID, "private", Permission.COMMUNITY_READ
        )

        assert not result.allowed
        assert result.denial == AccessDenial.ACCESS_DENIED
        assert result.reason == REASON_PRIVATE_COMMUNITY
        assert len(audit_repo.entries) == 1

    async def test_unknown_permission_denied(
        self,
        access_service: AccessControlService,
        access_store: FakeAccessStore,
        paid_community,
    ) -> None:
        """Test that permissions outside the matrix are never granted."""
        access_store.add_membership(MEMBER_ID, "c1", MembershipRole.ADMIN)

        result = await access_service.validate_permission(MEMBER_ID, "c1", "widget:read")

        assert not result.allowed

    async def test_unexpected_error_fails_closed(
        self,
        access_service: AccessControlService,
        audit_repo: InMemoryAuditRepository,
    ) -> None:
        """Test that an unexpected error is audited as an access error and denied."""
        with patch.object(
            access_service,
            "check_community_access",
            AsyncMock(side_effect=RuntimeError("boom")),
        ):
            result = await access_service.validate_permission(
                MEMBER_ID, "c1", Permission.COMMUNITY_READ
            )

        assert not result.allowed
        assert result.denial == AccessDenial.ACCESS_ERROR
        assert result.reason == REASON_VALIDATION_FAILED
        assert len(audit_repo.entries) == 1
        assert audit_repo.entries[0].action == AuditAction.ACCESS_ERROR.value
        assert audit_repo.entries[0].reason == "Permission validation failed: boom"

    async def test_audit_failure_does_not_change_decision(
        self,
        access_service: AccessControlService,
        audit_repo: InMemoryAuditRepository,
        paid_community,
    ) -> None:
        """Test that a broken audit store never turns a denial into an error."""
        audit_repo.fail_with = ConnectionError("audit store down")

        result = await access_service.validate_permission(
            OUTSIDER_ID, "c1", Permission.COMMUNITY_ADMIN
        )

        assert not result.allowed
        assert result.reason == REASON_ACTIVE_MEMBERSHIP

    async def test_each_denial_audited_exactly_once(
        self,
        access_service: AccessControlService,
        access_store: FakeAccessStore,
        audit_repo: InMemoryAuditRepository,
        paid_community,
    ) -> None:
        """Test that n denials produce n audit entries."""
        access_store.add_membership(MEMBER_ID, "c1")
        denied = [
            Permission.COURSE_PUBLISH,
            Permission.COMMUNITY_ADMIN,
            Permission.PAYMENT_ADMIN,
        ]
        for permission in denied:
            await access_service.validate_permission(MEMBER_ID, "c1", permission)
        await access_service.validate_permission(MEMBER_ID, "c1", Permission.POST_WRITE)

        assert [e.resource for e in audit_repo.entries] == [p.value for p in denied]


class TestGetUserPermissions:
    """Tests for get_user_permissions."""

    async def test_admin_permissions(
        self,
        access_service: AccessControlService,
        access_store: FakeAccessStore,
        paid_community,
    ) -> None:
        """Test that an active admin gets the admin permission list."""
        access_store.add_membership(MEMBER_ID, "c1", MembershipRole.ADMIN)

        result = await access_service.get_user_permissions(MEMBER_ID, "c1")

        assert result.role == Role.ADMIN
        assert result.has_access
        assert result.permissions == permissions_for(Role.ADMIN)

    async def test_no_access_yields_no_permissions(
        self, access_service: AccessControlService, private_community
    ) -> None:
        """Test that users without access get an empty list."""
        result = await access_service.get_user_permissions(OUTSIDER_ID, "private")

        assert not result.has_access
        assert result.permissions == []


class TestCheckMultipleCommunityAccess:
    """Tests for check_multiple_community_access."""

    async def test_returns_result_per_community(
        self,
        access_service: AccessControlService,
        paid_community,
        private_community,
    ) -> None:
        """Test that every requested id is in the result."""
        results = await access_service.check_multiple_community_access(
            ["c1", "private", "nope"], OUTSIDER_ID
        )

        assert set(results) == {"c1", "private", "nope"}
        assert results["c1"].has_access
        assert not results["private"].has_access
        assert results["nope"].reason == REASON_COMMUNITY_NOT_FOUND

    async def test_empty_input(self, access_service: AccessControlService) -> None:
        """Test that no ids yields an empty mapping."""
        assert await access_service.check_multiple_community_access([]) == {}


class TestValidateBulkOperation:
    """Tests for validate_bulk_operation."""

    async def test_admin_may_publish_batch(
        self,
        access_service: AccessControlService,
        access_store: FakeAccessStore,
        paid_community,
    ) -> None:
        """Test that an allowed batch lists every id as allowed."""
        access_store.add_membership(MEMBER_ID, "c1", MembershipRole.ADMIN)

        result = await access_service.validate_bulk_operation(
            MEMBER_ID, "c1", BulkOperation.PUBLISH, ["a", "b", "c"]
        )

        assert result.allowed
        assert result.allowed_ids == ["a", "b", "c"]
        assert result.denied_ids == []

    async def test_moderator_may_moderate_but_not_delete(
        self,
        access_service: AccessControlService,
        access_store: FakeAccessStore,
        paid_community,
    ) -> None:
        """Test the representative permission for each operation."""
        access_store.add_membership(MEMBER_ID, "c1", MembershipRole.MODERATOR)

        moderate = await access_service.validate_bulk_operation(
            MEMBER_ID, "c1", "moderate", ["p1"]
        )
        delete = await access_service.validate_bulk_operation(
            MEMBER_ID, "c1", "delete", ["p1", "p2"]
        )

        assert moderate.allowed
        assert not delete.allowed
        assert delete.allowed_ids == []
        assert delete.denied_ids == ["p1", "p2"]
        assert delete.reason == "Insufficient permissions for delete operation"

    async def test_no_access_denies_batch(
        self, access_service: AccessControlService, private_community
    ) -> None:
        """Test that users without community access are denied the whole batch."""
        result = await access_service.validate_bulk_operation(
            OUTSIDER_ID, "private", BulkOperation.PUBLISH, ["a"]
        )

        assert not result.allowed
        assert result.denied_ids == ["a"]
        assert result.reason == REASON_NO_COMMUNITY_ACCESS

    async def test_unknown_operation_fails_closed(
        self, access_service: AccessControlService, paid_community
    ) -> None:
        """Test that an unknown operation denies every id."""
        result = await access_service.validate_bulk_operation(
            CREATOR_ID, "c1", "archive", ["a", "b"]
        )

        assert not result.allowed
        assert result.denied_ids == ["a", "b"]

    @pytest.mark.parametrize("operation", list(BulkOperation))
    async def test_creator_allowed_every_operation(
        self,
        access_service: AccessControlService,
        paid_community,
        operation: BulkOperation,
    ) -> None:
        """Test that the creator may run every bulk operation."""
        result = await access_service.validate_bulk_operation(
            CREATOR_ID, "c1", operation, ["x"]
        )

        assert result.allowed
        assert result.allowed_ids == ["x"]
