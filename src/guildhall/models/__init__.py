"""SQLAlchemy models for the platform tables the access core reads."""
from guildhall.models.audit_log import AuditLog
from guildhall.models.base import BaseModel
from guildhall.models.community import Community, CommunityMembership, Subscription
from guildhall.models.content import Comment, Course, Lesson, Post

__all__ = [
    "BaseModel",
    "Community",
    "CommunityMembership",
    "Subscription",
    "Course",
    "Lesson",
    "Post",
    "Comment",
    "AuditLog",
]
