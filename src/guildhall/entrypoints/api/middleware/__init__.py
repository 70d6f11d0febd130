"""API middleware."""

from guildhall.entrypoints.api.middleware.access import (
    CommunityAccessContext,
    get_client_ip,
    require_content_access,
    require_membership,
    require_permission,
)
from guildhall.entrypoints.api.middleware.jwt_auth import JwtContext, optional_jwt, verify_jwt

__all__ = [
    # JWT auth
    "JwtContext",
    "verify_jwt",
    "optional_jwt",
    # Access control
    "CommunityAccessContext",
    "get_client_ip",
    "require_permission",
    "require_membership",
    "require_content_access",
]
