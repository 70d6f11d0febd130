"""JWT authentication middleware."""

from dataclasses import dataclass

import structlog
from fastapi import HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from guildhall.core.auth import TokenError, decode_token

logger = structlog.get_logger()

# Use Bearer token authentication
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class JwtContext:
    """Context from a verified JWT token."""

    user_id: str


async def verify_jwt(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),  # noqa: B008
) -> JwtContext:
    """Verify JWT token and return context.

    Args:
        request: The current request.
        credentials: Bearer token credentials.

    Returns:
        JwtContext with user info.

    Raises:
        HTTPException: 401 if token is missing or invalid.
    """
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Missing authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_token(credentials.credentials)
    except TokenError as e:
        logger.warning("jwt_validation_failed", error=str(e))
        raise HTTPException(
            status_code=401,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    context = JwtContext(user_id=payload.sub)

    # Store in request state for downstream use
    request.state.user = context
    request.state.user_id = context.user_id

    return context


# Optional JWT - returns None if no token provided
async def optional_jwt(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),  # noqa: B008
) -> JwtContext | None:
    """Optionally verify JWT, returning None if not provided or invalid."""
    if not credentials:
        return None

    try:
        return await verify_jwt(request, credentials)
    except HTTPException:
        return None
