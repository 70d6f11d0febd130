"""JWT token creation and validation."""

import os
from datetime import UTC, datetime, timedelta

import jwt

from guildhall.core.auth.types import TokenPayload


class TokenError(Exception):
    """Raised when token validation fails."""

    pass


ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 15


def _secret_key() -> str:
    return os.environ.get("JWT_SECRET_KEY", "dev-secret-change-in-production")


def create_access_token(user_id: str, expires_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    """Create a short-lived access token.

    Args:
        user_id: User identifier
        expires_minutes: Token lifetime

    Returns:
        Encoded JWT string
    """
    now = datetime.now(UTC)
    expire = now + timedelta(minutes=expires_minutes)

    payload = {
        "sub": user_id,
        "exp": int(expire.timestamp()),
        "iat": int(now.timestamp()),
    }

    return jwt.encode(payload, _secret_key(), algorithm=ALGORITHM)


def decode_token(token: str) -> TokenPayload:
    """Decode and validate a JWT token.

    Args:
        token: Encoded JWT string

    Returns:
        Decoded token payload

    Raises:
        TokenError: If token is invalid or expired
    """
    try:
        payload = jwt.decode(token, _secret_key(), algorithms=[ALGORITHM])
        return TokenPayload(sub=payload["sub"], exp=payload["exp"], iat=payload["iat"])
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired") from None
    except (jwt.InvalidTokenError, KeyError) as e:
        raise TokenError(f"Invalid token: {e}") from None
