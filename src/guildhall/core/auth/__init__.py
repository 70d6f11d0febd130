"""Authentication tokens."""

from guildhall.core.auth.jwt import TokenError, create_access_token, decode_token
from guildhall.core.auth.types import TokenPayload

__all__ = [
    "TokenError",
    "TokenPayload",
    "create_access_token",
    "decode_token",
]
