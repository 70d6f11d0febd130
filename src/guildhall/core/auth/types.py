"""Auth domain types."""

from pydantic import BaseModel


class TokenPayload(BaseModel):
    """JWT token payload claims."""

    sub: str  # user_id
    exp: int  # expiration timestamp
    iat: int  # issued at timestamp
