"""JWT helpers for identifying callers.

Tokens are issued by the external identity service; this backend only
reads the subject and role claims.
"""

from typing import Any

from jose import jwt

from marketplace.core.config import get_settings


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode a JWT token, raising JWTError on failure."""
    settings = get_settings()
    return jwt.decode(
        token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
    )
