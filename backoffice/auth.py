"""
Bearer token helpers.

Tokens are HS256 JWTs whose subject is a User id. Issuing is used by
operators' tooling and tests; the API only decodes.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union
from uuid import UUID

import jwt

from backoffice.config import settings
from backoffice.errors import Unauthenticated


def signing_key() -> str:
    """
    The configured HS256 secret.

    Raises:
        RuntimeError: JWT_SECRET_KEY is not set
    """
    if not settings.jwt_secret_key:
        raise RuntimeError("JWT_SECRET_KEY must be set to issue or verify bearer tokens")
    return settings.jwt_secret_key


def create_access_token(
    user_id: Union[UUID, str],
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a signed access token.

    Args:
        user_id: User identifier (becomes the "sub" claim)
        expires_delta: Custom lifetime (defaults to settings.access_token_expire_minutes)

    Returns:
        Encoded JWT
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))

    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, signing_key(), algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verify signature and expiry and return the claims.

    Raises:
        Unauthenticated: Token is malformed, expired, badly signed or has no subject
    """
    try:
        payload = jwt.decode(token, signing_key(), algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise Unauthenticated(details="Token has expired")
    except jwt.PyJWTError as e:
        raise Unauthenticated(details=f"Invalid token: {e}")

    if not payload.get("sub"):
        raise Unauthenticated(details="Token has no subject")
    return payload
