"""
API Dependencies - Shared authentication and dependency injection.

Provides the authenticated caller, the role check for mutating endpoints,
the request-scoped ledger and the clock for API endpoints.
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from backoffice.auth import decode_access_token
from backoffice.clock import get_clock  # noqa: F401  (re-exported for routers)
from backoffice.config import settings
from backoffice.database import get_db
from backoffice.errors import Forbidden, Unauthenticated
from backoffice.logging import get_logger
from backoffice.models import User
from backoffice.services.ledger import Ledger

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> User:
    """
    FastAPI dependency that requires a valid bearer token for an active user.

    Usage:
        @router.post("/items")
        def create_item(user: User = Depends(get_current_user)):
            ...
    """
    if credentials is None:
        logger.authentication_failed("missing bearer token")
        raise Unauthenticated(details="Missing bearer token")

    try:
        payload = decode_access_token(credentials.credentials)
    except Unauthenticated as e:
        logger.authentication_failed(e.details or e.error)
        raise

    try:
        user_id = UUID(payload["sub"])
    except ValueError:
        logger.authentication_failed("malformed subject")
        raise Unauthenticated(details="Invalid token subject")

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        logger.authentication_failed("unknown or inactive user")
        raise Unauthenticated(details="Unknown or inactive user")
    return user


def require_operator(request: Request, user: User = Depends(get_current_user)) -> User:
    """
    FastAPI dependency for endpoints that write to the ledger.

    Viewers may list fees and tasks but not calculate, pay or evaluate.
    """
    if not user.can_operate():
        logger.permission_denied(
            user_id=user.id,
            role=user.role.value,
            action=f"{request.method} {request.url.path}"
        )
        raise Forbidden(details=f"Role '{user.role.value}' may not perform this operation")
    return user


def get_ledger(db: Session = Depends(get_db)) -> Ledger:
    """FastAPI dependency for a ledger bounded by the request deadline."""
    return Ledger(db, timeout_seconds=settings.request_timeout_seconds)
