"""
User and Role models.

Callers authenticate with a bearer token whose subject is a User id.
Only active users are accepted.
"""

from datetime import datetime, timezone
from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import Column, String, DateTime, Boolean, Uuid, Enum as SQLEnum

from backoffice.database import Base


class UserRole(str, PyEnum):
    """Back-office roles."""
    VIEWER = "viewer"      # Can list fees and tasks
    OPERATOR = "operator"  # Can also calculate fees, record payments and run compliance checks
    ADMIN = "admin"        # Full access


class User(Base):
    """
    User: Identity for accountability (created_by on fees and tasks).
    """
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid4)
    username = Column(String(100), nullable=False, unique=True)
    email = Column(String(255), nullable=True)
    display_name = Column(String(255), nullable=True)

    role = Column(
        SQLEnum(UserRole, name="user_role", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=UserRole.OPERATOR
    )

    # Status
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', role='{self.role}')>"

    def can_operate(self) -> bool:
        """Check if user can calculate fees, record payments and run checks."""
        return self.role in (UserRole.OPERATOR, UserRole.ADMIN)
