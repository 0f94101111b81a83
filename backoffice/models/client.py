"""
Client model.

Clients own accounts, documents and compliance tasks.
The engine only reads clients (KYC status and last review timestamp).
"""

from datetime import datetime, timezone
from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import Column, String, DateTime, Uuid, Enum as SQLEnum
from sqlalchemy.orm import relationship

from backoffice.database import Base


class KycStatus(str, PyEnum):
    """Know-your-customer review status."""
    PENDING = "pending"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"


class Client(Base):
    """
    Client: Beneficial owner of one or more accounts.

    updated_at doubles as the "last reviewed" marker for the annual review rule.
    """
    __tablename__ = "clients"

    id = Column(Uuid, primary_key=True, default=uuid4)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)

    kyc_status = Column(
        SQLEnum(KycStatus, name="kyc_status", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=KycStatus.PENDING
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    accounts = relationship("Account", back_populates="client")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Client(id={self.id}, name='{self.full_name}', kyc='{self.kyc_status}')>"
