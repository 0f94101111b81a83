"""
Account and AccountValuation models.

Accounts hold positions and trades; fees are calculated per account.
Valuation snapshots feed the time-weighted management fee basis.
"""

from datetime import datetime, timezone
from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import (
    Column, String, Date, DateTime, ForeignKey, Index, Numeric, UniqueConstraint, Uuid, Enum as SQLEnum
)
from sqlalchemy.orm import relationship

from backoffice.database import Base


class AccountStatus(str, PyEnum):
    """Account lifecycle status."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    CLOSED = "closed"


class Account(Base):
    """
    Account: Custody account owned by a client.

    Fee operations are only permitted while status = active.
    """
    __tablename__ = "accounts"

    id = Column(Uuid, primary_key=True, default=uuid4)
    client_id = Column(Uuid, ForeignKey("clients.id"), nullable=False)
    account_number = Column(String(50), nullable=False, unique=True)
    base_currency = Column(String(3), nullable=False, default="USD")

    status = Column(
        SQLEnum(AccountStatus, name="account_status", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=AccountStatus.ACTIVE
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    client = relationship("Client", back_populates="accounts")
    positions = relationship("Position", back_populates="account")
    fees = relationship("Fee", back_populates="account")

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE

    def __repr__(self):
        return f"<Account(id={self.id}, number='{self.account_number}', status='{self.status}')>"


class AccountValuation(Base):
    """
    AccountValuation: Total holdings value of an account on a date.

    A snapshot's value is in force from valuation_date until the next snapshot.
    """
    __tablename__ = "account_valuations"

    id = Column(Uuid, primary_key=True, default=uuid4)
    account_id = Column(Uuid, ForeignKey("accounts.id"), nullable=False)
    valuation_date = Column(Date, nullable=False)
    total_value = Column(Numeric(20, 6, asdecimal=False), nullable=False)

    __table_args__ = (
        UniqueConstraint("account_id", "valuation_date", name="uq_account_valuation_date"),
        Index("idx_account_valuations_account", "account_id", "valuation_date"),
    )

    def __repr__(self):
        return f"<AccountValuation(account={self.account_id}, date={self.valuation_date}, value={self.total_value})>"
