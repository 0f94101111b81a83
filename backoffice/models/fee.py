"""
Fee and Retrocession models.

Fees are created once per calculation request and are never mutated
except for being marked paid. Retrocessions are immutable.
"""

from datetime import datetime, timezone
from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import (
    Column, String, Boolean, Date, DateTime, ForeignKey, Index, Numeric, Uuid, Enum as SQLEnum
)
from sqlalchemy.orm import relationship

from backoffice.database import Base


class FeeType(str, PyEnum):
    """Fee classification."""
    MANAGEMENT = "management"
    PERFORMANCE = "performance"
    TRANSACTION = "transaction"
    CUSTODY = "custody"
    RETROCESSION = "retrocession"
    OTHER = "other"


class Fee(Base):
    """
    Fee: Computed charge against an account for a calculation period.

    There is no natural key on (account, period, fee_type): calculating the
    same fee twice yields two rows.
    """
    __tablename__ = "fees"

    id = Column(Uuid, primary_key=True, default=uuid4)
    account_id = Column(Uuid, ForeignKey("accounts.id"), nullable=False)

    fee_type = Column(
        SQLEnum(FeeType, name="fee_type", values_callable=lambda x: [e.value for e in x]),
        nullable=False
    )
    fee_description = Column(String(500), nullable=False)

    calculation_period_start = Column(Date, nullable=False)
    calculation_period_end = Column(Date, nullable=False)

    # Rate as requested by the caller (percent); null when the default was applied
    fee_rate = Column(Numeric(10, 4, asdecimal=False), nullable=True)
    calculated_amount = Column(Numeric(20, 6, asdecimal=False), nullable=False)
    currency = Column(String(3), nullable=False)

    is_paid = Column(Boolean, nullable=False, default=False)
    payment_date = Column(Date, nullable=True)

    created_by = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    account = relationship("Account", back_populates="fees")
    retrocessions = relationship("Retrocession", back_populates="fee", order_by="Retrocession.created_at")

    __table_args__ = (
        Index("idx_fees_account_period", "account_id", "calculation_period_start", "calculation_period_end"),
    )

    def __repr__(self):
        return f"<Fee(id={self.id}, type='{self.fee_type}', amount={self.calculated_amount} {self.currency})>"


class Retrocession(Base):
    """
    Retrocession: Revenue-share payout derived from a fee.

    At most one per fee, only for positive management fees.
    """
    __tablename__ = "retrocessions"

    id = Column(Uuid, primary_key=True, default=uuid4)
    fee_id = Column(Uuid, ForeignKey("fees.id"), nullable=False)

    recipient_name = Column(String(255), nullable=False)
    recipient_type = Column(String(50), nullable=False)
    retrocession_rate = Column(Numeric(10, 4, asdecimal=False), nullable=False)
    amount = Column(Numeric(20, 6, asdecimal=False), nullable=False)
    currency = Column(String(3), nullable=False)
    is_paid = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    fee = relationship("Fee", back_populates="retrocessions")

    __table_args__ = (
        Index("idx_retrocessions_fee", "fee_id"),
    )

    def __repr__(self):
        return f"<Retrocession(fee={self.fee_id}, recipient='{self.recipient_name}', amount={self.amount})>"
