"""
Position model.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, Numeric, Uuid
from sqlalchemy.orm import relationship

from backoffice.database import Base


class Position(Base):
    """
    Position: Holding of a security in an account.

    Only open positions (quantity > 0) count toward valuation and
    concentration.
    """
    __tablename__ = "positions"

    id = Column(Uuid, primary_key=True, default=uuid4)
    account_id = Column(Uuid, ForeignKey("accounts.id"), nullable=False)
    security_id = Column(Uuid, ForeignKey("securities.id"), nullable=False)

    quantity = Column(Numeric(20, 6, asdecimal=False), nullable=False, default=0)
    average_cost = Column(Numeric(20, 6, asdecimal=False), nullable=True)
    market_value = Column(Numeric(20, 6, asdecimal=False), nullable=True)

    last_updated = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    account = relationship("Account", back_populates="positions")
    security = relationship("Security")

    __table_args__ = (
        Index("idx_positions_account", "account_id", "quantity"),
    )

    @property
    def cost_basis(self) -> float:
        return (self.quantity or 0) * (self.average_cost or 0)

    def __repr__(self):
        return f"<Position(account={self.account_id}, qty={self.quantity}, mv={self.market_value})>"
