"""
Trade model.

Trades are read by the transaction fee strategy (commission + fees in window).
"""

from datetime import datetime, timezone
from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import Column, String, Date, DateTime, ForeignKey, Index, Numeric, Uuid, Enum as SQLEnum
from sqlalchemy.orm import relationship

from backoffice.database import Base


class TradeType(str, PyEnum):
    """Trade direction / kind."""
    BUY = "buy"
    SELL = "sell"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    DIVIDEND = "dividend"
    FEE = "fee"


class TradeStatus(str, PyEnum):
    """Settlement status."""
    PENDING = "pending"
    SETTLED = "settled"


def compute_net_amount(
    trade_type: TradeType,
    gross_amount: float,
    commission: float = 0.0,
    fees: float = 0.0,
    tax: float = 0.0
) -> float:
    """
    Net cash amount of a trade.

    Costs are added to what a buyer pays and deducted from what a seller
    receives. Non-directional types follow the sell convention.

    Example:
        >>> compute_net_amount(TradeType.BUY, 1000.0, commission=10.0, fees=2.0)
        1012.0
        >>> compute_net_amount(TradeType.SELL, 1000.0, commission=10.0, fees=2.0)
        988.0
    """
    costs = (commission or 0) + (fees or 0) + (tax or 0)
    if trade_type == TradeType.BUY:
        return gross_amount + costs
    return gross_amount - costs


class Trade(Base):
    """Trade: Executed transaction against an account."""
    __tablename__ = "trades"

    id = Column(Uuid, primary_key=True, default=uuid4)
    account_id = Column(Uuid, ForeignKey("accounts.id"), nullable=False)
    security_id = Column(Uuid, ForeignKey("securities.id"), nullable=True)

    trade_date = Column(Date, nullable=False)
    trade_type = Column(
        SQLEnum(TradeType, name="trade_type", values_callable=lambda x: [e.value for e in x]),
        nullable=False
    )

    quantity = Column(Numeric(20, 6, asdecimal=False), nullable=False, default=0)
    price = Column(Numeric(20, 6, asdecimal=False), nullable=False, default=0)
    gross_amount = Column(Numeric(20, 6, asdecimal=False), nullable=False, default=0)
    commission = Column(Numeric(20, 6, asdecimal=False), nullable=True, default=0)
    fees = Column(Numeric(20, 6, asdecimal=False), nullable=True, default=0)
    tax = Column(Numeric(20, 6, asdecimal=False), nullable=True, default=0)
    net_amount = Column(Numeric(20, 6, asdecimal=False), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")

    status = Column(
        SQLEnum(TradeStatus, name="trade_status", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=TradeStatus.PENDING
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    security = relationship("Security")

    __table_args__ = (
        Index("idx_trades_account_date", "account_id", "trade_date"),
    )

    def __repr__(self):
        return f"<Trade(id={self.id}, type='{self.trade_type}', date={self.trade_date})>"
