"""
Security (instrument) model.
"""

from uuid import uuid4

from sqlalchemy import Column, String, Boolean, Uuid

from backoffice.database import Base


class Security(Base):
    """
    Security: Tradable instrument.

    sector drives the sector concentration rule; a missing sector is
    bucketed as "Unknown".
    """
    __tablename__ = "securities"

    id = Column(Uuid, primary_key=True, default=uuid4)
    symbol = Column(String(20), nullable=False, unique=True)
    name = Column(String(255), nullable=True)
    sector = Column(String(100), nullable=True)
    country = Column(String(2), nullable=True)
    currency = Column(String(3), nullable=False, default="USD")
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<Security(symbol='{self.symbol}', sector='{self.sector}')>"
