"""
Document model.

Only the expiry-relevant metadata is modelled; file storage is external.
"""

from datetime import datetime, timezone
from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import Column, String, Date, DateTime, ForeignKey, Index, Uuid, Enum as SQLEnum

from backoffice.database import Base


class DocumentStatus(str, PyEnum):
    """Document review status."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ARCHIVED = "archived"


class Document(Base):
    """Document: Client or account paperwork with an optional expiry date."""
    __tablename__ = "documents"

    id = Column(Uuid, primary_key=True, default=uuid4)
    client_id = Column(Uuid, ForeignKey("clients.id"), nullable=True)
    account_id = Column(Uuid, ForeignKey("accounts.id"), nullable=True)

    title = Column(String(500), nullable=False)
    category = Column(String(100), nullable=True)
    status = Column(
        SQLEnum(DocumentStatus, name="document_status", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=DocumentStatus.PENDING
    )
    expiry_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("idx_documents_expiry", "status", "expiry_date"),
    )

    def __repr__(self):
        return f"<Document(title='{self.title[:30]}', status='{self.status}', expires={self.expiry_date})>"
