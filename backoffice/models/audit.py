"""
AuditEvent model.

Audit events provide an append-only trail of meaningful state changes.
"""

from datetime import datetime, timezone
from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import Column, String, DateTime, Index, JSON, Uuid, Enum as SQLEnum

from backoffice.database import Base


class AuditEventType(str, PyEnum):
    """Types of audit events."""
    FEE_CALCULATED = "fee_calculated"
    RETROCESSION_ALLOCATED = "retrocession_allocated"
    FEE_PAID = "fee_paid"
    COMPLIANCE_TASK_CREATED = "compliance_task_created"
    TASKS_MARKED_OVERDUE = "tasks_marked_overdue"


class AuditEvent(Base):
    """
    AuditEvent: Append-only trail of state changes.

    Audit events are NEVER modified or deleted.
    """
    __tablename__ = "audit_events"

    id = Column(Uuid, primary_key=True, default=uuid4)
    event_type = Column(SQLEnum(AuditEventType, name="audit_event_type", values_callable=lambda x: [e.value for e in x]), nullable=False)

    # References to domain objects
    aggregate_type = Column(String(50), nullable=False)  # 'fee', 'retrocession', 'compliance_task'
    aggregate_id = Column(Uuid, nullable=True)

    # Event payload (structured data about what changed)
    event_data = Column(JSON, nullable=False)

    # Provenance
    actor = Column(String(255), nullable=True)  # User/system that caused event
    occurred_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("idx_audit_events_aggregate", "aggregate_type", "aggregate_id", "occurred_at"),
        Index("idx_audit_events_type", "event_type", "occurred_at"),
    )

    def __repr__(self):
        return f"<AuditEvent(id={self.id}, type='{self.event_type}', aggregate='{self.aggregate_type}:{self.aggregate_id}')>"
