"""
ComplianceTask model.

Follow-up work items generated by compliance rules.
The engine only creates pending tasks and moves pending tasks past their
due date to overdue; every other transition belongs to the task owners.
"""

from datetime import datetime, timezone
from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import Column, String, Text, Date, DateTime, ForeignKey, Index, Uuid, Enum as SQLEnum

from backoffice.database import Base


class TaskType(str, PyEnum):
    """Kind of follow-up work."""
    KYC_REVIEW = "kyc_review"
    ANNUAL_REVIEW = "annual_review"
    DOCUMENT_RENEWAL = "document_renewal"
    CONCENTRATION_REVIEW = "concentration_review"
    OTHER = "other"


class TaskPriority(str, PyEnum):
    """Task priority."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskStatus(str, PyEnum):
    """Task lifecycle status."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class ComplianceTask(Base):
    """ComplianceTask: Work item concerning a client and/or account."""
    __tablename__ = "compliance_tasks"

    id = Column(Uuid, primary_key=True, default=uuid4)
    client_id = Column(Uuid, ForeignKey("clients.id"), nullable=True)
    account_id = Column(Uuid, ForeignKey("accounts.id"), nullable=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    task_type = Column(
        SQLEnum(TaskType, name="compliance_task_type", values_callable=lambda x: [e.value for e in x]),
        nullable=False
    )
    priority = Column(
        SQLEnum(TaskPriority, name="compliance_task_priority", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=TaskPriority.MEDIUM
    )
    status = Column(
        SQLEnum(TaskStatus, name="compliance_task_status", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=TaskStatus.PENDING
    )
    due_date = Column(Date, nullable=False)

    assigned_to = Column(String(255), nullable=True)
    created_by = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("idx_compliance_tasks_status_due", "status", "due_date"),
        Index("idx_compliance_tasks_assignee", "assigned_to", "status"),
    )

    def __repr__(self):
        return f"<ComplianceTask(id={self.id}, type='{self.task_type}', status='{self.status}', due={self.due_date})>"
