"""
Pydantic schemas for Compliance API.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from backoffice.models import TaskPriority, TaskStatus, TaskType
from backoffice.schemas.common import SecondaryFailureResponse


class ComplianceCheckRequest(BaseModel):
    """Schema for a compliance evaluation request."""
    client_id: Optional[UUID] = Field(None, description="Client for the KYC checks")
    account_id: Optional[UUID] = Field(None, description="Account for the concentration checks")
    check_type: Optional[str] = Field(None, description="kyc | concentration | documents | tasks | all")


class ComplianceTaskResponse(BaseModel):
    """Schema for compliance task response."""
    id: UUID
    client_id: Optional[UUID] = None
    account_id: Optional[UUID] = None
    title: str
    description: Optional[str] = None
    task_type: TaskType
    priority: TaskPriority
    status: TaskStatus
    due_date: date
    assigned_to: Optional[str] = None
    created_by: str
    created_at: datetime

    class Config:
        from_attributes = True


class ComplianceSummary(BaseModel):
    """Issue counts by severity."""
    total_issues: int
    high_severity: int
    medium_severity: int
    low_severity: int


class ComplianceCheckResponse(BaseModel):
    """
    Schema for compliance evaluation result.

    Issues are heterogeneous: every issue has type, severity and message,
    plus the references its rule produces (client_id, account_id, symbol,
    sector, concentration, document_id, expiry_date, details).
    """
    success: bool = True
    compliance_issues: List[Dict[str, Any]]
    tasks_created: List[ComplianceTaskResponse]
    secondary_failures: List[SecondaryFailureResponse] = []
    summary: ComplianceSummary
