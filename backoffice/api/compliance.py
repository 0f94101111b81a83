"""
Compliance API Router.

Handles compliance evaluation and the compliance task register.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from backoffice.api.dependencies import get_clock, get_current_user, get_ledger, require_operator
from backoffice.clock import Clock
from backoffice.models import User
from backoffice.schemas.common import ERROR_RESPONSES
from backoffice.schemas.compliance import (
    ComplianceCheckRequest, ComplianceCheckResponse, ComplianceTaskResponse
)
from backoffice.services import ComplianceMonitor, Ledger

router = APIRouter(prefix="/compliance", tags=["compliance"], responses=ERROR_RESPONSES)


@router.post("/evaluate", response_model=ComplianceCheckResponse)
def evaluate_compliance(
    request: ComplianceCheckRequest,
    user: User = Depends(require_operator),
    ledger: Ledger = Depends(get_ledger),
    clock: Clock = Depends(get_clock)
):
    """
    Run compliance checks and create follow-up tasks.

    check_type selects the rules: kyc (needs client_id), concentration
    (needs account_id), documents, tasks, or all (default).
    """
    report = ComplianceMonitor(ledger, clock).evaluate(
        created_by=str(user.id),
        client_id=request.client_id,
        account_id=request.account_id,
        check_type=request.check_type
    )

    return ComplianceCheckResponse(
        compliance_issues=[issue.to_dict() for issue in report.issues],
        tasks_created=[ComplianceTaskResponse.model_validate(t) for t in report.tasks_created],
        secondary_failures=[f.to_dict() for f in report.secondary_failures],
        summary=report.summary
    )


@router.get("/tasks", response_model=List[ComplianceTaskResponse])
def list_tasks(
    status: Optional[str] = Query(None, description="Filter by status"),
    assigned_to: Optional[str] = Query(None, description="Filter by assignee"),
    user: User = Depends(get_current_user),
    ledger: Ledger = Depends(get_ledger),
    clock: Clock = Depends(get_clock)
):
    """List compliance tasks by due date ascending."""
    tasks = ComplianceMonitor(ledger, clock).list_tasks(status=status, assigned_to=assigned_to)
    return [ComplianceTaskResponse.model_validate(t) for t in tasks]
