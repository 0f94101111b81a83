"""
Fees API Router.

Handles fee calculation, the fee register and payment recording.
"""

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from backoffice.api.dependencies import get_clock, get_current_user, get_ledger, require_operator
from backoffice.clock import Clock
from backoffice.models import User
from backoffice.schemas.common import ERROR_RESPONSES
from backoffice.schemas.fee import (
    FeeCalculationRequest, FeeCalculationResponse, FeeListItem, FeePaymentRequest,
    FeeResponse, RetrocessionResponse
)
from backoffice.services import FeeCalculator, Ledger
from backoffice.services.fee_calculator import require_parameters

router = APIRouter(prefix="/fees", tags=["fees"], responses=ERROR_RESPONSES)


def complete_calculation_request(request: FeeCalculationRequest) -> FeeCalculationRequest:
    """Missing fields are reported before the caller is authenticated."""
    require_parameters(
        account_id=request.account_id,
        period_start=request.period_start,
        period_end=request.period_end,
        fee_type=request.fee_type
    )
    return request


@router.post("/calculate", response_model=FeeCalculationResponse)
def calculate_fee(
    request: FeeCalculationRequest = Depends(complete_calculation_request),
    user: User = Depends(require_operator),
    ledger: Ledger = Depends(get_ledger),
    clock: Clock = Depends(get_clock)
):
    """
    Calculate and persist a fee for an account over a period.

    Positive management fees also allocate a retrocession. A failed
    retrocession is reported under secondary_failures; the fee stands.
    """
    calculator = FeeCalculator(ledger, clock)
    result = calculator.calculate(
        account_id=request.account_id,
        period_start=request.period_start,
        period_end=request.period_end,
        fee_type=request.fee_type,
        fee_rate=request.fee_rate,
        created_by=str(user.id)
    )

    fee = result.fee
    return FeeCalculationResponse(
        fee=FeeResponse.model_validate(fee),
        retrocessions=[RetrocessionResponse.model_validate(r) for r in result.retrocessions],
        secondary_failures=[f.to_dict() for f in result.secondary_failures],
        message=f"{fee.fee_type.value.capitalize()} fee calculated: {fee.calculated_amount:.2f} {fee.currency}"
    )


@router.get("", response_model=List[FeeListItem])
def list_fees(
    account_id: Optional[UUID] = Query(None, description="Filter by account"),
    from_date: Optional[date] = Query(None, description="Earliest calculation period start"),
    to_date: Optional[date] = Query(None, description="Latest calculation period end"),
    user: User = Depends(get_current_user),
    ledger: Ledger = Depends(get_ledger),
    clock: Clock = Depends(get_clock)
):
    """List fees (newest first) with their retrocessions."""
    fees = FeeCalculator(ledger, clock).list_fees(account_id, from_date, to_date)
    return [FeeListItem.model_validate(fee) for fee in fees]


@router.post("/{fee_id}/pay", response_model=FeeResponse)
def mark_fee_paid(
    fee_id: UUID,
    request: Optional[FeePaymentRequest] = None,
    user: User = Depends(require_operator),
    ledger: Ledger = Depends(get_ledger),
    clock: Clock = Depends(get_clock)
):
    """Record payment of a fee (payment date defaults to today)."""
    fee = FeeCalculator(ledger, clock).mark_paid(
        fee_id,
        marked_by=str(user.id),
        payment_date=request.payment_date if request else None
    )
    return FeeResponse.model_validate(fee)
