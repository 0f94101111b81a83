"""
Pydantic schemas for Fee API.
"""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from backoffice.models import FeeType
from backoffice.schemas.common import SecondaryFailureResponse


class FeeCalculationRequest(BaseModel):
    """
    Schema for a fee calculation request.

    Required fields are declared optional so that absent values reach the
    service and come back as a "Missing required parameters" error.
    """
    account_id: Optional[UUID] = Field(None, description="Account to charge")
    period_start: Optional[date] = Field(None, description="Calculation period start")
    period_end: Optional[date] = Field(None, description="Calculation period end")
    fee_type: Optional[str] = Field(None, description="management | performance | transaction | custody")
    fee_rate: Optional[float] = Field(None, description="Rate in percent (defaults per fee type)")


class RetrocessionResponse(BaseModel):
    """Schema for retrocession response."""
    id: UUID
    fee_id: UUID
    recipient_name: str
    recipient_type: str
    retrocession_rate: float
    amount: float
    currency: str
    is_paid: bool = False
    created_at: datetime

    class Config:
        from_attributes = True


class FeeResponse(BaseModel):
    """Schema for fee response."""
    id: UUID
    account_id: UUID
    fee_type: FeeType
    fee_description: str
    calculation_period_start: date
    calculation_period_end: date
    fee_rate: Optional[float] = None
    calculated_amount: float
    currency: str
    is_paid: bool = False
    payment_date: Optional[date] = None
    created_by: str
    created_at: datetime

    class Config:
        from_attributes = True


class FeeListItem(FeeResponse):
    """Schema for fee in list view (with its retrocessions)."""
    retrocessions: List[RetrocessionResponse] = []


class FeeCalculationResponse(BaseModel):
    """Schema for fee calculation result."""
    success: bool = True
    fee: FeeResponse
    retrocessions: List[RetrocessionResponse] = []
    secondary_failures: List[SecondaryFailureResponse] = []
    message: str


class FeePaymentRequest(BaseModel):
    """Schema for recording a fee payment."""
    payment_date: Optional[date] = Field(None, description="Payment date (defaults to today)")
