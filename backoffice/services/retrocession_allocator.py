"""
Retrocession Allocator.

Derives the advisor's revenue share from a persisted management fee.
"""

from dataclasses import dataclass
from uuid import UUID

from backoffice.models import Fee, FeeType, Retrocession
from backoffice.services.ledger import Ledger
from backoffice.logging import get_logger

logger = get_logger(__name__)

RETROCESSION_RATE = 25.0
RECIPIENT_NAME = "Financial Advisor"
RECIPIENT_TYPE = "advisor"


@dataclass(frozen=True)
class RetrocessionDraft:
    fee_id: UUID
    recipient_name: str
    recipient_type: str
    retrocession_rate: float
    amount: float
    currency: str


def qualifies_for_retrocession(fee: Fee) -> bool:
    """Only positive management fees carry a retrocession."""
    return fee.fee_type == FeeType.MANAGEMENT and (fee.calculated_amount or 0) > 0


def build_retrocession(fee: Fee) -> RetrocessionDraft:
    """
    Compute the retrocession for a fee.

    Pure function of the fee: amount = fee amount x 25%, same currency.

    Example:
        >>> build_retrocession(fee).amount  # fee.calculated_amount == 1000.0
        250.0
    """
    return RetrocessionDraft(
        fee_id=fee.id,
        recipient_name=RECIPIENT_NAME,
        recipient_type=RECIPIENT_TYPE,
        retrocession_rate=RETROCESSION_RATE,
        amount=float(fee.calculated_amount) * RETROCESSION_RATE / 100,
        currency=fee.currency,
    )


class RetrocessionAllocator:
    """
    Computes and persists one retrocession per qualifying fee.

    Never reads other ledger state and never retries; failures propagate to
    the caller, which decides whether they are fatal.
    """

    def __init__(self, ledger: Ledger):
        self.ledger = ledger

    def allocate(self, fee: Fee) -> Retrocession:
        draft = build_retrocession(fee)
        retrocession = self.ledger.insert_retrocession(
            fee_id=draft.fee_id,
            recipient_name=draft.recipient_name,
            recipient_type=draft.recipient_type,
            retrocession_rate=draft.retrocession_rate,
            amount=draft.amount,
            currency=draft.currency
        )

        logger.retrocession_allocated(
            retrocession_id=retrocession.id,
            fee_id=fee.id,
            amount=draft.amount,
            recipient=draft.recipient_name
        )
        return retrocession
