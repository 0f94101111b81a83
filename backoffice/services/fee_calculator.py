"""
Fee Calculation Service.

Validates a calculation request, gathers the basis for the requested fee
type from the ledger, applies the matching strategy, persists the fee and
allocates the retrocession for positive management fees.

Calculating the same fee twice creates two fee rows: there is no
idempotency key on (account, period, fee_type).
"""

from datetime import date
from typing import Callable, Dict, List, Optional, Union
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from backoffice.clock import Clock
from backoffice.domain.fee_strategies import (
    CALCULABLE_FEE_TYPES, CustodyBasis, FeeBasis, ManagementBasis, PerformanceBasis,
    TransactionBasis, compute_fee, period_days
)
from backoffice.errors import (
    AccountInactive, AccountNotFound, ComputationFailed, FeeAlreadyPaid, FeeNotFound,
    InvalidParameter, LedgerTimeout, MissingParameter, UnknownFeeType
)
from backoffice.logging import get_logger
from backoffice.models import Account, Fee, FeeType
from backoffice.services.ledger import Ledger
from backoffice.services.results import FeeCalculationResult, SecondaryFailure
from backoffice.services.retrocession_allocator import (
    RetrocessionAllocator, qualifies_for_retrocession
)

logger = get_logger(__name__)

LEDGER_ERRORS = (SQLAlchemyError, LedgerTimeout)


def require_parameters(**fields) -> None:
    """
    Reject a request with absent fields.

    Raises:
        MissingParameter: Naming every field that is None or empty
    """
    missing = [name for name, value in fields.items() if value is None or value == ""]
    if missing:
        raise MissingParameter(details=f"Missing: {', '.join(missing)}")


def parse_fee_type(value: Union[str, FeeType]) -> FeeType:
    """
    Map a fee-type tag to one of the calculable fee types.

    Raises:
        UnknownFeeType: For any tag outside management/performance/transaction/custody
    """
    try:
        fee_type = FeeType(value)
    except ValueError:
        raise UnknownFeeType(details=f"Unknown fee type '{value}'")

    if fee_type not in CALCULABLE_FEE_TYPES:
        raise UnknownFeeType(details=f"Fee type '{fee_type.value}' cannot be calculated")
    return fee_type


class FeeCalculator:
    """
    Fee calculation and fee register operations.

    Primary effect: the fee row. Secondary effect: the retrocession, whose
    failure is logged and reported in the result but never fails the call.
    """

    def __init__(
        self,
        ledger: Ledger,
        clock: Clock,
        allocator: Optional[RetrocessionAllocator] = None
    ):
        """
        Initialize fee calculator.

        Args:
            ledger: Ledger repository for this request
            clock: Source of "today" (payment dates)
            allocator: Retrocession allocator (defaults to one on the same ledger)
        """
        self.ledger = ledger
        self.clock = clock
        self.allocator = allocator or RetrocessionAllocator(ledger)

        self._basis_loaders: Dict[FeeType, Callable[[Account, date, date], FeeBasis]] = {
            FeeType.MANAGEMENT: self._management_basis,
            FeeType.PERFORMANCE: self._performance_basis,
            FeeType.TRANSACTION: self._transaction_basis,
            FeeType.CUSTODY: self._custody_basis,
        }

    def calculate(
        self,
        account_id: Optional[UUID],
        period_start: Optional[date],
        period_end: Optional[date],
        fee_type: Optional[Union[str, FeeType]],
        created_by: str,
        fee_rate: Optional[float] = None
    ) -> FeeCalculationResult:
        """
        Calculate and persist a fee.

        Args:
            account_id: Account to charge
            period_start: Calculation period start
            period_end: Calculation period end
            fee_type: management | performance | transaction | custody
            created_by: Authenticated caller id
            fee_rate: Percent rate (defaults per fee type when None)

        Returns:
            FeeCalculationResult

        Raises:
            MissingParameter: A required field is absent (no ledger access)
            InvalidParameter: Period is inverted or rate is negative (no ledger access)
            UnknownFeeType: Tag is not a calculable fee type (no ledger access)
            AccountNotFound: No such account
            AccountInactive: Account status is not active
            ComputationFailed: Ledger failure while computing or persisting the fee
        """
        require_parameters(
            account_id=account_id,
            period_start=period_start,
            period_end=period_end,
            fee_type=fee_type
        )

        fee_type = parse_fee_type(fee_type)

        if period_end < period_start:
            raise InvalidParameter(details="period_end must not be before period_start")
        if fee_rate is not None and fee_rate < 0:
            raise InvalidParameter(details="fee_rate must not be negative")

        try:
            account = self.ledger.get_account(account_id)
        except LEDGER_ERRORS as e:
            self._fail(account_id, fee_type, e)

        if account is None:
            raise AccountNotFound()
        if not account.is_active:
            raise AccountInactive(details=f"Account status is {account.status.value}")

        try:
            basis = self._basis_loaders[fee_type](account, period_start, period_end)
            computation = compute_fee(basis, fee_rate)
            fee = self.ledger.insert_fee(
                account=account,
                computation=computation,
                period_start=period_start,
                period_end=period_end,
                requested_rate=fee_rate,
                created_by=created_by
            )
        except LEDGER_ERRORS as e:
            self._fail(account_id, fee_type, e)

        logger.fee_calculated(
            fee_id=fee.id,
            account_id=account.id,
            fee_type=fee_type.value,
            amount=computation.amount,
            period_start=period_start,
            period_end=period_end
        )

        result = FeeCalculationResult(fee=fee)
        if qualifies_for_retrocession(fee):
            self._allocate_retrocession(fee, result)

        return result

    def list_fees(
        self,
        account_id: Optional[UUID] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None
    ) -> List[Fee]:
        """Fees whose calculation period lies within [from_date, to_date]."""
        try:
            return self.ledger.list_fees(account_id, from_date, to_date)
        except LEDGER_ERRORS as e:
            self.ledger.rollback()
            raise ComputationFailed(details=str(e))

    def mark_paid(
        self,
        fee_id: UUID,
        marked_by: str,
        payment_date: Optional[date] = None
    ) -> Fee:
        """
        Record payment of a fee; the only mutation a fee ever sees.

        Raises:
            FeeNotFound: No such fee
            FeeAlreadyPaid: Fee is already marked paid
        """
        try:
            fee = self.ledger.get_fee(fee_id)
        except LEDGER_ERRORS as e:
            self.ledger.rollback()
            raise ComputationFailed(details=str(e))

        if fee is None:
            raise FeeNotFound()
        if fee.is_paid:
            raise FeeAlreadyPaid(details=f"Paid on {fee.payment_date}")

        payment_date = payment_date or self.clock.today()
        try:
            fee = self.ledger.mark_fee_paid(fee, payment_date, marked_by)
        except LEDGER_ERRORS as e:
            self.ledger.rollback()
            raise ComputationFailed(details=str(e))

        logger.fee_marked_paid(fee_id=fee.id, payment_date=payment_date, marked_by=marked_by)
        return fee

    # ===== Basis loaders =====

    def _management_basis(self, account: Account, start: date, end: date) -> ManagementBasis:
        return ManagementBasis(
            time_weighted_value=self.ledger.time_weighted_average_value(account.id, start, end)
        )

    def _performance_basis(self, account: Account, start: date, end: date) -> PerformanceBasis:
        # Current snapshot of open positions, not valued as of the period
        holdings = self.ledger.open_holdings(account.id)
        return PerformanceBasis(
            market_value=sum(h.market_value for h in holdings),
            cost_basis=sum(h.cost_basis for h in holdings),
        )

    def _transaction_basis(self, account: Account, start: date, end: date) -> TransactionBasis:
        return TransactionBasis(
            transaction_costs=self.ledger.transaction_costs(account.id, start, end)
        )

    def _custody_basis(self, account: Account, start: date, end: date) -> CustodyBasis:
        # Current snapshot of open positions, not valued as of the period
        holdings = self.ledger.open_holdings(account.id)
        return CustodyBasis(
            market_value=sum(h.market_value for h in holdings),
            period_days=period_days(start, end),
        )

    # ===== Helpers =====

    def _allocate_retrocession(self, fee: Fee, result: FeeCalculationResult) -> None:
        try:
            result.retrocessions.append(self.allocator.allocate(fee))
        except LEDGER_ERRORS as e:
            self.ledger.rollback()
            logger.retrocession_failed(fee_id=fee.id, error=str(e))
            result.secondary_failures.append(
                SecondaryFailure(effect="retrocession", error=str(e), reference=str(fee.id))
            )

    def _fail(self, account_id: UUID, fee_type: FeeType, error: Exception) -> None:
        self.ledger.rollback()
        logger.fee_calculation_failed(account_id=account_id, fee_type=fee_type.value, error=str(error))
        raise ComputationFailed(details=str(error)) from error
