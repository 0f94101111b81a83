"""
Fee Calculation Service Tests.

Covers the four strategies against the ledger, retrocession allocation,
input validation and the primary/secondary failure split.
"""

import pytest
from datetime import date
from unittest.mock import MagicMock
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError

from backoffice.errors import (
    AccountInactive, AccountNotFound, ComputationFailed, FeeAlreadyPaid, FeeNotFound,
    InvalidParameter, MissingParameter, UnknownFeeType
)
from backoffice.models import (
    AccountStatus, AuditEvent, AuditEventType, Fee, FeeType, Retrocession
)
from backoffice.services import FeeCalculator, Ledger


@pytest.fixture
def calculator(ledger, clock):
    return FeeCalculator(ledger, clock)


class TestCustodyFee:

    def test_custody_fee_over_half_year(self, calculator, sample_account, add_position):
        """10M open value at 0.5% over 182 days."""
        add_position(sample_account, "AAA", 6_000_000.0)
        add_position(sample_account, "BBB", 4_000_000.0)

        result = calculator.calculate(
            account_id=sample_account.id,
            period_start=date(2024, 1, 1),
            period_end=date(2024, 7, 1),
            fee_type="custody",
            fee_rate=0.5,
            created_by="tester"
        )

        fee = result.fee
        assert fee.fee_type == FeeType.CUSTODY
        assert fee.calculated_amount == pytest.approx(24931.51, abs=0.01)
        assert fee.fee_description == "Custody fee (0.5% annually)"
        assert fee.currency == "CHF"
        assert fee.fee_rate == 0.5
        assert fee.created_by == "tester"
        assert fee.is_paid is False
        assert result.retrocessions == []

    def test_uses_current_positions_not_period_valuation(
        self, calculator, sample_account, add_position, add_valuation
    ):
        """Custody reads today's open positions even for a past period."""
        add_position(sample_account, "AAA", 3_650_000.0)
        add_valuation(sample_account, date(2023, 1, 1), 1.0)

        result = calculator.calculate(
            account_id=sample_account.id,
            period_start=date(2023, 1, 1),
            period_end=date(2024, 1, 1),
            fee_type="custody",
            fee_rate=0.1,
            created_by="tester"
        )

        assert result.fee.calculated_amount == pytest.approx(3650.0)


class TestPerformanceFee:

    def test_gain_over_cost(self, calculator, sample_account, add_position):
        """market 120k vs cost 100 x 1000 = 100k -> 20% of 20k."""
        add_position(sample_account, "AAA", 120_000.0, quantity=100, average_cost=1000.0)

        result = calculator.calculate(
            account_id=sample_account.id,
            period_start=date(2024, 1, 1),
            period_end=date(2024, 6, 30),
            fee_type="performance",
            created_by="tester"
        )

        assert result.fee.calculated_amount == pytest.approx(4000.0)
        assert result.fee.fee_description == "Performance fee (20.0% of gains)"
        assert result.fee.fee_rate is None

    def test_loss_is_zero_fee(self, calculator, sample_account, add_position):
        add_position(sample_account, "AAA", 80_000.0, quantity=100, average_cost=1000.0)

        result = calculator.calculate(
            account_id=sample_account.id,
            period_start=date(2024, 1, 1),
            period_end=date(2024, 6, 30),
            fee_type="performance",
            created_by="tester"
        )

        assert result.fee.calculated_amount == 0.0


class TestTransactionFee:

    def test_sum_of_costs_in_window(self, calculator, sample_account, add_trade):
        add_trade(sample_account, date(2024, 2, 1), commission=100.0, fees=20.0)
        add_trade(sample_account, date(2024, 3, 1), commission=50.0, fees=10.0)
        add_trade(sample_account, date(2023, 12, 1), commission=75.0, fees=5.0)

        result = calculator.calculate(
            account_id=sample_account.id,
            period_start=date(2024, 1, 1),
            period_end=date(2024, 3, 31),
            fee_type="transaction",
            fee_rate=3.0,
            created_by="tester"
        )

        assert result.fee.calculated_amount == pytest.approx(180.0)
        assert result.fee.fee_description == "Transaction fees for the period"
        assert result.retrocessions == []


class TestManagementFee:

    def test_management_fee_allocates_retrocession(
        self, calculator, db_session, sample_account, add_valuation
    ):
        """1% of a constant 365k over 2023 = 3650; advisor gets 25%."""
        add_valuation(sample_account, date(2023, 1, 1), 365_000.0)

        result = calculator.calculate(
            account_id=sample_account.id,
            period_start=date(2023, 1, 1),
            period_end=date(2024, 1, 1),
            fee_type=FeeType.MANAGEMENT,
            created_by="tester"
        )

        assert result.fee.calculated_amount == pytest.approx(3650.0)
        assert result.fee.fee_description == "Management fee (1.0% annually)"
        assert result.secondary_failures == []

        assert len(result.retrocessions) == 1
        retrocession = result.retrocessions[0]
        assert retrocession.fee_id == result.fee.id
        assert retrocession.amount == pytest.approx(912.5)
        assert retrocession.retrocession_rate == 25.0
        assert retrocession.recipient_name == "Financial Advisor"
        assert retrocession.recipient_type == "advisor"
        assert retrocession.currency == "CHF"

        assert db_session.query(Retrocession).count() == 1

    def test_zero_management_fee_has_no_retrocession(self, calculator, db_session, sample_account):
        result = calculator.calculate(
            account_id=sample_account.id,
            period_start=date(2024, 1, 1),
            period_end=date(2024, 6, 30),
            fee_type="management",
            created_by="tester"
        )

        assert result.fee.calculated_amount == 0.0
        assert result.retrocessions == []
        assert db_session.query(Retrocession).count() == 0

    def test_negative_management_fee_has_no_retrocession(
        self, calculator, db_session, sample_account, add_valuation
    ):
        """A negative valuation yields a negative fee, which carries no advisor share."""
        add_valuation(sample_account, date(2023, 1, 1), -365_000.0)

        result = calculator.calculate(
            account_id=sample_account.id,
            period_start=date(2023, 1, 1),
            period_end=date(2024, 1, 1),
            fee_type="management",
            created_by="tester"
        )

        assert result.fee.calculated_amount == pytest.approx(-3650.0)
        assert result.retrocessions == []
        assert result.secondary_failures == []
        assert db_session.query(Retrocession).count() == 0

    def test_retrocession_failure_keeps_fee(self, ledger, clock, db_session, sample_account, add_valuation):
        """Secondary failure is reported, the fee stays persisted."""
        add_valuation(sample_account, date(2023, 1, 1), 365_000.0)
        allocator = MagicMock()
        allocator.allocate.side_effect = SQLAlchemyError("retrocession insert failed")
        calculator = FeeCalculator(ledger, clock, allocator=allocator)

        result = calculator.calculate(
            account_id=sample_account.id,
            period_start=date(2023, 1, 1),
            period_end=date(2024, 1, 1),
            fee_type="management",
            created_by="tester"
        )

        assert result.retrocessions == []
        assert len(result.secondary_failures) == 1
        failure = result.secondary_failures[0]
        assert failure.effect == "retrocession"
        assert "retrocession insert failed" in failure.error
        assert failure.reference == str(result.fee.id)

        assert db_session.query(Fee).filter(Fee.id == result.fee.id).count() == 1
        assert db_session.query(Retrocession).count() == 0


class TestDuplicates:

    def test_same_request_twice_creates_two_fees(self, calculator, db_session, sample_account, add_position):
        """No idempotency key on (account, period, fee_type)."""
        add_position(sample_account, "AAA", 1_000_000.0)
        params = dict(
            account_id=sample_account.id,
            period_start=date(2024, 1, 1),
            period_end=date(2024, 3, 31),
            fee_type="custody",
            created_by="tester"
        )

        first = calculator.calculate(**params)
        second = calculator.calculate(**params)

        assert first.fee.id != second.fee.id
        assert db_session.query(Fee).count() == 2


class TestValidation:
    """Input errors are raised before any ledger access."""

    @pytest.fixture
    def untouched_ledger(self):
        return MagicMock(spec=Ledger)

    def test_missing_parameters(self, untouched_ledger, clock):
        calculator = FeeCalculator(untouched_ledger, clock)

        with pytest.raises(MissingParameter) as exc_info:
            calculator.calculate(
                account_id=uuid4(),
                period_start=None,
                period_end=date(2024, 3, 31),
                fee_type=None,
                created_by="tester"
            )

        assert exc_info.value.status_code == 400
        assert "period_start" in exc_info.value.details
        assert "fee_type" in exc_info.value.details
        assert untouched_ledger.mock_calls == []

    def test_unknown_fee_type(self, untouched_ledger, clock):
        calculator = FeeCalculator(untouched_ledger, clock)

        with pytest.raises(UnknownFeeType) as exc_info:
            calculator.calculate(
                account_id=uuid4(),
                period_start=date(2024, 1, 1),
                period_end=date(2024, 3, 31),
                fee_type="entry_load",
                created_by="tester"
            )

        assert exc_info.value.error == "Invalid fee type"
        assert untouched_ledger.mock_calls == []

    def test_bookkeeping_fee_types_are_not_calculable(self, untouched_ledger, clock):
        calculator = FeeCalculator(untouched_ledger, clock)

        with pytest.raises(UnknownFeeType):
            calculator.calculate(
                account_id=uuid4(),
                period_start=date(2024, 1, 1),
                period_end=date(2024, 3, 31),
                fee_type="retrocession",
                created_by="tester"
            )

    def test_inverted_period(self, untouched_ledger, clock):
        calculator = FeeCalculator(untouched_ledger, clock)

        with pytest.raises(InvalidParameter):
            calculator.calculate(
                account_id=uuid4(),
                period_start=date(2024, 3, 31),
                period_end=date(2024, 1, 1),
                fee_type="custody",
                created_by="tester"
            )

        assert untouched_ledger.mock_calls == []

    def test_negative_rate(self, untouched_ledger, clock):
        calculator = FeeCalculator(untouched_ledger, clock)

        with pytest.raises(InvalidParameter):
            calculator.calculate(
                account_id=uuid4(),
                period_start=date(2024, 1, 1),
                period_end=date(2024, 3, 31),
                fee_type="custody",
                fee_rate=-1.0,
                created_by="tester"
            )


class TestAccountState:

    def test_unknown_account(self, calculator):
        with pytest.raises(AccountNotFound) as exc_info:
            calculator.calculate(
                account_id=uuid4(),
                period_start=date(2024, 1, 1),
                period_end=date(2024, 3, 31),
                fee_type="custody",
                created_by="tester"
            )

        assert exc_info.value.status_code == 404

    def test_inactive_account_creates_no_fee(self, calculator, db_session, sample_account):
        sample_account.status = AccountStatus.SUSPENDED
        db_session.commit()

        with pytest.raises(AccountInactive) as exc_info:
            calculator.calculate(
                account_id=sample_account.id,
                period_start=date(2024, 1, 1),
                period_end=date(2024, 3, 31),
                fee_type="custody",
                created_by="tester"
            )

        assert exc_info.value.status_code == 409
        assert db_session.query(Fee).count() == 0


class TestPrimaryFailure:

    def test_ledger_error_during_computation(self, ledger, clock, sample_account, monkeypatch):
        def broken(*args, **kwargs):
            raise SQLAlchemyError("connection reset")

        monkeypatch.setattr(ledger, "open_holdings", broken)
        calculator = FeeCalculator(ledger, clock)

        with pytest.raises(ComputationFailed) as exc_info:
            calculator.calculate(
                account_id=sample_account.id,
                period_start=date(2024, 1, 1),
                period_end=date(2024, 3, 31),
                fee_type="custody",
                created_by="tester"
            )

        assert exc_info.value.status_code == 500
        assert "connection reset" in exc_info.value.details


class TestFeeRegister:

    def test_list_fees_within_window(self, calculator, sample_account):
        for start, end in ((date(2024, 1, 1), date(2024, 3, 31)), (date(2024, 4, 1), date(2024, 6, 30))):
            calculator.calculate(
                account_id=sample_account.id,
                period_start=start,
                period_end=end,
                fee_type="transaction",
                created_by="tester"
            )

        assert len(calculator.list_fees(sample_account.id)) == 2
        q2 = calculator.list_fees(sample_account.id, from_date=date(2024, 4, 1))
        assert [f.calculation_period_start for f in q2] == [date(2024, 4, 1)]
        q1 = calculator.list_fees(sample_account.id, to_date=date(2024, 3, 31))
        assert [f.calculation_period_end for f in q1] == [date(2024, 3, 31)]

    def test_mark_paid_defaults_to_clock_today(self, calculator, db_session, sample_account):
        fee = calculator.calculate(
            account_id=sample_account.id,
            period_start=date(2024, 1, 1),
            period_end=date(2024, 3, 31),
            fee_type="transaction",
            created_by="tester"
        ).fee

        paid = calculator.mark_paid(fee.id, marked_by="tester")

        assert paid.is_paid is True
        assert paid.payment_date == date(2024, 6, 30)
        assert db_session.query(AuditEvent).filter(
            AuditEvent.event_type == AuditEventType.FEE_PAID,
            AuditEvent.aggregate_id == fee.id
        ).count() == 1

    def test_mark_paid_twice_conflicts(self, calculator, sample_account):
        fee = calculator.calculate(
            account_id=sample_account.id,
            period_start=date(2024, 1, 1),
            period_end=date(2024, 3, 31),
            fee_type="transaction",
            created_by="tester"
        ).fee
        calculator.mark_paid(fee.id, marked_by="tester", payment_date=date(2024, 5, 1))

        with pytest.raises(FeeAlreadyPaid):
            calculator.mark_paid(fee.id, marked_by="tester")

    def test_mark_paid_unknown_fee(self, calculator):
        with pytest.raises(FeeNotFound):
            calculator.mark_paid(uuid4(), marked_by="tester")
