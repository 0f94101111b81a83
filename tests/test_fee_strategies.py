"""
Tests for fee calculation strategies.

Pure arithmetic: no database, bases are built directly.
"""

import pytest
from datetime import date

from backoffice.domain.fee_strategies import (
    CustodyBasis, ManagementBasis, PerformanceBasis, TransactionBasis,
    compute_fee, period_days, resolve_rate, time_weighted_value
)
from backoffice.models import FeeType


class TestCustodyFee:
    """Custody: V x R/100 x D/365 over the current open-position value."""

    def test_half_year_custody_fee(self):
        """10M at 0.5% over 2024-01-01..2024-07-01 (182 days)."""
        days = period_days(date(2024, 1, 1), date(2024, 7, 1))
        computation = compute_fee(CustodyBasis(market_value=10_000_000, period_days=days), 0.5)

        assert days == 182
        assert computation.fee_type == FeeType.CUSTODY
        assert computation.amount == pytest.approx(24931.51, abs=0.01)
        assert computation.description == "Custody fee (0.5% annually)"

    def test_default_rate(self):
        """Omitted rate falls back to 0.1%."""
        computation = compute_fee(CustodyBasis(market_value=3_650_000, period_days=365))

        assert computation.rate == 0.1
        assert computation.amount == pytest.approx(3650.0)
        assert computation.description == "Custody fee (0.1% annually)"

    def test_zero_length_period(self):
        computation = compute_fee(CustodyBasis(market_value=1_000_000, period_days=0), 0.1)

        assert computation.amount == 0


class TestTransactionFee:
    """Transaction: direct pass-through of costs, rate ignored."""

    def test_amount_is_cost_sum(self):
        computation = compute_fee(TransactionBasis(transaction_costs=180.0))

        assert computation.amount == 180.0
        assert computation.description == "Transaction fees for the period"

    def test_rate_does_not_scale_amount(self):
        computation = compute_fee(TransactionBasis(transaction_costs=180.0), 50.0)

        assert computation.amount == 180.0

    def test_no_default_rate(self):
        assert resolve_rate(FeeType.TRANSACTION, None) is None


class TestPerformanceFee:
    """Performance: rate applied to positive unrealised gain only."""

    def test_gain_is_charged(self):
        basis = PerformanceBasis(market_value=120_000.0, cost_basis=100_000.0)
        computation = compute_fee(basis)

        assert basis.gain == 20_000.0
        assert computation.rate == 20.0
        assert computation.amount == pytest.approx(4000.0)
        assert computation.description == "Performance fee (20.0% of gains)"

    def test_loss_yields_zero(self):
        computation = compute_fee(PerformanceBasis(market_value=90_000.0, cost_basis=100_000.0), 20.0)

        assert computation.amount == 0.0

    def test_break_even_yields_zero(self):
        computation = compute_fee(PerformanceBasis(market_value=100_000.0, cost_basis=100_000.0), 20.0)

        assert computation.amount == 0.0


class TestManagementFee:
    """Management: rate applied to the time-weighted value."""

    def test_rate_applied_to_time_weighted_value(self):
        computation = compute_fee(ManagementBasis(time_weighted_value=500_000.0), 1.0)

        assert computation.amount == pytest.approx(5000.0)
        assert computation.description == "Management fee (1.0% annually)"

    def test_default_rate_is_one_percent(self):
        computation = compute_fee(ManagementBasis(time_weighted_value=200_000.0))

        assert computation.rate == 1.0
        assert computation.amount == pytest.approx(2000.0)

    def test_explicit_zero_rate_is_kept(self):
        """A requested 0% is a rate, not an omission."""
        computation = compute_fee(ManagementBasis(time_weighted_value=200_000.0), 0.0)

        assert computation.rate == 0.0
        assert computation.amount == 0.0


class TestTimeWeightedValue:
    """Step-function aggregation over [start, end), divided by 365."""

    def test_constant_value_over_full_year(self):
        value = time_weighted_value([(date(2023, 1, 1), 365_000.0)], date(2023, 1, 1), date(2024, 1, 1))

        assert value == pytest.approx(365_000.0)

    def test_opening_snapshot_before_start_is_in_force(self):
        """Latest snapshot on or before start sets the opening value."""
        snapshots = [
            (date(2023, 12, 1), 100_000.0),
            (date(2023, 12, 15), 365_000.0),
        ]

        value = time_weighted_value(snapshots, date(2024, 1, 1), date(2024, 1, 11))

        assert value == pytest.approx(365_000.0 * 10 / 365)

    def test_value_change_inside_period(self):
        """Each value holds from its date until the next snapshot."""
        snapshots = [
            (date(2024, 1, 1), 365_000.0),
            (date(2024, 1, 11), 730_000.0),
        ]

        value = time_weighted_value(snapshots, date(2024, 1, 1), date(2024, 1, 21))

        # 10 days at 365k + 10 days at 730k
        assert value == pytest.approx((365_000.0 * 10 + 730_000.0 * 10) / 365)

    def test_days_before_first_snapshot_count_as_zero(self):
        snapshots = [(date(2024, 1, 11), 365_000.0)]

        value = time_weighted_value(snapshots, date(2024, 1, 1), date(2024, 1, 21))

        assert value == pytest.approx(365_000.0 * 10 / 365)

    def test_snapshots_on_or_after_end_are_ignored(self):
        snapshots = [
            (date(2024, 1, 1), 365_000.0),
            (date(2024, 1, 21), 10_000_000.0),
        ]

        value = time_weighted_value(snapshots, date(2024, 1, 1), date(2024, 1, 21))

        assert value == pytest.approx(365_000.0 * 20 / 365)

    def test_unordered_snapshots(self):
        snapshots = [
            (date(2024, 1, 11), 730_000.0),
            (date(2024, 1, 1), 365_000.0),
        ]

        value = time_weighted_value(snapshots, date(2024, 1, 1), date(2024, 1, 21))

        assert value == pytest.approx((365_000.0 * 10 + 730_000.0 * 10) / 365)

    def test_no_snapshots(self):
        assert time_weighted_value([], date(2024, 1, 1), date(2024, 12, 31)) == 0.0

    def test_empty_period(self):
        assert time_weighted_value([(date(2024, 1, 1), 1_000.0)], date(2024, 1, 1), date(2024, 1, 1)) == 0.0


class TestDispatch:

    def test_unknown_basis_rejected(self):
        with pytest.raises(TypeError):
            compute_fee(object(), 1.0)

    def test_requested_rate_wins_over_default(self):
        assert resolve_rate(FeeType.PERFORMANCE, 15) == 15.0
        assert resolve_rate(FeeType.PERFORMANCE, None) == 20.0
