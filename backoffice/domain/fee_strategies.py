"""
Fee calculation strategies.

Each calculable fee type has its own basis type carrying only what the
strategy needs; compute_fee dispatches on the basis type. Everything here
is pure: the ledger gathers the basis, this module does the arithmetic.

Rates are percentages (1.0 means 1%).
"""

from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Iterable, Optional, Tuple, Type, Union

from backoffice.models.fee import FeeType

DAYS_PER_YEAR = 365

# Fee types this engine can calculate (retrocession/other are bookkeeping only)
CALCULABLE_FEE_TYPES = (
    FeeType.MANAGEMENT,
    FeeType.PERFORMANCE,
    FeeType.TRANSACTION,
    FeeType.CUSTODY,
)

# Default annual rates (percent) when the caller omits one
DEFAULT_RATES: Dict[FeeType, float] = {
    FeeType.MANAGEMENT: 1.0,
    FeeType.PERFORMANCE: 20.0,
    FeeType.CUSTODY: 0.1,
}


@dataclass(frozen=True)
class ManagementBasis:
    """Time-weighted holdings value, already pro-rated by actual/365."""
    time_weighted_value: float


@dataclass(frozen=True)
class PerformanceBasis:
    """Current open-position snapshot: market value vs. cost."""
    market_value: float
    cost_basis: float

    @property
    def gain(self) -> float:
        return self.market_value - self.cost_basis


@dataclass(frozen=True)
class TransactionBasis:
    """Sum of commission + fees over trades dated inside the period."""
    transaction_costs: float


@dataclass(frozen=True)
class CustodyBasis:
    """Current open-position market value and the period length in days."""
    market_value: float
    period_days: int


FeeBasis = Union[ManagementBasis, PerformanceBasis, TransactionBasis, CustodyBasis]


@dataclass(frozen=True)
class FeeComputation:
    """Outcome of a strategy: amount plus the human-readable description."""
    fee_type: FeeType
    amount: float
    description: str
    rate: Optional[float]


def period_days(start: date, end: date) -> int:
    """
    Whole days between period boundaries.

    Example:
        >>> period_days(date(2024, 1, 1), date(2024, 7, 1))
        182
    """
    return (end - start).days


def resolve_rate(fee_type: FeeType, requested: Optional[float]) -> Optional[float]:
    """Requested rate, or the fee type's default (None for transaction fees)."""
    if requested is not None:
        return float(requested)
    default = DEFAULT_RATES.get(fee_type)
    return float(default) if default is not None else None


def time_weighted_value(
    snapshots: Iterable[Tuple[date, float]],
    start: date,
    end: date
) -> float:
    """
    Time-weighted holdings value over [start, end), pro-rated by actual/365.

    Snapshots form a step function: each value is in force from its date
    until the next snapshot. The value in force at start is the latest
    snapshot on or before start; days before the first snapshot count as
    zero holdings.

    Args:
        snapshots: (valuation_date, total_value) pairs, any order
        start: Period start (inclusive)
        end: Period end (exclusive)

    Returns:
        Sum of value x days held, divided by 365

    Example:
        >>> time_weighted_value([(date(2024, 1, 1), 365_000.0)], date(2024, 1, 1), date(2025, 1, 1))
        366000.0
    """
    if end <= start:
        return 0.0

    current_value = 0.0
    cursor = start
    value_days = 0.0

    for valuation_date, value in sorted(snapshots, key=lambda s: s[0]):
        if valuation_date >= end:
            break
        if valuation_date <= start:
            current_value = float(value or 0)
            continue
        value_days += current_value * (valuation_date - cursor).days
        cursor = valuation_date
        current_value = float(value or 0)

    value_days += current_value * (end - cursor).days
    return value_days / DAYS_PER_YEAR


def _management_fee(basis: ManagementBasis, rate: Optional[float]) -> FeeComputation:
    amount = basis.time_weighted_value * (rate / 100)
    return FeeComputation(
        fee_type=FeeType.MANAGEMENT,
        amount=amount,
        description=f"Management fee ({rate}% annually)",
        rate=rate,
    )


def _performance_fee(basis: PerformanceBasis, rate: Optional[float]) -> FeeComputation:
    gain = basis.gain
    amount = gain * (rate / 100) if gain > 0 else 0.0
    return FeeComputation(
        fee_type=FeeType.PERFORMANCE,
        amount=amount,
        description=f"Performance fee ({rate}% of gains)",
        rate=rate,
    )


def _transaction_fee(basis: TransactionBasis, rate: Optional[float]) -> FeeComputation:
    # Rate is not applied: the fee is the pass-through of trading costs
    return FeeComputation(
        fee_type=FeeType.TRANSACTION,
        amount=float(basis.transaction_costs),
        description="Transaction fees for the period",
        rate=rate,
    )


def _custody_fee(basis: CustodyBasis, rate: Optional[float]) -> FeeComputation:
    amount = (basis.market_value * rate / 100) * (basis.period_days / DAYS_PER_YEAR)
    return FeeComputation(
        fee_type=FeeType.CUSTODY,
        amount=amount,
        description=f"Custody fee ({rate}% annually)",
        rate=rate,
    )


_STRATEGIES: Dict[Type, Callable[..., FeeComputation]] = {
    ManagementBasis: _management_fee,
    PerformanceBasis: _performance_fee,
    TransactionBasis: _transaction_fee,
    CustodyBasis: _custody_fee,
}

BASIS_TYPES: Dict[FeeType, Type] = {
    FeeType.MANAGEMENT: ManagementBasis,
    FeeType.PERFORMANCE: PerformanceBasis,
    FeeType.TRANSACTION: TransactionBasis,
    FeeType.CUSTODY: CustodyBasis,
}


def compute_fee(basis: FeeBasis, rate: Optional[float] = None) -> FeeComputation:
    """
    Apply the strategy matching the basis type.

    Args:
        basis: One of the four basis types
        rate: Percent rate; the fee type's default when None

    Returns:
        FeeComputation

    Raises:
        TypeError: If basis is not a known basis type

    Example:
        >>> round(compute_fee(CustodyBasis(market_value=10_000_000, period_days=182), 0.5).amount, 2)
        24931.51
    """
    strategy = _STRATEGIES.get(type(basis))
    if strategy is None:
        raise TypeError(f"Unsupported fee basis: {type(basis).__name__}")

    fee_type = next(ft for ft, bt in BASIS_TYPES.items() if bt is type(basis))
    return strategy(basis, resolve_rate(fee_type, rate))
