"""
Shared pytest fixtures for domain rule and strategy tests.

Rules take duck-typed inputs, so plain namespaces stand in for ORM rows.
"""

import pytest
from datetime import date, datetime
from types import SimpleNamespace
from uuid import uuid4

from backoffice.domain.compliance_rules import Holding


@pytest.fixture
def today() -> date:
    return date(2024, 6, 30)


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 6, 30, 12, 0, 0)


@pytest.fixture
def make_client():
    """Factory for client-like rows."""
    def _make(kyc_status="approved", updated_at=datetime(2024, 3, 1), first_name="Ada", last_name="Lovelace"):
        return SimpleNamespace(
            id=uuid4(),
            first_name=first_name,
            full_name=f"{first_name} {last_name}",
            last_name=last_name,
            kyc_status=kyc_status,
            updated_at=updated_at,
        )
    return _make


@pytest.fixture
def make_holding():
    """Factory for open holdings."""
    def _make(symbol, market_value, sector="Technology", quantity=10.0, cost_basis=0.0):
        return Holding(
            position_id=uuid4(),
            security_id=uuid4(),
            symbol=symbol,
            sector=sector,
            quantity=quantity,
            market_value=market_value,
            cost_basis=cost_basis,
        )
    return _make


@pytest.fixture
def make_document():
    """Factory for document-like rows."""
    def _make(expiry_date, status="approved", title="Passport", client_id=None, account_id=None):
        return SimpleNamespace(
            id=uuid4(),
            title=title,
            status=status,
            expiry_date=expiry_date,
            client_id=client_id,
            account_id=account_id,
        )
    return _make
